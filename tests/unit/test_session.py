"""Unit tests for session orchestration: roster loading, edits, and commit dispatch"""

import asyncio
import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from collection_gateway.domain.exceptions import (
    CommitError,
    InvalidOperationError,
    StaleSessionError,
    UnknownReferenceError,
    ValidationError,
)
from collection_gateway.domain.models import EntryStatus, PaymentMethod, Roster, SessionContext
from collection_gateway.domain.session import CollectionSession


class FakeRosterSource:
    def __init__(self, roster: Roster):
        self.roster = roster
        self.calls = 0

    async def get_roster(self, lead_id, day):
        self.calls += 1
        return self.roster


class SlowRosterSource(FakeRosterSource):
    """Holds the response until released so the context can change mid-flight"""

    def __init__(self, roster: Roster):
        super().__init__(roster)
        self.release = asyncio.Event()

    async def get_roster(self, lead_id, day):
        await self.release.wait()
        return await super().get_roster(lead_id, day)


class FakeCommitter:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.created = []
        self.updated = []

    async def create_day_record(self, batch):
        if self.fail:
            raise CommitError("ledger down")
        self.created.append(batch)
        return "dr_new"

    async def update_day_record(self, batch):
        if self.fail:
            raise CommitError("ledger down")
        self.updated.append(batch)
        return batch.day_record_id


@pytest.fixture
def session(context, roster) -> CollectionSession:
    session = CollectionSession(context)
    session.apply_roster(context, roster)
    return session


def test_cancelled_delete_restores_committed_display(session):
    """Start edit, mark deleted, cancel: the payment counts normally again"""
    session.start_edit("loan_4")
    session.toggle_delete("loan_4")
    assert session.status("loan_4") == EntryStatus.DELETED
    assert session.registered_totals().deleted_count == 1

    session.cancel_edit("loan_4")

    registered = session.registered_totals()
    assert session.status("loan_4") == EntryStatus.REGISTERED
    assert registered.deleted_count == 0
    assert registered.cash == Decimal("250")
    assert registered.count == 1


def test_toggle_delete_starts_edit_when_missing(session):
    edit = session.toggle_delete("loan_4")
    assert edit.is_deleted is True
    assert session.toggle_delete("loan_4").is_deleted is False


def test_edits_only_target_committed_loans(session):
    with pytest.raises(InvalidOperationError):
        session.start_edit("loan_0")
    with pytest.raises(InvalidOperationError):
        session.set_edit_field("loan_4", "amount", Decimal("1"))
    with pytest.raises(UnknownReferenceError):
        session.start_edit("ghost")


def test_statuses(session):
    session.toggle_no_payment("loan_1", 1)
    session.start_edit("loan_4")

    statuses = session.statuses()

    assert statuses["loan_0"] == EntryStatus.PENDING
    assert statuses["loan_1"] == EntryStatus.NO_PAYMENT
    assert statuses["loan_4"] == EntryStatus.EDITED


def test_modal_totals_follow_edit_store(session):
    assert session.modal_totals() == session.new_totals()

    session.start_edit("loan_4")

    assert session.modal_totals() == session.registered_totals()


def test_combined_totals_balance_in_every_state(session):
    for mutate in (
        lambda: session.set_amount("loan_0", Decimal("1000")),
        lambda: session.set_method("loan_1", PaymentMethod.TRANSFER),
        lambda: session.toggle_no_payment("loan_2", 2),
        lambda: session.toggle_delete("loan_4"),
    ):
        mutate()
        for view in (session.new_totals(), session.registered_totals(), session.combined_totals(), session.modal_totals()):
            assert view.total == view.cash + view.bank


def test_exceeds_cash_is_rechecked_when_cash_drops(session):
    session.set_bank_transfer(Decimal("500"))
    assert session.exceeds_cash is False

    for loan_id in ("loan_0", "loan_1", "loan_3"):
        session.set_amount(loan_id, Decimal("0"))

    # Transfer stays as typed; the flag blocks commit instead
    assert session.bank_transfer_amount == Decimal("500")
    assert session.exceeds_cash is True


def test_weekly_reset_scope(context, roster):
    visible_only = CollectionSession(context, weekly_reset_scope="visible")
    visible_only.apply_roster(context, roster)
    everything = CollectionSession(context, weekly_reset_scope="all")
    everything.apply_roster(context, roster)

    for session in (visible_only, everything):
        session.set_amount("loan_0", Decimal("10"))
        session.set_amount("loan_1", Decimal("10"))
        session.set_all_to_weekly(["loan_0"])

    assert visible_only.entries.get("loan_1").amount == Decimal("10")
    assert everything.entries.get("loan_1").amount == Decimal("300")


def test_adhoc_uses_typed_global_commission(session):
    session.set_global_commission(Decimal("7"))
    entry = session.add_adhoc()
    assert entry.commission == Decimal("7")

    session.set_adhoc_loan(entry.temp_id, "loan_2")
    assert entry.commission == Decimal("10")

    other = session.add_adhoc()
    with pytest.raises(InvalidOperationError):
        session.set_adhoc_loan(other.temp_id, "loan_2")
    with pytest.raises(UnknownReferenceError):
        session.available_loans_for("temp-missing")


def test_apply_roster_rejects_stale_context(session, roster):
    other = SessionContext(lead_id="lead_2", day=date(2025, 3, 3))
    with pytest.raises(StaleSessionError):
        session.apply_roster(other, roster)


async def test_refresh_discards_response_after_context_change(context, roster):
    session = CollectionSession(context)
    source = SlowRosterSource(roster)

    pending = asyncio.create_task(session.refresh(source))
    await asyncio.sleep(0)
    session.change_context(SessionContext(lead_id="lead_2", day=context.day))
    source.release.set()

    assert await pending is False
    assert session.loans == []
    assert len(session.entries) == 0


async def test_refresh_keeps_entries_in_progress(session, roster):
    session.set_amount("loan_0", Decimal("1000"))

    assert await session.refresh(FakeRosterSource(roster)) is True
    assert session.entries.get("loan_0").amount == Decimal("1000")


def test_change_context_discards_all_stores(session):
    session.set_amount("loan_0", Decimal("1"))
    session.start_edit("loan_4")
    session.add_adhoc()
    session.set_bank_transfer(Decimal("10"))

    session.change_context(SessionContext(lead_id="lead_1", day=date(2025, 3, 4)))

    assert len(session.entries) == 0
    assert len(session.edits) == 0
    assert len(session.adhoc) == 0
    assert session.bank_transfer_amount == 0
    assert session.loans == []


async def test_commit_create_sends_new_rows_with_distribution(session, roster):
    session.set_method("loan_1", PaymentMethod.TRANSFER)
    session.toggle_no_payment("loan_2", 2)
    entry = session.add_adhoc()
    session.set_adhoc_loan(entry.temp_id, "loan_2")
    session.set_bank_transfer(Decimal("100"))
    committer = FakeCommitter()
    source = FakeRosterSource(roster)

    result = await session.commit(committer, source)

    assert result.ok is True
    assert result.kind == "create"
    batch = committer.created[0]
    assert {row.loan_id for row in batch.payments} == {"loan_0", "loan_1", "loan_3", "loan_2"}
    # cash: 500 + 400 + 200 (ad-hoc) = 1100, bank: 300
    assert batch.paid_amount == batch.expected_amount == Decimal("1400")
    assert batch.cash_paid_amount == Decimal("1000")
    assert batch.bank_paid_amount == Decimal("400")
    assert batch.agent_id == batch.lead_id == "lead_1"
    assert batch.payment_date == session.context.day
    assert result.saved_count == 4
    assert result.day_record_id == "dr_new"

    # Stores cleared, roster reloaded and entries re-initialized
    assert source.calls == 1
    assert len(session.adhoc) == 0
    assert session.bank_transfer_amount == 0
    assert session.entries.get("loan_2").is_no_payment is False


async def test_commit_update_resends_every_committed_row(context, roster, loans):
    second = replace(
        loans[0],
        committed_payment=replace(loans[4].committed_payment, id="pay_0", loan_id="loan_0", amount=Decimal("500")),
    )
    session = CollectionSession(context)
    session.apply_roster(context, Roster(loans=[second] + loans[1:], day_record_id="dr_1"))
    session.toggle_delete("loan_4")
    committer = FakeCommitter()

    result = await session.commit(committer)

    assert result.ok is True
    assert result.kind == "update"
    batch = committer.updated[0]
    assert batch.day_record_id == "dr_1"
    rows = {row.loan_id: row for row in batch.payments}
    assert set(rows) == {"loan_0", "loan_4"}
    assert rows["loan_4"].is_deleted is True
    assert rows["loan_0"].is_deleted is False
    assert rows["loan_0"].amount == Decimal("500")
    assert batch.paid_amount == Decimal("500")
    assert result.deleted_count == 1
    assert result.saved_count == 1
    assert len(session.edits) == 0
    assert committer.created == []


async def test_commit_without_valid_entries_is_rejected(session):
    session.clear_all()
    committer = FakeCommitter()

    result = await session.commit(committer)

    assert result.ok is False
    assert isinstance(result.error, ValidationError)
    assert committer.created == []


async def test_commit_blocked_when_transfer_exceeds_cash(session):
    session.set_bank_transfer(Decimal("5000"))
    committer = FakeCommitter()

    result = await session.commit(committer)

    assert result.ok is False
    assert isinstance(result.error, ValidationError)
    assert committer.created == []


async def test_commit_update_requires_day_record(context, loans):
    session = CollectionSession(context)
    session.apply_roster(context, Roster(loans=loans, day_record_id=None))
    session.start_edit("loan_4")

    result = await session.commit(FakeCommitter())

    assert result.ok is False
    assert isinstance(result.error, ValidationError)


async def test_failed_commit_preserves_local_state(session):
    session.set_amount("loan_0", Decimal("1000"))
    entry = session.add_adhoc()
    session.set_adhoc_loan(entry.temp_id, "loan_2")
    session.set_bank_transfer(Decimal("50"))

    with pytest.raises(CommitError):
        await session.commit(FakeCommitter(fail=True))

    assert session.entries.get("loan_0").amount == Decimal("1000")
    assert len(session.adhoc) == 1
    assert session.bank_transfer_amount == Decimal("50")

    result = await session.commit(FakeCommitter())
    assert result.ok is True


async def test_failed_update_preserves_pending_edits(context, roster, loans):
    second = replace(
        loans[0],
        committed_payment=replace(loans[4].committed_payment, id="pay_0", loan_id="loan_0", amount=Decimal("500")),
    )
    session = CollectionSession(context)
    session.apply_roster(context, Roster(loans=[second] + loans[1:], day_record_id="dr_1"))
    session.start_edit("loan_4")
    session.set_edit_field("loan_4", "amount", Decimal("100"))
    session.set_edit_field("loan_4", "payment_method", PaymentMethod.TRANSFER)
    session.toggle_delete("loan_0")

    with pytest.raises(CommitError):
        await session.commit(FakeCommitter(fail=True))

    assert len(session.edits) == 2
    edited = session.edits.get("loan_4")
    assert edited.amount == Decimal("100")
    assert edited.payment_method == PaymentMethod.TRANSFER
    assert edited.is_deleted is False
    assert session.edits.get("loan_0").is_deleted is True
    assert session.status("loan_0") == EntryStatus.DELETED

    committer = FakeCommitter()
    result = await session.commit(committer)
    assert result.kind == "update"
    assert committer.updated[0].paid_amount == Decimal("100")


async def test_refresh_started_before_commit_is_discarded(context, roster, loans):
    session = CollectionSession(context)
    session.apply_roster(context, roster)
    slow = SlowRosterSource(roster)
    pending = asyncio.create_task(session.refresh(slow))
    await asyncio.sleep(0)

    committed_now = replace(
        loans[0],
        committed_payment=replace(loans[4].committed_payment, id="pay_0", loan_id="loan_0", amount=Decimal("500")),
    )
    after_commit = Roster(loans=[committed_now] + loans[1:], day_record_id="dr_1")
    for loan_id in ("loan_1", "loan_2", "loan_3"):
        session.toggle_no_payment(loan_id, 0)

    result = await session.commit(FakeCommitter(), FakeRosterSource(after_commit))
    assert result.ok is True
    assert set(session.committed) == {"loan_0", "loan_4"}

    slow.release.set()

    assert await pending is False
    assert set(session.committed) == {"loan_0", "loan_4"}
    assert session.status("loan_0") == EntryStatus.REGISTERED
    assert session.new_totals().total == Decimal("900")
