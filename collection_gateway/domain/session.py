"""Collection session - one lead's payment collection for one day"""

import asyncio
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Sequence

from collection_gateway.domain.adhoc import AdHocEntryList
from collection_gateway.domain.distribution import calculate_distribution, validate_distribution
from collection_gateway.domain.edits import EditStore
from collection_gateway.domain.entries import PaymentEntryStore
from collection_gateway.domain.exceptions import (
    InvalidOperationError,
    RosterAPIError,
    StaleSessionError,
    UnknownReferenceError,
    ValidationError,
)
from collection_gateway.domain.models import (
    AdHocEntry,
    CommitResult,
    CommittedPayment,
    CreateBatch,
    Distribution,
    EditedPayment,
    EntryStatus,
    GlobalCommissionResult,
    Loan,
    NewPaymentRow,
    PaymentEntry,
    PaymentMethod,
    ReplacementPaymentRow,
    Roster,
    SessionContext,
    TotalsView,
    UpdateBatch,
    ZERO,
)
from collection_gateway.domain.totals import (
    calculate_new_totals,
    calculate_registered_totals,
    combine_totals,
    select_modal_totals,
)

logger = logging.getLogger(__name__)


class RosterSource(Protocol):
    async def get_roster(self, lead_id: str, day: Any) -> Roster: ...


class BatchCommitter(Protocol):
    async def create_day_record(self, batch: CreateBatch) -> str: ...

    async def update_day_record(self, batch: UpdateBatch) -> str: ...


class CollectionSession:
    """
    Owns every store for a single (lead, day).

    All mutations are synchronous and in-memory. The only awaits are the
    roster fetch and the single batch commit. Callers serving concurrent
    requests hold `lock` for the whole operation so that no mutation lands
    while a commit is in flight.
    """

    def __init__(self, context: SessionContext, weekly_reset_scope: str = "visible"):
        self.id = str(uuid.uuid4())
        self.context = context
        self.weekly_reset_scope = weekly_reset_scope
        self.loans: List[Loan] = []
        self.day_record_id: Optional[str] = None
        self.entries = PaymentEntryStore()
        self.edits = EditStore()
        self.adhoc = AdHocEntryList()
        self.bank_transfer_amount: Decimal = ZERO
        self.global_commission: Optional[Decimal] = None
        self.lock = asyncio.Lock()
        self._roster_generation = 0

    # Roster

    @property
    def committed(self) -> Dict[str, CommittedPayment]:
        return {loan.id: loan.committed_payment for loan in self.loans if loan.committed_payment is not None}

    def loan(self, loan_id: str) -> Loan:
        for loan in self.loans:
            if loan.id == loan_id:
                return loan
        raise UnknownReferenceError(f"Loan {loan_id} is not in the roster")

    def apply_roster(self, context: SessionContext, roster: Roster, generation: Optional[int] = None) -> None:
        """
        Install a fetched roster.

        `generation` is the roster generation the fetch started in. It moves on
        every context change and every successful commit, so a fetch that
        started before either is refused even when the context matches.

        Raises:
            StaleSessionError: the roster was fetched for a context the session has left,
                or before the session's latest commit
        """
        if context != self.context:
            raise StaleSessionError(f"Roster for {context.lead_id}/{context.day} arrived after context change")
        if generation is not None and generation != self._roster_generation:
            raise StaleSessionError(f"Roster for {context.lead_id}/{context.day} was fetched before the last commit")
        self.loans = list(roster.loans)
        self.day_record_id = roster.day_record_id
        self.entries.initialize(self.loans)

    async def refresh(self, roster_source: RosterSource) -> bool:
        """Fetch and apply the roster. Returns False when the response was stale and discarded."""
        context = self.context
        generation = self._roster_generation
        roster = await roster_source.get_roster(context.lead_id, context.day)
        try:
            self.apply_roster(context, roster, generation)
        except StaleSessionError as e:
            logger.debug("Discarded stale roster", extra={"session_id": self.id, "reason": str(e)})
            return False
        return True

    def change_context(self, context: SessionContext) -> None:
        self.context = context
        self._roster_generation += 1
        self.reset()

    def reset(self) -> None:
        self.loans = []
        self.day_record_id = None
        self.entries.reset()
        self.edits.clear()
        self.adhoc.clear()
        self.bank_transfer_amount = ZERO

    # Payment entries

    def _visible(self, visible_loan_ids: Optional[Sequence[str]]) -> List[Loan]:
        if visible_loan_ids is None:
            return list(self.loans)
        return [self.loan(loan_id) for loan_id in visible_loan_ids]

    def set_amount(self, loan_id: str, amount: Decimal) -> PaymentEntry:
        return self.entries.set_amount(self.loan(loan_id), amount)

    def set_commission(self, loan_id: str, commission: Decimal) -> PaymentEntry:
        return self.entries.set_commission(self.loan(loan_id), commission)

    def set_method(self, loan_id: str, method: PaymentMethod) -> PaymentEntry:
        return self.entries.set_method(self.loan(loan_id), method)

    def toggle_no_payment(
        self,
        loan_id: str,
        index: int,
        shift_key: bool = False,
        visible_loan_ids: Optional[Sequence[str]] = None,
    ) -> List[str]:
        return self.entries.toggle_no_payment(self.loan(loan_id), index, shift_key, self._visible(visible_loan_ids))

    def set_all_to_weekly(self, visible_loan_ids: Optional[Sequence[str]] = None) -> int:
        if self.weekly_reset_scope == "all":
            visible_loan_ids = None
        return self.entries.set_all_to_weekly(self._visible(visible_loan_ids))

    def clear_all(self) -> None:
        self.entries.reset()
        self.adhoc.clear()

    def set_global_commission(self, value: Optional[Decimal]) -> None:
        """Typed-in global commission; used as the placeholder commission of new ad-hoc entries"""
        self.global_commission = value

    def apply_global_commission(self, value: Decimal) -> GlobalCommissionResult:
        self.global_commission = value
        return self.entries.apply_global_commission(value)

    # Edits of committed payments

    def start_edit(self, loan_id: str) -> EditedPayment:
        committed = self.loan(loan_id).committed_payment
        if committed is None:
            raise InvalidOperationError(f"Loan {loan_id} has no committed payment for this day")
        return self.edits.start_edit(loan_id, committed)

    def set_edit_field(self, loan_id: str, field: str, value: Any) -> EditedPayment:
        edit = self.edits.set_field(loan_id, field, value)
        if edit is None:
            raise InvalidOperationError(f"Loan {loan_id} has no pending edit")
        return edit

    def toggle_delete(self, loan_id: str) -> EditedPayment:
        if loan_id not in self.edits:
            self.start_edit(loan_id)
        return self.edits.toggle_delete(loan_id)

    def cancel_edit(self, loan_id: str) -> bool:
        return self.edits.cancel_edit(loan_id)

    # Ad-hoc entries

    def _adhoc(self, temp_id: str) -> AdHocEntry:
        entry = self.adhoc.get(temp_id)
        if entry is None:
            raise UnknownReferenceError(f"Ad-hoc entry {temp_id} does not exist")
        return entry

    def add_adhoc(self) -> AdHocEntry:
        return self.adhoc.add(self.global_commission)

    def set_adhoc_loan(self, temp_id: str, loan_id: str) -> AdHocEntry:
        self._adhoc(temp_id)
        entry = self.adhoc.set_loan(temp_id, self.loan(loan_id))
        if entry is None:
            raise InvalidOperationError(f"Loan {loan_id} is already used by another ad-hoc entry")
        return entry

    def set_adhoc_amount(self, temp_id: str, amount: Optional[Decimal]) -> AdHocEntry:
        self._adhoc(temp_id)
        return self.adhoc.set_amount(temp_id, amount)

    def set_adhoc_commission(self, temp_id: str, commission: Decimal) -> AdHocEntry:
        self._adhoc(temp_id)
        return self.adhoc.set_commission(temp_id, commission)

    def set_adhoc_method(self, temp_id: str, method: PaymentMethod) -> AdHocEntry:
        self._adhoc(temp_id)
        return self.adhoc.set_method(temp_id, method)

    def remove_adhoc(self, temp_id: str) -> bool:
        return self.adhoc.remove(temp_id)

    def available_loans_for(self, temp_id: str) -> List[Loan]:
        self._adhoc(temp_id)
        return self.adhoc.available_loans_for(temp_id, self.loans)

    # Derived views

    def new_totals(self) -> TotalsView:
        return calculate_new_totals(self.entries.entries, self.adhoc, self.committed)

    def registered_totals(self) -> TotalsView:
        return calculate_registered_totals(self.committed, self.edits.edits)

    def combined_totals(self) -> TotalsView:
        return combine_totals(self.new_totals(), self.registered_totals())

    def modal_totals(self) -> TotalsView:
        return select_modal_totals(self.new_totals(), self.registered_totals(), has_edits=len(self.edits) > 0)

    def set_bank_transfer(self, amount: Decimal) -> Distribution:
        self.bank_transfer_amount = amount
        return self.distribution()

    def distribution(self) -> Distribution:
        return calculate_distribution(self.modal_totals(), self.bank_transfer_amount)

    @property
    def exceeds_cash(self) -> bool:
        return self.distribution().exceeds_cash

    def status(self, loan_id: str) -> EntryStatus:
        edit = self.edits.get(loan_id)
        if edit is not None:
            return EntryStatus.DELETED if edit.is_deleted else EntryStatus.EDITED
        if loan_id in self.committed:
            return EntryStatus.REGISTERED
        entry = self.entries.get(loan_id)
        if entry is not None and entry.is_no_payment:
            return EntryStatus.NO_PAYMENT
        return EntryStatus.PENDING

    def statuses(self) -> Dict[str, EntryStatus]:
        return {loan.id: self.status(loan.id) for loan in self.loans}

    # Commit

    def build_create_batch(self) -> CreateBatch:
        """
        Raises:
            ValidationError: nothing to save, or the transfer exceeds available cash
        """
        committed = self.committed
        rows = [
            NewPaymentRow(
                loan_id=entry.loan_id,
                amount=entry.amount,
                commission=entry.commission,
                payment_method=entry.payment_method,
            )
            for entry in self.entries.entries.values()
            if entry.loan_id not in committed and not entry.is_no_payment and entry.amount > 0
        ]
        rows.extend(
            NewPaymentRow(
                loan_id=entry.loan_id,
                amount=entry.amount,
                commission=entry.commission,
                payment_method=entry.payment_method,
            )
            for entry in self.adhoc.committable()
        )
        if not rows:
            raise ValidationError("No valid payments to save")

        totals = self.new_totals()
        distribution = calculate_distribution(totals, self.bank_transfer_amount)
        validate_distribution(distribution)

        return CreateBatch(
            lead_id=self.context.lead_id,
            agent_id=self.context.lead_id,
            payment_date=self.context.day,
            expected_amount=totals.total,
            paid_amount=totals.total,
            cash_paid_amount=distribution.cash_recorded,
            bank_paid_amount=distribution.bank_recorded,
            payments=rows,
        )

    def build_update_batch(self) -> UpdateBatch:
        """
        Full replacement list of the day's committed payments.

        Raises:
            ValidationError: the day record is unknown, or the transfer exceeds available cash
        """
        if not self.day_record_id:
            raise ValidationError("No day record found for this lead and day; refresh and retry")

        rows = []
        for loan_id, payment in self.committed.items():
            edit = self.edits.get(loan_id)
            source = edit if edit is not None else payment
            rows.append(
                ReplacementPaymentRow(
                    payment_id=payment.id,
                    loan_id=loan_id,
                    amount=source.amount,
                    commission=source.commission,
                    payment_method=source.payment_method,
                    is_deleted=edit.is_deleted if edit is not None else False,
                )
            )

        totals = self.registered_totals()
        distribution = calculate_distribution(totals, self.bank_transfer_amount)
        validate_distribution(distribution)

        return UpdateBatch(
            day_record_id=self.day_record_id,
            paid_amount=totals.total,
            cash_paid_amount=distribution.cash_recorded,
            bank_paid_amount=distribution.bank_recorded,
            payments=rows,
        )

    async def commit(
        self,
        committer: BatchCommitter,
        roster_source: Optional[RosterSource] = None,
    ) -> CommitResult:
        """
        Persist the session in one atomic create or update call.

        Validation failures come back as a failed CommitResult with no call
        issued. CommitError from the committer propagates and leaves every
        store untouched so the user can retry.
        """
        context = self.context
        is_update = len(self.edits) > 0
        kind = "update" if is_update else "create"

        try:
            batch = self.build_update_batch() if is_update else self.build_create_batch()
        except ValidationError as e:
            return CommitResult(ok=False, kind=kind, error=e)

        distribution = self.distribution()
        totals = self.modal_totals()
        if is_update:
            day_record_id = await committer.update_day_record(batch)
        else:
            day_record_id = await committer.create_day_record(batch)

        deleted = sum(1 for row in batch.payments if getattr(row, "is_deleted", False))
        result = CommitResult(
            ok=True,
            kind=kind,
            saved_count=len(batch.payments) - deleted,
            deleted_count=deleted,
            day_record_id=day_record_id,
            distribution=distribution,
            commission=totals.commission,
        )

        if self.context == context:
            self._roster_generation += 1
            self.entries.reset()
            self.adhoc.clear()
            self.edits.clear()
            self.bank_transfer_amount = ZERO

            if roster_source is not None:
                try:
                    await self.refresh(roster_source)
                except RosterAPIError as e:
                    logger.warning(
                        "Roster refresh after commit failed",
                        extra={"session_id": self.id, "error": str(e)},
                    )

        return result
