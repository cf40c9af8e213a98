"""Unit tests for the totals aggregator"""

from decimal import Decimal
from collection_gateway.domain.adhoc import AdHocEntryList
from collection_gateway.domain.edits import EditStore
from collection_gateway.domain.entries import PaymentEntryStore
from collection_gateway.domain.models import PaymentMethod, TotalsView
from collection_gateway.domain.totals import (
    calculate_new_totals,
    calculate_registered_totals,
    combine_totals,
    select_modal_totals,
)


def _committed(loans):
    return {loan.id: loan.committed_payment for loan in loans if loan.committed_payment}


def _assert_balanced(view: TotalsView):
    assert view.total == view.cash + view.bank


def test_new_totals_exclude_committed_loans(loans):
    store = PaymentEntryStore()
    store.initialize(loans)
    store.set_method(loans[1], PaymentMethod.TRANSFER)
    store.toggle_no_payment(loans[2], 2, False, loans)

    totals = calculate_new_totals(store.entries, [], _committed(loans))

    # loan_0 500 cash, loan_1 300 bank, loan_3 400 cash; loan_4 is committed
    assert totals.cash == Decimal("900")
    assert totals.bank == Decimal("300")
    assert totals.total == Decimal("1200")
    assert totals.count == 3
    assert totals.no_payment_count == 1
    assert totals.commission == Decimal("35")
    _assert_balanced(totals)


def test_new_totals_include_complete_adhoc_entries(loans):
    adhoc = AdHocEntryList()
    ready = adhoc.add()
    adhoc.set_loan(ready.temp_id, loans[0])
    adhoc.set_method(ready.temp_id, PaymentMethod.TRANSFER)
    adhoc.add()  # no loan chosen yet

    totals = calculate_new_totals({}, adhoc, _committed(loans))

    assert totals.bank == Decimal("500")
    assert totals.count == 1
    assert totals.commission == Decimal("20")


def test_registered_totals_apply_edits_and_skip_deletions(loans):
    committed = _committed(loans)
    edits = EditStore()

    before = calculate_registered_totals(committed, edits.edits)
    assert (before.cash, before.count, before.commission) == (Decimal("250"), 1, Decimal("12"))

    edits.start_edit("loan_4", committed["loan_4"])
    edits.set_field("loan_4", "payment_method", PaymentMethod.TRANSFER)
    edited = calculate_registered_totals(committed, edits.edits)
    assert (edited.cash, edited.bank) == (0, Decimal("250"))

    edits.toggle_delete("loan_4")
    deleted = calculate_registered_totals(committed, edits.edits)
    assert deleted.total == 0
    assert deleted.count == 0
    assert deleted.deleted_count == 1
    _assert_balanced(deleted)


def test_combined_totals_sum_both_populations():
    new = TotalsView(cash=Decimal("100"), bank=Decimal("50"), count=2, no_payment_count=3, commission=Decimal("5"))
    registered = TotalsView(cash=Decimal("40"), bank=Decimal("10"), count=1, deleted_count=2, commission=Decimal("1"))

    combined = combine_totals(new, registered)

    assert combined.cash == Decimal("140")
    assert combined.bank == Decimal("60")
    assert combined.total == Decimal("200")
    assert combined.count == 3
    assert combined.no_payment_count == 3
    assert combined.deleted_count == 2
    assert combined.commission == Decimal("6")


def test_modal_totals_pick_exactly_one_population():
    new = TotalsView(cash=Decimal("1"))
    registered = TotalsView(cash=Decimal("2"))

    assert select_modal_totals(new, registered, has_edits=True) is registered
    assert select_modal_totals(new, registered, has_edits=False) is new
