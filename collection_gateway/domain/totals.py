"""Totals Aggregator - summary views recomputed from current session state"""

from typing import Iterable, Mapping

from collection_gateway.domain.models import (
    AdHocEntry,
    CommittedPayment,
    EditedPayment,
    PaymentEntry,
    PaymentMethod,
    TotalsView,
    ZERO,
)


def calculate_new_totals(
    entries: Mapping[str, PaymentEntry],
    adhoc_entries: Iterable[AdHocEntry],
    committed: Mapping[str, CommittedPayment],
) -> TotalsView:
    """
    Totals over payments not yet committed.

    Covers store entries of loans without a committed payment, plus ad-hoc
    entries that have a loan and a positive amount.
    """
    cash = bank = commission = ZERO
    count = no_payment = 0

    for loan_id, entry in entries.items():
        if loan_id in committed:
            continue
        if entry.is_no_payment:
            no_payment += 1
            continue
        if entry.amount > 0:
            count += 1
            commission += entry.commission
            if entry.payment_method == PaymentMethod.CASH:
                cash += entry.amount
            else:
                bank += entry.amount

    for adhoc in adhoc_entries:
        if not adhoc.loan_id or adhoc.amount is None or adhoc.amount <= 0:
            continue
        count += 1
        commission += adhoc.commission
        if adhoc.payment_method == PaymentMethod.CASH:
            cash += adhoc.amount
        else:
            bank += adhoc.amount

    return TotalsView(cash=cash, bank=bank, count=count, no_payment_count=no_payment, commission=commission)


def calculate_registered_totals(
    committed: Mapping[str, CommittedPayment],
    edits: Mapping[str, EditedPayment],
) -> TotalsView:
    """Totals over committed payments, with pending edits applied and deletions excluded"""
    cash = bank = commission = ZERO
    count = deleted = 0

    for loan_id, payment in committed.items():
        edit = edits.get(loan_id)
        if edit is not None and edit.is_deleted:
            deleted += 1
            continue

        source = edit if edit is not None else payment
        if source.amount > 0:
            count += 1
            commission += source.commission
            if source.payment_method == PaymentMethod.CASH:
                cash += source.amount
            else:
                bank += source.amount

    return TotalsView(cash=cash, bank=bank, count=count, deleted_count=deleted, commission=commission)


def combine_totals(new: TotalsView, registered: TotalsView) -> TotalsView:
    return TotalsView(
        cash=new.cash + registered.cash,
        bank=new.bank + registered.bank,
        count=new.count + registered.count,
        no_payment_count=new.no_payment_count,
        deleted_count=registered.deleted_count,
        commission=new.commission + registered.commission,
    )


def select_modal_totals(new: TotalsView, registered: TotalsView, has_edits: bool) -> TotalsView:
    """A single commit handles either the edited committed payments or the new ones, never both"""
    return registered if has_edits else new
