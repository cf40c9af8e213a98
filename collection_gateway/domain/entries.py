"""Payment Entry Store - per-loan state for payments not yet committed"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from collection_gateway.domain.commission import calculate_commission, default_commission
from collection_gateway.domain.models import GlobalCommissionResult, Loan, PaymentEntry, PaymentMethod, ZERO
from collection_gateway.domain.selection import select_range


def _fresh_entry(loan: Loan) -> PaymentEntry:
    commission = default_commission(loan)
    return PaymentEntry(
        loan_id=loan.id,
        amount=loan.expected_weekly_payment,
        commission=commission,
        initial_commission=commission,
    )


class PaymentEntryStore:
    """Mapping of loan id to its pending PaymentEntry, plus the range-selection pointer"""

    def __init__(self) -> None:
        self.entries: Dict[str, PaymentEntry] = {}
        self.last_index: Optional[int] = None

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, loan_id: str) -> Optional[PaymentEntry]:
        return self.entries.get(loan_id)

    def initialize(self, loans: Iterable[Loan]) -> bool:
        """
        Populate one default entry per loan.

        Does nothing while the store holds entries, so a background roster
        refresh never overwrites in-progress work.
        """
        if self.entries:
            return False
        for loan in loans:
            self.entries[loan.id] = _fresh_entry(loan)
        return bool(self.entries)

    def _ensure(self, loan: Loan) -> PaymentEntry:
        entry = self.entries.get(loan.id)
        if entry is None:
            entry = _fresh_entry(loan)
            self.entries[loan.id] = entry
        return entry

    def set_amount(self, loan: Loan, amount: Decimal) -> PaymentEntry:
        entry = self._ensure(loan)
        entry.amount = amount
        entry.commission = calculate_commission(amount, loan.expected_weekly_payment, loan.commission_rate)
        entry.is_no_payment = False
        return entry

    def set_commission(self, loan: Loan, commission: Decimal) -> PaymentEntry:
        entry = self._ensure(loan)
        entry.commission = commission
        return entry

    def set_method(self, loan: Loan, method: PaymentMethod) -> PaymentEntry:
        entry = self._ensure(loan)
        entry.payment_method = method
        return entry

    def _mark_no_payment(self, loan: Loan) -> None:
        entry = self._ensure(loan)
        entry.amount = ZERO
        entry.commission = ZERO
        entry.is_no_payment = True

    def _toggle_single(self, loan: Loan) -> None:
        entry = self._ensure(loan)
        if entry.is_no_payment:
            entry.amount = loan.expected_weekly_payment
            entry.commission = default_commission(loan)
            entry.is_no_payment = False
        else:
            self._mark_no_payment(loan)

    def toggle_no_payment(
        self,
        loan: Loan,
        index: int,
        shift_key: bool,
        visible_loans: Sequence[Loan],
    ) -> List[str]:
        """
        Toggle the no-payment marker on one row, or mark a whole range.

        With shift_key and a previous index, every row of visible_loans between
        the previous index and `index` (inclusive) is marked as no payment.
        Otherwise only `loan` is toggled. Returns the affected loan ids.
        """
        if shift_key and self.last_index is not None:
            by_id = {visible.id: visible for visible in visible_loans}
            affected = select_range([visible.id for visible in visible_loans], self.last_index, index)
            for loan_id in affected:
                self._mark_no_payment(by_id[loan_id])
        else:
            self._toggle_single(loan)
            affected = [loan.id]

        self.last_index = index
        return affected

    def set_all_to_weekly(self, loans: Iterable[Loan]) -> int:
        count = 0
        for loan in loans:
            self.entries[loan.id] = _fresh_entry(loan)
            count += 1
        return count

    def apply_global_commission(self, value: Decimal) -> GlobalCommissionResult:
        """
        Override commission on every collected entry that carries a commission product.

        Entries whose initial commission was 0 are never given one.
        """
        applied = skipped = 0
        for entry in self.entries.values():
            has_amount = not entry.is_no_payment and entry.amount > 0
            if not has_amount:
                continue
            if entry.initial_commission > 0:
                entry.commission = value
                applied += 1
            else:
                skipped += 1
        return GlobalCommissionResult(applied_count=applied, skipped_count=skipped)

    def reset(self) -> None:
        self.entries = {}
        self.last_index = None
