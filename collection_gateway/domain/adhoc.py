"""Ad-hoc Entry List - manually added payments, one loan per entry"""

import uuid
from decimal import Decimal
from typing import List, Optional, Sequence

from collection_gateway.domain.commission import default_commission
from collection_gateway.domain.models import AdHocEntry, Loan, PaymentMethod, ZERO


class AdHocEntryList:
    """Ordered list of ad-hoc entries, newest first"""

    def __init__(self) -> None:
        self.entries: List[AdHocEntry] = []

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def get(self, temp_id: str) -> Optional[AdHocEntry]:
        return next((entry for entry in self.entries if entry.temp_id == temp_id), None)

    def add(self, default_commission_value: Optional[Decimal] = None) -> AdHocEntry:
        entry = AdHocEntry(
            temp_id=f"temp-{uuid.uuid4().hex}",
            commission=default_commission_value if default_commission_value is not None else ZERO,
        )
        self.entries.insert(0, entry)
        return entry

    def taken_loan_ids(self, exclude_temp_id: Optional[str] = None) -> set[str]:
        return {
            entry.loan_id
            for entry in self.entries
            if entry.loan_id and entry.temp_id != exclude_temp_id
        }

    def available_loans_for(self, temp_id: str, loans: Sequence[Loan]) -> List[Loan]:
        """Roster loans not already selected by any other ad-hoc entry"""
        taken = self.taken_loan_ids(exclude_temp_id=temp_id)
        return [loan for loan in loans if loan.id not in taken]

    def set_loan(self, temp_id: str, loan: Loan) -> Optional[AdHocEntry]:
        """
        Bind an entry to a loan. Returns None when the entry does not exist or
        the loan is already held by another entry.

        The commission always becomes the loan's own default, so a loan with
        no commission product drops the typed placeholder to 0.
        """
        entry = self.get(temp_id)
        if entry is None or loan.id in self.taken_loan_ids(exclude_temp_id=temp_id):
            return None
        entry.loan_id = loan.id
        entry.commission = default_commission(loan)
        if entry.amount is None:
            entry.amount = loan.expected_weekly_payment
        return entry

    def set_amount(self, temp_id: str, amount: Optional[Decimal]) -> Optional[AdHocEntry]:
        entry = self.get(temp_id)
        if entry is not None:
            entry.amount = amount
        return entry

    def set_commission(self, temp_id: str, commission: Decimal) -> Optional[AdHocEntry]:
        entry = self.get(temp_id)
        if entry is not None:
            entry.commission = commission
        return entry

    def set_method(self, temp_id: str, method: PaymentMethod) -> Optional[AdHocEntry]:
        entry = self.get(temp_id)
        if entry is not None:
            entry.payment_method = method
        return entry

    def remove(self, temp_id: str) -> bool:
        before = len(self.entries)
        self.entries = [entry for entry in self.entries if entry.temp_id != temp_id]
        return len(self.entries) < before

    def committable(self) -> List[AdHocEntry]:
        """Entries with a selected loan and a positive amount"""
        return [
            entry
            for entry in self.entries
            if entry.loan_id and entry.amount is not None and entry.amount > 0
        ]

    def clear(self) -> None:
        self.entries = []
