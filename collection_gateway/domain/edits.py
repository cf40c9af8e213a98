"""Edit Store - pending modifications and deletions of committed payments"""

from typing import Any, Dict, Optional

from collection_gateway.domain.models import CommittedPayment, EditedPayment, PaymentMethod

EDITABLE_FIELDS = frozenset({"amount", "commission", "payment_method", "is_deleted"})


class EditStore:
    """
    Mapping of loan id to its pending EditedPayment.

    A missing key means the committed snapshot is displayed unchanged.
    """

    def __init__(self) -> None:
        self.edits: Dict[str, EditedPayment] = {}

    def __len__(self) -> int:
        return len(self.edits)

    def __contains__(self, loan_id: object) -> bool:
        return loan_id in self.edits

    def get(self, loan_id: str) -> Optional[EditedPayment]:
        return self.edits.get(loan_id)

    def start_edit(self, loan_id: str, committed: CommittedPayment) -> EditedPayment:
        edit = EditedPayment(
            payment_id=committed.id,
            loan_id=loan_id,
            amount=committed.amount,
            commission=committed.commission,
            payment_method=committed.payment_method,
            is_deleted=False,
        )
        self.edits[loan_id] = edit
        return edit

    def set_field(self, loan_id: str, field: str, value: Any) -> Optional[EditedPayment]:
        """Mutate one field of a pending edit. Returns None when the loan has no edit."""
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Field {field!r} is not editable")
        edit = self.edits.get(loan_id)
        if edit is None:
            return None
        if field == "payment_method":
            value = PaymentMethod(value)
        setattr(edit, field, value)
        return edit

    def toggle_delete(self, loan_id: str) -> Optional[EditedPayment]:
        edit = self.edits.get(loan_id)
        if edit is None:
            return None
        edit.is_deleted = not edit.is_deleted
        return edit

    def cancel_edit(self, loan_id: str) -> bool:
        return self.edits.pop(loan_id, None) is not None

    def clear(self) -> None:
        self.edits = {}
