"""Domain models - pure Python dataclasses representing collection entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


ZERO = Decimal("0")


class PaymentMethod(str, Enum):
    CASH = "CASH"
    TRANSFER = "MONEY_TRANSFER"


class EntryStatus(str, Enum):
    """Derived per-loan display status"""

    PENDING = "pending"
    NO_PAYMENT = "no_payment"
    REGISTERED = "registered"
    EDITED = "edited"
    DELETED = "deleted"


@dataclass(frozen=True)
class SessionContext:
    """Identity of a collection session: one lead, one calendar day"""

    lead_id: str
    day: date
    route_id: Optional[str] = None


@dataclass(frozen=True)
class CommittedPayment:
    """Payment already persisted for the day (read-only snapshot)"""

    id: str
    loan_id: str
    amount: Decimal
    commission: Decimal
    payment_method: PaymentMethod
    day_record_id: Optional[str] = None
    received_at: Optional[datetime] = None


@dataclass(frozen=True)
class Loan:
    """Active loan from the lead's roster"""

    id: str
    expected_weekly_payment: Decimal
    commission_rate: Decimal
    borrower_name: str = ""
    sign_date: Optional[date] = None
    committed_payment: Optional[CommittedPayment] = None


@dataclass
class PaymentEntry:
    """Not-yet-committed payment for one roster loan"""

    loan_id: str
    amount: Decimal
    commission: Decimal
    initial_commission: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    is_no_payment: bool = False


@dataclass
class EditedPayment:
    """Pending change to a committed payment"""

    payment_id: str
    loan_id: str
    amount: Decimal
    commission: Decimal
    payment_method: PaymentMethod
    is_deleted: bool = False


@dataclass
class AdHocEntry:
    """Manually added payment row; amount is None until typed"""

    temp_id: str
    loan_id: Optional[str] = None
    amount: Optional[Decimal] = None
    commission: Decimal = ZERO
    payment_method: PaymentMethod = PaymentMethod.CASH


@dataclass(frozen=True)
class TotalsView:
    """Summary of a payment population. Never persisted."""

    cash: Decimal = ZERO
    bank: Decimal = ZERO
    count: int = 0
    no_payment_count: int = 0
    deleted_count: int = 0
    commission: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.cash + self.bank


@dataclass(frozen=True)
class Distribution:
    """Cash/bank amounts to record after reclassifying a bank transfer"""

    bank_transfer_amount: Decimal
    cash_recorded: Decimal
    bank_recorded: Decimal
    exceeds_cash: bool

    @property
    def total(self) -> Decimal:
        return self.cash_recorded + self.bank_recorded


@dataclass(frozen=True)
class GlobalCommissionResult:
    applied_count: int
    skipped_count: int


@dataclass(frozen=True)
class NewPaymentRow:
    loan_id: str
    amount: Decimal
    commission: Decimal
    payment_method: PaymentMethod


@dataclass(frozen=True)
class ReplacementPaymentRow:
    payment_id: str
    loan_id: str
    amount: Decimal
    commission: Decimal
    payment_method: PaymentMethod
    is_deleted: bool = False


@dataclass(frozen=True)
class CreateBatch:
    """Payload for creating the day record with all its payment rows"""

    lead_id: str
    agent_id: str
    payment_date: date
    expected_amount: Decimal
    paid_amount: Decimal
    cash_paid_amount: Decimal
    bank_paid_amount: Decimal
    payments: List[NewPaymentRow]
    falco_amount: Decimal = ZERO


@dataclass(frozen=True)
class UpdateBatch:
    """Full replacement of the day record's payment rows"""

    day_record_id: str
    paid_amount: Decimal
    cash_paid_amount: Decimal
    bank_paid_amount: Decimal
    payments: List[ReplacementPaymentRow]


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a commit attempt; error is set only when ok is False"""

    ok: bool
    kind: Optional[str] = None  # "create" | "update"
    saved_count: int = 0
    deleted_count: int = 0
    day_record_id: Optional[str] = None
    distribution: Optional[Distribution] = None
    commission: Decimal = ZERO
    error: Optional[Exception] = None


@dataclass(frozen=True)
class Account:
    """Route account available as a fine destination"""

    id: str
    name: str
    type: str
    amount: Decimal = ZERO


@dataclass(frozen=True)
class Roster:
    """Roster lookup result for one (lead, day)"""

    loans: List[Loan] = field(default_factory=list)
    day_record_id: Optional[str] = None
