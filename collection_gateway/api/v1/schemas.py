"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from collection_gateway.domain.models import EntryStatus, PaymentMethod

# Same precision as the audit log money columns
MONEY_DIGITS = 14
MONEY_PLACES = 2


class OpenSessionRequest(BaseModel):
    """Request body for POST /v1/sessions and PUT /v1/sessions/{id}/context"""

    lead_id: str = Field(..., min_length=1, description="Lead (field agent) identifier")
    day: date = Field(..., description="Collection day")
    route_id: Optional[str] = Field(None, description="Route of the lead, needed for fines")


class EntryUpdateRequest(BaseModel):
    """Request body for PATCH .../entries/{loan_id}; only the fields sent are applied"""

    amount: Optional[Decimal] = Field(None, ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    commission: Optional[Decimal] = Field(None, ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    payment_method: Optional[PaymentMethod] = None


class NoPaymentRequest(BaseModel):
    index: int = Field(..., ge=0, description="Row index in the visible list")
    shift_key: bool = False
    visible_loan_ids: Optional[List[str]] = Field(None, description="Ordered visible rows; defaults to the full roster")


class WeeklyResetRequest(BaseModel):
    visible_loan_ids: Optional[List[str]] = None


class GlobalCommissionRequest(BaseModel):
    value: Optional[Decimal] = Field(None, ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)


class EditUpdateRequest(BaseModel):
    """Request body for PATCH .../edits/{loan_id}"""

    amount: Optional[Decimal] = Field(None, ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    commission: Optional[Decimal] = Field(None, ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    payment_method: Optional[PaymentMethod] = None
    is_deleted: Optional[bool] = None


class AdHocUpdateRequest(BaseModel):
    """Request body for PATCH .../adhoc/{temp_id}; an explicit null amount clears it"""

    loan_id: Optional[str] = None
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    commission: Optional[Decimal] = Field(None, ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    payment_method: Optional[PaymentMethod] = None


class DistributionRequest(BaseModel):
    bank_transfer_amount: Decimal = Field(
        ...,
        ge=0,
        max_digits=MONEY_DIGITS,
        decimal_places=MONEY_PLACES,
        description="Cash deposited at the bank the same day",
    )


class FineRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    account_id: str = Field(..., min_length=1)


class TotalsSchema(BaseModel):
    cash: Decimal
    bank: Decimal
    total: Decimal
    count: int
    no_payment_count: int
    deleted_count: int
    commission: Decimal


class TotalsBundle(BaseModel):
    new: TotalsSchema
    registered: TotalsSchema
    combined: TotalsSchema
    modal: TotalsSchema


class CommittedPaymentSchema(BaseModel):
    id: str
    amount: Decimal
    commission: Decimal
    payment_method: PaymentMethod
    day_record_id: Optional[str] = None


class LoanSchema(BaseModel):
    """Roster loan with its derived display status"""

    id: str
    borrower_name: str
    sign_date: Optional[date] = None
    expected_weekly_payment: Decimal
    commission_rate: Decimal
    committed_payment: Optional[CommittedPaymentSchema] = None
    status: EntryStatus


class PaymentEntrySchema(BaseModel):
    loan_id: str
    amount: Decimal
    commission: Decimal
    initial_commission: Decimal
    payment_method: PaymentMethod
    is_no_payment: bool


class EditedPaymentSchema(BaseModel):
    payment_id: str
    loan_id: str
    amount: Decimal
    commission: Decimal
    payment_method: PaymentMethod
    is_deleted: bool


class AdHocEntrySchema(BaseModel):
    temp_id: str
    loan_id: Optional[str] = None
    amount: Optional[Decimal] = None
    commission: Decimal
    payment_method: PaymentMethod


class DistributionSchema(BaseModel):
    bank_transfer_amount: Decimal
    cash_recorded: Decimal
    bank_recorded: Decimal
    total: Decimal
    exceeds_cash: bool


class SessionResponse(BaseModel):
    """Full read model of a collection session"""

    session_id: str
    lead_id: str
    day: date
    route_id: Optional[str] = None
    day_record_id: Optional[str] = None
    global_commission: Optional[Decimal] = None
    loans: List[LoanSchema]
    entries: Dict[str, PaymentEntrySchema]
    edits: Dict[str, EditedPaymentSchema]
    adhoc_entries: List[AdHocEntrySchema]
    totals: TotalsBundle
    distribution: DistributionSchema
    exceeds_cash: bool


class GlobalCommissionResponse(BaseModel):
    applied_count: int
    skipped_count: int
    session: SessionResponse


class NoPaymentResponse(BaseModel):
    affected_loan_ids: List[str]
    session: SessionResponse


class AvailableLoansResponse(BaseModel):
    temp_id: str
    loans: List[LoanSchema]


class CommitResponse(BaseModel):
    """Response for POST .../commit"""

    kind: str
    saved_count: int
    deleted_count: int
    day_record_id: Optional[str] = None
    cash_recorded: Decimal
    bank_recorded: Decimal
    total: Decimal
    commission: Decimal
    session: SessionResponse


class AccountSchema(BaseModel):
    id: str
    name: str
    type: str
    amount: Decimal


class AccountsResponse(BaseModel):
    route_id: str
    accounts: List[AccountSchema]


class FineResponse(BaseModel):
    transaction_id: str
    amount: Decimal
    account_id: str


class HistoryItem(BaseModel):
    """Single committed collection in history"""

    commit_id: str
    day: date
    kind: str
    day_record_id: Optional[str] = None
    payment_count: int
    deleted_count: int
    cash_recorded: Decimal
    bank_recorded: Decimal
    bank_transfer_amount: Decimal
    total: Decimal
    commission: Decimal
    created_at: str


class HistoryResponse(BaseModel):
    """Response for GET /v1/collections/history"""

    lead_id: str
    commits: List[HistoryItem]
