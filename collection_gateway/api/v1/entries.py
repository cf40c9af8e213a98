"""Payment entry and ad-hoc entry endpoints"""

from fastapi import APIRouter, Depends, HTTPException

from collection_gateway.api.v1.schemas import (
    AdHocUpdateRequest,
    AvailableLoansResponse,
    EntryUpdateRequest,
    GlobalCommissionRequest,
    GlobalCommissionResponse,
    NoPaymentRequest,
    NoPaymentResponse,
    SessionResponse,
    WeeklyResetRequest,
)
from collection_gateway.api.v1.sessions import loan_schema, snapshot
from collection_gateway.api.dependencies import get_session
from collection_gateway.domain.session import CollectionSession

router = APIRouter()


@router.patch("/sessions/{session_id}/entries/{loan_id}", response_model=SessionResponse)
def update_entry(
    loan_id: str,
    request_body: EntryUpdateRequest,
    session: CollectionSession = Depends(get_session),
):
    """
    Update a new payment entry.

    An amount recomputes the commission; a commission sent alongside it
    overrides the computed one.
    """
    if request_body.amount is not None:
        session.set_amount(loan_id, request_body.amount)
    if request_body.commission is not None:
        session.set_commission(loan_id, request_body.commission)
    if request_body.payment_method is not None:
        session.set_method(loan_id, request_body.payment_method)
    return snapshot(session)


@router.post("/sessions/{session_id}/entries/{loan_id}/no-payment", response_model=NoPaymentResponse)
def toggle_no_payment(
    loan_id: str,
    request_body: NoPaymentRequest,
    session: CollectionSession = Depends(get_session),
):
    """Toggle the no-payment marker; with shift_key, mark the range since the last toggled row"""
    affected = session.toggle_no_payment(
        loan_id,
        request_body.index,
        shift_key=request_body.shift_key,
        visible_loan_ids=request_body.visible_loan_ids,
    )
    return NoPaymentResponse(affected_loan_ids=affected, session=snapshot(session))


@router.post("/sessions/{session_id}/entries/weekly", response_model=SessionResponse)
def reset_to_weekly(request_body: WeeklyResetRequest, session: CollectionSession = Depends(get_session)):
    session.set_all_to_weekly(request_body.visible_loan_ids)
    return snapshot(session)


@router.post("/sessions/{session_id}/entries/clear", response_model=SessionResponse)
def clear_entries(session: CollectionSession = Depends(get_session)):
    session.clear_all()
    return snapshot(session)


@router.put("/sessions/{session_id}/global-commission", response_model=SessionResponse)
def set_global_commission(request_body: GlobalCommissionRequest, session: CollectionSession = Depends(get_session)):
    """Store the typed global commission without applying it"""
    session.set_global_commission(request_body.value)
    return snapshot(session)


@router.post("/sessions/{session_id}/commission", response_model=GlobalCommissionResponse)
def apply_global_commission(request_body: GlobalCommissionRequest, session: CollectionSession = Depends(get_session)):
    """Override commission on every collected entry that has a commission product"""
    if request_body.value is None:
        raise HTTPException(status_code=422, detail="Commission value is required")
    result = session.apply_global_commission(request_body.value)
    return GlobalCommissionResponse(
        applied_count=result.applied_count,
        skipped_count=result.skipped_count,
        session=snapshot(session),
    )


@router.post("/sessions/{session_id}/adhoc", response_model=SessionResponse, status_code=201)
def add_adhoc_entry(session: CollectionSession = Depends(get_session)):
    session.add_adhoc()
    return snapshot(session)


@router.patch("/sessions/{session_id}/adhoc/{temp_id}", response_model=SessionResponse)
def update_adhoc_entry(
    temp_id: str,
    request_body: AdHocUpdateRequest,
    session: CollectionSession = Depends(get_session),
):
    """Choose the loan first so a commission sent in the same call overrides the loan's default"""
    fields = request_body.model_fields_set
    if request_body.loan_id is not None:
        session.set_adhoc_loan(temp_id, request_body.loan_id)
    if "amount" in fields:
        session.set_adhoc_amount(temp_id, request_body.amount)
    if request_body.commission is not None:
        session.set_adhoc_commission(temp_id, request_body.commission)
    if request_body.payment_method is not None:
        session.set_adhoc_method(temp_id, request_body.payment_method)
    return snapshot(session)


@router.delete("/sessions/{session_id}/adhoc/{temp_id}", response_model=SessionResponse)
def remove_adhoc_entry(temp_id: str, session: CollectionSession = Depends(get_session)):
    if not session.remove_adhoc(temp_id):
        raise HTTPException(status_code=404, detail="Ad-hoc entry not found")
    return snapshot(session)


@router.get("/sessions/{session_id}/adhoc/{temp_id}/available-loans", response_model=AvailableLoansResponse)
def available_loans(temp_id: str, session: CollectionSession = Depends(get_session)):
    """Roster loans not yet chosen by another ad-hoc entry"""
    loans = session.available_loans_for(temp_id)
    return AvailableLoansResponse(temp_id=temp_id, loans=[loan_schema(session, loan) for loan in loans])
