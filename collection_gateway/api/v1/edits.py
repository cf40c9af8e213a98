"""Endpoints editing or deleting payments already committed for the day"""

from fastapi import APIRouter, Depends, HTTPException

from collection_gateway.api.v1.schemas import EditUpdateRequest, SessionResponse
from collection_gateway.api.v1.sessions import snapshot
from collection_gateway.api.dependencies import get_session
from collection_gateway.domain.session import CollectionSession

router = APIRouter()


@router.post("/sessions/{session_id}/edits/{loan_id}", response_model=SessionResponse, status_code=201)
def start_edit(loan_id: str, session: CollectionSession = Depends(get_session)):
    session.start_edit(loan_id)
    return snapshot(session)


@router.patch("/sessions/{session_id}/edits/{loan_id}", response_model=SessionResponse)
def update_edit(
    loan_id: str,
    request_body: EditUpdateRequest,
    session: CollectionSession = Depends(get_session),
):
    for field, value in request_body.model_dump(exclude_none=True).items():
        session.set_edit_field(loan_id, field, value)
    return snapshot(session)


@router.post("/sessions/{session_id}/edits/{loan_id}/delete", response_model=SessionResponse)
def toggle_delete(loan_id: str, session: CollectionSession = Depends(get_session)):
    """Mark or unmark the committed payment for removal"""
    session.toggle_delete(loan_id)
    return snapshot(session)


@router.delete("/sessions/{session_id}/edits/{loan_id}", response_model=SessionResponse)
def cancel_edit(loan_id: str, session: CollectionSession = Depends(get_session)):
    if not session.cancel_edit(loan_id):
        raise HTTPException(status_code=404, detail="No pending edit for this loan")
    return snapshot(session)
