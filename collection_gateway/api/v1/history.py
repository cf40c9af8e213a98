"""GET /v1/collections/history - Fetch a lead's committed collections"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from collection_gateway.api.v1.schemas import HistoryResponse, HistoryItem
from collection_gateway.infrastructure.database.session import get_db
from collection_gateway.infrastructure.database.repositories import CommitRepository

router = APIRouter()


@router.get("/collections/history", response_model=HistoryResponse)
def get_collection_history(
    lead_id: str = Query(..., description="Lead identifier"),
    day: Optional[date] = Query(None, description="Restrict to one collection day"),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent commits for a lead.

    Returns:
        List of creates and updates with recorded cash/bank amounts
    """
    commit_repo = CommitRepository(db)
    commits = commit_repo.get_commits_by_lead(lead_id, day=day, limit=20)

    history_items = [
        HistoryItem(
            commit_id=str(c.id),
            day=c.day,
            kind=c.kind,
            day_record_id=c.day_record_id,
            payment_count=c.payment_count,
            deleted_count=c.deleted_count,
            cash_recorded=c.cash_recorded,
            bank_recorded=c.bank_recorded,
            bank_transfer_amount=c.bank_transfer_amount,
            total=c.total,
            commission=c.commission,
            created_at=c.created_at.isoformat(),
        )
        for c in commits
    ]

    return HistoryResponse(lead_id=lead_id, commits=history_items)
