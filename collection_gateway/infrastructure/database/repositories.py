"""Data access layer for the commit audit log"""

from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from collection_gateway.infrastructure.database.models import CollectionCommit
from collection_gateway.domain.models import CommitResult, SessionContext


class CommitRepository:
    """Repository for committed collections"""

    def __init__(self, db: Session):
        self.db = db

    def record_commit(self, context: SessionContext, result: CommitResult) -> CollectionCommit:
        """Persist a successful commit to the audit log"""
        distribution = result.distribution
        db_commit = CollectionCommit(
            lead_id=context.lead_id,
            day=context.day,
            kind=result.kind,
            day_record_id=result.day_record_id,
            payment_count=result.saved_count,
            deleted_count=result.deleted_count,
            cash_recorded=distribution.cash_recorded,
            bank_recorded=distribution.bank_recorded,
            bank_transfer_amount=distribution.bank_transfer_amount,
            total=distribution.total,
            commission=result.commission,
        )
        self.db.add(db_commit)
        self.db.flush()  # Get ID without committing
        return db_commit

    def get_commits_by_lead(self, lead_id: str, day: Optional[date] = None, limit: int = 20) -> List[CollectionCommit]:
        """Fetch recent commits for a lead, optionally for one day"""
        query = self.db.query(CollectionCommit).filter(CollectionCommit.lead_id == lead_id)
        if day is not None:
            query = query.filter(CollectionCommit.day == day)
        return (
            query
            .order_by(CollectionCommit.created_at.desc())
            .limit(limit)
            .all()
        )
