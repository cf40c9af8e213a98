"""SQLAlchemy ORM models for the commit audit log"""

import uuid
from sqlalchemy import Column, Date, DateTime, Integer, Numeric, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class CollectionCommit(Base):
    """One successful create/update of a lead's day record"""

    __tablename__ = "collection_commit"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id = Column(Text, nullable=False, index=True)
    day = Column(Date, nullable=False, index=True)
    kind = Column(Text, nullable=False)  # "create" or "update"
    day_record_id = Column(Text, nullable=True)
    payment_count = Column(Integer, nullable=False, default=0)
    deleted_count = Column(Integer, nullable=False, default=0)
    cash_recorded = Column(Numeric(14, 2), nullable=False)
    bank_recorded = Column(Numeric(14, 2), nullable=False)
    bank_transfer_amount = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False)
    commission = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
