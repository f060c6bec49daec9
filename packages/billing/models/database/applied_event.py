"""
Database entity for the idempotency ledger.
"""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class AppliedEventEntity(Base):
    """
    One row per provider event id ever processed.

    The unique constraint on event_id is what makes redelivery a no-op.
    """

    __tablename__ = "applied_events"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    event_id = Column(String(255), nullable=False, unique=True, index=True)
    event_type = Column(String(100), nullable=False, index=True)
    # applied, skipped-stale, skipped-orphan, ignored
    outcome = Column(String(50), nullable=False)
    account_id = Column(String(64), nullable=True, index=True)
    applied_at = Column(DateTime(timezone=True), server_default=func.now())
