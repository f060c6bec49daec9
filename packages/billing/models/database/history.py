"""
Database entities for payment history and the subscription audit trail.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, JSON, Integer
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class PaymentRecordEntity(Base):
    __tablename__ = "payment_records"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    account_id = Column(
        String(64),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_id = Column(String(255), nullable=False, index=True)
    invoice_id = Column(String(255), nullable=True, index=True)
    payment_intent_id = Column(String(255), nullable=True)
    subscription_id = Column(String(255), nullable=True)
    amount_cents = Column(Integer, nullable=False, server_default="0")
    currency = Column(String(3), nullable=False, server_default="USD")
    status = Column(String(20), nullable=False)  # succeeded, failed
    description = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class SubscriptionEventEntity(Base):
    """
    Audit trail of applied subscription-affecting events.

    Append-only; the account row holds current state.
    """

    __tablename__ = "subscription_events"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    account_id = Column(
        String(64),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_id = Column(String(255), nullable=False)
    event_type = Column(String(100), nullable=False)
    old_status = Column(String(50), nullable=True)
    new_status = Column(String(50), nullable=True)
    subscription_id = Column(String(255), nullable=True)
    # e.g. {cancel_at_period_end, current_period_end, attempt_count}
    event_metadata = Column("metadata", JSON, nullable=False, server_default="{}")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_subscription_events_account_date", "account_id", "created_at"),
    )
