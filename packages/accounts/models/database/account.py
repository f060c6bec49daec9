from sqlalchemy import Column, String, DateTime, Boolean, Date, Integer, Index
from sqlalchemy.sql import func

from common.db.base import Base


class AccountEntity(Base):
    """
    Registered principal.

    Subscription fields are written only by the reconciler, usage fields only
    by the quota engine. Tier is not stored; it is derived from
    subscription_status.
    """

    __tablename__ = "accounts"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=True, index=True)
    is_registered = Column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    # Provider linkage - set once at checkout
    external_customer_id = Column(String(255), nullable=True, unique=True, index=True)
    external_subscription_id = Column(String(255), nullable=True, index=True)

    subscription_status = Column(
        String(50), nullable=False, default="none", server_default="none", index=True
    )
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    # Provider timestamp of the last applied subscription event (ordering guard)
    subscription_event_at = Column(DateTime(timezone=True), nullable=True)

    # Daily quota window
    daily_usage_count = Column(Integer, nullable=False, default=0, server_default="0")
    usage_window_start = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index(
            "idx_accounts_status_window", "subscription_status", "usage_window_start"
        ),
    )
