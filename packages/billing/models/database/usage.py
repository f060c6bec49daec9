"""
Database entities for usage metering.
"""

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Date,
    Index,
    JSON,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class UsageLedgerEntity(Base):
    """
    One row per allowed check-and-consume call.

    Denied calls never write here.
    """

    __tablename__ = "usage_ledger"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    principal_kind = Column(String(20), nullable=False)  # registered, anonymous
    principal_key = Column(String(255), nullable=False)
    calculator_kind = Column(String(100), nullable=False, index=True)
    input_metadata = Column(JSON, nullable=False, server_default="{}")
    occurred_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        Index("idx_usage_ledger_principal_date", "principal_key", "occurred_at"),
    )


class AnonymousUsageCounterEntity(Base):
    """Daily counter for an anonymous principal, keyed by (key, date)."""

    __tablename__ = "anonymous_usage_counters"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    principal_key = Column(String(255), nullable=False)
    usage_date = Column(Date, nullable=False)
    usage_count = Column(Integer, nullable=False, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "principal_key", "usage_date", name="uq_anonymous_usage_key_date"
        ),
    )
