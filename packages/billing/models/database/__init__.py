"""Database models for billing."""

from packages.billing.models.database.applied_event import AppliedEventEntity
from packages.billing.models.database.history import (
    PaymentRecordEntity,
    SubscriptionEventEntity,
)
from packages.billing.models.database.usage import (
    UsageLedgerEntity,
    AnonymousUsageCounterEntity,
)

__all__ = [
    "AppliedEventEntity",
    "PaymentRecordEntity",
    "SubscriptionEventEntity",
    "UsageLedgerEntity",
    "AnonymousUsageCounterEntity",
]
