"""Billing repositories."""

from packages.billing.repositories.applied_event_repository import (
    AppliedEventRepository,
)
from packages.billing.repositories.history_repository import (
    PaymentRecordRepository,
    SubscriptionEventRepository,
)
from packages.billing.repositories.usage_repository import (
    UsageLedgerRepository,
    AnonymousUsageCounterRepository,
)

__all__ = [
    "AppliedEventRepository",
    "PaymentRecordRepository",
    "SubscriptionEventRepository",
    "UsageLedgerRepository",
    "AnonymousUsageCounterRepository",
]
