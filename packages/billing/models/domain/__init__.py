"""Domain models for billing."""

from packages.billing.models.domain.enums import (
    SubscriptionStatus,
    SubscriptionTier,
    EventKind,
    EventOutcome,
    PrincipalKind,
    PaymentStatus,
    derive_tier,
)
from packages.billing.models.domain.events import (
    ExternalSubscriptionSnapshot,
    ExternalSubscriptionEvent,
    CheckoutCompletedEvent,
    SubscriptionChangedEvent,
    PaymentEvent,
    UnknownEvent,
    ApplyOutcome,
    AppliedEvent,
)
from packages.billing.models.domain.usage import (
    Principal,
    QuotaPolicy,
    QuotaResult,
    UsageLedgerEntry,
)
from packages.billing.models.domain.history import (
    PaymentRecord,
    SubscriptionEventRecord,
)

__all__ = [
    # Enums
    "SubscriptionStatus",
    "SubscriptionTier",
    "EventKind",
    "EventOutcome",
    "PrincipalKind",
    "PaymentStatus",
    "derive_tier",
    # Events
    "ExternalSubscriptionSnapshot",
    "ExternalSubscriptionEvent",
    "CheckoutCompletedEvent",
    "SubscriptionChangedEvent",
    "PaymentEvent",
    "UnknownEvent",
    "ApplyOutcome",
    "AppliedEvent",
    # Usage
    "Principal",
    "QuotaPolicy",
    "QuotaResult",
    "UsageLedgerEntry",
    # History
    "PaymentRecord",
    "SubscriptionEventRecord",
]
