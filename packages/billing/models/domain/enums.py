"""
Billing enums - strongly typed enumerations for subscription and usage states.
"""

from enum import Enum
from typing import Optional


class SubscriptionTier(str, Enum):
    """
    Feature-access level.

    Derived from subscription status, never stored.
    """

    FREE = "free"  # anonymous or never-registered principals
    REGISTERED = "registered"  # registered account without a paying subscription
    PRO = "pro"  # paying subscriber, unbounded usage

    def is_unbounded(self) -> bool:
        return self == SubscriptionTier.PRO


class SubscriptionStatus(str, Enum):
    """
    Subscription status lifecycle.

    Flow: none -> incomplete|trialing|active -> past_due|unpaid -> active|canceled
    """

    NONE = "none"  # never subscribed
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"  # payment failed, provider still retrying
    UNPAID = "unpaid"  # retries exhausted, account kept
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"  # first payment not yet confirmed

    @classmethod
    def from_provider(cls, value: Optional[str]) -> "SubscriptionStatus":
        """Map a provider status string onto the closed status set."""
        if not value:
            return cls.NONE
        aliases = {
            "incomplete_expired": cls.CANCELED,
            "paused": cls.UNPAID,
            "cancelled": cls.CANCELED,
        }
        if value in aliases:
            return aliases[value]
        try:
            return cls(value)
        except ValueError:
            return cls.INCOMPLETE

    def has_access(self) -> bool:
        """Check if this status grants paid features."""
        return self in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)

    def tier(self, is_registered: bool) -> SubscriptionTier:
        return derive_tier(self, is_registered)


def derive_tier(status: SubscriptionStatus, is_registered: bool) -> SubscriptionTier:
    """
    Single source of truth for status -> tier.

    active/trialing -> pro
    past_due/unpaid -> registered (paid features lost, account kept)
    canceled/none/incomplete -> registered if the account was registered, else free
    """
    if status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING):
        return SubscriptionTier.PRO
    if status in (SubscriptionStatus.PAST_DUE, SubscriptionStatus.UNPAID):
        return SubscriptionTier.REGISTERED
    return SubscriptionTier.REGISTERED if is_registered else SubscriptionTier.FREE


class EventKind(str, Enum):
    """Normalised external event kinds consumed by the reconciler."""

    CHECKOUT_COMPLETED = "checkout_completed"
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_DELETED = "subscription_deleted"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    UNKNOWN = "unknown"


class EventOutcome(str, Enum):
    """What applying an external event did."""

    APPLIED = "applied"
    SKIPPED_DUPLICATE = "skipped-duplicate"
    SKIPPED_STALE = "skipped-stale"
    SKIPPED_ORPHAN = "skipped-orphan"
    IGNORED = "ignored"  # unknown event kind, accepted as a no-op


class PrincipalKind(str, Enum):
    """Who is being metered."""

    REGISTERED = "registered"
    ANONYMOUS = "anonymous"


class PaymentStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
