"""
Unit tests for subscription status mapping and tier derivation.
"""

import pytest

from packages.billing.models.domain.enums import (
    SubscriptionStatus,
    SubscriptionTier,
    derive_tier,
)


class TestDeriveTier:
    """Tier is a pure function of status and registration."""

    @pytest.mark.parametrize(
        "status", [SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING]
    )
    def test_paying_statuses_are_pro(self, status):
        assert derive_tier(status, is_registered=True) == SubscriptionTier.PRO
        assert derive_tier(status, is_registered=False) == SubscriptionTier.PRO

    @pytest.mark.parametrize(
        "status", [SubscriptionStatus.PAST_DUE, SubscriptionStatus.UNPAID]
    )
    def test_payment_trouble_keeps_registered(self, status):
        """Paid features are lost but the account stays registered."""
        assert derive_tier(status, is_registered=True) == SubscriptionTier.REGISTERED

    @pytest.mark.parametrize(
        "status",
        [
            SubscriptionStatus.NONE,
            SubscriptionStatus.CANCELED,
            SubscriptionStatus.INCOMPLETE,
        ],
    )
    def test_non_paying_depends_on_registration(self, status):
        assert derive_tier(status, is_registered=True) == SubscriptionTier.REGISTERED
        assert derive_tier(status, is_registered=False) == SubscriptionTier.FREE

    def test_status_tier_shortcut(self):
        assert SubscriptionStatus.ACTIVE.tier(True) == SubscriptionTier.PRO
        assert SubscriptionStatus.CANCELED.tier(False) == SubscriptionTier.FREE

    def test_only_pro_is_unbounded(self):
        assert SubscriptionTier.PRO.is_unbounded()
        assert not SubscriptionTier.REGISTERED.is_unbounded()
        assert not SubscriptionTier.FREE.is_unbounded()


class TestSubscriptionStatusFromProvider:
    """Provider strings collapse onto the closed status set."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("active", SubscriptionStatus.ACTIVE),
            ("trialing", SubscriptionStatus.TRIALING),
            ("past_due", SubscriptionStatus.PAST_DUE),
            ("unpaid", SubscriptionStatus.UNPAID),
            ("canceled", SubscriptionStatus.CANCELED),
            ("incomplete", SubscriptionStatus.INCOMPLETE),
            ("incomplete_expired", SubscriptionStatus.CANCELED),
            ("paused", SubscriptionStatus.UNPAID),
            ("cancelled", SubscriptionStatus.CANCELED),
        ],
    )
    def test_known_statuses(self, raw, expected):
        assert SubscriptionStatus.from_provider(raw) == expected

    def test_empty_is_none(self):
        assert SubscriptionStatus.from_provider(None) == SubscriptionStatus.NONE
        assert SubscriptionStatus.from_provider("") == SubscriptionStatus.NONE

    def test_unrecognised_is_incomplete(self):
        assert (
            SubscriptionStatus.from_provider("something_new")
            == SubscriptionStatus.INCOMPLETE
        )

    def test_has_access(self):
        assert SubscriptionStatus.ACTIVE.has_access()
        assert SubscriptionStatus.TRIALING.has_access()
        assert not SubscriptionStatus.PAST_DUE.has_access()
        assert not SubscriptionStatus.CANCELED.has_access()
