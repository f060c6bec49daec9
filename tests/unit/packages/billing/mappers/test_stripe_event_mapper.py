"""
Unit tests for mapping Stripe webhook payloads onto external events.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from packages.billing.mappers.stripe_event_mapper import to_external_event
from packages.billing.models.domain.enums import EventKind, SubscriptionStatus
from packages.billing.models.domain.events import (
    CheckoutCompletedEvent,
    PaymentEvent,
    SubscriptionChangedEvent,
    UnknownEvent,
)
from packages.billing.models.domain.stripe_webhooks import StripeWebhookPayload

CREATED = 1717200000  # 2024-06-01T00:00:00Z


def _payload(event_type: str, obj: dict, event_id: str = "evt_1"):
    return StripeWebhookPayload.model_validate(
        {
            "id": event_id,
            "type": event_type,
            "created": CREATED,
            "data": {"object": obj},
        }
    )


class TestCheckoutMapping:
    def test_paid_checkout_is_active(self):
        event = to_external_event(
            _payload(
                "checkout.session.completed",
                {
                    "id": "cs_1",
                    "mode": "subscription",
                    "client_reference_id": "acc_1",
                    "customer": "cus_1",
                    "subscription": "sub_1",
                    "payment_status": "paid",
                    "status": "complete",
                    "amount_total": 999,
                    "currency": "usd",
                    "payment_intent": "pi_1",
                },
            )
        )

        assert isinstance(event, CheckoutCompletedEvent)
        assert event.kind == EventKind.CHECKOUT_COMPLETED
        assert event.account_id == "acc_1"
        assert event.customer_id == "cus_1"
        assert event.subscription_id == "sub_1"
        assert event.status == SubscriptionStatus.ACTIVE
        assert event.paid is True
        assert event.amount_cents == 999
        assert event.currency == "USD"
        assert event.created_at == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_unpaid_checkout_is_incomplete(self):
        event = to_external_event(
            _payload(
                "checkout.session.completed",
                {
                    "id": "cs_1",
                    "mode": "subscription",
                    "subscription": "sub_1",
                    "payment_status": "unpaid",
                    "status": "complete",
                },
            )
        )

        assert event.status == SubscriptionStatus.INCOMPLETE
        assert event.paid is False

    def test_correlation_id_from_metadata(self):
        event = to_external_event(
            _payload(
                "checkout.session.completed",
                {
                    "id": "cs_1",
                    "payment_status": "paid",
                    "metadata": {"userId": "acc_legacy"},
                },
            )
        )

        assert event.account_id == "acc_legacy"

    def test_trial_without_payment_is_trialing(self):
        event = to_external_event(
            _payload(
                "checkout.session.completed",
                {
                    "id": "cs_1",
                    "mode": "subscription",
                    "subscription": "sub_1",
                    "payment_status": "no_payment_required",
                },
            )
        )

        assert event.status == SubscriptionStatus.TRIALING
        assert event.paid is False

    def test_one_time_payment_starts_no_subscription(self):
        event = to_external_event(
            _payload(
                "checkout.session.completed",
                {
                    "id": "cs_1",
                    "mode": "payment",
                    "client_reference_id": "acc_1",
                    "subscription": None,
                    "payment_status": "paid",
                    "status": "complete",
                    "amount_total": 500,
                    "currency": "usd",
                },
            )
        )

        assert event.status is None
        assert event.subscription_id is None
        assert event.paid is True
        assert event.amount_cents == 500

    def test_subscription_mode_without_subscription_id(self):
        event = to_external_event(
            _payload(
                "checkout.session.completed",
                {"id": "cs_1", "mode": "subscription", "payment_status": "paid"},
            )
        )

        assert event.status is None

    def test_missing_mode_starts_no_subscription(self):
        event = to_external_event(
            _payload(
                "checkout.session.completed",
                {"id": "cs_1", "subscription": "sub_1", "payment_status": "paid"},
            )
        )

        assert event.status is None


class TestSubscriptionMapping:
    def test_updated_snapshot(self):
        event = to_external_event(
            _payload(
                "customer.subscription.updated",
                {
                    "id": "sub_1",
                    "customer": "cus_1",
                    "status": "past_due",
                    "current_period_end": CREATED + 86400,
                    "cancel_at_period_end": True,
                },
            )
        )

        assert isinstance(event, SubscriptionChangedEvent)
        assert event.kind == EventKind.SUBSCRIPTION_UPDATED
        assert event.snapshot.status == SubscriptionStatus.PAST_DUE
        assert event.snapshot.cancel_at_period_end is True
        assert event.snapshot.current_period_end == datetime(
            2024, 6, 2, tzinfo=timezone.utc
        )
        assert event.snapshot.event_created_at == event.created_at

    def test_deleted_is_always_canceled(self):
        event = to_external_event(
            _payload(
                "customer.subscription.deleted",
                {"id": "sub_1", "customer": "cus_1", "status": "active"},
            )
        )

        assert event.kind == EventKind.SUBSCRIPTION_DELETED
        assert event.snapshot.status == SubscriptionStatus.CANCELED

    def test_missing_customer_is_rejected(self):
        with pytest.raises(ValidationError):
            to_external_event(
                _payload(
                    "customer.subscription.updated", {"id": "sub_1", "status": "active"}
                )
            )


class TestPaymentMapping:
    def test_invoice_paid(self):
        event = to_external_event(
            _payload(
                "invoice.paid",
                {
                    "id": "in_1",
                    "customer": "cus_1",
                    "subscription": "sub_1",
                    "amount_paid": 999,
                    "amount_due": 999,
                    "currency": "eur",
                },
            )
        )

        assert isinstance(event, PaymentEvent)
        assert event.kind == EventKind.PAYMENT_SUCCEEDED
        assert event.amount_cents == 999
        assert event.currency == "EUR"

    def test_invoice_failed_uses_amount_due(self):
        event = to_external_event(
            _payload(
                "invoice.payment_failed",
                {
                    "id": "in_1",
                    "customer": "cus_1",
                    "amount_paid": 0,
                    "amount_due": 1500,
                    "attempt_count": 2,
                },
            )
        )

        assert event.kind == EventKind.PAYMENT_FAILED
        assert event.amount_cents == 1500
        assert event.attempt_count == 2


class TestUnknownMapping:
    def test_unrecognised_type_is_unknown(self):
        event = to_external_event(
            _payload("customer.created", {"id": "cus_1"}, event_id="evt_9")
        )

        assert isinstance(event, UnknownEvent)
        assert event.kind == EventKind.UNKNOWN
        assert event.event_id == "evt_9"
        assert event.event_type == "customer.created"
