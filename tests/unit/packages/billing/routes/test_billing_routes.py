"""
Unit tests for billing API routes.

History is produced through the reconciler so the routes read what a real
webhook delivery would have written.
"""

import pytest
from datetime import datetime, timezone

from packages.billing.models.domain.enums import EventKind
from packages.billing.models.domain.events import PaymentEvent
from packages.billing.services.subscription_reconciler import SubscriptionReconciler


async def _pay(event_id: str, kind: EventKind, amount: int):
    await SubscriptionReconciler().apply(
        PaymentEvent(
            event_id=event_id,
            event_type="invoice.paid",
            created_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
            kind=kind,
            customer_id="cus_linked",
            subscription_id="sub_linked",
            invoice_id=f"in_{event_id}",
            amount_cents=amount,
            currency="usd",
        )
    )


@pytest.mark.asyncio
class TestSubscriptionSummary:
    async def test_pro_summary(self, client, linked_account):
        response = await client.get("/api/v1/billing/accounts/acc_linked/subscription")

        assert response.status_code == 200
        data = response.json()
        assert data["account_id"] == "acc_linked"
        assert data["tier"] == "pro"
        assert data["status"] == "active"
        assert data["has_access"] is True
        assert data["daily_limit"] == -1
        assert data["daily_remaining"] == -1
        assert data["can_upgrade"] is False

    async def test_registered_summary(self, client, exhausted_account):
        response = await client.get(
            "/api/v1/billing/accounts/acc_exhausted/subscription"
        )

        data = response.json()
        assert data["tier"] == "registered"
        assert data["has_access"] is False
        assert data["daily_limit"] == 10
        assert data["daily_used"] == 10
        assert data["daily_remaining"] == 0
        assert data["can_upgrade"] is True

    async def test_unknown_account(self, client):
        response = await client.get("/api/v1/billing/accounts/acc_ghost/subscription")

        assert response.status_code == 404


@pytest.mark.asyncio
class TestHistory:
    async def test_payment_history(self, client, linked_account):
        await _pay("evt_1", EventKind.PAYMENT_SUCCEEDED, 999)
        await _pay("evt_2", EventKind.PAYMENT_FAILED, 1999)

        response = await client.get("/api/v1/billing/accounts/acc_linked/payments")

        assert response.status_code == 200
        payments = response.json()["payments"]
        assert len(payments) == 2
        assert {p["status"] for p in payments} == {"succeeded", "failed"}
        assert all(p["currency"] == "USD" for p in payments)

    async def test_payment_history_pagination(self, client, linked_account):
        for i in range(3):
            await _pay(f"evt_{i}", EventKind.PAYMENT_SUCCEEDED, 999)

        response = await client.get(
            "/api/v1/billing/accounts/acc_linked/payments", params={"limit": 2}
        )

        assert len(response.json()["payments"]) == 2

    async def test_subscription_events(self, client, linked_account):
        await _pay("evt_1", EventKind.PAYMENT_SUCCEEDED, 999)

        response = await client.get(
            "/api/v1/billing/accounts/acc_linked/subscription-events"
        )

        assert response.status_code == 200
        events = response.json()["events"]
        assert len(events) == 1
        assert events[0]["event_id"] == "evt_1"
        assert events[0]["metadata"]["invoice_id"] == "in_evt_1"

    async def test_history_for_unknown_account(self, client):
        payments = await client.get("/api/v1/billing/accounts/acc_ghost/payments")
        events = await client.get(
            "/api/v1/billing/accounts/acc_ghost/subscription-events"
        )

        assert payments.status_code == 404
        assert events.status_code == 404
