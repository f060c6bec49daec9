"""
Map verified Stripe webhook payloads onto the closed event variants the
reconciler consumes.
"""

from datetime import datetime, timezone
from typing import Optional

from packages.billing.models.domain.enums import EventKind, SubscriptionStatus
from packages.billing.models.domain.events import (
    CheckoutCompletedEvent,
    ExternalSubscriptionEvent,
    ExternalSubscriptionSnapshot,
    PaymentEvent,
    SubscriptionChangedEvent,
    UnknownEvent,
)
from packages.billing.models.domain.stripe_webhooks import (
    StripeCheckoutSessionData,
    StripeInvoiceData,
    StripeSubscriptionData,
    StripeWebhookPayload,
    StripeWebhookType,
)

_SUBSCRIPTION_KINDS = {
    StripeWebhookType.SUBSCRIPTION_CREATED.value: EventKind.SUBSCRIPTION_CREATED,
    StripeWebhookType.SUBSCRIPTION_UPDATED.value: EventKind.SUBSCRIPTION_UPDATED,
    StripeWebhookType.SUBSCRIPTION_DELETED.value: EventKind.SUBSCRIPTION_DELETED,
}

_PAYMENT_KINDS = {
    StripeWebhookType.INVOICE_PAID.value: EventKind.PAYMENT_SUCCEEDED,
    StripeWebhookType.INVOICE_PAYMENT_SUCCEEDED.value: EventKind.PAYMENT_SUCCEEDED,
    StripeWebhookType.INVOICE_PAYMENT_FAILED.value: EventKind.PAYMENT_FAILED,
}


def _from_epoch(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _checkout_status(
    session: StripeCheckoutSessionData,
) -> Optional[SubscriptionStatus]:
    # Only a subscription-mode session with an attached subscription grants access
    if session.mode != "subscription" or not session.subscription:
        return None
    if session.status not in (None, "complete"):
        return SubscriptionStatus.INCOMPLETE
    if session.payment_status == "paid":
        return SubscriptionStatus.ACTIVE
    if session.payment_status == "no_payment_required":
        return SubscriptionStatus.TRIALING
    return SubscriptionStatus.INCOMPLETE


def _map_checkout(
    payload: StripeWebhookPayload, created_at: datetime
) -> CheckoutCompletedEvent:
    session = StripeCheckoutSessionData.model_validate(payload.data.object)
    return CheckoutCompletedEvent(
        event_id=payload.id,
        event_type=payload.type,
        created_at=created_at,
        session_id=session.id,
        account_id=session.client_reference_id or session.metadata.correlation_id(),
        customer_id=session.customer,
        subscription_id=session.subscription,
        status=_checkout_status(session),
        paid=session.payment_status == "paid",
        amount_cents=session.amount_total,
        currency=session.currency.upper() if session.currency else None,
        payment_intent_id=session.payment_intent,
    )


def _map_subscription(
    payload: StripeWebhookPayload, kind: EventKind, created_at: datetime
) -> SubscriptionChangedEvent:
    subscription = StripeSubscriptionData.model_validate(payload.data.object)
    status = SubscriptionStatus.from_provider(subscription.status)
    if kind == EventKind.SUBSCRIPTION_DELETED:
        status = SubscriptionStatus.CANCELED
    return SubscriptionChangedEvent(
        event_id=payload.id,
        event_type=payload.type,
        created_at=created_at,
        kind=kind,
        snapshot=ExternalSubscriptionSnapshot(
            subscription_id=subscription.id,
            customer_id=subscription.customer,
            status=status,
            current_period_end=_from_epoch(subscription.current_period_end),
            cancel_at_period_end=subscription.cancel_at_period_end,
            event_created_at=created_at,
        ),
    )


def _map_payment(
    payload: StripeWebhookPayload, kind: EventKind, created_at: datetime
) -> PaymentEvent:
    invoice = StripeInvoiceData.model_validate(payload.data.object)
    if kind == EventKind.PAYMENT_SUCCEEDED:
        amount = invoice.amount_paid
    else:
        amount = invoice.amount_due
    return PaymentEvent(
        event_id=payload.id,
        event_type=payload.type,
        created_at=created_at,
        kind=kind,
        customer_id=invoice.customer,
        subscription_id=invoice.subscription,
        invoice_id=invoice.id,
        payment_intent_id=invoice.payment_intent,
        amount_cents=amount,
        currency=invoice.currency.upper(),
        attempt_count=invoice.attempt_count,
        description=invoice.description,
    )


def to_external_event(payload: StripeWebhookPayload) -> ExternalSubscriptionEvent:
    """
    Normalise a Stripe event.

    Raises pydantic.ValidationError when a recognised event carries a
    malformed object. Unrecognised event types become UnknownEvent.
    """
    created_at = _from_epoch(payload.created)

    if payload.type == StripeWebhookType.CHECKOUT_SESSION_COMPLETED.value:
        return _map_checkout(payload, created_at)
    if payload.type in _SUBSCRIPTION_KINDS:
        return _map_subscription(payload, _SUBSCRIPTION_KINDS[payload.type], created_at)
    if payload.type in _PAYMENT_KINDS:
        return _map_payment(payload, _PAYMENT_KINDS[payload.type], created_at)

    return UnknownEvent(
        event_id=payload.id, event_type=payload.type, created_at=created_at
    )
