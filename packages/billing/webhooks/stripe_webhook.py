"""
Stripe webhook handler.

Verifies the signature, parses the payload into typed models, normalises it
into an ExternalSubscriptionEvent and hands it to the sync facade. Only the
HTTP mapping of failures lives here:
- bad or missing signature, malformed payload -> 400 (no retry)
- store unavailable -> 503 (Stripe redelivers; safe because of idempotency)
"""

from typing import Optional

import stripe
from fastapi import Request, HTTPException, status
from pydantic import ValidationError

from common.core.config import settings
from common.core.exceptions import AuthenticationError, StoreUnavailableError
from common.core.otel_axiom_exporter import get_logger
from packages.billing.mappers.stripe_event_mapper import to_external_event
from packages.billing.models.domain.stripe_webhooks import StripeWebhookPayload
from packages.billing.services.sync_service import SyncService

logger = get_logger(__name__)


def verify_signature(payload: bytes, sig_header: Optional[str]) -> None:
    """Raise AuthenticationError unless the payload carries a valid Stripe signature."""
    if not sig_header:
        raise AuthenticationError("Missing stripe-signature header")
    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"),
            sig_header,
            settings.stripe_webhook_secret,
            tolerance=settings.stripe_webhook_tolerance_seconds,
        )
    except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
        raise AuthenticationError(str(e)) from e


async def handle_stripe_webhook(request: Request) -> dict:
    """
    Handle incoming webhook from Stripe.

    Returns {"received": True, "outcome": ...} for every authenticated event,
    including duplicates, stale, orphan and unknown event types.
    """
    payload_bytes = await request.body()

    try:
        verify_signature(payload_bytes, request.headers.get("stripe-signature"))
    except AuthenticationError as e:
        logger.error(f"Stripe webhook signature verification failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature"
        )

    try:
        payload = StripeWebhookPayload.model_validate_json(payload_bytes)
        event = to_external_event(payload)
    except ValidationError as e:
        logger.error(
            "Invalid Stripe webhook payload", extra={"validation_errors": e.errors()}
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        )

    logger.info(
        f"Received Stripe webhook: {payload.type}",
        extra={
            "event_id": payload.id,
            "event_type": payload.type,
            "livemode": payload.livemode,
        },
    )

    try:
        outcome = await SyncService().apply_event(event)
    except StoreUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Billing store unavailable, retry later",
        )

    return {"received": True, "outcome": outcome.outcome.value}
