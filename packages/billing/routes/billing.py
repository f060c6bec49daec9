"""
Billing API routes.

Read-only views of an account's subscription, payments and audit trail.
"""

from fastapi import APIRouter, HTTPException, Query, status

from packages.accounts.services.account_service import AccountService
from packages.billing.models.domain.usage import Principal
from packages.billing.models.domain.enums import SubscriptionTier
from packages.billing.models.schemas.billing import (
    PaymentHistoryResponse,
    PaymentRecordResponse,
    SubscriptionEventHistoryResponse,
    SubscriptionEventResponse,
    SubscriptionSummaryResponse,
    UNBOUNDED,
)
from packages.billing.repositories.history_repository import (
    PaymentRecordRepository,
    SubscriptionEventRepository,
)
from packages.billing.services.sync_service import SyncService

router = APIRouter()


async def _get_account_or_404(account_id: str):
    account = await AccountService().get_account(account_id)
    if not account:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Account not found"
        )
    return account


@router.get(
    "/accounts/{account_id}/subscription", response_model=SubscriptionSummaryResponse
)
async def get_subscription_summary(account_id: str):
    """
    Get the account's tier, subscription status and today's usage.
    """
    account = await _get_account_or_404(account_id)
    usage = await SyncService().get_usage_status(
        Principal.registered(account.id), account.tier
    )

    return SubscriptionSummaryResponse(
        account_id=account.id,
        tier=account.tier,
        status=account.subscription_status,
        has_access=account.subscription_status.has_access(),
        current_period_end=account.current_period_end,
        cancel_at_period_end=account.cancel_at_period_end,
        daily_limit=UNBOUNDED if usage.limit is None else usage.limit,
        daily_used=usage.used,
        daily_remaining=UNBOUNDED if usage.remaining is None else usage.remaining,
        can_upgrade=account.tier != SubscriptionTier.PRO,
        next_reset_at=usage.reset_at,
    )


@router.get("/accounts/{account_id}/payments", response_model=PaymentHistoryResponse)
async def get_payment_history(
    account_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    """Payment history, newest first."""
    account = await _get_account_or_404(account_id)
    payments = await PaymentRecordRepository().get_by_account(
        account.id, limit=limit, offset=offset
    )
    return PaymentHistoryResponse(
        account_id=account.id,
        payments=[
            PaymentRecordResponse(
                id=p.id,
                invoice_id=p.invoice_id,
                payment_intent_id=p.payment_intent_id,
                subscription_id=p.subscription_id,
                amount_cents=p.amount_cents,
                currency=p.currency,
                status=p.status,
                description=p.description,
                created_at=p.created_at,
            )
            for p in payments
        ],
    )


@router.get(
    "/accounts/{account_id}/subscription-events",
    response_model=SubscriptionEventHistoryResponse,
)
async def get_subscription_events(
    account_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    """Audit trail of applied subscription events, newest first."""
    account = await _get_account_or_404(account_id)
    events = await SubscriptionEventRepository().get_by_account(
        account.id, limit=limit, offset=offset
    )
    return SubscriptionEventHistoryResponse(
        account_id=account.id,
        events=[
            SubscriptionEventResponse(
                id=e.id,
                event_id=e.event_id,
                event_type=e.event_type,
                old_status=e.old_status,
                new_status=e.new_status,
                subscription_id=e.subscription_id,
                metadata=e.event_metadata,
                created_at=e.created_at,
            )
            for e in events
        ],
    )
