"""
Single entry point for external callers (webhook receiver, usage routes).

Holds no state of its own. Translates durable-store failures into
StoreUnavailableError so callers can answer with a retryable status.
"""

import functools
from typing import Optional

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from common.core.exceptions import StoreUnavailableError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.accounts.repositories.account_repository import AccountRepository
from packages.billing.models.domain.enums import PrincipalKind, SubscriptionTier
from packages.billing.models.domain.events import (
    ApplyOutcome,
    ExternalSubscriptionEvent,
)
from packages.billing.models.domain.usage import Principal, QuotaResult
from packages.billing.services.quota_service import QuotaService
from packages.billing.services.subscription_reconciler import SubscriptionReconciler

logger = get_logger(__name__)


def _store_guard(func):
    """Wrap store connectivity failures as StoreUnavailableError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (OperationalError, InterfaceError, ConnectionError) as e:
            logger.error(f"Store unavailable in {func.__name__}: {e}")
            raise StoreUnavailableError(str(e)) from e
        except DBAPIError as e:
            if not e.connection_invalidated:
                raise
            logger.error(f"Store connection lost in {func.__name__}: {e}")
            raise StoreUnavailableError(str(e)) from e

    return wrapper


class SyncService:
    """Facade over the subscription reconciler and the quota engine."""

    def __init__(
        self,
        reconciler: Optional[SubscriptionReconciler] = None,
        quota_service: Optional[QuotaService] = None,
    ):
        self.reconciler = reconciler or SubscriptionReconciler()
        self.quota_service = quota_service or QuotaService()
        self.account_repo = AccountRepository()

    @trace_span
    @_store_guard
    async def apply_event(self, event: ExternalSubscriptionEvent) -> ApplyOutcome:
        return await self.reconciler.apply(event)

    async def _resolve_tier(
        self, principal: Principal, tier: Optional[SubscriptionTier]
    ) -> SubscriptionTier:
        if tier is not None:
            return tier
        if principal.kind == PrincipalKind.ANONYMOUS:
            return self.quota_service.policy.lowest_tier()
        account = await self.account_repo.get(principal.key)
        # Unknown accounts are reported as exhausted by the quota engine
        return account.tier if account else SubscriptionTier.FREE

    @trace_span
    @_store_guard
    async def check_usage(
        self,
        principal: Principal,
        tier: Optional[SubscriptionTier] = None,
        calculator_kind: str = "default",
        input_metadata: Optional[dict] = None,
    ) -> QuotaResult:
        """Check-and-consume one unit for the principal."""
        tier = await self._resolve_tier(principal, tier)
        return await self.quota_service.check_and_consume(
            principal, tier, calculator_kind, input_metadata
        )

    @trace_span
    @_store_guard
    async def get_usage_status(
        self, principal: Principal, tier: Optional[SubscriptionTier] = None
    ) -> QuotaResult:
        """Read-only view of the principal's allowance."""
        tier = await self._resolve_tier(principal, tier)
        return await self.quota_service.get_usage_status(principal, tier)
