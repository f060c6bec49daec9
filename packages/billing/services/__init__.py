"""Billing services."""

from packages.billing.services.quota_service import QuotaService
from packages.billing.services.subscription_reconciler import SubscriptionReconciler
from packages.billing.services.sync_service import SyncService

__all__ = [
    "QuotaService",
    "SubscriptionReconciler",
    "SyncService",
]
