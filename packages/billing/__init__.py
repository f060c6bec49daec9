"""
Billing package - keeps accounts in sync with Stripe and meters daily usage.

This package integrates with:
- Stripe: subscription lifecycle and payment webhooks

Quota enforcement is local: QuotaService owns the daily counters and
SyncService is the entry point for routes and webhooks.
"""
