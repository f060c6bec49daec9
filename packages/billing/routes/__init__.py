"""Billing API routes."""

from packages.billing.routes import billing, usage, webhooks

__all__ = ["billing", "usage", "webhooks"]
