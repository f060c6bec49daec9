from fastapi import APIRouter

from api.v1.routes import (
    health,
)
from packages.accounts.routes import accounts
from packages.billing.routes import billing, usage, webhooks

api_router = APIRouter()

# Health check (no auth required)
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Webhooks (no auth - signature verified internally)
api_router.include_router(webhooks.router, tags=["webhooks"])

# Usage metering (public - anonymous callers resolved from request metadata)
api_router.include_router(usage.router, prefix="/usage", tags=["usage"])

api_router.include_router(accounts.router, tags=["accounts"])
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
