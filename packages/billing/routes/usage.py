"""
Usage metering endpoints.

Public: anonymous callers are identified from request metadata, registered
callers by the account id in the body.
"""

from fastapi import APIRouter, HTTPException, Request, status

from common.core.exceptions import StoreUnavailableError
from common.core.otel_axiom_exporter import get_logger
from common.providers.rate_limiter.limiter import limiter
from packages.billing.models.domain.usage import Principal
from packages.billing.models.schemas.billing import (
    UsageRequest,
    UsageStatusResponse,
    UsageIncrementResponse,
)
from packages.billing.services.sync_service import SyncService
from packages.billing.utils.client_identity import resolve_client_key

logger = get_logger(__name__)

router = APIRouter()


def _principal_for(request: Request, usage_request: UsageRequest) -> Principal:
    if usage_request.account_id:
        return Principal.registered(usage_request.account_id)
    client_host = request.client.host if request.client else None
    return Principal.anonymous(resolve_client_key(request.headers, client_host))


@router.post("/check", response_model=UsageStatusResponse)
@limiter.limit("60/minute")
async def check_usage(request: Request, usage_request: UsageRequest):
    """Report the caller's remaining daily allowance without consuming any."""
    principal = _principal_for(request, usage_request)
    try:
        result = await SyncService().get_usage_status(principal)
    except StoreUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Usage store unavailable, retry later",
        )
    return UsageStatusResponse.from_result(result)


@router.post("/increment", response_model=UsageIncrementResponse)
@limiter.limit("30/minute")
async def increment_usage(request: Request, usage_request: UsageRequest):
    """
    Consume one unit for a calculation.

    Not idempotent: call once per logical calculation. A denied call answers
    200 with success=false.
    """
    principal = _principal_for(request, usage_request)
    try:
        result = await SyncService().check_usage(
            principal,
            calculator_kind=usage_request.calculator_type,
            input_metadata=usage_request.input_data,
        )
    except StoreUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Usage store unavailable, retry later",
        )
    return UsageIncrementResponse.from_result(result)
