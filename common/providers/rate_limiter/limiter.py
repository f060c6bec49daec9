"""Global rate limiter instance for SlowAPI."""

from fastapi import Request
from slowapi import Limiter

from common.core.config import settings
from packages.billing.utils.client_identity import resolve_client_key


def _client_key(request: Request) -> str:
    return resolve_client_key(request.headers)


# Redis-backed, shared across API pods. Keyed by the same client identity
# the anonymous quota counters use.
limiter = Limiter(
    key_func=_client_key,
    default_limits=["10/second", "300/minute"],
    storage_uri=settings.redis_connection_url,
)
