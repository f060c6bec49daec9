"""
Stable pseudo-identity for unauthenticated callers.

Heuristic only: it makes the anonymous daily quota hard to defeat by
reloading, it does not identify anyone. Never raises; always returns a key.
"""

import ipaddress
from datetime import datetime, timezone
from typing import Mapping, Optional

from common.core.config import settings

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _usable_address(candidate: str) -> Optional[str]:
    """Return the address if it is a routable public IP, else None."""
    candidate = candidate.strip().strip('"')
    if not candidate or candidate.lower() in ("unknown", "localhost"):
        return None

    # Bracketed IPv6 with port, or IPv4 with port
    if candidate.startswith("["):
        candidate = candidate[1 : candidate.find("]")] if "]" in candidate else ""
    elif candidate.count(":") == 1:
        candidate = candidate.split(":", 1)[0]

    try:
        address = ipaddress.ip_address(candidate)
    except ValueError:
        return None

    mapped = getattr(address, "ipv4_mapped", None)
    if mapped is not None:
        address = mapped

    if not address.is_global:
        return None
    return str(address)


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def fingerprint_hash(value: str) -> str:
    """djb2 over the string, wrapped to signed 32-bit, rendered base36."""
    h = 5381
    for ch in value:
        h = ((h << 5) + h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return _to_base36(abs(h))


def resolve_client_key(
    headers: Mapping[str, str],
    client_host: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Derive the principal key for an anonymous caller.

    Walks the configured address headers in priority order and returns the
    left-most public address found. Without one, falls back to a browser
    fingerprint combined with the current rotation bucket (hourly by
    default), so the key expires on its own.
    """
    lowered = {k.lower(): v for k, v in headers.items()}

    for header in settings.trusted_proxy_headers:
        value = lowered.get(header.lower())
        if not value:
            continue
        for candidate in value.split(","):
            address = _usable_address(candidate)
            if address:
                return address

    if client_host:
        address = _usable_address(client_host)
        if address:
            return address

    user_agent = lowered.get("user-agent") or "unknown"
    accept_language = lowered.get("accept-language") or "en"
    accept_encoding = lowered.get("accept-encoding") or "none"
    fingerprint = fingerprint_hash(f"{user_agent}|{accept_language}|{accept_encoding}")

    now = now or datetime.now(timezone.utc)
    bucket = int(now.timestamp()) // max(settings.anonymous_key_rotation_seconds, 1)
    return f"local-{fingerprint}-{bucket}"
