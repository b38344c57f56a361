"""Origin allow-list enforcement."""

import logging
from typing import Mapping, NamedTuple
from urllib.parse import urlparse

from fastapi import Depends, HTTPException, Request

from fonts_proxy.config import ProxySettings, get_settings

logger = logging.getLogger(__name__)


class AccessDecision(NamedTuple):
    """Outcome of an access check."""

    allowed: bool
    origin: str | None
    reason: str = ""


def request_origin(headers: Mapping[str, str]) -> str | None:
    """Get the request origin from Origin, falling back to Referer.

    Returns:
        Origin string (scheme://host[:port]) or None if not derivable
    """
    origin = headers.get("origin")
    if origin:
        return origin

    referer = headers.get("referer")
    if not referer:
        return None

    try:
        parsed = urlparse(referer)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def origin_matches(origin: str, domain: str) -> bool:
    return (
        origin == f"https://{domain}"
        or origin == f"http://{domain}"
        or origin.endswith(f".{domain}")
    )


def check_origin(settings: ProxySettings, headers: Mapping[str, str]) -> AccessDecision:
    """Decide whether a request may use the proxy.

    The gate is disabled when no allowed origins are configured.
    """
    if not settings.allowed_origins:
        return AccessDecision(allowed=True, origin=None)

    origin = request_origin(headers)
    if origin is None:
        logger.info("Access denied: no referer or origin header")
        return AccessDecision(
            allowed=False,
            origin=None,
            reason="Access denied: Direct access not allowed",
        )

    if any(origin_matches(origin, domain) for domain in settings.allowed_origins):
        logger.debug("Access granted for origin: %s", origin)
        return AccessDecision(allowed=True, origin=origin)

    logger.info("Access denied for origin: %s", origin)
    return AccessDecision(allowed=False, origin=origin, reason="Access denied")


async def require_allowed_origin(
    request: Request, settings: ProxySettings = Depends(get_settings)
) -> None:
    """FastAPI dependency rejecting requests from origins not on the allow-list."""
    decision = check_origin(settings, request.headers)
    if not decision.allowed:
        raise HTTPException(status_code=403, detail=decision.reason)
