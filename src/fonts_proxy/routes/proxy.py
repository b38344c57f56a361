"""Proxy routes for Google Fonts stylesheets and font files."""

import asyncio
import logging
from typing import AsyncIterator

import httpx
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse

from fonts_proxy.access import require_allowed_origin
from fonts_proxy.config import ProxySettings, get_settings
from fonts_proxy.css_rewrite import transform_stylesheet
from fonts_proxy.response_cache import CachedResponse, ResponseCache, cache_key_for
from fonts_proxy.routing import ALL_METHODS, CSS_HOST, build_upstream_url, select_upstream

router = APIRouter()
logger = logging.getLogger(__name__)

# Entries evicted by a purge without an explicit url
COMMON_CACHE_PATHS = ("/css", "/css2", "/s/")

# Hop-by-hop headers (RFC 2616) are never forwarded in either direction
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# httpx sets these itself and decodes compressed bodies
EXCLUDED_REQUEST_HEADERS = HOP_BY_HOP_HEADERS | {"host", "content-length", "accept-encoding"}
EXCLUDED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {"content-encoding", "content-length"}


def get_response_cache(request: Request) -> ResponseCache:
    return request.app.state.response_cache


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Client for upstream requests. Redirects are followed transparently."""
    async with httpx.AsyncClient(follow_redirects=True) as client:
        yield client


def prepare_headers(request: Request) -> dict[str, str]:
    """Copy inbound headers for the upstream request."""
    return {
        name: value
        for name, value in request.headers.items()
        if name.lower() not in EXCLUDED_REQUEST_HEADERS
    }


def build_proxy_response(
    upstream: httpx.Response,
    target_host: str,
    settings: ProxySettings,
    public_host: str,
) -> CachedResponse:
    """Build the client-facing response from a successful upstream response.

    Stylesheets get their upstream URLs rewritten to the proxy; font files
    pass through unchanged. Caching and CORS headers always override the
    upstream values.

    Args:
        upstream: Successful upstream response
        target_host: Upstream host the request was routed to
        settings: Proxy settings
        public_host: Host the client used to reach the proxy

    Returns:
        Response data, with lower-cased header names
    """
    headers = {
        name.lower(): value
        for name, value in upstream.headers.items()
        if name.lower() not in EXCLUDED_RESPONSE_HEADERS
    }
    content = upstream.content

    if target_host == CSS_HOST:
        proxy_domain = settings.proxy_domain or public_host
        logger.debug("Using proxy domain: %s", proxy_domain)
        rewritten = transform_stylesheet(content, f"https://{proxy_domain}")
        if rewritten is not None:
            content = rewritten
            headers["content-type"] = "text/css"

    headers["cache-control"] = settings.cache_control
    headers["access-control-allow-origin"] = "*"

    return CachedResponse(
        status_code=upstream.status_code,
        headers=headers,
        content=content,
    )


async def store_response(cache: ResponseCache, key: str, response: CachedResponse) -> None:
    """Background task: populate the cache, never failing the request."""
    try:
        await cache.put(key, response)
    except OSError:
        logger.exception("Failed to cache response for %s", key)
        return
    logger.debug("Cached %s", key)


# ----- Cache Management Endpoints -----


@router.api_route("/purge-cache", methods=ALL_METHODS)
async def purge_cache(
    request: Request,
    key: str | None = None,
    url: str | None = None,
    settings: ProxySettings = Depends(get_settings),
    cache: ResponseCache = Depends(get_response_cache),
) -> PlainTextResponse:
    """Evict a single cache entry, or the common stylesheet and font entries.

    Args:
        key: Purge secret, required when CACHE_PURGE_KEY is set
        url: Exact cache entry to evict

    Returns:
        Plain-text confirmation
    """
    if settings.purge_key and key != settings.purge_key:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if url:
        await cache.delete(url)
        logger.info("Cache cleared for: %s", url)
        return PlainTextResponse(f"Cache cleared for: {url}")

    origin = str(request.base_url).rstrip("/")
    targets = [f"{origin}{path}" for path in COMMON_CACHE_PATHS]
    results = await asyncio.gather(
        *(cache.delete(target) for target in targets),
        return_exceptions=True,
    )
    for target, result in zip(targets, results):
        if isinstance(result, Exception):
            logger.warning("Failed to purge %s: %s", target, result)
    logger.info("Common cache entries cleared for %s", origin)
    return PlainTextResponse("Common cache entries cleared")


# ----- Font Proxy Endpoint -----


@router.api_route(
    "/{path:path}",
    methods=ALL_METHODS,
    dependencies=[Depends(require_allowed_origin)],
)
async def proxy_fonts(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: ProxySettings = Depends(get_settings),
    cache: ResponseCache = Depends(get_response_cache),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    """Proxy a request to Google Fonts with caching.

    Returns:
        Upstream response with X-Cache header
    """
    path = request.url.path
    query = request.url.query
    logger.info("Proxying request to: %s%s", path, f"?{query}" if query else "")

    # Check cache first
    cache_key = cache_key_for(request)
    cacheable = request.method == "GET"
    if cacheable:
        cached = await cache.match(cache_key)
        if cached:
            logger.info("Cache hit: %s", cache_key)
            headers = {name.lower(): value for name, value in cached.headers.items()}
            headers["access-control-allow-origin"] = "*"
            headers["x-cache"] = "HIT"
            return Response(
                content=cached.content,
                status_code=cached.status_code,
                headers=headers,
            )

    target_host = select_upstream(path)
    target_url = build_upstream_url(target_host, path, query)

    try:
        upstream = await client.request(
            request.method,
            target_url,
            headers=prepare_headers(request),
            content=await request.body(),
        )
    except httpx.RequestError as e:
        logger.error("Fetch error for %s: %s", target_url, e)
        raise HTTPException(status_code=500, detail=f"Proxy error: {e}")

    if not upstream.is_success:
        logger.warning("Upstream %s returned %s", target_url, upstream.status_code)
        raise HTTPException(
            status_code=upstream.status_code,
            detail=f"Proxy failed: upstream returned {upstream.status_code}",
        )

    proxied = build_proxy_response(upstream, target_host, settings, request.url.netloc)

    if cacheable:
        background_tasks.add_task(store_response, cache, cache_key, proxied)

    headers = {**proxied.headers, "x-cache": "MISS"}
    if request.method == "HEAD" and "content-length" in upstream.headers:
        # Upstream length as reported, not recomputed from the empty body
        headers["content-length"] = upstream.headers["content-length"]

    logger.info("Fetched %s from %s", path, target_host)
    return Response(
        content=proxied.content,
        status_code=proxied.status_code,
        headers=headers,
    )
