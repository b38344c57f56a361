"""Stylesheet transformation utilities."""

import logging

from fonts_proxy.routing import ASSET_HOST, CSS_HOST

logger = logging.getLogger(__name__)

# Hosts whose absolute URLs are redirected through the proxy
REWRITTEN_HOSTS = (ASSET_HOST, CSS_HOST)


def build_rewrite_rules(proxy_url: str) -> list[tuple[str, str]]:
    """Build the ordered (search, replacement) pairs for a proxy base URL.

    Quoted url() forms come first, then unquoted url() forms, then bare
    URLs. A replacement never contains an upstream URL, so later rules
    cannot match text produced by earlier ones.

    Args:
        proxy_url: Public base URL of the proxy, without trailing slash

    Returns:
        List of literal substitutions, applied in order
    """
    rules: list[tuple[str, str]] = []
    for host in REWRITTEN_HOSTS:
        for quote in ("'", '"'):
            rules.append((f"url({quote}https://{host}/", f"url({quote}{proxy_url}/"))
    for host in REWRITTEN_HOSTS:
        rules.append((f"url(https://{host}/", f"url({proxy_url}/"))
    for host in REWRITTEN_HOSTS:
        rules.append((f"https://{host}/", f"{proxy_url}/"))
    return rules


def rewrite_css(css: str, proxy_url: str) -> str:
    """Point every upstream font URL in a stylesheet at the proxy.

    Args:
        css: Stylesheet text from the CSS host
        proxy_url: Public base URL of the proxy (e.g. "https://fonts.example.com")

    Returns:
        Rewritten stylesheet, paths after the host left unchanged
    """
    proxy_url = proxy_url.rstrip("/")
    for search, replacement in build_rewrite_rules(proxy_url):
        css = css.replace(search, replacement)
    return css


def transform_stylesheet(content: bytes, proxy_url: str) -> bytes | None:
    """Decode, rewrite and re-encode a stylesheet body.

    Returns:
        Rewritten body, or None if the body could not be transformed
    """
    try:
        css = content.decode("utf-8")
        logger.debug("Original CSS snippet: %s...", css[:200])
        rewritten = rewrite_css(css, proxy_url)
        logger.debug("Modified CSS snippet: %s...", rewritten[:200])
        return rewritten.encode("utf-8")
    except Exception:
        logger.exception("CSS modification error, passing original body through")
        return None
