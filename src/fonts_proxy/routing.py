"""Upstream host selection for proxied paths."""

# Google Fonts hosts
CSS_HOST = "fonts.googleapis.com"
ASSET_HOST = "fonts.gstatic.com"
UPSTREAM_HOSTS = (CSS_HOST, ASSET_HOST)

# Legacy and v2 stylesheet endpoints
CSS_PATH_PREFIXES = ("/css", "/css2")

# Every inbound method is proxied
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def select_upstream(path: str) -> str:
    """Pick the upstream host for a request path.

    Stylesheet endpoints go to the CSS host, everything else (font files)
    to the static asset host.
    """
    if path.startswith(CSS_PATH_PREFIXES):
        return CSS_HOST
    return ASSET_HOST


def build_upstream_url(host: str, path: str, query: str = "") -> str:
    """Build the upstream URL, keeping path and query string verbatim."""
    url = f"https://{host}{path}"
    if query:
        url = f"{url}?{query}"
    return url
