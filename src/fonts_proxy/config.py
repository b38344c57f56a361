"""Proxy settings loaded from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path

# Paths
BASE_DIR = Path(__file__).resolve().parent.parent.parent
DEFAULT_CACHE_DIR = BASE_DIR / "cache" / "fonts"

DEFAULT_INFO_URL = "https://github.com/carolyn-sun/google-fonts-proxy-worker"

# One year
DEFAULT_CACHE_MAX_AGE = 31536000


def parse_domain_list(value: str) -> tuple[str, ...]:
    """Split a comma-separated domain list, dropping blanks."""
    return tuple(d.strip() for d in value.split(",") if d.strip())


@dataclass(frozen=True)
class ProxySettings:
    """Immutable settings for handling one request.

    Attributes:
        proxy_domain: Public domain substituted into rewritten CSS
            (None means use the request's own host)
        purge_key: Shared secret required by the purge endpoint
        allowed_origins: Domains admitted by the access gate (empty disables it)
        cache_dir: Root directory of the response cache
        cache_max_age: max-age advertised to clients, in seconds
        info_url: Redirect target for the root path
    """

    proxy_domain: str | None = None
    purge_key: str | None = None
    allowed_origins: tuple[str, ...] = ()
    cache_dir: Path = DEFAULT_CACHE_DIR
    cache_max_age: int = DEFAULT_CACHE_MAX_AGE
    info_url: str = DEFAULT_INFO_URL

    @classmethod
    def from_env(cls) -> "ProxySettings":
        return cls(
            proxy_domain=os.getenv("PROXY_DOMAIN") or None,
            purge_key=os.getenv("CACHE_PURGE_KEY") or None,
            allowed_origins=parse_domain_list(os.getenv("ALLOWED_ORIGINS", "")),
            cache_dir=Path(os.getenv("CACHE_DIR", str(DEFAULT_CACHE_DIR))),
            cache_max_age=int(os.getenv("CACHE_MAX_AGE", str(DEFAULT_CACHE_MAX_AGE))),
            info_url=os.getenv("INFO_URL", DEFAULT_INFO_URL),
        )

    @property
    def cache_control(self) -> str:
        return f"public, max-age={self.cache_max_age}"


def get_settings() -> ProxySettings:
    """FastAPI dependency: settings are rebuilt from the environment per request."""
    return ProxySettings.from_env()
