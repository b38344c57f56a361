"""Shared fixtures: in-memory cache double and a mocked upstream."""

import asyncio
from typing import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from fonts_proxy.config import ProxySettings, get_settings
from fonts_proxy.main import create_app
from fonts_proxy.response_cache import CachedResponse
from fonts_proxy.routes.proxy import get_http_client, get_response_cache

SAMPLE_CSS = """/* latin */
@font-face {
  font-family: 'Roboto';
  font-style: normal;
  font-weight: 400;
  src: url(https://fonts.gstatic.com/s/roboto/v30/KFOmCnqEu92Fr1Mu4mxK.woff2) format('woff2');
}
"""


class InMemoryCache:
    """Dict-backed cache double with optional delete latency."""

    def __init__(self, delete_delay: float = 0.0, fail_puts: bool = False):
        self.entries: dict[str, CachedResponse] = {}
        self.deleted: list[str] = []
        self.delete_delay = delete_delay
        self.fail_puts = fail_puts
        self.in_flight = 0
        self.max_in_flight = 0

    async def match(self, key: str) -> CachedResponse | None:
        return self.entries.get(key)

    async def put(self, key: str, response: CachedResponse) -> None:
        if self.fail_puts:
            raise OSError(28, "No space left on device")
        self.entries[key] = response

    async def delete(self, key: str) -> bool:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delete_delay:
                await asyncio.sleep(self.delete_delay)
            self.deleted.append(key)
            return self.entries.pop(key, None) is not None
        finally:
            self.in_flight -= 1


class FakeUpstream:
    """Records upstream requests and answers them with a configurable handler."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = self.default_handler

    @staticmethod
    def default_handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "fonts.googleapis.com":
            return httpx.Response(
                200,
                headers={"Content-Type": "text/css; charset=utf-8"},
                content=SAMPLE_CSS.encode("utf-8"),
            )
        return httpx.Response(
            200,
            headers={"Content-Type": "font/woff2"},
            content=b"wOF2\x00\x01fontdata",
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def make_cache():
    """Factory for cache doubles with custom latency or failures."""
    return InMemoryCache


@pytest.fixture
def cache(make_cache):
    return make_cache()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def make_client(tmp_path, cache, upstream):
    """Build a TestClient with the given settings, cache double and mocked upstream."""
    clients = []

    def _make(settings: ProxySettings | None = None, cache_double=None) -> TestClient:
        settings = settings or ProxySettings(cache_dir=tmp_path)
        app = create_app(settings)

        async def _http_client():
            async with httpx.AsyncClient(
                transport=httpx.MockTransport(upstream), follow_redirects=True
            ) as client:
                yield client

        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_response_cache] = lambda: cache_double or cache
        app.dependency_overrides[get_http_client] = _http_client

        client = TestClient(app)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def client(make_client):
    return make_client()
