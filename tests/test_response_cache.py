import json
import time

import pytest

from fonts_proxy.response_cache import CachedResponse, ResponseCache, ttl_from_headers

KEY = "http://testserver/css2?family=Roboto"


@pytest.fixture
def response_cache(tmp_path):
    return ResponseCache(tmp_path / "fonts", default_ttl=60)


def make_response(**headers) -> CachedResponse:
    return CachedResponse(status_code=200, headers=headers, content=b"@font-face {}")


async def test_miss(response_cache):
    assert await response_cache.match(KEY) is None


async def test_put_then_match(response_cache):
    stored = make_response(**{"content-type": "text/css"})

    await response_cache.put(KEY, stored)

    assert await response_cache.match(KEY) == stored


async def test_keys_are_distinct(response_cache):
    await response_cache.put(KEY, make_response())

    assert await response_cache.match(KEY + "&display=swap") is None


async def test_delete(response_cache):
    await response_cache.put(KEY, make_response())

    assert await response_cache.delete(KEY) is True
    assert await response_cache.match(KEY) is None
    assert await response_cache.delete(KEY) is False


async def test_ttl_from_cache_control(response_cache):
    await response_cache.put(KEY, make_response(**{"cache-control": "public, max-age=31536000"}))

    meta_path = next(response_cache.cache_dir.rglob("*.meta"))
    meta = json.loads(meta_path.read_text())
    assert meta["ttl"] == 31536000
    assert meta["key"] == KEY


async def test_expired_entry_is_miss(response_cache):
    await response_cache.put(KEY, make_response(**{"cache-control": "max-age=1"}))

    meta_path = next(response_cache.cache_dir.rglob("*.meta"))
    meta = json.loads(meta_path.read_text())
    meta["cached_at"] = time.time() - 10
    meta_path.write_text(json.dumps(meta))

    assert await response_cache.match(KEY) is None


async def test_corrupted_meta_is_miss(response_cache):
    await response_cache.put(KEY, make_response())

    next(response_cache.cache_dir.rglob("*.meta")).write_text("{not json")

    assert await response_cache.match(KEY) is None


def test_ttl_from_headers_default():
    assert ttl_from_headers({"content-type": "font/woff2"}, 60) == 60
    assert ttl_from_headers({"Cache-Control": "public, max-age=120"}, 60) == 120


def test_directory_created_on_first_write(tmp_path):
    ResponseCache(tmp_path / "lazy")

    assert not (tmp_path / "lazy").exists()


async def test_clear_removes_every_entry(response_cache):
    await response_cache.put(KEY, make_response())
    await response_cache.put("http://testserver/s/roboto/v30/a.woff2", make_response())

    assert await response_cache.clear() == 2
    assert await response_cache.match(KEY) is None
    assert list(response_cache.cache_dir.rglob("*.meta")) == []


async def test_clear_empty_cache(response_cache):
    assert await response_cache.clear() == 0
