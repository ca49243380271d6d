# =============================================================================
# tests/unit/test_interceptor.py
# Unit Tests for Request Routing and Caching Strategies
# =============================================================================

import json
import logging
import pytest
from unittest.mock import AsyncMock

from resolution_core.assets import (
    CACHE_FIRST,
    NETWORK_FIRST,
    STALE_WHILE_REVALIDATE,
    AssetRequest,
    CachedResponse,
    FetchInterceptor,
)

ORIGIN = "http://app.test"
HTML = {"Accept": "text/html,application/xhtml+xml"}


@pytest.fixture
def interceptor(cache_manager, fake_fetcher):
    return FetchInterceptor(cache_manager, fake_fetcher)


def req(path, method="GET", headers=None):
    return AssetRequest(ORIGIN + path, method=method, headers=headers or {})


class TestRouting:
    """First matching route wins"""

    @pytest.mark.parametrize("path, headers, expected", [
        ("/api/resolutions", {}, NETWORK_FIRST),
        ("/api/user/42", {}, NETWORK_FIRST),
        ("/styles.css", {}, CACHE_FIRST),
        ("/icons/icon-512.png", {}, CACHE_FIRST),
        ("/fonts/inter.woff2", {}, CACHE_FIRST),
        ("/", {}, CACHE_FIRST),
        ("/dashboard", HTML, NETWORK_FIRST),
        ("/data/summary", {}, STALE_WHILE_REVALIDATE),
    ])
    def test_route_for(self, interceptor, path, headers, expected):
        assert interceptor.route_for(req(path, headers=headers)) == expected

    @pytest.mark.parametrize("path", ["/api/resolutions/export.js", "/api/user/avatar.png", "/api/resolutions.css"])
    def test_api_prefix_beats_static_extension(self, interceptor, path):
        assert interceptor.route_for(req(path)) == NETWORK_FIRST

    @pytest.mark.parametrize("method", ["POST", "PATCH", "DELETE"])
    def test_non_get_passes_through(self, interceptor, method):
        assert interceptor.route_for(req("/api/resolutions", method=method)) is None

    async def test_non_get_is_never_cached(self, interceptor, fake_fetcher, cache_storage):
        fake_fetcher.serve("/api/resolutions", '{"id": "page-1"}')

        response = await interceptor.handle(req("/api/resolutions", method="PATCH"))

        assert response.status == 200
        assert all(cache_storage.open(n).keys() == [] for n in cache_storage.keys())

    async def test_relative_urls_resolve_against_origin(self, interceptor, fake_fetcher):
        fake_fetcher.serve("/styles.css", "body{}")

        response = await interceptor.handle(AssetRequest("/styles.css"))

        assert response.body == b"body{}"
        assert fake_fetcher.requests == [ORIGIN + "/styles.css"]


class TestCacheFirst:

    async def test_serves_cache_without_network(self, interceptor, cache_manager, fake_fetcher):
        cache_manager.static_cache.put(ORIGIN + "/app.js", CachedResponse(200, b"cached"))

        response = await interceptor.handle(req("/app.js"))

        assert response.body == b"cached"
        assert fake_fetcher.requests == []

    async def test_miss_fetches_and_stores_in_static(self, interceptor, cache_manager, fake_fetcher):
        fake_fetcher.serve("/logo.svg", "<svg/>")

        await interceptor.handle(req("/logo.svg"))

        assert cache_manager.static_cache.match(ORIGIN + "/logo.svg").body == b"<svg/>"

    async def test_error_status_is_returned_not_stored(self, interceptor, cache_manager):
        response = await interceptor.handle(req("/missing.png"))

        assert response.status == 404
        assert cache_manager.static_cache.keys() == []

    async def test_cache_write_failure_during_revalidation_is_logged(
        self, interceptor, cache_manager, fake_fetcher, monkeypatch, caplog
    ):
        cache_manager.dynamic_cache.put(ORIGIN + "/data/summary", CachedResponse(200, b"old"))
        fake_fetcher.serve("/data/summary", "new")
        monkeypatch.setattr(cache_manager, "store", AsyncMock(side_effect=OSError("disk full")))

        with caplog.at_level(logging.ERROR, logger="resolution_core.assets.interceptor"):
            response = await interceptor.handle(req("/data/summary"))
            await interceptor.wait_idle()

        assert response.body == b"old"
        assert "Background revalidation failed" in caplog.text
        assert "disk full" in caplog.text

    async def test_offline_miss_is_503(self, interceptor, fake_fetcher):
        fake_fetcher.offline = True

        response = await interceptor.handle(req("/app.js"))

        assert response.status == 503
        assert response.text == "Offline"


class TestNetworkFirst:

    async def test_success_stores_in_dynamic(self, interceptor, cache_manager, fake_fetcher):
        fake_fetcher.serve("/api/resolutions", "[]", content_type="application/json")

        response = await interceptor.handle(req("/api/resolutions"))

        assert response.ok
        assert cache_manager.dynamic_cache.match(ORIGIN + "/api/resolutions").body == b"[]"

    async def test_offline_falls_back_to_cache(self, interceptor, cache_manager, fake_fetcher):
        cache_manager.dynamic_cache.put(ORIGIN + "/api/resolutions", CachedResponse(200, b"[1]"))
        fake_fetcher.offline = True

        response = await interceptor.handle(req("/api/resolutions"))

        assert response.body == b"[1]"

    async def test_offline_api_miss_is_json_503(self, interceptor, fake_fetcher):
        fake_fetcher.offline = True

        response = await interceptor.handle(req("/api/user"))

        assert response.status == 503
        assert response.content_type == "application/json"
        assert json.loads(response.body) == {"error": "Offline"}

    async def test_offline_document_served_for_html(self, interceptor, cache_manager, fake_fetcher):
        cache_manager.static_cache.put(ORIGIN + "/offline.html", CachedResponse(200, b"<h1>offline</h1>"))
        fake_fetcher.offline = True

        response = await interceptor.handle(req("/dashboard", headers=HTML))

        assert response.body == b"<h1>offline</h1>"

    async def test_missing_offline_document_is_html_503(self, interceptor, fake_fetcher):
        fake_fetcher.offline = True

        response = await interceptor.handle(req("/dashboard", headers=HTML))

        assert response.status == 503
        assert response.content_type == "text/html"

    async def test_error_status_is_not_stored(self, interceptor, cache_manager, fake_fetcher):
        fake_fetcher.serve("/api/resolutions", "boom", status=500)

        response = await interceptor.handle(req("/api/resolutions"))

        assert response.status == 500
        assert cache_manager.dynamic_cache.keys() == []


class TestStaleWhileRevalidate:

    async def test_returns_stale_and_refreshes(self, interceptor, cache_manager, fake_fetcher):
        cache_manager.dynamic_cache.put(ORIGIN + "/data/summary", CachedResponse(200, b"old"))
        fake_fetcher.serve("/data/summary", "new")

        response = await interceptor.handle(req("/data/summary"))
        await interceptor.wait_idle()

        assert response.body == b"old"
        assert cache_manager.dynamic_cache.match(ORIGIN + "/data/summary").body == b"new"

    async def test_miss_waits_for_network(self, interceptor, cache_manager, fake_fetcher):
        fake_fetcher.serve("/data/summary", "fresh")

        response = await interceptor.handle(req("/data/summary"))

        assert response.body == b"fresh"
        assert cache_manager.dynamic_cache.match(ORIGIN + "/data/summary") is not None

    async def test_failed_revalidation_keeps_stale(self, interceptor, cache_manager, fake_fetcher):
        cache_manager.dynamic_cache.put(ORIGIN + "/data/summary", CachedResponse(200, b"old"))
        fake_fetcher.offline = True

        response = await interceptor.handle(req("/data/summary"))
        await interceptor.wait_idle()

        assert response.body == b"old"
        assert cache_manager.dynamic_cache.match(ORIGIN + "/data/summary").body == b"old"

    async def test_offline_miss_is_503(self, interceptor, fake_fetcher):
        fake_fetcher.offline = True

        response = await interceptor.handle(req("/data/summary"))

        assert response.status == 503
