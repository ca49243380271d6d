# =============================================================================
# resolution_core/assets/interceptor.py
# Request Routing and Caching Strategies
# =============================================================================
"""
FetchInterceptor - picks one caching strategy per outbound request.

Routing is an ordered list of (predicate, strategy) pairs; the first matching
predicate wins:

    1. API prefix                          -> network-first
    2. manifest path or static extension   -> cache-first
    3. HTML accept header                  -> network-first
    4. anything else                       -> stale-while-revalidate

Non-GET requests bypass routing and go straight to the network.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Set
import logging

from resolution_core.assets.cache_manager import (
    API_PREFIXES,
    OFFLINE_DOCUMENT,
    STATIC_EXTENSIONS,
    AssetCacheManager,
)
from resolution_core.assets.http import (
    AssetRequest,
    CachedResponse,
    offline_json_response,
    offline_response,
)
from resolution_core.errors import RemoteError

logger = logging.getLogger(__name__)

NETWORK_FIRST = "network-first"
CACHE_FIRST = "cache-first"
STALE_WHILE_REVALIDATE = "stale-while-revalidate"

OFFLINE_HTML = (
    "<!DOCTYPE html><html><head><title>Offline</title></head>"
    "<body><h1>You are offline</h1>"
    "<p>Your resolutions are saved locally and will sync when you reconnect.</p>"
    "</body></html>"
)


@dataclass(frozen=True)
class Route:
    name: str
    predicate: Callable[[AssetRequest, AssetCacheManager], bool]
    strategy: str


def is_api_request(request: AssetRequest, manager: AssetCacheManager) -> bool:
    return any(request.path.startswith(prefix) for prefix in API_PREFIXES)


def is_static_asset(request: AssetRequest, manager: AssetCacheManager) -> bool:
    return manager.is_manifest_path(request.path) or bool(STATIC_EXTENSIONS.search(request.path))


def is_document(request: AssetRequest, manager: AssetCacheManager) -> bool:
    return request.accepts_html


def matches_anything(request: AssetRequest, manager: AssetCacheManager) -> bool:
    return True


DEFAULT_ROUTES = (
    Route("api", is_api_request, NETWORK_FIRST),
    Route("static", is_static_asset, CACHE_FIRST),
    Route("document", is_document, NETWORK_FIRST),
    Route("default", matches_anything, STALE_WHILE_REVALIDATE),
)


class FetchInterceptor:
    """
    Usage:
        interceptor = FetchInterceptor(cache_manager, RequestsFetcher())
        response = await interceptor.handle(AssetRequest("/styles.css"))
    """

    def __init__(
        self,
        cache_manager: AssetCacheManager,
        fetcher,
        routes: Optional[Sequence[Route]] = None,
    ):
        self.cache_manager = cache_manager
        self.fetcher = fetcher
        self.routes: List[Route] = list(routes or DEFAULT_ROUTES)
        self._revalidations: Set[asyncio.Task] = set()
        self._strategies = {
            NETWORK_FIRST: self._network_first,
            CACHE_FIRST: self._cache_first,
            STALE_WHILE_REVALIDATE: self._stale_while_revalidate,
        }

    def route_for(self, request: AssetRequest) -> Optional[str]:
        """Strategy name for `request`, or None when it passes through."""
        if request.method.upper() != "GET":
            return None
        for route in self.routes:
            if route.predicate(request, self.cache_manager):
                return route.strategy
        return None

    async def handle(self, request: AssetRequest) -> CachedResponse:
        request = request.resolve(self.cache_manager.origin)
        strategy = self.route_for(request)
        if strategy is None:
            return await self.fetcher.fetch(request)

        logger.debug(f"{strategy}: {request.url}")
        return await self._strategies[strategy](request)

    # =========================================================================
    # STRATEGIES
    # =========================================================================

    async def _cache_first(self, request: AssetRequest) -> CachedResponse:
        cached = await self.cache_manager.match(request)
        if cached is not None:
            return cached

        try:
            response = await self.fetcher.fetch(request)
        except RemoteError:
            return offline_response(request.url)

        if response.ok:
            await self.cache_manager.store(self.cache_manager.static_name, request, response)
        return response

    async def _network_first(self, request: AssetRequest) -> CachedResponse:
        try:
            response = await self.fetcher.fetch(request)
        except RemoteError as e:
            logger.debug(f"Network failed for {request.url}, trying cache: {e}")
            return await self._fallback(request)

        if response.ok:
            await self.cache_manager.store(self.cache_manager.dynamic_name, request, response)
        return response

    async def _fallback(self, request: AssetRequest) -> CachedResponse:
        cached = await self.cache_manager.match(request)
        if cached is not None:
            return cached

        if request.accepts_html:
            offline_page = await self.cache_manager.match(self.cache_manager.request_for(OFFLINE_DOCUMENT))
            if offline_page is not None:
                return offline_page
            return offline_response(request.url, OFFLINE_HTML, "text/html")

        return offline_json_response(request.url)

    async def _revalidate(self, request: AssetRequest) -> Optional[CachedResponse]:
        try:
            response = await self.fetcher.fetch(request)
        except RemoteError as e:
            logger.debug(f"Revalidation of {request.url} failed: {e}")
            return None

        if response.ok:
            await self.cache_manager.store(self.cache_manager.dynamic_name, request, response)
        return response

    async def _stale_while_revalidate(self, request: AssetRequest) -> CachedResponse:
        cached = await self.cache_manager.match(request)
        if cached is None:
            response = await self._revalidate(request)
            return response if response is not None else offline_response(request.url)

        task = asyncio.get_running_loop().create_task(self._revalidate(request))
        self._revalidations.add(task)
        task.add_done_callback(self._revalidations.discard)
        task.add_done_callback(self._log_revalidation_failure)
        return cached

    @staticmethod
    def _log_revalidation_failure(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background revalidation failed: {task.exception()!r}")

    async def wait_idle(self) -> None:
        """Wait for background revalidations to finish."""
        while self._revalidations:
            await asyncio.gather(*list(self._revalidations), return_exceptions=True)
