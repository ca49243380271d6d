# =============================================================================
# resolution_core/assets/cache_manager.py
# Static/Dynamic Cache Generations and Their Lifecycle
# =============================================================================
"""
AssetCacheManager - owns the two live cache generations.

- install(): seed the static generation from the asset manifest, all or nothing
- activate(): delete every generation that is not the current static or
  dynamic one, so old deployments never accumulate
"""

from __future__ import annotations
import asyncio
import re
from typing import List, Optional, Sequence, Union
import logging

from resolution_core.assets.cache_storage import AssetCache, CacheStorage
from resolution_core.assets.http import AssetRequest, CachedResponse
from resolution_core.errors import CacheSeedError, RemoteError
from resolution_core.logging import LogContext

logger = logging.getLogger(__name__)

OFFLINE_DOCUMENT = "/offline.html"

DEFAULT_MANIFEST = (
    "/",
    "/index.html",
    "/manifest.json",
    "/styles.css",
    "/app.js",
    "/icons/icon-192.png",
    "/icons/icon-512.png",
    OFFLINE_DOCUMENT,
    "https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700;800&display=swap",
)

API_PREFIXES = ("/api/resolutions", "/api/user")

STATIC_EXTENSIONS = re.compile(r"\.(js|css|png|jpg|jpeg|svg|woff2?)$")


class AssetCacheManager:
    """
    Usage:
        manager = AssetCacheManager(CacheStorage(settings.cache_dir), RequestsFetcher())
        await manager.install()
        manager.activate()
    """

    def __init__(
        self,
        storage: CacheStorage,
        fetcher,
        version: str = "v1",
        manifest: Sequence[str] = DEFAULT_MANIFEST,
        origin: str = "http://localhost:8501",
    ):
        self.storage = storage
        self.fetcher = fetcher
        self.version = version
        self.manifest = tuple(manifest)
        self.origin = origin

    @property
    def static_name(self) -> str:
        return f"static-{self.version}"

    @property
    def dynamic_name(self) -> str:
        return f"dynamic-{self.version}"

    @property
    def static_cache(self) -> AssetCache:
        return self.storage.open(self.static_name)

    @property
    def dynamic_cache(self) -> AssetCache:
        return self.storage.open(self.dynamic_name)

    def is_manifest_path(self, path: str) -> bool:
        return path in self.manifest

    def request_for(self, url: str) -> AssetRequest:
        return AssetRequest(url).resolve(self.origin)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def _fetch_for_seed(self, request: AssetRequest) -> Optional[CachedResponse]:
        try:
            response = await self.fetcher.fetch(request)
        except RemoteError as e:
            logger.warning(f"Could not fetch {request.url}: {e}")
            return None
        if not response.ok:
            logger.warning(f"Could not fetch {request.url}: HTTP {response.status}")
            return None
        return response

    async def install(self) -> int:
        """
        Seed the static generation with every manifest entry.

        Nothing is written unless every entry fetched with a 2xx status.

        Returns:
            Number of entries cached

        Raises:
            CacheSeedError: If any manifest entry could not be fetched
        """
        requests = [self.request_for(url) for url in self.manifest]

        with LogContext(logger, f"Seeding '{self.static_name}'") as ctx:
            responses = await asyncio.gather(*(self._fetch_for_seed(r) for r in requests))
            failed = [r.url for r, resp in zip(requests, responses) if resp is None]
            if failed:
                raise CacheSeedError(
                    f"Static cache seeding failed for {len(failed)} asset(s)",
                    generation=self.static_name,
                    failed_urls=failed,
                )

            cache = self.static_cache
            await asyncio.to_thread(
                lambda: [cache.put(r, resp) for r, resp in zip(requests, responses)]
            )
            ctx.note(assets=len(requests))

        return len(requests)

    def activate(self) -> List[str]:
        """
        Delete all generations except the current static and dynamic ones.

        Returns:
            Names of the deleted generations
        """
        keep = {self.static_name, self.dynamic_name}
        stale = [name for name in self.storage.keys() if name not in keep]
        for name in stale:
            logger.info(f"Deleting old cache: {name}")
            self.storage.delete(name)
        return stale

    # =========================================================================
    # ACCESS
    # =========================================================================

    async def match(self, request: Union[AssetRequest, str]) -> Optional[CachedResponse]:
        return await asyncio.to_thread(self.storage.match, request)

    async def store(self, generation: str, request: AssetRequest, response: CachedResponse) -> None:
        cache = self.storage.open(generation)
        await asyncio.to_thread(cache.put, request, response)
