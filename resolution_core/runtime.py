# =============================================================================
# resolution_core/runtime.py
# Wiring of Store, Gateway, Coordinator and Caches
# =============================================================================
"""
Builds the long-lived objects the UI talks to. One TrackerRuntime exists per
process; the Streamlit page keeps it in `st.cache_resource`.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import logging

from resolution_core.assets import (
    AssetCacheManager,
    CacheStorage,
    FetchInterceptor,
    RequestsFetcher,
)
from resolution_core.config import Settings
from resolution_core.errors import CacheSeedError, ConfigurationError
from resolution_core.notion import NotionGateway
from resolution_core.offline import (
    BackgroundLoop,
    ConnectionManager,
    SyncCoordinator,
    bridge_connectivity,
    open_store,
)

logger = logging.getLogger(__name__)


@dataclass
class TrackerRuntime:
    settings: Settings
    coordinator: SyncCoordinator
    connection: ConnectionManager
    loop: BackgroundLoop
    cache_manager: AssetCacheManager
    interceptor: FetchInterceptor

    def shutdown(self) -> None:
        self.connection.stop_monitoring()
        self.loop.stop()
        self.coordinator.store.close()


def build_gateway(settings: Settings) -> Optional[NotionGateway]:
    """Gateway for the configured database, or None when credentials are missing."""
    try:
        return NotionGateway(settings)
    except ConfigurationError as e:
        logger.warning(f"Remote store disabled: {e.message}")
        return None


def create_runtime(
    settings: Settings,
    start_monitoring: bool = True,
    seed_assets: bool = True,
) -> TrackerRuntime:
    """
    Open storage, probe connectivity, load goals and prepare the asset cache.

    Storage and cache failures degrade with a warning; nothing here raises
    for an unreachable remote.
    """
    store = open_store(settings.db_path)
    connection = ConnectionManager(settings.notion_base_url)
    connection.initialize(start_monitoring=False)

    coordinator = SyncCoordinator(
        store,
        build_gateway(settings),
        online=connection.is_online,
        remote_timeout=settings.request_timeout,
    )

    loop = BackgroundLoop()
    loop.submit(coordinator.start())
    bridge_connectivity(connection, coordinator, loop.loop)
    if start_monitoring:
        connection.start_monitoring()

    fetcher = RequestsFetcher(timeout=settings.request_timeout)
    cache_manager = AssetCacheManager(
        CacheStorage(settings.cache_dir),
        fetcher,
        version=settings.cache_version,
        origin=settings.app_origin,
    )
    if seed_assets:
        try:
            loop.submit(cache_manager.install())
        except CacheSeedError as e:
            logger.warning(f"{e.message}: {', '.join(e.failed_urls)}")
    removed = cache_manager.activate()
    if removed:
        logger.info(f"Removed {len(removed)} stale cache generation(s)")

    return TrackerRuntime(
        settings=settings,
        coordinator=coordinator,
        connection=connection,
        loop=loop,
        cache_manager=cache_manager,
        interceptor=FetchInterceptor(cache_manager, fetcher),
    )
