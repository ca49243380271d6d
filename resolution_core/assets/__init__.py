# =============================================================================
# resolution_core/assets/__init__.py
# Offline Asset Caching
# =============================================================================

from .http import AssetRequest, AssetResponse, CachedResponse, RequestsFetcher
from .cache_storage import AssetCache, CacheStorage
from .cache_manager import API_PREFIXES, DEFAULT_MANIFEST, OFFLINE_DOCUMENT, AssetCacheManager
from .interceptor import (
    CACHE_FIRST,
    DEFAULT_ROUTES,
    NETWORK_FIRST,
    STALE_WHILE_REVALIDATE,
    FetchInterceptor,
    Route,
)

__all__ = [
    "AssetRequest",
    "AssetResponse",
    "CachedResponse",
    "RequestsFetcher",
    "AssetCache",
    "CacheStorage",
    "API_PREFIXES",
    "DEFAULT_MANIFEST",
    "OFFLINE_DOCUMENT",
    "AssetCacheManager",
    "CACHE_FIRST",
    "DEFAULT_ROUTES",
    "NETWORK_FIRST",
    "STALE_WHILE_REVALIDATE",
    "FetchInterceptor",
    "Route",
]
