# =============================================================================
# resolution_core/errors/__init__.py
# Centralized Error Handling for the Resolution Tracker
# =============================================================================

from .exceptions import (
    ResolutionTrackerError,
    StorageUnavailable,
    RemoteError,
    RemoteUnreachable,
    RemoteRejected,
    MalformedRemoteRecord,
    CacheSeedError,
    ConfigurationError,
)

__all__ = [
    "ResolutionTrackerError",
    "StorageUnavailable",
    "RemoteError",
    "RemoteUnreachable",
    "RemoteRejected",
    "MalformedRemoteRecord",
    "CacheSeedError",
    "ConfigurationError",
]
