# =============================================================================
# resolution_core/offline/__init__.py
# Offline-First Persistence and Synchronization
# =============================================================================

from .local_store import LocalStore, MemoryStore, SQLiteStore, open_store
from .sync_state import SyncState, SyncStatus, status_display, transition
from .connection_manager import ConnectionManager, ConnectionState, ConnectionStatus
from .sync_coordinator import BACKGROUND_SYNC_TAG, SyncCoordinator
from .background import BackgroundLoop, bridge_connectivity

__all__ = [
    "LocalStore",
    "MemoryStore",
    "SQLiteStore",
    "open_store",
    "SyncState",
    "SyncStatus",
    "status_display",
    "transition",
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "BACKGROUND_SYNC_TAG",
    "SyncCoordinator",
    "BackgroundLoop",
    "bridge_connectivity",
]
