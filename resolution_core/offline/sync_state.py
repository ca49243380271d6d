# =============================================================================
# resolution_core/offline/sync_state.py
# Sync State and Transition Function
# =============================================================================
"""
The observable sync state is one immutable value. Every change goes through
`transition(state, action)`, so the state machine can be tested without a
coordinator, a network or a UI.

    INIT -> LOADING -> SYNCED | OFFLINE | DEMO
    any  -> OFFLINE            (connectivity lost)
    OFFLINE -> SYNCING -> SYNCED | ERROR   (replay after reconnect)
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class SyncStatus(Enum):
    """Coarse sync status shown to the user."""
    INIT = "init"
    LOADING = "loading"
    SYNCING = "syncing"
    SYNCED = "synced"
    OFFLINE = "offline"
    ERROR = "error"
    DEMO = "demo"


STATUS_DISPLAY = {
    SyncStatus.INIT: ("Starting...", "#64748B"),
    SyncStatus.LOADING: ("Loading...", "#F59E0B"),
    SyncStatus.SYNCING: ("Syncing...", "#F59E0B"),
    SyncStatus.SYNCED: ("Synced with Notion", "#22C55E"),
    SyncStatus.OFFLINE: ("Offline mode", "#64748B"),
    SyncStatus.ERROR: ("Sync error", "#EF4444"),
    SyncStatus.DEMO: ("Demo mode", "#8B5CF6"),
}


@dataclass(frozen=True)
class SyncState:
    """Snapshot of the coordinator's observable state."""
    status: SyncStatus = SyncStatus.INIT
    online: bool = False
    pending_count: int = 0
    last_sync: Optional[datetime] = None
    last_error: Optional[str] = None


# =============================================================================
# ACTIONS
# =============================================================================

@dataclass(frozen=True)
class LoadStarted:
    pass


@dataclass(frozen=True)
class LoadSkippedOffline:
    pass


@dataclass(frozen=True)
class RemoteLoaded:
    at: datetime


@dataclass(frozen=True)
class CacheServed:
    pass


@dataclass(frozen=True)
class DemoServed:
    pass


@dataclass(frozen=True)
class ConnectivityChanged:
    online: bool


@dataclass(frozen=True)
class SyncStarted:
    pass


@dataclass(frozen=True)
class SyncSucceeded:
    at: datetime


@dataclass(frozen=True)
class SyncFailed:
    error: str


@dataclass(frozen=True)
class UpdateQueued:
    pending_count: int


@dataclass(frozen=True)
class ReplayFinished:
    failed: int
    pending_count: int
    at: datetime


@dataclass(frozen=True)
class PendingCountLoaded:
    pending_count: int


Action = Union[
    LoadStarted,
    LoadSkippedOffline,
    RemoteLoaded,
    CacheServed,
    DemoServed,
    ConnectivityChanged,
    SyncStarted,
    SyncSucceeded,
    SyncFailed,
    UpdateQueued,
    ReplayFinished,
    PendingCountLoaded,
]


def _outcome(state: SyncState, status: SyncStatus) -> SyncStatus:
    # A remote call that finishes after connectivity was lost reports offline
    return status if state.online else SyncStatus.OFFLINE


def transition(state: SyncState, action: Action) -> SyncState:
    """Return the state that follows `state` after `action`."""
    if isinstance(action, LoadStarted):
        return replace(state, status=SyncStatus.LOADING)

    if isinstance(action, LoadSkippedOffline):
        return replace(state, status=SyncStatus.OFFLINE)

    if isinstance(action, RemoteLoaded):
        return replace(state, status=_outcome(state, SyncStatus.SYNCED), last_sync=action.at, last_error=None)

    if isinstance(action, CacheServed):
        return replace(state, status=SyncStatus.OFFLINE)

    if isinstance(action, DemoServed):
        return replace(state, status=SyncStatus.DEMO)

    if isinstance(action, ConnectivityChanged):
        if not action.online:
            return replace(state, online=False, status=SyncStatus.OFFLINE)
        # Reconnect alone proves nothing; the replay or reload that follows decides
        return replace(state, online=True)

    if isinstance(action, SyncStarted):
        return replace(state, status=SyncStatus.SYNCING)

    if isinstance(action, SyncSucceeded):
        return replace(state, status=_outcome(state, SyncStatus.SYNCED), last_sync=action.at, last_error=None)

    if isinstance(action, SyncFailed):
        return replace(state, status=_outcome(state, SyncStatus.ERROR), last_error=action.error)

    if isinstance(action, UpdateQueued):
        status = state.status if state.online else SyncStatus.OFFLINE
        return replace(state, status=status, pending_count=action.pending_count)

    if isinstance(action, ReplayFinished):
        if action.failed:
            return replace(
                state,
                status=_outcome(state, SyncStatus.ERROR),
                pending_count=action.pending_count,
                last_error=f"{action.failed} queued update(s) failed to sync",
            )
        return replace(
            state,
            status=_outcome(state, SyncStatus.SYNCED),
            pending_count=action.pending_count,
            last_sync=action.at,
            last_error=None,
        )

    if isinstance(action, PendingCountLoaded):
        return replace(state, pending_count=action.pending_count)

    raise TypeError(f"Unknown sync action: {action!r}")


def status_display(state: SyncState) -> dict:
    """Status information for UI display."""
    text, color = STATUS_DISPLAY[state.status]
    return {
        "status": state.status.value,
        "text": text,
        "color": color,
        "online": state.online,
        "pending_count": state.pending_count,
        "last_sync": state.last_sync.isoformat() if state.last_sync else None,
        "error": state.last_error,
    }
