# =============================================================================
# resolution_core/offline/connection_manager.py
# Connectivity Detection and Signals
# =============================================================================
"""
ConnectionManager - decides whether Notion is reachable and tells listeners
when that answer flips.

Each check produces a new immutable ConnectionState. Listeners are called
only on an online/offline transition, from whichever thread ran the check
(the monitor thread, or the UI thread for manual checks).
"""

from __future__ import annotations
import socket
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional
from urllib.parse import urlparse
import logging

logger = logging.getLogger(__name__)

Listener = Callable[["ConnectionState"], None]


class ConnectionStatus(Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ConnectionState:
    """Result of the latest reachability check."""
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    checked_at: Optional[datetime] = None
    last_online: Optional[datetime] = None
    consecutive_failures: int = 0
    forced_offline: bool = False
    error_message: Optional[str] = None

    @property
    def is_online(self) -> bool:
        return self.status is ConnectionStatus.ONLINE


def tcp_probe(url: str, timeout: float) -> bool:
    """True if a TCP connection to the URL's host and port succeeds."""
    parsed = urlparse(url)
    if not parsed.hostname:
        return False
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    with socket.create_connection((parsed.hostname, port), timeout=timeout):
        return True


class ConnectionManager:
    """
    Usage:
        manager = ConnectionManager("https://api.notion.com/v1")
        manager.register_callback(lambda state: print(state.status))
        manager.initialize()
    """

    POLL_WHILE_ONLINE = 30
    POLL_WHILE_OFFLINE = 10
    PROBE_TIMEOUT = 5

    def __init__(self, remote_url: str, probe: Optional[Callable[[], bool]] = None):
        """
        Args:
            remote_url: Base URL of the remote store
            probe: Reachability check; defaults to a TCP connect to the remote host
        """
        self.remote_url = remote_url
        self._probe = probe or self._check_remote
        self._state = ConnectionState()
        self._listeners: List[Listener] = []
        self._check_lock = threading.Lock()
        self._halt = threading.Event()
        self._worker: Optional[threading.Thread] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def is_online(self) -> bool:
        return self._state.is_online

    @property
    def monitoring(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def initialize(self, start_monitoring: bool = True) -> None:
        """First check, then optionally keep polling in the background."""
        self.check_connection()
        if start_monitoring:
            self.start_monitoring()
        logger.info(f"Connectivity to {self.remote_url}: {self.status.value}")

    # =========================================================================
    # CHECKS
    # =========================================================================

    def _check_remote(self) -> bool:
        try:
            return tcp_probe(self.remote_url, self.PROBE_TIMEOUT)
        except OSError as e:
            logger.debug(f"Probe of {self.remote_url} failed: {e}")
            return False

    def _run_probe(self) -> tuple:
        if self._state.forced_offline:
            return False, "Working offline"
        try:
            return bool(self._probe()), None
        except Exception as e:
            return False, str(e)

    def check_connection(self) -> ConnectionState:
        """Probe once; listeners hear about it only if the status flipped."""
        with self._check_lock:
            previous = self._state
            reachable, error = self._run_probe()
            now = datetime.now()

            if reachable:
                current = replace(
                    previous,
                    status=ConnectionStatus.ONLINE,
                    checked_at=now,
                    last_online=now,
                    consecutive_failures=0,
                    error_message=None,
                )
            else:
                current = replace(
                    previous,
                    status=ConnectionStatus.OFFLINE,
                    checked_at=now,
                    consecutive_failures=previous.consecutive_failures + 1,
                    error_message=error or previous.error_message,
                )
            self._state = current

        if current.status is not previous.status:
            logger.info(f"Connectivity {previous.status.value} -> {current.status.value}")
            self._notify_callbacks()
        return current

    def force_offline(self, forced: bool = True) -> ConnectionState:
        """User toggle: treat the remote as unreachable until cleared."""
        with self._check_lock:
            self._state = replace(self._state, forced_offline=forced)
        logger.info("Working offline" if forced else "Offline override cleared")
        return self.check_connection()

    # =========================================================================
    # BACKGROUND POLLING
    # =========================================================================

    def start_monitoring(self) -> None:
        if self.monitoring:
            return
        self._halt.clear()
        self._worker = threading.Thread(target=self._poll, name="ConnectivityMonitor", daemon=True)
        self._worker.start()

    def stop_monitoring(self) -> None:
        self._halt.set()
        if self._worker is not None:
            self._worker.join(timeout=5)

    def _poll(self) -> None:
        while True:
            delay = self.POLL_WHILE_ONLINE if self.is_online else self.POLL_WHILE_OFFLINE
            if self._halt.wait(timeout=delay):
                return
            try:
                self.check_connection()
            except Exception as e:
                logger.error(f"Connectivity check crashed: {e}")

    # =========================================================================
    # LISTENERS
    # =========================================================================

    def register_callback(self, callback: Listener) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unregister_callback(self, callback: Listener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify_callbacks(self) -> None:
        state = self._state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Connectivity listener failed: {e}")
