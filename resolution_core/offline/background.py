# =============================================================================
# resolution_core/offline/background.py
# Event Loop Host for Synchronous Callers
# =============================================================================
"""
Streamlit reruns scripts synchronously, while the coordinator is async. The
BackgroundLoop keeps one event loop alive in a daemon thread so both the UI
and the connectivity monitor can hand it coroutines.
"""

from __future__ import annotations
import asyncio
import threading
from typing import Any, Callable, Coroutine, Optional
import logging

from resolution_core.offline.connection_manager import ConnectionManager, ConnectionState
from resolution_core.offline.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class BackgroundLoop:
    """An asyncio loop running in a daemon thread."""

    def __init__(self, name: str = "sync-loop"):
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def submit(self, coro: Coroutine, timeout: Optional[float] = None) -> Any:
        """Run `coro` on the loop and block until it returns."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout)

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        """Run a plain callback on the loop thread without waiting."""
        self._loop.call_soon_threadsafe(callback, *args)

    def stop(self) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)
        self._loop.close()
        logger.info("Background sync loop stopped")


def bridge_connectivity(
    manager: ConnectionManager,
    coordinator: SyncCoordinator,
    loop: asyncio.AbstractEventLoop,
) -> None:
    """Forward connectivity signals from the monitor thread to the coordinator."""

    def on_change(state: ConnectionState) -> None:
        logger.info(f"Connectivity {'restored' if state.is_online else 'lost'}")
        loop.call_soon_threadsafe(coordinator.on_connectivity_change, state.is_online)

    manager.register_callback(on_change)
