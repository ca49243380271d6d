# =============================================================================
# resolution_core/offline/sync_coordinator.py
# Sync Coordinator - Optimistic Writes, Queue and Replay
# =============================================================================
"""
SyncCoordinator - owns the goal list and decides when to talk to the remote
store.

Every user mutation runs in two phases:
1. optimistic local mutation, persisted before the call returns
2. remote propagation: a background task when online (pushes run one at a
   time, in the order they were made), queued when offline

Queued updates are replayed in FIFO order when connectivity returns. Only
updates whose remote call failed stay queued; a partially failed replay
reports `error`. After a fully successful replay the list is reloaded from
the remote store.

Usage:
    coordinator = SyncCoordinator(store, gateway, online=True)
    await coordinator.start()
    await coordinator.increment(goal_id)
"""

from __future__ import annotations
import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set
import logging

from resolution_core.errors import RemoteError, RemoteUnreachable, StorageUnavailable
from resolution_core.models import (
    DEFAULT_CATEGORY,
    DEFAULT_FREQUENCY,
    DEFAULT_UNIT,
    Goal,
    PendingUpdate,
    demo_goals,
    new_local_id,
    today_iso,
)
from resolution_core.offline.local_store import LocalStore, MemoryStore
from resolution_core.offline.sync_state import (
    Action,
    CacheServed,
    ConnectivityChanged,
    DemoServed,
    LoadSkippedOffline,
    LoadStarted,
    PendingCountLoaded,
    RemoteLoaded,
    ReplayFinished,
    SyncFailed,
    SyncStarted,
    SyncState,
    SyncStatus,
    SyncSucceeded,
    UpdateQueued,
    status_display,
    transition,
)

logger = logging.getLogger(__name__)

BACKGROUND_SYNC_TAG = "sync-resolutions"


class SyncCoordinator:
    """Keeps the local goal list consistent with the remote store."""

    COLLECTION = "resolutions"
    REMOTE_TIMEOUT = 15.0

    def __init__(
        self,
        store: LocalStore,
        gateway: Optional[Any] = None,
        online: bool = False,
        remote_timeout: Optional[float] = None,
        today: Callable[[], str] = today_iso,
    ):
        """
        Args:
            store: Local durable store
            gateway: Remote gateway (None runs without a remote store)
            online: Initial connectivity flag
            remote_timeout: Upper bound in seconds for a single remote call
            today: Source of the check-in day
        """
        self._store = store
        self._gateway = gateway
        self._remote_timeout = remote_timeout or self.REMOTE_TIMEOUT
        self._today = today
        self._state = SyncState(online=online)
        self._goals: List[Goal] = []
        self._callbacks: List[Callable[[SyncState], None]] = []
        self._background: Set[asyncio.Task] = set()
        self._push_lock = asyncio.Lock()
        self._replaying = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def status(self) -> SyncStatus:
        return self._state.status

    @property
    def is_online(self) -> bool:
        return self._state.online

    @property
    def goals(self) -> List[Goal]:
        return list(self._goals)

    @property
    def store(self) -> LocalStore:
        return self._store

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        index = self._find(goal_id)
        return None if index is None else self._goals[index]

    def get_status_display(self) -> Dict[str, Any]:
        return status_display(self._state)

    # =========================================================================
    # STATE & CALLBACKS
    # =========================================================================

    def _dispatch(self, action: Action) -> None:
        new_state = transition(self._state, action)
        if new_state == self._state:
            return
        if new_state.status != self._state.status:
            logger.info(f"Sync status: {self._state.status.value} -> {new_state.status.value}")
        self._state = new_state
        self._notify_callbacks()

    def register_callback(self, callback: Callable[[SyncState], None]) -> None:
        """Register a callback for sync state changes."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[SyncState], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        for callback in list(self._callbacks):
            try:
                callback(self._state)
            except Exception as e:
                logger.error(f"Error in sync callback: {e}")

    # =========================================================================
    # I/O HELPERS
    # =========================================================================

    async def _io(self, method_name: str, *args):
        """Run a store operation off the loop, degrading to memory on failure."""
        try:
            return await asyncio.to_thread(getattr(self._store, method_name), *args)
        except StorageUnavailable as e:
            if isinstance(self._store, MemoryStore):
                raise
            logger.warning(f"{e}. Continuing with in-memory storage for this session.")
            self._store = await self._move_to_memory(self._store)
            return await asyncio.to_thread(getattr(self._store, method_name), *args)

    async def _move_to_memory(self, failed: LocalStore) -> MemoryStore:
        """
        Build the session's in-memory store from the current goals and the
        failed store's queue.

        Moved updates are removed from the failed store so they cannot be
        replayed again, out of order, on the next start.
        """
        memory = MemoryStore({self.COLLECTION: [g.to_dict() for g in self._goals]})
        try:
            pending = await asyncio.to_thread(failed.drain_queue)
        except StorageUnavailable as e:
            logger.warning(f"Queued updates could not be recovered: {e}")
            return memory

        for update in pending:
            memory.enqueue(PendingUpdate(
                target_remote_id=update.target_remote_id,
                fields=dict(update.fields),
                enqueued_at=update.enqueued_at,
            ))
            try:
                await asyncio.to_thread(failed.remove, update)
            except StorageUnavailable as e:
                logger.warning(f"Queued update {update.queue_id} stays in the failed store: {e}")

        if pending:
            logger.info(f"Moved {len(pending)} queued update(s) to memory")
        return memory

    async def _remote(self, method_name: str, *args):
        """Run a gateway call in a worker thread with a bounded wait."""
        if self._gateway is None:
            raise RemoteUnreachable("No remote store configured", operation=method_name)

        call = asyncio.to_thread(getattr(self._gateway, method_name), *args)
        try:
            return await asyncio.wait_for(call, timeout=self._remote_timeout)
        except asyncio.TimeoutError as e:
            raise RemoteUnreachable(
                f"Remote call timed out after {self._remote_timeout:g}s",
                operation=method_name,
            ) from e

    async def _persist(self) -> None:
        await self._io("write_all", self.COLLECTION, [g.to_dict() for g in self._goals])

    async def _read_cached(self) -> List[Goal]:
        rows = await self._io("read_all", self.COLLECTION)
        return [Goal.from_dict(row) for row in rows]

    async def _enqueue(self, remote_id: str, fields: Dict[str, Any]) -> None:
        await self._io("enqueue", PendingUpdate(target_remote_id=remote_id, fields=dict(fields)))
        count = await self._io("queue_length")
        self._dispatch(UpdateQueued(pending_count=count))

    def _find(self, goal_id: str) -> Optional[int]:
        for index, goal in enumerate(self._goals):
            if goal.id == goal_id:
                return index
        return None

    # =========================================================================
    # LOADING
    # =========================================================================

    async def start(self) -> List[Goal]:
        """Restore the queue size and perform the startup load."""
        count = await self._io("queue_length")
        self._dispatch(PendingCountLoaded(pending_count=count))
        return await self.load()

    async def load(self) -> List[Goal]:
        """
        Load goals: remote when online, else the local store.

        A non-empty remote result replaces the local collection. An empty or
        failed fetch falls back to the cached collection, and to demo data
        when nothing is cached.
        """
        self._dispatch(LoadStarted())

        if not self._state.online:
            self._goals = await self._read_cached()
            self._dispatch(LoadSkippedOffline())
            return self.goals

        remote: List[Goal] = []
        try:
            remote = await self._remote("list_goals")
        except RemoteError as e:
            logger.warning(f"Remote fetch failed: {e}")

        if remote:
            self._goals = list(remote)
            await self._persist()
            self._dispatch(RemoteLoaded(at=datetime.now()))
            return self.goals

        cached = await self._read_cached()
        if cached:
            self._goals = cached
            self._dispatch(CacheServed())
        else:
            # First run: placeholders are never pushed to the remote store
            self._goals = demo_goals()
            self._dispatch(DemoServed())
        return self.goals

    async def refresh(self) -> List[Goal]:
        """Manual refresh: replay queued updates first when there are any."""
        if self._state.online and await self._io("queue_length"):
            await self.replay_pending()
            return self.goals
        return await self.load()

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def adjust_progress(self, goal_id: str, delta: float) -> Optional[Goal]:
        """
        Change a goal's progress by `delta` (clamped at zero).

        Returns:
            The updated goal, or None if no goal has that id
        """
        index = self._find(goal_id)
        if index is None:
            logger.warning(f"No resolution with id {goal_id}")
            return None

        goal = self._goals[index].with_progress(delta, self._today())
        self._goals[index] = goal
        await self._persist()

        if goal.remote_id is not None:
            fields = {"current": goal.current, "last_checkin": goal.last_checkin}
            if self._state.online:
                self._spawn(self._push_update(goal.remote_id, fields))
            else:
                await self._enqueue(goal.remote_id, fields)
        return goal

    async def increment(self, goal_id: str, step: float = 1) -> Optional[Goal]:
        return await self.adjust_progress(goal_id, step)

    async def decrement(self, goal_id: str, step: float = 1) -> Optional[Goal]:
        return await self.adjust_progress(goal_id, -step)

    async def _push_update(self, remote_id: str, fields: Dict[str, Any]) -> None:
        async with self._push_lock:
            if not self._state.online:
                await self._enqueue(remote_id, fields)
                return

            self._dispatch(SyncStarted())
            try:
                await self._remote("update_goal", remote_id, fields)
            except RemoteError as e:
                logger.warning(f"Update of {remote_id} failed, queued for retry: {e}")
                self._dispatch(SyncFailed(error=e.message))
                await self._enqueue(remote_id, fields)
                return
            self._dispatch(SyncSucceeded(at=datetime.now()))

    async def add_goal(
        self,
        title: str,
        category: str = DEFAULT_CATEGORY,
        target: float = 1,
        unit: str = DEFAULT_UNIT,
        frequency: str = DEFAULT_FREQUENCY,
    ) -> Optional[Goal]:
        """
        Create a goal locally; when online the remote creation runs in the
        background.

        Creation failures are not queued; the goal stays local-only.

        Returns:
            The local goal, or None for a blank title
        """
        title = (title or "").strip()
        if not title:
            return None

        goal = Goal(
            id=new_local_id(),
            title=title,
            category=category,
            target=target,
            current=0,
            unit=unit,
            frequency=frequency,
            streak=0,
            last_checkin=self._today(),
            remote_id=None,
        )
        self._goals.append(goal)
        await self._persist()

        if self._state.online:
            self._spawn(self._create_remote(goal))
        return goal

    async def _create_remote(self, goal: Goal) -> Optional[Goal]:
        self._dispatch(SyncStarted())
        try:
            remote_id = await self._remote("create_goal", goal)
        except RemoteError as e:
            logger.warning(f"Creating '{goal.title}' remotely failed: {e}")
            self._dispatch(SyncFailed(error=e.message))
            return None

        created = Goal.from_dict({**goal.to_dict(), "id": remote_id, "remote_id": remote_id})
        index = self._find(goal.id)
        if index is not None:
            self._goals[index] = created
            await self._persist()

        await self.load()
        return created

    async def archive_goal(self, goal_id: str) -> bool:
        """
        Archive a remote goal and drop it from the local list.

        Only possible online and for goals that exist remotely.
        """
        goal = self.get_goal(goal_id)
        if goal is None or goal.remote_id is None:
            logger.warning(f"Cannot archive {goal_id}: not a remote resolution")
            return False
        if not self._state.online:
            logger.info(f"Cannot archive {goal_id} while offline")
            return False

        self._dispatch(SyncStarted())
        try:
            await self._remote("archive_goal", goal.remote_id)
        except RemoteError as e:
            self._dispatch(SyncFailed(error=e.message))
            return False

        self._goals = [g for g in self._goals if g.id != goal_id]
        await self._persist()
        self._dispatch(SyncSucceeded(at=datetime.now()))
        return True

    # =========================================================================
    # REPLAY & CONNECTIVITY
    # =========================================================================

    async def replay_pending(self) -> bool:
        """
        Push queued updates in FIFO order.

        An empty queue is a no-op. Failed updates stay queued in their
        original position.

        Returns:
            True if nothing is left queued
        """
        if not self._state.online or self._replaying:
            return False

        self._replaying = True
        try:
            pending = await self._io("drain_queue")
            if not pending:
                return True

            logger.info(f"Replaying {len(pending)} queued update(s)")
            self._dispatch(SyncStarted())

            failed = 0
            for update in pending:
                try:
                    await self._remote("update_goal", update.target_remote_id, update.fields)
                except RemoteError as e:
                    failed += 1
                    logger.warning(f"Queued update {update.queue_id} failed: {e}")
                    continue
                await self._io("remove", update)
                logger.debug(f"Replayed update {update.queue_id} for {update.target_remote_id}")

            count = await self._io("queue_length")
            self._dispatch(ReplayFinished(failed=failed, pending_count=count, at=datetime.now()))
        finally:
            self._replaying = False

        if failed:
            return False

        await self.load()
        return True

    async def set_online(self, online: bool) -> None:
        """Apply a connectivity signal; reconnecting triggers replay or reload."""
        was_online = self._state.online
        self._dispatch(ConnectivityChanged(online=online))

        if online and not was_online:
            if await self._io("queue_length"):
                await self.replay_pending()
            else:
                await self.load()

    async def handle_sync_event(self, tag: str) -> bool:
        """Background-sync trigger. Safe to fire any number of times."""
        if tag != BACKGROUND_SYNC_TAG:
            logger.debug(f"Ignoring sync tag {tag!r}")
            return False
        return await self.replay_pending()

    # =========================================================================
    # FIRE-AND-FORGET
    # =========================================================================

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        task.add_done_callback(self._log_task_failure)
        return task

    @staticmethod
    def _log_task_failure(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background sync task failed: {task.exception()}")

    def on_connectivity_change(self, online: bool) -> asyncio.Task:
        """Schedule a connectivity transition without waiting for it."""
        return self._spawn(self.set_online(online))

    def schedule_replay(self) -> asyncio.Task:
        """Schedule a queue replay without waiting for it."""
        return self._spawn(self.handle_sync_event(BACKGROUND_SYNC_TAG))

    def schedule_refresh(self) -> asyncio.Task:
        return self._spawn(self.refresh())

    async def wait_idle(self) -> None:
        """Wait for all scheduled background work to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
