# =============================================================================
# tests/unit/test_local_store.py
# Unit Tests for the Local Durable Store
# =============================================================================

import sqlite3
import threading
import pytest

from resolution_core.errors import StorageUnavailable
from resolution_core.models import PendingUpdate
from resolution_core.offline import MemoryStore, SQLiteStore, open_store


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_path):
    if request.param == "memory":
        yield MemoryStore()
        return
    store = SQLiteStore(tmp_path / "store.db")
    store.initialize()
    yield store
    store.close()


class TestRecords:
    """Test whole-collection replacement"""

    def test_read_empty_collection(self, store):
        assert store.read_all("resolutions") == []

    def test_write_all_replaces_collection(self, store):
        store.write_all("resolutions", [{"id": "a", "title": "A"}, {"id": "b", "title": "B"}])
        count = store.write_all("resolutions", [{"id": "c", "title": "C"}])

        assert count == 1
        assert store.read_all("resolutions") == [{"id": "c", "title": "C"}]

    def test_write_all_preserves_order(self, store):
        records = [{"id": str(i), "n": i} for i in (3, 1, 2)]
        store.write_all("resolutions", records)
        assert [r["id"] for r in store.read_all("resolutions")] == ["3", "1", "2"]

    def test_collections_are_independent(self, store):
        store.write_all("resolutions", [{"id": "a"}])
        store.write_all("other", [{"id": "b"}])
        assert store.read_all("resolutions") == [{"id": "a"}]


class TestPendingQueue:
    """Test FIFO queue of remote overwrites"""

    def test_enqueue_assigns_increasing_ids(self, store):
        first = store.enqueue(PendingUpdate("page-1", {"current": 1}))
        second = store.enqueue(PendingUpdate("page-1", {"current": 2}))

        assert first.queue_id is not None
        assert second.queue_id > first.queue_id
        assert store.queue_length() == 2

    def test_drain_is_fifo_and_non_destructive(self, store):
        store.enqueue(PendingUpdate("page-1", {"current": 1}))
        store.enqueue(PendingUpdate("page-2", {"current": 5}))

        drained = store.drain_queue()

        assert [u.fields["current"] for u in drained] == [1, 5]
        assert store.queue_length() == 2

    def test_remove_single_update(self, store):
        first = store.enqueue(PendingUpdate("page-1", {"current": 1}))
        store.enqueue(PendingUpdate("page-1", {"current": 2}))

        store.remove(first)

        remaining = store.drain_queue()
        assert len(remaining) == 1
        assert remaining[0].fields == {"current": 2}

    def test_drain_empty_queue(self, store):
        assert store.drain_queue() == []
        assert store.queue_length() == 0


class TestSQLitePersistence:

    def test_records_survive_reopen(self, tmp_path):
        path = tmp_path / "store.db"
        store = SQLiteStore(path)
        store.initialize()
        store.write_all("resolutions", [{"id": "a", "current": 2}])
        store.enqueue(PendingUpdate("page-1", {"current": 2}))
        store.close()

        reopened = SQLiteStore(path)
        reopened.initialize()
        assert reopened.read_all("resolutions") == [{"id": "a", "current": 2}]
        assert reopened.queue_length() == 1
        reopened.close()

    def test_close_releases_worker_thread_connections(self, tmp_path):
        store = SQLiteStore(tmp_path / "store.db")
        store.initialize()
        worker_connections = []

        def use_from_worker():
            store.read_all("resolutions")
            worker_connections.append(store._get_connection())

        worker = threading.Thread(target=use_from_worker)
        worker.start()
        worker.join()

        store.close()

        with pytest.raises(sqlite3.ProgrammingError):
            worker_connections[0].execute("SELECT 1")
        # A closed store reconnects on next use
        assert store.read_all("resolutions") == []
        store.close()


class TestOpenStore:

    def test_opens_sqlite_store(self, tmp_path):
        store = open_store(tmp_path / "store.db")
        assert isinstance(store, SQLiteStore)
        store.close()

    def test_falls_back_to_memory_when_unwritable(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        store = open_store(blocker / "store.db")

        assert isinstance(store, MemoryStore)

    def test_initialize_raises_storage_unavailable(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(StorageUnavailable):
            SQLiteStore(blocker / "store.db").initialize()
