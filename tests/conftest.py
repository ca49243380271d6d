# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import pytest
from typing import Dict, List, Optional
from unittest.mock import MagicMock

from resolution_core.assets import AssetCacheManager, CacheStorage, CachedResponse
from resolution_core.config import Settings
from resolution_core.errors import RemoteRejected, RemoteUnreachable
from resolution_core.models import Goal
from resolution_core.offline import MemoryStore, SQLiteStore

ORIGIN = "http://app.test"


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def remote_goals() -> List[Goal]:
    """Two goals that already exist in Notion"""
    return [
        Goal(id="page-1", title="Run 100 km", category="Health", target=100, current=10,
             unit="km", frequency="monthly", streak=3, last_checkin="2026-01-02", remote_id="page-1"),
        Goal(id="page-2", title="Save $5,000", category="Finance", target=5000, current=0,
             unit="dollars", frequency="yearly", streak=0, last_checkin=None, remote_id="page-2"),
    ]


@pytest.fixture
def notion_page() -> Dict:
    """A fully populated Notion page as returned by a database query"""
    return {
        "id": "page-1",
        "object": "page",
        "properties": {
            "Resolution": {"type": "title", "title": [{"plain_text": "Run 100 km"}]},
            "Category": {"type": "select", "select": {"name": "Health"}},
            "Target": {"type": "number", "number": 100},
            "Current Progress": {"type": "number", "number": 10},
            "Unit": {"type": "select", "select": {"name": "km"}},
            "Frequency": {"type": "select", "select": {"name": "Monthly"}},
            "Streak": {"type": "number", "number": 3},
            "Last Check-in": {"type": "date", "date": {"start": "2026-01-02"}},
        },
    }


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        notion_api_key="secret_test",
        notion_database_id="db-123",
        db_path=tmp_path / "resolutions.db",
        cache_dir=tmp_path / "asset_cache",
    )


# =============================================================================
# STORE FIXTURES
# =============================================================================

@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def sqlite_store(tmp_path):
    store = SQLiteStore(tmp_path / "resolutions.db")
    store.initialize()
    yield store
    store.close()


# =============================================================================
# FAKE REMOTE
# =============================================================================

class FakeGateway:
    """In-memory stand-in for NotionGateway with switchable failures"""

    def __init__(self, goals: Optional[List[Goal]] = None):
        self.pages: Dict[str, Dict] = {g.remote_id: g.to_dict() for g in goals or [] if g.remote_id}
        self.fail_with: Optional[Exception] = None
        self.fail_create_with: Optional[Exception] = None
        self.fail_updates_for: set = set()
        self.calls: List[tuple] = []
        self._next_id = 100

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def list_goals(self) -> List[Goal]:
        self.calls.append(("list_goals",))
        self._check()
        return [Goal.from_dict(page) for page in self.pages.values()]

    def create_goal(self, goal: Goal) -> str:
        self.calls.append(("create_goal", goal.title))
        self._check()
        if self.fail_create_with is not None:
            raise self.fail_create_with
        self._next_id += 1
        page_id = f"page-{self._next_id}"
        self.pages[page_id] = {**goal.to_dict(), "id": page_id, "remote_id": page_id}
        return page_id

    def update_goal(self, remote_id: str, fields: Dict) -> str:
        self.calls.append(("update_goal", remote_id, dict(fields)))
        self._check()
        if remote_id in self.fail_updates_for:
            raise RemoteRejected("Validation failed", status=400, operation="update")
        if remote_id not in self.pages:
            raise RemoteRejected("Not found", status=404, operation="update")
        self.pages[remote_id].update(fields)
        return remote_id

    def archive_goal(self, remote_id: str) -> None:
        self.calls.append(("archive_goal", remote_id))
        self._check()
        self.pages.pop(remote_id, None)

    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def fake_gateway(remote_goals):
    return FakeGateway(remote_goals)


@pytest.fixture
def empty_gateway():
    return FakeGateway()


@pytest.fixture
def unreachable():
    return RemoteUnreachable("Network is down", operation="test")


# =============================================================================
# FAKE NETWORK FOR ASSETS
# =============================================================================

class FakeFetcher:
    """Async fetcher answering from a url -> response table"""

    def __init__(self):
        self.responses: Dict[str, CachedResponse] = {}
        self.offline = False
        self.requests: List[str] = []

    def serve(self, path: str, body: str, status: int = 200, content_type: str = "text/plain") -> None:
        url = path if path.startswith("http") else ORIGIN + path
        self.responses[url] = CachedResponse(
            status=status,
            body=body.encode(),
            headers={"Content-Type": content_type},
            url=url,
        )

    async def fetch(self, request) -> CachedResponse:
        self.requests.append(request.url)
        if self.offline:
            raise RemoteUnreachable(f"Fetch of {request.url} failed", operation="fetch")
        if request.url in self.responses:
            return self.responses[request.url]
        return CachedResponse(status=404, body=b"Not Found", url=request.url)


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def cache_storage(tmp_path):
    return CacheStorage(tmp_path / "asset_cache")


@pytest.fixture
def manifest():
    return ("/", "/styles.css", "/app.js", "/offline.html")


@pytest.fixture
def cache_manager(cache_storage, fake_fetcher, manifest):
    return AssetCacheManager(cache_storage, fake_fetcher, version="v2", manifest=manifest, origin=ORIGIN)


@pytest.fixture
def seeded_fetcher(fake_fetcher, manifest):
    """Fetcher that can serve every manifest entry"""
    for path in manifest:
        content_type = "text/html" if path in ("/", "/offline.html") else "text/plain"
        fake_fetcher.serve(path, f"asset {path}", content_type=content_type)
    return fake_fetcher


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_streamlit():
    """Mock Streamlit for testing"""
    import sys

    mock_st = MagicMock()
    mock_st.session_state = {}
    mock_st.cache_data = lambda f: f
    mock_st.cache_resource = lambda f: f

    original_st = sys.modules.get('streamlit')
    sys.modules['streamlit'] = mock_st

    yield mock_st

    if original_st:
        sys.modules['streamlit'] = original_st
    else:
        del sys.modules['streamlit']


@pytest.fixture
def mock_session():
    """Mock requests.Session for gateway tests"""
    session = MagicMock()
    session.headers = {}
    return session


def make_http_response(status: int = 200, payload=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.json.return_value = payload if payload is not None else {}
    response.text = str(payload)
    return response


@pytest.fixture
def http_response():
    """Factory for mocked requests.Response objects"""
    return make_http_response
