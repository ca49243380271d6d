# =============================================================================
# tests/unit/test_notion_gateway.py
# Unit Tests for the Notion Gateway
# =============================================================================

import pytest
import requests

from resolution_core.config import Settings
from resolution_core.errors import ConfigurationError, RemoteRejected, RemoteUnreachable
from resolution_core.models import Goal
from resolution_core.notion import NotionGateway


@pytest.fixture
def gateway(settings, mock_session):
    return NotionGateway(settings, session=mock_session)


class TestGatewaySetup:

    def test_requires_credentials(self, mock_session):
        with pytest.raises(ConfigurationError):
            NotionGateway(Settings(), session=mock_session)

    def test_sets_notion_headers(self, gateway, mock_session):
        assert mock_session.headers["Authorization"] == "Bearer secret_test"
        assert mock_session.headers["Notion-Version"] == "2022-06-28"


class TestListGoals:

    def test_queries_database_sorted(self, gateway, mock_session, http_response, notion_page):
        mock_session.request.return_value = http_response(200, {"results": [notion_page], "has_more": False})

        goals = gateway.list_goals()

        assert [g.id for g in goals] == ["page-1"]
        kwargs = mock_session.request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == "https://api.notion.com/v1/databases/db-123/query"
        assert [s["property"] for s in kwargs["json"]["sorts"]] == ["Category", "Resolution"]

    def test_follows_pagination(self, gateway, mock_session, http_response, notion_page):
        second = {**notion_page, "id": "page-2"}
        mock_session.request.side_effect = [
            http_response(200, {"results": [notion_page], "has_more": True, "next_cursor": "cur-1"}),
            http_response(200, {"results": [second], "has_more": False, "next_cursor": None}),
        ]

        goals = gateway.list_goals()

        assert [g.id for g in goals] == ["page-1", "page-2"]
        assert mock_session.request.call_args.kwargs["json"]["start_cursor"] == "cur-1"

    def test_skips_pages_without_id(self, gateway, mock_session, http_response, notion_page):
        broken = {k: v for k, v in notion_page.items() if k != "id"}
        mock_session.request.return_value = http_response(200, {"results": [broken, notion_page]})

        assert len(gateway.list_goals()) == 1

    def test_empty_database(self, gateway, mock_session, http_response):
        mock_session.request.return_value = http_response(200, {"results": []})
        assert gateway.list_goals() == []


class TestMutations:

    def test_create_returns_page_id(self, gateway, mock_session, http_response):
        mock_session.request.return_value = http_response(200, {"id": "page-new"})

        page_id = gateway.create_goal(Goal(id="local-1", title="Journal", category="Wellness"))

        assert page_id == "page-new"
        body = mock_session.request.call_args.kwargs["json"]
        assert body["parent"] == {"database_id": "db-123"}
        assert "Resolution" in body["properties"]

    def test_create_without_id_is_rejected(self, gateway, mock_session, http_response):
        mock_session.request.return_value = http_response(200, {})
        with pytest.raises(RemoteRejected):
            gateway.create_goal(Goal(id="local-1", title="Journal"))

    def test_update_sends_only_given_fields(self, gateway, mock_session, http_response):
        mock_session.request.return_value = http_response(200, {"id": "page-1"})

        gateway.update_goal("page-1", {"current": 5})

        kwargs = mock_session.request.call_args.kwargs
        assert kwargs["method"] == "PATCH"
        assert kwargs["url"].endswith("/pages/page-1")
        assert kwargs["json"] == {"properties": {"Current Progress": {"number": 5}}}

    def test_archive_is_soft_delete(self, gateway, mock_session, http_response):
        mock_session.request.return_value = http_response(200, {"id": "page-1", "archived": True})

        gateway.archive_goal("page-1")

        assert mock_session.request.call_args.kwargs["json"] == {"archived": True}


class TestErrors:

    def test_non_2xx_raises_rejected_with_status(self, gateway, mock_session, http_response):
        mock_session.request.return_value = http_response(400, {"message": "validation_error"})

        with pytest.raises(RemoteRejected) as exc_info:
            gateway.update_goal("page-1", {"current": 1})

        assert exc_info.value.status == 400
        assert exc_info.value.details["response"] == {"message": "validation_error"}

    def test_transport_failure_raises_unreachable(self, gateway, mock_session):
        mock_session.request.side_effect = requests.exceptions.ConnectionError("DNS failure")

        with pytest.raises(RemoteUnreachable):
            gateway.list_goals()

    def test_timeout_raises_unreachable(self, gateway, mock_session):
        mock_session.request.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(RemoteUnreachable):
            gateway.archive_goal("page-1")
