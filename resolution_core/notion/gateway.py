# =============================================================================
# resolution_core/notion/gateway.py
# Remote Gateway to the Notion Database
# =============================================================================
"""
NotionGateway - list, create, update and archive resolutions in Notion.

All calls are synchronous `requests` round-trips with a bounded timeout. The
sync coordinator runs them in worker threads so the event loop never blocks.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging

import requests

from resolution_core.config import Settings
from resolution_core.errors import ConfigurationError, RemoteRejected, RemoteUnreachable
from resolution_core.logging import LogContext
from resolution_core.models import Goal
from resolution_core.notion.mapping import (
    PROPERTY_NAMES,
    creation_properties,
    from_notion_page,
    to_notion_properties,
)

logger = logging.getLogger(__name__)


class NotionGateway:
    """
    HTTP client for the resolutions database.

    Usage:
        gateway = NotionGateway(settings)
        goals = gateway.list_goals()
        gateway.update_goal(goals[0].remote_id, {"current": 4})
    """

    PAGE_SIZE = 100

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        if not settings.remote_configured:
            raise ConfigurationError(
                "Notion API key and database id are required",
                config_key="notion",
            )

        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {settings.notion_api_key}",
            "Notion-Version": settings.notion_version,
            "Content-Type": "application/json",
        })

    def _request(
        self,
        method: str,
        endpoint: str,
        operation: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Make HTTP request with error handling.

        Raises:
            RemoteUnreachable: Transport failure or timeout
            RemoteRejected: Non-2xx status
        """
        url = f"{self.settings.notion_base_url}/{endpoint}"

        try:
            response = self.session.request(
                method=method,
                url=url,
                json=data,
                timeout=self.settings.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RemoteUnreachable(f"Notion request failed: {e}", operation=operation) from e

        if not response.ok:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text[:500]
            logger.warning(f"Notion {operation} rejected with HTTP {response.status_code}: {detail}")
            raise RemoteRejected(
                f"Notion {operation} failed with HTTP {response.status_code}",
                status=response.status_code,
                operation=operation,
                detail=detail,
            )

        try:
            return response.json()
        except ValueError:
            return {}

    def list_goals(self) -> List[Goal]:
        """Fetch every resolution, sorted by category then title."""
        query: Dict[str, Any] = {
            "sorts": [
                {"property": PROPERTY_NAMES["category"], "direction": "ascending"},
                {"property": PROPERTY_NAMES["title"], "direction": "ascending"},
            ],
            "page_size": self.PAGE_SIZE,
        }

        goals: List[Goal] = []
        with LogContext(logger, "Fetching resolutions from Notion") as ctx:
            while True:
                payload = self._request(
                    "POST",
                    f"databases/{self.settings.notion_database_id}/query",
                    operation="list",
                    data=query,
                )
                for page in payload.get("results") or []:
                    goal = from_notion_page(page)
                    if goal is not None:
                        goals.append(goal)

                if not payload.get("has_more") or not payload.get("next_cursor"):
                    break
                query["start_cursor"] = payload["next_cursor"]

            ctx.note(count=len(goals))

        return goals

    def create_goal(self, goal: Goal) -> str:
        """Create a page for a local goal; returns the new page id."""
        payload = self._request(
            "POST",
            "pages",
            operation="create",
            data={
                "parent": {"database_id": self.settings.notion_database_id},
                "properties": creation_properties(goal),
            },
        )
        page_id = payload.get("id")
        if not page_id:
            raise RemoteRejected("Notion create returned no page id", operation="create", detail=payload)
        logger.info(f"Created resolution '{goal.title}' as {page_id}")
        return page_id

    def update_goal(self, remote_id: str, fields: Dict[str, Any]) -> str:
        """Overwrite the given fields of a page; returns the page id."""
        payload = self._request(
            "PATCH",
            f"pages/{remote_id}",
            operation="update",
            data={"properties": to_notion_properties(fields)},
        )
        return payload.get("id", remote_id)

    def archive_goal(self, remote_id: str) -> None:
        """Soft-delete a page."""
        self._request(
            "PATCH",
            f"pages/{remote_id}",
            operation="archive",
            data={"archived": True},
        )
        logger.info(f"Archived resolution {remote_id}")
