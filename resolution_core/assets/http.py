# =============================================================================
# resolution_core/assets/http.py
# Request/Response Values and the Network Fetcher
# =============================================================================
"""
Plain value types passed between the fetch interceptor, the cache storage and
the network. Responses are fully buffered, so a cached copy and the copy
returned to the caller can never interfere with each other.
"""

from __future__ import annotations
import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlparse
import logging

import requests

from resolution_core.errors import RemoteUnreachable

logger = logging.getLogger(__name__)


def _header(headers: Dict[str, str], name: str) -> str:
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return ""


@dataclass(frozen=True)
class AssetRequest:
    """An outbound request as seen by the interceptor."""
    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"

    @property
    def accepts_html(self) -> bool:
        return "text/html" in _header(self.headers, "accept")

    def resolve(self, origin: str) -> AssetRequest:
        """Make a relative URL absolute against the application origin."""
        if urlparse(self.url).scheme:
            return self
        return AssetRequest(url=urljoin(origin, self.url), method=self.method, headers=dict(self.headers))


@dataclass(frozen=True)
class CachedResponse:
    """A buffered HTTP response."""
    status: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    url: str = ""
    stored_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        return _header(self.headers, "content-type")

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)


AssetResponse = CachedResponse


def offline_response(url: str = "", body: str = "Offline", content_type: str = "text/plain") -> CachedResponse:
    """Synthetic 503 used when neither network nor cache can answer."""
    return CachedResponse(
        status=503,
        body=body.encode("utf-8"),
        headers={"Content-Type": content_type},
        url=url,
    )


def offline_json_response(url: str = "") -> CachedResponse:
    return offline_response(url, json.dumps({"error": "Offline"}), "application/json")


class RequestsFetcher:
    """
    Performs network round-trips with a shared requests.Session.

    Calls run in a worker thread so a slow asset never stalls the event loop.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_sync(self, request: AssetRequest) -> CachedResponse:
        try:
            response = self.session.request(
                method=request.method,
                url=request.url,
                headers=request.headers or None,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RemoteUnreachable(f"Fetch of {request.url} failed: {e}", operation="fetch") from e

        return CachedResponse(
            status=response.status_code,
            body=response.content,
            headers=dict(response.headers),
            url=request.url,
        )

    async def fetch(self, request: AssetRequest) -> CachedResponse:
        return await asyncio.to_thread(self.fetch_sync, request)

    def close(self) -> None:
        self.session.close()
