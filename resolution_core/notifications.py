# =============================================================================
# resolution_core/notifications.py
# Reminder Notification Payloads
# =============================================================================
"""
Parsing of inbound reminder payloads `{title, body, url}` into the
notification that gets shown, and resolution of a click on one of its
actions into the deep link to open.
"""

from __future__ import annotations
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union
import logging

logger = logging.getLogger(__name__)

CHECKIN_ACTION = "checkin"
DISMISS_ACTION = "dismiss"
CHECKIN_URL = f"/?action={CHECKIN_ACTION}"


@dataclass(frozen=True)
class NotificationAction:
    action: str
    title: str


DEFAULT_ACTIONS = (
    NotificationAction(CHECKIN_ACTION, "Check In"),
    NotificationAction(DISMISS_ACTION, "Later"),
)


@dataclass(frozen=True)
class Notification:
    title: str = "Resolution Tracker"
    body: str = "Time to check in on your resolutions!"
    url: str = "/"
    icon: str = "/icons/icon-192.png"
    badge: str = "/icons/badge-72.png"
    tag: str = "resolution-reminder"
    actions: tuple = field(default=DEFAULT_ACTIONS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "icon": self.icon,
            "badge": self.badge,
            "tag": self.tag,
            "actions": [{"action": a.action, "title": a.title} for a in self.actions],
        }


def build_notification(payload: Union[str, bytes, Dict[str, Any], None]) -> Notification:
    """Build the notification for a push payload, defaulting anything missing."""
    data: Any = payload
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload) if payload else {}
        except ValueError:
            logger.warning("Ignoring malformed notification payload")
            data = {}
    if not isinstance(data, dict):
        data = {}

    defaults = Notification()
    return Notification(
        title=data.get("title") or defaults.title,
        body=data.get("body") or defaults.body,
        url=data.get("url") or defaults.url,
    )


def reminder_from_query(params: Mapping[str, Any]) -> Notification:
    """Rebuild the reminder a deep link was opened from, using its query parameters."""
    return build_notification({key: params.get(key) for key in ("title", "body", "url")})


def resolve_click(action: Optional[str], notification: Notification) -> Optional[str]:
    """
    URL to open for a click on `notification`.

    Returns:
        The check-in deep link, None for dismiss, else the notification url
    """
    if action == CHECKIN_ACTION:
        return CHECKIN_URL
    if action == DISMISS_ACTION:
        return None
    return notification.url
