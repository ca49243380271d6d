# =============================================================================
# resolution_core/notion/mapping.py
# Goal <-> Notion Property Mapping
# =============================================================================
"""
Stateless translation between Goal records and Notion page properties.

Forward mapping emits only the fields present in a partial update so a
PATCH never clobbers unrelated properties. Reverse mapping never fails on a
partially populated page: every absent or malformed property falls back to
its default.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Mapping, Optional
import logging

from resolution_core.errors import MalformedRemoteRecord
from resolution_core.models import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    DEFAULT_FREQUENCY,
    DEFAULT_UNIT,
    FREQUENCIES,
    Goal,
)

logger = logging.getLogger(__name__)

# Goal field -> Notion property name
PROPERTY_NAMES = {
    "title": "Resolution",
    "category": "Category",
    "target": "Target",
    "current": "Current Progress",
    "unit": "Unit",
    "frequency": "Frequency",
    "streak": "Streak",
    "last_checkin": "Last Check-in",
}

DEFAULT_TITLE = "Untitled"


# =============================================================================
# PROPERTY BUILDERS
# =============================================================================

def _title(value: Any) -> Dict[str, Any]:
    return {"title": [{"text": {"content": str(value)}}]}


def _select(value: Any) -> Dict[str, Any]:
    return {"select": {"name": str(value)}}


def _number(value: Any) -> Dict[str, Any]:
    return {"number": value}


def _date(value: Any) -> Dict[str, Any]:
    return {"date": {"start": str(value)}}


BUILDERS: Dict[str, Callable[[Any], Dict[str, Any]]] = {
    "title": _title,
    "category": _select,
    "target": _number,
    "current": _number,
    "unit": _select,
    "frequency": _select,
    "streak": _number,
    "last_checkin": _date,
}


def to_notion_properties(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Map a partial Goal update to Notion properties.

    Fields that are absent or None are omitted.
    """
    properties = {}
    for name, value in fields.items():
        if value is None or name not in BUILDERS:
            continue
        properties[PROPERTY_NAMES[name]] = BUILDERS[name](value)
    return properties


def creation_properties(goal: Goal) -> Dict[str, Any]:
    """Full property set for a new page, with creation defaults."""
    fields = {
        "title": goal.title,
        "category": goal.category or DEFAULT_CATEGORY,
        "target": goal.target or 0,
        "current": goal.current or 0,
        "unit": goal.unit or DEFAULT_UNIT,
        "frequency": goal.frequency or DEFAULT_FREQUENCY,
        "streak": goal.streak or 0,
        "last_checkin": goal.last_checkin or None,
    }
    return to_notion_properties(fields)


# =============================================================================
# PROPERTY READERS
# =============================================================================

def _read_title(prop: Dict[str, Any]) -> str:
    return prop["title"][0]["plain_text"]


def _read_select(prop: Dict[str, Any]) -> str:
    return prop["select"]["name"]


def _read_number(prop: Dict[str, Any]) -> float:
    value = prop["number"]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"not a number: {value!r}")
    return value


def _read_date(prop: Dict[str, Any]) -> str:
    return prop["date"]["start"]


def _extract(
    properties: Mapping[str, Any],
    field: str,
    reader: Callable[[Dict[str, Any]], Any],
    page_id: Optional[str],
) -> Any:
    name = PROPERTY_NAMES[field]
    try:
        value = reader(properties[name])
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedRemoteRecord(
            f"Property '{name}' missing or malformed ({e.__class__.__name__})",
            field=field,
            record_id=page_id,
        ) from e
    if value is None or value == "":
        raise MalformedRemoteRecord(f"Property '{name}' is empty", field=field, record_id=page_id)
    return value


def from_notion_page(page: Mapping[str, Any]) -> Optional[Goal]:
    """
    Map a Notion page to a Goal, substituting defaults for bad properties.

    Returns:
        Goal, or None when the page has no id and cannot be addressed
    """
    page_id = page.get("id") if isinstance(page, Mapping) else None
    if not page_id:
        logger.warning("Skipping remote record without an id")
        return None

    properties = page.get("properties")
    if not isinstance(properties, Mapping):
        properties = {}

    defaults = {
        "title": DEFAULT_TITLE,
        "category": DEFAULT_CATEGORY,
        "target": 0,
        "current": 0,
        "unit": DEFAULT_UNIT,
        "frequency": DEFAULT_FREQUENCY,
        "streak": 0,
        "last_checkin": None,
    }
    readers = {
        "title": _read_title,
        "category": _read_select,
        "target": _read_number,
        "current": _read_number,
        "unit": _read_select,
        "frequency": _read_select,
        "streak": _read_number,
        "last_checkin": _read_date,
    }

    values: Dict[str, Any] = {}
    for field, reader in readers.items():
        try:
            values[field] = _extract(properties, field, reader, page_id)
        except MalformedRemoteRecord as e:
            logger.debug(str(e))
            values[field] = defaults[field]

    if values["category"] not in CATEGORIES:
        logger.debug(f"Unknown category {values['category']!r} on {page_id}")
        values["category"] = DEFAULT_CATEGORY

    frequency = str(values["frequency"]).lower()
    values["frequency"] = frequency if frequency in FREQUENCIES else DEFAULT_FREQUENCY
    values["streak"] = int(values["streak"])

    return Goal(id=page_id, remote_id=page_id, **values)
