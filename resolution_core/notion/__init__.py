from resolution_core.notion.gateway import NotionGateway
from resolution_core.notion.mapping import (
    PROPERTY_NAMES,
    creation_properties,
    from_notion_page,
    to_notion_properties,
)

__all__ = [
    "NotionGateway",
    "PROPERTY_NAMES",
    "creation_properties",
    "from_notion_page",
    "to_notion_properties",
]
