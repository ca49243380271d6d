from resolution_core.models.goal import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    DEFAULT_FREQUENCY,
    DEFAULT_UNIT,
    FREQUENCIES,
    Goal,
    PendingUpdate,
    demo_goals,
    new_local_id,
    today_iso,
)

__all__ = [
    "CATEGORIES",
    "DEFAULT_CATEGORY",
    "DEFAULT_FREQUENCY",
    "DEFAULT_UNIT",
    "FREQUENCIES",
    "Goal",
    "PendingUpdate",
    "demo_goals",
    "new_local_id",
    "today_iso",
]
