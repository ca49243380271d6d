# =============================================================================
# resolution_core/models/goal.py
# Goal Records and Pending Updates
# =============================================================================
"""
Domain types for the tracker.

A Goal is one resolution with a progress counter. Records fetched from the
remote store carry `remote_id == id`; records created locally carry a
`local-...` id and `remote_id = None` until the remote creation succeeds.

A PendingUpdate is a queued overwrite of some Goal fields on the remote
record. Field values are absolute (the resolved `current`, never a delta),
so each update is self-contained.
"""

from __future__ import annotations
import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, List, Optional


CATEGORIES = (
    "Personal Growth",
    "Health",
    "Finance",
    "Wellness",
    "Career",
    "Relationships",
)
DEFAULT_CATEGORY = "Personal Growth"

FREQUENCIES = ("daily", "weekly", "monthly", "yearly")
DEFAULT_FREQUENCY = "weekly"

DEFAULT_UNIT = "times"


def today_iso() -> str:
    """Current calendar day as YYYY-MM-DD."""
    return date.today().isoformat()


def new_local_id() -> str:
    return f"local-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Goal:
    """A tracked resolution."""
    id: str
    title: str
    category: str = DEFAULT_CATEGORY
    target: float = 0
    current: float = 0
    unit: str = DEFAULT_UNIT
    frequency: str = DEFAULT_FREQUENCY
    streak: int = 0
    last_checkin: Optional[str] = None
    remote_id: Optional[str] = None

    def __post_init__(self):
        if self.current < 0:
            object.__setattr__(self, "current", 0)

    @property
    def is_local_only(self) -> bool:
        return self.remote_id is None

    @property
    def progress_pct(self) -> float:
        """Display percentage, capped at 100. Storage keeps the raw value."""
        if not self.target or self.target <= 0:
            return 0.0
        return min(self.current / self.target * 100, 100.0)

    def with_progress(self, delta: float, checkin_day: Optional[str] = None) -> Goal:
        """Apply a relative change to `current`, clamped at zero."""
        return replace(
            self,
            current=max(0, self.current + delta),
            last_checkin=checkin_day or today_iso(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Goal:
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class PendingUpdate:
    """A queued remote overwrite for an already-remote Goal."""
    target_remote_id: str
    fields: Dict[str, Any]
    enqueued_at: datetime = field(default_factory=datetime.now)
    queue_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "queue_id": self.queue_id,
            "target_remote_id": self.target_remote_id,
            "fields": dict(self.fields),
            "enqueued_at": self.enqueued_at.isoformat(),
        }


def demo_goals() -> List[Goal]:
    """Placeholder resolutions shown on first run when nothing else is available."""
    return [
        Goal(id="demo-1", title="Read 24 books", category="Personal Growth", target=24, current=3,
             unit="books", frequency="yearly", streak=12, last_checkin="2026-01-05"),
        Goal(id="demo-2", title="Exercise 4x per week", category="Health", target=4, current=3,
             unit="sessions", frequency="weekly", streak=8, last_checkin="2026-01-06"),
        Goal(id="demo-3", title="Save $10,000", category="Finance", target=10000, current=850,
             unit="dollars", frequency="yearly", streak=7, last_checkin="2026-01-01"),
        Goal(id="demo-4", title="Meditate daily", category="Wellness", target=7, current=7,
             unit="days", frequency="weekly", streak=21, last_checkin="2026-01-07"),
        Goal(id="demo-5", title="Learn Spanish", category="Personal Growth", target=30, current=12,
             unit="lessons", frequency="monthly", streak=5, last_checkin="2026-01-06"),
    ]
