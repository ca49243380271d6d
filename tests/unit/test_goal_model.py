# =============================================================================
# tests/unit/test_goal_model.py
# Unit Tests for the Goal Record
# =============================================================================

import pytest

from resolution_core.models import Goal, PendingUpdate, demo_goals, new_local_id


class TestGoalProgress:
    """Test clamping and display percentage"""

    def test_decrement_at_zero_stays_zero(self):
        goal = Goal(id="g", title="Read", target=10, current=0)
        assert goal.with_progress(-1, "2026-01-10").current == 0

    def test_negative_current_is_clamped_on_construction(self):
        assert Goal(id="g", title="Read", target=10, current=-5).current == 0

    def test_current_is_not_clamped_to_target(self):
        goal = Goal(id="g", title="Read", target=4, current=4).with_progress(3)
        assert goal.current == 7
        assert goal.progress_pct == 100.0

    def test_progress_pct_with_zero_target(self):
        assert Goal(id="g", title="Read", target=0, current=3).progress_pct == 0.0

    def test_with_progress_sets_checkin_day(self):
        goal = Goal(id="g", title="Read", target=10, current=2)
        updated = goal.with_progress(1, "2026-02-01")

        assert updated.current == 3
        assert updated.last_checkin == "2026-02-01"
        # Original is immutable
        assert goal.current == 2


class TestGoalSerialization:

    def test_from_dict_ignores_unknown_keys(self):
        goal = Goal.from_dict({"id": "g", "title": "Read", "notionPageId": "x"})
        assert goal.id == "g"
        assert goal.remote_id is None

    def test_to_dict_keeps_remote_id(self):
        goal = Goal(id="page-1", title="Run", remote_id="page-1")
        assert Goal.from_dict(goal.to_dict()) == goal

    def test_pending_update_to_dict(self):
        update = PendingUpdate(target_remote_id="page-1", fields={"current": 3})
        data = update.to_dict()
        assert data["target_remote_id"] == "page-1"
        assert data["fields"] == {"current": 3}
        assert data["queue_id"] is None


class TestDemoData:

    def test_five_local_only_placeholders(self):
        goals = demo_goals()
        assert len(goals) == 5
        assert all(g.remote_id is None for g in goals)
        assert [g.id for g in goals] == [f"demo-{i}" for i in range(1, 6)]

    def test_local_ids_are_unique(self):
        ids = {new_local_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(i.startswith("local-") for i in ids)
