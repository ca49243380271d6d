"""
Progress Service - dashboard statistics for the resolution list.

Turns the goal list into a DataFrame and derives the headline numbers shown
above the list (overall progress, completed count, best streak).
"""

from typing import Any, Dict, Iterable
import pandas as pd
import plotly.graph_objects as go

from resolution_core.models import Goal

# =============================================================================
# CONSTANTS
# =============================================================================

FRAME_COLUMNS = [
    "id", "title", "category", "current", "target", "unit",
    "frequency", "streak", "last_checkin", "synced", "progress_pct",
]

CATEGORY_COLORS = {
    "Personal Growth": "#6366F1",
    "Health": "#22C55E",
    "Finance": "#F59E0B",
    "Wellness": "#EC4899",
    "Career": "#0EA5E9",
    "Relationships": "#EF4444",
}


def progress_frame(goals: Iterable[Goal]) -> pd.DataFrame:
    """One row per goal, with display progress capped at 100%."""
    rows = [
        {
            "id": g.id,
            "title": g.title,
            "category": g.category,
            "current": g.current,
            "target": g.target,
            "unit": g.unit,
            "frequency": g.frequency,
            "streak": g.streak,
            "last_checkin": g.last_checkin,
            "synced": g.remote_id is not None,
            "progress_pct": g.progress_pct,
        }
        for g in goals
    ]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def summarize(goals: Iterable[Goal]) -> Dict[str, Any]:
    """
    Headline statistics.

    Returns:
        Dict with total_progress (rounded mean %), completed, max_streak, count
    """
    df = progress_frame(goals)
    if df.empty:
        return {"total_progress": 0, "completed": 0, "max_streak": 0, "count": 0}

    # Half-up rounding; progress values are never negative
    total_progress = int(df["progress_pct"].mean() + 0.5)

    return {
        "total_progress": total_progress,
        "completed": int((df["progress_pct"] >= 100).sum()),
        "max_streak": int(df["streak"].max()),
        "count": len(df),
    }


def progress_figure(df: pd.DataFrame) -> go.Figure:
    """Horizontal bar chart of progress per goal, coloured by category."""
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=df["progress_pct"],
        y=df["title"],
        orientation="h",
        marker_color=[CATEGORY_COLORS.get(c, "#64748B") for c in df["category"]],
        text=[f"{p:.0f}%" for p in df["progress_pct"]],
        textposition="auto",
        hovertemplate="%{y}: %{x:.0f}%<extra></extra>",
    ))
    fig.update_layout(
        xaxis=dict(range=[0, 100], title="Progress (%)"),
        yaxis=dict(autorange="reversed"),
        height=max(240, 48 * len(df)),
        margin=dict(l=10, r=10, t=30, b=10),
        showlegend=False,
    )
    return fig
