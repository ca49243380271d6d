from __future__ import annotations
import streamlit as st

from resolution_core.config import Settings, load_settings
from resolution_core.errors.handlers import keep_rendering, run_guarded
from resolution_core.logging import get_logger, setup_logging
from resolution_core.models import CATEGORIES, FREQUENCIES, DEFAULT_FREQUENCY, Goal
from resolution_core.notifications import CHECKIN_URL, reminder_from_query, resolve_click
from resolution_core.runtime import TrackerRuntime, create_runtime
from resolution_core.services import progress_figure, progress_frame, summarize

# ============================================================================
# PAGE CONFIGURATION
# ============================================================================
st.set_page_config(
    page_title="Resolution Tracker",
    page_icon="🎯",
    layout="centered",
)

logger = get_logger(__name__)


@st.cache_resource
def get_runtime() -> TrackerRuntime:
    setup_logging(log_to_file=True)
    settings = run_guarded(load_settings, fallback=Settings(), message="Using default settings")
    return create_runtime(settings)


runtime = get_runtime()
coordinator = runtime.coordinator


def run(coro):
    """Run a coordinator coroutine on the background loop and wait for it.

    Only for calls that touch local state; remote work is scheduled by the
    coordinator itself.
    """
    return runtime.loop.submit(coro)


# ============================================================================
# HEADER & STATUS
# ============================================================================

def render_status() -> None:
    status = coordinator.get_status_display()
    pending = status["pending_count"]
    pending_html = f" &middot; {pending} pending" if pending else ""
    st.markdown(
        f"""
        <div style="display:flex;align-items:center;gap:8px;font-size:0.9rem;color:#94A3B8;">
            <span style="width:10px;height:10px;border-radius:50%;background:{status['color']};
                         display:inline-block;"></span>
            <span>{status['text']}{pending_html}</span>
        </div>
        """,
        unsafe_allow_html=True,
    )
    if status["error"]:
        st.caption(status["error"])


st.title("🎯 Resolution Tracker")
render_status()

with st.sidebar:
    st.header("Sync")
    work_offline = st.toggle(
        "Work offline",
        value=runtime.connection.state.forced_offline,
        help="Queue changes locally and sync them when you go back online",
    )
    if work_offline != runtime.connection.state.forced_offline:
        runtime.connection.force_offline(work_offline)
        runtime.loop.call_soon(coordinator.on_connectivity_change, runtime.connection.is_online)
        st.rerun()

    if st.button("🔄 Refresh", use_container_width=True):
        runtime.loop.call_soon(coordinator.schedule_refresh)
        st.rerun()

    st.session_state["debug_mode"] = st.checkbox(
        "Show error details", value=st.session_state.get("debug_mode", False)
    )


# ============================================================================
# SUMMARY
# ============================================================================

goals = coordinator.goals
stats = summarize(goals)

col1, col2, col3 = st.columns(3)
col1.metric("Progress", f"{stats['total_progress']}%")
col2.metric("Done", stats["completed"])
col3.metric("Streak", f"{stats['max_streak']}d")


# ============================================================================
# CHECK-IN
# ============================================================================

def render_goal(goal: Goal) -> None:
    with st.container(border=True):
        left, minus, plus = st.columns([6, 1, 1])
        with left:
            badge = "" if goal.remote_id else " · local"
            st.markdown(f"**{goal.title}**  \n{goal.category} · {goal.frequency}{badge}")
            st.progress(goal.progress_pct / 100)
            st.caption(
                f"{goal.current:g} / {goal.target:g} {goal.unit} · "
                f"🔥 {goal.streak}d · last check-in {goal.last_checkin or 'never'}"
            )
        if minus.button("−", key=f"dec-{goal.id}"):
            run(coordinator.decrement(goal.id))
            st.rerun()
        if plus.button("+", key=f"inc-{goal.id}"):
            run(coordinator.increment(goal.id))
            st.rerun()


# Deep link from the reminder notification
if "action" in st.query_params:
    reminder = reminder_from_query(st.query_params)
    if resolve_click(st.query_params.get("action"), reminder) == CHECKIN_URL:
        st.toast(reminder.body, icon="✅")
    st.query_params.clear()

st.subheader("Check in")
if not goals:
    st.info("No resolutions yet. Add one below.")
for goal in goals:
    render_goal(goal)


# ============================================================================
# ADD RESOLUTION
# ============================================================================

with st.expander("➕ Add resolution"):
    with st.form("add_resolution", clear_on_submit=True):
        title = st.text_input("Resolution")
        c1, c2 = st.columns(2)
        category = c1.selectbox("Category", CATEGORIES)
        frequency = c2.selectbox("Frequency", FREQUENCIES, index=FREQUENCIES.index(DEFAULT_FREQUENCY))
        c3, c4 = st.columns(2)
        target = c3.number_input("Target", min_value=1.0, value=1.0, step=1.0)
        unit = c4.text_input("Unit", value="times")
        if st.form_submit_button("Add", use_container_width=True):
            created = run(coordinator.add_goal(title, category, target, unit or "times", frequency))
            if created is None:
                st.warning("Give your resolution a title")
            else:
                st.rerun()


# ============================================================================
# PROGRESS CHART
# ============================================================================

@keep_rendering(message="Could not draw the progress chart")
def render_chart(goals) -> None:
    df = progress_frame(goals)
    if df.empty:
        return
    st.subheader("Progress")
    st.plotly_chart(progress_figure(df), use_container_width=True)


render_chart(goals)
