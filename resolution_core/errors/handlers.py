# =============================================================================
# resolution_core/errors/handlers.py
# Reporting Errors in the Streamlit Page
# =============================================================================
"""
Nothing that goes wrong while talking to Notion or the disk may stop the page
from rendering. Recoverable problems surface as a passive toast next to the
sync indicator; only configuration problems get an inline error box.
"""

from __future__ import annotations
import functools
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TypeVar
import streamlit as st

from resolution_core.logging import get_logger
from .exceptions import ResolutionTrackerError

logger = get_logger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class ErrorReport:
    code: str
    message: str
    recoverable: bool = True
    details: Dict[str, Any] = field(default_factory=dict)


def describe_error(error: Exception, user_message: Optional[str] = None) -> ErrorReport:
    """Normalize any exception into what the page shows and the log records."""
    if isinstance(error, ResolutionTrackerError):
        return ErrorReport(
            code=error.code,
            message=user_message or error.message,
            recoverable=error.recoverable,
            details=dict(error.details),
        )
    return ErrorReport(
        code="UNEXPECTED",
        message=user_message or f"{error.__class__.__name__}: {error}",
        details={"traceback": traceback.format_exc()},
    )


def report_error(error: Exception, user_message: Optional[str] = None, show: bool = True) -> ErrorReport:
    """
    Log an error and surface it in the page.

    Args:
        error: The exception raised
        user_message: Replaces the exception's own message in the page
        show: False to only log
    """
    report = describe_error(error, user_message)
    logger.error(f"[{report.code}] {report.message}", exc_info=not report.recoverable)

    if not show:
        return report

    if report.recoverable:
        st.toast(report.message, icon="⚠️")
    else:
        st.error(f"Configuration problem: {report.message}")

    if report.details and st.session_state.get("debug_mode"):
        with st.expander(f"Details ({report.code})"):
            st.json(report.details)
    return report


def run_guarded(
    func: Callable[..., R],
    *args,
    fallback: Optional[R] = None,
    message: Optional[str] = None,
    **kwargs,
) -> Optional[R]:
    """
    Call `func`, reporting any failure and returning `fallback` instead.

    Usage:
        settings = run_guarded(load_settings, fallback=Settings())
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        report_error(e, user_message=message)
        return fallback


def keep_rendering(fallback: Any = None, message: Optional[str] = None):
    """
    Decorator for page sections: a failing section is replaced by a toast.

    Usage:
        @keep_rendering(message="Could not draw the progress chart")
        def render_chart(goals):
            ...
    """
    def decorator(render: Callable[..., R]) -> Callable[..., Optional[R]]:
        @functools.wraps(render)
        def wrapper(*args, **kwargs):
            try:
                return render(*args, **kwargs)
            except Exception as e:
                report_error(e, user_message=message, show=message is not None)
                return fallback
        return wrapper
    return decorator
