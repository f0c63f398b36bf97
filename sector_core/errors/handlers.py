# =============================================================================
# sector_core/errors/handlers.py
# Page-level error reporting
# =============================================================================

from __future__ import annotations
from typing import Optional
import streamlit as st

from sector_core.logging import get_logger
from .classification import classify_error, describe
from .exceptions import FailureKind, SectorTrackerError

logger = get_logger(__name__)

# Short hints appended to backend failures shown on a page
KIND_HINTS = {
    FailureKind.NETWORK: "The connection is checked again automatically.",
    FailureKind.AUTH: "Sign in again if the problem persists.",
    FailureKind.DUPLICATE_KEY: "The record already exists.",
}


def handle_error(
    error: Exception,
    show_user_message: bool = True,
    user_message: Optional[str] = None,
) -> FailureKind:
    """
    Log an exception and, inside a script run, show it with st.error.

    Non-recoverable tracker errors (bad configuration) are rendered as
    critical. The failure kind is returned so callers can react to
    network loss without classifying the error again.
    """
    kind = classify_error(error)

    if isinstance(error, SectorTrackerError):
        message = user_message or error.message
        code = error.code
        recoverable = error.recoverable
        logger.error(f"[{code}] {message} {error.details}")
    else:
        message = user_message or f"{describe(kind)}: {error}"
        recoverable = True
        logger.error(f"[{kind.value}] {message}", exc_info=error)

    if show_user_message:
        if not recoverable:
            st.error(f"Critical error: {message}")
        else:
            hint = KIND_HINTS.get(kind)
            st.error(f"{message} {hint}" if hint else message)

        if st.session_state.get("debug_mode", False) and isinstance(error, SectorTrackerError):
            with st.expander("Error details", expanded=False):
                st.json(error.to_dict())

    return kind


class ErrorContext:
    """
    Error boundary for a block of page code.

    The error is logged and shown, the page keeps rendering, and
    ``failed`` tells the page to skip what depended on the block. A
    network failure also marks the health monitor offline.

    Usage:
        with ErrorContext("Loading sectors", monitor=context.monitor) as load:
            df = repository.fetch_sectors()
        if load.failed:
            st.stop()
    """

    def __init__(self, operation: str, monitor=None, user_message: Optional[str] = None):
        self.operation = operation
        self.monitor = monitor
        self.user_message = user_message
        self.failed = False
        self.kind: Optional[FailureKind] = None

    def __enter__(self) -> ErrorContext:
        logger.debug(f"{self.operation}: started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            logger.debug(f"{self.operation}: done")
            return False
        if not isinstance(exc_val, Exception):
            return False

        self.failed = True
        self.kind = handle_error(
            exc_val,
            user_message=self.user_message or f"{self.operation} failed: {exc_val}",
        )
        if self.kind is FailureKind.NETWORK and self.monitor is not None:
            self.monitor.mark_offline(f"{self.operation}: {exc_val}")
        return True
