# =============================================================================
# sector_core/ui/notices.py
# User notices (toasts) and login redirection
# =============================================================================

from __future__ import annotations
import streamlit as st

from sector_core.logging import get_logger

logger = get_logger(__name__)

LOGIN_PAGE = "Welcome.py"


class Notifier:
    """Short-lived user notices rendered as Streamlit toasts."""

    ICONS = {
        "info": "ℹ️",
        "success": "✅",
        "warning": "⚠️",
        "error": "❌",
    }

    def _show(self, level: str, message: str) -> None:
        logger.debug(f"notice[{level}] {message}")
        try:
            st.toast(message, icon=self.ICONS[level])
        except Exception as e:
            # Toasts only render inside a script run; background threads land here
            logger.info(f"Notice not rendered ({e}): {message}")

    def info(self, message: str) -> None:
        self._show("info", message)

    def success(self, message: str) -> None:
        self._show("success", message)

    def warning(self, message: str) -> None:
        self._show("warning", message)

    def error(self, message: str) -> None:
        self._show("error", message)


class Navigator:
    """Page redirection."""

    def __init__(self, login_page: str = LOGIN_PAGE):
        self.login_page = login_page

    def to_login(self) -> None:
        logger.info("Redirecting to login")
        st.session_state["redirect_reason"] = "session_expired"
        st.switch_page(self.login_page)
