"""
Authentication module for the Sector Recovery Tracker.

Email/password sign-in through Supabase Auth. The Supabase client keeps the
session (access + refresh token); st.session_state only mirrors who is
logged in so pages can render without a round trip.
"""

from typing import Optional

import streamlit as st

from sector_core.errors import FailureKind, classify_error, to_backend_error
from sector_core.logging import get_logger
from sector_core.offline.connection_manager import SessionStatus

logger = get_logger(__name__)

SESSION_KEYS = ("authenticated", "user_id", "email", "name")


# ==================== SESSION STATE ====================

def initialize_session_state():
    """
    Initialize session state variables for authentication.
    Call this at the start of your main app.
    """
    if "authenticated" not in st.session_state:
        st.session_state.authenticated = False

    for key in SESSION_KEYS[1:]:
        if key not in st.session_state:
            st.session_state[key] = None


def check_authentication() -> bool:
    """True when a user signed in during this browser session."""
    return st.session_state.get("authenticated", False)


def get_user_name() -> Optional[str]:
    if not check_authentication():
        return None
    return st.session_state.get("name")


def get_user_email() -> Optional[str]:
    if not check_authentication():
        return None
    return st.session_state.get("email")


# ==================== LOGIN / LOGOUT ====================

def login(client, email: str, password: str) -> bool:
    """
    Sign in with Supabase email/password.

    Returns:
        bool: True on success, False when the credentials are rejected

    Raises:
        BackendError: when the auth server cannot be reached
    """
    try:
        response = client.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as e:
        if classify_error(e) is FailureKind.NETWORK:
            raise to_backend_error(e, table="auth", action="login") from e
        logger.warning(f"Login rejected for {email}: {e}")
        return False

    user = getattr(response, "user", None)
    if user is None or getattr(response, "session", None) is None:
        logger.warning(f"Login for {email} returned no session")
        return False

    metadata = getattr(user, "user_metadata", None) or {}
    st.session_state.authenticated = True
    st.session_state.user_id = user.id
    st.session_state.email = user.email
    st.session_state.name = metadata.get("name") or user.email
    st.session_state.pop("redirect_reason", None)

    logger.info(f"User {user.email} logged in")
    return True


def logout_user(client=None):
    """
    Sign out of Supabase and clear session state.
    """
    if client is not None:
        try:
            client.auth.sign_out()
        except Exception as e:
            logger.warning(f"Sign-out request failed: {e}")

    for key in SESSION_KEYS:
        if key in st.session_state:
            del st.session_state[key]

    logger.info("User logged out")


# ==================== PAGE PROTECTION ====================

def require_authentication(context) -> None:
    """
    Page guard: send the user to the login page unless signed in.

    A user flagged as signed in whose token the monitor reports INVALID
    while online is logged out first.
    """
    initialize_session_state()

    if check_authentication():
        monitor = context.monitor
        if monitor.is_offline or monitor.check_session() is not SessionStatus.INVALID:
            return
        logger.info("Stored login has no valid session")
        logout_user(context.client)

    context.navigator.to_login()
