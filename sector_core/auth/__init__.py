"""
Authentication for the Sector Recovery Tracker.
Supabase email/password login, page guards and the session guard that keeps
backend calls authorized. Sidebar helpers live in
``sector_core.auth.navigation``, which depends on the application context.
"""

from .authentication import (
    initialize_session_state,
    check_authentication,
    get_user_name,
    get_user_email,
    login,
    logout_user,
    require_authentication,
)
from .session_guard import SessionGuard

__all__ = [
    "initialize_session_state",
    "check_authentication",
    "get_user_name",
    "get_user_email",
    "login",
    "logout_user",
    "require_authentication",
    "SessionGuard",
]
