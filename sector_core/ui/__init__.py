from .notices import Notifier, Navigator, LOGIN_PAGE
from .status_panel import render_connection_badge, render_pending_operations, render_diagnostics

__all__ = [
    "Notifier",
    "Navigator",
    "LOGIN_PAGE",
    "render_connection_badge",
    "render_pending_operations",
    "render_diagnostics",
]
