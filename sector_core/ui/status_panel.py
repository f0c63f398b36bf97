# =============================================================================
# sector_core/ui/status_panel.py
# Connection badge, diagnostics and pending-operations widgets
# =============================================================================

from __future__ import annotations
import streamlit as st

from sector_core.offline.connection_manager import ConnectionStatus, DiagnosticsReport, SessionStatus

_CONNECTION_BADGES = {
    ConnectionStatus.ONLINE: ("🟢", "Online"),
    ConnectionStatus.OFFLINE: ("🔴", "Offline"),
    ConnectionStatus.CHECKING: ("🟡", "Checking connection..."),
}

_SESSION_LABELS = {
    SessionStatus.VALID: "Session valid",
    SessionStatus.EXPIRING: "Session expiring soon",
    SessionStatus.INVALID: "Session invalid",
    SessionStatus.UNKNOWN: "Session not checked",
}


def render_connection_badge(context) -> None:
    """Compact connection + session indicator."""
    monitor = context.monitor
    status = ConnectionStatus.CHECKING if monitor.is_checking else monitor.status
    icon, label = _CONNECTION_BADGES[status]

    st.markdown(f"**{icon} {label}**")
    session_label = _SESSION_LABELS[monitor.session_status]
    if context.guard.is_refreshing:
        session_label = "Refreshing session..."
    st.caption(session_label)

    pending = len(context.queue)
    if pending:
        st.caption(f"⏳ {pending} pending operation(s)")
    if monitor.is_offline and monitor.state.error_message:
        st.caption(f"Last error: {monitor.state.error_message}")


def render_pending_operations(context) -> None:
    """Table of queued writes, oldest first."""
    df = context.queue.to_dataframe()
    if df.empty:
        st.info("No pending operations. Everything is synchronized.")
        return

    st.markdown(f"**{len(df)} operation(s) waiting for synchronization**")
    st.dataframe(df, use_container_width=True, hide_index=True)


def render_diagnostics(report: DiagnosticsReport) -> None:
    """Result of a full connectivity test."""
    checks = [
        ("Internet", report.internet),
        ("Supabase", report.backend),
        ("Authenticated", report.authenticated),
        ("Token accepted", report.token_valid),
    ]
    cols = st.columns(len(checks))
    for col, (label, ok) in zip(cols, checks):
        col.metric(label, "OK" if ok else "Fail")

    if report.expires_in_minutes is not None:
        st.caption(f"Token expires in {report.expires_in_minutes} minute(s)")

    if report.success:
        st.success("✅ All checks passed")
    else:
        for error in report.errors:
            st.error(f"❌ {error}")
