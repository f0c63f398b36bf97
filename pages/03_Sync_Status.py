# =============================================================================
# 03_Sync_Status.py - Connection, session and offline queue
# =============================================================================
from __future__ import annotations
import streamlit as st

from sector_core.auth.authentication import require_authentication
from sector_core.auth.navigation import initialize_navigation
from sector_core.context import get_app_context
from sector_core.ui.status_panel import render_connection_badge, render_diagnostics, render_pending_operations
from sector_core.ui.theme import header

st.set_page_config(
    page_title="Sync Status - Sector Recovery Tracker",
    page_icon="🔄",
    layout="wide",
)

context = get_app_context()
require_authentication(context)
initialize_navigation(context)

header("Sync Status", "Connection health and operations waiting to be sent", icon="🔄")

monitor = context.monitor
queue = context.queue

# ============================================================================
# CONNECTION
# ============================================================================
col_status, col_actions = st.columns([2, 1])

with col_status:
    render_connection_badge(context)
    with st.expander("Details"):
        st.json(monitor.get_status_display())

with col_actions:
    if st.button("Check connection", use_container_width=True):
        monitor.refresh()
        st.rerun()
    if st.button("Refresh session", use_container_width=True):
        if context.guard.refresh_token():
            context.notifier.success("Session refreshed")
        else:
            context.notifier.error("Session could not be refreshed")
        st.rerun()
    if st.button("Run diagnostics", use_container_width=True):
        st.session_state["_diagnostics"] = monitor.run_diagnostics()

report = st.session_state.get("_diagnostics")
if report is not None:
    st.markdown("### Diagnostics")
    render_diagnostics(report)
    if not report.success and report.authenticated and st.button("Repair session"):
        if context.guard.force_auth_check():
            st.session_state.pop("_diagnostics", None)
            st.rerun()

# ============================================================================
# PENDING OPERATIONS
# ============================================================================
st.markdown("### Pending operations")
render_pending_operations(context)

if queue.has_pending_operations:
    disabled = monitor.is_offline or queue.is_syncing
    if st.button("Synchronize now", type="primary", disabled=disabled):
        with st.spinner("Synchronizing..."):
            result = queue.sync_pending_operations()
        if result.skipped:
            st.info("A synchronization is already running.")
        st.rerun()
