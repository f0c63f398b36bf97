# =============================================================================
# 01_Dashboard.py - Sectors by workflow stage
# =============================================================================
from __future__ import annotations
import streamlit as st
import plotly.express as px

from sector_core.auth.authentication import require_authentication
from sector_core.auth.navigation import initialize_navigation
from sector_core.context import get_app_context
from sector_core.errors import ErrorContext
from sector_core.ui.theme import STATUS_COLORS, STATUS_LABELS, add_grid, header

st.set_page_config(
    page_title="Dashboard - Sector Recovery Tracker",
    page_icon="📊",
    layout="wide",
)

# ============================================================================
# AUTHENTICATION CHECK
# ============================================================================
context = get_app_context()
require_authentication(context)
initialize_navigation(context)

header("Dashboard", "Sectors by workflow stage", icon="📊")


def load_counts():
    return context.guard.execute_with_auth_check(context.repository.count_by_status)


if context.monitor.is_offline:
    st.warning("Offline: the dashboard shows no live data until the connection is back.")
    st.stop()

counts = None
with ErrorContext("Loading sectors", monitor=context.monitor) as load:
    counts = load_counts()

if load.failed or counts is None:
    st.stop()

counts["label"] = counts["status"].map(STATUS_LABELS)

# ============================================================================
# KPI ROW
# ============================================================================
total = int(counts["count"].sum())
by_status = dict(zip(counts["status"], counts["count"]))
in_progress = total - by_status.get("concluido", 0) - by_status.get("sucateado", 0)

col1, col2, col3, col4 = st.columns(4)
col1.metric("Total sectors", total)
col2.metric("In progress", int(in_progress))
col3.metric("Completed", int(by_status.get("concluido", 0)))
col4.metric("Scrapped", int(by_status.get("sucateado", 0)))

# ============================================================================
# STATUS CHART
# ============================================================================
fig = px.bar(
    counts,
    x="label",
    y="count",
    color="status",
    color_discrete_map=STATUS_COLORS,
    labels={"label": "Stage", "count": "Sectors"},
    text="count",
)
fig.update_layout(showlegend=False, height=420)
st.plotly_chart(add_grid(fig), use_container_width=True)

with st.expander("Counts table"):
    st.dataframe(counts[["label", "count"]], use_container_width=True, hide_index=True)
