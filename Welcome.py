from __future__ import annotations
import streamlit as st

from sector_core.auth.authentication import check_authentication, initialize_session_state, login
from sector_core.auth.navigation import sign_out
from sector_core.context import get_app_context
from sector_core.errors import ConfigurationError, ErrorContext, handle_error
from sector_core.ui.status_panel import render_connection_badge
from sector_core.ui.theme import header

# ============================================================================
# PAGE CONFIGURATION
# ============================================================================
st.set_page_config(
    page_title="Sector Recovery Tracker - Login",
    page_icon="🛠️",
    layout="centered",
    initial_sidebar_state="collapsed",  # Hide sidebar until login
)

initialize_session_state()

try:
    context = get_app_context()
except ConfigurationError as e:
    handle_error(e, user_message="Supabase is not configured. Add [supabase] url and key to .streamlit/secrets.toml")
    st.stop()

header("Sector Recovery Tracker", "Peritagem, execution and final check of recovered sectors")

if st.session_state.pop("redirect_reason", None) == "session_expired":
    st.warning("Your session expired. Please log in again.")

if check_authentication():
    st.success(f"Signed in as {st.session_state.get('name')}")
    col1, col2 = st.columns(2)
    if col1.button("Go to dashboard", type="primary", use_container_width=True):
        st.switch_page("pages/01_Dashboard.py")
    if col2.button("Log out", use_container_width=True):
        sign_out(context, redirect=False)
        st.rerun()
    st.stop()

# ============================================================================
# LOGIN FORM
# ============================================================================
with st.form("login_form"):
    email = st.text_input("Email")
    password = st.text_input("Password", type="password")
    submitted = st.form_submit_button("Log in", type="primary", use_container_width=True)

if submitted:
    if not email or not password:
        st.error("Enter email and password")
    else:
        ok = None
        with ErrorContext("Sign-in", monitor=context.monitor,
                          user_message="Cannot reach the authentication server."):
            ok = login(context.client, email, password)
        if ok:
            context.monitor.check_session()
            st.switch_page("pages/01_Dashboard.py")
        elif ok is False:
            st.error("Invalid email or password")

with st.sidebar:
    render_connection_badge(context)
