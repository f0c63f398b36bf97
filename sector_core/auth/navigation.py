"""
Sidebar helpers shared by every page: user info, connection badge and logout.
"""

import streamlit as st

from sector_core.auth.authentication import get_user_name, logout_user
from sector_core.context import reset_app_context
from sector_core.ui.status_panel import render_connection_badge


def sign_out(context, redirect: bool = True):
    """
    End the browser session: Supabase sign-out, session state cleared and
    the context's polling thread stopped. Queued operations stay on disk.
    """
    navigator = context.navigator
    logout_user(context.client)
    reset_app_context()
    if redirect:
        navigator.to_login()


def add_logout_button(context):
    """
    Show the signed-in user and a logout button in the sidebar.
    """
    with st.sidebar:
        name = get_user_name()
        if name:
            st.caption(f"Signed in as **{name}**")
        if st.button("Log out", key="sidebar_logout", use_container_width=True):
            sign_out(context)


def initialize_navigation(context):
    """
    Initialize the sidebar.
    Call this at the start of every protected page.
    """
    with st.sidebar:
        render_connection_badge(context)
    add_logout_button(context)
