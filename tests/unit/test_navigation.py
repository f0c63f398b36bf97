# =============================================================================
# tests/unit/test_navigation.py
# Unit Tests for sidebar logout and session teardown
# =============================================================================

import pytest

from sector_core.auth.navigation import add_logout_button, sign_out
from sector_core.context import SESSION_KEY, AppContext


@pytest.fixture
def context(settings, mock_supabase, clock, sleep, notifier, navigator):
    context = AppContext.create(
        settings,
        client=mock_supabase,
        notifier=notifier,
        navigator=navigator,
        clock=clock,
        sleep=sleep,
        internet_probe=lambda: True,
        backend_probe=lambda: True,
    )
    yield context
    context.dispose()


@pytest.fixture
def signed_in(mock_streamlit, context):
    """Browser session holding a started context and a logged-in user"""
    context.start()
    mock_streamlit.session_state.update({
        SESSION_KEY: context,
        "authenticated": True,
        "user_id": "user-1",
        "name": "Ana",
    })
    return mock_streamlit


class TestSignOut:

    def test_logout_stops_monitoring(self, signed_in, context, mock_supabase, navigator):
        assert context.monitor.is_monitoring

        sign_out(context)

        assert not context.monitor.is_monitoring
        assert SESSION_KEY not in signed_in.session_state
        assert "authenticated" not in signed_in.session_state
        mock_supabase.auth.sign_out.assert_called_once()
        navigator.to_login.assert_called_once()

    def test_logout_detaches_queue_from_monitor(self, signed_in, context):
        sign_out(context, redirect=False)

        assert context.queue._monitor is None
        assert not context.started

    def test_without_redirect_stays_on_page(self, signed_in, context, navigator):
        sign_out(context, redirect=False)
        navigator.to_login.assert_not_called()


class TestLogoutButton:

    def test_click_tears_down_session(self, signed_in, context, navigator):
        signed_in.button.return_value = True

        add_logout_button(context)

        assert not context.monitor.is_monitoring
        assert SESSION_KEY not in signed_in.session_state
        navigator.to_login.assert_called_once()

    def test_no_click_keeps_session(self, signed_in, context):
        signed_in.button.return_value = False

        add_logout_button(context)

        assert context.monitor.is_monitoring
        assert signed_in.session_state[SESSION_KEY] is context
