# =============================================================================
# tests/unit/test_authentication.py
# Unit Tests for login/logout, page guard and user notices
# =============================================================================

from types import SimpleNamespace

import httpx
import pytest

from sector_core.auth.authentication import (
    check_authentication,
    get_user_name,
    login,
    logout_user,
    require_authentication,
)
from sector_core.errors import BackendError
from sector_core.offline import HealthMonitor
from sector_core.ui.notices import Navigator, Notifier


def _sign_in_response(user_id="u1", email="tech@example.com", name="Ana"):
    user = SimpleNamespace(id=user_id, email=email, user_metadata={"name": name})
    return SimpleNamespace(user=user, session=SimpleNamespace(access_token="t"))


class TestLogin:

    def test_successful_login_fills_session_state(self, mock_streamlit, mock_supabase):
        mock_supabase.auth.sign_in_with_password.return_value = _sign_in_response()

        assert login(mock_supabase, "tech@example.com", "secret")

        mock_supabase.auth.sign_in_with_password.assert_called_once_with(
            {"email": "tech@example.com", "password": "secret"}
        )
        assert check_authentication()
        assert get_user_name() == "Ana"
        assert mock_streamlit.session_state["user_id"] == "u1"

    def test_rejected_credentials_return_false(self, mock_streamlit, mock_supabase):
        mock_supabase.auth.sign_in_with_password.side_effect = Exception("Invalid login credentials")

        assert not login(mock_supabase, "tech@example.com", "wrong")
        assert not check_authentication()

    def test_unreachable_server_raises(self, mock_streamlit, mock_supabase):
        request = httpx.Request("POST", "https://example.supabase.co/auth/v1/token")
        mock_supabase.auth.sign_in_with_password.side_effect = httpx.ConnectError("down", request=request)

        with pytest.raises(BackendError) as exc_info:
            login(mock_supabase, "tech@example.com", "secret")

        assert exc_info.value.is_network

    def test_logout_signs_out_and_clears_state(self, mock_streamlit, mock_supabase):
        mock_supabase.auth.sign_in_with_password.return_value = _sign_in_response()
        login(mock_supabase, "tech@example.com", "secret")

        logout_user(mock_supabase)

        mock_supabase.auth.sign_out.assert_called_once()
        assert not check_authentication()
        assert "user_id" not in mock_streamlit.session_state


class TestRequireAuthentication:

    @pytest.fixture
    def context(self, mock_supabase, settings, clock, navigator):
        monitor = HealthMonitor(
            mock_supabase, settings, clock=clock,
            internet_probe=lambda: True, backend_probe=lambda: True,
        )
        monitor.check_connection()
        return SimpleNamespace(client=mock_supabase, monitor=monitor, navigator=navigator)

    def test_anonymous_user_is_redirected(self, mock_streamlit, context, navigator):
        require_authentication(context)
        navigator.to_login.assert_called_once()

    def test_signed_in_user_with_valid_session_passes(self, mock_streamlit, context, navigator):
        mock_streamlit.session_state["authenticated"] = True

        require_authentication(context)
        navigator.to_login.assert_not_called()

    def test_signed_in_user_without_session_is_logged_out(self, mock_streamlit, context, navigator, mock_supabase):
        mock_streamlit.session_state["authenticated"] = True
        mock_supabase.auth.get_session.return_value = None

        require_authentication(context)

        navigator.to_login.assert_called_once()
        assert not check_authentication()

    def test_offline_user_keeps_working(self, mock_streamlit, context, navigator, mock_supabase):
        mock_streamlit.session_state["authenticated"] = True
        mock_supabase.auth.get_session.return_value = None
        context.monitor.mark_offline()

        require_authentication(context)
        navigator.to_login.assert_not_called()


class TestNotices:

    def test_notifier_uses_toast_icons(self, mock_streamlit):
        Notifier().success("Saved")
        mock_streamlit.toast.assert_called_once_with("Saved", icon="✅")

    def test_toast_failure_is_swallowed_into_log(self, mock_streamlit):
        mock_streamlit.toast.side_effect = RuntimeError("no script run context")
        Notifier().error("Failed")

    def test_navigator_switches_to_login(self, mock_streamlit):
        Navigator().to_login()

        mock_streamlit.switch_page.assert_called_once_with("Welcome.py")
        assert mock_streamlit.session_state["redirect_reason"] == "session_expired"
