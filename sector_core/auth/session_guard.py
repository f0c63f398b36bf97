# =============================================================================
# sector_core/auth/session_guard.py
# Token refresh and auth-aware execution of backend operations
# =============================================================================
"""
SessionGuard - keeps the Supabase session usable for backend operations.

- refresh_token(): throttled refresh with a short fixed retry schedule
- execute_with_auth_check(): retry an operation after refreshing when it
  fails with an auth error; other errors propagate untouched
- force_auth_check(): full connectivity + auth test with one refresh attempt
"""

from __future__ import annotations
import threading
import time
from typing import Callable, Optional, TypeVar

from sector_core.config import AppSettings
from sector_core.errors import FailureKind, classify_error
from sector_core.logging import get_logger
from sector_core.offline.connection_manager import HealthMonitor, SessionStatus

logger = get_logger(__name__)

T = TypeVar("T")


class SessionGuard:
    """
    Auth-retry wrapper bound to one client and health monitor.

    Usage:
        guard = SessionGuard(client, monitor, settings, notifier, navigator)
        rows = guard.execute_with_auth_check(lambda: repository.fetch_sectors())
    """

    def __init__(
        self,
        client,
        monitor: HealthMonitor,
        settings: AppSettings,
        notifier=None,
        navigator=None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._client = client
        self._monitor = monitor
        self._settings = settings
        self._notifier = notifier
        self._navigator = navigator
        self._clock = clock
        self._sleep = sleep
        self._last_refresh_attempt: Optional[float] = None
        self._refresh_lock = threading.Lock()

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_lock.locked()

    # -------------------------------------------------------------------------
    # Token refresh
    # -------------------------------------------------------------------------

    def refresh_token(self) -> bool:
        """
        Renew the access token.

        A call inside ``refresh_throttle`` seconds of the previous real
        attempt (or while one is running) reports success without touching
        the network. Failed attempts are retried after 1x, 2x, 3x
        ``refresh_backoff`` seconds; once retries run out the current session
        is re-checked and its validity reported.

        Returns:
            True if the session is usable after the call
        """
        now = self._clock()
        if (
            self._last_refresh_attempt is not None
            and now - self._last_refresh_attempt < self._settings.refresh_throttle
        ):
            logger.debug("Token refresh throttled")
            return True

        if not self._refresh_lock.acquire(blocking=False):
            logger.debug("Token refresh already running")
            return True

        try:
            self._last_refresh_attempt = now
            if not self._has_session():
                logger.info("No session to refresh")
                return False

            retries = self._settings.refresh_retries
            for attempt in range(retries + 1):
                if self._try_refresh(attempt + 1, retries + 1):
                    self._monitor.check_session()
                    return True
                if attempt < retries:
                    self._sleep(self._settings.refresh_backoff * (attempt + 1))

            logger.error(f"Token refresh failed after {retries + 1} attempts")
            return self._monitor.check_session() in (SessionStatus.VALID, SessionStatus.EXPIRING)
        finally:
            self._refresh_lock.release()

    def _has_session(self) -> bool:
        try:
            return self._client.auth.get_session() is not None
        except Exception as e:
            logger.warning(f"Session lookup failed before refresh: {e}")
            return False

    def _try_refresh(self, attempt: int, total: int) -> bool:
        try:
            response = self._client.auth.refresh_session()
        except Exception as e:
            logger.error(f"Token refresh attempt {attempt}/{total} failed: {e}")
            return False

        session = getattr(response, "session", None)
        if session is None:
            logger.error(f"Token refresh attempt {attempt}/{total} returned no session")
            return False

        expires_at = getattr(session, "expires_at", None)
        if expires_at is not None:
            minutes = int((expires_at - time.time()) // 60)
            logger.info(f"Token refreshed, expires in {minutes} minutes")
        else:
            logger.info("Token refreshed")
        return True

    # -------------------------------------------------------------------------
    # Auth-aware execution
    # -------------------------------------------------------------------------

    def execute_with_auth_check(
        self,
        operation: Callable[[], T],
        max_retries: Optional[int] = None,
        notify: bool = True,
        redirect: bool = True,
        success_message: Optional[str] = None,
    ) -> Optional[T]:
        """
        Run ``operation`` and recover from auth failures.

        Auth errors trigger a token refresh and a retry, at most
        ``max_retries`` extra times. Any other error is re-raised at once.

        Returns:
            The operation result, or None when the session could not be
            recovered (after the optional notice and login redirect)
        """
        retries = self._settings.auth_max_retries if max_retries is None else max_retries
        attempt = 0

        while True:
            try:
                result = operation()
            except Exception as e:
                if classify_error(e) is not FailureKind.AUTH:
                    raise
                if attempt >= retries:
                    logger.error(f"Auth error persisted after {retries} retries: {e}")
                    break
                attempt += 1
                logger.warning(f"Auth error, refreshing token (retry {attempt}/{retries}): {e}")
                if not self.refresh_token():
                    logger.error("Token refresh failed; giving up")
                    break
                continue

            if success_message and notify and self._notifier is not None:
                self._notifier.success(success_message)
            return result

        self._session_expired(notify, redirect)
        return None

    def force_auth_check(self) -> bool:
        """
        Internet, backend and token must all be good.

        Unauthenticated users are sent to login; an authenticated user with
        a rejected token gets one refresh attempt and a re-test.
        """
        report = self._monitor.run_diagnostics()
        if report.success:
            return True

        if not report.internet or not report.backend:
            self._notify("error", f"Connection error: {'; '.join(report.errors)}")
            return False

        if not report.authenticated:
            self._session_expired(notify=True, redirect=True)
            return False

        logger.warning("Token rejected; attempting one refresh")
        if not self.refresh_token():
            self._session_expired(notify=True, redirect=False)
            return False

        return self._monitor.run_diagnostics().success

    def _session_expired(self, notify: bool, redirect: bool) -> None:
        if notify:
            self._notify("error", "Session expired. Please log in again.")
        if redirect and self._navigator is not None:
            self._navigator.to_login()

    def _notify(self, level: str, message: str) -> None:
        if self._notifier is not None:
            getattr(self._notifier, level)(message)
