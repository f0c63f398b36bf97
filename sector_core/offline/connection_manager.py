# =============================================================================
# sector_core/offline/connection_manager.py
# Connection and Session Health Monitoring
# =============================================================================
"""
HealthMonitor - estimates internet reachability, Supabase reachability and
authentication-token validity.

Features:
- Tri-state connection status (checking / online / offline)
- Session validity (unknown / valid / invalid / expiring)
- Reconnection probes throttled while offline
- One background polling thread per monitor, stopped explicitly
- Callbacks on connection status transitions

Every probe failure degrades to OFFLINE; nothing here raises to callers.
"""

from __future__ import annotations
import socket
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging

from sector_core.config import AppSettings

logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    """Connection status states."""
    CHECKING = "checking"       # Initial state, no probe finished yet
    ONLINE = "online"           # Internet + Supabase reachable
    OFFLINE = "offline"         # Either probe failed


class SessionStatus(Enum):
    """Authentication token states."""
    UNKNOWN = "unknown"
    VALID = "valid"
    INVALID = "invalid"
    EXPIRING = "expiring"


@dataclass
class ConnectionState:
    """Current connection state with metadata."""
    status: ConnectionStatus = ConnectionStatus.CHECKING
    session: SessionStatus = SessionStatus.UNKNOWN
    internet_available: bool = False
    backend_available: bool = False
    last_check: Optional[datetime] = None
    last_connection_attempt: Optional[float] = None
    last_online: Optional[datetime] = None
    consecutive_failures: int = 0
    error_message: Optional[str] = None


@dataclass
class DiagnosticsReport:
    """Result of a full connectivity and authentication test."""
    internet: bool = False
    backend: bool = False
    authenticated: bool = False
    token_valid: bool = False
    user_id: Optional[str] = None
    expires_in_minutes: Optional[int] = None
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.internet and self.backend and self.authenticated and self.token_valid

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "internet": self.internet,
            "backend": self.backend,
            "authenticated": self.authenticated,
            "token_valid": self.token_valid,
            "user_id": self.user_id,
            "expires_in_minutes": self.expires_in_minutes,
            "errors": list(self.errors),
        }


class HealthMonitor:
    """
    Connection and session monitor owned by one application context.

    Usage:
        monitor = HealthMonitor(client, settings)
        monitor.check_connection()
        monitor.start_monitoring()
        ...
        monitor.stop_monitoring()
    """

    INTERNET_HOSTS = [
        ("8.8.8.8", 53),        # Google DNS
        ("1.1.1.1", 53),        # Cloudflare DNS
        ("208.67.222.222", 53), # OpenDNS
    ]
    BACKEND_PROBE_TABLE = "service_types"
    TOKEN_PROBE_TABLE = "profiles"

    def __init__(
        self,
        client,
        settings: AppSettings,
        clock: Callable[[], float] = time.time,
        internet_probe: Optional[Callable[[], bool]] = None,
        backend_probe: Optional[Callable[[], bool]] = None,
    ):
        self._client = client
        self._settings = settings
        self._clock = clock
        self._internet_probe = internet_probe or self._check_internet
        self._backend_probe = backend_probe or self._check_backend

        self._state = ConnectionState()
        self._callbacks: List[Callable[[ConnectionState], None]] = []
        self._check_lock = threading.Lock()
        self._monitor_thread: Optional[threading.Thread] = None
        self._stop_monitoring = threading.Event()

    # -------------------------------------------------------------------------
    # State accessors
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def session_status(self) -> SessionStatus:
        return self._state.session

    @property
    def is_online(self) -> bool:
        return self._state.status is ConnectionStatus.ONLINE

    @property
    def is_offline(self) -> bool:
        return self._state.status is ConnectionStatus.OFFLINE

    @property
    def is_checking(self) -> bool:
        """True while a connection check is in flight."""
        return self._check_lock.locked()

    @property
    def is_monitoring(self) -> bool:
        return self._monitor_thread is not None and self._monitor_thread.is_alive()

    # -------------------------------------------------------------------------
    # Connection checks
    # -------------------------------------------------------------------------

    def check_connection(self) -> ConnectionStatus:
        """
        Probe internet then Supabase and update the status.

        While offline, a probe inside ``reconnect_gap`` seconds of the
        previous attempt returns the cached status. A check already in
        flight makes this return the current status immediately.

        Returns:
            ConnectionStatus.ONLINE or ConnectionStatus.OFFLINE
            (CHECKING only before the first probe completes)
        """
        now = self._clock()
        last_attempt = self._state.last_connection_attempt
        if (
            self._state.status is ConnectionStatus.OFFLINE
            and last_attempt is not None
            and now - last_attempt < self._settings.reconnect_gap
        ):
            logger.debug("Reconnection probe skipped: inside minimum gap")
            return self._state.status

        if not self._check_lock.acquire(blocking=False):
            return self._state.status

        try:
            self._state.last_connection_attempt = now
            self._state.last_check = datetime.now()

            internet_ok = self._safe_probe(self._internet_probe, "Internet")
            self._state.internet_available = internet_ok

            backend_ok = False
            if internet_ok:
                backend_ok = self._safe_probe(self._backend_probe, "Supabase")
            self._state.backend_available = backend_ok

            if internet_ok and backend_ok:
                self._state.last_online = datetime.now()
                self._state.consecutive_failures = 0
                self._state.error_message = None
                new_status = ConnectionStatus.ONLINE
            else:
                self._state.consecutive_failures += 1
                if not self._state.error_message:
                    self._state.error_message = (
                        "Supabase unreachable" if internet_ok else "No internet connection"
                    )
                new_status = ConnectionStatus.OFFLINE
        finally:
            self._check_lock.release()

        self._set_status(new_status)
        return new_status

    def _safe_probe(self, probe: Callable[[], bool], name: str) -> bool:
        try:
            return bool(probe())
        except Exception as e:
            self._state.error_message = f"{name} probe failed: {e}"
            logger.debug(f"{name} probe failed: {e}")
            return False

    def _check_internet(self) -> bool:
        """Check internet connectivity by opening a TCP socket to public DNS hosts."""
        for host, port in self.INTERNET_HOSTS:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            sock.settimeout(self._settings.probe_timeout)
            try:
                if sock.connect_ex((host, port)) == 0:
                    return True
            except OSError:
                continue
            finally:
                sock.close()

        return False

    def _check_backend(self) -> bool:
        """Low-privilege read against Supabase; any error means unreachable."""
        start = time.perf_counter()
        try:
            self._client.table(self.BACKEND_PROBE_TABLE).select("id").limit(1).execute()
        except Exception as e:
            self._state.error_message = str(e)
            logger.debug(f"Supabase check failed: {e}")
            return False

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"Supabase responded in {elapsed_ms:.0f}ms")
        return True

    def _set_status(self, new_status: ConnectionStatus) -> None:
        old_status = self._state.status
        self._state.status = new_status
        if old_status is not new_status:
            logger.info(f"Connection status changed: {old_status.value} -> {new_status.value}")
            self._notify_callbacks()

    def mark_offline(self, reason: str = "Request failed with a network error") -> None:
        """Record a network failure observed by a caller outside the probes."""
        self._state.internet_available = False
        self._state.backend_available = False
        self._state.error_message = reason
        self._state.last_connection_attempt = self._clock()
        self._set_status(ConnectionStatus.OFFLINE)

    # -------------------------------------------------------------------------
    # Session checks
    # -------------------------------------------------------------------------

    def check_session(self) -> SessionStatus:
        """
        Classify the current auth token.

        No session is INVALID; a token expiring within the threshold is
        EXPIRING; otherwise VALID. When the session lookup itself fails the
        policy is lenient: VALID if a user id can still be obtained, else
        INVALID.
        """
        try:
            session = self._client.auth.get_session()
        except Exception as e:
            logger.warning(f"Session lookup failed: {e}")
            status = SessionStatus.VALID if self.current_user_id() else SessionStatus.INVALID
        else:
            status = self._classify_session(session)

        self._state.session = status
        return status

    def _classify_session(self, session) -> SessionStatus:
        if session is None or not getattr(session, "access_token", None):
            return SessionStatus.INVALID

        expires_at = getattr(session, "expires_at", None)
        if expires_at is None:
            return SessionStatus.VALID

        remaining_ms = (expires_at - self._clock()) * 1000
        if remaining_ms < self._settings.session_expiry_threshold_ms:
            logger.info(f"Token expires in {int(remaining_ms // 60000)} minutes")
            return SessionStatus.EXPIRING
        return SessionStatus.VALID

    def current_user_id(self) -> Optional[str]:
        """User id from the auth server, or None when it cannot be obtained."""
        try:
            response = self._client.auth.get_user()
        except Exception as e:
            logger.debug(f"User lookup failed: {e}")
            return None
        user = getattr(response, "user", None)
        return getattr(user, "id", None)

    def probe_token(self) -> bool:
        """Authenticated read; False when the backend rejects the token."""
        try:
            self._client.table(self.TOKEN_PROBE_TABLE).select("id").limit(1).execute()
            return True
        except Exception as e:
            logger.warning(f"Token probe failed: {e}")
            return False

    def refresh(self) -> ConnectionState:
        """One polling tick: connection check followed by session check."""
        self.check_connection()
        self.check_session()
        return self._state

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def run_diagnostics(self) -> DiagnosticsReport:
        """Full connectivity test: internet, backend, session, token."""
        report = DiagnosticsReport()

        report.internet = self._safe_probe(self._internet_probe, "Internet")
        if not report.internet:
            report.errors.append("No internet connection")
            return report

        report.backend = self._safe_probe(self._backend_probe, "Supabase")
        if not report.backend:
            report.errors.append("Supabase server unavailable")
            return report

        try:
            session = self._client.auth.get_session()
        except Exception as e:
            session = None
            report.errors.append(f"Session lookup failed: {e}")

        user = getattr(session, "user", None)
        report.user_id = getattr(user, "id", None)
        report.authenticated = report.user_id is not None
        if not report.authenticated:
            report.errors.append("User not authenticated")
            return report

        expires_at = getattr(session, "expires_at", None)
        if expires_at is not None:
            report.expires_in_minutes = int((expires_at - self._clock()) // 60)

        report.token_valid = self.probe_token()
        if not report.token_valid:
            report.errors.append("Token rejected by the server")

        logger.info(f"Diagnostics finished: {report.as_dict()}")
        return report

    # -------------------------------------------------------------------------
    # Background polling
    # -------------------------------------------------------------------------

    def start_monitoring(self) -> None:
        """Start background polling (no-op if already running)."""
        if self.is_monitoring:
            return

        self._stop_monitoring.clear()
        self._monitor_thread = threading.Thread(
            target=self._monitoring_loop,
            daemon=True,
            name="HealthMonitor"
        )
        self._monitor_thread.start()
        logger.debug("Health monitoring started")

    def stop_monitoring(self) -> None:
        """Stop background polling and wait for the thread to exit."""
        self._stop_monitoring.set()
        if self._monitor_thread:
            self._monitor_thread.join(timeout=5)
        self._monitor_thread = None
        logger.debug("Health monitoring stopped")

    def _poll_interval(self) -> float:
        if self.is_online:
            return self._settings.online_poll_interval
        return self._settings.reconnect_gap

    def _monitoring_loop(self) -> None:
        while not self._stop_monitoring.is_set():
            if self._stop_monitoring.wait(timeout=self._poll_interval()):
                break

            if self.is_checking:
                continue

            try:
                self.refresh()
            except Exception as e:
                logger.error(f"Error in health check: {e}")

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------

    def register_callback(self, callback: Callable[[ConnectionState], None]) -> None:
        """Register a callback for connection status transitions."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[ConnectionState], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        for callback in list(self._callbacks):
            try:
                callback(self._state)
            except Exception as e:
                logger.error(f"Error in connection callback: {e}")

    def get_status_display(self) -> Dict[str, Any]:
        """Status information for UI display."""
        return {
            "status": self._state.status.value,
            "session": self._state.session.value,
            "is_online": self.is_online,
            "internet": self._state.internet_available,
            "supabase": self._state.backend_available,
            "last_check": self._state.last_check.isoformat() if self._state.last_check else None,
            "last_online": self._state.last_online.isoformat() if self._state.last_online else None,
            "failures": self._state.consecutive_failures,
            "error": self._state.error_message,
        }
