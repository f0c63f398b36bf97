# =============================================================================
# tests/helpers.py
# Test doubles shared by unit and integration tests
# =============================================================================

import time
from types import SimpleNamespace


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stands in for time.sleep; records requested delays without waiting."""

    def __init__(self, clock: FakeClock = None):
        self.calls = []
        self.clock = clock

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


def make_session(clock, expires_in: float = 3600, user_id: str = "user-1"):
    """Supabase-like session expiring ``expires_in`` seconds after ``clock()``."""
    return SimpleNamespace(
        access_token="access-token",
        refresh_token="refresh-token",
        expires_at=clock() + expires_in,
        user=SimpleNamespace(id=user_id, email="tech@example.com"),
    )


class FakeAuthError(Exception):
    """Looks like a PostgREST JWT rejection"""

    def __init__(self, message="JWT expired"):
        super().__init__(message)
        self.code = "PGRST301"
        self.message = message


class FakeDuplicateKeyError(Exception):
    """Looks like a Postgres unique violation"""

    def __init__(self, message='duplicate key value violates unique constraint "sectors_tag_cycle_key"'):
        super().__init__(message)
        self.code = "23505"
        self.message = message


def wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FakeSessionState(dict):
    """dict with attribute access, like st.session_state"""

    def __getattr__(self, key):
        try:
            return self[key]
        except KeyError as e:
            raise AttributeError(key) from e

    def __setattr__(self, key, value):
        self[key] = value

    def __delattr__(self, key):
        del self[key]
