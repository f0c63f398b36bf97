# =============================================================================
# sector_core/errors/classification.py
# Mapping of SDK / transport exceptions onto FailureKind
# =============================================================================
"""
Backend error classification.

Supabase surfaces failures through several SDK layers (PostgREST ``APIError``,
GoTrue ``AuthApiError``, raw ``httpx`` transport errors). They are classified
once, where the SDK call is made, and re-raised as ``BackendError`` so the
rest of the application switches on ``BackendError.kind``.
"""

from __future__ import annotations
from typing import Optional

import httpx

from .exceptions import BackendError, FailureKind

AUTH_STATUS_CODES = {401, 403}

AUTH_ERROR_CODES = {
    "PGRST301",     # JWT expired
    "PGRST302",     # anonymous access disabled / missing bearer
    "invalid_jwt",
    "bad_jwt",
    "no_authorization",
    "session_not_found",
    "session_expired",
    "refresh_token_not_found",
    "refresh_token_already_used",
    "user_not_found",
}

AUTH_MESSAGE_MARKERS = ("jwt", "token", "auth")

DUPLICATE_KEY_CODE = "23505"
DUPLICATE_KEY_MARKER = "duplicate key"

NETWORK_EXCEPTIONS = (httpx.TransportError, ConnectionError, TimeoutError)


def _error_code(exc: Exception) -> Optional[str]:
    code = getattr(exc, "code", None)
    if code is None and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    return str(code) if code is not None else None


def _status_code(exc: Exception) -> Optional[int]:
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if value is not None:
            try:
                return int(value)
            except (TypeError, ValueError):
                continue
    response = getattr(exc, "response", None)
    if response is not None:
        return getattr(response, "status_code", None)
    return None


def _error_message(exc: Exception) -> str:
    message = getattr(exc, "message", None)
    if message is None and exc.args and isinstance(exc.args[0], dict):
        message = exc.args[0].get("message")
    return str(message if message is not None else exc)


def classify_error(exc: BaseException) -> FailureKind:
    """
    Return the FailureKind for any exception raised around a backend call.

    Already classified errors keep their kind.
    """
    if isinstance(exc, BackendError):
        return exc.kind

    # HTTP status errors are transport-level but carry a meaningful status
    if isinstance(exc, httpx.HTTPStatusError):
        if exc.response.status_code in AUTH_STATUS_CODES:
            return FailureKind.AUTH
        return FailureKind.OTHER

    if isinstance(exc, NETWORK_EXCEPTIONS):
        return FailureKind.NETWORK

    code = _error_code(exc)
    status = _status_code(exc)
    message = _error_message(exc).lower()

    if code == DUPLICATE_KEY_CODE or DUPLICATE_KEY_MARKER in message:
        return FailureKind.DUPLICATE_KEY

    if status in AUTH_STATUS_CODES or code in AUTH_ERROR_CODES:
        return FailureKind.AUTH
    if code is not None and code.isdigit() and int(code) in AUTH_STATUS_CODES:
        return FailureKind.AUTH
    if any(marker in message for marker in AUTH_MESSAGE_MARKERS):
        return FailureKind.AUTH

    # Socket-level failures not wrapped by httpx
    if isinstance(exc, OSError):
        return FailureKind.NETWORK

    return FailureKind.OTHER


def to_backend_error(exc: Exception, table: Optional[str] = None, action: str = "request") -> BackendError:
    """Wrap an SDK exception into a classified BackendError."""
    if isinstance(exc, BackendError):
        return exc

    kind = classify_error(exc)
    message = _error_message(exc)
    target = f" on {table}" if table else ""
    return BackendError(
        f"Backend {action}{target} failed: {message}",
        kind=kind,
        table=table,
        backend_code=_error_code(exc),
    )


def describe(kind: FailureKind) -> str:
    """Short user-facing description of a failure kind."""
    return {
        FailureKind.AUTH: "Session expired or invalid",
        FailureKind.NETWORK: "Server unreachable",
        FailureKind.DUPLICATE_KEY: "Duplicate record",
        FailureKind.OTHER: "Unexpected error",
    }[kind]

