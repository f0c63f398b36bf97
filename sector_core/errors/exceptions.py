# =============================================================================
# sector_core/errors/exceptions.py
# Custom Exception Hierarchy for the Sector Recovery Tracker
# =============================================================================

from enum import Enum
from typing import Optional, Dict, Any


class FailureKind(Enum):
    """Closed set of backend failure variants downstream code switches on."""
    AUTH = "auth"
    NETWORK = "network"
    DUPLICATE_KEY = "duplicate_key"
    OTHER = "other"


class SectorTrackerError(Exception):
    """
    Base exception for all tracker errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "SYNC_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "ST_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# FORM / INPUT EXCEPTIONS
# =============================================================================

class ValidationError(SectorTrackerError):
    """Raised when a form is missing required fields or photos"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        missing: Optional[list] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if missing:
            details["missing"] = missing

        super().__init__(
            message=message,
            code="FORM_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# BACKEND EXCEPTIONS
# =============================================================================

class BackendError(SectorTrackerError):
    """
    Raised at the Supabase boundary. ``kind`` carries the classification so
    callers never have to re-inspect the message text.
    """

    CODES = {
        FailureKind.AUTH: "BACKEND_401",
        FailureKind.NETWORK: "BACKEND_NET",
        FailureKind.DUPLICATE_KEY: "BACKEND_23505",
        FailureKind.OTHER: "BACKEND_000",
    }

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.OTHER,
        table: Optional[str] = None,
        backend_code: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if table:
            details["table"] = table
        if backend_code:
            details["backend_code"] = backend_code

        super().__init__(
            message=message,
            code=self.CODES[kind],
            details=details,
            **kwargs,
        )
        self.kind = kind

    @property
    def is_auth(self) -> bool:
        return self.kind is FailureKind.AUTH

    @property
    def is_network(self) -> bool:
        return self.kind is FailureKind.NETWORK

    @property
    def is_duplicate_key(self) -> bool:
        return self.kind is FailureKind.DUPLICATE_KEY


class CycleCountExhaustedError(SectorTrackerError):
    """Raised when every cycle-count candidate collided with an existing row"""

    def __init__(
        self,
        message: str,
        attempts: Optional[int] = None,
        tag_number: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if attempts is not None:
            details["attempts"] = attempts
        if tag_number:
            details["tag_number"] = tag_number

        super().__init__(
            message=message,
            code="CYCLE_001",
            details=details,
            **kwargs,
        )


class SyncError(SectorTrackerError):
    """Raised when a queued operation cannot be applied to the backend"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        entity_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        if entity_type:
            details["entity_type"] = entity_type

        super().__init__(
            message=message,
            code="SYNC_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(SectorTrackerError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
