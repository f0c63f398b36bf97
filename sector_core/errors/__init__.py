# =============================================================================
# sector_core/errors/__init__.py
# Centralized Error Handling for the Sector Recovery Tracker
# =============================================================================

from .exceptions import (
    FailureKind,
    SectorTrackerError,
    ValidationError,
    BackendError,
    CycleCountExhaustedError,
    SyncError,
    ConfigurationError,
)

from .classification import (
    classify_error,
    to_backend_error,
    describe,
)

from .handlers import (
    handle_error,
    ErrorContext,
)

__all__ = [
    # Exceptions
    "FailureKind",
    "SectorTrackerError",
    "ValidationError",
    "BackendError",
    "CycleCountExhaustedError",
    "SyncError",
    "ConfigurationError",
    # Classification
    "classify_error",
    "to_backend_error",
    "describe",
    # Handlers
    "handle_error",
    "ErrorContext",
]
