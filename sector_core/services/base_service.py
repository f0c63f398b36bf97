# =============================================================================
# sector_core/services/base_service.py
# Result container and shared plumbing for workflow services
# =============================================================================

from __future__ import annotations
from abc import ABC
from typing import Optional, Dict, Any
from dataclasses import dataclass

from sector_core.logging import get_logger, LogContext
from sector_core.errors import BackendError, SectorTrackerError, handle_error


@dataclass
class ServiceResult:
    """
    Outcome of a workflow operation, safe to hand to a page.

    ``queued`` marks a write that could not reach the backend and was
    stored in the offline queue instead; it still counts as success.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    queued: bool = False

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None, metadata: Dict[str, Any] = None) -> ServiceResult:
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def deferred(cls, data: Any = None, metadata: Dict[str, Any] = None) -> ServiceResult:
        """Write parked in the offline queue"""
        return cls(success=True, data=data, metadata=metadata, queued=True)

    @classmethod
    def fail(cls, error: str, error_code: str = "UNKNOWN", metadata: Dict[str, Any] = None) -> ServiceResult:
        return cls(success=False, error=error, error_code=error_code, metadata=metadata)

    @classmethod
    def from_exception(cls, e: Exception) -> ServiceResult:
        if isinstance(e, BackendError):
            return cls.fail(e.message, e.code, {**e.details, "kind": e.kind.value})
        if isinstance(e, SectorTrackerError):
            return cls.fail(e.message, e.code, e.details)
        return cls.fail(str(e), "EXCEPTION")


class BaseService(ABC):
    """
    Base class for services that write to the backend on behalf of a page.

    Services never render; user feedback goes through the optional
    notifier (toasts) so the same code runs from the polling thread.
    """

    def __init__(self, notifier=None):
        self.logger = get_logger(self.__class__.__name__)
        self.notifier = notifier

    def log_operation(self, operation: str) -> LogContext:
        """Timing/status log around one operation"""
        return LogContext(self.logger, operation)

    def notify(self, level: str, message: str) -> None:
        if self.notifier is not None:
            getattr(self.notifier, level)(message)

    def report_failure(self, error: Exception, notice: str) -> ServiceResult:
        """Log ``error``, show ``notice`` and convert it into a failed result."""
        handle_error(error, show_user_message=False)
        self.notify("error", notice)
        return ServiceResult.from_exception(error)
