# =============================================================================
# sector_core/services/__init__.py
# Workflow Services
# =============================================================================
"""
Services layer: the business operations pages call.

    validation            -> form checks before any network call
    cycle_count           -> unique cycle-count candidates + collision retry
    sector_submit_service -> peritagem submission and stage transitions
"""

from .base_service import BaseService, ServiceResult
from .validation import validate_peritagem, find_services_without_photos, form_errors
from .cycle_count import generate_cycle_count, retry_on_collision
from .sector_submit_service import SectorSubmitService

__all__ = [
    "BaseService",
    "ServiceResult",
    "validate_peritagem",
    "find_services_without_photos",
    "form_errors",
    "generate_cycle_count",
    "retry_on_collision",
    "SectorSubmitService",
]
