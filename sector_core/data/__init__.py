from .models import (
    SectorStatus,
    CycleOutcome,
    PhotoType,
    PhotoUpload,
    ServiceSelection,
    PeritagemForm,
)
from .supabase_client import create_supabase_client, SupabaseService
from .sector_repository import SectorRepository, ENTITY_TABLES

__all__ = [
    "SectorStatus",
    "CycleOutcome",
    "PhotoType",
    "PhotoUpload",
    "ServiceSelection",
    "PeritagemForm",
    "create_supabase_client",
    "SupabaseService",
    "SectorRepository",
    "ENTITY_TABLES",
]
