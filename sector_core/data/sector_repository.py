# =============================================================================
# sector_core/data/sector_repository.py
# Sector / cycle / service persistence on Supabase
# =============================================================================

from __future__ import annotations
import mimetypes
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import pandas as pd

from sector_core.data.models import CycleOutcome, PeritagemForm, PhotoUpload, SectorStatus, ServiceSelection
from sector_core.data.supabase_client import SupabaseService
from sector_core.errors import SyncError, to_backend_error
from sector_core.offline.pending_queue import EntityType, OperationType, PendingOperation

logger = logging.getLogger(__name__)

# Queue entity type -> Supabase table
ENTITY_TABLES = {
    EntityType.SECTOR: "sectors",
    EntityType.CYCLE: "cycles",
    EntityType.SERVICE: "cycle_services",
}

# Queued cycle updates carry the sector id here; the target is its latest cycle
LATEST_CYCLE_OF = "latest_cycle_of"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SectorRepository:
    """
    Data access for the recovery workflow tables.

    Tables: sectors, cycles, cycle_services, photos, service_types
    Storage: one public bucket for photos
    """

    def __init__(self, client, photo_bucket: str = "sector-photos"):
        self.client = client
        self.photo_bucket = photo_bucket
        self.sectors = SupabaseService("sectors", client)
        self.cycles = SupabaseService("cycles", client)
        self.cycle_services = SupabaseService("cycle_services", client)
        self.photos = SupabaseService("photos", client)
        self.service_types = SupabaseService("service_types", client)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def fetch_sectors(self) -> pd.DataFrame:
        """All sectors ordered by tag number."""
        return self.sectors.fetch_all(order_by="tag_number")

    def count_by_status(self) -> pd.DataFrame:
        """Sector counts per workflow stage, every stage present."""
        df = self.fetch_sectors()
        order = [status.value for status in SectorStatus]
        if df.empty or "current_status" not in df.columns:
            counts = pd.Series(0, index=order)
        else:
            counts = df["current_status"].value_counts().reindex(order, fill_value=0)
        return counts.rename_axis("status").reset_index(name="count")

    def fetch_service_types(self) -> List[Dict[str, Any]]:
        return self.service_types.select({}, columns="id,name,description", order_by="name")

    def latest_cycle_id(self, sector_id: str) -> Optional[str]:
        rows = self.cycles.select(
            {"sector_id": sector_id}, columns="id", order_by="created_at", ascending=False, limit=1
        )
        return rows[0]["id"] if rows else None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert_sector(
        self,
        tag_number: str,
        cycle_count: int,
        status: SectorStatus,
        tag_photo_url: Optional[str] = None,
        outcome: CycleOutcome = CycleOutcome.EM_ANDAMENTO,
    ) -> str:
        """Insert a sector row; (tag_number, cycle_count) is unique."""
        rows = self.sectors.insert({
            "tag_number": tag_number,
            "tag_photo_url": tag_photo_url,
            "cycle_count": cycle_count,
            "current_status": status.value,
            "current_outcome": outcome.value,
            "updated_at": _now_iso(),
        })
        return rows[0]["id"]

    def update_sector(self, sector_id: str, fields: Dict[str, Any]) -> None:
        self.sectors.update({"id": sector_id}, {**fields, "updated_at": _now_iso()})

    def insert_cycle(
        self,
        sector_id: str,
        form: PeritagemForm,
        status: SectorStatus,
        outcome: CycleOutcome = CycleOutcome.EM_ANDAMENTO,
    ) -> str:
        rows = self.cycles.insert({
            "sector_id": sector_id,
            "tag_number": form.tag_number,
            "entry_invoice": form.entry_invoice,
            "entry_date": form.entry_date.isoformat() if form.entry_date else None,
            "peritagem_date": datetime.now(timezone.utc).date().isoformat(),
            "entry_observations": form.entry_observations,
            "production_completed": False,
            "status": status.value,
            "outcome": outcome.value,
        })
        return rows[0]["id"]

    def insert_cycle_services(self, cycle_id: str, services: List[ServiceSelection]) -> None:
        rows = [
            {
                "cycle_id": cycle_id,
                "service_id": service.service_id,
                "selected": True,
                "quantity": service.quantity,
                "observations": service.observations,
                "completed": False,
            }
            for service in services
        ]
        if rows:
            self.cycle_services.insert(rows)

    def insert_photos(self, cycle_id: str, photos: List[Dict[str, Any]]) -> None:
        rows = [{"cycle_id": cycle_id, **photo} for photo in photos]
        if rows:
            self.photos.insert(rows)

    def update_sector_status(
        self,
        sector_id: str,
        status: SectorStatus,
        outcome: CycleOutcome = CycleOutcome.EM_ANDAMENTO,
        cycle_fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Move a sector and its latest cycle to a new stage."""
        self.update_sector(sector_id, {"current_status": status.value, "current_outcome": outcome.value})
        self.update_latest_cycle(
            sector_id, {**(cycle_fields or {}), "status": status.value, "outcome": outcome.value}
        )

    def update_latest_cycle(self, sector_id: str, fields: Dict[str, Any]) -> Optional[str]:
        """Update the most recent cycle of a sector; returns its id, None when there is none."""
        cycle_id = self.latest_cycle_id(sector_id)
        if cycle_id is None:
            logger.warning(f"Sector {sector_id} has no cycle to update")
            return None

        self.cycles.update({"id": cycle_id}, {**fields, "updated_at": _now_iso()})
        return cycle_id

    def upload_photo(self, photo: PhotoUpload, folder: str) -> str:
        """Upload photo bytes to storage and return the public URL."""
        if photo.url:
            return photo.url

        path = f"{folder}/{uuid.uuid4().hex}_{photo.filename}"
        content_type = mimetypes.guess_type(photo.filename)[0] or "image/jpeg"
        bucket = self.client.storage.from_(self.photo_bucket)
        try:
            bucket.upload(path, photo.content, {"content-type": content_type})
            url = bucket.get_public_url(path)
        except Exception as e:
            raise to_backend_error(e, table=self.photo_bucket, action="upload") from e

        photo.url = url
        return url

    # -------------------------------------------------------------------------
    # Offline queue executor
    # -------------------------------------------------------------------------

    def apply_pending_operation(self, op: PendingOperation) -> bool:
        """Replay one queued write. Raises BackendError on failure."""
        table = ENTITY_TABLES.get(op.entity_type)
        if table is None:
            raise SyncError(f"No table for entity type {op.entity_type}", entity_type=str(op.entity_type))

        service = SupabaseService(table, self.client)
        data = dict(op.data)
        sector_id = data.pop(LATEST_CYCLE_OF, None)

        if sector_id is not None and op.operation is OperationType.UPDATE:
            if self.update_latest_cycle(sector_id, data) is None:
                raise SyncError(f"Sector {sector_id} has no cycle for the queued update", entity_type="cycle")
        elif op.operation is OperationType.CREATE:
            service.insert({**data, "id": op.id})
        elif op.operation is OperationType.UPDATE:
            service.update({"id": op.id}, data)
        elif op.operation is OperationType.DELETE:
            service.delete({"id": op.id})
        else:
            raise SyncError(f"Unsupported operation {op.operation}", operation=str(op.operation))

        logger.info(f"Applied queued {op.operation.value} on {table} {op.id}")
        return True
