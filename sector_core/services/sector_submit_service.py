# =============================================================================
# sector_core/services/sector_submit_service.py
# Peritagem submission and workflow stage transitions
# =============================================================================

from __future__ import annotations
import random
import time
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sector_core.auth.session_guard import SessionGuard
from sector_core.config import AppSettings
from sector_core.data.models import CycleOutcome, PeritagemForm, PhotoType, SectorStatus
from sector_core.data.sector_repository import LATEST_CYCLE_OF, SectorRepository
from sector_core.errors import FailureKind, ValidationError, classify_error, describe
from sector_core.offline.connection_manager import HealthMonitor, SessionStatus
from sector_core.offline.pending_queue import EntityType, OfflineQueue, OperationType
from sector_core.services.base_service import BaseService, ServiceResult
from sector_core.services.cycle_count import generate_cycle_count, retry_on_collision
from sector_core.services.validation import validate_peritagem


class SectorSubmitService(BaseService):
    """
    Writes the recovery workflow to the backend.

    Every backend call runs through the session guard. When a write to an
    existing sector fails with a network error the change is parked in the
    offline queue and the result is flagged ``queued``.

    Usage:
        service = SectorSubmitService(repository, guard, monitor, queue, settings)
        result = service.submit_peritagem(form)
        if result.queued:
            st.info("Saved offline")
    """

    def __init__(
        self,
        repository: SectorRepository,
        guard: SessionGuard,
        monitor: HealthMonitor,
        queue: OfflineQueue,
        settings: AppSettings,
        notifier=None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(notifier)
        self.repository = repository
        self.guard = guard
        self.monitor = monitor
        self.queue = queue
        self.settings = settings
        self._sleep = sleep
        self._clock = clock
        self._rng = rng or random.Random()

    # -------------------------------------------------------------------------
    # Peritagem
    # -------------------------------------------------------------------------

    def submit_peritagem(self, form: PeritagemForm, sector_id: Optional[str] = None) -> ServiceResult:
        """
        Create a sector (new cycle) or update an existing one from the form.

        New sectors go straight to execution. Edits only write the status and
        cycle count the form carries; unset values keep the stored ones.
        """
        editing = sector_id is not None
        action = "Updating peritagem" if editing else "Registering peritagem"

        with self.log_operation(f"{action} for tag {form.tag_number}"):
            try:
                validate_peritagem(form)
            except ValidationError as e:
                self.logger.warning(f"Peritagem rejected: {e.message}")
                return ServiceResult.from_exception(e)

            if not self._has_session():
                self.notify("error", "Not authenticated")
                return ServiceResult.fail("Not authenticated", error_code="AUTH_001")

            if editing:
                status = form.status
                write = lambda: self._update_peritagem(sector_id, form)
            else:
                status = SectorStatus.EM_EXECUCAO
                write = lambda: self._create_peritagem(form, status)

            try:
                saved_id = self.guard.execute_with_auth_check(write)
            except Exception as e:
                if editing and classify_error(e) is FailureKind.NETWORK:
                    return self._queue_offline(sector_id, self._sector_fields(form), self._cycle_fields(form), e)
                if classify_error(e) is FailureKind.NETWORK:
                    self.monitor.mark_offline(str(e))
                return self.report_failure(e, f"Save failed: {e}")

            if saved_id is None:
                return ServiceResult.fail("Session expired", error_code="AUTH_001")

            self.notify("success", "Peritagem updated" if editing else "Peritagem registered")
            return ServiceResult.ok(saved_id, metadata={"status": status.value if status else None})

    def _has_session(self) -> bool:
        # Offline the token cannot be checked; let the write fail and queue.
        if self.monitor.is_offline:
            return True
        return self.monitor.check_session() is not SessionStatus.INVALID

    def _next_cycle_count(self, attempt: int) -> int:
        return generate_cycle_count(attempt, int(self._clock() * 1000), self._rng)

    def _create_peritagem(self, form: PeritagemForm, status: SectorStatus) -> str:
        photo_rows = self._upload_service_photos(form)

        def insert(cycle_count: int) -> str:
            sector_id = self.repository.insert_sector(
                form.tag_number, cycle_count, status, tag_photo_url=form.tag_photo_url
            )
            form.cycle_count = cycle_count
            return sector_id

        sector_id = retry_on_collision(
            insert,
            candidate=self._next_cycle_count,
            max_attempts=self.settings.cycle_count_max_attempts,
            base_delay=self.settings.cycle_count_base_delay,
            sleep=self._sleep,
            tag_number=form.tag_number,
        )

        cycle_id = self.repository.insert_cycle(sector_id, form, status)
        self.repository.insert_cycle_services(cycle_id, form.selected_services)
        if form.tag_photo_url:
            photo_rows.insert(0, {
                "service_id": None,
                "url": form.tag_photo_url,
                "type": PhotoType.TAG.value,
                "metadata": {"type": PhotoType.TAG.value},
            })
        self.repository.insert_photos(cycle_id, photo_rows)

        self.logger.info(f"Sector {sector_id} created with cycle count {form.cycle_count}")
        return sector_id

    def _update_peritagem(self, sector_id: str, form: PeritagemForm) -> str:
        self.repository.update_sector(sector_id, self._sector_fields(form))
        if form.status is not None:
            self.repository.update_sector_status(sector_id, form.status, cycle_fields=self._entry_fields(form))
        else:
            self.repository.update_latest_cycle(sector_id, self._entry_fields(form))
        return sector_id

    def _upload_service_photos(self, form: PeritagemForm) -> List[Dict[str, Any]]:
        rows = []
        for service in form.selected_services:
            for photo in service.photos:
                url = self.repository.upload_photo(photo, folder=f"{form.tag_number}/{service.service_id}")
                rows.append({
                    "service_id": service.service_id,
                    "url": url,
                    "type": photo.photo_type.value,
                    "metadata": {"service_name": service.name},
                })
        return rows

    @staticmethod
    def _sector_fields(form: PeritagemForm) -> Dict[str, Any]:
        fields = {"tag_number": form.tag_number, "tag_photo_url": form.tag_photo_url}
        if form.cycle_count is not None:
            fields["cycle_count"] = form.cycle_count
        if form.status is not None:
            fields["current_status"] = form.status.value
        return fields

    @staticmethod
    def _entry_fields(form: PeritagemForm) -> Dict[str, Any]:
        return {
            "tag_number": form.tag_number,
            "entry_invoice": form.entry_invoice,
            "entry_observations": form.entry_observations,
        }

    def _cycle_fields(self, form: PeritagemForm) -> Dict[str, Any]:
        fields = self._entry_fields(form)
        if form.status is not None:
            fields["status"] = form.status.value
        return fields

    # -------------------------------------------------------------------------
    # Stage transitions
    # -------------------------------------------------------------------------

    def complete_execution(self, sector_id: str) -> ServiceResult:
        """Production finished; the sector waits for final checking."""
        return self._transition(
            sector_id,
            SectorStatus.CHECAGEM_FINAL_PENDENTE,
            CycleOutcome.EM_ANDAMENTO,
            {"production_completed": True},
            "Production completed",
        )

    def complete_checagem(
        self,
        sector_id: str,
        exit_invoice: str,
        exit_date: Optional[date] = None,
        exit_observations: Optional[str] = None,
    ) -> ServiceResult:
        """Final check passed: the sector leaves as recovered."""
        if not exit_invoice.strip():
            return ServiceResult.from_exception(ValidationError("Exit invoice is required", field="exit_invoice"))

        return self._transition(
            sector_id,
            SectorStatus.CONCLUIDO,
            CycleOutcome.RECUPERADO,
            {
                "exit_invoice": exit_invoice,
                "exit_date": (exit_date or _today()).isoformat(),
                "exit_observations": exit_observations,
                "checagem_date": _today().isoformat(),
            },
            "Sector completed",
        )

    def mark_scrap_pending(self, sector_id: str, observations: str) -> ServiceResult:
        """Send a sector to scrap validation."""
        if not observations.strip():
            return ServiceResult.from_exception(
                ValidationError("Scrap reason is required", field="scrap_observations")
            )

        return self._transition(
            sector_id,
            SectorStatus.SUCATEADO_PENDENTE,
            CycleOutcome.EM_ANDAMENTO,
            {"scrap_observations": observations},
            "Sector sent to scrap validation",
        )

    def confirm_scrap(
        self,
        sector_id: str,
        return_invoice: Optional[str] = None,
        return_date: Optional[date] = None,
    ) -> ServiceResult:
        """Scrap validated: the sector is closed as scrapped."""
        return self._transition(
            sector_id,
            SectorStatus.SUCATEADO,
            CycleOutcome.SUCATEADO,
            {
                "scrap_validated": True,
                "scrap_return_invoice": return_invoice,
                "scrap_return_date": (return_date or _today()).isoformat(),
            },
            "Scrap confirmed",
        )

    def _transition(
        self,
        sector_id: str,
        status: SectorStatus,
        outcome: CycleOutcome,
        cycle_fields: Dict[str, Any],
        success_message: str,
    ) -> ServiceResult:
        def write() -> str:
            self.repository.update_sector_status(sector_id, status, outcome, cycle_fields)
            return sector_id

        with self.log_operation(f"Moving sector {sector_id} to {status.value}"):
            try:
                saved_id = self.guard.execute_with_auth_check(write)
            except Exception as e:
                if classify_error(e) is FailureKind.NETWORK:
                    return self._queue_offline(
                        sector_id,
                        {"current_status": status.value, "current_outcome": outcome.value},
                        {**cycle_fields, "status": status.value, "outcome": outcome.value},
                        e,
                    )
                return self.report_failure(e, f"{describe(classify_error(e))}: {e}")

            if saved_id is None:
                return ServiceResult.fail("Session expired", error_code="AUTH_001")

            self.notify("success", success_message)
            return ServiceResult.ok(saved_id, metadata={"status": status.value, "outcome": outcome.value})

    # -------------------------------------------------------------------------
    # Offline fallback
    # -------------------------------------------------------------------------

    def _queue_offline(
        self,
        sector_id: str,
        sector_fields: Dict[str, Any],
        cycle_fields: Dict[str, Any],
        error: Exception,
    ) -> ServiceResult:
        """
        Park a failed write: sector columns as a sector update, cycle columns
        as an update of the sector's latest cycle. Fields already queued for
        the same row are kept unless overwritten.
        """
        self.logger.warning(f"Network failure for sector {sector_id}, queueing update: {error}")
        self.monitor.mark_offline(str(error))
        self._queue_merged(
            sector_id, EntityType.SECTOR,
            {**sector_fields, "updated_at": datetime.now(timezone.utc).isoformat()},
        )
        if cycle_fields:
            self._queue_merged(sector_id, EntityType.CYCLE, {**cycle_fields, LATEST_CYCLE_OF: sector_id})
        return ServiceResult.deferred(sector_id, metadata={"status": sector_fields.get("current_status")})

    def _queue_merged(self, sector_id: str, entity_type: EntityType, fields: Dict[str, Any]) -> None:
        queued = next(
            (op for op in self.queue.pending_operations if op.key == (sector_id, entity_type)), None
        )
        data = {**queued.data, **fields} if queued is not None else fields
        self.queue.add_pending_operation(sector_id, OperationType.UPDATE, entity_type, data)


def _today() -> date:
    return datetime.now(timezone.utc).date()
