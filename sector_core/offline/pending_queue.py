# =============================================================================
# sector_core/offline/pending_queue.py
# Offline Operation Queue
# =============================================================================
"""
OfflineQueue - defers mutating operations while the backend is unreachable.

Features:
- One queued operation per (id, entity type); newer replaces older
- Mirrored to LocalStorage on every change (key removed when empty)
- Oldest-first flush, failures left queued for the next flush
- Automatic flush when the HealthMonitor reports the connection is back

Best effort only: no size cap, no retry limit, no conflict detection.
"""

from __future__ import annotations
import json
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

import pandas as pd

from sector_core.offline.connection_manager import ConnectionState, ConnectionStatus, HealthMonitor
from sector_core.offline.local_storage import LocalStorage

logger = logging.getLogger(__name__)

STORAGE_KEY = "pendingOperations"


class OperationType(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class EntityType(Enum):
    SECTOR = "sector"
    CYCLE = "cycle"
    SERVICE = "service"


@dataclass
class PendingOperation:
    """A deferred write against one backend row."""
    id: str
    operation: OperationType
    entity_type: EntityType
    data: Dict[str, Any]
    timestamp: int  # ms since epoch, FIFO ordering only

    @property
    def key(self) -> Tuple[str, EntityType]:
        return (self.id, self.entity_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "operation": self.operation.value,
            "entityType": self.entity_type.value,
            "data": self.data,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> PendingOperation:
        return cls(
            id=str(raw["id"]),
            operation=OperationType(raw["operation"]),
            entity_type=EntityType(raw["entityType"]),
            data=raw.get("data") or {},
            timestamp=int(raw["timestamp"]),
        )


@dataclass
class SyncReport:
    """Outcome of one flush."""
    succeeded: List[PendingOperation] = field(default_factory=list)
    failed: List[PendingOperation] = field(default_factory=list)
    skipped: bool = False

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)


class OfflineQueue:
    """
    Persistent FIFO of pending writes.

    Usage:
        queue = OfflineQueue(storage, repository.apply_pending_operation, notifier)
        queue.attach(monitor)
        queue.add_pending_operation("s1", "update", "sector", {"tag_number": "X"})
    """

    def __init__(
        self,
        storage: LocalStorage,
        executor: Callable[[PendingOperation], Any],
        notifier=None,
        clock: Callable[[], float] = time.time,
    ):
        self._storage = storage
        self._executor = executor
        self._notifier = notifier
        self._clock = clock
        self._operations: List[PendingOperation] = []
        self._sync_lock = threading.Lock()
        self._monitor: Optional[HealthMonitor] = None

        self._load()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load(self) -> None:
        raw = self._storage.get_item(STORAGE_KEY)
        if not raw:
            return

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Error loading pending operations: {e}")
            return

        if not isinstance(parsed, list):
            logger.error("Stored pending operations are not a list; starting empty")
            return

        for entry in parsed:
            try:
                self._operations.append(PendingOperation.from_dict(entry))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Dropping malformed pending operation {entry!r}: {e}")

        logger.info(f"Loaded {len(self._operations)} pending operations")

    def _persist(self) -> None:
        if self._operations:
            payload = json.dumps([op.to_dict() for op in self._operations], ensure_ascii=False)
            self._storage.set_item(STORAGE_KEY, payload)
        else:
            self._storage.remove_item(STORAGE_KEY)

    # -------------------------------------------------------------------------
    # Queue state
    # -------------------------------------------------------------------------

    @property
    def pending_operations(self) -> List[PendingOperation]:
        return list(self._operations)

    @property
    def has_pending_operations(self) -> bool:
        return len(self._operations) > 0

    @property
    def is_syncing(self) -> bool:
        return self._sync_lock.locked()

    def __len__(self) -> int:
        return len(self._operations)

    def add_pending_operation(
        self,
        id: str,
        operation,
        entity_type,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Queue a write, replacing any queued write for the same entity.

        Returns:
            Always True
        """
        new_op = PendingOperation(
            id=str(id),
            operation=OperationType(operation),
            entity_type=EntityType(entity_type),
            data=dict(data or {}),
            timestamp=int(self._clock() * 1000),
        )

        for index, existing in enumerate(self._operations):
            if existing.key == new_op.key:
                self._operations[index] = new_op
                break
        else:
            self._operations.append(new_op)

        self._persist()
        logger.info(
            f"Queued {new_op.operation.value} {new_op.entity_type.value} {new_op.id} "
            f"({len(self._operations)} pending)"
        )
        self._notify("info", "Operation stored for synchronization. It will be sent when the connection is back.")
        return True

    # -------------------------------------------------------------------------
    # Flush
    # -------------------------------------------------------------------------

    def sync_pending_operations(self) -> SyncReport:
        """
        Send queued operations oldest first.

        Successes are removed together at the end; failures stay queued.
        A call while a flush is running returns a skipped report.
        """
        if not self._operations:
            return SyncReport()

        if not self._sync_lock.acquire(blocking=False):
            logger.debug("Sync already in progress")
            return SyncReport(skipped=True)

        try:
            snapshot = sorted(self._operations, key=lambda op: op.timestamp)
            if not snapshot:
                return SyncReport()

            self._notify("info", f"Synchronizing {len(snapshot)} pending operations...")
            report = SyncReport()

            for op in snapshot:
                try:
                    ok = self._executor(op)
                except Exception as e:
                    logger.error(f"Error syncing {op.operation.value} {op.entity_type.value} {op.id}: {e}")
                    report.failed.append(op)
                    continue

                if ok is False:
                    report.failed.append(op)
                else:
                    report.succeeded.append(op)

            self._remove_synced(report.succeeded)
        finally:
            self._sync_lock.release()

        self._report(report)
        return report

    def _remove_synced(self, synced: List[PendingOperation]) -> None:
        if not synced:
            return
        # An entry replaced while the flush ran is a new object and stays queued
        done = {id(op) for op in synced}
        self._operations = [op for op in self._operations if id(op) not in done]
        self._persist()

    def _report(self, report: SyncReport) -> None:
        ok, failed = len(report.succeeded), len(report.failed)
        logger.info(f"Sync complete: {ok} success, {failed} failed")

        if ok and not failed:
            self._notify("success", f"{ok} operations synchronized")
        elif ok and failed:
            self._notify("warning", f"{ok} operations synchronized, {failed} failed")
        elif failed:
            self._notify("error", f"Failed to synchronize {failed} operations")

    # -------------------------------------------------------------------------
    # Automatic trigger
    # -------------------------------------------------------------------------

    def attach(self, monitor: HealthMonitor) -> None:
        """Flush automatically whenever the monitor transitions to online."""
        self._monitor = monitor
        monitor.register_callback(self._on_connection_change)

    def detach(self) -> None:
        if self._monitor is not None:
            self._monitor.unregister_callback(self._on_connection_change)
            self._monitor = None

    def _on_connection_change(self, state: ConnectionState) -> None:
        if state.status is ConnectionStatus.ONLINE and self.has_pending_operations and not self.is_syncing:
            logger.info("Connection restored, flushing pending operations")
            self.sync_pending_operations()

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def to_dataframe(self) -> pd.DataFrame:
        """Pending operations as a table, oldest first."""
        columns = ["id", "operation", "entity_type", "queued_at", "fields"]
        if not self._operations:
            return pd.DataFrame(columns=columns)

        rows = [
            {
                "id": op.id,
                "operation": op.operation.value,
                "entity_type": op.entity_type.value,
                "queued_at": pd.to_datetime(op.timestamp, unit="ms"),
                "fields": ", ".join(sorted(op.data.keys())),
            }
            for op in sorted(self._operations, key=lambda op: op.timestamp)
        ]
        return pd.DataFrame(rows, columns=columns)

    def _notify(self, level: str, message: str) -> None:
        if self._notifier is not None:
            getattr(self._notifier, level)(message)
