# =============================================================================
# sector_core/offline/__init__.py
# Connectivity Monitoring and Offline Queue
# =============================================================================
"""
Offline resilience for the tracker.

    ┌─────────────────┐  status transitions   ┌──────────────────┐
    │  HealthMonitor  │ ────────────────────► │   OfflineQueue   │
    │ (poll / probes) │                       │ (LocalStorage)   │
    └─────────────────┘                       └──────────────────┘
             │                                         │ flush
             ▼                                         ▼
        ┌──────────────────────────────────────────────────┐
        │                   Supabase                        │
        └──────────────────────────────────────────────────┘

Usage:
    from sector_core.offline import HealthMonitor, OfflineQueue, LocalStorage

    monitor = HealthMonitor(client, settings)
    queue = OfflineQueue(LocalStorage(settings.local_storage_path), executor)
    queue.attach(monitor)
"""

from sector_core.offline.connection_manager import (
    HealthMonitor,
    ConnectionStatus,
    ConnectionState,
    SessionStatus,
    DiagnosticsReport,
)

from sector_core.offline.local_storage import LocalStorage

from sector_core.offline.pending_queue import (
    OfflineQueue,
    PendingOperation,
    OperationType,
    EntityType,
    SyncReport,
    STORAGE_KEY,
)

__all__ = [
    # Health monitoring
    "HealthMonitor",
    "ConnectionStatus",
    "ConnectionState",
    "SessionStatus",
    "DiagnosticsReport",
    # Storage
    "LocalStorage",
    # Queue
    "OfflineQueue",
    "PendingOperation",
    "OperationType",
    "EntityType",
    "SyncReport",
    "STORAGE_KEY",
]
