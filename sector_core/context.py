# =============================================================================
# sector_core/context.py
# Application context: one wired set of services per browser session
# =============================================================================
"""
AppContext owns every long-lived collaborator of the tracker:

    client ─┬─ HealthMonitor ──(status change)──► OfflineQueue ─► LocalStorage
            ├─ SessionGuard
            ├─ SectorRepository
            └─ SectorSubmitService

Pages obtain it with ``get_app_context()``; tests build it directly with
``AppContext.create(settings, client=MagicMock(), ...)``.
"""

from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Callable, Optional

import streamlit as st

from sector_core.auth.session_guard import SessionGuard
from sector_core.config import AppSettings, load_settings
from sector_core.data.sector_repository import SectorRepository
from sector_core.data.supabase_client import create_supabase_client
from sector_core.logging import get_logger, setup_logging
from sector_core.offline.connection_manager import HealthMonitor
from sector_core.offline.local_storage import LocalStorage
from sector_core.offline.pending_queue import OfflineQueue, PendingOperation
from sector_core.services.sector_submit_service import SectorSubmitService
from sector_core.ui.notices import Navigator, Notifier

logger = get_logger(__name__)

SESSION_KEY = "_app_context"


@dataclass
class AppContext:
    settings: AppSettings
    client: object
    storage: LocalStorage
    notifier: Notifier
    navigator: Navigator
    monitor: HealthMonitor
    guard: SessionGuard
    queue: OfflineQueue
    repository: SectorRepository
    submit_service: SectorSubmitService
    started: bool = False

    @classmethod
    def create(
        cls,
        settings: AppSettings,
        client=None,
        notifier=None,
        navigator=None,
        storage: Optional[LocalStorage] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        internet_probe: Optional[Callable[[], bool]] = None,
        backend_probe: Optional[Callable[[], bool]] = None,
    ) -> AppContext:
        """Wire the collaborators; nothing touches the network yet."""
        client = client if client is not None else create_supabase_client(settings)
        notifier = notifier if notifier is not None else Notifier()
        navigator = navigator if navigator is not None else Navigator()
        storage = storage if storage is not None else LocalStorage(settings.local_storage_path)

        monitor = HealthMonitor(
            client, settings, clock=clock,
            internet_probe=internet_probe, backend_probe=backend_probe,
        )
        guard = SessionGuard(
            client, monitor, settings, notifier=notifier, navigator=navigator,
            clock=clock, sleep=sleep,
        )
        repository = SectorRepository(client, photo_bucket=settings.photo_bucket)

        def replay(op: PendingOperation) -> bool:
            # Runs on the monitor thread: no redirect or page notices
            result = guard.execute_with_auth_check(
                lambda: repository.apply_pending_operation(op), notify=False, redirect=False
            )
            return bool(result)

        queue = OfflineQueue(storage, replay, notifier=notifier, clock=clock)
        queue.attach(monitor)

        submit_service = SectorSubmitService(
            repository, guard, monitor, queue, settings,
            notifier=notifier, sleep=sleep, clock=clock,
        )

        return cls(
            settings=settings,
            client=client,
            storage=storage,
            notifier=notifier,
            navigator=navigator,
            monitor=monitor,
            guard=guard,
            queue=queue,
            repository=repository,
            submit_service=submit_service,
        )

    def start(self) -> None:
        """Initial connection check, then the background polling thread."""
        if self.started:
            return
        self.started = True
        status = self.monitor.check_connection()
        self.monitor.check_session()
        logger.info(f"Application context started ({status.value})")
        self.monitor.start_monitoring()

    def dispose(self) -> None:
        """Stop polling and unhook the queue. Safe to call twice."""
        self.monitor.stop_monitoring()
        self.queue.detach()
        if self.started:
            logger.info("Application context disposed")
        self.started = False


@st.cache_resource
def _init_logging() -> bool:
    setup_logging()
    return True


def get_app_context() -> AppContext:
    """The context of the current browser session, created on first use."""
    _init_logging()
    context = st.session_state.get(SESSION_KEY)
    if context is None:
        context = AppContext.create(load_settings())
        context.start()
        st.session_state[SESSION_KEY] = context
    return context


def reset_app_context() -> None:
    context = st.session_state.pop(SESSION_KEY, None)
    if context is not None:
        context.dispose()
