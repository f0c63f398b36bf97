# =============================================================================
# tests/integration/test_offline_sync_flow.py
# Integration Tests: offline write -> queue -> reconnect -> flush
# =============================================================================
"""
Wires a full AppContext around a mocked Supabase client and drives it through
a connection loss and recovery.
"""

from unittest.mock import MagicMock

import httpx
import pytest

from sector_core.context import AppContext
from sector_core.offline import STORAGE_KEY, ConnectionStatus, LocalStorage


class Network:
    """Shared switch for the probes and the mocked REST calls"""

    def __init__(self):
        self.up = True

    def probe(self):
        return self.up


def _connect_error():
    return httpx.ConnectError("connection refused", request=httpx.Request("PATCH", "https://example.supabase.co"))


@pytest.fixture
def network():
    return Network()


@pytest.fixture
def update_execute(mock_supabase, network):
    """Execute of table().update().eq(): fails while the network is down"""
    execute = mock_supabase.table.return_value.update.return_value.eq.return_value.execute

    def run():
        if not network.up:
            raise _connect_error()
        return MagicMock(data=[{"id": "s1"}])

    execute.side_effect = run
    return execute


@pytest.fixture(autouse=True)
def latest_cycle(mock_supabase):
    """cycles lookup used to resolve queued cycle updates"""
    select = mock_supabase.table.return_value.select.return_value
    select.eq.return_value.order.return_value.limit.return_value.execute.return_value.data = [{"id": "c1"}]


def sent_updates(client):
    return [c[0][0] for c in client.table.return_value.update.call_args_list]


def build_context(settings, client, network, clock, sleep, notifier, navigator):
    return AppContext.create(
        settings,
        client=client,
        notifier=notifier,
        navigator=navigator,
        clock=clock,
        sleep=sleep,
        internet_probe=network.probe,
        backend_probe=network.probe,
    )


class TestOfflineToOnlineFlush:

    def test_queued_transition_is_flushed_on_reconnect(
        self, settings, mock_supabase, network, update_execute, clock, sleep, notifier, navigator
    ):
        context = build_context(settings, mock_supabase, network, clock, sleep, notifier, navigator)
        context.monitor.check_connection()
        assert context.monitor.is_online

        # Connection drops between the last probe and the write
        network.up = False
        result = context.submit_service.complete_checagem("s1", "NF-EXIT-9")

        assert result.queued
        assert context.monitor.is_offline
        assert len(context.queue) == 2
        assert context.storage.get_item(STORAGE_KEY) is not None

        # Inside the reconnect gap nothing is probed or flushed
        network.up = True
        clock.advance(settings.reconnect_gap / 2)
        assert context.monitor.check_connection() is ConnectionStatus.OFFLINE
        assert len(context.queue) == 2

        clock.advance(settings.reconnect_gap)
        assert context.monitor.check_connection() is ConnectionStatus.ONLINE

        assert len(context.queue) == 0
        assert context.storage.get_item(STORAGE_KEY) is None
        sector_update = next(u for u in sent_updates(mock_supabase) if "current_status" in u)
        cycle_update = next(u for u in sent_updates(mock_supabase) if "exit_invoice" in u)
        assert sector_update["current_status"] == "concluido"
        assert sector_update["current_outcome"] == "Recuperado"
        assert cycle_update["exit_invoice"] == "NF-EXIT-9"
        assert cycle_update["status"] == "concluido"
        notifier.success.assert_called()

    def test_queue_survives_restart(
        self, settings, mock_supabase, network, update_execute, clock, sleep, notifier, navigator
    ):
        first = build_context(settings, mock_supabase, network, clock, sleep, notifier, navigator)
        first.monitor.check_connection()
        network.up = False
        first.submit_service.confirm_scrap("s1")
        first.dispose()

        assert len(LocalStorage(settings.local_storage_path).keys()) == 1

        network.up = True
        second = build_context(settings, mock_supabase, network, clock, sleep, notifier, navigator)
        assert len(second.queue) == 2

        second.monitor.check_connection()

        assert len(second.queue) == 0
        assert any(u.get("current_status") == "sucateado" for u in sent_updates(mock_supabase))
        assert any(u.get("scrap_validated") is True for u in sent_updates(mock_supabase))

    def test_failed_flush_keeps_operation_for_next_reconnect(
        self, settings, mock_supabase, network, update_execute, clock, sleep, notifier, navigator
    ):
        context = build_context(settings, mock_supabase, network, clock, sleep, notifier, navigator)
        context.monitor.check_connection()
        network.up = False
        context.submit_service.complete_execution("s1")

        # Probes recover but the REST call still fails
        update_execute.side_effect = _connect_error()
        network.up = True
        clock.advance(settings.reconnect_gap)
        context.monitor.check_connection()

        assert len(context.queue) == 2
        notifier.error.assert_called()

    def test_auth_failure_during_flush_does_not_redirect(
        self, settings, mock_supabase, network, update_execute, clock, sleep, notifier, navigator
    ):
        context = build_context(settings, mock_supabase, network, clock, sleep, notifier, navigator)
        context.queue.add_pending_operation("s1", "update", "sector", {"current_status": "concluido"})
        mock_supabase.auth.get_session.return_value = None
        update_execute.side_effect = Exception({"code": "PGRST301", "message": "JWT expired"})

        context.monitor.check_connection()

        assert len(context.queue) == 1
        navigator.to_login.assert_not_called()


class TestContextLifecycle:

    def test_start_and_dispose(self, settings, mock_supabase, network, clock, sleep, notifier, navigator):
        context = build_context(settings, mock_supabase, network, clock, sleep, notifier, navigator)

        context.start()
        context.start()
        try:
            assert context.monitor.is_online
            assert context.monitor.is_monitoring
        finally:
            context.dispose()
            context.dispose()

        assert not context.monitor.is_monitoring
