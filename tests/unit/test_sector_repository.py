# =============================================================================
# tests/unit/test_sector_repository.py
# Unit Tests for SectorRepository and SupabaseService
# =============================================================================

from unittest.mock import MagicMock

import pandas as pd
import pytest

from sector_core.data import SectorRepository, SupabaseService
from sector_core.data.models import PhotoUpload, SectorStatus
from sector_core.errors import BackendError, SyncError
from sector_core.offline import EntityType, OperationType, PendingOperation
from tests.helpers import FakeDuplicateKeyError


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def repository(client):
    return SectorRepository(client, photo_bucket="sector-photos")


def _op(operation, entity_type, data=None):
    return PendingOperation(
        id="row-1", operation=operation, entity_type=entity_type, data=data or {}, timestamp=1
    )


class TestSupabaseService:

    def test_sdk_errors_become_classified_backend_errors(self, client):
        client.table.return_value.insert.return_value.execute.side_effect = FakeDuplicateKeyError()
        service = SupabaseService("sectors", client)

        with pytest.raises(BackendError) as exc_info:
            service.insert({"tag_number": "T"})

        assert exc_info.value.is_duplicate_key
        assert exc_info.value.details["table"] == "sectors"

    def test_fetch_all_pages_until_short_page(self, client, monkeypatch):
        monkeypatch.setattr(SupabaseService, "PAGE_SIZE", 2)
        pages = [
            MagicMock(data=[{"id": 1}, {"id": 2}]),
            MagicMock(data=[{"id": 3}]),
        ]
        client.table.return_value.select.return_value.range.return_value.execute.side_effect = pages

        df = SupabaseService("sectors", client).fetch_all()

        assert list(df["id"]) == [1, 2, 3]
        client.table.return_value.select.return_value.range.assert_any_call(2, 3)

    def test_update_applies_equality_filters(self, client):
        SupabaseService("sectors", client).update({"id": "s1"}, {"current_status": "concluido"})

        client.table.assert_called_with("sectors")
        client.table.return_value.update.assert_called_once_with({"current_status": "concluido"})
        client.table.return_value.update.return_value.eq.assert_called_once_with("id", "s1")


class TestApplyPendingOperation:
    """Queue entity/operation mapping onto tables and calls"""

    @pytest.mark.parametrize("entity_type, table", [
        (EntityType.SECTOR, "sectors"),
        (EntityType.CYCLE, "cycles"),
        (EntityType.SERVICE, "cycle_services"),
    ])
    def test_entity_table_mapping(self, repository, client, entity_type, table):
        repository.apply_pending_operation(_op(OperationType.UPDATE, entity_type, {"a": 1}))
        client.table.assert_called_with(table)

    def test_create_inserts_with_id(self, repository, client):
        assert repository.apply_pending_operation(_op(OperationType.CREATE, EntityType.SECTOR, {"tag_number": "T"}))
        client.table.return_value.insert.assert_called_once_with({"tag_number": "T", "id": "row-1"})

    def test_update_by_id(self, repository, client):
        repository.apply_pending_operation(_op(OperationType.UPDATE, EntityType.SECTOR, {"current_status": "x"}))

        client.table.return_value.update.assert_called_once_with({"current_status": "x"})
        client.table.return_value.update.return_value.eq.assert_called_once_with("id", "row-1")

    def test_delete_by_id(self, repository, client):
        repository.apply_pending_operation(_op(OperationType.DELETE, EntityType.SERVICE))
        client.table.return_value.delete.return_value.eq.assert_called_once_with("id", "row-1")

    def test_cycle_update_by_sector_targets_latest_cycle(self, repository):
        repository.cycles = MagicMock()
        repository.cycles.select.return_value = [{"id": "c9"}]
        op = _op(OperationType.UPDATE, EntityType.CYCLE, {"exit_invoice": "NF-1", "latest_cycle_of": "row-1"})

        assert repository.apply_pending_operation(op)

        filters, fields = repository.cycles.update.call_args[0]
        assert filters == {"id": "c9"}
        assert fields["exit_invoice"] == "NF-1"
        assert "latest_cycle_of" not in fields
        assert op.data["latest_cycle_of"] == "row-1"

    def test_cycle_update_without_cycle_stays_queued(self, repository):
        repository.cycles = MagicMock()
        repository.cycles.select.return_value = []
        op = _op(OperationType.UPDATE, EntityType.CYCLE, {"exit_invoice": "NF-1", "latest_cycle_of": "row-1"})

        with pytest.raises(SyncError):
            repository.apply_pending_operation(op)

    def test_unknown_entity_raises_sync_error(self, repository):
        op = _op(OperationType.UPDATE, EntityType.SECTOR)
        op.entity_type = "photo"

        with pytest.raises(SyncError):
            repository.apply_pending_operation(op)


class TestRepositoryQueries:

    def test_count_by_status_includes_every_stage(self, repository):
        repository.sectors = MagicMock()
        repository.sectors.fetch_all.return_value = pd.DataFrame({
            "current_status": ["emExecucao", "emExecucao", "concluido"],
        })

        counts = repository.count_by_status()

        assert list(counts["status"]) == [s.value for s in SectorStatus]
        assert dict(zip(counts["status"], counts["count"]))["emExecucao"] == 2
        assert counts["count"].sum() == 3

    def test_count_by_status_with_no_sectors(self, repository):
        repository.sectors = MagicMock()
        repository.sectors.fetch_all.return_value = pd.DataFrame()

        counts = repository.count_by_status()
        assert counts["count"].sum() == 0
        assert len(counts) == len(SectorStatus)

    def test_update_sector_status_touches_latest_cycle(self, repository):
        repository.sectors = MagicMock()
        repository.cycles = MagicMock()
        repository.cycles.select.return_value = [{"id": "c9"}]

        repository.update_sector_status("s1", SectorStatus.CONCLUIDO, cycle_fields={"exit_invoice": "NF"})

        sector_fields = repository.sectors.update.call_args[0][1]
        assert sector_fields["current_status"] == "concluido"
        filters, cycle_fields = repository.cycles.update.call_args[0]
        assert filters == {"id": "c9"}
        assert cycle_fields["exit_invoice"] == "NF"
        assert cycle_fields["status"] == "concluido"

    def test_upload_photo_returns_public_url(self, repository, client):
        bucket = client.storage.from_.return_value
        bucket.get_public_url.return_value = "https://cdn/x.jpg"
        photo = PhotoUpload(filename="x.jpg", content=b"img")

        assert repository.upload_photo(photo, folder="TAG/svc") == "https://cdn/x.jpg"
        path, content, options = bucket.upload.call_args[0]
        assert path.startswith("TAG/svc/") and path.endswith("_x.jpg")
        assert options == {"content-type": "image/jpeg"}
        assert photo.url == "https://cdn/x.jpg"

    def test_upload_photo_skips_stored_photos(self, repository, client):
        photo = PhotoUpload(filename="x.jpg", url="https://cdn/already.jpg")
        assert repository.upload_photo(photo, folder="f") == "https://cdn/already.jpg"
        client.storage.from_.assert_not_called()
