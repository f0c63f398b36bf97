# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from sector_core.config import AppSettings
from sector_core.data.models import PeritagemForm, PhotoUpload, ServiceSelection
from sector_core.offline.local_storage import LocalStorage
from tests.helpers import FakeClock, FakeSessionState, RecordingSleep, make_session

STREAMLIT_MODULES = (
    "sector_core.ui.notices",
    "sector_core.auth.authentication",
    "sector_core.errors.handlers",
    "sector_core.auth.navigation",
    "sector_core.context",
)


# =============================================================================
# TIME FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep(clock):
    return RecordingSleep(clock)


# =============================================================================
# CONFIGURATION / STORAGE FIXTURES
# =============================================================================

@pytest.fixture
def settings(tmp_path):
    return AppSettings(
        supabase_url="https://example.supabase.co",
        supabase_key="anon-key",
        local_storage_path=tmp_path / "local_storage.json",
    )


@pytest.fixture
def storage(settings):
    return LocalStorage(settings.local_storage_path)


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_streamlit(monkeypatch):
    """Mock Streamlit in every module that renders or reads session state"""
    mock_st = MagicMock()
    mock_st.session_state = FakeSessionState()
    mock_st.cache_data = lambda f: f
    mock_st.cache_resource = lambda f: f

    for module in STREAMLIT_MODULES:
        monkeypatch.setattr(f"{module}.st", mock_st)

    yield mock_st


@pytest.fixture
def mock_supabase(clock):
    """Mock Supabase client with a valid one-hour session"""
    mock_client = MagicMock()
    session = make_session(clock)
    mock_client.auth.get_session.return_value = session
    mock_client.auth.get_user.return_value = SimpleNamespace(user=session.user)
    mock_client.auth.refresh_session.return_value = SimpleNamespace(session=make_session(clock), user=session.user)
    mock_client.table.return_value.select.return_value.execute.return_value.data = []
    mock_client.table.return_value.insert.return_value.execute.return_value = MagicMock()
    return mock_client


@pytest.fixture
def notifier():
    return MagicMock(name="notifier")


@pytest.fixture
def navigator():
    return MagicMock(name="navigator")


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def valid_form():
    """Peritagem form that passes validation"""
    return PeritagemForm(
        tag_number="TAG-001",
        entry_invoice="NF-123",
        tag_photo_url="https://cdn.example.com/tag.jpg",
        services=[
            ServiceSelection(
                service_id="svc-1",
                name="Lavagem",
                selected=True,
                photos=[PhotoUpload(filename="a.jpg", url="https://cdn.example.com/a.jpg")],
            ),
            ServiceSelection(service_id="svc-2", name="Pintura", selected=False),
        ],
    )

