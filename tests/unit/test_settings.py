# =============================================================================
# tests/unit/test_settings.py
# Unit Tests for settings loading
# =============================================================================

from pathlib import Path

import pytest

from sector_core.config import AppSettings, load_settings
from sector_core.errors import ConfigurationError


class TestLoadSettings:
    """Secrets first, environment as fallback"""

    def test_reads_supabase_secrets(self):
        settings = load_settings(
            secrets={"supabase": {"url": "https://a.supabase.co", "key": "k", "bucket": "photos"}},
            environ={},
        )

        assert settings.supabase_url == "https://a.supabase.co"
        assert settings.supabase_key == "k"
        assert settings.photo_bucket == "photos"

    def test_falls_back_to_environment(self):
        settings = load_settings(
            secrets={},
            environ={"SUPABASE_URL": "https://env.supabase.co", "SUPABASE_KEY": "env-key"},
        )

        assert settings.supabase_url == "https://env.supabase.co"
        assert settings.photo_bucket == "sector-photos"

    def test_missing_url_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(secrets={}, environ={"SUPABASE_KEY": "k"})

        assert exc_info.value.details["config_key"] == "supabase.url"
        assert not exc_info.value.recoverable

    def test_tracker_section_overrides_and_coerces(self):
        settings = load_settings(
            secrets={
                "supabase": {"url": "u", "key": "k"},
                "tracker": {"reconnect_gap": "15", "local_storage_path": "/tmp/q.json", "refresh_retries": 5},
            },
            environ={},
        )

        assert settings.reconnect_gap == 15.0
        assert settings.local_storage_path == Path("/tmp/q.json")
        assert settings.refresh_retries == 5


class TestAppSettingsDefaults:

    def test_resilience_defaults(self):
        settings = AppSettings(supabase_url="u", supabase_key="k")

        assert settings.online_poll_interval == 30.0
        assert settings.reconnect_gap == 10.0
        assert settings.session_expiry_threshold_ms == 300_000
        assert settings.refresh_throttle == 30.0
        assert settings.auth_max_retries == 2
        assert settings.cycle_count_max_attempts == 15
        assert settings.cycle_count_base_delay == 0.5

    def test_invalid_override_raises(self):
        settings = AppSettings(supabase_url="u", supabase_key="k")

        with pytest.raises(ConfigurationError):
            settings.with_overrides({"reconnect_gap": "soon"})

    def test_unknown_override_is_ignored(self):
        settings = AppSettings(supabase_url="u", supabase_key="k")
        assert settings.with_overrides({"colour": "blue"}) == settings
