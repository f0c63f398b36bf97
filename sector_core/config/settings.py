# =============================================================================
# sector_core/config/settings.py
# Application Settings (Streamlit secrets with environment fallback)
# =============================================================================
"""
Settings loader.

Expected secrets.toml format:

    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"
    bucket = "sector-photos"

    [tracker]
    online_poll_interval = 30
    reconnect_gap = 10
    local_storage_path = "local_data/local_storage.json"

Without secrets the loader falls back to SUPABASE_URL / SUPABASE_KEY from the
environment (a ``.env`` file is honoured).
"""

from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from sector_core.errors import ConfigurationError
from sector_core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_STORAGE_PATH = Path("local_data") / "local_storage.json"


@dataclass(frozen=True)
class AppSettings:
    """Connection credentials plus every tunable of the resilience layer."""
    supabase_url: str
    supabase_key: str
    photo_bucket: str = "sector-photos"
    local_storage_path: Path = DEFAULT_STORAGE_PATH

    # Health monitor
    online_poll_interval: float = 30.0      # seconds between polls when online
    reconnect_gap: float = 10.0             # min seconds between probes when offline
    probe_timeout: float = 5.0              # socket timeout for reachability probes
    session_expiry_threshold_ms: int = 300_000

    # Token refresh
    refresh_throttle: float = 30.0          # min seconds between real refreshes
    refresh_retries: int = 3
    refresh_backoff: float = 1.0            # delay multiplier per retry

    # Auth-retry wrapper
    auth_max_retries: int = 2

    # Cycle-count collision retry
    cycle_count_max_attempts: int = 15
    cycle_count_base_delay: float = 0.5

    def with_overrides(self, overrides: Mapping[str, Any]) -> AppSettings:
        """Return a copy with known fields replaced, coercing to the declared type."""
        known = {f.name: f for f in fields(self)}
        values: Dict[str, Any] = {}
        for name, raw in overrides.items():
            if name not in known:
                logger.warning(f"Ignoring unknown tracker setting: {name}")
                continue
            current = getattr(self, name)
            try:
                values[name] = Path(raw) if isinstance(current, Path) else type(current)(raw)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid value for setting '{name}': {raw!r}",
                    config_key=name,
                    expected_type=type(current).__name__,
                ) from e
        return replace(self, **values)


def _read_streamlit_secrets() -> Dict[str, Any]:
    try:
        import streamlit as st
        return {key: dict(st.secrets[key]) for key in ("supabase", "tracker") if key in st.secrets}
    except Exception as e:
        logger.debug(f"Streamlit secrets unavailable: {e}")
        return {}


def load_settings(
    secrets: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppSettings:
    """
    Build AppSettings from Streamlit secrets, falling back to the environment.

    Args:
        secrets: Secrets mapping (defaults to st.secrets)
        environ: Environment mapping (defaults to os.environ after load_dotenv)

    Raises:
        ConfigurationError: If the Supabase URL or key is missing
    """
    if secrets is None:
        secrets = _read_streamlit_secrets()
    if environ is None:
        from dotenv import load_dotenv
        load_dotenv()
        environ = os.environ

    supabase_secrets = dict(secrets.get("supabase", {}))
    url = supabase_secrets.get("url") or environ.get("SUPABASE_URL", "")
    key = supabase_secrets.get("key") or environ.get("SUPABASE_KEY", "")

    if not url:
        raise ConfigurationError("Supabase URL is not configured", config_key="supabase.url")
    if not key:
        raise ConfigurationError("Supabase key is not configured", config_key="supabase.key")

    settings = AppSettings(supabase_url=url, supabase_key=key)

    overrides = dict(secrets.get("tracker", {}))
    bucket = supabase_secrets.get("bucket") or environ.get("SUPABASE_BUCKET")
    if bucket:
        overrides["photo_bucket"] = bucket

    if overrides:
        settings = settings.with_overrides(overrides)

    return settings
