# =============================================================================
# contract_core/config.py
# Runtime Settings for the Contract Management Core
# =============================================================================
"""
Settings resolution.

Supabase credentials are read from Streamlit secrets first:

    # .streamlit/secrets.toml
    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"

and fall back to the SUPABASE_URL / SUPABASE_KEY environment variables
(a local .env file is loaded if present). Missing credentials are not an
error: the data service then runs against local storage only.
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import streamlit as st
from dotenv import load_dotenv

from contract_core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent.parent / "local_data" / "contract_management.db"


@dataclass
class Settings:
    """Runtime configuration for the data layer."""
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    local_db_path: Path = DEFAULT_DB_PATH
    probe_timeout: float = 5.0              # Seconds for the startup connectivity probe
    request_timeout: float = 30.0           # Seconds per PostgREST request
    check_interval_online: int = 30         # Seconds between checks when online
    check_interval_offline: int = 10        # Seconds between checks when offline
    monitor_connection: bool = False
    local_notify_delay: float = 0.0         # 0 = notify listeners synchronously
    log_level: str = "INFO"
    log_to_file: bool = False

    @property
    def remote_configured(self) -> bool:
        """True when both Supabase URL and key are available."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


def _load_streamlit_secrets() -> Tuple[Optional[str], Optional[str]]:
    """Read [supabase] url/key from Streamlit secrets if configured."""
    try:
        if hasattr(st, "secrets") and "supabase" in st.secrets:
            section = st.secrets["supabase"]
            return section.get("url"), section.get("key")
    except Exception as e:
        # No secrets.toml present or not running under Streamlit
        logger.debug(f"Streamlit secrets not available: {e}")
    return None, None


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default: Any, cast) -> Any:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return cast(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {value!r}",
            config_key=name,
            expected_type=cast.__name__,
        ) from e


def load_settings(overrides: Optional[Dict[str, Any]] = None, use_dotenv: bool = True) -> Settings:
    """
    Build Settings from Streamlit secrets, environment variables and overrides.

    Args:
        overrides: Explicit values that win over every other source
        use_dotenv: Whether to load a .env file into the environment first

    Returns:
        Populated Settings
    """
    if use_dotenv:
        load_dotenv()

    url, key = _load_streamlit_secrets()
    url = url or os.getenv("SUPABASE_URL") or None
    key = key or os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_ANON_KEY") or None

    db_path = os.getenv("CONTRACT_DB_PATH")

    settings = Settings(
        supabase_url=url,
        supabase_key=key,
        local_db_path=Path(db_path) if db_path else DEFAULT_DB_PATH,
        probe_timeout=_env_number("CONTRACT_PROBE_TIMEOUT", 5.0, float),
        request_timeout=_env_number("CONTRACT_REQUEST_TIMEOUT", 30.0, float),
        check_interval_online=_env_number("CONTRACT_CHECK_INTERVAL_ONLINE", 30, int),
        check_interval_offline=_env_number("CONTRACT_CHECK_INTERVAL_OFFLINE", 10, int),
        monitor_connection=_env_bool("CONTRACT_MONITOR_CONNECTION", False),
        local_notify_delay=_env_number("CONTRACT_NOTIFY_DELAY", 0.0, float),
        log_level=os.getenv("CONTRACT_LOG_LEVEL", "INFO"),
        log_to_file=_env_bool("CONTRACT_LOG_TO_FILE", False),
    )

    for name, value in (overrides or {}).items():
        if not hasattr(settings, name):
            raise ConfigurationError(f"Unknown setting: {name}", config_key=name)
        setattr(settings, name, value)

    for name in ("probe_timeout", "request_timeout"):
        if getattr(settings, name) <= 0:
            raise ConfigurationError(
                f"{name} must be positive",
                config_key=name,
                expected_type="float > 0",
            )

    settings.local_db_path = Path(settings.local_db_path)
    logger.debug(f"Settings loaded. Remote configured: {settings.remote_configured}")
    return settings
