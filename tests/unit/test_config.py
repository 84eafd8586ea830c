# =============================================================================
# tests/unit/test_config.py
# Unit Tests for Settings Loading
# =============================================================================

import logging
from pathlib import Path

import pytest

from contract_core.config import DEFAULT_DB_PATH, Settings, load_settings
from contract_core.errors import ConfigurationError

ENV_VARS = (
    "SUPABASE_URL", "SUPABASE_KEY", "SUPABASE_ANON_KEY", "CONTRACT_DB_PATH",
    "CONTRACT_PROBE_TIMEOUT", "CONTRACT_REQUEST_TIMEOUT", "CONTRACT_MONITOR_CONNECTION",
    "CONTRACT_NOTIFY_DELAY", "CONTRACT_LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadSettings:
    def test_defaults_without_credentials(self, clean_env):
        settings = load_settings(use_dotenv=False)
        assert not settings.remote_configured
        assert settings.local_db_path == DEFAULT_DB_PATH
        assert settings.probe_timeout == 5.0
        assert settings.request_timeout == 30.0
        assert settings.local_notify_delay == 0.0

    def test_environment_values(self, clean_env, tmp_path):
        clean_env.setenv("SUPABASE_URL", "https://abc.supabase.co")
        clean_env.setenv("SUPABASE_ANON_KEY", "anon")
        clean_env.setenv("CONTRACT_DB_PATH", str(tmp_path / "db.sqlite"))
        clean_env.setenv("CONTRACT_PROBE_TIMEOUT", "2.5")
        clean_env.setenv("CONTRACT_MONITOR_CONNECTION", "yes")

        settings = load_settings(use_dotenv=False)
        assert settings.remote_configured
        assert settings.supabase_key == "anon"
        assert settings.local_db_path == tmp_path / "db.sqlite"
        assert settings.probe_timeout == 2.5
        assert settings.monitor_connection is True

    def test_overrides_win(self, clean_env, tmp_path):
        clean_env.setenv("CONTRACT_PROBE_TIMEOUT", "9")
        settings = load_settings(
            {"probe_timeout": 1.0, "local_db_path": str(tmp_path / "x.db")}, use_dotenv=False
        )
        assert settings.probe_timeout == 1.0
        assert isinstance(settings.local_db_path, Path)

    def test_unknown_override_raises(self, clean_env):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings({"not_a_setting": 1}, use_dotenv=False)
        assert exc_info.value.details["config_key"] == "not_a_setting"

    def test_non_numeric_env_raises(self, clean_env):
        clean_env.setenv("CONTRACT_REQUEST_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError):
            load_settings(use_dotenv=False)

    @pytest.mark.parametrize("name", ["probe_timeout", "request_timeout"])
    def test_timeouts_must_be_positive(self, clean_env, name):
        with pytest.raises(ConfigurationError):
            load_settings({name: 0}, use_dotenv=False)


class TestSettings:
    def test_log_level_value(self):
        assert Settings(log_level="debug").log_level_value == logging.DEBUG
        assert Settings(log_level="nonsense").log_level_value == logging.INFO

    def test_remote_needs_url_and_key(self):
        assert not Settings(supabase_url="https://x.supabase.co").remote_configured
        assert Settings(supabase_url="https://x.supabase.co", supabase_key="k").remote_configured
