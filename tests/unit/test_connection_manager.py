# =============================================================================
# tests/unit/test_connection_manager.py
# Unit Tests for ConnectionManager
# =============================================================================

import time

from contract_core.config import Settings
from contract_core.storage import ConnectionManager, ConnectionStatus


class SlowRemote:
    """Remote whose probe never answers within the timeout."""

    def probe(self):
        time.sleep(0.5)


class TestConnectionChecks:
    def test_not_configured_is_offline(self, remote_store):
        manager = ConnectionManager(Settings(), remote_store)
        state = manager.check_connection()
        assert state.status == ConnectionStatus.OFFLINE
        assert state.error_message == "Remote backend not configured"

    def test_no_remote_is_offline(self, settings):
        manager = ConnectionManager(settings)
        assert manager.check_connection().status == ConnectionStatus.OFFLINE

    def test_invalid_url_is_offline(self, remote_store, tmp_path):
        settings = Settings(supabase_url="not a url", supabase_key="k", local_db_path=tmp_path / "x.db")
        state = ConnectionManager(settings, remote_store).check_connection()
        assert state.status == ConnectionStatus.OFFLINE
        assert not state.host_reachable

    def test_unreachable_host_is_offline(self, settings, remote_store, monkeypatch):
        monkeypatch.setattr(ConnectionManager, "_check_host", lambda self: False)
        manager = ConnectionManager(settings, remote_store)
        state = manager.check_connection()
        assert state.status == ConnectionStatus.OFFLINE
        assert state.consecutive_failures == 1

    def test_failing_probe_is_degraded(self, settings, remote_store, fake_client, reachable_host):
        fake_client.failing = True
        state = ConnectionManager(settings, remote_store).check_connection()
        assert state.status == ConnectionStatus.DEGRADED
        assert state.host_reachable and not state.backend_available
        assert "REMOTE_001" in state.error_message

    def test_slow_probe_times_out(self, settings, reachable_host):
        settings.probe_timeout = 0.05
        started = time.monotonic()
        state = ConnectionManager(settings, SlowRemote()).check_connection()
        assert state.status == ConnectionStatus.DEGRADED
        assert "timed out" in state.error_message
        assert time.monotonic() - started < 0.5

    def test_online(self, settings, remote_store, reachable_host):
        manager = ConnectionManager(settings, remote_store)
        state = manager.check_connection()
        assert state.status == ConnectionStatus.ONLINE
        assert manager.is_online
        assert state.last_online is not None
        assert state.consecutive_failures == 0


class TestConnectionCallbacks:
    def test_callback_fires_on_change_only(self, settings, remote_store, reachable_host):
        manager = ConnectionManager(settings, remote_store)
        seen = []
        manager.register_callback(lambda state: seen.append(state.status))

        manager.check_connection()
        manager.check_connection()
        assert seen == [ConnectionStatus.ONLINE]

        manager.force_offline()
        assert seen == [ConnectionStatus.ONLINE, ConnectionStatus.OFFLINE]

    def test_unregister(self, settings, remote_store, reachable_host):
        manager = ConnectionManager(settings, remote_store)
        seen = []
        callback = seen.append
        manager.register_callback(callback)
        manager.unregister_callback(callback)
        manager.check_connection()
        assert seen == []

    def test_failing_callback_is_logged(self, settings, remote_store, reachable_host):
        manager = ConnectionManager(settings, remote_store)

        def broken(state):
            raise RuntimeError("boom")

        manager.register_callback(broken)
        assert manager.check_connection().status == ConnectionStatus.ONLINE


class TestMonitoring:
    def test_start_and_stop(self, settings, remote_store):
        manager = ConnectionManager(settings, remote_store)
        manager.start_monitoring()
        assert manager._monitor_thread.is_alive()
        manager.stop_monitoring()
        assert manager._monitor_thread is None

    def test_status_display(self, settings, remote_store, reachable_host):
        manager = ConnectionManager(settings, remote_store)
        manager.check_connection()
        display = manager.get_status_display()
        assert display["status"] == "online"
        assert display["is_online"] is True
        assert display["last_check"] is not None
