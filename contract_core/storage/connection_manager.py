# =============================================================================
# contract_core/storage/connection_manager.py
# Connection Status Detection and Management
# =============================================================================
"""
ConnectionManager - decides whether the hosted backend is usable.

One check is a bounded probe:
- backend not configured              -> OFFLINE
- backend host unreachable            -> OFFLINE
- host reachable, query probe fails   -> DEGRADED
- otherwise                           -> ONLINE

Status changes fire registered callbacks. An optional daemon thread re-checks
periodically.
"""

from __future__ import annotations
import socket
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional
from urllib.parse import urlparse
import logging

from contract_core.config import Settings
from .remote_store import RemoteStore

logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    """Connection status states."""
    ONLINE = "online"           # Host reachable and backend answers queries
    OFFLINE = "offline"         # Not configured or host unreachable
    DEGRADED = "degraded"       # Host reachable but queries fail
    CHECKING = "checking"       # Currently checking status
    UNKNOWN = "unknown"         # Initial state


@dataclass
class ConnectionState:
    """Current connection state with metadata."""
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    host_reachable: bool = False
    backend_available: bool = False
    last_check: Optional[datetime] = None
    last_online: Optional[datetime] = None
    consecutive_failures: int = 0
    error_message: Optional[str] = None


class ConnectionManager:
    """
    Connectivity detection for one configured backend.

    Usage:
        manager = ConnectionManager(settings, remote)
        manager.check_connection()
        if manager.is_online:
            ...
    """

    def __init__(self, settings: Settings, remote: Optional[RemoteStore] = None):
        self.settings = settings
        self.remote = remote
        self._state = ConnectionState()
        self._callbacks: List[Callable[[ConnectionState], None]] = []
        self._monitor_thread: Optional[threading.Thread] = None
        self._stop_monitoring = threading.Event()
        self._check_lock = threading.Lock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def is_online(self) -> bool:
        return self._state.status == ConnectionStatus.ONLINE

    @property
    def is_offline(self) -> bool:
        return self._state.status == ConnectionStatus.OFFLINE

    # =========================================================================
    # CHECKS
    # =========================================================================

    def check_connection(self) -> ConnectionState:
        """
        Perform a connection check and update state.

        Returns:
            Updated ConnectionState
        """
        with self._check_lock:
            old_status = self._state.status
            self._state.status = ConnectionStatus.CHECKING
            self._state.last_check = datetime.now()
            self._state.error_message = None

            if not self.settings.remote_configured or self.remote is None:
                host_ok, backend_ok = False, False
                self._state.error_message = "Remote backend not configured"
            else:
                host_ok = self._check_host()
                backend_ok = host_ok and self._check_backend()

            self._state.host_reachable = host_ok
            self._state.backend_available = backend_ok

            if host_ok and backend_ok:
                self._state.status = ConnectionStatus.ONLINE
                self._state.last_online = datetime.now()
                self._state.consecutive_failures = 0
            elif host_ok:
                self._state.status = ConnectionStatus.DEGRADED
                self._state.consecutive_failures += 1
            else:
                self._state.status = ConnectionStatus.OFFLINE
                self._state.consecutive_failures += 1

            changed = old_status != self._state.status

        if changed:
            logger.info(f"Connection status changed: {old_status.value} -> {self._state.status.value}")
            self._notify_callbacks()

        return self._state

    def _check_host(self) -> bool:
        """Open a TCP connection to the backend host within probe_timeout."""
        parsed = urlparse(self.settings.supabase_url or "")
        host = parsed.hostname
        if not host:
            self._state.error_message = "Invalid backend URL"
            return False
        port = parsed.port or (80 if parsed.scheme == "http" else 443)
        try:
            with socket.create_connection((host, port), timeout=self.settings.probe_timeout):
                return True
        except OSError as e:
            self._state.error_message = str(e)
            logger.debug(f"Backend host {host}:{port} unreachable: {e}")
            return False

    def _check_backend(self) -> bool:
        """Run RemoteStore.probe() bounded by probe_timeout."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ConnectionProbe")
        try:
            executor.submit(self.remote.probe).result(timeout=self.settings.probe_timeout)
            return True
        except FutureTimeout:
            self._state.error_message = f"Probe timed out after {self.settings.probe_timeout}s"
        except Exception as e:
            self._state.error_message = str(e)
            logger.debug(f"Backend probe failed: {e}")
        finally:
            executor.shutdown(wait=False)
        return False

    # =========================================================================
    # MONITORING
    # =========================================================================

    def start_monitoring(self) -> None:
        """Start background connection monitoring."""
        if self._monitor_thread is not None and self._monitor_thread.is_alive():
            return

        self._stop_monitoring.clear()
        self._monitor_thread = threading.Thread(
            target=self._monitoring_loop,
            daemon=True,
            name="ConnectionMonitor",
        )
        self._monitor_thread.start()
        logger.debug("Connection monitoring started")

    def stop_monitoring(self) -> None:
        """Stop background connection monitoring."""
        self._stop_monitoring.set()
        if self._monitor_thread:
            self._monitor_thread.join(timeout=5)
            self._monitor_thread = None
        logger.debug("Connection monitoring stopped")

    def _monitoring_loop(self) -> None:
        while not self._stop_monitoring.is_set():
            interval = (
                self.settings.check_interval_online
                if self.is_online
                else self.settings.check_interval_offline
            )
            if self._stop_monitoring.wait(timeout=interval):
                break
            try:
                self.check_connection()
            except Exception as e:
                logger.error(f"Error in connection check: {e}")

    # =========================================================================
    # CALLBACKS
    # =========================================================================

    def register_callback(self, callback: Callable[[ConnectionState], None]) -> None:
        """
        Register a callback for connection status changes.

        Args:
            callback: Function called with ConnectionState when status changes
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[ConnectionState], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        for callback in list(self._callbacks):
            try:
                callback(self._state)
            except Exception as e:
                logger.error(f"Error in connection callback: {e}")

    def force_offline(self) -> None:
        """Force offline mode (for testing or user preference)."""
        self._state.status = ConnectionStatus.OFFLINE
        self._state.host_reachable = False
        self._state.backend_available = False
        self._notify_callbacks()
        logger.info("Forced offline mode")

    def get_status_display(self) -> dict:
        """Get status information for UI display."""
        return {
            "status": self._state.status.value,
            "is_online": self.is_online,
            "host": self._state.host_reachable,
            "backend": self._state.backend_available,
            "last_check": self._state.last_check.isoformat() if self._state.last_check else None,
            "last_online": self._state.last_online.isoformat() if self._state.last_online else None,
            "failures": self._state.consecutive_failures,
            "error": self._state.error_message,
        }
