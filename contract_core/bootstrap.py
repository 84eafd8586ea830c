# =============================================================================
# contract_core/bootstrap.py
# Wiring of the Data Service for the Application Entry Point
# =============================================================================

from __future__ import annotations
import logging
from typing import Optional

import streamlit as st

from contract_core.config import Settings, load_settings
from contract_core.errors import ConnectivityError
from contract_core.logging import setup_logging
from contract_core.storage import (
    ConnectionManager,
    LocalStore,
    RemoteStore,
    UnifiedDataService,
    create_supabase_client,
)

logger = logging.getLogger(__name__)


def build_data_service(settings: Settings, initialize: bool = True) -> UnifiedDataService:
    """
    Construct a UnifiedDataService from settings.

    A missing or broken Supabase configuration is logged and the service
    runs against local storage only.
    """
    local = LocalStore(settings.local_db_path)

    remote: Optional[RemoteStore] = None
    manager: Optional[ConnectionManager] = None
    if settings.remote_configured:
        try:
            remote = RemoteStore(create_supabase_client(settings))
            manager = ConnectionManager(settings, remote)
        except ConnectivityError as e:
            logger.warning(f"Remote backend unavailable, using local storage: {e}")

    service = UnifiedDataService(
        local,
        remote=remote,
        connection_manager=manager,
        notify_delay=settings.local_notify_delay,
    )
    if initialize:
        service.initialize(start_monitoring=settings.monitor_connection)
    return service


@st.cache_resource
def get_cached_data_service() -> UnifiedDataService:
    """
    One UnifiedDataService per Streamlit server process.

    Settings come from Streamlit secrets and the environment.
    """
    settings = load_settings()
    setup_logging(level=settings.log_level_value, log_to_file=settings.log_to_file)
    return build_data_service(settings)
