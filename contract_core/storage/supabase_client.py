# =============================================================================
# contract_core/storage/supabase_client.py
# Supabase Client Construction
# =============================================================================

from __future__ import annotations
import logging
from typing import Optional
from urllib.parse import urlparse

from supabase import Client, ClientOptions, create_client

from contract_core.config import Settings
from contract_core.errors import ConnectivityError

logger = logging.getLogger(__name__)


def supabase_host(url: Optional[str]) -> Optional[str]:
    """Extract the hostname from a Supabase project URL."""
    if not url:
        return None
    return urlparse(url).hostname


def create_supabase_client(settings: Settings) -> Client:
    """
    Create a Supabase client from settings.

    Expects credentials in .streamlit/secrets.toml or the environment:
        [supabase]
        url = "https://your-project.supabase.co"
        key = "your-anon-key"

    Raises:
        ConnectivityError: if credentials are missing or the client cannot be built
    """
    if not settings.remote_configured:
        raise ConnectivityError(
            "Supabase credentials not found. Configure [supabase] url/key in "
            ".streamlit/secrets.toml or SUPABASE_URL / SUPABASE_KEY."
        )

    host = supabase_host(settings.supabase_url)
    try:
        options = ClientOptions(postgrest_client_timeout=settings.request_timeout)
        client = create_client(settings.supabase_url, settings.supabase_key, options=options)
    except Exception as e:
        raise ConnectivityError(f"Failed to initialize Supabase client: {e}", host=host) from e

    logger.info(f"Supabase client created for {host}")
    return client
