"""
Database connections: Supabase client setup.
"""

from functools import lru_cache
from supabase import create_client, Client

from agenda.config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    """Get the Supabase client (singleton).

    Raises:
        ValueError: If SUPABASE_URL / SUPABASE_KEY are not configured.
    """
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be configured")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
