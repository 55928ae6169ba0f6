"""Supabase client for the remote tabular store."""

from functools import lru_cache
from typing import Any

from supabase import Client, create_client

from orderflow.core.config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    """Return the process-wide Supabase client.

    The secret key bypasses row level security; ownership checks happen in
    the services before any row is touched.
    """
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_secret_key)


def probe_table(table_name: str) -> dict[str, Any]:
    """Read at most one row from ``table_name``.

    Returns:
        dict: ``healthy`` flag, plus ``error`` when the read failed.
    """
    try:
        get_supabase_client().table(table_name).select("*").limit(1).execute()
    except Exception as e:
        return {"healthy": False, "error": str(e)}
    return {"healthy": True}
