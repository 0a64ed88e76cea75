"""Backing stores for customer memory."""

from ..config import MemoryConfig
from .base import BackendError, IntegrityError, MemoryBackend
from .sqlite import SQLiteBackend
from .supabase import POSTGRES_SCHEMA, SupabaseBackend


def create_backend(config: MemoryConfig) -> MemoryBackend:
    """Build the backend selected by the config.

    The SQLite schema is created on first use.

    Raises:
        BackendError: If the SQLite database cannot be initialized.
    """
    if config.backend == "supabase":
        return SupabaseBackend(
            config.supabase_url or "",
            config.supabase_key or "",
            timeout=config.request_timeout,
        )

    backend = SQLiteBackend(config.db_path)
    backend.init_db()
    return backend


__all__ = [
    "BackendError",
    "IntegrityError",
    "MemoryBackend",
    "POSTGRES_SCHEMA",
    "SQLiteBackend",
    "SupabaseBackend",
    "create_backend",
]
