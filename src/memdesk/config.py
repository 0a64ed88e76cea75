"""Configuration for the customer memory system.

Values come from environment variables (optionally loaded from a .env file
by the entry point) and are validated when the config is built.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".memdesk"
DEFAULT_DB_PATH = DEFAULT_HOME / "memory.db"
DEFAULT_LOG_DIR = DEFAULT_HOME / "logs"

BACKENDS = ("sqlite", "supabase")


@dataclass
class MemoryConfig:
    """Configuration for storage and recall.

    Attributes:
        backend: Backing store, 'sqlite' or 'supabase'.
        db_path: SQLite database file (sqlite backend).
        supabase_url: Supabase project URL (supabase backend).
        supabase_key: Supabase service role key (supabase backend).
        request_timeout: Timeout in seconds for Supabase requests.
        recent_limit: Observations returned by a recall without a query.
        search_limit: Maximum observations returned by a search.
        fallback_limit: Observations returned when a search finds nothing.
        prompt_history_limit: Observations rendered in the prompt block.
        log_dir: Directory for the JSONL event log.
    """

    backend: str = "sqlite"
    db_path: Path | None = None
    supabase_url: str | None = None
    supabase_key: str | None = None
    request_timeout: float = 10.0
    recent_limit: int = 10
    search_limit: int = 20
    fallback_limit: int = 5
    prompt_history_limit: int = 5
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        """Validate config and set defaults."""
        if self.backend not in BACKENDS:
            raise ValueError(
                f"Unknown backend '{self.backend}', expected one of {', '.join(BACKENDS)}"
            )

        if self.db_path is None:
            self.db_path = DEFAULT_DB_PATH

        if self.log_dir is None:
            self.log_dir = DEFAULT_LOG_DIR

        for name in ("recent_limit", "search_limit", "fallback_limit", "prompt_history_limit"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

        if self.backend == "supabase" and not (self.supabase_url and self.supabase_key):
            raise ValueError(
                "supabase backend requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY"
            )


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer for %s: %r. Using %d.", name, value, default)
        return default


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid number for %s: %r. Using %s.", name, value, default)
        return default


def config_from_env() -> MemoryConfig:
    """Load configuration from environment variables."""
    db_path = os.getenv("MEMDESK_DB_PATH")
    log_dir = os.getenv("MEMDESK_LOG_DIR")

    return MemoryConfig(
        backend=os.getenv("MEMDESK_BACKEND", "sqlite").strip().lower(),
        db_path=Path(db_path).expanduser() if db_path else None,
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
        request_timeout=_float_env("MEMDESK_REQUEST_TIMEOUT", 10.0),
        recent_limit=_int_env("MEMDESK_RECENT_LIMIT", 10),
        search_limit=_int_env("MEMDESK_SEARCH_LIMIT", 20),
        fallback_limit=_int_env("MEMDESK_FALLBACK_LIMIT", 5),
        prompt_history_limit=_int_env("MEMDESK_PROMPT_HISTORY_LIMIT", 5),
        log_dir=Path(log_dir).expanduser() if log_dir else None,
    )
