"""JSONL event logging for memory operations."""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    profile_id: str | None = None
    source: str | None = None
    query: str | None = None
    conversation_id: str | None = None
    status: str | None = None
    count: int | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes memory events in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "events.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".memdesk" / "logs"
        self.log_dir = Path(log_dir)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        """Write a log entry to the file."""
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._rotate_if_needed()
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")
        except OSError as e:
            logger.warning("Could not write event log %s: %s", self.log_path, e)

    def log(
        self,
        event: str,
        *,
        profile_id: str | None = None,
        source: str | None = None,
        query: str | None = None,
        conversation_id: str | None = None,
        status: str | None = None,
        count: int | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            profile_id=profile_id,
            source=source,
            query=query,
            conversation_id=conversation_id,
            status=status,
            count=count,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_observation(
        self,
        profile_id: str,
        source: str,
        success: bool,
        *,
        error: str | None = None,
    ) -> None:
        """Log an observation write."""
        self.log(
            "observation_created" if success else "observation_rejected",
            profile_id=profile_id,
            source=source,
            error=error if not success else None,
        )

    def log_recall(
        self,
        profile_id: str,
        status: str,
        count: int,
        *,
        query: str | None = None,
        conversation_id: str | None = None,
        used_fallback: bool = False,
        error: str | None = None,
    ) -> None:
        """Log a recall and how it was served."""
        self.log(
            "recall",
            profile_id=profile_id,
            query=query or None,
            conversation_id=conversation_id,
            status=status,
            count=count,
            error=error,
            used_fallback=used_fallback,
        )

    def log_extraction(
        self,
        profile_id: str,
        source: str,
        facts: list[str],
        stored: int,
    ) -> None:
        """Log the result of a fact extraction."""
        self.log(
            "facts_extracted",
            profile_id=profile_id,
            source=source,
            count=len(facts),
            stored=stored,
            facts=facts,
        )


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger
