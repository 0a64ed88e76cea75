"""Append-only storage of customer observations."""

import logging
from datetime import datetime, timezone

from ..backends.base import BackendError, MemoryBackend
from ..logging import JSONLLogger
from .models import Source

logger = logging.getLogger(__name__)


class ObservationStore:
    """Writes observations about a customer.

    Observations are immutable once written; there is no update or delete.
    """

    def __init__(
        self,
        backend: MemoryBackend,
        event_log: JSONLLogger | None = None,
    ) -> None:
        self.backend = backend
        self.event_log = event_log

    async def create(
        self, profile_id: str, content: str, source: str | Source
    ) -> bool:
        """Record an observation that occurred now.

        Args:
            profile_id: Phone of the owning profile, which must already exist.
            content: The fact, as non-empty text.
            source: Channel the fact was observed on.

        Returns:
            True if persisted, False otherwise. A False result leaves nothing
            behind to clean up.
        """
        try:
            channel = Source.parse(source)
        except ValueError:
            logger.warning("Rejected observation with unknown source %r", source)
            self._log(profile_id, str(source), False, "unknown source")
            return False

        if not isinstance(content, str) or not content.strip():
            logger.warning("Rejected empty or non-text observation for profile %s", profile_id)
            self._log(profile_id, channel.value, False, "content must be non-empty text")
            return False

        try:
            await self.backend.insert_observation(
                profile_id,
                content,
                channel.value,
                occurred_at=datetime.now(timezone.utc).isoformat(),
            )
        except BackendError as e:
            logger.error("Failed to create observation: %s", e)
            self._log(profile_id, channel.value, False, str(e))
            return False
        except Exception as e:
            logger.exception("Error creating observation")
            self._log(profile_id, channel.value, False, str(e))
            return False

        logger.info("Created observation for profile %s", profile_id)
        self._log(profile_id, channel.value, True)
        return True

    def _log(
        self, profile_id: str, source: str, success: bool, error: str | None = None
    ) -> None:
        if self.event_log:
            self.event_log.log_observation(profile_id, source, success, error=error)
