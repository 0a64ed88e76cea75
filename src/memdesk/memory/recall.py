"""Recall of customer observations, with search and recency fallback."""

import logging

from ..backends.base import BackendError, MemoryBackend
from ..logging import JSONLLogger
from .models import (
    ObservationSummary,
    RecallOutcome,
    RecallResult,
    RecallStatus,
)

logger = logging.getLogger(__name__)


class RecallEngine:
    """Retrieves observations for a customer, most recent first.

    Without a query the most recent observations are returned. With a query
    a full-text search runs first; when it yields nothing (including when
    the search itself fails) the most recent few observations are returned
    instead, whatever the query was.
    """

    def __init__(
        self,
        backend: MemoryBackend,
        recent_limit: int = 10,
        search_limit: int = 20,
        fallback_limit: int = 5,
        event_log: JSONLLogger | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            backend: Store to read observations from.
            recent_limit: Observations returned when there is no query.
            search_limit: Maximum observations returned by a search.
            fallback_limit: Observations returned when a search finds nothing.
            event_log: Optional JSONL event log.
        """
        self.backend = backend
        self.recent_limit = recent_limit
        self.search_limit = search_limit
        self.fallback_limit = fallback_limit
        self.event_log = event_log

    async def recall(
        self,
        profile_id: str,
        query: str = "",
        conversation_id: str | None = None,
    ) -> RecallResult | None:
        """Recall observations for a profile.

        Returns:
            The recall result (possibly with no observations), or None if
            the recall failed.
        """
        outcome = await self.recall_outcome(profile_id, query, conversation_id)
        return outcome.result

    async def recall_outcome(
        self,
        profile_id: str,
        query: str = "",
        conversation_id: str | None = None,
    ) -> RecallOutcome:
        """Recall observations, reporting whether history was empty or lookup failed.

        Args:
            profile_id: Phone of the customer.
            query: Free text to search for. Blank means "most recent".
            conversation_id: Accepted for callers that track conversations.
                It is recorded in the event log but does not scope the query.
        """
        try:
            observations, used_fallback = await self._fetch(profile_id, query or "")
        except BackendError as e:
            logger.error("Error recalling memories: %s", e)
            return self._finish(
                profile_id, query, conversation_id,
                RecallOutcome(status=RecallStatus.ERROR, error=str(e)),
            )
        except Exception as e:
            logger.exception("Unexpected error recalling memories")
            return self._finish(
                profile_id, query, conversation_id,
                RecallOutcome(status=RecallStatus.ERROR, error=str(e)),
            )

        logger.info(
            "Recalled %d observations for profile %s", len(observations), profile_id
        )
        result = RecallResult(observations=list(observations), summaries=[])
        status = RecallStatus.OK if result.observations else RecallStatus.EMPTY
        return self._finish(
            profile_id, query, conversation_id,
            RecallOutcome(status=status, result=result, used_fallback=used_fallback),
        )

    async def _fetch(
        self, profile_id: str, query: str
    ) -> tuple[list[ObservationSummary], bool]:
        """Run the search-then-fallback policy.

        Returns:
            The observations and whether the recency fallback was used.
        """
        if not query.strip():
            return await self.backend.recent_observations(profile_id, self.recent_limit), False

        observations: list[ObservationSummary] = []
        try:
            observations = await self.backend.search_observations(
                profile_id, query, self.search_limit
            )
        except BackendError as e:
            logger.error("Error searching observations: %s", e)

        if observations:
            return observations, False

        # TODO: decide whether an empty search should report "no matches"
        # instead; falling back also hides a misconfigured search index.
        fallback = await self.backend.recent_observations(profile_id, self.fallback_limit)
        return fallback, True

    def _finish(
        self,
        profile_id: str,
        query: str,
        conversation_id: str | None,
        outcome: RecallOutcome,
    ) -> RecallOutcome:
        if self.event_log:
            self.event_log.log_recall(
                profile_id,
                outcome.status.value,
                len(outcome.result.observations) if outcome.result else 0,
                query=query,
                conversation_id=conversation_id,
                used_fallback=outcome.used_fallback,
                error=outcome.error,
            )
        return outcome
