"""Customer memory facade for conversation services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .extractor import FactExtractor
from .formatting import PROMPT_HISTORY_LIMIT, format_memories_for_prompt
from .models import ProfileTraits, RecallOutcome, RecallResult, Source
from .observations import ObservationStore
from .profiles import ProfileRegistry
from .recall import RecallEngine

if TYPE_CHECKING:
    from ..backends.base import MemoryBackend
    from ..config import MemoryConfig
    from ..logging import JSONLLogger

logger = logging.getLogger(__name__)


class CustomerMemory:
    """Orchestrates memory operations: profiles, observations, recall and extraction.

    This is the main interface for the memory system. None of its
    operations raise; failures come back as False, None or an error outcome
    and are logged.
    """

    def __init__(
        self,
        backend: MemoryBackend,
        extractor: FactExtractor | None = None,
        event_log: JSONLLogger | None = None,
        recent_limit: int = 10,
        search_limit: int = 20,
        fallback_limit: int = 5,
        prompt_history_limit: int = PROMPT_HISTORY_LIMIT,
    ) -> None:
        """Initialize the memory with a backend.

        Args:
            backend: The store handle shared by all components.
            extractor: Fact extractor, the keyword rules by default.
            event_log: Optional JSONL event log.
            recent_limit: Observations recalled without a query.
            search_limit: Maximum observations recalled by a search.
            fallback_limit: Observations recalled when a search finds nothing.
            prompt_history_limit: Observations rendered into the prompt.
        """
        self.backend = backend
        self.extractor = extractor or FactExtractor()
        self.event_log = event_log
        self.prompt_history_limit = prompt_history_limit
        self.profiles = ProfileRegistry(backend, event_log=event_log)
        self.observations = ObservationStore(backend, event_log=event_log)
        self.recall_engine = RecallEngine(
            backend,
            recent_limit=recent_limit,
            search_limit=search_limit,
            fallback_limit=fallback_limit,
            event_log=event_log,
        )

    @classmethod
    def from_config(
        cls,
        config: MemoryConfig,
        event_log: JSONLLogger | None = None,
    ) -> CustomerMemory:
        """Build a CustomerMemory over the backend selected by the config."""
        from ..backends import create_backend

        return cls(
            create_backend(config),
            event_log=event_log,
            recent_limit=config.recent_limit,
            search_limit=config.search_limit,
            fallback_limit=config.fallback_limit,
            prompt_history_limit=config.prompt_history_limit,
        )

    async def create_or_update_profile(
        self, phone: str, traits: ProfileTraits | dict[str, Any] | None = None
    ) -> bool:
        return await self.profiles.create_or_update(phone, traits)

    async def lookup_profile(self, phone: str) -> str | None:
        return await self.profiles.lookup(phone)

    async def get_or_create_profile(
        self, phone: str, traits: ProfileTraits | dict[str, Any] | None = None
    ) -> str | None:
        return await self.profiles.get_or_create(phone, traits)

    async def create_observation(
        self, profile_id: str, content: str, source: str | Source
    ) -> bool:
        return await self.observations.create(profile_id, content, source)

    async def recall_memories(
        self,
        profile_id: str,
        query: str = "",
        conversation_id: str | None = None,
    ) -> RecallResult | None:
        """Recall observations for a profile.

        Returns None when the recall failed, and a result with no
        observations when the customer simply has no history.
        """
        return await self.recall_engine.recall(profile_id, query, conversation_id)

    async def recall_outcome(
        self,
        profile_id: str,
        query: str = "",
        conversation_id: str | None = None,
    ) -> RecallOutcome:
        return await self.recall_engine.recall_outcome(
            profile_id, query, conversation_id
        )

    async def extract_and_store_observations(
        self,
        profile_id: str,
        messages: list[dict[str, Any]],
        source: str | Source,
    ) -> None:
        """Extract facts from a conversation and store each as an observation.

        Facts are stored one at a time; a failed write does not stop the
        rest. Nothing is raised to the caller.

        Args:
            profile_id: Phone of the customer the conversation was with.
            messages: The conversation messages to analyze.
            source: Channel the conversation took place on.
        """
        try:
            facts = self.extractor.extract(messages)

            stored = 0
            for fact in facts:
                if await self.observations.create(profile_id, fact, source):
                    stored += 1

            if self.event_log:
                channel = source.value if isinstance(source, Source) else str(source)
                self.event_log.log_extraction(profile_id, channel, facts, stored)
        except Exception:
            logger.exception("Error extracting observations")

    def format_memories_for_prompt(self, memories: RecallResult | None) -> str:
        return format_memories_for_prompt(memories, self.prompt_history_limit)

    async def close(self) -> None:
        """Close the backend."""
        await self.backend.close()
