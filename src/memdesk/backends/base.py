"""Backing store interface for customer memory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..memory.models import ObservationSummary, Profile


class BackendError(Exception):
    """Raised when the backing store cannot complete an operation."""


class IntegrityError(BackendError):
    """Raised when a write violates a referential or check constraint."""


class MemoryBackend(ABC):
    """Store handle for profiles and observations.

    Implementations raise BackendError for every store failure and leave
    the decision of how to report it to the caller.
    """

    @abstractmethod
    async def fetch_profile(self, phone: str) -> Profile | None:
        """Return the profile for an exact phone match, or None."""
        ...

    @abstractmethod
    async def insert_profile(
        self, phone: str, name: str | None = None, email: str | None = None
    ) -> None:
        """Insert a new profile row."""
        ...

    @abstractmethod
    async def update_profile(self, phone: str, fields: dict[str, Any]) -> None:
        """Update the given columns of an existing profile."""
        ...

    @abstractmethod
    async def insert_observation(
        self,
        customer_phone: str,
        content: str,
        source: str,
        occurred_at: str,
    ) -> None:
        """Insert a single observation row."""
        ...

    @abstractmethod
    async def recent_observations(
        self, customer_phone: str, limit: int
    ) -> list[ObservationSummary]:
        """Return up to `limit` observations, most recent first."""
        ...

    @abstractmethod
    async def search_observations(
        self, customer_phone: str, query: str, limit: int
    ) -> list[ObservationSummary]:
        """Full-text search over observation content, most recent first.

        Matching and tokenization are defined by the store.
        """
        ...

    async def close(self) -> None:
        """Release any held connections."""
        return None
