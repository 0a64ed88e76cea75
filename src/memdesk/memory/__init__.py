"""Memory module for per-customer observation storage and recall."""

from .models import (
    ObservationSummary,
    Profile,
    ProfileTraits,
    RecallOutcome,
    RecallResult,
    RecallStatus,
    Source,
    Summary,
)
from .extractor import FactExtractor
from .formatting import format_memories_for_prompt
from .observations import ObservationStore
from .profiles import ProfileRegistry
from .recall import RecallEngine
from .manager import CustomerMemory

__all__ = [
    "CustomerMemory",
    "FactExtractor",
    "ObservationStore",
    "ObservationSummary",
    "Profile",
    "ProfileRegistry",
    "ProfileTraits",
    "RecallEngine",
    "RecallOutcome",
    "RecallResult",
    "RecallStatus",
    "Source",
    "Summary",
    "format_memories_for_prompt",
]
