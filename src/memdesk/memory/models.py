"""Data models for the customer memory system."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Source(str, Enum):
    """Channel an observation was recorded on."""

    VOICE = "voice"
    SMS = "sms"
    WHATSAPP = "whatsapp"

    @classmethod
    def parse(cls, value: "str | Source") -> "Source":
        """Parse a channel name, accepting 'call' as an alias for voice.

        Raises:
            ValueError: If the value is not a known channel.
        """
        if isinstance(value, Source):
            return value
        normalized = str(value).strip().lower()
        if normalized == "call":
            return cls.VOICE
        return cls(normalized)


@dataclass(frozen=True)
class ProfileTraits:
    """Optional customer attributes supplied with a profile write.

    Empty or None values are treated as omitted and never overwrite
    stored data.
    """

    name: str | None = None
    email: str | None = None

    @classmethod
    def coerce(cls, value: "ProfileTraits | dict[str, Any] | None") -> "ProfileTraits":
        """Build traits from an instance, a {name, email} dict or None.

        Raises:
            TypeError: If the value is none of those.
        """
        if value is None:
            return cls()
        if isinstance(value, ProfileTraits):
            return value
        if isinstance(value, dict):
            return cls(name=value.get("name"), email=value.get("email"))
        raise TypeError(f"Unsupported profile traits: {type(value).__name__}")

    def provided(self) -> dict[str, str]:
        """Return only the traits that carry a value."""
        fields = {"name": self.name, "email": self.email}
        return {k: v for k, v in fields.items() if v}


@dataclass(frozen=True)
class Profile:
    """A customer profile keyed by phone number.

    Attributes:
        phone: Customer phone number, also the profile identifier.
        name: Optional customer name.
        email: Optional customer email.
        created_at: ISO timestamp when created.
        updated_at: ISO timestamp when last updated.
    """

    phone: str
    name: str | None = None
    email: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class ObservationSummary:
    """An observation as returned by recall."""

    content: str
    occurred_at: str
    source: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "occurredAt": self.occurred_at,
            "source": self.source,
        }


@dataclass(frozen=True)
class Summary:
    """A higher-level fact derived from several observations."""

    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content}


@dataclass(frozen=True)
class RecallResult:
    """Observations recalled for a customer, most recent first.

    Attributes:
        observations: Recalled observations ordered by occurred_at descending.
        summaries: Derived summaries. Not generated yet, always empty.
    """

    observations: list[ObservationSummary] = field(default_factory=list)
    summaries: list[Summary] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "observations": [o.to_dict() for o in self.observations],
            "summaries": [s.to_dict() for s in self.summaries],
        }


class RecallStatus(str, Enum):
    """Outcome of a recall."""

    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class RecallOutcome:
    """Tagged recall result separating "no history" from "recall failed".

    Attributes:
        status: OK when observations were found, EMPTY when the customer has
            no matching history, ERROR when the recall failed.
        result: The recall result for OK and EMPTY, None for ERROR.
        error: Error description for ERROR.
        used_fallback: True when a search returned nothing and the most
            recent observations were used instead.
    """

    status: RecallStatus
    result: RecallResult | None = None
    error: str | None = None
    used_fallback: bool = False

    @property
    def ok(self) -> bool:
        return self.status != RecallStatus.ERROR
