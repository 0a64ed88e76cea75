"""Keyword-based fact extraction from conversation transcripts."""

import logging
import re
from typing import Any, Callable

logger = logging.getLogger(__name__)

PREAPPROVAL_FACT = "Customer is interested in mortgage pre-approval"
FIRST_TIME_BUYER_FACT = "Customer is a first-time home buyer"
BUDGET_FACT = "Customer mentioned budget: {amount}"
RATES_FACT = "Customer inquired about interest rates"
DOCUMENTS_FACT = "Customer asked about required documents"

AMOUNT_RE = re.compile(r"\$[\d,]+")


def _preapproval(text: str) -> str | None:
    lowered = text.lower()
    if "preapproval" in lowered or "pre-approval" in lowered:
        return PREAPPROVAL_FACT
    return None


def _first_time_buyer(text: str) -> str | None:
    lowered = text.lower()
    if "first time" in lowered and "buyer" in lowered:
        return FIRST_TIME_BUYER_FACT
    return None


def _budget(text: str) -> str | None:
    # Only the first amount counts, even when several are mentioned
    match = AMOUNT_RE.search(text)
    if match:
        return BUDGET_FACT.format(amount=match.group(0))
    return None


def _rates(text: str) -> str | None:
    lowered = text.lower()
    if "rate" in lowered or "interest" in lowered:
        return RATES_FACT
    return None


def _documents(text: str) -> str | None:
    if "document" in text.lower():
        return DOCUMENTS_FACT
    return None


# Checked in order; each rule contributes at most one fact.
RULES: tuple[Callable[[str], str | None], ...] = (
    _preapproval,
    _first_time_buyer,
    _budget,
    _rates,
    _documents,
)


class FactExtractor:
    """Extracts facts about a customer from what they said.

    Only user messages are scanned. Each rule looks for a fixed keyword or
    pattern and yields one fact string when it matches.
    """

    def __init__(
        self, rules: tuple[Callable[[str], str | None], ...] = RULES
    ) -> None:
        self.rules = rules

    def extract(self, messages: list[dict[str, Any]]) -> list[str]:
        """Extract facts from a conversation.

        Args:
            messages: The conversation messages, each with role and content.

        Returns:
            Facts in rule order, empty if nothing matched.
        """
        text = self._user_text(messages)
        if not text:
            return []

        facts = []
        for rule in self.rules:
            fact = rule(text)
            if fact:
                facts.append(fact)
        return facts

    def _user_text(self, messages: list[dict[str, Any]]) -> str:
        """Join the content of user messages with spaces."""
        parts = []
        for msg in messages:
            if not isinstance(msg, dict) or msg.get("role") != "user":
                continue
            content = msg.get("content")
            if isinstance(content, str):
                parts.append(content)
            else:
                logger.warning("Skipping user message without text content")
        return " ".join(parts)
