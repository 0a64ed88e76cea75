"""Rendering of recalled memories for an AI prompt."""

from datetime import datetime

from .models import RecallResult

PROMPT_HISTORY_LIMIT = 5


def format_date(timestamp: str) -> str:
    """Format an ISO timestamp as a US short date (M/D/YYYY).

    The calendar date is taken in the timestamp's own offset.
    """
    try:
        moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return "Invalid Date"
    return f"{moment.month}/{moment.day}/{moment.year}"


def format_memories_for_prompt(
    memories: RecallResult | None,
    history_limit: int = PROMPT_HISTORY_LIMIT,
) -> str:
    """Format recalled memories as context for the AI prompt.

    Args:
        memories: Result of a recall, already ordered most recent first.
        history_limit: Maximum observations listed under "Customer History".

    Returns:
        The context block, or empty string when there is nothing to add.
    """
    if memories is None:
        return ""

    context = ""

    if memories.observations:
        context += "\n\nCustomer History:\n"
        for obs in memories.observations[:history_limit]:
            context += f"- {obs.content} ({format_date(obs.occurred_at)})\n"

    if memories.summaries:
        context += "\nKey Facts:\n"
        for summary in memories.summaries:
            context += f"- {summary.content}\n"

    return context
