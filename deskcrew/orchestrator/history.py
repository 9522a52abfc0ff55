"""History reducers for strategy decision prompts.

Selection and termination only need to see the tail of the transcript, so
each strategy runs its own reducer before building a decision prompt.
Reducers never modify the transcript they are given.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from .transcript import ChatMessage

# Characters of each message kept when rendering a decision prompt
MAX_PROMPT_MESSAGE_CHARS = 4000


class HistoryReducer(ABC):
    """Produces a reduced view of a transcript."""

    @abstractmethod
    def reduce(self, messages: Sequence[ChatMessage]) -> tuple[ChatMessage, ...]:
        """Return the reduced view; must be deterministic and side-effect free."""
        ...


class TruncationReducer(HistoryReducer):
    """Keep only the most recent ``target_count`` messages."""

    def __init__(self, target_count: int = 1):
        if target_count < 1:
            raise ValueError("target_count must be at least 1")
        self.target_count = target_count

    def reduce(self, messages: Sequence[ChatMessage]) -> tuple[ChatMessage, ...]:
        return tuple(messages[-self.target_count:])

    def __repr__(self) -> str:
        return f"TruncationReducer(target_count={self.target_count})"


class KeepAllReducer(HistoryReducer):
    """Keep the whole transcript."""

    def reduce(self, messages: Sequence[ChatMessage]) -> tuple[ChatMessage, ...]:
        return tuple(messages)

    def __repr__(self) -> str:
        return "KeepAllReducer()"


def create_history_reducer(depth: int) -> HistoryReducer:
    """Map a configured history depth to a reducer.

    Args:
        depth: Number of trailing messages to keep; 0 or less keeps all.
    """
    if depth <= 0:
        return KeepAllReducer()
    return TruncationReducer(depth)


def format_history(
    messages: Sequence[ChatMessage],
    max_chars: int = MAX_PROMPT_MESSAGE_CHARS,
) -> str:
    """Render a reduced history for a decision prompt.

    Each message is prefixed with its author so the decision procedure
    can tell who produced the RESPONSE.
    """
    if not messages:
        return "(No messages)"

    def clip(text: str) -> str:
        return text[:max_chars] + "..." if len(text) > max_chars else text

    return "\n\n".join(
        f"{msg.display_name.upper()}: {clip(msg.content)}" for msg in messages
    )
