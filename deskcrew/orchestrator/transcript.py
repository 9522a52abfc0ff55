"""Shared chat transcript for the group chat.

The transcript is an append-only log of ChatMessage objects with strictly
increasing sequence numbers. Agents and strategies only ever read it; the
group chat is the single writer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Optional

from deskcrew.errors import InvalidStateError

if TYPE_CHECKING:
    from .agents import AgentReply

logger = logging.getLogger(__name__)


class AuthorRole(str, Enum):
    """Who wrote a transcript message."""

    USER = "user"
    AGENT = "agent"


@dataclass(frozen=True)
class ChatMessage:
    """An immutable message in the shared transcript.

    Attributes:
        role: USER or AGENT.
        content: Message text.
        sequence_no: Position in the transcript, strictly increasing.
        author: Agent name; None for user messages.
        warnings: Tool failures reported during the agent's turn.
    """

    role: AuthorRole
    content: str
    sequence_no: int
    author: Optional[str] = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_user_message(self) -> bool:
        return self.role == AuthorRole.USER

    @property
    def is_agent_message(self) -> bool:
        return self.role == AuthorRole.AGENT

    @property
    def display_name(self) -> str:
        """Name shown in prompts and on the console."""
        return self.author or self.role.value


class Transcript:
    """Append-only, ordered sequence of chat messages."""

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []
        self._next_sequence_no = 1

    @property
    def next_sequence_no(self) -> int:
        """Sequence number the next appended message will receive."""
        return self._next_sequence_no

    @property
    def last(self) -> Optional[ChatMessage]:
        """The most recent message, or None when empty."""
        return self._messages[-1] if self._messages else None

    def append(self, message: ChatMessage) -> None:
        """Append a message.

        Raises:
            InvalidStateError: If the message's sequence number does not
                follow the last one.
        """
        last = self.last
        if last is not None and message.sequence_no <= last.sequence_no:
            raise InvalidStateError(
                f"out-of-order append: sequence {message.sequence_no} "
                f"after {last.sequence_no}"
            )
        self._messages.append(message)
        self._next_sequence_no = message.sequence_no + 1

    def add_user_message(self, content: str) -> ChatMessage:
        """Stamp and append a user message."""
        message = ChatMessage(
            role=AuthorRole.USER,
            content=content,
            sequence_no=self._next_sequence_no,
        )
        self.append(message)
        return message

    def add_agent_message(self, reply: AgentReply) -> ChatMessage:
        """Stamp and append an agent's reply."""
        message = ChatMessage(
            role=AuthorRole.AGENT,
            content=reply.content,
            sequence_no=self._next_sequence_no,
            author=reply.author,
            warnings=tuple(reply.warnings),
        )
        self.append(message)
        return message

    def messages(self) -> tuple[ChatMessage, ...]:
        """Read-only view of the full transcript."""
        return tuple(self._messages)

    def reset(self) -> None:
        """Remove every message and restart sequence numbering."""
        logger.debug(f"Clearing transcript ({len(self._messages)} messages)")
        self._messages.clear()
        self._next_sequence_no = 1

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._messages))

    def __bool__(self) -> bool:
        return bool(self._messages)
