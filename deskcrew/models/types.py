"""Messages, replies and token accounting for the chat completions service.

Agents keep the conversation in these types; ``to_openai`` on each message
produces the request payload, and the ``from_openai`` constructors read the
pieces of a completion back.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# Chat completions only accept these characters in a participant name
_NAME_PATTERN = re.compile(r"[^a-zA-Z0-9_-]")


def participant_name(name: Optional[str]) -> Optional[str]:
    """Agent name as the service accepts it, or None when blank."""
    if not name:
        return None
    return _NAME_PATTERN.sub("_", name)[:64]


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class FinishReason(str, Enum):
    """Why a completion ended."""

    STOP = "stop"
    TOOL_USE = "tool_use"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"

    @classmethod
    def from_openai(cls, reason: Optional[str]) -> "FinishReason":
        """Map a ``finish_reason`` string; anything unknown counts as STOP."""
        return _OPENAI_FINISH_REASONS.get(reason or "", cls.STOP)


_OPENAI_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "tool_calls": FinishReason.TOOL_USE,
    "function_call": FinishReason.TOOL_USE,
    "length": FinishReason.LENGTH,
    "content_filter": FinishReason.CONTENT_FILTER,
}


@dataclass
class ToolCall:
    """A function call requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any]

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments)},
        }


@dataclass
class ToolResult:
    """Output of one tool call, sent back to the model."""

    tool_call_id: str
    content: str
    is_error: bool = False

    def to_openai(self) -> dict[str, Any]:
        return {"role": "tool", "tool_call_id": self.tool_call_id, "content": self.content}


@dataclass
class Message:
    """One entry of the conversation an agent sends to the model.

    ``name`` carries the participant that wrote a user or assistant
    message so the model can tell Coach, StockManager and Expert apart in
    the shared transcript. Tool messages hold one result per call.
    """

    role: MessageRole
    content: str
    name: Optional[str] = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)

    @classmethod
    def user(cls, content: str, name: Optional[str] = None) -> "Message":
        return cls(role=MessageRole.USER, content=content, name=name)

    @classmethod
    def assistant(
        cls,
        content: str,
        name: Optional[str] = None,
        tool_calls: Optional[list[ToolCall]] = None,
    ) -> "Message":
        return cls(
            role=MessageRole.ASSISTANT,
            content=content,
            name=name,
            tool_calls=list(tool_calls or []),
        )

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def tool_results_message(cls, results: list[ToolResult]) -> "Message":
        """Wrap the results of one batch of tool calls."""
        content = "\n\n".join(f"[{r.tool_call_id}]: {r.content}" for r in results)
        return cls(role=MessageRole.TOOL, content=content, tool_results=list(results))

    def preview(self, limit: int = 100) -> str:
        """Single log line for this message."""
        author = f" {self.name}" if self.name else ""
        text = self.content if len(self.content) <= limit else self.content[:limit] + "..."
        return f"[{self.role.value}{author}]: {text}"

    def to_openai(self) -> list[dict[str, Any]]:
        """Request entries for this message.

        A tool message expands to one entry per result; every other role
        maps to exactly one entry.
        """
        if self.role == MessageRole.TOOL:
            return [result.to_openai() for result in self.tool_results]
        if self.role == MessageRole.SYSTEM:
            return [{"role": "system", "content": self.content}]

        entry: dict[str, Any] = {"role": self.role.value, "content": self.content}
        name = participant_name(self.name)
        if name:
            entry["name"] = name
        if self.role == MessageRole.ASSISTANT:
            # The service wants null content next to tool calls
            entry["content"] = self.content or None
            if self.tool_calls:
                entry["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        return [entry]


# USD per million (prompt, completion) tokens, approximate list prices
PRICES_PER_MILLION: dict[str, tuple[float, float]] = {
    "gpt-4o": (2.5, 10.0),
    "gpt-4o-mini": (0.15, 0.6),
    "gpt-4.1": (2.0, 8.0),
    "gpt-4.1-mini": (0.4, 1.6),
    "gpt-4-turbo": (10.0, 30.0),
}


@dataclass
class Usage:
    """Tokens spent by one completion, or summed over an agent's turn."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_estimate: Optional[float] = None

    @classmethod
    def from_openai(cls, usage: Any, model_id: Optional[str] = None) -> Optional["Usage"]:
        """Read the ``usage`` block of a completion, priced for ``model_id``."""
        if usage is None:
            return None
        result = cls(
            prompt_tokens=usage.prompt_tokens or 0,
            completion_tokens=usage.completion_tokens or 0,
            total_tokens=usage.total_tokens or 0,
        )
        if model_id:
            result.cost_estimate = estimate_cost(model_id, result)
        return result

    def __add__(self, other: "Usage") -> "Usage":
        costs = [c for c in (self.cost_estimate, other.cost_estimate) if c is not None]
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            cost_estimate=sum(costs) if costs else None,
        )


@dataclass
class ModelResponse:
    """A parsed completion."""

    content: str
    model: str
    finish_reason: FinishReason
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: Optional[Usage] = None
    raw_response: Optional[Any] = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


def estimate_cost(model_id: str, usage: Usage) -> float:
    """Approximate USD cost of ``usage``; 0.0 for unpriced models and deployments."""
    prices = PRICES_PER_MILLION.get(model_id)
    if prices is None:
        return 0.0
    prompt_price, completion_price = prices
    cost = (
        usage.prompt_tokens * prompt_price + usage.completion_tokens * completion_price
    ) / 1_000_000
    return round(cost, 6)
