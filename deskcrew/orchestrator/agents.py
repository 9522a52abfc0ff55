"""Agents that take turns in the group chat.

An agent reads the shared transcript and produces exactly one reply. The
group chat only depends on the ``Agent`` interface, so scripted agents and
model-backed agents are interchangeable.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence, Union

from deskcrew.errors import GenerationError, InvalidConfigError, ModelError
from deskcrew.models.base import ModelClient
from deskcrew.models.tools import ToolDefinition
from deskcrew.models.types import Message, ModelResponse, Usage
from deskcrew.tools.executor import ToolExecutor
from deskcrew.tools.registry import ToolRegistry

from .prompts import format_agent_system_prompt
from .transcript import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ITERATIONS = 5


@dataclass
class AgentReply:
    """One agent turn, before the group chat stamps it into the transcript.

    Attributes:
        author: Name of the agent that produced the reply.
        content: Reply text.
        warnings: Tool failures that happened while producing the reply.
        usage: Token usage across every model call in the turn.
    """

    author: str
    content: str
    warnings: list[str] = field(default_factory=list)
    usage: Optional[Usage] = None


class Agent(ABC):
    """A named participant that produces one reply per invocation."""

    def __init__(self, name: str, description: str = ""):
        if not name or not name.strip():
            raise InvalidConfigError("agent.name", name, "agent name cannot be empty")
        self.name = name
        self.description = description

    @abstractmethod
    async def invoke(self, history: Sequence[ChatMessage]) -> AgentReply:
        """Produce the next reply from the full transcript.

        Implementations must not modify ``history``.

        Raises:
            GenerationError: If no reply could be produced.
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ChatCompletionAgent(Agent):
    """Agent backed by the chat-completion service, with optional tools.

    Tool calls requested by the model are executed and fed back until the
    model answers in text or ``max_tool_iterations`` is exhausted. Failed
    tools never abort the turn; they are reported as warnings on the reply.
    """

    def __init__(
        self,
        name: str,
        instructions: str,
        client: ModelClient,
        tools: Optional[list[ToolDefinition]] = None,
        executor: Optional[ToolExecutor] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        max_tool_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS,
        participants: Optional[list[str]] = None,
        description: str = "",
    ):
        """Initialize the agent.

        Args:
            name: Unique agent name
            instructions: System prompt for this agent
            client: Generation client
            tools: Tool definitions the model may call
            executor: Executor for those tools (required when tools are given);
                calls are limited to the tools granted here
            max_tokens: Override of the client's max tokens
            temperature: Override of the client's temperature
            max_tool_iterations: Model calls allowed per turn while tools run
            participants: Names of every agent in the chat, for the system prompt
            description: Short description shown in listings
        """
        super().__init__(name, description)
        if tools and executor is None:
            raise InvalidConfigError(
                f"agents.{name}.tools", [t.name for t in tools], "tools require an executor"
            )
        self.instructions = instructions
        self.client = client
        self.tools = list(tools or [])
        # Without an executor every tool call comes back as not found
        self.executor = executor or ToolExecutor(ToolRegistry())
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_tool_iterations = max_tool_iterations
        others = [p for p in (participants or []) if p != name]
        self.system_prompt = format_agent_system_prompt(name, instructions, others)

    @property
    def tool_names(self) -> frozenset[str]:
        """Names of the tools this agent was granted."""
        return frozenset(tool.name for tool in self.tools)

    def _build_messages(self, history: Sequence[ChatMessage]) -> list[Message]:
        """Convert the transcript into model messages.

        Replies from every agent are sent as assistant messages labelled
        with their author.
        """
        messages = []
        for msg in history:
            if msg.is_user_message:
                messages.append(Message.user(msg.content))
            else:
                messages.append(Message.assistant(msg.content, name=msg.author))
        return messages

    async def _generate(self, messages: list[Message]) -> ModelResponse:
        try:
            return await self.client.generate(
                messages=messages,
                tools=self.tools or None,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=self.system_prompt,
            )
        except GenerationError:
            raise
        except ModelError as e:
            raise GenerationError(self.name, str(e), original_error=e) from e

    async def invoke(self, history: Sequence[ChatMessage]) -> AgentReply:
        messages = self._build_messages(history)
        warnings: list[str] = []
        total_usage = Usage()
        used_tools = False

        for iteration in range(1, self.max_tool_iterations + 1):
            response = await self._generate(messages)
            if response.usage:
                total_usage = total_usage + response.usage

            if not response.has_tool_calls:
                if not response.content.strip() and not used_tools:
                    raise GenerationError(self.name, "empty response")
                logger.debug(
                    f"{self.name} replied after {iteration} call(s), "
                    f"{total_usage.total_tokens} tokens"
                )
                return AgentReply(
                    author=self.name,
                    content=response.content,
                    warnings=warnings,
                    usage=total_usage if total_usage.total_tokens else None,
                )

            used_tools = True
            messages.append(
                Message.assistant(response.content, name=self.name, tool_calls=response.tool_calls)
            )

            results = await self.executor.execute_batch(response.tool_calls, self.tool_names)
            for result in results:
                error = result.to_error()
                if error is not None:
                    logger.warning(f"{self.name}: {error.message}")
                    warnings.append(error.message)

            messages.append(
                Message.tool_results_message([r.to_tool_result() for r in results])
            )

        raise GenerationError(
            self.name,
            f"no final answer after {self.max_tool_iterations} tool iterations",
        )


ScriptedResponder = Callable[
    [Sequence[ChatMessage]], Union[str, Awaitable[str]]
]


class ScriptedAgent(Agent):
    """Deterministic agent that replays canned replies.

    ``replies`` is either a list consumed in order, or a callable that
    receives the transcript and returns (or awaits) the reply text.
    Exception instances in the list are raised instead of replied.
    """

    def __init__(
        self,
        name: str,
        replies: Union[Sequence[Union[str, Exception]], ScriptedResponder],
        description: str = "",
    ):
        super().__init__(name, description)
        if callable(replies):
            self._responder: Optional[ScriptedResponder] = replies
            self._replies: list[Union[str, Exception]] = []
        else:
            self._responder = None
            self._replies = list(replies)
        self.invocations: list[tuple[ChatMessage, ...]] = []

    async def invoke(self, history: Sequence[ChatMessage]) -> AgentReply:
        self.invocations.append(tuple(history))

        if self._responder is not None:
            content = self._responder(history)
            if inspect.isawaitable(content):
                content = await content
        elif self._replies:
            content = self._replies.pop(0)
            if isinstance(content, BaseException):
                raise content
        else:
            raise GenerationError(self.name, "no scripted replies left")

        return AgentReply(author=self.name, content=str(content))
