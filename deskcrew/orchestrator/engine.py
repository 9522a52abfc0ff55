"""Group chat engine for DeskCrew.

The GroupChat runs the round loop over a shared transcript:
1. Selecting the next agent from a reduced history
2. Invoking that agent with the full transcript
3. Appending and yielding its message
4. Deciding whether the conversation is complete

Only one loop runs at a time; concurrent callers wait on a lock.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional, Sequence

from deskcrew.config import Settings
from deskcrew.errors import (
    GenerationError,
    InvalidConfigError,
    InvalidStateError,
    SelectionError,
    ToolNotFoundError,
)
from deskcrew.models.base import ModelClient
from deskcrew.tools import ToolExecutor, ToolRegistry, register_builtin_tools

from .agents import Agent, ChatCompletionAgent
from .history import create_history_reducer
from .selection import (
    PromptSelectionStrategy,
    SelectionStrategy,
    SequentialSelectionStrategy,
    TaggedSelectionStrategy,
)
from .termination import (
    KeywordTerminationStrategy,
    PromptTerminationStrategy,
    TerminationStrategy,
)
from .transcript import ChatMessage, Transcript

logger = logging.getLogger(__name__)


class ChatState(str, Enum):
    """Where the round loop currently is."""

    IDLE = "idle"
    SELECTING = "selecting"
    INVOKING = "invoking"
    TERMINATED = "terminated"


@dataclass
class RoundState:
    """Progress of the round loop.

    Attributes:
        current_round: Rounds completed in the current invocation.
        total_rounds: Rounds completed since the last reset.
        is_terminated: Set when termination fires; cleared by the caller.
        active_agent: Agent of the round in flight, if any.
    """

    current_round: int = 0
    total_rounds: int = 0
    is_terminated: bool = False
    active_agent: Optional[str] = None

    def reset(self) -> None:
        self.current_round = 0
        self.total_rounds = 0
        self.is_terminated = False
        self.active_agent = None


class GroupChat:
    """Coordinates a fixed pool of agents over one shared transcript."""

    def __init__(
        self,
        agents: Sequence[Agent],
        selection: SelectionStrategy,
        termination: TerminationStrategy,
    ):
        """Initialize the group chat.

        Args:
            agents: Agent pool; names must be unique
            selection: Strategy choosing each round's agent
            termination: Strategy deciding when to stop

        Raises:
            InvalidConfigError: If the pool is empty or names collide
        """
        if not agents:
            raise InvalidConfigError("agents", [], "at least one agent is required")

        self._agents: dict[str, Agent] = {}
        for agent in agents:
            if agent.name in self._agents:
                raise InvalidConfigError("agents", agent.name, "duplicate agent name")
            self._agents[agent.name] = agent

        self.selection = selection
        self.termination = termination
        self.transcript = Transcript()
        self.round_state = RoundState()
        self._state = ChatState.IDLE
        self._lock = asyncio.Lock()
        # Bumped whenever the user changes the conversation
        self._revision = 0

    @property
    def agents(self) -> dict[str, Agent]:
        """Agent pool keyed by name."""
        return dict(self._agents)

    @property
    def agent_names(self) -> list[str]:
        return list(self._agents)

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        """Read-only view of the transcript."""
        return self.transcript.messages()

    @property
    def is_complete(self) -> bool:
        """Whether termination has fired since it was last cleared."""
        return self.round_state.is_terminated

    @is_complete.setter
    def is_complete(self, value: bool) -> None:
        self.round_state.is_terminated = value
        if value:
            self._state = ChatState.TERMINATED
        elif self._state == ChatState.TERMINATED:
            self._state = ChatState.IDLE

    @property
    def is_running(self) -> bool:
        return self._state in (ChatState.SELECTING, ChatState.INVOKING)

    def add_user_message(self, content: str) -> ChatMessage:
        """Append a user message to the transcript.

        Raises:
            InvalidStateError: If a round is in progress
        """
        if self.is_running:
            raise InvalidStateError("cannot add a user message while a round is running")
        message = self.transcript.add_user_message(content)
        self._revision += 1
        logger.debug(f"User message #{message.sequence_no} added")
        return message

    def reset(self) -> None:
        """Clear the transcript and start over.

        Allowed while a loop is paused at a yielded message; that loop
        stops instead of resuming.

        Raises:
            InvalidStateError: If a round is in progress
        """
        if self.is_running:
            raise InvalidStateError("cannot reset while a round is running")
        self.transcript.reset()
        self.round_state.reset()
        self.selection.reset()
        self._state = ChatState.IDLE
        self._revision += 1
        logger.info("Conversation reset")

    async def invoke(self) -> AsyncIterator[ChatMessage]:
        """Run rounds until termination, yielding each new agent message.

        Each message is yielded as soon as it is appended, before the next
        round starts. A failed round appends nothing and is not counted.

        While paused at a yield the chat is IDLE, so a caller that stops
        iterating can add a message or reset right away. If the
        conversation changed during the pause, the loop ends without
        running termination.

        Yields:
            The ChatMessage produced by each round

        Raises:
            InvalidStateError: If the transcript is empty
            SelectionError: If no valid agent could be selected
            GenerationError: If an agent or a decision call fails
        """
        async with self._lock:
            if self.round_state.is_terminated:
                logger.debug("Chat is complete; nothing to do")
                return
            if not self.transcript:
                raise InvalidStateError("cannot run a round on an empty transcript")

            self.round_state.current_round = 0
            try:
                while True:
                    message = await self._run_round()
                    revision = self._revision
                    self._state = ChatState.IDLE
                    yield message

                    if self._revision != revision:
                        logger.debug("Conversation changed while paused; stopping")
                        return
                    # Termination is still part of the round
                    self._state = ChatState.INVOKING
                    done = await self.termination.should_terminate(
                        message.author or "",
                        self.transcript.messages(),
                        self.round_state.current_round,
                    )
                    if done:
                        self.round_state.is_terminated = True
                        self._state = ChatState.TERMINATED
                        logger.info(
                            f"Chat complete after {self.round_state.current_round} round(s)"
                        )
                        return
                    self._state = ChatState.IDLE
            except (GenerationError, SelectionError) as e:
                logger.debug(f"Round failed: {e!r}")
                raise
            finally:
                self.round_state.active_agent = None
                if self._state != ChatState.TERMINATED:
                    self._state = ChatState.IDLE

    async def _run_round(self) -> ChatMessage:
        """Select, invoke and append one message."""
        self._state = ChatState.SELECTING
        names = self.agent_names
        agent_name = await self.selection.next(self.transcript.messages(), names)

        agent = self._agents.get(agent_name)
        if agent is None:
            raise SelectionError(agent_name, names)

        self._state = ChatState.INVOKING
        self.round_state.active_agent = agent_name
        logger.debug(f"Round {self.round_state.current_round + 1}: invoking {agent_name}")

        reply = await agent.invoke(self.transcript.messages())
        if reply.author != agent_name:
            raise InvalidStateError(
                f"agent '{agent_name}' returned a reply authored by '{reply.author}'"
            )

        message = self.transcript.add_agent_message(reply)
        self.selection.record(agent_name)
        self.round_state.current_round += 1
        self.round_state.total_rounds += 1
        for warning in message.warnings:
            logger.warning(f"{agent_name}: {warning}")
        return message


def create_selection_strategy(settings: Settings, client: ModelClient) -> SelectionStrategy:
    """Build the selection strategy named in settings."""
    chat = settings.chat
    reducer = create_history_reducer(chat.history_depth)
    if chat.selection_strategy == "sequential":
        return SequentialSelectionStrategy(chat.initial_agent, reducer)
    if chat.selection_strategy == "tagged":
        return TaggedSelectionStrategy(chat.intent_routes, chat.initial_agent, reducer)
    return PromptSelectionStrategy(
        client,
        initial_agent=chat.initial_agent,
        history_reducer=reducer,
        prompt_template=chat.selection_prompt,
        max_retries=chat.selection_retries,
    )


def create_termination_strategy(
    settings: Settings,
    client: ModelClient,
    maximum_iterations: Optional[int] = None,
) -> TerminationStrategy:
    """Build the termination strategy named in settings."""
    chat = settings.chat
    reducer = create_history_reducer(chat.history_depth)
    cap = maximum_iterations or chat.maximum_iterations
    if chat.termination_strategy == "keyword":
        return KeywordTerminationStrategy(
            chat.termination_token,
            agents=chat.evaluated_agents,
            maximum_iterations=cap,
            history_reducer=reducer,
        )
    return PromptTerminationStrategy(
        client,
        token=chat.termination_token,
        agents=chat.evaluated_agents,
        maximum_iterations=cap,
        history_reducer=reducer,
        prompt_template=chat.termination_prompt,
    )


def create_group_chat(
    settings: Settings,
    client: ModelClient,
    registry: Optional[ToolRegistry] = None,
    maximum_iterations: Optional[int] = None,
) -> GroupChat:
    """Factory function to create a group chat from settings.

    Args:
        settings: Application settings
        client: Generation client shared by agents and strategies
        registry: Tool registry; built-in tools are registered when omitted
        maximum_iterations: Override of the configured round cap

    Returns:
        Configured GroupChat instance

    Raises:
        InvalidConfigError: If an agent is missing or names an unknown tool
    """
    if registry is None:
        registry = ToolRegistry()
        register_builtin_tools(registry, settings.tools)
    executor = ToolExecutor(registry, default_timeout=settings.tools.timeout)

    names = settings.get_enabled_agents()
    agents: list[Agent] = []
    for name in names:
        config = settings.get_agent(name)
        if config is None:
            raise InvalidConfigError(f"agents.{name}", name, "unknown agent")
        try:
            granted = registry.grant(config.tools)
        except ToolNotFoundError as e:
            raise InvalidConfigError(
                f"agents.{name}.tools", e.tool_name, "unknown tool"
            ) from e

        agents.append(
            ChatCompletionAgent(
                name=name,
                instructions=config.instructions,
                client=client,
                tools=granted or None,
                executor=executor,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                max_tool_iterations=settings.chat.max_tool_iterations,
                participants=names,
            )
        )

    return GroupChat(
        agents=agents,
        selection=create_selection_strategy(settings, client),
        termination=create_termination_strategy(settings, client, maximum_iterations),
    )
