"""Termination strategies: is the conversation done?

The iteration cap is checked before anything else and always applies.
Only messages from the evaluated agents are judged; everything else
continues without a decision call.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from deskcrew.models.base import ModelClient

from .decisions import run_decision
from .history import HistoryReducer, TruncationReducer, format_history
from .prompts import format_termination_prompt
from .transcript import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_MAXIMUM_ITERATIONS = 12


def contains_token(text: str, token: str) -> bool:
    """Case-insensitive substring check used for termination answers."""
    return token.casefold() in text.casefold()


class TerminationStrategy(ABC):
    """Decides whether the loop stops after a round."""

    def __init__(
        self,
        agents: Optional[Sequence[str]] = None,
        maximum_iterations: int = DEFAULT_MAXIMUM_ITERATIONS,
        history_reducer: Optional[HistoryReducer] = None,
    ):
        """Initialize the strategy.

        Args:
            agents: Agents whose messages are evaluated; None or empty evaluates all
            maximum_iterations: Rounds after which the loop always stops
            history_reducer: Reducer applied before evaluation
        """
        if maximum_iterations < 1:
            raise ValueError("maximum_iterations must be at least 1")
        self.agents = list(agents) if agents else None
        self.maximum_iterations = maximum_iterations
        self.history_reducer = history_reducer or TruncationReducer(1)

    def evaluates(self, agent_name: str) -> bool:
        """Whether messages from ``agent_name`` are judged at all."""
        return self.agents is None or agent_name in self.agents

    async def should_terminate(
        self,
        agent_name: str,
        history: Sequence[ChatMessage],
        round_count: int,
    ) -> bool:
        """Decide after a round whether to stop.

        Args:
            agent_name: Author of the message just appended
            history: Full transcript
            round_count: Rounds completed in this invocation

        Raises:
            GenerationError: If a decision call fails
        """
        if round_count >= self.maximum_iterations:
            logger.info(f"Reached maximum of {self.maximum_iterations} rounds")
            return True

        if not self.evaluates(agent_name):
            return False

        done = await self.should_agent_terminate(
            agent_name, self.history_reducer.reduce(history)
        )
        if done:
            logger.debug(f"Conversation complete after {agent_name}")
        return done

    @abstractmethod
    async def should_agent_terminate(
        self, agent_name: str, history: Sequence[ChatMessage]
    ) -> bool:
        """Judge the reduced history."""
        ...


class PromptTerminationStrategy(TerminationStrategy):
    """Ask the model whether the answer is satisfactory."""

    def __init__(
        self,
        client: ModelClient,
        token: str = "yes",
        agents: Optional[Sequence[str]] = None,
        maximum_iterations: int = DEFAULT_MAXIMUM_ITERATIONS,
        history_reducer: Optional[HistoryReducer] = None,
        prompt_template: Optional[str] = None,
    ):
        super().__init__(agents, maximum_iterations, history_reducer)
        self.client = client
        self.token = token
        self.prompt_template = prompt_template

    async def should_agent_terminate(
        self, agent_name: str, history: Sequence[ChatMessage]
    ) -> bool:
        prompt = format_termination_prompt(
            self.token, format_history(history), self.prompt_template
        )
        answer = await run_decision(self.client, prompt, "termination")
        return contains_token(answer, self.token)


class KeywordTerminationStrategy(TerminationStrategy):
    """Stop when the evaluated message itself contains the token."""

    def __init__(
        self,
        token: str,
        agents: Optional[Sequence[str]] = None,
        maximum_iterations: int = DEFAULT_MAXIMUM_ITERATIONS,
        history_reducer: Optional[HistoryReducer] = None,
    ):
        super().__init__(agents, maximum_iterations, history_reducer)
        self.token = token

    async def should_agent_terminate(
        self, agent_name: str, history: Sequence[ChatMessage]
    ) -> bool:
        return bool(history) and contains_token(history[-1].content, self.token)
