"""Selection strategies: who speaks next.

Every strategy shares the same outer rules:
- the first round after a reset goes to the initial agent, if one is set,
  without consulting the strategy
- the choice must be a member of the agent pool

Handles:
- Model-decided selection from a reduced history (prompt)
- Fixed rotation through the pool (sequential)
- Routing on intent tags written by the receptionist (tagged)
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from deskcrew.errors import InvalidStateError, SelectionError
from deskcrew.models.base import ModelClient

from .decisions import run_decision
from .history import HistoryReducer, TruncationReducer, format_history
from .prompts import format_selection_prompt
from .transcript import ChatMessage

logger = logging.getLogger(__name__)

# Characters stripped from a decision answer before matching
_ANSWER_PUNCTUATION = " \t\n\"'`*.,:;!?-()[]"

RETRY_NOTE = (
    "\n\nYour previous answer '{answer}' is not a participant. "
    "Answer with exactly one of: {names}."
)


def parse_agent_name(answer: str, agents: Sequence[str]) -> Optional[str]:
    """Map a free-text decision answer to a pool member.

    An exact case-insensitive match wins. Otherwise the answer must mention
    exactly one pool name as a whole word.

    Returns:
        The canonical agent name, or None if the answer is ambiguous or
        names nobody in the pool
    """
    cleaned = answer.strip(_ANSWER_PUNCTUATION).casefold()
    for name in agents:
        if cleaned == name.casefold():
            return name

    mentioned = [
        name
        for name in agents
        if re.search(rf"\b{re.escape(name)}\b", answer, re.IGNORECASE)
    ]
    if len(mentioned) == 1:
        return mentioned[0]
    return None


class SelectionStrategy(ABC):
    """Decides which agent takes the next round.

    The group chat calls ``next`` to get a choice and ``record`` once that
    agent's message is in the transcript. A round that fails is never
    recorded, so the initial agent still goes first after a failed opener.
    """

    def __init__(
        self,
        initial_agent: Optional[str] = None,
        history_reducer: Optional[HistoryReducer] = None,
    ):
        self.initial_agent = initial_agent
        self.history_reducer = history_reducer or TruncationReducer(1)
        self.has_selected = False
        self.last_selected: Optional[str] = None

    async def next(self, history: Sequence[ChatMessage], agents: Sequence[str]) -> str:
        """Choose the agent for the next round.

        Args:
            history: Full transcript
            agents: Names in the agent pool

        Raises:
            InvalidStateError: If the pool is empty or lacks the initial agent
            SelectionError: If the strategy cannot produce a pool member
            GenerationError: If a decision call fails
        """
        if not agents:
            raise InvalidStateError("no agents to select from")

        if self.initial_agent and not self.has_selected:
            if self.initial_agent not in agents:
                raise InvalidStateError(
                    f"initial agent '{self.initial_agent}' is not in the agent pool"
                )
            logger.debug(f"Selecting initial agent {self.initial_agent}")
            return self.initial_agent

        name = await self.select_agent(self.history_reducer.reduce(history), agents)
        if name not in agents:
            raise SelectionError(name, list(agents))
        logger.debug(f"Selected {name}")
        return name

    def record(self, name: str) -> None:
        """Note that ``name`` completed a round."""
        self.has_selected = True
        self.last_selected = name

    def reset(self) -> None:
        """Forget past rounds so the initial agent opens again."""
        self.has_selected = False
        self.last_selected = None

    @abstractmethod
    async def select_agent(
        self, history: Sequence[ChatMessage], agents: Sequence[str]
    ) -> str:
        """Pick a pool member from the reduced history."""
        ...


class PromptSelectionStrategy(SelectionStrategy):
    """Ask the model to name the next participant.

    Unparseable answers are re-prompted ``max_retries`` times with a
    correction note before giving up with SelectionError.
    """

    def __init__(
        self,
        client: ModelClient,
        initial_agent: Optional[str] = None,
        history_reducer: Optional[HistoryReducer] = None,
        prompt_template: Optional[str] = None,
        max_retries: int = 1,
    ):
        super().__init__(initial_agent, history_reducer)
        self.client = client
        self.prompt_template = prompt_template
        self.max_retries = max_retries

    async def select_agent(
        self, history: Sequence[ChatMessage], agents: Sequence[str]
    ) -> str:
        base_prompt = format_selection_prompt(
            list(agents), format_history(history), self.prompt_template
        )
        prompt = base_prompt
        attempts = self.max_retries + 1
        answer = ""

        for attempt in range(1, attempts + 1):
            answer = await run_decision(self.client, prompt, "selection")
            name = parse_agent_name(answer, agents)
            if name is not None:
                return name
            logger.warning(
                f"Selection answer {answer[:80]!r} names no participant "
                f"(attempt {attempt}/{attempts})"
            )
            prompt = base_prompt + RETRY_NOTE.format(
                answer=answer[:80], names=", ".join(agents)
            )

        raise SelectionError(answer, list(agents), attempts)


class SequentialSelectionStrategy(SelectionStrategy):
    """Rotate through the pool in order, starting after the last speaker."""

    async def select_agent(
        self, history: Sequence[ChatMessage], agents: Sequence[str]
    ) -> str:
        if self.last_selected in agents:
            index = list(agents).index(self.last_selected) + 1
        else:
            index = 0
        return agents[index % len(agents)]


class TaggedSelectionStrategy(SelectionStrategy):
    """Route on intent tags instead of a model decision.

    When the last message contains a configured tag, its agent goes next.
    Everything else goes back to the initial agent, which relays answers
    to the user.
    """

    def __init__(
        self,
        routes: dict[str, str],
        initial_agent: Optional[str] = None,
        history_reducer: Optional[HistoryReducer] = None,
    ):
        super().__init__(initial_agent, history_reducer)
        self.routes = dict(routes)

    async def select_agent(
        self, history: Sequence[ChatMessage], agents: Sequence[str]
    ) -> str:
        last = history[-1] if history else None
        if last is not None:
            for tag, agent in self.routes.items():
                if tag in last.content and last.author != agent:
                    return agent
        return self.initial_agent or agents[0]
