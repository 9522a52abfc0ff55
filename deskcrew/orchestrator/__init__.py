"""Group chat orchestration for DeskCrew.

This package coordinates a fixed pool of agents answering a user question
over one shared transcript.

Main components:
- GroupChat: Round loop that selects, invokes and terminates
- Agent: Interface every participant implements
- SelectionStrategy: Decides who speaks next
- TerminationStrategy: Decides when the answer is complete
- Transcript: Append-only shared message log
"""

from .agents import Agent, AgentReply, ChatCompletionAgent, ScriptedAgent
from .decisions import run_decision
from .engine import (
    ChatState,
    GroupChat,
    RoundState,
    create_group_chat,
    create_selection_strategy,
    create_termination_strategy,
)
from .history import (
    HistoryReducer,
    KeepAllReducer,
    TruncationReducer,
    create_history_reducer,
    format_history,
)
from .prompts import (
    INTENT_EXPERT,
    INTENT_STOCK,
    SELECTION_PROMPT,
    TERMINATION_PROMPT,
    format_agent_system_prompt,
    format_selection_prompt,
    format_termination_prompt,
)
from .selection import (
    PromptSelectionStrategy,
    SelectionStrategy,
    SequentialSelectionStrategy,
    TaggedSelectionStrategy,
    parse_agent_name,
)
from .termination import (
    KeywordTerminationStrategy,
    PromptTerminationStrategy,
    TerminationStrategy,
    contains_token,
)
from .transcript import AuthorRole, ChatMessage, Transcript

__all__ = [
    # Engine
    "GroupChat",
    "ChatState",
    "RoundState",
    "create_group_chat",
    "create_selection_strategy",
    "create_termination_strategy",
    # Agents
    "Agent",
    "AgentReply",
    "ChatCompletionAgent",
    "ScriptedAgent",
    # Strategies
    "SelectionStrategy",
    "PromptSelectionStrategy",
    "SequentialSelectionStrategy",
    "TaggedSelectionStrategy",
    "parse_agent_name",
    "TerminationStrategy",
    "PromptTerminationStrategy",
    "KeywordTerminationStrategy",
    "contains_token",
    "run_decision",
    # History
    "HistoryReducer",
    "TruncationReducer",
    "KeepAllReducer",
    "create_history_reducer",
    "format_history",
    # Transcript
    "Transcript",
    "ChatMessage",
    "AuthorRole",
    # Prompts
    "SELECTION_PROMPT",
    "TERMINATION_PROMPT",
    "INTENT_STOCK",
    "INTENT_EXPERT",
    "format_selection_prompt",
    "format_termination_prompt",
    "format_agent_system_prompt",
]
