"""Prompt templates for the group chat decision procedures.

These templates are used for:
- Choosing the next participant (selection)
- Deciding whether the answer is complete (termination)
- Framing each agent's own instructions

Custom templates from configuration must keep the same placeholders.
"""

from typing import Optional

# Placeholders: {participants}, {history}
SELECTION_PROMPT = """Examine the provided RESPONSE and choose the next participant.
State only the name of the chosen participant without explanation.

Choose only from these participants:
{participants}

RESPONSE:
{history}"""

# Placeholders: {token}, {history}
TERMINATION_PROMPT = """Examine the RESPONSE and determine whether the content has been deemed satisfactory.
If content is satisfactory, respond with a single word without explanation: {token}.
If user question is answered, it is satisfactory.

RESPONSE:
{history}"""

AGENT_CONTEXT_TEMPLATE = """

You are {name}, one participant in a help desk group chat. The other participants are: {others}.
Messages from other participants are labelled with their names."""

# Intent tags the receptionist may emit for tag-based routing
INTENT_STOCK = "INTENT_STOCK"
INTENT_EXPERT = "INTENT_EXPERT"


def format_selection_prompt(
    participants: list[str],
    history: str,
    template: Optional[str] = None,
) -> str:
    """Format the next-participant selection prompt.

    Args:
        participants: Names the decision may choose from
        history: Rendered reduced history
        template: Optional override of SELECTION_PROMPT

    Returns:
        Formatted prompt string
    """
    return (template or SELECTION_PROMPT).format(
        participants="\n".join(f"- {name}" for name in participants),
        history=history,
    )


def format_termination_prompt(
    token: str,
    history: str,
    template: Optional[str] = None,
) -> str:
    """Format the termination decision prompt.

    Args:
        token: Word the model must answer with when the conversation is done
        history: Rendered reduced history
        template: Optional override of TERMINATION_PROMPT

    Returns:
        Formatted prompt string
    """
    return (template or TERMINATION_PROMPT).format(token=token, history=history)


def format_agent_system_prompt(
    name: str,
    instructions: str,
    other_agents: list[str],
) -> str:
    """Append group chat context to an agent's own instructions."""
    prompt = instructions.strip()
    if other_agents:
        prompt += AGENT_CONTEXT_TEMPLATE.format(name=name, others=", ".join(other_agents))
    return prompt.strip()
