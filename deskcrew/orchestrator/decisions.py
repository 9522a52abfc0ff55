"""Decision procedures backed by the text-generation service.

Selection and termination both ask the model a short question and parse
the free-text answer into a constrained value. This module owns the call
itself; parsing lives with each strategy.
"""

import logging

from deskcrew.errors import GenerationError, ModelError
from deskcrew.models.base import ModelClient
from deskcrew.models.types import Message

logger = logging.getLogger(__name__)

# Decisions are a single word; keep them short and deterministic
DECISION_MAX_TOKENS = 50
DECISION_TEMPERATURE = 0.0


async def run_decision(
    client: ModelClient,
    prompt: str,
    source: str,
    max_tokens: int = DECISION_MAX_TOKENS,
    temperature: float = DECISION_TEMPERATURE,
) -> str:
    """Ask the model a decision question and return its stripped answer.

    Args:
        client: Generation client
        prompt: Fully formatted decision prompt
        source: Label for errors and logs ("selection", "termination")
        max_tokens: Response budget
        temperature: Sampling temperature

    Returns:
        The non-empty answer text

    Raises:
        GenerationError: If the call fails or the answer is empty
    """
    try:
        response = await client.generate(
            messages=[Message.user(prompt)],
            max_tokens=max_tokens,
            temperature=temperature,
        )
    except GenerationError:
        raise
    except ModelError as e:
        raise GenerationError(source, str(e), original_error=e) from e

    answer = (response.content or "").strip()
    if not answer:
        raise GenerationError(source, "empty decision response")

    logger.debug(f"{source} decision: {answer[:100]!r}")
    return answer
