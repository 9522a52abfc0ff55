"""Interface shared by generation clients, plus retry handling."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from deskcrew.errors import APIError, RateLimitError

from .tools import ToolDefinition
from .types import Message, ModelResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff for transient service failures.

    Attributes:
        max_retries: Attempts after the first one.
        base_delay: Seconds before the first retry.
        max_delay: Upper bound for any single wait.
        exponential_base: Growth factor between waits.
        retryable: Exceptions worth another attempt.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    retryable: tuple[type[Exception], ...] = (RateLimitError, APIError)

    def delay(self, attempt: int, error: Exception) -> float:
        """Seconds to wait after failed ``attempt`` (0-based)."""
        # The service's own hint wins
        if isinstance(error, RateLimitError) and error.retry_after:
            return error.retry_after
        return min(self.base_delay * self.exponential_base**attempt, self.max_delay)


def with_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    retryable_exceptions: tuple = (RateLimitError, APIError),
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry an async call on rate limits and API errors.

    The last error is re-raised once the retries are spent. Anything not in
    ``retryable_exceptions`` propagates on the first attempt.
    """
    policy = RetryPolicy(max_retries, base_delay, max_delay, exponential_base, retryable_exceptions)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except policy.retryable as e:
                    if attempt >= policy.max_retries:
                        raise
                    wait = policy.delay(attempt, e)
                    attempt += 1
                    logger.warning(
                        f"Attempt {attempt}/{policy.max_retries + 1} failed: {e}. "
                        f"Retrying in {wait:.1f}s..."
                    )
                    await asyncio.sleep(wait)

        return wrapper  # type: ignore

    return decorator


class ModelClient(ABC):
    """A chat completions backend.

    Agents and the selection and termination decisions all generate through
    this interface, so tests can swap in a scripted client.
    """

    name: str
    default_model_id: str = ""

    def __init__(
        self,
        model_id: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ):
        self.model_id = model_id or self.default_model_id
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """True when the client has what it needs to make calls."""
        ...

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        tools: Optional[list[ToolDefinition]] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> ModelResponse:
        """Generate one reply.

        Args:
            messages: Conversation so far
            tools: Tools the model may call
            max_tokens: Override for the client's max tokens
            temperature: Override for the client's temperature
            system: Instructions placed before the conversation

        Raises:
            ModelError: On transport, authentication or rate-limit failures
        """
        ...

    @abstractmethod
    def count_tokens(self, text: str) -> int:
        ...

    def estimate_tokens(self, text: str) -> int:
        """Rough count at four characters per token."""
        return len(text) // 4

    def describe_messages(self, messages: list[Message]) -> str:
        """Indented previews of ``messages`` for debug logs."""
        return "\n".join(f"  {msg.preview()}" for msg in messages)
