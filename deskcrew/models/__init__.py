"""Text-generation client for DeskCrew."""

import logging
from typing import Optional

from deskcrew.config import Settings, get_settings
from deskcrew.errors import (
    APIError,
    AuthenticationError,
    MissingAPIKeyError,
    ModelError,
    RateLimitError,
)

from .base import ModelClient, with_retry
from .openai_client import OpenAIChatClient
from .tools import ToolDefinition, ToolParameter, tools_to_openai
from .types import (
    FinishReason,
    Message,
    MessageRole,
    ModelResponse,
    ToolCall,
    ToolResult,
    Usage,
)

logger = logging.getLogger(__name__)


def create_model_client(settings: Optional[Settings] = None) -> ModelClient:
    """Create the shared generation client from settings.

    Uses Azure OpenAI when an endpoint is configured, OpenAI otherwise.

    Args:
        settings: Optional settings (uses global settings if not provided)

    Returns:
        Initialized client

    Raises:
        MissingAPIKeyError: If the selected provider has no API key
    """
    if settings is None:
        settings = get_settings()

    if settings.uses_azure:
        provider = "Azure OpenAI"
        api_key = settings.azure_openai_api_key
    else:
        provider = "OpenAI"
        api_key = settings.openai_api_key

    if api_key is None:
        raise MissingAPIKeyError(provider)

    logger.info(f"Using {provider} model {settings.model.model_id}")

    return OpenAIChatClient(
        api_key=api_key,
        model_id=settings.model.model_id,
        max_tokens=settings.model.max_tokens,
        temperature=settings.model.temperature,
        azure_endpoint=settings.azure_openai_endpoint,
        api_version=settings.model.api_version,
    )


__all__ = [
    # Base classes and errors
    "ModelClient",
    "ModelError",
    "APIError",
    "AuthenticationError",
    "RateLimitError",
    "with_retry",
    # Client implementation
    "OpenAIChatClient",
    "create_model_client",
    # Types
    "Message",
    "MessageRole",
    "ModelResponse",
    "ToolCall",
    "ToolResult",
    "Usage",
    "FinishReason",
    # Tools
    "ToolDefinition",
    "ToolParameter",
    "tools_to_openai",
]
