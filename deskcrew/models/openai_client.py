"""OpenAI / Azure OpenAI chat-completion client."""

import json
import logging
from typing import Any, Optional

from deskcrew.errors import APIError, AuthenticationError, RateLimitError

from .base import ModelClient, with_retry
from .tools import ToolDefinition, tools_to_openai
from .types import FinishReason, Message, ModelResponse, ToolCall, Usage

logger = logging.getLogger(__name__)


class OpenAIChatClient(ModelClient):
    """Client for OpenAI chat models, served by Azure OpenAI or OpenAI.

    When an Azure endpoint is configured, ``model_id`` is the deployment
    name and requests go through ``AsyncAzureOpenAI``.
    """

    name = "openai"
    default_model_id = "gpt-4o"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        azure_endpoint: Optional[str] = None,
        api_version: Optional[str] = None,
    ):
        super().__init__(model_id, max_tokens, temperature)
        self.api_key = api_key
        self.azure_endpoint = azure_endpoint
        self.api_version = api_version

        # Lazy import
        self._client = None
        self._encoding = None

    def _get_client(self) -> Any:
        """Get or create the SDK client."""
        if self._client is None:
            import openai

            if self.azure_endpoint:
                self._client = openai.AsyncAzureOpenAI(
                    api_key=self.api_key,
                    azure_endpoint=self.azure_endpoint,
                    api_version=self.api_version,
                )
            else:
                self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    def _get_encoding(self) -> Any:
        """Get or create the tiktoken encoding."""
        if self._encoding is None:
            import tiktoken

            try:
                self._encoding = tiktoken.encoding_for_model(self.model_id)
            except KeyError:
                # Azure deployment names rarely match a known model
                self._encoding = tiktoken.get_encoding("o200k_base")
        return self._encoding

    @property
    def is_available(self) -> bool:
        return self.api_key is not None

    def _convert_messages(
        self, messages: list[Message], system: Optional[str] = None
    ) -> list[dict[str, Any]]:
        """Build the ``messages`` payload, system prompt first."""
        payload: list[dict[str, Any]] = []
        if system:
            payload.append({"role": "system", "content": system})
        for msg in messages:
            payload.extend(msg.to_openai())
        return payload

    def _parse_tool_call(self, call: Any) -> ToolCall:
        try:
            arguments = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError:
            logger.warning(f"Malformed arguments for tool call {call.function.name}")
            arguments = {}
        if not isinstance(arguments, dict):
            arguments = {}
        return ToolCall(id=call.id, name=call.function.name, arguments=arguments)

    def _parse_response(self, response: Any) -> ModelResponse:
        """Read the first choice of a completion."""
        if not response.choices:
            raise APIError("Response contained no choices", model=self.model_id)

        choice = response.choices[0]
        return ModelResponse(
            content=choice.message.content or "",
            model=self.model_id,
            finish_reason=FinishReason.from_openai(choice.finish_reason),
            tool_calls=[self._parse_tool_call(c) for c in choice.message.tool_calls or []],
            usage=Usage.from_openai(response.usage, self.model_id),
            raw_response=response,
        )

    def _handle_api_error(self, e: Exception) -> None:
        """Convert OpenAI SDK exceptions to our error types."""
        import openai

        if isinstance(e, openai.RateLimitError):
            retry_after = None
            response = getattr(e, "response", None)
            if response is not None:
                header = response.headers.get("retry-after")
                try:
                    retry_after = float(header) if header else None
                except ValueError:
                    retry_after = None
            raise RateLimitError(self.model_id, retry_after) from e
        elif isinstance(e, openai.AuthenticationError):
            raise AuthenticationError(self.model_id, str(e)) from e
        elif isinstance(e, openai.APIError):
            body = getattr(e, "body", None)
            raise APIError(
                str(e),
                model=self.model_id,
                status_code=getattr(e, "status_code", None),
                response_body=json.dumps(body, default=str) if body else None,
            ) from e
        raise APIError(str(e), model=self.model_id) from e

    @with_retry(max_retries=3)
    async def generate(
        self,
        messages: list[Message],
        tools: Optional[list[ToolDefinition]] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> ModelResponse:
        """Generate a chat completion."""
        if not self.is_available:
            raise AuthenticationError(self.model_id, "API key not configured")

        client = self._get_client()
        openai_messages = self._convert_messages(messages, system)

        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "messages": openai_messages,
            "max_completion_tokens": max_tokens or self.max_tokens,
        }

        if temperature is not None:
            kwargs["temperature"] = temperature
        elif self.temperature is not None:
            kwargs["temperature"] = self.temperature

        if tools:
            kwargs["tools"] = tools_to_openai(tools)

        logger.debug(
            f"Requesting completion from {self.model_id}:\n"
            f"{self.describe_messages(messages)}"
        )

        try:
            response = await client.chat.completions.create(**kwargs)
        except Exception as e:
            self._handle_api_error(e)
            raise
        return self._parse_response(response)

    def count_tokens(self, text: str) -> int:
        """Count tokens using tiktoken."""
        return len(self._get_encoding().encode(text))
