"""Exception hierarchy for DeskCrew.

Every error carries a short ``code`` and a ``details`` dict that the console
prints under the message. Recoverable errors (``GenerationError``,
``SelectionError``) are reported to the user and the session keeps running.
``InvalidStateError`` signals a bug in the orchestrator itself and is never
caught by the session loop.
"""

from __future__ import annotations

from typing import Any, Optional


def _cause_details(error: Optional[BaseException]) -> dict[str, Any]:
    """Describe the exception behind a wrapped failure."""
    if error is None:
        return {}
    details: dict[str, Any] = {
        "original_error": str(error),
        "original_type": type(error).__name__,
    }
    if isinstance(error, DeskCrewError) and error.details:
        details["original_details"] = dict(error.details)
    return details


class DeskCrewError(Exception):
    """Base exception for all DeskCrew errors.

    Attributes:
        message: Human-readable error message.
        code: Short identifier; subclasses set a class-level default.
        details: Extra context shown with the message.
    """

    code: Optional[str] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}" if self.code else self.message


# Configuration


class ConfigurationError(DeskCrewError):
    """Settings could not be loaded or do not make sense."""


class MissingAPIKeyError(ConfigurationError):
    code = "MISSING_API_KEY"

    def __init__(self, provider: str):
        super().__init__(
            f"API key for {provider} is not configured",
            details={"provider": provider},
        )


class InvalidConfigError(ConfigurationError):
    """A configuration value failed validation.

    ``field`` is a dotted path such as ``chat.maximum_iterations`` or
    ``agents.Coach.tools``, or a file path when the file itself is broken.
    """

    code = "INVALID_CONFIG"

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for '{field}': {reason}",
            details={"field": field, "value": str(value)[:100], "reason": reason},
        )


# Text generation


class ModelError(DeskCrewError):
    """A call to the chat completions service failed."""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if model:
            details["model"] = model
        super().__init__(message, code, details)


class APIError(ModelError):
    code = "API_ERROR"

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        details: dict[str, Any] = {}
        if status_code:
            details["status_code"] = status_code
        if response_body:
            # Bodies can echo the prompt back
            details["response_body"] = response_body[:500]
        super().__init__(message, model, details=details)
        self.status_code = status_code


class RateLimitError(ModelError):
    code = "RATE_LIMIT"

    def __init__(self, model: str, retry_after: Optional[float] = None):
        details = {"retry_after_seconds": retry_after} if retry_after else {}
        super().__init__(f"Rate limit exceeded for {model}", model, details=details)
        self.retry_after = retry_after


class AuthenticationError(ModelError):
    code = "AUTH_ERROR"

    def __init__(self, model: str, reason: Optional[str] = None):
        message = f"Authentication failed for {model}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, model)


class GenerationError(ModelError):
    """An agent or a strategy decision produced no usable answer.

    Wraps transport failures from the model client as well as empty or
    malformed replies. ``source`` names the agent, or the strategy
    ("selection", "termination") that issued the call.
    """

    code = "GENERATION_ERROR"

    def __init__(
        self,
        source: str,
        reason: str,
        original_error: Optional[Exception] = None,
    ):
        details = {"source": source, "reason": reason, **_cause_details(original_error)}
        super().__init__(f"Generation failed for {source}: {reason}", details=details)
        self.source = source
        self.original_error = original_error


# Tools


class ToolError(DeskCrewError):
    """Base class for failures around a single tool."""

    def __init__(
        self,
        message: str,
        tool_name: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if tool_name:
            details["tool_name"] = tool_name
        super().__init__(message, code, details)
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    code = "TOOL_NOT_FOUND"

    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' not found", tool_name)


class ToolInvocationError(ToolError):
    """A tool called on an agent's behalf failed.

    Never aborts a round: the failure is attached to the agent's turn
    as a warning.
    """

    code = "TOOL_INVOCATION_ERROR"

    def __init__(
        self,
        tool_name: str,
        reason: str,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            f"Tool '{tool_name}' failed: {reason}",
            tool_name,
            details={"reason": reason, **_cause_details(original_error)},
        )
        self.reason = reason


class ToolValidationError(ToolError):
    code = "TOOL_VALIDATION_ERROR"

    def __init__(self, tool_name: str, parameter: str, reason: str):
        super().__init__(
            f"Invalid argument '{parameter}' for tool '{tool_name}': {reason}",
            tool_name,
            details={"parameter": parameter, "reason": reason},
        )


class ToolTimeoutError(ToolError):
    code = "TOOL_TIMEOUT"

    def __init__(self, tool_name: str, timeout: float):
        super().__init__(
            f"Tool '{tool_name}' timed out after {timeout}s",
            tool_name,
            details={"timeout_seconds": timeout},
        )


# Orchestration


class OrchestrationError(DeskCrewError):
    """Base class for group chat failures."""


class SelectionError(OrchestrationError):
    """The selection decision named no participant of the chat."""

    code = "SELECTION_ERROR"

    def __init__(self, response: str, participants: list[str], attempts: int = 1):
        preview = response.strip()[:100] or "(empty)"
        super().__init__(
            f"Selection returned an unknown participant: {preview}",
            details={
                "response": response[:500],
                "participants": list(participants),
                "attempts": attempts,
            },
        )
        self.response = response
        self.participants = list(participants)


class InvalidStateError(OrchestrationError):
    """A contract violation inside the orchestrator. Not recoverable."""

    code = "INVALID_STATE"

    def __init__(self, reason: str):
        super().__init__(f"Invalid orchestrator state: {reason}", details={"reason": reason})


# Console


class UIError(DeskCrewError):
    """Base class for console input failures."""


class InputFileError(UIError):
    """An ``@file`` input could not be read."""

    code = "INPUT_FILE_ERROR"

    def __init__(self, path: str, reason: Optional[str] = None):
        details = {"path": path}
        if reason:
            details["reason"] = reason
        super().__init__(f"Unable to access file: {path}", details=details)
        self.path = path
