"""Runs the tool calls an agent's model asks for.

Failures never escape ``execute``: a bad call, a missing tool, a timeout or
a crashing handler all come back as a failed ToolExecutionResult. The agent
sends the error text to the model and keeps the failure as a warning on
its reply.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass
from typing import AbstractSet, Any, Optional

from deskcrew.errors import (
    ToolError,
    ToolInvocationError,
    ToolNotFoundError,
    ToolTimeoutError,
    ToolValidationError,
)
from deskcrew.models.types import ToolCall, ToolResult
from deskcrew.tools.registry import Tool, ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT = 20000


def format_output(value: Any, limit: int = DEFAULT_MAX_OUTPUT) -> str:
    """Render a handler's return value as text for the model."""
    if value is None:
        text = "Done."
    elif isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value, indent=2, default=str)
        except (TypeError, ValueError):
            text = str(value)

    if len(text) > limit:
        text = f"{text[:limit]}\n... (truncated, {len(text)} total characters)"
    return text


@dataclass
class ToolExecutionResult:
    """Outcome of one tool call.

    Attributes:
        tool_call_id: Id the model gave the call.
        tool_name: Tool that was asked for.
        output: Text returned to the model on success.
        error: Failure description, None on success.
        original_error: Exception behind the failure.
        duration: Seconds spent, including validation.
    """

    tool_call_id: str
    tool_name: str
    output: str = ""
    error: Optional[str] = None
    original_error: Optional[Exception] = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    def to_tool_result(self) -> ToolResult:
        """Message content the model sees for this call."""
        if self.success:
            return ToolResult(tool_call_id=self.tool_call_id, content=self.output)
        return ToolResult(
            tool_call_id=self.tool_call_id,
            content=f"Error from {self.tool_name}: {self.error}",
            is_error=True,
        )

    def to_error(self) -> Optional[ToolInvocationError]:
        """Invocation error for a failed call, None on success."""
        if self.success:
            return None
        return ToolInvocationError(
            self.tool_name, self.error or "unknown error", original_error=self.original_error
        )


class ToolExecutor:
    """Validates and runs tool calls against a registry.

    Sync handlers run in a worker thread; every call is bounded by the
    tool's own timeout or ``default_timeout``.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        default_timeout: float = 10.0,
        max_output_length: int = DEFAULT_MAX_OUTPUT,
    ):
        self.registry = registry
        self.default_timeout = default_timeout
        self.max_output_length = max_output_length

    async def execute(
        self,
        tool_call: ToolCall,
        allowed: Optional[AbstractSet[str]] = None,
    ) -> ToolExecutionResult:
        """Run one tool call and report how it went.

        Args:
            tool_call: Call requested by the model
            allowed: Tool names the calling agent was granted; None allows
                every enabled tool
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = ToolExecutionResult(tool_call_id=tool_call.id, tool_name=tool_call.name)

        try:
            tool = self._resolve(tool_call, allowed)
            value = await self._run(tool, tool_call.arguments)
            result.output = format_output(value, self.max_output_length)
        except ToolError as e:
            logger.warning(f"Tool {tool_call.name} failed: {e.message}")
            result.error = e.message
            result.original_error = e
        except Exception as e:
            logger.exception(f"Tool {tool_call.name} raised")
            result.error = f"{type(e).__name__}: {e}"
            result.original_error = e

        result.duration = loop.time() - started
        if result.success:
            logger.info(f"Tool {tool_call.name} finished in {result.duration:.2f}s")
        return result

    async def execute_batch(
        self,
        tool_calls: list[ToolCall],
        allowed: Optional[AbstractSet[str]] = None,
    ) -> list[ToolExecutionResult]:
        """Run calls one after another, in the order the model issued them."""
        return [await self.execute(call, allowed) for call in tool_calls]

    def _resolve(self, tool_call: ToolCall, allowed: Optional[AbstractSet[str]] = None) -> Tool:
        """Find the tool and check the call's arguments.

        Raises:
            ToolNotFoundError: If the tool is unknown, disabled or not granted
            ToolValidationError: For the first problem with the arguments
        """
        if allowed is not None and tool_call.name not in allowed:
            raise ToolNotFoundError(tool_call.name)
        tool = self.registry.get_enabled(tool_call.name)
        if tool is None:
            raise ToolNotFoundError(tool_call.name)

        problems = tool.definition.check_arguments(tool_call.arguments)
        if problems:
            parameter, reason = problems[0]
            raise ToolValidationError(tool.name, parameter, reason)
        return tool

    async def _run(self, tool: Tool, arguments: dict[str, Any]) -> Any:
        """Call the handler under its timeout.

        Raises:
            ToolTimeoutError: If the handler does not finish in time
        """
        timeout = tool.timeout or self.default_timeout
        if inspect.iscoroutinefunction(tool.handler):
            pending = tool.handler(arguments)
        else:
            pending = asyncio.to_thread(tool.handler, arguments)

        try:
            return await asyncio.wait_for(pending, timeout=timeout)
        except asyncio.TimeoutError:
            raise ToolTimeoutError(tool.name, timeout)
