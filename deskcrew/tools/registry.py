"""Registry of the tools agents can be granted.

Tools are registered once at startup. Each agent's configuration names
the tools it may call; ``grant`` turns those names into the definitions
sent to the model, and the executor looks the handlers up again when the
model calls them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Iterable, Iterator, Optional, Union

from deskcrew.errors import ToolNotFoundError
from deskcrew.models.tools import ToolDefinition, ToolParameter

logger = logging.getLogger(__name__)

# Handlers take the argument dict and may be sync or async
ToolHandler = Union[
    Callable[[dict[str, Any]], Any],
    Callable[[dict[str, Any]], Coroutine[Any, Any, Any]],
]


@dataclass
class Tool:
    """A tool definition bound to its handler.

    Attributes:
        definition: Schema shown to the model.
        handler: Callable receiving the validated arguments.
        timeout: Seconds allowed per call; None uses the executor default.
        enabled: Disabled tools stay registered but cannot be granted or run.
    """

    definition: ToolDefinition
    handler: ToolHandler
    timeout: Optional[float] = None
    enabled: bool = True

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def description(self) -> str:
        return self.definition.description


class ToolRegistry:
    """Name -> Tool mapping shared by every agent in a group chat."""

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        """Add a tool.

        Raises:
            ValueError: If the name is taken
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def unregister(self, name: str) -> bool:
        """Remove a tool; False if it was not registered."""
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def get_enabled(self, name: str) -> Optional[Tool]:
        tool = self._tools.get(name)
        return tool if tool is not None and tool.enabled else None

    def names(self, enabled_only: bool = True) -> list[str]:
        """Registered tool names in registration order."""
        return [n for n, t in self._tools.items() if t.enabled or not enabled_only]

    def grant(self, names: Iterable[str]) -> list[ToolDefinition]:
        """Definitions for the tools an agent is configured with.

        Disabled tools are left out silently so a configuration can keep
        naming a tool that is switched off.

        Returns:
            Definitions in the order the names were given.

        Raises:
            ToolNotFoundError: For the first name that was never registered
        """
        granted = []
        for name in names:
            tool = self._tools.get(name)
            if tool is None:
                raise ToolNotFoundError(name)
            if tool.enabled:
                granted.append(tool.definition)
        return granted

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools.values()))


def create_tool(
    name: str,
    description: str,
    parameters: list[ToolParameter],
    handler: ToolHandler,
    timeout: Optional[float] = None,
) -> Tool:
    """Build a Tool from its schema parts and handler."""
    return Tool(
        definition=ToolDefinition(name=name, description=description, parameters=parameters),
        handler=handler,
        timeout=timeout,
    )
