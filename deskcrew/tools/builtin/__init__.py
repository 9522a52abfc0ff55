"""Built-in tools for DeskCrew agents."""

from deskcrew.config import ToolsConfig
from deskcrew.tools.builtin.clipboard import (
    SET_CLIPBOARD,
    ClipboardError,
    ClipboardManager,
    create_set_clipboard_tool,
)
from deskcrew.tools.registry import Tool, ToolRegistry


def get_builtin_tools(config: ToolsConfig | None = None) -> list[Tool]:
    """Get the built-in tools, switched on or off by configuration.

    Disabled tools are still returned so agent configurations naming them
    stay valid; they are simply never offered to the model.
    """
    config = config or ToolsConfig()
    clipboard = create_set_clipboard_tool(timeout=config.timeout)
    clipboard.enabled = config.clipboard
    return [clipboard]


def register_builtin_tools(
    registry: ToolRegistry,
    config: ToolsConfig | None = None,
) -> None:
    """Register every built-in tool with a registry."""
    for tool in get_builtin_tools(config):
        registry.register(tool)


__all__ = [
    "register_builtin_tools",
    "get_builtin_tools",
    "create_set_clipboard_tool",
    "ClipboardManager",
    "ClipboardError",
    "SET_CLIPBOARD",
]
