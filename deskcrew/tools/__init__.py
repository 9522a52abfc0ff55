"""Tool system for DeskCrew.

This package provides tool registration and execution for the
capabilities agents may call while producing a reply.
"""

from deskcrew.tools.registry import ToolRegistry, Tool, ToolHandler, create_tool
from deskcrew.tools.executor import ToolExecutor, ToolExecutionResult
from deskcrew.tools.builtin import (
    SET_CLIPBOARD,
    ClipboardManager,
    get_builtin_tools,
    register_builtin_tools,
)

__all__ = [
    # Registry
    "ToolRegistry",
    "Tool",
    "ToolHandler",
    "create_tool",
    # Executor
    "ToolExecutor",
    "ToolExecutionResult",
    # Builtin tools
    "register_builtin_tools",
    "get_builtin_tools",
    "ClipboardManager",
    "SET_CLIPBOARD",
]
