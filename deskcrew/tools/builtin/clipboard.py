"""Clipboard access for agents.

The ``set_clipboard`` tool copies text to the operating system clipboard.
It never raises: an empty payload or a missing clipboard command simply
leaves the clipboard untouched.
"""

import logging
import subprocess
import sys
from typing import Any

from deskcrew.models.tools import ToolParameter
from deskcrew.tools.registry import Tool, create_tool

logger = logging.getLogger(__name__)

SET_CLIPBOARD = "set_clipboard"


class ClipboardError(Exception):
    """Exception raised when no clipboard command is available."""

    pass


class ClipboardManager:
    """Cross-platform clipboard writes.

    Works on Windows (clip), macOS (pbcopy) and Linux (xclip or xsel).
    """

    @staticmethod
    def is_available() -> bool:
        """Check if clipboard operations are available."""
        try:
            ClipboardManager._get_copy_command()
            return True
        except ClipboardError:
            return False

    @staticmethod
    def _get_copy_command() -> list[str]:
        """Get the system-specific copy command.

        Raises:
            ClipboardError: If no clipboard command is available
        """
        if sys.platform == "win32":
            return ["clip"]
        elif sys.platform == "darwin":
            return ["pbcopy"]

        # Linux - try xclip first, then xsel
        for candidate, command in (
            ("xclip", ["xclip", "-selection", "clipboard"]),
            ("xsel", ["xsel", "--clipboard", "--input"]),
        ):
            try:
                subprocess.run(["which", candidate], check=True, capture_output=True)
                return command
            except (subprocess.CalledProcessError, FileNotFoundError):
                continue

        raise ClipboardError(
            "No clipboard command available. Install xclip or xsel on Linux."
        )

    @staticmethod
    def copy(text: str) -> bool:
        """Copy text to the clipboard.

        Returns:
            True if copy succeeded, False otherwise
        """
        if not text or not text.strip():
            return False

        try:
            cmd = ClipboardManager._get_copy_command()
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
            process.communicate(input=text.encode("utf-8"))
            return process.returncode == 0
        except (ClipboardError, FileNotFoundError, OSError) as e:
            logger.debug(f"Clipboard copy failed: {e}")
            return False


def _set_clipboard(arguments: dict[str, Any]) -> str:
    content = arguments.get("content") or ""
    if not content.strip():
        return "Nothing to copy."
    if ClipboardManager.copy(content):
        return "Copied to clipboard."
    return "Clipboard not available; content was not copied."


def create_set_clipboard_tool(timeout: float = 10.0) -> Tool:
    """Create the ``set_clipboard`` tool."""
    return create_tool(
        name=SET_CLIPBOARD,
        description="Copies the provided content to the clipboard.",
        parameters=[
            ToolParameter(
                name="content",
                type="string",
                description="The text to place on the clipboard.",
            ),
        ],
        handler=_set_clipboard,
        timeout=timeout,
    )
