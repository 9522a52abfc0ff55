"""Console rendering for the group chat."""

import json
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from deskcrew.errors import DeskCrewError, GenerationError
from deskcrew.orchestrator.transcript import ChatMessage

RESET_NOTICE = "[Conversation has been reset]"

# Author colors; unknown agents fall back to white
AUTHOR_COLORS = {
    "coach": "cyan",
    "stockmanager": "green",
    "expert": "magenta",
    "user": "bright_white",
}


class ConsoleRenderer:
    """Prints agent messages, warnings and errors in arrival order."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def author_color(self, name: str) -> str:
        return AUTHOR_COLORS.get(name.lower(), "white")

    def render_message(self, message: ChatMessage) -> None:
        """Print ``AUTHOR:`` followed by the message content."""
        name = message.display_name
        self.console.print()
        self.console.print(
            Text(f"{name.upper()}:", style=f"bold {self.author_color(name)}")
        )
        self.console.print(Text(message.content))
        for warning in message.warnings:
            self.render_warning(warning)

    def render_warning(self, text: str) -> None:
        self.console.print(Text(f"warning: {text}", style="yellow"))

    def render_notice(self, text: str) -> None:
        self.console.print(Text(text, style="dim"))

    def render_error(self, error: BaseException) -> None:
        """Print an error with its underlying cause and structured details."""
        lines = [str(getattr(error, "message", error))]

        cause = error.original_error if isinstance(error, GenerationError) else None
        cause = cause or error.__cause__
        if cause is not None:
            lines.append(f"Caused by {type(cause).__name__}: {cause}")

        details = error.details if isinstance(error, DeskCrewError) else {}
        details = {k: v for k, v in details.items() if k != "original_error"}
        if details:
            lines.append(json.dumps(details, indent=2, default=str))

        self.console.print(
            Panel(
                "\n".join(lines),
                title=f"[bold red]{type(error).__name__}[/bold red]",
                border_style="red",
            )
        )

    def render_welcome(self, agents: list[str], version: str) -> None:
        self.console.print(
            Panel(
                f"[bold]DeskCrew help desk[/bold]\n\n"
                f"Agents: {', '.join(agents)}\n"
                f"Type a question, @path to send a file, RESET to start over, "
                f"EXIT to quit.",
                title=f"DeskCrew v{version}",
                border_style="blue",
            )
        )
