"""User input for the console session.

Turns a raw line into one of: a chat message, an EXIT or RESET command,
or nothing (blank line). A line starting with ``@`` names a file whose
contents become the message.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory

from deskcrew.errors import InputFileError

FILE_MARKER = "@"
EXIT_COMMAND = "EXIT"
RESET_COMMAND = "RESET"


class InputKind(str, Enum):
    """What a line of input means to the session."""

    MESSAGE = "message"
    EXIT = "exit"
    RESET = "reset"
    EMPTY = "empty"


@dataclass
class UserInput:
    """A parsed line of input.

    Attributes:
        kind: Meaning of the line.
        text: Message text; empty for commands.
        source: File the text was read from, if any.
    """

    kind: InputKind
    text: str = ""
    source: Optional[Path] = None


def read_input_file(path: str) -> str:
    """Read a message from a file.

    Raises:
        InputFileError: If the file is missing or unreadable
    """
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise InputFileError(path, "file does not exist")
    try:
        return file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InputFileError(path, str(e)) from e


def parse_input(raw: Optional[str]) -> UserInput:
    """Classify a raw line of input.

    Commands are matched case-insensitively on the trimmed line.

    Raises:
        InputFileError: If an ``@file`` line cannot be read
    """
    if raw is None or not raw.strip():
        return UserInput(InputKind.EMPTY)

    text = raw.strip()
    upper = text.upper()
    if upper == EXIT_COMMAND:
        return UserInput(InputKind.EXIT)
    if upper == RESET_COMMAND:
        return UserInput(InputKind.RESET)

    if text.startswith(FILE_MARKER) and len(text) > 1:
        path = text[len(FILE_MARKER):]
        content = read_input_file(path)
        if not content.strip():
            return UserInput(InputKind.EMPTY, source=Path(path))
        return UserInput(InputKind.MESSAGE, content, source=Path(path))

    return UserInput(InputKind.MESSAGE, text)


class InputReader:
    """Reads lines from the terminal with history and command completion."""

    def __init__(self, prompt: str = "> "):
        self.prompt = prompt
        self.session: PromptSession = PromptSession(
            history=InMemoryHistory(),
            completer=WordCompleter([EXIT_COMMAND, RESET_COMMAND], ignore_case=True),
        )

    async def read(self) -> str:
        """Read one line.

        Raises:
            EOFError: On Ctrl+D
            KeyboardInterrupt: On Ctrl+C
        """
        return await self.session.prompt_async(self.prompt)
