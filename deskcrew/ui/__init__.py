"""Console interface for DeskCrew.

This package reads user input, drives the group chat and renders each
agent message as it arrives.
"""

from deskcrew.ui.input import (
    EXIT_COMMAND,
    FILE_MARKER,
    RESET_COMMAND,
    InputKind,
    InputReader,
    UserInput,
    parse_input,
    read_input_file,
)
from deskcrew.ui.output import RESET_NOTICE, ConsoleRenderer
from deskcrew.ui.session import ChatSession

__all__ = [
    "ChatSession",
    "ConsoleRenderer",
    "RESET_NOTICE",
    "InputReader",
    "InputKind",
    "UserInput",
    "parse_input",
    "read_input_file",
    "EXIT_COMMAND",
    "RESET_COMMAND",
    "FILE_MARKER",
]
