"""Interactive console session driving a GroupChat."""

import logging
from contextlib import aclosing
from typing import Awaitable, Callable, Optional

from deskcrew import __version__
from deskcrew.errors import GenerationError, InputFileError, SelectionError
from deskcrew.orchestrator import GroupChat

from .input import InputKind, InputReader, UserInput, parse_input
from .output import RESET_NOTICE, ConsoleRenderer

logger = logging.getLogger(__name__)

LineSource = Callable[[], Awaitable[str]]


class ChatSession:
    """Reads user input, runs the group chat and renders its messages.

    GenerationError and SelectionError are reported and the loop keeps
    going; anything else, including InvalidStateError, propagates.
    """

    def __init__(
        self,
        chat: GroupChat,
        renderer: Optional[ConsoleRenderer] = None,
        read_line: Optional[LineSource] = None,
        show_welcome: bool = True,
    ):
        """Initialize the session.

        Args:
            chat: Group chat to drive
            renderer: Output renderer; defaults to the terminal
            read_line: Coroutine returning the next raw line; defaults to a
                prompt_toolkit reader
            show_welcome: Print the banner when the session starts
        """
        self.chat = chat
        self.renderer = renderer or ConsoleRenderer()
        self._read_line = read_line or InputReader().read
        self.show_welcome = show_welcome
        self.running = False

    async def run(self) -> None:
        """Run until EXIT or end of input."""
        self.running = True
        if self.show_welcome:
            self.renderer.render_welcome(self.chat.agent_names, __version__)

        while self.running:
            try:
                raw = await self._read_line()
            except EOFError:
                break
            except KeyboardInterrupt:
                self.renderer.render_notice("Cancelled")
                continue

            try:
                user_input = parse_input(raw)
            except InputFileError as e:
                self.renderer.render_notice(e.message)
                continue

            await self.handle(user_input)

        self.running = False

    async def handle(self, user_input: UserInput) -> None:
        """Act on one parsed line of input."""
        if user_input.kind == InputKind.EMPTY:
            return
        if user_input.kind == InputKind.EXIT:
            self.running = False
            return
        if user_input.kind == InputKind.RESET:
            self.chat.reset()
            self.renderer.render_notice(RESET_NOTICE)
            return

        self.chat.add_user_message(user_input.text)
        self.chat.is_complete = False
        await self.respond()

    async def respond(self) -> None:
        """Stream the group chat's messages for the latest user input."""
        try:
            async with aclosing(self.chat.invoke()) as stream:
                async for message in stream:
                    self.renderer.render_message(message)
        except (GenerationError, SelectionError) as e:
            logger.debug(f"Recoverable error: {e!r}")
            self.renderer.render_error(e)
