"""Binds command extraction to a handler's execute operation."""

from __future__ import annotations

from collections import deque
from typing import Any, Callable

from loguru import logger

from .extraction import CommandExtractor


CommandExecutor = Callable[[dict[str, Any]], str]


class CommandDispatcher:
    """Runs the first embedded command a handler answers.

    Candidates are tried left to right. The first non-empty handler
    response wins and stops the scan; an empty response (a command the
    handler chooses to ignore) moves on to the next candidate.

    Attributes:
        recent_responses: The last few handler responses, oldest first.
    """

    def __init__(
        self,
        command_key: str,
        execute: CommandExecutor,
        history_size: int = 5,
    ) -> None:
        self.extractor = CommandExtractor(command_key)
        self._execute = execute
        self.recent_responses: deque[str] = deque(maxlen=history_size)

    @property
    def command_key(self) -> str:
        return self.extractor.command_key

    def dispatch(self, text: str) -> str:
        """Execute the first answered command found in *text*.

        Returns:
            The handler's response, or an empty string when no command
            was found or answered.
        """
        for candidate in self.extractor.iter_candidates(text):
            response = self._execute(candidate.command)
            if response:
                self.recent_responses.append(response)
                logger.debug(
                    f"{self.command_key} executed at offset {candidate.start}"
                )
                return response

        return ""

    def limited_context(self) -> str:
        """Recent handler responses joined one per line."""
        return "".join(f"{response}\n" for response in self.recent_responses)
