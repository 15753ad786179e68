"""Embedded command extraction from free-form model output.

Scans model text for JSON objects such as ``{"memory_command": "get_quota"}``
using a bounded brace pattern rather than a JSON tokenizer. The pattern
matches objects with at most one level of nested objects, which covers
both command shapes in use::

    {"memory_command": "list_keys"}
    {"memory_command": {"op": "set_key", "key": "name", "value": "Luna"}}

Deeper nesting is not supported: the outer object never matches as a
whole, so such a command is skipped.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterator

from loguru import logger


# Object with at most one level of nested objects.
_JSON_BLOCK: re.Pattern[str] = re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}")

_PREVIEW_CHARS = 100


def _preview(text: str, limit: int = _PREVIEW_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


@dataclass(frozen=True, slots=True)
class CommandCandidate:
    """A parsed JSON block that mentions the command key."""

    text: str
    start: int
    command: dict[str, Any]


@dataclass
class CommandExtractor:
    """Finds embedded command objects for one command key.

    Extraction is pure: the same text always yields the same candidates,
    in left-to-right order.
    """

    command_key: str
    _sanity_pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._sanity_pattern = re.compile(
            r'\{"' + re.escape(self.command_key) + r'":[^}]+\}'
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def might_contain_command(self, text: str) -> bool:
        """Fast reject: both the key and an opening brace must be present."""
        return bool(text) and self.command_key in text and "{" in text

    def looks_well_formed(self, text: str) -> bool:
        """Loose check for ``{"<key>":`` written without spacing.

        Only a hint. Models often put a space after the brace, so a miss
        here never stops extraction.
        """
        return self._sanity_pattern.search(text) is not None

    def iter_candidates(self, text: str) -> Iterator[CommandCandidate]:
        """Yield every parseable block containing the command key.

        Blocks that fail strict JSON parsing are logged and skipped.
        """
        if not self.might_contain_command(text):
            return

        if not self.looks_well_formed(text):
            logger.warning(
                f"Detected '{self.command_key}' text without the canonical "
                f"JSON layout, scanning anyway"
            )

        found_block = False
        for match in _JSON_BLOCK.finditer(text):
            found_block = True
            block = match.group(0)
            if self.command_key not in block:
                continue

            logger.debug(f"Potential {self.command_key} JSON: {_preview(block)}")
            try:
                parsed = json.loads(block)
            except json.JSONDecodeError as e:
                logger.warning(
                    f"Malformed {self.command_key} JSON skipped: {e} "
                    f"(input: {_preview(block)})"
                )
                continue

            yield CommandCandidate(text=block, start=match.start(), command=parsed)

        if not found_block:
            logger.debug(f"No JSON blocks found while scanning for {self.command_key}")

    def extract(self, text: str) -> list[CommandCandidate]:
        """Return all candidates as a list."""
        return list(self.iter_candidates(text))
