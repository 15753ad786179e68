"""
Response routing for streamed and batch completions.

Streamed fragments are chat-completion chunk objects (or arrays whose first
element is one). Their content deltas are accumulated until the terminal
fragment, which triggers finalize, command extraction and reinjection as
extra ``data:`` frames, always followed by ``data: [DONE]``. Batch
responses go through the same finalize and extraction steps and get the
command output appended to their text field.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable

from loguru import logger

from .composite import HookComposite
from .config import StreamingConfig


FrameWriter = Callable[[bytes], None]
NoticeCallback = Callable[[str], None]

CHUNK_OBJECT = "chat.completion.chunk"
DONE_FRAME = b"data: [DONE]\n\n"

HOOK_RESPONSE_ID = "hook_response"
HOOK_FINALIZE_ID = "hook_finalize"


def encode_frame(payload: dict[str, Any]) -> bytes:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


def make_chunk(chunk_id: str, content: str) -> dict[str, Any]:
    """Chat-completion chunk carrying one injected content delta."""
    return {
        "id": chunk_id,
        "object": CHUNK_OBJECT,
        "created": int(time.time()),
        "model": "hook_system",
        "choices": [
            {
                "index": 0,
                "delta": {"content": content},
                "finish_reason": None,
            }
        ],
    }


def first_chunk(payload: Any) -> dict[str, Any] | None:
    """The chunk object of a streamed fragment, or None for batch payloads."""
    if isinstance(payload, dict) and payload.get("object") == CHUNK_OBJECT:
        return payload
    if (
        isinstance(payload, list)
        and payload
        and isinstance(payload[0], dict)
        and payload[0].get("object") == CHUNK_OBJECT
    ):
        return payload[0]
    return None


def is_streaming_response(payload: Any) -> bool:
    return first_chunk(payload) is not None


def _first_choice(chunk: dict[str, Any]) -> dict[str, Any] | None:
    choices = chunk.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return None


class StreamAccumulator:
    """Text buffer for one streamed response."""

    def __init__(self) -> None:
        self._parts: list[str] = []
        self.fragment_count = 0

    def append(self, delta: str) -> None:
        self._parts.append(delta)
        self.fragment_count += 1

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def __len__(self) -> int:
        return sum(len(part) for part in self._parts)

    def clear(self) -> None:
        self._parts.clear()
        self.fragment_count = 0


class ResponseRouter:
    """Drives finalize, extraction and reinjection for one session.

    Args:
        hooks: Handlers to run against each completed response.
        config: Streaming check thresholds.
        on_notice: Receives streaming warnings. They are never written
            into the token stream.
    """

    def __init__(
        self,
        hooks: HookComposite,
        config: StreamingConfig | None = None,
        on_notice: NoticeCallback | None = None,
    ) -> None:
        self.hooks = hooks
        self.config = config or StreamingConfig()
        self.on_notice = on_notice
        self.accumulator = StreamAccumulator()

    def process_response(
        self,
        response: Any,
        write: FrameWriter,
        is_final: bool | None = None,
    ) -> Any:
        """Handle one streamed fragment or one complete batch response.

        Args:
            response: Parsed payload from the inference engine. Batch
                payloads are modified in place.
            write: Byte sink for extra stream frames.
            is_final: Whether this is the terminal fragment. When None,
                ``finish_reason == "stop"`` decides.

        Returns:
            The (possibly modified) response.
        """
        chunk = first_chunk(response)
        if chunk is None:
            self._process_batch(response)
            return response

        choice = _first_choice(chunk)
        delta = None
        if choice is not None and isinstance(choice.get("delta"), dict):
            delta = choice["delta"].get("content")

        if isinstance(delta, str):
            self.accumulator.append(delta)
            logger.trace(f"Chunk appended: {delta!r}")
            self._check_partial()
        else:
            logger.debug("Streaming chunk without content delta ignored")

        if is_final is None:
            is_final = choice is not None and choice.get("finish_reason") == "stop"

        if is_final:
            self._finish_stream(write)

        return response

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def _check_partial(self) -> None:
        if len(self.accumulator) < self.config.min_check_length:
            return
        if self.accumulator.fragment_count % self.config.check_interval != 0:
            return

        notice = self.hooks.check_streaming_partial(self.accumulator.text)
        if not notice:
            return

        logger.warning(f"Streaming notice: {notice}")
        if self.on_notice is not None:
            self.on_notice(notice)

    def _finish_stream(self, write: FrameWriter) -> None:
        original = self.accumulator.text
        try:
            finalized = self.hooks.finalize(original)
            if finalized != original:
                logger.info("Response replaced during finalize")
                write(encode_frame(make_chunk(HOOK_FINALIZE_ID, finalized)))

            command_output = self.hooks.handle_text_commands(finalized)
            if command_output:
                write(encode_frame(make_chunk(HOOK_RESPONSE_ID, "\n\n" + command_output)))
        finally:
            write(DONE_FRAME)
            self.accumulator.clear()
            logger.debug("Stream finished, accumulator reset")

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def _process_batch(self, response: Any) -> None:
        located = _locate_text(response)
        if located is None:
            logger.debug("Batch response has no text field, left untouched")
            return

        container, field_name = located
        original = container[field_name]
        finalized = self.hooks.finalize(original)
        command_output = self.hooks.handle_text_commands(finalized)

        if command_output:
            container[field_name] = f"{finalized}\n{command_output}"
        else:
            container[field_name] = finalized


def _locate_text(response: Any) -> tuple[dict[str, Any], str] | None:
    """Container and key holding a batch response's text."""
    if not isinstance(response, dict):
        return None

    choice = _first_choice(response)
    if choice is not None:
        message = choice.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message, "content"
        return None

    for field_name in ("content", "text"):
        if isinstance(response.get(field_name), str):
            return response, field_name
    return None
