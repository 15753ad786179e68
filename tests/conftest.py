"""
Shared test fixtures.
"""

from __future__ import annotations

import json
from typing import Any

import pytest

from inference_hooks.config import GovernanceConfig, HookConfig
from inference_hooks.governance import GovernanceEngine
from inference_hooks.memory import MemoryStoreHook


class FrameSink:
    """Collects the byte frames a router writes."""

    def __init__(self) -> None:
        self.frames: list[bytes] = []

    def __call__(self, data: bytes) -> None:
        self.frames.append(data)

    def payloads(self) -> list[dict[str, Any] | str]:
        """Decoded ``data:`` frames; the terminator is returned as ``"[DONE]"``."""
        decoded: list[dict[str, Any] | str] = []
        for frame in self.frames:
            text = frame.decode("utf-8")
            assert text.startswith("data: ") and text.endswith("\n\n")
            body = text[len("data: ") : -2]
            decoded.append(body if body == "[DONE]" else json.loads(body))
        return decoded

    def contents(self) -> list[str]:
        return [
            p["choices"][0]["delta"]["content"]
            for p in self.payloads()
            if isinstance(p, dict)
        ]


def chunk(content: str | None, finish_reason: str | None = None) -> dict[str, Any]:
    """Streamed chat-completion fragment as produced by the inference engine."""
    delta = {} if content is None else {"content": content}
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


@pytest.fixture
def governance_config(tmp_path) -> GovernanceConfig:
    """Governance settings writing into a temporary directory."""
    return GovernanceConfig(
        state_path=str(tmp_path / "governance_state.json"),
        log_path=str(tmp_path / "governance_log.json"),
    )


@pytest.fixture
def hook_config(governance_config: GovernanceConfig) -> HookConfig:
    return HookConfig(governance=governance_config)


@pytest.fixture
def engine(governance_config: GovernanceConfig) -> GovernanceEngine:
    return GovernanceEngine(governance_config)


@pytest.fixture
def memory_hook() -> MemoryStoreHook:
    return MemoryStoreHook()


@pytest.fixture
def sink() -> FrameSink:
    return FrameSink()
