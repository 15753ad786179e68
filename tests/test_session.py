"""Tests for HookSession and SessionRegistry."""

from __future__ import annotations

from typing import Any

from conftest import FrameSink, chunk
from inference_hooks.config import GovernanceConfig, HookConfig, MemoryStoreConfig
from inference_hooks.memory import MEMORY_INJECTION_PROMPT
from inference_hooks.session import HookSession, SessionRegistry


class EchoHook:
    command_key = "echo_command"

    def identify(self) -> str:
        return "echo"

    def build_injection_prompt(self) -> str:
        return "Echo is available."

    def execute(self, command: dict[str, Any]) -> str:
        return f"echo: {command.get(self.command_key, '')}"

    def on_cycle_start(self, trigger: Any = None) -> None:
        pass

    def check_streaming_partial(self, buffer: str) -> str | None:
        return None

    def finalize(self, text: str) -> str:
        return text

    def get_feedback(self) -> str:
        return ""


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_get_or_create_returns_the_same_session(hook_config: HookConfig) -> None:
    registry = SessionRegistry(hook_config)
    first = registry.get_or_create("s1")

    assert registry.get_or_create("s1") is first
    assert registry.get("s1") is first
    assert len(registry) == 1
    assert registry.session_ids() == ["s1"]
    assert list(registry) == [first]


def test_sessions_do_not_share_memory(hook_config: HookConfig) -> None:
    registry = SessionRegistry(hook_config)
    a = registry.get_or_create("a")
    b = registry.get_or_create("b")

    a.memory.store.set("pet", "cat")

    assert not b.memory.store.has("pet")
    assert a.governance is not b.governance


def test_get_unknown_session(hook_config: HookConfig) -> None:
    assert SessionRegistry(hook_config).get("missing") is None


def test_remove_closes_the_session(hook_config: HookConfig) -> None:
    registry = SessionRegistry(hook_config)
    session = registry.get_or_create("s1")
    session.on_cycle_start()
    session.governance.store.state_path.unlink()

    assert registry.remove("s1")

    assert session.governance.store.state_path.exists()
    assert registry.get("s1") is None
    assert not registry.remove("s1")


def test_close_without_cycles_writes_nothing(hook_config: HookConfig) -> None:
    session = HookSession("s1", hook_config)
    session.close()
    assert not session.governance.store.state_path.exists()


def test_add_hook_creates_session_and_appends(hook_config: HookConfig) -> None:
    registry = SessionRegistry(hook_config)

    assert registry.add_hook("s1", EchoHook())

    session = registry.get("s1")
    assert session.hooks.identify() == "composite:[memory,governance,echo]"
    assert "Echo is available." in session.build_injection_prompt()


# ---------------------------------------------------------------------------
# Session wiring
# ---------------------------------------------------------------------------


def test_default_session_has_both_handlers(hook_config: HookConfig) -> None:
    session = HookSession("s1", hook_config)
    assert session.memory is not None
    assert session.governance is not None
    assert session.hooks.identify() == "composite:[memory,governance]"


def test_disabled_handlers_are_left_out(governance_config: GovernanceConfig) -> None:
    config = HookConfig(memory=MemoryStoreConfig(enabled=False), governance=governance_config)
    session = HookSession("s1", config)
    assert session.memory is None
    assert session.hooks.identify() == "composite:[governance]"

    governance_off = governance_config.model_copy(update={"enabled": False})
    session = HookSession("s2", HookConfig(governance=governance_off))
    assert session.governance is None
    assert session.hooks.identify() == "composite:[memory]"


def test_injection_prompt_before_and_after_first_cycle(hook_config: HookConfig) -> None:
    session = HookSession("s1", hook_config)
    assert session.build_injection_prompt() == MEMORY_INJECTION_PROMPT

    session.on_cycle_start()

    prompt = session.build_injection_prompt()
    assert prompt.startswith(MEMORY_INJECTION_PROMPT)
    assert "## Governance Kernel Active" in prompt
    assert "**Current Cycle:** 1" in prompt


def test_memory_and_governance_commands_in_one_response(hook_config: HookConfig) -> None:
    session = HookSession("s1", hook_config)
    session.on_cycle_start()
    response = {
        "content": (
            'Noted. {"memory_command": {"op": "set_key", "key": "name", "value": "Luna"}} '
            'Also {"hook_command": "invoke_rule", "params": "7"}'
        )
    }

    session.process_response(response, FrameSink())

    assert 'Created new key "name" with value: "Luna"' in response["content"]
    assert "Rule 7 has been invoked" in response["content"]
    assert session.memory.store.get("name") == "Luna"


def test_stream_through_session(hook_config: HookConfig) -> None:
    session = HookSession("s1", hook_config)
    sink = FrameSink()

    session.process_response(chunk('{"memory_command": "count_keys"}', "stop"), sink)

    assert sink.contents() == ["\n\nThere is 1 key in memory."]


def test_notice_callback_reaches_router(hook_config: HookConfig) -> None:
    notices: list[str] = []
    registry = SessionRegistry(hook_config, on_notice=notices.append)
    session = registry.get_or_create("s1")
    session.on_cycle_start()

    text = "The answer is forty two, truly, and here is why. " * 2
    session.process_response(chunk(text), FrameSink())

    assert notices == [
        "Rule 28 warning: Internal repetition detected. Please try a different approach."
    ]
    assert session.get_feedback() == ""
