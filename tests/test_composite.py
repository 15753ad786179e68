"""Tests for hook composition."""

from __future__ import annotations

from typing import Any

from inference_hooks.composite import Composite, HookComposite, Leaf, iter_leaves, node_id
from inference_hooks.interfaces import HookHandler


class StubHook:
    """Minimal handler recording how the composite drives it."""

    def __init__(
        self,
        name: str,
        prompt: str = "",
        suffix: str = "",
        notice: str | None = None,
    ) -> None:
        self.name = name
        self.command_key = f"{name}_command"
        self.prompt = prompt
        self.suffix = suffix
        self.notice = notice
        self.cycles = 0
        self.streaming_calls = 0
        self.finalized: list[str] = []

    def identify(self) -> str:
        return self.name

    def build_injection_prompt(self) -> str:
        return self.prompt

    def execute(self, command: dict[str, Any]) -> str:
        if self.command_key not in command:
            return ""
        return f"{self.name} ran {command[self.command_key]}"

    def on_cycle_start(self, trigger: Any = None) -> None:
        self.cycles += 1

    def check_streaming_partial(self, buffer: str) -> str | None:
        self.streaming_calls += 1
        return self.notice

    def finalize(self, text: str) -> str:
        self.finalized.append(text)
        return text + self.suffix

    def get_feedback(self) -> str:
        return f"{self.name} feedback" if self.notice else ""


def test_stub_satisfies_protocol() -> None:
    assert isinstance(StubHook("a"), HookHandler)


# ---------------------------------------------------------------------------
# Tree shape
# ---------------------------------------------------------------------------


def test_composite_id_lists_children_in_order() -> None:
    hooks = HookComposite.of([StubHook("memory"), StubHook("governance")])
    assert hooks.identify() == "composite:[memory,governance]"


def test_nested_composite_id_and_leaf_order() -> None:
    root = Composite([Leaf(StubHook("a")), Composite([Leaf(StubHook("b")), Leaf(StubHook("c"))])])
    assert node_id(root) == "composite:[a,composite:[b,c]]"
    assert [leaf.handler.identify() for leaf in iter_leaves(root)] == ["a", "b", "c"]


def test_empty_composite() -> None:
    hooks = HookComposite()
    assert hooks.identify() == "composite:[]"
    assert hooks.build_injection_prompt() == ""
    assert hooks.finalize("text") == "text"
    assert hooks.check_streaming_partial("text") is None
    assert hooks.handle_text_commands('{"a_command": "x"}') == ""


def test_add_hook_to_composite_root() -> None:
    hooks = HookComposite.of([StubHook("a")])
    assert hooks.add_hook(StubHook("b"))
    assert hooks.identify() == "composite:[a,b]"
    assert hooks.leaf_for("b") is not None


def test_add_hook_to_leaf_root_is_refused() -> None:
    hooks = HookComposite(Leaf(StubHook("solo")))
    assert not hooks.add_hook(StubHook("other"))
    assert hooks.identify() == "solo"
    assert [h.identify() for h in hooks.handlers] == ["solo"]


def test_leaf_for_unknown_id() -> None:
    assert HookComposite.of([StubHook("a")]).leaf_for("missing") is None


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------


def test_cycle_start_reaches_every_handler() -> None:
    a, b = StubHook("a"), StubHook("b")
    HookComposite.of([a, b]).on_cycle_start()
    assert a.cycles == b.cycles == 1


def test_injection_prompt_joins_non_empty_parts() -> None:
    hooks = HookComposite.of([StubHook("a", prompt="A"), StubHook("b"), StubHook("c", prompt="C")])
    assert hooks.build_injection_prompt() == "A\nC"


def test_finalize_is_a_chain() -> None:
    a, b = StubHook("a", suffix="+a"), StubHook("b", suffix="+b")
    assert HookComposite.of([a, b]).finalize("x") == "x+a+b"
    assert b.finalized == ["x+a"]


def test_streaming_check_stops_at_first_notice() -> None:
    a = StubHook("a")
    b = StubHook("b", notice="careful")
    c = StubHook("c", notice="ignored")

    assert HookComposite.of([a, b, c]).check_streaming_partial("buffer") == "careful"
    assert a.streaming_calls == b.streaming_calls == 1
    assert c.streaming_calls == 0


def test_text_commands_are_collected_from_every_handler() -> None:
    hooks = HookComposite.of([StubHook("a"), StubHook("b")])
    text = 'first {"b_command": "two"} then {"a_command": "one"}'
    assert hooks.handle_text_commands(text) == "a ran one\nb ran two"


def test_text_commands_without_matches() -> None:
    hooks = HookComposite.of([StubHook("a"), StubHook("b")])
    assert hooks.handle_text_commands('{"b_command": "two"}') == "b ran two"
    assert hooks.handle_text_commands("plain text") == ""


def test_execute_routes_by_command_key() -> None:
    hooks = HookComposite.of([StubHook("a"), StubHook("b")])
    assert hooks.execute({"b_command": "go"}) == "b ran go"
    assert hooks.execute({"other": 1}) == ""


def test_dispatcher_history_size_is_passed_through() -> None:
    hooks = HookComposite.of([StubHook("a")], history_size=2)
    leaf = hooks.leaf_for("a")
    for value in ("1", "2", "3"):
        hooks.handle_text_commands(f'{{"a_command": "{value}"}}')
    assert list(leaf.dispatcher.recent_responses) == ["a ran 2", "a ran 3"]


def test_feedback_joins_handlers() -> None:
    hooks = HookComposite.of([StubHook("a", notice="n"), StubHook("b")])
    assert hooks.get_feedback() == "a feedback"
    assert hooks.has_feedback()
    assert not HookComposite.of([StubHook("b")]).has_feedback()
