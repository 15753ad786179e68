"""Tests for CommandDispatcher."""

from __future__ import annotations

from unittest.mock import MagicMock

from inference_hooks.dispatcher import CommandDispatcher


def test_first_non_empty_response_wins() -> None:
    execute = MagicMock(side_effect=["first", "second"])
    dispatcher = CommandDispatcher("hook_command", execute)

    text = '{"hook_command": "a"} {"hook_command": "b"}'
    assert dispatcher.dispatch(text) == "first"
    execute.assert_called_once_with({"hook_command": "a"})


def test_empty_response_moves_to_next_candidate() -> None:
    execute = MagicMock(side_effect=["", "answered"])
    dispatcher = CommandDispatcher("hook_command", execute)

    assert dispatcher.dispatch('{"hook_command": "a"} {"hook_command": "b"}') == "answered"
    assert execute.call_count == 2


def test_no_command_returns_empty() -> None:
    execute = MagicMock()
    dispatcher = CommandDispatcher("hook_command", execute)

    assert dispatcher.dispatch("nothing to see") == ""
    execute.assert_not_called()


def test_recent_responses_are_bounded() -> None:
    dispatcher = CommandDispatcher("k", lambda command: command["k"], history_size=2)
    for value in ("one", "two", "three"):
        dispatcher.dispatch(f'{{"k": "{value}"}}')

    assert list(dispatcher.recent_responses) == ["two", "three"]
    assert dispatcher.limited_context() == "two\nthree\n"


def test_command_key_property() -> None:
    assert CommandDispatcher("memory_command", MagicMock()).command_key == "memory_command"
