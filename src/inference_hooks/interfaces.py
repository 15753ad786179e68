"""
Hook handler interface.

Every stateful service that watches model output (session memory,
governance) implements this protocol so the composite and the response
router can drive it without knowing what it is.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class HookHandler(Protocol):
    """Capability contract shared by all hook handlers."""

    #: JSON key that marks an embedded command for this handler,
    #: e.g. ``"memory_command"``.
    command_key: str

    def identify(self) -> str:
        """Short, stable handler id used in composite ids and logs."""
        ...

    def build_injection_prompt(self) -> str:
        """
        Text appended to the model's system context.

        Returns:
            Prompt text, or an empty string when the handler has nothing
            to add.
        """
        ...

    def execute(self, command: dict[str, Any]) -> str:
        """
        Run one parsed embedded command.

        Args:
            command: The parsed JSON object containing ``command_key``.

        Returns:
            Human-readable result. Empty when the handler ignores the
            command. Never raises; failures are described in the text.
        """
        ...

    def on_cycle_start(self, trigger: Any = None) -> None:
        """Housekeeping hook, called once per inference cycle."""
        ...

    def check_streaming_partial(self, buffer: str) -> str | None:
        """
        Cheap check of a partially streamed response.

        Must not mutate handler state.

        Returns:
            Warning text, or ``None`` when nothing is wrong.
        """
        ...

    def finalize(self, text: str) -> str:
        """Return the completed response, possibly rewritten or vetoed."""
        ...

    def get_feedback(self) -> str:
        """Accumulated feedback for the host, empty when there is none."""
        ...
