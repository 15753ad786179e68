"""
Composition of hook handlers.

A hook tree is built from two node kinds: ``Leaf`` wraps one handler
together with its command dispatcher, ``Composite`` holds child nodes.
Operations walk the tree by matching on the node kind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from loguru import logger

from .dispatcher import CommandDispatcher
from .interfaces import HookHandler


@dataclass(slots=True)
class Leaf:
    handler: HookHandler
    history_size: int = 5
    dispatcher: CommandDispatcher = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.dispatcher = CommandDispatcher(
            self.handler.command_key, self.handler.execute, self.history_size
        )


@dataclass(slots=True)
class Composite:
    children: list["HookNode"] = field(default_factory=list)


HookNode = Leaf | Composite


def iter_leaves(node: HookNode) -> Iterator[Leaf]:
    """Leaves in registration order, depth first."""
    match node:
        case Leaf():
            yield node
        case Composite(children=children):
            for child in children:
                yield from iter_leaves(child)


def node_id(node: HookNode) -> str:
    match node:
        case Leaf(handler=handler):
            return handler.identify()
        case Composite(children=children):
            return "composite:[" + ",".join(node_id(child) for child in children) + "]"


class HookComposite:
    """Fans operations out to every handler in a hook tree.

    - ``finalize`` is a left-to-right chain: each handler sees the previous
      handler's output.
    - ``check_streaming_partial`` stops at the first handler that reports.
    - ``handle_text_commands`` asks every handler and joins all answers.
    """

    def __init__(self, root: HookNode | None = None) -> None:
        self.root: HookNode = root if root is not None else Composite()

    @classmethod
    def of(cls, handlers: Iterable[HookHandler], history_size: int = 5) -> "HookComposite":
        return cls(Composite([Leaf(handler, history_size) for handler in handlers]))

    @property
    def handlers(self) -> list[HookHandler]:
        return [leaf.handler for leaf in iter_leaves(self.root)]

    def leaf_for(self, handler_id: str) -> Leaf | None:
        for leaf in iter_leaves(self.root):
            if leaf.handler.identify() == handler_id:
                return leaf
        return None

    def add_hook(self, handler: HookHandler, history_size: int = 5) -> bool:
        """Append *handler* to the root.

        Returns:
            False when the root is a single leaf, which cannot take
            children; the tree is left unchanged.
        """
        match self.root:
            case Composite(children=children):
                children.append(Leaf(handler, history_size))
                logger.debug(f"Added hook {handler.identify()} to {self.identify()}")
                return True
            case Leaf(handler=existing):
                logger.warning(
                    f"Cannot add hook {handler.identify()}: root is the single "
                    f"handler {existing.identify()}"
                )
                return False

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def identify(self) -> str:
        return node_id(self.root)

    def on_cycle_start(self, trigger: Any = None) -> None:
        for leaf in iter_leaves(self.root):
            leaf.handler.on_cycle_start(trigger)

    def build_injection_prompt(self) -> str:
        parts = [leaf.handler.build_injection_prompt() for leaf in iter_leaves(self.root)]
        return "\n".join(part for part in parts if part)

    def finalize(self, text: str) -> str:
        for leaf in iter_leaves(self.root):
            text = leaf.handler.finalize(text)
        return text

    def check_streaming_partial(self, buffer: str) -> str | None:
        for leaf in iter_leaves(self.root):
            notice = leaf.handler.check_streaming_partial(buffer)
            if notice:
                logger.debug(f"Streaming notice from {leaf.handler.identify()}")
                return notice
        return None

    def execute(self, command: dict[str, Any]) -> str:
        """Hand a parsed command to every handler whose key it carries."""
        results = [
            leaf.handler.execute(command)
            for leaf in iter_leaves(self.root)
            if leaf.handler.command_key in command
        ]
        return "\n".join(result for result in results if result)

    def handle_text_commands(self, text: str) -> str:
        """Extract and run embedded commands for every handler."""
        results = [leaf.dispatcher.dispatch(text) for leaf in iter_leaves(self.root)]
        return "\n".join(result for result in results if result)

    def get_feedback(self) -> str:
        parts = [leaf.handler.get_feedback() for leaf in iter_leaves(self.root)]
        return "\n".join(part for part in parts if part)

    def has_feedback(self) -> bool:
        return bool(self.get_feedback())
