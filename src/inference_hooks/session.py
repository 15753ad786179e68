"""Per-session hook sets.

A ``SessionRegistry`` is constructed explicitly by the host and owns one
``HookSession`` per session id. Each session has its own memory store,
governance state and response router.
"""

from __future__ import annotations

import threading
from typing import Any, Iterator

from loguru import logger

from .composite import HookComposite
from .config import HookConfig
from .governance import GovernanceEngine
from .interfaces import HookHandler
from .memory import MemoryStoreHook
from .streaming import FrameWriter, NoticeCallback, ResponseRouter


class HookSession:
    """One conversation's handlers plus the router that drives them."""

    def __init__(
        self,
        session_id: str,
        config: HookConfig,
        on_notice: NoticeCallback | None = None,
    ) -> None:
        self.session_id = session_id
        self.config = config

        self.memory: MemoryStoreHook | None = None
        self.governance: GovernanceEngine | None = None

        handlers: list[HookHandler] = []
        if config.memory.enabled:
            self.memory = MemoryStoreHook(config=config.memory, debug=config.debug)
            handlers.append(self.memory)
        if config.governance.enabled:
            self.governance = GovernanceEngine(
                config.governance,
                streaming_min_length=config.streaming.min_check_length,
            )
            handlers.append(self.governance)

        self.hooks = HookComposite.of(handlers, config.streaming.response_history_size)
        self.router = ResponseRouter(self.hooks, config.streaming, on_notice)

    def on_cycle_start(self, trigger: Any = None) -> None:
        self.hooks.on_cycle_start(trigger)

    def build_injection_prompt(self) -> str:
        return self.hooks.build_injection_prompt()

    def process_response(
        self,
        response: Any,
        write: FrameWriter,
        is_final: bool | None = None,
    ) -> Any:
        return self.router.process_response(response, write, is_final)

    def get_feedback(self) -> str:
        return self.hooks.get_feedback()

    def close(self) -> None:
        """Persist governance state if it was ever initialized."""
        if self.governance is not None and self.governance.initialized:
            self.governance.save_state()


class SessionRegistry:
    """Session id to ``HookSession`` map.

    Safe to share between threads; the sessions themselves follow the
    single-writer rule of their handlers.
    """

    def __init__(
        self,
        config: HookConfig | None = None,
        on_notice: NoticeCallback | None = None,
    ) -> None:
        self.config = config or HookConfig()
        self.on_notice = on_notice
        self._sessions: dict[str, HookSession] = {}
        self._lock = threading.Lock()

    def get_or_create(self, session_id: str) -> HookSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = HookSession(session_id, self.config, self.on_notice)
                self._sessions[session_id] = session
                logger.info(
                    f"Created hook session {session_id}: {session.hooks.identify()}"
                )
            return session

    def get(self, session_id: str) -> HookSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False

        session.close()
        logger.info(f"Removed hook session {session_id}")
        return True

    def add_hook(self, session_id: str, handler: HookHandler) -> bool:
        """Append *handler* to a session's hook tree, creating the session."""
        session = self.get_or_create(session_id)
        return session.hooks.add_hook(
            handler, self.config.streaming.response_history_size
        )

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __iter__(self) -> Iterator[HookSession]:
        with self._lock:
            return iter(list(self._sessions.values()))
