"""
Inference hooks: embedded-command interception for language model output.

Typical host wiring::

    registry = SessionRegistry(HookConfig.from_env())
    session = registry.get_or_create(conversation_id)
    session.on_cycle_start()
    system_prompt += session.build_injection_prompt()
    for payload in engine_output:
        session.process_response(payload, write=send_bytes)
"""

import sys

from loguru import logger

from .composite import Composite, HookComposite, HookNode, Leaf
from .config import (
    GovernanceConfig,
    HookConfig,
    MemoryStoreConfig,
    StreamingConfig,
)
from .dispatcher import CommandDispatcher
from .exceptions import CommandFormatError, HookError, IntegrityError, PersistenceError
from .extraction import CommandCandidate, CommandExtractor
from .governance import GovernanceEngine
from .interfaces import HookHandler
from .memory import KeyValueMemoryStore, MemoryStoreHook
from .session import HookSession, SessionRegistry
from .streaming import ResponseRouter, StreamAccumulator

__version__ = "0.1.0"


def configure_logging(debug: bool = False) -> int:
    """Replace loguru's sinks with one stderr sink.

    Returns:
        The id of the added sink.
    """
    logger.remove()
    return logger.add(sys.stderr, level="DEBUG" if debug else "INFO")


__all__ = [
    "CommandCandidate",
    "CommandDispatcher",
    "CommandExtractor",
    "CommandFormatError",
    "Composite",
    "GovernanceConfig",
    "GovernanceEngine",
    "HookComposite",
    "HookConfig",
    "HookError",
    "HookHandler",
    "HookNode",
    "HookSession",
    "IntegrityError",
    "KeyValueMemoryStore",
    "Leaf",
    "MemoryStoreConfig",
    "MemoryStoreHook",
    "PersistenceError",
    "ResponseRouter",
    "SessionRegistry",
    "StreamAccumulator",
    "StreamingConfig",
    "configure_logging",
]
