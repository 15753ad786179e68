"""Session-scoped key/value memory handler."""

from .hook import COMMAND_KEY, MemoryStoreHook
from .instructions import DEFAULT_MEMORY_INSTRUCTIONS, MEMORY_INJECTION_PROMPT, PROTECTED_KEY
from .store import MEMORY_QUOTA_BYTES, KeyValueMemoryStore, byte_size, format_memory_size

__all__ = [
    "COMMAND_KEY",
    "DEFAULT_MEMORY_INSTRUCTIONS",
    "MEMORY_INJECTION_PROMPT",
    "MEMORY_QUOTA_BYTES",
    "PROTECTED_KEY",
    "KeyValueMemoryStore",
    "MemoryStoreHook",
    "byte_size",
    "format_memory_size",
]
