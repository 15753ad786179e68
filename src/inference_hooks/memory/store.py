"""Session-scoped key/value store with one protected entry.

The store does no locking. A session's store must only be touched from
one thread at a time.
"""

from __future__ import annotations

from loguru import logger

from .instructions import DEFAULT_MEMORY_INSTRUCTIONS, PROTECTED_KEY


MEMORY_QUOTA_BYTES = 16 * 1024 * 1024

_MAX_DISPLAY = 200


def byte_size(text: str) -> int:
    """UTF-8 encoded length of *text*."""
    return len(text.encode("utf-8"))


def format_memory_size(num_bytes: int) -> str:
    """Render a byte count as bytes, KB or MB."""
    if num_bytes < 1024:
        return f"{num_bytes} bytes"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.2f} KB"
    return f"{num_bytes / (1024 * 1024):.2f} MB"


class KeyValueMemoryStore:
    """Bounded key/value memory for one conversation.

    The protected key is seeded at construction and, once present, can
    neither be overwritten nor deleted through ``set``/``delete``. Only
    ``restore_protected`` may reset it.

    The quota is advisory: it is reported but writes past it are not
    refused. Usage is always recomputed from the entries.
    """

    def __init__(
        self,
        quota_bytes: int = MEMORY_QUOTA_BYTES,
        protected_key: str = PROTECTED_KEY,
        protected_content: str = DEFAULT_MEMORY_INSTRUCTIONS,
    ) -> None:
        if quota_bytes < 1:
            raise ValueError(f"quota_bytes must be >= 1, got {quota_bytes}")
        self._quota_bytes = quota_bytes
        self.protected_key = protected_key
        self.protected_content = protected_content
        self._entries: dict[str, str] = {protected_key: protected_content}

        logger.debug(
            f"KeyValueMemoryStore initialized: {protected_key} seeded with "
            f"{byte_size(protected_content)} bytes"
        )

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def is_protected(self, key: str) -> bool:
        return key == self.protected_key

    def has(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def set(self, key: str, value: str) -> bool:
        """Create or update *key*.

        Returns:
            False when the write was refused because *key* is the protected
            key and already exists.
        """
        if self.is_protected(key) and self.has(key):
            logger.warning(f"Attempt to modify protected key: {key}")
            return False

        existed = self.has(key)
        self._entries[key] = value
        logger.debug(
            f"Key {key!r} {'updated' if existed else 'created'} "
            f"(value: {_truncate(value)!r}, {byte_size(key) + byte_size(value)} bytes)"
        )
        self.log_state("after set")
        return True

    def delete(self, key: str) -> bool:
        """Remove *key*.

        Returns:
            False when the delete was refused for the protected key.
            Deleting a missing key is a successful no-op.
        """
        if self.is_protected(key):
            logger.warning(f"Attempt to delete protected key: {key}")
            return False

        existed = self._entries.pop(key, None) is not None
        logger.debug(f"Key {key!r} {'deleted' if existed else 'not found, no action taken'}")
        self.log_state("after delete")
        return True

    def list_keys(self) -> list[str]:
        return list(self._entries)

    def count(self) -> int:
        return len(self._entries)

    def usage_bytes(self) -> int:
        return sum(byte_size(key) + byte_size(value) for key, value in self._entries.items())

    def quota_bytes(self) -> int:
        return self._quota_bytes

    def usage_percent(self) -> float:
        return self.usage_bytes() / self._quota_bytes * 100.0

    # ------------------------------------------------------------------
    # Protected entry
    # ------------------------------------------------------------------

    def protected_entry_valid(self) -> bool:
        """Coarse corruption check of the protected entry.

        Passes when the entry exists and is at least half as long as the
        canonical content. Smaller edits go unnoticed.
        """
        current = self._entries.get(self.protected_key)
        if current is None:
            logger.debug(f"Integrity check: {self.protected_key} is missing")
            return False

        current_size = byte_size(current)
        expected_size = byte_size(self.protected_content)
        if current_size < expected_size / 2:
            logger.debug(
                f"Integrity check: {self.protected_key} is {current_size} bytes, "
                f"less than half of the expected {expected_size}"
            )
            return False

        return True

    def restore_protected(self) -> int:
        """Drop any existing protected entry and reinsert the canonical one.

        Returns:
            Size in bytes of the restored content.
        """
        self._entries.pop(self.protected_key, None)
        self._entries[self.protected_key] = self.protected_content
        logger.info(f"Restored {self.protected_key} to its default content")
        self.log_state("after restore")
        return byte_size(self.protected_content)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def log_state(self, context: str) -> None:
        logger.debug(
            f"Memory state [{context}]: {self.count()} keys, "
            f"{format_memory_size(self.usage_bytes())} of "
            f"{format_memory_size(self._quota_bytes)} "
            f"({self.usage_percent():.6f}%)"
        )


def _truncate(value: str, limit: int = _MAX_DISPLAY) -> str:
    return value if len(value) <= limit else value[: limit - 3] + "..."
