"""Memory store exposed as a hook handler.

Answers ``{"memory_command": ...}`` objects embedded in model output.
Zero-argument commands are plain strings; parameterized ones are objects
with an ``op`` field::

    {"memory_command": "get_usage"}
    {"memory_command": {"op": "get_key", "key": "name"}}

Every outcome, including bad input, is returned as text for the model.
"""

from __future__ import annotations

import json
from typing import Any, Callable

from loguru import logger

from ..config import MemoryStoreConfig
from ..exceptions import CommandFormatError
from .instructions import MEMORY_INJECTION_PROMPT
from .store import KeyValueMemoryStore, byte_size


COMMAND_KEY = "memory_command"

_RESTORE_HINT = 'Use {"memory_command": "restore_memory_instructions"} to restore it.'
_INTEGRITY_WARNING = (
    "8. WARNING: Memory instruction integrity check failed. Consider using "
    '{"memory_command": "restore_memory_instructions"}\n'
)


class MemoryStoreHook:
    """Session memory handler.

    Args:
        store: Store to operate on. A fresh one is created when omitted.
        config: Quota, thresholds and protected-key settings.
        debug: Include byte sizes in ``get_key`` answers.
    """

    command_key = COMMAND_KEY

    def __init__(
        self,
        store: KeyValueMemoryStore | None = None,
        config: MemoryStoreConfig | None = None,
        debug: bool = False,
    ) -> None:
        self.config = config or MemoryStoreConfig()
        self.store = store or KeyValueMemoryStore(
            quota_bytes=self.config.quota_bytes,
            protected_key=self.config.protected_key,
        )
        self.debug = debug

        self._simple_commands: dict[str, Callable[[], str]] = {
            "get_quota": self.cmd_get_quota,
            "get_usage": self.cmd_get_usage,
            "count_keys": self.cmd_count_keys,
            "list_keys": self.cmd_list_keys,
            "get_memory_summary": self.cmd_get_memory_summary,
            "refresh_memory_rules": self.cmd_refresh_memory_rules,
            "get_deletion_recommendation": self.cmd_get_deletion_recommendation,
            "get_memory_facts": self.cmd_get_memory_facts,
            "verify_memory_integrity": self.cmd_verify_memory_integrity,
            "restore_memory_instructions": self.cmd_restore_memory_instructions,
        }

    # ------------------------------------------------------------------
    # Handler contract
    # ------------------------------------------------------------------

    def identify(self) -> str:
        return "memory"

    def build_injection_prompt(self) -> str:
        return MEMORY_INJECTION_PROMPT

    def on_cycle_start(self, trigger: Any = None) -> None:
        pass

    def check_streaming_partial(self, buffer: str) -> str | None:
        return None

    def finalize(self, text: str) -> str:
        return text

    def get_feedback(self) -> str:
        return ""

    def execute(self, command: dict[str, Any]) -> str:
        """Run one parsed ``memory_command`` object."""
        if COMMAND_KEY not in command:
            return ""

        self._warn_if_protected_entry_damaged()
        value = command[COMMAND_KEY]

        if isinstance(value, str):
            logger.debug(f"Memory command: {value}")
            handler = self._simple_commands.get(value)
            if handler is None:
                logger.warning(f"Unknown memory command: {value}")
                return f"Unknown command: {value}"
            return self._log_result(value, handler())

        if not isinstance(value, dict):
            logger.warning("memory_command is neither string nor object")
            return "Invalid command format"

        try:
            return self._execute_op(value)
        except CommandFormatError as e:
            logger.warning(f"Rejected memory command ({e.field}): {e}")
            return str(e)

    # ------------------------------------------------------------------
    # Read-only reports
    # ------------------------------------------------------------------

    def cmd_get_quota(self) -> str:
        quota = self.store.quota_bytes()
        return (
            f"The memory quota is {quota} bytes (exactly {quota / (1024 * 1024):g} MB "
            f"or {quota / 1024:g} KB). Remember: 1 MB = 1,048,576 bytes, not 1,000 bytes."
        )

    def cmd_get_usage(self) -> str:
        usage = self.store.usage_bytes()
        quota = self.store.quota_bytes()
        percent = self.store.usage_percent()
        remaining = quota - usage

        parts = [
            f"Current memory usage is {usage} bytes out of {quota} bytes ({percent:.6f}%)."
        ]
        if percent < 1.0:
            parts.append("This is extremely low usage - no cleanup needed.")
        elif percent < 50.0:
            parts.append("This is low usage - memory management is not necessary.")
        elif percent < self.config.deletion_threshold_percent:
            parts.append("This is moderate usage - regular operation can continue.")
        else:
            parts.append("This is high usage - consider removing unnecessary keys.")

        parts.append(
            f"You have approximately {remaining // self.config.bytes_per_key_estimate} "
            f"more key-value pairs of capacity remaining before reaching "
            f"{self.config.deletion_threshold_percent:g}% usage."
        )
        if percent < self.config.deletion_threshold_percent:
            parts.append(
                f"ONLY suggest deleting keys when usage exceeds "
                f"{self.config.deletion_threshold_percent:g}% of quota "
                f"(>{self._deletion_threshold_bytes()} bytes)."
            )
        return " ".join(parts)

    def cmd_count_keys(self) -> str:
        count = self.store.count()
        if count == 1:
            return "There is 1 key in memory."
        return f"There are {count} keys in memory."

    def cmd_list_keys(self) -> str:
        keys = self.store.list_keys()
        if keys:
            result = "Keys in memory: " + _quoted(keys)
        else:
            result = "There are no keys in memory."

        if not self.store.has(self.store.protected_key):
            result += (
                f"\n\nWARNING: The required '{self.store.protected_key}' key is missing. "
                f"Memory integrity may be compromised. {_RESTORE_HINT}"
            )
        return result

    def cmd_get_memory_summary(self) -> str:
        quota = self.store.quota_bytes()
        keys = self.store.list_keys()

        lines = [
            "Memory Summary:",
            f"- Quota: {quota} bytes ({quota / (1024 * 1024):g} MB)",
            f"- Usage: {self.store.usage_bytes()} bytes ({self.store.usage_percent():.6f}%)",
            f"- Keys: {self.store.count()}",
            f"- Status: {self.fullness_assessment()}",
        ]
        if not self.store.protected_entry_valid():
            lines.append(
                f"- WARNING: The required '{self.store.protected_key}' key is missing "
                f"or corrupted. Memory integrity may be compromised."
            )
            lines.append(f"  {_RESTORE_HINT}")
        if keys:
            lines.append(f"- Stored keys: {_quoted(keys)}")
        return "\n".join(lines)

    def cmd_get_deletion_recommendation(self) -> str:
        percent = self.store.usage_percent()
        if self.should_delete():
            return (
                f"Memory usage is high ({percent:.2f}% of quota). "
                f"It would be good to delete some unnecessary keys."
            )
        remaining = self.store.quota_bytes() - self.store.usage_bytes()
        return (
            f"Memory usage is low ({percent:.6f}% of quota). There is NO need to "
            f"delete any keys. You have plenty of space left ({remaining} bytes remaining)."
        )

    def cmd_refresh_memory_rules(self) -> str:
        quota = self.store.quota_bytes()
        result = (
            "Memory Rules Refreshed:\n"
            "1. Memory is SESSION-ONLY and resets when the conversation ends\n"
            f"2. Current usage: {self.store.usage_bytes()} bytes out of {quota} bytes "
            f"({self.store.usage_percent():.6f}%)\n"
            f"3. Memory status: {self.fullness_assessment()}\n"
            "4. CRITICAL: Only suggest deleting keys when usage exceeds 90% of quota\n"
            f"5. Small memory items (few KB) are negligible with a "
            f"{quota // (1024 * 1024)} MB quota\n"
            "6. Each key-value pair typically uses less than 100 bytes\n"
            "7. BYTE CONVERSION: 16 MB = 16 * 1,048,576 = 16,777,216 bytes (NOT 16,384)\n"
        )
        if not self.store.protected_entry_valid():
            result += _INTEGRITY_WARNING
        return result

    def cmd_get_memory_facts(self) -> str:
        headroom = (self._deletion_threshold_bytes() - self.store.usage_bytes()) // (
            self.config.bytes_per_key_estimate
        )
        result = (
            "MEMORY FACTS:\n"
            "1. Total memory quota: 16,777,216 bytes (16 MB exactly)\n"
            f"2. Current usage: {self.store.usage_bytes()} bytes "
            f"({self.store.usage_percent():.6f}% of quota)\n"
            "3. Keys only need deletion when usage exceeds 90% (>15,099,494 bytes)\n"
            "4. Each key-value pair typically uses less than 100 bytes\n"
            f"5. You could store approximately {max(headroom, 0)} more key-value pairs "
            f"before reaching 90% capacity\n"
            "6. BYTE CONVERSION: 1 KB = 1,024 bytes; 1 MB = 1,024 KB = 1,048,576 bytes\n"
            "7. 16 MB = 16 * 1,048,576 = 16,777,216 bytes "
            "(NOT 16,384 bytes, which would be only 16 KB)\n"
        )
        if not self.store.protected_entry_valid():
            result += _INTEGRITY_WARNING
        return result

    def cmd_verify_memory_integrity(self) -> str:
        if self.store.protected_entry_valid():
            return "Memory integrity verified. The memory instruction summary is intact."
        if self.store.has(self.store.protected_key):
            return (
                "CRITICAL ERROR: Memory instructions are corrupted! Use "
                '{"memory_command": "restore_memory_instructions"} to restore them.'
            )
        return (
            "CRITICAL ERROR: Memory instructions are missing! Use "
            '{"memory_command": "restore_memory_instructions"} to restore them.'
        )

    def cmd_restore_memory_instructions(self) -> str:
        self.store.restore_protected()
        return "Memory instructions have been restored to their default state."

    # ------------------------------------------------------------------
    # Single-key operations
    # ------------------------------------------------------------------

    def cmd_check_key(self, key: str) -> str:
        if self.store.has(key):
            return f'Yes, the key "{key}" exists in memory.'
        return f'No, the key "{key}" does not exist in memory.'

    def cmd_get_key(self, key: str) -> str:
        value = self.store.get(key)
        if value is None:
            return f'The key "{key}" does not exist in memory.'
        result = f'The value of key "{key}" is: "{value}"'
        if self.debug:
            result += f" (total size: {byte_size(key) + byte_size(value)} bytes)"
        return result

    def cmd_set_key(self, key: str, value: str) -> str:
        existed = self.store.has(key)
        if not self.store.set(key, value):
            return (
                f'ERROR: Cannot modify the protected key "{key}". '
                f"This key is essential for memory system operation."
            )
        if existed:
            return f'Updated key "{key}" with value: "{value}"'
        return f'Created new key "{key}" with value: "{value}"'

    def cmd_del_key(self, key: str) -> str:
        existed = self.store.has(key)
        if not self.store.delete(key):
            return (
                f'ERROR: Cannot delete the protected key "{key}". '
                f"This key is essential for memory system operation."
            )
        if existed:
            return f'Deleted key "{key}" from memory.'
        return f'Key "{key}" did not exist, so no action was needed.'

    # ------------------------------------------------------------------
    # Assessments
    # ------------------------------------------------------------------

    def should_delete(self) -> bool:
        return self.store.usage_percent() >= self.config.deletion_threshold_percent

    def fullness_assessment(self) -> str:
        """Usage band description plus the deletion-threshold reminder."""
        percent = self.store.usage_percent()
        threshold = self.config.deletion_threshold_percent

        if percent < 1.0:
            text = (
                f"Memory usage is extremely low ({percent:.6f}%). You have plenty of "
                f"space and don't need to manage memory at this time."
            )
        elif percent < 25.0:
            text = (
                f"Memory usage is very low ({percent:.4f}%). You can store many more "
                f"items without concern."
            )
        elif percent < 50.0:
            text = (
                f"Memory usage is low ({percent:.2f}%). Memory management is not "
                f"necessary at this time."
            )
        elif percent < 75.0:
            text = (
                f"Memory usage is moderate ({percent:.2f}%). You still have "
                f"significant space available."
            )
        elif percent < threshold:
            text = (
                f"Memory usage is getting high ({percent:.2f}%). Consider reviewing "
                f"your stored keys if you plan to add much more data."
            )
        else:
            text = (
                f"Memory usage is very high ({percent:.2f}%). It's recommended to "
                f"remove unnecessary keys to free up space."
            )

        if percent < threshold:
            text += (
                f" Remember: Only suggest key deletion when usage exceeds "
                f"{threshold:g}% of quota."
            )
        return text

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _execute_op(self, command: dict[str, Any]) -> str:
        op = command.get("op")
        if op is None:
            raise CommandFormatError("op", "Command missing 'op' field")
        if not isinstance(op, str):
            raise CommandFormatError("op", "Command 'op' field must be a string")

        logger.debug(f"Memory operation: {op}")
        if op == "check_key":
            return self._log_result(op, self.cmd_check_key(_require_str(command, op, "key")))
        if op == "get_key":
            return self._log_result(op, self.cmd_get_key(_require_str(command, op, "key")))
        if op == "set_key":
            if "key" not in command or "value" not in command:
                raise CommandFormatError(
                    "value", "set_key command missing 'key' or 'value' parameter"
                )
            key = _require_str(command, op, "key")
            value = _require_str(command, op, "value")
            return self._log_result(op, self.cmd_set_key(key, value))
        if op == "del_key":
            return self._log_result(op, self.cmd_del_key(_require_str(command, op, "key")))

        logger.warning(f"Unknown memory operation: {op}")
        return f"Unknown operation: {op}"

    def _deletion_threshold_bytes(self) -> int:
        return int(self.store.quota_bytes() * self.config.deletion_threshold_percent / 100)

    def _warn_if_protected_entry_damaged(self) -> None:
        if not self.store.has(self.store.protected_key):
            logger.warning(f"{self.store.protected_key} is missing")
        elif not self.store.protected_entry_valid():
            logger.warning(f"{self.store.protected_key} may be corrupted")

    def _log_result(self, command: str, result: str) -> str:
        if self.debug:
            logger.debug(
                f"Memory command executed: {command}\n"
                f"{json.dumps({'command': command, 'response': result}, ensure_ascii=False, indent=2)}"
            )
        return result


def _require_str(command: dict[str, Any], op: str, name: str) -> str:
    if name not in command:
        raise CommandFormatError(name, f"{op} command missing '{name}' parameter")
    value = command[name]
    if not isinstance(value, str):
        raise CommandFormatError(name, f"{op} command '{name}' parameter must be a string")
    return value


def _quoted(keys: list[str]) -> str:
    return ", ".join(f'"{key}"' for key in keys)
