"""
Governance state persistence.

The snapshot file is rewritten atomically on every save (temp file, backup
of the previous version, then ``replace``). Events go to a separate
append-only JSON-lines log.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from ..exceptions import PersistenceError
from .state import GovernanceEvent, GovernanceSnapshot


class GovernanceStateStore:
    """File-backed snapshot and event log for one governance engine."""

    def __init__(
        self,
        state_path: str | Path,
        log_path: str | Path,
        create_backup: bool = True,
    ):
        """
        Args:
            state_path: Snapshot file, fully overwritten on each save.
            log_path: JSON-lines event log, appended to.
            create_backup: Keep the previous snapshot as ``*.bak``.
        """
        self.state_path = Path(state_path)
        self.log_path = Path(log_path)
        self._create_backup = create_backup

    @property
    def _backup_path(self) -> Path:
        return self.state_path.with_suffix(self.state_path.suffix + ".bak")

    def save(self, snapshot: GovernanceSnapshot) -> None:
        """Write *snapshot*.

        Raises:
            PersistenceError: The snapshot could not be written.
        """
        temp_path = self.state_path.with_suffix(self.state_path.suffix + ".tmp")

        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(snapshot.model_dump(mode="json"), f, ensure_ascii=False, indent=2)

            if self._create_backup and self.state_path.exists():
                shutil.copy2(self.state_path, self._backup_path)

            temp_path.replace(self.state_path)
            logger.debug(f"Governance state saved to {self.state_path}")

        except OSError as e:
            raise PersistenceError(
                f"Failed to save governance state: {e}",
                path=str(self.state_path),
            ) from e

        finally:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as e:
                    logger.warning(f"Could not remove temp file {temp_path}: {e}")

    def load(self) -> GovernanceSnapshot:
        """Read the snapshot, falling back to the backup when corrupted.

        Raises:
            PersistenceError: No readable snapshot exists.
        """
        if not self.state_path.exists():
            raise PersistenceError("No governance state file", path=str(self.state_path))

        try:
            return self._read_snapshot(self.state_path)
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            logger.error(f"Corrupted governance state file: {self.state_path}: {e}")

            if self._create_backup and self._backup_path.exists():
                logger.info(f"Attempting to restore from backup: {self._backup_path}")
                try:
                    snapshot = self._read_snapshot(self._backup_path)
                    shutil.copy2(self._backup_path, self.state_path)
                    return snapshot
                except (
                    OSError,
                    json.JSONDecodeError,
                    UnicodeDecodeError,
                    ValidationError,
                ) as restore_error:
                    logger.error(f"Failed to restore from backup: {restore_error}")

            raise PersistenceError(
                f"Corrupted governance state and no valid backup: {e}",
                path=str(self.state_path),
            ) from e

        except OSError as e:
            raise PersistenceError(
                f"Failed to load governance state: {e}",
                path=str(self.state_path),
            ) from e

    def append_event(self, event: GovernanceEvent) -> None:
        """Append one event line.

        Raises:
            PersistenceError: The log could not be written.
        """
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(event.model_dump_json() + "\n")
        except OSError as e:
            raise PersistenceError(
                f"Failed to write governance event: {e}",
                path=str(self.log_path),
            ) from e

    def read_events(self) -> list[dict[str, Any]]:
        """All parseable events in the log; unreadable lines are skipped."""
        if not self.log_path.exists():
            return []

        events = []
        try:
            with open(self.log_path, "rb") as f:
                for line_no, raw in enumerate(f, start=1):
                    line = raw.strip()
                    if not line:
                        continue
                    try:
                        events.append(json.loads(line.decode("utf-8")))
                    except (json.JSONDecodeError, UnicodeDecodeError):
                        logger.warning(
                            f"Skipping malformed event on line {line_no} of {self.log_path}"
                        )
        except OSError as e:
            logger.error(f"Failed to read governance log {self.log_path}: {e}")
        return events

    @staticmethod
    def _read_snapshot(path: Path) -> GovernanceSnapshot:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return GovernanceSnapshot.model_validate(data)
