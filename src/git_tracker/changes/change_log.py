"""
Persisted change log for git_tracker.

The log is a JSON array of change records stored in ``.gt-changes.json``
next to the configuration file. When a commit drains the log, the drained
entries are first written to a recovery slot (``.gt-changes.recovery.json``)
which is only removed once the commit has succeeded. If the process dies in
between, or the commit fails, the slot survives and is reported on the next
run so the recorded changes are never lost silently.

All writes replace the target file atomically.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from git_tracker.changes.model import Change, ValidationError


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CHANGES_FILENAME = ".gt-changes.json"
RECOVERY_FILENAME = ".gt-changes.recovery.json"


class ChangeLogError(Exception):
    """Base class for change log failures."""

    pass


class EmptyChangeLogError(ChangeLogError):
    """Raised when a commit is requested but no changes are recorded."""

    pass


class ChangeLogCorruptError(ChangeLogError):
    """Raised when the change log or recovery slot cannot be read."""

    pass


class RecoveryPendingError(ChangeLogError):
    """Raised when a drain would overwrite an orphaned recovery slot."""

    pass


def write_json_atomic(path: Path, data: Any) -> None:
    """Write ``data`` as JSON to ``path`` so readers see old or new content only.

    The payload goes to a temporary file in the same directory which is
    flushed, synced and then renamed over ``path``. The temporary file is
    removed if anything fails before the rename.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            json.dump(data, tmp, indent=2, ensure_ascii=False)
            tmp.write("\n")
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _read_changes(path: Path) -> List[Change]:
    """Load a list of changes from ``path``; a missing file is an empty list."""
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read change file %s: %s", path, exc)
        raise ChangeLogCorruptError(
            f"Cannot read {path}: {exc}. Fix or delete the file."
        ) from exc

    if not isinstance(data, list):
        raise ChangeLogCorruptError(f"{path} must contain a JSON array of changes")

    changes = []
    for index, record in enumerate(data):
        if not isinstance(record, dict):
            raise ChangeLogCorruptError(f"Entry {index} in {path} is not an object")
        try:
            changes.append(Change.from_dict(record))
        except (KeyError, TypeError, ValidationError) as exc:
            raise ChangeLogCorruptError(f"Entry {index} in {path} is invalid: {exc}") from exc
    return changes


class ChangeLog:
    """Ordered, persisted list of pending changes (oldest first)."""

    def __init__(self, path: Path, recovery_path: Optional[Path] = None) -> None:
        self.path = path
        self.recovery_path = recovery_path or path.with_name(RECOVERY_FILENAME)
        self._changes: List[Change] = _read_changes(path)
        logger.debug("Loaded %d recorded change(s) from %s", len(self._changes), path)

    @classmethod
    def in_directory(cls, state_dir: Path) -> "ChangeLog":
        """Open the change log stored in ``state_dir``."""
        return cls(state_dir / CHANGES_FILENAME, state_dir / RECOVERY_FILENAME)

    def __len__(self) -> int:
        return len(self._changes)

    def __bool__(self) -> bool:
        return bool(self._changes)

    def _save(self) -> None:
        write_json_atomic(self.path, [change.to_dict() for change in self._changes])
        logger.debug("Saved %d change(s) to %s", len(self._changes), self.path)

    # ------------------------------------------------------------------
    # Recording and listing
    # ------------------------------------------------------------------
    def append(self, change: Change) -> None:
        """Append ``change`` to the end of the log and persist it.

        Raises
        ------
        ValidationError
            If the change has an empty description.
        """
        if not isinstance(change, Change):
            raise ValidationError(f"Expected a Change, got {type(change).__name__}")
        if not change.description.strip():
            raise ValidationError("Change description must not be empty")
        self._changes.append(change)
        self._save()

    def all(self) -> Tuple[Change, ...]:
        """Return a read-only snapshot of the recorded changes."""
        return tuple(self._changes)

    # ------------------------------------------------------------------
    # Draining and recovery
    # ------------------------------------------------------------------
    def drain(self) -> Tuple[Change, ...]:
        """Remove and return every recorded change.

        The drained entries are written to the recovery slot before the log
        is cleared. Call :meth:`clear_recovery` once they are committed.

        Raises
        ------
        RecoveryPendingError
            If a previous drain was never confirmed.
        EmptyChangeLogError
            If nothing is recorded.
        """
        if self.has_recovery():
            raise RecoveryPendingError(
                f"Unconfirmed changes from an earlier commit are stored in "
                f"{self.recovery_path}. Run 'gtrack recover' first."
            )
        if not self._changes:
            raise EmptyChangeLogError("No changes recorded")

        drained = tuple(self._changes)
        write_json_atomic(self.recovery_path, [change.to_dict() for change in drained])
        self._changes = []
        self._save()
        logger.debug("Drained %d change(s) into %s", len(drained), self.recovery_path)
        return drained

    def has_recovery(self) -> bool:
        """Return True if an unconfirmed drain is stored in the recovery slot."""
        return self.recovery_path.exists()

    def recovered(self) -> Tuple[Change, ...]:
        """Return the changes held in the recovery slot (empty if none)."""
        return tuple(_read_changes(self.recovery_path))

    def clear_recovery(self) -> None:
        """Forget the recovery slot after the drained changes were committed."""
        if self.recovery_path.exists():
            self.recovery_path.unlink()
            logger.debug("Cleared recovery slot %s", self.recovery_path)

    def restore_recovery(self) -> int:
        """Move the recovery slot back into the log and return how many entries moved.

        Restored entries go before the current ones because they were
        recorded earlier. Entries still present in the log (a crash between
        writing the slot and clearing the log) are not added twice.
        """
        recovered = [change for change in self.recovered() if change not in self._changes]
        if not recovered:
            self.clear_recovery()
            return 0
        self._changes = recovered + self._changes
        self._save()
        self.clear_recovery()
        logger.info("Restored %d change(s) from %s", len(recovered), self.recovery_path)
        return len(recovered)

    def discard_recovery(self) -> int:
        """Delete the recovery slot and return how many entries it held."""
        try:
            count = len(self.recovered())
        except ChangeLogCorruptError as exc:
            logger.warning("Discarding unreadable recovery slot: %s", exc)
            count = 0
        self.clear_recovery()
        return count

    @staticmethod
    def affected_files(changes: Sequence[Change]) -> List[str]:
        """Return the union of affected files in first-seen order."""
        seen: List[str] = []
        for change in changes:
            for path in change.affected_files:
                if path not in seen:
                    seen.append(path)
        return seen
