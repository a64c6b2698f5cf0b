"""
Editing session for one open .env file.

Owns the live document, an untouched clone of it as loaded (the baseline for
diffs), and the document's change history. Every edit, undo and redo is
persisted immediately when ``autosave`` is on; if persisting fails the
in-memory document and the history cursor are rolled back before the error
propagates.
"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Union

from .history import DEFAULT_HISTORY_SIZE, Change, ChangeKind, ChangeStack
from .model import EnvFile, EnvFileCompare, KeyValue, is_valid_key
from .storage import BackupInfo, list_backups, read_file, restore_backup, write_file
from .validation import ValidationIssue


logger = logging.getLogger(__name__)


class HistoryMismatchError(RuntimeError):
    """Raised when a recorded change no longer lines up with the document."""


class EditSession:
    """
    A single logical editor of one document.

    Usage:
        session = EditSession.open(".env")
        session.update("DEBUG", "false")
        session.undo()
    """

    def __init__(self, document: EnvFile, history_size: int = DEFAULT_HISTORY_SIZE, autosave: bool = True):
        self.document = document
        self.original = document.clone()
        self.history = ChangeStack(history_size)
        self.autosave = autosave

    @classmethod
    def open(cls, path: Union[str, Path], history_size: int = DEFAULT_HISTORY_SIZE, autosave: bool = True) -> "EditSession":
        """Load a file and start a session on it."""
        return cls(read_file(path), history_size=history_size, autosave=autosave)

    @property
    def path(self) -> str:
        return self.document.path

    @property
    def modified(self) -> bool:
        return self.document.modified

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    @contextmanager
    def _persisting(self):
        entries = list(self.document.entries)
        modified = self.document.modified
        try:
            yield
            if self.autosave:
                write_file(self.document)
        except Exception:
            self.document.entries = entries
            self.document.modified = modified
            raise

    def add(self, key: str, value: str, exported: bool = False) -> KeyValue:
        """
        Append a new key. Does not check for an existing entry with the same key.

        Raises:
            ValueError: If key is not a valid identifier
        """
        if not is_valid_key(key):
            raise ValueError(f"Invalid key: {key!r}")

        with self._persisting():
            entry = self.document.add(KeyValue.create(key, value, exported=exported))
            index = len(self.document.entries) - 1

        self.history.push(Change(kind=ChangeKind.ADD, entry=entry, index=index))
        logger.debug("Added %s", key)
        return entry

    def update(self, key: str, value: str) -> bool:
        """Set the value of the first entry with this key. Returns False if absent."""
        index = self.document.index_of(key)
        if index == -1:
            return False

        old_value = self.document.entries[index].value
        with self._persisting():
            self.document.update(key, value)

        self.history.push(Change(
            kind=ChangeKind.UPDATE,
            entry=self.document.entries[index],
            old_value=old_value,
            index=index,
        ))
        logger.debug("Updated %s", key)
        return True

    def delete(self, key: str) -> bool:
        """Remove the first entry with this key. Returns False if absent."""
        index = self.document.index_of(key)
        if index == -1:
            return False

        entry = self.document.entries[index]
        with self._persisting():
            self.document.remove_at(index)

        self.history.push(Change(kind=ChangeKind.DELETE, entry=entry, index=index))
        logger.debug("Deleted %s", key)
        return True

    def undo(self) -> Optional[Change]:
        """
        Revert the most recent change.

        Returns:
            The change that was reverted, or None if there was nothing to undo
        """
        change = self.history.undo()
        if change is None:
            return None

        try:
            with self._persisting():
                self._apply_inverse(change)
        except Exception:
            self.history.redo()
            raise

        logger.debug("Undo %s: %s", change.kind.value, change.key)
        return change

    def redo(self) -> Optional[Change]:
        """
        Re-apply the most recently undone change.

        Returns:
            The change that was re-applied, or None at the head of history
        """
        change = self.history.redo()
        if change is None:
            return None

        try:
            with self._persisting():
                self._apply_forward(change)
        except Exception:
            self.history.undo()
            raise

        logger.debug("Redo %s: %s", change.kind.value, change.key)
        return change

    def _entry_at(self, change: Change) -> KeyValue:
        entries = self.document.entries
        if 0 <= change.index < len(entries):
            entry = entries[change.index]
            if isinstance(entry, KeyValue) and entry.key == change.key:
                return entry
        raise HistoryMismatchError(
            f"Expected {change.key!r} at position {change.index} of {self.path or 'document'}"
        )

    def _apply_inverse(self, change: Change):
        if change.kind == ChangeKind.ADD:
            self._entry_at(change)
            self.document.remove_at(change.index)
        elif change.kind == ChangeKind.UPDATE:
            entry = self._entry_at(change)
            self.document.replace_at(change.index, replace(entry, value=change.old_value))
        elif change.kind == ChangeKind.DELETE:
            self.document.insert(change.index, change.entry)
        else:
            raise ValueError(f"Unknown change kind: {change.kind}")

    def _apply_forward(self, change: Change):
        if change.kind == ChangeKind.ADD:
            self.document.insert(change.index, change.entry)
        elif change.kind == ChangeKind.UPDATE:
            entry = self._entry_at(change)
            self.document.replace_at(change.index, replace(entry, value=change.entry.value))
        elif change.kind == ChangeKind.DELETE:
            self._entry_at(change)
            self.document.remove_at(change.index)
        else:
            raise ValueError(f"Unknown change kind: {change.kind}")

    def save(self):
        """Write the document now (backup first, then atomic replace)."""
        write_file(self.document)

    def restore(self, backup_path: Union[str, Path]) -> Optional[Path]:
        """
        Restore a backup over this session's file and reload it.

        History is cleared since recorded changes no longer apply, and the
        reloaded file becomes the baseline for ``changes()``. If the
        restore or the reload fails, the in-memory document is unchanged.

        Returns:
            Path of the pre-restore safety copy, if one was made
        """
        safety_copy = restore_backup(backup_path, self.path)
        document = read_file(self.path)
        self.document = document
        self.original = document.clone()
        self.history.clear()
        logger.debug("Restored %s from %s", self.path, backup_path)
        return safety_copy

    def backups(self) -> List[BackupInfo]:
        return list_backups(self.path)

    def validate(self) -> List[ValidationIssue]:
        return self.document.validate()

    def changes(self) -> EnvFileCompare:
        """Compare the live document against the file as it was loaded."""
        return self.document.compare(self.original)
