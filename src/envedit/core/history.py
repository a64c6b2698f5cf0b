"""
Linear undo/redo history of semantic edits.

The stack only tracks what happened. Applying the inverse (undo) or the
forward effect (redo) to a document is the caller's job, which keeps this
module free of document logic:

- ADD: undo removes the entry, redo re-inserts it.
- UPDATE: undo restores ``old_value``, redo applies ``entry.value``.
- DELETE: undo re-inserts the entry, redo removes it again.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .model import KeyValue


logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 100


class ChangeKind(Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Change:
    """
    One undoable edit.

    ``entry`` is a value copy of the affected entry after an ADD or UPDATE,
    or before a DELETE. ``old_value`` is the value an UPDATE replaced.
    ``index`` is the entry's position in the document when the edit happened.
    """
    kind: ChangeKind
    entry: KeyValue
    old_value: str = ""
    index: int = -1

    @property
    def key(self) -> str:
        return self.entry.key


class ChangeStack:
    """
    Bounded list of changes plus a cursor at the most recently applied one.

    The cursor is -1 when nothing can be undone.
    """

    def __init__(self, max_size: int = DEFAULT_HISTORY_SIZE):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self._changes: List[Change] = []
        self._current = -1

    def __len__(self):
        return len(self._changes)

    def __repr__(self):
        return f"ChangeStack(position={self._current}, size={len(self._changes)}, max_size={self.max_size})"

    @property
    def position(self) -> int:
        return self._current

    @property
    def history(self) -> List[Change]:
        """A copy of every recorded change, oldest first."""
        return list(self._changes)

    def push(self, change: Change):
        """Record a change, discarding any redo history."""
        del self._changes[self._current + 1:]
        self._changes.append(change)
        self._current += 1

        if len(self._changes) > self.max_size:
            evicted = self._changes.pop(0)
            self._current -= 1
            logger.debug("History full, evicted oldest %s of %s", evicted.kind.value, evicted.key)

    def undo(self) -> Optional[Change]:
        """Step back one change and return it, or None if there is nothing to undo."""
        if self._current < 0:
            return None
        change = self._changes[self._current]
        self._current -= 1
        return change

    def redo(self) -> Optional[Change]:
        """Step forward one change and return it, or None at the head of history."""
        if self._current >= len(self._changes) - 1:
            return None
        self._current += 1
        return self._changes[self._current]

    def can_undo(self) -> bool:
        return self._current >= 0

    def can_redo(self) -> bool:
        return self._current < len(self._changes) - 1

    def clear(self):
        self._changes.clear()
        self._current = -1
