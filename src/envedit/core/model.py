"""
In-memory document model for .env files.

An EnvFile is an ordered list of entries. Entries are immutable values: the
document swaps an entry for an updated copy instead of mutating it, so an
entry returned by ``get()`` never changes underneath the caller and never
dangles after a delete.
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Union


logger = logging.getLogger(__name__)

SECRET_KEYWORDS = (
    "PASSWORD",
    "SECRET",
    "TOKEN",
    "KEY",
    "PRIVATE",
    "API_KEY",
    "AUTH",
    "CREDENTIAL",
    "CERT",
)

CATEGORY_PREFIXES = (
    ("database", ("DB_", "DATABASE_")),
    ("aws", ("AWS_", "S3_")),
    ("api", ("API_", "HTTP_")),
)


def is_secret_key(key: str) -> bool:
    """Return True if the key name looks like it holds a secret."""
    upper_key = key.upper()
    return any(keyword in upper_key for keyword in SECRET_KEYWORDS)


def is_valid_key(key: str) -> bool:
    """Return True if key matches [A-Za-z_][A-Za-z0-9_]* (ASCII only)."""
    if not key or not key.isascii():
        return False
    if not (key[0].isalpha() or key[0] == "_"):
        return False
    return all(ch.isalnum() or ch == "_" for ch in key)


@dataclass(frozen=True)
class KeyValue:
    """A ``KEY=value`` line."""
    key: str
    value: str
    inline_comment: str = ""
    exported: bool = False
    is_secret: bool = False
    line: int = 0

    @classmethod
    def create(
        cls,
        key: str,
        value: str,
        exported: bool = False,
        inline_comment: str = "",
        line: int = 0,
    ) -> "KeyValue":
        """Build an entry, classifying the key as secret or not."""
        return cls(
            key=key,
            value=value,
            inline_comment=inline_comment,
            exported=exported,
            is_secret=is_secret_key(key),
            line=line,
        )

    @property
    def category(self) -> str:
        for name, prefixes in CATEGORY_PREFIXES:
            if self.key.startswith(prefixes):
                return name
        if self.is_secret:
            return "secret"
        return "other"

    def matches(self, query: str) -> bool:
        """Return True if query is a subsequence of the key or the value (case-insensitive)."""
        q = query.lower()
        return fuzzy_match(self.key.lower(), q) or fuzzy_match(self.value.lower(), q)


@dataclass(frozen=True)
class Comment:
    """A full-line comment, stored with its original text (including ``#``)."""
    text: str
    line: int = 0


@dataclass(frozen=True)
class Blank:
    """An empty or whitespace-only line."""
    line: int = 0


Entry = Union[KeyValue, Comment, Blank]


def fuzzy_match(text: str, pattern: str) -> bool:
    """Return True if every character of pattern appears in text, in order."""
    if not pattern:
        return True

    remaining = iter(text)
    return all(ch in remaining for ch in pattern)


@dataclass
class FileDiff:
    """One key's comparison between two documents."""
    key: str
    current_value: str = ""
    other_value: str = ""
    only_in_current: bool = False
    only_in_other: bool = False
    different: bool = False


@dataclass
class EnvFileCompare:
    """Result of comparing one document against another."""
    other_file: str
    differences: List[FileDiff] = field(default_factory=list)
    total_keys: int = 0
    matching_keys: int = 0
    different_values: int = 0
    only_in_current: int = 0
    only_in_other: int = 0

    @property
    def has_differences(self) -> bool:
        return bool(self.different_values or self.only_in_current or self.only_in_other)


class EnvFile:
    """
    An ordered sequence of entries loaded from (or destined for) one file.

    Key-based operations address the first KeyValue entry with a matching
    key. Duplicate keys are representable; ``validate()`` reports them.
    """

    def __init__(self, entries: Optional[List[Entry]] = None, path: str = "", modified: bool = False):
        self.entries: List[Entry] = list(entries) if entries else []
        self.path = path
        self.modified = modified

    def __repr__(self):
        return f"EnvFile(path={self.path!r}, entries={len(self.entries)}, modified={self.modified})"

    def __len__(self):
        return len(self.entries)

    def mark_modified(self):
        self.modified = True

    def clear_modified(self):
        self.modified = False

    def key_values(self) -> List[KeyValue]:
        """Return all KeyValue entries in document order."""
        return [entry for entry in self.entries if isinstance(entry, KeyValue)]

    def keys(self) -> List[str]:
        return [entry.key for entry in self.key_values()]

    def index_of(self, key: str) -> int:
        """Return the position of the first entry with this key, or -1."""
        for i, entry in enumerate(self.entries):
            if isinstance(entry, KeyValue) and entry.key == key:
                return i
        return -1

    def get(self, key: str) -> Optional[KeyValue]:
        """Return the first KeyValue entry with this key, or None."""
        index = self.index_of(key)
        if index == -1:
            return None
        return self.entries[index]

    def add(self, entry: Entry) -> Entry:
        """
        Append an entry without checking for an existing key.

        Entries without a line number get the position after the last entry.

        Returns:
            The entry as stored.
        """
        if entry.line <= 0:
            last_line = self.entries[-1].line if self.entries else 0
            entry = replace(entry, line=last_line + 1)
        self.entries.append(entry)
        self.mark_modified()
        return entry

    def update(self, key: str, value: str) -> bool:
        """
        Set the value of the first entry with this key.

        Returns:
            True if an entry was found and updated.
        """
        index = self.index_of(key)
        if index == -1:
            return False
        self.entries[index] = replace(self.entries[index], value=value)
        self.mark_modified()
        return True

    def delete(self, key: str) -> bool:
        """
        Remove the first entry with this key.

        Returns:
            True if an entry was found and removed.
        """
        index = self.index_of(key)
        if index == -1:
            return False
        self.remove_at(index)
        return True

    def insert(self, index: int, entry: Entry):
        self.entries.insert(index, entry)
        self.mark_modified()

    def remove_at(self, index: int) -> Entry:
        entry = self.entries.pop(index)
        self.mark_modified()
        return entry

    def replace_at(self, index: int, entry: Entry):
        self.entries[index] = entry
        self.mark_modified()

    def filter(self, query: str) -> List[KeyValue]:
        """
        Fuzzy-filter key-value entries.

        Args:
            query: Characters that must appear, in order, in the key or value

        Returns:
            Matching entries in document order (all of them for an empty query)
        """
        entries = self.key_values()
        if not query:
            return entries
        return [entry for entry in entries if entry.matches(query)]

    def validate(self):
        """Return the validation issues for this document."""
        from .validation import validate
        return validate(self)

    def _first_values(self) -> dict:
        values = {}
        for entry in self.key_values():
            values.setdefault(entry.key, entry.value)
        return values

    def compare(self, other: "EnvFile") -> EnvFileCompare:
        """
        Compare this document's keys and values with another document.

        For duplicate keys the first occurrence is compared. Differences are
        ordered by this document's keys, then keys only present in other.
        """
        current_values = self._first_values()
        other_values = other._first_values()

        result = EnvFileCompare(
            other_file=Path(other.path).name if other.path else "",
            total_keys=len(current_values),
        )

        for key, current_value in current_values.items():
            diff = FileDiff(key=key, current_value=current_value)
            if key in other_values:
                diff.other_value = other_values[key]
                if diff.other_value != current_value:
                    diff.different = True
                    result.different_values += 1
                else:
                    result.matching_keys += 1
            else:
                diff.only_in_current = True
                result.only_in_current += 1
            result.differences.append(diff)

        for key, other_value in other_values.items():
            if key in current_values:
                continue
            result.differences.append(FileDiff(key=key, other_value=other_value, only_in_other=True))
            result.only_in_other += 1

        logger.debug(
            "Compared %s with %s: %d different, %d only here, %d only there",
            self.path or "<memory>",
            result.other_file or "<memory>",
            result.different_values,
            result.only_in_current,
            result.only_in_other,
        )
        return result

    def clone(self) -> "EnvFile":
        """Return a deep copy that shares no entry objects with this document."""
        return EnvFile(
            entries=[replace(entry) for entry in self.entries],
            path=self.path,
            modified=self.modified,
        )
