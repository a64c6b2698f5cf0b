"""
envedit core modules.

Includes:
- lexer: Token and value reading for .env text
- parser: Document parsing and serialization
- model: Entries and the EnvFile document
- validation: Per-entry and duplicate-key checks
- history: Undo/redo change stack
- storage: Backups and atomic writes
- session: One open document with history and persistence
"""

from . import lexer
from . import model
from . import parser
from . import validation
from . import history
from . import storage
from . import session

from .model import Blank, Comment, Entry, EnvFile, KeyValue
from .parser import parse, serialize
from .history import Change, ChangeKind, ChangeStack
from .storage import (
    BackupInfo, StorageError, create_backup, delete_backup,
    list_backups, read_file, restore_backup, write_file,
)
from .session import EditSession

__all__ = [
    "lexer",
    "model",
    "parser",
    "validation",
    "history",
    "storage",
    "session",
    "Blank",
    "Comment",
    "Entry",
    "EnvFile",
    "KeyValue",
    "parse",
    "serialize",
    "Change",
    "ChangeKind",
    "ChangeStack",
    "BackupInfo",
    "StorageError",
    "create_backup",
    "delete_backup",
    "list_backups",
    "read_file",
    "restore_backup",
    "write_file",
    "EditSession",
]
