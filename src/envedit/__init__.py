"""
envedit - .env file editing engine

Round-trip-safe parsing of .env files, linear undo/redo of edits, and
crash-safe writes with timestamped backups.
"""

import logging

__version__ = "0.1.0"

from .core import lexer, parser, model, validation, history, storage, session

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "lexer",
    "parser",
    "model",
    "validation",
    "history",
    "storage",
    "session",
]
