"""
Runtime settings read from the environment.

- ENVEDIT_HISTORY_SIZE: number of undoable changes kept per document (default 100)
- ENVEDIT_DEBUG: enable debug logging
"""

import os
from dataclasses import dataclass

from .core.history import DEFAULT_HISTORY_SIZE


HISTORY_SIZE_VAR = "ENVEDIT_HISTORY_SIZE"
DEBUG_VAR = "ENVEDIT_DEBUG"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off", ""}


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        number = int(value.strip())
    except ValueError:
        return default
    return max(number, minimum)


@dataclass(frozen=True)
class Settings:
    history_size: int = DEFAULT_HISTORY_SIZE
    debug: bool = False


def load_settings() -> Settings:
    """Build settings from environment variables, falling back to defaults."""
    return Settings(
        history_size=_env_int(HISTORY_SIZE_VAR, DEFAULT_HISTORY_SIZE),
        debug=_env_bool(DEBUG_VAR, False),
    )
