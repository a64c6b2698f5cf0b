"""
Crash-safe persistence for .env files.

Every write first copies the current file to a timestamped backup, then
writes the new content to ``{path}.tmp``, syncs it to disk and renames it
over the target. A failed write leaves the target untouched.

Backups are plain sibling files named ``{path}.backup.{YYYYMMDD-HHMMSS}``.
Two backups taken within the same second share a name; the later copy wins.
"""

import glob
import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from .model import EnvFile
from .parser import parse, serialize


logger = logging.getLogger(__name__)

BACKUP_MARKER = ".backup."
PRE_RESTORE_MARKER = "pre-restore."
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
TEMP_SUFFIX = ".tmp"

PathLike = Union[str, Path]


class StorageError(OSError):
    """Raised when a persistence step fails. ``phase`` names the step."""

    def __init__(self, message: str, phase: str):
        super().__init__(message)
        self.phase = phase


@dataclass(frozen=True)
class BackupInfo:
    """A backup file found on disk."""
    path: Path
    timestamp: datetime
    size: int


def _timestamp() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def backup_path_for(path: PathLike, timestamp: Optional[str] = None) -> Path:
    """Return the backup file name for path at the given (or current) time."""
    return Path(f"{path}{BACKUP_MARKER}{timestamp or _timestamp()}")


def read_file(path: PathLike) -> EnvFile:
    """
    Read and parse a .env file.

    Args:
        path: Path to the file

    Returns:
        EnvFile with its path set

    Raises:
        StorageError: If the file cannot be read
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise StorageError(f"Failed to read file {path}: {exc}", phase="read") from exc

    env_file = parse(content, path=str(path))
    logger.debug("Read %s: %d entries", path, len(env_file.entries))
    return env_file


def create_backup(path: PathLike) -> Optional[Path]:
    """
    Copy the current file to a timestamped backup.

    Returns:
        The backup path, or None if there was no file to back up

    Raises:
        StorageError: If the copy fails
    """
    source = Path(path)
    if not source.exists():
        return None

    backup = backup_path_for(source)
    try:
        shutil.copyfile(source, backup)
    except OSError as exc:
        raise StorageError(f"Failed to create backup of {source}: {exc}", phase="backup") from exc

    logger.debug("Backed up %s to %s", source, backup)
    return backup


def write_file(env_file: EnvFile):
    """
    Atomically replace the document's file with its serialized content.

    Raises:
        StorageError: If the backup, temp write, sync or rename fails. The
            target file is unchanged and no temp file is left behind.
    """
    if not env_file.path:
        raise StorageError("Cannot write a document without a path", phase="write")

    target = Path(env_file.path)
    create_backup(target)

    temp_path = Path(f"{target}{TEMP_SUFFIX}")
    content = serialize(env_file)
    phase = "write"

    try:
        with open(temp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            phase = "sync"
            os.fsync(f.fileno())

        phase = "rename"
        os.replace(temp_path, target)
    except OSError as exc:
        _remove_quietly(temp_path)
        raise StorageError(f"Failed to {phase} {target}: {exc}", phase=phase) from exc

    env_file.clear_modified()
    logger.debug("Wrote %s (%d bytes)", target, len(content.encode("utf-8")))


def _remove_quietly(path: Path):
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove temp file %s: %s", path, exc)


def parse_backup_timestamp(path: PathLike) -> Optional[datetime]:
    """
    Extract the timestamp from a backup file name.

    Returns:
        The timestamp, or None if the suffix is not ``YYYYMMDD-HHMMSS``
    """
    name = Path(path).name
    if BACKUP_MARKER not in name:
        return None
    return _parse_timestamp(name.rsplit(BACKUP_MARKER, 1)[1])


def _parse_timestamp(suffix: str) -> Optional[datetime]:
    try:
        return datetime.strptime(suffix, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def list_backups(path: PathLike) -> List[BackupInfo]:
    """
    List backups of a file, newest first.

    Files whose suffix is not a plain timestamp (including pre-restore
    safety copies) are skipped.
    """
    target = Path(path)
    prefix = target.name + BACKUP_MARKER

    backups = []
    for match in target.parent.glob(glob.escape(prefix) + "*"):
        timestamp = _parse_timestamp(match.name[len(prefix):])
        if timestamp is None:
            continue
        try:
            size = match.stat().st_size
        except OSError:
            continue
        backups.append(BackupInfo(path=match, timestamp=timestamp, size=size))

    backups.sort(key=lambda backup: backup.timestamp, reverse=True)
    return backups


def restore_backup(backup_path: PathLike, target_path: PathLike) -> Optional[Path]:
    """
    Copy a backup over the target file.

    If the target exists it is first saved as
    ``{target}.backup.pre-restore.{timestamp}``.

    Returns:
        The safety copy path, or None if the target did not exist

    Raises:
        StorageError: If the backup is missing or a copy fails
    """
    backup = Path(backup_path)
    target = Path(target_path)

    if not backup.is_file():
        raise StorageError(f"Backup file not found: {backup}", phase="restore")

    safety_copy = None
    if target.exists():
        safety_copy = backup_path_for(target, PRE_RESTORE_MARKER + _timestamp())
        try:
            shutil.copyfile(target, safety_copy)
        except OSError as exc:
            raise StorageError(f"Failed to create safety backup of {target}: {exc}", phase="backup") from exc

    try:
        shutil.copyfile(backup, target)
    except OSError as exc:
        raise StorageError(f"Failed to restore {backup} to {target}: {exc}", phase="restore") from exc

    logger.debug("Restored %s from %s", target, backup)
    return safety_copy


def delete_backup(path: PathLike):
    """
    Remove a backup file.

    Raises:
        StorageError: If the file cannot be removed
    """
    try:
        Path(path).unlink()
    except OSError as exc:
        raise StorageError(f"Failed to delete backup {path}: {exc}", phase="delete") from exc

    logger.debug("Deleted backup %s", path)
