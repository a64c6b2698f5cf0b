"""
Validation checks for .env documents.

Issues are returned as data; validation never raises and never changes the
document.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List

from .model import Entry, KeyValue

if TYPE_CHECKING:
    from .model import EnvFile


SUSPICIOUS_SECRET_VALUES = {"", "changeme", "password"}


class ValidationLevel(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found in a document."""
    level: ValidationLevel
    message: str
    line: int
    key: str = ""


def validate_entry(entry: Entry) -> List[ValidationIssue]:
    """
    Check a single entry in isolation.

    Comments and blank lines never produce issues.
    """
    issues = []

    if not isinstance(entry, KeyValue):
        return issues

    if not entry.key:
        issues.append(ValidationIssue(
            level=ValidationLevel.ERROR,
            message="Key cannot be empty",
            line=entry.line,
        ))

    if " " in entry.value and not entry.exported:
        issues.append(ValidationIssue(
            level=ValidationLevel.WARNING,
            message=f"Value contains spaces, consider quoting: {entry.key}",
            line=entry.line,
            key=entry.key,
        ))

    if entry.is_secret and entry.value in SUSPICIOUS_SECRET_VALUES:
        issues.append(ValidationIssue(
            level=ValidationLevel.WARNING,
            message=f"Suspicious secret value: {entry.key}",
            line=entry.line,
            key=entry.key,
        ))

    return issues


def validate(env_file: "EnvFile") -> List[ValidationIssue]:
    """
    Validate every entry and scan the document for duplicate keys.

    Each repeated key is reported against the line where it was first seen.
    """
    issues = []
    first_seen: Dict[str, int] = {}

    for entry in env_file.entries:
        issues.extend(validate_entry(entry))

        if not isinstance(entry, KeyValue):
            continue

        if entry.key in first_seen:
            issues.append(ValidationIssue(
                level=ValidationLevel.ERROR,
                message=f"Duplicate key '{entry.key}' (first seen at line {first_seen[entry.key]})",
                line=entry.line,
                key=entry.key,
            ))
        else:
            first_seen[entry.key] = entry.line

    return issues


def has_errors(issues: List[ValidationIssue]) -> bool:
    return any(issue.level == ValidationLevel.ERROR for issue in issues)
