"""
Data models for recorded changes.

A :class:`Change` is one pending unit of work noted by the user with
``gtrack add``. Its :class:`ChangeType` selects the commit message
template used when the change is finally committed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple


class ValidationError(Exception):
    """Raised when a change is recorded with invalid input."""

    pass


class ChangeType(str, Enum):
    """The closed set of change types a user can record."""

    FEATURE = "feature"
    FIX = "fix"
    DOCS = "docs"
    STYLE = "style"
    REFACTOR = "refactor"
    TEST = "test"
    CHORE = "chore"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ChangeType":
        """Convert user input into a :class:`ChangeType`.

        ``None`` or a blank string selects :attr:`FEATURE`. Matching is
        case-insensitive and the Conventional Commit spelling ``feat`` is
        accepted as an alias of ``feature``.

        Raises
        ------
        ValidationError
            If the value names no known change type.
        """
        if isinstance(value, cls):
            return value
        if value is None or not value.strip():
            return cls.FEATURE
        normalized = value.strip().lower()
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ValidationError(
                f"Unknown change type '{value}'. Valid types: {valid}"
            ) from None


_ALIASES = {"feat": "feature"}


def _now() -> str:
    return datetime.now().astimezone().isoformat()


@dataclass(frozen=True)
class Change:
    """A recorded, not yet committed change.

    Attributes
    ----------
    description : str
        Free text supplied by the user; never empty.
    change_type : ChangeType
        The kind of change, used to pick the commit template.
    timestamp : str
        ISO-8601 creation time with UTC offset.
    affected_files : Tuple[str, ...]
        Files that were modified when the change was recorded.
    """

    description: str
    change_type: ChangeType = ChangeType.FEATURE
    timestamp: str = field(default_factory=_now)
    affected_files: Tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        description: str,
        change_type: Optional[str] = None,
        affected_files: Iterable[str] = (),
    ) -> "Change":
        """Validate user input and build a new change stamped with the current time.

        The description is stored as typed; one made only of whitespace is
        rejected.
        """
        if not description or not description.strip():
            raise ValidationError("Change description must not be empty")
        return cls(
            description=description,
            change_type=ChangeType.parse(change_type),
            affected_files=tuple(affected_files),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp,
            "type": self.change_type.value,
            "description": self.description,
            "files": list(self.affected_files),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Change":
        """Rebuild a change from its JSON form.

        Raises ``ValidationError`` (or ``KeyError``/``TypeError`` for a
        record of the wrong shape).
        """
        change_type = data.get("type", data.get("type_"))
        description = data["description"]
        if not isinstance(description, str) or not description.strip():
            raise ValidationError("Stored change has an empty description")
        return cls(
            description=description,
            change_type=ChangeType.parse(change_type),
            timestamp=str(data["timestamp"]),
            affected_files=tuple(str(path) for path in data.get("files") or ()),
        )
