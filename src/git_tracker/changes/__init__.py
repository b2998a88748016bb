"""
Recorded changes and their persistence.

See :mod:`git_tracker.changes.model` for the :class:`Change` record and
:mod:`git_tracker.changes.change_log` for the persisted :class:`ChangeLog`.
"""

from .model import Change, ChangeType, ValidationError  # noqa: F401
from .change_log import (  # noqa: F401
    ChangeLog,
    ChangeLogCorruptError,
    ChangeLogError,
    EmptyChangeLogError,
    RecoveryPendingError,
)
