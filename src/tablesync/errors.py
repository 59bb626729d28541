"""Typed errors raised by the table synchronization engine."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Tag identifying the kind of failure."""

    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    IN_USE = "in_use"
    UNSUPPORTED_ACTION = "unsupported_action"
    INTERNAL = "internal"


class TableSyncError(Exception):
    """Base class for every error surfaced by tablesync."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, *, data: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.data = data


class NotFound(TableSyncError):
    """Table, row, field or action target could not be resolved."""

    kind = ErrorKind.NOT_FOUND


class InvalidInput(TableSyncError):
    """Malformed parameters or a value rejected by the field schema."""

    kind = ErrorKind.INVALID_INPUT


class InUse(TableSyncError):
    """Row has dependent state and the delete was not forced."""

    kind = ErrorKind.IN_USE


class UnsupportedAction(TableSyncError):
    """No built-in or custom handler resolves the requested action."""

    kind = ErrorKind.UNSUPPORTED_ACTION


class Internal(TableSyncError):
    """An invariant was violated while computing a result."""

    kind = ErrorKind.INTERNAL
