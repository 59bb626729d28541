"""Core data models for tablesync."""

from .base import TableSyncBaseModel, TableSyncRecordModel
from .table import FieldSpec, FieldKind, TableSchema
from .row import Row
from .delta import (
    ActionName,
    AddedRow,
    PaginationChange,
    Delta,
    RowFragment,
    ConfirmationDialog,
    ResponsePayload,
    ActionResponse,
)
from .audit import AuditEntry, AuditEvent

__all__ = [
    "TableSyncBaseModel",
    "TableSyncRecordModel",
    "FieldSpec",
    "FieldKind",
    "TableSchema",
    "Row",
    "ActionName",
    "AddedRow",
    "PaginationChange",
    "Delta",
    "RowFragment",
    "ConfirmationDialog",
    "ResponsePayload",
    "ActionResponse",
    "AuditEntry",
    "AuditEvent",
]
