"""Audit trail models for tablesync."""

from enum import Enum
from typing import Optional
from pydantic import Field
from .base import TableSyncRecordModel


class AuditEvent(str, Enum):
    """Kinds of audited mutations."""

    ADD = "add"
    SET = "set"
    DELETE = "del"
    MOVE = "move"
    ACTION = "action"


class AuditEntry(TableSyncRecordModel):
    """One field-level or row-level change.

    Values are stored already redacted. ``old_value`` is None for events
    that have no prior value (add, del, action).
    """

    table: str = Field(description="Name of the audited table")
    event: AuditEvent = Field(description="Kind of change")
    composite_id: str = Field(description="parentRowId/rowId/fieldName locator")
    value: str = Field(default="", description="New value")
    old_value: Optional[str] = Field(default=None, description="Previous value")
