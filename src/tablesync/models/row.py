"""Row model for tablesync."""

from datetime import datetime
from typing import Dict, Any, Optional
from pydantic import Field, field_serializer
from .base import TableSyncRecordModel, utcnow


class Row(TableSyncRecordModel):
    """A row of a table.

    The parent link is a weak reference by id: the parent row may be
    removed while this row object is still held by a caller.
    """

    values: Dict[str, Any] = Field(default_factory=dict, description="Field values")
    parent_id: Optional[str] = Field(
        default=None, description="Id of the owning parent row, if nested"
    )
    updated_at: Optional[datetime] = Field(default=None, description="Time of the last edit")

    def value(self, name: str, default: Any = None) -> Any:
        """Return the value of a field."""
        return self.values.get(name, default)

    def touch(self) -> None:
        self.updated_at = utcnow()

    @field_serializer("updated_at")
    def _iso_updated(self, value: Optional[datetime], _info: Any) -> Optional[str]:
        return value.isoformat() if value else None
