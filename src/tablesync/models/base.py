"""Base models for tablesync."""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TableSyncBaseModel(BaseModel):
    """Strict base for schemas, payloads and settings.

    Unknown keys are rejected and enum members are stored as their values.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        extra="forbid",
    )


class TableSyncRecordModel(TableSyncBaseModel):
    """Something stored once and referenced by id afterwards.

    Row stores pass their own ids; audit entries take a generated uuid.
    Timestamps are emitted as ISO 8601 strings.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=utcnow)

    @field_serializer("created_at")
    def _iso_created(self, value: datetime, _info: Any) -> str:
        return value.isoformat()
