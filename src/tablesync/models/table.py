"""Field and table schema models for tablesync."""

from typing import List, Optional, Literal, Any
from pydantic import Field, model_validator
from .base import TableSyncBaseModel


# Field kinds understood by diffing and redaction
FieldKind = Literal["text", "int", "boolean", "password", "select", "host", "mail"]

BOOLEAN_KIND = "boolean"
PASSWORD_KIND = "password"


class FieldSpec(TableSyncBaseModel):
    """One field of a table's ordered schema."""

    name: str = Field(description="Field name")
    kind: FieldKind = Field(default="text", description="Field kind")
    allows_unsafe_input: bool = Field(
        default=False,
        description="Whether the raw, unescaped parameter value is accepted",
    )
    redact: bool = Field(
        default=False, description="Whether audit records mask this field"
    )
    optional: bool = Field(default=True, description="Whether the field may be empty")
    default: Optional[Any] = Field(default=None, description="Value used on add when absent")

    @property
    def is_boolean(self) -> bool:
        return self.kind == BOOLEAN_KIND

    @property
    def is_sensitive(self) -> bool:
        """Password kind, a field literally named password, or flagged redact."""
        return self.kind == PASSWORD_KIND or self.name == "password" or self.redact


class TableSchema(TableSyncBaseModel):
    """Static description of a table."""

    name: str = Field(description="Stable table name")
    fields: List[FieldSpec] = Field(default_factory=list, description="Ordered field schema")
    page_size: int = Field(default=10, gt=0, description="Rows per page")
    movable_rows: bool = Field(default=False, description="Whether rows can be reordered")
    custom_filter: bool = Field(
        default=False, description="Whether the table produces its own visible ids"
    )
    sorted_by: Optional[str] = Field(
        default=None, description="Field used to order visible rows"
    )
    actions: Optional[List[str]] = Field(
        default=None, description="Enabled built-in actions (None enables all)"
    )
    printable_row_name: str = Field(default="row", description="Human name for one row")

    @model_validator(mode="after")
    def _check_fields(self) -> "TableSchema":
        names = [f.name for f in self.fields]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate field names: {', '.join(sorted(duplicates))}")
        if self.sorted_by is not None and self.sorted_by not in names:
            raise ValueError(f"sorted_by field '{self.sorted_by}' is not in the schema")
        if self.sorted_by is not None and self.movable_rows:
            raise ValueError("A sorted table cannot have movable rows")
        if self.actions is not None:
            # Imported here to keep models free of manager imports at module load
            from tablesync.models.delta import ActionName

            known = {a.value for a in ActionName}
            unknown = [a for a in self.actions if a not in known]
            if unknown:
                raise ValueError(f"Unknown actions: {', '.join(unknown)}")
        return self

    def field(self, name: str) -> Optional[FieldSpec]:
        """Return the field spec with the given name, if any."""
        for field in self.fields:
            if field.name == name:
                return field
        return None

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]
