"""Renderers turning rows into view fragments.

Fragments are opaque to the engine. The default renderer produces plain
dictionaries so the HTTP layer can return them as JSON.
"""

from typing import Any, Dict, List, Optional, Protocol

from pydantic import Field

from tablesync.core.pagination import page_numbers_text
from tablesync.core.table import DataTable
from tablesync.models import Row, TableSyncBaseModel

DISPLAY_MASK = "****"


class RenderContext(TableSyncBaseModel):
    """What the client is looking at when a fragment is produced."""

    filter: Optional[str] = None
    page: int = Field(default=0, ge=0)
    page_size: int = Field(default=10, gt=0)
    action: Optional[str] = None
    edit_id: Optional[str] = None


class RowRenderer(Protocol):
    """Produces view fragments; must be deterministic for equal inputs."""

    def render_row(self, table: DataTable, row: Row, context: RenderContext) -> Any: ...

    def render_field(self, table: DataTable, row: Row, field_name: str) -> Any: ...

    def render_table(
        self,
        table: DataTable,
        page_rows: List[Row],
        page_count: int,
        context: RenderContext,
    ) -> Any: ...


class DefaultRowRenderer:
    """Renders rows as dictionaries of display values."""

    def render_field(self, table: DataTable, row: Row, field_name: str) -> Any:
        field = table.field(field_name)
        value = row.value(field_name)
        if field.is_sensitive:
            return DISPLAY_MASK if value else ""
        if field.is_boolean:
            return bool(value)
        return value

    def render_row(self, table: DataTable, row: Row, context: RenderContext) -> Dict[str, Any]:
        return {
            "id": row.id,
            "values": {f.name: self.render_field(table, row, f.name) for f in table.fields},
            "movable": table.movable_rows(context.filter),
            "check_all_controls": table.check_all_controls(),
            "actions": [a for a in table.custom_actions if table.custom_action(a, row.id)],
            "page": context.page,
        }

    def render_table(
        self,
        table: DataTable,
        page_rows: List[Row],
        page_count: int,
        context: RenderContext,
    ) -> Dict[str, Any]:
        return {
            "table": table.name,
            "printable_row_name": table.schema.printable_row_name,
            "columns": [f.name for f in table.fields],
            "filter": context.filter,
            "page": context.page,
            "page_size": context.page_size,
            "page_count": page_count,
            "page_numbers_text": page_numbers_text(context.page, page_count),
            "action": context.action,
            "edit_id": context.edit_id,
            "rows": [self.render_row(table, row, context) for row in page_rows],
        }
