"""Visible-id computation for a filter."""

from typing import Any, List, Optional

from tablesync.core.table import DataTable
from tablesync.models import Row


class ViewIndex:
    """Computes the ordered ids matching a filter, ignoring pagination.

    Results are never cached: every call reads the current row store.
    """

    def __init__(self, table: DataTable):
        self.table = table

    def visible_ids(self, raw_filter: Optional[str] = None) -> List[str]:
        """Ordered ids of the rows matching ``raw_filter``.

        Args:
            raw_filter: Client filter string; empty or None matches everything

        Returns:
            List of row ids
        """
        with self.table.store.lock.read_locked():
            if self.table.schema.custom_filter:
                adapted = None
                if raw_filter:
                    adapted = self.table.adapt_row_filter(raw_filter)
                return self.table.custom_filter_ids(adapted)

            rows = [row for row in self.table.store.rows() if self._matches(row, raw_filter)]
            sort_field = self.table.schema.sorted_by
            if sort_field is not None:
                rows.sort(key=lambda row: _sort_key(row.value(sort_field)))
            return [row.id for row in rows]

    def _matches(self, row: Row, raw_filter: Optional[str]) -> bool:
        if not raw_filter:
            return True
        needle = raw_filter.lower()
        for field in self.table.fields:
            if field.is_sensitive:
                continue
            value = row.value(field.name)
            if value is not None and needle in str(value).lower():
                return True
        return False


def _sort_key(value: Any) -> tuple:
    # None, then numbers, then strings
    if value is None:
        return (0, 0, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value, "")
    return (2, 0, str(value).lower())
