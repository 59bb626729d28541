"""Core table synchronization components."""

from tablesync.core.row_store import RowStore, DependentsChecker
from tablesync.core.view_index import ViewIndex
from tablesync.core.table import DataTable, CustomAction

__all__ = ["RowStore", "DependentsChecker", "ViewIndex", "DataTable", "CustomAction"]
