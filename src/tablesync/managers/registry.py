"""Process-wide registry of tables and their dispatchers."""

import logging
import threading
from typing import Dict, List, Optional

from tablesync.audit import AuditRecorder, MemoryAuditSink
from tablesync.core.table import DataTable
from tablesync.errors import InvalidInput, NotFound
from tablesync.managers.dispatcher import Dispatcher
from tablesync.rendering import RowRenderer

logger = logging.getLogger(__name__)


class TableRegistry:
    """Tables served by one process, sharing a single audit recorder."""

    def __init__(self, recorder: Optional[AuditRecorder] = None, renderer: Optional[RowRenderer] = None):
        self.recorder = recorder or AuditRecorder(MemoryAuditSink())
        self.renderer = renderer
        self._tables: Dict[str, DataTable] = {}
        self._dispatchers: Dict[str, Dispatcher] = {}
        self._lock = threading.Lock()

    def register(self, table: DataTable) -> Dispatcher:
        """Add a table and return its dispatcher.

        Raises:
            InvalidInput: If a table with the same name is registered
        """
        with self._lock:
            if table.name in self._tables:
                raise InvalidInput(f"Table '{table.name}' already registered", data=table.name)
            dispatcher = Dispatcher(table, self.recorder, self.renderer)
            self._tables[table.name] = table
            self._dispatchers[table.name] = dispatcher
        logger.info(f"Registered table '{table.name}'")
        return dispatcher

    def unregister(self, name: str) -> None:
        with self._lock:
            self.get(name)
            del self._tables[name]
            del self._dispatchers[name]

    def get(self, name: str) -> DataTable:
        """Return the table.

        Raises:
            NotFound: If no table has this name
        """
        table = self._tables.get(name)
        if table is None:
            raise NotFound(f"Table '{name}' not found", data=name)
        return table

    def dispatcher(self, name: str) -> Dispatcher:
        self.get(name)
        return self._dispatchers[name]

    def names(self) -> List[str]:
        return sorted(self._tables)

    def clear(self) -> None:
        with self._lock:
            self._tables.clear()
            self._dispatchers.clear()


_registry: Optional[TableRegistry] = None


def get_registry() -> TableRegistry:
    """Registry used by the HTTP app."""
    global _registry
    if _registry is None:
        _registry = TableRegistry()
    return _registry


def set_registry(registry: Optional[TableRegistry]) -> None:
    """Replace the registry used by the HTTP app; None resets it."""
    global _registry
    _registry = registry
