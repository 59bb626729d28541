"""Ordered row storage for one table instance."""

import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol, Set, Tuple

from tablesync.core.locks import ReadWriteLock
from tablesync.errors import InUse, InvalidInput, NotFound
from tablesync.models import Row


class DependentsChecker(Protocol):
    """Reports whether other state depends on a row."""

    def has_dependents(self, row_id: str) -> bool: ...


class RowStore:
    """Owns row identity, insertion order and child collections of a table.

    Child stores created through :meth:`child_store` share the root
    store's lock and id registry, so the whole tree is one unit of mutual
    exclusion and ids stay unique across it.
    """

    def __init__(
        self,
        name: str,
        field_names: Optional[Iterable[str]] = None,
        dependents: Optional[DependentsChecker] = None,
        parent: Optional["RowStore"] = None,
        parent_row_id: Optional[str] = None,
    ):
        """Initialize row store.

        Args:
            name: Table name
            field_names: Allowed field names (None accepts any)
            dependents: Checker consulted before non-forced deletes
            parent: Store holding the owning row, for child stores
            parent_row_id: Id of the owning row, for child stores
        """
        self.name = name
        self.field_names = set(field_names) if field_names is not None else None
        self.dependents = dependents
        self.parent = parent
        self.parent_row_id = parent_row_id

        self._rows: Dict[str, Row] = {}
        self._order: List[str] = []
        self._children: Dict[Tuple[str, str], "RowStore"] = {}

        if parent is not None:
            self.lock = parent.lock
            self._issued = parent._issued
        else:
            self.lock = ReadWriteLock()
            self._issued: Set[str] = set()

    # Queries

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, row_id: str) -> bool:
        return row_id in self._rows

    def size(self) -> int:
        return len(self._order)

    def ids(self) -> List[str]:
        """Row ids in insertion order."""
        return list(self._order)

    def rows(self) -> Iterator[Row]:
        for row_id in self._order:
            yield self._rows[row_id]

    def find(self, row_id: Optional[str]) -> Optional[Row]:
        """Return the row or None."""
        if row_id is None:
            return None
        return self._rows.get(row_id)

    def get(self, row_id: Optional[str]) -> Row:
        """Return the row.

        Raises:
            NotFound: If no row has this id
        """
        row = self.find(row_id)
        if row is None:
            raise NotFound(f"Row '{row_id}' not found in table '{self.name}'", data=row_id)
        return row

    def position(self, row_id: str) -> int:
        """Index of the row in insertion order."""
        self.get(row_id)
        return self._order.index(row_id)

    def parent_of(self, row: Row) -> Optional[Row]:
        """Resolve the row's weak parent link; None once the parent is gone."""
        if row.parent_id is None or self.parent is None:
            return None
        return self.parent.find(row.parent_id)

    # Mutations

    def create(self, fields: Dict[str, Any]) -> str:
        """Append a new row and return its id.

        Raises:
            NotFound: If a field name is not in the schema
        """
        self._check_field_names(fields)
        row_id = self._new_id()
        self._rows[row_id] = Row(id=row_id, values=dict(fields), parent_id=self.parent_row_id)
        self._order.append(row_id)
        return row_id

    def update(self, row_id: str, fields: Dict[str, Any]) -> None:
        """Replace the named fields; other fields keep their value.

        Raises:
            NotFound: If the row or a field name does not exist
        """
        row = self.get(row_id)
        self._check_field_names(fields)
        row.values = {**row.values, **fields}
        row.touch()

    def delete(self, row_id: str, force: bool = False) -> None:
        """Remove a row and its child collections.

        Raises:
            NotFound: If the row does not exist
            InUse: If dependents exist and force is not set
        """
        self.get(row_id)
        if not force and self.dependents is not None and self.dependents.has_dependents(row_id):
            raise InUse(
                f"Row '{row_id}' of table '{self.name}' is in use; force the removal to delete it",
                data=row_id,
            )

        del self._rows[row_id]
        self._order.remove(row_id)
        for key in [k for k in self._children if k[0] == row_id]:
            del self._children[key]

    def move(
        self, row_id: str, before_id: Optional[str] = None, after_id: Optional[str] = None
    ) -> Tuple[int, int]:
        """Place a row immediately before ``before_id`` or after ``after_id``.

        When both anchors are given ``before_id`` wins.

        Returns:
            Tuple of (old_position, new_position)

        Raises:
            InvalidInput: If no anchor is given or the row is its own anchor
            NotFound: If the row or the anchor does not exist
        """
        if before_id is None and after_id is None:
            raise InvalidInput("Moving a row requires a row to place it before or after")

        anchor = before_id if before_id is not None else after_id
        if anchor == row_id:
            raise InvalidInput(f"Row '{row_id}' cannot be moved relative to itself")
        self.get(row_id)
        self.get(anchor)

        old_position = self._order.index(row_id)
        self._order.pop(old_position)
        anchor_position = self._order.index(anchor)
        new_position = anchor_position if before_id is not None else anchor_position + 1
        self._order.insert(new_position, row_id)
        return old_position, new_position

    # Child collections

    def child_store(self, row_id: str, collection: str) -> "RowStore":
        """Owned child collection of a row, created on first access."""
        self.get(row_id)
        key = (row_id, collection)
        if key not in self._children:
            self._children[key] = RowStore(
                f"{self.name}/{collection}",
                dependents=self.dependents,
                parent=self,
                parent_row_id=row_id,
            )
        return self._children[key]

    def child_collections(self, row_id: str) -> Dict[str, "RowStore"]:
        return {name: store for (owner, name), store in self._children.items() if owner == row_id}

    def clone_children(
        self, source_id: str, target_id: str, source_store: Optional["RowStore"] = None
    ) -> None:
        """Copy every child collection of ``source_id`` under ``target_id``.

        ``source_store`` holds the source row; it defaults to this store.
        """
        source_store = source_store if source_store is not None else self
        for collection, source in source_store.child_collections(source_id).items():
            target = self.child_store(target_id, collection)
            for child in source.rows():
                new_id = target.create(child.values)
                target.clone_children(child.id, new_id, source_store=source)

    # Transactions

    @contextmanager
    def transaction(self):
        """Restore the store to its prior state if the block raises."""
        snapshot = self._snapshot()
        try:
            yield self
        except BaseException:
            self._restore(snapshot)
            raise

    def _snapshot(self) -> tuple:
        rows = {row_id: row.model_copy(deep=True) for row_id, row in self._rows.items()}
        children = {key: (store, store._snapshot()) for key, store in self._children.items()}
        return rows, list(self._order), children

    def _restore(self, snapshot: tuple) -> None:
        rows, order, children = snapshot
        self._rows = rows
        self._order = order
        self._children = {}
        for key, (store, child_snapshot) in children.items():
            store._restore(child_snapshot)
            self._children[key] = store

    def _new_id(self) -> str:
        row_id = str(uuid.uuid4())
        while row_id in self._issued:
            row_id = str(uuid.uuid4())
        self._issued.add(row_id)
        return row_id

    def _check_field_names(self, fields: Dict[str, Any]) -> None:
        if self.field_names is None:
            return
        unknown = [name for name in fields if name not in self.field_names]
        if unknown:
            raise NotFound(
                f"Unknown field(s) for table '{self.name}': {', '.join(unknown)}",
                data=unknown[0],
            )
