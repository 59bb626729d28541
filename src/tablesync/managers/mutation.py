"""Mutation engine - executes row operations and computes view deltas."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from tablesync.audit.recorder import AuditRecorder, PendingEntry, is_truthy
from tablesync.core.pagination import (
    check_view,
    page_count,
    page_numbers_text,
    pagination_delta,
    printed_range,
    page_of,
)
from tablesync.core.table import DataTable
from tablesync.core.view_index import ViewIndex
from tablesync.errors import InvalidInput, UnsupportedAction
from tablesync.models import AddedRow, AuditEvent, Delta, FieldSpec, PaginationChange

logger = logging.getLogger(__name__)


class MutationEngine:
    """Runs add/remove/edit/move/custom actions against one table.

    Every operation holds the table's write lock and runs inside a row
    store transaction. Audit entries are collected while the operation
    runs and handed to the recorder before the transaction closes, so a
    failure anywhere leaves neither row changes nor audit entries behind.
    """

    def __init__(self, table: DataTable, recorder: AuditRecorder):
        """Initialize mutation engine.

        Args:
            table: Table to mutate
            recorder: Audit recorder receiving one entry per change
        """
        self.table = table
        self.store = table.store
        self.view = ViewIndex(table)
        self.recorder = recorder

    @contextmanager
    def _mutation(self) -> Iterator[List[PendingEntry]]:
        pending: List[PendingEntry] = []
        with self.store.lock.write_locked(), self.store.transaction():
            yield pending
            self.recorder.flush(self.table.name, pending)

    def audit_id(self, row_id: str) -> str:
        """Row locator for audit entries, prefixed by the parent row id when nested."""
        row = self.store.find(row_id)
        if row is not None:
            parent = self.store.parent_of(row)
            if parent is not None:
                return f"{parent.id}/{row_id}"
        return row_id

    def _page_size(self, page_size: Optional[int]) -> int:
        return page_size if page_size is not None else self.table.page_size

    # Field values

    def coerce(self, field: FieldSpec, value: Any) -> Any:
        """Convert a submitted value to the field's stored form.

        Raises:
            InvalidInput: If the value does not fit the field kind
        """
        if field.is_boolean:
            return is_truthy(value)
        if value is None or value == "":
            return value
        if field.kind == "int":
            try:
                return int(value)
            except (TypeError, ValueError):
                raise InvalidInput(
                    f"Field '{field.name}' expects an integer, got {value!r}", data=field.name
                )
        return value

    def _values_for_add(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for field in self.table.fields:
            raw = fields.get(field.name)
            if raw is None and not field.is_boolean:
                raw = field.default
            value = self.coerce(field, raw)
            if not field.optional and (value is None or value == ""):
                raise InvalidInput(f"Field '{field.name}' is required", data=field.name)
            values[field.name] = value
        return values

    # Add

    def add(
        self,
        fields: Dict[str, Any],
        raw_filter: Optional[str] = None,
        page: int = 0,
        page_size: Optional[int] = None,
        clone_id: Optional[str] = None,
    ) -> Tuple[str, Delta]:
        """Create a row and compute how the current page changes.

        Args:
            fields: Submitted field values
            raw_filter: Filter active in the client view
            page: Page the client is showing
            page_size: Rows per page (defaults to the table's)
            clone_id: Row whose child collections are copied to the new row

        Returns:
            Tuple of (new row id, delta)
        """
        page_size = self._page_size(page_size)
        check_view(page_size, page)
        values = self._values_for_add(fields)

        with self._mutation() as pending:
            before_ids = self.view.visible_ids(raw_filter)
            row_id = self.store.create(values)
            if clone_id:
                self.store.get(clone_id)
                self.store.clone_children(clone_id, row_id)

            audit_id = self.audit_id(row_id)
            for field in self.table.fields:
                submitted = fields.get(field.name)
                if submitted is None and not field.is_boolean:
                    continue
                pending.append(
                    PendingEntry(AuditEvent.ADD, f"{audit_id}/{field.name}", submitted, field=field)
                )

            after_ids = self.view.visible_ids(raw_filter)
            delta = self._add_delta(row_id, before_ids, after_ids, page, page_size)

        return row_id, delta

    def _add_delta(
        self,
        row_id: str,
        before_ids: List[str],
        after_ids: List[str],
        page: int,
        page_size: int,
    ) -> Delta:
        if self.store.size() == 1 or after_ids == [row_id]:
            # First row: no anchor exists in the client view
            return Delta.full_reload(highlight_row=row_id)

        try:
            position = after_ids.index(row_id)
        except ValueError:
            logger.warning(f"Cannot find table position for new row {row_id}")
            return Delta()

        begin, end = printed_range(len(after_ids), page_size, page)
        if position < begin or position > end:
            new_page = page_of(position, page_size)
            logger.debug(f"New row {row_id} at {position} is off page {page}, reloading page {new_page}")
            return Delta.full_reload(page=new_page, highlight_row=row_id)

        anchor = "prepend" if position == 0 else after_ids[position - 1]
        delta = Delta(added=[AddedRow(position=anchor, id=row_id)])

        n_pages = page_count(len(after_ids), page_size)
        if page + 1 != n_pages:
            # Page was full: the row pushed past its end leaves the view
            begin_before, end_before = printed_range(len(before_ids), page_size, page)
            if end_before >= begin_before:
                delta.removed.append(before_ids[end_before])

        delta.pagination_change = pagination_delta(
            page_count(len(before_ids), page_size), after_ids, page_size, page
        )
        logger.debug(
            f"Added {row_id} at {position} after {anchor}; removed {delta.removed}; "
            f"pages {n_pages}"
        )
        return delta

    # Remove

    def remove(
        self,
        row_id: str,
        force: bool = False,
        raw_filter: Optional[str] = None,
        page: int = 0,
        page_size: Optional[int] = None,
    ) -> Delta:
        """Delete a row and compute how the current page changes.

        Raises:
            NotFound: If the row does not exist
            InUse: If the row has dependents and force is not set
        """
        page_size = self._page_size(page_size)
        check_view(page_size, page)

        with self._mutation() as pending:
            # Parent linkage is gone once the row is deleted
            audit_id = self.audit_id(row_id)
            before_ids = self.view.visible_ids(raw_filter)

            self.store.delete(row_id, force=force)
            pending.append(PendingEntry(AuditEvent.DELETE, audit_id))

            ids = self.view.visible_ids(raw_filter)
            return self._remove_delta(row_id, before_ids, ids, page, page_size)

    def _remove_delta(
        self,
        row_id: str,
        before_ids: List[str],
        ids: List[str],
        page: int,
        page_size: int,
    ) -> Delta:
        if not ids:
            return Delta.full_reload(removed=[row_id])
        if row_id not in before_ids:
            # The client never showed it, so its pages are unchanged
            return Delta(removed=[row_id])

        n_pages = page_count(len(ids), page_size)
        n_pages_before = page_count(len(before_ids), page_size)
        page_changed = n_pages != n_pages_before

        if page_changed and page >= n_pages:
            # The page the client shows no longer exists
            return Delta.full_reload(page=max(page - 1, 0), removed=[row_id])

        delta = Delta(removed=[row_id])
        if page_changed:
            delta.pagination_change = PaginationChange(
                page=page,
                page_count=n_pages,
                page_numbers_text=page_numbers_text(page, n_pages),
            )

        if page + 1 < n_pages_before:
            # Pull up the first row of the next page into the vacated slot
            position_to_add = (page_size - 1) + page * page_size
            if position_to_add < len(ids):
                delta.added.append(AddedRow(position="append", id=ids[position_to_add]))
                logger.debug(f"Replacing removed {row_id} with {ids[position_to_add]}")

        return delta

    # Edit

    def edit(
        self,
        row_id: str,
        fields: Dict[str, Any],
        in_place_field: Optional[str] = None,
    ) -> Delta:
        """Set field values of a row.

        With ``in_place_field`` only that field is considered; otherwise
        every schema field is, and absent boolean fields count as false.

        Raises:
            NotFound: If the row or the in-place field does not exist
            InvalidInput: If a value does not fit its field
        """
        if in_place_field is not None:
            candidates = [self.table.field(in_place_field)]
        else:
            candidates = self.table.fields

        with self._mutation() as pending:
            row = self.store.get(row_id)
            audit_id = self.audit_id(row_id)

            changes: Dict[str, Any] = {}
            for field in candidates:
                if field.name not in fields and not field.is_boolean:
                    continue
                new_value = self.coerce(field, fields.get(field.name))
                old_value = row.value(field.name)
                if new_value == old_value:
                    continue
                if not field.optional and (new_value is None or new_value == ""):
                    raise InvalidInput(f"Field '{field.name}' is required", data=field.name)
                changes[field.name] = new_value
                pending.append(
                    PendingEntry(
                        AuditEvent.SET,
                        f"{audit_id}/{field.name}",
                        new_value,
                        old_value,
                        field=field,
                    )
                )

            if changes:
                self.store.update(row_id, changes)

        if in_place_field is not None:
            return Delta(edited_field=in_place_field, edited_value=self.store.get(row_id).value(in_place_field))
        return Delta(changed_in_place=[row_id])

    def edit_boolean(self, row_id: str, field_name: str, value: Any) -> Delta:
        """Toggle one boolean field of a row in place.

        Raises:
            InvalidInput: If the field is not boolean
        """
        field = self.table.field(field_name)
        if not field.is_boolean:
            raise InvalidInput(f"Field '{field_name}' is not a boolean field", data=field_name)
        return self.edit(row_id, {field_name: value}, in_place_field=field_name)

    def set_all(self, field_name: str, value: Any) -> bool:
        """Set a boolean field on every row of the table.

        Returns:
            The value that was set
        """
        field = self.table.field(field_name)
        if not field.is_boolean:
            raise InvalidInput(f"Field '{field_name}' is not a boolean field", data=field_name)
        new_value = is_truthy(value)

        with self._mutation() as pending:
            for row in list(self.store.rows()):
                old_value = row.value(field_name)
                if old_value == new_value:
                    continue
                self.store.update(row.id, {field_name: new_value})
                pending.append(
                    PendingEntry(
                        AuditEvent.SET,
                        f"{self.audit_id(row.id)}/{field_name}",
                        new_value,
                        old_value,
                        field=field,
                    )
                )
        return new_value

    def check_all_value(self, field_name: str) -> bool:
        """Whether every row has the boolean field set."""
        self.table.field(field_name)
        with self.store.lock.read_locked():
            rows = list(self.store.rows())
            return bool(rows) and all(is_truthy(row.value(field_name)) for row in rows)

    # Move

    def move(
        self, row_id: str, prev_id: Optional[str] = None, next_id: Optional[str] = None
    ) -> Tuple[int, int]:
        """Reorder a row between ``prev_id`` and ``next_id``.

        The client keeps its own order, so no delta is produced.

        Returns:
            Tuple of (old_position, new_position)

        Raises:
            InvalidInput: If the table rows are not movable
        """
        if not self.table.schema.movable_rows:
            raise InvalidInput(f"Rows of table '{self.table.name}' cannot be moved")

        with self._mutation() as pending:
            old_position, new_position = self.store.move(row_id, before_id=next_id, after_id=prev_id)
            pending.append(
                PendingEntry(AuditEvent.MOVE, self.audit_id(row_id), new_position, old_position)
            )
        return old_position, new_position

    # Custom actions

    def custom_action(self, name: str, row_id: Optional[str], params: Dict[str, Any]) -> Delta:
        """Run a registered custom action.

        Raises:
            UnsupportedAction: If no custom action with this name applies
            NotFound: If the target row does not exist
        """
        action = self.table.custom_action(name, row_id)
        if action is None:
            raise UnsupportedAction(f"Action '{name}' not supported by table '{self.table.name}'")

        with self._mutation() as pending:
            if row_id:
                self.store.get(row_id)
            action.handler(row_id, params)
            pending.append(
                PendingEntry(
                    AuditEvent.ACTION, self.audit_id(row_id) if row_id else self.table.name, name
                )
            )

        redirect = self.table.pop_redirect()
        return Delta.full_reload(redirect=redirect)
