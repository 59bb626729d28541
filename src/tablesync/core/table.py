"""Runtime table: schema, rows, hooks and custom actions."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from tablesync.core.row_store import DependentsChecker, RowStore
from tablesync.errors import Internal, InvalidInput, NotFound
from tablesync.models import ActionName, ConfirmationDialog, FieldSpec, TableSchema

logger = logging.getLogger(__name__)

ConfirmationResult = Union[None, str, Dict[str, str]]


@dataclass
class CustomAction:
    """A table-specific action run against an optional target row.

    Attributes:
        name: Action name used by clients
        handler: Called as ``handler(row_id, params)``
        confirmation: Optional callable returning the confirmation message
            (or a dict with ``message`` and ``title``) for given params
        applies_to: Optional predicate restricting the rows it targets
    """

    name: str
    handler: Callable[[Optional[str], Dict[str, Any]], Any]
    confirmation: Optional[Callable[[Dict[str, Any]], ConfirmationResult]] = None
    applies_to: Optional[Callable[[Optional[str]], bool]] = None


class DataTable:
    """A table instance the engine mutates and renders."""

    def __init__(
        self,
        schema: TableSchema,
        dependents: Optional[DependentsChecker] = None,
        adapt_filter: Optional[Callable[[str], Any]] = None,
        custom_filter_ids: Optional[Callable[[Any], List[str]]] = None,
        store: Optional[RowStore] = None,
    ):
        """Initialize table.

        Args:
            schema: Static table description
            dependents: Checker consulted before non-forced deletes
            adapt_filter: Turns the raw client filter into what
                ``custom_filter_ids`` expects
            custom_filter_ids: Visible-id producer for custom-filter tables
            store: Existing store to use, e.g. a child collection of another table

        Raises:
            InvalidInput: If a custom-filter table has no id producer
        """
        if schema.custom_filter and custom_filter_ids is None:
            raise InvalidInput(
                f"Table '{schema.name}' uses a custom filter but defines no id producer"
            )
        self.schema = schema
        if store is None:
            store = RowStore(schema.name, field_names=schema.field_names, dependents=dependents)
        else:
            store.field_names = set(schema.field_names)
        self.store = store
        self._adapt_filter = adapt_filter
        self._custom_filter_ids = custom_filter_ids
        self._page_size = schema.page_size
        self._actions: Dict[str, CustomAction] = {}
        self._message: str = ""
        self._message_class: str = "note"
        self._redirect: Optional[str] = None
        self.directory: Optional[str] = None

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def fields(self) -> List[FieldSpec]:
        return self.schema.fields

    def field(self, name: str) -> FieldSpec:
        """Return the schema field.

        Raises:
            NotFound: If the table has no such field
        """
        spec = self.schema.field(name)
        if spec is None:
            raise NotFound(f"Field '{name}' not found in table '{self.name}'", data=name)
        return spec

    # Pagination

    @property
    def page_size(self) -> int:
        return self._page_size

    def set_page_size(self, page_size: int) -> None:
        if not isinstance(page_size, int) or page_size <= 0:
            raise InvalidInput(f"Page size must be a positive integer, got {page_size!r}", data="pageSize")
        self._page_size = page_size

    # Filtering

    def adapt_row_filter(self, raw_filter: str) -> Any:
        if self._adapt_filter is None:
            return raw_filter
        return self._adapt_filter(raw_filter)

    def custom_filter_ids(self, adapted_filter: Any) -> List[str]:
        if self._custom_filter_ids is None:
            raise Internal(f"Table '{self.name}' has no custom filter")
        return list(self._custom_filter_ids(adapted_filter))

    def movable_rows(self, raw_filter: Optional[str] = None) -> bool:
        """Rows can be dragged only in an unfiltered, movable table."""
        return self.schema.movable_rows and not raw_filter

    def check_all_controls(self) -> List[str]:
        """Boolean fields offering a check-all control."""
        return [f.name for f in self.fields if f.is_boolean]

    # Actions

    def action_enabled(self, action: ActionName) -> bool:
        return self.schema.actions is None or action.value in self.schema.actions

    def register_action(self, action: CustomAction) -> None:
        """Add a custom action.

        Raises:
            InvalidInput: If the name is empty, duplicated or shadows a built-in action
        """
        if not action.name:
            raise InvalidInput("Custom action name cannot be empty")
        if action.name in {a.value for a in ActionName}:
            raise InvalidInput(
                f"Custom action '{action.name}' collides with a built-in action", data=action.name
            )
        if action.name in self._actions:
            raise InvalidInput(
                f"Custom action '{action.name}' already registered for table '{self.name}'",
                data=action.name,
            )
        self._actions[action.name] = action
        logger.info(f"Registered custom action '{action.name}' on table '{self.name}'")

    def custom_action(self, name: str, row_id: Optional[str] = None) -> Optional[CustomAction]:
        """Custom action with this name that applies to ``row_id``, if any."""
        action = self._actions.get(name)
        if action is None:
            return None
        if action.applies_to is not None and not action.applies_to(row_id):
            return None
        return action

    @property
    def custom_actions(self) -> List[str]:
        return list(self._actions)

    def confirmation_dialog(self, action_name: str, params: Dict[str, Any]) -> ConfirmationDialog:
        """Confirmation the client must show before running an action."""
        action = self._actions.get(action_name)
        if action is None or action.confirmation is None:
            return ConfirmationDialog()
        result = action.confirmation(params)
        if isinstance(result, dict):
            message = result.get("message")
            title = result.get("title") or ""
        else:
            message, title = result, ""
        return ConfirmationDialog(want_dialog=bool(message), message=message, title=title)

    # Messages and redirection

    def set_message(self, message: str, message_class: str = "note") -> None:
        self._message = message
        self._message_class = message_class

    def pop_message(self) -> str:
        message, self._message = self._message, ""
        return message

    @property
    def message_class(self) -> str:
        return self._message_class

    def set_redirect(self, url: str) -> None:
        self._redirect = url

    def pop_redirect(self) -> Optional[str]:
        url, self._redirect = self._redirect, None
        return url

    def submodel(self, row_id: str, schema: TableSchema, **hooks: Any) -> "DataTable":
        """Table over the child collection ``schema.name`` owned by a row.

        Raises:
            NotFound: If the owning row does not exist
        """
        store = self.store.child_store(row_id, schema.name)
        return DataTable(schema, store=store, **hooks)
