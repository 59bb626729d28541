"""Action dispatcher - maps action names to handlers and packages responses."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tablesync.audit.recorder import AuditRecorder, is_truthy
from tablesync.core.pagination import page_count, page_ids
from tablesync.core.table import DataTable
from tablesync.errors import Internal, InvalidInput, TableSyncError, UnsupportedAction
from tablesync.managers.mutation import MutationEngine
from tablesync.models import (
    ActionName,
    ActionResponse,
    Delta,
    ResponsePayload,
    RowFragment,
)
from tablesync.rendering import DefaultRowRenderer, RenderContext, RowRenderer

logger = logging.getLogger(__name__)

# Characters refused in fields that do not allow unsafe input
UNSAFE_CHARACTERS = set("<>\"'`")


class ActionParams(BaseModel):
    """Parameters common to every action, parsed from the raw request.

    Unknown parameters are kept as extras for custom action handlers.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = None
    filter: Optional[str] = None
    page: int = Field(default=0, ge=0)
    page_size: Optional[int] = Field(default=None, gt=0, alias="pageSize")
    force: bool = False
    edit_field: Optional[str] = Field(default=None, alias="editfield")
    edit_id: Optional[str] = Field(default=None, alias="editid")
    field: Optional[str] = None
    value: Optional[str] = None
    prev_id: Optional[str] = Field(default=None, alias="prevId")
    next_id: Optional[str] = Field(default=None, alias="nextId")
    clone_id: Optional[str] = Field(default=None, alias="cloneId")
    action_to_confirm: Optional[str] = Field(default=None, alias="actionToConfirm")
    directory: Optional[str] = None


def parse_params(table: DataTable, raw: Mapping[str, Optional[str]]) -> Tuple[ActionParams, Dict[str, Any]]:
    """Split raw request parameters into action params and field values.

    Returns:
        Tuple of (action params, schema field values present in the request)

    Raises:
        InvalidInput: If page, pageSize or a field value is malformed
    """
    cleaned = {k: v for k, v in raw.items() if v is not None and v != ""}
    if "force" in cleaned:
        cleaned["force"] = is_truthy(cleaned["force"])
    try:
        params = ActionParams.model_validate(cleaned)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise InvalidInput(f"Invalid parameter '{location}': {first['msg']}", data=location)

    fields: Dict[str, Any] = {}
    for spec in table.fields:
        if spec.name not in raw:
            continue
        value = raw[spec.name]
        if (
            isinstance(value, str)
            and not spec.allows_unsafe_input
            and UNSAFE_CHARACTERS.intersection(value)
        ):
            raise InvalidInput(
                f"Field '{spec.name}' contains characters that are not allowed", data=spec.name
            )
        fields[spec.name] = value
    return params, fields


@dataclass
class _Outcome:
    delta: Delta
    structured: bool = True
    row_id: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)


Handler = Callable[[ActionParams, Dict[str, Any]], _Outcome]

_MUTATING = {
    ActionName.ADD,
    ActionName.DELETE,
    ActionName.EDIT,
    ActionName.EDIT_BOOLEAN,
    ActionName.SET_POSITION,
    ActionName.CHECK_ALL,
    ActionName.CHECKBOX_UNSET_ALL,
}


class Dispatcher:
    """Resolves an action for a table, runs it, and builds the response."""

    def __init__(
        self,
        table: DataTable,
        recorder: AuditRecorder,
        renderer: Optional[RowRenderer] = None,
    ):
        """Initialize dispatcher.

        Args:
            table: Table the actions apply to
            recorder: Audit recorder for the mutation engine
            renderer: Fragment producer (defaults to DefaultRowRenderer)

        Raises:
            Internal: If a built-in action has no handler
        """
        self.table = table
        self.engine = MutationEngine(table, recorder)
        self.renderer = renderer or DefaultRowRenderer()
        self._handlers: Dict[ActionName, Handler] = {
            ActionName.ADD: self._add,
            ActionName.DELETE: self._delete,
            ActionName.EDIT: self._edit,
            ActionName.EDIT_BOOLEAN: self._edit_boolean,
            ActionName.SET_POSITION: self._set_position,
            ActionName.CLONE: self._clone,
            ActionName.CHECK_ALL: self._check_all,
            ActionName.CHECK_ALL_CONTROL_VALUE: self._check_all_control_value,
            ActionName.CHECKBOX_UNSET_ALL: self._checkbox_unset_all,
            ActionName.VIEW: self._refresh,
            ActionName.CHANGE_LIST: self._refresh,
            ActionName.REFRESH: self._refresh,
            ActionName.CONFIRMATION_DIALOG: self._confirmation_dialog,
        }
        missing = [a.value for a in ActionName if a not in self._handlers]
        if missing:
            raise Internal(f"No handler for built-in actions: {', '.join(missing)}")

    # Resolution

    def resolve(self, action_name: str, row_id: Optional[str] = None) -> Handler:
        """Handler for an action name.

        Built-in actions win over custom actions of the table.

        Raises:
            UnsupportedAction: If nothing handles the action
        """
        try:
            builtin = ActionName(action_name)
        except ValueError:
            builtin = None

        if builtin is not None and self.table.action_enabled(builtin):
            return self._handlers[builtin]

        if self.table.custom_action(action_name, row_id) is not None:
            def run_custom(params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
                return self._custom(action_name, params, fields)
            return run_custom

        raise UnsupportedAction(
            f"Action '{action_name}' not supported by table '{self.table.name}'", data=action_name
        )

    def dispatch(self, action_name: str, raw_params: Mapping[str, Optional[str]]) -> Delta:
        """Run an action and return the delta it produced."""
        return self._run(action_name, raw_params).delta

    def _run(self, action_name: str, raw_params: Mapping[str, Optional[str]]) -> _Outcome:
        params, fields = parse_params(self.table, raw_params)
        handler = self.resolve(action_name, params.id)
        outcome = handler(params, fields)

        # Client view settings are kept only once the action succeeded
        if params.directory or params.page_size is not None:
            with self.table.store.lock.write_locked():
                if params.directory:
                    self.table.directory = params.directory
                if params.page_size is not None:
                    self.table.set_page_size(params.page_size)
        return outcome

    def _page_size(self, params: ActionParams) -> int:
        return params.page_size or self.table.page_size

    def execute_action(
        self, action_name: str, raw_params: Mapping[str, Optional[str]]
    ) -> ActionResponse:
        """Run an action and package the result for the transport layer.

        Typed errors of structured actions become ``success=False``
        payloads; errors of full-page actions propagate.

        Raises:
            UnsupportedAction: If nothing handles the action
        """
        try:
            builtin: Optional[ActionName] = ActionName(action_name)
        except ValueError:
            builtin = None
        structured = builtin is not None and builtin not in (
            ActionName.VIEW,
            ActionName.CHANGE_LIST,
            ActionName.REFRESH,
            ActionName.CLONE,
            ActionName.CHECKBOX_UNSET_ALL,
        )
        # A page size or directory change is written to the table
        changes_view = bool(raw_params.get("pageSize") or raw_params.get("directory"))
        lock = (
            self.table.store.lock.write_locked()
            if builtin is None or builtin in _MUTATING or changes_view
            else self.table.store.lock.read_locked()
        )

        with lock:
            try:
                outcome = self._run(action_name, raw_params)
            except UnsupportedAction:
                raise
            except TableSyncError as e:
                if not structured:
                    raise
                logger.debug(f"Action '{action_name}' on table '{self.table.name}' failed: {e}")
                self.table.set_message("")
                return ActionResponse(
                    json=ResponsePayload(success=False, message=e.message, error=e.kind)
                )

            if outcome.structured:
                response = ActionResponse(json=self._payload(outcome, raw_params))
                # Structured responses must not carry messages into later page renders
                self.table.set_message("")
                return response

            return self._page_response(outcome, raw_params)

    # Packaging

    def _context(self, raw_params: Mapping[str, Optional[str]], page: Optional[int] = None) -> RenderContext:
        params, _ = parse_params(self.table, raw_params)
        return RenderContext(
            filter=params.filter,
            page=params.page if page is None else page,
            page_size=self.table.page_size,
            action=None,
            edit_id=params.edit_id,
        )

    def render_page(self, context: RenderContext) -> Any:
        """Full table fragment for one page."""
        ids = self.engine.view.visible_ids(context.filter)
        rows = [self.table.store.get(i) for i in page_ids(ids, context.page_size, context.page)]
        n_pages = page_count(len(ids), context.page_size)
        return self.renderer.render_table(self.table, rows, n_pages, context)

    def _payload(self, outcome: _Outcome, raw_params: Mapping[str, Optional[str]]) -> ResponsePayload:
        delta = outcome.delta
        context = self._context(raw_params)
        payload = ResponsePayload(
            success=True,
            message_class=self.table.message_class,
            message=self.table.pop_message() or None,
            **outcome.extras,
        )

        if delta.removed:
            payload.removed = list(delta.removed)

        if delta.reload:
            reload_context = context.model_copy(
                update={"page": delta.reload_page if delta.reload_page is not None else context.page}
            )
            payload.reload = self.render_page(reload_context)
            payload.highlight_row_after_reload = delta.highlight_row
            return payload

        if delta.added:
            fragments: List[RowFragment] = []
            for added in delta.added:
                row = self.table.store.get(added.id)
                fragments.append(
                    RowFragment(
                        position=added.position,
                        row=self.renderer.render_row(self.table, row, context),
                    )
                )
            payload.added = fragments
        if delta.changed_in_place:
            payload.changed = {
                row_id: self.renderer.render_row(self.table, self.table.store.get(row_id), context)
                for row_id in delta.changed_in_place
            }
        if delta.edited_field is not None and outcome.row_id is not None:
            row = self.table.store.get(outcome.row_id)
            payload.edited_value = self.renderer.render_field(self.table, row, delta.edited_field)
        if delta.pagination_change is not None:
            payload.pagination_changes = delta.pagination_change
        return payload

    def _page_response(self, outcome: _Outcome, raw_params: Mapping[str, Optional[str]]) -> ActionResponse:
        delta = outcome.delta
        context = self._context(raw_params, page=delta.reload_page)
        context.action = outcome.extras.get("action")
        if outcome.extras.get("edit_id"):
            context.edit_id = outcome.extras["edit_id"]
        redirect = delta.redirect or self.table.pop_redirect()
        return ActionResponse(
            page=self.render_page(context),
            redirect=redirect,
            message=self.table.pop_message() or None,
        )

    # Built-in handlers

    def _require_id(self, params: ActionParams) -> str:
        if not params.id:
            raise InvalidInput("Parameter 'id' is required", data="id")
        return params.id

    def _add(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        row_id, delta = self.engine.add(
            fields,
            raw_filter=params.filter,
            page=params.page,
            page_size=self._page_size(params),
            clone_id=params.clone_id,
        )
        return _Outcome(delta, row_id=row_id)

    def _delete(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        row_id = self._require_id(params)
        delta = self.engine.remove(
            row_id,
            force=params.force,
            raw_filter=params.filter,
            page=params.page,
            page_size=self._page_size(params),
        )
        return _Outcome(delta, row_id=row_id)

    def _edit(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        row_id = self._require_id(params)
        delta = self.engine.edit(row_id, fields, in_place_field=params.edit_field)
        return _Outcome(delta, row_id=row_id)

    def _edit_boolean(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        row_id = self._require_id(params)
        if not params.field:
            raise InvalidInput("Parameter 'field' is required", data="field")
        delta = self.engine.edit_boolean(row_id, params.field, params.value)
        self.table.pop_message()
        return _Outcome(delta, row_id=row_id)

    def _set_position(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        row_id = self._require_id(params)
        self.engine.move(row_id, prev_id=params.prev_id, next_id=params.next_id)
        return _Outcome(Delta(), row_id=row_id)

    def _clone(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        row_id = self._require_id(params)
        self.table.store.get(row_id)
        return _Outcome(Delta(), structured=False, extras={"action": "clone", "edit_id": row_id})

    def _check_all(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        field_name = params.edit_id
        if not field_name:
            raise InvalidInput("Parameter 'editid' is required", data="editid")
        value = self.engine.set_all(field_name, fields.get(field_name))
        return _Outcome(Delta(), extras={"check_all_value": value})

    def _checkbox_unset_all(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        field_name = params.edit_id
        if not field_name:
            raise InvalidInput("Parameter 'editid' is required", data="editid")
        self.engine.set_all(field_name, False)
        return _Outcome(Delta(), structured=False)

    def _check_all_control_value(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        if not params.field:
            raise InvalidInput("Parameter 'field' is required", data="field")
        value = self.engine.check_all_value(params.field)
        return _Outcome(Delta(), extras={"check_all_value": value})

    def _refresh(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        return _Outcome(Delta(), structured=False)

    def _confirmation_dialog(self, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        if not params.action_to_confirm:
            raise InvalidInput("Parameter 'actionToConfirm' is required", data="actionToConfirm")
        dialog = self.table.confirmation_dialog(params.action_to_confirm, fields)
        return _Outcome(Delta(), extras={"dialog": dialog})

    def _custom(self, action_name: str, params: ActionParams, fields: Dict[str, Any]) -> _Outcome:
        handler_params = {**params.model_dump(by_alias=True, exclude_none=True), **fields}
        delta = self.engine.custom_action(action_name, params.id, handler_params)
        return _Outcome(delta, structured=False, row_id=params.id)
