"""Delta and response envelope models for tablesync."""

from enum import Enum
from typing import Dict, List, Any, Optional
from pydantic import Field
from .base import TableSyncBaseModel
from tablesync.errors import ErrorKind


class ActionName(str, Enum):
    """Built-in actions understood by the dispatcher."""

    ADD = "add"
    DELETE = "del"
    EDIT = "edit"
    EDIT_BOOLEAN = "editBoolean"
    SET_POSITION = "setPosition"
    CLONE = "clone"
    CHECK_ALL = "checkAll"
    CHECK_ALL_CONTROL_VALUE = "checkAllControlValue"
    CHECKBOX_UNSET_ALL = "checkboxUnsetAll"
    VIEW = "view"
    CHANGE_LIST = "changeList"
    REFRESH = "refresh"
    CONFIRMATION_DIALOG = "confirmationDialog"


class AddedRow(TableSyncBaseModel):
    """A row to splice into the client view.

    ``position`` is ``"prepend"``, ``"append"`` or the id of the row the new
    one goes after.
    """

    position: str = Field(description="Anchor for the inserted row")
    id: str = Field(description="Id of the inserted row")


class PaginationChange(TableSyncBaseModel):
    """New pagination state after a mutation changed the page count."""

    page: int = Field(ge=0, description="Page the client should show")
    page_count: int = Field(ge=0, description="Total number of pages")
    page_numbers_text: str = Field(default="", description="Pager label")


class Delta(TableSyncBaseModel):
    """Minimal client-side change set produced by one mutation."""

    added: List[AddedRow] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    changed_in_place: List[str] = Field(default_factory=list)
    pagination_change: Optional[PaginationChange] = None
    redirect: Optional[str] = None
    reload: bool = Field(default=False, description="Redraw the table instead of patching")
    reload_page: Optional[int] = Field(
        default=None, description="Page to redraw; None keeps the current page"
    )
    highlight_row: Optional[str] = None
    edited_field: Optional[str] = Field(
        default=None, description="Single field regenerated by an in-place edit"
    )
    edited_value: Optional[Any] = None

    @classmethod
    def full_reload(cls, page: Optional[int] = None, **kwargs) -> "Delta":
        return cls(reload=True, reload_page=page, **kwargs)


class RowFragment(TableSyncBaseModel):
    """A rendered row placed at an anchor."""

    position: str
    row: Any


class ConfirmationDialog(TableSyncBaseModel):
    """Confirmation asked to the user before running an action."""

    want_dialog: bool = False
    message: Optional[str] = None
    title: str = ""


class ResponsePayload(TableSyncBaseModel):
    """Structured response returned to the transport layer."""

    success: bool = False
    message: Optional[str] = None
    message_class: Optional[str] = None
    error: Optional[ErrorKind] = None
    reload: Optional[Any] = None
    highlight_row_after_reload: Optional[str] = None
    added: Optional[List[RowFragment]] = None
    removed: Optional[List[str]] = None
    changed: Optional[Dict[str, Any]] = None
    pagination_changes: Optional[PaginationChange] = None
    edited_value: Optional[Any] = None
    check_all_value: Optional[Any] = None
    dialog: Optional[ConfirmationDialog] = None


class ActionResponse(TableSyncBaseModel):
    """Envelope around a dispatched action.

    Structured actions fill ``json``; full-page actions fill ``page`` and
    may carry a ``redirect``.
    """

    json_payload: Optional[ResponsePayload] = Field(default=None, alias="json")
    page: Optional[Any] = None
    redirect: Optional[str] = None
    message: Optional[str] = None

    @property
    def is_structured(self) -> bool:
        return self.json_payload is not None
