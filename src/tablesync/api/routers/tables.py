"""Table action router for tablesync API."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request
from pydantic import BaseModel, Field

from tablesync.errors import ErrorKind, TableSyncError
from tablesync.managers.registry import TableRegistry, get_registry


router = APIRouter()

STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.IN_USE: 409,
    ErrorKind.UNSUPPORTED_ACTION: 400,
    ErrorKind.INTERNAL: 500,
}


class TableInfo(BaseModel):
    """Summary of a registered table."""
    name: str
    page_size: int
    rows: int
    movable_rows: bool
    fields: List[str]
    custom_actions: List[str] = Field(default_factory=list)


def to_http_error(error: TableSyncError) -> HTTPException:
    """HTTP exception for a typed engine error."""
    return HTTPException(
        status_code=STATUS_CODES.get(error.kind, 500),
        detail={"error": ErrorKind(error.kind).value, "message": error.message},
    )


@router.get("", response_model=List[TableInfo])
async def list_tables(registry: TableRegistry = Depends(get_registry)):
    """List registered tables."""
    tables = []
    for name in registry.names():
        table = registry.get(name)
        tables.append(
            TableInfo(
                name=name,
                page_size=table.page_size,
                rows=table.store.size(),
                movable_rows=table.schema.movable_rows,
                fields=table.schema.field_names,
                custom_actions=table.custom_actions,
            )
        )
    return tables


@router.post("/{table_name}/actions/{action}")
def execute_action(
    request: Request,
    table_name: str = Path(..., description="Table name"),
    action: str = Path(..., description="Action name"),
    body: Optional[Dict[str, Any]] = Body(None, description="Action parameters"),
    registry: TableRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """Run an action against a table.

    Query parameters and the JSON body (which wins on conflicts) become
    the action parameters.
    """
    params: Dict[str, Optional[str]] = dict(request.query_params)
    for key, value in (body or {}).items():
        params[key] = value if value is None or isinstance(value, str) else str(value)

    try:
        dispatcher = registry.dispatcher(table_name)
        response = dispatcher.execute_action(action, params)
    except TableSyncError as e:
        raise to_http_error(e)

    return response.model_dump(by_alias=True, exclude_none=True)
