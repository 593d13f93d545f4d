"""Operation table and dispatcher.

Every tool is one entry of ``OPERATIONS``: a name, a description, the
pydantic model its arguments are validated against and the handler that
runs it. Dispatch looks the name up, validates, then calls the handler;
required-parameter problems are rejected before any remote call.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from databricks_mcp.errors import OperationError, ParameterValidationError, UnknownOperationError
from databricks_mcp.models.operations import (
    ExecuteSqlParams,
    GetTableParams,
    ListSchemasParams,
    ListTablesParams,
    NoParams,
)
from databricks_mcp.models.responses import ToolErrorResponse
from databricks_mcp.observability import get_logger, get_tracer
from databricks_mcp.tools import handlers
from databricks_mcp.tools.handlers import ToolContext

logger = get_logger(__name__)

Handler = Callable[[ToolContext, Any], Awaitable[Any]]


@dataclass(frozen=True)
class Operation:
    """A tool exposed over MCP."""

    name: str
    description: str
    params: type[BaseModel]
    handler: Handler

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the tool's arguments."""
        return self.params.model_json_schema(by_alias=True)


OPERATIONS: dict[str, Operation] = {
    op.name: op
    for op in (
        Operation(
            name="list_catalogs",
            description="Lists all catalogs available in the Databricks workspace",
            params=NoParams,
            handler=handlers.list_catalogs,
        ),
        Operation(
            name="list_schemas",
            description="Lists all schemas in a specified Databricks catalog",
            params=ListSchemasParams,
            handler=handlers.list_schemas,
        ),
        Operation(
            name="list_tables",
            description=(
                "Lists tables in a Databricks catalog and schema. Reads at most "
                "max_results tables, then keeps those whose name matches "
                "table_name_pattern; truncated tells whether more tables existed"
            ),
            params=ListTablesParams,
            handler=handlers.list_tables,
        ),
        Operation(
            name="get_table",
            description="Gets detailed information about a single Databricks table",
            params=GetTableParams,
            handler=handlers.get_table,
        ),
        Operation(
            name="execute_sql",
            description=(
                "Executes SQL statements on a Databricks SQL warehouse and returns "
                "the results. Long-running statements report progress and are "
                "canceled when execution_timeout_seconds is exceeded"
            ),
            params=ExecuteSqlParams,
            handler=handlers.execute_sql,
        ),
        Operation(
            name="list_warehouses",
            description="Lists all SQL warehouses in the Databricks workspace",
            params=NoParams,
            handler=handlers.list_warehouses,
        ),
    )
}


def get_operation(name: str) -> Operation:
    """Look up an operation by tool name.

    Raises:
        UnknownOperationError: If no tool has that name.
    """
    try:
        return OPERATIONS[name]
    except KeyError as e:
        raise UnknownOperationError(name) from e


def validate_arguments(operation: Operation, arguments: dict[str, Any] | None) -> BaseModel:
    """Validate raw tool arguments against the operation's parameter model.

    Raises:
        ParameterValidationError: If a parameter is missing or malformed.
    """
    try:
        return operation.params.model_validate(arguments or {})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        )
        raise ParameterValidationError(f"Invalid arguments for {operation.name}: {problems}") from e


async def dispatch(name: str, arguments: dict[str, Any] | None, context: ToolContext) -> Any:
    """Validate and run one tool invocation.

    Args:
        name: Tool name.
        arguments: Raw arguments sent by the client.
        context: Capabilities for this invocation.

    Returns:
        The handler's result (a pydantic model, a dict or a list).

    Raises:
        OperationError: Any typed failure of the invocation.
    """
    operation = get_operation(name)
    params = validate_arguments(operation, arguments)

    with get_tracer().start_as_current_span(f"tool.{name}"):
        logger.info("tool_invoked", tool=name)
        try:
            return await operation.handler(context, params)
        except OperationError as e:
            logger.warning("tool_failed", tool=name, error=e.message, error_type=type(e).__name__)
            raise


def to_jsonable(result: Any) -> Any:
    """Convert a handler result into plain JSON-compatible data."""
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", exclude_none=True)
    if isinstance(result, list):
        return [to_jsonable(item) for item in result]
    return result


def render_result(result: Any) -> str:
    """Serialize a handler result as JSON text."""
    return json.dumps(to_jsonable(result))


def error_payload(error: OperationError) -> ToolErrorResponse:
    """Build the error payload for a failed invocation."""
    return ToolErrorResponse(
        error=error.message,
        error_type=type(error).__name__,
        causes=error.causes(),
    )


def render_error(error: OperationError) -> str:
    """Serialize an error payload as JSON text."""
    return error_payload(error).model_dump_json()
