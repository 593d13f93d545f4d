"""Handlers behind the MCP tools.

Each handler receives the invocation's ToolContext and its validated
parameters. Catalog calls are blocking SDK calls and run in a worker thread.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from databricks_mcp.errors import RemoteCallError
from databricks_mcp.models.responses import ExecuteSqlResponse, ListTablesResponse

if TYPE_CHECKING:
    from databricks_mcp.catalog.service import CatalogService
    from databricks_mcp.models.operations import (
        ExecuteSqlParams,
        GetTableParams,
        ListSchemasParams,
        ListTablesParams,
        NoParams,
    )
    from databricks_mcp.statements.models import ProgressSink
    from databricks_mcp.statements.orchestrator import StatementOrchestrator
    from databricks_mcp.statements.sql_service import SqlService


@dataclass
class ToolContext:
    """Capabilities available to one tool invocation."""

    catalog: CatalogService
    sql: SqlService
    orchestrator: StatementOrchestrator
    progress: ProgressSink | None = None
    cancel_event: asyncio.Event | None = None


async def list_catalogs(context: ToolContext, params: NoParams) -> list[dict[str, Any]]:  # noqa: ARG001
    catalogs = await asyncio.to_thread(context.catalog.list_catalogs)
    return [c.as_dict() for c in catalogs]


async def list_schemas(context: ToolContext, params: ListSchemasParams) -> list[dict[str, Any]]:
    schemas = await asyncio.to_thread(context.catalog.list_schemas, params.catalog)
    return [s.as_dict() for s in schemas]


async def list_tables(context: ToolContext, params: ListTablesParams) -> ListTablesResponse:
    listing = await asyncio.to_thread(
        context.catalog.list_tables,
        params.catalog,
        params.schema_name,
        params.table_name_pattern,
        omit_properties=params.omit_properties,
        omit_columns=params.omit_columns,
        max_results=params.max_results,
    )
    return ListTablesResponse(
        tables=[t.as_dict() for t in listing.tables],
        total_count=listing.total_count,
        truncated=listing.truncated,
    )


async def get_table(context: ToolContext, params: GetTableParams) -> dict[str, Any]:
    table = await asyncio.to_thread(context.catalog.get_table, params.full_name)
    return table.as_dict()


async def execute_sql(context: ToolContext, params: ExecuteSqlParams) -> ExecuteSqlResponse:
    """Run a statement through the orchestrator and shape its result."""
    result = await context.orchestrator.execute(
        params.to_request(),
        progress=context.progress,
        cancel_event=context.cancel_event,
    )
    return ExecuteSqlResponse.from_result(result)


async def list_warehouses(context: ToolContext, params: NoParams) -> list[dict[str, Any]]:  # noqa: ARG001
    try:
        warehouses = await asyncio.to_thread(context.sql.list_warehouses)
    except Exception as e:
        raise RemoteCallError("Error listing SQL warehouses") from e
    return [w.as_dict() for w in warehouses]
