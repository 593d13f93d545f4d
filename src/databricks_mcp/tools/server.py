"""MCP server binding for the operation table.

Publishes one MCP tool per entry of ``OPERATIONS`` and routes tool calls
through the dispatcher. Protocol framing and transports are handled by the
``mcp`` library; this module only supplies tool listings, results, errors and
progress notifications.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from databricks_mcp import __version__
from databricks_mcp.catalog.service import CatalogService
from databricks_mcp.errors import OperationError
from databricks_mcp.observability import get_logger
from databricks_mcp.statements.orchestrator import StatementOrchestrator
from databricks_mcp.statements.resolver import WarehouseResolver
from databricks_mcp.statements.sql_service import SqlService
from databricks_mcp.tools.handlers import ToolContext
from databricks_mcp.tools.registry import OPERATIONS, dispatch, render_error, render_result

if TYPE_CHECKING:
    from databricks.sdk import WorkspaceClient
    from mcp.shared.context import RequestContext

    from databricks_mcp.config import Settings
    from databricks_mcp.statements.models import ProgressEvent, ProgressSink

logger = get_logger(__name__)

SERVER_NAME = "databricks-mcp-server"


class ToolCallError(Exception):
    """Carries a rendered error payload back to the MCP client.

    The low-level server reports any exception raised by a tool as a result
    with ``isError`` set and the exception text as content.
    """


def progress_sink_for(ctx: RequestContext) -> ProgressSink | None:
    """Bind the progress notification channel of one request.

    Returns None when the client did not ask for progress (no progress token).
    """
    token = ctx.meta.progressToken if ctx.meta is not None else None
    if token is None:
        return None

    async def send(event: ProgressEvent) -> None:
        await ctx.session.send_progress_notification(
            progress_token=token,
            progress=event.progress,
            total=event.total,
            message=event.message,
            related_request_id=str(ctx.request_id),
        )

    return send


def tool_definitions() -> list[types.Tool]:
    """MCP tool definitions generated from the operation table."""
    return [
        types.Tool(
            name=op.name,
            description=op.description,
            inputSchema=op.input_schema(),
        )
        for op in OPERATIONS.values()
    ]


def create_mcp_server(client: WorkspaceClient, settings: Settings | None = None) -> Server:
    """Create the MCP server for a workspace.

    Args:
        client: Workspace client shared by every tool invocation.
        settings: Application settings. If None, uses cached settings.

    Returns:
        Low-level MCP server with list_tools and call_tool handlers.
    """
    catalog = CatalogService(client)
    sql = SqlService(client)
    orchestrator = StatementOrchestrator(sql, WarehouseResolver(sql), settings=settings)

    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tool_definitions()

    # Arguments are validated by the dispatcher against the parameter models.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        context = ToolContext(
            catalog=catalog,
            sql=sql,
            orchestrator=orchestrator,
            progress=progress_sink_for(server.request_context),
        )
        try:
            result = await dispatch(name, arguments, context)
        except OperationError as e:
            raise ToolCallError(render_error(e)) from e
        return [types.TextContent(type="text", text=render_result(result))]

    return server


async def run_stdio(server: Server) -> None:
    """Serve MCP over stdin/stdout until the client disconnects."""
    logger.info("mcp_server_starting", transport="stdio", tools=len(OPERATIONS))
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
