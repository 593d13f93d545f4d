"""Main entry point for the Databricks MCP server."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager

from databricks_mcp import __version__
from databricks_mcp.api.routes.health import router as health_router
from databricks_mcp.config import Transport, get_settings, load_settings
from databricks_mcp.observability import get_logger, setup_opentelemetry, shutdown_opentelemetry
from databricks_mcp.tools.server import create_mcp_server, run_stdio
from databricks_mcp.workspace import get_workspace_client

if TYPE_CHECKING:
    from collections.abc import Sequence

    from databricks.sdk import WorkspaceClient
    from starlette.types import Receive, Scope, Send

    from databricks_mcp.config import Settings

logger = get_logger(__name__)

MCP_PATH = "/mcp"


def create_app(client: WorkspaceClient, settings: Settings | None = None) -> FastAPI:
    """Create the HTTP application serving MCP over streamable HTTP.

    Args:
        client: Workspace client shared by all requests.
        settings: Application settings. If None, uses cached settings.

    Returns:
        FastAPI app with health endpoints and the MCP endpoint mounted at /mcp.
    """
    session_manager = StreamableHTTPSessionManager(app=create_mcp_server(client, settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Manage application lifespan - setup and shutdown."""
        setup_opentelemetry(app)
        async with session_manager.run():
            logger.info("mcp_server_starting", transport="http", path=MCP_PATH)
            yield
        shutdown_opentelemetry()

    async def handle_mcp(scope: Scope, receive: Receive, send: Send) -> None:
        await session_manager.handle_request(scope, receive, send)

    app = FastAPI(
        title="Databricks MCP Server",
        description="Unity Catalog and SQL warehouse tools over the Model Context Protocol",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.workspace_client = client
    app.include_router(health_router)
    app.mount(MCP_PATH, handle_mcp)
    return app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="databricks-mcp-server",
        description="Serve Databricks Unity Catalog and SQL tools over MCP.",
    )
    parser.add_argument("--config", help="Path to a JSON configuration file")
    parser.add_argument(
        "--transport",
        choices=[t.value for t in Transport],
        help="MCP transport (overrides configuration)",
    )
    parser.add_argument("--host", help="HTTP host (http transport only)")
    parser.add_argument("--port", type=int, help="HTTP port (http transport only)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Run the MCP server."""
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config) if args.config else get_settings()
    transport = Transport(args.transport) if args.transport else settings.server.transport

    client = get_workspace_client()

    if transport == Transport.STDIO:
        setup_opentelemetry()
        try:
            asyncio.run(run_stdio(create_mcp_server(client, settings)))
        finally:
            shutdown_opentelemetry()
        return

    import uvicorn

    uvicorn.run(
        create_app(client, settings),
        host=args.host or settings.server.host,
        port=args.port or settings.server.port,
    )


if __name__ == "__main__":
    main()
