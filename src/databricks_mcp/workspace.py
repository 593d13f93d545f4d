"""Databricks workspace client factory.

The process builds one ``WorkspaceClient`` at startup and hands it to the
services that need it; nothing below the process wiring reaches for this
cache directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from databricks.sdk import WorkspaceClient

from databricks_mcp import __version__
from databricks_mcp.config import get_settings

if TYPE_CHECKING:
    from databricks_mcp.config import Settings

PRODUCT_NAME = "databricks-mcp-server"


def create_workspace_client(settings: Settings | None = None) -> WorkspaceClient:
    """Create a workspace client from configuration.

    Only the host and profile are forwarded; anything left empty, including
    credentials, is resolved by the SDK's unified authentication.

    Args:
        settings: Application settings. If None, uses cached settings.

    Returns:
        Configured WorkspaceClient.
    """
    workspace = (settings or get_settings()).workspace
    kwargs: dict[str, str] = {"product": PRODUCT_NAME, "product_version": __version__}
    if workspace.host:
        kwargs["host"] = workspace.host
    if workspace.profile:
        kwargs["profile"] = workspace.profile
    return WorkspaceClient(**kwargs)


_client: WorkspaceClient | None = None


def get_workspace_client() -> WorkspaceClient:
    """Get the process-wide workspace client (cached).

    Returns:
        The WorkspaceClient used by the server wiring.
    """
    global _client
    if _client is None:
        _client = create_workspace_client()
    return _client


def reset_workspace_client() -> None:
    """Reset the cached workspace client (useful for testing)."""
    global _client
    _client = None
