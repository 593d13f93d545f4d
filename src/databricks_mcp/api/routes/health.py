"""Health and readiness endpoints for monitoring.

Provides:
- GET /health - Returns application health status
- GET /ready - Returns readiness for traffic
"""

from __future__ import annotations

import asyncio
from typing import Annotated

from databricks.sdk import WorkspaceClient
from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field

from databricks_mcp import __version__

router = APIRouter(tags=["health"])


class ComponentHealth(BaseModel):
    """Health status of a component."""

    healthy: bool = Field(..., description="Whether the component is healthy.")
    error: str | None = Field(default=None, description="Error message if unhealthy.")


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(..., description="Overall status: healthy, degraded, or unhealthy.")
    version: str = Field(..., description="Application version.")
    components: dict[str, ComponentHealth] = Field(
        ...,
        description="Health status of individual components.",
    )


class ReadyResponse(BaseModel):
    """Response for readiness check endpoint."""

    ready: bool = Field(..., description="Whether the application is ready for traffic.")
    reason: str | None = Field(default=None, description="Reason if not ready.")


def get_client(request: Request) -> WorkspaceClient:
    """Workspace client the application was created with."""
    return request.app.state.workspace_client


def _check_workspace(client: WorkspaceClient) -> ComponentHealth:
    try:
        client.current_user.me()
    except Exception as e:
        return ComponentHealth(healthy=False, error=f"Workspace error: {e}")
    return ComponentHealth(healthy=True)


def _check_warehouses(client: WorkspaceClient) -> ComponentHealth:
    try:
        warehouses = list(client.warehouses.list())
    except Exception as e:
        return ComponentHealth(healthy=False, error=f"Warehouse listing error: {e}")
    if not warehouses:
        return ComponentHealth(healthy=False, error="No warehouses available")
    return ComponentHealth(healthy=True)


@router.get("/health", response_model=HealthResponse)
async def health_check(
    response: Response,
    client: Annotated[WorkspaceClient, Depends(get_client)],
) -> HealthResponse:
    """Check application health.

    Checks that the workspace accepts the configured credentials and that at
    least one SQL warehouse is available for execute_sql.

    Returns:
        HealthResponse with status, version, and component health.
        Returns 503 status code if degraded or unhealthy.
    """
    components = {
        "workspace": await asyncio.to_thread(_check_workspace, client),
        "warehouses": await asyncio.to_thread(_check_warehouses, client),
    }

    if all(c.healthy for c in components.values()):
        status = "healthy"
    elif any(c.healthy for c in components.values()):
        status = "degraded"
        response.status_code = 503
    else:
        status = "unhealthy"
        response.status_code = 503

    return HealthResponse(
        status=status,
        version=__version__,
        components=components,
    )


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check(
    response: Response,
    client: Annotated[WorkspaceClient, Depends(get_client)],
) -> ReadyResponse:
    """Check application readiness for traffic.

    Requires the workspace to be reachable with the configured credentials.

    Returns:
        ReadyResponse with ready status.
        Returns 503 status code if not ready.
    """
    workspace = await asyncio.to_thread(_check_workspace, client)
    if not workspace.healthy:
        response.status_code = 503
        return ReadyResponse(ready=False, reason=workspace.error)
    return ReadyResponse(ready=True)
