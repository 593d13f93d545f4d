"""Warehouse selection for statement execution."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from databricks_mcp.errors import NoWarehouseAvailableError, RemoteCallError
from databricks_mcp.observability import get_logger

if TYPE_CHECKING:
    from databricks_mcp.statements.sql_service import WarehouseLister

logger = get_logger(__name__)


class WarehouseResolver:
    """Picks the SQL warehouse a statement runs on.

    An explicit warehouse id is trusted as given; an invalid id surfaces when
    the statement is submitted. Without one, the first warehouse of the
    workspace listing is used. The listing order is defined by the workspace
    and may differ between calls.
    """

    def __init__(self, warehouses: WarehouseLister) -> None:
        self._warehouses = warehouses

    async def resolve(self, explicit_id: str | None = None) -> str:
        """Resolve the warehouse id to run on.

        Args:
            explicit_id: Warehouse id supplied by the caller, if any.

        Returns:
            The warehouse id.

        Raises:
            RemoteCallError: If the warehouses cannot be listed.
            NoWarehouseAvailableError: If the workspace has no warehouses.
        """
        if explicit_id:
            return explicit_id

        try:
            warehouses = await asyncio.to_thread(self._warehouses.list_warehouses)
        except Exception as e:
            raise RemoteCallError("Error listing warehouses") from e

        if not warehouses:
            raise NoWarehouseAvailableError()

        selected = warehouses[0]
        logger.info(
            "warehouse_selected",
            warehouse_id=selected.id,
            warehouse_name=getattr(selected, "name", None),
            candidates=len(warehouses),
        )
        return selected.id
