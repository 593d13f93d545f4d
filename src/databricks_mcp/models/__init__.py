"""Models package for the Databricks MCP server."""

from databricks_mcp.models.operations import (
    ExecuteSqlParams,
    GetTableParams,
    ListSchemasParams,
    ListTablesParams,
    NoParams,
)
from databricks_mcp.models.responses import (
    ColumnDescriptor,
    ExecuteSqlResponse,
    ListTablesResponse,
    ToolErrorResponse,
)

__all__ = [
    "ColumnDescriptor",
    "ExecuteSqlParams",
    "ExecuteSqlResponse",
    "GetTableParams",
    "ListSchemasParams",
    "ListTablesParams",
    "ListTablesResponse",
    "NoParams",
    "ToolErrorResponse",
]
