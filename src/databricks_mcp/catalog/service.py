"""Catalog service for Unity Catalog metadata operations.

This module provides a service wrapper around the Databricks SDK's catalog
APIs, translating SDK failures into ``RemoteCallError`` and applying the
table name filter and result cap of ``list_tables``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from itertools import islice
from typing import TYPE_CHECKING

from databricks_mcp.errors import FilterError, RemoteCallError
from databricks_mcp.observability import get_logger

if TYPE_CHECKING:
    from databricks.sdk import WorkspaceClient
    from databricks.sdk.service.catalog import CatalogInfo, SchemaInfo, TableInfo

logger = get_logger(__name__)

MATCH_ALL_PATTERNS = frozenset({"", ".*"})


def compile_table_pattern(pattern: str) -> re.Pattern[str] | None:
    """Compile a table name pattern.

    Args:
        pattern: Regular expression matched against unqualified table names.

    Returns:
        The compiled pattern, or None when the pattern matches every name.

    Raises:
        FilterError: If the pattern is not a valid regular expression.
    """
    if pattern in MATCH_ALL_PATTERNS:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise FilterError(pattern, str(e)) from e


def filter_tables(tables: list[TableInfo], regex: re.Pattern[str] | None) -> list[TableInfo]:
    """Keep the tables whose name matches, preserving order.

    A name matches when the pattern is found anywhere in it; anchor the
    pattern with ``^``/``$`` for whole-name matches.
    """
    if regex is None:
        return list(tables)
    return [table for table in tables if regex.search(table.name or "")]


@dataclass
class TableListing:
    """Result of a capped, filtered table listing."""

    tables: list[TableInfo] = field(default_factory=list)
    truncated: bool = False

    @property
    def total_count(self) -> int:
        return len(self.tables)


class CatalogService:
    """Service for Unity Catalog operations using the Databricks SDK.

    The workspace client is supplied by the caller and shared; the service
    itself keeps no state between calls.
    """

    def __init__(self, client: WorkspaceClient) -> None:
        """Initialize the catalog service.

        Args:
            client: Workspace client used for every remote call.
        """
        self._client = client

    def list_catalogs(self) -> list[CatalogInfo]:
        """List catalogs visible to the caller.

        Raises:
            RemoteCallError: If the workspace call fails.
        """
        try:
            return list(self._client.catalogs.list())
        except Exception as e:
            raise RemoteCallError("Error listing catalogs") from e

    def list_schemas(self, catalog: str) -> list[SchemaInfo]:
        """List schemas in a catalog.

        Args:
            catalog: Catalog name.

        Raises:
            RemoteCallError: If the workspace call fails.
        """
        try:
            return list(self._client.schemas.list(catalog_name=catalog))
        except Exception as e:
            raise RemoteCallError(f"Error listing schemas in catalog {catalog}") from e

    def list_tables(
        self,
        catalog: str,
        schema: str,
        table_name_pattern: str = ".*",
        *,
        omit_properties: bool = True,
        omit_columns: bool = False,
        max_results: int = 10,
    ) -> TableListing:
        """List tables in a schema, capped and then filtered by name.

        At most ``max_results + 1`` entries are read from the paged listing:
        the extra entry only tells whether the listing was truncated. The
        name filter is applied to the capped entries, so fewer than
        ``max_results`` tables may be returned even when ``truncated`` is set.

        Args:
            catalog: Catalog name.
            schema: Schema name.
            table_name_pattern: Regular expression for table names.
            omit_properties: Leave table properties out of the descriptors.
            omit_columns: Leave column definitions out of the descriptors.
            max_results: Maximum number of tables to return; 0 for all.

        Returns:
            TableListing with the tables and the truncation flag.

        Raises:
            FilterError: If the pattern does not compile (no remote call is made).
            RemoteCallError: If the workspace call fails.
        """
        regex = compile_table_pattern(table_name_pattern)
        limit = max_results + 1 if max_results > 0 else None

        try:
            pages = self._client.tables.list(
                catalog_name=catalog,
                schema_name=schema,
                max_results=limit,
                omit_properties=omit_properties,
                omit_columns=omit_columns,
            )
            fetched = list(islice(pages, limit))
        except Exception as e:
            raise RemoteCallError(f"Error listing tables in {catalog}.{schema}") from e

        truncated = max_results > 0 and len(fetched) > max_results
        if truncated:
            fetched = fetched[:max_results]

        tables = filter_tables(fetched, regex)
        logger.debug(
            "tables_listed",
            catalog=catalog,
            schema=schema,
            fetched=len(fetched),
            returned=len(tables),
            truncated=truncated,
        )
        return TableListing(tables=tables, truncated=truncated)

    def get_table(self, full_name: str) -> TableInfo:
        """Get a table by its three-level name.

        Args:
            full_name: Table name in the form catalog.schema.table.

        Raises:
            RemoteCallError: If the workspace call fails.
        """
        try:
            return self._client.tables.get(full_name)
        except Exception as e:
            raise RemoteCallError(f"Error getting table {full_name}") from e
