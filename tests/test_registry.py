"""Tests for the operation table, dispatcher and tool handlers."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from databricks.sdk.service.catalog import CatalogInfo, SchemaInfo, TableInfo
from databricks.sdk.service.sql import EndpointInfo

from databricks_mcp.catalog.service import TableListing
from databricks_mcp.errors import (
    FilterError,
    ParameterValidationError,
    RemoteCallError,
    StatementTimeoutError,
    SubmissionError,
    UnknownOperationError,
)
from databricks_mcp.statements.models import (
    Column,
    ResultSet,
    StatementRequest,
    StatementState,
)
from databricks_mcp.tools.handlers import ToolContext
from databricks_mcp.tools.registry import (
    OPERATIONS,
    dispatch,
    error_payload,
    get_operation,
    render_error,
    render_result,
)


@pytest.fixture
def context() -> ToolContext:
    """Tool context with service doubles."""
    orchestrator = MagicMock()
    orchestrator.execute = AsyncMock()
    return ToolContext(catalog=MagicMock(), sql=MagicMock(), orchestrator=orchestrator)


class TestOperationTable:
    """Tests for the declarative operation table."""

    def test_operations(self):
        assert set(OPERATIONS) == {
            "list_catalogs",
            "list_schemas",
            "list_tables",
            "get_table",
            "execute_sql",
            "list_warehouses",
        }

    def test_every_operation_has_description(self):
        for op in OPERATIONS.values():
            assert op.description

    def test_list_tables_schema_uses_wire_names(self):
        """Test the published schema names the schema parameter 'schema'."""
        schema = get_operation("list_tables").input_schema()

        assert set(schema["required"]) == {"catalog", "schema"}
        assert schema["properties"]["max_results"]["default"] == 10
        assert schema["properties"]["table_name_pattern"]["default"] == ".*"

    def test_execute_sql_schema_defaults(self):
        props = get_operation("execute_sql").input_schema()["properties"]
        assert props["execution_timeout_seconds"]["default"] == 60
        assert props["max_rows"]["default"] == 100

    def test_unknown_operation(self):
        with pytest.raises(UnknownOperationError, match="drop_catalog"):
            get_operation("drop_catalog")


class TestValidation:
    """Tests for argument validation before any remote call."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, context):
        with pytest.raises(UnknownOperationError):
            await dispatch("drop_catalog", {}, context)

    @pytest.mark.asyncio
    async def test_missing_catalog(self, context):
        with pytest.raises(ParameterValidationError, match="catalog"):
            await dispatch("list_schemas", {}, context)

        context.catalog.list_schemas.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_schema(self, context):
        with pytest.raises(ParameterValidationError, match="schema"):
            await dispatch("list_tables", {"catalog": "main"}, context)

        context.catalog.list_tables.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("full_name", ["orders", "main.orders", "main..orders", "a.b.c.d"])
    async def test_get_table_requires_three_part_name(self, context, full_name):
        with pytest.raises(ParameterValidationError, match="full_name"):
            await dispatch("get_table", {"full_name": full_name}, context)

        context.catalog.get_table.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("arguments", [{}, {"statement": ""}, {"statement": "   "}])
    async def test_execute_sql_requires_statement(self, context, arguments):
        with pytest.raises(ParameterValidationError):
            await dispatch("execute_sql", arguments, context)

        context.orchestrator.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_negative_max_rows(self, context):
        with pytest.raises(ParameterValidationError, match="max_rows"):
            await dispatch("execute_sql", {"statement": "SELECT 1", "max_rows": -1}, context)

    @pytest.mark.asyncio
    async def test_none_arguments_for_parameterless_tool(self, context):
        context.catalog.list_catalogs.return_value = []

        assert await dispatch("list_catalogs", None, context) == []


class TestHandlers:
    """Tests for tool handlers through the dispatcher."""

    @pytest.mark.asyncio
    async def test_list_catalogs(self, context):
        context.catalog.list_catalogs.return_value = [
            CatalogInfo(name="main", comment="Main catalog"),
            CatalogInfo(name="samples"),
        ]

        result = await dispatch("list_catalogs", {}, context)

        assert result == [{"name": "main", "comment": "Main catalog"}, {"name": "samples"}]

    @pytest.mark.asyncio
    async def test_list_schemas(self, context):
        context.catalog.list_schemas.return_value = [SchemaInfo(name="default", catalog_name="main")]

        result = await dispatch("list_schemas", {"catalog": "main"}, context)

        context.catalog.list_schemas.assert_called_once_with("main")
        assert result == [{"name": "default", "catalog_name": "main"}]

    @pytest.mark.asyncio
    async def test_list_tables(self, context):
        context.catalog.list_tables.return_value = TableListing(
            tables=[TableInfo(name="orders")], truncated=True
        )

        result = await dispatch(
            "list_tables",
            {"catalog": "main", "schema": "sales", "table_name_pattern": "ord", "max_results": 1},
            context,
        )

        context.catalog.list_tables.assert_called_once_with(
            "main",
            "sales",
            "ord",
            omit_properties=True,
            omit_columns=False,
            max_results=1,
        )
        assert json.loads(render_result(result)) == {
            "tables": [{"name": "orders"}],
            "total_count": 1,
            "truncated": True,
        }

    @pytest.mark.asyncio
    async def test_list_tables_filter_error(self, context):
        context.catalog.list_tables.side_effect = FilterError("(", "missing ), unterminated subpattern")

        with pytest.raises(FilterError):
            await dispatch("list_tables", {"catalog": "main", "schema": "sales"}, context)

    @pytest.mark.asyncio
    async def test_get_table(self, context):
        context.catalog.get_table.return_value = TableInfo(
            name="orders", full_name="main.sales.orders"
        )

        result = await dispatch("get_table", {"full_name": "main.sales.orders"}, context)

        assert result == {"name": "orders", "full_name": "main.sales.orders"}

    @pytest.mark.asyncio
    async def test_execute_sql_select_one(self, context):
        """Test the SELECT 1 result shape."""
        context.orchestrator.execute.return_value = ResultSet(
            columns=[Column(name="1")], rows=[["1"]]
        )

        result = await dispatch("execute_sql", {"statement": "SELECT 1"}, context)

        assert json.loads(render_result(result)) == {"columns": [{"name": "1"}], "rows": [["1"]]}
        request = context.orchestrator.execute.await_args.args[0]
        assert request == StatementRequest("SELECT 1", max_rows=100, timeout_seconds=60)

    @pytest.mark.asyncio
    async def test_execute_sql_forwards_arguments_and_progress(self, context):
        context.progress = AsyncMock()
        context.orchestrator.execute.return_value = ResultSet(columns=[], rows=[])

        await dispatch(
            "execute_sql",
            {
                "statement": "SELECT * FROM t",
                "execution_timeout_seconds": 120,
                "max_rows": 0,
                "warehouse_id": "wh-7",
            },
            context,
        )

        call = context.orchestrator.execute.await_args
        assert call.args[0] == StatementRequest(
            "SELECT * FROM t", max_rows=0, timeout_seconds=120, warehouse_id="wh-7"
        )
        assert call.kwargs["progress"] is context.progress

    @pytest.mark.asyncio
    async def test_execute_sql_null_cells(self, context):
        context.orchestrator.execute.return_value = ResultSet(
            columns=[Column(name="a", type_name="STRING", position=0)],
            rows=[["x"], [None]],
        )

        result = await dispatch("execute_sql", {"statement": "SELECT a FROM t"}, context)

        assert json.loads(render_result(result)) == {
            "columns": [{"name": "a", "type_name": "STRING", "position": 0}],
            "rows": [["x"], [None]],
        }

    @pytest.mark.asyncio
    async def test_execute_sql_error_propagates(self, context):
        context.orchestrator.execute.side_effect = StatementTimeoutError(
            60, StatementState.RUNNING
        )

        with pytest.raises(StatementTimeoutError):
            await dispatch("execute_sql", {"statement": "SELECT 1"}, context)

    @pytest.mark.asyncio
    async def test_list_warehouses(self, context):
        context.sql.list_warehouses.return_value = [
            EndpointInfo(id="wh-1", name="Starter Warehouse")
        ]

        result = await dispatch("list_warehouses", {}, context)

        assert result == [{"id": "wh-1", "name": "Starter Warehouse"}]

    @pytest.mark.asyncio
    async def test_list_warehouses_failure(self, context):
        context.sql.list_warehouses.side_effect = ConnectionError("refused")

        with pytest.raises(RemoteCallError, match="Error listing SQL warehouses"):
            await dispatch("list_warehouses", {}, context)


class TestErrorRendering:
    """Tests for error payloads."""

    def test_error_payload_with_causes(self):
        try:
            try:
                raise ConnectionError("connection reset")
            except ConnectionError as e:
                raise SubmissionError("Error executing SQL statement") from e
        except SubmissionError as e:
            payload = error_payload(e)

        assert payload.error == "Error executing SQL statement"
        assert payload.error_type == "SubmissionError"
        assert payload.causes == ["connection reset"]

    def test_render_error(self):
        rendered = json.loads(render_error(ParameterValidationError("catalog is required")))

        assert rendered == {
            "error": "catalog is required",
            "error_type": "ParameterValidationError",
            "causes": [],
        }

    def test_render_result_list(self):
        assert json.loads(render_result([{"name": "main"}])) == [{"name": "main"}]
