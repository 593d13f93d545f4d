"""Parameter models for the MCP tools.

Each tool validates its raw arguments against one of these models before any
remote call is made. The models double as the tools' published input schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from databricks_mcp.statements.models import StatementRequest


class NoParams(BaseModel):
    """Parameters of tools that take none."""


class ListSchemasParams(BaseModel):
    """Parameters for list_schemas."""

    catalog: str = Field(..., min_length=1, description="Name of the catalog")


class ListTablesParams(BaseModel):
    """Parameters for list_tables."""

    model_config = ConfigDict(populate_by_name=True)

    catalog: str = Field(..., min_length=1, description="Name of the catalog")
    schema_name: str = Field(
        ..., alias="schema", min_length=1, description="Name of the schema"
    )
    table_name_pattern: str = Field(
        default=".*",
        description="Regular expression matched against table names. "
        "Applied to the first max_results tables of the listing.",
    )
    omit_properties: bool = Field(
        default=True, description="Whether to omit table properties from the response"
    )
    omit_columns: bool = Field(
        default=False, description="Whether to omit column details from the response"
    )
    max_results: int = Field(
        default=10, ge=0, description="Maximum number of tables to return (0 for all)"
    )


class GetTableParams(BaseModel):
    """Parameters for get_table."""

    full_name: str = Field(
        ...,
        description="Full name of the table in the form catalog.schema.table",
        examples=["main.default.trips"],
    )

    @field_validator("full_name")
    @classmethod
    def check_three_level_name(cls, value: str) -> str:
        parts = value.split(".")
        if len(parts) != 3 or not all(part.strip() for part in parts):
            raise ValueError("full_name must have the form catalog.schema.table")
        return value


class ExecuteSqlParams(BaseModel):
    """Parameters for execute_sql."""

    statement: str = Field(..., min_length=1, description="SQL statement to execute")
    execution_timeout_seconds: int = Field(
        default=60,
        ge=0,
        description="Maximum time in seconds to wait for the statement to finish",
    )
    max_rows: int = Field(
        default=100, ge=0, description="Maximum number of rows to return (0 for no cap)"
    )
    warehouse_id: str = Field(
        default="",
        description="SQL warehouse to run on. Defaults to the first warehouse of the workspace.",
    )

    @field_validator("statement")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("statement must not be blank")
        return value

    def to_request(self) -> StatementRequest:
        """Build the immutable request handed to the orchestrator."""
        return StatementRequest(
            statement=self.statement,
            max_rows=self.max_rows,
            timeout_seconds=self.execution_timeout_seconds,
            warehouse_id=self.warehouse_id or None,
        )
