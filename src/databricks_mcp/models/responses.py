"""Response models returned by the MCP tools."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from databricks_mcp.statements.models import ResultSet


class ListTablesResponse(BaseModel):
    """Response for list_tables."""

    tables: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Table descriptors, in listing order",
    )
    total_count: int = Field(..., description="Number of tables returned")
    truncated: bool = Field(
        ...,
        description="True when the listing held more tables than max_results",
    )


class ColumnDescriptor(BaseModel):
    """A column of a statement result."""

    name: str = Field(..., description="Column name")
    type_name: str | None = Field(default=None, description="Column type name")
    type_text: str | None = Field(default=None, description="Full SQL type")
    position: int | None = Field(default=None, description="0-based column position")


class ExecuteSqlResponse(BaseModel):
    """Response for execute_sql."""

    columns: list[ColumnDescriptor] = Field(
        default_factory=list,
        description="Result columns, in order",
    )
    rows: list[list[str | None]] = Field(
        default_factory=list,
        description="Result rows; each cell is the string encoding of its value",
    )

    @classmethod
    def from_result(cls, result: ResultSet) -> ExecuteSqlResponse:
        return cls(
            columns=[
                ColumnDescriptor(
                    name=col.name,
                    type_name=col.type_name,
                    type_text=col.type_text,
                    position=col.position,
                )
                for col in result.columns
            ],
            rows=result.rows,
        )


class ToolErrorResponse(BaseModel):
    """Error payload returned when a tool fails."""

    error: str = Field(..., description="Human-readable error message")
    error_type: str = Field(..., description="Error class name")
    causes: list[str] = Field(
        default_factory=list,
        description="Messages of the underlying causes, outermost first",
    )
