"""SQL warehouse and statement execution adapter.

Wraps the SDK's ``warehouses`` and ``statement_execution`` APIs and converts
their responses into the statement data model. SDK exceptions propagate
unchanged; the orchestrator decides how each failure is reported.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from databricks.sdk.service.sql import (
    Disposition,
    ExecuteStatementRequestOnWaitTimeout,
    Format,
)

from databricks_mcp.statements.models import (
    Column,
    ResultChunk,
    StatementSnapshot,
    StatementState,
    StatementStatus,
)

if TYPE_CHECKING:
    from databricks.sdk import WorkspaceClient
    from databricks.sdk.service.sql import EndpointInfo, ResultData, StatementResponse


class WarehouseLister(Protocol):
    """Anything that can list SQL warehouses."""

    def list_warehouses(self) -> list[EndpointInfo]: ...


class StatementService(Protocol):
    """The four statement primitives the orchestrator relies on."""

    def execute(
        self, statement: str, max_rows: int, warehouse_id: str, wait_timeout_seconds: int
    ) -> StatementSnapshot: ...

    def get_status(self, statement_id: str) -> StatementSnapshot: ...

    def get_chunk(self, statement_id: str, chunk_index: int) -> ResultChunk: ...

    def cancel(self, statement_id: str) -> None: ...


_STATE_MAP = {
    "PENDING": StatementState.PENDING,
    "RUNNING": StatementState.RUNNING,
    "SUCCEEDED": StatementState.SUCCEEDED,
    "FAILED": StatementState.FAILED,
    "CANCELED": StatementState.CANCELED,
    # Closed statements have released their results; nothing more can be read.
    "CLOSED": StatementState.CANCELED,
}


def _to_chunk(data: ResultData | None) -> ResultChunk:
    """Convert SDK result data into a ResultChunk."""
    if data is None:
        return ResultChunk()
    return ResultChunk(
        rows=[list(row) for row in (data.data_array or [])],
        chunk_index=data.chunk_index or 0,
        next_chunk_index=data.next_chunk_index,
    )


def to_snapshot(response: StatementResponse) -> StatementSnapshot:
    """Convert an SDK statement response into a StatementSnapshot.

    Args:
        response: Response of execute_statement or get_statement.

    Returns:
        The corresponding snapshot.

    Raises:
        ValueError: If the response carries no statement id or an unknown state.
    """
    if not response.statement_id:
        raise ValueError("Statement response has no statement_id")

    status = response.status
    state_name = status.state.value if status is not None and status.state is not None else "PENDING"
    try:
        state = _STATE_MAP[state_name]
    except KeyError as e:
        raise ValueError(f"Unknown statement state: {state_name}") from e

    error_message = None
    if status is not None and status.error is not None:
        error_message = status.error.message or (
            status.error.error_code.value if status.error.error_code else "unknown error"
        )

    columns: list[Column] = []
    manifest = response.manifest
    if manifest is not None and manifest.schema is not None:
        for col in manifest.schema.columns or []:
            columns.append(
                Column(
                    name=col.name or "",
                    type_name=col.type_name.value if col.type_name is not None else None,
                    type_text=col.type_text,
                    position=col.position,
                )
            )

    return StatementSnapshot(
        statement_id=response.statement_id,
        status=StatementStatus(state=state, error_message=error_message),
        columns=columns,
        first_chunk=_to_chunk(response.result),
    )


class SqlService:
    """Statement and warehouse operations backed by a WorkspaceClient."""

    def __init__(self, client: WorkspaceClient) -> None:
        self._client = client

    def list_warehouses(self) -> list[EndpointInfo]:
        """List SQL warehouses in the workspace's listing order."""
        return list(self._client.warehouses.list())

    def execute(
        self, statement: str, max_rows: int, warehouse_id: str, wait_timeout_seconds: int
    ) -> StatementSnapshot:
        """Submit a statement, waiting briefly for fast statements to finish.

        Args:
            statement: SQL text.
            max_rows: Row cap; 0 leaves the cap to the workspace.
            warehouse_id: Warehouse to run on.
            wait_timeout_seconds: Server-side wait before returning (5-50).

        Returns:
            Snapshot of the statement when the wait ended.
        """
        response = self._client.statement_execution.execute_statement(
            statement=statement,
            warehouse_id=warehouse_id,
            row_limit=max_rows or None,
            wait_timeout=f"{wait_timeout_seconds}s",
            on_wait_timeout=ExecuteStatementRequestOnWaitTimeout.CONTINUE,
            disposition=Disposition.INLINE,
            format=Format.JSON_ARRAY,
        )
        return to_snapshot(response)

    def get_status(self, statement_id: str) -> StatementSnapshot:
        """Fetch the current status of a statement."""
        return to_snapshot(self._client.statement_execution.get_statement(statement_id))

    def get_chunk(self, statement_id: str, chunk_index: int) -> ResultChunk:
        """Fetch one result chunk of a succeeded statement."""
        data = self._client.statement_execution.get_statement_result_chunk_n(
            statement_id, chunk_index
        )
        return _to_chunk(data)

    def cancel(self, statement_id: str) -> None:
        """Request cancellation of a statement."""
        self._client.statement_execution.cancel_execution(statement_id)
