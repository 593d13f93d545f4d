"""Statement execution orchestrator.

Runs one SQL statement end to end:
- Resolves the warehouse and submits the statement
- Polls the statement status within the caller's time budget, reporting progress
- Fetches and concatenates the result chunks in order

No remote failure is retried. Every failure ends the invocation with a typed
error from ``databricks_mcp.errors`` and nothing partial is returned.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from databricks_mcp.config import get_settings
from databricks_mcp.errors import (
    ChunkFetchError,
    OperationError,
    ProgressDeliveryError,
    StatementCanceledError,
    StatementExecutionError,
    StatementTimeoutError,
    StatusFetchError,
    SubmissionError,
)
from databricks_mcp.observability import (
    decrement_active_statements,
    get_logger,
    get_tracer,
    increment_active_statements,
    record_poll_attempts,
    record_statement_duration,
    record_statement_rows,
)
from databricks_mcp.statements.models import (
    ExecutionMetrics,
    ProgressEvent,
    ResultSet,
    StatementSnapshot,
    StatementState,
)

if TYPE_CHECKING:
    from databricks_mcp.config import Settings
    from databricks_mcp.statements.models import ProgressSink, StatementRequest
    from databricks_mcp.statements.resolver import WarehouseResolver
    from databricks_mcp.statements.sql_service import StatementService

logger = get_logger(__name__)

_OUTCOMES: dict[type[OperationError], str] = {
    StatementTimeoutError: "timeout",
    StatementCanceledError: "canceled",
}


class StatementOrchestrator:
    """Owns the submit, poll and assemble lifecycle of a statement.

    The orchestrator holds no per-statement state; one instance can serve
    concurrent invocations as long as the underlying client is safe for
    concurrent use.
    """

    def __init__(
        self,
        statements: StatementService,
        resolver: WarehouseResolver,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            statements: Statement primitives (submit, status, chunk, cancel).
            resolver: Warehouse resolver used when no warehouse is given.
            settings: Application settings. If None, uses cached settings.
        """
        config = (settings or get_settings()).statements
        self._statements = statements
        self._resolver = resolver
        self._poll_interval = config.poll_interval_seconds
        self._initial_wait = config.initial_wait_seconds

    @property
    def poll_interval(self) -> float:
        """Seconds between two status checks."""
        return self._poll_interval

    def max_attempts(self, timeout_seconds: float) -> int:
        """Number of status polls that fit in a time budget."""
        return int(timeout_seconds // self._poll_interval)

    async def execute(
        self,
        request: StatementRequest,
        progress: ProgressSink | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ResultSet:
        """Execute a statement and return its complete result.

        Args:
            request: The statement to run.
            progress: Receives a ProgressEvent before every wait. Optional.
            cancel_event: When set, the statement is canceled at the next check.

        Returns:
            ResultSet with the column manifest and all rows in chunk order.

        Raises:
            RemoteCallError: If listing warehouses, submitting, polling or
                fetching a chunk fails.
            NoWarehouseAvailableError: If no warehouse could be selected.
            StatementExecutionError: If the workspace reports a failure.
            StatementTimeoutError: If the statement outlives its budget.
            StatementCanceledError: If cancel_event was set.
            ProgressDeliveryError: If the progress sink fails.
        """
        metrics = ExecutionMetrics()
        outcome = "failed"
        increment_active_statements()
        try:
            with get_tracer().start_as_current_span("statement.execute") as span:
                await self._check_cancelled(cancel_event, None)
                warehouse_id = await self._resolver.resolve(request.warehouse_id)
                span.set_attribute("databricks.warehouse_id", warehouse_id)

                await self._check_cancelled(cancel_event, None)
                snapshot = await self._submit(request, warehouse_id)
                span.set_attribute("databricks.statement_id", snapshot.statement_id)

                try:
                    snapshot = await self._poll(
                        snapshot, request.timeout_seconds, progress, cancel_event, metrics
                    )
                    result = await self._assemble(snapshot, cancel_event, metrics)
                except asyncio.CancelledError:
                    outcome = "canceled"
                    await asyncio.shield(self._cancel_quietly(snapshot.statement_id))
                    raise

                metrics.complete(rows_returned=result.row_count)
                span.set_attribute("statement.rows_returned", result.row_count)
                outcome = "succeeded"
        except OperationError as e:
            outcome = _OUTCOMES.get(type(e), "failed")
            logger.warning(
                "statement_failed",
                error=e.message,
                error_type=type(e).__name__,
                poll_attempts=metrics.poll_attempts,
            )
            raise
        finally:
            decrement_active_statements()
            record_poll_attempts(metrics.poll_attempts)
            record_statement_duration(metrics.duration_seconds, outcome)

        record_statement_rows(result.row_count)
        logger.info(
            "statement_completed",
            statement_id=snapshot.statement_id,
            rows=result.row_count,
            chunks_fetched=metrics.chunks_fetched,
            poll_attempts=metrics.poll_attempts,
            duration_seconds=round(metrics.duration_seconds, 3),
        )
        return result

    async def _submit(self, request: StatementRequest, warehouse_id: str) -> StatementSnapshot:
        """Submit the statement, allowing a short server-side wait."""
        with get_tracer().start_as_current_span("statement.submit"):
            try:
                snapshot = await asyncio.to_thread(
                    self._statements.execute,
                    request.statement,
                    request.max_rows,
                    warehouse_id,
                    self._initial_wait,
                )
            except Exception as e:
                raise SubmissionError("Error executing SQL statement") from e

        logger.info(
            "statement_submitted",
            statement_id=snapshot.statement_id,
            warehouse_id=warehouse_id,
            state=snapshot.status.state.value,
        )
        return snapshot

    async def _poll(
        self,
        snapshot: StatementSnapshot,
        timeout_seconds: float,
        progress: ProgressSink | None,
        cancel_event: asyncio.Event | None,
        metrics: ExecutionMetrics,
    ) -> StatementSnapshot:
        """Poll until the statement leaves PENDING/RUNNING or the budget runs out."""
        max_attempts = self.max_attempts(timeout_seconds)
        attempts = 0

        with get_tracer().start_as_current_span("statement.poll") as span:
            while (
                attempts < max_attempts
                and snapshot.status.state.is_in_progress
                and not snapshot.status.has_error
            ):
                await self._check_cancelled(cancel_event, snapshot)

                if progress is not None:
                    elapsed = attempts * self._poll_interval
                    await self._emit(
                        progress,
                        ProgressEvent(
                            message=(
                                f"Statement execution in progress ({elapsed:g} seconds), "
                                f"current status: {snapshot.status.state.value}"
                            ),
                            progress=attempts,
                            total=max_attempts,
                        ),
                    )

                await self._pause(cancel_event)
                await self._check_cancelled(cancel_event, snapshot)

                snapshot = await self._fetch_status(snapshot.statement_id)
                attempts += 1
                metrics.poll_attempts = attempts

            span.set_attribute("statement.poll_attempts", attempts)
            span.set_attribute("statement.state", snapshot.status.state.value)

        status = snapshot.status
        if status.has_error:
            raise StatementExecutionError(status.error_message or "", status.state)

        if status.state.is_in_progress:
            await self._cancel_quietly(snapshot.statement_id)
            raise StatementTimeoutError(timeout_seconds, status.state)

        if status.state != StatementState.SUCCEEDED:
            raise StatementExecutionError("statement ended without a result", status.state)

        return snapshot

    async def _assemble(
        self,
        snapshot: StatementSnapshot,
        cancel_event: asyncio.Event | None,
        metrics: ExecutionMetrics,
    ) -> ResultSet:
        """Concatenate the first chunk with every following chunk, in order."""
        chunk = snapshot.first_chunk
        current_index = chunk.chunk_index
        rows = list(chunk.rows)

        with get_tracer().start_as_current_span("statement.assemble") as span:
            while chunk.has_more:
                next_index = chunk.next_chunk_index or 0
                if next_index <= current_index:
                    raise ChunkFetchError(
                        f"Result chunk {next_index} does not follow chunk {current_index}"
                    )

                await self._check_cancelled(cancel_event, snapshot)

                try:
                    chunk = await asyncio.to_thread(
                        self._statements.get_chunk, snapshot.statement_id, next_index
                    )
                except Exception as e:
                    raise ChunkFetchError(
                        f"Error getting statement result chunk {next_index}"
                    ) from e

                rows.extend(chunk.rows)
                current_index = next_index
                metrics.chunks_fetched += 1

            span.set_attribute("statement.chunks_fetched", metrics.chunks_fetched)

        return ResultSet(columns=list(snapshot.columns), rows=rows)

    async def _fetch_status(self, statement_id: str) -> StatementSnapshot:
        try:
            return await asyncio.to_thread(self._statements.get_status, statement_id)
        except Exception as e:
            raise StatusFetchError("Error getting statement status") from e

    async def _emit(self, progress: ProgressSink, event: ProgressEvent) -> None:
        try:
            await progress(event)
        except Exception as e:
            raise ProgressDeliveryError(
                "Could not deliver progress notification, caller disconnected"
            ) from e

    async def _pause(self, cancel_event: asyncio.Event | None) -> None:
        """Wait one poll interval, returning early if cancellation is signalled."""
        if cancel_event is None:
            await asyncio.sleep(self._poll_interval)
            return
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(cancel_event.wait(), timeout=self._poll_interval)

    async def _check_cancelled(
        self, cancel_event: asyncio.Event | None, snapshot: StatementSnapshot | None
    ) -> None:
        if cancel_event is None or not cancel_event.is_set():
            return
        state = None
        if snapshot is not None:
            state = snapshot.status.state
            await self._cancel_quietly(snapshot.statement_id)
        raise StatementCanceledError(state)

    async def _cancel_quietly(self, statement_id: str) -> None:
        """Best-effort cancellation; failures are logged, never raised."""
        try:
            await asyncio.to_thread(self._statements.cancel, statement_id)
        except Exception as e:
            logger.warning("statement_cancel_failed", statement_id=statement_id, error=str(e))
        else:
            logger.info("statement_cancel_requested", statement_id=statement_id)
