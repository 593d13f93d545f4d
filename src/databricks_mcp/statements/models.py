"""Data models for statement execution.

Provides dataclasses for:
- Statement requests and remote statement snapshots
- Result chunks and assembled result sets
- Progress events and execution metrics
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from databricks_mcp.errors import ParameterValidationError

Row = list[str | None]


class StatementState(str, Enum):
    """Statement execution states as reported by the workspace."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"

    @property
    def is_in_progress(self) -> bool:
        """Check if the statement may still change state."""
        return self in (StatementState.PENDING, StatementState.RUNNING)

    @property
    def is_terminal(self) -> bool:
        """Check if the statement is in a terminal state."""
        return not self.is_in_progress


@dataclass(frozen=True)
class StatementRequest:
    """A single execute_sql invocation."""

    statement: str
    max_rows: int = 100
    timeout_seconds: float = 60
    warehouse_id: str | None = None

    def __post_init__(self) -> None:
        if not self.statement or not self.statement.strip():
            raise ParameterValidationError("statement must not be empty")
        if self.max_rows < 0:
            raise ParameterValidationError("max_rows must be a non-negative integer")
        if self.timeout_seconds < 0:
            raise ParameterValidationError("timeout must not be negative")


@dataclass(frozen=True)
class StatementStatus:
    """Remote status of a statement."""

    state: StatementState
    error_message: str | None = None

    @property
    def has_error(self) -> bool:
        return self.error_message is not None


@dataclass(frozen=True)
class Column:
    """A column of the result manifest."""

    name: str
    type_name: str | None = None
    type_text: str | None = None
    position: int | None = None


@dataclass
class ResultChunk:
    """An ordered slice of a statement result."""

    rows: list[Row] = field(default_factory=list)
    chunk_index: int = 0
    next_chunk_index: int | None = None

    @property
    def has_more(self) -> bool:
        """Check if another chunk follows this one (0 and None both end the result)."""
        return bool(self.next_chunk_index)


@dataclass
class StatementSnapshot:
    """One observation of a submitted statement.

    Holds the handle assigned at submission, the current status and, once the
    statement has succeeded, the column manifest and the first result chunk.
    """

    statement_id: str
    status: StatementStatus
    columns: list[Column] = field(default_factory=list)
    first_chunk: ResultChunk = field(default_factory=ResultChunk)


@dataclass
class ResultSet:
    """Fully assembled statement result."""

    columns: list[Column]
    rows: list[Row]

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification emitted while a statement is polled."""

    message: str
    progress: int
    total: int


ProgressSink = Callable[[ProgressEvent], Awaitable[None]]


@dataclass
class ExecutionMetrics:
    """Metrics collected during statement orchestration."""

    start_time: float = field(default_factory=time.time)
    end_time: float | None = None
    poll_attempts: int = 0
    chunks_fetched: int = 0
    rows_returned: int = 0

    @property
    def duration_seconds(self) -> float:
        """Get orchestration duration in seconds."""
        end = self.end_time or time.time()
        return end - self.start_time

    def complete(self, rows_returned: int = 0) -> None:
        """Mark orchestration as complete and record final metrics."""
        self.end_time = time.time()
        self.rows_returned = rows_returned
