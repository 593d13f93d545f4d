"""Error taxonomy shared by the tool handlers and the statement orchestrator.

Every error is terminal for the invocation that raised it. Remote failures
are wrapped rather than retried, so the underlying SDK exception is always
available through ``__cause__``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from databricks_mcp.statements.models import StatementState


class OperationError(Exception):
    """Base class for errors reported back to the tool caller."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def causes(self) -> list[str]:
        """Return the messages of the chained causes, outermost first."""
        chain: list[str] = []
        seen: set[int] = {id(self)}
        cause = self.__cause__
        while cause is not None and id(cause) not in seen:
            seen.add(id(cause))
            chain.append(str(cause) or type(cause).__name__)
            cause = cause.__cause__
        return chain


class ParameterValidationError(OperationError):
    """Raised when a required parameter is missing or malformed."""


class UnknownOperationError(OperationError):
    """Raised when a tool name is not in the operation table."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown operation: {name}")
        self.name = name


class FilterError(OperationError):
    """Raised when a table name pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid table name pattern {pattern!r}: {reason}")
        self.pattern = pattern


class RemoteCallError(OperationError):
    """Raised when a call to the Databricks workspace fails."""


class SubmissionError(RemoteCallError):
    """Raised when a statement cannot be submitted."""


class StatusFetchError(RemoteCallError):
    """Raised when the status of a submitted statement cannot be fetched."""


class ChunkFetchError(RemoteCallError):
    """Raised when a result chunk cannot be fetched."""


class NoWarehouseAvailableError(OperationError):
    """Raised when no SQL warehouse is available to run a statement."""

    def __init__(self) -> None:
        super().__init__("No warehouses available")


class StatementExecutionError(OperationError):
    """Raised when the workspace reports that a statement failed."""

    def __init__(self, message: str, state: StatementState) -> None:
        super().__init__(f"Error executing the statement, current status {state.value}: {message}")
        self.remote_message = message
        self.state = state


class StatementTimeoutError(OperationError):
    """Raised when a statement is still running after its time budget."""

    def __init__(self, timeout_seconds: float, state: StatementState) -> None:
        super().__init__(
            f"Statement did not finish within {timeout_seconds:g}s, "
            f"current status {state.value}, canceled execution"
        )
        self.timeout_seconds = timeout_seconds
        self.state = state


class StatementCanceledError(OperationError):
    """Raised when the caller cancels a statement before it completes."""

    def __init__(self, state: StatementState | None) -> None:
        status = state.value if state is not None else "NOT_SUBMITTED"
        super().__init__(f"Statement execution was canceled, current status {status}")
        self.state = state


class ProgressDeliveryError(OperationError):
    """Raised when a progress event cannot be delivered to the caller."""
