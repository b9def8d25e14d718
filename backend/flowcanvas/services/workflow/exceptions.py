"""Workflow decode exceptions.

Validation findings are reported as data; these exceptions are raised only
by the decode helpers (stored graph JSON, DSL JSON, history snapshots) and
are caught at the boundary that uses them.
"""

from typing import Any


class WorkflowError(Exception):
    """Base exception for workflow editing errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code.
        details: Additional error context as dictionary.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class GraphDecodeError(WorkflowError):
    """Raised when stored ``graphData`` cannot be parsed into a graph."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Invalid graph data: {reason}",
            error_code="GRAPH_DECODE_FAILED",
            details={"reason": reason},
        )
        self.reason = reason


class DslDecodeError(WorkflowError):
    """Raised when stored ``dslData`` cannot be parsed into a DSL document."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Invalid DSL data: {reason}",
            error_code="DSL_DECODE_FAILED",
            details={"reason": reason},
        )
        self.reason = reason


class SnapshotDecodeError(WorkflowError):
    """Raised when a history snapshot cannot be restored.

    Attributes:
        index: Position of the snapshot in the history stack.
    """

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(
            message=f"Corrupt history snapshot at index {index}: {reason}",
            error_code="SNAPSHOT_DECODE_FAILED",
            details={"index": index, "reason": reason},
        )
        self.index = index
        self.reason = reason


__all__ = [
    "DslDecodeError",
    "GraphDecodeError",
    "SnapshotDecodeError",
    "WorkflowError",
]
