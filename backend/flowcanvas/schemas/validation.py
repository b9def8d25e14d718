"""Pydantic schemas for graph and per-node validation reports.

Validation findings are returned as data, never raised. The shapes follow
the contract the canvas renders: ``{valid, errors}`` for structural checks
and ``{valid, nodeErrors}`` for per-node checks.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from flowcanvas.schemas.base import BaseSchema

# =============================================================================
# Validation Enums
# =============================================================================


class GraphValidationCode(str, Enum):
    """Structural validation error codes."""

    EMPTY_GRAPH = "EMPTY_GRAPH"
    NO_START_NODE = "NO_START_NODE"
    MULTIPLE_START_NODES = "MULTIPLE_START_NODES"
    NO_TERMINAL_NODE = "NO_TERMINAL_NODE"
    MULTIPLE_TERMINAL_NODES = "MULTIPLE_TERMINAL_NODES"
    INVALID_TERMINAL_NODE = "INVALID_TERMINAL_NODE"
    END_HAS_OUTGOING_EDGE = "END_HAS_OUTGOING_EDGE"
    DANGLING_EDGE_SOURCE = "DANGLING_EDGE_SOURCE"
    DANGLING_EDGE_TARGET = "DANGLING_EDGE_TARGET"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Structural Validation
# =============================================================================


class GraphIssue(BaseSchema):
    """A single structural finding with the nodes and edges it concerns."""

    code: GraphValidationCode
    message: str
    node_ids: list[str] = Field(default_factory=list)
    edge_ids: list[str] = Field(default_factory=list)


class GraphValidationResult(BaseSchema):
    """Result of the structural graph checks.

    ``errors`` holds the rendered messages in check order; ``issues`` carries
    the same findings with codes and affected ids.
    """

    valid: bool
    errors: list[str] = Field(default_factory=list)
    issues: list[GraphIssue] = Field(default_factory=list)


# =============================================================================
# Per-node Validation
# =============================================================================


class NodeValidationError(BaseSchema):
    """All findings for one node."""

    node_id: str
    node_name: str
    node_type: str
    errors: list[str] = Field(default_factory=list)


class WorkflowValidationResult(BaseSchema):
    valid: bool
    node_errors: list[NodeValidationError] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(len(entry.errors) for entry in self.node_errors)


__all__ = [
    "GraphIssue",
    "GraphValidationCode",
    "GraphValidationResult",
    "NodeValidationError",
    "WorkflowValidationResult",
]
