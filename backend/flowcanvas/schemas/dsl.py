"""Pydantic schemas for the execution DSL and the persisted workflow pair.

The DSL is the normalized, execution-facing form of a workflow: an ordered
node list with inlined ``${scope.key}`` input references, plain edges and
an entry point. It is what the workflow engine consumes.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from flowcanvas.schemas.base import BaseSchema

# =============================================================================
# DSL Schemas
# =============================================================================


class DslNodeConfig(BaseSchema):
    """One executable node.

    ``inputs`` maps an input key to either a literal value or a reference
    expression such as ``${global.userName}`` or ``${llm-1.response}``.
    """

    id: str
    type: str = Field(..., description="Node type name")
    name: str = ""
    config: dict[str, Any] = Field(default_factory=dict)
    inputs: dict[str, Any] = Field(default_factory=dict)


class DslEdgeConfig(BaseSchema):
    """Directed edge between two DSL nodes with an optional guard."""

    from_: str = Field(..., alias="from")
    to: str
    condition: str | None = None


class WorkflowDsl(BaseSchema):
    """Normalized workflow definition consumed by the execution engine."""

    workflow_id: str | int | None = None
    name: str = ""
    entry_point: str = ""
    nodes: list[DslNodeConfig] = Field(default_factory=list)
    edges: list[DslEdgeConfig] = Field(default_factory=list)

    def get_node(self, node_id: str) -> DslNodeConfig | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_json(self) -> str:
        """Serialize with wire names (``entryPoint``, ``from`` ...)."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


# =============================================================================
# Persistence Schemas
# =============================================================================


class PersistedWorkflow(BaseSchema):
    """The two parallel JSON fields stored for a workflow.

    ``graph_data`` is the WorkflowGraph verbatim (positions included) and is
    authoritative on load. ``dsl_data`` is the WorkflowDsl and is only used
    to rebuild the graph when ``graph_data`` is missing or unreadable.
    """

    graph_data: str | None = None
    dsl_data: str | None = None


__all__ = [
    "DslEdgeConfig",
    "DslNodeConfig",
    "PersistedWorkflow",
    "WorkflowDsl",
]
