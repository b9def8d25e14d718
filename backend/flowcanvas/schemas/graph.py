"""Pydantic schemas for the visual workflow graph.

This module defines the editable graph model: nodes with positions and
parameter bindings, directed edges with derived guard conditions, and the
WorkflowGraph aggregate that is snapshotted by the edit history and stored
verbatim as ``graphData``.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, ConfigDict, Field, model_validator

from flowcanvas.models.enums import (
    GlobalScope,
    NodeStatus,
    NodeType,
    ParamDataType,
    ParamSourceType,
)
from flowcanvas.schemas.base import BaseSchema


def make_edge_id(source: str, source_handle: str | None, target: str) -> str:
    """Derive the id of the edge joining ``source``/``source_handle`` to ``target``.

    Re-deriving the same logical connection always yields the same id.
    """
    return f"e-{source}-{source_handle or ''}-{target}"


# =============================================================================
# Parameter Schemas
# =============================================================================


class ParamDefinition(BaseSchema):
    """Declared input or output parameter of a node or global scope."""

    key: str = Field(
        default="",
        description="Parameter key, unique within its declaring list",
        examples=["prompt", "userInput"],
    )
    label: str = Field(default="", description="Display name")
    type: str = Field(
        default=ParamDataType.STRING.value,
        description="Declared data type (string/number/boolean/object/array/datetime)",
    )
    required: bool = False
    default_value: Any = None
    description: str | None = None


class ParamBinding(BaseSchema):
    """Binding of one node input to a global parameter or an upstream output.

    For ``node`` sources ``source_key`` is the producing node id and
    ``source_param`` its output key. For ``global`` sources ``source_key`` is
    the scope name (app/interface/session) and ``source_param`` the parameter
    key.
    """

    param_key: str = Field(..., description="Input key on the consuming node")
    source_type: ParamSourceType = Field(..., description="global or node")
    source_key: str = Field(..., description="Global scope name or producing node id")
    source_param: str | None = Field(
        default=None,
        description="Output key of the producing node (required for node sources)",
    )

    @property
    def is_node_source(self) -> bool:
        return self.source_type == ParamSourceType.NODE

    def resolve_global(self) -> tuple[GlobalScope, str] | None:
        """Return ``(scope, key)`` for a global binding, None for a node binding.

        Legacy shapes are accepted: ``sourceType`` spelled as the scope name,
        or an app-scope binding that stores the parameter key in ``sourceKey``.
        """
        if self.is_node_source:
            return None
        if self.source_type in (ParamSourceType.INTERFACE, ParamSourceType.SESSION):
            return GlobalScope(self.source_type), self.source_param or self.source_key
        try:
            scope = GlobalScope(self.source_key)
        except ValueError:
            return GlobalScope.APP, self.source_key
        return scope, self.source_param or ""


class ParamSource(BaseSchema):
    """A named group of bindable parameters offered to a parameter picker."""

    type: ParamSourceType
    source_key: str = Field(..., description="Scope name or producing node id")
    source_name: str
    params: list[ParamDefinition] = Field(default_factory=list)


# =============================================================================
# Node Schemas
# =============================================================================


class Position(BaseSchema):
    """Canvas position. Presentation only."""

    x: float = 0.0
    y: float = 0.0


class NodeData(BaseSchema):
    """Node payload: type, label, configuration and parameter wiring.

    Presentation keys the canvas adds (icon, colour, description ...) are kept
    as extra fields so stored graphs survive a load/save cycle unchanged.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    node_type: NodeType = Field(..., frozen=True)
    node_label: str = Field(
        default="",
        validation_alias=AliasChoices("nodeLabel", "node_label", "label"),
    )
    config: dict[str, Any] = Field(default_factory=dict)
    status: NodeStatus = NodeStatus.IDLE
    param_bindings: list[ParamBinding] = Field(default_factory=list)
    custom_input_params: list[ParamDefinition] = Field(default_factory=list)
    custom_output_params: list[ParamDefinition] = Field(default_factory=list)

    def get_binding(self, param_key: str) -> ParamBinding | None:
        for binding in self.param_bindings:
            if binding.param_key == param_key:
                return binding
        return None


class Node(BaseSchema):
    """Typed graph vertex. ``id`` and ``data.node_type`` never change."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1, frozen=True)
    type: str = Field(default="custom", description="Canvas component name")
    position: Position = Field(default_factory=Position)
    data: NodeData

    @model_validator(mode="after")
    def fill_data_id(self) -> Node:
        """Keep ``data.id`` in step with the node id."""
        if self.data.id is None:
            self.data.id = self.id
        return self

    @property
    def node_type(self) -> NodeType:
        return NodeType(self.data.node_type)

    @property
    def config(self) -> dict[str, Any]:
        return self.data.config

    @property
    def display_name(self) -> str:
        """Node label, falling back to the node id."""
        return self.data.node_label or self.id


# =============================================================================
# Edge Schemas
# =============================================================================


class Connection(BaseSchema):
    """A proposed edge, before it is accepted into the graph."""

    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None


class Edge(BaseSchema):
    """Directed arc between two nodes.

    ``condition`` is derived from the source node and handle; it is never
    edited directly.
    """

    model_config = ConfigDict(extra="allow")

    id: str = ""
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    label: str | None = None
    condition: str | None = None

    @model_validator(mode="before")
    @classmethod
    def lift_legacy_condition(cls, data: Any) -> Any:
        """Move a guard stored under ``data.condition`` onto the edge itself.

        Other ``data`` keys are kept; ``data`` is dropped once it is empty.
        """
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = dict(data)
            legacy = dict(data.pop("data"))
            condition = legacy.pop("condition", None)
            if data.get("condition") is None and condition:
                data["condition"] = condition
            if legacy:
                data["data"] = legacy
        return data

    @model_validator(mode="after")
    def derive_id(self) -> Edge:
        if not self.id:
            self.id = make_edge_id(self.source, self.source_handle, self.target)
        return self


# =============================================================================
# Aggregate
# =============================================================================


class WorkflowGraph(BaseSchema):
    """The node and edge lists of one workflow."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    def to_snapshot(self) -> str:
        """Serialize the full graph to JSON.

        The result shares nothing with the live objects, so later edits to
        the graph cannot alter a snapshot already taken.
        """
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_snapshot(cls, snapshot: str | bytes) -> WorkflowGraph:
        """Parse a snapshot produced by ``to_snapshot``.

        Raises:
            pydantic.ValidationError: If the snapshot is not a valid graph.
        """
        return cls.model_validate_json(snapshot)

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of_type(self, node_type: NodeType) -> list[Node]:
        return [node for node in self.nodes if node.node_type == node_type]

    @property
    def app_info_node(self) -> Node | None:
        """The singleton APP_INFO node, if present."""
        found = self.nodes_of_type(NodeType.APP_INFO)
        return found[0] if found else None

    @property
    def flow_nodes(self) -> list[Node]:
        """Nodes that take part in execution (everything except APP_INFO)."""
        return [node for node in self.nodes if node.node_type != NodeType.APP_INFO]


__all__ = [
    "Connection",
    "Edge",
    "Node",
    "NodeData",
    "ParamBinding",
    "ParamDefinition",
    "ParamSource",
    "Position",
    "WorkflowGraph",
    "make_edge_id",
]
