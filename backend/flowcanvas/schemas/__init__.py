"""Pydantic schemas for graph, DSL, catalog, history and validation data."""

from flowcanvas.schemas.base import BaseSchema
from flowcanvas.schemas.catalog import NodeDefinition
from flowcanvas.schemas.dsl import (
    DslEdgeConfig,
    DslNodeConfig,
    PersistedWorkflow,
    WorkflowDsl,
)
from flowcanvas.schemas.graph import (
    Connection,
    Edge,
    Node,
    NodeData,
    ParamBinding,
    ParamDefinition,
    ParamSource,
    Position,
    WorkflowGraph,
    make_edge_id,
)
from flowcanvas.schemas.history import HistoryItem
from flowcanvas.schemas.node_config import (
    AppInfoConfig,
    IntentClassifierConfig,
    NodeConfigBase,
    parse_node_config,
)
from flowcanvas.schemas.validation import (
    GraphIssue,
    GraphValidationCode,
    GraphValidationResult,
    NodeValidationError,
    WorkflowValidationResult,
)

__all__ = [
    "AppInfoConfig",
    "BaseSchema",
    "Connection",
    "DslEdgeConfig",
    "DslNodeConfig",
    "Edge",
    "GraphIssue",
    "GraphValidationCode",
    "GraphValidationResult",
    "HistoryItem",
    "IntentClassifierConfig",
    "Node",
    "NodeConfigBase",
    "NodeData",
    "NodeDefinition",
    "NodeValidationError",
    "ParamBinding",
    "ParamDefinition",
    "ParamSource",
    "PersistedWorkflow",
    "Position",
    "WorkflowDsl",
    "WorkflowGraph",
    "WorkflowValidationResult",
    "make_edge_id",
    "parse_node_config",
]
