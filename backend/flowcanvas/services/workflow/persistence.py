"""Load/save boundary for stored workflows.

A workflow is stored as two parallel JSON fields: ``graphData`` (the
editable graph, positions included) and ``dslData`` (the execution DSL).
On load ``graphData`` is authoritative; ``dslData`` is only used to rebuild
a graph when ``graphData`` is missing or unreadable, and a fresh START/END
graph is created when neither is usable.

The APP_INFO node is not part of either field. Its settings are stored on
the application itself and the node is re-created on load.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from flowcanvas.models.enums import GlobalScope, NodeStatus, NodeType
from flowcanvas.schemas.dsl import PersistedWorkflow, WorkflowDsl
from flowcanvas.schemas.graph import Node, NodeData, Position, WorkflowGraph
from flowcanvas.schemas.node_config import AppInfoConfig
from flowcanvas.schemas.validation import GraphValidationResult
from flowcanvas.services.workflow.catalog import NodeCatalog
from flowcanvas.services.workflow.dsl import DslConverter
from flowcanvas.services.workflow.exceptions import DslDecodeError, GraphDecodeError
from flowcanvas.services.workflow.params import get_global_params
from flowcanvas.services.workflow.validator import (
    CONFIG_FIELD_LABELS,
    GraphValidator,
    format_validation_errors,
)

logger = logging.getLogger(__name__)

APP_INFO_NODE_ID = "app-info"
APP_INFO_POSITION = Position(x=10, y=50)
DEFAULT_START_POSITION = Position(x=300, y=250)
DEFAULT_END_POSITION = Position(x=1000, y=250)


# =============================================================================
# Default Nodes
# =============================================================================


def _fixed_node(
    catalog: NodeCatalog,
    node_id: str,
    node_type: NodeType,
    position: Position,
    config: dict[str, Any] | None = None,
) -> Node:
    data = NodeData(
        id=node_id,
        node_type=node_type,
        node_label=catalog.get_label(node_type),
        config=config or {},
        status=NodeStatus.IDLE,
        **catalog.get_presentation(node_type),
    )
    return Node(id=node_id, position=position.model_copy(), data=data)


def create_default_graph(catalog: NodeCatalog | None = None) -> WorkflowGraph:
    """A new workflow: one START and one END node, not connected."""
    catalog = catalog or NodeCatalog.default()
    return WorkflowGraph(
        nodes=[
            _fixed_node(catalog, "start", NodeType.START, DEFAULT_START_POSITION),
            _fixed_node(catalog, "end", NodeType.END, DEFAULT_END_POSITION),
        ]
    )


def create_app_info_node(
    app_settings: Mapping[str, Any],
    catalog: NodeCatalog | None = None,
) -> Node:
    """Build the APP_INFO node from stored application settings.

    Args:
        app_settings: Application fields (``appName``, ``description``,
            ``icon``, ``prologue``, ``modelId``) and the declared scope
            lists, either at the top level or under ``parameters``.
        catalog: Catalog supplying the node's label and presentation keys.

    Returns:
        The APP_INFO node with id ``app-info``.
    """
    catalog = catalog or NodeCatalog.default()
    raw = dict(app_settings)
    raw.update(raw.pop("parameters", None) or {})
    app_info = AppInfoConfig.model_validate(raw)

    exclude = None if app_info.global_params else {"global_params"}
    config = app_info.model_dump(mode="json", by_alias=True, exclude_none=True, exclude=exclude)
    for key in ("appName", "description", "icon", "prologue"):
        config.setdefault(key, "")

    return _fixed_node(catalog, APP_INFO_NODE_ID, NodeType.APP_INFO, APP_INFO_POSITION, config)


def extract_app_parameters(graph: WorkflowGraph) -> dict[str, list[dict[str, Any]]] | None:
    """Scope parameter lists to store with the application, None without APP_INFO."""
    app_info = graph.app_info_node
    if app_info is None:
        return None
    scopes = get_global_params(app_info)
    return {scope.config_key: [param.to_wire() for param in scopes[scope]] for scope in GlobalScope}


# =============================================================================
# Decoding
# =============================================================================


def decode_graph_data(graph_data: str | bytes) -> WorkflowGraph:
    """Parse stored ``graphData``.

    Raises:
        GraphDecodeError: If the JSON is malformed or not a graph.
    """
    try:
        return WorkflowGraph.model_validate_json(graph_data)
    except ValidationError as e:
        raise GraphDecodeError(str(e)) from e


def decode_dsl(dsl_data: str | bytes) -> WorkflowDsl:
    """Parse stored ``dslData``.

    Raises:
        DslDecodeError: If the JSON is malformed or not a DSL document.
    """
    try:
        return WorkflowDsl.model_validate_json(dsl_data)
    except ValidationError as e:
        raise DslDecodeError(str(e)) from e


# =============================================================================
# Save / Load
# =============================================================================


def build_persisted_workflow(
    graph: WorkflowGraph,
    name: str,
    converter: DslConverter | None = None,
    workflow_id: str | int | None = None,
) -> PersistedWorkflow:
    """Serialize ``graph`` into the two stored fields.

    Both fields are produced from the same graph, so they never disagree.
    The APP_INFO node and any edge touching it are left out of both.
    """
    converter = converter or DslConverter()
    app_ids = {node.id for node in graph.nodes if node.node_type == NodeType.APP_INFO}
    stored = WorkflowGraph(
        nodes=[node for node in graph.nodes if node.id not in app_ids],
        edges=[
            edge
            for edge in graph.edges
            if edge.source not in app_ids and edge.target not in app_ids
        ],
    )
    dsl = converter.graph_to_dsl(stored, name, workflow_id=workflow_id)
    return PersistedWorkflow(
        graph_data=stored.model_dump_json(by_alias=True),
        dsl_data=dsl.to_json(),
    )


def load_workflow_graph(
    graph_data: str | bytes | None,
    dsl_data: str | bytes | None,
    converter: DslConverter | None = None,
    app_settings: Mapping[str, Any] | None = None,
    catalog: NodeCatalog | None = None,
) -> WorkflowGraph:
    """Rebuild the editable graph from the stored fields.

    Sources are tried in order: ``graph_data``, ``dsl_data``, a default
    START/END graph. A source that fails to decode is logged and skipped.
    When ``app_settings`` is given the APP_INFO node is added if missing.

    Args:
        graph_data: Stored graph JSON.
        dsl_data: Stored DSL JSON.
        converter: Converter used for the DSL fallback.
        app_settings: Application settings for the APP_INFO node.
        catalog: Catalog for default and APP_INFO nodes.

    Returns:
        The loaded graph.
    """
    catalog = catalog or NodeCatalog.default()
    graph: WorkflowGraph | None = None

    if graph_data:
        try:
            graph = decode_graph_data(graph_data)
        except GraphDecodeError as e:
            logger.warning(f"{e.message}; trying DSL data")

    if graph is None and dsl_data:
        try:
            graph = (converter or DslConverter()).dsl_to_graph(decode_dsl(dsl_data))
        except DslDecodeError as e:
            logger.warning(f"{e.message}; creating default graph")
        except ValidationError as e:
            logger.warning(f"DSL data could not be converted to a graph: {e}; creating default graph")

    if graph is None:
        graph = create_default_graph(catalog)

    if app_settings is not None and graph.app_info_node is None:
        graph.nodes.append(create_app_info_node(app_settings, catalog))

    logger.debug(f"Loaded workflow graph with {len(graph.nodes)} nodes and {len(graph.edges)} edges")
    return graph


# =============================================================================
# Publish Checks
# =============================================================================


def validate_app(graph: WorkflowGraph, validator: GraphValidator) -> GraphValidationResult:
    """Check that a workflow can be published.

    Three stages run in order and the first failing stage is reported:
    graph structure, per-node completeness of the flow nodes, then the
    application settings on the APP_INFO node.
    """
    structure = validator.validate_graph(graph)
    if not structure.valid:
        return structure

    nodes = validator.validate_workflow(graph.flow_nodes)
    if not nodes.valid:
        return GraphValidationResult(valid=False, errors=[format_validation_errors(nodes)])

    app_info = graph.app_info_node
    if app_info is not None:
        errors = [
            f"Missing required config: {CONFIG_FIELD_LABELS[key]}"
            for key in ("appName", "modelId")
            if not app_info.config.get(key)
        ]
        if errors:
            return GraphValidationResult(valid=False, errors=errors)

    return GraphValidationResult(valid=True)


__all__ = [
    "APP_INFO_NODE_ID",
    "build_persisted_workflow",
    "create_app_info_node",
    "create_default_graph",
    "decode_dsl",
    "decode_graph_data",
    "extract_app_parameters",
    "load_workflow_graph",
    "validate_app",
]
