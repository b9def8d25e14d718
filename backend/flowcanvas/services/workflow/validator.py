"""Workflow graph validator.

Structural checks over the whole graph (entry, terminal and edge
invariants) and per-node completeness checks (required bindings, required
config fields, custom parameter keys). Findings are collected and returned
as data; validation always runs to completion.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from flowcanvas.models.enums import NodeType
from flowcanvas.schemas.dsl import WorkflowDsl
from flowcanvas.schemas.graph import Node, ParamDefinition, WorkflowGraph
from flowcanvas.schemas.validation import (
    GraphIssue,
    GraphValidationCode,
    GraphValidationResult,
    NodeValidationError,
    WorkflowValidationResult,
)
from flowcanvas.services.workflow.catalog import NodeCatalog
from flowcanvas.services.workflow.graph import Graph

logger = logging.getLogger(__name__)

# Config keys that must be present and non-empty, per node type.
REQUIRED_CONFIG_FIELDS: dict[NodeType, tuple[str, ...]] = {
    NodeType.LLM_CHAT: ("modelId",),
    NodeType.INTENT_CLASSIFIER: ("modelId", "intents"),
    NodeType.DB_QUERY: ("modelId", "dataSourceId"),
    NodeType.SQL_GENERATE: ("modelId", "dataSourceId"),
    NodeType.SQL_EXECUTE: ("dataSourceId",),
    NodeType.FIXED_RESPONSE: ("content",),
    NodeType.APP_INFO: ("appName", "modelId"),
}

CONFIG_FIELD_LABELS: dict[str, str] = {
    "modelId": "Model",
    "intents": "Intents",
    "dataSourceId": "Data Source",
    "content": "Response Content",
    "appName": "App Name",
    "customResponse": "Custom Response",
}

END_OUTPUT_PARAM = "finalOutput"


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list):
        return not any(not _is_empty(item) for item in value)
    if isinstance(value, dict):
        return not value
    return False


def validate_node_params(node: Node, input_params: Sequence[ParamDefinition]) -> GraphValidationResult:
    """Check that every required input param of ``node`` has a binding."""
    errors: list[str] = []
    for param in input_params:
        if param.required and node.data.get_binding(param.key) is None:
            errors.append(f"Missing required parameter: {param.label or param.key}")
    return GraphValidationResult(valid=not errors, errors=errors)


def format_validation_errors(result: WorkflowValidationResult) -> str:
    """Render per-node findings as a multi-line message, empty when valid."""
    if result.valid:
        return ""

    lines: list[str] = ["The following nodes have incomplete configuration:"]
    for node_error in result.node_errors:
        lines.append(f"\n[{node_error.node_name}]")
        lines.extend(f"  - {error}" for error in node_error.errors)
    return "\n".join(lines)


class GraphValidator:
    """Structural and per-node workflow validation.

    Example:
        >>> validator = GraphValidator(NodeCatalog.default())
        >>> result = validator.validate_graph(graph)
        >>> if not result.valid:
        ...     print(result.errors)
    """

    def __init__(self, catalog: NodeCatalog) -> None:
        self.catalog = catalog

    # =========================================================================
    # Structural Checks
    # =========================================================================

    def validate_graph(self, graph: WorkflowGraph) -> GraphValidationResult:
        """Check the structural invariants of ``graph``.

        Findings are collected in this order: empty graph, START count,
        terminal nodes, outgoing edges from END, dangling edge endpoints.
        APP_INFO nodes are ignored by the topology checks.

        Args:
            graph: The graph to validate.

        Returns:
            GraphValidationResult with every finding.
        """
        issues: list[GraphIssue] = []
        flow_nodes = graph.flow_nodes
        node_ids = {node.id for node in graph.nodes}

        if not flow_nodes:
            issues.append(
                GraphIssue(
                    code=GraphValidationCode.EMPTY_GRAPH,
                    message="Workflow must contain at least one node",
                )
            )

        issues.extend(self._check_start_nodes(flow_nodes))
        if flow_nodes:
            issues.extend(self._check_terminal_nodes(graph, flow_nodes))
        issues.extend(self._check_end_outgoing(graph, flow_nodes))
        issues.extend(self._check_dangling_edges(graph, node_ids))

        if issues:
            logger.debug(f"Graph validation found {len(issues)} issue(s)")
        return GraphValidationResult(
            valid=not issues,
            errors=[issue.message for issue in issues],
            issues=issues,
        )

    def _check_start_nodes(self, flow_nodes: list[Node]) -> list[GraphIssue]:
        starts = [node for node in flow_nodes if node.node_type == NodeType.START]
        if not starts:
            return [
                GraphIssue(
                    code=GraphValidationCode.NO_START_NODE,
                    message="Workflow must contain a start node",
                )
            ]
        if len(starts) > 1:
            return [
                GraphIssue(
                    code=GraphValidationCode.MULTIPLE_START_NODES,
                    message=f"Workflow must contain exactly one start node, found {len(starts)}",
                    node_ids=[node.id for node in starts],
                )
            ]
        return []

    def _check_terminal_nodes(self, graph: WorkflowGraph, flow_nodes: list[Node]) -> list[GraphIssue]:
        topology = Graph.from_workflow(flow_nodes, graph.edges)
        terminal_ids = set(topology.terminals())
        terminals = [node for node in flow_nodes if node.id in terminal_ids]

        if not terminals:
            return [
                GraphIssue(
                    code=GraphValidationCode.NO_TERMINAL_NODE,
                    message="Workflow must have a terminal end node with no outgoing connection",
                )
            ]
        if len(terminals) > 1:
            labels = ", ".join(node.display_name for node in terminals)
            return [
                GraphIssue(
                    code=GraphValidationCode.MULTIPLE_TERMINAL_NODES,
                    message=(
                        f"Workflow must have exactly one terminal node, "
                        f"found {len(terminals)}: {labels}"
                    ),
                    node_ids=[node.id for node in terminals],
                )
            ]

        terminal = terminals[0]
        if terminal.node_type != NodeType.END:
            return [
                GraphIssue(
                    code=GraphValidationCode.INVALID_TERMINAL_NODE,
                    message=f"Terminal node {terminal.display_name} must be an end node",
                    node_ids=[terminal.id],
                )
            ]
        return []

    def _check_end_outgoing(self, graph: WorkflowGraph, flow_nodes: list[Node]) -> list[GraphIssue]:
        issues: list[GraphIssue] = []
        for node in flow_nodes:
            if node.node_type != NodeType.END:
                continue
            outgoing = [edge.id for edge in graph.edges if edge.source == node.id]
            if outgoing:
                issues.append(
                    GraphIssue(
                        code=GraphValidationCode.END_HAS_OUTGOING_EDGE,
                        message=f"End node {node.display_name} must not have outgoing connections",
                        node_ids=[node.id],
                        edge_ids=outgoing,
                    )
                )
        return issues

    def _check_dangling_edges(self, graph: WorkflowGraph, node_ids: set[str]) -> list[GraphIssue]:
        issues: list[GraphIssue] = []
        for index, edge in enumerate(graph.edges):
            if edge.source not in node_ids:
                issues.append(
                    GraphIssue(
                        code=GraphValidationCode.DANGLING_EDGE_SOURCE,
                        message=f"Edge {index}: source node {edge.source} does not exist",
                        edge_ids=[edge.id],
                    )
                )
            if edge.target not in node_ids:
                issues.append(
                    GraphIssue(
                        code=GraphValidationCode.DANGLING_EDGE_TARGET,
                        message=f"Edge {index}: target node {edge.target} does not exist",
                        edge_ids=[edge.id],
                    )
                )
        return issues

    # =========================================================================
    # Per-node Checks
    # =========================================================================

    def validate_workflow(self, nodes: Sequence[Node]) -> WorkflowValidationResult:
        """Check every node for missing bindings, config fields and param keys.

        Independent of the edge topology.

        Args:
            nodes: Nodes to check.

        Returns:
            WorkflowValidationResult listing each node with findings.
        """
        node_errors: list[NodeValidationError] = []
        for node in nodes:
            errors = self.validate_node(node)
            if errors:
                node_errors.append(
                    NodeValidationError(
                        node_id=node.id,
                        node_name=node.data.node_label or self.catalog.get_label(node.node_type),
                        node_type=node.node_type.value,
                        errors=errors,
                    )
                )
        return WorkflowValidationResult(valid=not node_errors, node_errors=node_errors)

    def validate_node(self, node: Node) -> list[str]:
        """All findings for a single node."""
        config = node.config
        input_params = self.catalog.get_input_params(node.node_type)
        errors: list[str] = []

        required_config = list(REQUIRED_CONFIG_FIELDS.get(node.node_type, ()))
        if node.node_type == NodeType.END and config.get("isCustomResponse"):
            required_config.append("customResponse")
            input_params = [param for param in input_params if param.key != END_OUTPUT_PARAM]

        errors.extend(validate_node_params(node, input_params).errors)

        for key in required_config:
            if _is_empty(config.get(key)):
                errors.append(f"Missing required config: {CONFIG_FIELD_LABELS.get(key, key)}")

        for index, param in enumerate(node.data.custom_input_params, start=1):
            if not param.key.strip():
                errors.append(f"Custom input parameter #{index} has an empty key")
        for index, param in enumerate(node.data.custom_output_params, start=1):
            if not param.key.strip():
                errors.append(f"Custom output parameter #{index} has an empty key")

        return errors

    # =========================================================================
    # DSL Checks
    # =========================================================================

    @staticmethod
    def validate_dsl(dsl: WorkflowDsl) -> GraphValidationResult:
        """Check a DSL document's name, entry point and edge references."""
        errors: list[str] = []
        node_ids = {node.id for node in dsl.nodes}

        if not dsl.name:
            errors.append("Workflow name must not be empty")
        if not dsl.entry_point:
            errors.append("Entry point must not be empty")
        if not dsl.nodes:
            errors.append("Workflow must contain at least one node")
        if dsl.entry_point and dsl.entry_point not in node_ids:
            errors.append(f"Entry node {dsl.entry_point} does not exist")

        for index, edge in enumerate(dsl.edges):
            if edge.from_ not in node_ids:
                errors.append(f"Edge {index}: source node {edge.from_} does not exist")
            if edge.to not in node_ids:
                errors.append(f"Edge {index}: target node {edge.to} does not exist")

        return GraphValidationResult(valid=not errors, errors=errors)


__all__ = [
    "CONFIG_FIELD_LABELS",
    "REQUIRED_CONFIG_FIELDS",
    "GraphValidator",
    "format_validation_errors",
    "validate_node_params",
]
