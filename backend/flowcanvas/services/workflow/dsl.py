"""Graph <-> DSL converter.

``graph_to_dsl`` produces the execution-facing WorkflowDsl: APP_INFO is
left out, configs are copied verbatim and parameter bindings are inlined
as ``${prefix.key}`` reference expressions. ``dsl_to_graph`` rebuilds an
editable graph from a DSL document, laying nodes out on a fresh grid and
recovering intent-classifier handles from the edge guards.

The reverse direction is best effort: a guard naming an intent that the
source node no longer declares becomes an unconditioned edge.
"""

from __future__ import annotations

import logging
import math
import re

from flowcanvas.core.config import settings
from flowcanvas.models.enums import GlobalScope, NodeType, ParamSourceType
from flowcanvas.schemas.dsl import DslEdgeConfig, DslNodeConfig, WorkflowDsl
from flowcanvas.schemas.graph import (
    Edge,
    Node,
    NodeData,
    ParamBinding,
    Position,
    WorkflowGraph,
    make_edge_id,
)
from flowcanvas.services.workflow.connection import (
    ELSE_HANDLE,
    generate_edge_condition,
    intent_handle,
    read_intent_config,
)

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_POINT = "start"

_REFERENCE_RE = re.compile(r"^\$\{([^{}]+)\}$")
_INTENT_CONDITION_RE = re.compile(r"^\s*intent\s*==\s*'(.*)'\s*$")

# DSL reference prefix -> global scope.
_PREFIX_SCOPES: dict[str, GlobalScope] = {scope.dsl_prefix: scope for scope in GlobalScope}


def render_binding(binding: ParamBinding) -> str | None:
    """Render a binding as a DSL reference expression.

    Returns:
        ``${global.key}``, ``${interface.key}``, ``${session.key}`` or
        ``${nodeId.key}``; None when the binding is incomplete.
    """
    resolved = binding.resolve_global()
    if resolved is not None:
        scope, key = resolved
        return f"${{{scope.dsl_prefix}.{key}}}" if key else None
    if not binding.source_key or not binding.source_param:
        return None
    return f"${{{binding.source_key}.{binding.source_param}}}"


def parse_reference(param_key: str, expression: object) -> ParamBinding | None:
    """Parse a ``${prefix.key}`` input back into a binding.

    The expression is split on its first ``.``; a reserved scope prefix
    gives a global binding, anything else is a producing node id.
    Literal values return None.
    """
    if not isinstance(expression, str):
        return None
    match = _REFERENCE_RE.match(expression.strip())
    if match is None:
        return None
    prefix, dot, key = match.group(1).partition(".")
    if not dot or not prefix or not key:
        return None

    scope = _PREFIX_SCOPES.get(prefix)
    if scope is not None:
        return ParamBinding(
            param_key=param_key,
            source_type=ParamSourceType.GLOBAL,
            source_key=scope.value,
            source_param=key,
        )
    return ParamBinding(
        param_key=param_key,
        source_type=ParamSourceType.NODE,
        source_key=prefix,
        source_param=key,
    )


class DslConverter:
    """Bidirectional converter between WorkflowGraph and WorkflowDsl.

    Example:
        >>> converter = DslConverter()
        >>> dsl = converter.graph_to_dsl(graph, "Support Bot")
        >>> restored = converter.dsl_to_graph(dsl)
    """

    def __init__(
        self,
        origin: float | None = None,
        column_spacing: float | None = None,
        row_spacing: float | None = None,
    ) -> None:
        """Initialize the converter.

        Args:
            origin: Top-left offset of the generated grid layout.
            column_spacing: Horizontal distance between grid columns.
            row_spacing: Vertical distance between grid rows.
        """
        self.origin = settings.DSL_LAYOUT_ORIGIN if origin is None else origin
        self.column_spacing = (
            settings.DSL_LAYOUT_COLUMN_SPACING if column_spacing is None else column_spacing
        )
        self.row_spacing = settings.DSL_LAYOUT_ROW_SPACING if row_spacing is None else row_spacing

    # =========================================================================
    # Graph -> DSL
    # =========================================================================

    def graph_to_dsl(
        self,
        graph: WorkflowGraph,
        name: str,
        workflow_id: str | int | None = None,
    ) -> WorkflowDsl:
        """Convert an editable graph into the execution DSL.

        Args:
            graph: The graph to convert.
            name: Workflow name written to the DSL.
            workflow_id: Optional id of the stored workflow.

        Returns:
            The WorkflowDsl. Its entry point is the START node id, else the
            first node id, else ``"start"`` for an empty graph.
        """
        flow_nodes = graph.flow_nodes
        flow_ids = {node.id for node in flow_nodes}

        starts = [node for node in flow_nodes if node.node_type == NodeType.START]
        if starts:
            entry_point = starts[0].id
        elif flow_nodes:
            entry_point = flow_nodes[0].id
        else:
            entry_point = DEFAULT_ENTRY_POINT

        nodes = [self._node_to_dsl(node) for node in flow_nodes]
        edges = [
            DslEdgeConfig(
                from_=edge.source,
                to=edge.target,
                condition=edge.label or edge.condition,
            )
            for edge in graph.edges
            if edge.source in flow_ids and edge.target in flow_ids
        ]

        return WorkflowDsl(
            workflow_id=workflow_id,
            name=name,
            entry_point=entry_point,
            nodes=nodes,
            edges=edges,
        )

    @staticmethod
    def _node_to_dsl(node: Node) -> DslNodeConfig:
        inputs: dict[str, str] = {}
        for binding in node.data.param_bindings:
            expression = render_binding(binding)
            if expression is None:
                logger.debug(f"Skipping incomplete binding {binding.param_key!r} on {node.id}")
                continue
            inputs[binding.param_key] = expression

        return DslNodeConfig(
            id=node.id,
            type=node.node_type.value,
            name=node.data.node_label or node.id,
            config=dict(node.config),
            inputs=inputs,
        )

    # =========================================================================
    # DSL -> Graph
    # =========================================================================

    def calculate_node_position(self, index: int, total: int) -> Position:
        """Grid position of the ``index``-th of ``total`` nodes."""
        cols = max(1, math.ceil(math.sqrt(total)))
        row, col = divmod(index, cols)
        return Position(
            x=self.origin + col * self.column_spacing,
            y=self.origin + row * self.row_spacing,
        )

    def dsl_to_graph(self, dsl: WorkflowDsl) -> WorkflowGraph:
        """Rebuild an editable graph from a DSL document.

        Positions are generated fresh. Reference inputs become bindings and
        literal inputs are dropped. Unknown node types become LLM_CHAT.

        Args:
            dsl: The DSL document.

        Returns:
            The reconstructed WorkflowGraph.
        """
        total = len(dsl.nodes)
        nodes = [self._node_from_dsl(node, index, total) for index, node in enumerate(dsl.nodes)]
        by_id = {node.id: node for node in nodes}

        edges: list[Edge] = []
        seen: set[str] = set()
        for dsl_edge in dsl.edges:
            edge = self._edge_from_dsl(dsl_edge, by_id.get(dsl_edge.from_))
            if edge.id in seen:
                logger.warning(f"Dropping duplicate DSL edge {edge.source} -> {edge.target}")
                continue
            seen.add(edge.id)
            edges.append(edge)

        return WorkflowGraph(nodes=nodes, edges=edges)

    def _node_from_dsl(self, dsl_node: DslNodeConfig, index: int, total: int) -> Node:
        try:
            node_type = NodeType(dsl_node.type)
        except ValueError:
            logger.warning(
                f"Unknown node type {dsl_node.type!r} on {dsl_node.id}, using {NodeType.LLM_CHAT}"
            )
            node_type = NodeType.LLM_CHAT

        bindings: list[ParamBinding] = []
        for param_key, expression in dsl_node.inputs.items():
            binding = parse_reference(param_key, expression)
            if binding is not None:
                bindings.append(binding)

        return Node(
            id=dsl_node.id,
            position=self.calculate_node_position(index, total),
            data=NodeData(
                id=dsl_node.id,
                node_type=node_type,
                node_label=dsl_node.name,
                config=dict(dsl_node.config),
                param_bindings=bindings,
            ),
        )

    @staticmethod
    def recover_source_handle(source_node: Node | None, condition: str | None) -> str | None:
        """Map an intent guard back to the output handle that produced it.

        Returns:
            ``else`` or ``intent-<n>`` for an intent-classifier source whose
            config still names the intent, otherwise None.
        """
        if source_node is None or not condition:
            return None
        if source_node.node_type != NodeType.INTENT_CLASSIFIER:
            return None
        match = _INTENT_CONDITION_RE.match(condition)
        if match is None:
            return None

        intent = match.group(1)
        if intent == ELSE_HANDLE:
            return ELSE_HANDLE

        config = read_intent_config(source_node)
        index = config.index_of(intent) if config is not None else None
        if index is None:
            logger.info(
                f"Intent {intent!r} no longer configured on {source_node.id}, "
                "edge restored without condition"
            )
            return None
        return intent_handle(index)

    def _edge_from_dsl(self, dsl_edge: DslEdgeConfig, source_node: Node | None) -> Edge:
        handle = self.recover_source_handle(source_node, dsl_edge.condition)
        condition = (
            generate_edge_condition(source_node, handle)
            if source_node is not None and handle is not None
            else None
        )
        return Edge(
            id=make_edge_id(dsl_edge.from_, handle, dsl_edge.to),
            source=dsl_edge.from_,
            target=dsl_edge.to,
            source_handle=handle,
            condition=condition,
        )


__all__ = [
    "DEFAULT_ENTRY_POINT",
    "DslConverter",
    "parse_reference",
    "render_binding",
]
