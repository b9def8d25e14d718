"""Workflow editor: the mutation commands of the live graph.

Every edit of the node and edge lists goes through a named command on
``WorkflowEditor``. Each command notifies subscribed observers with a
``GraphMutation`` and closes with an end-of-batch event; commands run
inside an explicit ``batch()`` share a single end-of-batch event. The
edit history is one such observer.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Protocol

from flowcanvas.models.enums import MutationKind, NodeStatus, NodeType
from flowcanvas.schemas.graph import (
    Connection,
    Edge,
    Node,
    NodeData,
    ParamBinding,
    ParamDefinition,
    Position,
    WorkflowGraph,
)
from flowcanvas.services.workflow.catalog import NodeCatalog
from flowcanvas.services.workflow.connection import ConnectionRules, generate_edge_condition
from flowcanvas.services.workflow.diff import UPDATE_CONFIG_LABEL

logger = logging.getLogger(__name__)

DUPLICATE_OFFSET = 50.0

_TRAILING_NUMBER_RE = re.compile(r"\s*\d+$")


@dataclass(frozen=True)
class GraphMutation:
    """A single named edit.

    Attributes:
        kind: What changed.
        label: History label for the edit.
        coalesce: Whether rapid repeats of this edit may be merged into one
            history entry (config typing, binding changes).
        node_id: Node the edit concerns, if any.
        edge_id: Edge the edit concerns, if any.
    """

    kind: MutationKind
    label: str
    coalesce: bool = False
    node_id: str | None = None
    edge_id: str | None = None


class GraphObserver(Protocol):
    """Receiver of editor notifications."""

    def on_mutation(self, mutation: GraphMutation) -> None: ...

    def on_batch_end(self) -> None: ...


def generate_node_label(default_label: str, nodes: list[Node]) -> str:
    """Next auto-numbered label for a new node.

    Existing labels ``<default_label>`` (counted as 0) and
    ``<default_label> <n>`` are considered; the result is one past the
    highest number, or ``<default_label> 1`` when none match.
    """
    pattern = re.compile(rf"^{re.escape(default_label)}\s*(\d+)?$")
    indices: list[int] = []
    for node in nodes:
        match = pattern.match(node.data.node_label or "")
        if match:
            indices.append(int(match.group(1)) if match.group(1) else 0)

    if not indices:
        return f"{default_label} 1"
    return f"{default_label} {max(indices) + 1}"


class WorkflowEditor:
    """Owner of the live node and edge lists.

    Example:
        >>> editor = WorkflowEditor(name="Support Bot")
        >>> start = editor.create_node(NodeType.START)
        >>> llm = editor.create_node(NodeType.LLM_CHAT)
        >>> editor.connect(Connection(source=start.id, target=llm.id))
    """

    def __init__(
        self,
        catalog: NodeCatalog | None = None,
        rules: ConnectionRules | None = None,
        name: str = "",
    ) -> None:
        """Initialize an empty editor.

        Args:
            catalog: Node-type catalog. Defaults to the built-in catalog.
            rules: Connection rules. Defaults to rules built from the
                catalog's rule table.
            name: Workflow name.
        """
        self.catalog = catalog or NodeCatalog.default()
        self.rules = rules or ConnectionRules(self.catalog.connection_rules)
        self.name = name
        self.nodes: list[Node] = []
        self.edges: list[Edge] = []
        self.dirty: bool = False
        self._observers: list[GraphObserver] = []
        self._batch_depth: int = 0

    # =========================================================================
    # Observation
    # =========================================================================

    def subscribe(self, observer: GraphObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: GraphObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    @contextmanager
    def batch(self) -> Iterator[WorkflowEditor]:
        """Group commands so observers see one end-of-batch event.

        Batches nest; the event fires when the outermost batch exits, also
        when it exits with an exception.
        """
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                for observer in list(self._observers):
                    observer.on_batch_end()

    @property
    def in_batch(self) -> bool:
        return self._batch_depth > 0

    def _emit(self, mutation: GraphMutation) -> None:
        if mutation.kind != MutationKind.GRAPH_REPLACED:
            self.dirty = True
        with self.batch():
            for observer in list(self._observers):
                observer.on_mutation(mutation)

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def graph(self) -> WorkflowGraph:
        """Live view of the current graph (shares node and edge objects)."""
        return WorkflowGraph(nodes=self.nodes, edges=self.edges)

    def snapshot(self) -> str:
        return self.graph.to_snapshot()

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Edge | None:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def generate_node_label(self, default_label: str) -> str:
        return generate_node_label(default_label, self.nodes)

    def _new_node_id(self, node_type: NodeType) -> str:
        base = f"{node_type.value.lower()}-{int(time.time() * 1000)}"
        candidate = base
        suffix = 1
        while self.get_node(candidate) is not None:
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    def _missing(self, what: str, ident: str) -> None:
        logger.warning(f"Ignoring edit of unknown {what} {ident!r}")

    # =========================================================================
    # Node Commands
    # =========================================================================

    def add_node(self, node: Node) -> Node | None:
        """Add ``node`` to the graph.

        Returns:
            The added node, or None when its id is taken or it would be a
            second APP_INFO node.
        """
        if self.get_node(node.id) is not None:
            logger.warning(f"Node id {node.id!r} already exists")
            return None
        if node.node_type == NodeType.APP_INFO and self.graph.app_info_node is not None:
            logger.warning("Workflow already has an app info node")
            return None

        self.nodes.append(node)
        self._emit(
            GraphMutation(
                kind=MutationKind.NODE_ADDED,
                label=f"Add node [{node.display_name}]",
                node_id=node.id,
            )
        )
        return node

    def create_node(
        self,
        node_type: NodeType | str,
        position: Position | None = None,
        config: dict[str, Any] | None = None,
        node_id: str | None = None,
    ) -> Node | None:
        """Create a node of ``node_type`` from its catalog entry and add it.

        The label is auto-numbered from the catalog label.
        """
        node_type = NodeType(node_type)
        data = NodeData(
            node_type=node_type,
            node_label=self.generate_node_label(self.catalog.get_label(node_type)),
            config=dict(config or {}),
            **self.catalog.get_presentation(node_type),
        )
        node = Node(
            id=node_id or self._new_node_id(node_type),
            position=position or Position(),
            data=data,
        )
        return self.add_node(node)

    def remove_node(self, node_id: str) -> bool:
        """Remove a node together with every edge touching it."""
        node = self.get_node(node_id)
        if node is None:
            self._missing("node", node_id)
            return False

        self.nodes.remove(node)
        self.edges[:] = [
            edge for edge in self.edges if edge.source != node_id and edge.target != node_id
        ]
        self._emit(
            GraphMutation(
                kind=MutationKind.NODE_REMOVED,
                label=f"Delete node [{node.display_name}]",
                node_id=node_id,
            )
        )
        return True

    def duplicate_node(self, node_id: str, offset: float = DUPLICATE_OFFSET) -> Node | None:
        """Copy a node next to the original under a fresh id and label.

        Edges are not copied. APP_INFO cannot be duplicated.
        """
        original = self.get_node(node_id)
        if original is None:
            self._missing("node", node_id)
            return None
        if original.node_type == NodeType.APP_INFO:
            logger.warning("The app info node cannot be duplicated")
            return None

        new_id = self._new_node_id(original.node_type)
        base_label = _TRAILING_NUMBER_RE.sub("", original.data.node_label or "")
        base_label = base_label or self.catalog.get_label(original.node_type)

        data = original.data.model_copy(deep=True)
        data.id = new_id
        data.node_label = self.generate_node_label(base_label)
        data.status = NodeStatus.IDLE

        copy = Node(
            id=new_id,
            type=original.type,
            position=Position(x=original.position.x + offset, y=original.position.y + offset),
            data=data,
        )
        self.nodes.append(copy)
        self._emit(
            GraphMutation(
                kind=MutationKind.NODE_ADDED,
                label=f"Duplicate node [{original.display_name}] to [{copy.display_name}]",
                node_id=new_id,
            )
        )
        return copy

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        node = self.get_node(node_id)
        if node is None:
            self._missing("node", node_id)
            return False
        if node.position.x == x and node.position.y == y:
            return True

        node.position = Position(x=x, y=y)
        self._emit(
            GraphMutation(
                kind=MutationKind.NODE_MOVED,
                label=f"Move node [{node.display_name}]",
                coalesce=True,
                node_id=node_id,
            )
        )
        return True

    def update_node(
        self,
        node_id: str,
        node_label: str | None = None,
        status: NodeStatus | None = None,
        custom_input_params: list[ParamDefinition] | None = None,
        custom_output_params: list[ParamDefinition] | None = None,
    ) -> bool:
        """Update the editable fields of a node's data.

        The node id and type cannot be changed.
        """
        node = self.get_node(node_id)
        if node is None:
            self._missing("node", node_id)
            return False

        if node_label is not None:
            node.data.node_label = node_label
        if status is not None:
            node.data.status = status
        if custom_input_params is not None:
            node.data.custom_input_params = list(custom_input_params)
        if custom_output_params is not None:
            node.data.custom_output_params = list(custom_output_params)

        self._emit(
            GraphMutation(
                kind=MutationKind.NODE_UPDATED,
                label=UPDATE_CONFIG_LABEL,
                coalesce=True,
                node_id=node_id,
            )
        )
        return True

    def update_node_config(
        self,
        node_id: str,
        changes: dict[str, Any],
        replace: bool = False,
    ) -> bool:
        """Merge ``changes`` into a node's config (or replace it).

        Edges leaving an intent classifier get their guards re-derived,
        since the intent list may have changed.
        """
        node = self.get_node(node_id)
        if node is None:
            self._missing("node", node_id)
            return False

        node.data.config = dict(changes) if replace else {**node.data.config, **changes}

        if node.node_type == NodeType.INTENT_CLASSIFIER:
            self._rederive_conditions(node)

        self._emit(
            GraphMutation(
                kind=MutationKind.NODE_UPDATED,
                label=UPDATE_CONFIG_LABEL,
                coalesce=True,
                node_id=node_id,
            )
        )
        return True

    def _rederive_conditions(self, source: Node) -> None:
        for edge in self.edges:
            if edge.source != source.id:
                continue
            previous = edge.condition
            edge.condition = generate_edge_condition(source, edge.source_handle)
            if edge.label is not None and edge.label == previous:
                edge.label = edge.condition

    def set_param_binding(self, node_id: str, binding: ParamBinding) -> bool:
        """Bind an input, replacing any existing binding of the same key."""
        node = self.get_node(node_id)
        if node is None:
            self._missing("node", node_id)
            return False

        bindings = [b for b in node.data.param_bindings if b.param_key != binding.param_key]
        position = next(
            (
                index
                for index, existing in enumerate(node.data.param_bindings)
                if existing.param_key == binding.param_key
            ),
            len(bindings),
        )
        bindings.insert(position, binding)
        node.data.param_bindings = bindings

        self._emit(
            GraphMutation(
                kind=MutationKind.NODE_UPDATED,
                label=UPDATE_CONFIG_LABEL,
                coalesce=True,
                node_id=node_id,
            )
        )
        return True

    def remove_param_binding(self, node_id: str, param_key: str) -> bool:
        node = self.get_node(node_id)
        if node is None:
            self._missing("node", node_id)
            return False
        if node.data.get_binding(param_key) is None:
            return False

        node.data.param_bindings = [
            b for b in node.data.param_bindings if b.param_key != param_key
        ]
        self._emit(
            GraphMutation(
                kind=MutationKind.NODE_UPDATED,
                label=UPDATE_CONFIG_LABEL,
                coalesce=True,
                node_id=node_id,
            )
        )
        return True

    # =========================================================================
    # Edge Commands
    # =========================================================================

    def connect(self, connection: Connection) -> Edge | None:
        """Add the edge for ``connection`` if the rules allow it.

        Returns:
            The new edge with its derived guard, or None when rejected.
        """
        if not self.rules.can_connect(connection, self.nodes, self.edges):
            logger.info(f"Rejected connection {connection.source} -> {connection.target}")
            return None

        source = self.get_node(connection.source)
        target = self.get_node(connection.target)
        edge = self.rules.build_edge(source, connection)
        self.edges.append(edge)
        self._emit(
            GraphMutation(
                kind=MutationKind.EDGE_ADDED,
                label=f"[{source.display_name}] connected to [{target.display_name}]",
                edge_id=edge.id,
            )
        )
        return edge

    def reconnect_edge(self, edge_id: str, connection: Connection) -> Edge | None:
        """Move an existing edge to new endpoints, keeping its list position."""
        old_edge = self.get_edge(edge_id)
        if old_edge is None:
            self._missing("edge", edge_id)
            return None
        if not self.rules.can_connect(connection, self.nodes, self.edges, ignore_edge_id=edge_id):
            logger.info(f"Rejected reconnection of {edge_id} to {connection.target}")
            return None

        source = self.get_node(connection.source)
        target = self.get_node(connection.target)
        edge = self.rules.build_edge(source, connection)
        self.edges[self.edges.index(old_edge)] = edge
        self._emit(
            GraphMutation(
                kind=MutationKind.EDGE_UPDATED,
                label=f"Reconnect [{source.display_name}] to [{target.display_name}]",
                edge_id=edge.id,
            )
        )
        return edge

    def remove_edge(self, edge_id: str) -> bool:
        edge = self.get_edge(edge_id)
        if edge is None:
            self._missing("edge", edge_id)
            return False

        self.edges.remove(edge)
        self._emit(
            GraphMutation(
                kind=MutationKind.EDGE_REMOVED,
                label="Delete connection",
                edge_id=edge_id,
            )
        )
        return True

    # =========================================================================
    # Whole-graph Commands
    # =========================================================================

    def replace_graph(
        self,
        graph: WorkflowGraph,
        label: str = "Replace graph",
        mark_dirty: bool = True,
    ) -> None:
        """Replace both lists with deep copies of ``graph``'s lists."""
        self.nodes = [node.model_copy(deep=True) for node in graph.nodes]
        self.edges = [edge.model_copy(deep=True) for edge in graph.edges]
        if mark_dirty:
            self.dirty = True
        self._emit(GraphMutation(kind=MutationKind.GRAPH_REPLACED, label=label))

    def clear(self) -> None:
        self.nodes = []
        self.edges = []
        self.dirty = True
        self._emit(GraphMutation(kind=MutationKind.GRAPH_REPLACED, label="Clear canvas"))

    # =========================================================================
    # Save State
    # =========================================================================

    def mark_dirty(self) -> None:
        self.dirty = True

    def mark_saved(self, saved: bool = True) -> None:
        """Record a save attempt; a failed save leaves the editor dirty."""
        if saved:
            self.dirty = False

    def __repr__(self) -> str:
        return f"WorkflowEditor(name={self.name!r}, nodes={len(self.nodes)}, edges={len(self.edges)})"


__all__ = [
    "DUPLICATE_OFFSET",
    "GraphMutation",
    "GraphObserver",
    "WorkflowEditor",
    "generate_node_label",
]
