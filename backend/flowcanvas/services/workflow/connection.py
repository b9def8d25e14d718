"""Connection rules between node types and edge guard derivation.

An edge is legal when the target node type is in the source type's allow
list and no equivalent edge exists yet. The allow list comes from the
catalog's dynamic rule table when one was loaded; that table then fully
replaces the built-in fallback below.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence

from pydantic import ValidationError

from flowcanvas.models.enums import NodeType
from flowcanvas.schemas.graph import Connection, Edge, Node, make_edge_id
from flowcanvas.schemas.node_config import IntentClassifierConfig

logger = logging.getLogger(__name__)

ELSE_HANDLE = "else"
INTENT_HANDLE_PREFIX = "intent-"

_INTENT_HANDLE_RE = re.compile(r"^intent-(\d+)$")

FALLBACK_CONNECTION_RULES: dict[NodeType, tuple[NodeType, ...]] = {
    NodeType.START: (
        NodeType.LLM_CHAT,
        NodeType.INTENT_CLASSIFIER,
        NodeType.CONDITION,
        NodeType.FIXED_RESPONSE,
        NodeType.DB_QUERY,
        NodeType.KNOWLEDGE_RETRIEVAL,
    ),
    NodeType.LLM_CHAT: (
        NodeType.END,
        NodeType.LLM_CHAT,
        NodeType.CONDITION,
        NodeType.FIXED_RESPONSE,
        NodeType.DB_QUERY,
        NodeType.KNOWLEDGE_RETRIEVAL,
    ),
    NodeType.INTENT_CLASSIFIER: (
        NodeType.LLM_CHAT,
        NodeType.CONDITION,
        NodeType.FIXED_RESPONSE,
        NodeType.END,
        NodeType.DB_QUERY,
        NodeType.KNOWLEDGE_RETRIEVAL,
    ),
    NodeType.CONDITION: (
        NodeType.LLM_CHAT,
        NodeType.FIXED_RESPONSE,
        NodeType.END,
        NodeType.DB_QUERY,
        NodeType.KNOWLEDGE_RETRIEVAL,
    ),
    NodeType.DB_QUERY: (
        NodeType.END,
        NodeType.LLM_CHAT,
        NodeType.CONDITION,
        NodeType.FIXED_RESPONSE,
    ),
    NodeType.KNOWLEDGE_RETRIEVAL: (
        NodeType.LLM_CHAT,
        NodeType.CONDITION,
        NodeType.END,
    ),
    NodeType.FIXED_RESPONSE: (NodeType.END,),
    NodeType.END: (),
    NodeType.APP_INFO: (),
}


def intent_handle(index: int) -> str:
    """Output handle id of the intent at ``index``."""
    return f"{INTENT_HANDLE_PREFIX}{index}"


def read_intent_config(node: Node) -> IntentClassifierConfig | None:
    """Parse an intent classifier config, None when it cannot be read."""
    try:
        return IntentClassifierConfig.model_validate(node.config)
    except ValidationError as e:
        logger.warning(f"Ignoring unreadable intent config on {node.id}: {e}")
        return None


def generate_edge_condition(source_node: Node, source_handle: str | None) -> str | None:
    """Derive the guard of an edge leaving ``source_node`` through ``source_handle``.

    Only intent classifiers produce guards. The ``else`` handle maps to
    ``intent == 'else'`` and ``intent-<n>`` to the n-th configured intent.
    Every other node type, an unknown handle or an out-of-range index
    yields None (unconditional edge).

    Args:
        source_node: The node the edge leaves.
        source_handle: The output handle the edge is attached to.

    Returns:
        The guard expression, or None.
    """
    if source_node.node_type != NodeType.INTENT_CLASSIFIER or not source_handle:
        return None

    if source_handle == ELSE_HANDLE:
        return "intent == 'else'"

    match = _INTENT_HANDLE_RE.match(source_handle)
    if match is None:
        return None

    config = read_intent_config(source_node)
    intent = config.intent_at(int(match.group(1))) if config is not None else None
    if intent is None:
        return None
    return f"intent == '{intent}'"


class ConnectionRules:
    """Node-type transition rules.

    Example:
        >>> rules = ConnectionRules()
        >>> rules.is_valid_connection(NodeType.START, NodeType.LLM_CHAT)
        True
        >>> ConnectionRules({"START": ["END"]}).is_valid_connection("LLM_CHAT", "END")
        False
    """

    def __init__(self, rules: Mapping[str, Sequence[str]] | None = None) -> None:
        """Initialize the rules.

        Args:
            rules: Dynamic allow list per source type. When non-empty it is
                used exclusively; types missing from it allow no targets.
        """
        self._dynamic: dict[str, frozenset[str]] = {
            str(source): frozenset(str(target) for target in targets)
            for source, targets in (rules or {}).items()
        }

    @property
    def uses_fallback(self) -> bool:
        return not self._dynamic

    def allowed_targets(self, source_type: NodeType | str) -> frozenset[str]:
        """Target types a node of ``source_type`` may connect to."""
        if self._dynamic:
            return self._dynamic.get(str(source_type), frozenset())
        try:
            targets = FALLBACK_CONNECTION_RULES.get(NodeType(source_type), ())
        except ValueError:
            return frozenset()
        return frozenset(target.value for target in targets)

    def is_valid_connection(self, source_type: NodeType | str, target_type: NodeType | str) -> bool:
        """Whether an edge from ``source_type`` to ``target_type`` is allowed."""
        return str(target_type) in self.allowed_targets(source_type)

    def can_connect(
        self,
        connection: Connection,
        nodes: Iterable[Node],
        edges: Iterable[Edge],
        ignore_edge_id: str | None = None,
    ) -> bool:
        """Check whether a proposed edge may be added to the graph.

        The edge must join two existing, distinct nodes whose types are
        allowed to connect, and no other edge may already join the same
        source handle to the same target. Two empty handles are equal.

        Args:
            connection: The proposed edge.
            nodes: Current nodes.
            edges: Current edges.
            ignore_edge_id: Edge excluded from the duplicate check, used
                when an existing edge is being reconnected.

        Returns:
            True if the edge may be added.
        """
        if connection.source == connection.target:
            return False

        by_id = {node.id: node for node in nodes}
        source = by_id.get(connection.source)
        target = by_id.get(connection.target)
        if source is None or target is None:
            return False

        if not self.is_valid_connection(source.node_type, target.node_type):
            logger.debug(
                f"Connection {source.node_type} -> {target.node_type} is not allowed"
            )
            return False

        handle = connection.source_handle or ""
        for edge in edges:
            if ignore_edge_id is not None and edge.id == ignore_edge_id:
                continue
            if (
                edge.source == connection.source
                and edge.target == connection.target
                and (edge.source_handle or "") == handle
            ):
                return False
        return True

    @staticmethod
    def build_edge(source_node: Node, connection: Connection) -> Edge:
        """Create the edge for an accepted connection with its derived guard."""
        return Edge(
            id=make_edge_id(connection.source, connection.source_handle, connection.target),
            source=connection.source,
            target=connection.target,
            source_handle=connection.source_handle,
            target_handle=connection.target_handle,
            condition=generate_edge_condition(source_node, connection.source_handle),
        )


__all__ = [
    "ELSE_HANDLE",
    "FALLBACK_CONNECTION_RULES",
    "INTENT_HANDLE_PREFIX",
    "ConnectionRules",
    "generate_edge_condition",
    "intent_handle",
    "make_edge_id",
    "read_intent_config",
]
