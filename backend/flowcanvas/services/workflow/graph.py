"""Directed graph over node ids.

Adjacency-list graph with forward and reverse lists, built from the edge
list of a WorkflowGraph. Used for ancestor closure (parameter resolver)
and terminal-node detection (validator).

Time Complexity:
- Edge addition: O(1)
- Ancestor closure: O(V + E)

Space Complexity: O(V + E)
"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Iterable

from flowcanvas.schemas.graph import Edge, Node


class Graph:
    """Directed graph keyed by node id.

    Edges whose endpoints are unknown are still recorded, so dangling
    references can be reported by the caller instead of being dropped.

    Example:
        >>> graph = Graph.from_workflow(nodes, edges)
        >>> graph.ancestors("end")
        ['llm-1', 'start']
    """

    __slots__ = ("_adjacency", "_edge_count", "_nodes", "_reverse_adjacency")

    def __init__(self) -> None:
        self._adjacency: defaultdict[str, list[str]] = defaultdict(list)
        self._reverse_adjacency: defaultdict[str, list[str]] = defaultdict(list)
        self._nodes: dict[str, None] = {}
        self._edge_count: int = 0

    @classmethod
    def from_workflow(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> Graph:
        """Build a graph from node and edge lists, preserving node order."""
        graph = cls()
        for node in nodes:
            graph.add_node(node.id)
        for edge in edges:
            graph.add_edge(edge.source, edge.target)
        return graph

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return self._edge_count

    def add_node(self, node_id: str) -> None:
        """Add a node. Adding an existing node is a no-op."""
        self._nodes.setdefault(node_id, None)

    def add_edge(self, source: str, target: str) -> None:
        """Add a directed edge. Endpoints are not added as nodes."""
        self._adjacency[source].append(target)
        self._reverse_adjacency[target].append(source)
        self._edge_count += 1

    def get_successors(self, node_id: str) -> list[str]:
        return self._adjacency.get(node_id, [])

    def get_predecessors(self, node_id: str) -> list[str]:
        return self._reverse_adjacency.get(node_id, [])

    def get_out_degree(self, node_id: str) -> int:
        return len(self._adjacency.get(node_id, []))

    def ancestors(self, node_id: str) -> list[str]:
        """Return every node that can reach ``node_id``.

        Breadth-first walk over reverse edges, guarded by a visited set so
        cycles terminate. Each ancestor appears once, nearest first. The
        node itself is never included, even when it lies on a cycle.

        Args:
            node_id: The node whose ancestors are wanted.

        Returns:
            Ancestor ids in discovery order.
        """
        visited: set[str] = {node_id}
        order: list[str] = []
        queue: deque[str] = deque([node_id])

        while queue:
            current = queue.popleft()
            for predecessor in self.get_predecessors(current):
                if predecessor in visited:
                    continue
                visited.add(predecessor)
                order.append(predecessor)
                queue.append(predecessor)

        return order

    def terminals(self) -> list[str]:
        """Nodes with no outgoing edge, in node order."""
        return [node_id for node_id in self._nodes if not self._adjacency.get(node_id)]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Graph(nodes={self.node_count}, edges={self.edge_count})"


__all__ = ["Graph"]
