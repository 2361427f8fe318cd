"""The dependent graph returned by a reverse dependency query."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import networkx as nx
from graphviz import Digraph

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


class DependentGraph(nx.DiGraph):
    """A directed graph from a release to the releases that depend on it.

    Nodes are node keys (``package@version``). An edge ``u -> v`` means that ``v`` has a requirement that
    resolves to ``u``. The graph is a fresh value owned by the caller; it shares nothing with the index.
    """

    def __init__(self, incoming_graph_data: Any = None, root: str | None = None, **attr: object) -> None:  # noqa: ANN401
        """Initialize a dependent graph.

        Args:
            incoming_graph_data: Anything accepted by :class:`networkx.DiGraph`
            root: Node key of the queried release
            attr: Graph attributes

        """
        super().__init__(incoming_graph_data, **attr)
        if root is not None:
            self.graph["root"] = root
        self.graph.setdefault("truncated", False)

    @property
    def root(self) -> str | None:
        """Get the node key of the queried release."""
        return self.graph.get("root")

    @property
    def truncated(self) -> bool:
        """Check whether the query was cancelled before the graph was complete."""
        return bool(self.graph.get("truncated", False))

    @truncated.setter
    def truncated(self, value: bool) -> None:
        self.graph["truncated"] = bool(value)

    def add_dependent(self, node: str, dependent: str) -> None:
        """Record ``dependent`` as a release depending on ``node``. Self-dependencies are ignored."""
        if node == dependent:
            logger.debug("Ignoring self-dependency of %s", node)
            return
        self.add_edge(node, dependent)

    def dependents_of(self, node: str) -> frozenset[str]:
        """Get the direct dependents of ``node``."""
        if node not in self:
            return frozenset()
        return frozenset(self.successors(node))

    def dependents(self) -> frozenset[str]:
        """Get every release in the graph other than the queried one."""
        return frozenset(node for node in self if node != self.root)

    def merge(self, other: nx.DiGraph) -> DependentGraph:
        """Merge ``other`` into this graph, in place, and return this graph.

        This is a true union: for every node of either graph, the resulting set of dependents is the union of its
        dependents in both graphs.
        """
        self.add_nodes_from(other.nodes)
        self.add_edges_from(other.edges)
        if isinstance(other, DependentGraph) and other.truncated:
            self.truncated = True
        return self

    def to_dict(self) -> dict[str, set[str]]:
        """Return the graph as a mapping from each node with dependents to the set of its dependents."""
        return {node: set(successors) for node, successors in self.adj.items() if successors}

    def depth_of(self, node: str) -> int:
        """Return the number of dependency hops from the queried release to ``node``.

        If there is no root or no path from the root, return -1.
        """
        if self.root is None or self.root not in self:
            return -1
        lengths: dict[str, int] = nx.single_source_shortest_path_length(self, self.root)
        return lengths.get(node, -1)

    def to_obj(self) -> dict[str, Any]:
        """Convert graph to a JSON-serializable dictionary."""
        return {
            "root": self.root,
            "truncated": self.truncated,
            "dependents": {node: sorted(successors) for node, successors in sorted(self.to_dict().items())},
        }

    def to_dot(self, nodes: Iterable[str] | None = None) -> Digraph:
        """Render a Graphviz Dot graph with edges pointing from each release to its dependents.

        If nodes is not None, only those nodes and the edges between them are rendered.
        """
        if nodes is None:
            nodes = list(self)
        nodes = set(nodes)
        dot = Digraph(comment=f"Dependents of {self.root}" if self.root else None)
        node_ids: dict[str, str] = {}

        def add_node(key: str) -> str:
            if key not in node_ids:
                node_ids[key] = f"release{len(node_ids)}"
                shape = "doubleoctagon" if key == self.root else "rectangle"
                dot.node(node_ids[key], label=key, shape=shape)
            return node_ids[key]

        for key in sorted(nodes):
            add_node(key)
        for u, v in sorted(self.edges):
            if u in nodes and v in nodes:
                dot.edge(add_node(u), add_node(v))
        return dot
