"""Mutable directed graphs and rooted spanning trees over them.

Vertices and edges are arbitrary objects exposing a mutable integer ``index``
attribute. The graph stamps that index when an object is added and sets it
back to -1 on removal, so that every lookup is a plain list access. ``Vertex``
and ``Edge`` wrap any payload with that attribute; mechanism bodies and joints
carry it themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import (
    Callable,
    Dict,
    Generic,
    Iterator,
    KeysView,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
V = TypeVar("V")
E = TypeVar("E")


class Vertex(Generic[T]):
    """Graph vertex wrapping ``data``."""

    __slots__ = ("data", "index")

    def __init__(self, data: T):
        self.data = data
        self.index = -1

    def __repr__(self) -> str:
        return f"Vertex({self.data!r})"


class Edge(Generic[T]):
    """Graph edge wrapping ``data``."""

    __slots__ = ("data", "index")

    def __init__(self, data: T):
        self.data = data
        self.index = -1

    def __repr__(self) -> str:
        return f"Edge({self.data!r})"


class _Neighbors(Generic[V]):
    """Re-iterable view of the vertices at the far end of a set of edges."""

    def __init__(self, edges: KeysView, endpoints: List[V]):
        self._edges = edges
        self._endpoints = endpoints

    def __iter__(self) -> Iterator[V]:
        return (self._endpoints[edge.index] for edge in self._edges)

    def __len__(self) -> int:
        return len(self._edges)


class DirectedGraph(Generic[V, E]):
    """Directed multigraph with dense, index-addressed vertex and edge storage.

    Incident edge sets are insertion ordered, so traversals are deterministic.

    Example:
        >>> g = DirectedGraph()
        >>> a, b = Vertex("a"), Vertex("b")
        >>> g.add_edge(a, b, Edge("ab"))
        DirectedGraph(2 vertices, 1 edges)
        >>> [v.data for v in g.out_neighbors(a)]
        ['b']
    """

    def __init__(self) -> None:
        self._vertices: List[V] = []
        self._edges: List[E] = []
        self._sources: List[V] = []
        self._targets: List[V] = []
        self._in_edges: List[Dict[E, None]] = []
        self._out_edges: List[Dict[E, None]] = []

    def __repr__(self) -> str:
        return f"DirectedGraph({self.num_vertices} vertices, {self.num_edges} edges)"

    @property
    def vertices(self) -> Sequence[V]:
        return self._vertices

    @property
    def edges(self) -> Sequence[E]:
        return self._edges

    @property
    def num_vertices(self) -> int:
        return len(self._vertices)

    @property
    def num_edges(self) -> int:
        return len(self._edges)

    def contains_vertex(self, vertex: V) -> bool:
        index = vertex.index
        return 0 <= index < len(self._vertices) and self._vertices[index] is vertex

    def contains_edge(self, edge: E) -> bool:
        index = edge.index
        return 0 <= index < len(self._edges) and self._edges[index] is edge

    def _check_vertex(self, vertex: V) -> None:
        if not self.contains_vertex(vertex):
            raise ValueError(f"{vertex!r} is not a vertex of this graph")

    def _check_edge(self, edge: E) -> None:
        if not self.contains_edge(edge):
            raise ValueError(f"{edge!r} is not an edge of this graph")

    def source(self, edge: E) -> V:
        return self._sources[edge.index]

    def target(self, edge: E) -> V:
        return self._targets[edge.index]

    def in_edges(self, vertex: V) -> KeysView:
        return self._in_edges[vertex.index].keys()

    def out_edges(self, vertex: V) -> KeysView:
        return self._out_edges[vertex.index].keys()

    def in_neighbors(self, vertex: V) -> _Neighbors[V]:
        return _Neighbors(self.in_edges(vertex), self._sources)

    def out_neighbors(self, vertex: V) -> _Neighbors[V]:
        return _Neighbors(self.out_edges(vertex), self._targets)

    def add_vertex(self, vertex: V) -> "DirectedGraph[V, E]":
        if self.contains_vertex(vertex):
            raise ValueError(f"{vertex!r} is already a vertex of this graph")
        vertex.index = len(self._vertices)
        self._vertices.append(vertex)
        self._in_edges.append({})
        self._out_edges.append({})
        logger.debug("Added vertex %r at index %d", vertex, vertex.index)
        return self

    def add_edge(self, source: V, target: V, edge: E) -> "DirectedGraph[V, E]":
        """Add ``edge`` from ``source`` to ``target``, adding missing endpoints."""
        if self.contains_edge(edge):
            raise ValueError(f"{edge!r} is already an edge of this graph")
        if not self.contains_vertex(source):
            self.add_vertex(source)
        if not self.contains_vertex(target):
            self.add_vertex(target)

        edge.index = len(self._edges)
        self._edges.append(edge)
        self._sources.append(source)
        self._targets.append(target)
        self._out_edges[source.index][edge] = None
        self._in_edges[target.index][edge] = None
        logger.debug("Added edge %r from %r to %r", edge, source, target)
        return self

    def remove_vertex(self, vertex: V) -> "DirectedGraph[V, E]":
        """Remove a disconnected vertex; later vertices shift down by one index."""
        self._check_vertex(vertex)
        index = vertex.index
        if self._in_edges[index] or self._out_edges[index]:
            raise ValueError(
                f"{vertex!r} must be disconnected from the rest of the graph before it can be removed "
                f"(in: {list(self._in_edges[index])}, out: {list(self._out_edges[index])})"
            )
        del self._vertices[index]
        del self._in_edges[index]
        del self._out_edges[index]
        for i in range(index, len(self._vertices)):
            self._vertices[i].index = i
        vertex.index = -1
        logger.debug("Removed vertex %r", vertex)
        return self

    def remove_edge(self, edge: E) -> "DirectedGraph[V, E]":
        """Detach and remove an edge; later edges shift down by one index."""
        self._check_edge(edge)
        index = edge.index
        del self._in_edges[self._targets[index].index][edge]
        del self._out_edges[self._sources[index].index][edge]
        del self._edges[index]
        del self._sources[index]
        del self._targets[index]
        for i in range(index, len(self._edges)):
            self._edges[i].index = i
        edge.index = -1
        logger.debug("Removed edge %r", edge)
        return self

    def rewire(self, edge: E, new_source: V, new_target: V) -> "DirectedGraph[V, E]":
        """Move ``edge`` to new endpoints, keeping its index."""
        self._check_edge(edge)
        self._check_vertex(new_source)
        self._check_vertex(new_target)
        index = edge.index
        old_source, old_target = self._sources[index], self._targets[index]

        del self._out_edges[old_source.index][edge]
        del self._in_edges[old_target.index][edge]
        self._sources[index] = new_source
        self._targets[index] = new_target
        self._out_edges[new_source.index][edge] = None
        self._in_edges[new_target.index][edge] = None
        logger.debug("Rewired edge %r to run from %r to %r", edge, new_source, new_target)
        return self

    def flip_direction(self, edge: E) -> "DirectedGraph[V, E]":
        """Reverse ``edge``. An edge with its own ``flip_direction()`` method is flipped first."""
        flip = getattr(edge, "flip_direction", None)
        if flip is not None:
            flip()
        return self.rewire(edge, self.target(edge), self.source(edge))


def first_edge(graph: DirectedGraph, frontier: List) -> object:
    """Default frontier policy: the oldest edge still on the frontier."""
    return frontier[0]


@dataclass(frozen=True)
class TreePath(Generic[E]):
    """The unique path between two vertices of a spanning tree.

    Attributes:
        source_to_lca: edges walked upward from the source to the lowest
            common ancestor, in walking order.
        target_to_lca: edges walked upward from the target to the lowest
            common ancestor; traverse them in reverse to walk down to the target.
    """
    source_to_lca: List[E] = field(default_factory=list)
    target_to_lca: List[E] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.source_to_lca) + len(self.target_to_lca)

    def __iter__(self) -> Iterator[Tuple[E, int]]:
        """Edges in walking order, paired with -1 (up) or +1 (down)."""
        for edge in self.source_to_lca:
            yield edge, -1
        for edge in reversed(self.target_to_lca):
            yield edge, 1

    def __str__(self) -> str:
        lines = [f"↑ {edge!r}" for edge in self.source_to_lca]
        lines += [f"↓ {edge!r}" for edge in reversed(self.target_to_lca)]
        return "\n".join(lines)


class SpanningTree(Generic[V, E]):
    """Rooted tree view over a ``DirectedGraph``.

    Tree edges are kept in construction order, which is parent-before-child.
    Each tree vertex has a tree index: 1 for the root, and one more than its
    parent otherwise, so ancestors always have smaller tree indices than their
    descendants. The underlying graph must not be restructured (vertex or edge
    removal) while a tree over it is in use.
    """

    def __init__(self, graph: DirectedGraph[V, E], edges: Sequence[E], root: Optional[V] = None):
        """Build a tree from an explicit edge sequence.

        Args:
            graph: the underlying graph.
            edges: exactly ``graph.num_vertices - 1`` edges, each leaving a
                vertex that an earlier edge (or the root) already added.
            root: required only when ``edges`` is empty.
        """
        n = graph.num_vertices
        if len(edges) != n - 1:
            raise ValueError(f"Expected {n - 1} edges for a spanning tree over {n} vertices, got {len(edges)}")
        self._build(graph, edges, root)

    @classmethod
    def from_root(
        cls,
        graph: DirectedGraph[V, E],
        root: V,
        next_edge: Callable[[DirectedGraph[V, E], List[E]], E] = first_edge,
    ) -> "SpanningTree[V, E]":
        """Grow a tree over every vertex reachable from ``root``.

        Args:
            graph: the underlying graph.
            root: root vertex.
            next_edge: picks the next tree edge from the frontier, a list of
                graph edges leaving the tree whose targets are not yet in it.
        """
        graph._check_vertex(root)
        in_tree = [False] * graph.num_vertices
        in_tree[root.index] = True
        edges: List[E] = []
        frontier = [e for e in graph.out_edges(root) if graph.target(e) is not root]

        while frontier:
            edge = next_edge(graph, frontier)
            child = graph.target(edge)
            edges.append(edge)
            in_tree[child.index] = True

            child_in_edges = graph.in_edges(child)
            frontier = [e for e in frontier if e not in child_in_edges]
            frontier.extend(e for e in graph.out_edges(child) if not in_tree[graph.target(e).index])

        tree = cls.__new__(cls)
        tree._build(graph, edges, root)
        return tree

    def _build(self, graph: DirectedGraph[V, E], edges: Sequence[E], root: Optional[V]) -> None:
        if root is None:
            if edges:
                root = graph.source(edges[0])
            elif graph.num_vertices == 1:
                root = graph.vertices[0]
            else:
                raise ValueError("The root of a spanning tree without edges must be given")
        graph._check_vertex(root)

        n = graph.num_vertices
        self._graph = graph
        self._root = root
        self._edges: List[E] = []
        self._edge_to_parent: List[Optional[E]] = [None] * n
        self._edges_to_children: List[Dict[E, None]] = [{} for _ in range(n)]
        self._tree_indices: List[int] = [0] * n  # 0: not in the tree
        self._edge_tree_indices: List[int] = []
        self._tree_indices[root.index] = 1

        for edge in edges:
            self._append(edge)
        logger.debug("Built spanning tree rooted at %r with %d edges", root, len(self._edges))

    def _append(self, edge: E) -> None:
        parent = self._graph.source(edge)
        child = self._graph.target(edge)
        if not self.contains_vertex(parent):
            raise ValueError(f"{edge!r} leaves {parent!r}, which is not yet part of the tree")
        if self.contains_vertex(child):
            raise ValueError(f"{edge!r} enters {child!r}, which is already part of the tree")

        self._edge_to_parent[child.index] = edge
        self._edges_to_children[parent.index][edge] = None
        self._tree_indices[child.index] = self._tree_indices[parent.index] + 1
        self._edges.append(edge)
        if len(self._edge_tree_indices) <= edge.index:
            self._edge_tree_indices.extend([-1] * (edge.index + 1 - len(self._edge_tree_indices)))
        self._edge_tree_indices[edge.index] = len(self._edges) - 1

    def add_edge(self, source: V, target: V, edge: E) -> "SpanningTree[V, E]":
        """Add ``edge`` to both the tree and the underlying graph.

        ``source`` must already be in the tree and ``target`` must not be.
        """
        if not self.contains_vertex(source):
            raise ValueError(f"{source!r} is not part of the tree")
        if self.contains_vertex(target):
            raise ValueError(f"{target!r} is already part of the tree")
        self._graph.add_edge(source, target, edge)

        grow = self._graph.num_vertices - len(self._tree_indices)
        self._edge_to_parent.extend([None] * grow)
        self._edges_to_children.extend({} for _ in range(grow))
        self._tree_indices.extend([0] * grow)
        self._append(edge)
        return self

    @property
    def graph(self) -> DirectedGraph[V, E]:
        return self._graph

    @property
    def root(self) -> V:
        return self._root

    @property
    def edges(self) -> Sequence[E]:
        return self._edges

    @property
    def vertices(self) -> List[V]:
        """Tree vertices, parents before children."""
        return [self._root] + [self._graph.target(edge) for edge in self._edges]

    @property
    def num_vertices(self) -> int:
        return len(self._edges) + 1

    @property
    def num_edges(self) -> int:
        return len(self._edges)

    def contains_vertex(self, vertex: V) -> bool:
        return (
            self._graph.contains_vertex(vertex)
            and vertex.index < len(self._tree_indices)
            and self._tree_indices[vertex.index] > 0
        )

    def contains_edge(self, edge: E) -> bool:
        return (
            self._graph.contains_edge(edge)
            and edge.index < len(self._edge_tree_indices)
            and self._edge_tree_indices[edge.index] >= 0
        )

    def _check_vertex(self, vertex: V) -> None:
        if not self.contains_vertex(vertex):
            raise ValueError(f"{vertex!r} is not part of the tree rooted at {self._root!r}")

    def source(self, edge: E) -> V:
        return self._graph.source(edge)

    def target(self, edge: E) -> V:
        return self._graph.target(edge)

    def edge_to_parent(self, vertex: V) -> E:
        self._check_vertex(vertex)
        if vertex is self._root:
            raise ValueError(f"The root {vertex!r} has no edge to a parent")
        return self._edge_to_parent[vertex.index]

    def edges_to_children(self, vertex: V) -> KeysView:
        self._check_vertex(vertex)
        return self._edges_to_children[vertex.index].keys()

    def in_edges(self, vertex: V) -> Tuple[E, ...]:
        return () if vertex is self._root else (self.edge_to_parent(vertex),)

    def out_edges(self, vertex: V) -> KeysView:
        return self.edges_to_children(vertex)

    def parent(self, vertex: V) -> V:
        return self._graph.source(self.edge_to_parent(vertex))

    def children(self, vertex: V) -> List[V]:
        return [self._graph.target(edge) for edge in self.edges_to_children(vertex)]

    def tree_index(self, vertex: V) -> int:
        self._check_vertex(vertex)
        return self._tree_indices[vertex.index]

    def edge_tree_index(self, edge: E) -> int:
        """Position of ``edge`` in ``self.edges``."""
        if not self.contains_edge(edge):
            raise ValueError(f"{edge!r} is not part of the tree")
        return self._edge_tree_indices[edge.index]

    def lowest_common_ancestor(self, v1: V, v2: V) -> V:
        self._check_vertex(v1)
        self._check_vertex(v2)
        while v1 is not v2:
            if self._tree_indices[v1.index] >= self._tree_indices[v2.index]:
                v1 = self.parent(v1)
            else:
                v2 = self.parent(v2)
        return v1

    def path(self, src: V, target: V) -> TreePath[E]:
        """Walk ``src`` and ``target`` up to their lowest common ancestor."""
        self._check_vertex(src)
        self._check_vertex(target)
        source_to_lca: List[E] = []
        target_to_lca: List[E] = []
        while src is not target:
            if self._tree_indices[src.index] >= self._tree_indices[target.index]:
                edge = self._edge_to_parent[src.index]
                source_to_lca.append(edge)
                src = self._graph.source(edge)
            else:
                edge = self._edge_to_parent[target.index]
                target_to_lca.append(edge)
                target = self._graph.source(edge)
        return TreePath(source_to_lca, target_to_lca)

    def __str__(self) -> str:
        lines: List[str] = []

        def visit(vertex: V, level: int) -> None:
            if vertex is self._root:
                description = f"Vertex: {vertex!r} (root)"
            else:
                description = f"Vertex: {vertex!r}, Edge: {self._edge_to_parent[vertex.index]!r}"
            lines.append("  " * level + description)
            for edge in self._edges_to_children[vertex.index]:
                visit(self._graph.target(edge), level + 1)

        visit(self._root, 0)
        return "\n".join(lines)
