"""
HNSW graph data structures.

This module defines the core data structures for storing the HNSW graph:
- LayerGraph: Undirected adjacency for a single layer
- HNSWNode: A stored record plus the highest layer it participates in
- HNSWGraph: Container owning all nodes, the layer stack and the entry point

Nodes live in one arena (a list) owned by HNSWGraph and are referred to by
their position in it everywhere else: layer adjacency lists and the entry
point store integers, never node objects. Layer 0 contains every node; a node
drawn at level L is a member of layers 0..L.
"""

from typing import Callable, Dict, Iterator, List

import numpy as np
import numpy.typing as npt

from hnswdb.errors import DimensionMismatch
from hnswdb.hnsw.distance import DistanceFn, get_metric
from hnswdb.hnsw.utils import (
    DEFAULT_MAX_LEVEL,
    default_level_multiplier,
    select_neighbors_heuristic,
)
from hnswdb.record import VectorRecord

Vector = npt.NDArray[np.float32]


class LayerGraph:
    """
    Undirected proximity graph for one HNSW layer.

    Holds the set of node indices present at this layer and, for each, its
    neighbor list in insertion order. The degree cap is not enforced by
    connect(); callers trim over-full nodes with prune().
    """

    def __init__(self, level: int) -> None:
        self.level = level
        # {node_index: [neighbor_index, ...]}; dict order is membership order
        self._adjacency: Dict[int, List[int]] = {}

    def add_node(self, node: int) -> None:
        """Make a node a member of this layer (no-op if already present)."""
        self._adjacency.setdefault(node, [])

    def __contains__(self, node: object) -> bool:
        return node in self._adjacency

    def __len__(self) -> int:
        return len(self._adjacency)

    def __iter__(self) -> Iterator[int]:
        return iter(self._adjacency)

    def neighbors(self, node: int) -> List[int]:
        """
        Get the neighbors of a node at this layer.

        Returns:
            Neighbor indices in insertion order, empty if the node is absent
        """
        return list(self._adjacency.get(node, ()))

    def degree(self, node: int) -> int:
        return len(self._adjacency.get(node, ()))

    def connect(self, a: int, b: int) -> None:
        """
        Add a mutual edge between two member nodes.

        Raises:
            ValueError: If either node is not a member or a == b
        """
        if a == b:
            raise ValueError(f"Cannot connect node {a} to itself")
        if a not in self._adjacency or b not in self._adjacency:
            raise ValueError(f"Node not found at layer {self.level}: {a} or {b}")

        if b not in self._adjacency[a]:
            self._adjacency[a].append(b)
        if a not in self._adjacency[b]:
            self._adjacency[b].append(a)

    def disconnect(self, a: int, b: int) -> None:
        """Remove the edge between two nodes in both directions, if present."""
        if b in self._adjacency.get(a, ()):
            self._adjacency[a].remove(b)
        if a in self._adjacency.get(b, ()):
            self._adjacency[b].remove(a)

    def set_neighbors(self, node: int, neighbors: List[int]) -> None:
        """
        Replace a node's neighbor list verbatim, preserving its order.

        No symmetry is enforced; used when restoring an already validated snapshot.
        """
        if node not in self._adjacency:
            raise ValueError(f"Node {node} not present at layer {self.level}")
        self._adjacency[node] = list(neighbors)

    def prune(
        self,
        node: int,
        limit: int,
        pair_distance: Callable[[int, int], float],
        keep_pruned: bool = True,
    ) -> List[int]:
        """
        Trim a node's neighbor list down to `limit` entries.

        Which neighbors survive is decided by the diversity heuristic; every
        dropped edge is removed on both ends.

        Args:
            node: Node to trim
            limit: Maximum degree to keep
            pair_distance: Distance between two node indices
            keep_pruned: Passed to the selection heuristic

        Returns:
            The neighbor indices that were disconnected
        """
        if node not in self._adjacency:
            raise ValueError(f"Node {node} not present at layer {self.level}")

        current = self._adjacency[node]
        if len(current) <= limit:
            return []

        candidates = [(pair_distance(node, other), other) for other in current]
        kept = set(select_neighbors_heuristic(candidates, limit, pair_distance, keep_pruned))

        removed = [other for other in current if other not in kept]
        for other in removed:
            self.disconnect(node, other)

        return removed

    def edge_count(self) -> int:
        """Number of undirected edges at this layer."""
        return sum(len(nbrs) for nbrs in self._adjacency.values()) // 2

    def adjacency(self) -> Dict[int, List[int]]:
        """Copy of the full adjacency mapping (used by serialization and validation)."""
        return {node: list(nbrs) for node, nbrs in self._adjacency.items()}

    def __repr__(self) -> str:
        return f"LayerGraph(level={self.level}, nodes={len(self)}, edges={self.edge_count()})"


class HNSWNode:
    """
    Represents a single node in the HNSW graph.

    The node appears in layers 0 through its assigned 'level', which is drawn
    once at insertion and never changes. Its connections live in the
    LayerGraph of each of those layers.
    """

    def __init__(self, index: int, record: VectorRecord, level: int) -> None:
        """
        Args:
            index: Position of this node in the graph's node arena
            record: The stored vector record
            level: Maximum layer this node appears in (0 = base layer only)
        """
        self.index = index
        self.record = record
        self.level = level

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def vector(self) -> Vector:
        return self.record.vector

    def __repr__(self) -> str:
        return f"HNSWNode(index={self.index}, id={self.id!r}, level={self.level})"


class HNSWGraph:
    """
    Container for the entire HNSW graph structure.

    Owns all nodes, the stack of layer graphs (index 0 = base layer), the
    entry point, the construction parameters and the distance metric.
    """

    def __init__(
        self,
        dimension: int | None = None,
        M: int = 16,
        M_max0: int | None = None,
        ef_construction: int = 200,
        level_multiplier: float | None = None,
        metric: str = "cosine",
        max_level: int = DEFAULT_MAX_LEVEL,
    ) -> None:
        """
        Initialize an empty HNSW graph.

        Args:
            dimension: Dimensionality of vectors (None = fixed by the first node)
            M: Maximum number of neighbors per node at layers > 0 (typical: 16-64)
            M_max0: Maximum neighbors at layer 0 (default: 2*M for denser base layer)
            ef_construction: Candidate list size used while inserting
            level_multiplier: Controls layer distribution (default: 1/ln(M) per HNSW paper)
            metric: Registered distance metric name
            max_level: Upper bound for drawn node levels
        """
        if M < 2:
            raise ValueError("M must be >= 2")

        self.dimension = dimension
        self.M = M
        self.M_max0 = M_max0 if M_max0 is not None else 2 * M
        self.ef_construction = ef_construction
        self.max_level = max_level

        if level_multiplier is None:
            self.level_multiplier = default_level_multiplier(M)
        else:
            self.level_multiplier = level_multiplier

        self.metric = metric
        self.distance_fn: DistanceFn = get_metric(metric)

        # Node arena: a node's index is its position here
        self.nodes: List[HNSWNode] = []

        self.layers: List[LayerGraph] = [LayerGraph(0)]

        # None while the graph is empty
        self.entry_point: int | None = None

    def add_node(self, record: VectorRecord, level: int) -> int:
        """
        Add a new node to the graph structure (without connecting it yet).

        The node becomes a member of layers 0..level; missing layers are created.
        The entry point is left alone, the builder promotes it after linking.

        Returns:
            The index assigned to the new node
        """
        self.check_dimension(record.vector)
        if self.dimension is None:
            self.dimension = record.dimension

        index = len(self.nodes)
        self.nodes.append(HNSWNode(index, record, level))

        while len(self.layers) <= level:
            self.layers.append(LayerGraph(len(self.layers)))

        for layer in range(level + 1):
            self.layers[layer].add_node(index)

        return index

    def check_dimension(self, vector: Vector, what: str = "Vector") -> None:
        """Raise DimensionMismatch if the vector doesn't fit this graph."""
        if vector.ndim != 1:
            raise DimensionMismatch(self.dimension, int(np.size(vector)), what)
        if vector.shape[0] == 0:
            raise DimensionMismatch(self.dimension, 0, what)
        if self.dimension is not None and vector.shape[0] != self.dimension:
            raise DimensionMismatch(self.dimension, int(vector.shape[0]), what)

    def get_node(self, index: int) -> HNSWNode:
        """
        Retrieve a node by its index.

        Raises:
            IndexError: If no node has that index
        """
        if index < 0 or index >= len(self.nodes):
            raise IndexError(f"Node index {index} out of range (size {len(self.nodes)})")
        return self.nodes[index]

    def add_edge(self, node1: int, node2: int, layer: int) -> None:
        """Create a bidirectional connection between two nodes at a layer."""
        self.layers[layer].connect(node1, node2)

    def neighbors(self, index: int, layer: int) -> List[int]:
        if layer >= len(self.layers):
            return []
        return self.layers[layer].neighbors(index)

    def max_connections(self, layer: int) -> int:
        """Degree cap: M_max0 at layer 0, M above."""
        return self.M_max0 if layer == 0 else self.M

    def distance_to(self, query: Vector, index: int) -> float:
        """Distance from an arbitrary vector to a stored node."""
        return self.distance_fn(query, self.nodes[index].vector)

    def pair_distance(self, a: int, b: int) -> float:
        """Distance between two stored nodes."""
        return self.distance_fn(self.nodes[a].vector, self.nodes[b].vector)

    def get_max_level(self) -> int:
        """
        Get the maximum layer level in the graph (level of entry point).

        Returns:
            Maximum layer number, or -1 if graph is empty
        """
        if self.entry_point is None:
            return -1

        return self.nodes[self.entry_point].level

    def size(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"HNSWGraph(nodes={self.size()}, max_level={self.get_max_level()}, "
            f"M={self.M}, dim={self.dimension}, metric={self.metric})"
        )
