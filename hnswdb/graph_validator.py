"""Structural validation and connectivity checks for HNSW graphs.

GraphValidator works on plain data (node levels, per-layer adjacency, entry
point) so it can check a freshly decoded store file before any HNSWGraph is
built from it, as well as a live graph via from_graph().

Invariants checked:
- every neighbor reference points at an existing node that is a member of
  the same layer; no self-loops, no duplicate entries
- edges are symmetric (the graph is undirected)
- no node exceeds its layer's degree cap, when caps are given
- a node in layer L is also in layer L-1, and its level equals the highest
  layer it appears in
- the layer stack is exactly as tall as the entry point's level, and the
  entry point sits on the top layer (or is absent for an empty graph)
"""

from typing import Dict, List, Sequence, Set
from collections import deque

from hnswdb.hnsw.graph import HNSWGraph


class GraphValidator:
    """Validates graph structure and connectivity properties."""

    def __init__(
        self,
        node_levels: Sequence[int],
        layers: Sequence[Dict[int, List[int]]],
        entry_point: int | None,
        M: int | None = None,
        M_max0: int | None = None,
    ) -> None:
        """
        Args:
            node_levels: Level of each node, indexed by node index
            layers: Adjacency per layer ({node: [neighbors]}), index 0 = base layer
            entry_point: Entry node index, or None for an empty graph
            M: Degree cap above layer 0 (unchecked when None)
            M_max0: Degree cap at layer 0 (unchecked when None)
        """
        self.node_levels = list(node_levels)
        self.layers = [dict(layer) for layer in layers]
        self.entry_point = entry_point
        self.M = M
        self.M_max0 = M_max0

    @classmethod
    def from_graph(cls, graph: HNSWGraph) -> "GraphValidator":
        """Snapshot a live graph for validation."""
        layers = [layer.adjacency() for layer in graph.layers] if graph.size() else []
        return cls(
            node_levels=[node.level for node in graph.nodes],
            layers=layers,
            entry_point=graph.entry_point,
            M=graph.M,
            M_max0=graph.M_max0,
        )

    def find_violations(self) -> List[str]:
        """
        Check every structural invariant.

        Returns:
            Human-readable descriptions of each violation (empty if valid)
        """
        problems: List[str] = []
        node_count = len(self.node_levels)

        if node_count == 0:
            if self.entry_point is not None:
                problems.append("entry point set on an empty graph")
            if any(self.layers):
                problems.append("layers hold nodes but the graph has none")
            return problems

        for index, level in enumerate(self.node_levels):
            if level < 0:
                problems.append(f"node {index} has negative level {level}")

        # Entry point and layer stack height
        if self.entry_point is None:
            problems.append("non-empty graph has no entry point")
        elif not 0 <= self.entry_point < node_count:
            problems.append(f"entry point {self.entry_point} out of range")
        else:
            top = self.node_levels[self.entry_point]
            if top != max(self.node_levels):
                problems.append(
                    f"entry point {self.entry_point} is at level {top}, "
                    f"below the highest node level {max(self.node_levels)}"
                )
            if len(self.layers) != top + 1:
                problems.append(
                    f"expected {top + 1} layer(s) for top level {top}, found {len(self.layers)}"
                )

        # Layer membership must match node levels exactly
        for layer_num, layer in enumerate(self.layers):
            for node in layer:
                if not 0 <= node < node_count:
                    problems.append(f"layer {layer_num} lists unknown node {node}")
                elif self.node_levels[node] < layer_num:
                    problems.append(
                        f"node {node} (level {self.node_levels[node]}) present at layer {layer_num}"
                    )
                elif layer_num > 0 and node not in self.layers[layer_num - 1]:
                    problems.append(
                        f"node {node} present at layer {layer_num} but absent at layer {layer_num - 1}"
                    )

        for index, level in enumerate(self.node_levels):
            for layer_num in range(min(level, len(self.layers) - 1) + 1):
                if index not in self.layers[layer_num]:
                    problems.append(f"node {index} (level {level}) missing from layer {layer_num}")

        # Edges
        for layer_num, layer in enumerate(self.layers):
            for node, neighbors in layer.items():
                cap = self.M_max0 if layer_num == 0 else self.M
                if cap is not None and len(neighbors) > cap:
                    problems.append(
                        f"node {node} has {len(neighbors)} neighbors at layer {layer_num} (cap {cap})"
                    )
                if len(set(neighbors)) != len(neighbors):
                    problems.append(f"node {node} has duplicate neighbors at layer {layer_num}")
                for neighbor in neighbors:
                    if neighbor == node:
                        problems.append(f"node {node} links to itself at layer {layer_num}")
                    elif neighbor not in layer:
                        problems.append(
                            f"node {node} links to {neighbor}, which is not in layer {layer_num}"
                        )
                    elif node not in layer[neighbor]:
                        problems.append(
                            f"edge {node}->{neighbor} at layer {layer_num} has no reverse edge"
                        )

        return problems

    def is_valid(self) -> bool:
        return not self.find_violations()

    def get_neighbors(self, node_id: int, layer: int = 0) -> Set[int]:
        """Neighbors of a node at a layer (empty set if absent)."""
        if layer >= len(self.layers):
            return set()
        return set(self.layers[layer].get(node_id, ()))

    def is_connected(self, node_u: int, node_v: int, layer: int = 0) -> bool:
        """Check if two nodes are connected via any path at a layer.

        Uses BFS to determine reachability.
        """
        return self._bfs_path_length(node_u, node_v, layer) >= 0

    def reachable_from_entry(self, layer: int = 0) -> Set[int]:
        """All nodes reachable from the entry point at a layer."""
        if self.entry_point is None or layer >= len(self.layers):
            return set()

        adjacency = self.layers[layer]
        visited: Set[int] = {self.entry_point}
        queue: deque = deque([self.entry_point])

        while queue:
            current = queue.popleft()
            for neighbor in adjacency.get(current, ()):
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)

        return visited

    def _bfs_path_length(self, start: int, target: int, layer: int) -> int:
        """Compute shortest path length between two nodes using BFS.

        Returns:
            Path length, or -1 if no path exists
        """
        if layer >= len(self.layers):
            return -1
        adjacency = self.layers[layer]
        if start not in adjacency or target not in adjacency:
            return -1

        if start == target:
            return 0

        visited: Set[int] = {start}
        queue: deque = deque([(start, 0)])  # (node, distance)

        while queue:
            current, distance = queue.popleft()

            if current == target:
                return distance

            for neighbor in adjacency.get(current, ()):
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append((neighbor, distance + 1))

        return -1  # No path exists

    def get_graph_statistics(self) -> Dict[str, float]:
        """Compute overall graph statistics for the base layer.

        Returns:
            Dictionary with graph metrics (node_count, avg_degree, etc.)
        """
        base = self.layers[0] if self.layers else {}
        if not base:
            return {
                "node_count": 0,
                "edge_count": 0,
                "avg_degree": 0.0,
                "min_degree": 0,
                "max_degree": 0,
                "unreachable_from_entry": 0,
            }

        degrees = [len(neighbors) for neighbors in base.values()]
        total_edges = sum(degrees) // 2  # Each edge counted twice

        return {
            "node_count": len(base),
            "edge_count": total_edges,
            "avg_degree": sum(degrees) / len(degrees),
            "min_degree": min(degrees),
            "max_degree": max(degrees),
            "unreachable_from_entry": len(base) - len(self.reachable_from_entry(0)),
        }
