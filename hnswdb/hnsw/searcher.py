"""
HNSW search algorithm.

This module handles querying the HNSW graph to find approximate nearest neighbors.
The search algorithm:
1. Starts at the entry point (top layer)
2. Greedily navigates down through layers to get closer to the query
3. At layer 0, expands the search using ef_search parameter
4. Returns the k nearest neighbors

The ef_search parameter controls the accuracy-speed tradeoff:
- Higher ef_search = better recall, slower search
- Lower ef_search = faster search, lower recall

search_layer() and greedy_closest() are shared with the builder. Neither
touches graph state, so any number of searches may run at once as long as no
insertion is in progress.

Distances are ordered as (distance, node index) pairs everywhere, so equal
distances resolve in favour of the earlier-inserted node.
"""

import heapq
from typing import List, Set, Tuple

import numpy as np
import numpy.typing as npt

from hnswdb.errors import EmptyQuery
from hnswdb.hnsw.graph import HNSWGraph

Vector = npt.NDArray[np.float32]


def greedy_closest(
    graph: HNSWGraph, query: Vector, entry_point: int, layer: int
) -> Tuple[float, int]:
    """
    Hill-climb at one layer: keep moving to the closest neighbor until none improves.

    Args:
        graph: Graph to walk
        query: Target vector
        entry_point: Node index to start from
        layer: Layer to walk on

    Returns:
        (distance, node index) of the local minimum reached
    """
    current = (graph.distance_to(query, entry_point), entry_point)

    changed = True
    while changed:
        changed = False
        for neighbor_id in graph.neighbors(current[1], layer):
            candidate = (graph.distance_to(query, neighbor_id), neighbor_id)
            if candidate < current:
                current = candidate
                changed = True

    return current


def search_layer(
    graph: HNSWGraph,
    query: Vector,
    entry_points: List[int],
    ef: int,
    layer: int,
) -> List[Tuple[float, int]]:
    """
    Beam search for the ef nearest nodes at a single layer.

    Args:
        graph: Graph to search
        query: Query vector
        entry_points: Starting node indices
        ef: Size of the dynamic candidate list
        layer: Which layer to search on

    Returns:
        Up to ef (distance, node index) pairs, closest first
    """
    visited: Set[int] = set(entry_points)

    # Min-heap of nodes still to expand
    candidates: List[Tuple[float, int]] = []
    # Max-heap (negated) of the best ef nodes found so far
    results: List[Tuple[float, int]] = []

    for node_id in entry_points:
        dist = graph.distance_to(query, node_id)
        heapq.heappush(candidates, (dist, node_id))
        heapq.heappush(results, (-dist, -node_id))
        if len(results) > ef:
            heapq.heappop(results)

    while candidates:
        current_dist, current_id = heapq.heappop(candidates)

        worst = (-results[0][0], -results[0][1])
        if len(results) >= ef and current_dist > worst[0]:
            # Nothing left in the queue can improve the kept set
            break

        for neighbor_id in graph.neighbors(current_id, layer):
            if neighbor_id in visited:
                continue
            visited.add(neighbor_id)

            dist = graph.distance_to(query, neighbor_id)
            worst = (-results[0][0], -results[0][1])

            if len(results) < ef or (dist, neighbor_id) < worst:
                heapq.heappush(candidates, (dist, neighbor_id))
                heapq.heappush(results, (-dist, -neighbor_id))
                if len(results) > ef:
                    heapq.heappop(results)

    return sorted((-neg_dist, -neg_id) for neg_dist, neg_id in results)


class HNSWSearcher:
    """
    Handles search queries on the HNSW graph.

    This class provides the search functionality to find k nearest neighbors
    for a given query vector.
    """

    def __init__(self, graph: HNSWGraph, ef_search: int = 50) -> None:
        """
        Initialize searcher with a graph.

        Args:
            graph: The HNSWGraph to search in
            ef_search: Size of candidate list during search (higher = better recall)
        """
        if ef_search < 1:
            raise EmptyQuery(f"ef_search must be >= 1, got {ef_search}")

        self.graph = graph
        self.ef_search = ef_search

    def search(
        self, query: Vector, k: int, ef_search: int | None = None
    ) -> List[Tuple[int, float]]:
        """
        Search for k nearest neighbors to the query vector.

        Args:
            query: Query vector to search for
            k: Number of nearest neighbors to return (>= 1)
            ef_search: Override default ef_search for this query

        Returns:
            List of (node index, distance) tuples, sorted by distance (closest first)

        Raises:
            EmptyQuery: If k or ef_search is below 1
            DimensionMismatch: If the query length doesn't match the graph
        """
        if k < 1:
            raise EmptyQuery(f"k must be >= 1, got {k}")

        ef = ef_search if ef_search is not None else self.ef_search
        if ef < 1:
            raise EmptyQuery(f"ef_search must be >= 1, got {ef}")

        self.graph.check_dimension(query, "Query")

        if self.graph.size() == 0:
            return []

        # Ensure ef is at least k
        ef = max(ef, k)

        entry_point = self.graph.entry_point
        top_level = self.graph.get_max_level()

        # Search from top layer down to layer 1, keeping only 1 closest
        nearest = entry_point
        for layer in range(top_level, 0, -1):
            _, nearest = greedy_closest(self.graph, query, nearest, layer)

        # At layer 0, expand search with ef
        candidates = search_layer(self.graph, query, [nearest], ef, layer=0)

        return [(node_id, dist) for dist, node_id in candidates[:k]]
