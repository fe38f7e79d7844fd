"""
HNSW graph construction and insertion logic.

This module handles adding new nodes to the HNSW graph. The insertion algorithm:
1. Places the new node in layers 0..level (level is drawn by the caller)
2. Greedily descends from the entry point through the layers above that level
3. At each remaining layer, beam-searches ef_construction candidates and
   picks diverse neighbors among them
4. Connects the new node to its neighbors and prunes any neighbor that now
   exceeds its degree cap
5. Promotes the new node to entry point if it is the highest so far

The key insight: start search at the top (sparse) layer and progressively
zoom in through denser layers until reaching the target layer.
"""

import logging

from hnswdb.hnsw.graph import HNSWGraph
from hnswdb.hnsw.searcher import greedy_closest, search_layer
from hnswdb.hnsw.utils import select_neighbors_heuristic
from hnswdb.record import VectorRecord

logger = logging.getLogger(__name__)


class HNSWBuilder:
    """
    Handles insertion of nodes into the HNSW graph.

    This class encapsulates the logic for adding new vectors to the index,
    including neighbor search, connection creation, and pruning.
    """

    def __init__(self, graph: HNSWGraph, keep_pruned: bool = True) -> None:
        """
        Initialize builder with a graph to operate on.

        Args:
            graph: The HNSWGraph to insert nodes into
            keep_pruned: Top up neighbor lists closest-first when the
                         diversity rule rejects candidates
        """
        self.graph = graph
        self.keep_pruned = keep_pruned

    def insert(self, record: VectorRecord, level: int) -> int:
        """
        Insert a new node into the graph at a specific level.

        This is the main insertion algorithm from the HNSW paper.

        Args:
            record: Record holding the (already validated) vector
            level: Maximum layer for this node

        Returns:
            Index of the new node

        Raises:
            DimensionMismatch: If the vector length doesn't match the graph
        """
        graph = self.graph
        previous_entry = graph.entry_point
        top_level = graph.get_max_level()

        node_id = graph.add_node(record, level)
        vector = record.vector

        # Special case: first node in the graph
        if previous_entry is None:
            graph.entry_point = node_id
            logger.debug("Node %d (level %d) is the first entry point", node_id, level)
            return node_id

        # Walk down the layers above the new node's level, keeping one closest node
        nearest = previous_entry
        for layer in range(top_level, level, -1):
            _, nearest = greedy_closest(graph, vector, nearest, layer)

        entry_points = [nearest]

        for layer in range(min(level, top_level), -1, -1):
            found = search_layer(
                graph, vector, entry_points, graph.ef_construction, layer
            )

            max_neighbors = graph.max_connections(layer)
            neighbors = select_neighbors_heuristic(
                found, max_neighbors, graph.pair_distance, self.keep_pruned
            )

            for neighbor_id in neighbors:
                graph.add_edge(node_id, neighbor_id, layer)

            # Neighbors that went over their cap give up their least useful edges
            layer_graph = graph.layers[layer]
            for neighbor_id in neighbors:
                if layer_graph.degree(neighbor_id) > max_neighbors:
                    removed = layer_graph.prune(
                        neighbor_id, max_neighbors, graph.pair_distance, self.keep_pruned
                    )
                    logger.debug(
                        "Pruned %d edge(s) from node %d at layer %d",
                        len(removed), neighbor_id, layer,
                    )

            # Everything found here is present at the layer below too
            entry_points = [candidate_id for _, candidate_id in found]

        if level > top_level:
            graph.entry_point = node_id
            logger.debug(
                "Node %d promoted to entry point (level %d > %d)", node_id, level, top_level
            )

        return node_id
