"""
HNSW index: the graph plus the insertion and search machinery around it.

HNSWIndex owns the HNSWGraph, an HNSWBuilder and an HNSWSearcher bound to it,
and the random generator used for layer assignment. The generator is injected
(or built from a seed) rather than taken from numpy's global state, so two
indexes fed the same vectors with the same seed build identical graphs.
"""

import logging
from typing import Any, Dict, List, Tuple

import numpy as np
import numpy.typing as npt

from hnswdb.hnsw.builder import HNSWBuilder
from hnswdb.hnsw.graph import HNSWGraph
from hnswdb.hnsw.searcher import HNSWSearcher
from hnswdb.hnsw.utils import DEFAULT_MAX_LEVEL, assign_layer
from hnswdb.record import VectorRecord

Vector = npt.NDArray[np.float32]

logger = logging.getLogger(__name__)


class HNSWIndex:
    """
    Hierarchical navigable small-world index over VectorRecords.

    Insertion is single-writer: insert() must not run concurrently with
    itself or with search(). search() is read-only.
    """

    def __init__(
        self,
        dimension: int | None = None,
        M: int = 16,
        M_max0: int | None = None,
        ef_construction: int = 200,
        ef_search: int = 50,
        metric: str = "cosine",
        level_multiplier: float | None = None,
        max_level: int = DEFAULT_MAX_LEVEL,
        keep_pruned: bool = True,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
        graph: HNSWGraph | None = None,
    ) -> None:
        """
        Args:
            dimension: Vector length (None = fixed by the first insert)
            M: Max neighbors per node above layer 0
            M_max0: Max neighbors at layer 0 (default 2*M)
            ef_construction: Candidate list size while inserting
            ef_search: Default candidate list size while searching
            metric: Registered distance metric name
            level_multiplier: mL (default 1/ln(M))
            max_level: Upper bound for drawn levels
            keep_pruned: Neighbor-selection fallback, see select_neighbors_heuristic
            rng: Random generator for level draws
            seed: Seed for a fresh generator when rng is not given
            graph: Pre-built graph to wrap (used when loading); the
                   construction arguments above are ignored when given
        """
        if graph is None:
            graph = HNSWGraph(
                dimension=dimension,
                M=M,
                M_max0=M_max0,
                ef_construction=ef_construction,
                level_multiplier=level_multiplier,
                metric=metric,
                max_level=max_level,
            )

        self.graph = graph
        self.keep_pruned = keep_pruned
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self._builder = HNSWBuilder(graph, keep_pruned=keep_pruned)
        self._searcher = HNSWSearcher(graph, ef_search=ef_search)

    @property
    def dimension(self) -> int | None:
        return self.graph.dimension

    @property
    def metric(self) -> str:
        return self.graph.metric

    @property
    def ef_search(self) -> int:
        return self._searcher.ef_search

    @ef_search.setter
    def ef_search(self, value: int) -> None:
        self._searcher.ef_search = value

    def insert(self, record: VectorRecord) -> int:
        """
        Insert a record, drawing its level from the index's generator.

        Returns:
            Node index of the inserted record

        Raises:
            DimensionMismatch: If the vector length disagrees with the index
        """
        # Validate before drawing so a rejected vector doesn't advance the generator
        self.graph.check_dimension(record.vector)

        level = assign_layer(
            self.rng,
            level_multiplier=self.graph.level_multiplier,
            max_level=self.graph.max_level,
        )
        node_id = self._builder.insert(record, level)
        logger.debug("Inserted %s as node %d at level %d", record.id, node_id, level)
        return node_id

    def search(
        self, query: Vector, k: int, ef_search: int | None = None
    ) -> List[Tuple[int, float]]:
        """Approximate k nearest neighbors as (node index, distance), closest first."""
        return self._searcher.search(query, k=k, ef_search=ef_search)

    def get_record(self, index: int) -> VectorRecord:
        return self.graph.get_node(index).record

    def records(self) -> List[VectorRecord]:
        """All records in insertion order."""
        return [node.record for node in self.graph.nodes]

    def size(self) -> int:
        return self.graph.size()

    def top_layer(self) -> int:
        return self.graph.get_max_level()

    def get_statistics(self) -> Dict[str, Any]:
        """Node counts and edge counts per layer."""
        layers = self.graph.layers if self.graph.size() > 0 else []
        return {
            "total_vectors": self.graph.size(),
            "top_layer": self.graph.get_max_level(),
            "layer_sizes": [len(layer) for layer in layers],
            "layer_edges": [layer.edge_count() for layer in layers],
        }

    def __repr__(self) -> str:
        return f"HNSWIndex({self.graph!r}, ef_search={self.ef_search})"
