"""
HNSW (Hierarchical Navigable Small World) implementation module.

This module contains the core HNSW algorithm components for building and searching
graph-based approximate nearest neighbor indexes. HNSW is a fast and accurate method
for finding similar vectors in high-dimensional spaces.

Components:
- distance: Distance metrics (cosine, L2, dot) and the metric registry
- utils: Helper functions (layer assignment, neighbor selection)
- graph: Layer graphs, nodes and the graph container
- builder: Insertion algorithm
- searcher: Search algorithm
- index: Graph + builder + searcher + random source
"""

from hnswdb.hnsw.distance import cosine_similarity, cosine_distance, get_metric, METRICS
from hnswdb.hnsw.graph import LayerGraph, HNSWNode, HNSWGraph
from hnswdb.hnsw.builder import HNSWBuilder
from hnswdb.hnsw.searcher import HNSWSearcher
from hnswdb.hnsw.index import HNSWIndex

__all__ = [
    "cosine_similarity",
    "cosine_distance",
    "get_metric",
    "METRICS",
    "LayerGraph",
    "HNSWNode",
    "HNSWGraph",
    "HNSWBuilder",
    "HNSWSearcher",
    "HNSWIndex",
]
