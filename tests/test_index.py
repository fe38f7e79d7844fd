"""
Tests for HNSWIndex: level assignment, insertion and search together.
"""

import numpy as np
import pytest
from hnswdb.errors import DimensionMismatch
from hnswdb.graph_validator import GraphValidator
from hnswdb.hnsw.graph import HNSWGraph
from hnswdb.hnsw.index import HNSWIndex
from hnswdb.record import VectorRecord


def record(values, record_id):
    return VectorRecord(id=record_id, vector=np.asarray(values, dtype=np.float32))


def test_empty_index():
    """A fresh index has no nodes and no top layer"""
    index = HNSWIndex(dimension=4, seed=1)

    assert index.size() == 0
    assert index.top_layer() == -1
    assert index.search(np.ones(4, dtype=np.float32), k=3) == []


def test_insert_and_search(sample_vectors):
    """Inserted records can be found again"""
    index = HNSWIndex(dimension=16, M=8, ef_construction=64, seed=3)
    for i, vec in enumerate(sample_vectors):
        assert index.insert(record(vec, f"v{i}")) == i

    results = index.search(sample_vectors[17], k=3)

    assert results[0][0] == 17
    assert index.get_record(17).id == "v17"
    assert [r.id for r in index.records()][:3] == ["v0", "v1", "v2"]


def test_rejected_insert_does_not_consume_randomness(sample_vectors):
    """A dimension error leaves the level sequence untouched"""
    clean = HNSWIndex(dimension=16, seed=9)
    noisy = HNSWIndex(dimension=16, seed=9)

    for i, vec in enumerate(sample_vectors[:30]):
        clean.insert(record(vec, f"v{i}"))
        with pytest.raises(DimensionMismatch):
            noisy.insert(record(vec[:4], "bad"))
        noisy.insert(record(vec, f"v{i}"))

    assert [n.level for n in clean.graph.nodes] == [n.level for n in noisy.graph.nodes]


def test_injected_rng_is_used():
    """An explicit generator drives level assignment"""
    rng = np.random.default_rng(0)
    index = HNSWIndex(dimension=2, rng=rng)

    assert index.rng is rng


def test_ef_search_property():
    """ef_search can be read and changed"""
    index = HNSWIndex(dimension=2, ef_search=20)
    assert index.ef_search == 20

    index.ef_search = 64

    assert index.ef_search == 64


def test_wraps_existing_graph():
    """An index can be built around a prepared graph"""
    graph = HNSWGraph(dimension=3, M=6, metric="l2")
    index = HNSWIndex(graph=graph, seed=0)

    assert index.graph is graph
    assert index.metric == "l2"
    assert index.dimension == 3


def test_statistics(sample_vectors):
    """Statistics describe the layer stack"""
    index = HNSWIndex(dimension=16, M=4, seed=5)
    for i, vec in enumerate(sample_vectors):
        index.insert(record(vec, f"v{i}"))

    stats = index.get_statistics()

    assert stats["total_vectors"] == 100
    assert stats["top_layer"] == index.top_layer()
    assert len(stats["layer_sizes"]) == stats["top_layer"] + 1
    assert stats["layer_sizes"][0] == 100
    assert stats["layer_sizes"] == sorted(stats["layer_sizes"], reverse=True)
    assert stats["layer_edges"][0] > 0


def test_layer_distribution_is_geometric():
    """Most nodes stay on layer 0 and higher layers thin out"""
    rng = np.random.default_rng(21)
    index = HNSWIndex(dimension=4, M=16, ef_construction=16, rng=rng)
    vectors = rng.standard_normal((600, 4)).astype(np.float32)
    for i, vec in enumerate(vectors):
        index.insert(record(vec, f"v{i}"))

    levels = np.array([node.level for node in index.graph.nodes])

    above_zero = np.mean(levels >= 1)
    assert 0.03 < above_zero < 0.10
    assert GraphValidator.from_graph(index.graph).is_valid()


def test_same_seed_same_results(sample_vectors):
    """Two indexes built with the same seed answer identically"""
    first = HNSWIndex(dimension=16, M=6, seed=13)
    second = HNSWIndex(dimension=16, M=6, seed=13)
    for i, vec in enumerate(sample_vectors):
        first.insert(record(vec, f"v{i}"))
        second.insert(record(vec, f"v{i}"))

    query = sample_vectors[0] * 0.5 + sample_vectors[1] * 0.5

    assert first.search(query, k=10) == second.search(query, k=10)
