"""
Tests for graph structure validation.

Validates:
- Structural invariants (symmetry, membership, degree caps, entry point)
- Connectivity checks
- Graph statistics
"""

import numpy as np
import pytest
from hnswdb.graph_validator import GraphValidator
from hnswdb.hnsw.index import HNSWIndex
from hnswdb.record import VectorRecord


def valid_parts():
    """Three nodes: node 0 at level 1, nodes 1 and 2 at level 0."""
    levels = [1, 0, 0]
    layers = [
        {0: [1, 2], 1: [0, 2], 2: [0, 1]},
        {0: []},
    ]
    return levels, layers, 0


def test_valid_graph_has_no_violations():
    """A consistent graph passes"""
    levels, layers, entry = valid_parts()
    validator = GraphValidator(levels, layers, entry, M=2, M_max0=4)

    assert validator.find_violations() == []
    assert validator.is_valid()


def test_empty_graph_is_valid():
    """No nodes, no layers, no entry point"""
    assert GraphValidator([], [], None).is_valid()


def test_empty_graph_with_entry_point():
    """An entry point without nodes is a violation"""
    problems = GraphValidator([], [], 0).find_violations()

    assert any("empty graph" in p for p in problems)


def test_missing_entry_point():
    """A non-empty graph needs an entry point"""
    levels, layers, _ = valid_parts()

    problems = GraphValidator(levels, layers, None).find_violations()

    assert any("no entry point" in p for p in problems)


def test_entry_point_not_at_top():
    """The entry point must sit at the highest level"""
    levels, layers, _ = valid_parts()

    problems = GraphValidator(levels, layers, 1).find_violations()

    assert any("entry point 1" in p for p in problems)


def test_asymmetric_edge():
    """A one-way edge is reported"""
    levels, layers, entry = valid_parts()
    layers[0][2] = [0]  # 1 -> 2 has no reverse edge

    problems = GraphValidator(levels, layers, entry).find_violations()

    assert any("no reverse edge" in p for p in problems)


def test_dangling_neighbor():
    """An edge to a node outside the layer is reported"""
    levels, layers, entry = valid_parts()
    layers[0][0] = [1, 2, 7]

    problems = GraphValidator(levels, layers, entry).find_violations()

    assert any("7" in p and "not in layer" in p for p in problems)


def test_self_loop_and_duplicates():
    """Self-loops and repeated neighbors are reported"""
    levels, layers, entry = valid_parts()
    layers[0][1] = [0, 0, 1, 2]

    problems = GraphValidator(levels, layers, entry).find_violations()

    assert any("itself" in p for p in problems)
    assert any("duplicate" in p for p in problems)


def test_degree_cap_exceeded():
    """Caps are enforced when given, skipped otherwise"""
    levels, layers, entry = valid_parts()

    assert not GraphValidator(levels, layers, entry, M=2, M_max0=1).is_valid()
    assert GraphValidator(levels, layers, entry).is_valid()


def test_node_missing_from_lower_layer():
    """A node present at layer 1 must also be at layer 0"""
    levels = [1, 1, 0]
    layers = [
        {0: [2], 2: [0]},
        {0: [1], 1: [0]},
    ]

    problems = GraphValidator(levels, layers, 0).find_violations()

    assert any("absent at layer 0" in p for p in problems)
    assert any("missing from layer 0" in p for p in problems)


def test_node_above_its_level():
    """A node cannot appear above its drawn level"""
    levels, layers, entry = valid_parts()
    layers[1] = {0: [1], 1: [0]}

    problems = GraphValidator(levels, layers, entry).find_violations()

    assert any("node 1 (level 0) present at layer 1" in p for p in problems)


def test_wrong_layer_count():
    """The layer stack height follows the entry point's level"""
    levels, layers, entry = valid_parts()

    problems = GraphValidator(levels, layers[:1], entry).find_violations()

    assert any("expected 2 layer(s)" in p for p in problems)


def test_connectivity_queries():
    """is_connected and get_neighbors follow the adjacency"""
    levels = [0, 0, 0, 0]
    layers = [{0: [1], 1: [0, 2], 2: [1], 3: []}]
    validator = GraphValidator(levels, layers, 0)

    assert validator.is_connected(0, 2)
    assert not validator.is_connected(0, 3)
    assert validator.is_connected(3, 3)
    assert validator.get_neighbors(1) == {0, 2}
    assert validator.get_neighbors(1, layer=4) == set()
    assert validator.reachable_from_entry() == {0, 1, 2}


def test_graph_statistics():
    """Base-layer degree statistics"""
    levels = [0, 0, 0, 0]
    layers = [{0: [1], 1: [0, 2], 2: [1], 3: []}]

    stats = GraphValidator(levels, layers, 0).get_graph_statistics()

    assert stats["node_count"] == 4
    assert stats["edge_count"] == 2
    assert stats["avg_degree"] == pytest.approx(1.0)
    assert stats["min_degree"] == 0
    assert stats["max_degree"] == 2
    assert stats["unreachable_from_entry"] == 1


def test_empty_statistics():
    """Statistics of an empty graph are all zero"""
    stats = GraphValidator([], [], None).get_graph_statistics()

    assert stats["node_count"] == 0
    assert stats["avg_degree"] == 0.0


def test_from_live_graph(sample_vectors):
    """A built index snapshot validates cleanly with its own caps"""
    index = HNSWIndex(dimension=16, M=4, seed=2)
    for i, vec in enumerate(sample_vectors):
        index.insert(VectorRecord(id=str(i), vector=np.asarray(vec, dtype=np.float32)))

    validator = GraphValidator.from_graph(index.graph)

    assert validator.M == 4
    assert validator.M_max0 == 8
    assert validator.find_violations() == []
