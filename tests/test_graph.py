"""
Tests for HNSW graph data structures.

These tests verify the graph container and layer structures work correctly:
- Layer membership and neighbor management
- Graph initialization and node addition
- Edge creation and bidirectional connections
- Pruning back to a degree cap
- Dimension enforcement
"""

import numpy as np
import pytest
from hnswdb.errors import DimensionMismatch
from hnswdb.hnsw.graph import HNSWGraph, HNSWNode, LayerGraph
from hnswdb.record import VectorRecord


def make_record(values, record_id="r"):
    return VectorRecord(id=record_id, vector=np.array(values, dtype=np.float32))


def test_layer_add_and_connect():
    """Connecting two members creates edges in both directions"""
    layer = LayerGraph(0)
    layer.add_node(1)
    layer.add_node(2)

    layer.connect(1, 2)

    assert layer.neighbors(1) == [2]
    assert layer.neighbors(2) == [1]
    assert layer.edge_count() == 1


def test_layer_connect_is_idempotent():
    """Connecting the same pair twice should not create duplicates"""
    layer = LayerGraph(0)
    layer.add_node(1)
    layer.add_node(2)

    layer.connect(1, 2)
    layer.connect(2, 1)

    assert layer.neighbors(1) == [2], "Should not have duplicate neighbors"
    assert layer.degree(2) == 1


def test_layer_rejects_self_loop():
    """A node cannot be its own neighbor"""
    layer = LayerGraph(0)
    layer.add_node(1)

    with pytest.raises(ValueError):
        layer.connect(1, 1)


def test_layer_rejects_non_member():
    """Edges only join nodes present at the layer"""
    layer = LayerGraph(1)
    layer.add_node(1)

    with pytest.raises(ValueError):
        layer.connect(1, 7)


def test_layer_neighbors_of_absent_node():
    """Asking for an absent node's neighbors returns an empty list"""
    layer = LayerGraph(0)

    assert layer.neighbors(99) == []
    assert layer.degree(99) == 0
    assert 99 not in layer


def test_layer_neighbors_returns_copy():
    """Mutating the returned list must not change the layer"""
    layer = LayerGraph(0)
    layer.add_node(1)
    layer.add_node(2)
    layer.connect(1, 2)

    layer.neighbors(1).append(5)

    assert layer.neighbors(1) == [2]


def test_layer_disconnect():
    """Disconnect removes both directions"""
    layer = LayerGraph(0)
    for node in (1, 2, 3):
        layer.add_node(node)
    layer.connect(1, 2)
    layer.connect(1, 3)

    layer.disconnect(2, 1)

    assert layer.neighbors(1) == [3]
    assert layer.neighbors(2) == []


def test_layer_prune_keeps_cap_and_symmetry():
    """Pruning trims to the limit and removes the reverse edges too"""
    points = {i: np.array([float(i), 0.0]) for i in range(6)}

    def pair_distance(a, b):
        return float(np.linalg.norm(points[a] - points[b]))

    layer = LayerGraph(0)
    for node in points:
        layer.add_node(node)
    for other in range(1, 6):
        layer.connect(0, other)

    removed = layer.prune(0, 2, pair_distance)

    assert layer.degree(0) == 2
    assert len(removed) == 3
    for other in removed:
        assert 0 not in layer.neighbors(other)
    for other in layer.neighbors(0):
        assert 0 in layer.neighbors(other)


def test_layer_prune_under_limit_is_noop():
    """Nothing to prune when the node is within its cap"""
    layer = LayerGraph(0)
    layer.add_node(1)
    layer.add_node(2)
    layer.connect(1, 2)

    assert layer.prune(1, 4, lambda a, b: 0.0) == []
    assert layer.neighbors(1) == [2]


def test_layer_set_neighbors_preserves_order():
    """set_neighbors stores the list as given"""
    layer = LayerGraph(0)
    for node in (1, 2, 3):
        layer.add_node(node)

    layer.set_neighbors(1, [3, 2])

    assert layer.neighbors(1) == [3, 2]
    with pytest.raises(ValueError):
        layer.set_neighbors(9, [1])


def test_create_node():
    """Create a basic HNSW node"""
    record = make_record([1.0, 2.0, 3.0], record_id="doc-1")
    node = HNSWNode(index=4, record=record, level=2)

    assert node.index == 4
    assert node.id == "doc-1"
    assert np.allclose(node.vector, record.vector)
    assert node.level == 2


def test_create_empty_graph():
    """Initialize an empty HNSW graph"""
    graph = HNSWGraph(dimension=128, M=16)

    assert graph.dimension == 128
    assert graph.M == 16
    assert graph.M_max0 == 32  # Default is 2*M
    assert graph.size() == 0
    assert graph.entry_point is None
    assert graph.get_max_level() == -1


def test_graph_rejects_small_M():
    """M below 2 cannot form a navigable graph"""
    with pytest.raises(ValueError):
        HNSWGraph(dimension=4, M=1)


def test_graph_rejects_unknown_metric():
    """Metric names are resolved at construction"""
    with pytest.raises(ValueError):
        HNSWGraph(dimension=4, metric="hamming")


def test_add_node_creates_layers():
    """A node at level L is a member of layers 0..L"""
    graph = HNSWGraph(dimension=2, M=4)

    index = graph.add_node(make_record([1.0, 0.0]), level=2)

    assert index == 0
    assert len(graph.layers) == 3
    for layer in graph.layers:
        assert index in layer
    # The builder, not add_node, decides the entry point
    assert graph.entry_point is None


def test_add_node_assigns_sequential_indices():
    """Node indices follow insertion order"""
    graph = HNSWGraph(dimension=2, M=4)

    first = graph.add_node(make_record([1.0, 0.0], "a"), level=0)
    second = graph.add_node(make_record([0.0, 1.0], "b"), level=1)

    assert (first, second) == (0, 1)
    assert graph.get_node(1).id == "b"
    assert first not in graph.layers[1]


def test_add_node_fixes_dimension():
    """A graph without a dimension takes the first node's"""
    graph = HNSWGraph(M=4)

    graph.add_node(make_record([1.0, 2.0, 3.0]), level=0)

    assert graph.dimension == 3


def test_add_node_dimension_mismatch():
    """Vectors of the wrong length are rejected"""
    graph = HNSWGraph(dimension=3, M=4)

    with pytest.raises(DimensionMismatch) as excinfo:
        graph.add_node(make_record([1.0, 2.0]), level=0)

    assert excinfo.value.expected == 3
    assert excinfo.value.actual == 2
    assert graph.size() == 0


def test_add_node_empty_vector_rejected():
    """A zero-length vector never becomes the graph dimension"""
    graph = HNSWGraph(M=4)

    with pytest.raises(DimensionMismatch) as excinfo:
        graph.add_node(make_record([]), level=0)

    assert excinfo.value.expected is None
    assert excinfo.value.actual == 0
    assert graph.dimension is None
    assert graph.size() == 0


def test_get_node_out_of_range():
    """Unknown indices raise IndexError"""
    graph = HNSWGraph(dimension=2, M=4)

    with pytest.raises(IndexError):
        graph.get_node(0)


def test_add_edge_and_neighbors():
    """Edges added through the graph show up per layer"""
    graph = HNSWGraph(dimension=2, M=4)
    graph.add_node(make_record([1.0, 0.0]), level=1)
    graph.add_node(make_record([0.0, 1.0]), level=1)

    graph.add_edge(0, 1, layer=1)

    assert graph.neighbors(0, 1) == [1]
    assert graph.neighbors(0, 0) == []
    assert graph.neighbors(0, 5) == []


def test_max_connections_per_layer():
    """Layer 0 uses M_max0, higher layers use M"""
    graph = HNSWGraph(dimension=2, M=5, M_max0=12)

    assert graph.max_connections(0) == 12
    assert graph.max_connections(1) == 5
    assert graph.max_connections(3) == 5


def test_distances_use_metric():
    """distance_to and pair_distance use the configured metric"""
    graph = HNSWGraph(dimension=2, M=4, metric="l2")
    graph.add_node(make_record([0.0, 0.0]), level=0)
    graph.add_node(make_record([3.0, 4.0]), level=0)

    assert np.isclose(graph.pair_distance(0, 1), 5.0)
    assert np.isclose(graph.distance_to(np.array([0.0, 4.0], dtype=np.float32), 1), 3.0)
