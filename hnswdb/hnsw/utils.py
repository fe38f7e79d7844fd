"""
Utility functions for HNSW graph construction and maintenance.

This module provides helper functions used during HNSW index building:
- Layer assignment: Determines which layers a new node should appear in
- Neighbor selection: Chooses which edges to keep when building or pruning the graph

The layer assignment uses a geometric distribution to create a hierarchical structure,
where most nodes are only in layer 0, and progressively fewer nodes appear in higher layers.
The random source is always passed in explicitly so that builds are reproducible.
"""

from typing import Callable, List, Tuple

import numpy as np

DEFAULT_MAX_LEVEL = 32


def default_level_multiplier(M: int) -> float:
    """mL = 1/ln(M) (Malkov & Yashunin 2016), so P(layer >= l) = (1/M)^l."""
    return 1.0 / np.log(M)


def assign_layer(
    rng: np.random.Generator,
    M: int | None = None,
    level_multiplier: float | None = None,
    max_level: int = DEFAULT_MAX_LEVEL,
) -> int:
    """
    Randomly assign a layer for a new node using geometric distribution per HNSW paper.

    Formula (Malkov & Yashunin 2016): layer = floor(-ln(uniform(0,1)) * mL)
    where mL = 1/ln(M) for optimal performance

    Args:
        rng: Random generator to draw from (seed it for reproducible graphs)
        M: Maximum connections per node (used to calculate level_multiplier if not provided)
           Default: 16 (recommended by HNSW paper)
        level_multiplier: Explicit level multiplier (overrides M if provided)
        max_level: Upper bound on the returned layer

    Returns:
        Layer number in [0, max_level]

    Example:
        >>> rng = np.random.default_rng(42)
        >>> # For M=16: ~93.75% at layer 0, ~6.25% at layer 1, ~0.39% at layer 2
        >>> layers = [assign_layer(rng, M=16) for _ in range(10000)]
    """
    if level_multiplier is None:
        level_multiplier = default_level_multiplier(M if M is not None else 16)

    # rng.random() is in [0, 1); flip it so log never sees zero
    random_value = 1.0 - rng.random()

    layer = int(-np.log(random_value) * level_multiplier)

    return min(layer, max_level)


def select_neighbors_heuristic(
    candidates: List[Tuple[float, int]],
    M: int,
    pair_distance: Callable[[int, int], float],
    keep_pruned: bool = True,
) -> List[int]:
    """
    Select neighbors using the diversity-aware heuristic (HNSW paper, Algorithm 4).

    Candidates are visited closest first. A candidate is accepted only if it
    is closer to the base node than it is to every neighbor accepted so far;
    otherwise it would mostly duplicate an existing edge's direction. With
    keep_pruned, rejected candidates then top the result up to M, closest first.

    Args:
        candidates: (distance to base node, node ID) pairs
        M: Maximum number of neighbors to select
        pair_distance: Distance between two candidate node IDs
        keep_pruned: Fill up to M from rejected candidates

    Returns:
        List of selected node IDs (accepted ones first, in order of acceptance)

    Example:
        >>> # Two near-duplicates on one side, one point on the other side
        >>> select_neighbors_heuristic([(0.1, 1), (0.11, 2), (0.3, 3)], M=2,
        ...                            pair_distance=d, keep_pruned=False)
        [1, 3]
    """
    if len(candidates) == 0 or M <= 0:
        return []

    ordered = sorted(candidates)

    selected: List[int] = []
    rejected: List[int] = []

    for candidate_dist, candidate_id in ordered:
        if len(selected) >= M:
            break

        is_diverse = True
        for selected_id in selected:
            if pair_distance(candidate_id, selected_id) < candidate_dist:
                is_diverse = False
                break

        if is_diverse:
            selected.append(candidate_id)
        else:
            rejected.append(candidate_id)

    if keep_pruned and len(selected) < M:
        selected.extend(rejected[:M - len(selected)])

    return selected
