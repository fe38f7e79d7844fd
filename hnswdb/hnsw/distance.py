"""
Distance functions used to build and search the graph.

A store chooses its metric once, when it is created, and the metric's name
is saved with the store. Loading a store therefore always searches with the
function the graph was built with. Each metric takes two vectors of equal
length and returns a float; smaller values mean closer vectors.

cosine (the default) compares directions only and ignores vector length,
which suits sentence embeddings. l2 is plain Euclidean distance. dot is
1 - inner product and matches cosine on unit-length vectors.
"""

from typing import Callable, Dict

import numpy as np
import numpy.typing as npt

Vector = npt.NDArray[np.float32]
DistanceFn = Callable[[Vector, Vector], float]


def cosine_similarity(v1: Vector, v2: Vector) -> float:
    """
    Cosine of the angle between v1 and v2.

    Returns:
        Value in [-1, 1]: 1 for the same direction, -1 for opposite,
        0.0 when either vector is all zeros

    Example:
        >>> cosine_similarity(np.array([2.0, 0.0]), np.array([5.0, 0.0]))
        1.0
    """
    norm_v1 = np.linalg.norm(v1)
    norm_v2 = np.linalg.norm(v2)

    # Zero vectors have no direction
    if norm_v1 == 0.0 or norm_v2 == 0.0:
        return 0.0

    similarity = float(np.dot(v1, v2) / (norm_v1 * norm_v2))

    # Rounding can push the ratio slightly outside [-1, 1]
    return max(-1.0, min(1.0, similarity))


def cosine_distance(v1: Vector, v2: Vector) -> float:
    """1 - cosine_similarity; 0 for equal directions, up to 2 for opposite ones."""
    return 1.0 - cosine_similarity(v1, v2)


def l2_distance(v1: Vector, v2: Vector) -> float:
    """
    Euclidean (L2) distance between two vectors.

    Args:
        v1: First vector (1D numpy array)
        v2: Second vector (1D numpy array)

    Returns:
        Non-negative distance (0 means identical)
    """
    return float(np.linalg.norm(v1 - v2))


def dot_distance(v1: Vector, v2: Vector) -> float:
    """
    Inner-product distance: 1 - dot(v1, v2).

    Equivalent to cosine distance when both vectors are unit length, and
    cheaper because no norms are computed.
    """
    return 1.0 - float(np.dot(v1, v2))


def normalize_vector(v: Vector) -> Vector:
    """Scale v to unit L2 length; an all-zero vector comes back as is."""
    norm = np.linalg.norm(v)
    if norm == 0.0:
        return v

    return v / norm


# Metric registry: persisted stores refer to metrics by these names
METRICS: Dict[str, DistanceFn] = {
    "cosine": cosine_distance,
    "l2": l2_distance,
    "dot": dot_distance,
}


def get_metric(name: str) -> DistanceFn:
    """
    Look up a distance function by its registered name.

    Args:
        name: Metric identifier ("cosine", "l2" or "dot")

    Returns:
        The distance function

    Raises:
        ValueError: If the name is not registered
    """
    try:
        return METRICS[name]
    except KeyError:
        raise ValueError(
            f"Unknown metric {name!r} (available: {', '.join(sorted(METRICS))})"
        ) from None
