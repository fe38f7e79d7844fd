"""
Pytest configuration and shared fixtures for hnswdb tests
"""

import pytest
import numpy as np
from typing import List

from hnswdb import VectorStore


class FakeEmbedder:
    """Deterministic stand-in for a sentence-transformers embedder.

    Each chunk maps to a unit vector seeded by the chunk's text, so equal
    chunks always embed identically.
    """

    def __init__(self, dimension: int = 8) -> None:
        self.dimension = dimension
        self.calls: List[List[str]] = []

    def embed_chunks(self, chunks):
        self.calls.append(list(chunks))
        vectors = []
        for chunk in chunks:
            seed = sum(ord(ch) * (i + 1) for i, ch in enumerate(chunk)) % (2**32)
            vec = np.random.default_rng(seed).standard_normal(self.dimension).astype(np.float32)
            vectors.append(vec / np.linalg.norm(vec))
        return vectors


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible graphs."""
    return np.random.default_rng(42)


@pytest.fixture
def sample_vectors() -> np.ndarray:
    """Generate sample vectors for testing."""
    generator = np.random.default_rng(42)
    return generator.standard_normal((100, 16)).astype(np.float32)


@pytest.fixture
def dimension() -> int:
    """Standard vector dimension for testing."""
    return 16


@pytest.fixture
def populated_store(sample_vectors) -> VectorStore:
    """Store with 100 random 16-dimensional vectors from two sources."""
    store = VectorStore(dimension=16, M=8, ef_construction=64, seed=7)
    sources = ["alpha.txt" if i % 2 == 0 else "beta.txt" for i in range(len(sample_vectors))]
    texts = [f"chunk {i}" for i in range(len(sample_vectors))]
    store.add_many(list(sample_vectors), sources=sources, texts=texts)
    return store


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder(dimension=8)
