"""
hnswdb - Embedded HNSW Vector Database

Stores embeddings keyed by unique identifiers and answers approximate
nearest-neighbor queries through a hierarchical navigable small-world graph,
with atomic JSON persistence.
"""

__version__ = "0.1.0"

from hnswdb.vector_store import VectorStore
from hnswdb.config import (
    HNSWDBConfig,
    get_default_config,
    get_high_recall_config,
)
from hnswdb.errors import (
    HNSWDBError,
    DimensionMismatch,
    EmptyQuery,
    InvalidVector,
    NotFound,
    Corrupt,
    VersionMismatch,
)
from hnswdb.record import VectorRecord

__all__ = [
    "VectorStore",
    "VectorRecord",
    "HNSWDBConfig",
    "get_default_config",
    "get_high_recall_config",
    "HNSWDBError",
    "DimensionMismatch",
    "EmptyQuery",
    "InvalidVector",
    "NotFound",
    "Corrupt",
    "VersionMismatch",
]
