"""Configuration for hnswdb stores and the command-line tool.

Usage:
    from hnswdb import VectorStore, HNSWDBConfig

    # Default config
    store = VectorStore(dimension=384)

    # Custom config
    config = HNSWDBConfig(default_M=32, default_ef_search=100)
    store = VectorStore(dimension=384, config=config)

    # From file
    config = HNSWDBConfig.from_json("my_config.json")
    store = VectorStore(config=config)
"""

from typing import Dict, Any
import json
import logging
from dataclasses import dataclass, asdict

from hnswdb.hnsw.distance import METRICS


@dataclass
class HNSWDBConfig:
    """Configuration for hnswdb.

    Index construction:
        default_M: Max neighbors per node at layers > 0
        default_M_max0: Max neighbors at layer 0 (None means 2*M)
        default_ef_construction: Candidate list size while inserting
        default_ef_search: Candidate list size while querying (raised to k when smaller)
        default_metric: Distance metric name ("cosine", "l2", "dot")
        normalize: L2-normalize vectors and queries before use
        max_level: Upper bound for a node's randomly drawn layer
        keep_pruned: Fill neighbor lists closest-first when the diversity rule rejects too many

    Command-line defaults:
        default_db_path: Store file used when --db is not given
        default_top_k: Results per query
        default_list_limit: Records shown by `list`
        default_chunk_size: Max characters per text chunk
        embedding_model: sentence-transformers model name
        log_level: Root log level for the CLI
    """

    # HNSW defaults
    default_M: int = 16
    default_M_max0: int | None = None
    default_ef_construction: int = 200
    default_ef_search: int = 50
    default_metric: str = "cosine"
    normalize: bool = True
    max_level: int = 32
    keep_pruned: bool = True

    # CLI defaults
    default_db_path: str = "vectorstore.json"
    default_top_k: int = 3
    default_list_limit: int = 10
    default_chunk_size: int = 512
    embedding_model: str = "all-MiniLM-L6-v2"
    log_level: str = "WARNING"

    # Metadata
    config_name: str = "default"

    def __post_init__(self):
        """Validate configuration."""
        if self.default_M < 2:
            raise ValueError("default_M must be >= 2")

        if self.default_M_max0 is not None and self.default_M_max0 < self.default_M:
            raise ValueError("default_M_max0 must be >= default_M")

        if self.default_ef_construction < 1:
            raise ValueError("default_ef_construction must be >= 1")

        if self.default_ef_search < 1:
            raise ValueError("default_ef_search must be >= 1")

        if self.default_metric not in METRICS:
            raise ValueError(f"default_metric must be one of {sorted(METRICS)}")

        if self.max_level < 0:
            raise ValueError("max_level must be >= 0")

        if self.default_top_k < 1:
            raise ValueError("default_top_k must be >= 1")

        if self.default_list_limit < 0:
            raise ValueError("default_list_limit must be >= 0")

        if self.default_chunk_size < 1:
            raise ValueError("default_chunk_size must be >= 1")

        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log_level: {self.log_level}")

    @property
    def M_max0(self) -> int:
        """Effective layer-0 neighbor cap."""
        return self.default_M_max0 if self.default_M_max0 is not None else 2 * self.default_M

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    def to_json(self, filepath: str) -> None:
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'HNSWDBConfig':
        """Load configuration from dictionary."""
        return cls(**config_dict)

    @classmethod
    def from_json(cls, filepath: str) -> 'HNSWDBConfig':
        """Load configuration from JSON file."""
        with open(filepath, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"HNSWDBConfig("
            f"{self.config_name}, "
            f"M={self.default_M}, "
            f"efc={self.default_ef_construction}, "
            f"ef={self.default_ef_search}, "
            f"metric={self.default_metric})"
        )


# Preset configurations

def get_default_config() -> HNSWDBConfig:
    """Default configuration (recommended)."""
    return HNSWDBConfig(config_name="default")


def get_high_recall_config() -> HNSWDBConfig:
    """Denser graph and wider beams: better recall, slower inserts and queries."""
    return HNSWDBConfig(
        config_name="high_recall",
        default_M=32,
        default_ef_construction=400,
        default_ef_search=200,
    )
