"""
Core vector storage facade for hnswdb
"""

from typing import Any, Dict, List, Sequence, Union
import logging
import os

import numpy as np
import numpy.typing as npt

from hnswdb.config import HNSWDBConfig, get_default_config
from hnswdb.embedding import chunk_text
from hnswdb.errors import DimensionMismatch, EmptyQuery, InvalidVector
from hnswdb.graph_validator import GraphValidator
from hnswdb.hnsw.distance import normalize_vector
from hnswdb.hnsw.index import HNSWIndex
from hnswdb.locks import RWLock
from hnswdb.persistence import PathLike, load_index, save_index
from hnswdb.record import VectorRecord, new_record_id

Vector = npt.NDArray[np.float32]
VectorLike = Union[Vector, Sequence[float]]

logger = logging.getLogger(__name__)


class VectorStore:
    """
    Embedded vector database with HNSW indexing.

    This is the main entry point for hnswdb. It owns one HNSW index plus the
    list of source files that contributed to it, and maps 1:1 to one store
    file on disk.

    Writers (add, add_many, add_text) take an exclusive lock; readers (query,
    list_records, info, save) share it, so many queries can run in parallel
    but never alongside an insertion.

    IMPORTANT: add() and query() operate on pre-embedded vectors. Use
    add_text() with an embedder (see hnswdb.embedding) to ingest raw text.

    Example:
        >>> store = VectorStore(dimension=3, M=16, seed=7)
        >>> store.add([1.0, 0.0, 0.0], source="a")
        >>> store.add([0.0, 1.0, 0.0], source="b")
        >>> results = store.query([1.0, 0.0, 0.0], k=1)
        >>> results[0]["source"]
        'a'
        >>> store.save("vectors.json")
    """

    def __init__(
        self,
        dimension: int | None = None,
        M: int | None = None,
        M_max0: int | None = None,
        ef_construction: int | None = None,
        ef_search: int | None = None,
        metric: str | None = None,
        normalize: bool | None = None,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
        config: HNSWDBConfig | None = None,
    ) -> None:
        """
        Create an empty store.

        Args:
            dimension: Vector length (None = fixed by the first added vector)
            M: Max neighbors per node above layer 0
            M_max0: Max neighbors at layer 0 (default 2*M)
            ef_construction: Candidate list size while inserting
            ef_search: Default candidate list size while querying
            metric: Distance metric name ("cosine", "l2", "dot")
            normalize: L2-normalize vectors and queries
            seed: Seed for layer assignment (reproducible graphs)
            rng: Explicit generator for layer assignment (overrides seed)
            config: HNSWDBConfig supplying defaults for anything not given

        Raises:
            ValueError: If a parameter is out of range or the metric is unknown
        """
        if config is None:
            config = get_default_config()
        self.config = config

        # Explicit parameters take precedence over config
        if M is None:
            M = config.default_M
            if M_max0 is None:
                M_max0 = config.default_M_max0
        if ef_construction is None:
            ef_construction = config.default_ef_construction
        if ef_search is None:
            ef_search = config.default_ef_search
        if metric is None:
            metric = config.default_metric
        if normalize is None:
            normalize = config.normalize

        if dimension is not None and dimension < 1:
            raise ValueError(f"dimension must be positive, got {dimension}")
        if ef_construction < 1:
            raise ValueError(f"ef_construction must be >= 1, got {ef_construction}")

        self.normalize = normalize
        self.path: str | None = None

        self._index = HNSWIndex(
            dimension=dimension,
            M=M,
            M_max0=M_max0,
            ef_construction=ef_construction,
            ef_search=ef_search,
            metric=metric,
            max_level=config.max_level,
            keep_pruned=config.keep_pruned,
            rng=rng,
            seed=seed,
        )

        # Contributing source names in first-seen order
        self._sources: List[str] = []
        self._lock = RWLock()

    @classmethod
    def create(cls, **params: Any) -> "VectorStore":
        """Create an empty store; keyword arguments as for the constructor."""
        store = cls(**params)
        logger.info("Created store %r", store)
        return store

    @property
    def index(self) -> HNSWIndex:
        return self._index

    @property
    def dimension(self) -> int | None:
        return self._index.dimension

    @property
    def metric(self) -> str:
        return self._index.metric

    @property
    def M(self) -> int:
        return self._index.graph.M

    @property
    def ef_search(self) -> int:
        return self._index.ef_search

    @property
    def sources(self) -> List[str]:
        return list(self._sources)

    def _prepare(self, vector: VectorLike, what: str = "Vector") -> Vector:
        """
        Copy into a float32 1D array, check it and normalize if enabled.

        The copy keeps stored records independent of the caller's buffer.

        Raises:
            DimensionMismatch: If the array is empty, not 1D or the wrong length
            InvalidVector: If any component is NaN or infinite
        """
        array = np.array(vector, dtype=np.float32)
        self._index.graph.check_dimension(array, what)

        if not np.isfinite(array).all():
            raise InvalidVector(f"{what} contains NaN or infinite values")

        if self.normalize:
            array = normalize_vector(array).astype(np.float32)

        return array

    def _insert(
        self,
        vector: Vector,
        source: str | None,
        text: str | None,
        record_id: str | None,
    ) -> str:
        record = VectorRecord(
            id=record_id if record_id is not None else new_record_id(),
            vector=vector,
            source=source,
            text=text,
        )
        self._index.insert(record)

        if source is not None and source not in self._sources:
            self._sources.append(source)

        return record.id

    def add(
        self,
        vector: VectorLike,
        source: str | None = None,
        text: str | None = None,
        record_id: str | None = None,
    ) -> str:
        """
        Add a single vector to the store.

        Args:
            vector: Embedding (length must equal the store dimension)
            source: Originating file name or chunk label
            text: Chunk text the embedding came from
            record_id: Identifier to use (a fresh UUID when None). Ids are not
                       checked for uniqueness; adding one twice stores two records.

        Returns:
            The record's identifier

        Raises:
            DimensionMismatch: If the vector length is wrong (store unchanged)
            InvalidVector: If the vector holds NaN or infinite values
        """
        with self._lock.write():
            prepared = self._prepare(vector)
            return self._insert(prepared, source, text, record_id)

    def add_many(
        self,
        vectors: Sequence[VectorLike],
        sources: Sequence[str | None] | None = None,
        texts: Sequence[str | None] | None = None,
    ) -> List[str]:
        """
        Add a batch of vectors.

        Every vector is validated before any is inserted, so a batch with one
        bad vector leaves the store unchanged.

        Args:
            vectors: Embeddings to add
            sources: Optional per-vector source labels
            texts: Optional per-vector chunk texts

        Returns:
            Record identifiers, in input order

        Raises:
            ValueError: If sources/texts lengths don't match vectors
            DimensionMismatch: If any vector length is wrong
            InvalidVector: If any vector holds NaN or infinite values
        """
        num_vectors = len(vectors)
        if sources is None:
            sources = [None] * num_vectors
        elif len(sources) != num_vectors:
            raise ValueError(
                f"Number of sources ({len(sources)}) doesn't match number of vectors ({num_vectors})"
            )
        if texts is None:
            texts = [None] * num_vectors
        elif len(texts) != num_vectors:
            raise ValueError(
                f"Number of texts ({len(texts)}) doesn't match number of vectors ({num_vectors})"
            )

        with self._lock.write():
            prepared = [self._prepare(vector) for vector in vectors]

            # A store without a fixed dimension takes the first vector's length
            if prepared and self.dimension is None:
                expected = prepared[0].shape[0]
                for array in prepared[1:]:
                    if array.shape[0] != expected:
                        raise DimensionMismatch(expected, int(array.shape[0]))

            ids = [
                self._insert(array, source, text, None)
                for array, source, text in zip(prepared, sources, texts)
            ]

        logger.info("Added %d vector(s); store now holds %d", len(ids), self.size())
        return ids

    def add_text(
        self,
        text: str,
        embedder: Any,
        source: str | None = None,
        max_chunk_size: int | None = None,
    ) -> List[str]:
        """
        Chunk a text, embed every chunk and add the results.

        Embedding runs before the write lock is taken; only the insertion of
        the finished vectors is exclusive.

        Args:
            text: Raw text to ingest
            embedder: Object with embed_chunks(chunks) -> sequence of vectors
            source: Label recorded for every chunk (usually the file name)
            max_chunk_size: Max characters per chunk (config default when None)

        Returns:
            Identifiers of the added chunks
        """
        if max_chunk_size is None:
            max_chunk_size = self.config.default_chunk_size

        chunks = chunk_text(text, max_chunk_size)
        if not chunks:
            return []

        embeddings = embedder.embed_chunks(chunks)
        return self.add_many(embeddings, sources=[source] * len(chunks), texts=chunks)

    def query(
        self, vector: VectorLike, k: int = 10, ef_search: int | None = None
    ) -> List[Dict[str, Any]]:
        """
        Search for the k nearest stored vectors.

        Args:
            vector: Query embedding (same model and length as stored vectors)
            k: Number of results to return (>= 1)
            ef_search: Override default ef_search for this query

        Returns:
            Results closest first, each a dict with keys
            'id', 'distance', 'source', 'text', 'vector'. Equal distances are
            ordered by insertion (earlier first). An empty store returns [].

        Raises:
            EmptyQuery: If k or ef_search is below 1
            DimensionMismatch: If the query length is wrong
            InvalidVector: If the query holds NaN or infinite values
        """
        if k < 1:
            raise EmptyQuery(f"k must be >= 1, got {k}")
        if ef_search is not None and ef_search < 1:
            raise EmptyQuery(f"ef_search must be >= 1, got {ef_search}")

        with self._lock.read():
            prepared = self._prepare(vector, "Query")
            results = self._index.search(prepared, k=k, ef_search=ef_search)

            formatted_results = []
            for node_id, distance in results:
                record = self._index.get_record(node_id)
                formatted_results.append(
                    {
                        "id": record.id,
                        "distance": float(distance),
                        "source": record.source,
                        "text": record.text,
                        "vector": record.vector.copy(),
                    }
                )

        return formatted_results

    def list_records(self, limit: int | None = None) -> List[Dict[str, Any]]:
        """
        Summaries of the most recently added records, newest first.

        Args:
            limit: Max number of summaries (config default when None)

        Returns:
            Dicts with keys 'id', 'source', 'text', 'position'
            (position = insertion order, starting at 0)
        """
        if limit is None:
            limit = self.config.default_list_limit
        if limit < 0:
            raise EmptyQuery(f"limit must be >= 0, got {limit}")

        with self._lock.read():
            total = self._index.size()
            summaries = []
            for position in range(total - 1, max(total - limit, 0) - 1, -1):
                summary = self._index.get_record(position).summary()
                summary["position"] = position
                summaries.append(summary)

        return summaries

    def info(self) -> Dict[str, Any]:
        """Path, size, sources and construction parameters of the store."""
        with self._lock.read():
            graph = self._index.graph
            return {
                "path": self.path,
                "count": self._index.size(),
                "sources": list(self._sources),
                "dimension": graph.dimension,
                "metric": graph.metric,
                "M": graph.M,
                "M_max0": graph.M_max0,
                "ef_construction": graph.ef_construction,
                "ef_search": self._index.ef_search,
                "top_layer": graph.get_max_level(),
            }

    def get_statistics(self) -> Dict[str, Any]:
        """Graph shape statistics (per-layer sizes, base-layer degree stats)."""
        with self._lock.read():
            stats = self._index.get_statistics()
            stats["base_layer"] = GraphValidator.from_graph(self._index.graph).get_graph_statistics()
            stats["dimension"] = self.dimension
        return stats

    def size(self) -> int:
        """Number of records in the store."""
        return self._index.size()

    def __len__(self) -> int:
        return self.size()

    def save(self, path: PathLike | None = None) -> str:
        """
        Write the store to disk atomically.

        Args:
            path: Destination (defaults to the path it was loaded from or last saved to)

        Returns:
            The path written
        """
        if path is None:
            if self.path is None:
                raise ValueError("No path given and the store has never been saved or loaded")
            path = self.path

        with self._lock.read():
            save_index(self._index, path, self._sources, self.normalize)

        self.path = os.fspath(path)
        return self.path

    @classmethod
    def load(
        cls,
        path: PathLike,
        config: HNSWDBConfig | None = None,
        metric: str | None = None,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> "VectorStore":
        """
        Load a store from disk.

        Construction parameters (M, dimension, metric, ...) come from the
        file; config only supplies CLI-level defaults.

        Args:
            path: Store file
            config: Config for defaults not persisted in the file
            metric: Metric the caller expects; a mismatch is logged, the
                    file's metric is always used
            seed: Seed for future level draws
            rng: Generator for future level draws (overrides seed)

        Raises:
            NotFound: If path does not exist
            Corrupt: If the file is malformed or fails validation
            VersionMismatch: If the file's format version is unsupported
        """
        if rng is None:
            rng = np.random.default_rng(seed)

        state = load_index(path, rng=rng)

        if metric is not None and metric != state.index.metric:
            logger.warning(
                "Store %s was built with metric %r, not %r; using %r",
                os.fspath(path), state.index.metric, metric, state.index.metric,
            )

        store = cls(config=config)
        store._index = state.index
        store._sources = list(state.sources)
        store.normalize = state.normalize
        store.path = os.fspath(path)
        return store

    def __repr__(self) -> str:
        return (
            f"VectorStore(count={self.size()}, dim={self.dimension}, "
            f"metric={self.metric}, M={self.M}, path={self.path!r})"
        )
