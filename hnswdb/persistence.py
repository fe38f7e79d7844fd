"""
On-disk format for hnswdb stores.

A store is written as one indented JSON document holding a format tag and
version, the construction parameters, every record (id, level, source, text,
vector), the adjacency of every layer, the entry point and the list of
contributing source files. float32 vector components are written as the
shortest decimal that maps back to the same float32, so a reloaded store
searches bit-for-bit like the one that was saved.

Writes are atomic: the document goes to a temporary file in the destination
directory, is fsynced, and is then renamed over the destination. A crash
mid-write leaves the previous file untouched.

Loads are all-or-nothing: the document is fully decoded and structurally
validated before an index is built from it.
"""

import contextlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

import numpy as np

from hnswdb.errors import Corrupt, NotFound, VersionMismatch
from hnswdb.graph_validator import GraphValidator
from hnswdb.hnsw.distance import METRICS
from hnswdb.hnsw.graph import HNSWGraph
from hnswdb.hnsw.index import HNSWIndex
from hnswdb.record import VectorRecord

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

FORMAT_NAME = "hnswdb"
FORMAT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({1})

# How many structural problems to quote in a Corrupt message
_MAX_REPORTED_PROBLEMS = 5


@dataclass
class StoreState:
    """Everything a store file holds, decoded."""

    index: HNSWIndex
    normalize: bool = True
    sources: List[str] = field(default_factory=list)


def encode_store(index: HNSWIndex, sources: List[str], normalize: bool) -> Dict[str, Any]:
    """
    Build the JSON-ready document for an index.

    Args:
        index: Index to serialize
        sources: Contributing source file names, in first-seen order
        normalize: Whether the store normalizes vectors

    Returns:
        Document dictionary (see module docstring)
    """
    graph = index.graph
    layers = graph.layers if graph.size() else []

    return {
        "format": FORMAT_NAME,
        "version": FORMAT_VERSION,
        "params": {
            "M": graph.M,
            "M_max0": graph.M_max0,
            "ef_construction": graph.ef_construction,
            "ef_search": index.ef_search,
            "level_multiplier": float(graph.level_multiplier),
            "max_level": graph.max_level,
            "keep_pruned": index.keep_pruned,
            "dimension": graph.dimension,
            "metric": graph.metric,
            "normalize": normalize,
        },
        "entry_point": graph.entry_point,
        "nodes": [
            {
                "id": node.record.id,
                "level": node.level,
                "source": node.record.source,
                "text": node.record.text,
                "vector": node.record.vector.tolist(),
            }
            for node in graph.nodes
        ],
        "layers": [
            {str(node): neighbors for node, neighbors in layer.adjacency().items()}
            for layer in layers
        ],
        "sources": list(sources),
    }


def _require(mapping: Dict[str, Any], key: str, kind: Any, where: str) -> Any:
    """Fetch a key and check its type, raising Corrupt otherwise."""
    if key not in mapping:
        raise Corrupt(f"{where}: missing '{key}'")
    value = mapping[key]
    # bool is an int subclass; never accept it where a number is expected
    if isinstance(value, bool) and bool not in (kind if isinstance(kind, tuple) else (kind,)):
        raise Corrupt(f"{where}: '{key}' has type bool")
    if not isinstance(value, kind):
        raise Corrupt(f"{where}: '{key}' has type {type(value).__name__}")
    return value


def _check_version(document: Dict[str, Any]) -> None:
    if document.get("format") != FORMAT_NAME:
        raise Corrupt(f"not an {FORMAT_NAME} document (format tag {document.get('format')!r})")

    version = document.get("version")
    if version is None:
        raise Corrupt("missing format version")
    if isinstance(version, bool) or not isinstance(version, int):
        raise Corrupt(f"format version must be an integer, got {version!r}")
    if version not in SUPPORTED_VERSIONS:
        raise VersionMismatch(version, SUPPORTED_VERSIONS)


def decode_store(document: Any, rng: np.random.Generator | None = None) -> StoreState:
    """
    Rebuild a store from a decoded JSON document.

    Args:
        document: Parsed JSON value
        rng: Generator for future level draws (fresh one when None)

    Returns:
        The decoded StoreState

    Raises:
        Corrupt: If the document is malformed or violates a graph invariant
        VersionMismatch: If the document declares an unsupported version
    """
    if not isinstance(document, dict):
        raise Corrupt(f"top-level value must be an object, got {type(document).__name__}")

    _check_version(document)

    params = _require(document, "params", dict, "document")
    M = _require(params, "M", int, "params")
    M_max0 = _require(params, "M_max0", int, "params")
    ef_construction = _require(params, "ef_construction", int, "params")
    ef_search = _require(params, "ef_search", int, "params")
    level_multiplier = _require(params, "level_multiplier", (int, float), "params")
    max_level = _require(params, "max_level", int, "params")
    keep_pruned = _require(params, "keep_pruned", bool, "params")
    dimension = _require(params, "dimension", (int, type(None)), "params")
    metric = _require(params, "metric", str, "params")
    normalize = _require(params, "normalize", bool, "params")

    if M < 2 or M_max0 < 1 or ef_construction < 1 or ef_search < 1 or max_level < 0:
        raise Corrupt(f"params out of range: {params!r}")
    if not np.isfinite(level_multiplier) or level_multiplier < 0:
        raise Corrupt(f"level_multiplier must be a non-negative number, got {level_multiplier}")
    if dimension is not None and dimension < 1:
        raise Corrupt(f"dimension must be positive, got {dimension}")
    if metric not in METRICS:
        raise Corrupt(f"unknown metric {metric!r}")

    raw_nodes = _require(document, "nodes", list, "document")
    raw_layers = _require(document, "layers", list, "document")
    entry_point = _require(document, "entry_point", (int, type(None)), "document")
    sources = _require(document, "sources", list, "document")

    if not all(isinstance(source, str) for source in sources):
        raise Corrupt("sources must be strings")

    if raw_nodes and dimension is None:
        raise Corrupt("store holds vectors but has no dimension")

    records: List[VectorRecord] = []
    levels: List[int] = []
    for position, raw in enumerate(raw_nodes):
        where = f"node {position}"
        if not isinstance(raw, dict):
            raise Corrupt(f"{where}: expected an object")
        record_id = _require(raw, "id", str, where)
        level = _require(raw, "level", int, where)
        source = _require(raw, "source", (str, type(None)), where)
        text = _require(raw, "text", (str, type(None)), where)
        values = _require(raw, "vector", list, where)

        if len(values) != dimension:
            raise Corrupt(f"{where}: vector has {len(values)} values, expected {dimension}")
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
            raise Corrupt(f"{where}: vector values must be numbers")
        vector = np.asarray(values, dtype=np.float32)
        if not np.isfinite(vector).all():
            raise Corrupt(f"{where}: vector holds NaN or infinite values")
        if level < 0 or level > max_level:
            raise Corrupt(f"{where}: level {level} outside [0, {max_level}]")

        records.append(
            VectorRecord(
                id=record_id,
                vector=vector,
                source=source,
                text=text,
            )
        )
        levels.append(level)

    layers: List[Dict[int, List[int]]] = []
    for layer_num, raw_layer in enumerate(raw_layers):
        if not isinstance(raw_layer, dict):
            raise Corrupt(f"layer {layer_num}: expected an object")
        adjacency: Dict[int, List[int]] = {}
        for key, neighbors in raw_layer.items():
            try:
                node = int(key)
            except ValueError:
                raise Corrupt(f"layer {layer_num}: node key {key!r} is not an integer") from None
            if not isinstance(neighbors, list) or not all(
                isinstance(n, int) and not isinstance(n, bool) for n in neighbors
            ):
                raise Corrupt(f"layer {layer_num}: neighbors of {key} must be a list of integers")
            adjacency[node] = neighbors
        layers.append(adjacency)

    problems = GraphValidator(levels, layers, entry_point, M=M, M_max0=M_max0).find_violations()
    if problems:
        shown = "; ".join(problems[:_MAX_REPORTED_PROBLEMS])
        more = len(problems) - _MAX_REPORTED_PROBLEMS
        suffix = f" (and {more} more)" if more > 0 else ""
        raise Corrupt(f"graph validation failed: {shown}{suffix}")

    graph = HNSWGraph(
        dimension=dimension,
        M=M,
        M_max0=M_max0,
        ef_construction=ef_construction,
        level_multiplier=float(level_multiplier),
        metric=metric,
        max_level=max_level,
    )
    for record, level in zip(records, levels):
        graph.add_node(record, level)
    for layer_num, adjacency in enumerate(layers):
        for node, neighbors in adjacency.items():
            graph.layers[layer_num].set_neighbors(node, neighbors)
    graph.entry_point = entry_point

    index = HNSWIndex(ef_search=ef_search, keep_pruned=keep_pruned, rng=rng, graph=graph)
    return StoreState(index=index, normalize=normalize, sources=list(sources))


def write_document(document: Dict[str, Any], path: PathLike) -> None:
    """
    Atomically write a JSON document to path.

    The document is written to a temporary file next to the destination,
    flushed to disk, and renamed over the destination.
    """
    path = os.fspath(path)
    directory = os.path.dirname(os.path.abspath(path))
    basename = os.path.basename(path)

    fd, tmp_path = tempfile.mkstemp(prefix=f".{basename}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, allow_nan=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_path)
        raise


def read_document(path: PathLike) -> Any:
    """
    Read and parse a JSON document.

    Raises:
        NotFound: If path does not exist
        Corrupt: If the file is not valid UTF-8 JSON
    """
    path = os.fspath(path)
    if not os.path.exists(path):
        raise NotFound(f"No store at {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise Corrupt(f"{path} is not a valid store document: {exc}") from exc


def save_index(
    index: HNSWIndex, path: PathLike, sources: List[str], normalize: bool
) -> None:
    """Serialize an index and its source list to path, atomically."""
    write_document(encode_store(index, sources, normalize), path)
    logger.info("Saved store to %s (%d vectors)", os.fspath(path), index.size())


def load_index(path: PathLike, rng: np.random.Generator | None = None) -> StoreState:
    """
    Load a store file.

    Raises:
        NotFound: If path does not exist
        Corrupt: If the file cannot be parsed or fails validation
        VersionMismatch: If the file's format version is unsupported
    """
    try:
        state = decode_store(read_document(path), rng=rng)
    except Corrupt as exc:
        logger.error("Rejected store at %s: %s", os.fspath(path), exc)
        raise
    logger.info("Loaded store from %s (%d vectors)", os.fspath(path), state.index.size())
    return state
