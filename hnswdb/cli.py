"""
Command-line interface for hnswdb.

    hnswdb create [--dimension N] [--max-connections M] [--metric cosine]
    hnswdb add FILE [FILE ...] [--chunk-size 512]
    hnswdb query "some text" [--top-k 3]
    hnswdb list [--limit 10]
    hnswdb info

Every command works on one store file (--db, default from config). `add`
and `query` embed text with the configured sentence-transformers model.
Store errors are reported as "error: <Kind>: <message>" on stderr with exit
status 1.
"""

import argparse
import logging
import os
import sys
from typing import List

from hnswdb.config import HNSWDBConfig, get_default_config
from hnswdb.embedding import SentenceTransformerEmbedder
from hnswdb.errors import HNSWDBError
from hnswdb.hnsw.distance import METRICS
from hnswdb.vector_store import VectorStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_embedder(model_name: str) -> SentenceTransformerEmbedder:
    """Construct the embedder used by `add` and `query`."""
    return SentenceTransformerEmbedder(model_name)


def build_parser(config: HNSWDBConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hnswdb", description="Embedded HNSW vector database"
    )
    parser.add_argument(
        "--db",
        default=config.default_db_path,
        help=f"Store file (default: {config.default_db_path})",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON file with HNSWDBConfig values",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create an empty store")
    create.add_argument("--dimension", type=int, default=None, help="Fix the vector dimension")
    create.add_argument(
        "--max-connections", type=int, default=None, help="M: max neighbors per node"
    )
    create.add_argument("--ef-construction", type=int, default=None)
    create.add_argument("--metric", choices=sorted(METRICS), default=None)
    create.add_argument("--seed", type=int, default=None, help="Seed for layer assignment")
    create.add_argument("--force", action="store_true", help="Overwrite an existing store")

    add = subparsers.add_parser("add", help="Chunk, embed and add text files")
    add.add_argument("files", nargs="+", help="Text files to ingest")
    add.add_argument("--chunk-size", type=int, default=None, help="Max characters per chunk")

    query = subparsers.add_parser("query", help="Find the chunks closest to a text")
    query.add_argument("text", help="Query text")
    query.add_argument("--top-k", type=int, default=None, help="Number of results")
    query.add_argument("--ef-search", type=int, default=None)

    list_cmd = subparsers.add_parser("list", help="Show the most recently added chunks")
    list_cmd.add_argument("--limit", type=int, default=None)

    subparsers.add_parser("info", help="Show store path, size and sources")

    return parser


def _preview(text: str | None, width: int = 80) -> str:
    if not text:
        return ""
    return text if len(text) <= width else text[:width - 3] + "..."


def cmd_create(args: argparse.Namespace, config: HNSWDBConfig) -> int:
    if os.path.exists(args.db) and not args.force:
        print(f"error: {args.db} already exists (use --force to overwrite)", file=sys.stderr)
        return 1

    store = VectorStore.create(
        dimension=args.dimension,
        M=args.max_connections,
        ef_construction=args.ef_construction,
        metric=args.metric,
        seed=args.seed,
        config=config,
    )
    store.save(args.db)
    print(f"Created {args.db} (M={store.M}, metric={store.metric})")
    return 0


def cmd_add(args: argparse.Namespace, config: HNSWDBConfig) -> int:
    store = VectorStore.load(args.db, config=config)
    embedder = load_embedder(config.embedding_model)

    total = 0
    for filename in args.files:
        with open(filename, "r", encoding="utf-8") as f:
            text = f.read()
        ids = store.add_text(
            text, embedder, source=os.path.basename(filename), max_chunk_size=args.chunk_size
        )
        logger.info("Added %d chunk(s) from %s", len(ids), filename)
        total += len(ids)

    store.save()
    print(f"Added {total} chunk(s) from {len(args.files)} file(s); store holds {store.size()}")
    return 0


def cmd_query(args: argparse.Namespace, config: HNSWDBConfig) -> int:
    store = VectorStore.load(args.db, config=config)
    top_k = args.top_k if args.top_k is not None else config.default_top_k

    embedder = load_embedder(config.embedding_model)
    query_vector = embedder.embed_chunks([args.text])[0]

    results = store.query(query_vector, k=top_k, ef_search=args.ef_search)
    if not results:
        print("No results.")
        return 0

    for rank, result in enumerate(results, start=1):
        print(f"{rank}. [{result['distance']:.4f}] {result['source'] or '-'}: {_preview(result['text'])}")
    return 0


def cmd_list(args: argparse.Namespace, config: HNSWDBConfig) -> int:
    store = VectorStore.load(args.db, config=config)

    for summary in store.list_records(args.limit):
        print(f"{summary['position']}\t{summary['id']}\t{summary['source'] or '-'}\t{_preview(summary['text'], 60)}")
    return 0


def cmd_info(args: argparse.Namespace, config: HNSWDBConfig) -> int:
    store = VectorStore.load(args.db, config=config)
    info = store.info()

    print(f"Path:       {info['path']}")
    print(f"Documents:  {info['count']}")
    print(f"Dimension:  {info['dimension'] if info['dimension'] is not None else '-'}")
    print(f"Metric:     {info['metric']}")
    print(f"M / M_max0: {info['M']} / {info['M_max0']}")
    print(f"Top layer:  {info['top_layer']}")
    print(f"Sources:    {len(info['sources'])}")
    for source in info["sources"]:
        print(f"  - {source}")
    return 0


COMMANDS = {
    "create": cmd_create,
    "add": cmd_add,
    "query": cmd_query,
    "list": cmd_list,
    "info": cmd_info,
}


def _load_config(argv: List[str] | None) -> HNSWDBConfig:
    # --config has to be known before the parser is built, since it supplies defaults
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    known, _ = pre.parse_known_args(argv)
    if known.config:
        return HNSWDBConfig.from_json(known.config)
    return get_default_config()


def main(argv: List[str] | None = None) -> int:
    """Run the CLI; returns the process exit status."""
    try:
        config = _load_config(argv)
    except (OSError, ValueError, TypeError) as exc:
        print(f"error: cannot load config: {exc}", file=sys.stderr)
        return 1

    args = build_parser(config).parse_args(argv)

    if args.verbose >= 2:
        level = logging.DEBUG
    elif args.verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, config.log_level)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    try:
        return COMMANDS[args.command](args, config)
    except HNSWDBError as exc:
        print(f"error: {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
