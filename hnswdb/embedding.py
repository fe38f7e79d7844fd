"""
Text chunking and embedding generation.

The store itself only consumes fixed-length vectors. This module turns raw
text into those vectors: chunk_text() splits a document into word-aligned
chunks, and SentenceTransformerEmbedder encodes chunks with a
sentence-transformers model (all-MiniLM-L6-v2 by default, 384 dimensions).

sentence-transformers is an optional dependency (the `embeddings` extra) and
is only imported when an embedder is constructed.
"""

from typing import List, Sequence

import numpy as np
import numpy.typing as npt

Vector = npt.NDArray[np.float32]

DEFAULT_MODEL = "all-MiniLM-L6-v2"
DEFAULT_CHUNK_SIZE = 512


def chunk_text(text: str, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """
    Split text into whitespace-delimited chunks of at most max_chunk_size characters.

    Words are never split: a single word longer than the limit becomes a
    chunk of its own. Runs of whitespace collapse to single spaces.

    Args:
        text: Input text
        max_chunk_size: Maximum characters per chunk (>= 1)

    Returns:
        List of chunks (empty for blank text)

    Example:
        >>> chunk_text("one two three", max_chunk_size=7)
        ['one two', 'three']
    """
    if max_chunk_size < 1:
        raise ValueError(f"max_chunk_size must be >= 1, got {max_chunk_size}")

    chunks: List[str] = []
    current: List[str] = []
    current_len = 0

    for word in text.split():
        if not current:
            current = [word]
            current_len = len(word)
        elif current_len + 1 + len(word) <= max_chunk_size:
            current.append(word)
            current_len += 1 + len(word)
        else:
            chunks.append(" ".join(current))
            current = [word]
            current_len = len(word)

    if current:
        chunks.append(" ".join(current))

    return chunks


class SentenceTransformerEmbedder:
    """
    Chunk embedder backed by a sentence-transformers model.

    Encoding is batched; the model parallelizes internally, and nothing here
    touches a store.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        device: str | None = None,
        batch_size: int = 32,
    ) -> None:
        """
        Args:
            model_name: sentence-transformers model name or local path
            device: Torch device ("cpu", "cuda", ...); library default when None
            batch_size: Chunks per encode batch
        """
        from sentence_transformers import SentenceTransformer

        self.model_name = model_name
        self.batch_size = batch_size
        self.model = SentenceTransformer(model_name, device=device)

    @property
    def dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    def embed_chunks(self, chunks: Sequence[str]) -> List[Vector]:
        """Encode each chunk into one float32 vector."""
        if not chunks:
            return []
        embeddings = self.model.encode(
            list(chunks),
            batch_size=self.batch_size,
            convert_to_numpy=True,
            show_progress_bar=False,
        )
        return [np.asarray(row, dtype=np.float32) for row in embeddings]

    def embed(self, text: str, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[Vector]:
        """Chunk a text and encode every chunk."""
        return self.embed_chunks(chunk_text(text, max_chunk_size))

    def __repr__(self) -> str:
        return f"SentenceTransformerEmbedder(model={self.model_name!r})"
