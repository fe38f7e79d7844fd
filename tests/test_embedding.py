"""
Tests for text chunking and the sentence-transformers embedder wrapper.

The embedder tests replace the sentence_transformers module with a small
stand-in so no model is downloaded.
"""

import sys
import types

import numpy as np
import pytest
from hnswdb.embedding import SentenceTransformerEmbedder, chunk_text


def test_chunk_text_splits_on_words():
    """Chunks never exceed the limit and keep words whole"""
    assert chunk_text("one two three", max_chunk_size=7) == ["one two", "three"]


def test_chunk_text_single_chunk():
    """Short text stays in one chunk"""
    assert chunk_text("hello world") == ["hello world"]


def test_chunk_text_collapses_whitespace():
    """Runs of whitespace become single spaces"""
    assert chunk_text("a\n\n b\t c", max_chunk_size=100) == ["a b c"]


def test_chunk_text_long_word():
    """A word longer than the limit becomes its own chunk"""
    assert chunk_text("hi supercalifragilistic yo", max_chunk_size=5) == [
        "hi",
        "supercalifragilistic",
        "yo",
    ]


def test_chunk_text_blank():
    """Blank text yields no chunks"""
    assert chunk_text("  \n\t ") == []


def test_chunk_text_bad_size():
    """Chunk size must be positive"""
    with pytest.raises(ValueError):
        chunk_text("text", max_chunk_size=0)


class _StubModel:
    def __init__(self, model_name, device=None):
        self.model_name = model_name
        self.device = device
        self.encoded = []

    def get_sentence_embedding_dimension(self):
        return 4

    def encode(self, sentences, batch_size=32, convert_to_numpy=True, show_progress_bar=True):
        self.encoded.append((list(sentences), batch_size))
        return np.array([[len(s), 1.0, 0.0, 0.0] for s in sentences], dtype=np.float64)


@pytest.fixture
def stub_sentence_transformers(monkeypatch):
    module = types.ModuleType("sentence_transformers")
    module.SentenceTransformer = _StubModel
    monkeypatch.setitem(sys.modules, "sentence_transformers", module)
    return module


def test_embedder_encodes_chunks(stub_sentence_transformers):
    """embed_chunks returns one float32 vector per chunk"""
    embedder = SentenceTransformerEmbedder("tiny-model", device="cpu", batch_size=8)

    vectors = embedder.embed_chunks(["ab", "abcd"])

    assert embedder.dimension == 4
    assert embedder.model.model_name == "tiny-model"
    assert embedder.model.encoded == [(["ab", "abcd"], 8)]
    assert [v.dtype for v in vectors] == [np.float32, np.float32]
    assert vectors[1][0] == 4.0


def test_embedder_empty_input(stub_sentence_transformers):
    """No chunks, no model call"""
    embedder = SentenceTransformerEmbedder()

    assert embedder.embed_chunks([]) == []
    assert embedder.model.encoded == []


def test_embedder_embed_chunks_text(stub_sentence_transformers):
    """embed() chunks the text first"""
    embedder = SentenceTransformerEmbedder()

    vectors = embedder.embed("one two three", max_chunk_size=7)

    assert len(vectors) == 2
    assert embedder.model.encoded[0][0] == ["one two", "three"]
