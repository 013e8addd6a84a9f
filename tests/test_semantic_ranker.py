import numpy as np
import pytest

from mobile_observability.processors import semantic_ranker


class DummyEmbedder:
    """Toy stand-in for ``fastembed.TextEmbedding`` used by the tests."""

    def __init__(self, mapping):
        # Deterministic vectors per text; yields lazily like FastEmbed does.
        self.mapping = mapping
        self.requests = []

    def embed(self, documents, **_kwargs):
        if isinstance(documents, str):
            documents = [documents]
        for doc in documents:
            self.requests.append(doc)
            yield np.array(self.mapping.get(doc, [0.0, 0.0]), dtype=np.float32)


def test_ranker_scores_documents_with_fastembed(monkeypatch):
    called = {}
    mapping = {
        "alpha": [1.0, 0.0],
        "doc one": [0.8, 0.2],
        "doc two": [0.1, 0.9],
    }

    def fake_loader(model_name):
        called["name"] = model_name
        return DummyEmbedder(mapping)

    monkeypatch.setattr(semantic_ranker, "_load_text_embedding", fake_loader)

    ranker = semantic_ranker.SemanticRanker(model_name="all-MiniLM-L6-v2")
    assert ranker.available()
    assert ranker.backend == "fastembed"
    assert called["name"] == "BAAI/bge-small-en-v1.5"

    docs = [("a.md", "sha-a", "doc one"), ("b.md", "sha-b", "doc two")]
    scores = ranker.score("alpha", docs)
    assert scores["a.md"] == pytest.approx(0.9701425, rel=1e-6)
    assert scores["b.md"] == pytest.approx(0.1104315, rel=1e-6)


def test_document_vectors_are_cached_by_digest(monkeypatch):
    embedder = DummyEmbedder({"q": [1.0, 0.0], "doc": [1.0, 0.0]})
    monkeypatch.setattr(semantic_ranker, "_load_text_embedding", lambda _name: embedder)
    ranker = semantic_ranker.SemanticRanker()

    ranker.score("q", [("a.md", "sha-a", "doc")])
    ranker.score("q", [("a.md", "sha-a", "doc")])

    assert embedder.requests.count("doc") == 1
    assert embedder.requests.count("q") == 2


def test_opposite_vectors_clamp_to_zero(monkeypatch):
    embedder = DummyEmbedder({"q": [1.0, 0.0], "doc": [-1.0, 0.0]})
    monkeypatch.setattr(semantic_ranker, "_load_text_embedding", lambda _name: embedder)

    scores = semantic_ranker.SemanticRanker().score("q", [("a.md", "sha", "doc")])
    assert scores == {"a.md": 0.0}


def test_ranker_handles_loader_failure(monkeypatch):
    def boom(_model_name):
        raise RuntimeError("no backend")

    monkeypatch.setattr(semantic_ranker, "_load_text_embedding", boom)
    monkeypatch.setattr(semantic_ranker, "_load_sentence_transformer", boom)

    ranker = semantic_ranker.SemanticRanker(model_name="BAAI/bge-small-en-v1.5")
    assert not ranker.available()
    assert ranker.backend is None
    assert ranker.score("alpha", [("a.md", "sha", "text")]) == {}
