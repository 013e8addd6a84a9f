"""Embedding based similarity for the reference router.

Computes cosine similarity between a routing query and document texts. The
router only mixes these scores in when ``router.semantic_weight`` is above
zero. If FastEmbed (or the model download) is unavailable it falls back to a
``sentence_transformers`` model; if neither loads, ``available()`` is False
and the router keeps its keyword scores.
"""

from __future__ import annotations

# Set before any heavy imports to silence HF tokenizers warning.
import os as _os
_os.environ.setdefault("TOKENIZERS_PARALLELISM", "false")

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


_MODEL_ALIASES = {
    "all-MiniLM-L6-v2": "BAAI/bge-small-en-v1.5",
    "sentence-transformers/all-MiniLM-L6-v2": "BAAI/bge-small-en-v1.5",
}


def _load_text_embedding(model_name: str):
    """Return a FastEmbed ``TextEmbedding`` instance for the given model."""
    from fastembed import TextEmbedding  # type: ignore

    return TextEmbedding(model_name=model_name)


class _SentenceTransformerAdapter:
    """Thin wrapper that mimics the ``TextEmbedding`` interface."""

    def __init__(self, model_name: str) -> None:
        from sentence_transformers import SentenceTransformer  # type: ignore

        self._model = SentenceTransformer(model_name)

    def embed(self, documents, **_kwargs):
        if isinstance(documents, str):
            docs = [documents]
        else:
            docs = list(documents)
        if not docs:
            return []

        vectors = self._model.encode(
            docs,
            convert_to_numpy=True,
            normalize_embeddings=False,
            show_progress_bar=False,
        )
        if isinstance(vectors, np.ndarray) and vectors.ndim == 1:
            return [np.asarray(vectors, dtype=np.float32)]
        return [np.asarray(vec, dtype=np.float32) for vec in vectors]


def _load_sentence_transformer(model_name: str):
    """Return a SentenceTransformer-backed adapter."""
    return _SentenceTransformerAdapter(model_name)


def _unit(vec) -> np.ndarray:
    arr = np.asarray(vec, dtype=np.float32)
    norm = np.linalg.norm(arr)
    if norm > 0:
        arr = arr / norm
    return arr


class SemanticRanker:
    def __init__(self, model_name: str = "BAAI/bge-small-en-v1.5") -> None:
        """Lazy-load an embedding model, logging a warning on failure."""
        self.model_name = model_name
        self._resolved_name = _MODEL_ALIASES.get(model_name, model_name)
        self._model: Optional[Any] = None
        self.backend: Optional[str] = None
        # Document vectors keyed by sha256 so repeated routes reuse them.
        self._cache: Dict[str, np.ndarray] = {}
        try:
            self._model = _load_text_embedding(self._resolved_name)
            self.backend = "fastembed"
        except Exception as e:  # pragma: no cover - optional dependency
            logger.warning(
                "FastEmbed unavailable or model load failed (%s). Attempting SentenceTransformer fallback.",
                e,
            )
            try:
                self._model = _load_sentence_transformer(self.model_name)
                self.backend = "sentence-transformers"
                logger.info("Using SentenceTransformer fallback for model '%s'", self.model_name)
            except Exception as fallback_err:  # pragma: no cover - optional dependency
                logger.warning(
                    "SentenceTransformer fallback unavailable (%s). Semantic scores will be skipped.",
                    fallback_err,
                )

    def available(self) -> bool:
        """Return True when the embedding model loaded successfully."""
        return self._model is not None

    def score(self, query: str, documents: Iterable[Tuple[str, str, str]]) -> Dict[str, float]:
        """Compute cosine similarity between *query* and each document.

        Args:
            query: Natural-language routing query
            documents: Iterable of (path, sha256, text)

        Returns:
            Mapping of path -> similarity clamped to [0, 1]; empty when the
            backend is unavailable or inference fails
        """
        if not self.available() or not (query or "").strip():
            return {}

        model = self._model
        assert model is not None

        batch = list(documents)
        pending: List[Tuple[str, str]] = []
        for _path, digest, text in batch:
            if digest not in self._cache:
                pending.append((digest, (text or "").strip()))

        if not batch:
            return {}

        try:
            q_vecs = list(model.embed([query.strip()]))
            if pending:
                d_vecs = list(model.embed([text for _digest, text in pending]))
                for (digest, _text), vec in zip(pending, d_vecs):
                    self._cache[digest] = _unit(vec)
        except Exception as e:  # pragma: no cover - backend failure
            logger.warning("Embedding inference failed (%s). Semantic scores will be skipped.", e)
            return {}

        if not q_vecs:
            return {}
        q_vec = _unit(q_vecs[0])

        scores: Dict[str, float] = {}
        for path, digest, _text in batch:
            vec = self._cache.get(digest)
            if vec is None:
                continue
            scores[path] = max(0.0, min(1.0, float(vec @ q_vec)))
        return scores
