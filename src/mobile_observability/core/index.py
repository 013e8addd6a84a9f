"""INDEX.yaml: static lookup table of corpus files and their routing metadata.

The index maps every file to its topics, platforms, vendors, intents and token
estimate, plus a sha256 digest so that stale entries can be detected without
re-reading routing metadata.
"""

from __future__ import annotations

import datetime
import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .corpus import Corpus

logger = logging.getLogger(__name__)

INDEX_VERSION = 1

_ENTRY_FIELDS = [
    "path",
    "kind",
    "name",
    "title",
    "description",
    "topics",
    "platforms",
    "vendors",
    "intents",
    "priority",
    "tokens",
    "sha256",
]


def build_index(corpus: Corpus, chars_per_token: int = 4) -> Dict[str, Any]:
    """Return the index mapping for *corpus* in corpus array order."""
    documents: List[Dict[str, Any]] = []
    for doc in corpus:
        documents.append({name: getattr(doc, name) for name in _ENTRY_FIELDS})

    return {
        "version": INDEX_VERSION,
        "generated_at": datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "chars_per_token": int(chars_per_token),
        "root": str(corpus.root),
        "documents": documents,
    }


def write_index(index: Dict[str, Any], path: Path) -> Path:
    """Write *index* as YAML to *path*, creating parent folders."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(index, f, sort_keys=False, allow_unicode=True, width=100)
    logger.info("Wrote index with %d documents to %s", len(index.get("documents") or []), path)
    return path


def load_index(path: Path) -> Dict[str, Any]:
    """Load an INDEX.yaml file.

    Raises:
        FileNotFoundError: If the index file does not exist
        ValueError: If the file is not a supported index
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Index not found: {path}. Run 'mobile-observability index' first.")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Index {path} is not a mapping")
    version = data.get("version")
    if version != INDEX_VERSION:
        raise ValueError(f"Unsupported index version {version!r} in {path} (expected {INDEX_VERSION})")
    if not isinstance(data.get("documents"), list):
        raise ValueError(f"Index {path} has no 'documents' list")
    return data


def stale_entries(index: Dict[str, Any], corpus: Corpus) -> Dict[str, List[str]]:
    """Compare an index with the current corpus.

    Returns:
        Mapping with ``changed``, ``added`` and ``removed`` path lists
    """
    indexed = {entry.get("path"): entry.get("sha256") for entry in index.get("documents") or []}
    current = {doc.path: doc.sha256 for doc in corpus}

    changed = [p for p, digest in current.items() if p in indexed and indexed[p] != digest]
    added = [p for p in current if p not in indexed]
    removed = [p for p in indexed if p not in current]
    return {"changed": changed, "added": added, "removed": removed}


def is_stale(index: Dict[str, Any], corpus: Corpus) -> bool:
    return any(stale_entries(index, corpus).values())


__all__ = [
    "INDEX_VERSION",
    "build_index",
    "write_index",
    "load_index",
    "stale_entries",
    "is_stale",
]
