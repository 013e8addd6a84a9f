"""Loading of the plugin corpus: commands, agents, skills and references."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set

from .frontmatter import as_list, parse_front_matter
from .text_utils import estimate_tokens, normalize_tag, tokenize

logger = logging.getLogger(__name__)

# Directories under references/ whose file stem names the platform or vendor.
_PATH_TAG_DIRS = {
    "platforms": "platforms",
    "vendors": "vendors",
}


@dataclass
class Document:
    """One markdown file of the plugin corpus with its routing metadata."""

    path: str
    kind: str
    name: str
    title: str
    description: str = ""
    topics: List[str] = field(default_factory=list)
    platforms: List[str] = field(default_factory=list)
    vendors: List[str] = field(default_factory=list)
    intents: List[str] = field(default_factory=list)
    priority: float = 0.0
    body: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    tokens: int = 0
    sha256: str = ""

    def terms(self) -> Set[str]:
        """Keywords the router matches queries against."""
        words = tokenize(self.title) | tokenize(self.description) | tokenize(self.name)
        for tag in self.topics + self.platforms + self.vendors + self.intents:
            words |= tokenize(tag)
        return words


def _first_heading(body: str) -> Optional[str]:
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith("#"):
            return stripped.lstrip("#").strip() or None
    return None


def _classify(rel: Path) -> Optional[str]:
    """Return the document kind for a corpus-relative path, or None to ignore it."""
    parts = rel.parts
    if not parts or rel.suffix.lower() != ".md":
        return None
    top = parts[0]
    if top == "commands" and len(parts) == 2:
        return "command"
    if top == "agents" and len(parts) == 2:
        return "agent"
    if top == "skills" and len(parts) == 3 and parts[2] == "SKILL.md":
        return "skill"
    if top == "references" and len(parts) >= 2:
        return "reference"
    return None


def _document_name(kind: str, rel: Path) -> str:
    if kind == "skill":
        return rel.parts[1]
    return rel.stem


def _path_tags(rel: Path, section: str) -> List[str]:
    """Infer platform/vendor tags from ``references/<section>/<name>.md`` paths."""
    parts = rel.parts
    if len(parts) >= 3 and parts[0] == "references" and parts[1] == _PATH_TAG_DIRS[section]:
        # references/platforms/ios.md or references/platforms/ios/crashes.md
        return [normalize_tag(Path(parts[2]).stem)]
    return []


def load_document(root: Path, rel: Path, kind: str, chars_per_token: int = 4) -> Document:
    """Read and parse a single corpus file.

    Raises:
        ValueError: If the front matter is malformed
    """
    raw = (root / rel).read_text(encoding="utf-8")
    meta, body = parse_front_matter(raw)

    name = str(meta.get("name") or _document_name(kind, rel))
    title = str(meta.get("title") or _first_heading(body) or name)
    platforms = [normalize_tag(p) for p in as_list(meta.get("platforms"))] or _path_tags(rel, "platforms")
    vendors = [normalize_tag(v) for v in as_list(meta.get("vendors"))] or _path_tags(rel, "vendors")

    try:
        priority = float(meta.get("priority") or 0.0)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric priority in %s", rel)
        priority = 0.0

    return Document(
        path=rel.as_posix(),
        kind=kind,
        name=name,
        title=title,
        description=str(meta.get("description") or "").strip(),
        topics=[normalize_tag(t) for t in as_list(meta.get("topics"))],
        platforms=platforms,
        vendors=vendors,
        intents=[normalize_tag(i) for i in as_list(meta.get("intents"))],
        priority=priority,
        body=body,
        metadata=meta,
        tokens=estimate_tokens(body, chars_per_token),
        sha256=hashlib.sha256(raw.encode("utf-8")).hexdigest(),
    )


class Corpus:
    """All markdown documents of a plugin directory, in stable path order.

    Example:
        ```python
        corpus = Corpus.load(get_bundled_plugin_dir())
        for doc in corpus.by_kind("reference"):
            print(doc.path, doc.tokens)
        ```
    """

    def __init__(self, root: Path, documents: List[Document], errors: Optional[Dict[str, str]] = None):
        self.root = Path(root)
        self.documents = documents
        self.errors = errors or {}
        self._by_path = {doc.path: doc for doc in documents}
        self._positions = {doc.path: i for i, doc in enumerate(documents)}

    @classmethod
    def load(cls, root: Path, chars_per_token: int = 4) -> "Corpus":
        """Discover and parse every corpus document under *root*.

        Raises:
            FileNotFoundError: If *root* is not a directory
        """
        root = Path(root)
        if not root.is_dir():
            raise FileNotFoundError(f"Plugin directory not found: {root}")

        documents: List[Document] = []
        errors: Dict[str, str] = {}
        for path in sorted(root.rglob("*.md")):
            rel = path.relative_to(root)
            kind = _classify(rel)
            if kind is None:
                continue
            try:
                documents.append(load_document(root, rel, kind, chars_per_token))
            except (OSError, UnicodeDecodeError, ValueError) as e:
                logger.error("Skipping %s: %s", rel.as_posix(), e)
                errors[rel.as_posix()] = str(e)

        logger.debug("Loaded %d documents from %s", len(documents), root)
        return cls(root, documents, errors)

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    def __contains__(self, path: object) -> bool:
        return path in self._by_path

    def get(self, path: str) -> Document:
        """Return the document at corpus-relative *path*.

        Raises:
            FileNotFoundError: If no such document was loaded
        """
        key = Path(path).as_posix()
        if key not in self._by_path:
            raise FileNotFoundError(f"Document not found in corpus: {path}")
        return self._by_path[key]

    def position(self, path: str) -> int:
        """Array order of *path* within the corpus (used to break score ties)."""
        return self._positions[self.get(path).path]

    def by_kind(self, kind: str) -> List[Document]:
        return [doc for doc in self.documents if doc.kind == kind]

    def commands(self) -> List[Document]:
        return self.by_kind("command")

    def find_command(self, name: str) -> Document:
        """Return the command template for ``/name``.

        Raises:
            ValueError: If the command does not exist
        """
        wanted = name.lstrip("/").strip().lower()
        for doc in self.commands():
            if doc.name.lower() == wanted:
                return doc
        available = ", ".join(f"/{doc.name}" for doc in self.commands()) or "none"
        raise ValueError(f"Unknown command '/{wanted}'. Available commands: {available}")

    def counts(self) -> Dict[str, int]:
        """Number of documents per kind."""
        result: Dict[str, int] = {}
        for doc in self.documents:
            result[doc.kind] = result.get(doc.kind, 0) + 1
        return result


__all__ = ["Document", "Corpus", "load_document"]
