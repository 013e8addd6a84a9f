"""Reference router: intent + platform + vendor + token budget -> document bundle.

Workflow
--------

1. Collect candidates whose kind is eligible for the intent.
2. Drop documents declaring platforms (or vendors) that exclude the request;
   platform-agnostic documents always stay.
3. Score by keyword overlap against the intent keywords and query, then add
   platform/vendor/priority boosts and the optional semantic term.
4. Pack greedily into the token budget, required documents first.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.corpus import Corpus, Document
from ..core.text_utils import estimate_tokens, keyword_overlap, tokenize, truncate_to_tokens

logger = logging.getLogger(__name__)


@dataclass
class RouteRequest:
    intent: str
    platform: Optional[str] = None
    vendor: Optional[str] = None
    query: str = ""
    token_budget: Optional[int] = None
    include: Sequence[str] = ()
    vendors: Sequence[str] = ()

    def wanted_vendors(self) -> List[str]:
        """Explicit vendor plus any detected vendors, de-duplicated in order."""
        result: List[str] = []
        for v in ([self.vendor] if self.vendor else []) + list(self.vendors):
            if v and v not in result:
                result.append(v)
        return result


SECTION_SEPARATOR = "\n"


def render_section(path: str, content: str) -> str:
    return f"<!-- source: {path} -->\n{content.strip()}\n"


@dataclass
class Selection:
    path: str
    score: float
    tokens: int
    truncated: bool = False
    required: bool = False
    content: str = field(default="", repr=False)


@dataclass
class RouteResult:
    request: RouteRequest
    budget: int
    selections: List[Selection] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @property
    def total_tokens(self) -> int:
        return sum(s.tokens for s in self.selections)

    @property
    def paths(self) -> List[str]:
        return [s.path for s in self.selections]

    def render(self) -> str:
        """Concatenate selected documents, each under a source marker."""
        return SECTION_SEPARATOR.join(render_section(sel.path, sel.content) for sel in self.selections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request": asdict(self.request) | {
                "include": list(self.request.include),
                "vendors": list(self.request.vendors),
            },
            "budget": self.budget,
            "total_tokens": self.total_tokens,
            "selections": [
                {k: v for k, v in asdict(s).items() if k != "content"} for s in self.selections
            ],
            "skipped": list(self.skipped),
            "missing": list(self.missing),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def _matches_tags(declared: Iterable[str], wanted: Iterable[str]) -> bool:
    """A document passes when it declares no tags or shares one with the request."""
    declared = list(declared)
    wanted = [w for w in wanted if w]
    if not declared or not wanted:
        return True
    return bool(set(declared) & set(wanted))


class ReferenceRouter:
    """Select and pack corpus documents for one request.

    Example:
        ```python
        router = ReferenceRouter(corpus, cfg.get_router_settings(), cfg.get_intents())
        result = router.route(RouteRequest("instrument", platform="ios", vendor="sentry"))
        print(result.render())
        ```
    """

    def __init__(
        self,
        corpus: Corpus,
        settings: Dict[str, Any],
        intents: Dict[str, Dict[str, Any]],
        ranker: Optional[Any] = None,
    ) -> None:
        self.corpus = corpus
        self.settings = settings
        self.intents = intents
        self.ranker = ranker
        self.chars_per_token = int(settings.get("chars_per_token", 4))

    def candidates(self, request: RouteRequest) -> List[Document]:
        """Documents eligible for *request* before scoring, in corpus order."""
        intent = self._intent(request.intent)
        kinds = set(intent.get("kinds") or [])
        vendors = request.wanted_vendors()
        result = []
        for doc in self.corpus:
            if kinds and doc.kind not in kinds:
                continue
            if doc.intents and request.intent not in doc.intents:
                continue
            if not _matches_tags(doc.platforms, [request.platform] if request.platform else []):
                continue
            if not _matches_tags(doc.vendors, vendors):
                continue
            result.append(doc)
        return result

    def score(self, request: RouteRequest, docs: List[Document]) -> List[Tuple[Document, float]]:
        """Return (document, score) pairs, scores clamped to [0, 1]."""
        intent = self._intent(request.intent)
        query_terms = set()
        for keyword in intent.get("keywords") or []:
            query_terms |= tokenize(keyword)
        query_terms |= tokenize(request.query)

        platform_boost = float(self.settings.get("platform_boost", 0.0))
        vendor_boost = float(self.settings.get("vendor_boost", 0.0))
        priority_weight = float(self.settings.get("priority_weight", 0.0))
        semantic_weight = float(self.settings.get("semantic_weight", 0.0))
        vendors = set(request.wanted_vendors())

        semantic: Dict[str, float] = {}
        if semantic_weight > 0 and self.ranker is not None:
            if self.ranker.available():
                text = " ".join(filter(None, [request.intent, request.query, request.platform or ""] + list(vendors)))
                semantic = self.ranker.score(
                    text, [(d.path, d.sha256, f"{d.title}\n{d.description}\n{d.body[:2000]}") for d in docs]
                )
            else:
                logger.warning("Semantic ranker unavailable; using keyword scores only")

        scored = []
        for doc in docs:
            s = keyword_overlap(query_terms, doc.terms())
            if request.platform and request.platform in doc.platforms:
                s += platform_boost
            if vendors and vendors & set(doc.vendors):
                s += vendor_boost
            s += priority_weight * doc.priority
            s += semantic_weight * semantic.get(doc.path, 0.0)
            scored.append((doc, max(0.0, min(1.0, s))))
        return scored

    def route(self, request: RouteRequest) -> RouteResult:
        """Select documents for *request* and pack them into the token budget."""
        intent = self._intent(request.intent)
        raw_budget = request.token_budget if request.token_budget is not None else self.settings.get("token_budget", 8000)
        budget = int(raw_budget)
        if budget <= 0:
            raise ValueError(f"Token budget must be positive, got {budget}")
        min_section = int(self.settings.get("min_section_tokens", 0))
        result = RouteResult(request=request, budget=budget)

        ordered: List[Tuple[Document, float, bool]] = []
        seen = set()
        for rel in list(intent.get("required") or []) + list(request.include or []):
            if rel in seen:
                continue
            seen.add(rel)
            try:
                doc = self.corpus.get(rel)
            except FileNotFoundError:
                logger.warning("Required document '%s' not found in corpus", rel)
                result.missing.append(rel)
                continue
            ordered.append((doc, 1.0, True))

        docs = [d for d in self.candidates(request) if d.path not in seen]
        scored = self.score(request, docs)
        # Stable: equal scores keep corpus array order
        scored.sort(key=lambda pair: (-pair[1], self.corpus.position(pair[0].path)))
        ordered.extend((doc, s, False) for doc, s in scored)

        # Selection tokens cover the rendered section: source marker, body and
        # separator. Their sum bounds the estimate of render().
        remaining = budget
        for doc, s, required in ordered:
            tokens = self._section_tokens(doc.path, doc.body)
            overhead = self._section_tokens(doc.path, "")
            allowance = remaining - overhead
            if tokens <= remaining:
                content, truncated = doc.body, False
            elif allowance >= min_section and allowance > 0:
                content = truncate_to_tokens(doc.body, allowance, self.chars_per_token)
                truncated = True
                if not content:
                    result.skipped.append(doc.path)
                    continue
                tokens = self._section_tokens(doc.path, content)
            else:
                result.skipped.append(doc.path)
                continue

            result.selections.append(
                Selection(
                    path=doc.path,
                    score=round(s, 4),
                    tokens=tokens,
                    truncated=truncated,
                    required=required,
                    content=content,
                )
            )
            remaining -= tokens

        logger.info(
            "Routed intent '%s' (platform=%s, vendors=%s): %d selected, %d skipped, %d/%d tokens",
            request.intent,
            request.platform,
            ",".join(request.wanted_vendors()) or None,
            len(result.selections),
            len(result.skipped),
            result.total_tokens,
            budget,
        )
        return result

    def _section_tokens(self, path: str, content: str) -> int:
        return estimate_tokens(render_section(path, content) + SECTION_SEPARATOR, self.chars_per_token)

    def _intent(self, name: str) -> Dict[str, Any]:
        if name not in self.intents:
            raise ValueError(
                f"Unknown intent '{name}'. Available intents: {', '.join(sorted(self.intents)) or 'none'}"
            )
        return self.intents[name]


__all__ = ["RouteRequest", "RouteResult", "Selection", "ReferenceRouter"]
