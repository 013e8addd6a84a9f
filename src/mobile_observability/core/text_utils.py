"""Shared text processing utilities.

Consolidates tag normalization, keyword extraction and token-budget helpers
used by the corpus loader, the index and the reference router.
"""

import math
import re
import unicodedata
from typing import Iterable, Optional, Set

TRUNCATION_MARKER = "\n\n[... truncated to fit the token budget ...]"

_STOP_WORDS = {
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "how",
    "in", "into", "is", "it", "of", "on", "or", "that", "the", "this", "to",
    "use", "using", "when", "with", "your", "you", "what", "why",
}


def strip_accents(text: str) -> str:
    """Return ASCII-ish text by removing accent marks via Unicode normalization.

    Examples:
        >>> strip_accents("Café")
        'Cafe'
    """
    return "".join(
        c for c in unicodedata.normalize("NFKD", text)
        if not unicodedata.combining(c)
    )


def normalize_tag(text: Optional[str]) -> str:
    """Normalize a topic/platform/vendor tag for comparison.

    Lowercases, strips accents and collapses whitespace and underscores into
    single hyphens.

    Examples:
        >>> normalize_tag("React Native")
        'react-native'
        >>> normalize_tag("  crash_reporting ")
        'crash-reporting'
    """
    t = strip_accents(text or "").strip().lower()
    t = re.sub(r"[\s_]+", "-", t)
    t = re.sub(r"-{2,}", "-", t)
    return t.strip("-")


def tokenize(text: Optional[str]) -> Set[str]:
    """Return the set of lowercase keywords in *text* without stop words.

    Hyphenated tags contribute both the whole tag and its parts so that
    ``react-native`` matches queries mentioning ``native``.

    Examples:
        >>> sorted(tokenize("Crash reporting for the App"))
        ['app', 'crash', 'reporting']
    """
    if not text:
        return set()
    t = strip_accents(text).lower()
    words = set()
    for raw in re.findall(r"[a-z0-9][a-z0-9.+#-]*", t):
        word = raw.strip(".-")
        if not word or word in _STOP_WORDS:
            continue
        words.add(word)
        if "-" in word:
            words.update(p for p in word.split("-") if p and p not in _STOP_WORDS)
    return words


def keyword_overlap(query_terms: Iterable[str], doc_terms: Iterable[str]) -> float:
    """Fraction of query terms present in the document terms, in [0, 1].

    Examples:
        >>> keyword_overlap({"crash", "anr"}, {"crash", "ios"})
        0.5
        >>> keyword_overlap(set(), {"crash"})
        0.0
    """
    q = set(query_terms)
    if not q:
        return 0.0
    d = set(doc_terms)
    return len(q & d) / len(q)


def estimate_tokens(text: Optional[str], chars_per_token: int = 4) -> int:
    """Estimate the token count of *text* with a characters-per-token heuristic.

    Examples:
        >>> estimate_tokens("abcdefgh")
        2
        >>> estimate_tokens("abcde")
        2
        >>> estimate_tokens("")
        0
    """
    if not text:
        return 0
    return int(math.ceil(len(text) / max(1, int(chars_per_token))))


def truncate_to_tokens(text: str, budget: int, chars_per_token: int = 4) -> str:
    """Cut *text* so that it (marker included) fits inside *budget* tokens.

    Prefers the last paragraph break, then the last line break, that fits.
    Falls back to a hard cut. Returns ``text`` unchanged when it already fits
    and an empty string when the budget cannot even hold the marker.
    """
    if budget <= 0 or not text:
        return ""
    if estimate_tokens(text, chars_per_token) <= budget:
        return text

    max_chars = budget * max(1, int(chars_per_token)) - len(TRUNCATION_MARKER)
    if max_chars <= 0:
        return ""

    head = text[:max_chars]
    cut = head.rfind("\n\n")
    if cut < max_chars // 2:
        cut = head.rfind("\n")
    if cut < max_chars // 2:
        cut = max_chars
    return head[:cut].rstrip() + TRUNCATION_MARKER
