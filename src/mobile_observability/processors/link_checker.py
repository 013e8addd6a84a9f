"""Check external URLs referenced by the corpus (vendor docs, SDK repos)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import requests

from ..core.corpus import Corpus
from ..core.http_client import RetryableHTTPClient

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"https?://[^\s)\]>\"'`]+")
_TRAILING = ".,;:!?"


@dataclass
class LinkResult:
    url: str
    status: Optional[int]
    ok: bool
    error: str = ""
    sources: List[str] = field(default_factory=list)


def extract_urls(corpus: Corpus, ignore: Iterable[str] = ()) -> Dict[str, List[str]]:
    """Map each external URL to the corpus files that mention it, in first-seen order."""
    ignore = [p for p in ignore if p]
    urls: Dict[str, List[str]] = {}
    for doc in corpus:
        for raw in _URL_RE.findall(doc.body):
            url = raw.rstrip(_TRAILING)
            if any(url.startswith(prefix) for prefix in ignore):
                continue
            sources = urls.setdefault(url, [])
            if doc.path not in sources:
                sources.append(doc.path)
    return urls


def check_url(client: RetryableHTTPClient, url: str) -> LinkResult:
    """HEAD the URL, falling back to GET for servers that reject HEAD."""
    try:
        response = client.head_with_retry(url)
        if response is not None and response.status_code in (403, 405, 501):
            response = client.get_with_retry(url)
    except requests.RequestException as e:
        return LinkResult(url=url, status=None, ok=False, error=str(e))

    if response is None:
        return LinkResult(url=url, status=None, ok=False, error="no response")
    ok = response.status_code < 400
    return LinkResult(url=url, status=response.status_code, ok=ok, error="" if ok else response.reason or "")


def check_links(
    corpus: Corpus,
    client: RetryableHTTPClient,
    ignore: Iterable[str] = (),
    limit: Optional[int] = None,
) -> List[LinkResult]:
    """Check every unique URL once; results keep the first-seen URL order."""
    urls = extract_urls(corpus, ignore)
    results = []
    for i, (url, sources) in enumerate(urls.items()):
        if limit is not None and i >= limit:
            logger.info("Stopping after %d URLs (limit reached)", limit)
            break
        result = check_url(client, url)
        result.sources = sources
        if not result.ok:
            logger.warning("Broken link %s (%s) in %s", url, result.status or result.error, ", ".join(sources))
        results.append(result)
    return results


__all__ = ["LinkResult", "extract_urls", "check_url", "check_links"]
