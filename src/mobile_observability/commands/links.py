"""
Links command: verify external URLs cited by the corpus.

Network access is throttled through the shared retrying HTTP client using the
``links`` section of the config (rps, max_retries, timeout, ignore).
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..core.command_context import CommandContext
from ..core.http_client import RetryableHTTPClient
from ..processors.link_checker import LinkResult, check_links

logger = logging.getLogger(__name__)


def run(
    config_path: Optional[str],
    *,
    limit: Optional[int] = None,
    plugin_root: Optional[str] = None,
) -> List[LinkResult]:
    """Check every unique external URL once and return the results."""
    logger.info("Starting links command")
    ctx = CommandContext(config_path, plugin_root=plugin_root)
    settings = ctx.config_manager.get_link_settings()

    with RetryableHTTPClient(
        rps=float(settings["rps"]),
        max_retries=int(settings["max_retries"]),
        timeout=int(settings["timeout"]),
    ) as client:
        results = check_links(ctx.corpus, client, ignore=settings["ignore"], limit=limit)

    broken = sum(1 for r in results if not r.ok)
    logger.info("Links command completed: %d checked, %d broken", len(results), broken)
    return results
