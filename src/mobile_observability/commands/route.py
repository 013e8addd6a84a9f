"""
Route command: select references for an intent, platform, vendor and budget.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..core.command_context import CommandContext
from ..processors.router import RouteResult

logger = logging.getLogger(__name__)


def run(
    config_path: Optional[str],
    intent: str,
    *,
    platform: Optional[str] = None,
    vendor: Optional[str] = None,
    query: str = "",
    budget: Optional[int] = None,
    include: Optional[List[str]] = None,
    plugin_root: Optional[str] = None,
) -> RouteResult:
    """Route one request and return the packed result.

    Raises:
        ValueError: For unknown intents, platforms or vendors
    """
    ctx = CommandContext(config_path, plugin_root=plugin_root)
    ctx.warn_if_index_stale()
    request = ctx.make_request(
        intent,
        platform=platform,
        vendor=vendor,
        query=query,
        token_budget=budget,
        include=include,
    )
    result = ctx.router().route(request)
    for path in result.missing:
        logger.warning("Requested document '%s' does not exist", path)
    return result
