from __future__ import annotations

import logging
from typing import List, Optional

from .commands import build_index as index_cmd
from .commands import check_hooks as check_cmd
from .commands import expand as expand_cmd
from .commands import links as links_cmd
from .commands import route as route_cmd
from .commands import validate as validate_cmd
from .core.config import ConfigManager, DEFAULT_CONFIG_PATH
from .core.corpus import Corpus, Document
from .processors.router import ReferenceRouter, RouteRequest, RouteResult

logger = logging.getLogger(__name__)

__version__ = "0.3.0"

_DEFAULT_CONFIG = str(DEFAULT_CONFIG_PATH)

__all__ = [
    'route',
    'expand',
    'index',
    'check',
    'validate',
    'links',
    'ConfigManager',
    'Corpus',
    'Document',
    'ReferenceRouter',
    'RouteRequest',
    'RouteResult',
]


def route(
    intent: str,
    *,
    platform: Optional[str] = None,
    vendor: Optional[str] = None,
    query: str = "",
    budget: Optional[int] = None,
    include: Optional[List[str]] = None,
    config_path: Optional[str] = None,
    plugin_root: Optional[str] = None,
) -> RouteResult:
    """Select references for an intent programmatically.

    Args:
        intent: Configured intent name (instrument, diagnose, audit, ...)
        platform: Platform name or alias
        vendor: Vendor name or alias
        query: Extra keywords to rank by
        budget: Token budget override
        include: Corpus paths to always include first
        config_path: Path to main YAML config; defaults to the data dir config
        plugin_root: Corpus directory overriding ``plugin.root``
    """
    cfg_path = config_path or _DEFAULT_CONFIG
    return route_cmd.run(
        cfg_path,
        intent,
        platform=platform,
        vendor=vendor,
        query=query,
        budget=budget,
        include=include,
        plugin_root=plugin_root,
    )


def expand(
    text: str,
    *,
    project_root: Optional[str] = None,
    budget: Optional[int] = None,
    config_path: Optional[str] = None,
    plugin_root: Optional[str] = None,
) -> str:
    """Expand a slash command invocation and return the rendered prompt."""
    cfg_path = config_path or _DEFAULT_CONFIG
    expansion = expand_cmd.run(
        cfg_path, text, project_root=project_root, budget=budget, plugin_root=plugin_root
    )
    return expansion.prompt


def index(
    *,
    output: Optional[str] = None,
    check: bool = False,
    config_path: Optional[str] = None,
    plugin_root: Optional[str] = None,
):
    """Build INDEX.yaml (or, with ``check=True``, report stale entries)."""
    cfg_path = config_path or _DEFAULT_CONFIG
    return index_cmd.run(cfg_path, output=output, check=check, plugin_root=plugin_root)


def check(
    paths: Optional[List[str]] = None,
    *,
    hook_payload: Optional[str] = None,
    config_path: Optional[str] = None,
    plugin_root: Optional[str] = None,
):
    """Run the anti-pattern rules over paths or a host hook payload."""
    cfg_path = config_path or _DEFAULT_CONFIG
    return check_cmd.run(cfg_path, paths, hook_payload=hook_payload, plugin_root=plugin_root)


def validate(*, config_path: Optional[str] = None, plugin_root: Optional[str] = None):
    """Validate the plugin manifests and corpus front matter."""
    cfg_path = config_path or _DEFAULT_CONFIG
    return validate_cmd.run(cfg_path, plugin_root=plugin_root)


def links(
    *,
    limit: Optional[int] = None,
    config_path: Optional[str] = None,
    plugin_root: Optional[str] = None,
):
    """Check external URLs cited by the corpus."""
    cfg_path = config_path or _DEFAULT_CONFIG
    return links_cmd.run(cfg_path, limit=limit, plugin_root=plugin_root)
