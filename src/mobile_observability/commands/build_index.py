"""
Index command: write INDEX.yaml for the configured plugin corpus.

With ``check=True`` nothing is written; the command reports which entries are
stale (changed, added or removed files) so CI can fail on an outdated index.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..core.command_context import CommandContext
from ..core.index import build_index, load_index, stale_entries, write_index

logger = logging.getLogger(__name__)


def run(
    config_path: Optional[str],
    *,
    output: Optional[str] = None,
    check: bool = False,
    plugin_root: Optional[str] = None,
) -> Dict[str, List[str]]:
    """Build (or verify) the index.

    Args:
        config_path: Path to main config
        output: Optional index path overriding ``index.path``
        check: Only compare the existing index with the corpus
        plugin_root: Optional corpus directory overriding ``plugin.root``

    Returns:
        Stale entry report (all lists empty after a rebuild)
    """
    logger.info("Starting index command")
    ctx = CommandContext(config_path, plugin_root=plugin_root)
    index_path = Path(output) if output else ctx.config_manager.get_index_path()

    if check:
        try:
            existing = load_index(index_path)
        except FileNotFoundError:
            logger.error("No index at %s", index_path)
            return {"changed": [], "added": [doc.path for doc in ctx.corpus], "removed": []}
        report = stale_entries(existing, ctx.corpus)
        logger.info(
            "Index check: %d changed, %d added, %d removed",
            len(report["changed"]),
            len(report["added"]),
            len(report["removed"]),
        )
        return report

    chars_per_token = int(ctx.settings.get("chars_per_token", 4))
    write_index(build_index(ctx.corpus, chars_per_token), index_path)
    for path, error in ctx.corpus.errors.items():
        logger.warning("Not indexed (%s): %s", path, error)
    logger.info("Index command completed")
    return {"changed": [], "added": [], "removed": []}
