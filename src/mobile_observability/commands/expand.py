"""
Expand command: render a slash command invocation into the full prompt.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..core.command_context import CommandContext
from ..processors.slash_commands import Expansion, expand, parse_invocation

logger = logging.getLogger(__name__)


def run(
    config_path: Optional[str],
    text: str,
    *,
    project_root: Optional[str] = None,
    budget: Optional[int] = None,
    plugin_root: Optional[str] = None,
) -> Expansion:
    """Parse and expand ``text`` (e.g. ``/instrument ios --vendor=sentry``).

    Raises:
        ValueError: If the invocation or its arguments are invalid
    """
    invocation = parse_invocation(text)
    ctx = CommandContext(config_path, plugin_root=plugin_root)
    root = Path(project_root).expanduser() if project_root else None
    return expand(invocation, ctx, project_root=root, token_budget=budget)
