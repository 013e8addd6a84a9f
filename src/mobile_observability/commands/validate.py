"""
Validate command: lint the plugin manifest, hook manifest and front matter.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..core.command_context import CommandContext
from ..processors.hook_checker import load_rules
from ..processors.manifest import Issue, validate_plugin
from .check_hooks import RULES_FILE

logger = logging.getLogger(__name__)


def run(config_path: Optional[str], *, plugin_root: Optional[str] = None) -> List[Issue]:
    """Validate the configured (or given) plugin directory and return all issues."""
    ctx = CommandContext(config_path, plugin_root=plugin_root)
    issues = validate_plugin(ctx.plugin_root, ctx.corpus)

    rules_path = Path(ctx.plugin_root) / RULES_FILE
    if rules_path.exists():
        try:
            load_rules(rules_path)
        except ValueError as e:
            issues.append(Issue("error", RULES_FILE.as_posix(), str(e)))

    for name, intent in ctx.config_manager.get_intents().items():
        for rel in intent["required"]:
            if rel not in ctx.corpus:
                issues.append(Issue("error", rel, f"required by intent '{name}' but missing from the corpus"))
    return issues
