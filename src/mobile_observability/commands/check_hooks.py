"""
Check command: run the anti-pattern rules over files or a hook payload.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..core.config import ConfigManager
from ..processors.hook_checker import Finding, check_content, check_paths, load_rules, parse_hook_payload

logger = logging.getLogger(__name__)

RULES_FILE = Path("hooks") / "anti_patterns.yaml"


def load_configured_rules(config_manager: ConfigManager, plugin_root: Optional[str] = None):
    """Bundled plugin rules followed by any ``hooks.rules`` files from the config."""
    root = Path(plugin_root) if plugin_root else config_manager.get_plugin_root()
    rule_files = [root / RULES_FILE] + config_manager.get_extra_rule_files()
    return load_rules(*rule_files)


def run(
    config_path: Optional[str],
    paths: Optional[List[str]] = None,
    *,
    hook_payload: Optional[str] = None,
    plugin_root: Optional[str] = None,
) -> List[Finding]:
    """Return findings for *paths*, or for the file named in *hook_payload*.

    Raises:
        FileNotFoundError: If a path or rule file is missing
        ValueError: If a rule or the payload is malformed
    """
    config_manager = ConfigManager(config_path)
    rules = load_configured_rules(config_manager, plugin_root)

    if hook_payload is not None:
        parsed = parse_hook_payload(hook_payload)
        if parsed is None:
            logger.debug("Hook payload names no file; nothing to check")
            return []
        file_path, content = parsed
        findings = check_content(file_path, content, rules)
    else:
        findings = check_paths([Path(p) for p in (paths or ["."])], rules)

    logger.info("Checked with %d rules: %d findings", len(rules), len(findings))
    return findings
