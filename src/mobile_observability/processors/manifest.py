"""Validation of the plugin manifest, hook manifest and corpus front matter."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.corpus import Corpus

logger = logging.getLogger(__name__)

PLUGIN_MANIFEST = Path(".claude-plugin") / "plugin.json"
HOOKS_MANIFEST = Path("hooks") / "hooks.json"

HOOK_EVENTS = {
    "PreToolUse",
    "PostToolUse",
    "UserPromptSubmit",
    "Notification",
    "Stop",
    "SubagentStop",
    "SessionStart",
    "SessionEnd",
    "PreCompact",
}
HOOK_TYPES = {"command", "prompt"}

_REQUIRED_FRONT_MATTER = {
    "command": ["description"],
    "agent": ["name", "description"],
    "skill": ["name", "description"],
    "reference": [],
}

_NAME_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$")
_MD_LINK_RE = re.compile(r"\[[^\]]*\]\(([^)\s]+)\)")


@dataclass
class Issue:
    level: str
    path: str
    message: str

    def format(self) -> str:
        return f"[{self.level}] {self.path}: {self.message}"


def _load_json(path: Path, issues: List[Issue], label: str) -> Optional[Any]:
    if not path.exists():
        issues.append(Issue("error", label, "file is missing"))
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        issues.append(Issue("error", label, f"invalid JSON: {e}"))
        return None


def validate_plugin_manifest(root: Path) -> List[Issue]:
    """Check ``.claude-plugin/plugin.json`` fields and referenced paths."""
    issues: List[Issue] = []
    label = PLUGIN_MANIFEST.as_posix()
    data = _load_json(root / PLUGIN_MANIFEST, issues, label)
    if data is None:
        return issues
    if not isinstance(data, dict):
        return [Issue("error", label, "manifest must be a JSON object")]

    name = data.get("name")
    if not isinstance(name, str) or not _NAME_RE.match(name):
        issues.append(Issue("error", label, f"'name' must be kebab-case, got {name!r}"))
    version = data.get("version")
    if version is not None and (not isinstance(version, str) or not _SEMVER_RE.match(version)):
        issues.append(Issue("error", label, f"'version' must be semver, got {version!r}"))
    if not str(data.get("description") or "").strip():
        issues.append(Issue("warning", label, "'description' is empty"))

    for key in ("commands", "agents", "hooks"):
        value = data.get(key)
        if value is None:
            continue
        targets = value if isinstance(value, list) else [value]
        for target in targets:
            if not isinstance(target, str):
                # Inline hook configuration objects are allowed
                if key == "hooks" and isinstance(target, dict):
                    continue
                issues.append(Issue("error", label, f"'{key}' entries must be paths"))
                continue
            if not (root / target).exists():
                issues.append(Issue("error", label, f"'{key}' path '{target}' does not exist"))
    return issues


def validate_hooks_manifest(root: Path) -> List[Issue]:
    """Check ``hooks/hooks.json`` against the host's hook schema."""
    issues: List[Issue] = []
    label = HOOKS_MANIFEST.as_posix()
    if not (root / HOOKS_MANIFEST).exists():
        return issues
    data = _load_json(root / HOOKS_MANIFEST, issues, label)
    if data is None:
        return issues

    hooks = data.get("hooks") if isinstance(data, dict) else None
    if not isinstance(hooks, dict):
        return [Issue("error", label, "top-level 'hooks' must be an object keyed by event name")]

    for event, matchers in hooks.items():
        if event not in HOOK_EVENTS:
            issues.append(Issue("error", label, f"unknown hook event '{event}'"))
            continue
        if not isinstance(matchers, list):
            issues.append(Issue("error", label, f"'{event}' must be a list of matcher groups"))
            continue
        for i, group in enumerate(matchers):
            where = f"{event}[{i}]"
            if not isinstance(group, dict):
                issues.append(Issue("error", label, f"{where} must be an object"))
                continue
            matcher = group.get("matcher")
            if matcher is not None:
                try:
                    re.compile(str(matcher))
                except re.error as e:
                    issues.append(Issue("error", label, f"{where} matcher is not a valid regex: {e}"))
            entries = group.get("hooks")
            if not isinstance(entries, list) or not entries:
                issues.append(Issue("error", label, f"{where} needs a non-empty 'hooks' list"))
                continue
            for j, entry in enumerate(entries):
                entry_where = f"{where}.hooks[{j}]"
                if not isinstance(entry, dict):
                    issues.append(Issue("error", label, f"{entry_where} must be an object"))
                    continue
                hook_type = entry.get("type")
                if hook_type not in HOOK_TYPES:
                    issues.append(Issue("error", label, f"{entry_where} type must be one of {sorted(HOOK_TYPES)}"))
                    continue
                if not str(entry.get(hook_type) or "").strip():
                    issues.append(Issue("error", label, f"{entry_where} is missing '{hook_type}'"))
                timeout = entry.get("timeout")
                if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
                    issues.append(Issue("error", label, f"{entry_where} timeout must be a positive number"))
    return issues


def validate_front_matter(corpus: Corpus) -> List[Issue]:
    """Check required front matter keys per document kind."""
    issues: List[Issue] = []
    for path, error in sorted(corpus.errors.items()):
        issues.append(Issue("error", path, error))
    for doc in corpus:
        for key in _REQUIRED_FRONT_MATTER.get(doc.kind, []):
            if not str(doc.metadata.get(key) or "").strip():
                issues.append(Issue("error", doc.path, f"front matter is missing '{key}'"))
        if doc.kind == "skill":
            folder = Path(doc.path).parts[1]
            declared = doc.metadata.get("name")
            if declared and declared != folder:
                issues.append(Issue("error", doc.path, f"skill name '{declared}' does not match folder '{folder}'"))
        if doc.kind in ("agent", "skill") and doc.metadata.get("name"):
            if not _NAME_RE.match(str(doc.metadata["name"])):
                issues.append(Issue("warning", doc.path, "name should be kebab-case"))
        if doc.kind == "reference" and not doc.description:
            issues.append(Issue("warning", doc.path, "reference has no description; routing relies on the title only"))
    return issues


def validate_links(corpus: Corpus) -> List[Issue]:
    """Check that relative markdown links between corpus files resolve."""
    issues: List[Issue] = []
    root = corpus.root.resolve()
    for doc in corpus:
        base = (corpus.root / doc.path).parent
        for target in _MD_LINK_RE.findall(doc.body):
            if re.match(r"^[a-z][a-z0-9+.-]*:", target) or target.startswith("#"):
                continue
            rel = target.split("#", 1)[0]
            if not rel:
                continue
            candidates = [(base / rel).resolve(), (corpus.root / rel).resolve()]
            if not any(c.exists() for c in candidates):
                issues.append(Issue("error", doc.path, f"broken link '{target}'"))
            elif not any(str(c).startswith(str(root)) for c in candidates if c.exists()):
                issues.append(Issue("warning", doc.path, f"link '{target}' points outside the plugin"))
    return issues


def validate_plugin(root: Path, corpus: Optional[Corpus] = None) -> List[Issue]:
    """Run every validation over the plugin at *root*."""
    root = Path(root)
    corpus = corpus or Corpus.load(root)
    issues: List[Issue] = []
    issues.extend(validate_plugin_manifest(root))
    issues.extend(validate_hooks_manifest(root))
    issues.extend(validate_front_matter(corpus))
    issues.extend(validate_links(corpus))
    for kind in ("command", "agent", "skill", "reference"):
        if not corpus.by_kind(kind):
            issues.append(Issue("warning", str(root), f"no {kind} documents found"))
    logger.info(
        "Validated plugin at %s: %d errors, %d warnings",
        root,
        sum(1 for i in issues if i.level == "error"),
        sum(1 for i in issues if i.level == "warning"),
    )
    return issues


def summarize(issues: List[Issue]) -> Dict[str, int]:
    return {
        "errors": sum(1 for i in issues if i.level == "error"),
        "warnings": sum(1 for i in issues if i.level == "warning"),
    }


__all__ = [
    "Issue",
    "HOOK_EVENTS",
    "validate_plugin_manifest",
    "validate_hooks_manifest",
    "validate_front_matter",
    "validate_links",
    "validate_plugin",
    "summarize",
]
