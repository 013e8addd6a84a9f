"""Anti-pattern checks run by the plugin's edit hooks.

Rules live in ``hooks/anti_patterns.yaml`` and are matched against edited
source files. The host invokes ``mobile-observability check --hook`` with the
tool payload on stdin; ``error`` findings make the command exit with code 2 so
the host blocks the edit and shows the message to the model.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

SEVERITIES = ("warning", "error")
BLOCKING_EXIT_CODE = 2

_SKIPPED_DIRS = {".git", "node_modules", "Pods", "build", ".gradle", ".dart_tool", "DerivedData"}


@dataclass
class HookRule:
    id: str
    pattern: re.Pattern
    message: str
    severity: str = "warning"
    description: str = ""
    globs: List[str] = field(default_factory=list)
    exclude_pattern: Optional[re.Pattern] = None

    def applies_to(self, path: str) -> bool:
        if not self.globs:
            return True
        posix = Path(path).as_posix()
        name = Path(path).name
        return any(fnmatch.fnmatch(name, g) or fnmatch.fnmatch(posix, g) for g in self.globs)


@dataclass
class Finding:
    rule_id: str
    severity: str
    path: str
    line: int
    excerpt: str
    message: str

    def format(self) -> str:
        return f"{self.path}:{self.line}: [{self.severity}] {self.rule_id}: {self.message}\n    {self.excerpt}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_rule(raw: Dict[str, Any], source: Path) -> HookRule:
    rule_id = str(raw.get("id") or "").strip()
    if not rule_id:
        raise ValueError(f"Rule without 'id' in {source}")

    severity = str(raw.get("severity") or "warning").lower()
    if severity not in SEVERITIES:
        raise ValueError(f"Rule '{rule_id}' has invalid severity '{severity}' (expected one of {SEVERITIES})")

    pattern = raw.get("pattern")
    if not isinstance(pattern, str) or not pattern.strip():
        raise ValueError(f"Rule '{rule_id}' pattern must be a non-empty string")
    try:
        compiled = re.compile(pattern, re.MULTILINE)
    except re.error as e:
        raise ValueError(f"Rule '{rule_id}' pattern is not a valid regex: {e}") from e

    exclude = raw.get("exclude_pattern")
    compiled_exclude = None
    if exclude:
        try:
            compiled_exclude = re.compile(str(exclude))
        except re.error as e:
            raise ValueError(f"Rule '{rule_id}' exclude_pattern is not a valid regex: {e}") from e

    globs = raw.get("globs") or []
    if isinstance(globs, str):
        globs = [globs]

    return HookRule(
        id=rule_id,
        pattern=compiled,
        message=str(raw.get("message") or raw.get("description") or rule_id).strip(),
        severity=severity,
        description=str(raw.get("description") or "").strip(),
        globs=[str(g) for g in globs],
        exclude_pattern=compiled_exclude,
    )


def load_rules(*paths: Path) -> List[HookRule]:
    """Load and validate rules from one or more YAML files.

    Later files override earlier rules that share an ``id``.

    Raises:
        FileNotFoundError: If a rule file is missing
        ValueError: If a rule is malformed
    """
    rules: Dict[str, HookRule] = {}
    for path in paths:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Rule file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        entries = data.get("rules") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise ValueError(f"{path} must contain a 'rules' list")
        for raw in entries:
            if not isinstance(raw, dict):
                raise ValueError(f"Every rule in {path} must be a mapping")
            rule = _parse_rule(raw, path)
            if rule.id in rules:
                logger.debug("Rule '%s' overridden by %s", rule.id, path)
            rules[rule.id] = rule
        logger.debug("Loaded %d rules from %s", len(entries), path)
    return list(rules.values())


def check_content(path: str, content: str, rules: Iterable[HookRule]) -> List[Finding]:
    """Match every applicable rule against *content*; findings sorted by line."""
    findings: List[Finding] = []
    lines = content.split("\n")
    for rule in rules:
        if not rule.applies_to(path):
            continue
        for match in rule.pattern.finditer(content):
            line_no = content.count("\n", 0, match.start()) + 1
            line = lines[line_no - 1] if 0 < line_no <= len(lines) else match.group(0)
            if rule.exclude_pattern is not None and rule.exclude_pattern.search(line):
                continue
            findings.append(
                Finding(
                    rule_id=rule.id,
                    severity=rule.severity,
                    path=path,
                    line=line_no,
                    excerpt=line.strip()[:160],
                    message=rule.message,
                )
            )
    findings.sort(key=lambda f: (f.line, f.rule_id))
    return findings


def _iter_files(paths: Iterable[Path]) -> Iterable[Path]:
    for path in paths:
        path = Path(path)
        if path.is_dir():
            for item in sorted(path.rglob("*")):
                if item.is_file() and not (set(item.relative_to(path).parts) & _SKIPPED_DIRS):
                    yield item
        elif path.is_file():
            yield path
        else:
            raise FileNotFoundError(f"Path not found: {path}")


def check_paths(paths: Iterable[Path], rules: List[HookRule]) -> List[Finding]:
    """Check files and directories (recursively) against *rules*."""
    findings: List[Finding] = []
    for item in _iter_files(paths):
        if not any(rule.applies_to(str(item)) for rule in rules):
            continue
        try:
            content = item.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Skipping unreadable file %s: %s", item, e)
            continue
        findings.extend(check_content(str(item), content, rules))
    return findings


def parse_hook_payload(payload: str) -> Optional[Tuple[str, str]]:
    """Extract (file_path, content) from a host PreToolUse/PostToolUse payload.

    ``Write`` payloads carry the full ``content``. For ``Edit``/``MultiEdit`` the
    file on disk is read when it exists (post-edit state); otherwise the new
    strings are checked on their own. Returns None when the payload names no
    file.

    Raises:
        ValueError: If the payload or its tool_input is not a JSON object
    """
    try:
        data = json.loads(payload or "{}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Hook payload is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Hook payload must be a JSON object")

    tool_input = data.get("tool_input") or {}
    if not isinstance(tool_input, dict):
        raise ValueError("tool_input must be an object")
    file_path = tool_input.get("file_path") or tool_input.get("path")
    if not file_path:
        return None

    if isinstance(tool_input.get("content"), str):
        return file_path, tool_input["content"]

    on_disk = Path(file_path)
    if data.get("hook_event_name") != "PreToolUse" and on_disk.is_file():
        try:
            return file_path, on_disk.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Falling back to payload strings for %s: %s", file_path, e)

    pieces = []
    if isinstance(tool_input.get("new_string"), str):
        pieces.append(tool_input["new_string"])
    for edit in tool_input.get("edits") or []:
        if isinstance(edit, dict) and isinstance(edit.get("new_string"), str):
            pieces.append(edit["new_string"])
    return file_path, "\n".join(pieces)


def has_blocking(findings: Iterable[Finding]) -> bool:
    return any(f.severity == "error" for f in findings)


__all__ = [
    "HookRule",
    "Finding",
    "SEVERITIES",
    "BLOCKING_EXIT_CODE",
    "load_rules",
    "check_content",
    "check_paths",
    "parse_hook_payload",
    "has_blocking",
]
