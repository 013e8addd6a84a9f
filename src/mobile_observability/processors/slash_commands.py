"""Parsing and expansion of the plugin's slash commands.

``/instrument [platform] [--vendor=<vendor>]``, ``/diagnose [type] [input]``
and ``/audit [path]`` are markdown templates. Expanding one substitutes the
arguments into the template and appends the reference bundle the router
selects for it, which is what the host would otherwise assemble by hand.
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..core.command_context import CommandContext
from ..core.corpus import Document
from .issue_classifier import ISSUE_TYPES, IssueClassification, classify_issue
from .platform_detect import detect_platforms, detect_vendors
from .router import RouteRequest, RouteResult

logger = logging.getLogger(__name__)

_POSITIONAL_RE = re.compile(r"\$([1-9])")
_HEAD_RE = re.compile(r"/(\S+)\s*(.*)", re.DOTALL)
_WORD_RE = re.compile(r"\S+")


@dataclass
class SlashInvocation:
    name: str
    positionals: List[str] = field(default_factory=list)
    options: Dict[str, str] = field(default_factory=dict)
    raw_arguments: str = ""
    text: str = ""


@dataclass
class Expansion:
    invocation: SlashInvocation
    command: Document
    request: RouteRequest
    route: RouteResult
    prompt: str
    context: Dict[str, object] = field(default_factory=dict)


def _without_options(raw: str) -> str:
    """Drop ``--key[=value]`` tokens from *raw*, keeping the remaining layout."""
    words = list(_WORD_RE.finditer(raw))
    dropped = set()
    i = 0
    while i < len(words):
        token = words[i].group(0)
        if token.startswith("--") and len(token) > 2:
            dropped.add(i)
            if "=" not in token and i + 1 < len(words) and not words[i + 1].group(0).startswith("-"):
                dropped.add(i + 1)
                i += 1
        i += 1

    pieces: List[str] = []
    last = 0
    for index in sorted(dropped):
        pieces.append(raw[last:words[index].start()])
        last = words[index].end()
    pieces.append(raw[last:])
    return "".join(pieces).strip()


def parse_invocation(text: str) -> SlashInvocation:
    """Parse ``/name arg --key=value`` into its parts.

    The arguments may span several lines, as when a stack trace is pasted
    below the command. ``text`` keeps them with options removed and line
    breaks intact.

    Raises:
        ValueError: If *text* is not a slash command
    """
    text = (text or "").strip()
    match = _HEAD_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"Not a slash command: {text!r}")

    name = match.group(1).lower()
    raw_arguments = match.group(2).strip()

    try:
        tokens = shlex.split(raw_arguments)
    except ValueError:
        # Pasted stack traces often carry unbalanced quotes
        tokens = raw_arguments.split()

    positionals: List[str] = []
    options: Dict[str, str] = {}
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token.startswith("--") and len(token) > 2:
            key, sep, value = token[2:].partition("=")
            if not sep:
                if i + 1 < len(tokens) and not tokens[i + 1].startswith("-"):
                    value = tokens[i + 1]
                    i += 1
                else:
                    value = "true"
            options[key.lower()] = value
        else:
            positionals.append(token)
        i += 1

    return SlashInvocation(
        name=name,
        positionals=positionals,
        options=options,
        raw_arguments=raw_arguments,
        text=_without_options(raw_arguments),
    )


def substitute_arguments(body: str, invocation: SlashInvocation) -> str:
    """Replace ``$ARGUMENTS`` and ``$1``..``$9`` placeholders in a command template."""
    result = body.replace("$ARGUMENTS", invocation.raw_arguments)

    def _positional(match: re.Match) -> str:
        index = int(match.group(1)) - 1
        return invocation.positionals[index] if index < len(invocation.positionals) else ""

    return _POSITIONAL_RE.sub(_positional, result)


def _read_input(text: str) -> str:
    """Return file contents when *text* names an existing crash log, else *text*."""
    candidate = text.strip()
    if candidate and "\n" not in candidate and len(candidate) < 4096:
        path = Path(candidate).expanduser()
        try:
            if path.is_file():
                return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Input %s is not readable as a file: %s", candidate, e)
    return text


def _instrument_request(ctx: CommandContext, inv: SlashInvocation, intent: str, project_root: Optional[Path], info: Dict):
    platform = inv.options.get("platform") or (inv.positionals[0] if inv.positionals else None)
    if not platform and project_root is not None:
        detected = detect_platforms(project_root)
        info["detected_platforms"] = detected
        known = [p for p in detected if ctx.config_manager.canonical_platform(p)]
        platform = known[0] if known else None
    return ctx.make_request(intent, platform=platform, vendor=inv.options.get("vendor"))


def _diagnose_request(ctx: CommandContext, inv: SlashInvocation, intent: str, project_root: Optional[Path], info: Dict):
    issue_type = inv.options.get("type")
    if issue_type is not None and issue_type.lower() not in ISSUE_TYPES:
        raise ValueError(f"Unknown issue type '{issue_type}'. Supported types: {', '.join(ISSUE_TYPES)}")

    text = inv.text
    if issue_type is None and inv.positionals and inv.positionals[0].lower() in ISSUE_TYPES:
        issue_type = inv.positionals[0]
        text = _WORD_RE.sub("", text, count=1).strip()
    user_input = _read_input(text)

    classification: IssueClassification = classify_issue(user_input)
    info["classification"] = classification
    resolved_type = (issue_type or classification.type).lower()
    info["issue_type"] = resolved_type

    query_parts = [resolved_type] if resolved_type != "unknown" else []
    query_parts.extend(classification.signals)
    return ctx.make_request(
        intent,
        platform=inv.options.get("platform") or ctx.config_manager.canonical_platform(classification.platform),
        vendor=inv.options.get("vendor"),
        query=" ".join(query_parts),
    )


def _audit_request(ctx: CommandContext, inv: SlashInvocation, intent: str, project_root: Optional[Path], info: Dict):
    target = Path(inv.positionals[0]).expanduser() if inv.positionals else (project_root or Path("."))
    platforms = detect_platforms(target)
    vendors = detect_vendors(target)
    info["audit_path"] = str(target)
    info["detected_platforms"] = platforms
    info["detected_vendors"] = vendors
    known = [p for p in platforms if ctx.config_manager.canonical_platform(p)]
    platform = inv.options.get("platform") or (known[0] if known else None)
    return ctx.make_request(
        intent,
        platform=platform,
        vendor=inv.options.get("vendor"),
        vendors=vendors,
        query="audit " + " ".join(vendors),
    )


def _generic_request(ctx: CommandContext, inv: SlashInvocation, intent: str, project_root: Optional[Path], info: Dict):
    return ctx.make_request(
        intent,
        platform=inv.options.get("platform"),
        vendor=inv.options.get("vendor"),
        query=" ".join(inv.positionals),
    )


_REQUEST_BUILDERS = {
    "instrument": _instrument_request,
    "diagnose": _diagnose_request,
    "audit": _audit_request,
}


def _context_lines(request: RouteRequest, route: RouteResult, info: Dict) -> List[str]:
    lines = [
        f"- Intent: {request.intent}",
        f"- Platform: {request.platform or 'not specified'}",
        f"- Vendors: {', '.join(request.wanted_vendors()) or 'not specified'}",
    ]
    if "detected_platforms" in info:
        lines.append(f"- Detected platforms: {', '.join(info['detected_platforms']) or 'none'}")
    if "detected_vendors" in info:
        lines.append(f"- Detected vendors: {', '.join(info['detected_vendors']) or 'none'}")
    if "issue_type" in info:
        classification = info["classification"]
        lines.append(f"- Issue type: {info['issue_type']}")
        if classification.signals:
            lines.append(f"- Signals: {', '.join(classification.signals)}")
    lines.append(f"- Reference tokens: {route.total_tokens}/{route.budget}")
    if route.missing:
        lines.append(f"- Missing references: {', '.join(route.missing)}")
    return lines


def expand(
    invocation: SlashInvocation,
    ctx: CommandContext,
    *,
    project_root: Optional[Path] = None,
    token_budget: Optional[int] = None,
) -> Expansion:
    """Render a slash command with its arguments and routed references.

    Raises:
        ValueError: For unknown commands, platforms, vendors or issue types
        FileNotFoundError: If an audited path does not exist
    """
    command = ctx.corpus.find_command(invocation.name)
    intent = str(command.metadata.get("intent") or command.name)
    info: Dict[str, object] = {}

    builder = _REQUEST_BUILDERS.get(command.name, _generic_request)
    request = builder(ctx, invocation, intent, project_root, info)
    if token_budget is not None:
        request.token_budget = token_budget

    route = ctx.router().route(request)
    body = substitute_arguments(command.body, invocation).rstrip()

    parts = [
        body,
        "",
        "---",
        "",
        "## Routing context",
        "",
        *_context_lines(request, route, info),
        "",
        "## Loaded references",
        "",
        route.render().rstrip(),
        "",
    ]
    prompt = "\n".join(parts)
    logger.info("Expanded /%s with %d references", command.name, len(route.selections))
    return Expansion(
        invocation=invocation,
        command=command,
        request=request,
        route=route,
        prompt=prompt,
        context=info,
    )


__all__ = [
    "SlashInvocation",
    "Expansion",
    "parse_invocation",
    "substitute_arguments",
    "expand",
]
