"""YAML front matter parsing for markdown commands, agents, skills and references."""

from __future__ import annotations

import re
from typing import Any, Dict, Tuple

import yaml

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


def parse_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """Split a markdown document into (metadata, body).

    Documents without a leading ``---`` block return ``({}, text)``. An empty
    block yields an empty mapping.

    Raises:
        ValueError: If the block is not valid YAML or is not a mapping
    """
    if not text:
        return {}, ""
    # Byte-order marks sneak in from some editors
    if text.startswith("\ufeff"):
        text = text[1:]

    match = _FRONT_MATTER_RE.match(text)
    if not match:
        return {}, text

    raw = match.group(1) or ""
    try:
        data = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML front matter: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Front matter must be a mapping, got {type(data).__name__}"
        )

    body = text[match.end():]
    return data, body.lstrip("\r\n")


def as_list(value: Any) -> list[str]:
    """Coerce a front matter field that may be a scalar, CSV string or list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [str(value)]


__all__ = ["parse_front_matter", "as_list"]
