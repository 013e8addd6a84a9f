"""Detect mobile platforms and observability vendors present in a project tree."""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterator, List

logger = logging.getLogger(__name__)

_IGNORED_DIRS = {"node_modules", "Pods", "build", ".git", ".gradle", ".dart_tool", "DerivedData", ".idea"}

# Dependency manifests scanned for vendor SDK identifiers.
_MANIFEST_NAMES = {
    "Podfile",
    "Podfile.lock",
    "Package.swift",
    "Package.resolved",
    "Cartfile",
    "build.gradle",
    "build.gradle.kts",
    "libs.versions.toml",
    "package.json",
    "pubspec.yaml",
}

VENDOR_SIGNATURES: Dict[str, List[str]] = {
    "sentry": [r"\bSentry\b", r"io\.sentry", r"@sentry/", r"sentry_flutter", r"sentry-cocoa"],
    "datadog": [r"DatadogSDK", r"\bDatadog(Core|RUM|Logs|Trace|CrashReporting)\b", r"com\.datadoghq", r"@datadog/", r"datadog_flutter_plugin"],
    "embrace": [r"EmbraceIO", r"io\.embrace", r"embrace-io", r"@embrace-io/", r"embrace_flutter"],
    "bugsnag": [r"\bBugsnag\b", r"com\.bugsnag", r"@bugsnag/", r"bugsnag_flutter"],
    "opentelemetry": [r"opentelemetry", r"OpenTelemetryApi", r"OpenTelemetrySdk", r"io\.opentelemetry"],
    "measure": [r"sh\.measure", r"measure-sh", r"measure_flutter", r"MeasureSDK"],
}


def _walk(root: Path, max_depth: int = 4) -> Iterator[Path]:
    root_depth = len(root.parts)
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        dirnames[:] = sorted(d for d in dirnames if d not in _IGNORED_DIRS)
        depth = len(current.parts) - root_depth
        for name in dirnames:
            if name.endswith(".xcodeproj") or name.endswith(".xcworkspace"):
                yield current / name
        if depth >= max_depth:
            dirnames[:] = [d for d in dirnames if d.endswith((".xcodeproj", ".xcworkspace"))]
        for name in sorted(filenames):
            yield current / name


def _is_react_native(package_json: Path) -> bool:
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.debug("Could not parse %s: %s", package_json, e)
        return False
    deps = {}
    for key in ("dependencies", "devDependencies", "peerDependencies"):
        deps.update(data.get(key) or {})
    return "react-native" in deps or "expo" in deps


def detect_platforms(path: Path) -> List[str]:
    """Return the platforms a project targets, in a stable order.

    Raises:
        FileNotFoundError: If *path* does not exist
    """
    root = Path(path)
    if not root.exists():
        raise FileNotFoundError(f"Project path not found: {root}")
    if root.is_file():
        root = root.parent

    found = set()
    for item in _walk(root):
        name = item.name
        if name.endswith(".xcodeproj") or name.endswith(".xcworkspace") or name in {"Podfile", "Package.swift"}:
            found.add("ios")
        elif name in {"build.gradle", "build.gradle.kts", "AndroidManifest.xml"}:
            found.add("android")
        elif name == "pubspec.yaml":
            found.add("flutter")
        elif name == "package.json" and _is_react_native(item):
            found.add("react-native")

    # Cross-platform projects carry native ios/ and android/ folders
    order = ["react-native", "flutter", "ios", "android"]
    return [p for p in order if p in found]


def detect_vendors(path: Path) -> List[str]:
    """Return observability vendors referenced by the project's dependency manifests.

    Raises:
        FileNotFoundError: If *path* does not exist
    """
    root = Path(path)
    if not root.exists():
        raise FileNotFoundError(f"Project path not found: {root}")
    if root.is_file():
        root = root.parent

    compiled = {
        vendor: [re.compile(p) for p in patterns] for vendor, patterns in VENDOR_SIGNATURES.items()
    }
    found = set()
    for item in _walk(root):
        if item.name not in _MANIFEST_NAMES or not item.is_file():
            continue
        try:
            text = item.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Could not read %s: %s", item, e)
            continue
        for vendor, patterns in compiled.items():
            if any(p.search(text) for p in patterns):
                found.add(vendor)

    return [v for v in VENDOR_SIGNATURES if v in found]


__all__ = ["detect_platforms", "detect_vendors", "VENDOR_SIGNATURES"]
