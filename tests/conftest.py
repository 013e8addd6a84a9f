"""Shared fixtures: a small plugin corpus and a config pointing at it."""

from __future__ import annotations

import json
import sys
import textwrap
from pathlib import Path

import pytest

# Ensure the repository's src/ directory is importable without installation.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


def _write(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
    return path


PLUGIN_FILES = {
    "commands/instrument.md": """
        ---
        description: Instrument an app
        argument-hint: "[platform] [--vendor=<vendor>]"
        intent: instrument
        ---

        Instrument $1 with: $ARGUMENTS
        """,
    "commands/diagnose.md": """
        ---
        description: Diagnose an issue
        intent: diagnose
        ---

        Diagnose type $1.
        """,
    "commands/audit.md": """
        ---
        description: Audit a codebase
        ---

        Audit $1.
        """,
    "agents/issue-analyzer.md": """
        ---
        name: issue-analyzer
        description: Finds root causes in crash reports
        ---

        # Issue analyzer

        Read the stack trace and find the first app frame.
        """,
    "agents/codebase-analyzer.md": """
        ---
        name: codebase-analyzer
        description: Inventories observability SDKs
        ---

        # Codebase analyzer

        Grep for SDK initialization.
        """,
    "skills/crash-reporting/SKILL.md": """
        ---
        name: crash-reporting
        description: Crash reporting and symbolication setup
        topics: [crash, symbolication]
        intents: [instrument, diagnose]
        ---

        # Crash reporting

        Upload symbols. See [iOS](../../references/platforms/ios.md).
        """,
    "references/platforms/ios.md": """
        ---
        title: iOS observability
        description: dSYM upload and hang detection on iOS
        topics: [crash, hang, dsym]
        ---

        # iOS

        Start the SDK in didFinishLaunching.
        """,
    "references/platforms/android.md": """
        ---
        title: Android observability
        description: R8 mapping upload and ANR detection on Android
        topics: [crash, anr, mapping]
        ---

        # Android

        Start the SDK in Application.onCreate.
        """,
    "references/vendors/sentry.md": """
        ---
        title: Sentry
        description: Sentry SDK setup
        topics: [crash, tracing]
        ---

        # Sentry

        https://docs.sentry.io/platforms/apple/
        """,
    "references/vendors/datadog.md": """
        ---
        title: Datadog
        description: Datadog RUM setup
        topics: [rum, tracing]
        ---

        # Datadog

        https://docs.datadoghq.com/real_user_monitoring/
        """,
    "references/diagnostics/anr.md": """
        ---
        title: ANR traces
        description: Reading ANR traces and main thread stacks
        topics: [anr, hang, main-thread]
        intents: [diagnose]
        priority: 0.5
        ---

        # ANR traces

        Read the main thread first.
        """,
    "hooks/anti_patterns.yaml": """
        rules:
          - id: main-queue-sync
            severity: warning
            globs: ["*.swift"]
            pattern: 'DispatchQueue\\.main\\.sync'
            message: Avoid synchronous main queue dispatch.
          - id: pii-in-breadcrumb
            severity: error
            globs: ["*.swift", "*.kt"]
            pattern: '(?i)(addBreadcrumb|setExtra)\\(.*password'
            message: Do not send credentials.
        """,
}


@pytest.fixture
def plugin_dir(tmp_path: Path) -> Path:
    root = tmp_path / "plugin"
    for rel, text in PLUGIN_FILES.items():
        _write(root, rel, text)
    manifest = {
        "name": "mobile-observability",
        "version": "1.0.0",
        "description": "Test plugin",
        "commands": "./commands",
        "hooks": "./hooks/hooks.json",
    }
    _write(root, ".claude-plugin/plugin.json", json.dumps(manifest))
    hooks = {
        "hooks": {
            "PostToolUse": [
                {
                    "matcher": "Edit|Write",
                    "hooks": [{"type": "command", "command": "mobile-observability check --hook"}],
                }
            ]
        }
    }
    _write(root, "hooks/hooks.json", json.dumps(hooks))
    return root


CONFIG_TEMPLATE = """
plugin:
  root: "{root}"
index:
  path: "INDEX.yaml"
router:
  token_budget: 8000
  chars_per_token: 4
  min_section_tokens: 10
  platform_boost: 0.3
  vendor_boost: 0.3
  priority_weight: 0.1
  semantic_weight: 0.0
intents:
  instrument:
    keywords: ["crash", "setup"]
    kinds: ["reference", "skill"]
  diagnose:
    keywords: ["crash", "anr", "hang"]
    kinds: ["reference", "skill", "agent"]
    required: ["agents/issue-analyzer.md"]
  audit:
    keywords: ["audit"]
    kinds: ["reference", "skill", "agent"]
    required: ["agents/codebase-analyzer.md"]
platforms:
  ios: ["swift", "iphone"]
  android: ["kotlin"]
  react-native: ["rn"]
  flutter: ["dart"]
vendors:
  sentry: []
  datadog: ["dd"]
hooks:
  rules: []
links:
  ignore: ["https://example.com"]
"""


@pytest.fixture
def config_path(tmp_path: Path, plugin_dir: Path) -> str:
    path = tmp_path / "config" / "config.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(CONFIG_TEMPLATE.format(root=plugin_dir.as_posix()), encoding="utf-8")
    return str(path)


@pytest.fixture
def bundled_config_path(tmp_path: Path) -> str:
    """Config seeded from the packaged template; routes over the bundled corpus."""
    return str(tmp_path / "bundled" / "config.yaml")


@pytest.fixture(autouse=True)
def data_dir(tmp_path: Path, monkeypatch) -> Path:
    """Keep runtime data (INDEX.yaml, seeded config) out of the home directory."""
    path = tmp_path / "data"
    monkeypatch.setenv("MOBILE_OBSERVABILITY_DATA_DIR", str(path))
    return path
