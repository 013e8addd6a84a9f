"""Tests for configuration management defaults and lookups."""

from __future__ import annotations

from pathlib import Path

import pytest

from mobile_observability.core.config import ConfigManager
from mobile_observability.core.paths import get_bundled_plugin_dir


def test_config_manager_creates_defaults(tmp_path):
    """When pointed at an empty directory, the packaged config template is copied."""
    config_path = tmp_path / "config.yaml"
    assert not config_path.exists()

    cfg = ConfigManager(str(config_path))

    assert config_path.exists(), "config.yaml should be created on first run"
    data = cfg.load_config()
    assert set(data["intents"]) >= {"instrument", "diagnose", "audit"}
    assert cfg.get_plugin_root() == get_bundled_plugin_dir()
    assert cfg.validate_config()


def test_relative_paths_resolve_against_config_and_data_dir(tmp_path, data_dir):
    config_dir = tmp_path / "custom"
    (config_dir / "corpus").mkdir(parents=True)
    config_path = config_dir / "config.yaml"
    config_path.write_text(
        (
            "plugin:\n"
            "  root: \"corpus\"\n"
            "index:\n"
            "  path: \"out/INDEX.yaml\"\n"
            "intents:\n"
            "  instrument:\n"
            "    keywords: []\n"
            "platforms:\n"
            "  ios: []\n"
            "vendors:\n"
            "  sentry: []\n"
        ),
        encoding="utf-8",
    )

    cfg = ConfigManager(str(config_path))

    assert cfg.get_plugin_root() == (config_dir / "corpus").resolve()
    assert cfg.get_index_path() == data_dir.resolve() / "out" / "INDEX.yaml"
    # Router settings fall back to the built-in defaults
    settings = cfg.get_router_settings()
    assert settings["token_budget"] == 8000
    assert settings["chars_per_token"] == 4
    assert cfg.get_intents()["instrument"]["kinds"] == ["reference", "skill"]


def test_aliases_map_to_canonical_names(config_path):
    cfg = ConfigManager(config_path)

    assert cfg.canonical_platform("Swift") == "ios"
    assert cfg.canonical_platform("react_native") == "react-native"
    assert cfg.canonical_platform("RN") == "react-native"
    assert cfg.canonical_platform("windows-phone") is None
    assert cfg.canonical_vendor("dd") == "datadog"
    assert cfg.canonical_vendor("sentry") == "sentry"
    assert cfg.canonical_vendor(None) is None


def test_get_intent_rejects_unknown_names(config_path):
    cfg = ConfigManager(config_path)

    assert cfg.get_intent("diagnose")["required"] == ["agents/issue-analyzer.md"]
    with pytest.raises(ValueError, match="Unknown intent 'deploy'"):
        cfg.get_intent("deploy")


@pytest.mark.parametrize(
    "router_block",
    [
        "router:\n  token_budget: 0\n",
        "router:\n  chars_per_token: \"four\"\n",
        "router:\n  platform_boost: -1\n",
    ],
)
def test_validate_config_rejects_bad_router_settings(tmp_path, plugin_dir, router_block):
    config_path = tmp_path / "bad.yaml"
    config_path.write_text(
        (
            f"plugin:\n  root: \"{plugin_dir.as_posix()}\"\n"
            + router_block
            + "intents:\n  instrument:\n    keywords: []\n"
            + "platforms:\n  ios: []\n"
            + "vendors:\n  sentry: []\n"
        ),
        encoding="utf-8",
    )

    assert not ConfigManager(str(config_path)).validate_config()


def test_validate_config_rejects_missing_rule_file(tmp_path, plugin_dir):
    config_path = tmp_path / "rules.yaml"
    config_path.write_text(
        (
            f"plugin:\n  root: \"{plugin_dir.as_posix()}\"\n"
            "hooks:\n  rules: [\"team_rules.yaml\"]\n"
            "intents:\n  instrument:\n    keywords: []\n"
            "platforms:\n  ios: []\n"
            "vendors:\n  sentry: []\n"
        ),
        encoding="utf-8",
    )
    cfg = ConfigManager(str(config_path))

    assert cfg.get_extra_rule_files() == [Path(tmp_path) / "team_rules.yaml"]
    assert not cfg.validate_config()


def test_validate_config_rejects_unknown_document_kind(tmp_path, plugin_dir):
    config_path = tmp_path / "kinds.yaml"
    config_path.write_text(
        (
            f"plugin:\n  root: \"{plugin_dir.as_posix()}\"\n"
            "intents:\n  instrument:\n    keywords: []\n    kinds: [\"tutorial\"]\n"
            "platforms:\n  ios: []\n"
            "vendors:\n  sentry: []\n"
        ),
        encoding="utf-8",
    )

    assert not ConfigManager(str(config_path)).validate_config()
