"""End-to-end tests of the click commands against the fixture plugin."""

from __future__ import annotations

import json

from click.testing import CliRunner

from mobile_observability.cli import cli
from mobile_observability.commands import links as links_cmd


def _invoke(config_path, *args, **kwargs):
    return CliRunner().invoke(cli, ["--config", config_path, *args], **kwargs)


def test_status_reports_corpus_and_missing_index(config_path):
    result = _invoke(config_path, "status")

    assert result.exit_code == 0, result.output
    assert "Configuration is valid" in result.output
    assert "commands: 3, agents: 2, skills: 1, references: 5" in result.output
    assert "(not built)" in result.output


def test_index_then_check_detects_staleness(config_path, plugin_dir, data_dir):
    result = _invoke(config_path, "index")
    assert result.exit_code == 0, result.output
    assert (data_dir / "INDEX.yaml").is_file()

    result = _invoke(config_path, "index", "--check")
    assert result.exit_code == 0
    assert "up to date" in result.output

    (plugin_dir / "references" / "platforms" / "ios.md").write_text("# iOS\n\nnew\n", encoding="utf-8")
    result = _invoke(config_path, "index", "--check")
    assert result.exit_code == 1
    assert "changed: references/platforms/ios.md" in result.output


def test_route_paths_and_json(config_path):
    result = _invoke(config_path, "route", "instrument", "-p", "swift", "--vendor", "sentry", "--format", "paths")
    assert result.exit_code == 0, result.output
    assert result.output.splitlines()[:3] == [
        "references/vendors/sentry.md",
        "skills/crash-reporting/SKILL.md",
        "references/platforms/ios.md",
    ]

    result = _invoke(config_path, "route", "diagnose", "--budget", "50", "--format", "json")
    assert result.exit_code == 0, result.output
    report = json.loads(result.output)
    assert report["budget"] == 50
    assert report["total_tokens"] <= 50
    assert report["selections"][0]["path"] == "agents/issue-analyzer.md"


def test_route_unknown_intent_fails(config_path):
    result = _invoke(config_path, "route", "deploy")

    assert result.exit_code == 1
    assert "Unknown intent 'deploy'" in result.output


def test_expand_prints_prompt(config_path):
    result = _invoke(config_path, "expand", "/instrument", "ios", "--vendor=sentry")

    assert result.exit_code == 0, result.output
    assert result.output.startswith("Instrument ios with: ios --vendor=sentry")
    assert "## Loaded references" in result.output


def test_check_blocks_on_error_findings(config_path, tmp_path):
    source = tmp_path / "src" / "Login.swift"
    source.parent.mkdir()
    source.write_text('scope.setExtra(value: pwd, key: "password")\n', encoding="utf-8")

    result = _invoke(config_path, "check", str(tmp_path / "src"))

    assert result.exit_code == 2
    assert "pii-in-breadcrumb" in result.output


def test_check_reports_clean_tree(config_path, tmp_path):
    clean = tmp_path / "clean"
    clean.mkdir()
    (clean / "App.swift").write_text("print(1)\n", encoding="utf-8")

    result = _invoke(config_path, "check", str(clean))

    assert result.exit_code == 0
    assert "No anti-patterns found" in result.output


def test_check_hook_reads_payload_from_stdin(config_path):
    payload = json.dumps(
        {
            "hook_event_name": "PreToolUse",
            "tool_name": "Write",
            "tool_input": {"file_path": "Sync.swift", "content": "DispatchQueue.main.sync { }\n"},
        }
    )

    result = _invoke(config_path, "check", "--hook", input=payload)

    # Warnings are reported but do not block the edit
    assert result.exit_code == 0
    assert "main-queue-sync" in result.output


def test_check_json_output(config_path, tmp_path):
    source = tmp_path / "Sync.swift"
    source.write_text("DispatchQueue.main.sync { }\n", encoding="utf-8")

    result = _invoke(config_path, "check", "--json", str(source))

    findings = json.loads(result.output)
    assert findings[0]["rule_id"] == "main-queue-sync"
    assert findings[0]["line"] == 1


def test_validate_fixture_plugin(config_path):
    result = _invoke(config_path, "validate")

    assert result.exit_code == 0, result.output
    assert "Plugin is valid" in result.output


def test_validate_fails_on_missing_required_file(config_path, plugin_dir):
    (plugin_dir / "agents" / "issue-analyzer.md").unlink()

    result = _invoke(config_path, "validate")

    assert result.exit_code == 1
    assert "required by intent 'diagnose'" in result.output


class _FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code
        self.reason = "Not Found" if status_code == 404 else "OK"


class _FakeClient:
    def __init__(self, **_kwargs):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def head_with_retry(self, url, **_kwargs):
        return _FakeResponse(404 if "datadoghq" in url else 200)

    def get_with_retry(self, url, **_kwargs):
        return self.head_with_retry(url)


def test_links_reports_broken_urls(config_path, monkeypatch):
    monkeypatch.setattr(links_cmd, "RetryableHTTPClient", _FakeClient)

    result = _invoke(config_path, "links")

    assert result.exit_code == 1
    assert "404 https://docs.datadoghq.com/real_user_monitoring/" in result.output
    assert "1 of 2 links are broken" in result.output
