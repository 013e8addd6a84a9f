"""Tests for candidate filtering, scoring and budget packing in the router."""

from __future__ import annotations

import pytest

from mobile_observability.core.config import ConfigManager
from mobile_observability.core.corpus import Corpus
from mobile_observability.core.text_utils import TRUNCATION_MARKER, estimate_tokens
from mobile_observability.processors.router import ReferenceRouter, RouteRequest


def _router(config_path, plugin_dir, ranker=None, **overrides):
    cfg = ConfigManager(config_path)
    settings = cfg.get_router_settings()
    settings.update(overrides)
    return ReferenceRouter(Corpus.load(plugin_dir), settings, cfg.get_intents(), ranker=ranker)


def test_instrument_ranks_by_keywords_and_boosts(config_path, plugin_dir):
    router = _router(config_path, plugin_dir)
    result = router.route(RouteRequest("instrument", platform="ios", vendor="sentry"))

    # Equal scores keep corpus order: sentry.md sorts before the skill
    assert result.paths == [
        "references/vendors/sentry.md",
        "skills/crash-reporting/SKILL.md",
        "references/platforms/ios.md",
    ]
    scores = {s.path: s.score for s in result.selections}
    assert scores["references/platforms/ios.md"] == pytest.approx(0.8)
    assert all(0.0 <= s <= 1.0 for s in scores.values())


def test_platform_and_vendor_tags_exclude_other_documents(config_path, plugin_dir):
    router = _router(config_path, plugin_dir)
    docs = router.candidates(RouteRequest("instrument", platform="ios", vendor="sentry"))
    paths = [d.path for d in docs]

    assert "references/platforms/android.md" not in paths
    assert "references/vendors/datadog.md" not in paths
    # Intent-scoped diagnostics stay out of instrument bundles
    assert "references/diagnostics/anr.md" not in paths


def test_required_documents_come_first(config_path, plugin_dir):
    router = _router(config_path, plugin_dir)
    result = router.route(RouteRequest("diagnose", platform="android", query="anr"))

    assert result.paths[:3] == [
        "agents/issue-analyzer.md",
        "references/platforms/android.md",
        "references/diagnostics/anr.md",
    ]
    first = result.selections[0]
    assert first.required and first.score == 1.0
    assert "references/platforms/ios.md" not in result.paths


def test_missing_includes_are_reported(config_path, plugin_dir):
    router = _router(config_path, plugin_dir)
    result = router.route(RouteRequest("instrument", include=["references/nope.md"]))

    assert result.missing == ["references/nope.md"]
    assert "references/nope.md" not in result.paths


def test_budget_truncates_then_skips(config_path, plugin_dir):
    long_body = "\n\n".join("Paragraph %d about crash setup. " % i + "x" * 150 for i in range(30))
    (plugin_dir / "references" / "long.md").write_text("# Long\n\n" + long_body, encoding="utf-8")
    router = _router(config_path, plugin_dir, min_section_tokens=10)

    result = router.route(RouteRequest("instrument", token_budget=60, include=["references/long.md"]))

    assert result.paths[0] == "references/long.md"
    assert result.selections[0].truncated
    assert result.selections[0].content.endswith(TRUNCATION_MARKER)
    assert result.total_tokens <= 60
    assert result.skipped


@pytest.mark.parametrize("budget", [40, 60, 120])
def test_rendered_bundle_stays_within_budget(config_path, plugin_dir, budget):
    router = _router(config_path, plugin_dir, min_section_tokens=1)
    result = router.route(RouteRequest("diagnose", platform="android", query="anr crash", token_budget=budget))

    assert result.selections
    assert result.total_tokens <= budget
    assert estimate_tokens(result.render(), router.chars_per_token) <= result.total_tokens


def test_small_remaining_budget_skips_instead_of_truncating(config_path, plugin_dir):
    router = _router(config_path, plugin_dir, min_section_tokens=1000)
    result = router.route(RouteRequest("instrument", token_budget=5))

    assert result.selections == []
    assert result.skipped


def test_non_positive_budget_and_unknown_intent_raise(config_path, plugin_dir):
    router = _router(config_path, plugin_dir)

    with pytest.raises(ValueError, match="Token budget"):
        router.route(RouteRequest("instrument", token_budget=0))
    with pytest.raises(ValueError, match="Unknown intent"):
        router.route(RouteRequest("deploy"))


class FakeRanker:
    def __init__(self, scores):
        self.scores = scores
        self.queries = []

    def available(self):
        return True

    def score(self, query, documents):
        self.queries.append(query)
        return {path: self.scores.get(path, 0.0) for path, _digest, _text in documents}


def test_semantic_scores_are_weighted_in(config_path, plugin_dir):
    ranker = FakeRanker({"references/vendors/datadog.md": 1.0})
    router = _router(config_path, plugin_dir, ranker=ranker, semantic_weight=0.2)

    result = router.route(RouteRequest("instrument", query="rum"))
    scores = {s.path: s.score for s in result.selections}

    assert ranker.queries and "instrument" in ranker.queries[0]
    # keyword overlap 2/3 ("rum" and "setup" match) plus the weighted similarity
    assert scores["references/vendors/datadog.md"] == pytest.approx(round(2 / 3 + 0.2, 4))


def test_render_and_json_report(config_path, plugin_dir):
    router = _router(config_path, plugin_dir)
    result = router.route(RouteRequest("instrument", platform="ios", vendor="sentry"))

    rendered = result.render()
    assert rendered.startswith("<!-- source: references/vendors/sentry.md -->\n# Sentry")
    report = result.to_dict()
    assert report["total_tokens"] == result.total_tokens
    assert "content" not in report["selections"][0]
    assert report["request"]["vendor"] == "sentry"
