"""Command-line entry point for the mobile observability plugin toolkit."""

from __future__ import annotations

import json
import logging
import sys

import click

from .commands import build_index as index_cmd
from .commands import check_hooks as check_cmd
from .commands import expand as expand_cmd
from .commands import links as links_cmd
from .commands import route as route_cmd
from .commands import validate as validate_cmd
from .core.config import ConfigManager, DEFAULT_CONFIG_PATH
from .core.corpus import Corpus
from .core.index import load_index, stale_entries
from .processors.hook_checker import BLOCKING_EXIT_CODE, has_blocking
from .processors.manifest import summarize

# Setup logging early so submodules inherit sane defaults. Logs go to stderr
# so that routed bundles and expanded prompts on stdout stay pipeable.
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)


@click.group()
@click.option(
    "--config",
    default=str(DEFAULT_CONFIG_PATH),
    show_default=True,
    help="Path to config file (defaults to data_dir/config/config.yaml)",
)
@click.option(
    "--plugin-root",
    default=None,
    help="Plugin corpus directory (overrides plugin.root from the config)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: str, plugin_root: str | None, verbose: bool) -> None:
    """Mobile observability plugin toolkit - route references, expand commands, lint hooks."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["plugin_root"] = plugin_root


@cli.command("index")
@click.option("--output", default=None, help="Index path (default: index.path from the config)")
@click.option("--check", is_flag=True, help="Only report whether the existing index is stale")
@click.pass_context
def index(ctx: click.Context, output: str | None, check: bool) -> None:
    """Write INDEX.yaml: file -> topics -> platforms -> vendors -> token estimate."""
    try:
        report = index_cmd.run(
            ctx.obj["config_path"], output=output, check=check, plugin_root=ctx.obj["plugin_root"]
        )
    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Index command failed: {exc}", err=True)
        sys.exit(1)

    if not check:
        click.echo("✅ Index written")
        return
    stale = [f"{kind}: {path}" for kind, paths in report.items() for path in paths]
    if stale:
        for line in stale:
            click.echo(f"   {line}")
        click.echo(f"❌ Index is stale ({len(stale)} entries)", err=True)
        sys.exit(1)
    click.echo("✅ Index is up to date")


@cli.command("route")
@click.argument("intent")
@click.option("--platform", "-p", help="Target platform (ios, android, react-native, flutter or an alias)")
@click.option("--vendor", help="Observability vendor (sentry, datadog, embrace, bugsnag, opentelemetry, measure)")
@click.option("--query", "-q", default="", help="Free-text keywords to rank references by")
@click.option("--budget", type=int, help="Token budget (default: router.token_budget)")
@click.option("--include", multiple=True, help="Corpus path to always include first. Can be repeated.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json", "paths"]),
    default="text",
    help="text: concatenated bundle; json: selection report; paths: one path per line",
)
@click.pass_context
def route(
    ctx: click.Context,
    intent: str,
    platform: str | None,
    vendor: str | None,
    query: str,
    budget: int | None,
    include: tuple[str, ...],
    output_format: str,
) -> None:
    """Select the references for INTENT and print them within the token budget."""
    try:
        result = route_cmd.run(
            ctx.obj["config_path"],
            intent,
            platform=platform,
            vendor=vendor,
            query=query,
            budget=budget,
            include=list(include) or None,
            plugin_root=ctx.obj["plugin_root"],
        )
    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Route command failed: {exc}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(result.to_json())
    elif output_format == "paths":
        for path in result.paths:
            click.echo(path)
    else:
        click.echo(result.render())
    for path in result.missing:
        click.echo(f"⚠️  Missing reference: {path}", err=True)


@cli.command("expand", context_settings={"ignore_unknown_options": True})
@click.argument("invocation", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--project", "project_root", default=None, help="Project directory used for platform detection")
@click.option("--budget", type=int, help="Token budget for the routed references")
@click.pass_context
def expand(ctx: click.Context, invocation: tuple[str, ...], project_root: str | None, budget: int | None) -> None:
    """Expand a slash command, e.g. expand /instrument ios --vendor=sentry."""
    text = " ".join(invocation)
    try:
        expansion = expand_cmd.run(
            ctx.obj["config_path"],
            text,
            project_root=project_root,
            budget=budget,
            plugin_root=ctx.obj["plugin_root"],
        )
    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Expand command failed: {exc}", err=True)
        sys.exit(1)
    click.echo(expansion.prompt)


@cli.command("check")
@click.argument("paths", nargs=-1)
@click.option("--hook", is_flag=True, help="Read a host hook payload (JSON) from stdin")
@click.option("--json", "as_json", is_flag=True, help="Print findings as JSON")
@click.pass_context
def check(ctx: click.Context, paths: tuple[str, ...], hook: bool, as_json: bool) -> None:
    """Flag observability anti-patterns in PATHS (or in the file of a hook payload)."""
    try:
        payload = click.get_text_stream("stdin").read() if hook else None
        findings = check_cmd.run(
            ctx.obj["config_path"],
            list(paths) or None,
            hook_payload=payload,
            plugin_root=ctx.obj["plugin_root"],
        )
    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Check command failed: {exc}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([f.to_dict() for f in findings], indent=2))
    else:
        # Hook mode reports on stderr, which the host feeds back to the model
        for finding in findings:
            click.echo(finding.format(), err=hook)
        if not findings and not hook:
            click.echo("✅ No anti-patterns found")

    if has_blocking(findings):
        sys.exit(BLOCKING_EXIT_CODE)


@cli.command("validate")
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Lint plugin.json, hooks.json, front matter and internal links."""
    try:
        issues = validate_cmd.run(ctx.obj["config_path"], plugin_root=ctx.obj["plugin_root"])
    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Validate command failed: {exc}", err=True)
        sys.exit(1)

    for issue in issues:
        click.echo(issue.format(), err=issue.level == "error")
    counts = summarize(issues)
    if counts["errors"]:
        click.echo(f"❌ {counts['errors']} errors, {counts['warnings']} warnings", err=True)
        sys.exit(1)
    click.echo(f"✅ Plugin is valid ({counts['warnings']} warnings)")


@cli.command("links")
@click.option("--limit", type=int, help="Check at most this many URLs")
@click.pass_context
def links(ctx: click.Context, limit: int | None) -> None:
    """Check external URLs cited by the references (needs network access)."""
    try:
        results = links_cmd.run(ctx.obj["config_path"], limit=limit, plugin_root=ctx.obj["plugin_root"])
    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Links command failed: {exc}", err=True)
        sys.exit(1)

    broken = [r for r in results if not r.ok]
    for result in broken:
        click.echo(f"   {result.status or result.error} {result.url} ({', '.join(result.sources)})")
    if broken:
        click.echo(f"❌ {len(broken)} of {len(results)} links are broken", err=True)
        sys.exit(1)
    click.echo(f"✅ {len(results)} links OK")


@cli.command("status")
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration, corpus and index status."""
    try:
        config_manager = ConfigManager(ctx.obj["config_path"])
        click.echo(f"📄 Config file: {config_manager.config_path}")

        if config_manager.validate_config():
            click.echo("✅ Configuration is valid")
        else:
            click.echo("❌ Configuration validation failed")
            return

        root = ctx.obj["plugin_root"] or config_manager.get_plugin_root()
        corpus = Corpus.load(root, int(config_manager.get_router_settings()["chars_per_token"]))
        click.echo(f"📚 Plugin root: {corpus.root}")
        counts = corpus.counts()
        click.echo("   " + ", ".join(f"{kind}s: {counts.get(kind, 0)}" for kind in ("command", "agent", "skill", "reference")))
        click.echo(f"   Total tokens: {sum(doc.tokens for doc in corpus)}")
        if corpus.errors:
            click.echo(f"⚠️  {len(corpus.errors)} documents failed to parse")

        click.echo(f"🧭 Intents: {', '.join(config_manager.get_available_intents())}")
        click.echo(f"📱 Platforms: {', '.join(config_manager.get_platforms())}")
        click.echo(f"🔭 Vendors: {', '.join(config_manager.get_vendors())}")

        index_path = config_manager.get_index_path()
        try:
            report = stale_entries(load_index(index_path), corpus)
            state = "stale" if any(report.values()) else "up to date"
            click.echo(f"🗂️  Index: {index_path} ({state})")
        except FileNotFoundError:
            click.echo(f"🗂️  Index: {index_path} (not built)")

    except Exception as exc:  # pragma: no cover - click echoes the message
        click.echo(f"❌ Error checking status: {exc}", err=True)


def main() -> None:  # pragma: no cover - console script
    cli()


if __name__ == "__main__":  # pragma: no cover - script entry
    cli()
