"""droidreview CLI - Main entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.markup import escape

from droidreview_core import __version__
from droidreview_core.config import EXAMPLE_CONFIG, load_config, validate_config
from droidreview_core.errors import ConfigError, EmptyCorpusError, NotFoundError, ReportRenderError
from droidreview_core.models import RuleCategory, Verdict
from droidreview_core.pipeline import ReviewPipeline
from droidreview_core.report import ReportSynthesizer
from droidreview_core.rules.catalog import build_default_catalog

from droidreview_cli.collector import collect_changed_units, collect_units
from droidreview_cli.formatter import format_rules, format_run

console = Console()

CONFIG_FILE = ".droidreview.yml"


def configure_logging(verbose: bool = False) -> None:
    """Send structured logs to stderr; DEBUG with --verbose, INFO otherwise."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


@click.group()
@click.version_option(version=__version__, prog_name="droidreview")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """droidreview - Static code review for Kotlin/Android projects.

    Detects architecture, concurrency, lifecycle, UI, testing and security
    anti-patterns and writes a prioritized review report.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(verbose)


@cli.command()
@click.argument("path", type=click.Path(exists=True), required=False)
@click.option("--config", "-c", type=click.Path(), help="Path to .droidreview.yml")
@click.option("--since", default="HEAD", show_default=True,
              help="Git ref to diff against when no PATH is given")
@click.option("--format", "-f", "output_format",
              type=click.Choice(["markdown", "json", "sarif", "rich"]),
              default="markdown", help="Output format")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the report to a file")
@click.option("--fail-on", type=click.Choice(["major-issues", "needs-work", "never"]),
              default="major-issues", show_default=True,
              help="Exit with error at this verdict or worse")
@click.pass_context
def review(
    ctx: click.Context,
    path: str | None,
    config: str | None,
    since: str,
    output_format: str,
    output: str | None,
    fail_on: str,
) -> None:
    """Review Kotlin sources and print a report.

    Examples:

        droidreview review app/                 # Review a module
        droidreview review                      # Files changed since HEAD
        droidreview review --since main -f json -o review.json
    """
    target = Path(path) if path else Path(".")
    config_source = Path(config) if config else (target if target.is_dir() else target.parent)

    try:
        cfg = load_config(config_source)
    except ConfigError as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        sys.exit(2)

    if path:
        units = collect_units(target, cfg)
    else:
        units = collect_changed_units(cfg, since=since)

    if ctx.obj.get("verbose"):
        console.print(f"[dim]Config: {config_source}[/dim]")
        console.print(f"[dim]Units: {len(units)}[/dim]")

    pipeline = ReviewPipeline(build_default_catalog(), cfg)
    try:
        run = pipeline.run(units)
    except EmptyCorpusError:
        where = path or f"changes since {since}"
        console.print(f"[red]No source units could be gathered from {where}[/red]")
        sys.exit(1)
    except NotFoundError as e:
        console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        sys.exit(2)

    synthesizer = ReportSynthesizer()
    try:
        if output_format == "rich":
            format_run(console, run)
            text = synthesizer.render(run) if output else None
        elif output_format == "json":
            text = synthesizer.render_json(run)
        elif output_format == "sarif":
            text = synthesizer.render_sarif(run)
        else:
            text = synthesizer.render(run)
    except ReportRenderError as e:
        console.print(f"[red]Report rendering failed: {escape(str(e))}[/red]")
        sys.exit(1)

    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]Report written to {output}[/green]")
    elif text is not None:
        click.echo(text, nl=False)

    verdict = run.verdict
    if fail_on == "major-issues" and verdict == Verdict.MAJOR_ISSUES:
        sys.exit(1)
    if fail_on == "needs-work" and verdict != Verdict.APPROVE:
        sys.exit(1)


@cli.command()
@click.option("--category", type=click.Choice([c.value for c in RuleCategory]),
              help="Only list rules of this category")
def rules(category: str | None) -> None:
    """List the built-in rules."""
    format_rules(console, build_default_catalog(), category)


@cli.command()
@click.option("--config", "-c", type=click.Path(), help="Path to .droidreview.yml")
def validate(config: str | None) -> None:
    """Validate configuration file.

    Checks .droidreview.yml for errors and warnings, including rule ids
    the catalog does not know.
    """
    config_path = Path(config) if config else Path(".") / CONFIG_FILE

    if not config_path.exists():
        console.print(f"[red]Config file not found: {config_path}[/red]")
        console.print("Run [bold]droidreview init[/bold] to create one")
        sys.exit(1)

    errors, warnings = validate_config(config_path)

    if not errors:
        cfg = load_config(config_path)
        catalog = build_default_catalog()
        for rule_id in [*cfg.rules.disabled, *cfg.rules.severity]:
            if rule_id not in catalog:
                errors.append(f"Unknown rule id: {rule_id}")

    if errors:
        console.print("[red]Configuration errors:[/red]")
        for error in errors:
            console.print(f"  ✗ {escape(error)}")
        sys.exit(1)

    if warnings:
        console.print("[yellow]Configuration warnings:[/yellow]")
        for warning in warnings:
            console.print(f"  ⚠ {escape(warning)}")

    console.print("[green]✓ Configuration is valid[/green]")


@cli.command()
@click.option("--force", "-f", is_flag=True, help="Overwrite existing config")
def init(force: bool) -> None:
    """Initialize droidreview configuration.

    Creates a .droidreview.yml file with sensible defaults.
    """
    config_path = Path(".") / CONFIG_FILE

    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
        console.print("Use --force to overwrite")
        return

    config_path.write_text(EXAMPLE_CONFIG, encoding="utf-8")
    console.print(f"[green]✓ Created {config_path}[/green]")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
