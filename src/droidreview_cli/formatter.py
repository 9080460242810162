"""Rich console output for review runs."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from droidreview_core.models import CATEGORY_LABELS, Finding, Verdict
from droidreview_core.pipeline import ReviewRun
from droidreview_core.report import format_location
from droidreview_core.rules.catalog import RuleCatalog
from droidreview_core.severity import SEVERITY_TIERS, Severity, get_severity_emoji, get_severity_label

SEVERITY_STYLE = {
    Severity.CRITICAL: "bold red",
    Severity.MAJOR: "red",
    Severity.MINOR: "yellow",
    Severity.GOOD: "green",
}

VERDICT_STYLE = {
    Verdict.APPROVE: "bold green",
    Verdict.NEEDS_WORK: "bold yellow",
    Verdict.MAJOR_ISSUES: "bold red",
}


def format_findings(console: Console, run: ReviewRun, show_fix: bool = True) -> None:
    """Print action items grouped by severity."""
    items = run.action_items
    if not items:
        console.print("\n[green]✓ No issues found![/green]")
        return

    console.print(f"\n[bold]Found {len(items)} issue(s):[/bold]\n")

    for finding in items:
        _print_finding(console, finding, show_fix)


def _print_finding(console: Console, finding: Finding, show_fix: bool) -> None:
    style = SEVERITY_STYLE[finding.severity]
    emoji = get_severity_emoji(finding.severity)
    location = format_location(finding.primary_location)

    console.print(f"  {emoji} [{style}]{escape(finding.title)}[/{style}] [dim]{location}[/dim]")
    console.print(f"     [dim]{escape(finding.rationale)}[/dim]")

    if finding.evidence:
        evidence = finding.evidence[0]
        syntax = Syntax(
            evidence.snippet,
            "kotlin",
            theme="monokai",
            line_numbers=True,
            start_line=evidence.snippet_start,
            highlight_lines=set(range(evidence.line_start, evidence.line_end + 1)),
        )
        console.print(syntax)

    if show_fix and finding.fix_suggestion:
        console.print(f"     [bold green]Suggested fix:[/bold green] {escape(finding.fix_suggestion)}")

    if finding.related_finding_ids:
        console.print(f"     [dim]Related: {', '.join(finding.related_finding_ids)}[/dim]")

    console.print()


def format_summary(console: Console, run: ReviewRun) -> None:
    """Print the category x severity table and the verdict."""
    table = Table(title="Review Summary", show_header=True, header_style="bold")
    table.add_column("Category", style="dim")
    for severity in SEVERITY_TIERS:
        table.add_column(get_severity_label(severity), justify="right")
    table.add_column("Total", justify="right")

    for category, row in run.counts_by_category.items():
        table.add_row(
            CATEGORY_LABELS[category],
            *(str(row[s]) for s in SEVERITY_TIERS),
            str(sum(row.values())),
        )

    totals = run.counts_by_severity
    table.add_row(
        "[bold]Total[/bold]",
        *(f"[bold]{totals[s]}[/bold]" for s in SEVERITY_TIERS),
        f"[bold]{len(run.findings)}[/bold]",
    )
    console.print(table)

    if run.good_practices:
        console.print(f"\n[green]Good practices detected: {len(run.good_practices)}[/green]")

    if run.diagnostics:
        console.print(f"\n[yellow]Diagnostics ({len(run.diagnostics)}):[/yellow]")
        for diagnostic in run.diagnostics:
            console.print(f"  ⚠ {escape(diagnostic.message)}")

    verdict = run.verdict
    style = VERDICT_STYLE[verdict]
    console.print(f"\n[{style}]Verdict: {verdict.value}[/{style}]")
    console.print(f"[dim]{len(run.units)} file(s), {len(run.rules_evaluated)} rule(s), {run.duration_ms:.0f}ms[/dim]")


def format_run(console: Console, run: ReviewRun) -> None:
    console.print(Panel.fit("[bold blue]droidreview[/bold blue] - Code Review"))
    format_findings(console, run)
    format_summary(console, run)


def format_rules(console: Console, catalog: RuleCatalog, category: str | None = None) -> None:
    """Print the rule catalog as a table."""
    table = Table(title="Rule Catalog", show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Category")
    table.add_column("Severity")
    table.add_column("Title")

    for rule in catalog.list_rules(category):
        style = SEVERITY_STYLE[rule.default_severity]
        label = get_severity_label(rule.default_severity)
        table.add_row(
            rule.id,
            CATEGORY_LABELS[rule.category],
            f"[{style}]{label}[/{style}]",
            rule.title,
        )

    console.print(table)
