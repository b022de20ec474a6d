#!/usr/bin/env python3
"""Anchor - evidence-anchored resume rewriting."""

import json

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config_loader import load_config
from rewriter.coherence import apply_full_formatting_to_all, detect_dominant_tense
from rewriter.types import ContentType, EvidenceScope, Severity
from services import RewriteEngineError, RewriteService
from services.models import (
    AnalyzeRequest,
    BulletRewriteRequest,
    ExtractedEntities,
    Layer1Signals,
    RewriteResult,
    SectionRewriteRequest,
    SummaryRewriteRequest,
)

console = Console()


HELP_TEXT = """
Anchor - evidence-anchored resume rewriting

Every rewrite is checked against the evidence it was given. Numbers, tools,
companies and scale claims that the evidence does not support are rejected
and retried; a rewrite that never passes comes back flagged.

REWRITE:
  bullet     Rewrite a single bullet
  summary    Rewrite a professional summary
  section    Rewrite every bullet of a section (one per line in a file)

OFFLINE:
  check      Diagnose a bullet and show the rewrite plan (no API call)
  format     Apply ATS-safe formatting and tense unification to a section

API:
  serve      Start the Anchor API server

EXAMPLES:
  anchor bullet "Helped with backend development" --skill Python --tool Node.js
  anchor bullet "Responsible for the CI pipeline" --role "Platform Engineer"
  anchor summary "Seasoned engineer with a proven track record" --bullets-file exp.txt
  anchor section bullets.txt --title "Acme Corp" --role "Senior Engineer"
  anchor check "Worked on dashboards for the sales team"
  anchor format bullets.txt
  anchor serve --port 8000
"""


def _layer1(skills: tuple[str, ...], tools: tuple[str, ...]) -> Layer1Signals:
    return Layer1Signals(extracted=ExtractedEntities(skills=list(skills), tools=list(tools)))


def _read_lines(path: str) -> list[str]:
    with open(path) as f:
        return [line.strip() for line in f if line.strip()]


@click.group(help=HELP_TEXT)
@click.option("--config", "config_path", default=None, help="Path to config.json.")
@click.pass_context
def cli(ctx, config_path: str | None):
    """Anchor - evidence-anchored resume rewriting."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config_path)
    ctx.obj["service"] = RewriteService(config=ctx.obj["config"])


_scope_option = click.option(
    "--scope",
    type=click.Choice([s.value for s in EvidenceScope]),
    default=None,
    help="How far evidence may reach (default from config).",
)
_skill_option = click.option("--skill", "skills", multiple=True, help="Skill from the resume (repeatable).")
_tool_option = click.option("--tool", "tools", multiple=True, help="Tool from the resume (repeatable).")


# ============================================================================
# Rewrite Commands
# ============================================================================


@cli.command()
@click.argument("text")
@click.option("--role", "target_role", default=None, help="Target role to tailor toward.")
@click.option("--issue", "issues", multiple=True, help="Issue tag, e.g. weak_verb or no_metric (repeatable).")
@click.option("--sibling", "siblings", multiple=True, help="Another bullet from the same role (repeatable).")
@_skill_option
@_tool_option
@_scope_option
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON.")
@click.pass_context
def bullet(ctx, text, target_role, issues, siblings, skills, tools, scope, as_json):
    """Rewrite a single bullet."""
    svc = ctx.obj["service"]
    request = BulletRewriteRequest(
        bullet=text,
        issues=list(issues),
        section_bullets=list(siblings),
        target_role=target_role,
        evidence_scope=scope,
        layer1=_layer1(skills, tools),
    )
    console.print("\n[bold blue]Rewriting bullet...[/bold blue]\n")
    try:
        result = svc.rewrite_bullet(request)
    except (RewriteEngineError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    if as_json:
        console.print_json(result.model_dump_json())
    else:
        _print_result(result)


@cli.command()
@click.argument("text")
@click.option("--role", "target_role", default=None, help="Target role to tailor toward.")
@click.option("--bullets-file", type=click.Path(exists=True), default=None,
              help="File of experience bullets, one per line.")
@_skill_option
@_tool_option
@_scope_option
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON.")
@click.pass_context
def summary(ctx, text, target_role, bullets_file, skills, tools, scope, as_json):
    """Rewrite a professional summary."""
    svc = ctx.obj["service"]
    request = SummaryRewriteRequest(
        summary=text,
        experience_bullets=_read_lines(bullets_file) if bullets_file else [],
        target_role=target_role,
        evidence_scope=scope,
        layer1=_layer1(skills, tools),
    )
    console.print("\n[bold blue]Rewriting summary...[/bold blue]\n")
    try:
        result = svc.rewrite_summary(request)
    except (RewriteEngineError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    if as_json:
        console.print_json(result.model_dump_json())
    else:
        _print_result(result)


@cli.command()
@click.argument("bullets_file", type=click.Path(exists=True))
@click.option("--title", "section_title", default=None, help="Section heading.")
@click.option("--role", default=None, help="Job title of the role this section describes.")
@click.option("--company", default=None, help="Employer of that role.")
@click.option("--target-role", default=None, help="Target role to tailor toward.")
@_skill_option
@_tool_option
@_scope_option
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON.")
@click.pass_context
def section(ctx, bullets_file, section_title, role, company, target_role, skills, tools, scope, as_json):
    """Rewrite every bullet in BULLETS_FILE as one section."""
    svc = ctx.obj["service"]
    request = SectionRewriteRequest(
        bullets=_read_lines(bullets_file),
        section_title=section_title,
        role=role,
        company=company,
        target_role=target_role,
        evidence_scope=scope,
        layer1=_layer1(skills, tools),
    )
    console.print(f"\n[bold blue]Rewriting {len(request.bullets)} bullets...[/bold blue]\n")
    try:
        result = svc.rewrite_section(request)
    except (RewriteEngineError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    if as_json:
        console.print_json(result.model_dump_json())
        return

    table = Table(title=section_title or "Section")
    table.add_column("#", style="dim")
    table.add_column("Original")
    table.add_column("Improved")
    table.add_column("Status")
    for i, (original, improved, item) in enumerate(
        zip(result.original_bullets, result.improved_bullets, result.per_bullet), 1
    ):
        color = "green" if item.validation.passed else "yellow"
        table.add_row(str(i), original, improved, f"[{color}]{item.status.value}[/{color}]")
    console.print(table)

    console.print(
        f"\nTense: {result.tense.tense} [dim]({result.tense.confidence.value} confidence)[/dim]"
    )
    console.print(
        f"Validation: {result.validation_summary.total_critical} critical, "
        f"{result.validation_summary.total_warnings} warning(s)"
    )
    if result.section_notes:
        console.print("\n[bold]Notes:[/bold]")
        for note in result.section_notes:
            console.print(f"  - {note}")
    console.print(f"\n[dim]Estimated gain: +{result.estimated_aggregate_gain}[/dim]")


def _print_result(result: RewriteResult):
    """Display a rewrite result with its evidence and validation."""
    color = "green" if result.validation.passed else "yellow"
    console.print(Panel(
        f"[dim]{result.original}[/dim]\n\n[bold]{result.improved}[/bold]",
        title=f"[{color}]{result.status.value}[/{color}] ({result.confidence.value} confidence)",
    ))

    if result.evidence_map:
        console.print("\n[bold]Evidence:[/bold]")
        for entry in result.evidence_map:
            console.print(f"  \"{entry.improved_span}\" [dim]<- {', '.join(entry.evidence_ids)}[/dim]")

    if result.validation.items:
        console.print("\n[bold]Validation:[/bold]")
        for item in result.validation.items:
            style = "red" if item.severity == Severity.CRITICAL else "yellow"
            console.print(f"  [{style}]{item.code}[/{style}]: {item.message}")

    if result.needs_user_input:
        console.print("\n[bold]Questions:[/bold]")
        for question in result.needs_user_input:
            console.print(f"  ? {question}")

    if result.reasoning:
        console.print(f"\n[dim]{result.reasoning}[/dim]")
    console.print(f"[dim]Attempts: {result.attempts}, estimated gain: +{result.estimated_score_gain}[/dim]")


# ============================================================================
# Offline Commands
# ============================================================================


@cli.command()
@click.argument("text")
@click.option("--summary", "is_summary", is_flag=True, help="Treat TEXT as a summary.")
@click.option("--role", "target_role", default=None, help="Target role to tailor toward.")
@click.option("--issue", "issues", multiple=True, help="Issue tag (repeatable).")
@_skill_option
@_tool_option
@click.pass_context
def check(ctx, text, is_summary, target_role, issues, skills, tools):
    """Diagnose TEXT and show the rewrite plan without calling the API."""
    svc = ctx.obj["service"]
    request = AnalyzeRequest(
        text=text,
        content_type=ContentType.SUMMARY if is_summary else ContentType.BULLET,
        issues=list(issues),
        target_role=target_role,
        layer1=_layer1(skills, tools),
    )
    try:
        analysis = svc.analyze(request)
    except RewriteEngineError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    verdict = "[yellow]can improve[/yellow]" if analysis.can_improve else "[green]already strong[/green]"
    console.print(f"\n[bold blue]Diagnosis:[/bold blue] {verdict}\n")

    diagnostics = analysis.diagnostics
    for key in ("weak_verbs", "fluff", "metrics", "implied_metrics", "tech_terms"):
        values = diagnostics.get(key) or []
        if values:
            console.print(f"  {key.replace('_', ' ').capitalize()}: {', '.join(values)}")
    if diagnostics.get("passive_voice"):
        console.print("  Passive voice detected")

    plan = analysis.plan
    console.print(f"\n[bold]Plan[/bold] [dim](goal: {plan.goal}, max {plan.max_length} chars)[/dim]")
    if not plan.transformations:
        console.print("  [dim]No transformations planned[/dim]")
    for action in plan.transformations:
        ids = f" [dim]{', '.join(action.evidence_ids)}[/dim]" if action.evidence_ids else ""
        console.print(f"  - {action.type}: {json.dumps(action.data)}{ids}")
    for question in plan.needs_user_input:
        console.print(f"  ? {question}")


@cli.command("format")
@click.argument("bullets_file", type=click.Path(exists=True))
@click.pass_context
def format_section(ctx, bullets_file):
    """Apply ATS-safe formatting and tense unification to BULLETS_FILE."""
    svc = ctx.obj["service"]
    bullets = _read_lines(bullets_file)
    if not bullets:
        console.print("[yellow]No bullets found.[/yellow]")
        return

    formatted = apply_full_formatting_to_all(bullets, svc.lexicon)
    tense = detect_dominant_tense(formatted, svc.lexicon)
    for line in formatted:
        click.echo(line)
    console.print(
        f"\n[dim]Tense: {tense.tense.value} ({tense.confidence.value} confidence), "
        f"{sum(a != b for a, b in zip(bullets, formatted))} bullet(s) changed[/dim]"
    )


# ============================================================================
# API Server Command
# ============================================================================


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind to.")
@click.option("--port", default=8000, type=int, help="Port to bind to.")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development.")
def serve(host, port, reload):
    """Start the Anchor API server."""
    import uvicorn
    console.print("\n[bold blue]Starting Anchor API server...[/bold blue]")
    console.print(f"[dim]API docs at http://{host}:{port}/docs[/dim]\n")
    uvicorn.run("api.app:create_app", host=host, port=port, reload=reload, factory=True)


if __name__ == "__main__":
    cli()
