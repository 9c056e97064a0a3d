"""
Command-line interface for SEO Content Analyzer.

Provides a CLI for scoring a document and finding weak keywords, from a
JSON document file (title, description, content blocks).
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import AnalyzerConfig
from .highlighting import HighlightManager, InMemoryDocument
from .models import DocumentValidationError, KeywordAnalysis, ParsedDocument, SEOScore
from .orchestrator import SEOAnalysisOrchestrator

console = Console()

STATUS_STYLES = {
    "excellent": "green",
    "good": "cyan",
    "needs-improvement": "yellow",
    "poor": "red",
}


def _load_document(path: Path) -> ParsedDocument:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise DocumentValidationError(f"Document file is not valid JSON: {e}")
    # Accept both a bare document and the {"content": {...}} request envelope.
    if isinstance(data, dict) and isinstance(data.get("content"), dict):
        data = data["content"]
    return ParsedDocument.from_dict(data)


def _build_orchestrator(api_key: Optional[str], no_ai: bool) -> SEOAnalysisOrchestrator:
    config = AnalyzerConfig.from_env(api_key=api_key)
    if no_ai:
        config.api_key = None
    return SEOAnalysisOrchestrator.from_config(config)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """
    SEO Content Analyzer - Score content and find weak keywords.

    Examples:

        seo-analyze score page.json --keyword "liability insurance"

        seo-analyze keywords page.json --highlight
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


@main.command()
@click.argument("document", type=click.Path(exists=True, path_type=Path))
@click.option("--keyword", "-k", type=str, help="Target keyword to optimize for.")
@click.option("--previous-score", type=click.IntRange(0, 100), help="Earlier overall score to compare against.")
@click.option(
    "--api-key",
    type=str,
    envvar="ANTHROPIC_API_KEY",
    help="Anthropic API key. Can also be set via ANTHROPIC_API_KEY env var.",
)
@click.option("--no-ai", is_flag=True, default=False, help="Use rule-based scoring only.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the raw JSON result.")
def score(
    document: Path,
    keyword: Optional[str],
    previous_score: Optional[int],
    api_key: Optional[str],
    no_ai: bool,
    as_json: bool,
) -> None:
    """Score a document for SEO quality."""
    try:
        doc = _load_document(document)
    except DocumentValidationError as e:
        console.print(f"[red]Invalid document:[/red] {e}")
        sys.exit(1)

    async def _run() -> SEOScore:
        orchestrator = _build_orchestrator(api_key, no_ai)
        try:
            return await orchestrator.analyze_score(doc, keyword, previous_score)
        finally:
            await orchestrator.aclose()

    try:
        with console.status("[bold green]Analyzing content..."):
            result = asyncio.run(_run())
    except DocumentValidationError as e:
        console.print(f"[red]Invalid document:[/red] {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    _display_score(result)


@main.command()
@click.argument("document", type=click.Path(exists=True, path_type=Path))
@click.option("--keyword", "-k", type=str, help="Target keyword to optimize for.")
@click.option(
    "--api-key",
    type=str,
    envvar="ANTHROPIC_API_KEY",
    help="Anthropic API key. Can also be set via ANTHROPIC_API_KEY env var.",
)
@click.option("--no-ai", is_flag=True, default=False, help="Use the static weak-word list only.")
@click.option("--highlight", is_flag=True, default=False, help="Show highlight positions for each match.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the raw JSON result.")
def keywords(
    document: Path,
    keyword: Optional[str],
    api_key: Optional[str],
    no_ai: bool,
    highlight: bool,
    as_json: bool,
) -> None:
    """Find weak or improvable words in a document."""
    try:
        doc = _load_document(document)
    except DocumentValidationError as e:
        console.print(f"[red]Invalid document:[/red] {e}")
        sys.exit(1)

    surface = InMemoryDocument(blocks=list(doc.blocks))

    async def _run() -> tuple[KeywordAnalysis, list]:
        orchestrator = _build_orchestrator(api_key, no_ai)
        try:
            analysis = await orchestrator.analyze_keywords(doc, keyword)
        finally:
            await orchestrator.aclose()
        ranges = []
        if highlight:
            ranges = await HighlightManager().refresh(surface, analysis.keywords)
        return analysis, ranges

    try:
        with console.status("[bold green]Analyzing keywords..."):
            analysis, ranges = asyncio.run(_run())
    except DocumentValidationError as e:
        console.print(f"[red]Invalid document:[/red] {e}")
        sys.exit(1)

    if as_json:
        payload = analysis.to_dict()
        if highlight:
            payload["highlights"] = [r.to_dict() for r in ranges]
        click.echo(json.dumps(payload, indent=2))
        return
    _display_keywords(analysis, ranges, surface if highlight else None)


def _display_score(result: SEOScore) -> None:
    """Display a score summary."""
    header = f"[bold]Overall SEO score: {result.overall}/100[/bold]"
    if result.improvement:
        header += f"\nPrevious: {result.previous_score}/100 ({result.improvement})"
    console.print(Panel.fit(header, border_style="blue"))

    table = Table(title="Breakdown", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    table.add_column("Weight", justify="right")

    for name, metric in result.breakdown.items():
        style = STATUS_STYLES.get(metric.status.value, "white")
        table.add_row(
            name.replace("_", " ").title(),
            str(metric.score),
            f"[{style}]{metric.status.value}[/{style}]",
            f"{metric.weight:.2f}",
        )
    console.print(table)

    if result.recommendations:
        console.print("\n[bold]Recommendations[/bold]")
        for rec in result.recommendations:
            console.print(f"  - {rec}")

    if result.is_fallback and result.message:
        console.print(f"\n[yellow]{result.message}[/yellow]")


def _display_keywords(analysis: KeywordAnalysis, ranges: list, surface: Optional[InMemoryDocument]) -> None:
    """Display keyword suggestions and, optionally, their positions."""
    table = Table(title="Keyword Suggestions", show_header=True)
    table.add_column("Word", style="cyan")
    table.add_column("Suggestion", style="green")
    table.add_column("Reason")

    for kw in analysis.keywords:
        alternatives = ", ".join(kw.suggestions) if kw.suggestions else (kw.suggestion or "")
        table.add_row(kw.word, alternatives, kw.reason)
    console.print(table)

    if surface is not None:
        console.print(f"\n[cyan]Highlights applied:[/cyan] {len(ranges)}")
        for r in ranges:
            console.print(f"  {r.from_pos}-{r.to_pos} '{surface.text_between(r.from_pos, r.to_pos)}'")

    if analysis.fallback and analysis.message:
        console.print(f"\n[yellow]{analysis.message}[/yellow]")


def run_cli() -> None:
    """Entry point for the CLI."""
    main(obj={})


if __name__ == "__main__":
    run_cli()
