"""
Sales Coach CLI - Main entry point.

Commands:
- init: Create the BigQuery tables
- analyze: Score a local transcript file and print the coaching draft
- rubric: Show methodology rubrics
- kb: Search and validate a local knowledge corpus
- logs: Show pipeline run log entries
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from sales_coach.config import get_settings
from sales_coach.errors import CoachingError
from sales_coach.models.analysis import AnalysisResult
from sales_coach.models.conversation import ConversationRecord
from sales_coach.models.knowledge import RetrievalQuery
from sales_coach.monitoring.logging import read_logs
from sales_coach.pipeline import CoachingPipeline
from sales_coach.rag.config import DEFAULT_CORPUS_PATH, RAGConfig
from sales_coach.rag.parser import load_corpus_dir
from sales_coach.rag.retriever import KnowledgeRetriever
from sales_coach.scoring.rubrics import RUBRICS, Methodology, get_rubric
from sales_coach.services.bigquery import BigQueryStore
from sales_coach.services.store import InMemoryStore
from sales_coach.utils.logging import setup_logging

app = typer.Typer(
    name="sales-coach",
    help="Sales Coach CLI - methodology scoring and coaching drafts",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)

GRADE_STYLES = {"good": "green", "warn": "yellow", "poor": "red"}


# Callback for global options
@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Sales Coach CLI."""
    level = "DEBUG" if debug else ("INFO" if verbose else "WARNING")
    setup_logging(level)


def _scores_table(analysis: AnalysisResult) -> Table:
    table = Table(title=f"{get_rubric(analysis.methodology).display_name} scores")
    table.add_column("Component", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Grade")
    table.add_column("Missing")

    for score in analysis.scores:
        style = GRADE_STYLES[score.grade]
        table.add_row(
            score.name,
            f"{score.score:g}",
            f"[{style}]{score.grade}[/{style}]",
            "; ".join(score.missing_elements),
        )

    style = GRADE_STYLES[analysis.overall_grade]
    table.add_row("OVERALL", str(analysis.overall_score), f"[{style}]{analysis.overall_grade}[/{style}]", "", style="bold")
    return table


# =============================================================================
# Init Commands
# =============================================================================

@app.command()
def init():
    """Create the BigQuery tables for conversations and coaching messages."""
    settings = get_settings()
    rprint(f"[bold]Initializing Sales Coach in project:[/bold] {settings.project_id}")

    store = BigQueryStore(settings)
    with console.status("Creating BigQuery tables..."):
        tables = store.ensure_tables()

    rprint("[green]Tables:[/green]")
    for table in tables.values():
        rprint(f"  - {table.full_table_id}")


# =============================================================================
# Analysis Commands
# =============================================================================

@app.command()
def analyze(
    transcript_file: Path = typer.Argument(..., help="Transcript text file", exists=True, dir_okay=False),
    methodology: str = typer.Option("sandler", "--methodology", "-m", help="Rubric to score against"),
    rep_email: str = typer.Option("rep@example.com", "--rep-email", help="Rep email for the draft"),
    call_date: Optional[str] = typer.Option(None, "--call-date", help="Call date (YYYY-MM-DD)"),
    corpus: Optional[Path] = typer.Option(None, "--corpus", help="Knowledge corpus directory"),
    no_rag: bool = typer.Option(False, "--no-rag", help="Skip practice script retrieval"),
):
    """Score a transcript file and print the coaching draft."""
    settings = get_settings()
    updates = {"rag_enabled": not no_rag}
    if corpus is not None:
        updates["corpus_path"] = corpus
    settings = settings.model_copy(update=updates)

    try:
        parsed_date = datetime.fromisoformat(call_date) if call_date else None
    except ValueError:
        rprint(f"[red]Invalid call date: {call_date}[/red]")
        raise typer.Exit(1)

    record = ConversationRecord(
        id=f"local-{transcript_file.stem}",
        transcript=transcript_file.read_text(encoding="utf-8"),
        rep_email=rep_email,
        call_date=parsed_date,
        methodology=methodology,
    )
    store = InMemoryStore()
    store.add_conversation(record)

    try:
        result = CoachingPipeline(settings, store).run(record.id, use_rag=not no_rag)
    except CoachingError as e:
        rprint(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(_scores_table(result.analysis))
    if result.weak_areas:
        rprint(f"\n[bold]Weak areas:[/bold] {', '.join(result.weak_areas)}")
    if result.augmentation.degraded:
        rprint("[yellow]Knowledge retrieval failed; draft has no practice scripts[/yellow]")

    rprint("\n[bold]Coaching draft[/bold]")
    console.print(result.coaching_content, markup=False, highlight=False)

    steps = ", ".join(f"{name} {ms}ms" for name, ms in result.timings.items())
    rprint(f"[dim]Request {result.request_id}: {steps}[/dim]")


@app.command()
def rubric(
    methodology: Optional[str] = typer.Argument(None, help="Methodology (omit to list all)"),
):
    """Show rubric components for one or all methodologies."""
    if methodology is None:
        table = Table(title="Methodologies")
        table.add_column("Name", style="cyan")
        table.add_column("Display")
        table.add_column("Components")
        for item in RUBRICS.values():
            table.add_row(item.methodology.value, item.display_name, ", ".join(item.component_names))
        console.print(table)
        return

    if methodology.lower() not in {m.value for m in Methodology}:
        rprint(f"[yellow]Unknown methodology '{methodology}', showing generic[/yellow]")

    selected = get_rubric(methodology)
    table = Table(title=f"{selected.display_name} rubric")
    table.add_column("#", justify="right")
    table.add_column("Component", style="cyan")
    table.add_column("Key")
    table.add_column("Measures")
    for index, rule in enumerate(selected.components, start=1):
        table.add_row(str(index), rule.name, rule.key, rule.description)
    console.print(table)


# =============================================================================
# Knowledge Base Commands
# =============================================================================

kb_app = typer.Typer(help="Knowledge corpus tools")
app.add_typer(kb_app, name="kb")


@kb_app.command("search")
def kb_search(
    query: str = typer.Argument(..., help="Search query"),
    corpus: Path = typer.Option(DEFAULT_CORPUS_PATH, "--corpus", help="Corpus directory"),
    component: Optional[list[str]] = typer.Option(None, "--component", "-c", help="Component filter"),
    content_type: Optional[list[str]] = typer.Option(None, "--type", "-t", help="Content type filter"),
    top_k: int = typer.Option(5, "--top-k", "-k", help="Number of results"),
    threshold: float = typer.Option(0.0, "--threshold", help="Minimum similarity"),
):
    """Run a similarity query against a local corpus."""
    settings = get_settings()
    config = RAGConfig.from_settings(settings)
    config.corpus_path = corpus

    request = RetrievalQuery(
        query_text=query,
        content_type_filter=content_type or None,
        component_filter=component or [],
        top_k=top_k,
        similarity_threshold=threshold,
    )
    try:
        retriever = KnowledgeRetriever.from_config(config)
        chunks = retriever.retrieve(request)
    except CoachingError as e:
        rprint(f"[red]Search failed: {e}[/red]")
        raise typer.Exit(1)

    if not chunks:
        rprint("[yellow]No results[/yellow]")
        return

    for i, chunk in enumerate(chunks, start=1):
        rprint(f"\n[bold cyan]{i}. {chunk.title}[/bold cyan] [dim]({chunk.id}, {chunk.content_type})[/dim]")
        console.print(chunk.text, markup=False, highlight=False)


@kb_app.command("validate")
def kb_validate(
    corpus: Path = typer.Argument(DEFAULT_CORPUS_PATH, help="Corpus directory"),
):
    """Check every corpus file's frontmatter and report chunk counts."""
    report = load_corpus_dir(corpus)
    rprint(f"Loaded {len(report.chunks)} chunks from {report.files_loaded} files")
    for file_name, errors in report.errors.items():
        rprint(f"[red]{file_name}[/red]")
        for error in errors:
            rprint(f"  - {error}")
    if not report.ok:
        raise typer.Exit(1)


# =============================================================================
# Run Log Commands
# =============================================================================

@app.command()
def logs(
    date: Optional[str] = typer.Option(None, "--date", help="Day to read (YYYY-MM-DD), defaults to today"),
    component: Optional[str] = typer.Option(None, "--component", "-c", help="Only this pipeline step"),
    call_id: Optional[str] = typer.Option(None, "--call-id", help="Only entries for this call"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Run log directory (default SC_LOG_DIR)"),
):
    """Show pipeline run log entries."""
    log_dir = log_dir or get_settings().log_dir
    if log_dir is None:
        rprint("[red]No log directory: pass --log-dir or set SC_LOG_DIR[/red]")
        raise typer.Exit(1)

    entries = read_logs(log_dir, date=date, component=component, call_id=call_id)
    if not entries:
        rprint("[yellow]No log entries[/yellow]")
        return

    table = Table(title=f"Run log {date or 'today'}")
    table.add_column("Time")
    table.add_column("Request")
    table.add_column("Call")
    table.add_column("Step", style="cyan")
    table.add_column("OK")
    table.add_column("ms", justify="right")
    for entry in entries:
        ok = "[green]yes[/green]" if entry.get("success") else f"[red]{entry.get('error_type') or 'no'}[/red]"
        table.add_row(
            entry.get("timestamp", "")[11:19],
            entry.get("request_id", ""),
            entry.get("call_id", ""),
            entry.get("component", ""),
            ok,
            str(entry.get("duration_ms", "")),
        )
    console.print(table)


if __name__ == "__main__":
    app()
