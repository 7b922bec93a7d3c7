"""CLI entry point for the LearnFlow chat relay."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import load_dotenv, load_settings
from .errors import ConfigError, ScanError
from .models import LearnflowSettings

app = typer.Typer(
    name="learnflow",
    help="Context-enriched chat relay for the LearnFlow platform.",
    add_completion=False,
)

console = Console()


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _settings(project_root: Path | None = None) -> LearnflowSettings:
    """Load .env and environment, then apply the CLI's project root."""
    start = Path(project_root).resolve() if project_root else Path.cwd()
    load_dotenv(start)
    try:
        settings = load_settings()
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)
    if project_root is not None:
        settings = settings.model_copy(update={"project_root": start})
    return settings


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port number."),
    project_root: Optional[Path] = typer.Option(None, "--root", help="Project root (default: current directory)."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level."),
) -> None:
    """Run the chat relay HTTP server."""
    from .server import start_server

    _setup_logging(log_level)
    settings = _settings(project_root)
    overrides: dict[str, object] = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if overrides:
        settings = settings.model_copy(update=overrides)

    console.print(f"[bold cyan]Serving[/bold cyan] {settings.project_root} ({settings.environment})")
    console.print(f"  http://{settings.host}:{settings.port}")
    if not settings.gemini_api_key:
        console.print("[yellow]GEMINI_API_KEY not set. Chat will use fallback responses.[/yellow]")
    start_server(settings)


@app.command()
def scan(
    path: str = typer.Argument("", help="Path to scan, relative to the project root."),
    project_root: Optional[Path] = typer.Option(None, "--root", help="Project root (default: current directory)."),
) -> None:
    """List the files a /scan command would read."""
    from .scanner import scan_project

    settings = _settings(project_root)
    try:
        report = scan_project(settings.project_root, path)
    except ScanError as exc:
        console.print(f"[red]Scan Error:[/red] {exc}")
        raise typer.Exit(code=1)

    table = Table(title=f"Scanned {report.scanned_files} of {report.total_files} files in {report.scan_path}")
    table.add_column("Path")
    table.add_column("Lines", justify="right")
    table.add_column("Chars", justify="right")
    for f in report.files:
        table.add_row(f.path, str(f.lines), str(f.size))
    console.print(table)


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to look for in resource names, paths and tags."),
    project_root: Optional[Path] = typer.Option(None, "--root", help="Project root (default: current directory)."),
) -> None:
    """Search the local resource index."""
    from .resources import ResourceIndex

    settings = _settings(project_root)
    index = ResourceIndex(settings.effective_resources_dir, settings.project_root)
    index.initialize()
    results = index.search(query)

    if results.total_results == 0:
        console.print(f"[yellow]No resources match[/yellow] {query!r}")
        return

    table = Table(title=f"{results.total_results} resource(s) matching {query!r}")
    table.add_column("Category")
    table.add_column("Name")
    table.add_column("Location")
    for label, files in (
        ("assignment", results.assignments),
        ("notes", results.notes),
        ("lab manual", results.lab_manuals),
    ):
        for f in files:
            table.add_row(label, f.name, f.path)
    for d in results.downloads:
        table.add_row("download", d.title, d.url or "-")
    console.print(table)


@app.command()
def prompt(
    query: str = typer.Argument(..., help="User query to compose a prompt for."),
    no_web: bool = typer.Option(False, "--no-web", help="Skip web search."),
    project_root: Optional[Path] = typer.Option(None, "--root", help="Project root (default: current directory)."),
) -> None:
    """Print the prompt that would be sent for QUERY."""
    from .knowledge import load_knowledge
    from .models import ChatMessage
    from .prompts import PromptComposer
    from .resources import ResourceIndex
    from .websearch import WebSearchClient

    settings = _settings(project_root)
    index = ResourceIndex(settings.effective_resources_dir, settings.project_root)
    index.initialize()
    composer = PromptComposer(
        knowledge=load_knowledge(settings.navigation_file),
        resources=index,
        web_search=WebSearchClient(
            api_key=settings.search_api_key, engine_id=settings.search_engine_id
        ),
    )
    envelope = asyncio.run(composer.compose(
        query,
        [ChatMessage(role="user", content=query)],
        use_web_search=not no_web,
    ))
    console.print(envelope.render(), markup=False, highlight=False)
