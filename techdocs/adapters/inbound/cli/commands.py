"""CLI interface for the tech docs knowledge base."""

import json
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ....common.exception_handler import format_exception_json
from ....composition.container import (
    get_embedder,
    get_index,
    get_ingestion_service,
    get_orchestrator,
    get_retriever,
    initialize_embedder,
)
from ....config import settings, setup_logging
from ....core.domain import IngestionRequest, SearchFilters

app = typer.Typer(
    name="techdocs",
    help="Tech Docs KB - hybrid search and grounded answers over your documentation",
    add_completion=False,
)

console = Console(force_terminal=True, legacy_windows=False)

# Determine if we're in debug mode (shows full stack traces)
DEBUG_MODE = os.getenv("DEBUG", "false").lower() == "true"

SUPPORTED_SUFFIXES = {".md", ".markdown", ".txt", ".rst"}


def handle_cli_error(exc: Exception) -> None:
    """Handle and display errors in CLI with structured format.

    In debug mode, shows full JSON error details.
    In normal mode, shows a user-friendly message with error code.

    Args:
        exc: The exception to handle.
    """
    error_data = format_exception_json(exc, include_trace=DEBUG_MODE)

    if DEBUG_MODE:
        console.print(
            Panel(
                json.dumps(error_data, indent=2),
                title="[bold red]Error Details[/]",
                border_style="red",
            )
        )
    else:
        error_type = error_data["error"]["type"]
        error_msg = error_data["error"]["message"]
        error_code = error_data["error"].get("code", "UNKNOWN")
        location = error_data.get("location", {})

        console.print(f"\n[red]Error [{error_code}]:[/] {error_msg}")
        console.print(f"[dim]Type: {error_type}[/]")

        if location:
            loc_str = f"{location.get('file', '?')}:{location.get('line', '?')} in {location.get('method', '?')}"
            console.print(f"[dim]Location: {loc_str}[/]")

        if error_data["error"].get("retryable"):
            console.print("[yellow]This is usually temporary; try again shortly[/]")

        console.print("[dim]Set DEBUG=true for full details[/]")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    """Configure logging for every command."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_json,
        log_file=settings.log_file,
    )


def _load_model() -> None:
    with console.status("[bold green]Loading embedding model...[/]"):
        initialize_embedder()
    if not get_embedder().is_ready():
        console.print("[yellow]Embedding model unavailable, using keyword search only[/]")


def _collect_files(path: Path) -> list[Path]:
    if path.is_dir():
        return sorted(p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES)
    return [path]


@app.command()
def ingest(
    path: Path = typer.Argument(..., exists=True, help="Text/Markdown file or directory to ingest"),
    technology: str = typer.Option("General", "--technology", "-t", help="Technology tag"),
    source: str | None = typer.Option(None, "--source", "-s", help="Source reference (defaults to file path)"),
    title: str | None = typer.Option(None, "--title", help="Title (single file only; defaults to file name)"),
    document_id: str | None = typer.Option(None, "--id", help="Re-ingest under this document id (single file only)"),
) -> None:
    """Ingest plain text or Markdown files into the knowledge base."""
    files = _collect_files(path)
    if not files:
        console.print(f"[yellow]No supported files found in {path}[/]")
        raise typer.Exit(1)

    _load_model()
    service = get_ingestion_service()
    single = len(files) == 1

    failures = 0
    for file in files:
        try:
            result = service.ingest(
                IngestionRequest(
                    title=(title if single and title else file.stem.replace("_", " ").replace("-", " ")),
                    content=file.read_text(encoding="utf-8-sig"),
                    source_ref=source or str(file),
                    technology=technology,
                    metadata={"file_name": file.name},
                    document_id=document_id if single else None,
                )
            )
        except Exception as exc:
            failures += 1
            console.print(f"[red]✗[/] {file}")
            handle_cli_error(exc)
            continue

        rejected = f", [yellow]{result.rejected_chunks} rejected[/]" if result.rejected_chunks else ""
        console.print(
            f"[green]✓[/] {file} → [bold]{result.document_id}[/] ({result.chunk_count} chunks{rejected})"
        )

    if failures:
        raise typer.Exit(1)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(10, "--limit", "-n", min=1, max=50, help="Maximum number of results"),
    technology: str | None = typer.Option(None, "--technology", "-t", help="Only this technology"),
) -> None:
    """Hybrid (vector + keyword) search without answer generation."""
    _load_model()
    try:
        results = get_retriever().retrieve(
            query, limit=limit, filters=SearchFilters(technology=technology) if technology else None
        )
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    if not results:
        console.print("[yellow]No matching documents.[/]")
        return

    table = Table(title=f"Results for: {query}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Score", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Excerpt")
    for i, result in enumerate(results, start=1):
        excerpt = escape(result.excerpt).replace("<mark>", "[reverse]").replace("</mark>", "[/reverse]")
        table.add_row(str(i), f"{result.fused_score:.2f}", escape(result.document_meta.title), excerpt)
    console.print(table)


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to answer from the knowledge base"),
) -> None:
    """Ask a single question and get a cited answer."""
    _load_model()
    try:
        with console.status("[bold green]Thinking...[/]"):
            answer = get_orchestrator().answer(question)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    console.print(
        Panel(
            Markdown(answer.answer_text),
            title="[bold cyan]Answer[/]" + (" [yellow](fallback)[/]" if answer.is_fallback else ""),
            border_style="yellow" if answer.is_fallback else "cyan",
        )
    )
    console.print(f"[dim]{escape(answer.reasoning)}[/]")

    if answer.citations:
        console.print("\n[dim]Sources:[/]")
        for citation in answer.citations:
            console.print(f"  [dim]{escape(citation.title)} ({escape(citation.source_ref)}) - {citation.relevance_pct}%[/]")


@app.command()
def documents() -> None:
    """List ingested documents."""
    try:
        docs = get_ingestion_service().list_documents()
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    if not docs:
        console.print("[yellow]Knowledge base is empty. Run 'techdocs ingest PATH' to add documents.[/]")
        return

    table = Table(title="Documents")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Technology")
    table.add_column("Source")
    for doc in docs:
        table.add_row(doc.id, doc.title, doc.technology, doc.source_ref)
    console.print(table)


@app.command()
def delete(document_id: str = typer.Argument(..., help="Document id to delete")) -> None:
    """Delete a document and all of its chunks."""
    try:
        removed = get_ingestion_service().delete_document(document_id)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    if not removed:
        console.print(f"[yellow]Document {document_id} not found[/]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted {document_id} ({removed} chunks)[/]")


@app.command()
def status() -> None:
    """Show the current status of the knowledge base."""
    console.print("[bold]Tech Docs KB Status[/]\n")

    if settings.google_api_key:
        console.print("✅ Google API key configured")
    else:
        console.print("❌ Google API key not set (answers fall back to excerpts; set GOOGLE_API_KEY in .env)")

    if settings.qdrant_url:
        console.print(f"✅ Qdrant server: {settings.qdrant_url}")
    elif settings.qdrant_path:
        console.print(f"✅ Local Qdrant storage: {settings.qdrant_path}")
    else:
        console.print("⚪ In-memory index (set QDRANT_URL or QDRANT_PATH to persist documents)")

    try:
        index = get_index()
        if not index.is_available():
            console.print("❌ Index unavailable")
            raise typer.Exit(1)
        console.print(f"\n[green]{index.count()} chunks indexed[/]")
    except typer.Exit:
        raise
    except Exception as exc:
        handle_cli_error(exc)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    console.print(f"[bold green]Serving Tech Docs KB API on http://{host}:{port}[/] (docs at /docs)")
    uvicorn.run(
        "techdocs.adapters.inbound.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    app()
