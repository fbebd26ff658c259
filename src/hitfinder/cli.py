"""Command line interface for HitFinder."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.table import Table

from hitfinder.config import AppConfig
from hitfinder.index.backend import SQLiteSearchBackend
from hitfinder.index.indexer import Indexer
from hitfinder.index.storage import SQLiteChunkStore
from hitfinder.models import QueryKind
from hitfinder.navigation import NO_MATCHES, create_navigator
from hitfinder.web.app import app as web_app


console = Console()
app = typer.Typer(help="HitFinder - navigate keyword hits in chunked documents")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _existing_db(db: Path | None) -> Path:
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")
    return resolved_db


@app.command()
def index(
    inputs: List[Path] = typer.Argument(
        ..., help="Text files or folders to index.", resolve_path=True
    ),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    chunk_chars: int = typer.Option(AppConfig().chunk_chars, help="Page size in characters"),
    overlap: int = typer.Option(AppConfig().overlap, help="Page overlap"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index one or more paths containing text files."""
    _setup_logging(verbose)
    config = AppConfig(
        db_path=db if db is not None else AppConfig().db_path,
        chunk_chars=chunk_chars,
        overlap=overlap,
    )

    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    store = SQLiteChunkStore(resolved_db)
    indexer = Indexer(store, chunk_chars=config.chunk_chars, overlap=config.overlap)

    console.print(f"Indexing into [bold]{resolved_db}[/bold]...")
    stats = indexer.index(inputs)
    if not stats.processed_files:
        console.print("[yellow]No text files found.[/yellow]")
        store.close()
        return

    console.print(
        f"Inserted: {stats.inserted}, updated: {stats.updated}, "
        f"skipped: {stats.skipped}, failed: {stats.failed}"
    )
    store.close()


@app.command()
def documents(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """List indexed documents."""
    resolved_db = _existing_db(db)
    store = SQLiteChunkStore(resolved_db)
    try:
        rows = store.list_documents()
    finally:
        store.close()

    if not rows:
        console.print("[yellow]No documents indexed.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Document")
    table.add_column("Pages")
    for row in rows:
        table.add_row(str(row["id"]), row["path"], str(row["chunk_count"] or 1))
    console.print(table)


@app.command()
def matches(
    document_id: int = typer.Argument(..., help="Document ID (see 'documents')"),
    query: str = typer.Argument(..., help="Keyword or pattern to highlight"),
    pattern: bool = typer.Option(False, "--pattern", help="Treat the query as a regular expression"),
    group: bool = typer.Option(True, "--group/--no-group", help="Quote pattern queries"),
    markup: bool = typer.Option(False, "--markup", help="Print the highlighted markup of each page"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Render every page of a document that holds hits for a query."""
    _setup_logging(verbose)
    resolved_db = _existing_db(db)

    store = SQLiteChunkStore(resolved_db)
    try:
        navigator = create_navigator(
            SQLiteSearchBackend(store),
            document_id,
            query,
            kind=QueryKind.PATTERN if pattern else QueryKind.LITERAL,
            group=group,
        )
        first = navigator.render()
        pages: list[tuple[int, str]] = [(navigator.get_current_page(), first)]
        while navigator.has_next_page():
            page = navigator.next_page()
            pages.append((page, navigator.render()))
    finally:
        store.close()

    if all(text == NO_MATCHES for _, text in pages):
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Page")
    table.add_column("Hits")
    for page, hits in navigator.get_hits_pages().items():
        table.add_row(str(page), str(hits))
    console.print(f"Pages in document: {navigator.get_number_pages()}")
    console.print(table)

    if markup:
        for page, text in pages:
            console.rule(f"Page {page}")
            console.print(text, markup=False, highlight=False)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Start the web API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Warning: database not found, sessions might fail.[/yellow]")

    web_app.state.db_path = resolved_db
    console.print(f"Starting web API on http://{host}:{port} (database: {resolved_db})")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
