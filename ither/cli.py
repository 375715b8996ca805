"""Command-line interface for ither.

This module provides a Typer-based CLI for managing the community document
store.

Commands:
- init: Create the document database
- seed: Load the demo records into the document database
- status: Show configuration and per-collection document counts
- search: Keyword search over one collection

Example:
    $ ither init
    $ ither seed
    $ ither status
    $ ither search marketplaceItems macbook
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ither.app import CommunityApp
from ither.config import settings
from ither.database import DocumentDatabase
from ither.logging import setup_logging as configure_logging
from ither.query import keyword_search, sort_by_recency
from ither.repository import COLLECTIONS, load_seed
from ither.seed import make_seed

# Initialize CLI app
app     = typer.Typer(
    name="ither",
    help="Community data layer: mentorship, booklist, forum and marketplace stores",
    add_completion=False,
)
console = Console()

SEARCH_FIELDS = ("title", "description", "content", "author", "nickname")


# =============================================================================
# Helper Functions
# =============================================================================


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, set DEBUG level; otherwise the configured level
    """
    configure_logging(level="DEBUG" if verbose else settings.log_level, json_logs=settings.log_json)


def run_async(coro):
    """Run async coroutine in event loop."""
    return asyncio.run(coro)


def collection_names() -> list[str]:
    return [name for name, _ in COLLECTIONS.values()]


# =============================================================================
# CLI Commands
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Delete the existing database file first",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Create the document database and its tables.

    Examples:
        $ ither init
        $ ither init --force
    """
    setup_logging(verbose)

    console.print("🔧 [bold cyan]ither Init[/bold cyan]\n")
    console.print(f"📍 Database: [yellow]{settings.database_path}[/yellow]")

    db = DocumentDatabase(settings.database_path)
    try:
        if force and not db.is_memory and db.database_path.exists():
            console.print("🗑️  Removing existing database")
            db.database_path.unlink()
        db.initialize()
        console.print("\n✅ [bold green]Database initialized[/bold green]")

    except Exception as e:
        console.print(f"\n❌ [bold red]Init failed: {e}[/bold red]")
        raise typer.Exit(code=1)

    finally:
        db.close()


@app.command()
def seed(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Write the demo records into the document database.

    Existing documents with the same ids are overwritten; other documents are
    left untouched.

    Examples:
        $ ither seed
    """
    setup_logging(verbose)

    console.print("🌱 [bold cyan]ither Seed[/bold cyan]\n")
    console.print(f"📍 Database: [yellow]{settings.database_path}[/yellow]")
    console.print(f"🏷️  App: [yellow]{settings.app_id}[/yellow]\n")

    db = DocumentDatabase(settings.database_path)
    try:
        db.initialize()
        data = make_seed()

        table = Table(title="Seeded Collections")
        table.add_column("Collection", style="cyan")
        table.add_column("Documents", justify="right", style="green")

        for name, count in load_seed(db, data, settings.collection_path).items():
            table.add_row(name, f"{count:,}")

        console.print(table)
        console.print(f"\n✅ [bold green]Seeded {data.total():,} documents[/bold green]")

    except Exception as e:
        console.print(f"\n❌ [bold red]Seed failed: {e}[/bold red]")
        raise typer.Exit(code=1)

    finally:
        db.close()


@app.command()
def status(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Show configuration and document counts per collection.

    Examples:
        $ ither status
    """
    setup_logging(verbose)

    console.print("📊 [bold cyan]ither Status[/bold cyan]\n")

    config_table = Table(title="Configuration", show_header=False)
    config_table.add_column("Key", style="cyan")
    config_table.add_column("Value", style="yellow")

    config_table.add_row("Environment", str(settings.environment))
    config_table.add_row("Backend", "mock" if settings.mock_mode else "remote")
    config_table.add_row("App ID", settings.app_id)
    config_table.add_row("Database Path", str(settings.database_path))
    config_table.add_row("Local Storage", str(settings.local_storage_dir or "memory"))
    config_table.add_row("Log Level", settings.log_level)

    console.print(config_table)
    console.print()

    db = DocumentDatabase(settings.database_path)
    try:
        db.initialize()
        counts = db.collection_counts(settings.collection_root)

        stats_table = Table(title="Document Counts")
        stats_table.add_column("Collection", style="cyan")
        stats_table.add_column("Count", justify="right", style="green")

        for name in collection_names():
            stats_table.add_row(name, f"{counts.get(settings.collection_path(name), 0):,}")
        stats_table.add_row("Total", f"{sum(counts.values()):,}", style="bold")

        console.print(stats_table)

    except Exception as e:
        console.print(f"\n❌ [bold red]Status failed: {e}[/bold red]")
        raise typer.Exit(code=1)

    finally:
        db.close()


@app.command()
def search(
    collection: str = typer.Argument(..., help="Collection name, e.g. marketplaceItems"),
    keyword: str = typer.Argument(..., help="Case-insensitive keyword"),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        help="Maximum number of results to show",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Search one collection of the configured backend.

    Matches titles, descriptions, content, authors and nicknames.

    Examples:
        $ ither search forumPosts vue
        $ ither search books 習慣 --limit 5
    """
    setup_logging(verbose)

    if collection not in collection_names():
        console.print(f"❌ [bold red]Unknown collection: {collection}[/bold red]")
        console.print(f"Available: {', '.join(collection_names())}")
        raise typer.Exit(code=1)

    async def _search():
        community = CommunityApp(settings)
        try:
            await community.initialize()
            store = community.stores.top_level()[collection]
            return sort_by_recency(keyword_search(await store.list(), keyword, fields=SEARCH_FIELDS))
        finally:
            community.close()

    hits = run_async(_search())
    if limit is not None:
        hits = hits[:limit]

    table = Table(title=f"{collection}: '{keyword}' ({len(hits)} results)")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Author", style="yellow")

    for record in hits:
        title = getattr(record, "title", None) or getattr(record, "content", "") or ""
        table.add_row(record.id, title, getattr(record, "userName", "") or "")

    console.print(table)


if __name__ == "__main__":
    app()
