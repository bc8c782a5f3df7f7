"""Command-line interface for Udiddit.

This module provides a Typer-based CLI for the schema and the one-time
legacy migration.

Commands:
- init: Create the normalized schema
- load-legacy: Build the legacy snapshot from CSV dumps
- migrate: Move the legacy snapshot into the normalized tables
- status: Show row counts of both stores

Example:
    $ udiddit init --force
    $ udiddit load-legacy bad_posts.csv bad_comments.csv
    $ udiddit migrate
    $ udiddit status
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from udiddit.config import settings
from udiddit.database import ConstraintViolation, NormalizedStore
from udiddit.legacy import LegacyStore
from udiddit.logging import configure_from_settings
from udiddit.pipeline import MigrationPipeline

app = typer.Typer(
    name="udiddit",
    help="Udiddit normalized schema and legacy data migration",
    add_completion=False,
)
console = Console()


def _counts_table(title: str, counts: dict[str, int]) -> Table:
    table = Table(title=title)
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right", style="green")
    for name, count in counts.items():
        table.add_row(name, f"{count:,}")
    return table


# =============================================================================
# CLI Commands
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Drop the normalized tables before creating them",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Create the normalized schema.

    Examples:
        $ udiddit init

        # Drop and recreate users, topics, posts, comments and votes
        $ udiddit init --force
    """
    configure_from_settings(verbose)

    console.print("🏗️  [bold cyan]Udiddit Initialization[/bold cyan]\n")

    db_path = Path(str(settings.database_path))
    if db_path.exists() and not force:
        console.print(
            f"⚠️  Database already exists at {settings.database_path}\n"
            "Use --force to recreate it."
        )
        return

    store = NormalizedStore()
    try:
        store.initialize(drop_existing=force)
        console.print(f"✅ Database created at [yellow]{settings.database_path}[/yellow]")
    except Exception as e:
        console.print(f"\n❌ [bold red]Initialization failed: {e}[/bold red]")
        raise typer.Exit(code=1)
    finally:
        store.close()


@app.command("load-legacy")
def load_legacy(
    posts_csv: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV dump of bad_posts"),
    comments_csv: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV dump of bad_comments"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Build the legacy snapshot from CSV dumps of bad_posts and bad_comments.

    Example:
        $ udiddit load-legacy bad_posts.csv bad_comments.csv
    """
    configure_from_settings(verbose)

    console.print("📥 [bold cyan]Loading Legacy Snapshot[/bold cyan]\n")
    console.print(f"📍 Snapshot: [yellow]{settings.legacy_database_path}[/yellow]")

    snapshot = LegacyStore(read_only=False)
    try:
        snapshot.initialize()
        loaded = snapshot.import_csv(posts_csv, comments_csv)
        console.print(_counts_table("Loaded", loaded))
    except Exception as e:
        console.print(f"\n❌ [bold red]Load failed: {e}[/bold red]")
        raise typer.Exit(code=1)
    finally:
        snapshot.close()


@app.command()
def migrate(
    truncate: bool = typer.Option(
        False,
        "--truncate",
        "-t",
        help="Empty the normalized tables before migrating",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Migrate the legacy snapshot into the normalized tables.

    Running twice without --truncate fails on the users uniqueness rule.

    Examples:
        $ udiddit migrate

        # Re-run from scratch
        $ udiddit migrate --truncate
    """
    configure_from_settings(verbose)

    console.print("🚀 [bold cyan]Udiddit Migration[/bold cyan]\n")
    console.print(f"📍 Legacy: [yellow]{settings.legacy_database_path}[/yellow]")
    console.print(f"📍 Target: [yellow]{settings.database_path}[/yellow]\n")

    pipeline = MigrationPipeline()
    try:
        pipeline.initialize()
        stats = pipeline.run(truncate_first=truncate)

        table = Table(title=f"Migration {stats['run_id']}")
        table.add_column("Phase", style="cyan")
        table.add_column("Inserted", justify="right", style="green")
        table.add_column("Excluded", justify="right", style="yellow")
        for phase in ("users_topics", "posts", "comments", "votes"):
            phase_stats = stats[phase]  # type: ignore[literal-required]
            table.add_row(phase, str(phase_stats["inserted"]), str(phase_stats["excluded"]))
        console.print(table)
        console.print(
            f"\n✅ [bold green]Migrated {stats['total_inserted']} rows[/bold green]"
        )

    except ConstraintViolation as e:
        console.print(
            f"\n❌ [bold red]Migration rejected ({e.kind} constraint: {e.detail})[/bold red]"
        )
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"\n❌ [bold red]Migration failed: {e}[/bold red]")
        raise typer.Exit(code=1)
    finally:
        pipeline.close()


@app.command()
def status(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Show row counts of the legacy snapshot and the normalized tables.

    Example:
        $ udiddit status
    """
    configure_from_settings(verbose)

    console.print("📊 [bold cyan]Udiddit Status[/bold cyan]\n")

    if settings.legacy_database_path.exists():
        legacy = LegacyStore()
        try:
            legacy.initialize()
            console.print(_counts_table("Legacy Snapshot", legacy.counts()))
        finally:
            legacy.close()
    else:
        console.print(f"⚠️  No legacy snapshot at {settings.legacy_database_path}\n")

    store = NormalizedStore()
    try:
        store.initialize()
        console.print(_counts_table("Normalized Tables", store.counts()))
    except Exception as e:
        console.print(f"\n❌ [bold red]Failed to read status: {e}[/bold red]")
        raise typer.Exit(code=1)
    finally:
        store.close()


def main() -> None:
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
