"""Athlete Scout CLI using Typer."""

import logging
import os
from pathlib import Path

import typer
from dotenv import load_dotenv

from athlete_scout import __version__
from athlete_scout.cli import scout

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

app = typer.Typer(
    name="athlete-scout",
    help="Athlete Scout - collect and fuse athlete profiles from multiple sources",
    add_completion=False,
)
app.add_typer(scout.sources_app, name="sources")

app.command("scrape")(scout.scrape)
app.command("batch")(scout.batch)
app.command("status")(scout.job_status)
app.command("find")(scout.find)
app.command("search")(scout.search)
app.command("quality")(scout.quality)
app.command("export")(scout.export)
app.command("cleanup")(scout.cleanup)
app.command("refresh")(scout.refresh)
app.command("worker")(scout.worker)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def init_db() -> None:
    """Initialize the database (create tables)."""
    from athlete_scout.db.engine import init_db as db_init

    typer.echo("Initializing database...")
    db_init()
    typer.echo("Database initialized successfully!")


@app.command()
def version() -> None:
    """Show the Athlete Scout version."""
    typer.echo(f"Athlete Scout v{__version__}")


@app.command()
def check_config() -> None:
    """Check the current configuration status."""
    from athlete_scout.db.engine import get_database_url
    from athlete_scout.ingestion.registry import get_default_registry

    typer.echo("Athlete Scout Configuration")
    typer.echo("=" * 40)

    env_found = False
    for _env_path in _env_paths:
        if _env_path.exists():
            typer.echo(f"  .env file: {_env_path}")
            env_found = True
            break
    if not env_found:
        typer.echo("  .env file: Not found")

    typer.echo(f"  Sources config: {os.environ.get('SOURCES_CONFIG_PATH', 'config/sources.yaml')}")
    registry = get_default_registry()
    enabled = registry.list_enabled_sources()
    typer.echo(f"  Enabled sources: {', '.join(s.name for s in enabled) or 'none'}")
    typer.echo(f"  Max concurrency: {registry.global_config.max_concurrency}")
    typer.echo(f"  Database: {get_database_url()}")
    typer.echo(f"  Redis: {os.environ.get('REDIS_HOST', 'localhost')}:{os.environ.get('REDIS_PORT', '6379')}")


if __name__ == "__main__":
    app()
