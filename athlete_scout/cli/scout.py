"""
Scouting CLI Commands
=====================

CLI commands for collecting athlete profiles and querying the catalog.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from athlete_scout.core.enums import ExportFormat, JobPriority, JobStatus
from athlete_scout.core.errors import ScoutError, ValidationError
from athlete_scout.core.schema import AthleteProfile
from athlete_scout.db.engine import init_db
from athlete_scout.ingestion.adapters import get_adapter_info, list_adapters
from athlete_scout.ingestion.registry import get_default_registry
from athlete_scout.services.profile_service import ProfileService
from athlete_scout.services.scouting_service import ScoutingService, open_scouting_service

console = Console()
sources_app = typer.Typer(help="Source management commands")

STATUS_COLORS = {
    "completed": "green",
    "running": "blue",
    "queued": "yellow",
    "failed": "red",
    "cancelled": "magenta",
}


def _options(state: str | None, sport: str | None, year: int | None) -> dict[str, Any]:
    return {k: v for k, v in {"state": state, "sport": sport, "year": year}.items() if v}


def _read_batch_file(path: Path) -> list[str | dict[str, Any]]:
    """Read athletes from a JSON list or a file with one name per line."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
        if not isinstance(data, list):
            raise typer.BadParameter("JSON batch file must contain a list")
        return data
    return [line.strip() for line in text.splitlines() if line.strip() and not line.startswith("#")]


async def _run_and_wait(
    submit: Any, timeout: float | None
) -> tuple[ScoutingService, list[dict[str, Any]]]:
    init_db()
    async with open_scouting_service() as service:
        job_ids = await submit(service)
        with console.status(f"[bold blue]Scouting {len(job_ids)} athlete(s)...[/bold blue]"):
            await asyncio.wait_for(service.scheduler.join(), timeout)
        return service, [service.get_job_status(job_id) for job_id in job_ids]


def _display_job(status: dict[str, Any]) -> None:
    state = status.get("status", "unknown")
    color = STATUS_COLORS.get(state, "white")
    rprint(f"\n[bold]Job {status.get('id', '?')}[/bold]: [{color}]{state}[/{color}] ({status.get('progress', 0)}%)")
    result = status.get("result")
    if result:
        rprint(f"  Athlete: {result['name']} ({result['sport']})")
        rprint(f"  Version: {result['version']}")
        rprint(f"  Data quality: {result['data_quality']}")
        rprint(f"  Confidence: {result['confidence']}")
        rprint(f"  Sources: {', '.join(result['sources_used']) or 'none'}")
    if status.get("error"):
        rprint(f"  [red]Error:[/red] {status['error']}")


def _display_profile(profile: AthleteProfile) -> None:
    rprint(f"\n[bold]{profile.name}[/bold] ({profile.sport})")
    rprint(f"  Position: {profile.position or 'N/A'}")
    rprint(f"  School: {profile.school or 'N/A'}")
    rprint(f"  Version: {profile.metadata.version}")
    rprint(f"  Data quality: {profile.metadata.data_quality}")
    rprint(f"  Confidence: {profile.metadata.confidence}")
    rprint(f"  Sources: {', '.join(profile.metadata.sources_used) or 'none'}")
    rprint(f"  Last updated: {profile.metadata.last_updated.isoformat()}")

    if profile.stats:
        table = Table(title="Stats")
        table.add_column("Stat", style="bold")
        table.add_column("Value", justify="right")
        for key, value in sorted(profile.stats.items()):
            table.add_row(key, f"{value:g}")
        console.print(table)

    recruiting = profile.recruiting_data
    if recruiting.has_values():
        rprint("\n[bold]Recruiting:[/bold]")
        for name in ("rating", "stars", "ranking", "offers"):
            value = getattr(recruiting, name)
            if value is not None:
                rprint(f"  {name.title()}: {value:g}")

    if profile.highlights:
        rprint(f"\n[bold]Highlights ({len(profile.highlights)}):[/bold]")
        for highlight in profile.highlights[:5]:
            rprint(f"  • {highlight.title} ({highlight.views} views) {highlight.url}")

    if profile.track_data:
        rprint(f"\n[bold]Track events ({len(profile.track_data)}):[/bold]")
        for event in profile.track_data[:10]:
            pr = " [green]PR[/green]" if event.is_pr else ""
            rprint(f"  • {event.event}: {event.mark or 'N/A'}{pr}")


def scrape(
    name: str = typer.Argument(..., help="Athlete name"),
    sport: Optional[str] = typer.Option(None, "--sport", help="Sport (default: football)"),
    state: Optional[str] = typer.Option(None, "--state", help="Two-letter state hint (default: TX)"),
    year: Optional[int] = typer.Option(None, "--year", help="Graduation year hint"),
    priority: JobPriority = typer.Option(JobPriority.NORMAL, "--priority", "-p", help="Job priority"),
    remote: bool = typer.Option(False, "--remote", help="Enqueue on the Redis worker instead"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds to wait for the job"),
) -> None:
    """
    Collect one athlete from every enabled source and store the profile.

    Examples:
        athlete-scout scrape "John Smith" --sport football --state TX
        athlete-scout scrape "Jane Doe" --remote
    """
    options = _options(state, sport, year)

    if remote:
        from athlete_scout.ingestion.worker import enqueue_remote_scrape

        try:
            job_id = asyncio.run(enqueue_remote_scrape(name, options))
        except ValidationError as e:
            rprint(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
        except Exception as e:
            rprint(f"\n[red]Error:[/red] Failed to enqueue job: {e}")
            rprint("\nMake sure Redis is running and REDIS_HOST is set")
            raise typer.Exit(1)
        rprint("\n[green]Job enqueued successfully![/green]")
        rprint(f"Job ID: [bold]{job_id}[/bold]")
        rprint("\nCheck status with:")
        rprint(f"  athlete-scout status {job_id}")
        return

    async def submit(service: ScoutingService) -> list[str]:
        return [await service.enqueue_scrape(name, options, priority)]

    try:
        _, statuses = asyncio.run(_run_and_wait(submit, timeout))
    except ValidationError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except TimeoutError:
        rprint(f"[red]Error:[/red] Timed out after {timeout}s")
        raise typer.Exit(1)

    for status in statuses:
        _display_job(status)
    if any(s.get("status") != JobStatus.COMPLETED.value for s in statuses):
        raise typer.Exit(1)


def batch(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Names file (.txt or .json)"),
    sport: Optional[str] = typer.Option(None, "--sport", help="Sport for every athlete"),
    state: Optional[str] = typer.Option(None, "--state", help="State hint for every athlete"),
    year: Optional[int] = typer.Option(None, "--year", help="Graduation year hint"),
    priority: JobPriority = typer.Option(JobPriority.NORMAL, "--priority", "-p", help="Job priority"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds to wait for all jobs"),
) -> None:
    """
    Collect many athletes under the bounded worker pool.

    A .json file holds a list of names or {"name", "state", "sport"} objects;
    any other file holds one name per line.

    Examples:
        athlete-scout batch athletes.txt --sport basketball
    """
    athletes = _read_batch_file(file)
    if not athletes:
        rprint("[yellow]No athletes in batch file[/yellow]")
        return

    async def submit(service: ScoutingService) -> list[str]:
        return await service.enqueue_batch(athletes, _options(state, sport, year), priority)

    try:
        _, statuses = asyncio.run(_run_and_wait(submit, timeout))
    except ValidationError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except TimeoutError:
        rprint(f"[red]Error:[/red] Timed out after {timeout}s")
        raise typer.Exit(1)

    table = Table(title=f"Batch Results ({len(statuses)} jobs)")
    table.add_column("Athlete", style="bold")
    table.add_column("Status")
    table.add_column("Quality", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Sources", justify="right")
    table.add_column("Error")

    for status in statuses:
        state_value = status.get("status", "unknown")
        color = STATUS_COLORS.get(state_value, "white")
        result = status.get("result") or {}
        table.add_row(
            result.get("name", ""),
            f"[{color}]{state_value}[/{color}]",
            str(result.get("data_quality", "")),
            str(result.get("confidence", "")),
            str(len(result.get("sources_used", []))),
            status.get("error", "") or "",
        )
    console.print(table)

    failed = sum(1 for s in statuses if s.get("status") == JobStatus.FAILED.value)
    if failed:
        rprint(f"\n[yellow]{failed} job(s) failed[/yellow]")
        raise typer.Exit(1)


def job_status(
    job_id: str = typer.Argument(..., help="Remote job ID"),
) -> None:
    """
    Check the status of a job enqueued with --remote.

    Examples:
        athlete-scout status abc123
    """
    from athlete_scout.ingestion.worker import get_remote_job_status

    try:
        result = asyncio.run(get_remote_job_status(job_id))
    except Exception as e:
        rprint(f"[red]Error:[/red] Failed to get job status: {e}")
        rprint("\nMake sure Redis is running")
        raise typer.Exit(1)

    if result is None:
        rprint(f"[yellow]Job '{job_id}' not found[/yellow]")
        raise typer.Exit(1)

    rprint(f"\n[bold]Job: {job_id}[/bold]")
    rprint(f"  Status: {result.get('status', 'unknown')}")
    outcome = result.get("result")
    if isinstance(outcome, dict):
        _display_job(
            {
                "id": job_id,
                "status": outcome.get("status"),
                "progress": 100 if outcome.get("status") == "completed" else 0,
                "result": outcome.get("profile"),
                "error": outcome.get("error"),
            }
        )


def find(
    name: str = typer.Argument(..., help="Athlete name"),
    sport: Optional[str] = typer.Option(None, "--sport", help="Sport"),
    as_json: bool = typer.Option(False, "--json", help="Print the profile as JSON"),
) -> None:
    """
    Show a stored athlete profile.

    Examples:
        athlete-scout find "John Smith" --sport football
    """
    profile = ProfileService().find(name, sport)
    if profile is None:
        rprint(f"[yellow]No profile found for '{name}'[/yellow]")
        raise typer.Exit(1)

    if as_json:
        typer.echo(profile.model_dump_json(indent=2))
    else:
        _display_profile(profile)


def search(
    query: Optional[str] = typer.Argument(None, help="Name or school substring"),
    sport: Optional[str] = typer.Option(None, "--sport", help="Filter by sport"),
    position: Optional[str] = typer.Option(None, "--position", help="Filter by position"),
    school: Optional[str] = typer.Option(None, "--school", help="Filter by school substring"),
    sort: str = typer.Option("-confidence", "--sort", help="Sort field, '-' prefix for descending"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum results"),
) -> None:
    """
    Search stored athlete profiles.

    Examples:
        athlete-scout search smith --sport football
        athlete-scout search --position qb --sort -data_quality
    """
    filters = {"sport": sport, "position": position, "school": school}
    try:
        profiles = ProfileService().search(query, filters, sort=sort, limit=limit)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not profiles:
        rprint("[yellow]No athletes found[/yellow]")
        return

    table = Table(title=f"Athletes ({len(profiles)})")
    table.add_column("Name", style="bold")
    table.add_column("Sport")
    table.add_column("Position")
    table.add_column("School")
    table.add_column("Quality", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Version", justify="right")

    for p in profiles:
        table.add_row(
            p.name,
            p.sport,
            p.position or "",
            p.school or "",
            str(p.metadata.data_quality),
            str(p.metadata.confidence),
            str(p.metadata.version),
        )
    console.print(table)


def quality() -> None:
    """Show catalog-wide data quality statistics."""
    stats = ProfileService().get_data_quality_stats()

    rprint("\n[bold]Data Quality[/bold]")
    rprint(f"  Total athletes: {stats.total_athletes}")
    rprint(f"  Average quality: {stats.average_quality:.1f}")
    rprint(f"  Average confidence: {stats.average_confidence:.1f}")
    rprint(f"  High quality (>= 80): {stats.high_quality_count}")

    if stats.source_distribution:
        table = Table(title="Source Distribution")
        table.add_column("Source", style="bold")
        table.add_column("Athletes", justify="right")
        for source, count in sorted(stats.source_distribution.items(), key=lambda kv: -kv[1]):
            table.add_row(source, str(count))
        console.print(table)


def export(
    format: ExportFormat = typer.Option(ExportFormat.JSON, "--format", "-f", help="Export format"),
    sport: Optional[str] = typer.Option(None, "--sport", help="Only export one sport"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
) -> None:
    """
    Export stored profiles as JSON or CSV.

    Examples:
        athlete-scout export --format csv -o athletes.csv
    """
    document = ProfileService().export_profiles(format, sport=sport)
    if output is None:
        typer.echo(document)
        return
    output.write_text(document, encoding="utf-8")
    rprint(f"[green]Exported to {output}[/green]")


def cleanup(
    days: int = typer.Option(90, "--days", help="Only profiles not updated for this many days"),
    max_confidence: int = typer.Option(50, "--max-confidence", help="Only profiles below this confidence"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """
    Delete old, low-confidence profiles.

    Examples:
        athlete-scout cleanup --days 180 --yes
    """
    if not yes and not typer.confirm(
        f"Delete profiles older than {days} days with confidence below {max_confidence}?"
    ):
        raise typer.Exit(0)

    try:
        deleted = ProfileService().cleanup_stale_profiles(days_old=days, max_confidence=max_confidence)
    except ScoutError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    rprint(f"[green]Deleted {deleted} profile(s)[/green]")


def refresh(
    hours: int = typer.Option(24, "--hours", help="Refresh profiles older than this"),
    priority: JobPriority = typer.Option(JobPriority.LOW, "--priority", "-p", help="Job priority"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum profiles to refresh"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds to wait for all jobs"),
) -> None:
    """
    Re-collect athletes whose profiles have gone stale.

    Examples:
        athlete-scout refresh --hours 48 --limit 20
    """

    async def submit(service: ScoutingService) -> list[str]:
        return await service.refresh_stale_athletes(hours, priority, limit=limit)

    try:
        _, statuses = asyncio.run(_run_and_wait(submit, timeout))
    except TimeoutError:
        rprint(f"[red]Error:[/red] Timed out after {timeout}s")
        raise typer.Exit(1)

    if not statuses:
        rprint("[green]No stale profiles[/green]")
        return
    completed = sum(1 for s in statuses if s.get("status") == JobStatus.COMPLETED.value)
    rprint(f"Refreshed {completed}/{len(statuses)} athlete(s)")
    for status in statuses:
        if status.get("status") != JobStatus.COMPLETED.value:
            _display_job(status)


def worker(
    burst: bool = typer.Option(False, "--burst", help="Run in burst mode (exit when queue empty)"),
) -> None:
    """
    Start the Redis-backed scrape worker.

    Examples:
        athlete-scout worker
        athlete-scout worker --burst
    """
    from arq import run_worker

    from athlete_scout.ingestion.worker import WorkerSettings

    rprint("[bold]Starting scrape worker...[/bold]")
    rprint("Press Ctrl+C to stop\n")

    init_db()
    try:
        run_worker(WorkerSettings, burst=burst)
    except Exception as e:
        rprint(f"[red]Error:[/red] Worker failed: {e}")
        rprint("\nMake sure Redis is running")
        raise typer.Exit(1)


# Sources subcommands


@sources_app.command("list")
def list_sources(
    all_sources: bool = typer.Option(False, "--all", "-a", help="Show all sources including disabled"),
) -> None:
    """
    List configured sources.

    Examples:
        athlete-scout sources list
        athlete-scout sources list --all
    """
    registry = get_default_registry()
    sources = registry.list_sources() if all_sources else registry.list_enabled_sources()

    if not sources:
        rprint("[yellow]No sources configured[/yellow]")
        rprint("\nAdd sources to config/sources.yaml")
        return

    table = Table(title="Sources")
    table.add_column("Name", style="bold")
    table.add_column("Base URL")
    table.add_column("Adapter")
    table.add_column("Priority", justify="right")
    table.add_column("Status")
    table.add_column("Min Delay", justify="right")

    for source in sources:
        status = "[green]enabled[/green]" if source.enabled else "[yellow]disabled[/yellow]"
        table.add_row(
            source.name,
            source.base_url,
            source.adapter,
            f"{source.priority:.1f}",
            status,
            f"{source.rate_limit.min_delay_ms}ms",
        )

    console.print(table)


@sources_app.command("show")
def show_source(
    name: str = typer.Argument(..., help="Source name"),
) -> None:
    """
    Show detailed information about a source.

    Examples:
        athlete-scout sources show maxpreps
    """
    registry = get_default_registry()
    source = registry.get_source(name)

    if source is None:
        rprint(f"[red]Error:[/red] Source '{name}' not found")
        raise typer.Exit(1)

    status = "[green]enabled[/green]" if source.enabled else "[yellow]disabled[/yellow]"

    rprint(f"\n[bold]Source: {source.name}[/bold]")
    rprint(f"  Status: {status}")
    rprint(f"  Base URL: {source.base_url}")
    rprint(f"  Adapter: {source.adapter}")
    rprint(f"  Priority: {source.priority}")
    if source.description:
        rprint(f"  Description: {source.description}")

    rprint("\n[bold]Rate Limiting:[/bold]")
    rprint(f"  Minimum delay: {source.rate_limit.min_delay_ms}ms")
    rprint(f"  Jitter: up to {source.rate_limit.jitter_ms}ms")
    rprint(f"  User agents: {len(source.user_agents)}")

    adapter_info = get_adapter_info(source.adapter)
    if adapter_info:
        rprint("\n[bold]Adapter Info:[/bold]")
        rprint(f"  Name: {adapter_info['name']}")
        rprint(f"  Version: {adapter_info['version']}")
        rprint(f"  Class: {adapter_info['class']}")


@sources_app.command("adapters")
def list_source_adapters() -> None:
    """List available adapters."""
    table = Table(title="Available Adapters")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Class")

    for adapter_name in list_adapters():
        info = get_adapter_info(adapter_name)
        if info:
            table.add_row(info["name"], info["version"], info["class"])

    console.print(table)
