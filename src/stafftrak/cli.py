"""Command-line interface for StaffTrak."""

import asyncio
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stafftrak.compliance import CalendarError, available_school_years, evaluate_roster, load_calendar
from stafftrak.config import settings
from stafftrak.models import load_snapshot_file
from stafftrak.reporting import build_fleet_report

app = typer.Typer(
    name="stafftrak",
    help="StaffTrak - staff evaluation workflow and compliance tracking",
    add_completion=False,
)

console = Console()


def setup_logging(level: str = "INFO"):
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )


@app.callback()
def configure(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (defaults to APP_LOG_LEVEL)",
    )
):
    setup_logging(log_level or settings.app.log_level)


def _load_calendar_or_exit(school_year: Optional[str]):
    try:
        return load_calendar(school_year or settings.compliance.school_year, settings.compliance.calendar_dir)
    except CalendarError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)


def _load_snapshot_or_exit(path: Path):
    try:
        return load_snapshot_file(path)
    except FileNotFoundError:
        console.print(f"[red]❌ Snapshot file not found: {path}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]❌ Invalid snapshot {path}: {e}[/red]")
        raise typer.Exit(1)


def _as_date(value: Optional[datetime]) -> date:
    return value.date() if value else date.today()


@app.command()
def version():
    """Show version information."""
    from stafftrak import __version__

    console.print(Panel.fit(
        f"[bold blue]StaffTrak[/bold blue]\n"
        f"Version: [green]{__version__}[/green]\n"
        f"School year: [green]{settings.compliance.school_year}[/green]",
        title="Version Info"
    ))


@app.command()
def calendar(
    school_year: Optional[str] = typer.Option(None, "--school-year", "-y", help="School year, e.g. 2025-2026"),
):
    """Show the deadline calendar for a school year."""
    deadlines = _load_calendar_or_exit(school_year)

    table = Table(title=f"Deadline calendar {deadlines.school_year} (v{deadlines.version})")
    table.add_column("Milestone", style="bold")
    table.add_column("Due")
    table.add_column("Kind")
    table.add_column("Applies to")

    for milestone in deadlines.milestones:
        applies_to = (
            ", ".join(c.value for c in milestone.staff_categories)
            if milestone.staff_categories else "all staff"
        )
        table.add_row(milestone.name, milestone.due.isoformat(), milestone.kind.value, applies_to)

    console.print(table)

    policy = deadlines.policy
    console.print(
        "Required goals: "
        + ", ".join(f"{c.value} {n}" for c, n in policy.required_goals.items())
    )
    console.print(
        f"Required observations: probationary {policy.required_observations_probationary}, "
        f"permanent {policy.required_observations_permanent}, "
        f"classified {policy.required_observations_classified} "
        f"(probationary = first {policy.probationary_years} years)"
    )
    other_years = [y for y in available_school_years(settings.compliance.calendar_dir) if y != deadlines.school_year]
    if other_years:
        console.print(f"[dim]Other calendars: {', '.join(other_years)}[/dim]")


@app.command()
def compliance(
    snapshot_file: Path = typer.Argument(..., help="JSON snapshot of roster and cycle records"),
    as_of: Optional[datetime] = typer.Option(None, "--as-of", formats=["%Y-%m-%d"], help="Evaluation date (default today)"),
    school_year: Optional[str] = typer.Option(None, "--school-year", "-y", help="School year, e.g. 2025-2026"),
    only_off_track: bool = typer.Option(False, "--off-track", help="Only list staff who are not on track"),
):
    """Show each staff member's milestone status."""
    deadlines = _load_calendar_or_exit(school_year)
    snapshot = _load_snapshot_or_exit(snapshot_file)
    on_date = _as_date(as_of)

    records = evaluate_roster(snapshot, deadlines, on_date)

    table = Table(title=f"Compliance {deadlines.school_year} as of {on_date.isoformat()}")
    table.add_column("Staff", style="bold")
    table.add_column("Category")
    table.add_column("Progress", justify="right")
    table.add_column("Status")
    table.add_column("Overdue")
    table.add_column("Next step")

    for record in records:
        if only_off_track and record.on_track:
            continue
        overdue = ", ".join(
            f"{m.name} ({m.detail})" if m.detail else m.name for m in record.overdue_milestones
        )
        table.add_row(
            record.staff_name,
            record.staff_category.value if record.staff_category else "-",
            f"{record.progress_percent}%",
            "[green]On track[/green]" if record.on_track else "[red]Not on track[/red]",
            f"[red]{overdue}[/red]" if overdue else "-",
            record.next_step.name if record.next_step else "-",
        )

    console.print(table)
    off_track = sum(1 for r in records if not r.on_track)
    console.print(f"{len(records) - off_track}/{len(records)} staff on track")


@app.command()
def report(
    snapshot_file: Path = typer.Argument(..., help="JSON snapshot of roster and cycle records"),
    as_of: Optional[datetime] = typer.Option(None, "--as-of", formats=["%Y-%m-%d"], help="Evaluation date (default today)"),
    school_year: Optional[str] = typer.Option(None, "--school-year", "-y", help="School year, e.g. 2025-2026"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the full report as JSON"),
):
    """Fleet-wide compliance report."""
    deadlines = _load_calendar_or_exit(school_year)
    snapshot = _load_snapshot_or_exit(snapshot_file)

    fleet = build_fleet_report(snapshot, deadlines, _as_date(as_of))

    console.print(Panel.fit(
        f"Staff: [bold]{fleet.staff_count}[/bold]\n"
        f"On track: [green]{fleet.on_track_count}[/green]\n"
        f"Not on track: [red]{fleet.not_on_track_count}[/red]",
        title=f"Fleet report {fleet.school_year} as of {fleet.as_of.isoformat()}"
    ))

    milestones = Table(title="Milestone completion")
    milestones.add_column("Milestone", style="bold")
    milestones.add_column("Due")
    for column in ("Complete", "Pending", "Overdue", "%"):
        milestones.add_column(column, justify="right")
    for m in fleet.milestone_completion:
        milestones.add_row(
            m.name, m.due_date.isoformat(),
            str(m.complete), str(m.pending), f"[red]{m.overdue}[/red]" if m.overdue else "0",
            f"{m.percent_complete}%",
        )
    console.print(milestones)

    observers = Table(title="Observations by evaluator")
    observers.add_column("Evaluator", style="bold")
    for column in ("Staff", "Total", "Completed", "Scheduled", "Rate"):
        observers.add_column(column, justify="right")
    for s in fleet.observation_stats:
        observers.add_row(
            s.evaluator_name, str(s.assigned_staff), str(s.total), str(s.completed),
            str(s.scheduled), f"{s.completion_percent}%",
        )
    console.print(observers)

    funnel = Table(title="Summative evaluations")
    funnel.add_column("Group", style="bold")
    for column in ("Not started", "In progress", "Pending signature", "Completed", "Total"):
        funnel.add_column(column, justify="right")
    for label, counts in (
        ("Licensed", fleet.evaluation_funnel.licensed),
        ("Classified", fleet.evaluation_funnel.classified),
        ("All", fleet.evaluation_funnel.all),
    ):
        funnel.add_row(
            label, str(counts.not_started), str(counts.in_progress),
            str(counts.pending_signature), str(counts.completed), str(counts.total),
        )
    console.print(funnel)

    if output:
        output.write_text(fleet.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"[green]Report written to {output}[/green]")


@app.command()
def test_db(
    url: Optional[str] = typer.Option(
        None,
        "--url",
        "-u",
        help="Database URL (defaults to DATABASE_URL env var)"
    )
):
    """Test database connectivity."""
    from stafftrak.config import DatabaseConfig
    from stafftrak.database import TABLES, DatabaseConnectionError, DatabasePool, create_pool_config_from_settings

    console.print("[yellow]Testing database connection...[/yellow]")

    async def check(config):
        pool = DatabasePool(config)
        try:
            await pool.initialize()
            if not await pool.health_check():
                return False, []
            return True, await pool.missing_tables(TABLES.values())
        finally:
            await pool.close()

    try:
        current = settings
        if url:
            current = settings.model_copy(update={"database": DatabaseConfig(url=url)})
        healthy, missing = asyncio.run(check(create_pool_config_from_settings(current)))
    except (DatabaseConnectionError, ValueError) as e:
        console.print(f"[red]❌ Database connection failed: {e}[/red]")
        raise typer.Exit(1)

    if healthy:
        console.print("[green]✅ Database connection successful![/green]")
        for table in missing:
            console.print(f"[yellow]⚠️  Missing table: {table}[/yellow]")
    else:
        console.print("[red]❌ Database health check failed[/red]")
        raise typer.Exit(1)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
