from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional

import click

from application_tracker.config.settings import settings
from application_tracker.database.connection import check_database_health, init_database, reset_database
from application_tracker.errors import TrackerError, ValidationError
from application_tracker.logging_config import configure_logging
from application_tracker.models.application import ApplicationRecord, ApplicationStatus, STATUS_ALL
from application_tracker.services.repository import ApplicationRepository
from application_tracker.stores import create_store

STATUS_CHOICES = [status.value for status in ApplicationStatus]
SHORT_ID = 8


def _format_error(error: TrackerError) -> str:
    if isinstance(error, ValidationError) and error.messages:
        details = "; ".join(f"{name}: {message}" for name, message in sorted(error.messages.items()))
        return f"{error} ({details})"
    return str(error)


def _run_session(ctx: click.Context, action: Callable[[ApplicationRepository], Awaitable[Any]]) -> Any:
    """Open the configured store, load the owner's applications and run ``action``."""
    owner_id = ctx.obj["owner_id"]
    if not owner_id:
        raise click.UsageError("No signed-in user: pass --owner or set TRACKER_OWNER_ID.")

    async def session() -> Any:
        repository = ApplicationRepository(create_store(ctx.obj["backend"]))
        try:
            await repository.load(owner_id)
            return await action(repository)
        finally:
            await repository.close()

    try:
        return asyncio.run(session())
    except TrackerError as e:
        raise click.ClickException(_format_error(e)) from e


def _resolve_id(repository: ApplicationRepository, id_or_prefix: str) -> str:
    """Accept a full id or a unique prefix of one, as shown by ``list``."""
    matches = [record.id for record in repository if record.id.startswith(id_or_prefix)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise click.ClickException(f"Ambiguous id prefix: {id_or_prefix}")
    return id_or_prefix


def _format_row(record: ApplicationRecord) -> str:
    return "\t".join([
        record.id[:SHORT_ID],
        record.status.label,
        record.company,
        record.position,
        record.location,
        record.application_date.isoformat(),
    ])


@click.group()
@click.option(
    "--owner",
    "owner_id",
    type=str,
    default=lambda: settings.owner_id,
    help="Id of the signed-in user (defaults to TRACKER_OWNER_ID).",
)
@click.option(
    "--backend",
    type=click.Choice(["sqlite", "rest"]),
    default=lambda: settings.store_backend,
    show_default="from settings",
    help="Record store to use.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, owner_id: Optional[str], backend: str, verbose: bool) -> None:
    """Track job applications and their outcomes."""
    configure_logging(level="DEBUG" if verbose else None)
    ctx.ensure_object(dict)
    ctx.obj["owner_id"] = owner_id
    ctx.obj["backend"] = backend


@cli.command("init-db")
def init_db() -> None:
    """Initialize the SQLite database schema."""
    init_database(settings.database_path)
    click.echo(f"Initialized database at {settings.database_path}")


@cli.command("reset-db")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
def reset_db(yes: bool) -> None:
    """Drop every stored application and recreate the SQLite schema."""
    if not yes:
        click.confirm("This deletes every application in the database. Continue?", abort=True)
    reset_database(settings.database_path)
    click.echo(f"Reset database at {settings.database_path}")


@cli.command()
def health() -> None:
    """Report on the SQLite database file."""
    report = check_database_health(settings.database_path)
    if not report["exists"]:
        raise click.ClickException(f"{report['error']}: {settings.database_path}")

    click.echo(f"Database: {report['path']}")
    for table, count in sorted(report["tables"].items()):
        click.echo(f"  {table}: {count} rows")
    click.echo(f"Owners: {report['owners']}")
    if "error" in report:
        raise click.ClickException(report["error"])
    click.echo(f"Journal mode: {report['journal_mode']}")
    click.echo(f"Size: {report['size_mb']} MB")


@cli.command("list")
@click.option("--search", "search_term", default="", help="Text to look for in company or position.")
@click.option(
    "--status",
    "status_filter",
    type=click.Choice([STATUS_ALL, *STATUS_CHOICES]),
    default=STATUS_ALL,
    show_default=True,
)
@click.pass_context
def list_applications(ctx: click.Context, search_term: str, status_filter: str) -> None:
    """List applications, newest first."""
    async def action(repository: ApplicationRepository):
        return repository.visible(search_term, status_filter)

    records = _run_session(ctx, action)
    if not records:
        click.echo("No applications found")
        return
    for record in records:
        click.echo(_format_row(record))


@cli.command()
@click.option("--company", required=True)
@click.option("--position", required=True)
@click.option("--location", required=True)
@click.option("--date", "application_date", required=True, help="Application date (YYYY-MM-DD).")
@click.option("--status", type=click.Choice(STATUS_CHOICES), default=ApplicationStatus.APPLIED.value, show_default=True)
@click.option("--notes", default="")
@click.pass_context
def add(
    ctx: click.Context,
    company: str,
    position: str,
    location: str,
    application_date: str,
    status: str,
    notes: str,
) -> None:
    """Record a new application."""
    fields = {
        "company": company,
        "position": position,
        "location": location,
        "application_date": application_date,
        "status": status,
        "notes": notes,
    }

    async def action(repository: ApplicationRepository):
        return await repository.create(ctx.obj["owner_id"], fields)

    record = _run_session(ctx, action)
    click.secho(f"Added {record.id[:SHORT_ID]}: {record.position} at {record.company}", fg="green")


@cli.command()
@click.argument("record_id")
@click.option("--company")
@click.option("--position")
@click.option("--location")
@click.option("--date", "application_date", help="Application date (YYYY-MM-DD).")
@click.option("--status", type=click.Choice(STATUS_CHOICES))
@click.option("--notes")
@click.pass_context
def edit(ctx: click.Context, record_id: str, **options: Optional[str]) -> None:
    """Change fields of an application."""
    fields = {name: value for name, value in options.items() if value is not None}
    if not fields:
        raise click.UsageError("Nothing to change: pass at least one field option.")

    async def action(repository: ApplicationRepository):
        return await repository.update(_resolve_id(repository, record_id), fields)

    record = _run_session(ctx, action)
    click.secho(f"Updated {record.id[:SHORT_ID]} ({record.status.label})", fg="green")


@cli.command()
@click.argument("record_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def delete(ctx: click.Context, record_id: str, yes: bool) -> None:
    """Delete an application permanently."""
    if not yes:
        click.confirm("Are you sure you want to delete this application?", abort=True)

    async def action(repository: ApplicationRepository):
        resolved = _resolve_id(repository, record_id)
        await repository.remove(resolved)
        return resolved

    resolved = _run_session(ctx, action)
    click.echo(f"Deleted {resolved[:SHORT_ID]}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the statistics as JSON.")
@click.pass_context
def stats(ctx: click.Context, as_json: bool) -> None:
    """Show dashboard statistics."""
    async def action(repository: ApplicationRepository):
        return repository.summary(settings.recent_limit)

    summary = _run_session(ctx, action)
    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
        return

    click.echo(f"Total applications: {summary.total_applications}")
    click.echo(f"Pending: {summary.pending_applications}")
    click.echo(f"Offers: {summary.accepted_applications}")
    click.echo(f"Rejected: {summary.rejected_applications}")
    click.echo(f"Success rate: {summary.success_rate}%")
    click.echo("")
    click.echo("Recent applications:")
    if not summary.recent:
        click.echo("  No applications yet")
    for record in summary.recent:
        click.echo(f"  {record.position} at {record.company} ({record.status.label}, {record.created_at.date().isoformat()})")


if __name__ == "__main__":
    cli()
