"""
POC Tracker CLI Commands - Management commands for completion dates and POC.

Provides command-line interface for:
- Database initialisation
- Completion date upload with conflict review and confirmation
- POC and sales recognition uploads
- Effective dates and POC reports
- Pending redistribution listing and resolution
"""
import os
import logging
from datetime import date, datetime
from typing import Optional

import click

from poc_tracker import __version__
from poc_tracker.config import configure_logging, get_config
from poc_tracker.domain.entities import ProjectPhaseKey
from poc_tracker.domain.exceptions import ConflictError, DomainError
from poc_tracker.engine import CompletionEngine
from poc_tracker.infrastructure.storage import StoragePort
from poc_tracker.modules.ingestion import (
    TEMPLATES,
    load_completion_csv,
    load_poc_csv,
    load_sales_recognition_csv,
)

logger = logging.getLogger(__name__)

DATE = click.DateTime(formats=["%Y-%m-%d", "%m/%d/%Y"])


def _as_date(value: Optional[datetime]) -> Optional[date]:
    return value.date() if value else None


def _engine(ctx: click.Context) -> CompletionEngine:
    """Engine for this invocation; storage is closed when the command ends."""
    if 'engine' not in ctx.obj:
        config = get_config()
        storage = StoragePort(ctx.obj.get('database_url'), config=config).open()
        ctx.call_on_close(storage.close)
        ctx.obj['engine'] = CompletionEngine(storage, config=config)
    return ctx.obj['engine']


def _fail(ctx: click.Context, error: DomainError) -> None:
    click.echo(click.style(f"✗ {error.message}", fg='red'), err=True)
    if isinstance(error, ConflictError):
        for conflict in error.conflicts:
            _echo_conflict(conflict)
    ctx.exit(1)


def _echo_load_errors(result) -> None:
    if result.errors:
        click.echo(click.style(f"{len(result.errors)} row(s) rejected while reading the file:", fg='yellow'))
        for error in result.errors:
            click.echo(f"  - {error.message}")


def _echo_batch(result) -> None:
    click.echo(f"  Processed: {result.processed_count}")
    click.echo(f"  Succeeded: {result.succeeded_count}")
    for error in result.errors:
        click.echo(click.style(f"  - Row {error.row_number}: {error.message}", fg='red'))


def _echo_conflict(conflict) -> None:
    click.echo(
        f"  {conflict.description} ({conflict.completion_type.label} "
        f"{conflict.completion_date.isoformat()}): {conflict.poc_count} POC record(s)"
    )
    for record in conflict.conflicting_records:
        click.echo(f"    {record.year}-{record.month:02d}  {record.value:g}%  [{record.type}]")


@click.group()
@click.version_option(version=__version__)
@click.option('--database-url', envvar='POC_TRACKER_DATABASE_URL', default=None,
              help='SQLAlchemy URL (defaults to the configured database)')
@click.option('--actor', default=None, help='User recorded on writes (defaults to $USER)')
@click.pass_context
def cli(ctx: click.Context, database_url: Optional[str], actor: Optional[str]):
    """POC Tracker - completion dates and percentage of completion."""
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj['database_url'] = database_url
    ctx.obj['actor'] = actor or os.environ.get('USER') or 'cli'


@cli.command('init-db')
@click.pass_context
def init_db(ctx: click.Context):
    """Create the database tables."""
    engine = _engine(ctx)
    click.echo(click.style(f"✓ Database ready: {engine.storage.database_url}", fg='green'))


@cli.command('check-conflicts')
@click.argument('csv_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--company', required=True, help='Company code')
@click.option('--type', 'completion_type', type=click.Choice(['A', 'P']), default=None,
              help='Actual or Projected (defaults to the configured type)')
@click.pass_context
def check_conflicts(ctx: click.Context, csv_path: str, company: str, completion_type: Optional[str]):
    """Show the POC data a completion date upload would deactivate."""
    loaded = load_completion_csv(csv_path, company, completion_type)
    _echo_load_errors(loaded)
    try:
        conflicts = _engine(ctx).check_conflicts(loaded.entries)
    except DomainError as e:
        _fail(ctx, e)
        return

    if not conflicts:
        click.echo(click.style("✓ No conflicts", fg='green'))
        return
    click.echo(click.style(f"{len(conflicts)} conflict(s) found:", fg='yellow'))
    for conflict in conflicts:
        _echo_conflict(conflict)


@cli.command('commit-dates')
@click.argument('csv_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--company', required=True, help='Company code')
@click.option('--type', 'completion_type', type=click.Choice(['A', 'P']), default=None,
              help='Actual or Projected (defaults to the configured type)')
@click.option('--yes', is_flag=True, help='Confirm conflicts without prompting')
@click.pass_context
def commit_dates(
    ctx: click.Context,
    csv_path: str,
    company: str,
    completion_type: Optional[str],
    yes: bool,
):
    """Upload completion dates, confirming any POC data they deactivate."""
    loaded = load_completion_csv(csv_path, company, completion_type)
    _echo_load_errors(loaded)
    if not loaded.entries:
        click.echo("Nothing to commit.")
        return

    engine = _engine(ctx)
    try:
        conflicts = engine.check_conflicts(loaded.entries)
        if conflicts:
            click.echo(click.style(
                f"{len(conflicts)} completion date(s) will deactivate existing POC data:", fg='yellow'
            ))
            for conflict in conflicts:
                _echo_conflict(conflict)
            if not yes and not click.confirm("Deactivate these POC records and continue?"):
                click.echo("Aborted; nothing was changed.")
                return

        result = engine.resolve_and_commit(loaded.entries, conflicts, actor=ctx.obj['actor'])
    except DomainError as e:
        _fail(ctx, e)
        return

    click.echo(click.style(f"✓ {result.inserted_count} completion date(s) recorded", fg='green'))
    click.echo(f"  POC records deactivated: {result.deactivated_count}")
    for breakdown in result.per_key_breakdown.values():
        if breakdown.redistribution_id:
            click.echo(click.style(
                f"  ! {breakdown.key.label}: POC redistribution pending "
                f"(id {breakdown.redistribution_id})", fg='yellow'
            ))
    _echo_batch(result)


@cli.command('upload-poc')
@click.argument('csv_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--company', required=True, help='Company code')
@click.option('--cutoff', type=DATE, default=None, help='Cutoff date (defaults to previous month end)')
@click.option('--template', type=click.Choice(TEMPLATES), default='short', help='CSV layout')
@click.pass_context
def upload_poc(ctx: click.Context, csv_path: str, company: str, cutoff: Optional[datetime], template: str):
    """Upload POC values from a CSV file."""
    loaded = load_poc_csv(csv_path, company, template)
    _echo_load_errors(loaded)
    try:
        result = _engine(ctx).upsert_poc_batch(loaded.entries, _as_date(cutoff), ctx.obj['actor'])
    except DomainError as e:
        _fail(ctx, e)
        return

    click.echo(click.style(
        f"✓ {result.inserted_count} inserted, {result.updated_count} updated "
        f"({result.actual_count} actual, {result.projected_count} projected)", fg='green'
    ))
    _echo_batch(result)


@cli.command('upload-sales')
@click.argument('csv_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--cutoff', type=DATE, default=None, help='Cutoff date (defaults to previous month end)')
@click.pass_context
def upload_sales(ctx: click.Context, csv_path: str, cutoff: Optional[datetime]):
    """Upload sales recognition dates (account number, date)."""
    loaded = load_sales_recognition_csv(csv_path)
    _echo_load_errors(loaded)
    try:
        result = _engine(ctx).record_sales_recognition(loaded.entries, _as_date(cutoff))
    except DomainError as e:
        _fail(ctx, e)
        return

    click.echo(click.style(f"✓ {result.inserted_count} inserted, {result.updated_count} updated", fg='green'))
    _echo_batch(result)


@cli.command()
@click.option('--company', required=True)
@click.option('--project', required=True)
@click.option('--phase', default='', help='Phase code (empty for none)')
@click.pass_context
def effective(ctx: click.Context, company: str, project: str, phase: str):
    """Show the effective completion date of a project/phase."""
    key = ProjectPhaseKey(company, project, phase)
    try:
        result = _engine(ctx).get_effective_completion_date(key)
    except DomainError as e:
        _fail(ctx, e)
        return

    if result is None:
        click.echo(click.style(f"No completion date recorded for {key.label}", fg='yellow'))
        return
    click.echo(f"{key.label}: {result.completion_date.isoformat()} ({result.completion_type.label})")


@cli.command()
@click.option('--company', required=True)
@click.option('--project', required=True)
@click.option('--phase', default='', help='Phase code (empty for none)')
@click.option('--cutoff', type=DATE, default=None, help='Cutoff date (defaults to previous month end)')
@click.option('--year', type=int, default=None)
@click.pass_context
def report(
    ctx: click.Context,
    company: str,
    project: str,
    phase: str,
    cutoff: Optional[datetime],
    year: Optional[int],
):
    """POC rows for a project/phase up to the cutoff."""
    key = ProjectPhaseKey(company, project, phase)
    try:
        result = _engine(ctx).get_report(key, _as_date(cutoff), year)
    except DomainError as e:
        _fail(ctx, e)
        return

    click.echo(f"\n{key.describe(result.description)} (cutoff {result.cutoff_date.isoformat()})")
    if result.redistribution_pending:
        click.echo(click.style(
            f"Redistribution pending: {result.orphaned_total:g}% POC awaits manual entry", fg='yellow'
        ))
        for pending in result.pending:
            click.echo(
                f"  #{pending.id}: completion date moved from "
                f"{pending.old_completion_date.isoformat()} to {pending.new_completion_date.isoformat()}"
            )
        return

    if not result.rows:
        click.echo("No POC data.")
        return
    for row in result.rows:
        click.echo(f"  {row['year']}-{row['month']:02d}  {row['value']:g}%  [{row['type']}]")


@cli.command()
@click.option('--company', default=None)
@click.pass_context
def redistributions(ctx: click.Context, company: Optional[str]):
    """List pending redistributions."""
    try:
        pending = _engine(ctx).list_redistributions(company)
    except DomainError as e:
        _fail(ctx, e)
        return

    if not pending:
        click.echo(click.style("✓ No pending redistributions", fg='green'))
        return
    for info in pending:
        click.echo(
            f"  #{info.id} {info.key}: {info.orphaned_total:g}% "
            f"({info.old_completion_date.isoformat()} → {info.new_completion_date.isoformat()})"
        )


@cli.command('resolve-redistribution')
@click.argument('redistribution_id', type=int)
@click.pass_context
def resolve_redistribution(ctx: click.Context, redistribution_id: int):
    """Mark a pending redistribution resolved after POC was re-entered."""
    try:
        info = _engine(ctx).resolve_redistribution(redistribution_id, ctx.obj['actor'])
    except DomainError as e:
        _fail(ctx, e)
        return
    click.echo(click.style(f"✓ Redistribution {info.id} for {info.key.label} resolved", fg='green'))
