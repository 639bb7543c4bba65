"""Inspect and clean up stored active sessions."""

from datetime import datetime, timedelta

import click

from ..config import get_settings
from ..db.repositories import ActiveSessionRepository
from ..models.session import SessionKind
from .base import (
    async_command,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    format_table,
)


@click.command()
@click.option(
    "--kind",
    type=click.Choice([k.value for k in SessionKind]),
    default=None,
    help="Only show one session kind",
)
@click.pass_context
@async_command
async def sessions(ctx: click.Context, kind: str | None):
    """List stored active session records."""
    ensure_initialized(ctx)

    repo = ActiveSessionRepository(get_settings().db_path)
    records = await repo.list_by_kind(SessionKind(kind) if kind else None)
    if not records:
        echo_info("No active sessions.")
        return

    now = datetime.now()
    rows = [
        [
            str(r.id),
            r.metadata.get("username", r.user_id),
            r.kind.value,
            r.subject,
            "paused" if r.paused else r.phase.value,
            f"{r.remaining_at(now) / 60:.1f}",
            r.last_updated.strftime("%Y-%m-%d %H:%M") if r.last_updated else "-",
        ]
        for r in records
    ]
    click.echo(
        format_table(
            ["ID", "User", "Kind", "Subject", "Phase", "Min left", "Updated"], rows
        )
    )


@click.command()
@click.option(
    "--hours",
    type=float,
    default=None,
    help="Staleness window (default: STUDY_BOT_STALE_SESSION_HOURS)",
)
@click.pass_context
@async_command
async def cleanup(ctx: click.Context, hours: float | None):
    """Delete active session records that stopped updating.

    Run this while the bot is offline; a running bot does it every few hours.
    """
    ensure_initialized(ctx)

    settings = get_settings()
    if hours is None:
        hours = settings.stale_session_hours
    elif hours < settings.stale_session_hours:
        echo_warning(
            f"--hours {hours:g} is shorter than the bot's own window of "
            f"{settings.stale_session_hours:g}h; sessions still running may be removed"
        )
    repo = ActiveSessionRepository(settings.db_path)
    removed = await repo.delete_stale(datetime.now() - timedelta(hours=hours))
    echo_success(f"Removed {removed} stale session records")
