"""Initialize database command."""

import click

from ..config import get_settings
from ..db import init_db
from .base import async_command, echo_info, echo_success


@click.command()
@async_command
async def init():
    """Create the data directory and database schema.

    Safe to run again: existing tables are kept and migrated.
    """
    settings = get_settings()
    echo_info(f"Initializing study-bot in {settings.data_dir}")

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    await init_db(settings.db_path)
    echo_success(f"Database ready at {settings.db_path}")

    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Set STUDY_BOT_DISCORD_TOKEN (environment or .env)")
    click.echo("  2. study-bot run")
