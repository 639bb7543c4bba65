"""Run the Discord bot."""

import logging

import click

from ..bootstrap import build_components
from ..bot.client import StudyBotClient
from ..bot.dispatcher import CommandDispatcher
from ..bot.sink import DiscordNotificationSink
from ..config import get_settings
from ..db import init_db
from ..logging_setup import configure_logging
from .base import async_command, echo_error

logger = logging.getLogger(__name__)


@click.command()
@click.option("--log-level", default=None, help="Override STUDY_BOT_LOG_LEVEL")
@click.pass_context
@async_command
async def run(ctx: click.Context, log_level: str | None):
    """Start the bot.

    Active sessions saved by a previous run are reloaded before the bot
    connects, and their timers restart once Discord is ready.
    """
    settings = get_settings()
    if not settings.discord_token:
        echo_error("STUDY_BOT_DISCORD_TOKEN is not set.")
        ctx.exit(1)

    configure_logging(log_level or settings.log_level)
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    await init_db(settings.db_path)

    components = build_components(settings, DiscordNotificationSink())
    await components.recovery.boot()

    dispatcher = CommandDispatcher(
        components.pomodoro,
        components.focus,
        components.goals,
        components.users,
        components.studies,
        components.report_builder,
        components.subscriptions,
    )
    client = StudyBotClient(
        dispatcher,
        components.recovery,
        reports=components.reports,
        guild_id=settings.guild_id,
    )

    logger.info("Connecting to Discord")
    async with client:
        await client.start(settings.discord_token)
