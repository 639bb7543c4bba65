"""Show a user's profile."""

import click

from ..config import get_settings
from ..db.repositories import GoalRepository, UserProfileRepository
from ..models.rewards import RewardSnapshot, evaluate_rewards
from .base import async_command, echo_error, ensure_initialized


@click.command()
@click.argument("discord_id")
@click.pass_context
@async_command
async def profile(ctx: click.Context, discord_id: str):
    """Show level, XP, streaks and rewards of DISCORD_ID."""
    ensure_initialized(ctx)

    settings = get_settings()
    user = await UserProfileRepository(settings.db_path).get_by_discord_id(discord_id)
    if not user:
        echo_error(f"No profile for {discord_id}.")
        ctx.exit(1)

    completed = await GoalRepository(settings.db_path).count_completed(discord_id)

    click.echo()
    click.echo(click.style(user.username, bold=True))
    click.echo("=" * 40)
    click.echo(user.get_summary())
    click.echo(f"Completed goals: {completed}")
    click.echo()
    click.echo("Rewards:")
    for status in evaluate_rewards(RewardSnapshot(user=user, completed_goals=completed)):
        mark = click.style("[x]", fg="green") if status.unlocked else "[ ]"
        click.echo(f"  {mark} {status.name}: {status.description}")
