"""CLI entry point for study-bot."""

import click

from . import __version__
from .commands import cleanup, init, profile, run as run_bot, serve, sessions


@click.group()
@click.version_option(version=__version__, prog_name="study-bot")
def main():
    """study-bot: Discord study timer with goals, XP and streaks.

    Example usage:

        # Create the database
        study-bot init

        # Start the bot (needs STUDY_BOT_DISCORD_TOKEN)
        study-bot run

        # Inspect stored sessions
        study-bot sessions
        study-bot profile 123456789012345678
    """
    pass


main.add_command(init)
main.add_command(run_bot)
main.add_command(cleanup)
main.add_command(sessions)
main.add_command(profile)
main.add_command(serve)


def run():
    """Run the CLI."""
    main()


if __name__ == "__main__":
    run()
