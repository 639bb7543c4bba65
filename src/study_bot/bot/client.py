"""Discord client and slash commands."""

import logging
from typing import Literal

import discord
from discord import app_commands

from ..services.notifications import NotifyTargets
from ..services.recovery import SessionRecovery
from ..services.reports import ReportScheduler
from .dispatcher import CommandDispatcher, CommandResult, Invocation
from .sink import DiscordChannelResolver, render_embed

logger = logging.getLogger(__name__)


class StudyBotClient(discord.Client):
    """Translates slash-command interactions into dispatcher invocations."""

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        recovery: SessionRecovery,
        reports: ReportScheduler | None = None,
        guild_id: int | None = None,
        **kwargs,
    ):
        intents = discord.Intents.default()
        super().__init__(intents=intents, **kwargs)
        self.dispatcher = dispatcher
        self.recovery = recovery
        self.reports = reports
        self.guild_id = guild_id
        self.resolver = DiscordChannelResolver(self)
        self.tree = app_commands.CommandTree(self)
        for group in build_command_groups(self):
            self.tree.add_command(group)

    async def setup_hook(self) -> None:
        if self.guild_id:
            guild = discord.Object(id=self.guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
        else:
            await self.tree.sync()
        logger.info("Slash commands synced")

    async def on_ready(self) -> None:
        logger.info("Logged in as %s", self.user)
        await self.recovery.on_ready(self.resolver)
        if self.reports:
            self.reports.start(self.resolver)

    async def close(self) -> None:
        self.recovery.stop()
        if self.reports:
            self.reports.stop()
        await super().close()

    async def handle(
        self, interaction: discord.Interaction, command: str, subcommand: str, **params
    ) -> None:
        """Run one slash command through the dispatcher and reply."""
        await interaction.response.defer()
        invocation = Invocation(
            user_id=str(interaction.user.id),
            display_name=interaction.user.display_name,
            command=command,
            subcommand=subcommand,
            params={k: v for k, v in params.items() if v is not None},
            targets=await self._targets_for(interaction),
        )
        result = await self.dispatcher.dispatch(invocation)
        await self._reply(interaction, result)

    async def _targets_for(self, interaction: discord.Interaction) -> NotifyTargets:
        dm = None
        try:
            dm = interaction.user.dm_channel or await interaction.user.create_dm()
        except discord.HTTPException as e:
            logger.warning("Could not open DM with %s: %s", interaction.user.id, e)

        in_guild = interaction.guild is not None
        return NotifyTargets(
            dm=dm,
            channel=interaction.channel if in_guild else None,
            dm_channel_id=dm.id if dm else None,
            server_channel_id=interaction.channel_id if in_guild else None,
        )

    async def _reply(self, interaction: discord.Interaction, result: CommandResult) -> None:
        content = result.message if result.success else f"Error: {result.message}"
        kwargs = {"content": content[:2000]}
        if result.notice:
            kwargs["embed"] = render_embed(result.notice)
        try:
            await interaction.followup.send(**kwargs)
        except discord.HTTPException:
            logger.exception("Failed to reply to %s", interaction.user.id)


def _control_callback(client: StudyBotClient, command: str, subcommand: str):
    async def callback(interaction: discord.Interaction) -> None:
        await client.handle(interaction, command, subcommand)

    return callback


def _add_session_controls(
    client: StudyBotClient, group: app_commands.Group, names: dict[str, str]
) -> None:
    """Parameterless subcommands (pause, resume, stop...) of a session group."""
    for name, description in names.items():
        group.add_command(
            app_commands.Command(
                name=name,
                description=description,
                callback=_control_callback(client, group.name, name),
            )
        )


def build_command_groups(client: StudyBotClient) -> list[app_commands.Group]:
    """Slash command groups mirroring the dispatcher's commands."""
    pomodoro = app_commands.Group(name="pomodoro", description="Pomodoro study sessions")

    @pomodoro.command(name="start", description="Start a pomodoro cycle")
    @app_commands.describe(subject="What you are studying", goal="Goal ID or title to credit")
    async def pomodoro_start(
        interaction: discord.Interaction, subject: str | None = None, goal: str | None = None
    ):
        await client.handle(interaction, "pomodoro", "start", subject=subject, goal=goal)

    _add_session_controls(
        client,
        pomodoro,
        {
            "pause": "Pause your pomodoro",
            "resume": "Resume your paused pomodoro",
            "stop": "Stop your pomodoro session",
            "status": "Show your pomodoro status",
            "active": "List everyone's running pomodoros",
        },
    )

    focus = app_commands.Group(name="focus", description="Timed focus sessions")

    @focus.command(name="start", description="Start a focus session")
    @app_commands.describe(
        duration="Length in minutes",
        subject="What you are studying",
        goal="Goal ID or title to credit",
    )
    async def focus_start(
        interaction: discord.Interaction,
        duration: app_commands.Range[int, 1, 480],
        subject: str | None = None,
        goal: str | None = None,
    ):
        await client.handle(
            interaction, "focus", "start", duration=duration, subject=subject, goal=goal
        )

    _add_session_controls(
        client,
        focus,
        {
            "pause": "Pause your focus session",
            "resume": "Resume your paused focus session",
            "stop": "Stop your focus session",
            "status": "Show your focus session status",
            "list": "List everyone's running focus sessions",
        },
    )

    goals = app_commands.Group(name="goals", description="Study goals")

    @goals.command(name="create", description="Create a study goal")
    @app_commands.describe(
        title="Goal title",
        target="Target study time in minutes",
        deadline="Deadline as DD/MM/YYYY",
    )
    async def goals_create(
        interaction: discord.Interaction,
        title: str,
        target: app_commands.Range[int, 1],
        description: str | None = None,
        subject: str | None = None,
        deadline: str | None = None,
        type: Literal["daily", "weekly", "monthly", "custom"] = "custom",
    ):
        await client.handle(
            interaction,
            "goals",
            "create",
            title=title,
            target=target,
            description=description,
            subject=subject,
            deadline=deadline,
            type=type,
        )

    @goals.command(name="list", description="List your goals")
    async def goals_list(
        interaction: discord.Interaction,
        filter: Literal["all", "active", "completed", "overdue"] = "active",
    ):
        await client.handle(interaction, "goals", "list", filter=filter)

    @goals.command(name="view", description="Show one goal")
    @app_commands.describe(id="Goal ID or title")
    async def goals_view(interaction: discord.Interaction, id: str):
        await client.handle(interaction, "goals", "view", id=id)

    @goals.command(name="delete", description="Delete a goal")
    @app_commands.describe(id="Goal ID or title")
    async def goals_delete(interaction: discord.Interaction, id: str):
        await client.handle(interaction, "goals", "delete", id=id)

    @goals.command(name="milestone", description="Add a milestone to a goal")
    @app_commands.describe(id="Goal ID or title", title="Milestone title")
    async def goals_milestone(interaction: discord.Interaction, id: str, title: str):
        await client.handle(interaction, "goals", "milestone", id=id, title=title)

    stats = app_commands.Group(name="stats", description="Study statistics")

    @stats.command(name="profile", description="Your level, XP and streaks")
    async def stats_profile(interaction: discord.Interaction):
        await client.handle(interaction, "stats", "profile")

    @stats.command(name="today", description="What you studied today")
    async def stats_today(interaction: discord.Interaction):
        await client.handle(interaction, "stats", "today")

    @stats.command(name="weekly", description="Study time per day this week")
    async def stats_weekly(interaction: discord.Interaction):
        await client.handle(interaction, "stats", "weekly")

    @stats.command(name="subjects", description="Study time per subject")
    async def stats_subjects(
        interaction: discord.Interaction, period: Literal["week", "month", "all"] = "week"
    ):
        await client.handle(interaction, "stats", "subjects", period=period)

    @stats.command(name="overview", description="Lifetime totals, this month and this week")
    async def stats_overview(interaction: discord.Interaction):
        await client.handle(interaction, "stats", "overview")

    @stats.command(name="daily", description="Sessions of one day")
    @app_commands.describe(date="Day as DD/MM/YYYY (default: today)")
    async def stats_daily(interaction: discord.Interaction, date: str | None = None):
        await client.handle(interaction, "stats", "daily", date=date)

    @stats.command(name="streak", description="Your streak and recent activity")
    async def stats_streak(interaction: discord.Interaction):
        await client.handle(interaction, "stats", "streak")

    @stats.command(name="leaderboard", description="Top students by level and XP")
    async def stats_leaderboard(
        interaction: discord.Interaction, limit: app_commands.Range[int, 1, 25] = 10
    ):
        await client.handle(interaction, "stats", "leaderboard", limit=limit)

    rewards = app_commands.Group(name="rewards", description="Achievements")

    @rewards.command(name="list", description="Show your rewards")
    async def rewards_list(interaction: discord.Interaction):
        await client.handle(interaction, "rewards", "list")

    reports = app_commands.Group(name="reports", description="Study reports")

    @reports.command(name="daily", description="Report of your study today")
    async def reports_daily(interaction: discord.Interaction):
        await client.handle(interaction, "reports", "daily")

    @reports.command(name="weekly", description="Report of your study this week")
    async def reports_weekly(interaction: discord.Interaction):
        await client.handle(interaction, "reports", "weekly")

    @reports.command(name="monthly", description="Report of your study this month")
    async def reports_monthly(interaction: discord.Interaction):
        await client.handle(interaction, "reports", "monthly")

    @reports.command(name="setup", description="Post your reports to a channel automatically")
    @app_commands.describe(
        channel="Channel that receives the reports",
        type="Which report to schedule",
        enabled="Turn the scheduled report on or off",
    )
    async def reports_setup(
        interaction: discord.Interaction,
        channel: discord.TextChannel,
        type: Literal["daily", "weekly", "monthly"] = "daily",
        enabled: bool = True,
    ):
        await client.handle(
            interaction, "reports", "setup", channel=channel.id, type=type, enabled=enabled
        )

    return [pomodoro, focus, goals, stats, rewards, reports]
