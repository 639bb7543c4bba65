"""Platform-neutral command dispatcher.

Decodes an :class:`Invocation` (what the chat adapter received) into calls on
the session managers and repositories, and renders the outcome as a
:class:`CommandResult`. Nothing here knows about Discord.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

from ..db.repositories import (
    GoalRepository,
    ReportSubscriptionRepository,
    StudySessionRepository,
    UserProfileRepository,
)
from ..errors import StudyBotError, ValidationError
from ..models.goal import Goal, GoalType
from ..models.report import ReportSubscription, ReportType
from ..models.rewards import RewardSnapshot, evaluate_rewards
from ..models.session import SessionKind, SessionSnapshot
from ..services.notifications import BLUE, GOLD, GREEN, PURPLE, Notice, NotifyTargets
from ..services.reports import WEEKDAYS, ReportBuilder, leaderboard_notice
from ..services.session_manager import FocusManager, OperationResult, PomodoroManager

logger = logging.getLogger(__name__)


@dataclass
class Invocation:
    """One decoded chat command."""

    user_id: str
    display_name: str
    command: str
    subcommand: str
    params: dict = field(default_factory=dict)
    targets: NotifyTargets = field(default_factory=NotifyTargets)


@dataclass
class CommandResult:
    """What to reply: a message, optionally with a formatted notice."""

    success: bool
    message: str
    notice: Notice | None = None
    data: Any = None

    @classmethod
    def from_operation(cls, result: OperationResult) -> "CommandResult":
        return cls(success=result.success, message=result.message, data=result.data)


Handler = Callable[[Invocation], Awaitable[CommandResult]]


def parse_date(value: str) -> datetime:
    """Parse a DD/MM/YYYY date (midnight)."""
    try:
        day, month, year = (int(part) for part in value.strip().split("/"))
        return datetime(year, month, day)
    except ValueError as e:
        raise ValidationError("Invalid date format. Use DD/MM/YYYY.") from e


def parse_deadline(value: str) -> datetime:
    """Parse a DD/MM/YYYY deadline (end of that day)."""
    return parse_date(value).replace(hour=23, minute=59, second=59)


class CommandDispatcher:
    """Routes ``(command, subcommand)`` pairs to handlers."""

    def __init__(
        self,
        pomodoro: PomodoroManager,
        focus: FocusManager,
        goals: GoalRepository,
        users: UserProfileRepository,
        studies: StudySessionRepository,
        reports: ReportBuilder,
        subscriptions: ReportSubscriptionRepository,
    ):
        self.pomodoro = pomodoro
        self.focus = focus
        self.goals = goals
        self.users = users
        self.studies = studies
        self.reports = reports
        self.subscriptions = subscriptions
        self._handlers: dict[tuple[str, str], Handler] = {
            ("pomodoro", "start"): self._pomodoro_start,
            ("pomodoro", "pause"): self._pomodoro_pause,
            ("pomodoro", "resume"): self._pomodoro_resume,
            ("pomodoro", "stop"): self._pomodoro_stop,
            ("pomodoro", "status"): self._pomodoro_status,
            ("pomodoro", "active"): self._pomodoro_active,
            ("focus", "start"): self._focus_start,
            ("focus", "pause"): self._focus_pause,
            ("focus", "resume"): self._focus_resume,
            ("focus", "stop"): self._focus_stop,
            ("focus", "status"): self._focus_status,
            ("focus", "list"): self._focus_list,
            ("goals", "create"): self._goals_create,
            ("goals", "list"): self._goals_list,
            ("goals", "view"): self._goals_view,
            ("goals", "delete"): self._goals_delete,
            ("goals", "milestone"): self._goals_milestone,
            ("stats", "profile"): self._stats_profile,
            ("stats", "today"): self._stats_today,
            ("stats", "weekly"): self._stats_weekly,
            ("stats", "subjects"): self._stats_subjects,
            ("stats", "overview"): self._stats_overview,
            ("stats", "daily"): self._stats_daily,
            ("stats", "streak"): self._stats_streak,
            ("stats", "leaderboard"): self._stats_leaderboard,
            ("rewards", "list"): self._rewards_list,
            ("reports", "daily"): self._reports_daily,
            ("reports", "weekly"): self._reports_weekly,
            ("reports", "monthly"): self._reports_monthly,
            ("reports", "setup"): self._reports_setup,
        }

    @property
    def commands(self) -> list[tuple[str, str]]:
        return list(self._handlers)

    async def dispatch(self, invocation: Invocation) -> CommandResult:
        """Run one command; never raises."""
        handler = self._handlers.get((invocation.command, invocation.subcommand))
        if handler is None:
            return CommandResult(
                False, f"Unknown command: {invocation.command} {invocation.subcommand}"
            )

        try:
            return await handler(invocation)
        except StudyBotError as e:
            return CommandResult(False, str(e))
        except Exception:
            logger.exception(
                "Command %s %s failed for %s",
                invocation.command,
                invocation.subcommand,
                invocation.user_id,
            )
            return CommandResult(False, "Something went wrong, please try again later.")

    # Session commands

    async def _resolve_goal_id(self, inv: Invocation) -> int | None:
        reference = inv.params.get("goal")
        if not reference:
            return None
        goal = await self.goals.find_for_user(inv.user_id, str(reference))
        if goal is None:
            raise ValidationError("Goal not found.")
        return goal.id

    async def _pomodoro_start(self, inv: Invocation) -> CommandResult:
        goal_id = await self._resolve_goal_id(inv)
        result = await self.pomodoro.start(
            inv.user_id,
            inv.display_name,
            targets=inv.targets,
            subject=inv.params.get("subject"),
            goal_id=goal_id,
        )
        if result.success:
            result.message += " Phase updates will arrive by DM."
        return CommandResult.from_operation(result)

    async def _pomodoro_pause(self, inv: Invocation) -> CommandResult:
        return CommandResult.from_operation(await self.pomodoro.pause(inv.user_id))

    async def _pomodoro_resume(self, inv: Invocation) -> CommandResult:
        return CommandResult.from_operation(await self.pomodoro.resume(inv.user_id))

    async def _pomodoro_stop(self, inv: Invocation) -> CommandResult:
        return CommandResult.from_operation(await self.pomodoro.stop(inv.user_id))

    async def _pomodoro_status(self, inv: Invocation) -> CommandResult:
        return self._status(self.pomodoro.query(inv.user_id), "pomodoro")

    async def _pomodoro_active(self, inv: Invocation) -> CommandResult:
        return self._listing(self.pomodoro.query_all(), "pomodoro")

    async def _focus_start(self, inv: Invocation) -> CommandResult:
        try:
            duration = int(inv.params.get("duration", 0))
        except (TypeError, ValueError) as e:
            raise ValidationError("Duration must be a whole number of minutes.") from e

        goal_id = await self._resolve_goal_id(inv)
        result = await self.focus.start(
            inv.user_id,
            inv.display_name,
            duration,
            targets=inv.targets,
            subject=inv.params.get("subject"),
            goal_id=goal_id,
        )
        return CommandResult.from_operation(result)

    async def _focus_pause(self, inv: Invocation) -> CommandResult:
        return CommandResult.from_operation(await self.focus.pause(inv.user_id))

    async def _focus_resume(self, inv: Invocation) -> CommandResult:
        return CommandResult.from_operation(await self.focus.resume(inv.user_id))

    async def _focus_stop(self, inv: Invocation) -> CommandResult:
        return CommandResult.from_operation(await self.focus.stop(inv.user_id))

    async def _focus_status(self, inv: Invocation) -> CommandResult:
        return self._status(self.focus.query(inv.user_id), "focus")

    async def _focus_list(self, inv: Invocation) -> CommandResult:
        return self._listing(self.focus.query_all(), "focus")

    def _status(self, snapshot: SessionSnapshot | None, label: str) -> CommandResult:
        if snapshot is None:
            return CommandResult(False, f"You have no active {label} session.")

        state = "Paused" if snapshot.paused else snapshot.phase.display()
        notice = Notice(title=f"{label.capitalize()} status", color=BLUE)
        notice.add_field("Subject", snapshot.subject)
        notice.add_field("Status", state)
        notice.add_field("Elapsed", f"{snapshot.elapsed_minutes} min")
        notice.add_field("Remaining", f"{snapshot.remaining_minutes} min")
        if snapshot.kind is SessionKind.POMODORO:
            notice.add_field("Cycle", snapshot.current_cycle)
            notice.add_field("Pomodoros", snapshot.units_completed)
        return CommandResult(True, f"{state}: {snapshot.remaining_minutes} min left.", notice, snapshot)

    def _listing(self, snapshots: list[SessionSnapshot], label: str) -> CommandResult:
        if not snapshots:
            return CommandResult(True, f"No active {label} sessions.", data=[])

        notice = Notice(title=f"Active {label} sessions ({len(snapshots)})", color=PURPLE)
        for snap in snapshots:
            state = "paused" if snap.paused else snap.phase.display().lower()
            notice.add_field(
                snap.username,
                f"{snap.subject}, {state}, {snap.remaining_minutes} min left",
                inline=False,
            )
        return CommandResult(True, f"{len(snapshots)} active {label} sessions.", notice, snapshots)

    # Goals

    async def _goals_create(self, inv: Invocation) -> CommandResult:
        title = (inv.params.get("title") or "").strip()
        if not title:
            raise ValidationError("A goal needs a title.")
        target = int(inv.params.get("target") or 0)
        if target <= 0:
            raise ValidationError("Target time must be a positive number of minutes.")

        deadline = None
        if inv.params.get("deadline"):
            deadline = parse_deadline(inv.params["deadline"])

        try:
            goal_type = GoalType(inv.params.get("type") or "custom")
        except ValueError as e:
            raise ValidationError("Goal type must be daily, weekly, monthly or custom.") from e

        await self.users.get_or_create(inv.user_id, inv.display_name)
        goal = Goal(
            user_id=inv.user_id,
            title=title,
            target_time=target,
            description=inv.params.get("description") or "",
            subject=inv.params.get("subject") or "General",
            goal_type=goal_type,
            deadline=deadline,
        )
        goal.id = await self.goals.create(goal)

        notice = Notice(title="Goal created", description=f"**{goal.title}**", color=GREEN)
        notice.add_field("Subject", goal.subject)
        notice.add_field("Target", f"{goal.target_time} min")
        notice.add_field("Type", goal.goal_type.value.capitalize())
        if goal.deadline:
            notice.add_field("Deadline", goal.deadline.strftime("%d/%m/%Y"))
        notice.footer = f"Goal ID: {goal.id}"
        return CommandResult(True, f"Goal #{goal.id} created.", notice, goal)

    async def _goals_list(self, inv: Invocation) -> CommandResult:
        status = inv.params.get("filter") or "active"
        if status not in ("all", "active", "completed", "overdue"):
            raise ValidationError("Filter must be all, active, completed or overdue.")

        goals = await self.goals.list_for_user(inv.user_id, status)
        if not goals:
            return CommandResult(True, "No goals found.", data=[])

        notice = Notice(title=f"Your goals ({status})", color=BLUE)
        for goal in goals[:25]:
            value = f"{goal.progress}% ({goal.current_time:g}/{goal.target_time} min)"
            if goal.deadline:
                value += f", due {goal.deadline.strftime('%d/%m/%Y')}"
            if goal.completed:
                value += ", completed"
            notice.add_field(f"#{goal.id} {goal.title}", value, inline=False)
        return CommandResult(True, f"{len(goals)} goals.", notice, goals)

    async def _find_goal(self, inv: Invocation) -> Goal:
        goal = await self.goals.find_for_user(inv.user_id, str(inv.params.get("id", "")))
        if goal is None:
            raise ValidationError("Goal not found.")
        return goal

    async def _goals_view(self, inv: Invocation) -> CommandResult:
        goal = await self._find_goal(inv)
        notice = Notice(
            title=goal.title,
            description=goal.description,
            color=GOLD if goal.completed else BLUE,
        )
        notice.add_field("Progress", f"{goal.progress}%")
        notice.add_field("Studied", f"{goal.current_time:g}/{goal.target_time} min")
        notice.add_field("Subject", goal.subject)
        if goal.deadline:
            notice.add_field("Deadline", goal.deadline.strftime("%d/%m/%Y"))
        for milestone in goal.milestones:
            mark = "[x]" if milestone.completed else "[ ]"
            notice.add_field("Milestone", f"{mark} {milestone.title}", inline=False)
        notice.footer = f"Goal ID: {goal.id}"
        return CommandResult(True, f"Goal #{goal.id}: {goal.progress}%.", notice, goal)

    async def _goals_delete(self, inv: Invocation) -> CommandResult:
        goal = await self._find_goal(inv)
        await self.goals.delete(goal.id)
        return CommandResult(True, f"Goal **{goal.title}** deleted.")

    async def _goals_milestone(self, inv: Invocation) -> CommandResult:
        goal = await self._find_goal(inv)
        title = (inv.params.get("title") or "").strip()
        if not title:
            raise ValidationError("A milestone needs a title.")
        goal.add_milestone(title)
        await self.goals.update(goal)
        return CommandResult(True, f"Milestone added to **{goal.title}**.", data=goal)

    # Stats and rewards

    async def _stats_profile(self, inv: Invocation) -> CommandResult:
        user = await self.users.get_or_create(inv.user_id, inv.display_name)
        notice = Notice(title=f"{user.username}'s profile", color=PURPLE)
        notice.add_field("Level", user.level)
        notice.add_field("XP", f"{user.xp}/{user.xp_to_next_level}")
        notice.add_field("Study time", f"{user.total_study_time} min")
        notice.add_field("Sessions", user.total_sessions)
        notice.add_field("Pomodoros", user.completed_pomodoros)
        notice.add_field("Focus sessions", user.focus_sessions)
        notice.add_field("Streak", f"{user.current_streak} days (best {user.longest_streak})")
        return CommandResult(True, user.get_summary(), notice, user)

    async def _stats_today(self, inv: Invocation) -> CommandResult:
        stats = await self.studies.get_daily_stats(inv.user_id, datetime.now())
        notice = Notice(title="Today", color=BLUE)
        notice.add_field("Study time", f"{stats['total_duration']} min")
        notice.add_field("Sessions", stats["sessions_count"])
        notice.add_field("Pomodoros", stats["pomodoros_count"])
        return CommandResult(
            True, f"Today: {stats['total_duration']} min studied.", notice, stats
        )

    async def _stats_weekly(self, inv: Invocation) -> CommandResult:
        rows = await self.studies.get_weekly_stats(inv.user_id, datetime.now())
        by_day = {row["weekday"]: row for row in rows}
        notice = Notice(title="This week", color=BLUE)
        total = 0
        for index, name in enumerate(WEEKDAYS):
            minutes = by_day.get(index, {}).get("total_duration") or 0
            total += minutes
            notice.add_field(name, f"{minutes} min")
        return CommandResult(True, f"This week: {total} min studied.", notice, rows)

    async def _stats_subjects(self, inv: Invocation) -> CommandResult:
        period = inv.params.get("period") or "week"
        now = datetime.now()
        days = {"week": 7, "month": 30}.get(period)
        start = now - timedelta(days=days) if days else datetime(1970, 1, 1)
        rows = await self.studies.get_stats_by_subject(inv.user_id, start, now)
        if not rows:
            return CommandResult(True, "No study sessions in this period.", data=[])

        notice = Notice(title=f"Subjects ({period})", color=BLUE)
        for row in rows:
            notice.add_field(
                row["subject"], f"{row['total_duration']} min in {row['sessions_count']} sessions"
            )
        return CommandResult(True, f"{len(rows)} subjects.", notice, rows)

    async def _stats_overview(self, inv: Invocation) -> CommandResult:
        user = await self.users.get_or_create(inv.user_id, inv.display_name)
        notice = await self.reports.overview(user, datetime.now())
        return CommandResult(True, user.get_summary(), notice, user)

    async def _stats_daily(self, inv: Invocation) -> CommandResult:
        day = parse_date(inv.params["date"]) if inv.params.get("date") else datetime.now()
        notice = await self.reports.day_detail(inv.user_id, day)
        return CommandResult(True, f"Study on {day:%d/%m/%Y}.", notice)

    async def _stats_streak(self, inv: Invocation) -> CommandResult:
        user = await self.users.get_or_create(inv.user_id, inv.display_name)
        notice = await self.reports.streak(user)
        return CommandResult(
            True, f"Current streak: {user.current_streak} days.", notice, user
        )

    async def _stats_leaderboard(self, inv: Invocation) -> CommandResult:
        try:
            limit = int(inv.params.get("limit") or 10)
        except (TypeError, ValueError) as e:
            raise ValidationError("Limit must be a whole number.") from e
        if not 1 <= limit <= 25:
            raise ValidationError("Limit must be between 1 and 25.")

        top = await self.users.list_top(limit)
        if not top:
            return CommandResult(True, "Nobody has studied yet.", data=[])
        return CommandResult(True, f"Top {len(top)} students.", leaderboard_notice(top), top)

    async def _rewards_list(self, inv: Invocation) -> CommandResult:
        user = await self.users.get_or_create(inv.user_id, inv.display_name)
        completed_goals = await self.goals.count_completed(inv.user_id)
        statuses = evaluate_rewards(RewardSnapshot(user=user, completed_goals=completed_goals))

        notice = Notice(title="Rewards", color=GOLD)
        for status in statuses:
            mark = "Unlocked" if status.unlocked else "Locked"
            notice.add_field(f"{status.name} ({mark})", status.description, inline=False)
        unlocked = sum(1 for s in statuses if s.unlocked)
        return CommandResult(True, f"{unlocked}/{len(statuses)} rewards unlocked.", notice, statuses)

    # Reports

    async def _report(self, inv: Invocation, report_type: ReportType) -> CommandResult:
        notice = await self.reports.build(
            report_type, inv.user_id, inv.display_name, datetime.now()
        )
        return CommandResult(True, f"Your {report_type.value} report.", notice)

    async def _reports_daily(self, inv: Invocation) -> CommandResult:
        return await self._report(inv, ReportType.DAILY)

    async def _reports_weekly(self, inv: Invocation) -> CommandResult:
        return await self._report(inv, ReportType.WEEKLY)

    async def _reports_monthly(self, inv: Invocation) -> CommandResult:
        return await self._report(inv, ReportType.MONTHLY)

    async def _reports_setup(self, inv: Invocation) -> CommandResult:
        try:
            report_type = ReportType(inv.params.get("type") or "daily")
        except ValueError as e:
            raise ValidationError("Report type must be daily, weekly or monthly.") from e

        channel_id = inv.params.get("channel") or inv.targets.server_channel_id
        if not channel_id:
            raise ValidationError("Scheduled reports need a server channel.")
        enabled = inv.params.get("enabled", True)

        subscription = ReportSubscription(
            user_id=inv.user_id,
            username=inv.display_name,
            report_type=report_type,
            channel_id=int(channel_id),
            enabled=bool(enabled),
        )
        subscription.id = await self.subscriptions.upsert(subscription)
        state = "enabled" if subscription.enabled else "disabled"
        return CommandResult(
            True,
            f"{report_type.value.capitalize()} reports {state} in <#{subscription.channel_id}>.",
            data=subscription,
        )
