"""Study reports: on-demand summaries and their scheduled delivery."""

import calendar
import logging
from datetime import datetime, timedelta

from ..config import ReportConfig
from ..db.repositories import (
    GoalRepository,
    ReportSubscriptionRepository,
    StudySessionRepository,
)
from ..models.goal import Goal
from ..models.report import (
    ReportSubscription,
    ReportType,
    period_bounds,
    period_key,
    start_of_month,
    start_of_week,
)
from ..models.user_profile import UserProfile
from .notifications import (
    BLUE,
    GREEN,
    ORANGE,
    PURPLE,
    RED,
    ChannelResolver,
    NotificationSink,
    Notice,
    safe_send,
)
from .scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

WEEKDAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def format_duration(minutes: int | float) -> str:
    """``95`` -> ``1h 35min``."""
    minutes = int(minutes or 0)
    return f"{minutes // 60}h {minutes % 60}min"


def format_change(current: int, previous: int, unit: str = "") -> str:
    """Signed difference with its percentage; 100% when there is no baseline."""
    change = current - previous
    percent = 100 if previous == 0 else round(change / previous * 100)
    sign = "+" if change >= 0 else ""
    return f"{sign}{change}{unit} ({percent}%)"


def _weekday_index(moment: datetime) -> int:
    """0 = Sunday."""
    return (moment.weekday() + 1) % 7


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


class ReportBuilder:
    """Builds report and statistics notices from the study history."""

    def __init__(self, studies: StudySessionRepository, goals: GoalRepository):
        self.studies = studies
        self.goals = goals

    async def build(
        self, report_type: ReportType, user_id: str, username: str, moment: datetime
    ) -> Notice:
        """Report of ``report_type`` for the period containing ``moment``."""
        if report_type is ReportType.DAILY:
            return await self.daily(user_id, username, moment)
        if report_type is ReportType.WEEKLY:
            return await self.weekly(user_id, username, moment)
        return await self.monthly(user_id, username, moment)

    async def _subjects(self, user_id: str, start: datetime, end: datetime) -> list[dict]:
        # The subject query takes an inclusive upper bound
        return await self.studies.get_stats_by_subject(
            user_id, start, end - timedelta(microseconds=1)
        )

    def _add_totals(self, notice: Notice, stats: dict) -> None:
        notice.add_field("Study time", format_duration(stats["total_duration"]))
        notice.add_field("Sessions", stats["sessions_count"])
        notice.add_field("Pomodoros", stats["pomodoros_count"])

    def _add_goals(self, notice: Notice, goals: list[Goal], shown: int = 5) -> None:
        if not goals:
            return
        lines = [f"**{goal.title}** ({goal.subject})" for goal in goals[:shown]]
        if len(goals) > shown:
            lines.append(f"...and {len(goals) - shown} more")
        notice.add_field(f"Goals completed ({len(goals)})", "\n".join(lines), inline=False)

    async def _add_comparison(
        self, notice: Notice, user_id: str, stats: dict, start: datetime, end: datetime, label: str
    ) -> None:
        previous = await self.studies.get_period_stats(user_id, start, end)
        if not previous["sessions_count"] or not stats["sessions_count"]:
            return
        time_change = format_change(stats["total_duration"], previous["total_duration"], " min")
        session_change = format_change(stats["sessions_count"], previous["sessions_count"])
        notice.add_field(
            f"Compared with last {label}",
            f"Time: {time_change}\nSessions: {session_change}",
            inline=False,
        )

    async def daily(self, user_id: str, username: str, moment: datetime) -> Notice:
        start, end = period_bounds(ReportType.DAILY, moment)
        stats = await self.studies.get_period_stats(user_id, start, end)
        notice = Notice(
            title=f"Daily report - {start:%d/%m/%Y}",
            description=f"Your study day, {username}!",
            color=GREEN,
        )
        if not stats["sessions_count"]:
            notice.add_field("No activity", "No study sessions recorded on this day.", inline=False)
            return notice

        self._add_totals(notice, stats)
        notice.add_field(
            "Session types",
            f"Pomodoro: {stats['pomodoro_sessions']}, Focus: {stats['focus_sessions']}, "
            f"Regular: {stats['regular_sessions']}",
            inline=False,
        )

        subjects = await self._subjects(user_id, start, end)
        if subjects:
            notice.add_field(
                "Top subjects",
                "\n".join(
                    f"**{row['subject']}**: {format_duration(row['total_duration'])} "
                    f"({_plural(row['sessions_count'], 'session')})"
                    for row in subjects[:3]
                ),
                inline=False,
            )

        self._add_goals(notice, await self.goals.list_completed_between(user_id, start, end))

        upcoming = [
            goal
            for goal in await self.goals.list_for_user(user_id, "active")
            if goal.deadline and goal.deadline >= start
        ]
        if upcoming:
            goal = upcoming[0]
            notice.add_field(
                "Next deadline",
                f"**{goal.title}** on {goal.deadline:%d/%m/%Y} ({goal.progress}%)",
                inline=False,
            )
        return notice

    async def weekly(self, user_id: str, username: str, moment: datetime) -> Notice:
        start, end = period_bounds(ReportType.WEEKLY, moment)
        stats = await self.studies.get_period_stats(user_id, start, end)
        notice = Notice(
            title=f"Weekly report - {start:%d/%m} to {end - timedelta(days=1):%d/%m/%Y}",
            description=f"Your study week, {username}!",
            color=BLUE,
        )
        if not stats["sessions_count"]:
            notice.add_field("No activity", "No study sessions recorded this week.", inline=False)
        else:
            self._add_totals(notice, stats)

            rows = await self.studies.get_weekly_stats(user_id, start)
            by_day = {row["weekday"]: row for row in rows}
            days = []
            for index, name in enumerate(WEEKDAYS):
                row = by_day.get(index, {})
                days.append((name, row.get("total_duration") or 0, row.get("sessions_count") or 0))
            notice.add_field(
                "By day",
                "\n".join(
                    f"**{name}**: {format_duration(minutes)} ({_plural(count, 'session')})"
                    for name, minutes, count in days
                ),
                inline=False,
            )

            subjects = await self._subjects(user_id, start, end)
            if subjects:
                notice.add_field(
                    "Top subjects",
                    "\n".join(
                        f"**{row['subject']}**: {format_duration(row['total_duration'])}"
                        for row in subjects[:3]
                    ),
                )

            best = max(days, key=lambda day: day[1])
            if best[1] > 0:
                notice.add_field("Best day", f"**{best[0]}**: {format_duration(best[1])}")

            self._add_goals(notice, await self.goals.list_completed_between(user_id, start, end))

        await self._add_comparison(
            notice, user_id, stats, start - timedelta(days=7), start, "week"
        )
        return notice

    async def monthly(self, user_id: str, username: str, moment: datetime) -> Notice:
        start, end = period_bounds(ReportType.MONTHLY, moment)
        stats = await self.studies.get_period_stats(user_id, start, end)
        notice = Notice(
            title=f"Monthly report - {start:%B %Y}",
            description=f"Your study month, {username}!",
            color=RED,
        )
        if not stats["sessions_count"]:
            notice.add_field("No activity", "No study sessions recorded this month.", inline=False)
        else:
            self._add_totals(notice, stats)

            days = await self.studies.get_daily_totals(user_id, start, end)
            days_in_month = calendar.monthrange(start.year, start.month)[1]
            active = len(days)
            notice.add_field(
                "Active days",
                f"{active}/{days_in_month} ({round(active / days_in_month * 100)}%)",
            )
            notice.add_field(
                "Average per active day", format_duration(round(stats["total_duration"] / active))
            )

            # Sunday-based weeks, numbered from the week holding the 1st
            offset = _weekday_index(start)
            weeks: dict[int, list[int]] = {}
            for row in days:
                day = datetime.fromisoformat(row["day"])
                week = (day.day - 1 + offset) // 7 + 1
                totals = weeks.setdefault(week, [0, 0])
                totals[0] += row["total_duration"]
                totals[1] += row["sessions_count"]
            notice.add_field(
                "By week",
                "\n".join(
                    f"**Week {week}**: {format_duration(minutes)} ({_plural(count, 'session')})"
                    for week, (minutes, count) in weeks.items()
                ),
                inline=False,
            )

            subjects = await self._subjects(user_id, start, end)
            if subjects:
                total = stats["total_duration"] or 1
                notice.add_field(
                    "Top subjects",
                    "\n".join(
                        f"**{row['subject']}**: {format_duration(row['total_duration'])} "
                        f"({round(row['total_duration'] / total * 100)}%)"
                        for row in subjects[:5]
                    ),
                    inline=False,
                )

            self._add_goals(notice, await self.goals.list_completed_between(user_id, start, end))

        previous_start = start_of_month(start - timedelta(days=1))
        await self._add_comparison(notice, user_id, stats, previous_start, start, "month")
        return notice

    async def overview(self, user: UserProfile, now: datetime) -> Notice:
        """Lifetime totals next to this month and this week."""
        month_start, month_end = period_bounds(ReportType.MONTHLY, now)
        month = await self.studies.get_period_stats(user.discord_id, month_start, month_end)
        week_start = start_of_week(now)
        week = await self.studies.get_period_stats(
            user.discord_id, week_start, week_start + timedelta(days=7)
        )
        days_in_month = calendar.monthrange(now.year, now.month)[1]
        completed = await self.goals.count_completed(user.discord_id)
        total_goals = len(await self.goals.list_for_user(user.discord_id, "all"))

        notice = Notice(title="Study statistics", description=f"{user.username}'s summary", color=BLUE)
        notice.add_field("Total study time", format_duration(user.total_study_time))
        notice.add_field("Sessions", user.total_sessions)
        notice.add_field("Pomodoros", user.completed_pomodoros)
        notice.add_field("Current streak", f"{user.current_streak} days")
        notice.add_field("Longest streak", f"{user.longest_streak} days")
        notice.add_field("Level", f"{user.level} ({user.xp}/{user.xp_to_next_level} XP)")
        notice.add_field(
            "This month",
            f"{format_duration(month['total_duration'])} "
            f"({_plural(month['sessions_count'], 'session')})",
        )
        notice.add_field(
            "This week",
            f"{format_duration(week['total_duration'])} "
            f"({_plural(week['sessions_count'], 'session')})",
        )
        notice.add_field(
            "Daily average", format_duration(round(month["total_duration"] / days_in_month))
        )
        notice.add_field("Goals", f"{completed}/{total_goals} completed")
        notice.footer = "Use /stats daily, /stats weekly or /stats subjects for details"
        return notice

    async def day_detail(self, user_id: str, day: datetime) -> Notice:
        """Every completed session of one calendar day."""
        start, end = period_bounds(ReportType.DAILY, day)
        sessions = list(reversed(await self.studies.list_completed(user_id, start, end)))
        notice = Notice(title=f"Study on {start:%d/%m/%Y}", color=BLUE)
        if not sessions:
            notice.description = "No study sessions recorded on this day."
            return notice

        total = sum(s.duration for s in sessions)
        notice.description = f"You studied for {format_duration(total)} on this day."
        notice.add_field("Sessions", len(sessions))
        notice.add_field("Pomodoros", sum(s.pomodoros_completed for s in sessions))

        subjects: dict[str, int] = {}
        for session in sessions:
            subjects[session.subject] = subjects.get(session.subject, 0) + session.duration
        notice.add_field(
            "Subjects",
            "\n".join(
                f"**{subject}**: {format_duration(minutes)}"
                for subject, minutes in sorted(subjects.items(), key=lambda kv: -kv[1])
            ),
            inline=False,
        )

        lines = [
            f"{s.start_time:%H:%M}-{s.end_time:%H:%M} {s.subject} "
            f"({s.duration} min, {s.kind.value})"
            if s.end_time
            else f"{s.start_time:%H:%M} {s.subject} ({s.duration} min, {s.kind.value})"
            for s in sessions[:5]
        ]
        if len(sessions) > 5:
            lines.append(f"...and {len(sessions) - 5} more")
        notice.add_field("Session list", "\n".join(lines), inline=False)
        return notice

    async def streak(self, user: UserProfile) -> Notice:
        """Streak counters and the days behind the last ten sessions."""
        notice = Notice(title="Study streak", color=ORANGE)
        notice.add_field("Current streak", f"{user.current_streak} days")
        notice.add_field("Longest streak", f"{user.longest_streak} days")
        if user.last_session_date:
            notice.add_field("Last session", f"{user.last_session_date:%d/%m/%Y %H:%M}")

        recent = await self.studies.list_completed(user.discord_id, limit=10)
        by_day: dict[str, list[int]] = {}
        for session in recent:
            totals = by_day.setdefault(session.start_time.strftime("%d/%m/%Y"), [0, 0])
            totals[0] += session.duration
            totals[1] += 1
        if by_day:
            notice.add_field(
                "Recent activity",
                "\n".join(
                    f"**{day}**: {format_duration(minutes)} ({_plural(count, 'session')})"
                    for day, (minutes, count) in list(by_day.items())[:7]
                ),
                inline=False,
            )
        notice.footer = "Keep your streak by studying every day!"
        return notice


def leaderboard_notice(users: list[UserProfile]) -> Notice:
    notice = Notice(title="Leaderboard", color=PURPLE)
    for rank, user in enumerate(users, start=1):
        notice.add_field(
            f"#{rank} {user.username}",
            f"Level {user.level}, {user.xp} XP, {format_duration(user.total_study_time)}",
            inline=False,
        )
    return notice


class ReportScheduler:
    """Posts subscribed reports to their channels once per period.

    Every ``check_seconds`` the scheduler looks at the local clock. From the
    daily report time onwards it sends today's daily report, on the weekly
    report day the report of the week that ended yesterday, and on the 1st of
    a month the report of the previous month. A subscription receives each
    period at most once (``last_period``), so restarts do not repeat reports.
    """

    def __init__(
        self,
        builder: ReportBuilder,
        subscriptions: ReportSubscriptionRepository,
        sink: NotificationSink,
        scheduler: Scheduler,
        config: ReportConfig | None = None,
    ):
        self.builder = builder
        self.subscriptions = subscriptions
        self.sink = sink
        self.scheduler = scheduler
        self.config = config or ReportConfig()
        self._resolver: ChannelResolver | None = None
        self._task: ScheduledTask | None = None

    def start(self, resolver: ChannelResolver) -> None:
        """Begin periodic checks; later calls only refresh the resolver."""
        self._resolver = resolver
        if self._task is None:
            self._task = self.scheduler.call_every(self.config.check_seconds, self.run_due)
            logger.info(
                "Report delivery scheduled daily at %s, weekly on %s",
                self.config.daily_time,
                WEEKDAYS[self.config.weekly_day],
            )

    def stop(self) -> None:
        if self._task:
            self._task.cancel()
            self._task = None

    def due_periods(self, now: datetime) -> list[tuple[ReportType, datetime]]:
        """Report types due at ``now`` and a moment inside the period each covers."""
        if (now.hour, now.minute) < self.config.daily_hour_minute:
            return []
        due = [(ReportType.DAILY, now)]
        yesterday = now - timedelta(days=1)
        if _weekday_index(now) == self.config.weekly_day:
            due.append((ReportType.WEEKLY, yesterday))
        if now.day == 1:
            due.append((ReportType.MONTHLY, yesterday))
        return due

    async def run_due(self) -> int:
        """Deliver every report that is due and not yet sent; returns how many went out."""
        now = self.scheduler.now()
        sent = 0
        for report_type, moment in self.due_periods(now):
            key = period_key(report_type, moment)
            for subscription in await self.subscriptions.list_enabled(report_type):
                if subscription.last_period == key:
                    continue
                try:
                    if await self._deliver(subscription, moment):
                        sent += 1
                except Exception:
                    logger.exception(
                        "Failed to build %s report for %s",
                        report_type.value,
                        subscription.user_id,
                    )
                    continue
                # Failed deliveries are not retried within the period
                await self.subscriptions.mark_sent(subscription.id, key)
        if sent:
            logger.info("Delivered %d scheduled reports", sent)
        return sent

    async def _deliver(self, subscription: ReportSubscription, moment: datetime) -> bool:
        if self._resolver is None:
            return False
        targets = await self._resolver.resolve_targets(
            subscription.user_id, {"server_channel_id": subscription.channel_id}
        )
        if targets.channel is None:
            logger.warning(
                "Report channel %s of %s is unavailable",
                subscription.channel_id,
                subscription.user_id,
            )
            return False
        notice = await self.builder.build(
            subscription.report_type, subscription.user_id, subscription.username, moment
        )
        return await safe_send(self.sink, targets.channel, notice)
