"""Builds the object graph shared by the bot and the CLI."""

from dataclasses import dataclass
from pathlib import Path

from .config import Settings
from .db.repositories import (
    ActiveSessionRepository,
    GoalRepository,
    ReportSubscriptionRepository,
    StudySessionRepository,
    UserProfileRepository,
)
from .services.notifications import NotificationSink
from .services.progress import ProgressService
from .services.recovery import SessionRecovery
from .services.reports import ReportBuilder, ReportScheduler
from .services.scheduler import AsyncioScheduler, Scheduler
from .services.session_manager import FocusManager, PomodoroManager


@dataclass
class Components:
    users: UserProfileRepository
    studies: StudySessionRepository
    goals: GoalRepository
    actives: ActiveSessionRepository
    subscriptions: ReportSubscriptionRepository
    progress: ProgressService
    pomodoro: PomodoroManager
    focus: FocusManager
    recovery: SessionRecovery
    report_builder: ReportBuilder
    reports: ReportScheduler


def build_components(
    settings: Settings,
    sink: NotificationSink,
    scheduler: Scheduler | None = None,
    db_path: Path | None = None,
) -> Components:
    """Wire repositories, services and managers from settings."""
    scheduler = scheduler or AsyncioScheduler()
    db_path = db_path or settings.db_path

    users = UserProfileRepository(db_path)
    studies = StudySessionRepository(db_path)
    goals = GoalRepository(db_path)
    actives = ActiveSessionRepository(db_path)
    subscriptions = ReportSubscriptionRepository(db_path)
    limits = settings.limits()
    progress = ProgressService(
        users, goals, settings.levels(), max_xp_per_session=limits.max_xp_per_session
    )

    shared = dict(
        scheduler=scheduler,
        sink=sink,
        actives=actives,
        studies=studies,
        goals=goals,
        progress=progress,
        timer=settings.timer(),
        limits=limits,
    )
    pomodoro = PomodoroManager(config=settings.pomodoro(), **shared)
    focus = FocusManager(**shared)
    recovery = SessionRecovery(
        [pomodoro, focus], scheduler, cleanup_interval_hours=settings.cleanup_interval_hours
    )
    report_builder = ReportBuilder(studies, goals)
    reports = ReportScheduler(report_builder, subscriptions, sink, scheduler, settings.reports())

    return Components(
        users=users,
        studies=studies,
        goals=goals,
        actives=actives,
        subscriptions=subscriptions,
        progress=progress,
        pomodoro=pomodoro,
        focus=focus,
        recovery=recovery,
        report_builder=report_builder,
        reports=reports,
    )
