"""Pytest configuration and fixtures."""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from study_bot.config import LevelConfig, PomodoroConfig, SessionLimits, TimerConfig
from study_bot.db import (
    ActiveSessionRepository,
    GoalRepository,
    ReportSubscriptionRepository,
    StudySessionRepository,
    UserProfileRepository,
    init_db,
)
from study_bot.services.notifications import NotifyTargets
from study_bot.services.progress import ProgressService
from study_bot.services.reports import ReportBuilder
from study_bot.services.session_manager import FocusManager, PomodoroManager

START = datetime(2024, 3, 4, 9, 0, 0)


class FakeTask:
    """ScheduledTask driven by :class:`FakeScheduler`."""

    def __init__(self, callback, due: datetime, interval: float | None = None):
        self.callback = callback
        self.due = due
        self.interval = interval
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class FakeScheduler:
    """Scheduler with a manual clock; callbacks run only inside ``advance``."""

    def __init__(self, start: datetime = START):
        self.current = start
        self.tasks: list[FakeTask] = []

    def now(self) -> datetime:
        return self.current

    def call_every(self, interval: float, callback) -> FakeTask:
        task = FakeTask(callback, self.current + timedelta(seconds=interval), interval)
        self.tasks.append(task)
        return task

    def call_soon(self, callback) -> FakeTask:
        task = FakeTask(callback, self.current)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> list[FakeTask]:
        return [t for t in self.tasks if not t.cancelled]

    async def advance(self, seconds: float = 0) -> None:
        """Move the clock forward, running every callback that falls due."""
        end = self.current + timedelta(seconds=seconds)
        while True:
            due = [t for t in self.tasks if not t.cancelled and t.due <= end]
            if not due:
                break
            task = min(due, key=lambda t: t.due)
            self.current = max(self.current, task.due)
            if task.interval is None:
                task.cancel()
            else:
                task.due += timedelta(seconds=task.interval)
            await task.callback()
            self.tasks = [t for t in self.tasks if not t.cancelled]
        self.current = end

    def jump(self, seconds: float) -> None:
        """Move the clock without running callbacks (process was down)."""
        self.current += timedelta(seconds=seconds)


class RecordingSink:
    """Notification sink that records what it was asked to send."""

    def __init__(self):
        self.sent: list[tuple[object, object]] = []
        self.failing: set = set()

    async def send(self, target, notice) -> None:
        if target in self.failing:
            raise RuntimeError(f"cannot deliver to {target}")
        self.sent.append((target, notice))

    def titles(self, target=None) -> list[str]:
        return [
            getattr(notice, "title", notice)
            for sent_to, notice in self.sent
            if target is None or sent_to == target
        ]


class FakeResolver:
    """Channel resolver returning string handles."""

    def __init__(self):
        self.calls: list[str] = []

    async def resolve_targets(self, user_id: str, metadata: dict) -> NotifyTargets:
        self.calls.append(user_id)
        channel_id = metadata.get("server_channel_id")
        return NotifyTargets(
            dm=f"dm:{user_id}",
            channel=f"channel:{channel_id}" if channel_id else None,
            dm_channel_id=metadata.get("dm_channel_id"),
            server_channel_id=channel_id,
        )


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
async def db_path(temp_db_path):
    """Temporary database with the schema created."""
    await init_db(temp_db_path)
    return temp_db_path


@pytest.fixture
def users(db_path):
    return UserProfileRepository(db_path)


@pytest.fixture
def studies(db_path):
    return StudySessionRepository(db_path)


@pytest.fixture
def goals(db_path):
    return GoalRepository(db_path)


@pytest.fixture
def actives(db_path):
    return ActiveSessionRepository(db_path)


@pytest.fixture
def subscriptions(db_path):
    return ReportSubscriptionRepository(db_path)


@pytest.fixture
def report_builder(studies, goals):
    return ReportBuilder(studies, goals)


@pytest.fixture
def levels():
    return LevelConfig()


@pytest.fixture
def progress(users, goals, levels):
    return ProgressService(users, goals, levels)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def pomodoro_config():
    """Short phases so cycle tests stay fast."""
    return PomodoroConfig(
        work_minutes=2, short_break_minutes=1, long_break_minutes=3, long_break_interval=2
    )


def make_pomodoro(scheduler, sink, actives, studies, goals, progress, config=None):
    return PomodoroManager(
        scheduler=scheduler,
        sink=sink,
        actives=actives,
        studies=studies,
        goals=goals,
        progress=progress,
        timer=TimerConfig(tick_seconds=1.0, persist_every_seconds=30.0),
        limits=SessionLimits(),
        config=config,
    )


def make_focus(scheduler, sink, actives, studies, goals, progress):
    return FocusManager(
        scheduler=scheduler,
        sink=sink,
        actives=actives,
        studies=studies,
        goals=goals,
        progress=progress,
        timer=TimerConfig(tick_seconds=1.0, persist_every_seconds=30.0),
        limits=SessionLimits(),
    )


@pytest.fixture
def pomodoro(scheduler, sink, actives, studies, goals, progress, pomodoro_config):
    return make_pomodoro(scheduler, sink, actives, studies, goals, progress, pomodoro_config)


@pytest.fixture
def focus(scheduler, sink, actives, studies, goals, progress):
    return make_focus(scheduler, sink, actives, studies, goals, progress)


@pytest.fixture
def targets():
    return NotifyTargets(
        dm="dm:u1", channel="channel:42", dm_channel_id=7, server_channel_id=42
    )
