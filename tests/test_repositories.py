"""Tests for the aiosqlite repositories."""

from datetime import datetime, timedelta

import aiosqlite
import pytest

from study_bot.db import init_db
from study_bot.models.goal import Goal
from study_bot.models.report import ReportSubscription, ReportType
from study_bot.models.session import ActiveSession, Phase, SessionKind
from study_bot.models.study_session import StudyKind, StudySession
from study_bot.models.user_profile import UserProfile

NOW = datetime(2024, 3, 6, 12, 0)


def make_record(user_id="u1", kind=SessionKind.POMODORO, last_updated=NOW, **kwargs):
    return ActiveSession(
        user_id=user_id,
        kind=kind,
        study_session_id=kwargs.pop("study_session_id", 1),
        start_time=kwargs.pop("start_time", NOW - timedelta(minutes=5)),
        time_left=kwargs.pop("time_left", 1200.0),
        last_updated=last_updated,
        **kwargs,
    )


class TestUserProfileRepository:
    """Tests for user profiles."""

    async def test_get_or_create_is_idempotent(self, users):
        first = await users.get_or_create("u1", "ana")
        second = await users.get_or_create("u1", "ana")

        assert first.id is not None
        assert first.id == second.id
        assert second.level == 1
        assert second.xp_to_next_level == 100

    async def test_update_round_trip(self, users):
        user = await users.get_or_create("u1", "ana")
        user.total_study_time = 90
        user.update_streak(NOW)

        await users.update(user)
        loaded = await users.get_by_discord_id("u1")

        assert loaded.total_study_time == 90
        assert loaded.current_streak == 1
        assert loaded.last_session_date == NOW

    async def test_update_requires_id(self, users):
        with pytest.raises(ValueError):
            await users.update(UserProfile(discord_id="u1", username="ana"))

    async def test_list_top_orders_by_level(self, users):
        for discord_id, level in (("a", 2), ("b", 5), ("c", 3)):
            user = await users.get_or_create(discord_id, discord_id)
            user.level = level
            await users.update(user)

        top = await users.list_top(2)

        assert [u.discord_id for u in top] == ["b", "c"]


class TestStudySessionRepository:
    """Tests for study history."""

    async def test_close(self, studies):
        session_id = await studies.create(
            StudySession(user_id="u1", start_time=NOW, kind=StudyKind.POMODORO)
        )

        await studies.close(session_id, NOW + timedelta(minutes=50), 50, 2)
        session = await studies.get(session_id)

        assert session.completed is True
        assert session.duration == 50
        assert session.pomodoros_completed == 2
        assert session.end_time == NOW + timedelta(minutes=50)

    async def test_daily_stats_only_count_completed(self, studies):
        done = await studies.create(StudySession(user_id="u1", start_time=NOW, subject="Math"))
        await studies.close(done, NOW + timedelta(minutes=30), 30, 1)
        await studies.create(StudySession(user_id="u1", start_time=NOW))
        yesterday = await studies.create(
            StudySession(user_id="u1", start_time=NOW - timedelta(days=1))
        )
        await studies.close(yesterday, NOW - timedelta(hours=23), 60, 0)

        stats = await studies.get_daily_stats("u1", NOW)

        assert stats == {
            "total_duration": 30,
            "sessions_count": 1,
            "pomodoros_count": 1,
            "pomodoro_sessions": 0,
            "focus_sessions": 0,
            "regular_sessions": 1,
        }

    async def test_period_stats_count_kinds(self, studies):
        for kind, minutes in (
            (StudyKind.POMODORO, 50),
            (StudyKind.FOCUS, 30),
            (StudyKind.FOCUS, 20),
        ):
            session_id = await studies.create(StudySession(user_id="u1", start_time=NOW, kind=kind))
            await studies.close(session_id, NOW + timedelta(minutes=minutes), minutes, 0)
        # Starts exactly at the end of the range
        later = await studies.create(StudySession(user_id="u1", start_time=NOW + timedelta(days=1)))
        await studies.close(later, NOW + timedelta(days=1, minutes=10), 10, 0)

        stats = await studies.get_period_stats("u1", NOW, NOW + timedelta(days=1))

        assert stats["total_duration"] == 100
        assert stats["pomodoro_sessions"] == 1
        assert stats["focus_sessions"] == 2
        assert stats["regular_sessions"] == 0

    async def test_daily_totals_and_completed_listing(self, studies):
        for day, hour, minutes in ((4, 9, 30), (4, 14, 15), (6, 10, 40)):
            start = datetime(2024, 3, day, hour)
            session_id = await studies.create(
                StudySession(user_id="u1", start_time=start, subject=f"day{day}")
            )
            await studies.close(session_id, start + timedelta(minutes=minutes), minutes, 0)
        await studies.create(StudySession(user_id="u1", start_time=datetime(2024, 3, 5, 9)))

        totals = await studies.get_daily_totals("u1", datetime(2024, 3, 1), datetime(2024, 4, 1))
        listed = await studies.list_completed(
            "u1", datetime(2024, 3, 4), datetime(2024, 3, 5)
        )
        latest = await studies.list_completed("u1", limit=1)

        assert totals == [
            {"day": "2024-03-04", "total_duration": 45, "sessions_count": 2},
            {"day": "2024-03-06", "total_duration": 40, "sessions_count": 1},
        ]
        assert [s.duration for s in listed] == [15, 30]
        assert all(s.completed for s in listed)
        assert [s.subject for s in latest] == ["day6"]

    async def test_stats_by_subject(self, studies):
        for subject, minutes in (("Math", 30), ("Math", 20), ("History", 45)):
            session_id = await studies.create(
                StudySession(user_id="u1", start_time=NOW, subject=subject)
            )
            await studies.close(session_id, NOW + timedelta(minutes=minutes), minutes, 0)

        rows = await studies.get_stats_by_subject("u1", NOW - timedelta(days=7), NOW)

        assert rows[0] == {"subject": "Math", "total_duration": 50, "sessions_count": 2}
        assert rows[1]["subject"] == "History"

    async def test_weekly_stats_grouped_by_weekday(self, studies):
        # 2024-03-06 is a Wednesday; the week starts on Sunday 2024-03-03
        for day in (3, 6, 6):
            start = datetime(2024, 3, day, 10)
            session_id = await studies.create(StudySession(user_id="u1", start_time=start))
            await studies.close(session_id, start + timedelta(minutes=25), 25, 1)

        rows = await studies.get_weekly_stats("u1", NOW)

        assert rows == [
            {"weekday": 0, "total_duration": 25, "sessions_count": 1},
            {"weekday": 3, "total_duration": 50, "sessions_count": 2},
        ]


class TestGoalRepository:
    """Tests for goals."""

    async def test_create_and_update_progress(self, goals):
        goal = Goal(user_id="u1", title="Linear algebra", target_time=60)
        goal.id = await goals.create(goal)

        goal.add_time(45)
        await goals.update(goal)
        loaded = await goals.get(goal.id)

        assert loaded.current_time == 45
        assert loaded.progress == 75
        assert loaded.created_at is not None

    async def test_find_by_id_checks_owner(self, goals):
        goal_id = await goals.create(Goal(user_id="u1", title="Chemistry", target_time=60))

        assert (await goals.find_for_user("u1", str(goal_id))).id == goal_id
        assert await goals.find_for_user("u2", str(goal_id)) is None

    async def test_find_by_title_among_active(self, goals):
        done = Goal(user_id="u1", title="Biology basics", target_time=10, completed=True)
        await goals.create(done)
        active_id = await goals.create(Goal(user_id="u1", title="Biology exam", target_time=60))

        found = await goals.find_for_user("u1", "biology")

        assert found.id == active_id

    async def test_list_filters(self, goals):
        await goals.create(Goal(user_id="u1", title="Active", target_time=60))
        await goals.create(Goal(user_id="u1", title="Done", target_time=60, completed=True))
        await goals.create(
            Goal(user_id="u1", title="Late", target_time=60, deadline=NOW - timedelta(days=1))
        )

        assert len(await goals.list_for_user("u1", "all")) == 3
        assert {g.title for g in await goals.list_for_user("u1", "active")} == {"Active", "Late"}
        assert [g.title for g in await goals.list_for_user("u1", "completed")] == ["Done"]
        assert [g.title for g in await goals.list_for_user("u1", "overdue", NOW)] == ["Late"]
        assert await goals.count_completed("u1") == 1

    async def test_completed_between(self, goals):
        goal = Goal(user_id="u1", title="Essay", target_time=30)
        goal.id = await goals.create(goal)
        goal.add_time(30, NOW)
        await goals.update(goal)
        await goals.create(Goal(user_id="u1", title="Open", target_time=30))

        found = await goals.list_completed_between(
            "u1", NOW - timedelta(hours=1), NOW + timedelta(hours=1)
        )
        earlier = await goals.list_completed_between(
            "u1", NOW - timedelta(days=2), NOW - timedelta(days=1)
        )

        assert [g.title for g in found] == ["Essay"]
        assert found[0].completed_at == NOW
        assert earlier == []

    async def test_delete(self, goals):
        goal_id = await goals.create(Goal(user_id="u1", title="Temp", target_time=10))

        await goals.delete(goal_id)

        assert await goals.get(goal_id) is None


class TestReportSubscriptionRepository:
    """Tests for scheduled report subscriptions."""

    async def test_upsert_replaces_channel_and_keeps_history(self, subscriptions):
        first_id = await subscriptions.upsert(
            ReportSubscription(
                user_id="u1", username="ana", report_type=ReportType.DAILY, channel_id=42
            )
        )
        await subscriptions.mark_sent(first_id, "2024-03-06")

        second_id = await subscriptions.upsert(
            ReportSubscription(
                user_id="u1", username="ana", report_type=ReportType.DAILY, channel_id=43
            )
        )
        loaded = await subscriptions.get("u1", ReportType.DAILY)

        assert second_id == first_id
        assert loaded.channel_id == 43
        assert loaded.last_period == "2024-03-06"
        assert loaded.created_at is not None

    async def test_list_enabled(self, subscriptions):
        for user_id, report_type, enabled in (
            ("u1", ReportType.DAILY, True),
            ("u1", ReportType.WEEKLY, False),
            ("u2", ReportType.WEEKLY, True),
        ):
            await subscriptions.upsert(
                ReportSubscription(
                    user_id=user_id,
                    username=user_id,
                    report_type=report_type,
                    channel_id=42,
                    enabled=enabled,
                )
            )

        weekly = await subscriptions.list_enabled(ReportType.WEEKLY)

        assert len(await subscriptions.list_enabled()) == 2
        assert [s.user_id for s in weekly] == ["u2"]
        assert await subscriptions.get("u3", ReportType.DAILY) is None

class TestActiveSessionRepository:
    """Tests for running session records."""

    async def test_one_record_per_user_and_kind(self, actives):
        await actives.create(make_record())

        with pytest.raises(aiosqlite.IntegrityError):
            await actives.create(make_record())

        # A different kind for the same user is allowed
        await actives.create(make_record(kind=SessionKind.FOCUS))
        assert len(await actives.list_by_kind()) == 2
        assert len(await actives.list_by_kind(SessionKind.FOCUS)) == 1

    async def test_update_state_stamps_last_updated(self, actives):
        record = make_record(metadata={"username": "ana", "server_channel_id": 42})
        record.id = await actives.create(record)

        record.phase = Phase.SHORT_BREAK
        record.pomodoros_completed = 1
        record.time_left = 300.0
        await actives.update_state(record, NOW + timedelta(minutes=25))
        loaded = await actives.get_for_user("u1", SessionKind.POMODORO)

        assert loaded.phase == Phase.SHORT_BREAK
        assert loaded.pomodoros_completed == 1
        assert loaded.time_left == 300.0
        assert loaded.last_updated == NOW + timedelta(minutes=25)
        assert loaded.metadata == {"username": "ana", "server_channel_id": 42}

    async def test_delete_stale(self, actives):
        await actives.create(make_record(user_id="old", last_updated=NOW - timedelta(hours=13)))
        await actives.create(make_record(user_id="new", last_updated=NOW - timedelta(hours=1)))

        removed = await actives.delete_stale(NOW - timedelta(hours=12))

        assert removed == 1
        remaining = await actives.list_by_kind()
        assert [r.user_id for r in remaining] == ["new"]

    async def test_delete_reports_existence(self, actives):
        record_id = await actives.create(make_record())

        assert await actives.delete(record_id) is True
        assert await actives.delete(record_id) is False


class TestMigrations:
    """Tests for upgrading older databases."""

    async def test_goals_gain_completed_at(self, temp_db_path):
        async with aiosqlite.connect(temp_db_path) as db:
            await db.execute(
                """
                CREATE TABLE goals (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    completed INTEGER DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            await db.commit()

        await init_db(temp_db_path)

        async with aiosqlite.connect(temp_db_path) as db:
            cursor = await db.execute("PRAGMA table_info(goals)")
            columns = {col[1] for col in await cursor.fetchall()}
            cursor = await db.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
                ("report_subscriptions",),
            )
            assert await cursor.fetchone() is not None
        assert "completed_at" in columns
