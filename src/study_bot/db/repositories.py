"""Data access layer for study-bot."""

import json
from datetime import datetime, timedelta
from pathlib import Path

import aiosqlite

from ..models.goal import Goal
from ..models.report import ReportSubscription, ReportType, start_of_day, start_of_week
from ..models.session import ActiveSession, SessionKind
from ..models.study_session import StudySession
from ..models.user_profile import UserProfile
from .engine import get_db_path


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class UserProfileRepository:
    """Repository for user profiles."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, profile: UserProfile) -> int:
        """Create a new user profile."""
        data = profile.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO users
                (discord_id, username, level, xp, xp_to_next_level, total_study_time,
                 total_sessions, completed_pomodoros, focus_sessions, current_streak,
                 longest_streak, last_session_date, rewards)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["discord_id"],
                    data["username"],
                    data["level"],
                    data["xp"],
                    data["xp_to_next_level"],
                    data["total_study_time"],
                    data["total_sessions"],
                    data["completed_pomodoros"],
                    data["focus_sessions"],
                    data["current_streak"],
                    data["longest_streak"],
                    data["last_session_date"],
                    json.dumps(data["rewards"]),
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get_by_discord_id(self, discord_id: str) -> UserProfile | None:
        """Get a user profile by Discord user ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM users WHERE discord_id = ?", (discord_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_profile(row)

    async def get_or_create(self, discord_id: str, username: str) -> UserProfile:
        """Fetch a profile, creating a fresh one on first contact."""
        profile = await self.get_by_discord_id(discord_id)
        if profile:
            return profile

        profile = UserProfile(discord_id=discord_id, username=username)
        try:
            profile.id = await self.create(profile)
        except aiosqlite.IntegrityError:
            # Created concurrently by another command
            return await self.get_by_discord_id(discord_id)
        return profile

    async def list_top(self, limit: int = 10) -> list[UserProfile]:
        """Leaderboard: highest level first, then XP."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM users ORDER BY level DESC, xp DESC LIMIT ?", (limit,)
            )
            rows = await cursor.fetchall()
            return [self._row_to_profile(row) for row in rows]

    async def update(self, profile: UserProfile) -> None:
        """Update an existing profile."""
        if profile.id is None:
            raise ValueError("Profile must have an ID to update")

        data = profile.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE users SET
                    username = ?, level = ?, xp = ?, xp_to_next_level = ?,
                    total_study_time = ?, total_sessions = ?, completed_pomodoros = ?,
                    focus_sessions = ?, current_streak = ?, longest_streak = ?,
                    last_session_date = ?, rewards = ?
                WHERE id = ?
                """,
                (
                    data["username"],
                    data["level"],
                    data["xp"],
                    data["xp_to_next_level"],
                    data["total_study_time"],
                    data["total_sessions"],
                    data["completed_pomodoros"],
                    data["focus_sessions"],
                    data["current_streak"],
                    data["longest_streak"],
                    data["last_session_date"],
                    json.dumps(data["rewards"]),
                    profile.id,
                ),
            )
            await db.commit()

    def _row_to_profile(self, row: aiosqlite.Row) -> UserProfile:
        """Convert a database row to a UserProfile."""
        data = {
            "discord_id": row["discord_id"],
            "username": row["username"],
            "level": row["level"],
            "xp": row["xp"],
            "xp_to_next_level": row["xp_to_next_level"],
            "total_study_time": row["total_study_time"],
            "total_sessions": row["total_sessions"],
            "completed_pomodoros": row["completed_pomodoros"],
            "focus_sessions": row["focus_sessions"],
            "current_streak": row["current_streak"],
            "longest_streak": row["longest_streak"],
            "last_session_date": row["last_session_date"],
            "rewards": json.loads(row["rewards"] or "[]"),
        }
        return UserProfile.from_dict(
            data, id=row["id"], created_at=_parse(row["created_at"])
        )


class StudySessionRepository:
    """Repository for the study history."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, session: StudySession) -> int:
        """Create a new (usually open) study record."""
        data = session.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO study_sessions
                (user_id, start_time, end_time, duration, session_type, completed,
                 pomodoros_completed, subject, notes, interruptions)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["user_id"],
                    data["start_time"],
                    data["end_time"],
                    data["duration"],
                    data["kind"],
                    int(data["completed"]),
                    data["pomodoros_completed"],
                    data["subject"],
                    data["notes"],
                    data["interruptions"],
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, session_id: int) -> StudySession | None:
        """Get a study record by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM study_sessions WHERE id = ?", (session_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_session(row)

    async def list_for_user(self, user_id: str, limit: int = 10) -> list[StudySession]:
        """Most recent study records of a user."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM study_sessions WHERE user_id = ?
                ORDER BY start_time DESC LIMIT ?
                """,
                (user_id, limit),
            )
            rows = await cursor.fetchall()
            return [self._row_to_session(row) for row in rows]

    async def update(self, session: StudySession) -> None:
        """Update an existing study record."""
        if session.id is None:
            raise ValueError("Study session must have an ID to update")

        data = session.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE study_sessions SET
                    end_time = ?, duration = ?, completed = ?,
                    pomodoros_completed = ?, subject = ?, notes = ?, interruptions = ?
                WHERE id = ?
                """,
                (
                    data["end_time"],
                    data["duration"],
                    int(data["completed"]),
                    data["pomodoros_completed"],
                    data["subject"],
                    data["notes"],
                    data["interruptions"],
                    session.id,
                ),
            )
            await db.commit()

    async def close(
        self,
        session_id: int,
        end_time: datetime,
        duration: int,
        pomodoros_completed: int,
    ) -> None:
        """Mark a study record as finished."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE study_sessions SET
                    end_time = ?, duration = ?, completed = 1, pomodoros_completed = ?
                WHERE id = ?
                """,
                (end_time.isoformat(), duration, pomodoros_completed, session_id),
            )
            await db.commit()

    async def set_pomodoros(self, session_id: int, pomodoros_completed: int) -> None:
        """Mirror the running unit count onto an open record."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "UPDATE study_sessions SET pomodoros_completed = ? WHERE id = ?",
                (pomodoros_completed, session_id),
            )
            await db.commit()

    async def get_period_stats(self, user_id: str, start: datetime, end: datetime) -> dict:
        """Totals of completed sessions started in ``[start, end)``, with counts per kind."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT COALESCE(SUM(duration), 0) AS total_duration,
                       COUNT(*) AS sessions_count,
                       COALESCE(SUM(pomodoros_completed), 0) AS pomodoros_count,
                       COALESCE(SUM(session_type = 'pomodoro'), 0) AS pomodoro_sessions,
                       COALESCE(SUM(session_type = 'focus'), 0) AS focus_sessions,
                       COALESCE(SUM(session_type = 'regular'), 0) AS regular_sessions
                FROM study_sessions
                WHERE user_id = ? AND completed = 1
                  AND start_time >= ? AND start_time < ?
                """,
                (user_id, start.isoformat(), end.isoformat()),
            )
            row = await cursor.fetchone()
            return dict(row)

    async def get_daily_stats(self, user_id: str, day: datetime) -> dict:
        """Totals of completed sessions started on ``day``."""
        start = start_of_day(day)
        return await self.get_period_stats(user_id, start, start + timedelta(days=1))

    async def get_daily_totals(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[dict]:
        """Per-calendar-day totals in ``[start, end)``; days without study are absent."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT substr(start_time, 1, 10) AS day,
                       SUM(duration) AS total_duration,
                       COUNT(*) AS sessions_count
                FROM study_sessions
                WHERE user_id = ? AND completed = 1
                  AND start_time >= ? AND start_time < ?
                GROUP BY day
                ORDER BY day
                """,
                (user_id, start.isoformat(), end.isoformat()),
            )
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    async def list_completed(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[StudySession]:
        """Completed records, newest first, optionally within ``[start, end)``."""
        query = "SELECT * FROM study_sessions WHERE user_id = ? AND completed = 1"
        params: list = [user_id]
        if start is not None:
            query += " AND start_time >= ?"
            params.append(start.isoformat())
        if end is not None:
            query += " AND start_time < ?"
            params.append(end.isoformat())
        query += " ORDER BY start_time DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_session(row) for row in rows]

    async def get_weekly_stats(self, user_id: str, day: datetime) -> list[dict]:
        """Per-weekday totals for the Sunday-based week containing ``day``."""
        start = start_of_week(day)
        end = start + timedelta(days=7)
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT CAST(strftime('%w', start_time) AS INTEGER) AS weekday,
                       SUM(duration) AS total_duration,
                       COUNT(*) AS sessions_count
                FROM study_sessions
                WHERE user_id = ? AND completed = 1
                  AND start_time >= ? AND start_time < ?
                GROUP BY weekday
                ORDER BY weekday
                """,
                (user_id, start.isoformat(), end.isoformat()),
            )
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    async def get_stats_by_subject(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[dict]:
        """Completed-session totals grouped by subject, largest first."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT subject, SUM(duration) AS total_duration, COUNT(*) AS sessions_count
                FROM study_sessions
                WHERE user_id = ? AND completed = 1
                  AND start_time >= ? AND start_time <= ?
                GROUP BY subject
                ORDER BY total_duration DESC
                """,
                (user_id, start.isoformat(), end.isoformat()),
            )
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    def _row_to_session(self, row: aiosqlite.Row) -> StudySession:
        """Convert a database row to a StudySession."""
        data = {
            "user_id": row["user_id"],
            "start_time": row["start_time"],
            "end_time": row["end_time"],
            "duration": row["duration"],
            "kind": row["session_type"],
            "subject": row["subject"],
            "pomodoros_completed": row["pomodoros_completed"],
            "completed": row["completed"],
            "notes": row["notes"],
            "interruptions": row["interruptions"],
        }
        return StudySession.from_dict(data, id=row["id"])


class GoalRepository:
    """Repository for study goals."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, goal: Goal) -> int:
        """Create a new goal."""
        data = goal.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO goals
                (user_id, title, description, target_time, accumulated_time, completed,
                 progress, goal_type, subject, deadline, milestones, completed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["user_id"],
                    data["title"],
                    data["description"],
                    data["target_time"],
                    data["current_time"],
                    int(data["completed"]),
                    data["progress"],
                    data["goal_type"],
                    data["subject"],
                    data["deadline"],
                    json.dumps(data["milestones"]),
                    data["completed_at"],
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, goal_id: int) -> Goal | None:
        """Get a goal by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM goals WHERE id = ?", (goal_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_goal(row)

    async def find_for_user(self, user_id: str, reference: str) -> Goal | None:
        """Resolve a goal by ID, falling back to a title search among active goals."""
        reference = reference.strip()
        if reference.isdigit():
            goal = await self.get(int(reference))
            if goal and goal.user_id == user_id:
                return goal

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM goals
                WHERE user_id = ? AND completed = 0 AND title LIKE ?
                ORDER BY created_at DESC LIMIT 1
                """,
                (user_id, f"%{reference}%"),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_goal(row)

    async def list_for_user(
        self, user_id: str, status: str = "all", now: datetime | None = None
    ) -> list[Goal]:
        """List a user's goals; status is all, active, completed or overdue."""
        now = now or datetime.now()
        query = "SELECT * FROM goals WHERE user_id = ?"
        params: list = [user_id]

        if status == "active":
            query += " AND completed = 0"
        elif status == "completed":
            query += " AND completed = 1"
        elif status == "overdue":
            query += " AND completed = 0 AND deadline IS NOT NULL AND deadline < ?"
            params.append(now.isoformat())

        query += " ORDER BY deadline IS NULL, deadline, created_at"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_goal(row) for row in rows]

    async def list_completed_between(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[Goal]:
        """Goals completed in ``[start, end)``, oldest completion first."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM goals
                WHERE user_id = ? AND completed = 1
                  AND completed_at >= ? AND completed_at < ?
                ORDER BY completed_at
                """,
                (user_id, start.isoformat(), end.isoformat()),
            )
            rows = await cursor.fetchall()
            return [self._row_to_goal(row) for row in rows]

    async def count_completed(self, user_id: str) -> int:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM goals WHERE user_id = ? AND completed = 1",
                (user_id,),
            )
            row = await cursor.fetchone()
            return row[0]

    async def update(self, goal: Goal) -> None:
        """Update an existing goal."""
        if goal.id is None:
            raise ValueError("Goal must have an ID to update")

        data = goal.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE goals SET
                    title = ?, description = ?, target_time = ?, accumulated_time = ?,
                    completed = ?, progress = ?, goal_type = ?, subject = ?,
                    deadline = ?, milestones = ?, completed_at = ?
                WHERE id = ?
                """,
                (
                    data["title"],
                    data["description"],
                    data["target_time"],
                    data["current_time"],
                    int(data["completed"]),
                    data["progress"],
                    data["goal_type"],
                    data["subject"],
                    data["deadline"],
                    json.dumps(data["milestones"]),
                    data["completed_at"],
                    goal.id,
                ),
            )
            await db.commit()

    async def delete(self, goal_id: int) -> None:
        """Delete a goal."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM goals WHERE id = ?", (goal_id,))
            await db.commit()

    def _row_to_goal(self, row: aiosqlite.Row) -> Goal:
        """Convert a database row to a Goal."""
        data = {
            "user_id": row["user_id"],
            "title": row["title"],
            "description": row["description"],
            "target_time": row["target_time"],
            "current_time": row["accumulated_time"],
            "completed": row["completed"],
            "progress": row["progress"],
            "goal_type": row["goal_type"],
            "subject": row["subject"],
            "deadline": row["deadline"],
            "milestones": json.loads(row["milestones"] or "[]"),
            "completed_at": row["completed_at"],
        }
        return Goal.from_dict(data, id=row["id"], created_at=_parse(row["created_at"]))


class ActiveSessionRepository:
    """Repository for running sessions.

    ``create`` lets ``aiosqlite.IntegrityError`` through when the user already
    has a record of the same kind.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, record: ActiveSession) -> int:
        """Create a new active session record."""
        record.last_updated = record.last_updated or datetime.now()
        data = record.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO active_sessions
                (user_id, session_type, study_session_id, subject, start_time, status,
                 current_cycle, pomodoros_completed, time_left, paused, paused_at,
                 goal_id, metadata, last_updated)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["user_id"],
                    data["kind"],
                    data["study_session_id"],
                    data["subject"],
                    data["start_time"],
                    data["phase"],
                    data["current_cycle"],
                    data["pomodoros_completed"],
                    data["time_left"],
                    int(data["paused"]),
                    data["paused_at"],
                    data["goal_id"],
                    json.dumps(data["metadata"]),
                    data["last_updated"],
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, record_id: int) -> ActiveSession | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM active_sessions WHERE id = ?", (record_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_record(row)

    async def get_for_user(self, user_id: str, kind: SessionKind) -> ActiveSession | None:
        """Get the user's record of the given kind, if any."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM active_sessions WHERE user_id = ? AND session_type = ?",
                (user_id, kind.value),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_record(row)

    async def list_by_kind(self, kind: SessionKind | None = None) -> list[ActiveSession]:
        """List records, optionally restricted to one kind."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            if kind:
                cursor = await db.execute(
                    "SELECT * FROM active_sessions WHERE session_type = ? ORDER BY start_time",
                    (kind.value,),
                )
            else:
                cursor = await db.execute(
                    "SELECT * FROM active_sessions ORDER BY start_time"
                )
            rows = await cursor.fetchall()
            return [self._row_to_record(row) for row in rows]

    async def update_state(self, record: ActiveSession, now: datetime | None = None) -> None:
        """Write the mutable state of a record and stamp ``last_updated``."""
        if record.id is None:
            raise ValueError("Active session must have an ID to update")

        record.last_updated = now or datetime.now()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE active_sessions SET
                    status = ?, current_cycle = ?, pomodoros_completed = ?,
                    time_left = ?, paused = ?, paused_at = ?, last_updated = ?
                WHERE id = ?
                """,
                (
                    record.phase.value,
                    record.current_cycle,
                    record.pomodoros_completed,
                    record.time_left,
                    int(record.paused),
                    _iso(record.paused_at),
                    record.last_updated.isoformat(),
                    record.id,
                ),
            )
            await db.commit()

    async def delete(self, record_id: int) -> bool:
        """Delete a record; True if it existed."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM active_sessions WHERE id = ?", (record_id,)
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_stale(
        self, cutoff: datetime, kind: SessionKind | None = None
    ) -> int:
        """Delete records not updated since ``cutoff``; returns the count removed."""
        async with aiosqlite.connect(self.db_path) as db:
            if kind:
                cursor = await db.execute(
                    "DELETE FROM active_sessions WHERE session_type = ? AND last_updated < ?",
                    (kind.value, cutoff.isoformat()),
                )
            else:
                cursor = await db.execute(
                    "DELETE FROM active_sessions WHERE last_updated < ?",
                    (cutoff.isoformat(),),
                )
            await db.commit()
            return cursor.rowcount

    def _row_to_record(self, row: aiosqlite.Row) -> ActiveSession:
        """Convert a database row to an ActiveSession."""
        data = {
            "user_id": row["user_id"],
            "kind": row["session_type"],
            "study_session_id": row["study_session_id"],
            "start_time": row["start_time"],
            "time_left": row["time_left"],
            "subject": row["subject"],
            "phase": row["status"],
            "current_cycle": row["current_cycle"],
            "pomodoros_completed": row["pomodoros_completed"],
            "paused": row["paused"],
            "paused_at": row["paused_at"],
            "goal_id": row["goal_id"],
            "metadata": json.loads(row["metadata"] or "{}"),
            "last_updated": row["last_updated"],
        }
        return ActiveSession.from_dict(data, id=row["id"])


class ReportSubscriptionRepository:
    """Repository for scheduled report deliveries."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def upsert(self, subscription: ReportSubscription) -> int:
        """Create or replace the user's subscription to one report type.

        The delivery history (``last_period``) of an existing row is kept.
        """
        data = subscription.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO report_subscriptions
                (user_id, username, report_type, channel_id, enabled)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (user_id, report_type) DO UPDATE SET
                    username = excluded.username,
                    channel_id = excluded.channel_id,
                    enabled = excluded.enabled
                """,
                (
                    data["user_id"],
                    data["username"],
                    data["report_type"],
                    data["channel_id"],
                    int(data["enabled"]),
                ),
            )
            await db.commit()
            cursor = await db.execute(
                "SELECT id FROM report_subscriptions WHERE user_id = ? AND report_type = ?",
                (data["user_id"], data["report_type"]),
            )
            row = await cursor.fetchone()
            return row[0]

    async def get(self, user_id: str, report_type: ReportType) -> ReportSubscription | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM report_subscriptions WHERE user_id = ? AND report_type = ?",
                (user_id, report_type.value),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_subscription(row)

    async def list_enabled(
        self, report_type: ReportType | None = None
    ) -> list[ReportSubscription]:
        """Enabled subscriptions, optionally of one report type."""
        query = "SELECT * FROM report_subscriptions WHERE enabled = 1"
        params: list = []
        if report_type:
            query += " AND report_type = ?"
            params.append(report_type.value)
        query += " ORDER BY id"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_subscription(row) for row in rows]

    async def mark_sent(self, subscription_id: int, period: str) -> None:
        """Remember the last period delivered to a subscription."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "UPDATE report_subscriptions SET last_period = ? WHERE id = ?",
                (period, subscription_id),
            )
            await db.commit()

    def _row_to_subscription(self, row: aiosqlite.Row) -> ReportSubscription:
        """Convert a database row to a ReportSubscription."""
        data = {
            "user_id": row["user_id"],
            "username": row["username"],
            "report_type": row["report_type"],
            "channel_id": row["channel_id"],
            "enabled": row["enabled"],
            "last_period": row["last_period"],
        }
        return ReportSubscription.from_dict(
            data, id=row["id"], created_at=_parse(row["created_at"])
        )
