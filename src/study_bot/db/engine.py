"""Database engine setup and initialization."""

from pathlib import Path

import aiosqlite

from ..config import get_settings


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    if data_dir is None:
        data_dir = get_settings().data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "study_bot.db"


async def _run_migrations(db: aiosqlite.Connection) -> None:
    """Run database migrations for schema updates."""
    cursor = await db.execute("PRAGMA table_info(users)")
    columns = await cursor.fetchall()
    user_columns = {col[1] for col in columns}

    # Databases created before rewards were tracked
    if "rewards" not in user_columns:
        await db.execute("ALTER TABLE users ADD COLUMN rewards TEXT DEFAULT '[]'")

    cursor = await db.execute("PRAGMA table_info(study_sessions)")
    columns = await cursor.fetchall()
    study_columns = {col[1] for col in columns}

    if "interruptions" not in study_columns:
        await db.execute(
            "ALTER TABLE study_sessions ADD COLUMN interruptions INTEGER DEFAULT 0"
        )

    cursor = await db.execute("PRAGMA table_info(goals)")
    columns = await cursor.fetchall()
    goal_columns = {col[1] for col in columns}

    # Databases created before goal completion was timestamped
    if "completed_at" not in goal_columns:
        await db.execute("ALTER TABLE goals ADD COLUMN completed_at TIMESTAMP")

    await db.commit()


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()

    async with aiosqlite.connect(db_path) as db:
        # User profiles (XP, level, streaks)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                discord_id TEXT UNIQUE NOT NULL,
                username TEXT NOT NULL,
                level INTEGER DEFAULT 1,
                xp INTEGER DEFAULT 0,
                xp_to_next_level INTEGER DEFAULT 100,
                total_study_time INTEGER DEFAULT 0,
                total_sessions INTEGER DEFAULT 0,
                completed_pomodoros INTEGER DEFAULT 0,
                focus_sessions INTEGER DEFAULT 0,
                current_streak INTEGER DEFAULT 0,
                longest_streak INTEGER DEFAULT 0,
                last_session_date TIMESTAMP,
                rewards TEXT DEFAULT '[]',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Study history, append-only
        await db.execute("""
            CREATE TABLE IF NOT EXISTS study_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                start_time TIMESTAMP NOT NULL,
                end_time TIMESTAMP,
                duration INTEGER DEFAULT 0,
                session_type TEXT NOT NULL DEFAULT 'regular',
                completed INTEGER DEFAULT 0,
                pomodoros_completed INTEGER DEFAULT 0,
                subject TEXT DEFAULT 'General',
                notes TEXT DEFAULT '',
                interruptions INTEGER DEFAULT 0
            )
        """)

        # Goals
        await db.execute("""
            CREATE TABLE IF NOT EXISTS goals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT DEFAULT '',
                target_time INTEGER DEFAULT 0,
                accumulated_time REAL DEFAULT 0,
                completed INTEGER DEFAULT 0,
                progress INTEGER DEFAULT 0,
                goal_type TEXT DEFAULT 'custom',
                subject TEXT DEFAULT 'General',
                deadline TIMESTAMP,
                milestones TEXT DEFAULT '[]',
                completed_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Running sessions, one per (user, kind)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS active_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                session_type TEXT NOT NULL,
                study_session_id INTEGER NOT NULL,
                subject TEXT DEFAULT 'General',
                start_time TIMESTAMP NOT NULL,
                status TEXT DEFAULT 'work',
                current_cycle INTEGER DEFAULT 1,
                pomodoros_completed INTEGER DEFAULT 0,
                time_left REAL NOT NULL,
                paused INTEGER DEFAULT 0,
                paused_at TIMESTAMP,
                goal_id INTEGER,
                metadata TEXT DEFAULT '{}',
                last_updated TIMESTAMP NOT NULL,
                UNIQUE (user_id, session_type),
                FOREIGN KEY (study_session_id) REFERENCES study_sessions(id)
            )
        """)

        # Scheduled report deliveries, one per (user, report type)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS report_subscriptions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                username TEXT NOT NULL,
                report_type TEXT NOT NULL,
                channel_id INTEGER NOT NULL,
                enabled INTEGER DEFAULT 1,
                last_period TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (user_id, report_type)
            )
        """)

        # Create indexes for common queries
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_study_sessions_user_start
            ON study_sessions(user_id, start_time)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_goals_user
            ON goals(user_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_active_sessions_last_updated
            ON active_sessions(last_updated)
        """)

        await db.commit()

        # Run migrations for existing databases
        await _run_migrations(db)
