"""Settings for study-bot.

Values come from ``STUDY_BOT_*`` environment variables (or a ``.env`` file).
The session core never reads the environment itself: it receives the small
frozen config objects built by :class:`Settings`.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class PomodoroConfig:
    """Phase lengths and long-break cadence (minutes)."""

    work_minutes: float = 25
    short_break_minutes: float = 5
    long_break_minutes: float = 15
    long_break_interval: int = 4


@dataclass(frozen=True)
class LevelConfig:
    """XP curve and awards."""

    base_xp: int = 100
    growth_factor: float = 1.5
    study_session_xp: int = 50
    goal_completion_xp: int = 100

    @property
    def unit_xp(self) -> int:
        """XP granted for one completed pomodoro."""
        return self.study_session_xp // 2


@dataclass(frozen=True)
class TimerConfig:
    """Phase timer tick and persistence cadence (seconds)."""

    tick_seconds: float = 1.0
    persist_every_seconds: float = 30.0


@dataclass(frozen=True)
class SessionLimits:
    max_focus_minutes: int = 480
    stale_session_hours: float = 12
    max_xp_per_session: int = 100


@dataclass(frozen=True)
class ReportConfig:
    """When scheduled reports go out (local time)."""

    daily_time: str = "20:00"
    weekly_day: int = 0  # 0 = Sunday
    check_seconds: float = 60.0

    @property
    def daily_hour_minute(self) -> tuple[int, int]:
        hour, minute = self.daily_time.split(":")
        return int(hour), int(minute)


class Settings(BaseSettings):
    """Process-wide settings."""

    model_config = SettingsConfigDict(
        env_prefix="STUDY_BOT_", env_file=".env", extra="ignore"
    )

    discord_token: str | None = None
    guild_id: int | None = None
    data_dir: Path = Path("data")
    log_level: str = "INFO"

    work_minutes: float = 25
    short_break_minutes: float = 5
    long_break_minutes: float = 15
    long_break_interval: int = 4

    base_xp: int = 100
    growth_factor: float = 1.5
    study_session_xp: int = 50
    goal_completion_xp: int = 100

    max_focus_minutes: int = 480
    stale_session_hours: float = 12
    cleanup_interval_hours: float = 3

    tick_seconds: float = 1.0
    persist_every_seconds: float = 30.0

    report_daily_time: str = "20:00"
    report_weekly_day: int = Field(default=0, ge=0, le=6)
    report_check_seconds: float = 60.0

    @field_validator("report_daily_time")
    @classmethod
    def _check_daily_time(cls, value: str) -> str:
        try:
            hour, minute = (int(part) for part in value.split(":"))
        except ValueError as e:
            raise ValueError(f"report time must be HH:MM, got {value!r}") from e
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"report time out of range: {value!r}")
        return f"{hour:02d}:{minute:02d}"

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return value

    @property
    def db_path(self) -> Path:
        return self.data_dir / "study_bot.db"

    def pomodoro(self) -> PomodoroConfig:
        return PomodoroConfig(
            work_minutes=self.work_minutes,
            short_break_minutes=self.short_break_minutes,
            long_break_minutes=self.long_break_minutes,
            long_break_interval=self.long_break_interval,
        )

    def levels(self) -> LevelConfig:
        return LevelConfig(
            base_xp=self.base_xp,
            growth_factor=self.growth_factor,
            study_session_xp=self.study_session_xp,
            goal_completion_xp=self.goal_completion_xp,
        )

    def timer(self) -> TimerConfig:
        return TimerConfig(
            tick_seconds=self.tick_seconds,
            persist_every_seconds=self.persist_every_seconds,
        )

    def reports(self) -> ReportConfig:
        return ReportConfig(
            daily_time=self.report_daily_time,
            weekly_day=self.report_weekly_day,
            check_seconds=self.report_check_seconds,
        )

    def limits(self) -> SessionLimits:
        return SessionLimits(
            max_focus_minutes=self.max_focus_minutes,
            stale_session_hours=self.stale_session_hours,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the cached process settings."""
    return Settings()
