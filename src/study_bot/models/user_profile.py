"""User profile: XP, level, streaks and lifetime counters."""

from dataclasses import dataclass, field
from datetime import datetime

from ..config import LevelConfig


@dataclass
class UnlockedReward:
    """A reward recorded on the profile once earned."""

    kind: str
    name: str
    unlocked_at: datetime


@dataclass
class UserProfile:
    """Per-user aggregate state."""

    discord_id: str
    username: str
    level: int = 1
    xp: int = 0
    xp_to_next_level: int = 100
    total_study_time: int = 0  # minutes
    total_sessions: int = 0
    completed_pomodoros: int = 0
    focus_sessions: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_session_date: datetime | None = None
    rewards: list[UnlockedReward] = field(default_factory=list)
    created_at: datetime | None = None
    id: int | None = None

    def add_xp(self, amount: int, levels: LevelConfig) -> bool:
        """Add XP, levelling up as many times as the total allows.

        The threshold for the next level is
        floor(base_xp * growth_factor ** (level - 1)).

        Returns:
            True if at least one level was gained
        """
        self.xp += amount
        leveled_up = False
        while self.xp >= self.xp_to_next_level:
            self.xp -= self.xp_to_next_level
            self.level += 1
            self.xp_to_next_level = int(
                levels.base_xp * levels.growth_factor ** (self.level - 1)
            )
            leveled_up = True
        return leveled_up

    def update_streak(self, now: datetime | None = None) -> None:
        """Update the daily streak for a session completed at ``now``.

        Days are compared by calendar date: same day keeps the streak, the next
        day extends it, any longer gap restarts it at 1.
        """
        now = now or datetime.now()

        if self.last_session_date is None:
            self.current_streak = 1
        else:
            days = (now.date() - self.last_session_date.date()).days
            if days == 1:
                self.current_streak += 1
            elif days > 1:
                self.current_streak = 1
            # same day (or clock went backwards): unchanged

        self.longest_streak = max(self.longest_streak, self.current_streak)
        self.last_session_date = now

    def has_reward(self, kind: str) -> bool:
        return any(r.kind == kind for r in self.rewards)

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "discord_id": self.discord_id,
            "username": self.username,
            "level": self.level,
            "xp": self.xp,
            "xp_to_next_level": self.xp_to_next_level,
            "total_study_time": self.total_study_time,
            "total_sessions": self.total_sessions,
            "completed_pomodoros": self.completed_pomodoros,
            "focus_sessions": self.focus_sessions,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_session_date": (
                self.last_session_date.isoformat() if self.last_session_date else None
            ),
            "rewards": [
                {
                    "kind": r.kind,
                    "name": r.name,
                    "unlocked_at": r.unlocked_at.isoformat(),
                }
                for r in self.rewards
            ],
        }

    @classmethod
    def from_dict(
        cls,
        data: dict,
        id: int | None = None,
        created_at: datetime | None = None,
    ) -> "UserProfile":
        """Create from dictionary."""
        last_session_date = None
        if data.get("last_session_date"):
            last_session_date = datetime.fromisoformat(data["last_session_date"])

        return cls(
            id=id,
            discord_id=data["discord_id"],
            username=data.get("username", ""),
            level=data.get("level", 1),
            xp=data.get("xp", 0),
            xp_to_next_level=data.get("xp_to_next_level", 100),
            total_study_time=data.get("total_study_time", 0),
            total_sessions=data.get("total_sessions", 0),
            completed_pomodoros=data.get("completed_pomodoros", 0),
            focus_sessions=data.get("focus_sessions", 0),
            current_streak=data.get("current_streak", 0),
            longest_streak=data.get("longest_streak", 0),
            last_session_date=last_session_date,
            rewards=[
                UnlockedReward(
                    kind=r["kind"],
                    name=r["name"],
                    unlocked_at=datetime.fromisoformat(r["unlocked_at"]),
                )
                for r in data.get("rewards", [])
            ],
            created_at=created_at,
        )

    def get_summary(self) -> str:
        """Short multi-line summary for chat replies and the CLI."""
        summary = f"{self.username} - level {self.level} ({self.xp}/{self.xp_to_next_level} XP)\n"
        summary += f"Studied: {self.total_study_time} min in {self.total_sessions} sessions\n"
        summary += f"Pomodoros: {self.completed_pomodoros}, focus sessions: {self.focus_sessions}\n"
        summary += f"Streak: {self.current_streak} days (best {self.longest_streak})\n"
        if self.rewards:
            summary += f"Rewards: {', '.join(r.name for r in self.rewards)}\n"
        return summary
