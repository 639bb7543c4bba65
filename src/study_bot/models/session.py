"""Active (in-progress) study session models."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class SessionKind(str, Enum):
    """Kind of timed session a user can run."""

    FOCUS = "focus"  # single timed block
    POMODORO = "pomodoro"  # work/break cycle


class Phase(str, Enum):
    """Phase of a running session. Focus sessions only ever use WORK."""

    WORK = "work"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"

    def display(self) -> str:
        return {
            Phase.WORK: "Working",
            Phase.SHORT_BREAK: "Short break",
            Phase.LONG_BREAK: "Long break",
        }[self]


@dataclass
class ActiveSession:
    """Durable record of "this user has a running session of this kind".

    At most one record exists per (user_id, kind); the database enforces it.
    ``time_left`` is the remaining time of the current phase in seconds as of
    ``last_updated``.
    """

    user_id: str
    kind: SessionKind
    study_session_id: int
    start_time: datetime
    time_left: float
    subject: str = "General"
    phase: Phase = Phase.WORK
    current_cycle: int = 1
    pomodoros_completed: int = 0
    paused: bool = False
    paused_at: datetime | None = None
    goal_id: int | None = None
    metadata: dict = field(default_factory=dict)
    last_updated: datetime | None = None
    id: int | None = None

    def remaining_at(self, now: datetime) -> float:
        """Remaining phase time (seconds) corrected for wall-clock drift.

        A paused session keeps its stored value; a running one loses the time
        elapsed since the record was last written, floored at zero.
        """
        if self.paused or self.last_updated is None:
            return max(0.0, self.time_left)
        elapsed = (now - self.last_updated).total_seconds()
        return max(0.0, self.time_left - elapsed)

    def is_stale(self, now: datetime, max_age: timedelta) -> bool:
        if self.last_updated is None:
            return True
        return now - self.last_updated > max_age

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "kind": self.kind.value,
            "study_session_id": self.study_session_id,
            "start_time": self.start_time.isoformat(),
            "time_left": self.time_left,
            "subject": self.subject,
            "phase": self.phase.value,
            "current_cycle": self.current_cycle,
            "pomodoros_completed": self.pomodoros_completed,
            "paused": self.paused,
            "paused_at": self.paused_at.isoformat() if self.paused_at else None,
            "goal_id": self.goal_id,
            "metadata": self.metadata,
            "last_updated": (
                self.last_updated.isoformat() if self.last_updated else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "ActiveSession":
        """Create from dictionary."""
        paused_at = None
        if data.get("paused_at"):
            paused_at = datetime.fromisoformat(data["paused_at"])

        last_updated = None
        if data.get("last_updated"):
            last_updated = datetime.fromisoformat(data["last_updated"])

        return cls(
            id=id,
            user_id=data["user_id"],
            kind=SessionKind(data["kind"]),
            study_session_id=data["study_session_id"],
            start_time=datetime.fromisoformat(data["start_time"]),
            time_left=float(data["time_left"]),
            subject=data.get("subject", "General"),
            phase=Phase(data.get("phase", "work")),
            current_cycle=data.get("current_cycle", 1),
            pomodoros_completed=data.get("pomodoros_completed", 0),
            paused=bool(data.get("paused", False)),
            paused_at=paused_at,
            goal_id=data.get("goal_id"),
            metadata=data.get("metadata") or {},
            last_updated=last_updated,
        )


@dataclass
class SessionSnapshot:
    """Read-only view of an in-memory session, for status and listings."""

    user_id: str
    username: str
    kind: SessionKind
    subject: str
    phase: Phase
    start_time: datetime
    elapsed_minutes: int
    remaining_minutes: int
    current_cycle: int
    units_completed: int
    paused: bool
    origin: str = "server"

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "kind": self.kind.value,
            "subject": self.subject,
            "phase": self.phase.value,
            "start_time": self.start_time.isoformat(),
            "elapsed_minutes": self.elapsed_minutes,
            "remaining_minutes": self.remaining_minutes,
            "current_cycle": self.current_cycle,
            "units_completed": self.units_completed,
            "paused": self.paused,
            "origin": self.origin,
        }
