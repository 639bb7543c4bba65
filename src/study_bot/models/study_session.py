"""Study history records."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class StudyKind(str, Enum):
    POMODORO = "pomodoro"
    FOCUS = "focus"
    REGULAR = "regular"


@dataclass
class StudySession:
    """One study interval, open while the session runs.

    Records are never deleted; reporting reads them back.
    """

    user_id: str
    start_time: datetime
    kind: StudyKind = StudyKind.REGULAR
    subject: str = "General"
    end_time: datetime | None = None
    duration: int = 0  # minutes, 0 until closed
    pomodoros_completed: int = 0
    completed: bool = False
    notes: str = ""
    interruptions: int = 0
    id: int | None = None

    def close(self, end_time: datetime, pomodoros_completed: int | None = None) -> int:
        """Mark the interval finished and return its duration in minutes."""
        self.end_time = end_time
        self.duration = elapsed_minutes(self.start_time, end_time)
        self.completed = True
        if pomodoros_completed is not None:
            self.pomodoros_completed = pomodoros_completed
        return self.duration

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration": self.duration,
            "kind": self.kind.value,
            "subject": self.subject,
            "pomodoros_completed": self.pomodoros_completed,
            "completed": self.completed,
            "notes": self.notes,
            "interruptions": self.interruptions,
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "StudySession":
        """Create from dictionary."""
        end_time = None
        if data.get("end_time"):
            end_time = datetime.fromisoformat(data["end_time"])

        return cls(
            id=id,
            user_id=data["user_id"],
            start_time=datetime.fromisoformat(data["start_time"]),
            end_time=end_time,
            duration=data.get("duration", 0),
            kind=StudyKind(data.get("kind", "regular")),
            subject=data.get("subject", "General"),
            pomodoros_completed=data.get("pomodoros_completed", 0),
            completed=bool(data.get("completed", False)),
            notes=data.get("notes", ""),
            interruptions=data.get("interruptions", 0),
        )


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, never negative."""
    return max(0, int((end - start).total_seconds() // 60))
