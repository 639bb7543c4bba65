"""Study goal models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class GoalType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


@dataclass
class Milestone:
    title: str
    completed: bool = False
    completed_at: datetime | None = None


@dataclass
class Goal:
    """A user-defined study target measured in minutes.

    ``progress`` is derived: min(100, floor(current_time / target_time * 100)).
    """

    user_id: str
    title: str
    target_time: int = 0  # minutes
    current_time: float = 0  # minutes accumulated
    description: str = ""
    completed: bool = False
    progress: int = 0
    goal_type: GoalType = GoalType.CUSTOM
    subject: str = "General"
    deadline: datetime | None = None
    milestones: list[Milestone] = field(default_factory=list)
    completed_at: datetime | None = None
    created_at: datetime | None = None
    id: int | None = None

    def update_progress(self, now: datetime | None = None) -> bool:
        """Recompute progress, stamping ``completed_at`` on completion.

        Returns:
            True only on the call that first takes the goal to 100%
        """
        if self.target_time <= 0:
            return False

        self.progress = min(100, int(self.current_time * 100 // self.target_time))
        if self.progress >= 100 and not self.completed:
            self.completed = True
            self.completed_at = now or datetime.now()
            return True
        return False

    def add_time(self, minutes: float, now: datetime | None = None) -> bool:
        """Add studied minutes; True if this addition completed the goal."""
        self.current_time += minutes
        return self.update_progress(now)

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.completed or self.deadline is None:
            return False
        return self.deadline < (now or datetime.now())

    def add_milestone(self, title: str) -> Milestone:
        milestone = Milestone(title=title)
        self.milestones.append(milestone)
        return milestone

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "target_time": self.target_time,
            "current_time": self.current_time,
            "completed": self.completed,
            "progress": self.progress,
            "goal_type": self.goal_type.value,
            "subject": self.subject,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "milestones": [
                {
                    "title": m.title,
                    "completed": m.completed,
                    "completed_at": m.completed_at.isoformat() if m.completed_at else None,
                }
                for m in self.milestones
            ],
        }

    @classmethod
    def from_dict(
        cls,
        data: dict,
        id: int | None = None,
        created_at: datetime | None = None,
    ) -> "Goal":
        """Create from dictionary."""
        deadline = None
        if data.get("deadline"):
            deadline = datetime.fromisoformat(data["deadline"])
        completed_at = None
        if data.get("completed_at"):
            completed_at = datetime.fromisoformat(data["completed_at"])

        return cls(
            id=id,
            user_id=data["user_id"],
            title=data["title"],
            description=data.get("description", ""),
            target_time=data.get("target_time", 0),
            current_time=data.get("current_time", 0),
            completed=bool(data.get("completed", False)),
            progress=data.get("progress", 0),
            goal_type=GoalType(data.get("goal_type", "custom")),
            subject=data.get("subject", "General"),
            deadline=deadline,
            completed_at=completed_at,
            milestones=[
                Milestone(
                    title=m["title"],
                    completed=m.get("completed", False),
                    completed_at=(
                        datetime.fromisoformat(m["completed_at"])
                        if m.get("completed_at")
                        else None
                    ),
                )
                for m in data.get("milestones", [])
            ],
            created_at=created_at,
        )
