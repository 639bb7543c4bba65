"""Database layer for study-bot."""

from .engine import get_db_path, init_db
from .repositories import (
    ActiveSessionRepository,
    GoalRepository,
    ReportSubscriptionRepository,
    StudySessionRepository,
    UserProfileRepository,
)

__all__ = [
    "ActiveSessionRepository",
    "get_db_path",
    "GoalRepository",
    "init_db",
    "ReportSubscriptionRepository",
    "StudySessionRepository",
    "UserProfileRepository",
]
