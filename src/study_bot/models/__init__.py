"""Data models for study-bot."""

from .goal import Goal, GoalType, Milestone
from .report import ReportSubscription, ReportType
from .rewards import RewardKind, RewardSnapshot, RewardStatus, evaluate_rewards
from .session import ActiveSession, Phase, SessionKind, SessionSnapshot
from .study_session import StudyKind, StudySession
from .user_profile import UnlockedReward, UserProfile

__all__ = [
    "ActiveSession",
    "evaluate_rewards",
    "Goal",
    "GoalType",
    "Milestone",
    "Phase",
    "ReportSubscription",
    "ReportType",
    "RewardKind",
    "RewardSnapshot",
    "RewardStatus",
    "SessionKind",
    "SessionSnapshot",
    "StudyKind",
    "StudySession",
    "UnlockedReward",
    "UserProfile",
]
