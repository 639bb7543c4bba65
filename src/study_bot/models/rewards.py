"""Reward catalog.

Every reward is a tag mapped to a pure evaluator over a read-only snapshot.
Anything that needs the database (completed goal count) is fetched before
evaluation, so evaluators never do I/O.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .user_profile import UserProfile


class RewardKind(str, Enum):
    FOCUS_MASTER = "focus_master"
    POMODORO_KING = "pomodoro_king"
    STREAK_WARRIOR = "streak_warrior"
    GOAL_ACHIEVER = "goal_achiever"
    TIME_LORD = "time_lord"
    LEVEL_MASTER = "level_master"


@dataclass(frozen=True)
class RewardSnapshot:
    user: UserProfile
    completed_goals: int = 0


@dataclass(frozen=True)
class RewardDefinition:
    kind: RewardKind
    name: str
    description: str
    evaluate: Callable[[RewardSnapshot], bool]


@dataclass
class RewardStatus:
    kind: RewardKind
    name: str
    description: str
    unlocked: bool

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "name": self.name,
            "description": self.description,
            "unlocked": self.unlocked,
        }


REWARD_CATALOG: dict[RewardKind, RewardDefinition] = {
    d.kind: d
    for d in [
        RewardDefinition(
            RewardKind.FOCUS_MASTER,
            "Focus Master",
            "Complete 10 focus sessions",
            lambda s: s.user.focus_sessions >= 10,
        ),
        RewardDefinition(
            RewardKind.POMODORO_KING,
            "Pomodoro King",
            "Complete 50 pomodoros",
            lambda s: s.user.completed_pomodoros >= 50,
        ),
        RewardDefinition(
            RewardKind.STREAK_WARRIOR,
            "Streak Warrior",
            "Keep a 7 day study streak",
            lambda s: s.user.current_streak >= 7,
        ),
        RewardDefinition(
            RewardKind.GOAL_ACHIEVER,
            "Goal Achiever",
            "Complete 5 study goals",
            lambda s: s.completed_goals >= 5,
        ),
        RewardDefinition(
            RewardKind.TIME_LORD,
            "Time Lord",
            "Study for 24 hours in total",
            lambda s: s.user.total_study_time >= 24 * 60,
        ),
        RewardDefinition(
            RewardKind.LEVEL_MASTER,
            "Level Master",
            "Reach level 10",
            lambda s: s.user.level >= 10,
        ),
    ]
}


def evaluate_rewards(snapshot: RewardSnapshot) -> list[RewardStatus]:
    """Status of every reward; already-recorded rewards count as unlocked."""
    return [
        RewardStatus(
            kind=d.kind,
            name=d.name,
            description=d.description,
            unlocked=snapshot.user.has_reward(d.kind.value) or d.evaluate(snapshot),
        )
        for d in REWARD_CATALOG.values()
    ]


def newly_unlocked(snapshot: RewardSnapshot) -> list[RewardDefinition]:
    """Rewards the snapshot satisfies that are not yet on the profile."""
    return [
        d
        for d in REWARD_CATALOG.values()
        if not snapshot.user.has_reward(d.kind.value) and d.evaluate(snapshot)
    ]
