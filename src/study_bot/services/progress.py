"""XP, streak, goal and reward bookkeeping."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ..config import LevelConfig
from ..db.repositories import GoalRepository, UserProfileRepository
from ..models.goal import Goal
from ..models.rewards import RewardDefinition, RewardSnapshot, newly_unlocked
from ..models.session import SessionKind
from ..models.user_profile import UnlockedReward, UserProfile

logger = logging.getLogger(__name__)


@dataclass
class GoalContribution:
    goal: Goal
    just_completed: bool = False
    leveled_up: bool = False


@dataclass
class SessionOutcome:
    """Result of recording one finished session on a profile."""

    user: UserProfile
    duration_minutes: int
    xp_gained: int
    leveled_up: bool = False
    new_rewards: list[RewardDefinition] = field(default_factory=list)


class ProgressService:
    """Applies study time to profiles and goals."""

    def __init__(
        self,
        users: UserProfileRepository,
        goals: GoalRepository,
        levels: LevelConfig | None = None,
        max_xp_per_session: int = 100,
    ):
        self.users = users
        self.goals = goals
        self.levels = levels or LevelConfig()
        self.max_xp_per_session = max_xp_per_session

    def award_xp(self, user: UserProfile, amount: int) -> bool:
        """Add XP to a profile; True if the user levelled up."""
        return user.add_xp(amount, self.levels)

    async def credit_unit(self, user_id: str, username: str) -> UserProfile:
        """Credit one completed pomodoro and its partial XP award."""
        user = await self.users.get_or_create(user_id, username)
        user.completed_pomodoros += 1
        self.award_xp(user, self.levels.unit_xp)
        await self.unlock_rewards(user)
        await self.users.update(user)
        return user

    async def apply_goal_time(
        self, goal_id: int, minutes: float, now: datetime | None = None
    ) -> GoalContribution | None:
        """Add studied minutes to a goal.

        The goal-completion bonus is granted to the owner the first time the
        goal reaches its target. Returns None if the goal no longer exists.
        """
        goal = await self.goals.get(goal_id)
        if goal is None:
            logger.warning("Goal %s no longer exists, skipping %.1f min", goal_id, minutes)
            return None

        just_completed = goal.add_time(minutes, now)
        await self.goals.update(goal)
        contribution = GoalContribution(goal=goal, just_completed=just_completed)

        if just_completed:
            logger.info("Goal %s completed by %s", goal.id, goal.user_id)
            user = await self.users.get_by_discord_id(goal.user_id)
            if user:
                contribution.leveled_up = self.award_xp(user, self.levels.goal_completion_xp)
                await self.unlock_rewards(user)
                await self.users.update(user)

        return contribution

    async def record_session(
        self,
        user_id: str,
        username: str,
        kind: SessionKind,
        duration_minutes: int,
        now: datetime | None = None,
    ) -> SessionOutcome:
        """Apply a finished session to the profile: totals, streak and XP."""
        now = now or datetime.now()
        user = await self.users.get_or_create(user_id, username)

        user.total_study_time += duration_minutes
        user.total_sessions += 1
        if kind is SessionKind.FOCUS:
            user.focus_sessions += 1
        user.update_streak(now)

        xp = min(self.max_xp_per_session, duration_minutes)
        leveled_up = self.award_xp(user, xp)
        new_rewards = await self.unlock_rewards(user, now)
        await self.users.update(user)

        return SessionOutcome(
            user=user,
            duration_minutes=duration_minutes,
            xp_gained=xp,
            leveled_up=leveled_up,
            new_rewards=new_rewards,
        )

    async def unlock_rewards(
        self, user: UserProfile, now: datetime | None = None
    ) -> list[RewardDefinition]:
        """Record rewards the profile newly satisfies (caller saves the profile)."""
        completed_goals = await self.goals.count_completed(user.discord_id)
        unlocked = newly_unlocked(RewardSnapshot(user=user, completed_goals=completed_goals))
        for reward in unlocked:
            user.rewards.append(
                UnlockedReward(
                    kind=reward.kind.value,
                    name=reward.name,
                    unlocked_at=now or datetime.now(),
                )
            )
            logger.info("User %s unlocked reward %s", user.discord_id, reward.kind.value)
        return unlocked
