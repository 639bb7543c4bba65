"""User profile, stats and goal routes."""

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query

from ...db.repositories import GoalRepository, StudySessionRepository, UserProfileRepository
from ...models.rewards import RewardSnapshot, evaluate_rewards
from .deps import get_goals, get_studies, get_users

router = APIRouter(prefix="/users", tags=["users"])


async def _require_user(discord_id: str, users: UserProfileRepository):
    user = await users.get_by_discord_id(discord_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/top")
async def get_top_users(
    limit: int = Query(10, ge=1, le=100),
    users: UserProfileRepository = Depends(get_users),
):
    """Leaderboard by level, then XP."""
    top = await users.list_top(limit)
    return [{"rank": rank, **user.to_dict()} for rank, user in enumerate(top, start=1)]


@router.get("/{discord_id}")
async def get_user(
    discord_id: str,
    users: UserProfileRepository = Depends(get_users),
    goals: GoalRepository = Depends(get_goals),
):
    """Profile with reward status."""
    user = await _require_user(discord_id, users)
    completed = await goals.count_completed(discord_id)
    statuses = evaluate_rewards(RewardSnapshot(user=user, completed_goals=completed))
    return {
        **user.to_dict(),
        "completed_goals": completed,
        "reward_status": [s.to_dict() for s in statuses],
    }


@router.get("/{discord_id}/stats")
async def get_stats(
    discord_id: str,
    users: UserProfileRepository = Depends(get_users),
    studies: StudySessionRepository = Depends(get_studies),
):
    """Today's totals, this week by day, and the last 7 days by subject."""
    await _require_user(discord_id, users)
    now = datetime.now()
    return {
        "today": await studies.get_daily_stats(discord_id, now),
        "week": await studies.get_weekly_stats(discord_id, now),
        "subjects": await studies.get_stats_by_subject(
            discord_id, now - timedelta(days=7), now
        ),
        "recent": [s.to_dict() for s in await studies.list_for_user(discord_id, limit=10)],
    }


@router.get("/{discord_id}/goals")
async def get_goals_for_user(
    discord_id: str,
    status: str = Query("all", pattern="^(all|active|completed|overdue)$"),
    goals: GoalRepository = Depends(get_goals),
):
    """A user's goals, optionally filtered."""
    items = await goals.list_for_user(discord_id, status)
    return [{"id": goal.id, **goal.to_dict()} for goal in items]
