"""Tests for data models."""

from datetime import datetime, timedelta

import pytest

from study_bot.config import LevelConfig
from study_bot.models.goal import Goal, GoalType
from study_bot.models.report import ReportType, period_bounds, period_key
from study_bot.models.rewards import (
    REWARD_CATALOG,
    RewardKind,
    RewardSnapshot,
    evaluate_rewards,
    newly_unlocked,
)
from study_bot.models.session import ActiveSession, Phase, SessionKind
from study_bot.models.study_session import StudyKind, StudySession, elapsed_minutes
from study_bot.models.user_profile import UnlockedReward, UserProfile


class TestUserProfileXp:
    """Tests for XP accrual and levelling."""

    def test_single_level_up_carries_remainder(self):
        """120 XP from a fresh profile reaches level 2 with 20 XP."""
        user = UserProfile(discord_id="1", username="ana")

        leveled = user.add_xp(120, LevelConfig())

        assert leveled is True
        assert user.level == 2
        assert user.xp == 20
        assert user.xp_to_next_level == 150

    def test_multi_level_gain_loops(self):
        """270 XP crosses two thresholds in one call."""
        user = UserProfile(discord_id="1", username="ana")

        user.add_xp(270, LevelConfig())

        assert user.level == 3
        assert user.xp == 20
        assert user.xp_to_next_level == 225

    def test_below_threshold_keeps_level(self):
        user = UserProfile(discord_id="1", username="ana")

        assert user.add_xp(99, LevelConfig()) is False
        assert user.level == 1
        assert user.xp == 99

    def test_exact_threshold_levels_up(self):
        user = UserProfile(discord_id="1", username="ana")

        user.add_xp(100, LevelConfig())

        assert user.level == 2
        assert user.xp == 0


class TestUserProfileStreak:
    """Tests for the daily streak."""

    def test_first_session_starts_streak(self):
        user = UserProfile(discord_id="1", username="ana")

        user.update_streak(datetime(2024, 3, 4, 10))

        assert user.current_streak == 1
        assert user.longest_streak == 1
        assert user.last_session_date == datetime(2024, 3, 4, 10)

    def test_same_day_keeps_streak(self):
        user = UserProfile(discord_id="1", username="ana")
        user.update_streak(datetime(2024, 3, 4, 8))

        user.update_streak(datetime(2024, 3, 4, 22))

        assert user.current_streak == 1
        assert user.last_session_date == datetime(2024, 3, 4, 22)

    def test_next_calendar_day_extends(self):
        """Consecutive dates count even when less than 24h apart."""
        user = UserProfile(discord_id="1", username="ana")
        user.update_streak(datetime(2024, 3, 4, 23, 30))

        user.update_streak(datetime(2024, 3, 5, 0, 15))

        assert user.current_streak == 2
        assert user.longest_streak == 2

    def test_gap_resets_but_keeps_longest(self):
        user = UserProfile(discord_id="1", username="ana")
        for day in (1, 2, 3):
            user.update_streak(datetime(2024, 3, day, 9))
        assert user.current_streak == 3

        user.update_streak(datetime(2024, 3, 6, 9))

        assert user.current_streak == 1
        assert user.longest_streak == 3

    def test_profile_round_trip_keeps_rewards(self):
        user = UserProfile(discord_id="1", username="ana", level=4, xp=30)
        user.rewards.append(
            UnlockedReward(kind="time_lord", name="Time Lord", unlocked_at=datetime(2024, 1, 1))
        )

        restored = UserProfile.from_dict(user.to_dict(), id=5)

        assert restored.id == 5
        assert restored.level == 4
        assert restored.has_reward("time_lord")
        assert not restored.has_reward("focus_master")


class TestGoal:
    """Tests for goal progress."""

    def test_progress_is_floored_percentage(self):
        goal = Goal(user_id="1", title="Read", target_time=90)

        completed = goal.add_time(30)

        assert completed is False
        assert goal.progress == 33

    def test_just_completed_reported_once(self):
        goal = Goal(user_id="1", title="Read", target_time=60)

        assert goal.add_time(50) is False
        assert goal.add_time(15) is True
        assert goal.completed is True
        assert goal.progress == 100
        assert goal.add_time(30) is False
        assert goal.progress == 100

    def test_completion_is_timestamped_once(self):
        goal = Goal(user_id="1", title="Read", target_time=60)
        done_at = datetime(2024, 3, 4, 18, 30)

        goal.add_time(30, datetime(2024, 3, 4, 10))
        assert goal.completed_at is None
        goal.add_time(30, done_at)
        goal.add_time(30, datetime(2024, 3, 5))

        assert goal.completed_at == done_at
        assert Goal.from_dict({**goal.to_dict()}).completed_at == done_at

    def test_zero_target_never_completes(self):
        goal = Goal(user_id="1", title="Empty", target_time=0)

        assert goal.add_time(10) is False
        assert goal.completed is False

    def test_overdue(self):
        now = datetime(2024, 3, 4)
        goal = Goal(user_id="1", title="Read", target_time=60, deadline=now - timedelta(days=1))

        assert goal.is_overdue(now)
        goal.completed = True
        assert not goal.is_overdue(now)

    def test_from_dict_with_milestones(self):
        data = {
            "user_id": "1",
            "title": "Calculus",
            "target_time": 600,
            "current_time": 120,
            "goal_type": "weekly",
            "milestones": [{"title": "Limits", "completed": True, "completed_at": None}],
        }

        goal = Goal.from_dict(data, id=3)

        assert goal.goal_type == GoalType.WEEKLY
        assert goal.milestones[0].title == "Limits"
        assert goal.milestones[0].completed is True


class TestStudySession:
    """Tests for study records."""

    def test_close_sets_minutes(self):
        start = datetime(2024, 3, 4, 9)
        session = StudySession(user_id="1", start_time=start, kind=StudyKind.FOCUS)

        duration = session.close(start + timedelta(minutes=42, seconds=50), pomodoros_completed=0)

        assert duration == 42
        assert session.completed is True
        assert session.end_time == start + timedelta(minutes=42, seconds=50)

    def test_elapsed_minutes_never_negative(self):
        now = datetime(2024, 3, 4, 9)
        assert elapsed_minutes(now, now - timedelta(minutes=5)) == 0


class TestActiveSession:
    """Tests for durable session records."""

    def _record(self, **kwargs) -> ActiveSession:
        defaults = dict(
            user_id="1",
            kind=SessionKind.POMODORO,
            study_session_id=1,
            start_time=datetime(2024, 3, 4, 9),
            time_left=600.0,
            last_updated=datetime(2024, 3, 4, 9, 10),
        )
        defaults.update(kwargs)
        return ActiveSession(**defaults)

    def test_remaining_subtracts_downtime(self):
        record = self._record()

        assert record.remaining_at(datetime(2024, 3, 4, 9, 12)) == pytest.approx(480)

    def test_remaining_floors_at_zero(self):
        record = self._record()

        assert record.remaining_at(datetime(2024, 3, 4, 11)) == 0

    def test_paused_remaining_unchanged(self):
        record = self._record(paused=True)

        assert record.remaining_at(datetime(2024, 3, 4, 11)) == 600

    def test_round_trip(self):
        record = self._record(phase=Phase.LONG_BREAK, metadata={"username": "ana"})

        restored = ActiveSession.from_dict(record.to_dict(), id=9)

        assert restored.id == 9
        assert restored.phase == Phase.LONG_BREAK
        assert restored.kind == SessionKind.POMODORO
        assert restored.metadata == {"username": "ana"}


class TestRewards:
    """Tests for reward evaluation."""

    def test_catalog_covers_every_kind(self):
        assert set(REWARD_CATALOG) == set(RewardKind)

    def test_thresholds(self):
        user = UserProfile(
            discord_id="1",
            username="ana",
            focus_sessions=10,
            completed_pomodoros=49,
            total_study_time=1440,
        )

        unlocked = {r.kind for r in newly_unlocked(RewardSnapshot(user=user, completed_goals=5))}

        assert unlocked == {
            RewardKind.FOCUS_MASTER,
            RewardKind.TIME_LORD,
            RewardKind.GOAL_ACHIEVER,
        }

    def test_recorded_reward_not_unlocked_again(self):
        user = UserProfile(discord_id="1", username="ana", level=10)
        user.rewards.append(
            UnlockedReward(kind="level_master", name="Level Master", unlocked_at=datetime(2024, 1, 1))
        )
        snapshot = RewardSnapshot(user=user)

        assert newly_unlocked(snapshot) == []
        statuses = {s.kind: s.unlocked for s in evaluate_rewards(snapshot)}
        assert statuses[RewardKind.LEVEL_MASTER] is True
        assert statuses[RewardKind.STREAK_WARRIOR] is False


class TestReportPeriods:
    """Tests for report period arithmetic."""

    def test_day(self):
        start, end = period_bounds(ReportType.DAILY, datetime(2024, 3, 6, 15, 45))

        assert start == datetime(2024, 3, 6)
        assert end == datetime(2024, 3, 7)

    def test_week_starts_on_sunday(self):
        # Wednesday; a Sunday belongs to the week it starts
        assert period_bounds(ReportType.WEEKLY, datetime(2024, 3, 6, 12)) == (
            datetime(2024, 3, 3),
            datetime(2024, 3, 10),
        )
        assert period_bounds(ReportType.WEEKLY, datetime(2024, 3, 10))[0] == datetime(2024, 3, 10)

    def test_month_rolls_over_year(self):
        start, end = period_bounds(ReportType.MONTHLY, datetime(2023, 12, 31, 23, 59))

        assert start == datetime(2023, 12, 1)
        assert end == datetime(2024, 1, 1)

    @pytest.mark.parametrize(
        "report_type, expected",
        [
            (ReportType.DAILY, "2024-03-06"),
            (ReportType.WEEKLY, "2024-03-03"),
            (ReportType.MONTHLY, "2024-03"),
        ],
    )
    def test_period_key(self, report_type, expected):
        assert period_key(report_type, datetime(2024, 3, 6, 20)) == expected
