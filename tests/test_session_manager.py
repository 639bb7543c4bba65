"""Tests for the pomodoro and focus session managers."""

import asyncio
from datetime import timedelta

import pytest

from study_bot.models.goal import Goal
from study_bot.models.session import ActiveSession, Phase, SessionKind
from study_bot.models.study_session import StudyKind, StudySession
from study_bot.services.notifications import NotifyTargets

from conftest import START


class TestPomodoroStart:
    """Tests for starting pomodoro sessions."""

    async def test_start_creates_records_and_timer(self, pomodoro, actives, studies, sink, targets):
        result = await pomodoro.start("u1", "ana", targets, subject="Math")

        assert result.success
        record = await actives.get_for_user("u1", SessionKind.POMODORO)
        assert record.id == result.session_id
        assert record.subject == "Math"
        assert record.metadata["username"] == "ana"
        assert record.metadata["server_channel_id"] == 42

        study = await studies.get(record.study_session_id)
        assert study.kind == StudyKind.POMODORO
        assert study.completed is False

        state = pomodoro.registry.get("u1")
        assert state.timer is not None and state.timer.active
        assert sink.titles("dm:u1") == ["Pomodoro started"]

    async def test_second_start_fails_without_new_record(self, pomodoro, actives, targets):
        await pomodoro.start("u1", "ana", targets)

        result = await pomodoro.start("u1", "ana", targets)

        assert not result.success
        assert "already" in result.message
        assert len(await actives.list_by_kind(SessionKind.POMODORO)) == 1

    async def test_durable_orphan_is_replaced(self, pomodoro, actives, studies, targets):
        study_id = await studies.create(StudySession(user_id="u1", start_time=START))
        old_id = await actives.create(
            ActiveSession(
                user_id="u1",
                kind=SessionKind.POMODORO,
                study_session_id=study_id,
                start_time=START,
                time_left=100.0,
                last_updated=START,
            )
        )

        result = await pomodoro.start("u1", "ana", targets)

        assert result.success
        assert result.session_id != old_id
        assert await actives.get(old_id) is None

    async def test_goal_must_belong_to_user(self, pomodoro, goals, actives, studies, targets):
        goal_id = await goals.create(Goal(user_id="someone-else", title="Theirs", target_time=60))

        result = await pomodoro.start("u1", "ana", targets, goal_id=goal_id)

        assert not result.success
        assert result.message == "Goal not found."
        assert await actives.list_by_kind() == []
        assert await studies.list_for_user("u1") == []

    async def test_dm_failure_falls_back_to_channel(self, pomodoro, sink, targets):
        sink.failing.add("dm:u1")

        result = await pomodoro.start("u1", "ana", targets)

        assert result.success
        [(target, text)] = sink.sent
        assert target == "channel:42"
        assert "<@u1>" in text


class TestPomodoroStop:
    """Tests for stopping pomodoro sessions."""

    async def test_stop_after_start_finalizes(self, pomodoro, actives, studies, users, scheduler, targets):
        started = await pomodoro.start("u1", "ana", targets)
        study_id = started.data["study_session_id"]
        await scheduler.advance(10 * 60 + 5)

        result = await pomodoro.stop("u1")

        assert result.success
        assert result.data["duration_minutes"] == 10
        assert await actives.list_by_kind() == []
        study = await studies.get(study_id)
        assert study.completed is True
        assert study.end_time == scheduler.now()
        assert study.duration == 10
        assert "u1" not in pomodoro.registry

        user = await users.get_by_discord_id("u1")
        assert user.total_study_time == 10
        assert user.total_sessions == 1
        assert user.current_streak == 1

    async def test_stop_survives_profile_and_notification_failures(
        self, pomodoro, actives, studies, sink, targets, monkeypatch
    ):
        started = await pomodoro.start("u1", "ana", targets)

        async def broken(*args, **kwargs):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(pomodoro.progress, "record_session", broken)
        sink.failing.add("dm:u1")

        result = await pomodoro.stop("u1")

        assert result.success
        study = await studies.get(started.data["study_session_id"])
        assert study.completed is True
        assert study.end_time is not None
        assert await actives.list_by_kind() == []
        assert "u1" not in pomodoro.registry

    async def test_stop_without_session_fails(self, pomodoro):
        result = await pomodoro.stop("nobody")

        assert not result.success
        assert "no active pomodoro" in result.message

    async def test_stop_orphaned_record(self, pomodoro, actives, studies, scheduler):
        study_id = await studies.create(
            StudySession(user_id="u1", start_time=START - timedelta(minutes=40))
        )
        await actives.create(
            ActiveSession(
                user_id="u1",
                kind=SessionKind.POMODORO,
                study_session_id=study_id,
                start_time=START - timedelta(minutes=40),
                time_left=100.0,
                pomodoros_completed=1,
                metadata={"username": "ana"},
                last_updated=START,
            )
        )

        result = await pomodoro.stop("u1")

        assert result.success
        assert result.data["duration_minutes"] == 40
        assert await actives.list_by_kind() == []
        study = await studies.get(study_id)
        assert study.completed is True
        assert study.pomodoros_completed == 1

    async def test_xp_capped_at_hundred(self, pomodoro, users, scheduler, targets):
        await pomodoro.start("u1", "ana", targets)
        await pomodoro.pause("u1")
        scheduler.jump(3 * 3600)

        result = await pomodoro.stop("u1")

        assert result.data["xp_gained"] == 100


class TestPomodoroPauseResume:
    """Tests for pause and resume."""

    async def test_pause_keeps_remaining_time(self, pomodoro, scheduler, actives, targets):
        await pomodoro.start("u1", "ana", targets)
        await scheduler.advance(30)

        result = await pomodoro.pause("u1")

        assert result.success
        state = pomodoro.registry.get("u1")
        assert state.paused
        assert state.timer is None
        assert state.time_left == pytest.approx(90)
        record = await actives.get_for_user("u1", SessionKind.POMODORO)
        assert record.paused is True
        assert record.time_left == pytest.approx(90)

        # Nothing advances while paused
        await scheduler.advance(600)
        assert state.phase == Phase.WORK
        assert pomodoro.query("u1").remaining_minutes == 2

    async def test_resume_runs_remaining_time_only(self, pomodoro, scheduler, targets):
        await pomodoro.start("u1", "ana", targets)
        await scheduler.advance(30)
        await pomodoro.pause("u1")
        await scheduler.advance(600)

        result = await pomodoro.resume("u1")
        assert result.success

        await scheduler.advance(89)
        assert pomodoro.registry.get("u1").phase == Phase.WORK
        await scheduler.advance(1)
        assert pomodoro.registry.get("u1").phase == Phase.SHORT_BREAK

    async def test_pause_twice_fails(self, pomodoro, targets):
        await pomodoro.start("u1", "ana", targets)
        await pomodoro.pause("u1")

        result = await pomodoro.pause("u1")

        assert not result.success
        assert "already paused" in result.message

    async def test_resume_when_running_fails(self, pomodoro, targets):
        await pomodoro.start("u1", "ana", targets)

        result = await pomodoro.resume("u1")

        assert not result.success
        assert "not paused" in result.message

    async def test_pause_without_session_fails(self, pomodoro):
        assert not (await pomodoro.pause("nobody")).success
        assert not (await pomodoro.resume("nobody")).success


class TestPomodoroPhases:
    """Tests for the work/break cycle."""

    async def test_work_then_short_break(self, pomodoro, scheduler, studies, users, sink, targets):
        started = await pomodoro.start("u1", "ana", targets)

        await scheduler.advance(120)

        state = pomodoro.registry.get("u1")
        assert state.phase == Phase.SHORT_BREAK
        assert state.units_completed == 1
        assert state.time_left == pytest.approx(60)
        study = await studies.get(started.data["study_session_id"])
        assert study.pomodoros_completed == 1
        user = await users.get_by_discord_id("u1")
        assert user.completed_pomodoros == 1
        assert user.xp == 25
        assert "Time for a break!" in sink.titles("dm:u1")

    async def test_long_break_after_interval(self, pomodoro, scheduler, actives, sink, targets):
        await pomodoro.start("u1", "ana", targets)

        # work 120s, short break 60s, work 120s
        await scheduler.advance(300)

        state = pomodoro.registry.get("u1")
        assert state.phase == Phase.LONG_BREAK
        assert state.units_completed == 2
        assert state.current_cycle == 2
        record = await actives.get_for_user("u1", SessionKind.POMODORO)
        assert record.phase == Phase.LONG_BREAK
        assert record.pomodoros_completed == 2
        assert sink.titles("dm:u1")[-1] == "Time for a long break!"

        await scheduler.advance(180)
        assert state.phase == Phase.WORK
        assert state.current_cycle == 3

    async def test_failure_does_not_freeze_cycle(
        self, pomodoro, scheduler, users, targets, monkeypatch
    ):
        await pomodoro.start("u1", "ana", targets)

        async def broken(*args, **kwargs):
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(pomodoro.studies, "set_pomodoros", broken)
        monkeypatch.setattr(pomodoro.actives, "update_state", broken)

        await scheduler.advance(120)
        state = pomodoro.registry.get("u1")
        assert state.phase == Phase.SHORT_BREAK
        assert state.timer is not None and state.timer.active
        # The profile is still credited when the study record write fails
        user = await users.get_by_discord_id("u1")
        assert user.completed_pomodoros == 1
        assert user.xp == 25

        await scheduler.advance(60)
        assert state.phase == Phase.WORK
        assert state.current_cycle == 2

    async def test_pause_during_transition_holds_next_phase(
        self, pomodoro, scheduler, actives, targets, monkeypatch
    ):
        await pomodoro.start("u1", "ana", targets)
        entered = asyncio.Event()
        release = asyncio.Event()
        original = pomodoro.studies.set_pomodoros

        async def slow_set_pomodoros(study_id, count):
            entered.set()
            await release.wait()
            await original(study_id, count)

        monkeypatch.setattr(pomodoro.studies, "set_pomodoros", slow_set_pomodoros)

        advancing = asyncio.create_task(scheduler.advance(120))
        await entered.wait()
        paused = await pomodoro.pause("u1")
        release.set()
        await advancing

        state = pomodoro.registry.get("u1")
        assert paused.success
        assert state.paused
        assert state.phase == Phase.SHORT_BREAK
        assert state.timer is None
        assert state.time_left == pytest.approx(60)
        record = await actives.get_for_user("u1", SessionKind.POMODORO)
        assert record.paused is True
        assert record.phase == Phase.SHORT_BREAK
        assert record.time_left == pytest.approx(60)

        await scheduler.advance(300)
        assert state.phase == Phase.SHORT_BREAK
        assert scheduler.pending == []

        # Resume runs the whole break
        await pomodoro.resume("u1")
        await scheduler.advance(59)
        assert state.phase == Phase.SHORT_BREAK
        await scheduler.advance(1)
        assert state.phase == Phase.WORK
        assert state.current_cycle == 2

    async def test_time_left_persisted_periodically(self, pomodoro, scheduler, actives, targets):
        await pomodoro.start("u1", "ana", targets)

        await scheduler.advance(29)
        record = await actives.get_for_user("u1", SessionKind.POMODORO)
        assert record.time_left == pytest.approx(120)

        await scheduler.advance(1)
        record = await actives.get_for_user("u1", SessionKind.POMODORO)
        assert record.time_left == pytest.approx(90)
        assert record.last_updated == scheduler.now()

    async def test_goal_completion_during_work_phase(
        self, pomodoro, scheduler, goals, users, sink, targets
    ):
        goal_id = await goals.create(Goal(user_id="u1", title="Warm-up", target_time=2))
        await pomodoro.start("u1", "ana", targets, goal_id=goal_id)

        await scheduler.advance(120)

        goal = await goals.get(goal_id)
        assert goal.completed is True
        assert goal.current_time == 2
        assert "Goal completed!" in sink.titles("dm:u1")
        user = await users.get_by_discord_id("u1")
        # 25 for the pomodoro plus the 100 goal bonus
        assert user.level == 2
        assert user.xp == 25

        # Stopping right away adds no further goal time
        await pomodoro.stop("u1")
        assert (await goals.get(goal_id)).current_time == 2


class TestQueries:
    """Tests for status snapshots."""

    async def test_query_is_read_only(self, pomodoro, scheduler, targets):
        await pomodoro.start("u1", "ana", targets, subject="Physics")
        await scheduler.advance(45)
        state = pomodoro.registry.get("u1")
        timer = state.timer

        snapshot = pomodoro.query("u1")

        assert snapshot.subject == "Physics"
        assert snapshot.phase == Phase.WORK
        assert snapshot.elapsed_minutes == 0
        assert snapshot.remaining_minutes == 2
        assert snapshot.origin == "server"
        assert state.timer is timer

    async def test_query_all(self, pomodoro, targets):
        await pomodoro.start("u1", "ana", targets)
        await pomodoro.start("u2", "bob", NotifyTargets(dm="dm:u2"))

        snapshots = {s.username: s for s in pomodoro.query_all()}

        assert set(snapshots) == {"ana", "bob"}
        assert snapshots["bob"].origin == "dm"

    async def test_query_missing_user(self, pomodoro):
        assert pomodoro.query("nobody") is None


class TestFocusManager:
    """Tests for focus sessions."""

    @pytest.mark.parametrize("duration", [-5, 0, 481])
    async def test_invalid_duration_rejected(self, focus, actives, studies, targets, duration):
        result = await focus.start("u1", "ana", duration, targets)

        assert not result.success
        assert result.message == "Duration must be greater than 0 and at most 480 minutes."
        assert await actives.list_by_kind() == []
        assert await studies.list_for_user("u1") == []
        assert focus.query("u1") is None

    async def test_fractional_duration_accepted(self, focus, targets):
        result = await focus.start("u1", "ana", 0.5, targets)

        assert result.success
        assert focus.registry.get("u1").remaining() == 30

    async def test_max_duration_accepted(self, focus, targets):
        result = await focus.start("u1", "ana", 480, targets)

        assert result.success
        assert focus.query("u1").remaining_minutes == 480

    async def test_expiry_finalizes_session(self, focus, scheduler, actives, studies, users, sink, targets):
        started = await focus.start("u1", "ana", 25, targets, subject="Essay")

        await scheduler.advance(25 * 60)

        assert "u1" not in focus.registry
        assert await actives.list_by_kind() == []
        study = await studies.get(started.data["study_session_id"])
        assert study.completed is True
        assert study.duration == 25
        user = await users.get_by_discord_id("u1")
        assert user.focus_sessions == 1
        assert user.xp == 25
        assert sink.titles("channel:42") == ["Focus session started", "Focus session complete!"]

    async def test_expiry_credits_goal(self, focus, scheduler, goals, targets):
        goal_id = await goals.create(Goal(user_id="u1", title="Essay", target_time=100))
        await focus.start("u1", "ana", 30, targets, goal_id=goal_id)

        await scheduler.advance(30 * 60)

        goal = await goals.get(goal_id)
        assert goal.current_time == 30
        assert goal.progress == 30

    async def test_pause_and_resume(self, focus, scheduler, targets):
        await focus.start("u1", "ana", 10, targets)
        await scheduler.advance(120)
        await focus.pause("u1")
        await scheduler.advance(3600)
        await focus.resume("u1")

        assert focus.query("u1").remaining_minutes == 8
        await scheduler.advance(8 * 60)
        assert "u1" not in focus.registry

    async def test_notices_go_to_dm_without_channel(self, focus, sink):
        await focus.start("u1", "ana", 10, NotifyTargets(dm="dm:u1"))

        assert sink.titles("dm:u1") == ["Focus session started"]

    async def test_pomodoro_and_focus_are_independent(self, pomodoro, focus, actives, targets):
        assert (await pomodoro.start("u1", "ana", targets)).success
        assert (await focus.start("u1", "ana", 30, targets)).success

        assert len(await actives.list_by_kind()) == 2
