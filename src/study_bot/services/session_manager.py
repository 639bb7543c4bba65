"""Session lifecycle managers.

A manager owns the running sessions of one kind. Every public operation
returns an :class:`OperationResult`; expected failures (validation, conflicts,
failed initial writes) become failed results and never raise.

In-memory state is the source of truth while the process runs. The
``active_sessions`` table mirrors it on every transition and every
``persist_every_seconds`` of phase time so :meth:`SessionManager.load_active`
can rebuild it after a restart. Mirror writes, profile updates and
notifications are best-effort: their failures are logged and never stop a
timer or leave a stopped session behind.
"""

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from functools import partial
from typing import Any

import aiosqlite

from ..config import PomodoroConfig, SessionLimits, TimerConfig
from ..db.repositories import (
    ActiveSessionRepository,
    GoalRepository,
    StudySessionRepository,
)
from ..errors import ConflictError, PersistenceError, StudyBotError, ValidationError
from ..models.goal import Goal
from ..models.session import ActiveSession, Phase, SessionKind, SessionSnapshot
from ..models.study_session import StudyKind, StudySession, elapsed_minutes
from .notifications import (
    BLUE,
    GOLD,
    GREEN,
    ORANGE,
    PURPLE,
    RED,
    TEAL,
    ChannelResolver,
    Notice,
    NotificationSink,
    NotifyTargets,
    safe_send,
)
from .progress import ProgressService, SessionOutcome
from .registry import SessionRegistry, SessionState
from .scheduler import PhaseTimer, Scheduler

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of a public session operation."""

    success: bool
    message: str
    session_id: int | None = None
    data: Any = None

    @classmethod
    def ok(cls, message: str, **kwargs) -> "OperationResult":
        return cls(True, message, **kwargs)

    @classmethod
    def fail(cls, message: str) -> "OperationResult":
        return cls(False, message)


def _minutes(seconds: float) -> int:
    return math.ceil(seconds / 60)


class SessionManager:
    """Shared lifecycle of timed sessions; subclasses define the phases."""

    kind: SessionKind
    study_kind: StudyKind
    label: str

    def __init__(
        self,
        scheduler: Scheduler,
        sink: NotificationSink,
        actives: ActiveSessionRepository,
        studies: StudySessionRepository,
        goals: GoalRepository,
        progress: ProgressService,
        timer: TimerConfig | None = None,
        limits: SessionLimits | None = None,
        registry: SessionRegistry | None = None,
    ):
        self.scheduler = scheduler
        self.sink = sink
        self.actives = actives
        self.studies = studies
        self.goals = goals
        self.progress = progress
        self.timer_config = timer or TimerConfig()
        self.limits = limits or SessionLimits()
        self.registry = registry if registry is not None else SessionRegistry()
        self._starting: set[str] = set()

    # Hooks

    def _phase_seconds(self, phase: Phase, metadata: dict) -> float:
        raise NotImplementedError

    def _target(self, state: SessionState) -> Any:
        raise NotImplementedError

    async def _on_phase_end(self, state: SessionState) -> None:
        raise NotImplementedError

    def _goal_minutes_credited(self, record: ActiveSession) -> float:
        """Minutes of a restored session already added to its goal."""
        return 0

    def _started_notice(self, state: SessionState) -> Notice:
        raise NotImplementedError

    def _finished_notice(
        self,
        state: SessionState,
        duration: int,
        outcome: SessionOutcome | None,
        completed: bool,
    ) -> Notice:
        raise NotImplementedError

    # Public operations

    async def pause(self, user_id: str) -> OperationResult:
        """Halt the phase timer, keeping the remaining time."""
        state = self.registry.get(user_id)
        if state is None:
            return OperationResult.fail(f"You have no active {self.label} session.")
        if state.paused:
            return OperationResult.fail(f"Your {self.label} session is already paused.")

        state.time_left = state.remaining()
        state.cancel_timer()
        state.paused = True
        state.paused_at = self.scheduler.now()
        logger.info("Paused %s session for %s (%.0fs left)", self.label, user_id, state.time_left)

        await self._persist(state)
        notice = Notice(
            title=f"{self.label.capitalize()} paused",
            description=f"Your {self.label} session is paused.",
            color=ORANGE,
        ).add_field("Time left", f"{_minutes(state.time_left)} min")
        await self._notify(state, notice)
        return OperationResult.ok(
            f"{self.label.capitalize()} paused with {_minutes(state.time_left)} min left.",
            session_id=state.active_session_id,
        )

    async def resume(self, user_id: str) -> OperationResult:
        """Restart the timer for the remaining time of the current phase."""
        state = self.registry.get(user_id)
        if state is None:
            return OperationResult.fail(f"You have no active {self.label} session.")
        if not state.paused:
            return OperationResult.fail(f"Your {self.label} session is not paused.")

        state.paused = False
        state.paused_at = None
        self._start_timer(state, state.time_left)
        logger.info("Resumed %s session for %s (%.0fs left)", self.label, user_id, state.time_left)

        await self._persist(state)
        notice = Notice(
            title=f"{self.label.capitalize()} resumed",
            description=f"Your {self.label} session is running again.",
            color=GREEN,
        )
        notice.add_field("Time left", f"{_minutes(state.time_left)} min")
        notice.add_field("Phase", state.phase.display())
        await self._notify(state, notice)
        return OperationResult.ok(
            f"{self.label.capitalize()} resumed, {_minutes(state.time_left)} min left.",
            session_id=state.active_session_id,
        )

    async def stop(self, user_id: str) -> OperationResult:
        """Finish the user's session and apply its time.

        A durable record without an in-memory session (left by a crash) is
        finalized the same way, from the stored data.
        """
        state = self.registry.get(user_id)
        if state is None:
            try:
                record = await self.actives.get_for_user(user_id, self.kind)
            except Exception:
                logger.exception("Failed to look up %s record for %s", self.label, user_id)
                return OperationResult.fail(f"Could not stop your {self.label} session.")
            if record is None:
                return OperationResult.fail(f"You have no active {self.label} session.")
            logger.warning("Stopping orphaned %s record %s for %s", self.label, record.id, user_id)
            state = self._state_from_record(record)
        elif state.stopping:
            return OperationResult.fail(f"Your {self.label} session is already finishing.")

        return await self._finalize(state, completed=False)

    def query(self, user_id: str) -> SessionSnapshot | None:
        """Snapshot of the user's session, or None. Never mutates state."""
        state = self.registry.get(user_id)
        if state is None:
            return None
        return self._snapshot(state)

    def query_all(self) -> list[SessionSnapshot]:
        return [self._snapshot(state) for state in self.registry.values()]

    # Recovery

    async def load_active(self) -> int:
        """Rebuild in-memory sessions from durable records at boot.

        Records whose study record is gone are deleted. Rebuilt sessions wait
        for :meth:`complete_restore` before their timers start.
        """
        records = await self.actives.list_by_kind(self.kind)
        loaded = 0
        for record in records:
            try:
                if record.user_id in self.registry:
                    continue
                study = await self.studies.get(record.study_session_id)
                if study is None:
                    logger.warning(
                        "Deleting %s record %s: study record %s is missing",
                        self.label,
                        record.id,
                        record.study_session_id,
                    )
                    await self.actives.delete(record.id)
                    continue

                state = self._state_from_record(record)
                state.pending_restore = True
                self.registry.add(state)
                loaded += 1
                logger.info(
                    "Loaded %s session for %s (%s, %.0fs left)",
                    self.label,
                    record.user_id,
                    state.phase.value,
                    state.time_left,
                )
            except Exception:
                logger.exception("Failed to load %s record %s", self.label, record.id)
        return loaded

    async def complete_restore(self, resolver: ChannelResolver) -> int:
        """Resolve notification targets and restart timers of loaded sessions."""
        restored = 0
        for state in self.registry.values():
            if not state.pending_restore:
                continue
            try:
                state.targets = await resolver.resolve_targets(state.user_id, state.metadata)
            except Exception:
                logger.exception("Could not resolve notification targets for %s", state.user_id)
            state.pending_restore = False

            try:
                if state.paused:
                    logger.info("Restored paused %s session for %s", self.label, state.user_id)
                elif state.time_left > 0:
                    self._start_timer(state, state.time_left)
                    await self._notify(state, self._restored_notice(state))
                    logger.info("Restored %s session for %s", self.label, state.user_id)
                else:
                    self.scheduler.call_soon(partial(self._on_phase_end, state))
                    logger.info(
                        "%s phase for %s ended while offline", self.label, state.user_id
                    )
                restored += 1
            except Exception:
                logger.exception("Failed to restore %s session for %s", self.label, state.user_id)
        return restored

    async def cleanup_orphaned(self) -> int:
        """Delete durable records not updated within the staleness window.

        Records backing a live in-memory session are kept.

        Returns:
            Number of records removed
        """
        now = self.scheduler.now()
        max_age = timedelta(hours=self.limits.stale_session_hours)
        try:
            records = await self.actives.list_by_kind(self.kind)
        except Exception:
            logger.exception("Failed to list %s records for cleanup", self.label)
            return 0

        removed = 0
        for record in records:
            live = self.registry.get(record.user_id)
            if live is not None and live.active_session_id == record.id:
                continue
            if not record.is_stale(now, max_age):
                continue
            try:
                if await self.actives.delete(record.id):
                    removed += 1
            except Exception:
                logger.exception("Failed to delete stale %s record %s", self.label, record.id)

        if removed:
            logger.info("Removed %d stale %s session records", removed, self.label)
        return removed

    def shutdown(self) -> None:
        """Cancel every timer; durable records stay for the next boot."""
        self.registry.clear()

    # Internals

    async def _begin(
        self,
        user_id: str,
        username: str,
        targets: NotifyTargets,
        subject: str,
        goal_id: int | None,
        duration: float,
        extra_metadata: dict | None = None,
    ) -> SessionState:
        """Create the study record, durable record and timer of a new session."""
        if user_id in self.registry or user_id in self._starting:
            raise ConflictError(f"You already have an active {self.label} session.")

        self._starting.add(user_id)
        try:
            if goal_id is not None:
                goal = await self.goals.get(goal_id)
                if goal is None or goal.user_id != user_id:
                    raise ValidationError("Goal not found.")

            existing = await self.actives.get_for_user(user_id, self.kind)
            if existing is not None:
                logger.warning(
                    "Deleting orphaned %s record %s for %s", self.label, existing.id, user_id
                )
                await self.actives.delete(existing.id)

            now = self.scheduler.now()
            metadata = {"username": username, **targets.to_metadata(), **(extra_metadata or {})}
            study = StudySession(
                user_id=user_id, start_time=now, kind=self.study_kind, subject=subject
            )
            study.id = await self.studies.create(study)
            record = ActiveSession(
                user_id=user_id,
                kind=self.kind,
                study_session_id=study.id,
                start_time=now,
                time_left=duration,
                subject=subject,
                goal_id=goal_id,
                metadata=metadata,
                last_updated=now,
            )
            record.id = await self.actives.create(record)
        except StudyBotError:
            raise
        except aiosqlite.IntegrityError as e:
            raise ConflictError(f"You already have an active {self.label} session.") from e
        except Exception as e:
            logger.exception("Failed to create %s session for %s", self.label, user_id)
            raise PersistenceError(
                f"Could not start your {self.label} session, please try again."
            ) from e
        finally:
            self._starting.discard(user_id)

        state = SessionState(
            user_id=user_id,
            username=username,
            kind=self.kind,
            study_session_id=study.id,
            active_session_id=record.id,
            start_time=now,
            time_left=duration,
            phase_duration=duration,
            subject=subject,
            goal_id=goal_id,
            targets=targets,
            metadata=metadata,
        )
        self.registry.add(state)
        self._start_timer(state, duration)
        logger.info("Started %s session %s for %s", self.label, record.id, user_id)
        return state

    async def _finalize(self, state: SessionState, completed: bool) -> OperationResult:
        """Close out a session; the in-memory entry is always removed."""
        state.stopping = True
        now = self.scheduler.now()
        duration = elapsed_minutes(state.start_time, now)
        outcome = None
        try:
            state.cancel_timer()

            try:
                await self.actives.delete(state.active_session_id)
            except Exception:
                logger.exception("Failed to delete %s record %s", self.label, state.active_session_id)

            try:
                await self.studies.close(
                    state.study_session_id, now, duration, state.units_completed
                )
            except Exception:
                logger.exception("Failed to close study record %s", state.study_session_id)

            try:
                outcome = await self.progress.record_session(
                    state.user_id, state.username, self.kind, duration, now
                )
            except Exception:
                logger.exception("Failed to update profile of %s", state.user_id)

            if state.goal_id is not None:
                await self._credit_goal(state, max(0.0, duration - state.goal_minutes_credited))

            await self._notify(state, self._finished_notice(state, duration, outcome, completed))
        finally:
            if self.registry.get(state.user_id) is state:
                self.registry.remove(state.user_id)

        logger.info(
            "Finished %s session for %s after %d min", self.label, state.user_id, duration
        )
        message = f"{self.label.capitalize()} session finished: {duration} min"
        if outcome:
            message += f", +{outcome.xp_gained} XP"
            if outcome.leveled_up:
                message += f", level {outcome.user.level}!"
        return OperationResult.ok(
            message + ".",
            session_id=state.active_session_id,
            data={
                "duration_minutes": duration,
                "units_completed": state.units_completed,
                "xp_gained": outcome.xp_gained if outcome else 0,
                "leveled_up": outcome.leveled_up if outcome else False,
            },
        )

    async def _credit_goal(self, state: SessionState, minutes: float) -> None:
        if minutes <= 0:
            return
        try:
            contribution = await self.progress.apply_goal_time(
                state.goal_id, minutes, self.scheduler.now()
            )
        except Exception:
            logger.exception("Failed to add time to goal %s", state.goal_id)
            return
        state.goal_minutes_credited += minutes
        if contribution and contribution.just_completed:
            await self._notify(state, self._goal_notice(contribution.goal))

    def _start_timer(self, state: SessionState, seconds: float) -> None:
        """Start a phase timer, replacing any previous one."""
        state.cancel_timer()
        state.time_left = seconds
        state.timer = PhaseTimer(
            self.scheduler,
            seconds,
            on_expire=partial(self._on_phase_end, state),
            on_tick=partial(self._on_tick, state),
            on_persist=partial(self._on_persist, state),
            tick_seconds=self.timer_config.tick_seconds,
            persist_every=self.timer_config.persist_every_seconds,
        ).start()

    def _on_tick(self, state: SessionState, left: float) -> None:
        state.time_left = left

    async def _on_persist(self, state: SessionState, left: float) -> None:
        await self._persist(state)

    async def _persist(self, state: SessionState) -> bool:
        """Mirror the in-memory state onto its durable record."""
        try:
            await self.actives.update_state(self._to_record(state), self.scheduler.now())
            return True
        except Exception:
            logger.exception("Failed to persist %s session for %s", self.label, state.user_id)
            return False

    async def _notify(self, state: SessionState, notice: Notice | str) -> bool:
        return await safe_send(self.sink, self._target(state), notice)

    def _to_record(self, state: SessionState) -> ActiveSession:
        return ActiveSession(
            id=state.active_session_id,
            user_id=state.user_id,
            kind=self.kind,
            study_session_id=state.study_session_id,
            start_time=state.start_time,
            time_left=state.remaining(),
            subject=state.subject,
            phase=state.phase,
            current_cycle=state.current_cycle,
            pomodoros_completed=state.units_completed,
            paused=state.paused,
            paused_at=state.paused_at,
            goal_id=state.goal_id,
            metadata=state.metadata,
        )

    def _state_from_record(self, record: ActiveSession) -> SessionState:
        """In-memory state for a durable record, with time left corrected for downtime."""
        return SessionState(
            user_id=record.user_id,
            username=record.metadata.get("username", record.user_id),
            kind=self.kind,
            study_session_id=record.study_session_id,
            active_session_id=record.id,
            start_time=record.start_time,
            time_left=record.remaining_at(self.scheduler.now()),
            phase_duration=self._phase_seconds(record.phase, record.metadata),
            subject=record.subject,
            goal_id=record.goal_id,
            phase=record.phase,
            current_cycle=record.current_cycle,
            units_completed=record.pomodoros_completed,
            paused=record.paused,
            paused_at=record.paused_at,
            goal_minutes_credited=self._goal_minutes_credited(record),
            metadata=dict(record.metadata),
        )

    def _snapshot(self, state: SessionState) -> SessionSnapshot:
        return SessionSnapshot(
            user_id=state.user_id,
            username=state.username,
            kind=self.kind,
            subject=state.subject,
            phase=state.phase,
            start_time=state.start_time,
            elapsed_minutes=elapsed_minutes(state.start_time, self.scheduler.now()),
            remaining_minutes=_minutes(state.remaining()),
            current_cycle=state.current_cycle,
            units_completed=state.units_completed,
            paused=state.paused,
            origin="server" if state.metadata.get("server_channel_id") else "dm",
        )

    def _restored_notice(self, state: SessionState) -> Notice:
        notice = Notice(
            title=f"{self.label.capitalize()} restored",
            description=f"Your {self.label} session was restored after a bot restart.",
            color=BLUE,
        )
        notice.add_field("Time left", f"{_minutes(state.time_left)} min")
        notice.add_field("Phase", state.phase.display())
        return notice

    def _goal_notice(self, goal: Goal) -> Notice:
        return Notice(
            title="Goal completed!",
            description=f"Congratulations! You completed the goal **{goal.title}**.",
            color=GOLD,
        )

    def _outcome_fields(self, notice: Notice, outcome: SessionOutcome | None) -> Notice:
        if outcome is None:
            return notice
        notice.add_field("XP gained", outcome.xp_gained)
        if outcome.leveled_up:
            notice.add_field("Level up!", f"You reached level {outcome.user.level}", inline=False)
        if outcome.new_rewards:
            notice.add_field(
                "New rewards", ", ".join(r.name for r in outcome.new_rewards), inline=False
            )
        return notice


class PomodoroManager(SessionManager):
    """Work/break cycles; notices go to the user's DMs."""

    kind = SessionKind.POMODORO
    study_kind = StudyKind.POMODORO
    label = "pomodoro"

    def __init__(self, *args, config: PomodoroConfig | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.config = config or PomodoroConfig()

    async def start(
        self,
        user_id: str,
        username: str,
        targets: NotifyTargets | None = None,
        subject: str | None = None,
        goal_id: int | None = None,
    ) -> OperationResult:
        """Start a pomodoro cycle with a work phase."""
        targets = targets or NotifyTargets()
        try:
            state = await self._begin(
                user_id,
                username,
                targets,
                subject or "General",
                goal_id,
                self._phase_seconds(Phase.WORK, {}),
            )
        except StudyBotError as e:
            return OperationResult.fail(str(e))

        notice = self._started_notice(state)
        if not await self._notify(state, notice):
            await safe_send(
                self.sink,
                targets.channel,
                f"<@{user_id}> I couldn't send you a DM. Your pomodoro has started; "
                "allow direct messages from server members to get phase updates.",
            )

        return OperationResult.ok(
            f"Pomodoro started: {self.config.work_minutes:g} min of {state.subject}.",
            session_id=state.active_session_id,
            data={"study_session_id": state.study_session_id},
        )

    def _phase_seconds(self, phase: Phase, metadata: dict) -> float:
        minutes = {
            Phase.WORK: self.config.work_minutes,
            Phase.SHORT_BREAK: self.config.short_break_minutes,
            Phase.LONG_BREAK: self.config.long_break_minutes,
        }[phase]
        return minutes * 60

    def _target(self, state: SessionState) -> Any:
        return state.targets.dm

    def _goal_minutes_credited(self, record: ActiveSession) -> float:
        if record.goal_id is None:
            return 0
        return record.pomodoros_completed * self.config.work_minutes

    async def _on_phase_end(self, state: SessionState) -> None:
        """Advance to the next phase; the next timer always starts."""
        if self.registry.get(state.user_id) is not state or state.stopping:
            return

        try:
            if state.phase is Phase.WORK:
                state.units_completed += 1
                if state.units_completed % self.config.long_break_interval == 0:
                    state.phase = Phase.LONG_BREAK
                else:
                    state.phase = Phase.SHORT_BREAK
                logger.info(
                    "Pomodoro %d done for %s, %s next",
                    state.units_completed,
                    state.user_id,
                    state.phase.value,
                )
                await self._complete_unit(state)
            else:
                state.phase = Phase.WORK
                state.current_cycle += 1
                logger.info("Cycle %d started for %s", state.current_cycle, state.user_id)

            await self._notify(state, self._phase_notice(state))
        finally:
            if self.registry.get(state.user_id) is state and not state.stopping:
                state.phase_duration = self._phase_seconds(state.phase, state.metadata)
                if state.paused:
                    # Paused mid-transition: resume runs the whole next phase
                    state.time_left = state.phase_duration
                else:
                    self._start_timer(state, state.phase_duration)
                await self._persist(state)

    async def _complete_unit(self, state: SessionState) -> None:
        """Record a finished work phase; each write is attempted on its own."""
        try:
            await self.studies.set_pomodoros(state.study_session_id, state.units_completed)
        except Exception:
            logger.exception(
                "Failed to update pomodoro count of study record %s", state.study_session_id
            )
        try:
            await self.progress.credit_unit(state.user_id, state.username)
        except Exception:
            logger.exception("Failed to credit pomodoro to %s", state.user_id)
        if state.goal_id is not None:
            await self._credit_goal(state, self.config.work_minutes)

    def _started_notice(self, state: SessionState) -> Notice:
        notice = Notice(
            title="Pomodoro started",
            description=f"Focus on **{state.subject}** for {self.config.work_minutes:g} minutes.",
            color=RED,
        )
        notice.add_field("Cycle", state.current_cycle)
        notice.add_field("Status", Phase.WORK.display())
        return notice

    def _phase_notice(self, state: SessionState) -> Notice:
        if state.phase is Phase.LONG_BREAK:
            notice = Notice(
                title="Time for a long break!",
                description=(
                    f"You completed {state.units_completed} pomodoros! "
                    f"Take {self.config.long_break_minutes:g} minutes off."
                ),
                color=BLUE,
            )
        elif state.phase is Phase.SHORT_BREAK:
            notice = Notice(
                title="Time for a break!",
                description=f"Good work! Take {self.config.short_break_minutes:g} minutes off.",
                color=TEAL,
            )
        else:
            notice = Notice(
                title="Back to work!",
                description=f"Break over. Focus for {self.config.work_minutes:g} minutes.",
                color=RED,
            )
            notice.add_field("Cycle", state.current_cycle)
        notice.add_field("Pomodoros", state.units_completed)
        return notice

    def _finished_notice(
        self,
        state: SessionState,
        duration: int,
        outcome: SessionOutcome | None,
        completed: bool,
    ) -> Notice:
        notice = Notice(
            title="Pomodoro session finished",
            description=f"You studied **{state.subject}** for {duration} minutes.",
            color=GREEN,
        )
        notice.add_field("Pomodoros", state.units_completed)
        notice.add_field("Cycles", state.current_cycle)
        return self._outcome_fields(notice, outcome)


class FocusManager(SessionManager):
    """Single timed block; notices go to the origin channel when there is one."""

    kind = SessionKind.FOCUS
    study_kind = StudyKind.FOCUS
    label = "focus"

    async def start(
        self,
        user_id: str,
        username: str,
        duration_minutes: float,
        targets: NotifyTargets | None = None,
        subject: str | None = None,
        goal_id: int | None = None,
    ) -> OperationResult:
        """Start a focus block of ``duration_minutes``."""
        if not 0 < duration_minutes <= self.limits.max_focus_minutes:
            return OperationResult.fail(
                "Duration must be greater than 0 and at most "
                f"{self.limits.max_focus_minutes} minutes."
            )

        targets = targets or NotifyTargets()
        try:
            state = await self._begin(
                user_id,
                username,
                targets,
                subject or "General",
                goal_id,
                duration_minutes * 60,
                extra_metadata={"duration_minutes": duration_minutes},
            )
        except StudyBotError as e:
            return OperationResult.fail(str(e))

        await self._notify(state, self._started_notice(state))
        return OperationResult.ok(
            f"Focus session started: {duration_minutes:g} min of {state.subject}.",
            session_id=state.active_session_id,
            data={"study_session_id": state.study_session_id},
        )

    def _phase_seconds(self, phase: Phase, metadata: dict) -> float:
        return float(metadata.get("duration_minutes", 0)) * 60

    def _target(self, state: SessionState) -> Any:
        return state.targets.channel or state.targets.dm

    async def _on_phase_end(self, state: SessionState) -> None:
        """The block ran out: finish it like an explicit stop."""
        if self.registry.get(state.user_id) is not state or state.stopping:
            return
        logger.info("Focus block elapsed for %s", state.user_id)
        await self._finalize(state, completed=True)

    def _started_notice(self, state: SessionState) -> Notice:
        notice = Notice(
            title="Focus session started",
            description=(
                f"<@{state.user_id}> is focusing on **{state.subject}** "
                f"for {_minutes(state.phase_duration)} minutes."
            ),
            color=PURPLE,
        )
        notice.add_field("Ends in", f"{_minutes(state.phase_duration)} min")
        return notice

    def _finished_notice(
        self,
        state: SessionState,
        duration: int,
        outcome: SessionOutcome | None,
        completed: bool,
    ) -> Notice:
        title = "Focus session complete!" if completed else "Focus session stopped"
        notice = Notice(
            title=title,
            description=f"<@{state.user_id}> focused on **{state.subject}** for {duration} minutes.",
            color=GREEN,
        )
        return self._outcome_fields(notice, outcome)
