"""In-memory registry of running sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator

from ..models.session import Phase, SessionKind
from .notifications import NotifyTargets
from .scheduler import PhaseTimer


@dataclass
class SessionState:
    """Mutable state of one running session.

    Owned by a :class:`SessionRegistry`; the durable record mirrors it.
    Times are in seconds.
    """

    user_id: str
    username: str
    kind: SessionKind
    study_session_id: int
    active_session_id: int
    start_time: datetime
    time_left: float
    phase_duration: float
    subject: str = "General"
    goal_id: int | None = None
    phase: Phase = Phase.WORK
    current_cycle: int = 1
    units_completed: int = 0
    paused: bool = False
    paused_at: datetime | None = None
    goal_minutes_credited: float = 0
    targets: NotifyTargets = field(default_factory=NotifyTargets)
    metadata: dict = field(default_factory=dict)
    pending_restore: bool = False
    stopping: bool = False
    timer: PhaseTimer | None = None

    def cancel_timer(self) -> None:
        if self.timer:
            self.timer.cancel()
            self.timer = None

    def remaining(self) -> float:
        """Live remaining time of the current phase."""
        if self.timer and not self.paused:
            return self.timer.time_left()
        return max(0.0, self.time_left)


class SessionRegistry:
    """Sessions of one kind keyed by user id.

    Each manager owns its own registry, so independent instances never share
    state.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SessionState] = {}

    def get(self, user_id: str) -> SessionState | None:
        return self._sessions.get(user_id)

    def add(self, state: SessionState) -> None:
        existing = self._sessions.get(state.user_id)
        if existing is not None and existing is not state:
            existing.cancel_timer()
        self._sessions[state.user_id] = state

    def remove(self, user_id: str) -> SessionState | None:
        state = self._sessions.pop(user_id, None)
        if state:
            state.cancel_timer()
        return state

    def values(self) -> list[SessionState]:
        return list(self._sessions.values())

    def items(self) -> list[tuple[str, SessionState]]:
        return list(self._sessions.items())

    def clear(self) -> None:
        for state in self._sessions.values():
            state.cancel_timer()
        self._sessions.clear()

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))
