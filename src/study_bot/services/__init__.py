"""Session lifecycle services."""

from .notifications import ChannelResolver, Notice, NotificationSink, NotifyTargets, safe_send
from .progress import GoalContribution, ProgressService, SessionOutcome
from .recovery import SessionRecovery
from .registry import SessionRegistry, SessionState
from .scheduler import AsyncioScheduler, PhaseTimer, ScheduledTask, Scheduler
from .session_manager import FocusManager, OperationResult, PomodoroManager, SessionManager

__all__ = [
    "AsyncioScheduler",
    "ChannelResolver",
    "FocusManager",
    "GoalContribution",
    "Notice",
    "NotificationSink",
    "NotifyTargets",
    "OperationResult",
    "PhaseTimer",
    "PomodoroManager",
    "ProgressService",
    "safe_send",
    "ScheduledTask",
    "Scheduler",
    "SessionManager",
    "SessionOutcome",
    "SessionRecovery",
    "SessionRegistry",
    "SessionState",
]
