"""Exception hierarchy for study-bot."""


class StudyBotError(Exception):
    """Base class for errors raised by study-bot."""


class ValidationError(StudyBotError):
    """Request rejected before any state or store mutation (bad duration, unknown goal)."""


class ConflictError(StudyBotError):
    """Request conflicts with the current session state (already active, not paused...)."""


class PersistenceError(StudyBotError):
    """A store write failed where the caller has to know about it."""
