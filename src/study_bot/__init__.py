"""study-bot: study habit tracking with focus and Pomodoro sessions."""

__version__ = "0.1.0"
