"""CLI commands for study-bot."""

from .init import init
from .profile import profile
from .run import run
from .serve import serve
from .sessions import cleanup, sessions

__all__ = [
    "cleanup",
    "init",
    "profile",
    "run",
    "serve",
    "sessions",
]
