"""Chat adapter: platform-neutral dispatcher plus the Discord client."""

from .dispatcher import CommandDispatcher, CommandResult, Invocation

__all__ = ["CommandDispatcher", "CommandResult", "Invocation"]
