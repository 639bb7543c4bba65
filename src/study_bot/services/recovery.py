"""Restart recovery and periodic orphan cleanup."""

import logging

from .notifications import ChannelResolver
from .scheduler import ScheduledTask, Scheduler
from .session_manager import SessionManager

logger = logging.getLogger(__name__)


class SessionRecovery:
    """Drives the recovery protocol over every session manager.

    ``boot`` runs before the bot accepts commands, ``on_ready`` once the chat
    connection is live.
    """

    def __init__(
        self,
        managers: list[SessionManager],
        scheduler: Scheduler,
        cleanup_interval_hours: float = 3,
    ):
        self.managers = managers
        self.scheduler = scheduler
        self.cleanup_interval_hours = cleanup_interval_hours
        self._cleanup_task: ScheduledTask | None = None
        self._ready = False

    async def boot(self) -> int:
        """Load durable sessions into memory; returns how many were loaded."""
        loaded = 0
        for manager in self.managers:
            try:
                loaded += await manager.load_active()
            except Exception:
                logger.exception("Failed to load %s sessions", manager.label)
        logger.info("Loaded %d active sessions", loaded)
        return loaded

    async def on_ready(self, resolver: ChannelResolver) -> int:
        """Restart timers of loaded sessions, then clean up and schedule cleanup.

        Safe to call on every reconnect; only the first call does anything.
        """
        if self._ready:
            return 0
        self._ready = True

        restored = 0
        for manager in self.managers:
            try:
                restored += await manager.complete_restore(resolver)
            except Exception:
                logger.exception("Failed to restore %s sessions", manager.label)

        await self.cleanup()
        self._cleanup_task = self.scheduler.call_every(
            self.cleanup_interval_hours * 3600, self._periodic_cleanup
        )
        logger.info("Restored %d sessions", restored)
        return restored

    async def cleanup(self) -> int:
        removed = 0
        for manager in self.managers:
            removed += await manager.cleanup_orphaned()
        return removed

    async def _periodic_cleanup(self) -> None:
        removed = await self.cleanup()
        logger.info("Periodic cleanup removed %d stale session records", removed)

    def stop(self) -> None:
        """Cancel the cleanup task and every session timer."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            self._cleanup_task = None
        for manager in self.managers:
            manager.shutdown()
