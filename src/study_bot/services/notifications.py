"""Platform-neutral notification contract."""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# Embed colors
GREEN = 0x32CD32
RED = 0xFF6347
BLUE = 0x4169E1
TEAL = 0x20B2AA
ORANGE = 0xFFA500
GOLD = 0xFFD700
PURPLE = 0x9370DB


@dataclass
class Notice:
    """A formatted message: title, body and optional inline fields."""

    title: str
    description: str = ""
    color: int = BLUE
    fields: list[tuple[str, str, bool]] = field(default_factory=list)
    footer: str | None = None

    def add_field(self, name: str, value: Any, inline: bool = True) -> "Notice":
        self.fields.append((name, str(value), inline))
        return self

    def as_text(self) -> str:
        """Plain-text rendering for fallbacks and logs."""
        lines = [f"**{self.title}**"]
        if self.description:
            lines.append(self.description)
        lines.extend(f"{name}: {value}" for name, value, _ in self.fields)
        return "\n".join(lines)


@dataclass
class NotifyTargets:
    """Where a session's notices go.

    ``dm`` and ``channel`` are live handles owned by the chat adapter; only
    their ids survive a restart (through session metadata).
    """

    dm: Any = None
    channel: Any = None
    dm_channel_id: int | None = None
    server_channel_id: int | None = None

    @property
    def origin(self) -> str:
        return "server" if self.server_channel_id or self.channel else "dm"

    def to_metadata(self) -> dict:
        return {
            "dm_channel_id": self.dm_channel_id,
            "server_channel_id": self.server_channel_id,
        }


class NotificationSink(Protocol):
    async def send(self, target: Any, notice: Notice | str) -> None: ...


class ChannelResolver(Protocol):
    """Rebuilds live targets from stored ids once the chat connection is up."""

    async def resolve_targets(self, user_id: str, metadata: dict) -> NotifyTargets: ...


async def safe_send(sink: NotificationSink, target: Any, notice: Notice | str) -> bool:
    """Send a notice, never raising.

    Returns:
        True if the sink accepted the notice
    """
    if target is None:
        return False
    try:
        await sink.send(target, notice)
        return True
    except Exception as e:
        title = notice.title if isinstance(notice, Notice) else notice[:40]
        logger.warning("Failed to deliver notice %r: %s", title, e)
        return False
