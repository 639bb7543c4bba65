"""Discord delivery of notices."""

import logging

import discord

from ..services.notifications import Notice, NotifyTargets

logger = logging.getLogger(__name__)


def render_embed(notice: Notice) -> discord.Embed:
    """Render a notice as a Discord embed."""
    embed = discord.Embed(
        title=notice.title,
        description=notice.description or None,
        color=notice.color,
    )
    for name, value, inline in notice.fields[:25]:
        embed.add_field(name=name, value=value or "-", inline=inline)
    if notice.footer:
        embed.set_footer(text=notice.footer)
    return embed


class DiscordNotificationSink:
    """Sends notices to a DM or guild channel."""

    async def send(self, target: discord.abc.Messageable, notice: Notice | str) -> None:
        if isinstance(notice, str):
            await target.send(notice)
        else:
            await target.send(embed=render_embed(notice))


class DiscordChannelResolver:
    """Resolves stored channel ids back into live channels after a restart."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def resolve_targets(self, user_id: str, metadata: dict) -> NotifyTargets:
        dm = None
        try:
            user = self.client.get_user(int(user_id)) or await self.client.fetch_user(int(user_id))
            dm = user.dm_channel or await user.create_dm()
        except discord.HTTPException as e:
            logger.warning("Could not open DM with %s: %s", user_id, e)

        channel = None
        channel_id = metadata.get("server_channel_id")
        if channel_id:
            channel = self.client.get_channel(int(channel_id))
            if channel is None:
                try:
                    channel = await self.client.fetch_channel(int(channel_id))
                except discord.HTTPException as e:
                    logger.warning("Could not fetch channel %s: %s", channel_id, e)

        return NotifyTargets(
            dm=dm,
            channel=channel,
            dm_channel_id=dm.id if dm else metadata.get("dm_channel_id"),
            server_channel_id=channel_id,
        )
