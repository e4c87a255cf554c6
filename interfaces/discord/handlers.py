from __future__ import annotations

import logging
from typing import List, Sequence

import discord

from application.messages import ChatChannel, MessageContext, Reply
from application.router import CommandRouter
from application.services import ExternalContext
from application.trivia import TriviaSessions

logger = logging.getLogger(__name__)


def _avatar_url(user: discord.abc.User) -> str:
    return str(user.display_avatar.url) if user.display_avatar else ""


def _build_external_context(user: discord.abc.User, guild: discord.Guild) -> ExternalContext:
    """Create an `ExternalContext` from a Discord user on a guild."""

    permissions = getattr(user, "guild_permissions", None)
    return ExternalContext(
        server_id=str(guild.id),
        user_id=str(user.id),
        display_name=user.display_name or user.name,
        avatar_url=_avatar_url(user),
        is_admin=bool(permissions and permissions.administrator),
    )


def to_discord_embed(reply: Reply) -> discord.Embed:
    source = reply.embed
    embed = discord.Embed(
        title=source.title,
        description=source.description or None,
        color=discord.Color(source.color),
    )
    if source.thumbnail_url:
        embed.set_thumbnail(url=source.thumbnail_url)
    if source.footer:
        embed.set_footer(text=source.footer)
    for f in source.fields:
        embed.add_field(name=f.name, value=f.value, inline=f.inline)
    return embed


class DiscordChannel(ChatChannel):
    """Adapts a discord.py text channel to the router's `ChatChannel`."""

    def __init__(self, channel: discord.abc.Messageable) -> None:
        self._channel = channel

    async def send(self, reply: Reply) -> None:
        if reply.embed is not None:
            await self._channel.send(content=reply.text, embed=to_discord_embed(reply))
        else:
            await self._channel.send(reply.text)

    async def delete_messages(self, amount: int) -> int:
        if amount <= 0:
            return 0
        deleted = await self._channel.purge(limit=amount)
        return len(deleted)


def build_message_context(message: discord.Message, bot_user: discord.ClientUser) -> MessageContext:
    guild = message.guild
    mentions: List[ExternalContext] = [
        _build_external_context(user, guild) for user in message.mentions
    ]
    return MessageContext(
        text=message.content,
        channel_id=str(message.channel.id),
        invoker=_build_external_context(message.author, guild),
        channel=DiscordChannel(message.channel),
        server_name=guild.name,
        server_icon_url=str(guild.icon.url) if guild.icon else "",
        bot_avatar_url=_avatar_url(bot_user),
        mentions=mentions,
    )


class EconomyClient(discord.Client):
    """discord.py client that closes the HTTP providers when it shuts down."""

    def __init__(self, *, intents: discord.Intents, resources: Sequence = ()) -> None:
        super().__init__(intents=intents)
        self._resources = list(resources)

    async def close(self) -> None:
        logger.info("Shutting down, closing %d provider session(s)", len(self._resources))
        for resource in self._resources:
            await resource.close()
        await super().close()


def create_discord_bot(
    router: CommandRouter,
    sessions: TriviaSessions,
    resources: Sequence = (),
) -> discord.Client:
    """
    Configure and return a Discord client that feeds every guild message
    through the command router.

    `resources` are objects with an async `close()` (the HTTP providers)
    released when the client closes.
    """

    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.members = True

    bot = EconomyClient(intents=intents, resources=resources)

    @bot.event
    async def on_ready():
        logger.info("Discord bot logged in as %s (id=%s)", bot.user, bot.user.id)
        await bot.change_presence(activity=discord.Game(name="with her sister Eve"))

    @bot.event
    async def on_message(message: discord.Message):
        # Ignore our own messages and anything outside a guild.
        if message.author.id == bot.user.id or message.guild is None:
            return

        # A pending trivia question swallows the user's next message in that channel.
        if sessions.offer(str(message.channel.id), str(message.author.id), message.content):
            return

        await router.route(build_message_context(message, bot.user))

    return bot
