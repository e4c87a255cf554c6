from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from application.services import ExternalContext

ACCENT_COLOR = 0xFFC0CB
# Discord rejects embeds with more fields than this.
EMBED_FIELD_LIMIT = 25


@dataclass
class EmbedField:
    name: str
    value: str
    inline: bool = False


@dataclass
class Embed:
    """Transport-neutral rich message: title, accent colour, thumbnail and fields."""

    title: str
    color: int = ACCENT_COLOR
    thumbnail_url: str = ""
    description: str = ""
    footer: str = ""
    fields: List[EmbedField] = field(default_factory=list)

    def add_field(self, name: str, value: str, inline: bool = False) -> "Embed":
        self.fields.append(EmbedField(name=name, value=value, inline=inline))
        return self


@dataclass
class Reply:
    """A single outgoing chat message: plain text or an embed."""

    text: Optional[str] = None
    embed: Optional[Embed] = None


class ChatChannel(Protocol):
    """The channel a command arrived on, as far as the router needs it."""

    async def send(self, reply: Reply) -> None:
        ...

    async def delete_messages(self, amount: int) -> int:
        """Delete the last `amount` messages and return how many were removed."""

        ...


@dataclass
class MessageContext:
    """
    Everything the router needs to know about one incoming message.

    Built by the interface layer from the platform's own message type.
    """

    text: str
    channel_id: str
    invoker: ExternalContext
    channel: ChatChannel
    server_name: str = ""
    server_icon_url: str = ""
    bot_avatar_url: str = ""
    mentions: List[ExternalContext] = field(default_factory=list)

    @property
    def server_id(self) -> str:
        return self.invoker.server_id

    def find_mention(self, user_id: str) -> Optional[ExternalContext]:
        for user in self.mentions:
            if user.user_id == user_id:
                return user
        return None
