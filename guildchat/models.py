"""Records exchanged with the database and with API clients."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from guildchat.color import Color

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1
_MISSING = object()


def _format_time(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        text = value[:-1] + "+00:00" if value[-1:] in ("Z", "z") else value
        try:
            moment = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"invalid timestamp: {value!r}") from exc
    else:
        raise ValueError(f"invalid timestamp: {value!r}")
    if moment.tzinfo is None:
        raise ValueError(f"timestamp without a time zone: {value!r}")
    return moment.astimezone(timezone.utc)


def _get(data: Any, key: str, kind: type, optional: bool = False) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    value = data.get(key, _MISSING)
    if value is _MISSING or value is None:
        if optional:
            return None
        raise ValueError(f"missing field {key!r}")
    if kind is datetime:
        return _parse_time(value)
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"field {key!r} must be an integer")
        if not _I32_MIN <= value <= _I32_MAX:
            raise ValueError(f"field {key!r} is out of range")
        return value
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} must be of type {kind.__name__}")
    return value


class _Named(str, Enum):
    def __str__(self) -> str:
        return self.value


class AccessLevel(_Named):
    """How much a user may do."""

    ADMIN = "admin"
    REGULAR = "regular"


class ChannelKind(_Named):
    """The kind of a channel."""

    TEXT = "text"
    CATEGORY = "category"
    VOICE = "voice"
    SYSTEM = "system"


class RoleCategory(_Named):
    """The category of a role."""

    EVERYONE = "everyone"
    OWNER = "owner"
    STANDARD = "standard"


class MessageType(_Named):
    """What a message sent down a live channel means."""

    CONNECT = "CONNECT"
    SEND = "SEND"
    QUIT = "QUIT"


@dataclass(frozen=True)
class Channel:
    id: int
    guild_id: int
    name: str
    kind: str

    def to_dict(self) -> dict:
        return {"id": self.id, "guild_id": self.guild_id, "name": self.name, "kind": self.kind}


@dataclass(frozen=True)
class NewChannel:
    """A channel draft provided by a client."""

    guild_id: int
    name: str
    kind: str

    @classmethod
    def from_dict(cls, data: Any) -> NewChannel:
        return cls(_get(data, "guild_id", int), _get(data, "name", str), _get(data, "kind", str))


@dataclass(frozen=True)
class HistoryConfig:
    """Which part of a channel's history to fetch."""

    limit: Optional[int] = None
    before: Optional[datetime] = None
    after: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Any) -> HistoryConfig:
        return cls(
            _get(data, "limit", int, optional=True),
            _get(data, "before", datetime, optional=True),
            _get(data, "after", datetime, optional=True),
        )


@dataclass(frozen=True)
class ChannelPermissions:
    role_id: int
    guild_id: int
    channel_id: int
    can_read: bool
    can_write: bool

    @classmethod
    def all_allowed(cls, role_id: int, guild_id: int, channel_id: int) -> ChannelPermissions:
        return cls(role_id, guild_id, channel_id, True, True)

    @classmethod
    def nothing_allowed(cls, role_id: int, guild_id: int, channel_id: int) -> ChannelPermissions:
        return cls(role_id, guild_id, channel_id, False, False)

    def to_dict(self) -> dict:
        return {
            "role_id": self.role_id,
            "guild_id": self.guild_id,
            "channel_id": self.channel_id,
            "can_read": self.can_read,
            "can_write": self.can_write,
        }


@dataclass(frozen=True)
class NewChannelPermissions:
    """A partial update of a role's channel permissions."""

    can_read: Optional[bool] = None
    can_write: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Any) -> NewChannelPermissions:
        return cls(
            _get(data, "can_read", bool, optional=True),
            _get(data, "can_write", bool, optional=True),
        )


@dataclass(frozen=True)
class Role:
    id: int
    guild_id: int
    name: str
    color: str
    category: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "guild_id": self.guild_id,
            "name": self.name,
            "color": self.color,
            "category": self.category,
        }


@dataclass(frozen=True)
class NewRole:
    guild_id: int
    name: str
    color: str
    category: str

    @classmethod
    def everyone(cls, guild_id: int) -> NewRole:
        """The default role every member of a guild holds."""
        category = str(RoleCategory.EVERYONE)
        return cls(guild_id, category, Color.default_role_color().to_hex(), category)

    @classmethod
    def owner(cls, guild_id: int) -> NewRole:
        """The role held by a guild's owner."""
        category = str(RoleCategory.OWNER)
        return cls(guild_id, category, Color.owner_role_color().to_hex(), category)

    @classmethod
    def from_dict(cls, data: Any) -> NewRole:
        return cls(
            _get(data, "guild_id", int),
            _get(data, "name", str),
            _get(data, "color", str),
            _get(data, "category", str),
        )


@dataclass(frozen=True)
class UserMetadata:
    id: int
    username: str
    discriminator: int
    last_check_in: datetime
    picture: str
    account_creation: datetime
    description: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "discriminator": self.discriminator,
            "last_check_in": _format_time(self.last_check_in),
            "picture": self.picture,
            "account_creation": _format_time(self.account_creation),
            "description": self.description,
        }


@dataclass(frozen=True)
class UserMetadataPatch:
    """A partial update of a user's public profile."""

    username: Optional[str] = None
    discriminator: Optional[int] = None
    picture: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> UserMetadataPatch:
        return cls(
            _get(data, "username", str, optional=True),
            _get(data, "discriminator", int, optional=True),
            _get(data, "picture", str, optional=True),
            _get(data, "description", str, optional=True),
        )


@dataclass(frozen=True)
class NewUser:
    password: str
    access_level: str
    email: str

    @classmethod
    def from_dict(cls, data: Any) -> NewUser:
        return cls(
            _get(data, "password", str),
            _get(data, "access_level", str),
            _get(data, "email", str),
        )


@dataclass(frozen=True)
class User:
    id: int
    password: str
    access_level: str
    email: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "password": self.password,
            "access_level": self.access_level,
            "email": self.email,
        }


@dataclass(frozen=True)
class NewGuild:
    name: str
    owner_id: int
    description: str

    @classmethod
    def from_dict(cls, data: Any) -> NewGuild:
        return cls(_get(data, "name", str), _get(data, "owner_id", int), _get(data, "description", str))


@dataclass(frozen=True)
class Guild:
    id: int
    name: str
    owner_id: int
    description: str
    creation_date: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "description": self.description,
            "creation_date": _format_time(self.creation_date),
        }


@dataclass(frozen=True)
class GuildPatch:
    """A partial update of a guild."""

    name: Optional[str] = None
    owner_id: Optional[int] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> GuildPatch:
        return cls(
            _get(data, "name", str, optional=True),
            _get(data, "owner_id", int, optional=True),
            _get(data, "description", str, optional=True),
        )


@dataclass(frozen=True)
class PopulatedGuild:
    id: int
    name: str
    owner: UserMetadata
    description: str
    creation_date: datetime
    roles: tuple[Role, ...]
    channels: tuple[Channel, ...]

    @classmethod
    def from_parts(cls, guild: Guild, owner: UserMetadata, roles, channels) -> PopulatedGuild:
        return cls(
            guild.id,
            guild.name,
            owner,
            guild.description,
            guild.creation_date,
            tuple(roles),
            tuple(channels),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "owner": self.owner.to_dict(),
            "description": self.description,
            "creation_date": _format_time(self.creation_date),
            "roles": [role.to_dict() for role in self.roles],
            "channels": [channel.to_dict() for channel in self.channels],
        }


@dataclass(frozen=True)
class PopulatedChannelPermissions:
    role: Role
    guild: Guild
    channel: Channel
    can_read: bool
    can_write: bool

    @classmethod
    def from_parts(
        cls, permissions: ChannelPermissions, role: Role, guild: Guild, channel: Channel
    ) -> PopulatedChannelPermissions:
        return cls(role, guild, channel, permissions.can_read, permissions.can_write)

    def to_dict(self) -> dict:
        return {
            "role": self.role.to_dict(),
            "guild": self.guild.to_dict(),
            "channel": self.channel.to_dict(),
            "can_read": self.can_read,
            "can_write": self.can_write,
        }


@dataclass(frozen=True)
class ChannelPermissionsForRole:
    role: Role
    guild_id: int
    channel_id: int
    can_read: bool
    can_write: bool

    @classmethod
    def from_parts(cls, permissions: ChannelPermissions, role: Role) -> ChannelPermissionsForRole:
        return cls(
            role,
            permissions.guild_id,
            permissions.channel_id,
            permissions.can_read,
            permissions.can_write,
        )

    def to_dict(self) -> dict:
        return {
            "role": self.role.to_dict(),
            "guild_id": self.guild_id,
            "channel_id": self.channel_id,
            "can_read": self.can_read,
            "can_write": self.can_write,
        }


@dataclass(frozen=True)
class Member:
    user_id: int
    guild_id: int


@dataclass(frozen=True)
class MemberRole:
    role_id: int
    guild_id: int
    member_id: int


@dataclass(frozen=True)
class PopulatedMember:
    user: UserMetadata
    guild: Guild
    roles: tuple[Role, ...] = ()

    def to_dict(self) -> dict:
        result = self.user.to_dict()
        result["guild"] = self.guild.to_dict()
        result["roles"] = [role.to_dict() for role in self.roles]
        return result


@dataclass(frozen=True)
class NewMessage:
    """The minimal data a client provides to post a message."""

    channel_id: int
    author_id: int
    content: str

    @classmethod
    def from_dict(cls, data: Any) -> NewMessage:
        return cls(
            _get(data, "channel_id", int),
            _get(data, "author_id", int),
            _get(data, "content", str),
        )


@dataclass(frozen=True)
class Message:
    id: int
    channel_id: int
    author_id: int
    content: str
    creation_date: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "channel_id": self.channel_id,
            "author_id": self.author_id,
            "content": self.content,
            "creation_date": _format_time(self.creation_date),
        }


@dataclass(frozen=True)
class PopulatedMessage:
    id: int
    channel: Channel
    author: UserMetadata
    content: str
    creation_date: datetime

    @classmethod
    def from_parts(cls, message: Message, channel: Channel, author: UserMetadata) -> PopulatedMessage:
        return cls(message.id, channel, author, message.content, message.creation_date)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "channel": self.channel.to_dict(),
            "author": self.author.to_dict(),
            "content": self.content,
            "creation_date": _format_time(self.creation_date),
        }


@dataclass(frozen=True)
class ChannelMessage:
    """A message as broadcast to the subscribers of a channel."""

    id: int
    channel_id: int
    message_type: MessageType
    content: str
    author_id: int
    creation_date: datetime

    @classmethod
    def from_message(cls, message: Message) -> ChannelMessage:
        return cls(
            message.id,
            message.channel_id,
            MessageType.SEND,
            message.content,
            message.author_id,
            message.creation_date,
        )

    @classmethod
    def from_dict(cls, data: Any) -> ChannelMessage:
        kind = _get(data, "message_type", str)
        try:
            message_type = MessageType(kind)
        except ValueError as exc:
            raise ValueError(f"unknown message type: {kind!r}") from exc
        return cls(
            _get(data, "id", int),
            _get(data, "channel_id", int),
            message_type,
            _get(data, "content", str),
            _get(data, "author_id", int),
            _get(data, "creation_date", datetime),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "channel_id": self.channel_id,
            "message_type": self.message_type.value,
            "content": self.content,
            "author_id": self.author_id,
            "creation_date": _format_time(self.creation_date),
        }