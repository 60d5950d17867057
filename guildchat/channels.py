"""Channel lookups, channel creation, channel membership and message history."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import fields
from http import HTTPStatus
from typing import Any, Optional

from guildchat.errors import ApiError
from guildchat.models import (
    Channel,
    ChannelPermissions,
    Guild,
    HistoryConfig,
    Message,
    NewChannel,
    PopulatedMember,
    PopulatedMessage,
    Role,
    UserMetadata,
)
from guildchat.schema import transaction


def _columns(alias: str, cls: type) -> str:
    return ", ".join(f"{alias}.{field.name} AS {alias}_{field.name}" for field in fields(cls))


def _build(cls: type, row: sqlite3.Row, alias: str) -> Any:
    return cls(**{field.name: row[f"{alias}_{field.name}"] for field in fields(cls)})


@contextmanager
def _database_errors(prefix: Optional[str] = None) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        message = str(exc) if prefix is None else f"{prefix}: {exc}"
        raise ApiError.internal(message) from exc


_MESSAGE_QUERY = (
    f"SELECT {_columns('m', Message)}, {_columns('um', UserMetadata)}, {_columns('c', Channel)} "
    "FROM messages m "
    "JOIN users_metadata um ON um.id = m.author_id "
    "JOIN channels c ON c.id = m.channel_id"
)

_MEMBER_ROLES_QUERY = (
    f"SELECT {_columns('r', Role)}, cp.can_read AS can_read "
    "FROM members_roles mr "
    "JOIN roles r ON r.id = mr.role_id AND r.guild_id = mr.guild_id "
    "JOIN channel_permissions cp ON cp.role_id = r.id "
    "WHERE mr.guild_id = ? AND mr.member_id = ? AND cp.channel_id = ? AND cp.guild_id = ? "
    "ORDER BY r.id DESC"
)


def _populated_message(row: sqlite3.Row) -> PopulatedMessage:
    return PopulatedMessage.from_parts(
        _build(Message, row, "m"),
        _build(Channel, row, "c"),
        _build(UserMetadata, row, "um"),
    )


def get_channel(connection: sqlite3.Connection, channel_id: int) -> Channel:
    """Return one channel; raise a not-found ApiError if it does not exist."""
    with _database_errors():
        row = connection.execute(
            f"SELECT {_columns('c', Channel)} FROM channels c WHERE c.id = ?",
            (channel_id,),
        ).fetchone()
    if row is None:
        raise ApiError.not_found()
    return _build(Channel, row, "c")


def create_channel(connection: sqlite3.Connection, new_channel: NewChannel) -> Channel:
    """Create a channel and grant every role of its guild full access to it."""
    with _database_errors(), transaction(connection):
        with _database_errors("Couldn't create this channel"):
            cursor = connection.execute(
                "INSERT INTO channels (guild_id, name, kind) VALUES (?, ?, ?)",
                (new_channel.guild_id, new_channel.name, new_channel.kind),
            )
        channel = Channel(cursor.lastrowid, new_channel.guild_id, new_channel.name, new_channel.kind)

        with _database_errors("Failed to query this guild's roles"):
            role_ids = [
                row["id"]
                for row in connection.execute(
                    "SELECT id FROM roles WHERE guild_id = ?", (channel.guild_id,)
                )
            ]

        permissions = [
            ChannelPermissions.all_allowed(role_id, channel.guild_id, channel.id)
            for role_id in role_ids
        ]
        with _database_errors("Failed to setup permissions for this channel"):
            connection.executemany(
                "INSERT INTO channel_permissions "
                "(role_id, guild_id, channel_id, can_read, can_write) VALUES (?, ?, ?, ?, ?)",
                [
                    (p.role_id, p.guild_id, p.channel_id, p.can_read, p.can_write)
                    for p in permissions
                ],
            )
    return channel


def get_channel_members(
    connection: sqlite3.Connection, channel_id: int
) -> list[PopulatedMember]:
    """List the members of a channel's guild with the roles that may read it."""
    with _database_errors(), transaction(connection):
        row = connection.execute(
            f"SELECT {_columns('c', Channel)}, {_columns('g', Guild)} "
            "FROM channels c JOIN guilds g ON g.id = c.guild_id WHERE c.id = ?",
            (channel_id,),
        ).fetchone()
        if row is None:
            raise ApiError(
                HTTPStatus.NOT_FOUND, f"Provided channel {channel_id} was not found"
            )
        channel = _build(Channel, row, "c")
        guild = _build(Guild, row, "g")

        member_rows = connection.execute(
            f"SELECT {_columns('um', UserMetadata)} FROM members m "
            "JOIN users_metadata um ON um.id = m.user_id "
            "WHERE m.guild_id = ? ORDER BY m.user_id",
            (channel.guild_id,),
        ).fetchall()

        members = []
        for member_row in member_rows:
            user = _build(UserMetadata, member_row, "um")
            role_rows = connection.execute(
                _MEMBER_ROLES_QUERY,
                (channel.guild_id, user.id, channel.id, channel.guild_id),
            ).fetchall()
            roles = tuple(_build(Role, role_row, "r") for role_row in role_rows if role_row["can_read"])
            members.append(PopulatedMember(user, guild, roles))
    return members


def get_channel_history(
    connection: sqlite3.Connection, channel_id: int, config: HistoryConfig
) -> list[PopulatedMessage]:
    """Return a channel's messages, newest first, within the configured window."""
    clauses = ["m.channel_id = ?"]
    params: list[Any] = [channel_id]
    if config.before is not None:
        clauses.append("m.creation_date <= ?")
        params.append(config.before)
    if config.after is not None:
        clauses.append("m.creation_date >= ?")
        params.append(config.after)

    query = f"{_MESSAGE_QUERY} WHERE {' AND '.join(clauses)} ORDER BY m.creation_date DESC"
    if config.limit is not None:
        if config.limit < 0:
            raise ApiError.internal("LIMIT must not be negative")
        query += " LIMIT ?"
        params.append(config.limit)

    with _database_errors():
        rows = connection.execute(query, params).fetchall()
    return [_populated_message(row) for row in rows]


def get_message(
    connection: sqlite3.Connection, channel_id: int, message_id: int
) -> PopulatedMessage:
    """Return one message of a channel; raise a not-found ApiError if absent."""
    with _database_errors():
        row = connection.execute(
            f"{_MESSAGE_QUERY} WHERE m.id = ? AND m.channel_id = ?",
            (message_id, channel_id),
        ).fetchone()
    if row is None:
        raise ApiError.not_found()
    return _populated_message(row)