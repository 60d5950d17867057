"""User lookups, profile updates and account creation."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import fields
from typing import Any

from guildchat.errors import ApiError
from guildchat.models import Guild, NewUser, User, UserMetadata, UserMetadataPatch
from guildchat.schema import transaction


def _columns(alias: str, cls: type) -> str:
    return ", ".join(f"{alias}.{field.name} AS {alias}_{field.name}" for field in fields(cls))


def _build(cls: type, row: sqlite3.Row, alias: str) -> Any:
    return cls(**{field.name: row[f"{alias}_{field.name}"] for field in fields(cls)})


@contextmanager
def _database_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise ApiError.internal(exc) from exc


def _fetch_metadata(connection: sqlite3.Connection, user_id: int) -> UserMetadata:
    row = connection.execute(
        f"SELECT {_columns('um', UserMetadata)} FROM users_metadata um WHERE um.id = ?",
        (user_id,),
    ).fetchone()
    if row is None:
        raise ApiError.not_found()
    return _build(UserMetadata, row, "um")


def get_user(connection: sqlite3.Connection, user_id: int) -> UserMetadata:
    """Return a user's public profile; raise a not-found ApiError if absent."""
    with _database_errors():
        return _fetch_metadata(connection, user_id)


def get_user_guilds(connection: sqlite3.Connection, user_id: int) -> list[Guild]:
    """Return every guild the user is a member of."""
    with _database_errors():
        rows = connection.execute(
            f"SELECT {_columns('g', Guild)} FROM members m "
            "JOIN guilds g ON g.id = m.guild_id WHERE m.user_id = ?",
            (user_id,),
        ).fetchall()
    return [_build(Guild, row, "g") for row in rows]


def patch_user(
    connection: sqlite3.Connection, user_id: int, patch: UserMetadataPatch
) -> UserMetadata:
    """Apply the fields set in ``patch`` to a user's profile and return it."""
    changes = {
        field.name: getattr(patch, field.name)
        for field in fields(patch)
        if getattr(patch, field.name) is not None
    }
    if not changes:
        raise ApiError.internal("There are no changes to save. This query cannot be built")

    assignments = ", ".join(f"{name} = ?" for name in changes)
    with _database_errors(), transaction(connection):
        cursor = connection.execute(
            f"UPDATE users_metadata SET {assignments} WHERE id = ?",
            (*changes.values(), user_id),
        )
        if cursor.rowcount == 0:
            raise ApiError.not_found()
        return _fetch_metadata(connection, user_id)


def create_user(connection: sqlite3.Connection, new_user: NewUser) -> User:
    """Store a new account and return it with its assigned id."""
    with _database_errors():
        cursor = connection.execute(
            "INSERT INTO users (password, access_level, email) VALUES (?, ?, ?)",
            (new_user.password, new_user.access_level, new_user.email),
        )
    return User(cursor.lastrowid, new_user.password, new_user.access_level, new_user.email)