"""Database layout and connection helpers."""

from __future__ import annotations

import itertools
import os
import re
import sqlite3
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv

TABLES = (
    "access_levels",
    "channel_kinds",
    "channel_permissions",
    "channels",
    "guilds",
    "members",
    "members_roles",
    "messages",
    "roles",
    "roles_category",
    "users",
    "users_metadata",
)

_NOW = "(strftime('%Y-%m-%dT%H:%M:%f', 'now') || '000Z')"

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS access_levels (
    level VARCHAR PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS channel_kinds (
    kind VARCHAR PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS roles_category (
    category VARCHAR PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY,
    password VARCHAR NOT NULL,
    access_level VARCHAR NOT NULL REFERENCES access_levels (level),
    email VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS users_metadata (
    id INTEGER NOT NULL UNIQUE REFERENCES users (id),
    username VARCHAR NOT NULL,
    discriminator INTEGER NOT NULL DEFAULT ((random() % 10000 + 10000) % 10000),
    last_check_in TIMESTAMPTZ NOT NULL DEFAULT {_NOW},
    picture TEXT NOT NULL DEFAULT '',
    account_creation TIMESTAMPTZ NOT NULL DEFAULT {_NOW},
    description TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (username, discriminator)
);

CREATE TABLE IF NOT EXISTS guilds (
    id INTEGER PRIMARY KEY,
    name VARCHAR NOT NULL,
    owner_id INTEGER NOT NULL REFERENCES users (id),
    description TEXT NOT NULL,
    creation_date TIMESTAMPTZ NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS channels (
    id INTEGER PRIMARY KEY,
    guild_id INTEGER NOT NULL REFERENCES guilds (id),
    name VARCHAR NOT NULL,
    kind VARCHAR NOT NULL REFERENCES channel_kinds (kind)
);

CREATE TABLE IF NOT EXISTS roles (
    id INTEGER PRIMARY KEY,
    guild_id INTEGER NOT NULL REFERENCES guilds (id),
    name VARCHAR NOT NULL,
    color VARCHAR(7) NOT NULL CHECK (length(color) <= 7),
    category VARCHAR NOT NULL REFERENCES roles_category (category)
);

CREATE TABLE IF NOT EXISTS channel_permissions (
    role_id INTEGER NOT NULL REFERENCES roles (id),
    guild_id INTEGER NOT NULL REFERENCES guilds (id),
    channel_id INTEGER NOT NULL REFERENCES channels (id),
    can_read BOOLEAN NOT NULL,
    can_write BOOLEAN NOT NULL,
    PRIMARY KEY (role_id, guild_id, channel_id)
);

CREATE TABLE IF NOT EXISTS members (
    user_id INTEGER NOT NULL REFERENCES users (id),
    guild_id INTEGER NOT NULL REFERENCES guilds (id),
    PRIMARY KEY (user_id, guild_id)
);

CREATE TABLE IF NOT EXISTS members_roles (
    role_id INTEGER NOT NULL REFERENCES roles (id),
    guild_id INTEGER NOT NULL,
    member_id INTEGER NOT NULL,
    PRIMARY KEY (role_id, guild_id, member_id)
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY,
    channel_id INTEGER NOT NULL REFERENCES channels (id),
    author_id INTEGER NOT NULL REFERENCES users (id),
    content VARCHAR NOT NULL,
    creation_date TIMESTAMPTZ NOT NULL DEFAULT {_NOW}
);
"""

_POOL_SIZE = re.compile(r"\+?[0-9]+")
_savepoint_names = itertools.count()


def _adapt_datetime(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _convert_datetime(raw: bytes) -> datetime:
    text = raw.decode()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _convert_bool(raw: bytes) -> bool:
    return bool(int(raw))


sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("TIMESTAMPTZ", _convert_datetime)
sqlite3.register_converter("BOOLEAN", _convert_bool)


@dataclass(frozen=True)
class DatabaseConfig:
    """Where the database lives and how many connections may be open."""

    url: str
    pool_size: int


def _database_path(url: str) -> str:
    if url in (":memory:", "sqlite://", "sqlite:///:memory:"):
        return ":memory:"
    if url.startswith("sqlite:///"):
        path = url[len("sqlite:///"):]
        if not path:
            raise ValueError(f"database URL has no path: {url!r}")
        return path
    if "://" in url:
        raise ValueError(f"unsupported database URL: {url!r}")
    return url


def connect(url: str) -> sqlite3.Connection:
    """Open the database named by ``url`` (a ``sqlite:///`` URL or a path)."""
    connection = sqlite3.connect(
        _database_path(url),
        detect_types=sqlite3.PARSE_DECLTYPES,
        isolation_level=None,
        check_same_thread=False,
    )
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON")
    return connection


def create_schema(connection: sqlite3.Connection) -> None:
    """Create every table that does not exist yet."""
    connection.executescript(_SCHEMA)


@contextmanager
def transaction(connection: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block atomically; nested blocks become savepoints."""
    if connection.in_transaction:
        name = f"guildchat_sp_{next(_savepoint_names)}"
        connection.execute(f"SAVEPOINT {name}")
        try:
            yield connection
        except BaseException:
            connection.execute(f"ROLLBACK TO SAVEPOINT {name}")
            connection.execute(f"RELEASE SAVEPOINT {name}")
            raise
        connection.execute(f"RELEASE SAVEPOINT {name}")
        return

    connection.execute("BEGIN IMMEDIATE")
    try:
        yield connection
    except BaseException:
        connection.execute("ROLLBACK")
        raise
    connection.execute("COMMIT")


def database_from_env(environ: Optional[Mapping[str, str]] = None) -> DatabaseConfig:
    """Read DATABASE_URL and DB_POOL_SIZE; with no mapping, load ``.env`` first."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    url = environ.get("DATABASE_URL")
    if url is None:
        raise ValueError("DATABASE_URL env var must be set")

    size = environ.get("DB_POOL_SIZE")
    if size is None:
        raise ValueError("DB_POOL_SIZE env var must be set")
    if not _POOL_SIZE.fullmatch(size):
        raise ValueError("DB_POOL_SIZE env var must be a whole number")

    return DatabaseConfig(url, int(size))