# guildchat

Building blocks for a chat service organised around **guilds**. A guild
owns **channels** and **roles**, users join guilds as **members**, and
each role carries read and write permissions per channel. The package
provides the data model, an SQLite storage layer with channel and user
operations, and an in-process broker that pushes messages live to the
subscribers of a channel.

## Modules

### `guildchat.models`

Frozen dataclasses for every record: `User`, `UserMetadata`, `Guild`,
`Channel`, `Role`, `Member`, `MemberRole`, `Message`,
`ChannelPermissions`, and the composed views `PopulatedGuild`,
`PopulatedMember`, `PopulatedMessage`, `PopulatedChannelPermissions` and
`ChannelPermissionsForRole`. Their `to_dict()` gives the JSON shape, with
timestamps as UTC ISO 8601 strings ending in `Z`.

Client input is read with `from_dict()` on `NewUser`, `NewGuild`,
`NewChannel`, `NewRole`, `NewMessage`, `ChannelMessage`, `HistoryConfig`
and the partial updates `GuildPatch`, `UserMetadataPatch` and
`NewChannelPermissions`. Missing fields, wrong types, integers outside the
32-bit range and timestamps without a time zone raise `ValueError`.

The fixed vocabularies are string enums: `AccessLevel` (`admin`,
`regular`), `ChannelKind` (`text`, `category`, `voice`, `system`),
`RoleCategory` (`everyone`, `owner`, `standard`) and `MessageType`
(`CONNECT`, `SEND`, `QUIT`).

    from guildchat.models import ChannelPermissions, NewRole

    ChannelPermissions.all_allowed(role_id=1, guild_id=1, channel_id=3).to_dict()
    NewRole.everyone(1)   # name and category "everyone", colour "#D3D3D3"
    NewRole.owner(1)      # name and category "owner", colour "#FFFFFF"

### `guildchat.color`

`Color` is an RGB colour with components from 0 to 255.

    from guildchat.color import Color

    Color.from_hex("#d3d3d3").to_hex()      # '#D3D3D3'
    Color.default_role_color().to_hex()     # '#D3D3D3'
    Color.owner_role_color().to_hex()       # '#FFFFFF'

`Color.from_hex` accepts exactly `#RRGGBB` and raises `ValueError`
otherwise.

### `guildchat.errors`

`ApiError(status, description)` is the exception every operation raises
for a client-facing failure. `to_dict()` gives
`{"status": ..., "description": ...}`; `ApiError.not_found()` carries
`404 Not Found` and `ApiError.internal(error)` a 500 with the error's text.

### `guildchat.schema`

- `connect(url)` opens an SQLite database from a `sqlite:///path` URL, a
  plain path or `:memory:`, with foreign keys enforced and rows returned
  as `sqlite3.Row`.
- `create_schema(connection)` creates every table that does not exist yet.
- `transaction(connection)` is a context manager that commits on success
  and rolls back on an exception; nested uses become savepoints.
- `database_from_env(environ=None)` reads `DATABASE_URL` and
  `DB_POOL_SIZE` into a `DatabaseConfig`, raising `ValueError` if either is
  missing or the pool size is not a whole number. Called without a
  mapping it loads a `.env` file first and reads `os.environ`.

### `guildchat.channels` and `guildchat.users`

Plain functions over a connection, raising `ApiError` on failure:

- `get_channel`, `create_channel` (every role of the guild gets full
  permissions on the new channel), `get_channel_members` (each member of
  the guild with the roles that may read the channel),
  `get_channel_history` (newest first, filtered by the `HistoryConfig`'s
  `limit`, `before` and `after`) and `get_message`.
- `get_user`, `get_user_guilds`, `patch_user` and `create_user`.

### `guildchat.broker`

`Broker(capacity=10)` keeps one broadcast queue per channel.
`subscribe(channel_id)` returns an async-iterable subscription that is
also an async context manager; a subscriber that falls more than
`capacity` messages behind skips the oldest. `send(message)` broadcasts a
`ChannelMessage` to a channel's subscribers; `publish(message)` does the
same for client messages, except that a `QUIT` from the last listener
closes the channel. Both return how many subscribers received the
message. `has_channel`, `subscriber_count` and `close` complete it.

## Example

    from guildchat.models import AccessLevel, ChannelKind, HistoryConfig, NewChannel, NewUser
    from guildchat.schema import connect, create_schema
    from guildchat.channels import create_channel, get_channel_history
    from guildchat.users import create_user

    conn = connect(":memory:")
    create_schema(conn)
    conn.executemany("INSERT INTO access_levels (level) VALUES (?)",
                     [(level.value,) for level in AccessLevel])
    conn.executemany("INSERT INTO channel_kinds (kind) VALUES (?)",
                     [(kind.value,) for kind in ChannelKind])

    user = create_user(conn, NewUser("password", "regular", "alice@example.com"))
    conn.execute("INSERT INTO users_metadata (id, username) VALUES (?, ?)", (user.id, "alice"))
    guild_id = conn.execute(
        "INSERT INTO guilds (name, owner_id, description) VALUES (?, ?, ?)",
        ("Lobby", user.id, ""),
    ).lastrowid

    channel = create_channel(conn, NewChannel(guild_id, "general", "text"))
    get_channel_history(conn, channel.id, HistoryConfig.from_dict({"limit": 20}))

## What this package does not do

- There is no HTTP server, web application or command to run; the
  operations above are library functions only.
- `create_schema` creates the tables but does not fill the lookup tables
  (access levels, channel kinds, role categories); insert those rows
  yourself, as in the example.
- There are no functions for creating or changing guilds, guild
  membership, roles or role permissions, and none that stores a posted
  message and hands it to the broker; such records have to be written
  with SQL directly.
- There is no login, session handling or password hashing: `create_user`
  stores the password exactly as given.