from datetime import datetime, timedelta, timezone

import pytest

from guildchat.color import Color
from guildchat.models import (
    AccessLevel,
    Channel,
    ChannelKind,
    ChannelMessage,
    ChannelPermissions,
    ChannelPermissionsForRole,
    Guild,
    GuildPatch,
    HistoryConfig,
    Message,
    MessageType,
    NewChannel,
    NewChannelPermissions,
    NewGuild,
    NewMessage,
    NewRole,
    NewUser,
    PopulatedChannelPermissions,
    PopulatedGuild,
    PopulatedMember,
    PopulatedMessage,
    Role,
    RoleCategory,
    User,
    UserMetadata,
    UserMetadataPatch,
)

WHEN = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def make_user_metadata():
    return UserMetadata(7, "overlord", 1, WHEN, "", WHEN, "New account")


def make_guild():
    return Guild(3, "tomb", 7, "the system guild", WHEN)


def make_channel():
    return Channel(5, 3, "nexus", str(ChannelKind.TEXT))


def make_role():
    return Role(9, 3, "everyone", Color.default_role_color().to_hex(), "everyone")


def test_enum_strings():
    assert str(AccessLevel.ADMIN) == "admin"
    assert str(ChannelKind.TEXT) == "text"
    assert str(RoleCategory.STANDARD) == "standard"
    assert MessageType("QUIT") is MessageType.QUIT


def test_channel_kind_members():
    assert ChannelKind("category") is ChannelKind.CATEGORY
    assert ChannelKind("system") is ChannelKind.SYSTEM
    assert {str(kind) for kind in ChannelKind} == {"text", "category", "voice", "system"}


def test_all_and_nothing_allowed():
    allowed = ChannelPermissions.all_allowed(1, 2, 3)
    denied = ChannelPermissions.nothing_allowed(1, 2, 3)
    assert (allowed.can_read, allowed.can_write) == (True, True)
    assert (denied.can_read, denied.can_write) == (False, False)
    assert allowed.to_dict()["channel_id"] == 3


def test_new_role_everyone():
    role = NewRole.everyone(4)
    assert role.guild_id == 4
    assert role.name == role.category == "everyone"
    assert role.color == Color.default_role_color().to_hex()


def test_new_role_owner():
    role = NewRole.owner(4)
    assert role.name == role.category == "owner"
    assert Color.from_hex(role.color) == Color.owner_role_color()


def test_new_role_from_dict_round_trip():
    role = NewRole.everyone(8)
    data = {"guild_id": 8, "name": role.name, "color": role.color, "category": role.category}
    assert NewRole.from_dict(data) == role


def test_new_channel_from_dict():
    channel = NewChannel.from_dict({"guild_id": 1, "name": "general", "kind": "text"})
    assert channel == NewChannel(1, "general", "text")


@pytest.mark.parametrize(
    "data",
    [
        {"name": "general", "kind": "text"},
        {"guild_id": "1", "name": "general", "kind": "text"},
        {"guild_id": True, "name": "general", "kind": "text"},
        {"guild_id": 2**31, "name": "general", "kind": "text"},
        {"guild_id": 1, "name": 5, "kind": "text"},
        ["not", "a", "mapping"],
    ],
)
def test_new_channel_rejects_bad_data(data):
    with pytest.raises(ValueError):
        NewChannel.from_dict(data)


def test_history_config_defaults():
    assert HistoryConfig.from_dict({}) == HistoryConfig(None, None, None)


def test_history_config_parses_times():
    config = HistoryConfig.from_dict({"limit": 10, "before": "2024-01-02T03:04:05Z", "after": None})
    assert config.limit == 10
    assert config.before == WHEN
    assert config.after is None


def test_history_config_rejects_naive_time():
    with pytest.raises(ValueError):
        HistoryConfig.from_dict({"before": "2024-01-02T03:04:05"})


def test_history_config_rejects_garbage_time():
    with pytest.raises(ValueError):
        HistoryConfig.from_dict({"after": "yesterday"})


def test_history_config_normalises_offset():
    config = HistoryConfig.from_dict({"before": "2024-01-02T05:04:05+02:00"})
    assert config.before == WHEN
    assert config.before.utcoffset() == timedelta(0)


def test_new_channel_permissions_partial():
    patch = NewChannelPermissions.from_dict({"can_read": False})
    assert patch == NewChannelPermissions(can_read=False, can_write=None)


def test_new_channel_permissions_rejects_non_bool():
    with pytest.raises(ValueError):
        NewChannelPermissions.from_dict({"can_write": 1})


def test_populated_channel_permissions():
    perms = ChannelPermissions.all_allowed(9, 3, 5)
    populated = PopulatedChannelPermissions.from_parts(perms, make_role(), make_guild(), make_channel())
    data = populated.to_dict()
    assert data["role"] == make_role().to_dict()
    assert data["channel"] == make_channel().to_dict()
    assert data["can_read"] is True and data["can_write"] is True


def test_channel_permissions_for_role():
    perms = ChannelPermissions.nothing_allowed(9, 3, 5)
    result = ChannelPermissionsForRole.from_parts(perms, make_role())
    assert result.to_dict() == {
        "role": make_role().to_dict(),
        "guild_id": 3,
        "channel_id": 5,
        "can_read": False,
        "can_write": False,
    }


def test_guild_to_dict_time_is_utc():
    data = make_guild().to_dict()
    assert data["owner_id"] == 7
    assert data["creation_date"].endswith("Z")
    assert HistoryConfig.from_dict({"before": data["creation_date"]}).before == WHEN


def test_new_guild_and_patch():
    new = NewGuild.from_dict({"name": "g", "owner_id": 7, "description": "d"})
    assert new == NewGuild("g", 7, "d")
    assert GuildPatch.from_dict({"description": "x"}) == GuildPatch(None, None, "x")


def test_populated_guild():
    populated = PopulatedGuild.from_parts(make_guild(), make_user_metadata(), [make_role()], [make_channel()])
    data = populated.to_dict()
    assert data["id"] == make_guild().id
    assert data["owner"] == make_user_metadata().to_dict()
    assert data["roles"] == [make_role().to_dict()]
    assert data["channels"] == [make_channel().to_dict()]


def test_populated_member_flattens_user():
    member = PopulatedMember(make_user_metadata(), make_guild(), (make_role(),))
    data = member.to_dict()
    assert data["username"] == "overlord"
    assert data["id"] == make_user_metadata().id
    assert data["guild"] == make_guild().to_dict()
    assert data["roles"] == [make_role().to_dict()]


def test_new_message_from_dict():
    message = NewMessage.from_dict({"channel_id": 5, "author_id": 7, "content": "Hello, world!"})
    assert message == NewMessage(5, 7, "Hello, world!")


def test_populated_message():
    message = Message(11, 5, 7, "hi", WHEN)
    populated = PopulatedMessage.from_parts(message, make_channel(), make_user_metadata())
    data = populated.to_dict()
    assert data["id"] == 11
    assert data["content"] == "hi"
    assert data["author"] == make_user_metadata().to_dict()
    assert data["creation_date"] == message.to_dict()["creation_date"]


def test_channel_message_from_message_is_send():
    message = Message(11, 5, 7, "hi", WHEN)
    broadcast = ChannelMessage.from_message(message)
    assert broadcast.message_type is MessageType.SEND
    assert broadcast.to_dict()["message_type"] == "SEND"
    assert (broadcast.id, broadcast.channel_id, broadcast.author_id) == (11, 5, 7)


def test_channel_message_round_trip():
    broadcast = ChannelMessage(1, 2, MessageType.QUIT, "bye", 3, WHEN)
    assert ChannelMessage.from_dict(broadcast.to_dict()) == broadcast


def test_channel_message_unknown_type():
    data = ChannelMessage(1, 2, MessageType.SEND, "x", 3, WHEN).to_dict()
    data["message_type"] = "send"
    with pytest.raises(ValueError):
        ChannelMessage.from_dict(data)


def test_user_metadata_patch():
    patch = UserMetadataPatch.from_dict({"username": "newname", "discriminator": 42})
    assert patch == UserMetadataPatch("newname", 42, None, None)


def test_new_user_and_user():
    password = "password"
    new = NewUser.from_dict({"password": password, "access_level": "regular", "email": "someone@example.com"})
    assert new == NewUser(password, "regular", "someone@example.com")
    user = User(1, new.password, new.access_level, new.email)
    assert user.to_dict()["email"] == "someone@example.com"


def test_new_user_missing_email():
    with pytest.raises(ValueError):
        NewUser.from_dict({"password": "password", "access_level": "regular"})