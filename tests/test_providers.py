"""Tests for provider implementations."""

import json

import httpx
import pytest

from directchats import db
from directchats.engine import DirectChatResolver
from directchats.errors import InvalidHandleIdError, MembershipResolutionError, ProviderError
from directchats.models import Membership
from directchats.providers import (
    DIRECT_CHAT_ROOM_TYPE,
    NOBODY_POWER_LEVEL,
    PARTICIPANT_POWER_LEVEL,
    ROOM_TYPE_EVENT,
    InMemoryProvider,
    LocalConfig,
    LocalProvider,
    RemoteProvider,
    add_created_room,
    add_joined_room,
)

ALICE = "@alice:localhost"
BOB = "@bob:localhost"


class TestRegistryHelpers:
    def test_add_created_room_moves_room(self):
        """A created room is listed under the creator only."""
        registry = {"@bob:x": ["!r:x", "!s:x"], "@alice:x": ["!t:x"]}

        assert add_created_room(registry, "@alice:x", "!r:x") is True
        assert registry == {"@bob:x": ["!s:x"], "@alice:x": ["!t:x", "!r:x"]}

    def test_add_created_room_unchanged(self):
        """Re-adding a room that is already in place is not a change."""
        registry = {"@alice:x": ["!r:x"]}
        assert add_created_room(registry, "@alice:x", "!r:x") is False

    def test_add_joined_room(self):
        """A joined room is appended once."""
        registry = {}
        assert add_joined_room(registry, "@bob:x", "!r:x") is True
        assert add_joined_room(registry, "@bob:x", "!r:x") is False
        assert registry == {"@bob:x": ["!r:x"]}


class TestLocalProvider:
    """File-backed local homeserver simulation."""

    def test_missing_store(self, tmp_path):
        """Opening a missing store without create_if_missing fails."""
        with pytest.raises(FileNotFoundError):
            LocalProvider(tmp_path / ".directchats")

    def test_create_writes_layout(self, tmp_path):
        """Creating a store writes config.yaml and data.db."""
        path = tmp_path / ".directchats"
        provider = LocalProvider.create(path=path, home_server="example.org", add_to_gitignore=False)

        assert (path / "config.yaml").exists()
        assert (path / "data.db").exists()
        assert provider.home_server == "example.org"
        assert LocalConfig.load(path).home_server == "example.org"
        provider.close()

    def test_create_adds_gitignore_entry(self, tmp_path):
        """Stores inside a git repository are ignored."""
        (tmp_path / ".git").mkdir()
        provider = LocalProvider.create(path=tmp_path / ".directchats")
        provider.close()

        assert ".directchats/" in (tmp_path / ".gitignore").read_text()

    def test_persists_across_instances(self, tmp_path):
        """Data written by one instance is visible to the next."""
        path = tmp_path / ".directchats"
        provider = LocalProvider.create(path=path, add_to_gitignore=False)
        provider.register_user("alice", "Alice")
        provider.close()

        reopened = LocalProvider(path, user_id=ALICE)
        assert reopened.user_exists(ALICE)
        assert reopened.get_info().provider_type == "local"
        reopened.close()


class TestInMemoryProvider:
    """Provider behavior on the in-memory store."""

    @pytest.fixture
    def store(self):
        provider = InMemoryProvider()
        provider.register_user("alice", "Alice")
        provider.register_user("bob", "Bob")
        yield provider
        provider.close()

    @pytest.fixture
    def alice(self, store):
        return store.as_user(ALICE)

    @pytest.fixture
    def bob(self, store):
        return store.as_user(BOB)

    def test_info(self, store):
        """In-memory stores report their type."""
        info = store.get_info()
        assert info.provider_type == "in_memory"
        assert info.location == ":memory:"

    def test_register_user(self, store):
        """Registering returns the qualified id."""
        assert store.register_user("carol") == "@carol:localhost"
        assert store.user_exists("@carol:localhost")
        assert not store.user_exists("@dave:localhost")

    def test_register_duplicate(self, store):
        """Handles cannot be registered twice."""
        with pytest.raises(ProviderError) as exc_info:
            store.register_user("alice")
        assert exc_info.value.errcode == "M_USER_IN_USE"

    def test_register_invalid_handle(self, store):
        """Handles must be valid."""
        with pytest.raises(InvalidHandleIdError):
            store.register_user("al:ice")

    def test_no_account_selected(self, store):
        """Account-scoped calls need an account."""
        with pytest.raises(ProviderError) as exc_info:
            store.list_rooms()
        assert exc_info.value.status_code == 401

    def test_create_direct_chat(self, alice, bob):
        """Creating a chat invites the other user and records it for the creator."""
        room_id = alice.create_direct_chat(BOB)

        assert alice.get_direct_chat_account_data() == {ALICE: [room_id]}
        assert bob.get_direct_chat_account_data() is None

        room = bob.get_room(room_id)
        assert room.my_membership == Membership.INVITED
        assert room.has_direct_flag()

    def test_create_with_unknown_user(self, alice):
        """Inviting an unknown account fails as not found."""
        with pytest.raises(ProviderError) as exc_info:
            alice.create_direct_chat("@ghost:localhost")
        assert exc_info.value.is_not_found

    def test_join_direct_chat(self, alice, bob):
        """Joining records the room under the given id."""
        room_id = alice.create_direct_chat(BOB)

        bob.join_direct_chat(BOB, room_id)

        assert bob.get_room(room_id).my_membership == Membership.JOINED
        assert bob.get_direct_chat_account_data() == {BOB: [room_id]}

    def test_join_without_invite(self, store, alice):
        """Only invited accounts can join."""
        carol = store.as_user(store.register_user("carol"))
        room_id = alice.create_direct_chat(BOB)

        with pytest.raises(ProviderError) as exc_info:
            carol.join_direct_chat("@carol:localhost", room_id)
        assert exc_info.value.status_code == 403

    def test_leave_keeps_registry(self, alice, bob):
        """Leaving does not prune the registry."""
        room_id = alice.create_direct_chat(BOB)
        bob.join_direct_chat(BOB, room_id)

        bob.leave_room(room_id)

        assert bob.get_direct_chat_account_data() == {BOB: [room_id]}
        members = {m.user_id: m.membership for m in alice.get_members(room_id)}
        assert members == {ALICE: Membership.JOINED, BOB: Membership.LEFT}

    def test_unknown_membership_dropped(self, store, alice, bob):
        """Records with an unknown membership are left out and never count as active."""
        room_id = alice.create_direct_chat(BOB)
        db.set_membership(store.conn, room_id, BOB, "xyz.custom")

        assert [m.user_id for m in alice.get_members(room_id)] == [ALICE]
        assert bob.get_room(room_id) is None
        assert bob.list_rooms() == []
        assert DirectChatResolver(alice).direct_chat_exists(BOB, ALICE) is False

    def test_leave_unknown_room(self, alice):
        """Leaving a room the account was never in fails."""
        with pytest.raises(ProviderError) as exc_info:
            alice.leave_room("!nope:localhost")
        assert exc_info.value.is_not_found

    def test_get_room_not_visible(self, store, alice):
        """Rooms without the caller's membership are invisible."""
        carol = store.as_user(store.register_user("carol"))
        room_id = alice.create_direct_chat(BOB)

        assert carol.get_room(room_id) is None

    def test_get_members_unknown_room(self, alice):
        """Unknown rooms have no member list."""
        assert alice.get_members("!nope:localhost") is None

    def test_list_rooms(self, alice, bob):
        """Rooms are listed with the caller's own membership."""
        room_id = alice.create_direct_chat(BOB)

        assert [(r.room_id, r.my_membership) for r in alice.list_rooms()] == [
            (room_id, Membership.JOINED)
        ]
        assert [(r.room_id, r.my_membership) for r in bob.list_rooms()] == [
            (room_id, Membership.INVITED)
        ]

    def test_ignore_list(self, alice):
        """Ignoring merges into the list; unignoring removes one entry."""
        alice.ignore_handle(BOB)
        alice.ignore_handle("@carol:localhost")
        assert sorted(alice.list_ignored_handles()) == [BOB, "@carol:localhost"]

        alice.unignore_handle(BOB)
        assert alice.list_ignored_handles() == ["@carol:localhost"]

    def test_unignore_absent_is_noop(self, alice):
        """Unignoring someone not ignored writes nothing."""
        alice.unignore_handle(BOB)
        assert alice.list_ignored_handles() == []


class FakeHomeserver:
    """Minimal client-server API for RemoteProvider tests."""

    def __init__(self, user_id="@alice:example.org"):
        self.user_id = user_id
        self.users = {user_id, "@bob:example.org"}
        self.account_data = {}
        self.sync = {}
        self.members = {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/_matrix/client/v3")
        method = request.method

        if path == "/account/whoami":
            return httpx.Response(200, json={"user_id": self.user_id})
        if path.startswith("/profile/"):
            if path.removeprefix("/profile/") in self.users:
                return httpx.Response(200, json={})
            return httpx.Response(404, json={"errcode": "M_NOT_FOUND", "error": "Profile not found"})
        if "/account_data/" in path:
            event_type = path.rsplit("/", 1)[1]
            if method == "PUT":
                self.account_data[event_type] = json.loads(request.content)
                return httpx.Response(200, json={})
            if event_type in self.account_data:
                return httpx.Response(200, json=self.account_data[event_type])
            return httpx.Response(404, json={"errcode": "M_NOT_FOUND", "error": "Not found"})
        if path == "/createRoom":
            return httpx.Response(200, json={"room_id": "!new:example.org"})
        if path.startswith("/join/"):
            return httpx.Response(200, json={"room_id": path.removeprefix("/join/")})
        if path.endswith("/leave"):
            return httpx.Response(200, json={})
        if path.endswith("/members"):
            room_id = path.removeprefix("/rooms/").removesuffix("/members")
            if room_id not in self.members:
                return httpx.Response(404, json={"errcode": "M_NOT_FOUND", "error": "Unknown room"})
            return httpx.Response(200, json={"chunk": self.members[room_id]})
        if path == "/sync":
            return httpx.Response(200, json=self.sync)
        return httpx.Response(500, json={"errcode": "M_UNKNOWN", "error": f"unhandled {path}"})

    def last(self, method, suffix):
        return [r for r in self.requests if r.method == method and r.url.path.endswith(suffix)]


def member_event(user_id, membership, **content):
    return {
        "type": "m.room.member",
        "state_key": user_id,
        "content": {"membership": membership, **content},
    }


class TestRemoteProvider:
    """RemoteProvider against a fake homeserver."""

    @pytest.fixture
    def server(self):
        return FakeHomeserver()

    @pytest.fixture
    def provider(self, server):
        provider = RemoteProvider(
            "https://matrix.example.org/",
            access_token="syt_token",
            transport=httpx.MockTransport(server),
        )
        yield provider
        provider.close()

    def test_info(self, provider):
        """Trailing slash is stripped from the location."""
        assert provider.get_info().provider_type == "remote"
        assert provider.get_info().location == "https://matrix.example.org"

    def test_whoami_cached(self, provider, server):
        """The account id is fetched once."""
        assert provider.get_user_id() == "@alice:example.org"
        assert provider.get_user_id() == "@alice:example.org"
        assert len(server.last("GET", "/account/whoami")) == 1

    def test_bearer_token_sent(self, provider, server):
        """Requests carry the access token."""
        provider.get_user_id()
        assert server.requests[0].headers["Authorization"] == "Bearer syt_token"

    def test_home_server_from_account(self, provider):
        """The home server is derived from the account id."""
        assert provider.home_server == "example.org"

    def test_home_server_unavailable(self, server):
        """An account without a server part cannot qualify handles."""
        server.user_id = "alice"
        provider = RemoteProvider("https://matrix.example.org", transport=httpx.MockTransport(server))

        with pytest.raises(MembershipResolutionError):
            provider.home_server

    def test_user_exists(self, provider):
        """Profiles resolve known users; 404 means unknown."""
        assert provider.user_exists("@bob:example.org") is True
        assert provider.user_exists("@ghost:example.org") is False

    def test_errors_raise_provider_error(self, server):
        """HTTP failures carry status and errcode."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(403, json={"errcode": "M_FORBIDDEN", "error": "Denied"})
        )
        provider = RemoteProvider("https://matrix.example.org", transport=transport)

        with pytest.raises(ProviderError) as exc_info:
            provider.user_exists("@bob:example.org")

        assert exc_info.value.status_code == 403
        assert exc_info.value.errcode == "M_FORBIDDEN"

    def test_create_direct_chat(self, provider, server):
        """Rooms are created as encrypted direct chats and registered."""
        room_id = provider.create_direct_chat("@bob:example.org")

        assert room_id == "!new:example.org"
        body = json.loads(server.last("POST", "/createRoom")[0].content)
        assert body["is_direct"] is True
        assert body["preset"] == "trusted_private_chat"
        assert body["visibility"] == "private"
        assert body["invite"] == ["@bob:example.org"]
        state_types = {event["type"]: event["content"] for event in body["initial_state"]}
        assert state_types["m.room.encryption"]["algorithm"] == "m.megolm.v1.aes-sha2"
        assert state_types[ROOM_TYPE_EVENT] == {"type": DIRECT_CHAT_ROOM_TYPE}
        assert body["power_level_content_override"] == {
            "users_default": PARTICIPANT_POWER_LEVEL,
            "redact": NOBODY_POWER_LEVEL,
        }
        assert server.account_data["m.direct"] == {"@alice:example.org": ["!new:example.org"]}

    def test_create_moves_room_between_registry_keys(self, provider, server):
        """The new room is removed from any other registry key."""
        server.account_data["m.direct"] = {"@bob:example.org": ["!new:example.org", "!old:example.org"]}

        provider.create_direct_chat("@bob:example.org")

        assert server.account_data["m.direct"] == {
            "@bob:example.org": ["!old:example.org"],
            "@alice:example.org": ["!new:example.org"],
        }

    def test_join_direct_chat(self, provider, server):
        """Joining posts /join and records the room."""
        provider.join_direct_chat("@alice:example.org", "!r:example.org")

        assert len(server.last("POST", "/join/!r:example.org")) == 1
        assert server.account_data["m.direct"] == {"@alice:example.org": ["!r:example.org"]}

    def test_join_already_registered(self, provider, server):
        """A room already in the registry is not written again."""
        server.account_data["m.direct"] = {"@alice:example.org": ["!r:example.org"]}

        provider.join_direct_chat("@alice:example.org", "!r:example.org")

        assert server.last("PUT", "/account_data/m.direct") == []

    def test_leave_room(self, provider, server):
        """Leaving posts to the room's leave endpoint."""
        provider.leave_room("!r:example.org")
        assert len(server.last("POST", "/rooms/!r:example.org/leave")) == 1

    def test_list_rooms(self, provider, server):
        """Join, invite and leave sections become rooms with members."""
        server.sync = {
            "rooms": {
                "join": {
                    "!j:example.org": {
                        "state": {
                            "events": [
                                member_event("@alice:example.org", "join"),
                                member_event("@bob:example.org", "invite", is_direct=True),
                            ]
                        },
                        "timeline": {"events": [member_event("@bob:example.org", "join")]},
                    }
                },
                "invite": {
                    "!i:example.org": {
                        "invite_state": {
                            "events": [
                                member_event("@bob:example.org", "join", displayname="Bob"),
                                member_event("@alice:example.org", "invite", is_direct="true"),
                            ]
                        }
                    }
                },
                "leave": {
                    "!l:example.org": {
                        "timeline": {"events": [member_event("@alice:example.org", "ban")]}
                    }
                },
            }
        }

        rooms = {room.room_id: room for room in provider.list_rooms()}

        joined = rooms["!j:example.org"]
        assert joined.my_membership == Membership.JOINED
        bob = next(m for m in joined.members if m.user_id == "@bob:example.org")
        assert bob.membership == Membership.JOINED
        assert bob.is_direct is None

        invited = rooms["!i:example.org"]
        assert invited.my_membership == Membership.INVITED
        assert not invited.has_direct_flag()
        assert invited.other_member("@alice:example.org").display_name == "Bob"

        assert rooms["!l:example.org"].my_membership == Membership.BANNED

    def test_list_rooms_skips_malformed_events(self, provider, server):
        """Events that fail validation are ignored."""
        server.sync = {
            "rooms": {
                "join": {
                    "!j:example.org": {
                        "state": {
                            "events": [
                                {"state_key": "@bob:example.org"},
                                member_event("@alice:example.org", "join"),
                            ]
                        }
                    }
                }
            }
        }

        (room,) = provider.list_rooms()
        assert [m.user_id for m in room.members] == ["@alice:example.org"]

    def test_get_members(self, provider, server):
        """Members come from the members endpoint."""
        server.members["!r:example.org"] = [
            member_event("@alice:example.org", "join"),
            member_event("@bob:example.org", "leave"),
        ]

        members = {m.user_id: m.membership for m in provider.get_members("!r:example.org")}

        assert members == {"@alice:example.org": Membership.JOINED, "@bob:example.org": Membership.LEFT}

    def test_unknown_membership_dropped(self, provider, server):
        """A latest member event with an unknown membership removes that member."""
        server.members["!r:example.org"] = [
            member_event("@alice:example.org", "join"),
            member_event("@bob:example.org", "invite"),
            member_event("@bob:example.org", "xyz.custom"),
            {"type": "m.room.member", "state_key": "@carol:example.org", "content": {}},
        ]

        members = provider.get_members("!r:example.org")

        assert [m.user_id for m in members] == ["@alice:example.org"]

    def test_unknown_membership_is_not_an_existing_chat(self, provider, server):
        """A counterparty with an unknown membership does not block a new chat."""
        server.account_data["m.direct"] = {"@alice:example.org": ["!r:example.org"]}
        server.sync = {
            "rooms": {
                "join": {
                    "!r:example.org": {
                        "state": {"events": [member_event("@alice:example.org", "join")]}
                    }
                }
            }
        }
        server.members["!r:example.org"] = [
            member_event("@alice:example.org", "join"),
            member_event("@bob:example.org", "xyz.custom"),
        ]

        resolver = DirectChatResolver(provider)

        assert resolver.direct_chat_exists("@bob:example.org", "@alice:example.org") is False

    def test_get_members_unknown_room(self, provider):
        """Unknown rooms have no member list."""
        assert provider.get_members("!nope:example.org") is None

    def test_registry_absent(self, provider):
        """A registry that was never written is None."""
        assert provider.get_direct_chat_account_data() is None

    def test_ignore_and_unignore(self, provider, server):
        """The block list is kept in m.ignored_user_list."""
        provider.ignore_handle("@bob:example.org")
        assert server.account_data["m.ignored_user_list"] == {"ignored_users": {"@bob:example.org": {}}}
        assert provider.list_ignored_handles() == ["@bob:example.org"]

        provider.unignore_handle("@bob:example.org")
        assert provider.list_ignored_handles() == []

    def test_unignore_absent_writes_nothing(self, provider, server):
        """Unignoring someone not ignored is a no-op."""
        provider.unignore_handle("@bob:example.org")
        assert server.last("PUT", "/account_data/m.ignored_user_list") == []
