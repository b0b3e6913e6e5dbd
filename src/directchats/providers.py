"""Room/membership provider implementations for the direct chat SDK.

This module provides provider classes that abstract the underlying homeserver:
- Provider: Abstract base class defining the interface
- LocalProvider: SQLite-backed homeserver simulation in a .directchats directory
- InMemoryProvider: Ephemeral SQLite for testing
- RemoteProvider: HTTP client for a Matrix client-server API homeserver

A provider acts as a single account. It supplies rooms and their membership
records, the account's direct chat registry (m.direct account data) and the
block list (m.ignored_user_list account data).
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from . import db
from .discovery import ensure_gitignore, get_local_init_path
from .errors import MembershipResolutionError, ProviderError
from .ids import server_name, to_user_id, validate_handle_id
from .models import Membership, Room, RoomMember, membership_from_wire

logger = logging.getLogger(__name__)

Registry = dict[str, list[str]]

DEFAULT_HOME_SERVER = "localhost"

# State event marking the room type, and its value for direct chats
ROOM_TYPE_EVENT = "io.directchats.type"
DIRECT_CHAT_ROOM_TYPE = "chat.direct"

# Power levels: every participant may moderate, nobody may redact others
PARTICIPANT_POWER_LEVEL = 100
NOBODY_POWER_LEVEL = 101


@dataclass
class ProviderInfo:
    """Information about a provider instance."""

    provider_type: str
    """Type of provider: 'local', 'remote', or 'in_memory'."""

    location: str
    """Location description: path, URL, or ':memory:'."""


class Provider(ABC):
    """Abstract base class for room/membership providers.

    All providers implement the same interface so the direct chat engine
    works identically against a real homeserver or a local simulation.
    """

    @abstractmethod
    def get_info(self) -> ProviderInfo:
        """Get information about this provider."""
        ...

    @property
    @abstractmethod
    def home_server(self) -> str:
        """Server name used to qualify handles into participant ids."""
        ...

    # --- Account ---

    @abstractmethod
    def get_user_id(self) -> str | None:
        """The participant id of the account this provider acts as."""
        ...

    @abstractmethod
    def user_exists(self, user_id: str) -> bool:
        """Whether a fully-qualified participant id is known."""
        ...

    # --- Rooms ---

    @abstractmethod
    def create_direct_chat(self, user_id: str) -> str:
        """Create a direct chat room inviting `user_id`.

        The room is recorded in the caller's registry and removed from any
        other registry key.

        Returns:
            The new room id.
        """
        ...

    @abstractmethod
    def get_room(self, room_id: str) -> Room | None:
        """Get a room visible to the caller, or None."""
        ...

    @abstractmethod
    def join_direct_chat(self, user_id: str, room_id: str) -> None:
        """Join a direct chat and record it in the registry under `user_id`."""
        ...

    @abstractmethod
    def leave_room(self, room_id: str) -> None:
        """Leave a room."""
        ...

    @abstractmethod
    def list_rooms(self) -> list[Room]:
        """List all rooms visible to the caller, with membership records."""
        ...

    @abstractmethod
    def get_members(self, room_id: str) -> list[RoomMember] | None:
        """Fetch fresh membership records for a room, or None if unknown."""
        ...

    # --- Registry ---

    @abstractmethod
    def get_direct_chat_account_data(self) -> Registry | None:
        """The direct chat registry, or None if it was never written."""
        ...

    # --- Block List ---

    @abstractmethod
    def ignore_handle(self, user_id: str) -> None:
        """Add a participant to the block list."""
        ...

    @abstractmethod
    def unignore_handle(self, user_id: str) -> None:
        """Remove a participant from the block list (no-op if absent)."""
        ...

    @abstractmethod
    def list_ignored_handles(self) -> list[str]:
        """Participant ids on the block list."""
        ...

    def close(self) -> None:
        """Close any resources held by the provider."""
        pass


# --- Registry Helpers ---


def add_created_room(registry: Registry, user_id: str, room_id: str) -> bool:
    """Record a newly created room under `user_id` only.

    Removes the room from every other key first. Mutates `registry` in place.

    Returns:
        True if the registry changed.
    """
    modified = False
    for other_id, room_ids in registry.items():
        if other_id != user_id and room_id in room_ids:
            registry[other_id] = [r for r in room_ids if r != room_id]
            modified = True

    room_ids = registry.get(user_id, [])
    if room_id not in room_ids:
        registry[user_id] = [*room_ids, room_id]
        modified = True
    return modified


def add_joined_room(registry: Registry, user_id: str, room_id: str) -> bool:
    """Record a joined room under `user_id`. Returns True if the registry changed."""
    room_ids = registry.get(user_id, [])
    if room_id in room_ids:
        return False
    registry[user_id] = [*room_ids, room_id]
    return True


def _registry_from_content(content: dict[str, Any] | None) -> Registry | None:
    if content is None:
        return None
    return {
        user_id: [r for r in room_ids if isinstance(r, str)]
        for user_id, room_ids in content.items()
        if isinstance(room_ids, list)
    }


# --- Local Provider ---


@dataclass
class LocalConfig:
    """Configuration stored in .directchats/config.yaml."""

    home_server: str = DEFAULT_HOME_SERVER

    @classmethod
    def load(cls, path: Path) -> "LocalConfig":
        """Load config from YAML file."""
        config_path = path / "config.yaml"
        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(home_server=data.get("home_server", DEFAULT_HOME_SERVER))

    def save(self, path: Path) -> None:
        """Save config to YAML file."""
        config_path = path / "config.yaml"
        data = {"home_server": self.home_server}

        with open(config_path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


class LocalProvider(Provider):
    """Local homeserver simulation using SQLite.

    Stores data in a .directchats directory:
    - config.yaml: Home server name
    - data.db: SQLite database (users, rooms, membership, account data)

    Several accounts share one store; each provider instance acts as one of
    them (see `as_user`). Leaving a room does not prune the registry, so the
    store shows the same registry lag a real homeserver does.
    """

    def __init__(
        self,
        path: Path,
        user_id: str | None = None,
        create_if_missing: bool = False,
        home_server: str | None = None,
    ):
        """Initialize local provider.

        Args:
            path: Path to .directchats directory
            user_id: Account to act as. May be None for provisioning only.
            create_if_missing: If True, create directory if it doesn't exist
            home_server: Server name for a newly created store
        """
        self._path = path
        self._user_id = user_id
        self._conn: sqlite3.Connection | None = None
        self._config: LocalConfig | None = None
        self._lock = threading.RLock()
        self._owns_conn = True

        if not path.exists():
            if create_if_missing:
                self._init_local(home_server)
            else:
                raise FileNotFoundError(f"Local directchats store not found: {path}")
        else:
            self._load()

    @classmethod
    def create(
        cls,
        path: Path | None = None,
        home_server: str | None = None,
        add_to_gitignore: bool = True,
    ) -> "LocalProvider":
        """Create a new local store.

        Args:
            path: Path for .directchats directory. If None, uses git root or cwd.
            home_server: Server name used for participant and room ids.
            add_to_gitignore: Add .directchats/ to .gitignore if in git repo.
        """
        if path is None:
            path = get_local_init_path()

        provider = cls(path, create_if_missing=True, home_server=home_server)

        if add_to_gitignore:
            ensure_gitignore(path)

        return provider

    def _init_local(self, home_server: str | None) -> None:
        """Initialize a new .directchats directory."""
        self._path.mkdir(parents=True, exist_ok=True)

        self._config = LocalConfig(home_server=home_server or DEFAULT_HOME_SERVER)
        self._config.save(self._path)

        self._conn = db.get_connection(self._path / "data.db")
        db.init_db_with_conn(self._conn)

    def _load(self) -> None:
        """Load existing .directchats directory."""
        self._config = LocalConfig.load(self._path)
        self._conn = db.get_connection(self._path / "data.db")
        db.init_db_with_conn(self._conn)

    def as_user(self, user_id: str) -> "LocalProvider":
        """Return a provider acting as another account on the same store."""
        provider = self.__class__.__new__(self.__class__)
        provider._path = self._path
        provider._user_id = user_id
        provider._conn = self._conn
        provider._config = self._config
        provider._lock = self._lock
        provider._owns_conn = False
        return provider

    def get_info(self) -> ProviderInfo:
        return ProviderInfo(provider_type="local", location=str(self._path))

    @property
    def path(self) -> Path:
        """Path to .directchats directory."""
        return self._path

    @property
    def config(self) -> LocalConfig:
        """Local configuration."""
        if self._config is None:
            self._config = LocalConfig.load(self._path)
        return self._config

    @property
    def home_server(self) -> str:
        return self.config.home_server

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise ProviderError(500, "M_UNKNOWN", "Provider is closed")
        return self._conn

    def close(self) -> None:
        """Close database connection."""
        if self._conn and self._owns_conn:
            self._conn.close()
        self._conn = None

    def _me(self) -> str:
        if not self._user_id:
            raise ProviderError(401, "M_MISSING_TOKEN", "No account selected")
        return self._user_id

    # --- Provisioning ---

    def register_user(self, handle_id: str, display_name: str | None = None) -> str:
        """Register a new account on this store.

        Returns:
            The new participant id.

        Raises:
            ProviderError: M_USER_IN_USE if the handle is taken.
        """
        validate_handle_id(handle_id)
        user_id = to_user_id(handle_id, self.home_server)
        with self._lock:
            try:
                db.create_user(self.conn, user_id, display_name or handle_id)
            except ValueError as e:
                raise ProviderError(400, "M_USER_IN_USE", str(e)) from e
        logger.debug(f"Registered {user_id}")
        return user_id

    def list_users(self) -> list[dict[str, Any]]:
        """List registered accounts."""
        with self._lock:
            return db.list_users(self.conn)

    # --- Account ---

    def get_user_id(self) -> str | None:
        return self._user_id

    def user_exists(self, user_id: str) -> bool:
        with self._lock:
            return db.get_user(self.conn, user_id) is not None

    # --- Rooms ---

    @staticmethod
    def _to_member(row: dict[str, Any]) -> RoomMember | None:
        membership = membership_from_wire(row["membership"])
        if membership is None:
            return None
        flag = row.get("is_direct")
        return RoomMember(
            user_id=row["user_id"],
            membership=membership,
            display_name=row.get("display_name"),
            is_direct=None if flag is None else bool(flag),
        )

    def _members(self, room_id: str) -> list[RoomMember]:
        members = (self._to_member(row) for row in db.list_room_members(self.conn, room_id))
        return [m for m in members if m is not None]

    def _to_room(self, room_id: str, own_membership: str) -> Room | None:
        membership = membership_from_wire(own_membership)
        if membership is None:
            return None
        return Room(room_id=room_id, my_membership=membership, members=self._members(room_id))

    def create_direct_chat(self, user_id: str) -> str:
        me = self._me()
        with self._lock:
            try:
                room = db.create_room(
                    self.conn,
                    created_by=me,
                    server_name=self.home_server,
                    invite=[user_id],
                    is_direct=True,
                )
            except ValueError as e:
                raise ProviderError(404, "M_NOT_FOUND", str(e)) from e

            room_id = room["room_id"]
            registry = _registry_from_content(
                db.get_account_data(self.conn, me, db.DIRECT_EVENT_TYPE)
            ) or {}
            if add_created_room(registry, me, room_id):
                db.set_account_data(self.conn, me, db.DIRECT_EVENT_TYPE, registry)
        logger.debug(f"Created direct chat {room_id} with {user_id}")
        return room_id

    def get_room(self, room_id: str) -> Room | None:
        me = self._me()
        with self._lock:
            own = db.get_member(self.conn, room_id, me)
            if own is None:
                return None
            return self._to_room(room_id, own["membership"])

    def join_direct_chat(self, user_id: str, room_id: str) -> None:
        me = self._me()
        with self._lock:
            own = db.get_member(self.conn, room_id, me)
            if own is None or own["membership"] not in ("invite", "join"):
                raise ProviderError(403, "M_FORBIDDEN", f"{me} is not invited to {room_id}")
            db.set_membership(self.conn, room_id, me, "join")

            registry = _registry_from_content(
                db.get_account_data(self.conn, me, db.DIRECT_EVENT_TYPE)
            ) or {}
            if add_joined_room(registry, user_id, room_id):
                db.set_account_data(self.conn, me, db.DIRECT_EVENT_TYPE, registry)

    def leave_room(self, room_id: str) -> None:
        me = self._me()
        with self._lock:
            if db.get_member(self.conn, room_id, me) is None:
                raise ProviderError(404, "M_NOT_FOUND", f"Room {room_id} not found")
            db.set_membership(self.conn, room_id, me, "leave")

    def list_rooms(self) -> list[Room]:
        me = self._me()
        with self._lock:
            rooms = (
                self._to_room(row["room_id"], row["membership"])
                for row in db.list_rooms_for_user(self.conn, me)
            )
            return [room for room in rooms if room is not None]

    def get_members(self, room_id: str) -> list[RoomMember] | None:
        me = self._me()
        with self._lock:
            if db.get_room(self.conn, room_id) is None:
                return None
            if db.get_member(self.conn, room_id, me) is None:
                raise ProviderError(403, "M_FORBIDDEN", f"{me} is not in {room_id}")
            return self._members(room_id)

    # --- Registry ---

    def get_direct_chat_account_data(self) -> Registry | None:
        me = self._me()
        with self._lock:
            return _registry_from_content(
                db.get_account_data(self.conn, me, db.DIRECT_EVENT_TYPE)
            )

    # --- Block List ---

    def _ignored(self, me: str) -> dict[str, Any]:
        content = db.get_account_data(self.conn, me, db.IGNORED_USERS_EVENT_TYPE) or {}
        return dict(content.get("ignored_users", {}))

    def ignore_handle(self, user_id: str) -> None:
        me = self._me()
        with self._lock:
            ignored = self._ignored(me)
            ignored[user_id] = {}
            db.set_account_data(
                self.conn, me, db.IGNORED_USERS_EVENT_TYPE, {"ignored_users": ignored}
            )

    def unignore_handle(self, user_id: str) -> None:
        me = self._me()
        with self._lock:
            ignored = self._ignored(me)
            if user_id not in ignored:
                logger.debug(f"{user_id} was not previously ignored")
                return
            del ignored[user_id]
            db.set_account_data(
                self.conn, me, db.IGNORED_USERS_EVENT_TYPE, {"ignored_users": ignored}
            )

    def list_ignored_handles(self) -> list[str]:
        me = self._me()
        with self._lock:
            return list(self._ignored(me))


class InMemoryProvider(LocalProvider):
    """In-memory provider for testing.

    Uses SQLite's :memory: database. All data is lost when the provider
    is closed or garbage collected.
    """

    def __init__(self, user_id: str | None = None, home_server: str = DEFAULT_HOME_SERVER):
        """Initialize in-memory provider."""
        self._path = Path(":memory:")
        self._user_id = user_id
        self._config = LocalConfig(home_server=home_server)
        self._conn = db.get_connection(":memory:")
        self._lock = threading.RLock()
        self._owns_conn = True
        db.init_db_with_conn(self._conn)

    def get_info(self) -> ProviderInfo:
        return ProviderInfo(provider_type="in_memory", location=":memory:")


# --- Remote Provider ---


CLIENT_API = "/_matrix/client/v3"

# Only membership state is needed to resolve direct chats
SYNC_FILTER = {
    "presence": {"types": []},
    "account_data": {"types": []},
    "room": {
        "include_leave": False,
        "state": {"types": ["m.room.member"], "lazy_load_members": False},
        "timeline": {"types": ["m.room.member"], "limit": 10},
        "ephemeral": {"types": []},
        "account_data": {"types": []},
    },
}


class MemberContent(BaseModel):
    """Content of an m.room.member event."""

    membership: str | None = None
    displayname: str | None = None
    is_direct: bool | None = None

    @field_validator("is_direct", mode="before")
    @classmethod
    def _only_literal_true_or_false(cls, value: Any) -> bool | None:
        # The flag counts only when it is a real boolean
        return value if isinstance(value, bool) else None


class StateEvent(BaseModel):
    """A room state event as returned by /sync or /members."""

    type: str
    state_key: str | None = None
    content: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_member_event(self) -> bool:
        return self.type == "m.room.member" and self.state_key is not None

    def to_member(self) -> RoomMember | None:
        """Member record, or None when the membership has no translation."""
        if not self.is_member_event:
            return None
        content = MemberContent.model_validate(self.content)
        membership = membership_from_wire(content.membership)
        if membership is None:
            logger.debug(f"Dropping {self.state_key} with membership {content.membership!r}")
            return None
        return RoomMember(
            user_id=self.state_key,
            membership=membership,
            display_name=content.displayname,
            is_direct=content.is_direct,
        )


def _parse_members(events: list[dict[str, Any]]) -> list[RoomMember]:
    """Latest membership record per user from a list of raw events.

    A user whose latest record has an unknown membership is dropped.
    """
    members: dict[str, RoomMember] = {}
    for raw in events:
        try:
            event = StateEvent.model_validate(raw)
            member = event.to_member()
        except ValidationError:
            logger.debug(f"Skipping malformed member event: {raw!r}")
            continue
        if member is not None:
            members[member.user_id] = member
        elif event.is_member_event:
            members.pop(event.state_key, None)
    return list(members.values())


class RemoteProvider(Provider):
    """Remote homeserver provider.

    Talks to a Matrix client-server API homeserver over HTTP.
    """

    def __init__(
        self,
        url: str,
        access_token: str | None = None,
        home_server: str | None = None,
        timeout: float = 30.0,
        transport: Any = None,
    ):
        """Initialize remote provider.

        Args:
            url: Base URL of the homeserver
            access_token: Access token of the account to act as
            home_server: Server name; derived from the account id if None
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        """
        import httpx

        self._url = url.rstrip("/")
        self._home_server = home_server
        self._user_id: str | None = None
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self._client = httpx.Client(
            base_url=self._url, headers=headers, timeout=timeout, transport=transport
        )

    def get_info(self) -> ProviderInfo:
        return ProviderInfo(provider_type="remote", location=self._url)

    def close(self) -> None:
        """Close HTTP client."""
        self._client.close()

    @property
    def home_server(self) -> str:
        if self._home_server is None:
            user_id = self.get_user_id()
            self._home_server = server_name(user_id) if user_id else None
        if self._home_server is None:
            raise MembershipResolutionError("Unable to determine the home server")
        return self._home_server

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a client-server API request."""
        response = self._client.request(method, f"{CLIENT_API}{path}", json=json, params=params)

        if response.status_code >= 400:
            errcode = None
            message = response.text
            try:
                body = response.json()
                errcode = body.get("errcode")
                message = body.get("error", message)
            except ValueError:
                pass
            logger.warning(f"{method} {path} failed: {response.status_code} {errcode}")
            raise ProviderError(response.status_code, errcode, message)

        if response.status_code == 204 or not response.content:
            return None

        return response.json()

    def _account_data_path(self, event_type: str) -> str:
        return f"/user/{quote(self._me(), safe='')}/account_data/{event_type}"

    def _get_account_data(self, event_type: str) -> dict[str, Any] | None:
        try:
            return self._request("GET", self._account_data_path(event_type))
        except ProviderError as e:
            if e.is_not_found:
                return None
            raise

    def _set_account_data(self, event_type: str, content: dict[str, Any]) -> None:
        self._request("PUT", self._account_data_path(event_type), json=content)

    def _me(self) -> str:
        user_id = self.get_user_id()
        if not user_id:
            raise MembershipResolutionError("Homeserver did not return an account id")
        return user_id

    # --- Account ---

    def get_user_id(self) -> str | None:
        if self._user_id is None:
            result = self._request("GET", "/account/whoami") or {}
            self._user_id = result.get("user_id")
        return self._user_id

    def user_exists(self, user_id: str) -> bool:
        logger.debug(f"user_exists {user_id}")
        try:
            self._request("GET", f"/profile/{quote(user_id, safe='')}")
            return True
        except ProviderError as e:
            if e.is_not_found:
                return False
            raise

    # --- Rooms ---

    def create_direct_chat(self, user_id: str) -> str:
        me = self._me()
        body = {
            "is_direct": True,
            "visibility": "private",
            "preset": "trusted_private_chat",
            "invite": [user_id],
            "initial_state": [
                {
                    "type": "m.room.encryption",
                    "state_key": "",
                    "content": {"algorithm": "m.megolm.v1.aes-sha2"},
                },
                {
                    "type": ROOM_TYPE_EVENT,
                    "state_key": "",
                    "content": {"type": DIRECT_CHAT_ROOM_TYPE},
                },
            ],
            "power_level_content_override": {
                "users_default": PARTICIPANT_POWER_LEVEL,
                "redact": NOBODY_POWER_LEVEL,
            },
        }
        result = self._request("POST", "/createRoom", json=body)
        room_id = result["room_id"]

        registry = _registry_from_content(self._get_account_data(db.DIRECT_EVENT_TYPE)) or {}
        if add_created_room(registry, me, room_id):
            self._set_account_data(db.DIRECT_EVENT_TYPE, registry)
        logger.debug(f"Created direct chat {room_id} with {user_id}")
        return room_id

    def get_room(self, room_id: str) -> Room | None:
        return next((room for room in self.list_rooms() if room.room_id == room_id), None)

    def join_direct_chat(self, user_id: str, room_id: str) -> None:
        registry = _registry_from_content(self._get_account_data(db.DIRECT_EVENT_TYPE)) or {}
        self._request("POST", f"/join/{quote(room_id, safe='')}", json={})
        if add_joined_room(registry, user_id, room_id):
            self._set_account_data(db.DIRECT_EVENT_TYPE, registry)

    def leave_room(self, room_id: str) -> None:
        logger.debug(f"leave_room {room_id}")
        self._request("POST", f"/rooms/{quote(room_id, safe='')}/leave", json={})

    def list_rooms(self) -> list[Room]:
        me = self._me()
        result = self._request(
            "GET", "/sync", params={"timeout": 0, "filter": json.dumps(SYNC_FILTER)}
        ) or {}
        rooms_data = result.get("rooms", {})
        rooms: list[Room] = []

        for room_id, data in rooms_data.get("join", {}).items():
            events = data.get("state", {}).get("events", []) + data.get("timeline", {}).get(
                "events", []
            )
            rooms.append(Room(room_id, Membership.JOINED, _parse_members(events)))

        for room_id, data in rooms_data.get("invite", {}).items():
            events = data.get("invite_state", {}).get("events", [])
            rooms.append(Room(room_id, Membership.INVITED, _parse_members(events)))

        for room_id, data in rooms_data.get("leave", {}).items():
            events = data.get("state", {}).get("events", []) + data.get("timeline", {}).get(
                "events", []
            )
            members = _parse_members(events)
            own = next((m for m in members if m.user_id == me), None)
            my_membership = own.membership if own is not None else Membership.LEFT
            rooms.append(Room(room_id, my_membership, members))

        return rooms

    def get_members(self, room_id: str) -> list[RoomMember] | None:
        try:
            result = self._request("GET", f"/rooms/{quote(room_id, safe='')}/members")
        except ProviderError as e:
            if e.is_not_found:
                return None
            raise
        return _parse_members((result or {}).get("chunk", []))

    # --- Registry ---

    def get_direct_chat_account_data(self) -> Registry | None:
        return _registry_from_content(self._get_account_data(db.DIRECT_EVENT_TYPE))

    # --- Block List ---

    def _ignored(self) -> dict[str, Any]:
        content = self._get_account_data(db.IGNORED_USERS_EVENT_TYPE) or {}
        return dict(content.get("ignored_users", {}))

    def ignore_handle(self, user_id: str) -> None:
        ignored = self._ignored()
        ignored[user_id] = {}
        self._set_account_data(db.IGNORED_USERS_EVENT_TYPE, {"ignored_users": ignored})

    def unignore_handle(self, user_id: str) -> None:
        ignored = self._ignored()
        if user_id not in ignored:
            logger.debug(f"{user_id} was not previously ignored")
            return
        del ignored[user_id]
        self._set_account_data(db.IGNORED_USERS_EVENT_TYPE, {"ignored_users": ignored})

    def list_ignored_handles(self) -> list[str]:
        return list(self._ignored())
