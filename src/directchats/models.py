"""Domain model for direct chats.

Rooms and membership records are translated into these types at the provider
boundary, so the engine never sees protocol payloads or protocol enums.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Membership(str, Enum):
    """Membership state of a participant in a room."""

    INVITED = "INVITED"
    JOINED = "JOINED"
    LEFT = "LEFT"
    BANNED = "BANNED"
    REQUESTED = "REQUESTED"


_WIRE_TO_MEMBERSHIP = {
    "invite": Membership.INVITED,
    "join": Membership.JOINED,
    "leave": Membership.LEFT,
    "ban": Membership.BANNED,
    "knock": Membership.REQUESTED,
}

_MEMBERSHIP_TO_WIRE = {v: k for k, v in _WIRE_TO_MEMBERSHIP.items()}


def membership_from_wire(value: str | None) -> Membership | None:
    """Translate a protocol membership string.

    Unknown or missing values have no translation and return None; callers
    drop such records.
    """
    if value is None:
        return None
    return _WIRE_TO_MEMBERSHIP.get(value)


def membership_to_wire(membership: Membership) -> str:
    """Translate a Membership back into its protocol string."""
    return _MEMBERSHIP_TO_WIRE[membership]


@dataclass
class RoomMember:
    """A participant's membership record in a room."""

    user_id: str
    membership: Membership
    display_name: str | None = None
    is_direct: bool | None = None
    """Direct-chat flag from the member event content; None when absent."""


@dataclass
class Room:
    """A room as seen by the calling account."""

    room_id: str
    my_membership: Membership
    members: list[RoomMember] = field(default_factory=list)

    def has_member_with(self, membership: Membership) -> bool:
        return any(m.membership == membership for m in self.members)

    def has_direct_flag(self) -> bool:
        """True if any member record was created with the direct-chat flag."""
        return any(m.is_direct is True for m in self.members)

    def other_member(self, user_id: str) -> RoomMember | None:
        """First member that is not `user_id`."""
        return next((m for m in self.members if m.user_id != user_id), None)


@dataclass
class Handle:
    """Public information about a handle."""

    handle_id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"handle_id": self.handle_id, "name": self.name}


@dataclass
class DirectChat:
    """A joined direct chat."""

    chat_id: str
    other_handle: Handle

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.chat_id, "other_handle": self.other_handle.to_dict()}


@dataclass
class DirectChatInvitation:
    """A pending invitation to a direct chat."""

    chat_id: str
    inviter_handle: Handle

    def to_dict(self) -> dict[str, Any]:
        return {"chat_id": self.chat_id, "inviter_handle": self.inviter_handle.to_dict()}
