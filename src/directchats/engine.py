"""Direct chat resolution and reconciliation.

The provider's direct chat registry (m.direct account data) is the only
marker of "this room is a direct chat" that the counterparty's devices also
see, but it is written asynchronously and is never pruned when a participant
leaves. The resolver combines it with live membership records to answer:

- which rooms are direct chats in a given membership state, leaving
  registry-listed rooms whose counterparty is gone along the way;
- whether a direct chat with a given counterparty already exists.

When the registry has not caught up with a freshly created room, the
direct-chat flag on the room's member events is used instead.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from .errors import MembershipResolutionError
from .models import Membership, Room
from .providers import Provider

logger = logging.getLogger(__name__)

# Membership states in which a counterparty still holds a direct chat open
ACTIVE_MEMBERSHIPS = (Membership.JOINED, Membership.INVITED)


class DirectChatResolver:
    """Resolves direct chat rooms from rooms and the registry of one account."""

    def __init__(self, provider: Provider, max_workers: int | None = None):
        self._provider = provider
        self._max_workers = max_workers

    def _fetch_rooms_and_registry(self) -> tuple[list[Room], dict[str, list[str]]]:
        """Fetch the room list and the registry concurrently."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="resolve") as pool:
            rooms_future = pool.submit(self._provider.list_rooms)
            registry_future = pool.submit(self._provider.get_direct_chat_account_data)
            rooms = rooms_future.result()
            registry = registry_future.result()
        return rooms, registry or {}

    def resolve_direct_chat_rooms(self, owner_id: str | None, membership: Membership) -> list[Room]:
        """Rooms that are direct chats of `owner_id` in the given membership state.

        Registry-listed rooms in that state where some participant has left
        are stale: each is dropped from the working copy of the registry and
        left, one at a time. A failure to leave propagates.

        If no registry-listed room qualifies, rooms in that state carrying
        the direct-chat member flag are returned instead.

        No ordering is guaranteed.

        Raises:
            MembershipResolutionError: If `owner_id` is missing.
        """
        if not owner_id:
            raise MembershipResolutionError("Owner identifier is not available")

        rooms, registry = self._fetch_rooms_and_registry()
        # Working copy; discarded when this call returns
        registered = list(registry.get(owner_id, []))

        candidates = [
            room
            for room in rooms
            if room.my_membership == membership and room.room_id in registered
        ]
        qualifying = [room for room in candidates if not room.has_member_with(Membership.LEFT)]
        stale = [room for room in candidates if room.has_member_with(Membership.LEFT)]

        for room in stale:
            if room.room_id in registered:
                registered.remove(room.room_id)
            logger.info(f"Leaving stale direct chat {room.room_id}")
            self._provider.leave_room(room.room_id)

        if not qualifying:
            qualifying = [
                room
                for room in rooms
                if room.my_membership == membership and room.has_direct_flag()
            ]
            if qualifying:
                logger.info(
                    f"Registry has no {membership.value} direct chats for {owner_id}; "
                    f"using {len(qualifying)} flagged room(s)"
                )

        return qualifying

    def direct_chat_exists(self, counterparty_id: str, owner_id: str | None = None) -> bool:
        """Whether a registry-listed room has `counterparty_id` joined or invited.

        Membership is read fresh per room. Rooms with no member list count as
        no match. Stale rooms are neither cleaned up nor is the direct-chat
        flag consulted.
        """
        if owner_id is None:
            owner_id = self._provider.get_user_id()
        if not owner_id:
            raise MembershipResolutionError("Owner identifier is not available")

        rooms, registry = self._fetch_rooms_and_registry()
        registered = set(registry.get(owner_id, []))
        direct_rooms = [room for room in rooms if room.room_id in registered]
        if not direct_rooms:
            return False

        def has_counterparty(room: Room) -> bool:
            members = self._provider.get_members(room.room_id)
            if not members:
                return False
            return any(
                member.user_id == counterparty_id and member.membership in ACTIVE_MEMBERSHIPS
                for member in members
            )

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="exists"
        ) as pool:
            results = list(pool.map(has_counterparty, direct_rooms))
        return any(results)
