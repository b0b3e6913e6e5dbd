"""Direct chat lifecycle operations.

Creation with deduplication, invitation accept/decline, listing, and
block/unblock by handle, built on DirectChatResolver.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from .engine import DirectChatResolver
from .errors import (
    DirectChatExistsError,
    DirectChatMembershipError,
    HandleNotFoundError,
    MembershipResolutionError,
    RoomNotFoundError,
)
from .ids import to_chat_id, to_handle_id, to_user_id, validate_handle_id
from .models import DirectChat, DirectChatInvitation, Handle, Membership, Room
from .providers import Provider

logger = logging.getLogger(__name__)


class DirectChatsService:
    """Direct chat operations for the account a provider acts as."""

    def __init__(self, provider: Provider, resolver: DirectChatResolver | None = None):
        self._provider = provider
        self._resolver = resolver or DirectChatResolver(provider)
        self._create_lock = threading.Lock()

    @property
    def resolver(self) -> DirectChatResolver:
        return self._resolver

    def _owner_id(self) -> str:
        user_id = self._provider.get_user_id()
        if not user_id:
            raise MembershipResolutionError("Owner identifier is not available")
        return user_id

    def _existing_user_id(self, handle_id: str, action: str) -> str:
        validate_handle_id(handle_id)
        user_id = to_user_id(handle_id, self._provider.home_server)
        if not self._provider.user_exists(user_id):
            raise HandleNotFoundError(f"Handle to {action} does not exist")
        return user_id

    def create(self, handle_id: str) -> str:
        """Create a direct chat with a handle.

        Create calls on one service are serialized, so two concurrent calls
        for the same handle cannot both pass the existence check. Calls from
        other processes or devices are not covered.

        Returns:
            The chat id of the new direct chat.

        Raises:
            InvalidHandleIdError: If the handle is malformed.
            HandleNotFoundError: If the handle does not exist.
            DirectChatExistsError: If a direct chat with the handle exists.
        """
        logger.debug(f"create {handle_id}")
        user_id = self._existing_user_id(handle_id, "chat to")
        with self._create_lock:
            if self._resolver.direct_chat_exists(user_id, self._owner_id()):
                raise DirectChatExistsError("Direct chat already exists")
            room_id = self._provider.create_direct_chat(user_id)
        return to_chat_id(room_id)

    def accept_invitation(self, chat_id: str) -> None:
        """Join a direct chat the caller was invited to."""
        logger.debug(f"accept_invitation {chat_id}")
        user_id = self._owner_id()
        room = self._provider.get_room(chat_id)
        if room is None:
            raise RoomNotFoundError(f"Room {chat_id} not found")
        self._provider.join_direct_chat(user_id, room.room_id)

    def decline_invitation(self, chat_id: str) -> None:
        """Leave a direct chat the caller was invited to."""
        logger.debug(f"decline_invitation {chat_id}")
        room = self._provider.get_room(chat_id)
        if room is None:
            raise RoomNotFoundError(f"Room {chat_id} not found")
        self._provider.leave_room(room.room_id)

    def list_invitations(self) -> list[DirectChatInvitation]:
        """Pending direct chat invitations.

        Raises:
            DirectChatMembershipError: If an invited room has no inviter.
        """
        logger.debug("list_invitations")
        user_id = self._owner_id()
        rooms = self._resolver.resolve_direct_chat_rooms(user_id, Membership.INVITED)

        invitations = []
        for room in rooms:
            inviter = room.other_member(user_id)
            if inviter is None:
                raise DirectChatMembershipError("Direct chat membership not available")
            invitations.append(
                DirectChatInvitation(
                    chat_id=to_chat_id(room.room_id),
                    inviter_handle=Handle(
                        handle_id=to_handle_id(inviter.user_id),
                        name=inviter.display_name or "",
                    ),
                )
            )
        return invitations

    def list_joined(self) -> list[DirectChat]:
        """Joined direct chats, with the other participant read fresh per room.

        Raises:
            DirectChatMembershipError: If a joined room has no other participant.
        """
        logger.debug("list_joined")
        user_id = self._owner_id()
        rooms = self._resolver.resolve_direct_chat_rooms(user_id, Membership.JOINED)
        if not rooms:
            return []

        def to_direct_chat(room: Room) -> DirectChat:
            members = self._provider.get_members(room.room_id) or []
            other = next((m for m in members if m.user_id != user_id), None)
            if other is None:
                raise DirectChatMembershipError("Direct chat membership not available")
            return DirectChat(
                chat_id=to_chat_id(room.room_id),
                other_handle=Handle(
                    handle_id=to_handle_id(other.user_id),
                    name=other.display_name or "",
                ),
            )

        with ThreadPoolExecutor(thread_name_prefix="members") as pool:
            return list(pool.map(to_direct_chat, rooms))

    def block_handle(self, handle_id: str) -> None:
        """Block a handle."""
        logger.debug(f"block_handle {handle_id}")
        user_id = self._existing_user_id(handle_id, "block")
        self._provider.ignore_handle(user_id)

    def unblock_handle(self, handle_id: str) -> None:
        """Unblock a handle."""
        logger.debug(f"unblock_handle {handle_id}")
        user_id = self._existing_user_id(handle_id, "unblock")
        self._provider.unignore_handle(user_id)

    def list_blocked_handles(self) -> list[str]:
        """Blocked participant ids, as the provider reports them."""
        logger.debug("list_blocked_handles")
        return self._provider.list_ignored_handles()
