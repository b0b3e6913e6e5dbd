"""directchats - 1:1 direct chats on top of a Matrix-style room protocol.

Usage:
    from directchats import DirectChats, DirectChatsOptions

    # Auto-discover provider (local .directchats or configured source)
    client = DirectChats()

    # Explicit providers
    client = DirectChats.local(user_id="@alice:localhost")
    client = DirectChats.remote(url="https://matrix.example.org", access_token="syt_...")
    client = DirectChats.in_memory()

    # Full workflow on a local simulation
    store = DirectChats.in_memory()
    alice = store.as_user(store.register_user("alice", "Alice"))
    bob = store.as_user(store.register_user("bob", "Bob"))

    chat_id = alice.create_chat("bob")
    bob.accept_invitation(chat_id)
    alice.list_joined()
"""

from directchats._version import __version__
from directchats.client import DirectChats
from directchats.discovery import DirectChatsNotFound
from directchats.errors import (
    DirectChatExistsError,
    DirectChatMembershipError,
    DirectChatsError,
    HandleNotFoundError,
    InvalidHandleIdError,
    MembershipResolutionError,
    ProviderError,
    RoomNotFoundError,
)
from directchats.options import DirectChatsConfigError, DirectChatsOptions

__all__ = [
    "__version__",
    "DirectChats",
    "DirectChatsOptions",
    "DirectChatsNotFound",
    "DirectChatsConfigError",
    "DirectChatsError",
    "DirectChatExistsError",
    "DirectChatMembershipError",
    "HandleNotFoundError",
    "InvalidHandleIdError",
    "MembershipResolutionError",
    "ProviderError",
    "RoomNotFoundError",
]
