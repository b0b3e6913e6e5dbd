"""Unified DirectChats client with provider abstraction.

This module provides the main `DirectChats` class that users interact with.
The provider (local SQLite, remote homeserver, or in-memory) is abstracted
away behind a unified interface.

Usage:
    # Auto-discover provider
    client = DirectChats()

    # Explicit providers
    client = DirectChats.local(user_id="@alice:localhost")
    client = DirectChats.remote(url="https://matrix.example.org", access_token="syt_...")
    client = DirectChats.in_memory()

    # Create new local .directchats
    client = DirectChats.create_local()

    # With explicit options
    client = DirectChats(DirectChatsOptions(path=".directchats"))
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from .discovery import DirectChatsNotFound, discover_provider, get_local_init_path
from .options import DEFAULT_REMOTE_SETTLE_DELAY, DirectChatsOptions
from .providers import (
    DEFAULT_HOME_SERVER,
    InMemoryProvider,
    LocalProvider,
    Provider,
    RemoteProvider,
)
from .service import DirectChatsService

logger = logging.getLogger(__name__)


class DirectChats:
    """Unified client for direct chat operations.

    Provides a consistent interface regardless of whether the provider
    is a local .directchats store, a remote homeserver, or in-memory.

    State-changing operations (create, accept, decline, block, unblock) wait
    `settle_delay` seconds before returning so that reads issued right after
    them observe the change on homeservers with asynchronous writes.

    Examples:
        # Auto-discover existing configuration
        client = DirectChats()

        # In-memory for testing
        client = DirectChats.in_memory()
        alice = client.register_user("alice", "Alice")
        bob = client.register_user("bob", "Bob")
        chat_id = client.as_user(alice).create_chat("bob")
        client.as_user(bob).accept_invitation(chat_id)
    """

    def __init__(self, options: DirectChatsOptions | None = None):
        """Initialize DirectChats client.

        Args:
            options: Configuration options. If None, auto-discovers provider.
        """
        self._options = options or DirectChatsOptions()
        self._provider = self._create_provider()
        self._service = DirectChatsService(self._provider)

    def _create_provider(self) -> Provider:
        """Create the appropriate provider based on options."""
        opts = self._options

        # Explicit in-memory
        if opts.is_in_memory():
            return InMemoryProvider(
                user_id=opts.user_id,
                home_server=opts.home_server or DEFAULT_HOME_SERVER,
            )

        # Explicit local with path
        if opts.resolved_path is not None:
            return LocalProvider(
                opts.resolved_path,
                user_id=opts.user_id,
                create_if_missing=opts.create_if_missing,
                home_server=opts.home_server,
            )

        # Explicit remote
        if opts.is_remote():
            assert opts.resolved_url is not None
            return RemoteProvider(
                url=opts.resolved_url,
                access_token=opts.access_token,
                home_server=opts.home_server,
            )

        # Auto-discover local (local=True but no path)
        if opts.local:
            result = discover_provider(require_local=True)
            assert result.path is not None
            return LocalProvider(result.path, user_id=opts.user_id or result.user_id)

        # Full auto-discovery
        if opts.is_auto_discover():
            result = discover_provider()
            logger.debug(f"Discovered {result.provider_type} provider: {result.source}")
            if result.provider_type == "local":
                if result.path is None:
                    raise DirectChatsNotFound(f"Local source has no path ({result.source})")
                return LocalProvider(result.path, user_id=opts.user_id or result.user_id)
            elif result.provider_type == "remote":
                assert result.url is not None
                if self._options.settle_delay is None:
                    self._options.settle_delay = DEFAULT_REMOTE_SETTLE_DELAY
                return RemoteProvider(
                    url=result.url,
                    access_token=result.access_token,
                    home_server=opts.home_server,
                )

        raise DirectChatsNotFound("Unable to determine provider from options")

    @classmethod
    def _from_provider(cls, provider: Provider, options: DirectChatsOptions) -> "DirectChats":
        client = cls.__new__(cls)
        client._options = options
        client._provider = provider
        client._service = DirectChatsService(provider)
        return client

    # --- Factory Methods ---

    @classmethod
    def discover(cls) -> "DirectChats":
        """Create client by discovering existing configuration.

        Same as `DirectChats()` - provided for explicitness.
        """
        return cls()

    @classmethod
    def local(cls, path: str | Path | None = None, user_id: str | None = None) -> "DirectChats":
        """Create client with local provider.

        Args:
            path: Path to .directchats directory. If None, auto-discovers.
            user_id: Account to act as.

        Raises:
            DirectChatsNotFound: If no local .directchats found.
        """
        if path:
            return cls(DirectChatsOptions(path=path, user_id=user_id))
        return cls(DirectChatsOptions(local=True, user_id=user_id))

    @classmethod
    def remote(
        cls,
        url: str,
        access_token: str | None = None,
        home_server: str | None = None,
        settle_delay: float | None = None,
    ) -> "DirectChats":
        """Create client with remote provider.

        Args:
            url: Homeserver URL.
            access_token: Access token of the account to act as.
            home_server: Server name; derived from the account if None.
            settle_delay: Seconds to wait after state changes (default 3.0).
        """
        return cls(
            DirectChatsOptions(
                url=url,
                access_token=access_token,
                home_server=home_server,
                settle_delay=settle_delay,
            )
        )

    @classmethod
    def in_memory(cls, user_id: str | None = None, home_server: str | None = None) -> "DirectChats":
        """Create client with ephemeral in-memory provider.

        Perfect for testing - no cleanup needed.
        """
        return cls(DirectChatsOptions(in_memory=True, user_id=user_id, home_server=home_server))

    @classmethod
    def create_local(
        cls,
        path: str | Path | None = None,
        home_server: str | None = None,
        add_to_gitignore: bool = True,
    ) -> "DirectChats":
        """Create a new local .directchats directory.

        Args:
            path: Where to create .directchats. If None, uses git root or cwd.
            home_server: Server name used for participant and room ids.
            add_to_gitignore: Add .directchats/ to .gitignore if in git repo.

        Returns:
            Client connected to the new local provider.
        """
        if path is None:
            path = get_local_init_path()
        else:
            path = Path(path)

        provider = LocalProvider.create(
            path=path, home_server=home_server, add_to_gitignore=add_to_gitignore
        )
        return cls._from_provider(provider, DirectChatsOptions(path=path))

    def as_user(self, user_id: str) -> "DirectChats":
        """Client acting as another account on the same local store.

        The returned client shares this client's connection; close this
        client, not the derived one.

        Raises:
            TypeError: If the provider is not a local or in-memory store.
        """
        if not isinstance(self._provider, LocalProvider):
            raise TypeError("as_user requires a local or in-memory provider")
        options = DirectChatsOptions(
            in_memory=self._options.is_in_memory(),
            path=None if self._options.is_in_memory() else self._provider.path,
            user_id=user_id,
            home_server=self._provider.home_server,
            settle_delay=self._options.settle_delay,
        )
        return self._from_provider(self._provider.as_user(user_id), options)

    # --- Properties ---

    @property
    def provider(self) -> str:
        """Provider type: 'local', 'remote', or 'in_memory'."""
        return self._provider.get_info().provider_type

    @property
    def location(self) -> str:
        """Provider location: path, URL, or ':memory:'."""
        return self._provider.get_info().location

    @property
    def user_id(self) -> str | None:
        """Participant id of the account this client acts as."""
        return self._provider.get_user_id()

    @property
    def settle_delay(self) -> float:
        return self._options.resolved_settle_delay

    def _settle(self) -> None:
        if self.settle_delay > 0:
            time.sleep(self.settle_delay)

    # --- Provisioning (local stores only) ---

    def register_user(self, handle_id: str, display_name: str | None = None) -> str:
        """Register an account on a local or in-memory store.

        Returns:
            The new participant id.
        """
        if not isinstance(self._provider, LocalProvider):
            raise TypeError("register_user requires a local or in-memory provider")
        return self._provider.register_user(handle_id, display_name)

    def list_users(self) -> list[dict[str, Any]]:
        """List accounts on a local or in-memory store."""
        if not isinstance(self._provider, LocalProvider):
            raise TypeError("list_users requires a local or in-memory provider")
        return self._provider.list_users()

    # --- Direct Chat Operations ---

    def create_chat(self, handle_id: str) -> str:
        """Create a direct chat with a handle.

        Args:
            handle_id: Handle of the other participant (e.g. "bob").

        Returns:
            The new chat id.

        Raises:
            InvalidHandleIdError: If the handle is malformed.
            HandleNotFoundError: If the handle does not exist.
            DirectChatExistsError: If a direct chat with the handle exists.
        """
        chat_id = self._service.create(handle_id)
        self._settle()
        return chat_id

    def accept_invitation(self, chat_id: str) -> None:
        """Accept a direct chat invitation.

        Raises:
            RoomNotFoundError: If the chat is not visible to the caller.
        """
        self._service.accept_invitation(chat_id)
        self._settle()

    def decline_invitation(self, chat_id: str) -> None:
        """Decline a direct chat invitation.

        Raises:
            RoomNotFoundError: If the chat is not visible to the caller.
        """
        self._service.decline_invitation(chat_id)
        self._settle()

    def list_invitations(self) -> list[dict[str, Any]]:
        """Pending invitations.

        Returns:
            List of dicts with: chat_id, inviter_handle {handle_id, name}
        """
        return [invitation.to_dict() for invitation in self._service.list_invitations()]

    def list_joined(self) -> list[dict[str, Any]]:
        """Joined direct chats.

        Returns:
            List of dicts with: id, other_handle {handle_id, name}
        """
        return [chat.to_dict() for chat in self._service.list_joined()]

    def block_handle(self, handle_id: str) -> None:
        """Block a handle.

        Raises:
            HandleNotFoundError: If the handle does not exist.
        """
        self._service.block_handle(handle_id)
        self._settle()

    def unblock_handle(self, handle_id: str) -> None:
        """Unblock a handle. A handle that is not blocked is left alone.

        Raises:
            HandleNotFoundError: If the handle does not exist.
        """
        self._service.unblock_handle(handle_id)
        self._settle()

    def list_blocked_handles(self) -> list[str]:
        """Blocked participant ids."""
        return self._service.list_blocked_handles()

    # --- Context Manager ---

    def close(self) -> None:
        """Close provider resources."""
        self._provider.close()

    def __enter__(self) -> "DirectChats":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
