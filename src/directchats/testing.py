"""Pytest fixtures for testing with DirectChats.

Usage in conftest.py:
    pytest_plugins = ["directchats.testing"]

Or import specific fixtures:
    from directchats.testing import directchats, alice_and_bob

Available fixtures:
    - directchats: Fresh in-memory homeserver simulation (no account selected)
    - directchats_server: File-backed local homeserver simulation (uses tmp_path)
    - alice_and_bob: Clients for two registered accounts on one in-memory store
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Generator

import pytest

from .client import DirectChats

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def directchats() -> Generator[DirectChats, None, None]:
    """Fresh in-memory DirectChats client.

    No cleanup needed - all data is ephemeral. Register accounts and
    switch between them with `as_user`.

    Example:
        def test_something(directchats):
            alice = directchats.register_user("alice", "Alice")
            directchats.register_user("bob", "Bob")
            chat_id = directchats.as_user(alice).create_chat("bob")
            ...
    """
    client = DirectChats.in_memory()
    yield client
    client.close()


@pytest.fixture
def directchats_server(tmp_path: "Path") -> Generator[DirectChats, None, None]:
    """File-backed local homeserver simulation.

    Creates a .directchats directory in tmp_path.
    Useful for testing persistence behavior.

    Example:
        def test_persistence(directchats_server, tmp_path):
            alice = directchats_server.register_user("alice")
            directchats_server.close()

            # Reopen and verify
            client2 = DirectChats.local(tmp_path / ".directchats", user_id=alice)
            assert client2.user_id == alice
    """
    client = DirectChats.create_local(path=tmp_path / ".directchats", add_to_gitignore=False)
    yield client
    client.close()


@pytest.fixture
def alice_and_bob(
    directchats: DirectChats,
) -> Generator[tuple[DirectChats, DirectChats], None, None]:
    """Clients acting as Alice and Bob on one in-memory store.

    Returns:
        Tuple of (alice_client, bob_client)

    Example:
        def test_chat(alice_and_bob):
            alice, bob = alice_and_bob
            chat_id = alice.create_chat("bob")
            bob.accept_invitation(chat_id)
            assert alice.list_joined()[0]["other_handle"]["handle_id"] == "bob"
    """
    alice_id, bob_id = register_users(directchats, ["alice", "bob"])
    yield directchats.as_user(alice_id), directchats.as_user(bob_id)


# --- Utility Functions ---


def register_users(client: DirectChats, handles: list[str]) -> list[str]:
    """Register accounts named after their handles.

    Utility function for custom fixtures. Each display name is the
    capitalized handle.

    Returns:
        List of participant ids, in the order of `handles`.
    """
    return [client.register_user(handle, handle.capitalize()) for handle in handles]
