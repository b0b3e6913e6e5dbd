"""Tests for directchats.testing fixtures."""

from directchats import DirectChats

# Import utility functions (not fixtures)
from directchats.testing import register_users


class TestDirectChatsFixture:
    """Test the basic directchats fixture."""

    def test_creates_in_memory_client(self, directchats):
        """Should create in-memory client."""
        assert directchats.provider == "in_memory"

    def test_no_account_selected(self, directchats):
        """The store client does not act as anyone."""
        assert directchats.user_id is None

    def test_fresh_each_test(self, directchats):
        """Should be fresh for each test (no leftover data)."""
        assert directchats.list_users() == []


class TestDirectChatsServerFixture:
    """Test the directchats_server fixture."""

    def test_creates_local_client(self, directchats_server):
        """Should create local file-backed client."""
        assert directchats_server.provider == "local"

    def test_creates_directchats_directory(self, directchats_server, tmp_path):
        """Should create .directchats directory."""
        assert (tmp_path / ".directchats").exists()
        assert (tmp_path / ".directchats" / "data.db").exists()

    def test_persists_data(self, directchats_server, tmp_path):
        """Data should persist to disk."""
        alice = directchats_server.register_user("alice", "Alice")
        directchats_server.close()

        # Reopen and verify
        client2 = DirectChats.local(tmp_path / ".directchats", user_id=alice)
        assert [u["user_id"] for u in client2.list_users()] == [alice]
        client2.close()


class TestAliceAndBobFixture:
    """Test the alice_and_bob fixture."""

    def test_returns_two_accounts(self, alice_and_bob):
        """Should act as two different accounts."""
        alice, bob = alice_and_bob
        assert alice.user_id == "@alice:localhost"
        assert bob.user_id == "@bob:localhost"

    def test_accounts_share_a_store(self, alice_and_bob):
        """Both clients see each other's rooms."""
        alice, bob = alice_and_bob
        chat_id = alice.create_chat("bob")
        assert [i["chat_id"] for i in bob.list_invitations()] == [chat_id]


class TestRegisterUsers:
    def test_registers_in_order(self, directchats):
        """Returns participant ids in the order given."""
        user_ids = register_users(directchats, ["carol", "dave"])

        assert user_ids == ["@carol:localhost", "@dave:localhost"]
        names = {u["user_id"]: u["display_name"] for u in directchats.list_users()}
        assert names == {"@carol:localhost": "Carol", "@dave:localhost": "Dave"}
