"""Identifier mapping between handles and fully-qualified participant ids.

A handle is the local part of a participant id: handle ``alice`` on the home
server ``example.org`` is the participant ``@alice:example.org``.
"""

from __future__ import annotations

from .errors import InvalidHandleIdError

USER_SIGIL = "@"
SERVER_SEPARATOR = ":"


def to_user_id(handle_id: str, home_server: str) -> str:
    """Qualify a handle into a participant id on `home_server`."""
    return f"{USER_SIGIL}{handle_id}{SERVER_SEPARATOR}{home_server}"


def to_handle_id(user_id: str) -> str:
    """Extract the handle from a participant id.

    Returns an empty string when the id carries no ``@`` sigil.

    Example:
        >>> to_handle_id("@alice:example.org")
        'alice'
    """
    _, sigil, rest = user_id.partition(USER_SIGIL)
    if not sigil:
        return ""
    return rest.split(SERVER_SEPARATOR, 1)[0]


def to_chat_id(room_id: str) -> str:
    """Direct chats are identified by their room id."""
    return room_id


def server_name(user_id: str) -> str | None:
    """Return the home server part of a participant id, if present."""
    _, sep, server = user_id.partition(SERVER_SEPARATOR)
    return server if sep and server else None


def validate_handle_id(handle_id: str) -> str:
    """Check that a handle can round-trip through `to_user_id`.

    Raises:
        InvalidHandleIdError: If the handle is empty or contains ``@`` or ``:``.
    """
    if not handle_id or not handle_id.strip():
        raise InvalidHandleIdError("Handle id must not be empty")
    if USER_SIGIL in handle_id or SERVER_SEPARATOR in handle_id:
        raise InvalidHandleIdError(
            f"Handle id {handle_id!r} must not contain {USER_SIGIL!r} or {SERVER_SEPARATOR!r}"
        )
    return handle_id
