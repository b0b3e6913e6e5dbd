"""Typed errors raised by the direct chat SDK.

Every error a caller is expected to branch on derives from DirectChatsError,
so `except DirectChatsError` catches all of them while still allowing
specific handling (e.g. prompting for another handle on HandleNotFoundError).
"""

from __future__ import annotations


class DirectChatsError(Exception):
    """Base class for direct chat errors."""

    pass


class HandleNotFoundError(DirectChatsError):
    """Raised when a handle (or the caller's own account) is unknown to the provider."""

    pass


class InvalidHandleIdError(DirectChatsError):
    """Raised when a handle cannot be qualified into a participant id."""

    pass


class DirectChatExistsError(DirectChatsError):
    """Raised when creating a direct chat with a counterparty that already has one."""

    pass


class RoomNotFoundError(DirectChatsError):
    """Raised when a referenced room is not visible to the caller."""

    pass


class DirectChatMembershipError(DirectChatsError):
    """Raised when a resolved direct chat has no other participant."""

    pass


class MembershipResolutionError(DirectChatsError):
    """Raised when the owner identifier needed for resolution is unavailable."""

    pass


class ProviderError(DirectChatsError):
    """Raised by providers when the underlying homeserver rejects a request.

    Attributes:
        status_code: HTTP-style status code (404, 403, ...).
        errcode: Protocol error code such as M_NOT_FOUND, if known.
    """

    def __init__(self, status_code: int, errcode: str | None = None, message: str = ""):
        self.status_code = status_code
        self.errcode = errcode
        self.message = message
        detail = f"{errcode}: {message}" if errcode else message
        super().__init__(f"Provider error {status_code}: {detail}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404 or self.errcode == "M_NOT_FOUND"
