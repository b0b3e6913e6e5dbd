"""Configuration options for the DirectChats client.

Provides DirectChatsOptions for configuring provider selection and connection
details. Supports environment variable overrides for CI/CD and containerized
deployments.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Seconds to wait after state-changing operations against a real homeserver,
# whose own view lags the request that was just issued
DEFAULT_REMOTE_SETTLE_DELAY = 3.0


class DirectChatsConfigError(Exception):
    """Raised when DirectChatsOptions configuration is invalid."""

    pass


@dataclass
class DirectChatsOptions:
    """Configuration options for the DirectChats client.

    Supports three modes (mutually exclusive):
    1. Local: SQLite homeserver simulation in a .directchats directory
    2. Remote: Matrix client-server API homeserver
    3. In-memory: Ephemeral SQLite for testing

    Environment Variables:
        DIRECTCHATS_PATH: Force local provider with specific path
        DIRECTCHATS_URL: Force remote provider with specific URL
        DIRECTCHATS_ACCESS_TOKEN: Access token for the remote account
        DIRECTCHATS_USER_ID: Account to act as on local stores
        DIRECTCHATS_HOME_SERVER: Server name used to qualify handles

    Examples:
        # Auto-discover (default)
        options = DirectChatsOptions()

        # Explicit local
        options = DirectChatsOptions(path=".directchats", user_id="@alice:localhost")

        # Remote
        options = DirectChatsOptions(url="https://matrix.example.org", access_token="syt_...")

        # In-memory for tests
        options = DirectChatsOptions(in_memory=True)
    """

    # Local provider options
    path: str | Path | None = None
    """Explicit path to .directchats directory. Implies local mode."""

    local: bool = False
    """Auto-discover local .directchats (CWD or git root). Implies local mode."""

    in_memory: bool = False
    """Use ephemeral in-memory SQLite. Perfect for testing."""

    user_id: str | None = None
    """Account to act as (local and in-memory modes)."""

    # Remote provider options
    url: str | None = None
    """Remote homeserver URL."""

    access_token: str | None = None
    """Access token of the remote account."""

    # Shared options
    home_server: str | None = None
    """Server name used to qualify handles. Derived from the account if None."""

    settle_delay: float | None = None
    """Seconds to wait after create/accept/decline/block/unblock.

    Defaults to 3.0 for remote providers and 0 otherwise.
    """

    create_if_missing: bool = False
    """If True, initialize .directchats directory if not found (local mode only)."""

    # Internal: resolved values after environment processing
    _resolved_path: Path | None = field(default=None, repr=False)
    _resolved_url: str | None = field(default=None, repr=False)
    _provider_type: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate options and apply environment variable overrides."""
        self._apply_env_overrides()
        self._validate()
        self._resolve_provider()

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides.

        Environment variables only apply when no explicit provider is specified.
        Explicit options (path, local, in_memory, url) take priority.
        """
        if not self.home_server:
            self.home_server = os.environ.get("DIRECTCHATS_HOME_SERVER")

        has_explicit = self.path is not None or self.local or self.in_memory or self.url is not None

        if has_explicit:
            if self.url is not None and not self.access_token:
                self.access_token = os.environ.get("DIRECTCHATS_ACCESS_TOKEN")
            if self.url is None and not self.user_id:
                self.user_id = os.environ.get("DIRECTCHATS_USER_ID")
            return

        env_path = os.environ.get("DIRECTCHATS_PATH")
        if env_path:
            self.path = env_path

        env_url = os.environ.get("DIRECTCHATS_URL")
        if env_url:
            self.url = env_url

        if not self.access_token:
            self.access_token = os.environ.get("DIRECTCHATS_ACCESS_TOKEN")
        if not self.user_id:
            self.user_id = os.environ.get("DIRECTCHATS_USER_ID")

    def _validate(self) -> None:
        """Validate that options are consistent."""
        local_count = sum([self.path is not None, self.local, self.in_memory])
        remote_count = sum([self.url is not None])

        if local_count > 0 and remote_count > 0:
            raise DirectChatsConfigError(
                "Cannot mix local options (path, local, in_memory) with remote options (url). "
                "Choose one provider type."
            )

        if self.in_memory and (self.path is not None or self.local):
            raise DirectChatsConfigError("in_memory cannot be combined with path or local options.")

        if self.create_if_missing and self.url:
            raise DirectChatsConfigError(
                "create_if_missing only applies to local providers, not remote."
            )

        if self.url is not None and self.user_id:
            raise DirectChatsConfigError(
                "user_id only applies to local providers; remote accounts are "
                "selected by access_token."
            )

        if self.settle_delay is not None and self.settle_delay < 0:
            raise DirectChatsConfigError("settle_delay must not be negative.")

    def _resolve_provider(self) -> None:
        """Determine the provider type and resolve paths/URLs."""
        if self.in_memory:
            self._provider_type = "in_memory"
            return

        if self.path is not None:
            self._provider_type = "local"
            self._resolved_path = Path(self.path).resolve()
            return

        if self.local:
            self._provider_type = "local"
            return

        if self.url is not None:
            self._provider_type = "remote"
            self._resolved_url = self.url.rstrip("/")
            return

        self._provider_type = None

    @property
    def provider_type(self) -> str | None:
        """The resolved provider type: 'local', 'remote', 'in_memory', or None (auto-discover)."""
        return self._provider_type

    @property
    def resolved_path(self) -> Path | None:
        """The resolved .directchats path (for local providers)."""
        return self._resolved_path

    @property
    def resolved_url(self) -> str | None:
        """The resolved homeserver URL (for remote providers)."""
        return self._resolved_url

    @property
    def resolved_settle_delay(self) -> float:
        """Settle delay, defaulted by provider type."""
        if self.settle_delay is not None:
            return self.settle_delay
        return DEFAULT_REMOTE_SETTLE_DELAY if self.is_remote() else 0.0

    def is_auto_discover(self) -> bool:
        """True if no explicit provider was specified (will auto-discover)."""
        return self._provider_type is None

    def is_local(self) -> bool:
        return self._provider_type == "local"

    def is_remote(self) -> bool:
        return self._provider_type == "remote"

    def is_in_memory(self) -> bool:
        return self._provider_type == "in_memory"

    @classmethod
    def for_local(
        cls,
        path: str | Path | None = None,
        user_id: str | None = None,
        create_if_missing: bool = False,
    ) -> "DirectChatsOptions":
        """Create options for local provider.

        Args:
            path: Explicit .directchats path. If None, auto-discovers.
            user_id: Account to act as.
            create_if_missing: Initialize .directchats if not found.
        """
        if path:
            return cls(path=path, user_id=user_id, create_if_missing=create_if_missing)
        return cls(local=True, user_id=user_id, create_if_missing=create_if_missing)

    @classmethod
    def for_remote(cls, url: str, access_token: str | None = None) -> "DirectChatsOptions":
        """Create options for remote provider."""
        return cls(url=url, access_token=access_token)

    @classmethod
    def for_in_memory(cls, user_id: str | None = None) -> "DirectChatsOptions":
        """Create options for in-memory provider (testing)."""
        return cls(in_memory=True, user_id=user_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (for debugging/logging)."""
        return {
            "provider_type": self._provider_type,
            "path": str(self._resolved_path) if self._resolved_path else None,
            "url": self._resolved_url,
            "local": self.local,
            "in_memory": self.in_memory,
            "user_id": self.user_id,
            "home_server": self.home_server,
            "settle_delay": self.resolved_settle_delay,
            "create_if_missing": self.create_if_missing,
            "has_access_token": self.access_token is not None,
        }
