"""Discovery logic for finding directchats configurations.

Provides utilities for:
- Finding git repository roots
- Locating .directchats directories (local homeserver stores)
- Auto-discovering provider configuration
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .config import GlobalConfig, get_global_config_path

LOCAL_DIR_NAME = ".directchats"


class DirectChatsNotFound(Exception):
    """Raised when no directchats configuration can be found."""

    pass


def find_git_root(start_path: Path | str | None = None) -> Path | None:
    """Find the root of the git repository containing start_path.

    Walks up the directory tree looking for a .git directory.

    Returns:
        Path to git root, or None if not in a git repository.
    """
    if start_path is None:
        start_path = Path.cwd()
    else:
        start_path = Path(start_path)

    path = start_path.resolve()

    while path != path.parent:
        if (path / ".git").exists():
            return path
        path = path.parent

    if (path / ".git").exists():
        return path

    return None


def find_local_dir(start_path: Path | str | None = None) -> Path | None:
    """Find a .directchats directory, checking CWD first, then git root."""
    if start_path is None:
        start_path = Path.cwd()
    else:
        start_path = Path(start_path).resolve()

    cwd_local = start_path / LOCAL_DIR_NAME
    if cwd_local.is_dir():
        return cwd_local

    git_root = find_git_root(start_path)
    if git_root:
        git_local = git_root / LOCAL_DIR_NAME
        if git_local.is_dir():
            return git_local

    return None


def get_local_init_path(start_path: Path | str | None = None) -> Path:
    """Get the path where a new .directchats should be initialized.

    Prefers git root if in a repository, otherwise uses start_path.
    """
    if start_path is None:
        start_path = Path.cwd()
    else:
        start_path = Path(start_path).resolve()

    git_root = find_git_root(start_path)
    if git_root:
        return git_root / LOCAL_DIR_NAME

    return start_path / LOCAL_DIR_NAME


@dataclass
class DiscoveryResult:
    """Result of provider discovery."""

    provider_type: Literal["local", "remote"]

    path: Path | None = None
    """Path to .directchats directory (for local providers)."""

    url: str | None = None
    """Homeserver URL (for remote providers)."""

    access_token: str | None = None

    user_id: str | None = None
    """Account to act as (for local providers)."""

    source: str = ""
    """How the provider was discovered (for debugging)."""


def discover_provider(
    start_path: Path | str | None = None,
    require_local: bool = False,
) -> DiscoveryResult:
    """Discover the appropriate provider configuration.

    Discovery order:
        1. Environment variables (DIRECTCHATS_PATH, DIRECTCHATS_URL)
        2. Default source in ~/.config/directchats/config.yaml
        3. Local .directchats directory (CWD, then git root)

    Raises:
        DirectChatsNotFound: If no valid configuration is found.
    """
    env_path = os.environ.get("DIRECTCHATS_PATH")
    if env_path:
        path = Path(env_path)
        if path.is_dir():
            return DiscoveryResult(
                provider_type="local",
                path=path,
                user_id=os.environ.get("DIRECTCHATS_USER_ID"),
                source="DIRECTCHATS_PATH environment variable",
            )
        raise DirectChatsNotFound(f"DIRECTCHATS_PATH points to non-existent directory: {env_path}")

    env_url = os.environ.get("DIRECTCHATS_URL")
    if env_url and not require_local:
        return DiscoveryResult(
            provider_type="remote",
            url=env_url,
            access_token=os.environ.get("DIRECTCHATS_ACCESS_TOKEN"),
            source="DIRECTCHATS_URL environment variable",
        )

    config_path = get_global_config_path()
    if not require_local and config_path.exists():
        source = GlobalConfig.load().get_default_source()
        if source is not None:
            if source.type == "remote":
                return DiscoveryResult(
                    provider_type="remote",
                    url=source.url,
                    access_token=source.access_token,
                    source=f"default source {source.name!r} in {config_path}",
                )
            return DiscoveryResult(
                provider_type="local",
                path=Path(source.path) if source.path else None,
                user_id=source.user_id,
                source=f"default source {source.name!r} in {config_path}",
            )

    local_path = find_local_dir(start_path)
    if local_path:
        return DiscoveryResult(
            provider_type="local",
            path=local_path,
            user_id=os.environ.get("DIRECTCHATS_USER_ID"),
            source=f"found {local_path}",
        )

    if require_local:
        raise DirectChatsNotFound(
            "No local .directchats directory found. "
            "Create one with: DirectChats.create_local() or directchats local init"
        )

    raise DirectChatsNotFound(
        "No directchats configuration found. Options:\n"
        "  - Create a local .directchats: directchats local init\n"
        "  - Set DIRECTCHATS_URL and DIRECTCHATS_ACCESS_TOKEN\n"
        "  - Add a default source: directchats source add ... --default"
    )


def ensure_gitignore(local_path: Path) -> bool:
    """Ensure .directchats is in .gitignore if in a git repo.

    Returns:
        True if .gitignore was updated, False otherwise.
    """
    git_root = find_git_root(local_path.parent)
    if not git_root:
        return False

    gitignore_path = git_root / ".gitignore"
    entry = f"{LOCAL_DIR_NAME}/"

    if gitignore_path.exists():
        content = gitignore_path.read_text()
        for line in content.splitlines():
            stripped = line.strip()
            if stripped.strip("/") == LOCAL_DIR_NAME:
                return False

    with open(gitignore_path, "a") as f:
        if gitignore_path.exists():
            content = gitignore_path.read_text()
            if content and not content.endswith("\n"):
                f.write("\n")
        f.write(f"{entry}\n")

    return True
