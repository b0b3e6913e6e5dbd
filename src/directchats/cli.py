"""CLI for direct chat operations.

Manages configuration in ~/.config/directchats/:
- config.yaml: Named sources (remote homeservers, local stores) and the default

Also supports local .directchats directories for offline/testing use:
- .directchats/config.yaml: Home server name
- .directchats/data.db: SQLite homeserver simulation

Every chat command accepts --source to pick a configured source and
--as-user to pick the account on a local store. Results are printed as JSON.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import cyclopts

from .client import DirectChats
from .config import GlobalConfig, Source
from .discovery import DirectChatsNotFound, get_local_init_path
from .errors import DirectChatsError
from .options import DirectChatsConfigError, DirectChatsOptions
from .providers import DEFAULT_HOME_SERVER

app = cyclopts.App(
    name="directchats",
    help="1:1 direct chats on top of a Matrix-style homeserver",
)

local_app = cyclopts.App(name="local", help="Local homeserver simulation")
source_app = cyclopts.App(name="source", help="Multi-source configuration management")

app.command(local_app)
app.command(source_app)

# Failures reported as "Error: ..." with exit status 1
EXPECTED_ERRORS = (
    DirectChatsError,
    DirectChatsConfigError,
    DirectChatsNotFound,
    FileNotFoundError,
)


def configure_logging(verbose: bool = False) -> None:
    """Configure logging from --verbose or DIRECTCHATS_LOG_LEVEL."""
    level = "DEBUG" if verbose else os.environ.get("DIRECTCHATS_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def print_json(data):
    """Pretty print JSON data."""
    print(json.dumps(data, indent=2, default=str))


def fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def get_client(source: str | None = None, as_user: str | None = None) -> DirectChats:
    """Client for a named source, or the auto-discovered one."""
    if source is not None:
        cfg = GlobalConfig.load()
        src = cfg.get_source(source)
        if src is None:
            fail(f"Source '{source}' not found.")
        assert src is not None
        if as_user is not None and src.type == "remote":
            fail("--as-user only applies to local sources.")
        return src.get_client(user_id=as_user)
    return DirectChats(DirectChatsOptions(user_id=as_user))


def run(
    operation: Callable[[DirectChats], Any],
    source: str | None,
    as_user: str | None,
    verbose: bool,
) -> Any:
    """Run an operation against a client, reporting expected failures."""
    configure_logging(verbose)
    try:
        with get_client(source, as_user) as client:
            return operation(client)
    except EXPECTED_ERRORS as e:
        fail(str(e))


# --- Direct Chat Commands ---


@app.command
def create(
    handle: str,
    *,
    source: str | None = None,
    as_user: str | None = None,
    verbose: bool = False,
):
    """Create a direct chat with a handle.

    Args:
        handle: Handle of the other participant (e.g. bob)
    """
    chat_id = run(lambda c: c.create_chat(handle), source, as_user, verbose)
    print_json({"chat_id": chat_id})


@app.command
def invitations(*, source: str | None = None, as_user: str | None = None, verbose: bool = False):
    """List pending direct chat invitations."""
    print_json(run(lambda c: c.list_invitations(), source, as_user, verbose))


@app.command
def accept(
    room_id: str,
    *,
    source: str | None = None,
    as_user: str | None = None,
    verbose: bool = False,
):
    """Accept a direct chat invitation."""
    run(lambda c: c.accept_invitation(room_id), source, as_user, verbose)
    print_json({"accepted": room_id})


@app.command
def decline(
    room_id: str,
    *,
    source: str | None = None,
    as_user: str | None = None,
    verbose: bool = False,
):
    """Decline a direct chat invitation."""
    run(lambda c: c.decline_invitation(room_id), source, as_user, verbose)
    print_json({"declined": room_id})


@app.command(name="list")
def list_chats(*, source: str | None = None, as_user: str | None = None, verbose: bool = False):
    """List joined direct chats."""
    print_json(run(lambda c: c.list_joined(), source, as_user, verbose))


@app.command
def block(
    handle: str,
    *,
    source: str | None = None,
    as_user: str | None = None,
    verbose: bool = False,
):
    """Block a handle."""
    run(lambda c: c.block_handle(handle), source, as_user, verbose)
    print_json({"blocked": handle})


@app.command
def unblock(
    handle: str,
    *,
    source: str | None = None,
    as_user: str | None = None,
    verbose: bool = False,
):
    """Unblock a handle."""
    run(lambda c: c.unblock_handle(handle), source, as_user, verbose)
    print_json({"unblocked": handle})


@app.command
def blocked(*, source: str | None = None, as_user: str | None = None, verbose: bool = False):
    """List blocked participant ids."""
    print_json(run(lambda c: c.list_blocked_handles(), source, as_user, verbose))


# --- Local Store Commands ---


@local_app.command
def init(
    *,
    path: str | None = None,
    home_server: str | None = None,
    no_gitignore: bool = False,
):
    """Initialize a local .directchats store.

    Args:
        path: Where to create .directchats (default: git root or cwd)
        home_server: Server name used for participant and room ids
        no_gitignore: Do not add .directchats/ to .gitignore
    """
    target = Path(path) if path else get_local_init_path()
    if target.exists():
        fail(f"{target} already exists.")

    with DirectChats.create_local(
        path=target, home_server=home_server, add_to_gitignore=not no_gitignore
    ) as client:
        print_json({"path": client.location, "home_server": home_server or DEFAULT_HOME_SERVER})


@local_app.command
def register(
    handle: str,
    *,
    name: str | None = None,
    path: str | None = None,
    verbose: bool = False,
):
    """Register an account on a local store.

    Args:
        handle: Handle of the new account
        name: Display name (default: the handle)
        path: Path to .directchats (default: auto-discover)
    """
    configure_logging(verbose)
    try:
        with DirectChats.local(path=path) as client:
            user_id = client.register_user(handle, name)
    except EXPECTED_ERRORS as e:
        fail(str(e))
    print_json({"user_id": user_id, "name": name or handle})


@local_app.command(name="users")
def local_users(*, path: str | None = None):
    """List accounts on a local store."""
    try:
        with DirectChats.local(path=path) as client:
            print_json(client.list_users())
    except EXPECTED_ERRORS as e:
        fail(str(e))


# --- Source Commands ---


@source_app.command(name="list")
def source_list():
    """List configured sources.

    Shows all remote homeservers and local .directchats paths that are configured.
    """
    cfg = GlobalConfig.load()

    if not cfg.sources:
        print("No sources configured.")
        print()
        print("Add a remote source:")
        print("  directchats source add myserver --remote https://matrix.example.org --access-token syt_...")
        print()
        print("Add a local source:")
        print("  directchats source add local-dev --local /path/to/.directchats --user-id @alice:localhost")
        return

    print("Configured sources:")
    for source in cfg.sources:
        default_marker = " (default)" if source.name == cfg.default_source else ""
        if source.type == "remote":
            print(f"  {source.name}: remote @ {source.url}{default_marker}")
        else:
            print(f"  {source.name}: local @ {source.path}{default_marker}")


@source_app.command
def add(
    name: str,
    *,
    remote: str | None = None,
    local: str | None = None,
    access_token: str | None = None,
    user_id: str | None = None,
    set_default: bool = False,
):
    """Add a new source.

    Examples:
        directchats source add work --remote https://matrix.example.org --access-token syt_...
        directchats source add local-dev --local /path/to/.directchats --user-id @alice:localhost

    Args:
        name: Source name
        remote: URL for a remote homeserver
        local: Path to a local .directchats directory
        access_token: Access token of the account (remote only)
        user_id: Account to act as (local only)
        set_default: Make this the default source
    """
    if remote and local:
        fail("Specify either --remote or --local, not both.")

    if not remote and not local:
        fail("Must specify --remote <url> or --local <path>.")

    cfg = GlobalConfig.load()

    if remote:
        source = Source(name=name, type="remote", url=remote, access_token=access_token)
    else:
        assert local is not None
        local_path = Path(local)
        if not local_path.exists():
            print(f"Warning: Path does not exist yet: {local}", file=sys.stderr)
        source = Source(
            name=name,
            type="local",
            path=str(local_path.absolute()),
            user_id=user_id,
        )

    cfg.add_source(source)

    if set_default:
        cfg.default_source = name

    cfg.save()

    print(f"Source '{name}' added.")
    if set_default:
        print("Set as default source.")


@source_app.command
def remove(name: str):
    """Remove a source by name."""
    cfg = GlobalConfig.load()

    if not cfg.remove_source(name):
        fail(f"Source '{name}' not found.")

    cfg.save()
    print(f"Source '{name}' removed.")


@source_app.command
def default(name: str | None = None):
    """Set or show the default source.

    Without arguments, shows the current default.
    With a name argument, sets that source as default.
    """
    cfg = GlobalConfig.load()

    if name is None:
        if cfg.default_source:
            source = cfg.get_source(cfg.default_source)
            if source:
                loc = source.url if source.type == "remote" else source.path
                print(f"Default source: {cfg.default_source} ({source.type} @ {loc})")
            else:
                print(f"Default source: {cfg.default_source} (not found in sources)")
        else:
            print("No default source set.")
            print("Set one with: directchats source default <name>")
        return

    if not cfg.get_source(name):
        print(f"Error: Source '{name}' not found.", file=sys.stderr)
        print("Add it first with: directchats source add", file=sys.stderr)
        sys.exit(1)

    cfg.default_source = name
    cfg.save()
    print(f"Default source set to '{name}'.")


if __name__ == "__main__":
    app()
