"""SQLite storage for the local homeserver simulation.

Backs LocalProvider and InMemoryProvider. The schema mirrors the parts of a
Matrix homeserver the direct chat layer depends on:

- users: registered accounts
- rooms: rooms and whether they were created as direct chats
- room_members: one membership record per (room, user), as the latest
  m.room.member event would describe it
- account_data: per-user JSON blobs keyed by type (m.direct, m.ignored_user_list)

Connection Management:
    conn = get_connection("/path/to/.directchats/data.db")
    init_db_with_conn(conn)
    create_user(conn, "@alice:localhost", "Alice")

    # In-memory for testing
    conn = get_connection(":memory:")
    init_db_with_conn(conn)
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from uuid_extensions import uuid7 as make_uuid7

# Current schema version
SCHEMA_VERSION = 1

# Account data types
DIRECT_EVENT_TYPE = "m.direct"
IGNORED_USERS_EVENT_TYPE = "m.ignored_user_list"


# --- Connection Management ---


def get_connection(db_path: str | Path) -> sqlite3.Connection:
    """Create a database connection.

    The connection may be shared across threads; callers are responsible for
    serializing access to it.

    Args:
        db_path: Path to database file, or ":memory:" for in-memory.

    Returns:
        SQLite connection with row_factory set to sqlite3.Row.
    """
    if str(db_path) == ":memory:":
        conn = sqlite3.connect(":memory:", check_same_thread=False)
    else:
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
        # Enable WAL mode for better concurrent read/write performance
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def _row_to_dict(row: sqlite3.Row | None) -> dict | None:
    """Convert a database row to a dictionary."""
    if row is None:
        return None
    return dict(row)


def _rows_to_dicts(rows: list) -> list[dict]:
    """Convert database rows to a list of dictionaries."""
    return [dict(row) for row in rows]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# --- Schema Definition ---


SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        description TEXT
    );

    CREATE TABLE IF NOT EXISTS users (
        user_id TEXT PRIMARY KEY,
        display_name TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS rooms (
        room_id TEXT PRIMARY KEY,
        created_by TEXT NOT NULL REFERENCES users(user_id),
        is_direct INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS room_members (
        room_id TEXT NOT NULL REFERENCES rooms(room_id) ON DELETE CASCADE,
        user_id TEXT NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
        membership TEXT NOT NULL,
        display_name TEXT,
        is_direct INTEGER,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (room_id, user_id)
    );

    CREATE INDEX IF NOT EXISTS idx_room_members_user ON room_members(user_id);

    CREATE TABLE IF NOT EXISTS account_data (
        user_id TEXT NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
        type TEXT NOT NULL,
        content JSON NOT NULL DEFAULT '{}',
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (user_id, type)
    );
"""


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get the schema version recorded in the database (0 if uninitialized)."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
    )
    if cursor.fetchone() is None:
        return 0
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row and row[0] is not None else 0


def init_db_with_conn(conn: sqlite3.Connection) -> None:
    """Initialize database schema with an explicit connection."""
    conn.executescript(SCHEMA_SQL)
    if get_schema_version(conn) < SCHEMA_VERSION:
        conn.execute(
            "INSERT INTO schema_version (version, description) VALUES (?, ?)",
            (SCHEMA_VERSION, "Direct chat homeserver schema"),
        )
    conn.commit()


# --- Users ---


def create_user(
    conn: sqlite3.Connection,
    user_id: str,
    display_name: str | None = None,
) -> dict:
    """Register a new user.

    Raises:
        ValueError: If the user already exists.
    """
    if get_user(conn, user_id) is not None:
        raise ValueError(f"User {user_id} already exists")

    now = _now()
    conn.execute(
        "INSERT INTO users (user_id, display_name, created_at) VALUES (?, ?, ?)",
        (user_id, display_name, now),
    )
    conn.commit()
    return {"user_id": user_id, "display_name": display_name, "created_at": now}


def get_user(conn: sqlite3.Connection, user_id: str) -> dict | None:
    """Get user by ID."""
    cursor = conn.execute(
        "SELECT user_id, display_name, created_at FROM users WHERE user_id = ?",
        (user_id,),
    )
    return _row_to_dict(cursor.fetchone())


def list_users(conn: sqlite3.Connection) -> list[dict]:
    """List all registered users."""
    cursor = conn.execute(
        "SELECT user_id, display_name, created_at FROM users ORDER BY created_at"
    )
    return _rows_to_dicts(cursor.fetchall())


# --- Rooms ---


def create_room(
    conn: sqlite3.Connection,
    created_by: str,
    server_name: str,
    invite: list[str] | None = None,
    is_direct: bool = False,
) -> dict:
    """Create a new room.

    The creator joins immediately; every user in `invite` gets an invite
    membership record. For direct rooms the invite records carry the
    direct-chat flag, as the invite event content does on a real homeserver.

    Returns:
        Room info dict with room_id, created_by, is_direct, created_at
    """
    creator = get_user(conn, created_by)
    if creator is None:
        raise ValueError(f"Creator {created_by} not found")

    invitees = []
    for user_id in invite or []:
        invitee = get_user(conn, user_id)
        if invitee is None:
            raise ValueError(f"Invitee {user_id} not found")
        invitees.append(invitee)

    room_id = f"!{make_uuid7().hex}:{server_name}"
    now = _now()

    conn.execute(
        "INSERT INTO rooms (room_id, created_by, is_direct, created_at) VALUES (?, ?, ?, ?)",
        (room_id, created_by, int(is_direct), now),
    )
    conn.execute(
        """INSERT INTO room_members (room_id, user_id, membership, display_name, updated_at)
           VALUES (?, ?, 'join', ?, ?)""",
        (room_id, created_by, creator["display_name"], now),
    )
    for invitee in invitees:
        conn.execute(
            """INSERT INTO room_members
                   (room_id, user_id, membership, display_name, is_direct, updated_at)
               VALUES (?, ?, 'invite', ?, ?, ?)""",
            (room_id, invitee["user_id"], invitee["display_name"], 1 if is_direct else None, now),
        )
    conn.commit()

    return {
        "room_id": room_id,
        "created_by": created_by,
        "is_direct": is_direct,
        "created_at": now,
    }


def get_room(conn: sqlite3.Connection, room_id: str) -> dict | None:
    """Get room by ID."""
    cursor = conn.execute(
        "SELECT room_id, created_by, is_direct, created_at FROM rooms WHERE room_id = ?",
        (room_id,),
    )
    return _row_to_dict(cursor.fetchone())


def list_rooms_for_user(conn: sqlite3.Connection, user_id: str) -> list[dict]:
    """List rooms the user has a membership record in, with that membership."""
    cursor = conn.execute(
        """SELECT r.room_id, r.created_by, r.is_direct, r.created_at, m.membership
           FROM rooms r
           JOIN room_members m ON r.room_id = m.room_id
           WHERE m.user_id = ?
           ORDER BY r.created_at""",
        (user_id,),
    )
    return _rows_to_dicts(cursor.fetchall())


# --- Membership ---


def get_member(conn: sqlite3.Connection, room_id: str, user_id: str) -> dict | None:
    """Get the membership record of a user in a room."""
    cursor = conn.execute(
        """SELECT room_id, user_id, membership, display_name, is_direct, updated_at
           FROM room_members WHERE room_id = ? AND user_id = ?""",
        (room_id, user_id),
    )
    return _row_to_dict(cursor.fetchone())


def set_membership(
    conn: sqlite3.Connection,
    room_id: str,
    user_id: str,
    membership: str,
    is_direct: bool | None = None,
) -> dict:
    """Record a new membership state for a user in a room.

    Replaces the previous record entirely, like a new m.room.member state
    event: the direct-chat flag only survives if passed again.
    """
    user = get_user(conn, user_id)
    display_name = user["display_name"] if user else None
    now = _now()
    flag = None if is_direct is None else int(is_direct)

    conn.execute(
        """INSERT INTO room_members
               (room_id, user_id, membership, display_name, is_direct, updated_at)
           VALUES (?, ?, ?, ?, ?, ?)
           ON CONFLICT (room_id, user_id) DO UPDATE SET
               membership = excluded.membership,
               display_name = excluded.display_name,
               is_direct = excluded.is_direct,
               updated_at = excluded.updated_at""",
        (room_id, user_id, membership, display_name, flag, now),
    )
    conn.commit()

    return {
        "room_id": room_id,
        "user_id": user_id,
        "membership": membership,
        "display_name": display_name,
        "is_direct": flag,
        "updated_at": now,
    }


def list_room_members(conn: sqlite3.Connection, room_id: str) -> list[dict]:
    """List all membership records of a room."""
    cursor = conn.execute(
        """SELECT room_id, user_id, membership, display_name, is_direct, updated_at
           FROM room_members WHERE room_id = ?
           ORDER BY updated_at""",
        (room_id,),
    )
    return _rows_to_dicts(cursor.fetchall())


# --- Account Data ---


def get_account_data(
    conn: sqlite3.Connection,
    user_id: str,
    event_type: str,
) -> dict[str, Any] | None:
    """Get a user's account data of the given type, or None if never set."""
    cursor = conn.execute(
        "SELECT content FROM account_data WHERE user_id = ? AND type = ?",
        (user_id, event_type),
    )
    row = cursor.fetchone()
    if row is None:
        return None
    return json.loads(row["content"] or "{}")


def set_account_data(
    conn: sqlite3.Connection,
    user_id: str,
    event_type: str,
    content: dict[str, Any],
) -> None:
    """Replace a user's account data of the given type."""
    conn.execute(
        """INSERT INTO account_data (user_id, type, content, updated_at)
           VALUES (?, ?, ?, ?)
           ON CONFLICT (user_id, type) DO UPDATE SET
               content = excluded.content,
               updated_at = excluded.updated_at""",
        (user_id, event_type, json.dumps(content), _now()),
    )
    conn.commit()
