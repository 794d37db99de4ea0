"""
Tool: Personalization Store
Purpose: Persist one versioned PersonalizationState snapshot per user

Each save writes the complete state as JSON inside a single SQLite
transaction, so a reader never sees half an update. Snapshots carry the
schema version they were written with; older snapshots are upgraded
step by step through _MIGRATIONS on load, newer ones are refused.

Usage:
    from tools.personalization.store import load_state, save_state

    state = load_state("alice")
    result = save_state("alice", state)

Dependencies:
    - sqlite3 (stdlib)

Database: data/personalization.db
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from tools.logging_config import get_logger
from tools.personalization import DB_PATH, SCHEMA_VERSION
from tools.personalization.invariants import PersonalizationError
from tools.personalization.models import PersonalizationState


logger = get_logger(__name__)


class SnapshotError(PersonalizationError):
    """A stored snapshot could not be read."""


class SnapshotVersionError(SnapshotError):
    """A snapshot was written by a newer schema than this code understands."""


# from_version -> function upgrading a raw state dict to from_version + 1
_MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {}


def register_migration(from_version: int):
    """Decorator registering an upgrade step from `from_version` to the next version."""

    def decorator(func):
        _MIGRATIONS[from_version] = func
        return func

    return decorator


def migrate_snapshot(data: dict[str, Any], version: int) -> dict[str, Any]:
    """
    Upgrade a raw snapshot dict to SCHEMA_VERSION.

    Raises:
        SnapshotVersionError: snapshot is newer than SCHEMA_VERSION
        SnapshotError: an upgrade step is missing
    """
    if version > SCHEMA_VERSION:
        raise SnapshotVersionError(
            f"Snapshot schema v{version} is newer than supported v{SCHEMA_VERSION}"
        )

    while version < SCHEMA_VERSION:
        step = _MIGRATIONS.get(version)
        if step is None:
            raise SnapshotError(f"No migration from schema v{version}")
        data = step(data)
        version += 1
        logger.info("snapshot_migrated", to_version=version)

    return data


def get_connection(db_path: Path | None = None) -> sqlite3.Connection:
    """Get database connection, creating tables if needed."""
    db_path = db_path or DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row

    conn.execute("""
        CREATE TABLE IF NOT EXISTS personalization_snapshots (
            user_id TEXT PRIMARY KEY,
            schema_version INTEGER NOT NULL,
            state TEXT NOT NULL,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.commit()
    return conn


def serialize_state(state: PersonalizationState) -> str:
    """Canonical JSON for a state. Identical states give identical strings."""
    return json.dumps(state.to_dict(), sort_keys=True)


def deserialize_state(payload: str, version: int = SCHEMA_VERSION) -> PersonalizationState:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Corrupt snapshot: {e}") from e

    data = migrate_snapshot(data, version)
    try:
        return PersonalizationState.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(f"Invalid snapshot: {e}") from e


def save_state(
    user_id: str, state: PersonalizationState, db_path: Path | None = None
) -> dict[str, Any]:
    """
    Write the user's snapshot, replacing any previous one.

    Returns:
        Dict with success status
    """
    payload = serialize_state(state)
    conn = get_connection(db_path)
    try:
        with conn:
            conn.execute(
                """
                INSERT INTO personalization_snapshots (user_id, schema_version, state, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    schema_version = excluded.schema_version,
                    state = excluded.state,
                    updated_at = excluded.updated_at
                """,
                (user_id, SCHEMA_VERSION, payload, datetime.now().isoformat()),
            )
    finally:
        conn.close()

    logger.debug("snapshot_saved", user_id=user_id, size=len(payload))
    return {"success": True, "user_id": user_id, "schema_version": SCHEMA_VERSION}


def load_state(user_id: str, db_path: Path | None = None) -> PersonalizationState | None:
    """
    Read the user's snapshot.

    Returns:
        PersonalizationState, or None when the user has no snapshot

    Raises:
        SnapshotError: the stored snapshot is unreadable
    """
    conn = get_connection(db_path)
    try:
        row = conn.execute(
            "SELECT schema_version, state FROM personalization_snapshots WHERE user_id = ?",
            (user_id,),
        ).fetchone()
    finally:
        conn.close()

    if row is None:
        return None
    return deserialize_state(row["state"], row["schema_version"])


def delete_state(user_id: str, db_path: Path | None = None) -> dict[str, Any]:
    conn = get_connection(db_path)
    try:
        with conn:
            cursor = conn.execute(
                "DELETE FROM personalization_snapshots WHERE user_id = ?", (user_id,)
            )
    finally:
        conn.close()

    if cursor.rowcount == 0:
        return {"success": False, "error": f"No snapshot for user: {user_id}"}
    logger.info("snapshot_deleted", user_id=user_id)
    return {"success": True, "user_id": user_id}


def list_users(db_path: Path | None = None) -> list[str]:
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            "SELECT user_id FROM personalization_snapshots ORDER BY user_id"
        ).fetchall()
    finally:
        conn.close()
    return [row["user_id"] for row in rows]
