"""
Task activity log.

Every task mutation appends one row in the same transaction as the change
itself, so a rolled-back mutation leaves no audit line behind.

Actions:
  created        task created
  updated        task renamed or reordered within its group
  moved          task moved to another group
  field_updated  field value written
"""
import json
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

from .schema import Actor, ActivityEntry, utc_now
from .store import BoardStore
from .access import BoardAccess

VALID_ACTIONS = {"created", "updated", "moved", "field_updated"}


class ActivityLog:
    """Append-only per-task audit trail."""

    def __init__(self, store: BoardStore, access: BoardAccess, default_limit: int = 50):
        self.store = store
        self.access = access
        self.default_limit = default_limit

    @staticmethod
    def record(
        conn: sqlite3.Connection,
        task_id: str,
        actor_id: str,
        action: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Insert one entry on the caller's connection. Returns the entry id."""
        if action not in VALID_ACTIONS:
            raise ValueError(f"Invalid activity action: {action}")
        cur = conn.execute(
            "INSERT INTO activity_log (task_id, actor_id, action, details, created_at) VALUES (?,?,?,?,?)",
            (task_id, actor_id, action, json.dumps(details or {}), utc_now().isoformat()),
        )
        return cur.lastrowid

    def for_task(self, actor: Actor, task_id: str, limit: Optional[int] = None) -> List[ActivityEntry]:
        """Entries for a task, most recent first."""
        with self.store.transaction() as conn:
            self.access.board_for_task(conn, task_id, actor)
            rows = conn.execute(
                "SELECT * FROM activity_log WHERE task_id = ? ORDER BY id DESC LIMIT ?",
                (task_id, limit or self.default_limit),
            ).fetchall()
        return [
            ActivityEntry(
                entry_id=r["id"],
                task_id=r["task_id"],
                actor_id=r["actor_id"],
                action=r["action"],
                details=json.loads(r["details"]) if r["details"] else {},
                created_at=datetime.fromisoformat(r["created_at"]),
            )
            for r in rows
        ]
