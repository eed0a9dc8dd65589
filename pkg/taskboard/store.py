"""
Task board storage backend (SQLite).

Owns the connection, table creation and the row-level helpers shared by the
column, group, task and field stores. Cascades are explicit: deleting a
board, group or task removes children leaves first (activity, field values,
tasks, groups, columns) inside the caller's transaction. Foreign keys are
enforced but declared without ON DELETE CASCADE, so an out-of-order delete
fails instead of silently leaving orphans.
"""
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Dict, Any, Sequence

from .schema import Board, Column, Group, Task, FieldValue, BoardMember


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with FK enforcement and WAL mode. Transactions are explicit."""
    conn = sqlite3.connect(db_path, timeout=30, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def _placeholders(items: Sequence[Any]) -> str:
    return ",".join("?" for _ in items)


# Tables that carry a dense 0-based position among siblings
_ORDERED = {
    "columns": ("column_id", "board_id"),
    "task_groups": ("group_id", "board_id"),
    "tasks": ("task_id", "group_id"),
}


class BoardStore:
    """SQLite-backed store for boards, columns, groups, tasks and field values."""

    def __init__(self, db_path: str = None):
        """Initialize store and create tables if needed."""
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "taskboard" / "taskboard.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        One connection, one transaction: commit on success, roll back on error.

        BEGIN IMMEDIATE takes the write lock up front, so a read-then-write
        such as appending at MAX(position) + 1 cannot interleave with another
        writer.
        """
        conn = _connect(self.db_path)
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def _init_schema(self):
        """Create tables if they don't exist."""
        with self.transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS boards (
                    board_id TEXT PRIMARY KEY,
                    tenant_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    board_type TEXT DEFAULT 'GENERAL',
                    description TEXT DEFAULT '',
                    color TEXT,
                    is_public INTEGER DEFAULT 0,
                    created_by TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS board_members (
                    board_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    can_edit INTEGER DEFAULT 1,
                    PRIMARY KEY (board_id, user_id),
                    FOREIGN KEY (board_id) REFERENCES boards(board_id)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS columns (
                    column_id TEXT PRIMARY KEY,
                    board_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    column_type TEXT NOT NULL,
                    settings TEXT,  -- JSON object
                    width INTEGER DEFAULT 150,
                    position INTEGER NOT NULL,
                    FOREIGN KEY (board_id) REFERENCES boards(board_id)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS task_groups (
                    group_id TEXT PRIMARY KEY,
                    board_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    color TEXT,
                    collapsed INTEGER DEFAULT 0,
                    position INTEGER NOT NULL,
                    FOREIGN KEY (board_id) REFERENCES boards(board_id)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    task_id TEXT PRIMARY KEY,
                    group_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    comment_count INTEGER DEFAULT 0,
                    subitem_count INTEGER DEFAULT 0,
                    created_by TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (group_id) REFERENCES task_groups(group_id)
                )
            """)
            # column_id is not a foreign key: deleting a column
            # leaves its values behind, unreachable from any board view.
            conn.execute("""
                CREATE TABLE IF NOT EXISTS field_values (
                    task_id TEXT NOT NULL,
                    column_id TEXT NOT NULL,
                    value TEXT,  -- JSON
                    version INTEGER NOT NULL DEFAULT 1,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (task_id, column_id),
                    FOREIGN KEY (task_id) REFERENCES tasks(task_id)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS activity_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id TEXT NOT NULL,
                    actor_id TEXT NOT NULL,
                    action TEXT NOT NULL,
                    details TEXT,  -- JSON object
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (task_id) REFERENCES tasks(task_id)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_boards_tenant ON boards(tenant_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_columns_board ON columns(board_id, position)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_groups_board ON task_groups(board_id, position)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_group ON tasks(group_id, position)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_activity_task ON activity_log(task_id, id)")

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Single-row lookups
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def fetch_board(self, conn: sqlite3.Connection, board_id: str) -> Optional[Board]:
        row = conn.execute("SELECT * FROM boards WHERE board_id = ?", (board_id,)).fetchone()
        return Board.from_row(dict(row)) if row else None

    def fetch_column(self, conn: sqlite3.Connection, column_id: str) -> Optional[Column]:
        row = conn.execute("SELECT * FROM columns WHERE column_id = ?", (column_id,)).fetchone()
        return Column.from_row(dict(row)) if row else None

    def fetch_group(self, conn: sqlite3.Connection, group_id: str) -> Optional[Group]:
        row = conn.execute("SELECT * FROM task_groups WHERE group_id = ?", (group_id,)).fetchone()
        return Group.from_row(dict(row)) if row else None

    def fetch_task(self, conn: sqlite3.Connection, task_id: str) -> Optional[Task]:
        """Task with its field values hydrated."""
        row = conn.execute("SELECT * FROM tasks WHERE task_id = ?", (task_id,)).fetchone()
        if not row:
            return None
        task = Task.from_row(dict(row))
        for fv in self.field_values_for_tasks(conn, [task_id]):
            task.field_values[fv.column_id] = fv
        return task

    def fetch_member(self, conn: sqlite3.Connection, board_id: str, user_id: str) -> Optional[BoardMember]:
        row = conn.execute(
            "SELECT * FROM board_members WHERE board_id = ? AND user_id = ?",
            (board_id, user_id),
        ).fetchone()
        if not row:
            return None
        return BoardMember(board_id=row["board_id"], user_id=row["user_id"], can_edit=bool(row["can_edit"]))

    def board_id_for_group(self, conn: sqlite3.Connection, group_id: str) -> Optional[str]:
        row = conn.execute("SELECT board_id FROM task_groups WHERE group_id = ?", (group_id,)).fetchone()
        return row["board_id"] if row else None

    def board_id_for_task(self, conn: sqlite3.Connection, task_id: str) -> Optional[str]:
        row = conn.execute("""
            SELECT g.board_id FROM tasks t
            JOIN task_groups g ON g.group_id = t.group_id
            WHERE t.task_id = ?
        """, (task_id,)).fetchone()
        return row["board_id"] if row else None

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Board-wide loads (ordered by position)
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def columns_for_board(self, conn: sqlite3.Connection, board_id: str) -> List[Column]:
        rows = conn.execute(
            "SELECT * FROM columns WHERE board_id = ? ORDER BY position ASC",
            (board_id,),
        ).fetchall()
        return [Column.from_row(dict(r)) for r in rows]

    def groups_for_board(self, conn: sqlite3.Connection, board_id: str) -> List[Group]:
        rows = conn.execute(
            "SELECT * FROM task_groups WHERE board_id = ? ORDER BY position ASC",
            (board_id,),
        ).fetchall()
        return [Group.from_row(dict(r)) for r in rows]

    def tasks_for_groups(self, conn: sqlite3.Connection, group_ids: List[str]) -> List[Task]:
        if not group_ids:
            return []
        rows = conn.execute(
            f"SELECT * FROM tasks WHERE group_id IN ({_placeholders(group_ids)}) "
            "ORDER BY group_id, position ASC",
            list(group_ids),
        ).fetchall()
        return [Task.from_row(dict(r)) for r in rows]

    def field_values_for_tasks(self, conn: sqlite3.Connection, task_ids: List[str]) -> List[FieldValue]:
        if not task_ids:
            return []
        rows = conn.execute(
            f"SELECT * FROM field_values WHERE task_id IN ({_placeholders(task_ids)})",
            list(task_ids),
        ).fetchall()
        return [FieldValue.from_row(dict(r)) for r in rows]

    def members_for_board(self, conn: sqlite3.Connection, board_id: str) -> List[BoardMember]:
        rows = conn.execute(
            "SELECT * FROM board_members WHERE board_id = ? ORDER BY user_id",
            (board_id,),
        ).fetchall()
        return [BoardMember(board_id=r["board_id"], user_id=r["user_id"], can_edit=bool(r["can_edit"])) for r in rows]

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Ordering
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def next_position(self, conn: sqlite3.Connection, table: str, parent_id: str) -> int:
        """Position for appending a row at the end of its parent (max + 1, 0 when empty)."""
        _, parent_col = _ORDERED[table]
        row = conn.execute(
            f"SELECT MAX(position) FROM {table} WHERE {parent_col} = ?",
            (parent_id,),
        ).fetchone()
        return 0 if row[0] is None else row[0] + 1

    def ordered_ids(self, conn: sqlite3.Connection, table: str, parent_id: str) -> List[str]:
        id_col, parent_col = _ORDERED[table]
        rows = conn.execute(
            f"SELECT {id_col} FROM {table} WHERE {parent_col} = ? ORDER BY position ASC",
            (parent_id,),
        ).fetchall()
        return [r[0] for r in rows]

    def write_order(self, conn: sqlite3.Connection, table: str, parent_id: str, ids: List[str]) -> None:
        """Assign dense positions 0..n-1 in the given order (and the given parent)."""
        id_col, parent_col = _ORDERED[table]
        for position, row_id in enumerate(ids):
            conn.execute(
                f"UPDATE {table} SET position = ?, {parent_col} = ? WHERE {id_col} = ?",
                (position, parent_id, row_id),
            )

    def compact_positions(self, conn: sqlite3.Connection, table: str, parent_id: str) -> None:
        """Close gaps left by a delete or a move out of the parent."""
        self.write_order(conn, table, parent_id, self.ordered_ids(conn, table, parent_id))

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Explicit cascades (leaves first)
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def delete_task_rows(self, conn: sqlite3.Connection, task_ids: List[str]) -> int:
        """Delete tasks with their activity and field values. Returns the task count."""
        if not task_ids:
            return 0
        marks = _placeholders(task_ids)
        conn.execute(f"DELETE FROM activity_log WHERE task_id IN ({marks})", list(task_ids))
        conn.execute(f"DELETE FROM field_values WHERE task_id IN ({marks})", list(task_ids))
        cur = conn.execute(f"DELETE FROM tasks WHERE task_id IN ({marks})", list(task_ids))
        return cur.rowcount

    def delete_group_rows(self, conn: sqlite3.Connection, group_ids: List[str]) -> int:
        """Delete groups and everything they own. Returns the number of tasks removed."""
        if not group_ids:
            return 0
        marks = _placeholders(group_ids)
        rows = conn.execute(
            f"SELECT task_id FROM tasks WHERE group_id IN ({marks})", list(group_ids)
        ).fetchall()
        removed = self.delete_task_rows(conn, [r[0] for r in rows])
        conn.execute(f"DELETE FROM task_groups WHERE group_id IN ({marks})", list(group_ids))
        return removed

    def delete_board_rows(self, conn: sqlite3.Connection, board_id: str) -> None:
        group_ids = [g.group_id for g in self.groups_for_board(conn, board_id)]
        self.delete_group_rows(conn, group_ids)
        conn.execute("DELETE FROM columns WHERE board_id = ?", (board_id,))
        conn.execute("DELETE FROM board_members WHERE board_id = ?", (board_id,))
        conn.execute("DELETE FROM boards WHERE board_id = ?", (board_id,))

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Collaborator hook
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def write_counters(
        self,
        task_id: str,
        comment_count: Optional[int] = None,
        subitem_count: Optional[int] = None,
    ) -> bool:
        """
        Update the denormalized counters of a task.

        Called by the comments and sub-item subsystems; the board engine
        itself only reads these values. Returns False if the task is gone.
        """
        updates: Dict[str, Any] = {}
        if comment_count is not None:
            updates["comment_count"] = max(0, int(comment_count))
        if subitem_count is not None:
            updates["subitem_count"] = max(0, int(subitem_count))
        if not updates:
            return True
        assignments = ", ".join(f"{k} = ?" for k in updates)
        with self.transaction() as conn:
            cur = conn.execute(
                f"UPDATE tasks SET {assignments} WHERE task_id = ?",
                (*updates.values(), task_id),
            )
            updated = cur.rowcount
        return updated > 0

    def count_rows(self, table: str, where: str = "", params: Sequence[Any] = ()) -> int:
        """Row count helper for diagnostics and the health endpoint."""
        sql = f"SELECT COUNT(*) FROM {table}"
        if where:
            sql += f" WHERE {where}"
        with self.transaction() as conn:
            return conn.execute(sql, tuple(params)).fetchone()[0]
