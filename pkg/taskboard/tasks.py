"""
Task store: ordered rows within a group.

Positions are dense and 0-based within each group. New tasks are appended;
moves and deletes renumber the affected groups so the ordering stays dense.
"""
import logging
import sqlite3
from typing import List, Optional

from .access import BoardAccess
from .activity import ActivityLog
from .errors import NotFoundError, ValidationError
from .schema import Actor, Task, make_id, utc_now
from .store import BoardStore
from .validation import check_id_list, clean_name

logger = logging.getLogger(__name__)


class TaskStore:
    """Create, rename, move, reorder and delete tasks."""

    def __init__(self, store: BoardStore, access: BoardAccess):
        self.store = store
        self.access = access

    def create_task(self, actor: Actor, group_id: str, name: str) -> Task:
        """Append a task at the end of the group."""
        name = clean_name(name, "Task name")
        with self.store.transaction() as conn:
            self.access.board_for_group(conn, group_id, actor, edit=True)
            now = utc_now()
            task = Task(
                task_id=make_id("tsk"),
                group_id=group_id,
                name=name,
                position=self.store.next_position(conn, "tasks", group_id),
                created_by=actor.actor_id,
                created_at=now,
                updated_at=now,
            )
            conn.execute("""
                INSERT INTO tasks (task_id, group_id, name, position, created_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (task.task_id, group_id, name, task.position, actor.actor_id,
                  now.isoformat(), now.isoformat()))
            ActivityLog.record(conn, task.task_id, actor.actor_id, "created", {"name": name})

        logger.info(f"Task {task.task_id} created in group {group_id} at position {task.position}")
        return task

    def get_task(self, actor: Actor, task_id: str) -> Task:
        with self.store.transaction() as conn:
            self.access.board_for_task(conn, task_id, actor)
            return self.store.fetch_task(conn, task_id)

    def update_task(
        self,
        actor: Actor,
        task_id: str,
        name: Optional[str] = None,
        position: Optional[int] = None,
        group_id: Optional[str] = None,
    ) -> Task:
        """
        Rename, reorder or move a task.

        A group_id different from the current group moves the task to that
        group (same board only), at the end unless position is given.
        Positions are clamped to the valid range.
        """
        if name is not None:
            name = clean_name(name, "Task name")
        if position is not None and (isinstance(position, bool) or not isinstance(position, int)):
            raise ValidationError("Task position must be an integer")

        with self.store.transaction() as conn:
            board = self.access.board_for_task(conn, task_id, actor, edit=True)
            task = self.store.fetch_task(conn, task_id)
            source_group = task.group_id
            moving = group_id is not None and group_id != source_group

            if moving:
                target_board = self.store.board_id_for_group(conn, group_id)
                if target_board != board.board_id:
                    raise NotFoundError(f"Group {group_id} not found")

            if name is not None:
                task.name = name

            if moving:
                self._place(conn, task_id, group_id, position)
                self.store.compact_positions(conn, "tasks", source_group)
            elif position is not None:
                self._place(conn, task_id, source_group, position)

            now = utc_now()
            conn.execute(
                "UPDATE tasks SET name = ?, updated_at = ? WHERE task_id = ?",
                (task.name, now.isoformat(), task_id),
            )
            details = {k: v for k, v in (("name", name), ("position", position), ("group_id", group_id))
                       if v is not None}
            ActivityLog.record(conn, task_id, actor.actor_id, "moved" if moving else "updated", details)
            updated = self.store.fetch_task(conn, task_id)

        if moving:
            logger.info(f"Task {task_id} moved from group {source_group} to {group_id}")
        return updated

    def delete_task(self, actor: Actor, task_id: str) -> None:
        """Delete a task with its field values and activity, then close the gap."""
        with self.store.transaction() as conn:
            self.access.board_for_task(conn, task_id, actor, edit=True)
            group_id = conn.execute(
                "SELECT group_id FROM tasks WHERE task_id = ?", (task_id,)
            ).fetchone()["group_id"]
            self.store.delete_task_rows(conn, [task_id])
            self.store.compact_positions(conn, "tasks", group_id)
        logger.info(f"Task {task_id} deleted from group {group_id}")

    def reorder_tasks(self, actor: Actor, group_id: str, task_ids: List[str]) -> List[Task]:
        """
        Set the full order of a group.

        Tasks listed here that currently sit in another group of the same
        board are pulled into this group; their old groups are re-densified.
        """
        check_id_list(task_ids, "Task")

        with self.store.transaction() as conn:
            board = self.access.board_for_group(conn, group_id, actor, edit=True)
            current = set(self.store.ordered_ids(conn, "tasks", group_id))
            if not current.issubset(task_ids):
                raise ValidationError("Reorder must list every task of the group")

            other_groups = set()
            for tid in task_ids:
                if tid in current:
                    continue
                if self.store.board_id_for_task(conn, tid) != board.board_id:
                    raise NotFoundError(f"Task {tid} not found")
                other_groups.add(conn.execute(
                    "SELECT group_id FROM tasks WHERE task_id = ?", (tid,)
                ).fetchone()["group_id"])

            self.store.write_order(conn, "tasks", group_id, task_ids)
            for gid in other_groups:
                self.store.compact_positions(conn, "tasks", gid)
            tasks = self.store.tasks_for_groups(conn, [group_id])
        return tasks

    def _place(self, conn: sqlite3.Connection, task_id: str, target: str, position: Optional[int]) -> None:
        """Insert task_id into target's order at position (end when None)."""
        order = [tid for tid in self.store.ordered_ids(conn, "tasks", target) if tid != task_id]
        index = len(order) if position is None else max(0, min(position, len(order)))
        order.insert(index, task_id)
        self.store.write_order(conn, "tasks", target, order)
