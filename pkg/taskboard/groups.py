"""
Group store: ordered, collapsible containers of tasks within a board.

Deleting a group is destructive: its tasks, their field values and their
activity go with it. Asking the user for confirmation is the caller's job.
"""
import logging
from typing import List, Optional

from .access import BoardAccess
from .config import Config
from .errors import ValidationError
from .schema import Actor, Group, make_id
from .store import BoardStore
from .validation import clean_name, check_permutation

logger = logging.getLogger(__name__)


class GroupStore:
    """Create, update, reorder and delete groups."""

    def __init__(self, store: BoardStore, access: BoardAccess, config: Optional[Config] = None):
        self.store = store
        self.access = access
        self.config = config or Config()

    def create_group(
        self,
        actor: Actor,
        board_id: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Group:
        """Append a group at the end of the board. Name defaults to "New Group"."""
        name = self.config.default_group_name if name is None else clean_name(name, "Group name")
        with self.store.transaction() as conn:
            self.access.require_edit(conn, board_id, actor)
            group = self.insert(conn, board_id, name, color)
        logger.info(f"Group {group.group_id} created on board {board_id} at position {group.position}")
        return group

    def insert(self, conn, board_id: str, name: str, color: Optional[str] = None) -> Group:
        """Insert a group on the caller's connection (no access check)."""
        group = Group(
            group_id=make_id("grp"),
            board_id=board_id,
            name=name,
            color=color,
            position=self.store.next_position(conn, "task_groups", board_id),
        )
        conn.execute(
            "INSERT INTO task_groups (group_id, board_id, name, color, collapsed, position) VALUES (?,?,?,?,0,?)",
            (group.group_id, board_id, name, color, group.position),
        )
        return group

    def update_group(
        self,
        actor: Actor,
        group_id: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
        collapsed: Optional[bool] = None,
    ) -> Group:
        if name is not None:
            name = clean_name(name, "Group name")
        if collapsed is not None and not isinstance(collapsed, bool):
            raise ValidationError("collapsed must be true or false")

        with self.store.transaction() as conn:
            self.access.board_for_group(conn, group_id, actor, edit=True)
            group = self.store.fetch_group(conn, group_id)
            if name is not None:
                group.name = name
            if color is not None:
                group.color = color
            if collapsed is not None:
                group.collapsed = collapsed
            conn.execute(
                "UPDATE task_groups SET name = ?, color = ?, collapsed = ? WHERE group_id = ?",
                (group.name, group.color, 1 if group.collapsed else 0, group_id),
            )
        return group

    def delete_group(self, actor: Actor, group_id: str) -> int:
        """
        Delete a group and everything it owns, leaves first, in one transaction.

        Returns the number of tasks removed.
        """
        with self.store.transaction() as conn:
            board = self.access.board_for_group(conn, group_id, actor, edit=True)
            removed = self.store.delete_group_rows(conn, [group_id])
            self.store.compact_positions(conn, "task_groups", board.board_id)
        logger.info(f"Group {group_id} deleted from board {board.board_id} ({removed} tasks removed)")
        return removed

    def reorder_groups(self, actor: Actor, board_id: str, group_ids: List[str]) -> List[Group]:
        with self.store.transaction() as conn:
            self.access.require_edit(conn, board_id, actor)
            current = self.store.ordered_ids(conn, "task_groups", board_id)
            check_permutation(current, group_ids, "group")
            self.store.write_order(conn, "task_groups", board_id, list(group_ids))
            return self.store.groups_for_board(conn, board_id)
