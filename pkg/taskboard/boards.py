"""
Board assembler and board-level operations.

get_board_view() composes the whole board tree for one actor in a single
load: board, ordered columns, ordered groups each holding their ordered
tasks, each task with its field values, plus the actor's can_edit flag and
the tenant member list used to render PERSON cells.
"""
import logging
from typing import Any, Dict, List, Optional

from .access import BoardAccess
from .columns import ColumnRegistry
from .config import Config
from .errors import AuthorizationError, ValidationError
from .groups import GroupStore
from .members import MemberDirectory, StaticMemberDirectory
from .schema import Actor, Board, BoardMember, BoardType, BoardView, make_id, utc_now
from .store import BoardStore
from .validation import clean_name

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"name", "description", "color", "is_public", "board_type"}


class BoardAssembler:
    """Composes board views and owns board CRUD and membership."""

    def __init__(
        self,
        store: BoardStore,
        access: BoardAccess,
        columns: ColumnRegistry,
        groups: GroupStore,
        members: Optional[MemberDirectory] = None,
        config: Optional[Config] = None,
    ):
        self.store = store
        self.access = access
        self.columns = columns
        self.groups = groups
        self.members = members or StaticMemberDirectory()
        self.config = config or Config()

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Board view
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def get_board_view(self, board_id: str, actor: Actor) -> BoardView:
        """
        Load the full board tree for an actor.

        Raises NotFoundError if the board is missing, belongs to another
        tenant, or is not visible to the actor.
        """
        with self.store.transaction() as conn:
            board, can_edit = self.access.resolve(conn, board_id, actor)
            columns = self.store.columns_for_board(conn, board_id)
            groups = self.store.groups_for_board(conn, board_id)
            tasks = self.store.tasks_for_groups(conn, [g.group_id for g in groups])
            values = self.store.field_values_for_tasks(conn, [t.task_id for t in tasks])

        # Values of deleted columns stay in storage but never reach a view
        column_ids = {c.column_id for c in columns}
        by_task = {t.task_id: t for t in tasks}
        for fv in values:
            if fv.column_id in column_ids:
                by_task[fv.task_id].field_values[fv.column_id] = fv

        by_group = {g.group_id: g for g in groups}
        for task in tasks:
            by_group[task.group_id].tasks.append(task)

        logger.debug(f"Board {board_id}: {len(groups)} groups, {len(tasks)} tasks for {actor.actor_id}")
        return BoardView(
            board=board,
            columns=columns,
            groups=groups,
            can_edit=can_edit,
            members=self.members.members_for(board.tenant_id),
        )

    def can_edit(self, board_id: str, actor: Actor) -> bool:
        with self.store.transaction() as conn:
            _, can_edit = self.access.resolve(conn, board_id, actor)
        return can_edit

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Board CRUD
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def create_board(
        self,
        actor: Actor,
        name: str,
        board_type: str = "GENERAL",
        description: str = "",
        color: Optional[str] = None,
        is_public: bool = False,
    ) -> Board:
        """Create a board in the actor's tenant with default columns and one group."""
        if not actor.role.is_staff:
            raise AuthorizationError("Only tenant staff can create boards")
        name = clean_name(name, "Board name")
        now = utc_now()
        board = Board(
            board_id=make_id("brd"),
            tenant_id=actor.tenant_id,
            name=name,
            board_type=BoardType.from_str(board_type) if isinstance(board_type, str) else board_type,
            description=description or "",
            color=color,
            is_public=bool(is_public),
            created_by=actor.actor_id,
            created_at=now,
            updated_at=now,
        )
        with self.store.transaction() as conn:
            conn.execute("""
                INSERT INTO boards (board_id, tenant_id, name, board_type, description, color,
                                    is_public, created_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (board.board_id, board.tenant_id, name, board.board_type.value, board.description,
                  color, 1 if board.is_public else 0, actor.actor_id, now.isoformat(), now.isoformat()))
            self.columns.seed_defaults(conn, board.board_id, board.board_type)
            self.groups.insert(conn, board.board_id, self.config.default_group_name)

        logger.info(f"Board {board.board_id} ({board.board_type.value}) created in tenant {board.tenant_id}")
        return board

    def list_boards(self, actor: Actor) -> List[Board]:
        """Boards of the actor's tenant that the actor can see, oldest first."""
        with self.store.transaction() as conn:
            if actor.role.is_staff:
                rows = conn.execute(
                    "SELECT * FROM boards WHERE tenant_id = ? ORDER BY created_at ASC",
                    (actor.tenant_id,),
                ).fetchall()
            else:
                rows = conn.execute("""
                    SELECT * FROM boards b
                    WHERE b.tenant_id = ?
                      AND (b.is_public = 1 OR EXISTS (
                          SELECT 1 FROM board_members m
                          WHERE m.board_id = b.board_id AND m.user_id = ?))
                    ORDER BY b.created_at ASC
                """, (actor.tenant_id, actor.actor_id)).fetchall()
        return [Board.from_row(dict(r)) for r in rows]

    def update_board(self, actor: Actor, board_id: str, fields: Dict[str, Any]) -> Board:
        """Patch name, description, color, is_public or board_type."""
        if not isinstance(fields, dict):
            raise ValidationError("Board update must be an object")
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown board fields: {', '.join(sorted(unknown))}")

        with self.store.transaction() as conn:
            board = self.access.require_edit(conn, board_id, actor)
            if "name" in fields:
                board.name = clean_name(fields["name"], "Board name")
            if "description" in fields:
                board.description = fields["description"] or ""
            if "color" in fields:
                board.color = fields["color"]
            if "is_public" in fields:
                if not actor.role.is_staff:
                    raise AuthorizationError("Only tenant staff can change board visibility")
                board.is_public = bool(fields["is_public"])
            if "board_type" in fields:
                board.board_type = BoardType.from_str(fields["board_type"])
            board.updated_at = utc_now()
            conn.execute("""
                UPDATE boards SET name = ?, description = ?, color = ?, is_public = ?,
                                  board_type = ?, updated_at = ?
                WHERE board_id = ?
            """, (board.name, board.description, board.color, 1 if board.is_public else 0,
                  board.board_type.value, board.updated_at.isoformat(), board_id))
        return board

    def delete_board(self, actor: Actor, board_id: str) -> None:
        """Delete a board and everything on it, leaves first."""
        if not actor.role.is_staff:
            # Still report missing boards as missing
            with self.store.transaction() as conn:
                self.access.resolve(conn, board_id, actor)
            raise AuthorizationError("Only tenant staff can delete boards")
        with self.store.transaction() as conn:
            self.access.require_edit(conn, board_id, actor)
            self.store.delete_board_rows(conn, board_id)
        logger.info(f"Board {board_id} deleted by {actor.actor_id}")

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Membership
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def list_board_members(self, actor: Actor, board_id: str) -> List[BoardMember]:
        with self.store.transaction() as conn:
            self.access.resolve(conn, board_id, actor)
            return self.store.members_for_board(conn, board_id)

    def add_board_member(self, actor: Actor, board_id: str, user_id: str, can_edit: bool = True) -> BoardMember:
        """Grant a user access to a board, or change their edit flag."""
        if not actor.role.is_staff:
            raise AuthorizationError("Only tenant staff can manage board members")
        user_id = clean_name(user_id, "User id")
        with self.store.transaction() as conn:
            self.access.resolve(conn, board_id, actor)
            conn.execute("""
                INSERT INTO board_members (board_id, user_id, can_edit) VALUES (?, ?, ?)
                ON CONFLICT(board_id, user_id) DO UPDATE SET can_edit = excluded.can_edit
            """, (board_id, user_id, 1 if can_edit else 0))
        logger.info(f"Member {user_id} added to board {board_id} (can_edit={bool(can_edit)})")
        return BoardMember(board_id=board_id, user_id=user_id, can_edit=bool(can_edit))

    def remove_board_member(self, actor: Actor, board_id: str, user_id: str) -> bool:
        """Revoke a membership. Returns False if there was none."""
        if not actor.role.is_staff:
            raise AuthorizationError("Only tenant staff can manage board members")
        with self.store.transaction() as conn:
            self.access.resolve(conn, board_id, actor)
            cur = conn.execute(
                "DELETE FROM board_members WHERE board_id = ? AND user_id = ?",
                (board_id, user_id),
            )
            removed = cur.rowcount > 0
        if removed:
            logger.info(f"Member {user_id} removed from board {board_id}")
        return removed

