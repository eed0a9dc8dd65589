"""
Board access control.

Rules:
  - OWNER_ADMIN and EMPLOYEE actors of the board's tenant see and edit every board.
  - CUSTOMER actors see a board only if it is public or they are a board member.
    They are read-only unless explicitly granted edit (board membership with
    can_edit, or the session's can_edit_override). Public never grants edit.
  - Missing board, foreign tenant and invisible board all raise the same
    NotFoundError.

Mutating operations call require_edit() themselves; a can_edit flag cached by
a client is never trusted.
"""
import logging
import sqlite3
from typing import Tuple

from .errors import NotFoundError, AuthorizationError
from .schema import Actor, Board
from .store import BoardStore

logger = logging.getLogger(__name__)


class BoardAccess:
    """Derives view/edit rights for an actor on a board."""

    def __init__(self, store: BoardStore):
        self.store = store

    def resolve(self, conn: sqlite3.Connection, board_id: str, actor: Actor) -> Tuple[Board, bool]:
        """
        Load the board and compute can_edit for the actor.

        Raises NotFoundError if the actor may not see the board at all.
        """
        board = self.store.fetch_board(conn, board_id) if board_id else None
        if board is None or board.tenant_id != actor.tenant_id:
            raise NotFoundError(f"Board {board_id} not found")

        if actor.role.is_staff:
            return board, True

        member = self.store.fetch_member(conn, board.board_id, actor.actor_id)
        if not board.is_public and member is None:
            raise NotFoundError(f"Board {board_id} not found")

        if actor.can_edit_override is not None:
            return board, bool(actor.can_edit_override)
        return board, bool(member and member.can_edit)

    def require_edit(self, conn: sqlite3.Connection, board_id: str, actor: Actor) -> Board:
        """Resolve the board and fail with AuthorizationError unless the actor can edit it."""
        board, can_edit = self.resolve(conn, board_id, actor)
        if not can_edit:
            logger.warning(
                f"Edit denied: actor={actor.actor_id} role={actor.role.value} board={board_id}"
            )
            raise AuthorizationError("Edit access required")
        return board

    # ── Resolution through child ids ─────────────────────────

    def board_for_group(self, conn: sqlite3.Connection, group_id: str, actor: Actor, edit: bool = False) -> Board:
        board_id = self.store.board_id_for_group(conn, group_id)
        if board_id is None:
            raise NotFoundError(f"Group {group_id} not found")
        return self._check(conn, board_id, actor, edit, f"Group {group_id} not found")

    def board_for_task(self, conn: sqlite3.Connection, task_id: str, actor: Actor, edit: bool = False) -> Board:
        board_id = self.store.board_id_for_task(conn, task_id)
        if board_id is None:
            raise NotFoundError(f"Task {task_id} not found")
        return self._check(conn, board_id, actor, edit, f"Task {task_id} not found")

    def board_for_column(self, conn: sqlite3.Connection, column_id: str, actor: Actor, edit: bool = False) -> Board:
        column = self.store.fetch_column(conn, column_id)
        if column is None:
            raise NotFoundError(f"Column {column_id} not found")
        return self._check(conn, column.board_id, actor, edit, f"Column {column_id} not found")

    def _check(self, conn: sqlite3.Connection, board_id: str, actor: Actor, edit: bool, missing: str) -> Board:
        # Report the child as missing so a foreign tenant learns nothing about the board
        try:
            if edit:
                return self.require_edit(conn, board_id, actor)
            board, _ = self.resolve(conn, board_id, actor)
            return board
        except NotFoundError:
            raise NotFoundError(missing) from None
