"""
Column registry: the typed schema of a board.

A column's type is fixed at creation. Name, width and settings can change;
for STATUS columns the settings hold the ordered option list that stored
values are validated against.
"""
import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Union

from .access import BoardAccess
from .config import Config
from .errors import ValidationError
from .schema import Actor, BoardType, Column, ColumnType, make_id
from .store import BoardStore
from .validation import clean_name, check_permutation

logger = logging.getLogger(__name__)


def _status(*options: tuple) -> Dict[str, Any]:
    return {"options": [{"id": str(i), "label": label, "color": color}
                        for i, (label, color) in enumerate(options, start=1)]}


GREY, BLUE, AMBER, GREEN, RED = "#6B7280", "#3B82F6", "#F59E0B", "#10B981", "#EF4444"

# Columns seeded into a new board, per board type
DEFAULT_COLUMNS: Dict[BoardType, List[Dict[str, Any]]] = {
    BoardType.GENERAL: [
        {"name": "Status", "type": ColumnType.STATUS,
         "settings": _status(("To Do", GREY), ("In Progress", AMBER), ("Done", GREEN))},
        {"name": "Person", "type": ColumnType.PERSON},
        {"name": "Due Date", "type": ColumnType.DATE},
    ],
    BoardType.PROPERTY: [
        {"name": "Status", "type": ColumnType.STATUS,
         "settings": _status(("Searching", GREY), ("Viewing", BLUE), ("Negotiating", AMBER), ("Purchased", GREEN))},
        {"name": "Purchase Price", "type": ColumnType.MONEY},
        {"name": "Monthly Rent", "type": ColumnType.MONEY},
        {"name": "Tenant", "type": ColumnType.TEXT},
        {"name": "Occupancy", "type": ColumnType.STATUS,
         "settings": _status(("Vacant", RED), ("Occupied", GREEN), ("Renovation", AMBER))},
        {"name": "Rented Since", "type": ColumnType.DATE},
        {"name": "Total Income", "type": ColumnType.MONEY},
        {"name": "Notes", "type": ColumnType.TEXT},
    ],
    BoardType.PROJECT: [
        {"name": "Status", "type": ColumnType.STATUS,
         "settings": _status(("Not Started", GREY), ("In Progress", BLUE), ("Review", AMBER), ("Completed", GREEN))},
        {"name": "Owner", "type": ColumnType.PERSON},
        {"name": "Priority", "type": ColumnType.STATUS,
         "settings": _status(("Low", GREY), ("Medium", AMBER), ("High", RED))},
        {"name": "Due Date", "type": ColumnType.DATE},
        {"name": "Budget", "type": ColumnType.MONEY},
    ],
    BoardType.CRM: [
        {"name": "Status", "type": ColumnType.STATUS,
         "settings": _status(("Lead", GREY), ("Qualified", BLUE), ("Proposal", AMBER), ("Won", GREEN), ("Lost", RED))},
        {"name": "Contact", "type": ColumnType.PERSON},
        {"name": "Email", "type": ColumnType.EMAIL},
        {"name": "Phone", "type": ColumnType.PHONE},
        {"name": "Value", "type": ColumnType.MONEY},
        {"name": "Last Contact", "type": ColumnType.DATE},
    ],
}

UPDATABLE_FIELDS = {"name", "width", "settings"}


def parse_column_type(value: Union[str, ColumnType]) -> ColumnType:
    if isinstance(value, ColumnType):
        return value
    try:
        return ColumnType(str(value).upper())
    except ValueError:
        raise ValidationError(f"Invalid column type: {value}") from None


def normalize_settings(column_type: ColumnType, settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Check and normalize per-type settings.

    STATUS settings become {"options": [{id, label, color}, ...]} with unique,
    non-empty string ids. Other types keep their settings as an opaque dict.
    """
    if settings is None:
        settings = {}
    if not isinstance(settings, dict):
        raise ValidationError("Column settings must be an object")

    if column_type != ColumnType.STATUS:
        return dict(settings)

    raw_options = settings.get("options", [])
    if not isinstance(raw_options, list):
        raise ValidationError("STATUS options must be a list")

    options = []
    seen = set()
    for opt in raw_options:
        if not isinstance(opt, dict):
            raise ValidationError("Each STATUS option must be an object")
        opt_id = opt.get("id")
        if not isinstance(opt_id, str) or not opt_id:
            raise ValidationError("STATUS option id must be a non-empty string")
        if opt_id in seen:
            raise ValidationError(f"Duplicate STATUS option id: {opt_id}")
        seen.add(opt_id)
        label = opt.get("label", "")
        if not isinstance(label, str):
            raise ValidationError(f"STATUS option {opt_id} label must be a string")
        color = opt.get("color") or "#6B7280"
        options.append({"id": opt_id, "label": label, "color": color})

    normalized = {k: v for k, v in settings.items() if k != "options"}
    normalized["options"] = options
    return normalized


class ColumnRegistry:
    """Typed column declarations of each board."""

    def __init__(self, store: BoardStore, access: BoardAccess, config: Optional[Config] = None):
        self.store = store
        self.access = access
        self.config = config or Config()

    def list_columns(self, actor: Actor, board_id: str) -> List[Column]:
        with self.store.transaction() as conn:
            self.access.resolve(conn, board_id, actor)
            return self.store.columns_for_board(conn, board_id)

    def add_column(
        self,
        actor: Actor,
        board_id: str,
        name: str,
        column_type: Union[str, ColumnType],
        settings: Optional[Dict[str, Any]] = None,
        width: Optional[int] = None,
    ) -> Column:
        """Append a column at the end of the board's column order."""
        name = clean_name(name, "Column name")
        ctype = parse_column_type(column_type)
        settings = normalize_settings(ctype, settings)
        width = self._check_width(width if width is not None else self.config.default_column_width)

        with self.store.transaction() as conn:
            self.access.require_edit(conn, board_id, actor)
            column = self._insert(conn, board_id, name, ctype, settings, width)

        logger.info(f"Column {column.column_id} ({ctype.value}) added to board {board_id}")
        return column

    def update_column_settings(self, actor: Actor, column_id: str, patch: Dict[str, Any]) -> Column:
        """Patch name, width or settings. The column type cannot change."""
        if "type" in patch or "column_type" in patch:
            raise ValidationError("Column type cannot be changed after creation")
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown column fields: {', '.join(sorted(unknown))}")

        with self.store.transaction() as conn:
            self.access.board_for_column(conn, column_id, actor, edit=True)
            column = self.store.fetch_column(conn, column_id)

            if "name" in patch:
                column.name = clean_name(patch["name"], "Column name")
            if "width" in patch:
                column.width = self._check_width(patch["width"])
            if "settings" in patch:
                previous_ids = set(column.option_ids)
                column.settings = normalize_settings(column.column_type, patch["settings"])
                removed = previous_ids - set(column.option_ids)
                if removed and self.config.prune_removed_status_options:
                    self._prune_values(conn, column_id, removed)

            conn.execute(
                "UPDATE columns SET name = ?, width = ?, settings = ? WHERE column_id = ?",
                (column.name, column.width, json.dumps(column.settings), column_id),
            )

        logger.info(f"Column {column_id} updated: {sorted(patch)}")
        return column

    def delete_column(self, actor: Actor, column_id: str) -> None:
        """
        Delete a column.

        Field values that reference it are left in place; no board view or
        lookup can reach them once the column id stops resolving.
        """
        with self.store.transaction() as conn:
            board = self.access.board_for_column(conn, column_id, actor, edit=True)
            conn.execute("DELETE FROM columns WHERE column_id = ?", (column_id,))
            self.store.compact_positions(conn, "columns", board.board_id)
        logger.info(f"Column {column_id} deleted from board {board.board_id}")

    def reorder_columns(self, actor: Actor, board_id: str, column_ids: List[str]) -> List[Column]:
        with self.store.transaction() as conn:
            self.access.require_edit(conn, board_id, actor)
            current = self.store.ordered_ids(conn, "columns", board_id)
            check_permutation(current, column_ids, "column")
            self.store.write_order(conn, "columns", board_id, list(column_ids))
            return self.store.columns_for_board(conn, board_id)

    def seed_defaults(self, conn: sqlite3.Connection, board_id: str, board_type: BoardType) -> List[Column]:
        """Create the default columns for a new board (caller holds the transaction)."""
        columns = []
        for entry in DEFAULT_COLUMNS.get(board_type, DEFAULT_COLUMNS[BoardType.GENERAL]):
            settings = normalize_settings(entry["type"], entry.get("settings"))
            columns.append(self._insert(
                conn, board_id, entry["name"], entry["type"], settings, self.config.default_column_width,
            ))
        return columns

    # ── internals ────────────────────────────────────────────

    def _insert(
        self,
        conn: sqlite3.Connection,
        board_id: str,
        name: str,
        ctype: ColumnType,
        settings: Dict[str, Any],
        width: int,
    ) -> Column:
        column = Column(
            column_id=make_id("col"),
            board_id=board_id,
            name=name,
            column_type=ctype,
            settings=settings,
            width=width,
            position=self.store.next_position(conn, "columns", board_id),
        )
        conn.execute(
            "INSERT INTO columns (column_id, board_id, name, column_type, settings, width, position) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (column.column_id, board_id, name, ctype.value, json.dumps(settings), width, column.position),
        )
        return column

    def _check_width(self, width: Any) -> int:
        if isinstance(width, bool) or not isinstance(width, int):
            raise ValidationError("Column width must be an integer")
        lo, hi = self.config.min_column_width, self.config.max_column_width
        if not lo <= width <= hi:
            raise ValidationError(f"Column width must be between {lo} and {hi}")
        return width

    def _prune_values(self, conn: sqlite3.Connection, column_id: str, removed: set) -> None:
        removed_json = [json.dumps(opt_id) for opt_id in removed]
        marks = ",".join("?" for _ in removed_json)
        cur = conn.execute(
            f"UPDATE field_values SET value = NULL, version = version + 1 "
            f"WHERE column_id = ? AND value IN ({marks})",
            (column_id, *removed_json),
        )
        logger.info(f"Cleared {cur.rowcount} values of removed options on column {column_id}")
