"""
Field value store: one typed value per (task, column).

Values are stored as JSON and validated against the column's type and
current settings at write time only. Reads never fail on stale data: a
STATUS value whose option was removed later simply renders blank.

Writes are upserts. Without expected_version the last write wins; with it,
the write only lands if the stored version still matches.
"""
import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .access import BoardAccess
from .activity import ActivityLog
from .errors import ConflictError, NotFoundError, ValidationError
from .schema import Actor, Column, ColumnType, FieldValue, Member, Task, utc_now
from .store import BoardStore

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^[0-9+\-().\s]+$")

# Types for which an empty string means "unset"
_BLANK_IS_UNSET = {
    ColumnType.DATE, ColumnType.STATUS, ColumnType.PERSON,
    ColumnType.EMAIL, ColumnType.PHONE,
}


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # Integers beyond float range
        return False


def _is_iso_date(value: str) -> bool:
    if len(value) < 10:
        return False
    try:
        if len(value) == 10:
            date.fromisoformat(value)
        elif value[10] in ("T", " "):
            datetime.fromisoformat(value[:-1] + "+00:00" if value.endswith("Z") else value)
        else:
            return False
    except ValueError:
        return False
    return True


def validate_value(column: Column, value: Any) -> Any:
    """
    Check a raw value against the column's type contract.

    Returns the value to store (blank strings normalized to None where they
    mean "unset"). Raises ValidationError on a shape mismatch or, for STATUS,
    an option id that the column does not currently define.
    """
    ctype = column.column_type
    if value is None:
        return None
    if value == "" and ctype in _BLANK_IS_UNSET:
        return None

    if ctype == ColumnType.TEXT:
        if not isinstance(value, str):
            raise ValidationError(f"Column '{column.name}' expects text")

    elif ctype in (ColumnType.NUMBER, ColumnType.MONEY):
        if not _is_number(value):
            raise ValidationError(f"Column '{column.name}' expects a number")

    elif ctype == ColumnType.DATE:
        if not isinstance(value, str) or not _is_iso_date(value):
            raise ValidationError(f"Column '{column.name}' expects an ISO date (YYYY-MM-DD)")

    elif ctype == ColumnType.STATUS:
        if not isinstance(value, str):
            raise ValidationError(f"Column '{column.name}' expects an option id")
        if value not in column.option_ids:
            raise ValidationError(f"Unknown option '{value}' for column '{column.name}'")

    elif ctype == ColumnType.PERSON:
        # Tenant membership is the caller's concern
        if not isinstance(value, str):
            raise ValidationError(f"Column '{column.name}' expects a user id")

    elif ctype == ColumnType.CHECKBOX:
        if not isinstance(value, bool):
            raise ValidationError(f"Column '{column.name}' expects true or false")

    elif ctype == ColumnType.EMAIL:
        if not isinstance(value, str) or not EMAIL_RE.match(value):
            raise ValidationError(f"Column '{column.name}' expects an email address")

    elif ctype == ColumnType.PHONE:
        if not isinstance(value, str) or not PHONE_RE.match(value):
            raise ValidationError(f"Column '{column.name}' expects a phone number")

    else:
        raise ValidationError(f"Unsupported column type: {ctype}")

    return value


def get_field_value(task: Task, column_id: str) -> Any:
    """Value of a column on a task, or None when unset. Never raises."""
    return task.value_of(column_id)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Rendering
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class CellDisplay:
    """How one cell is shown: text, optional color, alignment, checkbox state."""
    text: str = ""
    color: Optional[str] = None
    align: str = "left"
    checked: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "color": self.color, "align": self.align, "checked": self.checked}


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value:,}" if isinstance(value, int) else f"{value:,.2f}"


def render_cell(column: Column, value: Any, members: Optional[List[Member]] = None) -> CellDisplay:
    """Display contract per column type. Unset and stale values render blank."""
    ctype = column.column_type

    if ctype == ColumnType.STATUS:
        option = column.find_option(value)
        if option is None:
            return CellDisplay()
        return CellDisplay(text=option.label, color=option.color)

    if ctype == ColumnType.PERSON:
        for member in members or []:
            if member.id == value:
                return CellDisplay(text=member.name)
        return CellDisplay()

    if ctype == ColumnType.DATE:
        return CellDisplay(text=value[:10] if isinstance(value, str) else "")

    if ctype in (ColumnType.MONEY, ColumnType.NUMBER):
        text = _format_number(value) if _is_number(value) else ""
        return CellDisplay(text=text, align="right")

    if ctype == ColumnType.CHECKBOX:
        return CellDisplay(checked=bool(value), align="center")

    return CellDisplay(text="" if value is None else str(value))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Store
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class FieldValueStore:
    """Type-checked upserts of field values."""

    def __init__(self, store: BoardStore, access: BoardAccess):
        self.store = store
        self.access = access

    def set_field_value(
        self,
        actor: Actor,
        task_id: str,
        column_id: str,
        raw_value: Any,
        expected_version: Optional[int] = None,
    ) -> FieldValue:
        """
        Validate and upsert the value of a column on a task.

        Args:
            actor: Caller; must have edit rights on the task's board
            task_id: Target task
            column_id: Column on the same board as the task
            raw_value: Value shaped for the column type (None clears it)
            expected_version: Optional version the caller last saw (0 = no
                value yet). A mismatch raises ConflictError.

        Returns:
            The stored FieldValue with its new version.
        """
        if expected_version is not None and (
            isinstance(expected_version, bool) or not isinstance(expected_version, int)
        ):
            raise ValidationError("expected_version must be an integer")
        with self.store.transaction() as conn:
            board = self.access.board_for_task(conn, task_id, actor, edit=True)
            column = self.store.fetch_column(conn, column_id)
            if column is None or column.board_id != board.board_id:
                raise NotFoundError(f"Column {column_id} not found")

            value = validate_value(column, raw_value)

            row = conn.execute(
                "SELECT version FROM field_values WHERE task_id = ? AND column_id = ?",
                (task_id, column_id),
            ).fetchone()
            current = row["version"] if row else 0
            if expected_version is not None and expected_version != current:
                raise ConflictError(
                    f"Field {column_id} on task {task_id} is at version {current}, "
                    f"not {expected_version}"
                )

            now = utc_now()
            conn.execute("""
                INSERT INTO field_values (task_id, column_id, value, version, updated_at)
                VALUES (?, ?, ?, 1, ?)
                ON CONFLICT(task_id, column_id) DO UPDATE SET
                    value = excluded.value,
                    version = field_values.version + 1,
                    updated_at = excluded.updated_at
            """, (task_id, column_id, json.dumps(value), now.isoformat()))
            conn.execute("UPDATE tasks SET updated_at = ? WHERE task_id = ?", (now.isoformat(), task_id))
            ActivityLog.record(conn, task_id, actor.actor_id, "field_updated",
                               {"column_id": column_id, "value": value})

        logger.debug(f"Field {column_id} on task {task_id} set to {value!r} (v{current + 1})")
        return FieldValue(task_id=task_id, column_id=column_id, value=value,
                          version=current + 1, updated_at=now)

    def get(self, actor: Actor, task_id: str, column_id: str) -> Optional[FieldValue]:
        """Stored value of a column on a task, or None when unset."""
        with self.store.transaction() as conn:
            board = self.access.board_for_task(conn, task_id, actor)
            column = self.store.fetch_column(conn, column_id)
            if column is None or column.board_id != board.board_id:
                raise NotFoundError(f"Column {column_id} not found")
            row = conn.execute(
                "SELECT * FROM field_values WHERE task_id = ? AND column_id = ?",
                (task_id, column_id),
            ).fetchone()
        return FieldValue.from_row(dict(row)) if row else None
