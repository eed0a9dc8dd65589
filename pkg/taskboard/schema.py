"""
Task board schema.

A board holds ordered groups of tasks. Each task has a fixed name plus a set
of typed field values, one per column the board declares:

  Board ─┬─ Column (typed schema, per board)
         └─ Group ── Task ── FieldValue (keyed by task id + column id)

Columns are declared at runtime, so values are stored as JSON and checked
against the column type when they are written (see fields.py).
"""
import json
import uuid
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def make_id(prefix: str) -> str:
    """Generate a short prefixed unique id, e.g. tsk-3f9a1c2b7d4e."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if isinstance(value, datetime) else value


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(value)
    return utc_now()


class BoardType(Enum):
    """Presentation tag for a board. Only used to pick default columns."""
    GENERAL = "GENERAL"
    PROPERTY = "PROPERTY"
    PROJECT = "PROJECT"
    CRM = "CRM"

    @classmethod
    def from_str(cls, value: str) -> "BoardType":
        try:
            return cls[(value or "").upper()]
        except KeyError:
            return cls.GENERAL


class ColumnType(Enum):
    """Value type a column declares for every task on its board."""
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    MONEY = "MONEY"
    DATE = "DATE"
    STATUS = "STATUS"
    PERSON = "PERSON"
    CHECKBOX = "CHECKBOX"
    EMAIL = "EMAIL"
    PHONE = "PHONE"


class Role(Enum):
    """Tenant role of an actor, as supplied by the session layer."""
    OWNER_ADMIN = "OWNER_ADMIN"    # Tenant owner / administrator
    EMPLOYEE = "EMPLOYEE"          # Tenant staff
    CUSTOMER = "CUSTOMER"          # Customer-scoped, read-only by default

    @property
    def is_staff(self) -> bool:
        return self in (Role.OWNER_ADMIN, Role.EMPLOYEE)


# ── Collaborator shapes ──────────────────────────────────────


@dataclass
class Actor:
    """Already-authenticated caller. Built by the session layer, never here."""
    actor_id: str
    role: Role
    tenant_id: str
    can_edit_override: Optional[bool] = None


@dataclass
class Member:
    """One entry of the tenant member list, used to render PERSON cells."""
    id: str
    name: str
    avatar_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "avatar_url": self.avatar_url}


# ── Board schema ─────────────────────────────────────────────


@dataclass
class StatusOption:
    """One selectable option of a STATUS column."""
    id: str
    label: str
    color: str = "#6B7280"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "color": self.color}


@dataclass
class Board:
    board_id: str
    tenant_id: str
    name: str
    board_type: BoardType = BoardType.GENERAL
    description: str = ""
    color: Optional[str] = None
    is_public: bool = False
    created_by: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "board_id": self.board_id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "board_type": self.board_type.value,
            "description": self.description,
            "color": self.color,
            "is_public": self.is_public,
            "created_by": self.created_by,
            "created_at": _ts(self.created_at),
            "updated_at": _ts(self.updated_at),
        }

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "Board":
        return cls(
            board_id=data["board_id"],
            tenant_id=data["tenant_id"],
            name=data["name"],
            board_type=BoardType.from_str(data.get("board_type")),
            description=data.get("description") or "",
            color=data.get("color"),
            is_public=bool(data.get("is_public", 0)),
            created_by=data.get("created_by") or "",
            created_at=_parse_ts(data.get("created_at")),
            updated_at=_parse_ts(data.get("updated_at")),
        )


@dataclass
class Column:
    """A board-level declaration of one typed attribute tasks may carry."""
    column_id: str
    board_id: str
    name: str
    column_type: ColumnType
    settings: Dict[str, Any] = field(default_factory=dict)
    width: int = 150
    position: int = 0

    @property
    def options(self) -> List[StatusOption]:
        """STATUS options in display order (empty for other types)."""
        if self.column_type != ColumnType.STATUS:
            return []
        return [
            StatusOption(id=o["id"], label=o.get("label", ""), color=o.get("color") or "#6B7280")
            for o in self.settings.get("options", [])
        ]

    @property
    def option_ids(self) -> List[str]:
        return [o.id for o in self.options]

    def find_option(self, option_id: Any) -> Optional[StatusOption]:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column_id": self.column_id,
            "board_id": self.board_id,
            "name": self.name,
            "type": self.column_type.value,
            "settings": self.settings,
            "width": self.width,
            "position": self.position,
        }

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "Column":
        settings = data.get("settings") or "{}"
        if isinstance(settings, str):
            try:
                settings = json.loads(settings)
            except json.JSONDecodeError:
                settings = {}
        return cls(
            column_id=data["column_id"],
            board_id=data["board_id"],
            name=data["name"],
            column_type=ColumnType(data["column_type"]),
            settings=settings or {},
            width=data.get("width") or 150,
            position=data.get("position") or 0,
        )


# ── Board content ────────────────────────────────────────────


@dataclass
class FieldValue:
    """Stored value of one column for one task. Last write wins."""
    task_id: str
    column_id: str
    value: Any = None
    version: int = 1
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "column_id": self.column_id,
            "value": self.value,
            "version": self.version,
            "updated_at": _ts(self.updated_at),
        }

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "FieldValue":
        raw = data.get("value")
        return cls(
            task_id=data["task_id"],
            column_id=data["column_id"],
            value=json.loads(raw) if raw is not None else None,
            version=data.get("version") or 1,
            updated_at=_parse_ts(data.get("updated_at")),
        )


@dataclass
class Task:
    """A single row of a group."""
    task_id: str
    group_id: str
    name: str
    position: int = 0
    field_values: Dict[str, FieldValue] = field(default_factory=dict)

    # Maintained by the comments / sub-item subsystems; read-only here
    comment_count: int = 0
    subitem_count: int = 0

    created_by: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def value_of(self, column_id: str) -> Any:
        """Raw value for a column, or None when unset."""
        fv = self.field_values.get(column_id)
        return fv.value if fv else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "group_id": self.group_id,
            "name": self.name,
            "position": self.position,
            "field_values": {cid: fv.to_dict() for cid, fv in self.field_values.items()},
            "comment_count": self.comment_count,
            "subitem_count": self.subitem_count,
            "created_by": self.created_by,
            "created_at": _ts(self.created_at),
            "updated_at": _ts(self.updated_at),
        }

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            task_id=data["task_id"],
            group_id=data["group_id"],
            name=data["name"],
            position=data.get("position") or 0,
            comment_count=data.get("comment_count") or 0,
            subitem_count=data.get("subitem_count") or 0,
            created_by=data.get("created_by") or "",
            created_at=_parse_ts(data.get("created_at")),
            updated_at=_parse_ts(data.get("updated_at")),
        )


@dataclass
class Group:
    """Ordered, collapsible bucket of tasks within a board."""
    group_id: str
    board_id: str
    name: str
    color: Optional[str] = None
    collapsed: bool = False
    position: int = 0
    tasks: List[Task] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "board_id": self.board_id,
            "name": self.name,
            "color": self.color,
            "collapsed": self.collapsed,
            "position": self.position,
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_row(cls, data: Dict[str, Any]) -> "Group":
        return cls(
            group_id=data["group_id"],
            board_id=data["board_id"],
            name=data["name"],
            color=data.get("color"),
            collapsed=bool(data.get("collapsed", 0)),
            position=data.get("position") or 0,
        )


@dataclass
class BoardMember:
    board_id: str
    user_id: str
    can_edit: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"board_id": self.board_id, "user_id": self.user_id, "can_edit": self.can_edit}


@dataclass
class ActivityEntry:
    """One audit line for a task mutation."""
    entry_id: int
    task_id: str
    actor_id: str
    action: str
    details: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.entry_id,
            "task_id": self.task_id,
            "actor_id": self.actor_id,
            "action": self.action,
            "details": self.details,
            "created_at": _ts(self.created_at),
        }


@dataclass
class BoardView:
    """Composed board tree handed to a single requesting actor."""
    board: Board
    columns: List[Column]
    groups: List[Group]
    can_edit: bool
    members: List[Member] = field(default_factory=list)

    def column(self, column_id: str) -> Optional[Column]:
        for col in self.columns:
            if col.column_id == column_id:
                return col
        return None

    def all_tasks(self) -> List[Task]:
        return [t for g in self.groups for t in g.tasks]

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self.all_tasks():
            if task.task_id == task_id:
                return task
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "board": self.board.to_dict(),
            "columns": [c.to_dict() for c in self.columns],
            "groups": [g.to_dict() for g in self.groups],
            "can_edit": self.can_edit,
            "members": [m.to_dict() for m in self.members],
        }
