"""Shared test fixtures for the task board engine tests."""

import sys
from pathlib import Path

import pytest

# Ensure the repository root is importable (pkg/ and board_server.py)
sys.path.insert(0, str(Path(__file__).parent.parent))

from pkg.taskboard.config import Config
from pkg.taskboard.engine import BoardEngine
from pkg.taskboard.members import StaticMemberDirectory
from pkg.taskboard.schema import Actor, Member, Role

TENANT = "tenant-1"


@pytest.fixture
def config(tmp_path):
    return Config(db_path=str(tmp_path / "taskboard.db"), api_secret="test-secret")


@pytest.fixture
def members():
    return StaticMemberDirectory({
        TENANT: [
            Member(id="u-admin", name="Alex Admin"),
            Member(id="u-emp", name="Eve Employee", avatar_url="https://example.com/eve.png"),
        ],
    })


@pytest.fixture
def engine(config, members):
    return BoardEngine(config, members=members)


@pytest.fixture
def admin():
    return Actor(actor_id="u-admin", role=Role.OWNER_ADMIN, tenant_id=TENANT)


@pytest.fixture
def employee():
    return Actor(actor_id="u-emp", role=Role.EMPLOYEE, tenant_id=TENANT)


@pytest.fixture
def customer():
    return Actor(actor_id="u-cust", role=Role.CUSTOMER, tenant_id=TENANT)


@pytest.fixture
def outsider():
    """Staff of another tenant."""
    return Actor(actor_id="u-other", role=Role.OWNER_ADMIN, tenant_id="tenant-2")


@pytest.fixture
def board(engine, admin):
    return engine.boards.create_board(admin, "Operations")


@pytest.fixture
def group(engine, admin, board):
    """The default group every new board starts with."""
    return engine.boards.get_board_view(board.board_id, admin).groups[0]


@pytest.fixture
def status_column(engine, admin, board):
    return engine.columns.add_column(
        admin, board.board_id, "Stage", "STATUS",
        settings={"options": [
            {"id": "active", "label": "Active", "color": "#10B981"},
            {"id": "vacant", "label": "Vacant", "color": "#EF4444"},
        ]},
    )
