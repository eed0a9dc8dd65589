#!/usr/bin/env python3
"""
Quick verification that the task board engine works end-to-end.
"""
import tempfile
from pathlib import Path

from pkg.taskboard.aggregate import stage_counts, progress_ratio
from pkg.taskboard.config import Config
from pkg.taskboard.engine import BoardEngine
from pkg.taskboard.errors import AuthorizationError
from pkg.taskboard.fields import render_cell
from pkg.taskboard.schema import Actor, Member, Role
from pkg.taskboard.members import StaticMemberDirectory
from pkg.taskboard.view_filter import filter_board


def main():
    print("=" * 60)
    print("Task Board Engine Verification")
    print("=" * 60)

    db_path = Path(tempfile.mkdtemp()) / "taskboard_verify.db"
    members = StaticMemberDirectory({"tenant-1": [Member(id="u-admin", name="Alex Admin")]})
    engine = BoardEngine(Config(db_path=str(db_path)), members=members)
    admin = Actor(actor_id="u-admin", role=Role.OWNER_ADMIN, tenant_id="tenant-1")
    customer = Actor(actor_id="u-cust", role=Role.CUSTOMER, tenant_id="tenant-1")

    print("\n[1/6] Creating PROPERTY board...")
    board = engine.boards.create_board(admin, "Portfolio", "PROPERTY", is_public=True)
    view = engine.boards.get_board_view(board.board_id, admin)
    print(f"✅ Board {board.board_id}: {len(view.columns)} columns, {len(view.groups)} group(s)")

    print("\n[2/6] Adding tasks...")
    group = view.groups[0]
    names = ["12 Elm Street", "4 Oak Avenue", "Flat 3, Mill Lane"]
    tasks = [engine.tasks.create_task(admin, group.group_id, n) for n in names]
    print(f"✅ {len(tasks)} tasks at positions {[t.position for t in tasks]}")

    print("\n[3/6] Setting field values...")
    occupancy = next(c for c in view.columns if c.name == "Occupancy")
    rent = next(c for c in view.columns if c.name == "Monthly Rent")
    engine.fields.set_field_value(admin, tasks[0].task_id, occupancy.column_id, "2")
    engine.fields.set_field_value(admin, tasks[1].task_id, occupancy.column_id, "1")
    fv = engine.fields.set_field_value(admin, tasks[0].task_id, rent.column_id, 1250)
    print(f"✅ Rent shows as '{render_cell(rent, fv.value).text}'")

    print("\n[4/6] Stage counts...")
    view = engine.boards.get_board_view(board.board_id, admin)
    counts = stage_counts(view, occupancy.column_id)
    print(f"✅ Occupancy: {counts} (occupied share {progress_ratio(counts, ['2']):.0%})")

    print("\n[5/6] Search filter...")
    filtered = filter_board(view.groups, "oak")
    print(f"✅ 'oak' matches {[t.name for g in filtered for t in g.tasks]}")

    print("\n[6/6] Read-only customer...")
    customer_view = engine.boards.get_board_view(board.board_id, customer)
    try:
        engine.tasks.create_task(customer, group.group_id, "Should fail")
        print("❌ Customer was allowed to edit")
        return
    except AuthorizationError:
        print(f"✅ Customer sees the board (can_edit={customer_view.can_edit}) and cannot edit")

    print("\n" + "=" * 60)
    print("✅ All checks passed")
    print("=" * 60)


if __name__ == "__main__":
    main()
