"""
Tests for groups: defaults, update, cascade delete, reorder.
"""
import pytest

from pkg.taskboard.errors import AuthorizationError, NotFoundError, ValidationError


def test_new_board_has_one_default_group(engine, admin, board):
    view = engine.boards.get_board_view(board.board_id, admin)
    assert [(g.name, g.position) for g in view.groups] == [("New Group", 0)]


def test_create_group_appends_with_default_name(engine, admin, board):
    g1 = engine.groups.create_group(admin, board.board_id)
    g2 = engine.groups.create_group(admin, board.board_id, "Backlog", color="#3B82F6")
    assert (g1.name, g1.position) == ("New Group", 1)
    assert (g2.name, g2.position, g2.color) == ("Backlog", 2, "#3B82F6")


def test_create_group_rejects_blank_name(engine, admin, board):
    with pytest.raises(ValidationError):
        engine.groups.create_group(admin, board.board_id, "  ")


def test_update_group(engine, admin, group):
    updated = engine.groups.update_group(admin, group.group_id, name="Urgent", collapsed=True)
    assert updated.name == "Urgent"
    assert updated.collapsed is True

    view = engine.boards.get_board_view(group.board_id, admin)
    assert (view.groups[0].name, view.groups[0].collapsed) == ("Urgent", True)

    with pytest.raises(ValidationError):
        engine.groups.update_group(admin, group.group_id, collapsed="yes")
    with pytest.raises(NotFoundError):
        engine.groups.update_group(admin, "grp-missing", name="X")


def test_delete_group_cascades(engine, admin, group, status_column):
    doomed = engine.groups.create_group(admin, group.board_id, "Doomed")
    keep = engine.tasks.create_task(admin, group.group_id, "Keep")
    gone = [engine.tasks.create_task(admin, doomed.group_id, f"Gone {i}") for i in range(3)]
    for task in gone:
        engine.fields.set_field_value(admin, task.task_id, status_column.column_id, "active")

    removed = engine.groups.delete_group(admin, doomed.group_id)
    assert removed == 3

    view = engine.boards.get_board_view(group.board_id, admin)
    assert [g.group_id for g in view.groups] == [group.group_id]
    assert [t.task_id for t in view.all_tasks()] == [keep.task_id]

    gone_ids = [t.task_id for t in gone]
    marks = ",".join("?" for _ in gone_ids)
    assert engine.store.count_rows("field_values", f"task_id IN ({marks})", gone_ids) == 0
    assert engine.store.count_rows("tasks", f"task_id IN ({marks})", gone_ids) == 0
    for task_id in gone_ids:
        with pytest.raises(NotFoundError):
            engine.fields.get(admin, task_id, status_column.column_id)


def test_delete_group_then_refetch(engine, admin, group):
    other = engine.groups.create_group(admin, group.board_id, "Other")
    engine.tasks.create_task(admin, group.group_id, "A")
    engine.tasks.create_task(admin, other.group_id, "B")

    engine.groups.delete_group(admin, group.group_id)

    view = engine.boards.get_board_view(group.board_id, admin)
    assert [(g.name, g.position) for g in view.groups] == [("Other", 0)]
    assert [t.name for t in view.all_tasks()] == ["B"]


def test_reorder_groups(engine, admin, board, group):
    second = engine.groups.create_group(admin, board.board_id, "Second")
    groups = engine.groups.reorder_groups(admin, board.board_id, [second.group_id, group.group_id])
    assert [(g.name, g.position) for g in groups] == [("Second", 0), ("New Group", 1)]

    with pytest.raises(ValidationError):
        engine.groups.reorder_groups(admin, board.board_id, [second.group_id])
    with pytest.raises(ValidationError):
        engine.groups.reorder_groups(admin, board.board_id, [group.group_id, 1])
    with pytest.raises(ValidationError):
        engine.groups.reorder_groups(admin, board.board_id, [group.group_id, None])


def test_customer_cannot_delete_group(engine, admin, customer):
    board = engine.boards.create_board(admin, "Public", is_public=True)
    group = engine.boards.get_board_view(board.board_id, admin).groups[0]
    with pytest.raises(AuthorizationError):
        engine.groups.delete_group(customer, group.group_id)
    assert len(engine.boards.get_board_view(board.board_id, admin).groups) == 1
