"""
Tests for tasks: ordering, rename, move between groups, reorder, delete.
"""
import threading

import pytest

from pkg.taskboard.errors import AuthorizationError, NotFoundError, ValidationError


def _names(engine, actor, board_id):
    view = engine.boards.get_board_view(board_id, actor)
    return [[t.name for t in g.tasks] for g in view.groups]


def test_create_task_positions_increase(engine, admin, group):
    tasks = [engine.tasks.create_task(admin, group.group_id, f"Task {i}") for i in range(5)]
    positions = [t.position for t in tasks]
    assert positions == sorted(positions)
    assert len(set(positions)) == 5
    assert positions == [0, 1, 2, 3, 4]

    view = engine.boards.get_board_view(group.board_id, admin)
    assert [t.task_id for t in view.groups[0].tasks] == [t.task_id for t in tasks]


def test_concurrent_creates_get_distinct_positions(engine, admin, group):
    workers = 8
    barrier = threading.Barrier(workers)
    created, errors = [], []

    def create(i):
        barrier.wait()
        try:
            created.append(engine.tasks.create_task(admin, group.group_id, f"Task {i}"))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=create, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert sorted(t.position for t in created) == list(range(workers))
    view = engine.boards.get_board_view(group.board_id, admin)
    assert [t.position for t in view.groups[0].tasks] == list(range(workers))


def test_create_task_strips_and_rejects_blank_names(engine, admin, group):
    task = engine.tasks.create_task(admin, group.group_id, "  Paint hallway  ")
    assert task.name == "Paint hallway"
    for bad in ("", "   ", None):
        with pytest.raises(ValidationError):
            engine.tasks.create_task(admin, group.group_id, bad)


def test_create_task_in_unknown_group(engine, admin):
    with pytest.raises(NotFoundError):
        engine.tasks.create_task(admin, "grp-missing", "Orphan")


def test_rename_is_visible_on_next_fetch(engine, admin, group):
    task = engine.tasks.create_task(admin, group.group_id, "Old name")
    engine.tasks.update_task(admin, task.task_id, name="New name")
    assert _names(engine, admin, group.board_id) == [["New name"]]


def test_reposition_within_group(engine, admin, group):
    a, b, c = (engine.tasks.create_task(admin, group.group_id, n) for n in "ABC")
    moved = engine.tasks.update_task(admin, c.task_id, position=0)
    assert moved.position == 0
    assert _names(engine, admin, group.board_id) == [["C", "A", "B"]]

    # Out-of-range positions are clamped
    engine.tasks.update_task(admin, c.task_id, position=99)
    view = engine.boards.get_board_view(group.board_id, admin)
    assert [(t.name, t.position) for t in view.groups[0].tasks] == [("A", 0), ("B", 1), ("C", 2)]


def test_move_task_to_another_group(engine, admin, group, status_column):
    second = engine.groups.create_group(admin, group.board_id, "Done")
    a, b, c = (engine.tasks.create_task(admin, group.group_id, n) for n in "ABC")
    engine.fields.set_field_value(admin, b.task_id, status_column.column_id, "active")

    moved = engine.tasks.update_task(admin, b.task_id, group_id=second.group_id)
    assert moved.group_id == second.group_id
    assert moved.position == 0
    # Field values travel with the task
    assert moved.value_of(status_column.column_id) == "active"

    view = engine.boards.get_board_view(group.board_id, admin)
    assert [(t.name, t.position) for t in view.groups[0].tasks] == [("A", 0), ("C", 1)]
    assert [t.name for t in view.groups[1].tasks] == ["B"]


def test_move_task_to_group_on_other_board_is_rejected(engine, admin, group):
    other = engine.boards.create_board(admin, "Other")
    other_group = engine.boards.get_board_view(other.board_id, admin).groups[0]
    task = engine.tasks.create_task(admin, group.group_id, "Stay here")
    with pytest.raises(NotFoundError):
        engine.tasks.update_task(admin, task.task_id, group_id=other_group.group_id)
    assert engine.tasks.get_task(admin, task.task_id).group_id == group.group_id


def test_update_task_rejects_non_integer_position(engine, admin, group):
    task = engine.tasks.create_task(admin, group.group_id, "A")
    with pytest.raises(ValidationError):
        engine.tasks.update_task(admin, task.task_id, position="1")
    with pytest.raises(ValidationError):
        engine.tasks.update_task(admin, task.task_id, position=True)


def test_delete_task_closes_gap(engine, admin, group, status_column):
    a, b, c = (engine.tasks.create_task(admin, group.group_id, n) for n in "ABC")
    engine.fields.set_field_value(admin, b.task_id, status_column.column_id, "active")

    engine.tasks.delete_task(admin, b.task_id)

    view = engine.boards.get_board_view(group.board_id, admin)
    assert [(t.name, t.position) for t in view.groups[0].tasks] == [("A", 0), ("C", 1)]
    with pytest.raises(NotFoundError):
        engine.tasks.get_task(admin, b.task_id)
    assert engine.store.count_rows("field_values", "task_id = ?", (b.task_id,)) == 0
    assert engine.store.count_rows("activity_log", "task_id = ?", (b.task_id,)) == 0


def test_reorder_tasks(engine, admin, group):
    a, b, c = (engine.tasks.create_task(admin, group.group_id, n) for n in "ABC")
    tasks = engine.tasks.reorder_tasks(admin, group.group_id, [c.task_id, a.task_id, b.task_id])
    assert [(t.name, t.position) for t in tasks] == [("C", 0), ("A", 1), ("B", 2)]


def test_reorder_tasks_pulls_from_other_group(engine, admin, group):
    second = engine.groups.create_group(admin, group.board_id, "Later")
    a, b = (engine.tasks.create_task(admin, group.group_id, n) for n in "AB")
    x = engine.tasks.create_task(admin, second.group_id, "X")

    engine.tasks.reorder_tasks(admin, second.group_id, [a.task_id, x.task_id])
    assert _names(engine, admin, group.board_id) == [["B"], ["A", "X"]]
    view = engine.boards.get_board_view(group.board_id, admin)
    assert view.groups[0].tasks[0].position == 0


def test_reorder_tasks_must_keep_every_task(engine, admin, group):
    a, b = (engine.tasks.create_task(admin, group.group_id, n) for n in "AB")
    with pytest.raises(ValidationError):
        engine.tasks.reorder_tasks(admin, group.group_id, [a.task_id])
    with pytest.raises(ValidationError):
        engine.tasks.reorder_tasks(admin, group.group_id, [a.task_id, b.task_id, a.task_id])


def test_reorder_tasks_rejects_non_string_ids(engine, admin, group):
    a, b = (engine.tasks.create_task(admin, group.group_id, n) for n in "AB")
    for bad in ([a.task_id, 1], [a.task_id, ["x"]], [a.task_id, {"id": b.task_id}], a.task_id):
        with pytest.raises(ValidationError):
            engine.tasks.reorder_tasks(admin, group.group_id, bad)
    assert _names(engine, admin, group.board_id) == [["A", "B"]]


def test_read_only_actor_cannot_mutate(engine, admin, customer):
    board = engine.boards.create_board(admin, "Shared", is_public=True)
    group = engine.boards.get_board_view(board.board_id, admin).groups[0]
    task = engine.tasks.create_task(admin, group.group_id, "Original")

    with pytest.raises(AuthorizationError):
        engine.tasks.update_task(customer, task.task_id, name="Hijacked")
    with pytest.raises(AuthorizationError):
        engine.tasks.delete_task(customer, task.task_id)
    with pytest.raises(AuthorizationError):
        engine.tasks.create_task(customer, group.group_id, "Extra")

    assert _names(engine, admin, board.board_id) == [["Original"]]


def test_task_activity(engine, admin, group, status_column):
    task = engine.tasks.create_task(admin, group.group_id, "Audit me")
    engine.tasks.update_task(admin, task.task_id, name="Audited")
    engine.fields.set_field_value(admin, task.task_id, status_column.column_id, "active")

    entries = engine.activity.for_task(admin, task.task_id)
    assert [e.action for e in entries] == ["field_updated", "updated", "created"]
    assert entries[0].details == {"column_id": status_column.column_id, "value": "active"}
    assert entries[2].actor_id == admin.actor_id
    assert len(engine.activity.for_task(admin, task.task_id, limit=1)) == 1


def test_failed_mutation_leaves_no_activity(engine, admin, group, status_column):
    task = engine.tasks.create_task(admin, group.group_id, "Audit me")
    with pytest.raises(ValidationError):
        engine.fields.set_field_value(admin, task.task_id, status_column.column_id, "nope")
    assert [e.action for e in engine.activity.for_task(admin, task.task_id)] == ["created"]


def test_write_counters(engine, admin, group):
    task = engine.tasks.create_task(admin, group.group_id, "Chatty")
    assert engine.store.write_counters(task.task_id, comment_count=3, subitem_count=2)
    refreshed = engine.tasks.get_task(admin, task.task_id)
    assert (refreshed.comment_count, refreshed.subitem_count) == (3, 2)
    assert not engine.store.write_counters("tsk-missing", comment_count=1)
