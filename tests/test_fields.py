"""
Tests for field values: type validation, upserts, versions, rendering.
"""
import pytest

from pkg.taskboard.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from pkg.taskboard.fields import get_field_value, render_cell, validate_value
from pkg.taskboard.schema import Column, ColumnType, Member


def _column(ctype, **settings):
    return Column(column_id="c", board_id="b", name="Col", column_type=ctype, settings=settings)


STATUS = _column(ColumnType.STATUS, options=[
    {"id": "done", "label": "Done", "color": "#10B981"},
    {"id": "open", "label": "Open", "color": "#6B7280"},
])


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Validation
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@pytest.mark.parametrize("value,accepted", [
    (None, True),
    ("", True),
    ("done", True),
    ("open", True),
    ("missing", False),
    ("Done", False),
    (1, False),
])
def test_status_accepts_only_empty_or_known_option(value, accepted):
    if accepted:
        validate_value(STATUS, value)
    else:
        with pytest.raises(ValidationError):
            validate_value(STATUS, value)


def test_blank_normalizes_to_none():
    assert validate_value(STATUS, "") is None
    assert validate_value(_column(ColumnType.DATE), "") is None
    assert validate_value(_column(ColumnType.TEXT), "") == ""


def test_numbers():
    money = _column(ColumnType.MONEY)
    assert validate_value(money, 1200) == 1200
    assert validate_value(money, 19.99) == 19.99
    for bad in ("12", True, float("nan"), float("inf"), 10 ** 400, -(10 ** 400)):
        with pytest.raises(ValidationError):
            validate_value(money, bad)


def test_dates():
    col = _column(ColumnType.DATE)
    assert validate_value(col, "2026-03-01") == "2026-03-01"
    assert validate_value(col, "2026-03-01T09:30:00Z") == "2026-03-01T09:30:00Z"
    assert validate_value(col, "2026-03-01 09:30:00") == "2026-03-01 09:30:00"
    for bad in ("03/01/2026", "2026-13-01", "2026-03-01x", "2026-03-01Tgarbage", "2026-03-01 soon",
                "2026-03-01T25:00:00", 20260301):
        with pytest.raises(ValidationError):
            validate_value(col, bad)


def test_checkbox_text_person():
    assert validate_value(_column(ColumnType.CHECKBOX), True) is True
    with pytest.raises(ValidationError):
        validate_value(_column(ColumnType.CHECKBOX), "yes")
    with pytest.raises(ValidationError):
        validate_value(_column(ColumnType.TEXT), 5)
    assert validate_value(_column(ColumnType.PERSON), "u-admin") == "u-admin"
    with pytest.raises(ValidationError):
        validate_value(_column(ColumnType.PERSON), ["u-admin"])


def test_email_and_phone():
    assert validate_value(_column(ColumnType.EMAIL), "ops@example.com") == "ops@example.com"
    with pytest.raises(ValidationError):
        validate_value(_column(ColumnType.EMAIL), "not-an-email")
    assert validate_value(_column(ColumnType.PHONE), "+44 (0)20 7946-0958") == "+44 (0)20 7946-0958"
    with pytest.raises(ValidationError):
        validate_value(_column(ColumnType.PHONE), "call me")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Rendering
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_render_status():
    cell = render_cell(STATUS, "done")
    assert (cell.text, cell.color) == ("Done", "#10B981")
    # Dangling option id renders blank instead of failing
    assert render_cell(STATUS, "removed").text == ""
    assert render_cell(STATUS, None).text == ""


def test_render_person():
    members = [Member(id="u-1", name="Sam Doe")]
    assert render_cell(_column(ColumnType.PERSON), "u-1", members).text == "Sam Doe"
    assert render_cell(_column(ColumnType.PERSON), "u-2", members).text == ""


def test_render_numbers_and_dates():
    money = render_cell(_column(ColumnType.MONEY), 1200)
    assert (money.text, money.align) == ("1,200", "right")
    assert render_cell(_column(ColumnType.NUMBER), 1234.5).text == "1,234.50"
    assert render_cell(_column(ColumnType.NUMBER), 7.0).text == "7"
    assert render_cell(_column(ColumnType.NUMBER), None).text == ""
    assert render_cell(_column(ColumnType.DATE), "2026-03-01T09:30:00Z").text == "2026-03-01"


def test_render_checkbox_and_text():
    cell = render_cell(_column(ColumnType.CHECKBOX), None)
    assert cell.checked is False and cell.align == "center"
    assert render_cell(_column(ColumnType.TEXT), None).to_dict()["text"] == ""
    assert render_cell(_column(ColumnType.EMAIL), "a@b.co").text == "a@b.co"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Store
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_set_status_value_scenario(engine, admin, board, group):
    column = engine.columns.add_column(admin, board.board_id, "Result", "STATUS", settings={
        "options": [{"id": "done", "label": "Done", "color": "#10B981"}],
    })
    task = engine.tasks.create_task(admin, group.group_id, "Inspect boiler")

    fv = engine.fields.set_field_value(admin, task.task_id, column.column_id, "done")
    assert fv.value == "done"

    with pytest.raises(ValidationError):
        engine.fields.set_field_value(admin, task.task_id, column.column_id, "missing")

    # The failed write left the stored value untouched
    assert engine.fields.get(admin, task.task_id, column.column_id).value == "done"


def test_last_write_wins(engine, admin, employee, group, status_column):
    task = engine.tasks.create_task(admin, group.group_id, "Unit 4")
    engine.fields.set_field_value(admin, task.task_id, status_column.column_id, "active")
    second = engine.fields.set_field_value(employee, task.task_id, status_column.column_id, "vacant")

    assert second.version == 2
    view = engine.boards.get_board_view(group.board_id, admin)
    assert get_field_value(view.find_task(task.task_id), status_column.column_id) == "vacant"


def test_expected_version_conflict(engine, admin, group, status_column):
    task = engine.tasks.create_task(admin, group.group_id, "Unit 5")
    first = engine.fields.set_field_value(admin, task.task_id, status_column.column_id, "active",
                                          expected_version=0)
    assert first.version == 1

    engine.fields.set_field_value(admin, task.task_id, status_column.column_id, "vacant",
                                  expected_version=1)
    with pytest.raises(ConflictError):
        engine.fields.set_field_value(admin, task.task_id, status_column.column_id, "active",
                                      expected_version=1)
    assert engine.fields.get(admin, task.task_id, status_column.column_id).value == "vacant"


def test_expected_version_must_be_an_integer(engine, admin, group, status_column):
    task = engine.tasks.create_task(admin, group.group_id, "Unit 6")
    for bad in (True, False, "1", 1.0):
        with pytest.raises(ValidationError):
            engine.fields.set_field_value(admin, task.task_id, status_column.column_id, "active",
                                          expected_version=bad)
    assert engine.fields.get(admin, task.task_id, status_column.column_id) is None


def test_huge_integer_is_rejected_not_raised(engine, admin, board, group):
    money = engine.columns.add_column(admin, board.board_id, "Budget", "MONEY")
    task = engine.tasks.create_task(admin, group.group_id, "Unit 7")
    with pytest.raises(ValidationError):
        engine.fields.set_field_value(admin, task.task_id, money.column_id, 10 ** 400)



def test_clearing_a_value(engine, admin, group, status_column):
    task = engine.tasks.create_task(admin, group.group_id, "Unit 6")
    engine.fields.set_field_value(admin, task.task_id, status_column.column_id, "active")
    cleared = engine.fields.set_field_value(admin, task.task_id, status_column.column_id, "")
    assert cleared.value is None
    assert engine.fields.get(admin, task.task_id, status_column.column_id).value is None


def test_unset_value_reads_as_none(engine, admin, group, status_column):
    task = engine.tasks.create_task(admin, group.group_id, "Unit 7")
    assert engine.fields.get(admin, task.task_id, status_column.column_id) is None
    assert get_field_value(engine.tasks.get_task(admin, task.task_id), status_column.column_id) is None


def test_column_from_another_board_is_not_found(engine, admin, group):
    other = engine.boards.create_board(admin, "Other")
    foreign_column = engine.columns.list_columns(admin, other.board_id)[0]
    task = engine.tasks.create_task(admin, group.group_id, "Unit 8")
    with pytest.raises(NotFoundError):
        engine.fields.set_field_value(admin, task.task_id, foreign_column.column_id, "1")


def test_customer_cannot_set_value(engine, admin, customer, group, status_column):
    task = engine.tasks.create_task(admin, group.group_id, "Unit 9")
    engine.boards.add_board_member(admin, group.board_id, customer.actor_id, can_edit=False)
    with pytest.raises(AuthorizationError):
        engine.fields.set_field_value(customer, task.task_id, status_column.column_id, "active")
    assert engine.fields.get(admin, task.task_id, status_column.column_id) is None
