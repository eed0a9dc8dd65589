"""
Stage aggregation for dashboards: how many tasks sit in each STATUS option.

Every known option id gets a bucket, zero-filled, so a funnel can draw a bar
per stage even when it is empty. Unset values and ids that are no longer
options of the column are left out of every bucket.
"""
from typing import Dict, Iterable, List, Sequence

from .errors import NotFoundError
from .schema import BoardView, ColumnType, Task


def count_by_status_column(tasks: Iterable[Task], column_id: str, known_option_ids: Sequence[str]) -> Dict[str, int]:
    counts = {option_id: 0 for option_id in known_option_ids}
    for task in tasks:
        value = task.value_of(column_id)
        if isinstance(value, str) and value in counts:
            counts[value] += 1
    return counts


def stage_counts(view: BoardView, column_id: str) -> Dict[str, int]:
    """Counts for a STATUS column of a board, keyed by its current options in order."""
    column = view.column(column_id)
    if column is None or column.column_type != ColumnType.STATUS:
        raise NotFoundError(f"Status column {column_id} not found")
    return count_by_status_column(view.all_tasks(), column_id, column.option_ids)


def progress_ratio(counts: Dict[str, int], done_option_ids: List[str]) -> float:
    """Share of counted tasks that sit in a "done" option (0.0 when nothing is counted)."""
    total = sum(counts.values())
    if total == 0:
        return 0.0
    done = sum(counts.get(option_id, 0) for option_id in done_option_ids)
    return done / total
