"""
Client-side board state.

Holds the last fetched BoardView for one actor and applies mutations the way
the board UI does:

  - Structural changes (groups, tasks, columns) always re-fetch the board.
  - Field edits patch the local view first, then call the engine. If the call
    fails, the patch is rolled back and the error re-raised. Unless
    reconcile_field_edits is on, there is no re-fetch after a successful edit,
    so a local value is the last applied value and possibly stale: a
    concurrent writer's change shows up only on the next refresh().
"""
import logging
from typing import Any, Callable, Optional

from .engine import BoardEngine
from .errors import BoardError
from .schema import Actor, BoardView, FieldValue

logger = logging.getLogger(__name__)


class LocalBoardState:
    """Last known board view plus optimistic field edits."""

    def __init__(self, engine: BoardEngine, board_id: str, actor: Actor, reconcile_field_edits: Optional[bool] = None):
        self.engine = engine
        self.board_id = board_id
        self.actor = actor
        if reconcile_field_edits is None:
            reconcile_field_edits = engine.config.reconcile_field_edits
        self.reconcile_field_edits = reconcile_field_edits
        self.view: Optional[BoardView] = None

    def refresh(self) -> BoardView:
        self.view = self.engine.boards.get_board_view(self.board_id, self.actor)
        return self.view

    def run_structural(self, operation: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Run a structural mutation and re-fetch the board.

        The actor is passed as the first argument, e.g.
        state.run_structural(engine.tasks.create_task, group_id, "Fix roof").
        The board is re-fetched even when the mutation fails.
        """
        try:
            return operation(self.actor, *args, **kwargs)
        finally:
            self.refresh()

    def edit_field(self, task_id: str, column_id: str, value: Any) -> FieldValue:
        """Optimistically set a field value; roll back the local patch on failure."""
        if self.view is None:
            self.refresh()
        task = self.view.find_task(task_id)

        previous = task.field_values.get(column_id) if task else None
        if task is not None:
            task.field_values[column_id] = FieldValue(
                task_id=task_id,
                column_id=column_id,
                value=value,
                version=previous.version if previous else 0,
            )

        try:
            stored = self.engine.fields.set_field_value(self.actor, task_id, column_id, value)
        except BoardError:
            if task is not None:
                if previous is None:
                    task.field_values.pop(column_id, None)
                else:
                    task.field_values[column_id] = previous
            logger.warning(f"Field edit rolled back: task={task_id} column={column_id}")
            raise

        if self.reconcile_field_edits:
            self.refresh()
        elif task is not None:
            task.field_values[column_id] = stored
        return stored
