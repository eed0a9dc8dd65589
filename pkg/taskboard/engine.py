"""
Board engine: one store, one access policy, and the stores built on them.

    engine = BoardEngine(Config.load())
    board = engine.boards.create_board(actor, "Renovations", "PROJECT")
    view = engine.boards.get_board_view(board.board_id, actor)
"""
import logging
from typing import Optional

from .access import BoardAccess
from .activity import ActivityLog
from .boards import BoardAssembler
from .columns import ColumnRegistry
from .config import Config
from .fields import FieldValueStore
from .groups import GroupStore
from .members import MemberDirectory, StaticMemberDirectory
from .store import BoardStore
from .tasks import TaskStore

logger = logging.getLogger(__name__)


class BoardEngine:
    """Wires the board components around a single SQLite store."""

    def __init__(self, config: Optional[Config] = None, members: Optional[MemberDirectory] = None):
        self.config = config or Config.load()
        self.store = BoardStore(self.config.db_path)
        self.access = BoardAccess(self.store)
        self.member_directory = members or StaticMemberDirectory()

        self.columns = ColumnRegistry(self.store, self.access, self.config)
        self.fields = FieldValueStore(self.store, self.access)
        self.tasks = TaskStore(self.store, self.access)
        self.groups = GroupStore(self.store, self.access, self.config)
        self.boards = BoardAssembler(
            self.store, self.access, self.columns, self.groups,
            members=self.member_directory, config=self.config,
        )
        self.activity = ActivityLog(self.store, self.access, self.config.activity_limit)
        logger.debug(f"Board engine ready on {self.config.db_path}")
