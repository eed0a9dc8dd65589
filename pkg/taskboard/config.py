# Task board engine: configuration
# Override defaults via taskboard.yaml or environment variables.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

CONFIG_PATH = Path(__file__).parent.parent.parent / "taskboard.yaml"


@dataclass
class Config:
    """Runtime configuration for the task board engine."""

    # Storage
    db_path: str = "~/.local/share/taskboard/taskboard.db"

    # Column schema
    default_column_width: int = 150
    min_column_width: int = 50
    max_column_width: int = 500

    # Groups
    default_group_name: str = "New Group"

    # Behavior: field-value consistency
    reconcile_field_edits: bool = False          # re-fetch the board after each field edit
    prune_removed_status_options: bool = False   # null out values of removed STATUS options

    # Activity log
    activity_limit: int = 50

    # API server
    host: str = "127.0.0.1"
    port: int = 3000
    api_secret: str = ""

    def resolve_paths(self):
        """Apply environment overrides and expand ~ in paths."""
        env_db = os.environ.get("TASKBOARD_DB")
        if env_db:
            self.db_path = env_db
        env_secret = os.environ.get("TASKBOARD_API_SECRET")
        if env_secret:
            self.api_secret = env_secret
        self.db_path = str(Path(self.db_path).expanduser())

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            with open(cfg_path, "r") as f:
                data = yaml.safe_load(f) or {}
            cfg = cls(**{k: v for k, v in data.items() if hasattr(cls, k)})
        else:
            cfg = cls()
        cfg.resolve_paths()
        return cfg
