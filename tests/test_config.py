"""
Tests for configuration loading.
"""
from pkg.taskboard.config import Config


def test_defaults_when_file_missing(tmp_path, monkeypatch):
    monkeypatch.delenv("TASKBOARD_DB", raising=False)
    monkeypatch.delenv("TASKBOARD_API_SECRET", raising=False)
    cfg = Config.load(str(tmp_path / "absent.yaml"))
    assert cfg.default_group_name == "New Group"
    assert cfg.reconcile_field_edits is False
    assert "~" not in cfg.db_path
    assert cfg.api_secret == ""


def test_yaml_values_and_unknown_keys(tmp_path, monkeypatch):
    monkeypatch.delenv("TASKBOARD_DB", raising=False)
    path = tmp_path / "taskboard.yaml"
    path.write_text(
        "db_path: /tmp/boards.db\n"
        "reconcile_field_edits: true\n"
        "max_column_width: 640\n"
        "not_a_setting: 1\n"
    )
    cfg = Config.load(str(path))
    assert cfg.db_path == "/tmp/boards.db"
    assert cfg.reconcile_field_edits is True
    assert cfg.max_column_width == 640
    assert not hasattr(cfg, "not_a_setting")


def test_empty_yaml_file(tmp_path):
    path = tmp_path / "taskboard.yaml"
    path.write_text("")
    assert Config.load(str(path)).port == 3000


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKBOARD_DB", str(tmp_path / "env.db"))
    monkeypatch.setenv("TASKBOARD_API_SECRET", "s3cret")
    path = tmp_path / "taskboard.yaml"
    path.write_text("db_path: /tmp/ignored.db\n")
    cfg = Config.load(str(path))
    assert cfg.db_path == str(tmp_path / "env.db")
    assert cfg.api_secret == "s3cret"
