#!/usr/bin/env python3
"""
Task Board Server
-----------------
JSON API over the task board engine, backed by SQLite.

Usage:
    python board_server.py
    python board_server.py --host 0.0.0.0 --port 3000 --db /var/lib/taskboard/taskboard.db

The caller's identity comes from the upstream authentication layer in
request headers:

    X-Actor-Id     user id
    X-Actor-Role   OWNER_ADMIN | EMPLOYEE | CUSTOMER
    X-Tenant-Id    tenant id
    X-Can-Edit     optional "true"/"false" edit override

Mutating routes also require X-API-Key to match TASKBOARD_API_SECRET.

API:
    GET    /api/boards                          → { boards }
    POST   /api/boards                          → { board }
    GET    /api/boards/<id>[?q=]                → board view (filtered by task name)
    PATCH  /api/boards/<id>                     → { board }
    DELETE /api/boards/<id>                     → { deleted }
    POST   /api/boards/<id>/members             → { member }
    DELETE /api/boards/<id>/members/<user_id>   → { removed }
    GET    /api/boards/<id>/stages?column=<cid> → { counts, total[, progress] }
    POST   /api/columns                         → { column }
    PATCH  /api/columns/<id>                    → { column }
    DELETE /api/columns/<id>                    → { deleted }
    POST   /api/columns/reorder                 → { columns }
    POST   /api/groups                          → { group }
    PATCH  /api/groups/<id>                     → { group }
    DELETE /api/groups/<id>                     → { deleted, tasks_removed }
    POST   /api/groups/reorder                  → { groups }
    POST   /api/tasks                           → { task }
    GET    /api/tasks/<id>                      → { task }
    PATCH  /api/tasks/<id>                      → { task }
    DELETE /api/tasks/<id>                      → { deleted }
    PATCH  /api/tasks/<id>/field/<column_id>    → { field_value }
    POST   /api/tasks/reorder                   → { tasks }
    GET    /api/tasks/<id>/activity             → { activity }
"""

import hmac
import logging
import os
import sys
from functools import wraps

from flask import Flask, jsonify, request, abort

from pkg.taskboard.aggregate import progress_ratio, stage_counts
from pkg.taskboard.config import Config
from pkg.taskboard.engine import BoardEngine
from pkg.taskboard.errors import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError,
)
from pkg.taskboard.schema import Actor, Role
from pkg.taskboard.view_filter import filter_board

logger = logging.getLogger(__name__)

app = Flask(__name__)


def get_engine() -> BoardEngine:
    """Engine for this app, built from taskboard.yaml on first use."""
    if "ENGINE" not in app.config:
        app.config["ENGINE"] = BoardEngine(Config.load())
    return app.config["ENGINE"]


# ── Auth ─────────────────────────────────────────────────────────────────────


def require_api_key(f):
    """Decorator: reject requests without a valid X-API-Key header."""
    @wraps(f)
    def decorated(*args, **kwargs):
        secret = get_engine().config.api_secret
        if not secret:
            return jsonify({"error": "API secret not set"}), 503
        provided = request.headers.get("X-API-Key", "").strip()
        if not hmac.compare_digest(provided, secret):
            code = 401 if not provided else 403
            return jsonify({"error": "Unauthorized"}), code
        return f(*args, **kwargs)
    return decorated


def current_actor() -> Actor:
    """Build the actor from the headers set by the authentication layer."""
    actor_id = request.headers.get("X-Actor-Id", "").strip()
    tenant_id = request.headers.get("X-Tenant-Id", "").strip()
    if not actor_id or not tenant_id:
        abort(401)
    raw_role = request.headers.get("X-Actor-Role", "").strip().upper()
    try:
        role = Role(raw_role)
    except ValueError:
        raise ValidationError(f"Invalid role: {raw_role or '(missing)'}") from None

    override = request.headers.get("X-Can-Edit")
    can_edit_override = None
    if override is not None:
        can_edit_override = override.strip().lower() in ("1", "true", "yes")
    return Actor(actor_id=actor_id, role=role, tenant_id=tenant_id, can_edit_override=can_edit_override)


def body() -> dict:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


# ── Errors ───────────────────────────────────────────────────────────────────


@app.errorhandler(NotFoundError)
def handle_not_found(e):
    return jsonify({"error": str(e)}), 404


@app.errorhandler(ValidationError)
def handle_validation(e):
    logger.warning(f"{request.method} {request.path} rejected: {e}")
    return jsonify({"error": str(e)}), 400


@app.errorhandler(AuthorizationError)
def handle_forbidden(e):
    logger.warning(f"{request.method} {request.path} forbidden: {e}")
    return jsonify({"error": str(e)}), 403


@app.errorhandler(ConflictError)
def handle_conflict(e):
    return jsonify({"error": str(e)}), 409


@app.errorhandler(401)
def handle_unauthenticated(e):
    return jsonify({"error": "Actor headers missing"}), 401


# ── Boards ───────────────────────────────────────────────────────────────────


@app.route("/api/boards")
def api_list_boards():
    boards = get_engine().boards.list_boards(current_actor())
    return jsonify({"boards": [b.to_dict() for b in boards]})


@app.route("/api/boards", methods=["POST"])
@require_api_key
def api_create_board():
    data = body()
    board = get_engine().boards.create_board(
        current_actor(),
        data.get("name"),
        board_type=data.get("board_type") or "GENERAL",
        description=data.get("description") or "",
        color=data.get("color"),
        is_public=bool(data.get("is_public", False)),
    )
    return jsonify({"board": board.to_dict()}), 201


@app.route("/api/boards/<board_id>")
def api_get_board(board_id):
    """Full board view. ?q= narrows tasks by name, keeping every group."""
    view = get_engine().boards.get_board_view(board_id, current_actor())
    query = request.args.get("q", "")
    data = view.to_dict()
    if query:
        data["groups"] = [g.to_dict() for g in filter_board(view.groups, query)]
    return jsonify(data)


@app.route("/api/boards/<board_id>", methods=["PATCH"])
@require_api_key
def api_update_board(board_id):
    board = get_engine().boards.update_board(current_actor(), board_id, body())
    return jsonify({"board": board.to_dict()})


@app.route("/api/boards/<board_id>", methods=["DELETE"])
@require_api_key
def api_delete_board(board_id):
    get_engine().boards.delete_board(current_actor(), board_id)
    return jsonify({"deleted": board_id})


@app.route("/api/boards/<board_id>/members", methods=["POST"])
@require_api_key
def api_add_member(board_id):
    data = body()
    member = get_engine().boards.add_board_member(
        current_actor(), board_id, data.get("user_id"), can_edit=bool(data.get("can_edit", True)),
    )
    return jsonify({"member": member.to_dict()}), 201


@app.route("/api/boards/<board_id>/members/<user_id>", methods=["DELETE"])
@require_api_key
def api_remove_member(board_id, user_id):
    removed = get_engine().boards.remove_board_member(current_actor(), board_id, user_id)
    return jsonify({"removed": removed})


@app.route("/api/boards/<board_id>/stages")
def api_stage_counts(board_id):
    """Task counts per option of a STATUS column. ?done=a,b adds a progress ratio."""
    column_id = request.args.get("column", "").strip()
    if not column_id:
        raise ValidationError("column is required")
    view = get_engine().boards.get_board_view(board_id, current_actor())
    counts = stage_counts(view, column_id)
    result = {"column_id": column_id, "counts": counts, "total": sum(counts.values())}
    done = [d for d in request.args.get("done", "").split(",") if d]
    if done:
        result["progress"] = progress_ratio(counts, done)
    return jsonify(result)


# ── Columns ──────────────────────────────────────────────────────────────────


@app.route("/api/columns", methods=["POST"])
@require_api_key
def api_add_column():
    data = body()
    column = get_engine().columns.add_column(
        current_actor(),
        data.get("board_id"),
        data.get("name"),
        data.get("type") or "",
        settings=data.get("settings"),
        width=data.get("width"),
    )
    return jsonify({"column": column.to_dict()}), 201


@app.route("/api/columns/<column_id>", methods=["PATCH"])
@require_api_key
def api_update_column(column_id):
    column = get_engine().columns.update_column_settings(current_actor(), column_id, body())
    return jsonify({"column": column.to_dict()})


@app.route("/api/columns/<column_id>", methods=["DELETE"])
@require_api_key
def api_delete_column(column_id):
    get_engine().columns.delete_column(current_actor(), column_id)
    return jsonify({"deleted": column_id})


@app.route("/api/columns/reorder", methods=["POST"])
@require_api_key
def api_reorder_columns():
    data = body()
    columns = get_engine().columns.reorder_columns(current_actor(), data.get("board_id"), data.get("column_ids"))
    return jsonify({"columns": [c.to_dict() for c in columns]})


# ── Groups ───────────────────────────────────────────────────────────────────


@app.route("/api/groups", methods=["POST"])
@require_api_key
def api_create_group():
    data = body()
    group = get_engine().groups.create_group(
        current_actor(), data.get("board_id"), name=data.get("name"), color=data.get("color"),
    )
    return jsonify({"group": group.to_dict()}), 201


@app.route("/api/groups/<group_id>", methods=["PATCH"])
@require_api_key
def api_update_group(group_id):
    data = body()
    group = get_engine().groups.update_group(
        current_actor(), group_id,
        name=data.get("name"), color=data.get("color"), collapsed=data.get("collapsed"),
    )
    return jsonify({"group": group.to_dict()})


@app.route("/api/groups/<group_id>", methods=["DELETE"])
@require_api_key
def api_delete_group(group_id):
    removed = get_engine().groups.delete_group(current_actor(), group_id)
    return jsonify({"deleted": group_id, "tasks_removed": removed})


@app.route("/api/groups/reorder", methods=["POST"])
@require_api_key
def api_reorder_groups():
    data = body()
    groups = get_engine().groups.reorder_groups(current_actor(), data.get("board_id"), data.get("group_ids"))
    return jsonify({"groups": [g.to_dict() for g in groups]})


# ── Tasks ────────────────────────────────────────────────────────────────────


@app.route("/api/tasks", methods=["POST"])
@require_api_key
def api_create_task():
    data = body()
    task = get_engine().tasks.create_task(current_actor(), data.get("group_id"), data.get("name"))
    return jsonify({"task": task.to_dict()}), 201


@app.route("/api/tasks/<task_id>")
def api_get_task(task_id):
    task = get_engine().tasks.get_task(current_actor(), task_id)
    return jsonify({"task": task.to_dict()})


@app.route("/api/tasks/<task_id>", methods=["PATCH"])
@require_api_key
def api_update_task(task_id):
    data = body()
    task = get_engine().tasks.update_task(
        current_actor(), task_id,
        name=data.get("name"), position=data.get("position"), group_id=data.get("group_id"),
    )
    return jsonify({"task": task.to_dict()})


@app.route("/api/tasks/<task_id>", methods=["DELETE"])
@require_api_key
def api_delete_task(task_id):
    get_engine().tasks.delete_task(current_actor(), task_id)
    return jsonify({"deleted": task_id})


@app.route("/api/tasks/<task_id>/field/<column_id>", methods=["PATCH"])
@require_api_key
def api_set_field(task_id, column_id):
    """Body: { value, expected_version? }. A stale expected_version answers 409."""
    data = body()
    if "value" not in data:
        raise ValidationError("value is required")
    field_value = get_engine().fields.set_field_value(
        current_actor(), task_id, column_id, data["value"],
        expected_version=data.get("expected_version"),
    )
    return jsonify({"field_value": field_value.to_dict()})


@app.route("/api/tasks/reorder", methods=["POST"])
@require_api_key
def api_reorder_tasks():
    data = body()
    tasks = get_engine().tasks.reorder_tasks(current_actor(), data.get("group_id"), data.get("task_ids"))
    return jsonify({"tasks": [t.to_dict() for t in tasks]})


@app.route("/api/tasks/<task_id>/activity")
def api_task_activity(task_id):
    limit = request.args.get("limit", type=int)
    entries = get_engine().activity.for_task(current_actor(), task_id, limit=limit)
    return jsonify({"activity": [e.to_dict() for e in entries]})


@app.route("/health")
def health():
    engine = get_engine()
    return jsonify({
        "status": "ok",
        "db": engine.config.db_path,
        "boards": engine.store.count_rows("boards"),
    })


# ── Main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Task Board Server")
    parser.add_argument("--config", help="Path to taskboard.yaml")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="Path to taskboard.db (overrides TASKBOARD_DB env var)")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [board-server] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if args.db:
        os.environ["TASKBOARD_DB"] = args.db
    config = Config.load(args.config)
    app.config["ENGINE"] = BoardEngine(config)

    host = args.host or config.host
    port = args.port or config.port
    logger.info(f"Task board server on http://{host}:{port} (db: {config.db_path})")
    if not config.api_secret:
        logger.warning("TASKBOARD_API_SECRET not set: mutating routes will answer 503")

    app.run(host=host, port=port, debug=False, threaded=True)
