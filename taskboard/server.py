from __future__ import annotations

import json
import logging
import os
from datetime import date

from flask import Flask, jsonify, redirect, request

from .app import VIEWS, BoardApp, DetailPage
from .markup import query_for
from .storage import JsonFileStore
from .store import API_PATH, BACKEND_PORT
from .views import CALENDAR_MODES, HOURS, hour_label, parse_iso_date

logging.basicConfig(level=logging.DEBUG)

DATA_PATH = os.getenv("TASKBOARD_DATA", "data.json")
PORT = BACKEND_PORT

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


# Helpers
# ────────────────────────────────────────────────────────────────────────────────
SLOT_HOURS = frozenset(hour_label(h) for h in HOURS)
SLOT_TIMES = frozenset(f"{h}:00" for h in SLOT_HOURS)

# form field name -> TaskForm attribute
TASK_FORM_FIELDS = {
    "title": "title",
    "description": "description",
    "dueDate": "due_date",
    "dueTime": "due_time",
    "priority": "priority",
    "columnId": "column_id",
}


def parse_month(s: str | None):
    try:
        year, month = (int(part) for part in (s or "").split("-", 1))
        return date(year, month, 1)
    except ValueError:
        return None


def task_form_fields(form) -> dict:
    return {attr: form[name] for name, attr in TASK_FORM_FIELDS.items() if name in form}


def apply_query(board: BoardApp, args) -> None:
    """Rebuild UI state for the server-rendered page from its query string."""
    view = args.get("view", "board")
    board.state.view = view if view in VIEWS else "board"
    mode = args.get("mode", "month")
    board.state.calendar_mode = mode if mode in CALENDAR_MODES else "month"
    if parse_iso_date(args.get("date")):
        board.state.selected_date = args["date"]
        if args.get("time") in SLOT_TIMES:
            board.state.selected_time = args["time"]
    month = parse_month(args.get("month"))
    if month:
        board.state.current_month = month
    board.state.search = (args.get("q") or "").strip()

    nav = args.get("nav")
    if nav == "prev":
        board.calendar_prev()
    elif nav == "next":
        board.calendar_next()
    elif nav == "today":
        board.calendar_today()

    if args.get("slot"):
        hour = args.get("hour", "")
        board.pick_slot(args["slot"], hour if hour in SLOT_HOURS else "")
    if args.get("task"):
        board.detail.open(args["task"])
    if args.get("palette"):
        board.palette.open()
        board.palette.type(args.get("cq", ""))
        if args.get("run"):
            board.palette.submit()
    if args.get("command"):
        board.palette.run(args["command"])


def perform(board: BoardApp, form) -> None:
    """Apply one posted page action to the board."""
    action = form.get("action")
    task_id = form.get("id", "")
    if action == "quick_add":
        board.quick_add.type(form.get("title", ""))
        board.quick_add.submit()
    elif action == "save":
        if board.detail.open(task_id):
            board.detail.edit(**task_form_fields(form))
            board.detail.save()
    elif action == "delete":
        if board.detail.open(task_id):
            board.detail.delete()
    elif action == "move":
        board.drag.start(task_id)
        if form.get("columnId"):
            board.drag.drop_on_column(form["columnId"])
        elif form.get("dueDate"):
            board.drag.drop_on_slot(form["dueDate"], form.get("hour", ""))
        else:
            board.drag.drop_outside()
    else:
        raise ValueError(f"Unknown action: {action}")


# App
# ────────────────────────────────────────────────────────────────────────────────
def create_app(data_path: str | os.PathLike | None = None) -> Flask:
    app = Flask(__name__)
    app.logger.setLevel(logging.DEBUG)
    app.config.update(DATA_PATH=str(data_path or DATA_PATH))

    def store() -> JsonFileStore:
        return JsonFileStore(app.config["DATA_PATH"])

    @app.before_request
    def preflight():
        if request.method == "OPTIONS":
            return "", 204

    @app.after_request
    def cors(response):
        response.headers.update(CORS_HEADERS)
        return response

    @app.errorhandler(404)
    @app.errorhandler(405)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.get(API_PATH)
    def api_data():
        app.logger.debug(f"GET {API_PATH} called")
        return jsonify(store().fetch())

    @app.put(API_PATH)
    def api_replace_data():
        app.logger.debug(f"PUT {API_PATH} called")
        raw = request.get_data(as_text=True)
        try:
            data = json.loads(raw or "{}")
        except ValueError as e:
            app.logger.warning(f"PUT {API_PATH}: invalid JSON: {e}")
            return jsonify({"error": "Invalid JSON"}), 400
        store().replace(data)
        tasks = data.get("tasks") if isinstance(data, dict) else None
        app.logger.info(f"PUT {API_PATH}: document stored ({len(tasks or [])} tasks).")
        return jsonify({"ok": True})

    @app.get("/")
    def index():
        app.logger.debug("GET / called")
        board = BoardApp(store())
        board.load()
        apply_query(board, request.args)
        return board.html()

    @app.get("/detail.html")
    def detail():
        task_id = request.args.get("id")
        app.logger.debug(f"GET /detail.html called for task {task_id}")
        page = DetailPage(store(), task_id)
        if page.load() is None:
            return redirect(page.location or "/")
        return page.html()

    @app.post("/")
    def board_action():
        action = request.form.get("action")
        app.logger.debug(f"POST / called with action {action}")
        board = BoardApp(store())
        try:
            board.load()
            apply_query(board, request.args)
            try:
                perform(board, request.form)
            except ValueError as e:
                app.logger.warning(f"POST /: {e}")
                return jsonify({"error": str(e)}), 400
            for future in board.flush():
                future.result()
        finally:
            board.close()
        return redirect("/" + query_for(board.state))

    @app.post("/detail.html")
    def detail_action():
        task_id = request.args.get("id")
        action = request.form.get("action", "save")
        app.logger.debug(f"POST /detail.html called for task {task_id} with action {action}")
        page = DetailPage(store(), task_id)
        if page.load() is not None:
            if action == "delete":
                page.delete()
            else:
                page.save(**task_form_fields(request.form))
        return redirect(page.location or "/")

    return app


app = create_app()


def main():
    app.logger.info(f"Starting task board on port {PORT} with data file: {DATA_PATH}")
    app.run(debug=True, port=PORT, use_reloader=False)


if __name__ == "__main__":
    main()
