import json

from taskboard.server import apply_query, parse_month

from .helpers import TODAY, make_document, make_task


def _put(client, doc):
    return client.put("/api/data", data=json.dumps(doc), content_type="application/json")


def test_get_materializes_default_document(client, data_path):
    assert not data_path.exists()
    res = client.get("/api/data")
    assert res.status_code == 200
    body = res.get_json()
    assert [c["title"] for c in body["columns"]] == ["Backlog", "Todo", "In Progress", "Done"]
    assert body["tasks"] == []
    assert json.loads(data_path.read_text(encoding="utf-8")) == body


def test_put_replaces_whole_document(client, data_path):
    doc = make_document(make_task(id="a"))
    res = _put(client, doc)
    assert res.status_code == 200
    assert res.get_json() == {"ok": True}
    assert client.get("/api/data").get_json() == doc

    smaller = {"columns": doc["columns"], "tasks": []}
    _put(client, smaller)
    assert client.get("/api/data").get_json() == smaller
    assert data_path.read_text(encoding="utf-8").startswith("{\n  ")


def test_put_malformed_json_is_rejected(client, data_path):
    res = client.put("/api/data", data="{not json", content_type="application/json")
    assert res.status_code == 400
    assert res.get_json() == {"error": "Invalid JSON"}
    assert not data_path.exists()


def test_put_empty_body_stores_empty_object(client):
    res = client.put("/api/data", data="")
    assert res.status_code == 200
    assert client.get("/api/data").get_json() == {}


def test_cors_headers_on_every_response(client):
    for res in (client.get("/api/data"), client.get("/nope")):
        assert res.headers["Access-Control-Allow-Origin"] == "*"
        assert res.headers["Access-Control-Allow-Methods"] == "GET,POST,PUT,DELETE,OPTIONS"
        assert res.headers["Access-Control-Allow-Headers"] == "Content-Type"


def test_options_preflight_any_path(client):
    for path in ("/api/data", "/anything/else"):
        res = client.options(path)
        assert res.status_code == 204
        assert res.data == b""
        assert res.headers["Access-Control-Allow-Origin"] == "*"


def test_unknown_route_and_method_return_json_404(client):
    res = client.get("/missing")
    assert res.status_code == 404
    assert res.get_json() == {"error": "Not found"}
    res = client.delete("/api/data")
    assert res.status_code == 404
    assert res.get_json() == {"error": "Not found"}


def test_index_renders_board(client):
    _put(client, make_document(make_task(id="a", title="Buy <milk>")))
    res = client.get("/")
    assert res.status_code == 200
    html = res.get_data(as_text=True)
    assert "Buy &lt;milk&gt;" in html
    assert "data-dropzone='todo'" in html


def test_index_opens_detail_panel_from_query(client):
    _put(client, make_document(make_task(id="a", title="Dentist")))
    html = client.get("/?task=a").get_data(as_text=True)
    assert "id='detail-panel'" in html
    assert "/detail.html?id=a" in html


def test_detail_page_renders_task(client):
    _put(client, make_document(make_task(id="a", title="Dentist", priority="high")))
    res = client.get("/detail.html?id=a")
    assert res.status_code == 200
    html = res.get_data(as_text=True)
    assert "value='Dentist'" in html
    assert "<option value='high' selected>" in html


def test_detail_page_redirects_for_missing_or_unknown_id(client):
    _put(client, make_document(make_task(id="a")))
    for url in ("/detail.html", "/detail.html?id=zzz"):
        res = client.get(url)
        assert res.status_code == 302
        assert res.headers["Location"].endswith("/")


def test_parse_month():
    assert parse_month("2024-02").month == 2
    assert parse_month("2024") is None
    assert parse_month("2024-13") is None
    assert parse_month(None) is None


def test_apply_query_sets_state_and_navigates(make_board):
    board = make_board(make_document(make_task(id="a")))
    apply_query(board, {"view": "calendar", "mode": "week", "date": "2024-06-10", "q": " milk ", "nav": "next"})
    assert board.state.view == "calendar"
    assert board.state.calendar_mode == "week"
    assert board.state.selected_date == "2024-06-17"
    assert board.state.search == "milk"


def test_apply_query_ignores_bad_values(make_board):
    board = make_board()
    apply_query(board, {"view": "kanban", "mode": "year", "date": "June", "month": "x", "task": "missing"})
    assert board.state.view == "board"
    assert board.state.calendar_mode == "month"
    assert board.state.selected_date is None
    assert board.state.current_month == TODAY.replace(day=1)
    assert not board.detail.is_open


# Page forms

def _tasks(client):
    return client.get("/api/data").get_json()["tasks"]


def test_board_page_carries_forms_and_script(client):
    html = client.get("/").get_data(as_text=True)
    assert "id='quick-add' method='post'" in html
    assert "name='action' value='quick_add'" in html
    assert "id='move-form'" in html
    assert "<script>" in html


def test_quick_add_through_page(client):
    res = client.post("/?view=board&mode=month", data={"action": "quick_add", "title": "  Buy milk "})
    assert res.status_code == 302
    location = res.headers["Location"]
    assert "view=board" in location
    assert [(t["title"], t["columnId"], t["priority"], t["dueDate"]) for t in _tasks(client)] == [
        ("Buy milk", "todo", "medium", "")
    ]
    assert "Buy milk" in client.get(location).get_data(as_text=True)


def test_quick_add_on_picked_slot(client):
    html = client.get("/?view=calendar&mode=week&slot=2024-06-12&hour=14").get_data(as_text=True)
    assert "Adding to todo • 2024-06-12 14:00" in html
    assert "date=2024-06-12&amp;time=14%3A00" in html

    client.post("/?view=calendar&mode=week&date=2024-06-12&time=14:00",
                data={"action": "quick_add", "title": "Review"})
    task = _tasks(client)[0]
    assert (task["dueDate"], task["dueTime"]) == ("2024-06-12", "14:00")


def test_blank_quick_add_creates_nothing(client):
    assert client.post("/", data={"action": "quick_add", "title": "   "}).status_code == 302
    assert _tasks(client) == []


def test_save_and_delete_through_panel_form(client):
    _put(client, make_document(make_task(id="a"), make_task(id="b", title="Other")))
    client.post("/?task=a", data={
        "action": "save", "id": "a", "title": "Dentist", "description": " at 3 ",
        "dueDate": "2024-06-11", "dueTime": "", "priority": "high", "columnId": "done",
    })
    task = _tasks(client)[0]
    assert (task["title"], task["description"], task["priority"], task["columnId"]) == (
        "Dentist", "at 3", "high", "done")
    assert task["dueDate"] == "2024-06-11"

    client.post("/", data={"action": "delete", "id": "a"})
    assert [t["id"] for t in _tasks(client)] == ["b"]


def test_move_through_hidden_form(client):
    _put(client, make_document(make_task(id="a")))
    client.post("/", data={"action": "move", "id": "a", "columnId": "doing"})
    assert _tasks(client)[0]["columnId"] == "doing"

    client.post("/", data={"action": "move", "id": "a", "dueDate": "2024-06-11", "hour": "09"})
    task = _tasks(client)[0]
    assert (task["dueDate"], task["dueTime"]) == ("2024-06-11", "09:00")

    client.post("/", data={"action": "move", "id": "a", "columnId": "archive"})
    assert _tasks(client)[0]["columnId"] == "doing"


def test_unknown_page_action_is_rejected(client):
    res = client.post("/", data={"action": "explode"})
    assert res.status_code == 400
    assert res.get_json() == {"error": "Unknown action: explode"}


def test_detail_page_form_saves_and_deletes(client):
    _put(client, make_document(make_task(id="a"), make_task(id="b")))
    html = client.get("/detail.html?id=a").get_data(as_text=True)
    assert "method='post'" in html

    res = client.post("/detail.html?id=a", data={"action": "save", "title": "Renamed", "priority": "low"})
    assert res.status_code == 302
    assert res.headers["Location"].endswith("/")
    task = _tasks(client)[0]
    assert (task["title"], task["priority"]) == ("Renamed", "low")

    client.post("/detail.html?id=b", data={"action": "delete"})
    assert [t["id"] for t in _tasks(client)] == ["a"]


def test_palette_from_query(client):
    html = client.get("/?palette=1").get_data(as_text=True)
    assert "id='command-overlay'" in html
    assert "data-command-index='7'" in html

    html = client.get("/?palette=1&cq=week&run=1").get_data(as_text=True)
    assert "id='command-overlay'" not in html
    assert "calendar-grid week-grid" in html

    html = client.get("/?command=Go+to+Calendar").get_data(as_text=True)
    assert "id='board-view' class='board hidden'" in html


def test_navigation_at_last_month_and_day(client):
    res = client.get("/?view=calendar&month=9999-12&nav=next")
    assert res.status_code == 200
    assert "December 9999" in res.get_data(as_text=True)
    assert client.get("/?view=calendar&mode=day&date=9999-12-31&nav=next").status_code == 200
    assert client.get("/?view=calendar&mode=week&date=0001-01-01&nav=prev").status_code == 200
