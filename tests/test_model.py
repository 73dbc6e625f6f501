import pytest

from taskboard.model import (Document, TaskForm, creation_order, parse_timestamp, priority_class,
                             task_from_dict, task_to_dict, utc_timestamp)

from .helpers import make_document, make_task


def test_from_dict_fills_missing_fields():
    doc = Document.from_dict({"columns": [{"id": "todo", "title": "Todo"}],
                              "tasks": [{"id": "a", "title": "Bare"}]})
    task = doc.tasks[0]
    assert task.description == ""
    assert task.due_date == ""
    assert task.due_time == ""
    assert task.priority == "none"
    assert task.column_id == ""


def test_from_dict_tolerates_empty_payload():
    doc = Document.from_dict({})
    assert doc.columns == []
    assert doc.tasks == []


def test_task_dict_keeps_unknown_keys():
    raw = make_task(tags=["home"])
    assert task_to_dict(task_from_dict(raw)) == raw


def test_document_to_dict_matches_loaded_document():
    raw = make_document(make_task(id="a"), make_task(id="b", dueDate="2024-06-10", dueTime="09:30"))
    assert Document.from_dict(raw).to_dict() == raw


def test_visible_is_case_insensitive_on_title_and_description():
    doc = Document.from_dict(make_document(
        make_task(id="a", title="Buy MILK"),
        make_task(id="b", title="Call", description="about the milkman"),
        make_task(id="c", title="Other"),
    ))
    assert [t.id for t in doc.visible("milk")] == ["a", "b"]
    assert len(doc.visible("")) == 3
    assert doc.visible("nothing matches") == []
    assert len(doc.tasks) == 3


def test_create_task_defaults_and_front_insertion():
    doc = Document.from_dict(make_document(make_task(id="old")))
    task = doc.create_task("  Buy milk ", "todo")
    assert doc.tasks[0] is task
    assert task.title == "Buy milk"
    assert task.priority == "medium"
    assert task.due_date == ""
    assert task.due_time == ""
    assert task.description == ""
    assert parse_timestamp(task.created_at) is not None


def test_create_task_rejects_blank_title():
    doc = Document.default()
    assert doc.create_task("   ", "todo") is None
    assert doc.tasks == []


def test_create_task_ids_are_unique():
    doc = Document.default()
    ids = {doc.create_task(f"task {i}", "todo").id for i in range(200)}
    assert len(ids) == 200


def test_update_task_keeps_title_when_blank():
    doc = Document.from_dict(make_document(make_task(id="a", title="Original")))
    doc.update_task("a", title="  ")
    assert doc.find("a").title == "Original"
    doc.update_task("a", title="New")
    assert doc.find("a").title == "New"


def test_update_task_overwrites_other_fields_with_empty():
    doc = Document.from_dict(make_document(make_task(id="a", dueDate="2024-06-10", description="x")))
    doc.update_task("a", due_date="", description="")
    task = doc.find("a")
    assert task.due_date == ""
    assert task.description == ""


def test_update_task_missing_id_is_noop():
    doc = Document.from_dict(make_document(make_task(id="a")))
    assert doc.update_task("missing", title="x") is None
    assert doc.find("a").title == "Write report"


def test_update_task_rejects_unknown_field():
    doc = Document.from_dict(make_document(make_task(id="a")))
    with pytest.raises(TypeError):
        doc.update_task("a", colour="red")


def test_move_task_to_column_and_slot():
    doc = Document.from_dict(make_document(make_task(id="a", dueTime="10:00")))
    doc.move_task("a", column_id="done")
    assert doc.find("a").column_id == "done"
    doc.move_task("a", due_date="2024-06-12")
    task = doc.find("a")
    assert (task.due_date, task.due_time) == ("2024-06-12", "")
    assert doc.move_task("missing", column_id="done") is None


def test_delete_task():
    doc = Document.from_dict(make_document(make_task(id="a"), make_task(id="b")))
    assert doc.delete_task("a") is True
    assert [t.id for t in doc.tasks] == ["b"]
    assert doc.delete_task("a") is False


def test_creation_order_puts_unparsable_first():
    doc = Document.from_dict(make_document(
        make_task(id="late", createdAt="2024-06-03T00:00:00.000Z"),
        make_task(id="early", createdAt="2024-06-01T00:00:00.000Z"),
        make_task(id="broken", createdAt="yesterday"),
    ))
    assert [t.id for t in creation_order(doc.tasks)] == ["broken", "early", "late"]


def test_utc_timestamp_format():
    stamp = utc_timestamp()
    assert stamp.endswith("Z")
    assert len(stamp.split(".")[-1]) == 4  # three millisecond digits plus Z


@pytest.mark.parametrize("priority,expected", [
    ("high", "priority-high"), ("medium", "priority-medium"),
    ("low", "priority-low"), ("none", "priority-none"), (None, "priority-none"),
])
def test_priority_class(priority, expected):
    assert priority_class(priority) == expected


def test_task_form_falls_back_to_first_column():
    doc = Document.from_dict(make_document(make_task(id="a", columnId="", priority="")))
    form = TaskForm.from_task(doc.find("a"), doc)
    assert form.column_id == "backlog"
    assert form.priority == "none"


def test_task_form_apply_trims_and_overwrites():
    doc = Document.from_dict(make_document(make_task(id="a", title="Keep", dueDate="2024-06-10")))
    form = TaskForm.from_task(doc.find("a"), doc)
    form.title = "   "
    form.description = "  notes  "
    form.due_date = ""
    form.priority = "high"
    task = form.apply(doc, "a")
    assert task.title == "Keep"
    assert task.description == "notes"
    assert task.due_date == ""
    assert task.priority == "high"


def test_update_task_none_restores_field_default():
    doc = Document.from_dict(make_document(make_task(id="a", priority="high", description="x")))
    doc.update_task("a", priority=None, description=None)
    task = doc.find("a")
    assert task.priority == "none"
    assert task.description == ""
