"""In-memory document model: columns, tasks and the mutations on them.

The whole document is the unit of persistence, so every mutation here only
touches memory; callers decide when to push the result to a store.
"""
from __future__ import annotations

import uuid
from dataclasses import MISSING, dataclass, field, fields as dataclass_fields
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

PRIORITIES = ("none", "low", "medium", "high")
DEFAULT_PRIORITY = "medium"

DEFAULT_COLUMNS = [
    {"id": "backlog", "title": "Backlog"},
    {"id": "todo", "title": "Todo"},
    {"id": "doing", "title": "In Progress"},
    {"id": "done", "title": "Done"},
]

_TASK_KEYS = ("id", "title", "description", "columnId", "dueDate", "dueTime", "priority", "createdAt")


@dataclass
class Column:
    id: str
    title: str


@dataclass
class Task:
    id: str
    title: str
    description: str = ""
    column_id: str = ""
    due_date: str = ""
    due_time: str = ""
    priority: str = "none"
    created_at: str = ""
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)


def field_default(name: str) -> Any:
    """Default of a Task field; "none" for priority, "" for the text fields."""
    f = next(f for f in dataclass_fields(Task) if f.name == name)
    return "" if f.default is MISSING else f.default


def new_id() -> str:
    return str(uuid.uuid4())


def utc_timestamp() -> str:
    """Current time as ISO-8601 UTC with millisecond precision, e.g. 2024-06-10T09:30:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def priority_class(priority: str | None) -> str:
    if priority in ("high", "medium", "low"):
        return f"priority-{priority}"
    return "priority-none"


# Serialization helpers
# ────────────────────────────────────────────────────────────────────────────────
def column_from_dict(raw: Dict[str, Any]) -> Column:
    return Column(id=str(raw.get("id", "")), title=str(raw.get("title", "")))


def column_to_dict(col: Column) -> Dict:
    return {"id": col.id, "title": col.title}


def task_from_dict(raw: Dict[str, Any]) -> Task:
    return Task(
        id=str(raw.get("id", "")),
        title=str(raw.get("title") or ""),
        description=raw.get("description") or "",
        column_id=raw.get("columnId") or "",
        due_date=raw.get("dueDate") or "",
        due_time=raw.get("dueTime") or "",
        priority=raw.get("priority") or "none",
        created_at=raw.get("createdAt") or "",
        extra={k: v for k, v in raw.items() if k not in _TASK_KEYS},
    )


def task_to_dict(task: Task) -> Dict:
    data = dict(task.extra)
    data.update({
        "id": task.id, "title": task.title, "description": task.description,
        "columnId": task.column_id, "dueDate": task.due_date, "dueTime": task.due_time,
        "priority": task.priority, "createdAt": task.created_at,
    })
    return data


# Queries
# ────────────────────────────────────────────────────────────────────────────────
def matches(task: Task, search_text: str) -> bool:
    """Case-insensitive substring match on title or description; empty search matches all."""
    if not search_text:
        return True
    q = search_text.lower()
    return q in task.title.lower() or q in (task.description or "").lower()


def visible(tasks: List[Task], search_text: str) -> Iterator[Task]:
    return (t for t in tasks if matches(t, search_text))


def creation_order(tasks) -> List[Task]:
    """Tasks sorted ascending by createdAt; unparsable timestamps sort first."""
    floor = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(tasks, key=lambda t: parse_timestamp(t.created_at) or floor)


def in_column(tasks, column_id: str) -> List[Task]:
    return [t for t in tasks if t.column_id == column_id]


def on_date(tasks, iso_date: str) -> List[Task]:
    return [t for t in tasks if t.due_date == iso_date]


# Document
# ────────────────────────────────────────────────────────────────────────────────
class Document:
    def __init__(self, columns: Optional[List[Column]] = None, tasks: Optional[List[Task]] = None):
        self.columns: List[Column] = list(columns or [])
        self.tasks: List[Task] = list(tasks or [])

    @classmethod
    def from_dict(cls, raw: Dict[str, Any] | None) -> "Document":
        raw = raw or {}
        return cls(
            columns=[column_from_dict(c) for c in raw.get("columns") or []],
            tasks=[task_from_dict(t) for t in raw.get("tasks") or []],
        )

    @classmethod
    def default(cls) -> "Document":
        return cls.from_dict({"columns": DEFAULT_COLUMNS, "tasks": []})

    def to_dict(self) -> Dict:
        return {
            "columns": [column_to_dict(c) for c in self.columns],
            "tasks": [task_to_dict(t) for t in self.tasks],
        }

    def find(self, task_id: str | None) -> Optional[Task]:
        if not task_id:
            return None
        return next((t for t in self.tasks if t.id == task_id), None)

    def column_ids(self) -> List[str]:
        return [c.id for c in self.columns]

    def first_column_id(self) -> str:
        return self.columns[0].id if self.columns else ""

    def visible(self, search_text: str) -> List[Task]:
        return list(visible(self.tasks, search_text))

    # ── mutations ──
    def create_task(self, title: str, column_id: str, due_date: str = "", due_time: str = "") -> Optional[Task]:
        """Insert a new task at the front of the sequence. Returns None for a blank title."""
        title = (title or "").strip()
        if not title:
            return None
        task = Task(
            id=new_id(),
            title=title,
            description="",
            column_id=column_id,
            due_date=due_date or "",
            due_time=due_time or "",
            priority=DEFAULT_PRIORITY,
            created_at=utc_timestamp(),
        )
        self.tasks.insert(0, task)
        return task

    def update_task(self, task_id: str, **fields) -> Optional[Task]:
        task = self.find(task_id)
        if task is None:
            return None
        if "title" in fields:
            task.title = (fields.pop("title") or "").strip() or task.title
        for name, value in fields.items():
            if not hasattr(task, name) or name in ("id", "created_at", "extra"):
                raise TypeError(f"Unknown task field: {name}")
            setattr(task, name, value if value is not None else field_default(name))
        return task

    def move_task(self, task_id: str, column_id: str | None = None,
                  due_date: str | None = None, due_time: str | None = None) -> Optional[Task]:
        """Move to a column, or reschedule to a date/time slot. Missing tasks are ignored."""
        fields = {}
        if column_id is not None:
            fields["column_id"] = column_id
        if due_date is not None:
            fields["due_date"] = due_date
            fields["due_time"] = due_time or ""
        return self.update_task(task_id, **fields)

    def delete_task(self, task_id: str) -> bool:
        before = len(self.tasks)
        self.tasks = [t for t in self.tasks if t.id != task_id]
        return len(self.tasks) != before


# Edit form shared by the detail panel and the detail page
# ────────────────────────────────────────────────────────────────────────────────
@dataclass
class TaskForm:
    title: str = ""
    description: str = ""
    due_date: str = ""
    due_time: str = ""
    priority: str = "none"
    column_id: str = ""

    @classmethod
    def from_task(cls, task: Task, document: Document) -> "TaskForm":
        return cls(
            title=task.title,
            description=task.description or "",
            due_date=task.due_date or "",
            due_time=task.due_time or "",
            priority=task.priority or "none",
            column_id=task.column_id or document.first_column_id(),
        )

    def apply(self, document: Document, task_id: str) -> Optional[Task]:
        return document.update_task(
            task_id,
            title=self.title,
            description=(self.description or "").strip(),
            due_date=self.due_date,
            due_time=self.due_time,
            priority=self.priority,
            column_id=self.column_id,
        )
