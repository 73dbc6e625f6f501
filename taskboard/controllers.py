"""Interaction state machines.

Every controller holds a reference to the owning BoardApp and works through
its document, UI state, commit() (persist + re-render) and render().
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import quote

from .model import Task, TaskForm
from .views import HOURS, hour_label, parse_iso_date

HOVER_DELAY = 1.0  # seconds
TYPING_TARGETS = frozenset({"search", "quick_add", "command", "detail"})

log = logging.getLogger(__name__)


# Drag-and-drop
# ────────────────────────────────────────────────────────────────────────────────
class DragAndDrop:
    """idle -> dragging -> idle. Cards can be dropped on board columns or calendar slots."""

    def __init__(self, app):
        self.app = app
        self.task_id: Optional[str] = None

    @property
    def active(self) -> bool:
        return self.task_id is not None

    def start(self, task_id: str) -> None:
        self.task_id = task_id
        self.app.state.dragging = True

    def end(self) -> None:
        self.task_id = None
        self.app.state.dragging = False

    def drop_on_column(self, column_id: str):
        task_id = self.task_id
        self.end()
        if task_id is None or column_id not in self.app.document.column_ids():
            return None
        return self.app.move_task(task_id, column_id=column_id)

    def drop_on_slot(self, iso_date: str, hour: str = ""):
        """Reschedule to a calendar cell; an empty hour means the all-day row or a month cell."""
        task_id = self.task_id
        self.end()
        if task_id is None or parse_iso_date(iso_date) is None:
            return None
        if hour and hour not in {hour_label(h) for h in HOURS}:
            return None
        return self.app.move_task(task_id, due_date=iso_date, due_time=f"{hour}:00" if hour else "")

    def drop_outside(self) -> None:
        self.end()


# Hover intent
# ────────────────────────────────────────────────────────────────────────────────
class HoverIntent:
    def __init__(self, app, delay: float = HOVER_DELAY, timer_factory=threading.Timer):
        self.app = app
        self.delay = delay
        self.timer_factory = timer_factory
        self.target_id: Optional[str] = None
        self._timer = None

    def enter(self, task_id: str) -> None:
        if self.app.detail.is_open or self.app.drag.active:
            return
        # A pending timer for another card is left alone; it re-checks the target on expiry.
        # Expiry is handed back to the owner's thread through app.post().
        self.target_id = task_id
        timer = self.timer_factory(self.delay, self.app.post, args=(self._expire, task_id))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def leave(self, task_id: str) -> None:
        self.target_id = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _expire(self, task_id: str) -> None:
        if self.target_id != task_id:
            return
        self.target_id = None
        self._timer = None
        self.app.detail.open(task_id)


# Detail panel (modal)
# ────────────────────────────────────────────────────────────────────────────────
class DetailPanel:
    def __init__(self, app):
        self.app = app
        self.task_id: Optional[str] = None
        self.form: Optional[TaskForm] = None

    @property
    def is_open(self) -> bool:
        return self.task_id is not None

    def open(self, task_id: str) -> bool:
        task = self.app.document.find(task_id)
        if task is None:
            return False
        self.task_id = task_id
        self.form = TaskForm.from_task(task, self.app.document)
        self.app.state.active_task_id = task_id
        self.app.render()
        return True

    def edit(self, **fields) -> None:
        if self.form is None:
            return
        for name, value in fields.items():
            if not hasattr(self.form, name):
                raise TypeError(f"Unknown form field: {name}")
            setattr(self.form, name, value)

    def _reset(self) -> None:
        self.task_id = None
        self.form = None
        self.app.state.active_task_id = None
        if self.app.state.focus == "detail":
            self.app.state.focus = None

    def close(self) -> None:
        """Discard uncommitted edits."""
        self._reset()
        self.app.render()

    def save(self):
        if not self.is_open:
            return None
        task = self.form.apply(self.app.document, self.task_id)
        if task is None:
            return None
        self._reset()
        return self.app.commit()

    def delete(self):
        if not self.is_open:
            return None
        task_id = self.task_id
        self._reset()
        if not self.app.document.delete_task(task_id):
            self.app.render()
            return None
        return self.app.commit()

    def open_full_page(self) -> Optional[str]:
        if not self.is_open:
            return None
        url = detail_url(self.task_id)
        self.close()
        self.app.navigate(url)
        return url


def detail_url(task_id: str) -> str:
    return f"/detail.html?id={quote(task_id, safe='')}"


# Quick add
# ────────────────────────────────────────────────────────────────────────────────
class QuickAdd:
    def __init__(self, app):
        self.app = app
        self.text = ""

    def type(self, text: str) -> None:
        self.text = text

    def key(self, key: str, mod: bool = False) -> bool:
        if key == "Enter" and mod:
            self.submit()
            return True
        return False

    def submit(self) -> Optional[Task]:
        title = self.text.strip()
        if not title:
            return None
        state = self.app.state
        self.text = ""
        return self.app.create_task(title, state.quick_add_column, state.selected_date or "", state.selected_time)

    def meta(self) -> str:
        state = self.app.state
        if state.selected_date:
            when = f"{state.selected_date} {state.selected_time}" if state.selected_time else state.selected_date
        else:
            when = "no date"
        return f"Adding to {state.quick_add_column} • {when}"


# Command palette
# ────────────────────────────────────────────────────────────────────────────────
@dataclass
class Command:
    label: str
    action: Callable[[], None]


class CommandPalette:
    def __init__(self, app):
        self.app = app
        self.is_open = False
        self.text = ""

    def commands(self) -> List[Command]:
        app = self.app
        return [
            Command("New task", lambda: app.focus("quick_add")),
            Command("Go to Board", lambda: app.set_view("board")),
            Command("Go to Calendar", lambda: app.set_view("calendar")),
            Command("Calendar: Day view", lambda: app.set_calendar_mode("day")),
            Command("Calendar: Week view", lambda: app.set_calendar_mode("week")),
            Command("Calendar: Month view", lambda: app.set_calendar_mode("month")),
            Command("Focus search", lambda: app.focus("search")),
            Command("Today", app.calendar_today),
        ]

    def filtered(self) -> List[Command]:
        q = self.text.strip().lower()
        return [c for c in self.commands() if q in c.label.lower()]

    def open(self) -> None:
        self.is_open = True
        self.text = ""
        self.app.focus("command")

    def close(self) -> None:
        self.is_open = False
        if self.app.state.focus == "command":
            self.app.state.focus = None
        self.app.render()

    def type(self, text: str) -> None:
        self.text = text
        self.app.render()

    def execute(self, command: Command) -> None:
        log.debug(f"Running command {command.label!r}")
        command.action()
        self.close()

    def submit(self) -> Optional[Command]:
        """Enter runs the first matching command."""
        matching = self.filtered()
        if not matching:
            return None
        self.execute(matching[0])
        return matching[0]

    def run(self, label: str) -> Optional[Command]:
        """Execute the command with exactly this label (a click on a list entry)."""
        command = next((c for c in self.commands() if c.label == label), None)
        if command is not None:
            self.execute(command)
        return command


# Global keyboard shortcuts
# ────────────────────────────────────────────────────────────────────────────────
class KeyboardShortcuts:
    def __init__(self, app):
        self.app = app

    def handle(self, key: str, mod: bool = False) -> bool:
        """Dispatch one key press; returns True when the key was consumed."""
        app = self.app
        if key == "Escape":
            return self._escape()

        focus = app.state.focus
        if focus in TYPING_TARGETS:
            if focus == "quick_add":
                return app.quick_add.key(key, mod)
            if focus == "command" and key == "Enter":
                app.palette.submit()
                return True
            return False

        if mod and key.lower() == "k":
            app.palette.open()
            return True
        if app.palette.is_open or mod:
            return False
        if key == "/":
            app.focus("search")
            return True
        if key.lower() == "n":
            app.focus("quick_add")
            return True
        return False

    def _escape(self) -> bool:
        app = self.app
        if app.palette.is_open:
            app.palette.close()
            return True
        if app.detail.is_open:
            app.detail.close()
            return True
        if app.state.focus == "search":
            app.clear_search()
            app.blur()
            return True
        return False
