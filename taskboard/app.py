"""Top-level controllers for the two pages.

BoardApp owns the document and the UI state for the board/calendar page and
hands both to the renderers and interaction controllers. DetailPage is the
standalone single-task editor; it loads its own copy of the document through
the same store and model code.
"""
from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Callable, List, Optional

from . import markup
from .controllers import (CommandPalette, DetailPanel, DragAndDrop, HoverIntent, KeyboardShortcuts,
                          QuickAdd, TYPING_TARGETS)
from .model import Document, Task, TaskForm
from .views import CALENDAR_MODES, BoardView, CalendarView, board_view, calendar_view, parse_iso_date

VIEWS = ("board", "calendar")

log = logging.getLogger(__name__)


@dataclass
class UIState:
    view: str = "board"
    calendar_mode: str = "month"
    current_month: date = field(default_factory=lambda: date.today().replace(day=1))
    selected_date: Optional[str] = None
    selected_time: str = ""
    quick_add_column: str = "todo"
    search: str = ""
    active_task_id: Optional[str] = None
    focus: Optional[str] = None
    dragging: bool = False


@dataclass
class Frame:
    """One full render of the board page."""
    state: UIState
    board: BoardView
    calendar: CalendarView
    quick_add_meta: str
    quick_add_text: str = ""
    detail: Optional[TaskForm] = None
    detail_task_id: Optional[str] = None
    palette: Optional[List[str]] = None
    palette_text: str = ""
    columns: List = field(default_factory=list)


def shift_month(first_of_month: date, delta: int) -> date:
    """Move by whole months, pinned to the range date supports."""
    index = first_of_month.year * 12 + first_of_month.month - 1 + delta
    index = min(max(index, date.min.year * 12), date.max.year * 12 + 11)
    return date(index // 12, index % 12 + 1, 1)


class BoardApp:
    def __init__(self, store, *, executor: ThreadPoolExecutor | None = None,
                 timer_factory=threading.Timer, today: Callable[[], date] = date.today,
                 navigate: Callable[[str], None] | None = None):
        self.store = store
        self.today = today
        self.document = Document()
        self.state = UIState(current_month=today().replace(day=1))
        self.location = "/"
        self.frame: Optional[Frame] = None
        self.renders = 0
        self.pending: List[Future] = []
        self.events: queue.SimpleQueue = queue.SimpleQueue()
        self._executor = executor
        self._navigate = navigate

        self.drag = DragAndDrop(self)
        self.hover = HoverIntent(self, timer_factory=timer_factory)
        self.detail = DetailPanel(self)
        self.quick_add = QuickAdd(self)
        self.palette = CommandPalette(self)
        self.keys = KeyboardShortcuts(self)

    @property
    def executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="taskboard-save")
        return self._executor

    # ── loading / persistence ──
    def load(self) -> Frame:
        self.document = Document.from_dict(self.store.fetch())
        log.debug(f"Loaded {len(self.document.columns)} columns, {len(self.document.tasks)} tasks")
        return self.render()

    def persist(self) -> Future:
        """Send the whole document as it is right now. Saves are never cancelled or ordered."""
        payload = self.document.to_dict()
        future = self.executor.submit(self._save, payload)
        self.pending = [f for f in self.pending if not f.done()]
        self.pending.append(future)
        return future

    def _save(self, payload):
        try:
            return self.store.replace(payload)
        except Exception as e:
            log.error(f"Saving document failed: {e}")
            raise

    def commit(self) -> Future:
        future = self.persist()
        self.render()
        return future

    def flush(self, timeout: float | None = None) -> List[Future]:
        """Wait for in-flight saves; returns the futures that were waited on."""
        futures, self.pending = self.pending, []
        wait(futures, timeout=timeout)
        return futures

    # ── events from other threads ──
    def post(self, callback: Callable, *args) -> None:
        """Queue a callback for the owning thread; safe to call from timer threads."""
        self.events.put((callback, args))

    def process_events(self) -> int:
        """Run queued callbacks on the calling thread. Owners call this from their own loop."""
        count = 0
        while True:
            try:
                callback, args = self.events.get_nowait()
            except queue.Empty:
                return count
            callback(*args)
            count += 1

    def close(self) -> None:
        self.flush()
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    # ── rendering ──
    def render(self) -> Frame:
        state = self.state
        self.frame = Frame(
            state=replace(state),
            board=board_view(self.document, state.search),
            calendar=calendar_view(self.document, state.calendar_mode, state.current_month,
                                   state.search, state.selected_date, self.today()),
            quick_add_meta=self.quick_add.meta(),
            quick_add_text=self.quick_add.text,
            detail=replace(self.detail.form) if self.detail.form else None,
            detail_task_id=self.detail.task_id,
            palette=[c.label for c in self.palette.filtered()] if self.palette.is_open else None,
            palette_text=self.palette.text,
            columns=list(self.document.columns),
        )
        self.renders += 1
        return self.frame

    def html(self) -> str:
        return markup.render_board_page(self.frame or self.render())

    # ── mutations ──
    def create_task(self, title: str, column_id: str, due_date: str = "", due_time: str = "") -> Optional[Task]:
        task = self.document.create_task(title, column_id, due_date, due_time)
        if task is None:
            return None
        self.commit()
        return task

    def update_task(self, task_id: str, **fields) -> Optional[Task]:
        task = self.document.update_task(task_id, **fields)
        if task is not None:
            self.commit()
        return task

    def move_task(self, task_id: str, column_id: str | None = None,
                  due_date: str | None = None, due_time: str | None = None) -> Optional[Task]:
        task = self.document.move_task(task_id, column_id=column_id, due_date=due_date, due_time=due_time)
        if task is not None:
            self.commit()
        return task

    def delete_task(self, task_id: str) -> bool:
        if not self.document.delete_task(task_id):
            return False
        if self.detail.task_id == task_id:
            self.detail.close()
        self.commit()
        return True

    # ── view state ──
    def set_view(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view}")
        self.state.view = view
        self.render()

    def set_calendar_mode(self, mode: str) -> None:
        if mode not in CALENDAR_MODES:
            raise ValueError(f"Unknown calendar mode: {mode}")
        self.state.calendar_mode = mode
        self.render()

    def set_search(self, text: str) -> None:
        self.state.search = (text or "").strip()
        self.render()

    def clear_search(self) -> None:
        self.set_search("")

    def focus(self, target: str | None) -> None:
        if target is not None and target not in TYPING_TARGETS:
            raise ValueError(f"Unknown focus target: {target}")
        self.state.focus = target
        self.render()

    def blur(self) -> None:
        self.focus(None)

    def navigate(self, url: str) -> None:
        self.location = url
        if self._navigate is not None:
            self._navigate(url)

    # ── calendar navigation ──
    def _anchor(self) -> date:
        return parse_iso_date(self.state.selected_date) or self.today()

    def calendar_prev(self) -> None:
        self._step(-1)

    def calendar_next(self) -> None:
        self._step(1)

    def _step(self, direction: int) -> None:
        state = self.state
        if state.calendar_mode == "month":
            state.current_month = shift_month(state.current_month, direction)
        else:
            days = 7 if state.calendar_mode == "week" else 1
            try:
                state.selected_date = (self._anchor() + timedelta(days=days * direction)).isoformat()
            except OverflowError:
                log.debug(f"Calendar is already at the edge: {state.selected_date}")
        self.render()

    def calendar_today(self) -> None:
        today = self.today()
        self.state.current_month = today.replace(day=1)
        self.state.selected_date = today.isoformat()
        self.state.selected_time = ""
        self.render()

    def select_day(self, iso_date: str) -> None:
        """Clicking a cell body selects its date."""
        if parse_iso_date(iso_date) is None:
            return
        self.state.selected_time = ""
        self.state.selected_date = iso_date
        self.render()

    def pick_slot(self, iso_date: str, hour: str = "") -> None:
        """Clicking a cell's "+" targets quick add at that date and hour."""
        if parse_iso_date(iso_date) is None:
            return
        self.state.selected_time = f"{hour}:00" if hour else ""
        self.state.selected_date = iso_date
        self.focus("quick_add")

    def show_month(self, year: int, month: int) -> None:
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month: {month}")
        self.state.current_month = date(year, month, 1)
        self.render()

    def month_key(self) -> str:
        m = self.state.current_month
        return f"{m.year:04d}-{m.month:02d}"


class DetailPage:
    """Standalone detail page: /detail.html?id=<taskId>."""

    def __init__(self, store, task_id: str | None, navigate: Callable[[str], None] | None = None):
        self.store = store
        self.task_id = task_id
        self.document = Document()
        self.form: Optional[TaskForm] = None
        self.location: Optional[str] = None
        self._navigate = navigate

    def navigate(self, url: str) -> None:
        self.location = url
        if self._navigate is not None:
            self._navigate(url)

    def load(self) -> Optional[Task]:
        """Load the document and the task; redirect to the board when the id cannot be resolved."""
        if not self.task_id:
            self.navigate("/")
            return None
        self.document = Document.from_dict(self.store.fetch())
        task = self.document.find(self.task_id)
        if task is None:
            log.info(f"Task {self.task_id} not found, redirecting to board")
            self.navigate("/")
            return None
        self.form = TaskForm.from_task(task, self.document)
        return task

    def save(self, **fields) -> Optional[Task]:
        if self.form is None:
            return None
        for name, value in fields.items():
            if not hasattr(self.form, name):
                raise TypeError(f"Unknown form field: {name}")
            setattr(self.form, name, value)
        task = self.form.apply(self.document, self.task_id)
        if task is None:
            return None
        self.store.replace(self.document.to_dict())
        self.navigate("/")
        return task

    def delete(self) -> None:
        self.document.delete_task(self.task_id)
        self.store.replace(self.document.to_dict())
        self.navigate("/")

    def back(self) -> None:
        self.navigate("/")

    def html(self) -> str:
        return markup.render_detail_page(self)
