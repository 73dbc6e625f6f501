"""Board and calendar projections.

Each function takes the document plus UI state and returns a fresh tree of
plain dataclasses. Nothing is cached or patched: callers rebuild the whole
tree after every state change.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from .model import Document, Task, creation_order, in_column, on_date, priority_class

HOURS = list(range(8, 21))  # 08:00 - 20:00 inclusive
WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
MONTH_NAMES = ["January", "February", "March", "April", "May", "June", "July",
               "August", "September", "October", "November", "December"]
DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

CALENDAR_MODES = ("month", "week", "day")


@dataclass
class CardView:
    task_id: str
    title: str
    priority: str
    priority_class: str
    description: str
    due_label: str


@dataclass
class ColumnSection:
    column_id: str
    title: str
    count: int
    cards: List[CardView] = field(default_factory=list)


@dataclass
class BoardView:
    columns: List[ColumnSection] = field(default_factory=list)


@dataclass
class TaskChip:
    task_id: str
    title: str
    priority_class: str


@dataclass
class MonthCell:
    date: Optional[str] = None
    day: Optional[int] = None
    tasks: List[TaskChip] = field(default_factory=list)
    selected: bool = False
    today: bool = False

    @property
    def muted(self) -> bool:
        return self.date is None


@dataclass
class SlotCell:
    date: str
    hour: str  # "" for the all-day row, otherwise two-digit hour
    tasks: List[TaskChip] = field(default_factory=list)
    selected: bool = False


@dataclass
class TimeRow:
    label: str
    hour: str
    cells: List[SlotCell] = field(default_factory=list)


@dataclass
class CalendarView:
    mode: str
    title: str
    weekdays: List[str] = field(default_factory=list)
    cells: List[MonthCell] = field(default_factory=list)
    rows: List[TimeRow] = field(default_factory=list)
    days: List[str] = field(default_factory=list)


def iso(d: date) -> str:
    return d.isoformat()


def parse_iso_date(value: str | None) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def hour_label(hour: int) -> str:
    return f"{hour:02d}"


def due_label(task: Task) -> str:
    if not task.due_date:
        return "No due"
    return f"{task.due_date} {task.due_time}" if task.due_time else task.due_date


def _chip(task: Task) -> TaskChip:
    return TaskChip(task_id=task.id, title=task.title, priority_class=priority_class(task.priority))


# Board
# ────────────────────────────────────────────────────────────────────────────────
def board_view(document: Document, search: str = "") -> BoardView:
    tasks = document.visible(search)
    sections = []
    for col in document.columns:
        col_tasks = in_column(tasks, col.id)
        cards = [
            CardView(
                task_id=t.id,
                title=t.title,
                priority=t.priority or "none",
                priority_class=priority_class(t.priority),
                description=t.description or "",
                due_label=due_label(t),
            )
            for t in creation_order(col_tasks)
        ]
        sections.append(ColumnSection(column_id=col.id, title=col.title, count=len(col_tasks), cards=cards))
    return BoardView(columns=sections)


# Calendar
# ────────────────────────────────────────────────────────────────────────────────
def month_cell_count(year: int, month: int) -> int:
    start_weekday, days_in_month = _month_geometry(year, month)
    return -(-(start_weekday + days_in_month) // 7) * 7


def _month_geometry(year: int, month: int):
    monday_first, days_in_month = calendar.monthrange(year, month)
    # calendar counts Monday as 0; the grid starts on Sunday
    return (monday_first + 1) % 7, days_in_month


def month_view(document: Document, month: date, search: str = "",
               selected_date: str | None = None, today: date | None = None) -> CalendarView:
    tasks = document.visible(search)
    start_weekday, days_in_month = _month_geometry(month.year, month.month)
    total = month_cell_count(month.year, month.month)
    today_iso = iso(today) if today else None

    cells = []
    for i in range(total):
        day_number = i - start_weekday + 1
        if 0 < day_number <= days_in_month:
            cell_date = iso(date(month.year, month.month, day_number))
            cells.append(MonthCell(
                date=cell_date,
                day=day_number,
                tasks=[_chip(t) for t in on_date(tasks, cell_date)],
                selected=selected_date == cell_date,
                today=today_iso == cell_date,
            ))
        else:
            cells.append(MonthCell())
    title = f"{MONTH_NAMES[month.month - 1]} {month.year}"
    return CalendarView(mode="month", title=title, weekdays=list(WEEKDAYS), cells=cells)


def week_start(anchor: date) -> date:
    """Sunday on or before anchor, kept inside the range date supports."""
    offset = min((anchor.weekday() + 1) % 7, (anchor - date.min).days)
    return min(anchor - timedelta(days=offset), date.max - timedelta(days=6))


def _time_rows(tasks: List[Task], days: List[str], selected_date: str | None) -> List[TimeRow]:
    all_day = TimeRow(label="All day", hour="")
    for d in days:
        all_day.cells.append(SlotCell(
            date=d, hour="",
            tasks=[_chip(t) for t in tasks if t.due_date == d and not t.due_time],
            selected=selected_date == d,
        ))
    rows = [all_day]
    for hour in HOURS:
        hh = hour_label(hour)
        row = TimeRow(label=f"{hh}:00", hour=hh)
        for d in days:
            row.cells.append(SlotCell(
                date=d, hour=hh,
                tasks=[_chip(t) for t in tasks if t.due_date == d and t.due_time.startswith(hh)],
                selected=selected_date == d,
            ))
        rows.append(row)
    return rows


def week_view(document: Document, anchor: date, search: str = "",
              selected_date: str | None = None) -> CalendarView:
    start = week_start(anchor)
    end = start + timedelta(days=6)
    days = [iso(start + timedelta(days=i)) for i in range(7)]
    rows = _time_rows(document.visible(search), days, selected_date)
    return CalendarView(
        mode="week",
        title=f"{iso(start)} - {iso(end)}",
        weekdays=list(WEEKDAYS),
        rows=rows,
        days=days,
    )


def day_view(document: Document, anchor: date, search: str = "",
             selected_date: str | None = None) -> CalendarView:
    days = [iso(anchor)]
    rows = _time_rows(document.visible(search), days, selected_date)
    title = f"{DAY_NAMES[anchor.weekday()]}, {MONTH_NAMES[anchor.month - 1]} {anchor.day}, {anchor.year}"
    return CalendarView(mode="day", title=title, rows=rows, days=days)


def calendar_view(document: Document, mode: str, current_month: date, search: str = "",
                  selected_date: str | None = None, today: date | None = None) -> CalendarView:
    today = today or date.today()
    if mode == "day":
        return day_view(document, parse_iso_date(selected_date) or today, search, selected_date)
    if mode == "week":
        return week_view(document, parse_iso_date(selected_date) or today, search, selected_date)
    return month_view(document, current_month, search, selected_date, today)
