"""HTML for the board/calendar page and the standalone detail page.

Rendering is a pure function of a Frame (or a DetailPage); the whole document
is rebuilt on every call.
"""
from __future__ import annotations

from urllib.parse import urlencode

from jinja2 import Environment
from markupsafe import Markup

from .controllers import detail_url
from .model import PRIORITIES

env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)


def query_for(state, **overrides) -> str:
    """Query string that reproduces the given UI state on the server-rendered page."""
    month = state.current_month
    params = {
        "view": state.view,
        "mode": state.calendar_mode,
        "date": state.selected_date or "",
        "time": state.selected_time,
        "month": f"{month.year:04d}-{month.month:02d}",
        "q": state.search,
    }
    params.update(overrides)
    return "?" + urlencode({k: v for k, v in params.items() if v})


STYLE = r"""
:root{--bg:#f9fafb;--surface:#fff;--text:#111827;--muted:#6b7280;--card-bg:#f3f4f6;--high:#ef4444;--med:#f59e0b;--low:#10b981;--none:#9ca3af;--overlay-bg:rgba(0,0,0,0.5);--border-color:#e5e7eb;--primary:#2563eb;--shadow-sm:0 1px 2px 0 rgba(0,0,0,.05);--shadow-md:0 4px 6px -1px rgba(0,0,0,.1),0 2px 4px -2px rgba(0,0,0,.1);}
html,body{height:100%;margin:0;font-family:Inter,system-ui,sans-serif;background:var(--bg);color:var(--text);font-size:16px;line-height:1.5;}
body{display:flex;flex-direction:column;}
header{display:flex;align-items:center;justify-content:space-between;padding:.75rem 1.5rem;background:var(--surface);box-shadow:var(--shadow-sm);border-bottom:1px solid var(--border-color);gap:1rem;flex-wrap:wrap;}
header h1{font-size:1.25rem;font-weight:600;margin:0;}
a.btn,button{font-family:inherit;border-radius:.375rem;border:1px solid var(--border-color);background:var(--card-bg);color:var(--text);padding:.4rem .8rem;font-size:.875rem;text-decoration:none;cursor:pointer;}
a.btn.active{background:var(--primary);color:#fff;border-color:var(--primary);}
.quick-add{display:flex;gap:.5rem;align-items:center;padding:.75rem 1.5rem;}
.quick-add input{flex:1;padding:.5rem .75rem;border-radius:.375rem;border:1px solid var(--border-color);}
.quick-add .meta{font-size:.75rem;color:var(--muted);}
.hidden{display:none!important;}
.board{display:flex;gap:1rem;padding:1rem;overflow-x:auto;flex:1;min-height:0;}
.column{background:var(--surface);border-radius:.5rem;display:flex;flex-direction:column;min-width:280px;max-width:320px;box-shadow:var(--shadow-md);}
.column header{box-shadow:none;padding:.75rem 1rem;}
.column h3{margin:0;font-size:1rem;}
.count{font-size:.75rem;color:var(--muted);}
.column-drop{display:flex;flex-direction:column;gap:.75rem;padding:.75rem;min-height:4rem;}
.card{background:var(--card-bg);border-radius:.5rem;padding:1rem;box-shadow:var(--shadow-sm);border-left:4px solid var(--none);}
.card.priority-high{border-left-color:var(--high)}
.card.priority-medium{border-left-color:var(--med)}
.card.priority-low{border-left-color:var(--low)}
.card h4{margin:0;font-size:.95rem;}
.card p{font-size:.875rem;margin:.25rem 0;color:var(--muted);}
.card-header,.card-meta{display:flex;justify-content:space-between;gap:.5rem;align-items:center;}
.card-meta{font-size:.75rem;color:var(--muted);}
.badge{font-size:.7rem;padding:.1rem .4rem;border-radius:999px;background:var(--surface);}
#calendar-view{padding:1rem;}
.calendar-header{display:flex;justify-content:space-between;align-items:center;margin-bottom:1rem;padding:.75rem;background:var(--surface);border-radius:.5rem;}
.calendar-nav{display:flex;gap:.5rem;}
.weekday-row,.calendar-grid.month-grid{display:grid;grid-template-columns:repeat(7,1fr);gap:1px;}
.weekday-row span{text-align:center;font-weight:600;font-size:.875rem;color:var(--muted);}
.calendar-grid{background:var(--border-color);border:1px solid var(--border-color);border-radius:.5rem;overflow:hidden;}
.day{background:var(--card-bg);min-height:100px;padding:.5rem;}
.day.muted{background:var(--bg);}
.day.selected,.time-cell.selected{outline:2px solid var(--primary);}
.day.today .day-header span{color:var(--primary);font-weight:700;}
.day-header{display:flex;justify-content:space-between;font-size:.875rem;}
.time-row{display:grid;grid-template-columns:120px repeat(var(--days),1fr);gap:1px;}
.time-label{background:var(--surface);padding:.25rem .5rem;font-size:.75rem;color:var(--muted);}
.time-cell{background:var(--card-bg);min-height:2.5rem;padding:.25rem;}
.day-task{display:block;width:100%;text-align:left;margin:.125rem 0;font-size:.75rem;background:var(--surface);border-left:3px solid var(--none);}
.day-task.priority-high{border-left-color:var(--high)}
.day-task.priority-medium{border-left-color:var(--med)}
.day-task.priority-low{border-left-color:var(--low)}
.overlay{position:fixed;inset:0;background:var(--overlay-bg);display:flex;align-items:center;justify-content:center;}
.panel{background:var(--surface);border-radius:.5rem;padding:1.5rem;min-width:360px;display:flex;flex-direction:column;gap:.5rem;}
.panel input,.panel textarea,.panel select{padding:.5rem;border-radius:.375rem;border:1px solid var(--border-color);font-family:inherit;}
.panel .actions{display:flex;gap:.5rem;justify-content:flex-end;}
#command-list a{display:block;padding:.4rem .6rem;color:var(--text);text-decoration:none;border-radius:.25rem;}
#command-list a:first-child{background:var(--card-bg);}
"""

SCRIPT = r"""
//── Hover intent: resting on a card for a second opens its detail panel
let dragId = null;
let hoverTimer = null;
document.querySelectorAll('.card[data-open-url]').forEach(card => {
  card.addEventListener('mouseenter', () => {
    if (dragId || document.getElementById('detail-overlay')) return;
    clearTimeout(hoverTimer);
    hoverTimer = setTimeout(() => { location.href = card.dataset.openUrl; }, 1000);
  });
  card.addEventListener('mouseleave', () => clearTimeout(hoverTimer));
});

//── Drag-and-drop: a drop fills the hidden move form and posts it
const moveForm = document.getElementById('move-form');
document.querySelectorAll('[draggable][data-task-id]').forEach(el => {
  el.addEventListener('dragstart', () => { dragId = el.dataset.taskId; clearTimeout(hoverTimer); });
  el.addEventListener('dragend', () => { dragId = null; });
});
const dropTo = (fields) => {
  if (!dragId) return;
  moveForm.elements.namedItem('id').value = dragId;
  Object.entries(fields).forEach(([name, value]) => { moveForm.elements[name].value = value; });
  moveForm.submit();
};
const dropTarget = (el, fields) => {
  el.addEventListener('dragover', (e) => e.preventDefault());
  el.addEventListener('drop', (e) => { e.preventDefault(); e.stopPropagation(); dropTo(fields); });
};
document.querySelectorAll('[data-dropzone]').forEach(zone => dropTarget(zone, { columnId: zone.dataset.dropzone }));
document.querySelectorAll('.day[data-date], .time-cell[data-date]').forEach(cell =>
  dropTarget(cell, { dueDate: cell.dataset.date, hour: cell.dataset.hour || '' }));

//── Quick add commits on Ctrl/Cmd+Enter only
const quickAdd = document.getElementById('quick-add-input');
quickAdd.addEventListener('keydown', (e) => {
  if (e.key !== 'Enter') return;
  e.preventDefault();
  if (e.metaKey || e.ctrlKey) quickAdd.form.requestSubmit();
});

//── Keyboard Shortcuts
document.addEventListener('keydown', (e) => {
  const mod = e.metaKey || e.ctrlKey;
  if (e.key === 'Escape') {
    const close = document.getElementById('command-close') || document.getElementById('detail-close');
    if (close) { location.href = close.href; return; }
    if (e.target.id === 'global-search') { e.target.value = ''; e.target.form.submit(); }
    return;
  }
  if (e.target.matches('input, textarea, select')) return;
  if (mod && e.key.toLowerCase() === 'k') {
    e.preventDefault();
    location.href = document.body.dataset.paletteUrl;
    return;
  }
  if (mod || document.getElementById('command-overlay')) return;
  if (e.key === '/') {
    e.preventDefault();
    document.getElementById('global-search').focus();
  } else if (e.key.toLowerCase() === 'n') {
    e.preventDefault();
    quickAdd.focus();
  }
});
"""

_TASK_FIELDS = r"""
<label>Title <input id='{{ prefix }}-title' name='title' value='{{ form.title }}'></label>
<label>Description <textarea id='{{ prefix }}-description' name='description'>{{ form.description }}</textarea></label>
<label>Due date <input type='date' id='{{ prefix }}-due' name='dueDate' value='{{ form.due_date }}'></label>
<label>Due time <input type='time' id='{{ prefix }}-time' name='dueTime' value='{{ form.due_time }}'></label>
<label>Priority <select id='{{ prefix }}-priority' name='priority'>
{% for p in priorities %}
  <option value='{{ p }}'{% if p == form.priority %} selected{% endif %}>{{ p }}</option>
{% endfor %}
</select></label>
<label>Column <select id='{{ prefix }}-column' name='columnId'>
{% for col in columns %}
  <option value='{{ col.id }}'{% if col.id == form.column_id %} selected{% endif %}>{{ col.title }}</option>
{% endfor %}
</select></label>
"""

_TASK_CHIPS = r"""
<div class='day-tasks'>
{% for chip in cell.tasks %}
  <a class='day-task {{ chip.priority_class }}' data-task-id='{{ chip.task_id }}' draggable='true' href='{{ q(state, task=chip.task_id) }}'>{{ chip.title }}</a>
{% endfor %}
</div>
"""

BOARD_TEMPLATE = r"""<!DOCTYPE html><html lang='en'><head>
<meta charset='utf-8'><meta name='viewport' content='width=device-width,initial-scale=1'>
<title>Tasks</title>
<style>{{ style }}</style></head>
<body data-palette-url='{{ q(frame.state, palette="1") }}'>
{% set state = frame.state %}
<header>
  <h1>Tasks</h1>
  <nav>
    <a class='btn{% if state.view == "board" %} active{% endif %}' data-view='board' href='{{ q(state, view="board") }}'>Board</a>
    <a class='btn{% if state.view == "calendar" %} active{% endif %}' data-view='calendar' href='{{ q(state, view="calendar") }}'>Calendar</a>
    <a class='btn' id='command-open' href='{{ q(state, palette="1") }}'>⌘K</a>
  </nav>
  <form method='get' action='/'>
    <input type='hidden' name='view' value='{{ state.view }}'>
    <input type='hidden' name='mode' value='{{ state.calendar_mode }}'>
    <input type='hidden' name='month' value='{{ "%04d-%02d"|format(state.current_month.year, state.current_month.month) }}'>
    <input id='global-search' name='q' placeholder='Search…  (/)' value='{{ state.search }}'{% if state.focus == "search" %} autofocus{% endif %}>
  </form>
</header>

<form class='quick-add' id='quick-add' method='post' action='{{ q(state) }}'>
  <input type='hidden' name='action' value='quick_add'>
  <input id='quick-add-input' name='title' placeholder='Quick add…  (n)' value='{{ frame.quick_add_text }}'{% if state.focus == "quick_add" %} autofocus{% endif %}>
  <button id='quick-add-button' type='submit'>Add</button>
  <span id='quick-add-meta' class='meta'>{{ frame.quick_add_meta }}</span>
</form>

<form id='move-form' class='hidden' method='post' action='{{ q(state) }}'>
  <input type='hidden' name='action' value='move'>
  <input type='hidden' name='id' value=''>
  <input type='hidden' name='columnId' value=''>
  <input type='hidden' name='dueDate' value=''>
  <input type='hidden' name='hour' value=''>
</form>

<section id='board-view' class='board{% if state.view != "board" %} hidden{% endif %}'>
{% for col in frame.board.columns %}
  <section class='column' data-column-id='{{ col.column_id }}'>
    <header><h3>{{ col.title }}</h3><span class='count'>{{ col.count }}</span></header>
    <div class='column-drop' data-dropzone='{{ col.column_id }}'>
    {% for card in col.cards %}
      <article class='card {{ card.priority_class }}' draggable='true' data-task-id='{{ card.task_id }}' data-open-url='{{ q(state, task=card.task_id) }}'>
        <div class='card-header'><h4>{{ card.title }}</h4><span class='badge'>{{ card.priority }}</span></div>
        <p>{{ card.description }}</p>
        <div class='card-meta'><span>{{ card.due_label }}</span><a class='open btn' href='{{ q(state, task=card.task_id) }}'>Open</a></div>
      </article>
    {% endfor %}
    </div>
  </section>
{% endfor %}
</section>

{% set cal = frame.calendar %}
<section id='calendar-view' class='{% if state.view != "calendar" %}hidden{% endif %}'>
  <div class='calendar-header'>
    <h2 id='calendar-title'>{{ cal.title }}</h2>
    <div class='calendar-nav'>
    {% for mode in ("month", "week", "day") %}
      <a class='btn{% if cal.mode == mode %} active{% endif %}' data-calendar-mode='{{ mode }}' href='{{ q(state, mode=mode) }}'>{{ mode|capitalize }}</a>
    {% endfor %}
      <a class='btn' id='calendar-prev' href='{{ q(state, nav="prev") }}'>◀</a>
      <a class='btn' id='calendar-today' href='{{ q(state, nav="today") }}'>Today</a>
      <a class='btn' id='calendar-next' href='{{ q(state, nav="next") }}'>▶</a>
    </div>
  </div>
  {% if cal.mode == "month" %}
  <div id='weekday-row' class='weekday-row'>{% for d in cal.weekdays %}<span>{{ d }}</span>{% endfor %}</div>
  <div id='calendar-grid' class='calendar-grid month-grid'>
  {% for cell in cal.cells %}
    {% if cell.muted %}
    <div class='day muted'><span></span></div>
    {% else %}
    <div class='day{% if cell.selected %} selected{% endif %}{% if cell.today %} today{% endif %}' data-date='{{ cell.date }}'>
      <div class='day-header'><a href='{{ q(state, date=cell.date, time="") }}'><span>{{ cell.day }}</span></a><a class='day-add' href='{{ q(state, slot=cell.date) }}'>+</a></div>
      {{ chips(cell) }}
    </div>
    {% endif %}
  {% endfor %}
  </div>
  {% else %}
  {% if cal.weekdays %}
  <div id='weekday-row' class='weekday-row' style='grid-template-columns:120px repeat(7,1fr)'><span></span>{% for d in cal.weekdays %}<span>{{ d }}</span>{% endfor %}</div>
  {% endif %}
  <div id='calendar-grid' class='calendar-grid {{ cal.mode }}-grid' style='--days:{{ cal.days|length }}'>
  {% for row in cal.rows %}
    <div class='time-row'>
      <div class='time-label'>{{ row.label }}</div>
      {% for cell in row.cells %}
      <div class='time-cell{% if cell.selected %} selected{% endif %}' data-date='{{ cell.date }}' data-hour='{{ cell.hour }}'>
        <a class='time-add' href='{{ q(state, slot=cell.date, hour=cell.hour) }}'>+</a>
        {{ chips(cell) }}
      </div>
      {% endfor %}
    </div>
  {% endfor %}
  </div>
  {% endif %}
</section>

{% if frame.detail %}
<div id='detail-overlay' class='overlay active'>
  <form id='detail-panel' class='panel' method='post' action='{{ q(state) }}' data-task-id='{{ frame.detail_task_id }}'>
    <input type='hidden' name='id' value='{{ frame.detail_task_id }}'>
    {{ fields(frame.detail, "detail") }}
    <div class='actions'>
      <a class='btn' id='detail-open-page' href='{{ detail_url(frame.detail_task_id) }}'>Open full page</a>
      <button id='detail-delete' type='submit' name='action' value='delete'>Delete</button>
      <button id='detail-save' type='submit' name='action' value='save'>Save</button>
      <a class='btn' id='detail-close' href='{{ q(state) }}'>Close</a>
    </div>
  </form>
</div>
{% endif %}

{% if frame.palette is not none %}
<div id='command-overlay' class='overlay active'>
  <form class='panel' method='get' action='/'>
    <input type='hidden' name='view' value='{{ state.view }}'>
    <input type='hidden' name='mode' value='{{ state.calendar_mode }}'>
    <input type='hidden' name='palette' value='1'>
    <input type='hidden' name='run' value='1'>
    <input id='command-input' name='cq' placeholder='Type a command…' value='{{ frame.palette_text }}' autofocus>
    <div id='command-list'>
    {% for label in frame.palette %}
      <a data-command-index='{{ loop.index0 }}' href='{{ q(state, command=label) }}'>{{ label }}</a>
    {% endfor %}
    </div>
    <a class='btn' id='command-close' href='{{ q(state) }}'>Close</a>
  </form>
</div>
{% endif %}
<script>{{ script }}</script>
</body></html>
"""

DETAIL_TEMPLATE = r"""<!DOCTYPE html><html lang='en'><head>
<meta charset='utf-8'><meta name='viewport' content='width=device-width,initial-scale=1'>
<title>{{ form.title }} – Tasks</title>
<style>{{ style }}</style></head><body>
<header><a class='btn' id='detail-back' href='/'>← Board</a><h1>Task</h1></header>
<form class='panel' method='post' action='{{ detail_url(task_id) }}' data-task-id='{{ task_id }}'>
  {{ fields(form, "page") }}
  <div class='actions'>
    <button id='page-delete' type='submit' name='action' value='delete'>Delete</button>
    <button id='page-save' type='submit' name='action' value='save'>Save</button>
  </div>
</form>
</body></html>
"""

_fields_template = env.from_string(_TASK_FIELDS)
_chips_template = env.from_string(_TASK_CHIPS)
_board_template = env.from_string(BOARD_TEMPLATE)
_detail_template = env.from_string(DETAIL_TEMPLATE)


def _fields(columns):
    def render(form, prefix):
        return Markup(_fields_template.render(form=form, prefix=prefix, priorities=PRIORITIES, columns=columns))
    return render


def render_board_page(frame) -> str:
    def chips(cell):
        return Markup(_chips_template.render(cell=cell, state=frame.state, q=query_for))

    return _board_template.render(
        frame=frame, style=Markup(STYLE), script=Markup(SCRIPT), q=query_for, detail_url=detail_url,
        chips=chips, fields=_fields(frame.columns),
    )


def render_detail_page(page) -> str:
    return _detail_template.render(
        form=page.form, task_id=page.task_id, style=Markup(STYLE), detail_url=detail_url,
        fields=_fields(page.document.columns),
    )
