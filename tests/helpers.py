import copy
from datetime import date
from urllib.parse import urlsplit

import requests

from taskboard.model import DEFAULT_COLUMNS

TODAY = date(2024, 6, 10)  # a Monday


class MemoryStore:
    """fetch/replace over a dict, recording every replace payload."""

    def __init__(self, document=None):
        self.document = copy.deepcopy(document or {"columns": DEFAULT_COLUMNS, "tasks": []})
        self.replaced = []
        self.fail = None

    def fetch(self):
        return copy.deepcopy(self.document)

    def replace(self, document):
        if self.fail is not None:
            raise self.fail
        self.replaced.append(copy.deepcopy(document))
        self.document = copy.deepcopy(document)
        return {"ok": True}


class FakeTimer:
    instances = []

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.started = False
        self.cancelled = False
        self.daemon = False
        FakeTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


class FakeResponse:
    def __init__(self, flask_response):
        self.status_code = flask_response.status_code
        self._json = flask_response.get_json(silent=True)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json


class FakeSession:
    """requests-like session that routes reachable origins into a Flask test client."""

    def __init__(self, client, reachable):
        self.client = client
        self.reachable = set(reachable)
        self.calls = []

    def request(self, method, url, json=None, timeout=None):
        self.calls.append((method, url))
        parts = urlsplit(url)
        origin = f"{parts.scheme}://{parts.netloc}"
        if origin not in self.reachable:
            raise requests.ConnectionError(f"connection refused: {origin}")
        res = self.client.open(parts.path, method=method, json=json)
        return FakeResponse(res)


def make_task(**overrides):
    task = {
        "id": "t1",
        "title": "Write report",
        "description": "",
        "columnId": "todo",
        "dueDate": "",
        "dueTime": "",
        "priority": "medium",
        "createdAt": "2024-06-01T09:00:00.000Z",
    }
    task.update(overrides)
    return task


def make_document(*tasks):
    return {"columns": copy.deepcopy(DEFAULT_COLUMNS), "tasks": list(tasks)}

