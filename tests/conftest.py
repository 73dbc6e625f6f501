import os
import sys

import pytest

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from taskboard.app import BoardApp  # noqa: E402
from taskboard.server import create_app  # noqa: E402

from .helpers import TODAY, FakeTimer, MemoryStore  # noqa: E402


@pytest.fixture
def data_path(tmp_path):
    return tmp_path / "data.json"


@pytest.fixture
def server_app(data_path):
    app = create_app(data_path)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(server_app):
    return server_app.test_client()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def fake_timers():
    FakeTimer.instances.clear()
    yield FakeTimer.instances
    FakeTimer.instances.clear()


@pytest.fixture
def make_board(fake_timers):
    created = []

    def factory(document=None, store=None):
        store = store or MemoryStore(document)
        board = BoardApp(store, timer_factory=FakeTimer, today=lambda: TODAY)
        board.load()
        created.append(board)
        return board

    yield factory
    for board in created:
        board.close()


@pytest.fixture
def board(make_board):
    return make_board()
