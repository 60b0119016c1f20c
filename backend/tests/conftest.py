import os
import sys
import pytest

# Ensure the backend root (containing the `connect4` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from connect4 import create_app, db, socketio
from connect4.services.games.protocol import GameProtocol
from connect4.services.games.rules import COLS, ROWS, Board
from connect4.services.games.sessions import SessionStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ENVIRONMENT = 'test'
    SOCKETIO_NAMESPACE = '/'
    RECONNECT_GRACE_SEC = 1.0
    BOT_MOVE_DELAY_MS = 0
    LEADERBOARD_LIMIT = 10


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now


class ManualTimer:
    def __init__(self, due, callback, args):
        self.due = due
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Deterministic stand-in for the Socket.IO scheduler, driven by a FakeClock."""

    def __init__(self, clock):
        self.clock = clock
        self.timers = []

    def call_later(self, delay, callback, *args):
        timer = ManualTimer(self.clock.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    def pending(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds):
        """Move the clock forward, firing due timers in order; returns their outcomes."""
        target = self.clock.now + seconds
        outcomes = []
        while True:
            due = [t for t in self.pending() if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.clock.now = max(self.clock.now, timer.due)
            timer.fired = True
            outcomes.append(timer.callback(*timer.args))
        self.clock.now = target
        return outcomes


def board_from_rows(rows):
    """Board from 6 strings of 7 chars; '.' is empty, any other char is a token."""
    cells = [[None if ch == '.' else ch for ch in row] for row in rows]
    assert len(cells) == ROWS and all(len(r) == COLS for r in cells), 'board must be 6x7'
    return Board(cells)


DRAW_ROWS = [
    "XXOOXXO",
    "OOXXOOX",
    "XXOOXXO",
    "OOXXOOX",
    "XXOOXXO",
    "OOXXOOX",
]


@pytest.fixture()
def draw_rows():
    """A full board with no four-in-a-row anywhere.

    Columns go in pairs and the owner flips every row and every pair, so no
    line ever holds more than two equal cells in a row.
    """
    return list(DRAW_ROWS)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture()
def store(clock):
    return SessionStore(clock=clock)


@pytest.fixture()
def protocol(scheduler, store):
    return GameProtocol(scheduler, store=store, bot_delay_sec=0.7, grace_sec=30.0)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import connect4.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
    )
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass
