import os
import random
import sys

import pytest

# Ensure the backend root (containing the `partyquip` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from partyquip.config import Config
from partyquip.game.questions import QuestionSource
from partyquip.game.registry import RoomRegistry, idle_timeout_policy
from partyquip.game.service import GameService
from partyquip.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SOCKETIO_ASYNC_MODE = 'threading'
    TRUST_PROXY_HEADERS = False
    QUESTIONS_PATH = ''
    # Deadlines are driven by hand in tests
    RUN_ROOM_TASKS = False


class FakeClock:
    def __init__(self, start_ms=1_000_000):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += int(seconds * 1000)


class RecordingTransport:
    def __init__(self):
        self.sent = []

    def send_to_connection(self, sid, event, payload):
        self.sent.append(('sid', sid, event, payload))

    def broadcast_to_room(self, room_id, event, payload):
        self.sent.append(('room', room_id, event, payload))

    def events(self, name):
        return [payload for _, _, event, payload in self.sent if event == name]

    def sent_to(self, sid, name):
        return [payload for kind, target, event, payload in self.sent if kind == 'sid' and target == sid and event == name]

    def clear(self):
        self.sent.clear()


QUESTIONS = [
    'Worst gift you ever received?',
    'Best excuse for being late?',
    'What would your pet say about you?',
    'Least useful superpower?',
    'Strangest thing in your fridge?',
]


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def registry(clock):
    return RoomRegistry(eviction_policy=idle_timeout_policy(300), clock=clock, total_rounds=3)


@pytest.fixture()
def service(registry, transport):
    return GameService(
        registry,
        transport,
        QuestionSource(QUESTIONS, rng=random.Random(7)),
        round_duration_sec=60,
        vote_step_timeout_sec=30,
        next_round_delay_sec=5,
        rng=random.Random(42),
    )


@pytest.fixture()
def join_players(service):
    def _join(room_id, names):
        room = None
        for name in names:
            room = service.join(room_id, name.lower(), name)
        return room

    return _join


@pytest.fixture()
def app_and_socketio():
    return create_app(TestConfig)


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def runner_app_and_socketio():
    class RunnerConfig(TestConfig):
        RUN_ROOM_TASKS = True

    return create_app(RunnerConfig)
