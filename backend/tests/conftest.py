import os
import random
import sys

import pytest

# Ensure the backend root (containing the `guesswho` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

# eventlet is not monkey patched under pytest
os.environ.setdefault('SOCKETIO_ASYNC_MODE', 'threading')

from guesswho.config import Config
from guesswho.game.service import GameService
from guesswho.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    TRUST_PROXY_HEADERS = False
    ENABLE_SCHEDULER_IN_TESTS = False


@pytest.fixture()
def service():
    return GameService(rng=random.Random(1234))


@pytest.fixture()
def lobby(service):
    """Waiting room with Alice (host, sid A), Bob (B) and Cara (C)."""
    room, _ = service.create_room('A', 'Alice', 1)
    service.join_room('B', 'Bob', room.code)
    service.join_room('C', 'Cara', room.code)
    return room


@pytest.fixture()
def started(service, lobby):
    """Lobby after start-game: Alice is choosing."""
    service.start_game('A', lobby.code)
    return lobby


@pytest.fixture()
def playing(service, started):
    """Alice picked the first character; Bob holds the turn."""
    service.choose_character('A', started.code, started.characters[0]['id'])
    return started


@pytest.fixture()
def flask_app():
    app, _ = create_app(TestConfig)
    yield app


@pytest.fixture()
def socketio(flask_app):
    return flask_app.extensions['socketio']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app, socketio):
    test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass
