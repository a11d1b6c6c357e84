import os
import sys
import pytest

# Ensure the backend root (containing the `vibecheck` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from vibecheck import create_app, registry, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:3000']
    RESPONSE_DURATION_SEC = 60
    VOTING_DURATION_SEC = 45
    RESULTS_DURATION_SEC = 3
    MAX_ROUNDS = 3
    MAX_PLAYERS = 8
    MIN_PLAYERS = 2
    SESSION_CODE_LENGTH = 6
    SESSION_CODE_ATTEMPTS = 20
    TIMER_HEARTBEAT_SEC = 0


class LiveTimerConfig(TestConfig):
    # Real background timers with short windows
    ENABLE_SCHEDULER_IN_TESTS = True
    RESPONSE_DURATION_SEC = 0.05
    VOTING_DURATION_SEC = 0.05
    RESULTS_DURATION_SEC = 0.05
    TIMER_HEARTBEAT_SEC = 0.02


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    registry.shutdown()


@pytest.fixture()
def live_app():
    application = create_app(LiveTimerConfig)
    with application.app_context():
        yield application
    registry.shutdown()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    """Build Socket.IO test clients connected to /ws; all are closed afterwards."""
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, namespace='/ws')
        test_client.get_received('/ws')  # flush 'connected'
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def sio_client(sio_factory):
    return sio_factory()
