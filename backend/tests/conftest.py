import os
import sys
import pytest

# Ensure the backend root (containing the `cineguess` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from cineguess import create_app, db, get_room_service, socketio
from cineguess.models import Movie
from cineguess.seed import seed_movies


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}
    ALLOWED_ORIGINS = []
    ROUND_SECONDS = 10
    MOVIES_PER_ROOM = 10
    ROOM_STORE = 'sql'
    ROOM_CLOCK = 'derived'
    TICK_INTERVAL_SEC = 0
    ROOM_SAVE_RETRIES = 3


class TickingTestConfig(TestConfig):
    ROOM_STORE = 'memory'
    ROOM_CLOCK = 'ticking'
    ENABLE_TICKER_IN_TESTS = True


class FakeClock:
    """Millisecond wall clock the tests move by hand."""

    def __init__(self, start_ms=1_700_000_000_000):
        self.now_ms = start_ms

    def __call__(self):
        return self.now_ms

    def advance(self, seconds):
        self.now_ms += int(seconds * 1000)


def _make_app(config_class):
    application = create_app(config_class)
    with application.app_context():
        # Ensure models are imported so tables are created
        import cineguess.models  # noqa: F401
        db.create_all()
        yield application
        get_room_service(application).shutdown()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def flask_app():
    yield from _make_app(TestConfig)


@pytest.fixture()
def ticking_app():
    yield from _make_app(TickingTestConfig)


@pytest.fixture()
def catalog(flask_app):
    seed_movies()
    return Movie.query.all()


@pytest.fixture()
def clock(flask_app):
    fake = FakeClock()
    get_room_service(flask_app).now = fake
    return fake


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
