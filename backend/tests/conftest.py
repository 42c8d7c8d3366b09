from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from contest.api.deps import get_container
from contest.core.config import Settings
from contest.core.database import make_engine, make_session_factory
from contest.core.errors import NotificationError, StoreError
from contest.main import app
from contest.models import kv_entry  # noqa: F401 ensure models imported
from contest.services.container import ServiceContainer
from contest.services.stores import SqlStore


class FixedRandom:
    """Deterministic stand-in for SystemRandom."""

    def __init__(self, value: float = 0.5, pick: int = 0):
        self.value = value
        self.pick = pick

    def random(self):
        return self.value

    def choice(self, seq):
        return seq[self.pick]


class MutableClock:
    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, message):
        self.sent.append(message)


class FailingNotifier:
    def send(self, message):
        raise NotificationError('provider down')


class FaultyStore:
    """Wraps a real store, records calls and fails the chosen operations."""

    def __init__(self, inner, fail_get=False, fail_set=False, fail_incr=False, fail_keys=()):
        self.inner = inner
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.fail_incr = fail_incr
        self.fail_keys = set(fail_keys)
        self.calls = []

    def _check(self, op, flag, key):
        self.calls.append((op, key))
        if flag or key in self.fail_keys:
            raise StoreError(f'{op} {key}: connection refused')

    def get(self, key):
        self._check('get', self.fail_get, key)
        return self.inner.get(key)

    def set(self, key, value, ttl_seconds=None, only_if_absent=False):
        self._check('set', self.fail_set, key)
        return self.inner.set(key, value, ttl_seconds=ttl_seconds, only_if_absent=only_if_absent)

    def incr(self, key):
        self._check('incr', self.fail_incr, key)
        return self.inner.incr(key)


@pytest.fixture()
def settings():
    return Settings(_env_file=None, STORE_BACKEND='sql', MAIL_BACKEND='console')


@pytest.fixture()
def session_factory(tmp_path):
    # file-backed so threads get their own connections
    db_path = tmp_path / 'kv.db'
    engine = make_engine(f'sqlite+pysqlite:///{db_path}')
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def sql_store(session_factory):
    return SqlStore(session_factory)


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def rng():
    return FixedRandom()


@pytest.fixture()
def make_client(settings, sql_store, notifier, rng):
    def _make(store=None, notifier_=None, rng_=None, container=None, raise_server_exceptions=True):
        if container is None:
            container = ServiceContainer(
                settings,
                store_factory=lambda cfg: store or sql_store,
                notifier_factory=lambda cfg: notifier_ or notifier,
                rng=rng_ or rng,
            )
        app.dependency_overrides[get_container] = lambda: container
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture()
def client(make_client):
    return make_client()
