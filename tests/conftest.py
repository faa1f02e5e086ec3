import os

# Must be set before marketplace modules read settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_JSON", "false")

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from marketplace.api.dependencies import get_db, get_notifier  # noqa: E402
from marketplace.domain import bid_engine  # noqa: E402
from marketplace.domain.record import new_listing, utcnow  # noqa: E402
from marketplace.infrastructure.database import build_engine, init_db  # noqa: E402
from marketplace.infrastructure.notifier import NotificationFailed  # noqa: E402
from marketplace.infrastructure.repository import ProductRepository  # noqa: E402
from marketplace.main import app  # noqa: E402

OWNER_EMAIL = "seller@example.com"


class RecordingNotifier:
    """Collects winner notices; product ids in `fail_for` raise"""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def notify_winner(self, record):
        if record.id in self.fail_for:
            raise NotificationFailed("channel down")
        self.sent.append(record.id)


class FakeRedis:
    """Just enough of redis.Redis for SweepLock"""

    def __init__(self):
        self.store = {}

    def set(self, key, value, nx=False, px=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def eval(self, script, numkeys, key, value):
        if self.store.get(key) == value:
            del self.store[key]
            return 1
        return 0


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'marketplace.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_record(now=None, **overrides):
    """A valid auction record (not persisted) created at `now`"""
    now = now or utcnow()
    fields = dict(
        owner_id="owner-1",
        owner_email=OWNER_EMAIL,
        name="Vintage Camera",
        category="Elektronika",
        image="https://example.com/camera.jpg",
        description="Working film camera from 1978 with original lens.",
        current_price=100.0,
        auction_enabled=True,
        duration_days=7,
        min_bid_increment=10.0,
    )
    fields.update(overrides)
    return new_listing(now=now, **fields)


@pytest.fixture
def add_auction(db):
    """
    Persist an auction

    `ended_ago` creates it far enough in the past that its end time
    has passed; `bids` is a list of (name, email, amount) placed while
    it was open.
    """
    def _add(ended_ago=None, bids=(), **overrides):
        now = utcnow()
        created = now
        if ended_ago is not None:
            created = now - timedelta(days=overrides.get("duration_days", 7)) - ended_ago

        record = make_record(now=created, **overrides)
        for offset, (name, email, amount) in enumerate(bids, start=1):
            record = bid_engine.place_bid(record, name, email, amount, created + timedelta(minutes=offset))
        return ProductRepository.add(db, record)

    return _add
