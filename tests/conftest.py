"""Shared test fixtures."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from leadengine.database import Base


class FakeRedis:
    """Minimal in-memory Redis fake — strings, hashes and sorted sets."""

    def __init__(self):
        self.get_store = {}
        self.hash_store = {}
        self.zsets = {}
        self.ttls = {}

    def get(self, key):
        return self.get_store.get(key)

    def set(self, key, value):
        self.get_store[key] = str(value)

    def incr(self, key):
        val = int(self.get_store.get(key, 0)) + 1
        self.get_store[key] = str(val)
        return val

    def delete(self, *keys):
        for k in keys:
            self.get_store.pop(k, None)
            self.hash_store.pop(k, None)
            self.zsets.pop(k, None)

    def hset(self, key, field, value):
        self.hash_store.setdefault(key, {})[field] = str(value)

    def hincrby(self, key, field, amount):
        h = self.hash_store.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)

    def hgetall(self, key):
        return dict(self.hash_store.get(key, {}))

    def zadd(self, key, mapping):
        z = self.zsets.setdefault(key, {})
        added = sum(1 for m in mapping if m not in z)
        z.update(mapping)
        return added

    def zrem(self, key, *members):
        z = self.zsets.get(key, {})
        return sum(1 for m in members if z.pop(m, None) is not None)

    def zremrangebyscore(self, key, low, high):
        z = self.zsets.get(key, {})
        doomed = [m for m, score in z.items() if low <= score <= high]
        for m in doomed:
            del z[m]
        return len(doomed)

    def zcard(self, key):
        return len(self.zsets.get(key, {}))

    def zrange(self, key, start, end, withscores=False):
        ordered = sorted(self.zsets.get(key, {}).items(), key=lambda kv: kv[1])
        end = len(ordered) if end == -1 else end + 1
        picked = ordered[start:end]
        return picked if withscores else [m for m, _ in picked]

    def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:
    """Queues commands and replays them against FakeRedis on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def __getattr__(self, name):
        command = getattr(self._redis, name)

        def queue(*args, **kwargs):
            self._ops.append((command, args, kwargs))
            return self
        return queue

    def execute(self):
        results = [command(*args, **kwargs) for command, args, kwargs in self._ops]
        self._ops = []
        return results


@pytest.fixture
def fake_redis():
    """In-memory Redis fake with dict-backed storage."""
    return FakeRedis()


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite engine with schema created.

    A file (not :memory:) so rescore worker threads each get their own
    connection to the same database.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={'check_same_thread': False},
    )
    import leadengine.models.company
    import leadengine.models.lead
    import leadengine.models.scored_lead
    import leadengine.models.api_key
    import leadengine.models.usage_log
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    """Session for seeding and asserting. Closed after each test."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def app(session_factory, fake_redis):
    """Flask test app wired to the test database and fake Redis."""
    from leadengine import create_app
    app = create_app(session_factory=session_factory, redis=fake_redis)
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def company(db_session):
    from leadengine.models.company import Company
    row = Company(id='co-1', name='Acme Homes')
    db_session.add(row)
    db_session.commit()
    return row.id


@pytest.fixture
def make_api_key(session_factory, company):
    """Factory fixture — issues a key and returns (key dict, plaintext)."""
    from leadengine.services.api_keys import ApiKeyService
    service = ApiKeyService(session_factory)

    def _make(name='Test key', permissions=None, rate_limit_per_minute=60, company_id=company):
        created = service.create_api_key(company_id, name, permissions=permissions,
                                         rate_limit_per_minute=rate_limit_per_minute)
        assert created.ok, created.error
        return created.value
    return _make


@pytest.fixture
def api_key(make_api_key):
    return make_api_key()


@pytest.fixture
def auth_headers(api_key):
    _, plaintext = api_key
    return {'Authorization': f'Bearer {plaintext}'}


@pytest.fixture
def make_lead(db_session, company):
    """Factory fixture — inserts a Lead row and returns its id.

    created_at is spread one minute apart so page order is deterministic.
    """
    from leadengine.models.lead import Lead
    base = datetime(2026, 9, 1, 9, 0, tzinfo=timezone.utc)
    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        defaults = dict(
            company_id=company,
            full_name=f'Buyer {counter["n"]}',
            email=f'buyer{counter["n"]}@example.co.uk',
            phone='+44 7700 900123',
            country='United Kingdom',
            budget_max=450000,
            preferred_bedrooms=2,
            preferred_location='Manchester',
            timeline_to_purchase='0-3 months',
            payment_method='mortgage',
            mortgage_status='approved',
            created_at=base + timedelta(minutes=counter['n']),
        )
        defaults.update(overrides)
        lead = Lead(**defaults)
        db_session.add(lead)
        db_session.commit()
        return lead.id
    return _make


@pytest.fixture
def hot_lead():
    """Cash buyer with proof of funds, ready within 28 days, viewing booked."""
    return {
        'id': 'lead-jane',
        'full_name': 'Jane Doe',
        'email': 'jane.doe@gmail.com',
        'phone': '+44 7700 900456',
        'country': 'United Kingdom',
        'budget_max': 650000,
        'bedrooms': 2,
        'preferred_location': 'Manchester',
        'payment_method': 'cash',
        'proof_of_funds': True,
        'timeline': 'Within 28 days',
        'viewing_booked': True,
    }


@pytest.fixture
def spam_lead():
    return {
        'id': 'lead-spam',
        'full_name': 'Test Spam',
        'email': 'asdf@test.test',
        'phone': '1234567890',
    }


@pytest.fixture
def fixed_now():
    return datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
