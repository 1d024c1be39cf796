"""Tests for leadengine.services.usage_log."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from leadengine.models.usage_log import UsageLogEntry
from leadengine.services.usage_log import UsageLogger


class TestRecord:

    def test_appends_row(self, session_factory, api_key, db_session):
        key, _ = api_key
        assert UsageLogger(session_factory).record(key['id'], '/api/v1/score', 'POST', 200, 12) is True
        row = db_session.query(UsageLogEntry).one()
        assert (row.endpoint, row.http_method, row.status_code, row.response_time_ms) == \
            ('/api/v1/score', 'POST', 200, 12)

    def test_failure_is_swallowed(self):
        session = MagicMock()
        session.commit.side_effect = OperationalError('INSERT', {}, Exception('locked'))
        assert UsageLogger(lambda: session).record('k', '/x', 'GET', 200, 1) is False
        session.rollback.assert_called_once()
        session.close.assert_called_once()


class TestCountSince:

    def test_counts_only_recent_rows_for_key(self, session_factory, make_api_key, db_session):
        (mine, _), (theirs, _) = make_api_key(name='A'), make_api_key(name='B')
        now = datetime.now(timezone.utc)
        db_session.add_all([
            UsageLogEntry(api_key_id=mine['id'], endpoint='/e', http_method='POST', status_code=200,
                          created_at=now - timedelta(seconds=10)),
            UsageLogEntry(api_key_id=mine['id'], endpoint='/e', http_method='POST', status_code=429,
                          created_at=now - timedelta(seconds=20)),
            UsageLogEntry(api_key_id=mine['id'], endpoint='/e', http_method='POST', status_code=200,
                          created_at=now - timedelta(minutes=5)),
            UsageLogEntry(api_key_id=theirs['id'], endpoint='/e', http_method='POST', status_code=200,
                          created_at=now),
        ])
        db_session.commit()
        counted = UsageLogger(session_factory).count_since(mine['id'], now - timedelta(seconds=60))
        assert counted.value == 2

    def test_store_error(self):
        session = MagicMock()
        session.scalar.side_effect = OperationalError('SELECT', {}, Exception('gone'))
        assert UsageLogger(lambda: session).count_since('k', datetime.now(timezone.utc)).ok is False
