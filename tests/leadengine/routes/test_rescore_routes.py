"""Tests for the internal /api/ai/rescore-all routes."""
from unittest.mock import patch

import pytest

from leadengine.errors import Result, PersistenceFailure
from leadengine.models.lead import Lead


class TestRescoreAll:

    def test_defaults_score_everything(self, client, make_lead, db_session):
        ids = [make_lead() for _ in range(3)]
        resp = client.post('/api/ai/rescore-all', json={})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['success'] is True
        assert (data['total'], data['scored'], data['failed']) == (3, 3, 0)
        assert data['has_more'] is False
        assert data['next_offset'] == 100
        assert sum(data['classificationDistribution'].values()) == 3
        db_session.expire_all()
        assert all(db_session.get(Lead, i).ai_scored_at is not None for i in ids)

    def test_no_body_uses_defaults(self, client, make_lead):
        make_lead()
        assert client.post('/api/ai/rescore-all').get_json()['scored'] == 1

    def test_paging(self, client, make_lead):
        for _ in range(5):
            make_lead()
        first = client.post('/api/ai/rescore-all', json={'limit': 2}).get_json()
        assert first['has_more'] is True
        assert first['next_offset'] == 2
        last = client.post('/api/ai/rescore-all', json={'limit': 2, 'offset': 4}).get_json()
        assert last['total'] == 1
        assert last['has_more'] is False

    def test_company_scoping(self, client, make_lead, db_session):
        from leadengine.models.company import Company
        db_session.add(Company(id='co-2', name='Other'))
        db_session.commit()
        make_lead(company_id='co-2')
        make_lead()
        data = client.post('/api/ai/rescore-all', json={'company_id': 'co-1'}).get_json()
        assert data['total'] == 1

    def test_buyer_ids(self, client, make_lead):
        a, _ = make_lead(), make_lead()
        data = client.post('/api/ai/rescore-all', json={'buyer_ids': [a]}).get_json()
        assert data['total'] == 1

    def test_force_false_skips_scored(self, client, make_lead):
        make_lead()
        client.post('/api/ai/rescore-all', json={})
        assert client.post('/api/ai/rescore-all', json={'force': False}).get_json()['total'] == 0

    @pytest.mark.parametrize('body', [
        {'limit': 0},
        {'limit': 501},
        {'limit': 'lots'},
        {'limit': True},
        {'offset': -1},
        {'force': 'yes'},
        {'buyer_ids': 'abc'},
    ])
    def test_validation(self, client, body):
        resp = client.post('/api/ai/rescore-all', json=body)
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'validation_error'

    def test_limit_bounds_accepted(self, client):
        assert client.post('/api/ai/rescore-all', json={'limit': 1}).status_code == 200
        assert client.post('/api/ai/rescore-all', json={'limit': 500}).status_code == 200

    def test_numeric_string_limit(self, client):
        assert client.post('/api/ai/rescore-all', json={'limit': '20'}).status_code == 200

    def test_fetch_failure_is_500(self, client, app):
        store = app.extensions['leadengine'].store
        with patch.object(store, 'fetch_page', return_value=Result.failure(PersistenceFailure('db down'))):
            resp = client.post('/api/ai/rescore-all', json={})
        assert resp.status_code == 500
        assert resp.get_json()['code'] == 'persistence_failed'


class TestRescoreStatus:

    def test_counts(self, client, make_lead):
        make_lead()
        make_lead()
        client.post('/api/ai/rescore-all', json={'limit': 1})
        data = client.get('/api/ai/rescore-all?company_id=co-1').get_json()
        assert data['total'] == 2
        assert data['scored'] == 1
        assert data['unscored'] == 1


class TestInternalToken:

    @patch('leadengine.config.INTERNAL_API_TOKEN', 'sekrit')
    def test_missing_token_rejected(self, client):
        resp = client.post('/api/ai/rescore-all', json={})
        assert resp.status_code == 401

    @patch('leadengine.config.INTERNAL_API_TOKEN', 'sekrit')
    def test_wrong_token_rejected(self, client):
        resp = client.get('/api/ai/rescore-all', headers={'X-Internal-Token': 'guess'})
        assert resp.status_code == 401

    @patch('leadengine.config.INTERNAL_API_TOKEN', 'sekrit')
    def test_correct_token_accepted(self, client):
        resp = client.get('/api/ai/rescore-all', headers={'X-Internal-Token': 'sekrit'})
        assert resp.status_code == 200

    @patch('leadengine.config.INTERNAL_API_TOKEN', 'sekrit')
    def test_public_routes_unaffected(self, client):
        assert client.get('/health').status_code == 200
        resp = client.post('/api/v1/score', json={})
        assert resp.status_code == 401
        assert resp.get_json()['code'] == 'unauthorized'
        assert 'X-RateLimit-Remaining' in resp.headers
