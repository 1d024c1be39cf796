"""Tests for health routes."""
import pytest


class TestHealth:

    def test_liveness(self, client):
        resp = client.get('/health')
        assert resp.status_code == 200
        assert resp.get_json() == {'status': 'healthy'}

    def test_all_closed_is_healthy(self, client):
        data = client.get('/api/health').get_json()
        assert data['status'] == 'healthy'
        assert data['services']['hubspot']['state'] == 'closed'

    def test_open_breaker_is_degraded(self, client, fake_redis):
        fake_redis.set('breaker:hubspot:state', 'open')
        fake_redis.set('breaker:hubspot:opened_at', '9999999999')
        data = client.get('/api/health').get_json()
        assert data['status'] == 'degraded'
        assert data['services']['hubspot']['state'] == 'open'


class TestReset:

    def test_reset_closes(self, client, fake_redis):
        fake_redis.set('breaker:hubspot:state', 'open')
        fake_redis.set('breaker:hubspot:opened_at', '9999999999')
        resp = client.post('/api/health/hubspot/reset')
        assert resp.get_json() == {'ok': True, 'service': 'hubspot'}
        assert client.get('/api/health').get_json()['status'] == 'healthy'

    @pytest.mark.parametrize('service', ['openai', 'nope'])
    def test_unknown_service(self, client, service):
        assert client.post(f'/api/health/{service}/reset').status_code == 404
