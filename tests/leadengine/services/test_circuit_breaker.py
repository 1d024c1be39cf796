"""Tests for leadengine.services.circuit_breaker, exercised through the HubSpot breaker."""
import time
from unittest.mock import MagicMock, patch

import pytest
import requests
from redis.exceptions import ConnectionError as RedisConnectionError

from leadengine.scoring.engine import score_raw
from leadengine.scoring.normalizer import normalize_lead
from leadengine.services import circuit_breaker
from leadengine.services.circuit_breaker import (
    CircuitBreaker, CircuitOpenError, CLOSED, OPEN, HALF_OPEN,
    get_breaker, get_all_breakers, init_breakers,
)
from leadengine.services.hubspot import push_lead_to_hubspot

STATE = 'breaker:hubspot:state'
FAILURES = 'breaker:hubspot:failures'
OPENED_AT = 'breaker:hubspot:opened_at'
HEALTH = 'breaker:hubspot:health'


@pytest.fixture
def hubspot(fake_redis):
    return init_breakers(fake_redis)['hubspot']


def _hubspot_down(*args, **kwargs):
    raise requests.ConnectionError('Connection refused: api.hubapi.com')


def _hubspot_slow(*args, **kwargs):
    raise requests.Timeout('read timed out')


def _open(breaker):
    for _ in range(breaker.failure_threshold):
        with pytest.raises(requests.Timeout):
            breaker.call(_hubspot_slow)


def _age_open_circuit(fake_redis, seconds):
    fake_redis.set(OPENED_AT, str(time.time() - seconds))


class TestHubspotBreaker:

    def test_registered_with_crm_limits(self, hubspot):
        assert hubspot.name == 'hubspot'
        assert (hubspot.failure_threshold, hubspot.reset_timeout) == (3, 180)
        assert hubspot.state == CLOSED

    def test_request_errors_counted_in_redis(self, hubspot, fake_redis):
        with pytest.raises(requests.ConnectionError):
            hubspot.call(_hubspot_down)
        with pytest.raises(requests.Timeout):
            hubspot.call(_hubspot_slow)
        assert fake_redis.get(FAILURES) == '2'
        assert fake_redis.get(STATE) is None
        assert hubspot.state == CLOSED

    def test_third_failure_opens(self, hubspot, fake_redis):
        _open(hubspot)
        assert fake_redis.get(STATE) == OPEN
        assert float(fake_redis.get(OPENED_AT)) <= time.time()
        assert hubspot.state == OPEN

    def test_open_circuit_skips_the_request(self, hubspot):
        _open(hubspot)
        post = MagicMock()
        with pytest.raises(CircuitOpenError) as exc_info:
            hubspot.call(post, 'https://api.hubapi.com/crm/v3/objects/contacts')
        post.assert_not_called()
        assert exc_info.value.name == 'hubspot'
        assert 170 < exc_info.value.retry_after <= 180

    def test_half_open_once_reset_window_passes(self, hubspot, fake_redis):
        _open(hubspot)
        _age_open_circuit(fake_redis, 200)
        assert hubspot.state == HALF_OPEN
        assert fake_redis.get(STATE) == HALF_OPEN

    def test_successful_trial_closes(self, hubspot, fake_redis):
        _open(hubspot)
        _age_open_circuit(fake_redis, 200)
        assert hubspot.call(lambda: {'id': '901'}) == {'id': '901'}
        assert fake_redis.get(STATE) == CLOSED
        assert fake_redis.get(FAILURES) == '0'

    def test_failed_trial_reopens(self, hubspot, fake_redis):
        _open(hubspot)
        _age_open_circuit(fake_redis, 200)
        assert hubspot.state == HALF_OPEN
        with pytest.raises(requests.ConnectionError):
            hubspot.call(_hubspot_down)
        assert fake_redis.get(STATE) == OPEN
        assert hubspot.state == OPEN

    def test_reset_clears_state_keeps_history(self, hubspot, fake_redis):
        _open(hubspot)
        hubspot.reset()
        assert fake_redis.get(STATE) is None
        assert fake_redis.get(FAILURES) is None
        assert fake_redis.get(OPENED_AT) is None
        assert fake_redis.hgetall(HEALTH)['failure'] == '3'
        assert hubspot.call(lambda: 'ok') == 'ok'


class TestPushThroughBreaker:
    """push_lead_to_hubspot reports an open circuit as a push failure."""

    @patch('leadengine.services.hubspot.requests.post', side_effect=requests.Timeout('slow'))
    def test_repeated_timeouts_stop_calling_hubspot(self, mock_post, hubspot, hot_lead, fixed_now):
        record = normalize_lead(hot_lead)
        result = score_raw(hot_lead, now=fixed_now)
        for _ in range(3):
            assert 'timed out' in push_lead_to_hubspot('pat-eu1-test', record, result)['error']

        skipped = push_lead_to_hubspot('pat-eu1-test', record, result)
        assert skipped['success'] is False
        assert "Circuit 'hubspot' is open" in skipped['error']
        assert mock_post.call_count == 3


class TestRedisUnavailable:

    def test_reports_closed_and_calls_through(self):
        redis = MagicMock()
        redis.get.side_effect = RedisConnectionError('down')
        redis.incr.side_effect = RedisConnectionError('down')
        redis.pipeline.side_effect = RedisConnectionError('down')
        redis.hgetall.side_effect = RedisConnectionError('down')
        breaker = init_breakers(redis)['hubspot']
        assert breaker.state == CLOSED
        assert breaker.call(lambda: {'id': '1'}) == {'id': '1'}
        with pytest.raises(requests.ConnectionError):
            breaker.call(_hubspot_down)
        assert breaker.get_health()['total_failure'] == 0


class TestHealth:
    """get_health() feeds the per-service entries of /api/health."""

    def test_counters_after_push_attempts(self, hubspot, fake_redis):
        hubspot.call(lambda: 'ok')
        with pytest.raises(requests.ConnectionError):
            hubspot.call(_hubspot_down)
        assert fake_redis.hgetall(HEALTH)['success'] == '1'
        assert hubspot.get_health() == {
            'name': 'hubspot',
            'state': CLOSED,
            'failure_count': 1,
            'failure_threshold': 3,
            'reset_timeout': 180,
            'total_success': 1,
            'total_failure': 1,
            'last_error': 'Connection refused: api.hubapi.com',
        }

    def test_open_state_reported(self, hubspot):
        _open(hubspot)
        health = hubspot.get_health()
        assert health['state'] == OPEN
        assert health['last_error'] == 'read timed out'


class TestRegistry:

    def test_init_replaces_hubspot_breaker(self, fake_redis):
        first = init_breakers(fake_redis)['hubspot']
        second = init_breakers(fake_redis)['hubspot']
        assert get_all_breakers()['hubspot'] is second is not first
        assert get_breaker('hubspot') is second

    def test_get_breaker_creates_on_demand(self, fake_redis, monkeypatch):
        monkeypatch.setattr(circuit_breaker, '_registry', {})
        breaker = get_breaker('crm_webhook', fake_redis, failure_threshold=5)
        assert isinstance(breaker, CircuitBreaker)
        assert breaker.failure_threshold == 5
        assert get_breaker('crm_webhook') is breaker


def test_open_error_carries_retry_after():
    err = CircuitOpenError('hubspot', retry_after=42.4)
    assert (err.name, err.retry_after) == ('hubspot', 42.4)
    assert str(err) == "Circuit 'hubspot' is open, retry in 42s"
