"""
Redis-backed circuit breaker for outbound CRM calls.

States:
  - closed     → calls pass through
  - open       → failure threshold reached, calls short-circuit with CircuitOpenError
  - half_open  → reset_timeout elapsed since the last failure, next call is a trial

State lives in Redis so every gunicorn worker sees the same breaker. If Redis
itself is unreachable the breaker reports closed and lets calls through.
"""
import logging
import time

from redis.exceptions import RedisError

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


class CircuitOpenError(Exception):
    """Raised instead of calling through an open breaker."""

    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit '{name}' is open, retry in {retry_after or 0:.0f}s")


class CircuitBreaker:
    """
    Usage:
        breaker = CircuitBreaker('hubspot', redis_client, failure_threshold=3, reset_timeout=180)
        response = breaker.call(requests.post, url, json=body, timeout=10)
    """

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=180):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout

    def _key(self, suffix):
        return f'breaker:{self.name}:{suffix}'

    def _seconds_since_failure(self):
        last = self.redis.get(self._key('opened_at'))
        return time.time() - float(last) if last else None

    @property
    def state(self):
        try:
            current = self.redis.get(self._key('state')) or CLOSED
            if current == OPEN:
                elapsed = self._seconds_since_failure()
                if elapsed is not None and elapsed >= self.reset_timeout:
                    self.redis.set(self._key('state'), HALF_OPEN)
                    return HALF_OPEN
            return current
        except RedisError:
            return CLOSED

    @property
    def failure_count(self):
        try:
            return int(self.redis.get(self._key('failures')) or 0)
        except RedisError:
            return 0

    def call(self, func, *args, **kwargs):
        """Run func through the breaker; re-raises whatever func raises."""
        if self.state == OPEN:
            try:
                elapsed = self._seconds_since_failure() or 0
            except RedisError:
                elapsed = 0
            raise CircuitOpenError(self.name, retry_after=max(0, self.reset_timeout - elapsed))

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._record_failure(e)
            raise
        self._record_success()
        return result

    def _record_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.hincrby(self._key('health'), 'success', 1)
            pipe.hset(self._key('health'), 'last_success', str(time.time()))
            pipe.execute()
        except RedisError as e:
            logger.warning("Breaker '%s' could not record success: %s", self.name, e)

    def _record_failure(self, error):
        try:
            failures = self.redis.incr(self._key('failures'))
            pipe = self.redis.pipeline()
            pipe.hincrby(self._key('health'), 'failure', 1)
            pipe.hset(self._key('health'), 'last_failure', str(time.time()))
            pipe.hset(self._key('health'), 'last_error', str(error)[:200])
            if failures >= self.failure_threshold:
                pipe.set(self._key('state'), OPEN)
                pipe.set(self._key('opened_at'), str(time.time()))
            pipe.execute()
        except RedisError as e:
            logger.warning("Breaker '%s' could not record failure: %s", self.name, e)
            return

        if failures >= self.failure_threshold:
            logger.warning("Circuit '%s' opened after %d failures: %s", self.name, failures, error)
        else:
            logger.info("Circuit '%s' failure %d/%d: %s", self.name, failures, self.failure_threshold, error)

    def get_health(self):
        """State + counters for /api/health."""
        try:
            data = self.redis.hgetall(self._key('health')) or {}
        except RedisError:
            data = {}
        return {
            'name': self.name,
            'state': self.state,
            'failure_count': self.failure_count,
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
            'total_success': int(data.get('success', 0)),
            'total_failure': int(data.get('failure', 0)),
            'last_error': data.get('last_error', ''),
        }

    def reset(self):
        try:
            self.redis.delete(self._key('state'), self._key('failures'), self._key('opened_at'))
            logger.info("Circuit '%s' manually reset", self.name)
        except RedisError as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)


# ── Registry ──────────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name, redis_client=None, **kwargs):
    """Named breaker singleton. Falls back to the shared Redis client."""
    if name not in _registry:
        if redis_client is None:
            from leadengine.extensions import redis_client
        _registry[name] = CircuitBreaker(name, redis_client, **kwargs)
    return _registry[name]


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """Register breakers for every outbound integration."""
    breakers = {
        'hubspot': CircuitBreaker('hubspot', redis_client, failure_threshold=3, reset_timeout=180),
    }
    _registry.update(breakers)
    return breakers
