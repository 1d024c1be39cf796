"""
Per-key sliding-window rate limiter (Redis sorted sets).

Each API key gets a sorted set ratelimit:{key_id} of request timestamps.
A single MULTI/EXEC pipeline trims entries older than the window, adds this
request, counts the set and refreshes the TTL, so concurrent requests can't
both squeeze under the limit. A request that lands over the limit removes
its own entry again, which means rejected calls don't eat into the quota.

If Redis is unreachable the limiter falls back to counting usage-log rows in
the window; if that fails too the request is allowed through.
"""
import logging
import math
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from redis.exceptions import RedisError

from leadengine.config import RATE_LIMIT_WINDOW_SECONDS

logger = logging.getLogger('services.rate_limiter')


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0


class RateLimiter:

    def __init__(self, redis_client, usage_logger=None, window_seconds=RATE_LIMIT_WINDOW_SECONDS, clock=time.time):
        self.redis = redis_client
        self.usage_logger = usage_logger
        self.window = window_seconds
        self.clock = clock

    def _key(self, key_id):
        return f'ratelimit:{key_id}'

    def hit(self, key_id: str, limit: int) -> RateLimitDecision:
        """Count one request against the key and decide whether it may proceed."""
        now = self.clock()
        key = self._key(key_id)
        member = f'{now:.6f}:{uuid.uuid4().hex[:8]}'
        try:
            pipe = self.redis.pipeline(transaction=True)
            pipe.zremrangebyscore(key, 0, now - self.window)
            pipe.zadd(key, {member: now})
            pipe.zcard(key)
            pipe.expire(key, self.window)
            _, _, count, _ = pipe.execute()

            if count > limit:
                self.redis.zrem(key, member)
                return RateLimitDecision(False, limit, 0, self._retry_after(key, now))
            return RateLimitDecision(True, limit, max(0, limit - count))
        except RedisError as e:
            logger.warning("Rate limiter Redis error for key %s, using usage log: %s", key_id, e)
            return self._fallback(key_id, limit)

    def peek(self, key_id: str, limit: int) -> int:
        """Remaining quota without consuming any."""
        now = self.clock()
        key = self._key(key_id)
        try:
            pipe = self.redis.pipeline(transaction=True)
            pipe.zremrangebyscore(key, 0, now - self.window)
            pipe.zcard(key)
            _, count = pipe.execute()
            return max(0, limit - count)
        except RedisError as e:
            logger.warning("Rate limiter peek failed for key %s: %s", key_id, e)
            return limit

    def _retry_after(self, key, now) -> int:
        oldest = self.redis.zrange(key, 0, 0, withscores=True)
        if not oldest:
            return self.window
        return max(1, math.ceil(oldest[0][1] + self.window - now))

    def _fallback(self, key_id, limit) -> RateLimitDecision:
        if self.usage_logger is None:
            return RateLimitDecision(True, limit, limit)
        since = datetime.now(timezone.utc) - timedelta(seconds=self.window)
        counted = self.usage_logger.count_since(key_id, since)
        if not counted.ok:
            return RateLimitDecision(True, limit, limit)
        used = counted.value + 1
        if used > limit:
            return RateLimitDecision(False, limit, 0, self.window)
        return RateLimitDecision(True, limit, limit - used)
