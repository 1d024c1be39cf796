"""
Shared client instances — Redis, plus the per-app service container.

redis.from_url() does not connect until the first command, so importing this
module is always safe (even when Redis is down during tests).
"""
from dataclasses import dataclass
from typing import Any

import redis

from leadengine.config import REDIS_URL


# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL, decode_responses=True)


# ── Service container ─────────────────────────────────────────────────────────
@dataclass
class Services:
    """Per-app service handles, stored on app.extensions['leadengine']."""
    store: Any
    api_keys: Any
    usage_logger: Any
    rate_limiter: Any
    gateway: Any
    orchestrator: Any
    redis: Any


def build_services(session_factory, redis_conn) -> Services:
    from leadengine.services.api_keys import ApiKeyService
    from leadengine.services.gateway import ApiGateway
    from leadengine.services.orchestrator import RescoreOrchestrator
    from leadengine.services.rate_limiter import RateLimiter
    from leadengine.services.store import LeadStore
    from leadengine.services.usage_log import UsageLogger

    store = LeadStore(session_factory)
    api_keys = ApiKeyService(session_factory)
    usage_logger = UsageLogger(session_factory)
    rate_limiter = RateLimiter(redis_conn, usage_logger=usage_logger)
    return Services(
        store=store,
        api_keys=api_keys,
        usage_logger=usage_logger,
        rate_limiter=rate_limiter,
        gateway=ApiGateway(api_keys, rate_limiter, usage_logger),
        orchestrator=RescoreOrchestrator(store),
        redis=redis_conn,
    )
