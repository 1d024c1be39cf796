"""
API key gateway — the fixed request pipeline for external endpoints.

    extract bearer token → look up key by hash → reject missing/invalid/revoked (401)
    → check permission flag (403) → sliding-window rate check (429)
    → run the view → log usage → respond

Usage is logged on every branch where a key could be resolved, including
rejections. Every response carries X-RateLimit-Remaining.

Views opt in with the decorator:

    @bp.route('/score', methods=['POST'])
    @api_key_required('score_single')
    def score(): ...

and read the authenticated key from flask.g.api_key.
"""
import logging
import time
from functools import wraps

from flask import current_app, g, jsonify, make_response, request
from werkzeug.exceptions import HTTPException

from leadengine.errors import AuthError, LeadEngineError, PermissionDenied, RateLimitError
from leadengine.services.api_keys import split_bearer

logger = logging.getLogger('services.gateway')


class ApiGateway:

    def __init__(self, api_keys, rate_limiter, usage_logger):
        self.api_keys = api_keys
        self.rate_limiter = rate_limiter
        self.usage_logger = usage_logger

    def handle(self, permission, view, *args, **kwargs):
        started = time.monotonic()
        key = None
        remaining = 0

        try:
            token, problem = split_bearer(request.headers.get('Authorization'))
            if problem:
                raise AuthError(problem)

            found = self.api_keys.lookup(token)
            if not found.ok:
                raise found.error
            key = found.value
            if key is None:
                raise AuthError('Invalid API key')
            if not key['is_active']:
                raise AuthError('API key has been revoked')

            if not key['permissions'].get(permission):
                remaining = self.rate_limiter.peek(key['id'], key['rate_limit_per_minute'])
                raise PermissionDenied(f'API key does not have {permission} permission')

            decision = self.rate_limiter.hit(key['id'], key['rate_limit_per_minute'])
            remaining = decision.remaining
            if not decision.allowed:
                raise RateLimitError(limit=decision.limit, retry_after=decision.retry_after)

            g.api_key = key
            response = make_response(view(*args, **kwargs))

        except LeadEngineError as e:
            response = make_response(jsonify(e.to_dict()), e.status_code)
            if isinstance(e, RateLimitError):
                response.headers['Retry-After'] = str(e.retry_after)
        except HTTPException as e:
            response = make_response(jsonify({'error': e.description, 'code': e.name}), e.code)
        except Exception:
            logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=True)
            response = make_response(jsonify({'error': 'Internal server error', 'code': 'internal_error'}), 500)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        response.headers['X-RateLimit-Remaining'] = str(remaining)
        response.headers['X-Response-Time'] = f'{elapsed_ms}ms'
        if key is not None:
            response.headers['X-RateLimit-Limit'] = str(key['rate_limit_per_minute'])
            self.usage_logger.record(key['id'], request.path, request.method, response.status_code, elapsed_ms)
            if response.status_code < 400:
                self.api_keys.touch(key['id'])
        else:
            logger.info("Rejected unauthenticated %s %s: %s", request.method, request.path, response.status_code)
        return response


def api_key_required(permission):
    """Wrap a view in the gateway pipeline for the given permission flag."""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            gateway = current_app.extensions['leadengine'].gateway
            return gateway.handle(permission, view, *args, **kwargs)
        return wrapper
    return decorator
