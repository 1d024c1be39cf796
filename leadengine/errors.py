"""
Error taxonomy + Result type used at I/O boundaries.

Calculators never raise. Store and CRM calls return a Result instead of
raising so batch callers can fold failures into per-lead error entries.
Routes raise LeadEngineError subclasses for request-level problems and the
gateway turns them into JSON responses.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


class LeadEngineError(Exception):
    """Base class; carries the HTTP status the gateway responds with."""
    status_code = 500
    code = 'internal_error'

    def __init__(self, message: str = '', **details):
        self.message = message or self.__class__.__name__
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {'error': self.message, 'code': self.code}
        body.update(self.details)
        return body


class ValidationError(LeadEngineError):
    status_code = 400
    code = 'validation_error'


class AuthError(LeadEngineError):
    status_code = 401
    code = 'unauthorized'


class PermissionDenied(AuthError):
    status_code = 403
    code = 'forbidden'


class RateLimitError(LeadEngineError):
    status_code = 429
    code = 'rate_limited'

    def __init__(self, message: str = 'Rate limit exceeded', limit: int = 0, retry_after: int = 0):
        super().__init__(message, limit=limit, remaining=0, retry_after=retry_after)
        self.limit = limit
        self.retry_after = retry_after


class ScoringFailure(LeadEngineError):
    code = 'scoring_failed'


class PersistenceFailure(LeadEngineError):
    code = 'persistence_failed'


class IntegrationFailure(LeadEngineError):
    status_code = 502
    code = 'integration_failed'


@dataclass
class Result:
    """Outcome of an I/O call: either a value or a taxonomy error."""
    ok: bool
    value: Any = None
    error: Optional[LeadEngineError] = None

    @classmethod
    def success(cls, value=None) -> 'Result':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: LeadEngineError) -> 'Result':
        return cls(ok=False, error=error)
