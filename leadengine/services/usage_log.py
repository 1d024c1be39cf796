"""
Usage logger — one append-only row per external API call attempt.

Writes are best-effort: a failed insert is logged and swallowed so auditing
can never turn a successful scoring call into a 500.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from leadengine.errors import Result, PersistenceFailure
from leadengine.models.usage_log import UsageLogEntry

logger = logging.getLogger('services.usage_log')


class UsageLogger:

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def record(self, api_key_id: str, endpoint: str, http_method: str,
               status_code: int, response_time_ms: int) -> bool:
        session = self._session_factory()
        try:
            session.add(UsageLogEntry(
                api_key_id=api_key_id,
                endpoint=endpoint,
                http_method=http_method,
                status_code=status_code,
                response_time_ms=response_time_ms,
                created_at=datetime.now(timezone.utc),
            ))
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Failed to log API usage for key %s %s %s: %s",
                         api_key_id, http_method, endpoint, e)
            return False
        finally:
            session.close()

    def count_since(self, api_key_id: str, since: datetime) -> Result:
        """Calls logged for a key since `since`, for the rate-limit fallback bookkeeping."""
        session = self._session_factory()
        try:
            count = session.scalar(
                select(func.count(UsageLogEntry.id)).where(
                    UsageLogEntry.api_key_id == api_key_id,
                    UsageLogEntry.created_at >= since,
                )
            )
            return Result.success(count or 0)
        except SQLAlchemyError as e:
            logger.error("Usage count failed for key %s: %s", api_key_id, e)
            return Result.failure(PersistenceFailure('Usage count failed'))
        finally:
            session.close()
