"""
API key lifecycle — issue, look up, revoke.

Keys look like nb_live_<32 url-safe chars>. Only the SHA-256 hex digest is
stored; the plaintext is returned once from create_api_key() and never again.
key_prefix (first 12 chars) is what shows up in the UI and in logs.
"""
import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from leadengine.config import (
    API_KEY_PREFIX, API_KEY_DISPLAY_CHARS, API_PERMISSIONS, DEFAULT_RATE_LIMIT_PER_MINUTE,
)
from leadengine.errors import Result, PersistenceFailure, ValidationError
from leadengine.models.api_key import ApiKey

logger = logging.getLogger('services.api_keys')


def generate_api_key() -> str:
    return API_KEY_PREFIX + secrets.token_urlsafe(32)[:32]


def hash_api_key(key: str) -> str:
    return hashlib.sha256(key.encode('utf-8')).hexdigest()


def default_permissions() -> Dict[str, bool]:
    return {name: True for name in API_PERMISSIONS}


class ApiKeyService:
    """ApiKey persistence. Takes a session factory like LeadStore does."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def create_api_key(self, company_id: str, name: str, permissions: Optional[Dict[str, bool]] = None,
                       rate_limit_per_minute: Optional[int] = None) -> Result:
        """Issue a new key. Result.value is (ApiKey dict, plaintext key)."""
        if not company_id or not name:
            return Result.failure(ValidationError('company_id and name are required'))
        perms = default_permissions()
        if permissions:
            unknown = set(permissions) - set(API_PERMISSIONS)
            if unknown:
                return Result.failure(ValidationError(f"Unknown permissions: {', '.join(sorted(unknown))}"))
            perms.update({k: bool(v) for k, v in permissions.items()})
        rate_limit = rate_limit_per_minute or DEFAULT_RATE_LIMIT_PER_MINUTE
        if not isinstance(rate_limit, int) or rate_limit < 1:
            return Result.failure(ValidationError('rate_limit_per_minute must be a positive integer'))

        plaintext = generate_api_key()
        session = self._session_factory()
        try:
            api_key = ApiKey(
                company_id=company_id,
                name=name,
                key_prefix=plaintext[:API_KEY_DISPLAY_CHARS],
                key_hash=hash_api_key(plaintext),
                permissions=perms,
                rate_limit_per_minute=rate_limit,
                is_active=True,
            )
            session.add(api_key)
            session.commit()
            logger.info("Issued API key %s (%s) for company %s", api_key.id, api_key.key_prefix, company_id)
            return Result.success((api_key.to_dict(), plaintext))
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Failed to create API key for company %s: %s", company_id, e, exc_info=True)
            return Result.failure(PersistenceFailure('Failed to create API key'))
        finally:
            session.close()

    def lookup(self, plaintext: str) -> Result:
        """Find a key by the hash of its plaintext. value is an ApiKey dict or None."""
        session = self._session_factory()
        try:
            api_key = session.scalars(
                select(ApiKey).where(ApiKey.key_hash == hash_api_key(plaintext))
            ).first()
            return Result.success(api_key.to_dict() if api_key else None)
        except SQLAlchemyError as e:
            logger.error("API key lookup failed: %s", e, exc_info=True)
            return Result.failure(PersistenceFailure('API key lookup failed'))
        finally:
            session.close()

    def touch(self, key_id: str) -> None:
        """Record last_used_at. Best-effort, a failure here never fails the request."""
        session = self._session_factory()
        try:
            api_key = session.get(ApiKey, key_id)
            if api_key is not None:
                api_key.last_used_at = datetime.now(timezone.utc)
                session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning("Could not update last_used_at for key %s: %s", key_id, e)
        finally:
            session.close()

    def list_keys(self, company_id: str) -> Result:
        session = self._session_factory()
        try:
            keys: List[ApiKey] = session.scalars(
                select(ApiKey).where(ApiKey.company_id == company_id).order_by(ApiKey.created_at)
            ).all()
            return Result.success([k.to_dict() for k in keys])
        except SQLAlchemyError as e:
            logger.error("Listing API keys failed: %s", e, exc_info=True)
            return Result.failure(PersistenceFailure('Failed to list API keys'))
        finally:
            session.close()

    def revoke(self, key_id: str) -> Result:
        """Deactivate a key. Irreversible; the row is kept for audit."""
        session = self._session_factory()
        try:
            api_key = session.get(ApiKey, key_id)
            if api_key is None:
                return Result.success(None)
            if api_key.is_active:
                api_key.is_active = False
                api_key.revoked_at = datetime.now(timezone.utc)
                session.commit()
                logger.info("Revoked API key %s (%s)", key_id, api_key.key_prefix)
            return Result.success(api_key.to_dict())
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Failed to revoke API key %s: %s", key_id, e, exc_info=True)
            return Result.failure(PersistenceFailure('Failed to revoke API key'))
        finally:
            session.close()


def split_bearer(header: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """'Bearer <token>' → (token, None) or (None, reason)."""
    if not header:
        return None, 'Missing Authorization header'
    scheme, _, token = header.strip().partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None, 'Authorization header must be "Bearer <api key>"'
    token = token.strip()
    if not token.startswith(API_KEY_PREFIX):
        return None, 'Invalid API key format'
    return token, None
