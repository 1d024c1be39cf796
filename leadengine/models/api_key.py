"""
ApiKey model — external API credentials.

Only the SHA-256 hash of the secret is stored. Keys are revoked by flipping
is_active, never deleted, so usage rows always resolve to a key.
"""
import uuid

from sqlalchemy import Column, Integer, Text, Boolean, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func

from leadengine.database import Base


class ApiKey(Base):
    __tablename__ = 'api_keys'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(Text, ForeignKey('companies.id'), nullable=False, index=True)
    name = Column(Text, nullable=False)
    key_prefix = Column(Text, nullable=False)  # Safe to display / log
    key_hash = Column(Text, nullable=False, unique=True)
    permissions = Column(JSON, nullable=False, default=dict)  # {'score_single': True, ...}
    rate_limit_per_minute = Column(Integer, nullable=False, default=60)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'name': self.name,
            'key_prefix': self.key_prefix,
            'permissions': dict(self.permissions or {}),
            'rate_limit_per_minute': self.rate_limit_per_minute,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'last_used_at': self.last_used_at.isoformat() if self.last_used_at else None,
            'revoked_at': self.revoked_at.isoformat() if self.revoked_at else None,
        }
