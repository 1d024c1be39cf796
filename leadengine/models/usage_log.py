"""
UsageLogEntry — append-only row per external API call attempt.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from leadengine.database import Base


class UsageLogEntry(Base):
    __tablename__ = 'api_usage_log'

    id = Column(Integer, primary_key=True, autoincrement=True)
    api_key_id = Column(Text, ForeignKey('api_keys.id'), nullable=False)
    endpoint = Column(Text, nullable=False)
    http_method = Column(Text, nullable=False)
    status_code = Column(Integer, nullable=False)
    response_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_api_usage_key_created', 'api_key_id', 'created_at'),
    )
