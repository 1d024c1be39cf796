"""
ScoredLead — result of an external /score call, upserted per external lead.
"""
from sqlalchemy import Column, Integer, Float, Text, Boolean, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func

from leadengine.database import Base


class ScoredLead(Base):
    __tablename__ = 'scored_leads'

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Text, nullable=False)
    external_id = Column(Text, nullable=False)
    external_source = Column(Text, nullable=False, default='api')
    request_payload = Column(JSON, nullable=True)
    quality_score = Column(Integer, nullable=True)
    intent_score = Column(Integer, nullable=True)
    confidence_score = Column(Float, nullable=True)
    classification = Column(Text, nullable=True)
    priority = Column(Text, nullable=True)
    is_fake_lead = Column(Boolean, default=False)
    risk_flags = Column(JSON, nullable=True)
    model_version = Column(Text, nullable=True)
    scored_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('company_id', 'external_id', 'external_source', name='uq_scored_lead_external'),
    )
