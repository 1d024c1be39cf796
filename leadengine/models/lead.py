"""
Lead model — one row per buyer, owned by the CRM.

Column names follow the CRM's storage schema (uk_broker, timeline_to_purchase,
agent_transcript...). The normalizer maps them onto LeadRecord. Scoring only
ever writes the SCORE_FIELDS namespace.
"""
import uuid

from sqlalchemy import Column, Integer, Text, Boolean, DateTime, JSON, ForeignKey, Index
from sqlalchemy.orm import validates
from sqlalchemy.sql import func

from leadengine.config import LEAD_STATUSES
from leadengine.database import Base

# Columns the scoring engine is allowed to write
SCORE_FIELDS = (
    'ai_quality_score',
    'ai_intent_score',
    'ai_confidence',
    'ai_classification',
    'ai_priority',
    'ai_risk_flags',
    'ai_is_fake',
    'ai_fake_flags',
    'ai_next_action',
    'ai_summary',
    'ai_scored_at',
    'quality_score',
    'intent_score',
)


class Lead(Base):
    __tablename__ = 'leads'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(Text, ForeignKey('companies.id'), nullable=True)

    first_name = Column(Text, nullable=True)
    last_name = Column(Text, nullable=True)
    full_name = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    country = Column(Text, nullable=True)

    budget_range = Column(Text, nullable=True)
    budget_min = Column(Integer, nullable=True)
    budget_max = Column(Integer, nullable=True)
    preferred_bedrooms = Column(Integer, nullable=True)
    preferred_location = Column(Text, nullable=True)
    purchase_purpose = Column(Text, nullable=True)
    timeline_to_purchase = Column(Text, nullable=True)
    ready_within_28_days = Column(Boolean, default=False)

    payment_method = Column(Text, nullable=True)
    mortgage_status = Column(Text, nullable=True)
    proof_of_funds = Column(Boolean, default=False)
    uk_broker = Column(Text, default='unknown')
    uk_solicitor = Column(Text, default='unknown')

    replied = Column(Boolean, default=False)
    last_contact_at = Column(DateTime(timezone=True), nullable=True)
    viewing_booked = Column(Boolean, default=False)
    viewing_intent_confirmed = Column(Boolean, default=False)
    agent_transcript = Column(Text, nullable=True)
    stop_comms = Column(Boolean, default=False)

    source_platform = Column(Text, nullable=True)
    source_campaign = Column(Text, nullable=True)
    development_id = Column(Text, nullable=True)
    development_name = Column(Text, nullable=True)
    is_test = Column(Boolean, default=False)
    honeypot = Column(Text, nullable=True)  # Hidden form field; any value marks a bot submission
    extra_data = Column(JSON, nullable=True)

    status = Column(Text, nullable=False, default=LEAD_STATUSES[0])
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    status_changed_at = Column(DateTime(timezone=True), nullable=True)

    # ── Score namespace ──────────────────────────────────────────────────
    ai_quality_score = Column(Integer, nullable=True)
    ai_intent_score = Column(Integer, nullable=True)
    ai_confidence = Column(Integer, nullable=True)  # 0–10 confidence × 10
    ai_classification = Column(Text, nullable=True)
    ai_priority = Column(Text, nullable=True)
    ai_risk_flags = Column(JSON, nullable=True)
    ai_is_fake = Column(Boolean, nullable=True)
    ai_fake_flags = Column(JSON, nullable=True)
    ai_next_action = Column(Text, nullable=True)
    ai_summary = Column(Text, nullable=True)
    ai_scored_at = Column(DateTime(timezone=True), nullable=True)
    quality_score = Column(Integer, nullable=True)
    intent_score = Column(Integer, nullable=True)

    __table_args__ = (
        Index('ix_leads_company_created', 'company_id', 'created_at'),
        Index('ix_leads_ai_scored_at', 'ai_scored_at'),
    )

    @validates('id')
    def _validate_id(self, key, value):
        if self.id is not None and value != self.id:
            raise ValueError(f'Lead id is immutable ({self.id!r} → {value!r})')
        return value

    @validates('status')
    def _validate_status(self, key, value):
        if value not in LEAD_STATUSES:
            raise ValueError(f'Unknown lead status {value!r}')
        return value

    def to_dict(self):
        """Column values keyed by column name; input for normalize_lead()."""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}
