"""
Lead store — SQLAlchemy implementation of the record-store interface.

Every method opens its own session (safe to call from worker threads) and
returns a Result: store errors become PersistenceFailure values instead of
propagating, so batch callers can isolate them per lead.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from leadengine.errors import Result, PersistenceFailure, ValidationError
from leadengine.models.company import Company, Development
from leadengine.models.lead import Lead, SCORE_FIELDS
from leadengine.models.scored_lead import ScoredLead
from leadengine.scoring.base import LeadRecord, ScoreResult

logger = logging.getLogger('services.store')

# LeadRecord attribute → leads column, where the names differ
RECORD_COLUMNS = {
    'bedrooms': 'preferred_bedrooms',
    'timeline': 'timeline_to_purchase',
    'broker_status': 'uk_broker',
    'solicitor_status': 'uk_solicitor',
    'transcript': 'agent_transcript',
    'source': 'source_platform',
    'campaign_id': 'source_campaign',
}

_SKIP_ON_CREATE = {'id', 'company_id', 'created_at', 'updated_at', 'status_changed_at'}


class LeadStore:
    """Record store handle, injected into the orchestrator and routes."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def _fail(self, session, action: str, error: Exception) -> Result:
        session.rollback()
        logger.error("Store %s failed: %s", action, error, exc_info=True)
        return Result.failure(PersistenceFailure(f'{action} failed: {error}'))

    # ── Reads ─────────────────────────────────────────────────────────────

    def fetch_page(self, company_id: Optional[str] = None, limit: int = 100, offset: int = 0,
                   force: bool = True, buyer_ids: Optional[List[str]] = None) -> Result:
        """One page of leads as dicts, oldest first."""
        session = self._session_factory()
        try:
            stmt = select(Lead)
            if company_id:
                stmt = stmt.where(Lead.company_id == company_id)
            if buyer_ids:
                stmt = stmt.where(Lead.id.in_(buyer_ids))
            if not force:
                stmt = stmt.where(Lead.ai_scored_at.is_(None))
            stmt = stmt.order_by(Lead.created_at, Lead.id).offset(offset).limit(limit)
            return Result.success([lead.to_dict() for lead in session.scalars(stmt)])
        except SQLAlchemyError as e:
            return self._fail(session, 'fetch_page', e)
        finally:
            session.close()

    def get_leads(self, company_id: Optional[str], ids: List[str]) -> Result:
        """Leads by id scoped to one tenant as {id: lead dict}. Missing ids are absent."""
        session = self._session_factory()
        try:
            stmt = select(Lead).where(Lead.id.in_(ids))
            if company_id:
                stmt = stmt.where(Lead.company_id == company_id)
            return Result.success({lead.id: lead.to_dict() for lead in session.scalars(stmt)})
        except SQLAlchemyError as e:
            return self._fail(session, 'get_leads', e)
        finally:
            session.close()

    def list_developments(self, company_id: Optional[str]) -> Result:
        """Active developments for inventory-fit matching."""
        if not company_id:
            return Result.success([])
        session = self._session_factory()
        try:
            stmt = select(Development).where(
                Development.company_id == company_id,
                Development.is_active.is_(True),
            )
            return Result.success([d.to_dict() for d in session.scalars(stmt)])
        except SQLAlchemyError as e:
            return self._fail(session, 'list_developments', e)
        finally:
            session.close()

    def get_company(self, company_id: str) -> Result:
        session = self._session_factory()
        try:
            company = session.get(Company, company_id)
            if company is None:
                return Result.success(None)
            return Result.success({
                'id': company.id,
                'name': company.name,
                'hubspot_access_token': company.hubspot_access_token,
            })
        except SQLAlchemyError as e:
            return self._fail(session, 'get_company', e)
        finally:
            session.close()

    def score_status(self, company_id: Optional[str] = None) -> Result:
        """Scored / unscored counts and the classification histogram."""
        session = self._session_factory()
        try:
            scope = [Lead.company_id == company_id] if company_id else []
            total = session.scalar(select(func.count(Lead.id)).where(*scope)) or 0
            scored = session.scalar(
                select(func.count(Lead.id)).where(*scope, Lead.ai_scored_at.is_not(None))
            ) or 0
            rows = session.execute(
                select(Lead.ai_classification, func.count(Lead.id))
                .where(*scope, Lead.ai_classification.is_not(None))
                .group_by(Lead.ai_classification)
            ).all()
            return Result.success({
                'total': total,
                'scored': scored,
                'unscored': total - scored,
                'classificationDistribution': {c: n for c, n in rows},
            })
        except SQLAlchemyError as e:
            return self._fail(session, 'score_status', e)
        finally:
            session.close()

    # ── Writes ────────────────────────────────────────────────────────────

    def update_scores(self, lead_id: str, fields: Dict[str, Any]) -> Result:
        """Merge score fields onto a lead. Anything outside SCORE_FIELDS is ignored."""
        session = self._session_factory()
        try:
            lead = session.get(Lead, lead_id)
            if lead is None:
                return Result.failure(PersistenceFailure(f'Lead {lead_id} not found'))
            for key, value in fields.items():
                if key in SCORE_FIELDS:
                    setattr(lead, key, value)
            session.commit()
            return Result.success(lead_id)
        except SQLAlchemyError as e:
            return self._fail(session, 'update_scores', e)
        finally:
            session.close()

    def create_lead(self, company_id: Optional[str], record: LeadRecord, extra: Dict[str, Any] = None) -> Result:
        """Insert a new lead from a normalized record. Returns the new lead dict."""
        session = self._session_factory()
        try:
            columns = {}
            for name in LeadRecord.__dataclass_fields__:
                if name in _SKIP_ON_CREATE:
                    continue
                value = getattr(record, name)
                if value is not None:
                    columns[RECORD_COLUMNS.get(name, name)] = value
            lead = Lead(company_id=company_id, extra_data=extra or None,
                        status_changed_at=datetime.now(timezone.utc), **columns)
            session.add(lead)
            session.commit()
            return Result.success(lead.to_dict())
        except (SQLAlchemyError, ValueError, OverflowError) as e:
            return self._fail(session, 'create_lead', e)
        finally:
            session.close()

    def save_scored_lead(self, company_id: str, external_id: str, external_source: str,
                         payload: Dict[str, Any], result: ScoreResult) -> Result:
        """Upsert the result of an external /score call."""
        if not external_id:
            return Result.failure(ValidationError('external_id is required'))
        session = self._session_factory()
        try:
            row = session.scalars(select(ScoredLead).where(
                ScoredLead.company_id == company_id,
                ScoredLead.external_id == external_id,
                ScoredLead.external_source == external_source,
            )).first()
            if row is None:
                row = ScoredLead(company_id=company_id, external_id=external_id,
                                 external_source=external_source)
                session.add(row)
            row.request_payload = payload
            row.quality_score = result.quality_score
            row.intent_score = result.intent_score
            row.confidence_score = result.confidence_score
            row.classification = result.classification
            row.priority = result.priority
            row.is_fake_lead = result.is_fake
            row.risk_flags = list(result.risk_flags)
            row.model_version = result.model_version
            row.scored_at = result.scored_at
            session.commit()
            return Result.success(row.id)
        except SQLAlchemyError as e:
            return self._fail(session, 'save_scored_lead', e)
        finally:
            session.close()
