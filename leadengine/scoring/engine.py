"""
Scoring engine — runs the full pipeline for one lead.

raw dict → normalize → quality / intent / confidence / fake-lead check
(independent of each other) → classify → priority, risk flags, next action.

to_storage_fields() is the one place a ScoreResult is mapped onto the
persisted ai_* columns.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional

from leadengine.config import MODEL_VERSION
from leadengine.scoring.base import LeadRecord, ScoreResult
from leadengine.scoring.classifier import classify, priority_for, next_action_for
from leadengine.scoring.confidence import calculate_confidence
from leadengine.scoring.config import load_scoring_config
from leadengine.scoring.intent import calculate_intent, timeline_band, TIMELINE_LABELS
from leadengine.scoring.normalizer import normalize_lead
from leadengine.scoring.quality import calculate_quality
from leadengine.scoring.spam import detect_fake_lead

logger = logging.getLogger('scoring.engine')

UK_COUNTRIES = {'uk', 'united kingdom', 'gb', 'great britain', 'england', 'scotland', 'wales', 'northern ireland'}


def build_risk_flags(record: LeadRecord, confidence: float, is_fake: bool,
                     cfg: Dict[str, Any], now: datetime) -> List[str]:
    """Named risk flags for operators. Returned sorted; order carries no meaning."""
    flags = set()
    financial = cfg['quality']['financial']

    if record.stop_comms:
        flags.add('stop_comms')
    if is_fake:
        flags.add('fake_lead_suspected')
    if record.payment_method == 'mortgage':
        if record.mortgage_status == 'declined':
            flags.add('mortgage_declined')
        elif record.mortgage_status != 'approved':
            flags.add('mortgage_not_approved')
        if record.broker_status in ('no', 'unknown'):
            flags.add('mortgage_without_broker')
    if record.payment_method == 'cash' and not record.proof_of_funds:
        flags.add('no_proof_of_funds')
    if record.country and record.country.strip().lower() not in UK_COUNTRIES:
        flags.add('international_buyer')
    if not record.email and not record.phone:
        flags.add('limited_contact_info')
    if timeline_band(record) is None:
        flags.add('timeline_unknown')
    if confidence < cfg['classification']['min_confidence']:
        flags.add('low_confidence')

    budget = record.budget
    if (budget and budget >= financial['mismatch_min_budget']
            and record.bedrooms is not None and record.bedrooms <= financial['mismatch_max_bedrooms']):
        flags.add('budget_mismatch')

    last_activity = record.last_contact_at or record.updated_at or record.created_at
    if last_activity is not None and (now - last_activity).days > cfg['risk']['stale_after_days']:
        flags.add('stale_lead')

    return sorted(flags)


def build_summary(record: LeadRecord, result_fields: Dict[str, Any]) -> str:
    """One-line deterministic summary shown next to the scores."""
    name = record.full_name or 'Unknown buyer'
    band = timeline_band(record)
    parts = [
        f"{name}: {result_fields['classification'].replace('_', ' ')}",
        f"Q{result_fields['quality']}/I{result_fields['intent']}/C{result_fields['confidence']}",
        TIMELINE_LABELS[band] if band else 'timeline unknown',
    ]
    if record.payment_method:
        parts.append(f'{record.payment_method} buyer')
    if record.preferred_location:
        parts.append(f'wants {record.preferred_location}')
    return ' · '.join(parts)


def score_lead(record: LeadRecord, developments: Optional[List[Dict]] = None,
               now: datetime = None, config: Dict = None) -> ScoreResult:
    """Score a normalized lead. Pure apart from reading the clock when `now` is None."""
    cfg = config or load_scoring_config()
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    quality = calculate_quality(record, developments, config=cfg)
    intent = calculate_intent(record, now=now, config=cfg)
    confidence = calculate_confidence(record, config=cfg)
    fake = detect_fake_lead(record)

    classification = classify(
        quality.total, intent.total, confidence.total, fake.is_fake, record,
        thresholds=cfg.get('classification'),
    )
    priority, response_time = priority_for(classification)

    summary = build_summary(record, {
        'classification': classification,
        'quality': int(quality.total),
        'intent': int(intent.total),
        'confidence': confidence.total,
    })

    return ScoreResult(
        quality=quality,
        intent=intent,
        confidence=confidence,
        classification=classification,
        priority=priority,
        response_time=response_time,
        risk_flags=build_risk_flags(record, confidence.total, fake.is_fake, cfg, now),
        is_fake=fake.is_fake,
        fake_flags=fake.flags,
        is_28_day_buyer=timeline_band(record) == 'within_28_days',
        next_action=next_action_for(classification),
        summary=summary,
        model_version=MODEL_VERSION,
        scored_at=now,
    )


def score_raw(raw: Dict[str, Any], developments: Optional[List[Dict]] = None,
              now: datetime = None, config: Dict = None) -> ScoreResult:
    """Normalize then score an arbitrary lead dict."""
    return score_lead(normalize_lead(raw), developments, now=now, config=config)


def to_storage_fields(result: ScoreResult) -> Dict[str, Any]:
    """Score namespace written onto a lead, merged, never replacing the record."""
    return {
        'ai_quality_score': result.quality_score,
        'ai_intent_score': result.intent_score,
        'ai_confidence': int(round(result.confidence_score * 10)),
        'ai_classification': result.classification,
        'ai_priority': result.priority,
        'ai_risk_flags': list(result.risk_flags),
        'ai_is_fake': result.is_fake,
        'ai_fake_flags': list(result.fake_flags),
        'ai_next_action': result.next_action,
        'ai_summary': result.summary,
        'ai_scored_at': result.scored_at,
        # Legacy mirrors for older readers
        'quality_score': result.quality_score,
        'intent_score': result.intent_score,
    }
