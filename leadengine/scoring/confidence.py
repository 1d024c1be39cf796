"""
Confidence score — how far the quality and intent scores can be trusted.

Measures evidence, not lead quality: a lead who explicitly says "no broker"
gives more evidence than one who never answered. Returned on a 0–10 scale;
the storage layer multiplies by 10.
"""
from typing import Dict

from leadengine.scoring.base import LeadRecord, ComponentScore, ScoreSheet
from leadengine.scoring.config import load_scoring_config

# Canonical fields counted for data completeness
EVIDENCE_FIELDS = (
    'full_name',
    'email',
    'phone',
    'country',
    'budget',
    'bedrooms',
    'preferred_location',
    'timeline',
    'payment_method',
    'purchase_purpose',
)


def _completeness(record: LeadRecord) -> float:
    populated = sum(1 for name in EVIDENCE_FIELDS if getattr(record, name) is not None)
    return populated / len(EVIDENCE_FIELDS)


def _verification(record: LeadRecord, points: Dict) -> float:
    earned = 0
    available = points['proof_of_funds'] + points['solicitor_confirmed']
    if record.proof_of_funds:
        earned += points['proof_of_funds']

    # Cash buyers don't need a mortgage broker, so it isn't counted against them
    if record.payment_method != 'cash':
        available += points['broker_confirmed']
        if record.broker_status in ('yes', 'introduced'):
            earned += points['broker_confirmed']
        elif record.broker_status == 'no':
            earned += points['broker_declined']

    if record.solicitor_status in ('yes', 'introduced'):
        earned += points['solicitor_confirmed']
    elif record.solicitor_status == 'no':
        earned += points['solicitor_declined']
    return earned / available if available else 0.0


def _engagement(record: LeadRecord, points: Dict) -> float:
    earned = 0
    if record.viewing_booked:
        earned += points['viewing_booked']
    if record.replied:
        earned += points['replied']
    if record.last_contact_at is not None:
        earned += points['last_contact']
    return earned / sum(points.values())


def _transcript(record: LeadRecord, bands) -> float:
    length = len(record.transcript or '')
    for band in bands:
        if length >= band['min_chars']:
            return band['value']
    return 0.0


def calculate_confidence(record: LeadRecord, config: Dict = None) -> ComponentScore:
    cfg = (config or load_scoring_config())['confidence']
    weights = cfg['weights']
    sheet = ScoreSheet(precision=2)

    completeness = _completeness(record)
    sheet.add('data_completeness', weights['completeness'] * completeness,
              f'{round(completeness * 100)}% of key fields populated')

    verification = _verification(record, cfg['verification_points'])
    sheet.add('verification', weights['verification'] * verification,
              f'{round(verification * 100)}% of verification evidence present')

    engagement = _engagement(record, cfg['engagement_points'])
    sheet.add('engagement_history', weights['engagement'] * engagement,
              f'{round(engagement * 100)}% of engagement signals present')

    transcript = _transcript(record, cfg['transcript_bands'])
    sheet.add('transcript_quality', weights['transcript'] * transcript,
              f"Transcript length {len(record.transcript or '')} chars")

    return sheet.finish(0, 10)
