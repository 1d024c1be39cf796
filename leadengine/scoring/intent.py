"""
Intent score — purchase urgency and seriousness.

Components: timeline urgency, purpose/payment signal, engagement, commitment,
negative modifiers. stop_comms is not a penalty: it is a hard ceiling applied
after the final clamp.
"""
import re
from datetime import datetime, timezone
from typing import Dict, Optional

from leadengine.scoring.base import LeadRecord, ComponentScore, ScoreSheet
from leadengine.scoring.config import load_scoring_config

# Checked in order, most urgent first
TIMELINE_BANDS = [
    ('within_28_days', re.compile(
        r'28\s*days?|asap|immediate|right away|ready now|this month|within (?:a|one|1) month|\b[1-4]\s*weeks?', re.I)),
    ('0_3_months', re.compile(
        r'\b[01]\s*(?:-|–|to)\s*3\s*months?|(?:within|next|under)\s*(?:3|three)\s*months?', re.I)),
    ('3_6_months', re.compile(
        r'\b3\s*(?:-|–|to)\s*6\s*months?|(?:within|next)\s*(?:6|six)\s*months?', re.I)),
    ('6_9_months', re.compile(r'\b6\s*(?:-|–|to)\s*9\s*months?', re.I)),
    ('9_12_months', re.compile(r'\b9\s*(?:-|–|to)\s*12\s*months?|12\s*\+|12\s*months?|year', re.I)),
]

PURPOSES = ('residence', 'investment', 'dependent_studying', 'holiday_home')

TIMELINE_LABELS = {
    'within_28_days': 'Buying within 28 days',
    '0_3_months': 'Buying within 3 months',
    '3_6_months': 'Buying in 3-6 months',
    '6_9_months': 'Buying in 6-9 months',
    '9_12_months': 'Buying in 9-12 months',
}


def timeline_band(record: LeadRecord) -> Optional[str]:
    """Map the stated timeline onto a band key, or None when it can't be read."""
    if record.ready_within_28_days:
        return 'within_28_days'
    if not record.timeline:
        return None
    for band, pattern in TIMELINE_BANDS:
        if pattern.search(record.timeline):
            return band
    return None


def _timeline(record: LeadRecord, sheet: ScoreSheet, cfg: Dict):
    band = timeline_band(record)
    if band is None:
        sheet.add('timeline', cfg['unknown'], 'Timeline unknown')
    else:
        sheet.add('timeline', cfg[band], TIMELINE_LABELS[band])


def _purpose_and_payment(record: LeadRecord, sheet: ScoreSheet, cfg: Dict):
    start = sheet.mark()
    if record.payment_method == 'cash':
        sheet.add('payment_signal', cfg['cash'], 'Cash buyer, no finance dependency')
    elif record.payment_method == 'mortgage':
        sheet.add('payment_signal', cfg['mortgage'], 'Mortgage-dependent buyer')

    purpose = record.purchase_purpose
    if purpose in PURPOSES:
        sheet.add('purchase_purpose', cfg[purpose], f"Purpose: {purpose.replace('_', ' ')}")
    sheet.cap_since(start, 'purpose_payment', 0, cfg['cap'])


def _engagement(record: LeadRecord, sheet: ScoreSheet, cfg: Dict, now: datetime):
    start = sheet.mark()
    if record.replied:
        sheet.add('replied', cfg['replied'], 'Buyer has replied')
    if record.last_contact_at is not None:
        days = (now - record.last_contact_at).days
        if 0 <= days <= cfg['recent_days']:
            sheet.add('recent_contact', cfg['recent_contact'], f'Last contact {days}d ago')
    if record.transcript:
        sheet.add('transcript', cfg['transcript'], 'Call transcript / summary on file')
    sheet.cap_since(start, 'engagement', 0, cfg['cap'])


def _commitment(record: LeadRecord, sheet: ScoreSheet, cfg: Dict):
    start = sheet.mark()
    if record.viewing_booked:
        sheet.add('viewing_booked', cfg['viewing_booked'], 'Viewing booked')
    if record.viewing_intent_confirmed:
        sheet.add('viewing_intent', cfg['viewing_intent_confirmed'], 'Viewing intent confirmed')
    sheet.cap_since(start, 'commitment', 0, cfg['cap'])


def _negative_modifiers(record: LeadRecord, sheet: ScoreSheet, cfg: Dict):
    if record.status == 'Not Proceeding':
        sheet.add('not_proceeding', cfg['not_proceeding'], 'Marked not proceeding')
    elif record.status == 'Duplicate':
        sheet.add('duplicate', cfg['duplicate'], 'Marked duplicate')


def calculate_intent(record: LeadRecord, now: datetime = None, config: Dict = None) -> ComponentScore:
    cfg = (config or load_scoring_config())['intent']
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    sheet = ScoreSheet()

    _timeline(record, sheet, cfg['timeline'])
    _purpose_and_payment(record, sheet, cfg['purpose'])
    _engagement(record, sheet, cfg['engagement'], now)
    _commitment(record, sheet, cfg['commitment'])
    _negative_modifiers(record, sheet, cfg['modifiers'])

    score = sheet.finish(0, 100)

    # Hard override, must stay last
    ceiling = cfg['stop_comms_ceiling']
    if record.stop_comms and score.total > ceiling:
        sheet.add('stop_comms', ceiling - score.total, f'Stop comms requested, intent capped at {ceiling}')
        score = ComponentScore(total=sheet.subtotal(), breakdown=list(sheet.entries))
    return score
