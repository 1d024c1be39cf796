"""
Classification + priority resolver.

A single decision table over (quality, intent, confidence, is_fake, record).
Rules are evaluated in this exact order and the first match wins:

  1. disqualified         is_fake OR stop_comms
  2. hot_lead             quality >= HOT_QUALITY_MIN AND intent >= HOT_INTENT_MIN
  3. qualified            quality >= QUALIFIED_QUALITY_MIN AND intent >= QUALIFIED_INTENT_MIN
  4. needs_qualification  confidence < MIN_CONFIDENCE (0–10 scale)
  5. nurture              intent >= NURTURE_INTENT_MIN AND quality < QUALIFIED_QUALITY_MIN
  6. low_priority         everything else

Priority is looked up from the classification alone, never from raw scores,
so the two can't disagree.
"""
from typing import Dict, Tuple

from leadengine.scoring.base import LeadRecord

# ── Thresholds (overridable via scoring_config.yaml → classification) ────────
HOT_QUALITY_MIN = 70
HOT_INTENT_MIN = 70
QUALIFIED_QUALITY_MIN = 55
QUALIFIED_INTENT_MIN = 45
MIN_CONFIDENCE = 4.0
NURTURE_INTENT_MIN = 30

DEFAULT_THRESHOLDS = {
    'hot_quality_min': HOT_QUALITY_MIN,
    'hot_intent_min': HOT_INTENT_MIN,
    'qualified_quality_min': QUALIFIED_QUALITY_MIN,
    'qualified_intent_min': QUALIFIED_INTENT_MIN,
    'min_confidence': MIN_CONFIDENCE,
    'nurture_intent_min': NURTURE_INTENT_MIN,
}

# ── Classifications ──────────────────────────────────────────────────────────
DISQUALIFIED = 'disqualified'
HOT_LEAD = 'hot_lead'
QUALIFIED = 'qualified'
NEEDS_QUALIFICATION = 'needs_qualification'
NURTURE = 'nurture'
LOW_PRIORITY = 'low_priority'

CLASSIFICATIONS = [HOT_LEAD, QUALIFIED, NEEDS_QUALIFICATION, NURTURE, LOW_PRIORITY, DISQUALIFIED]

PRIORITY_BY_CLASSIFICATION = {
    HOT_LEAD: ('P1', 'now'),
    QUALIFIED: ('P2', 'today'),
    NEEDS_QUALIFICATION: ('P3', 'this week'),
    NURTURE: ('P3', 'this week'),
    LOW_PRIORITY: ('P4', 'no action'),
    DISQUALIFIED: ('P4', 'no action'),
}

NEXT_ACTIONS = {
    HOT_LEAD: 'Schedule viewing within 24 hours',
    QUALIFIED: 'Send development brochure and follow up in 48 hours',
    NEEDS_QUALIFICATION: 'WhatsApp to confirm budget, timeline and requirements',
    NURTURE: 'Add to 3-month email sequence',
    LOW_PRIORITY: 'Monitor for re-engagement',
    DISQUALIFIED: 'Archive — do not pursue',
}


def classify(quality: float, intent: float, confidence: float, is_fake: bool,
             record: LeadRecord, thresholds: Dict = None) -> str:
    t = dict(DEFAULT_THRESHOLDS)
    t.update(thresholds or {})

    if is_fake or record.stop_comms:
        return DISQUALIFIED
    if quality >= t['hot_quality_min'] and intent >= t['hot_intent_min']:
        return HOT_LEAD
    if quality >= t['qualified_quality_min'] and intent >= t['qualified_intent_min']:
        return QUALIFIED
    if confidence < t['min_confidence']:
        return NEEDS_QUALIFICATION
    if intent >= t['nurture_intent_min'] and quality < t['qualified_quality_min']:
        return NURTURE
    return LOW_PRIORITY


def priority_for(classification: str) -> Tuple[str, str]:
    """(priority tier, maximum response time) for a classification."""
    return PRIORITY_BY_CLASSIFICATION[classification]


def next_action_for(classification: str) -> str:
    return NEXT_ACTIONS[classification]
