"""
Quality score — how qualified a buyer is, not how eager.

Four components, each clamped to its own range before summing:
profile completeness, financial qualification, verification, inventory fit.
The total is clamped to [0, 100] once at the end.
"""
from typing import Dict, List, Any, Optional

from leadengine.scoring.base import LeadRecord, ComponentScore, ScoreSheet
from leadengine.scoring.config import load_scoring_config

CONFIRMED = ('yes', 'introduced')


def _profile_completeness(record: LeadRecord, sheet: ScoreSheet, cfg: Dict):
    start = sheet.mark()
    fields = [
        ('full_name', record.full_name, 'Name provided'),
        ('email', record.email, 'Email provided'),
        ('phone', record.phone, 'Phone provided'),
        ('budget', record.budget, 'Budget stated'),
        ('preferred_location', record.preferred_location, 'Preferred location stated'),
        ('country', record.country, 'Country known'),
        ('bedrooms', record.bedrooms, 'Bedroom requirement stated'),
    ]
    for factor, value, reason in fields:
        if value is not None:
            sheet.add(factor, cfg.get(factor, 0), reason)
    sheet.cap_since(start, 'profile_completeness', 0, cfg['cap'])


def _financial(record: LeadRecord, sheet: ScoreSheet, cfg: Dict):
    start = sheet.mark()

    if record.payment_method == 'cash':
        sheet.add('payment_method', cfg['cash'], 'Cash buyer')
    elif record.payment_method == 'mortgage':
        sheet.add('payment_method', cfg['mortgage'], 'Mortgage buyer')

    budget = record.budget
    if record.payment_method in ('cash', 'mortgage') and budget and budget >= cfg['min_realistic_budget']:
        sheet.add('budget_consistent', cfg['budget_consistent'],
                  f'Payment method consistent with £{budget:,} budget')

    if record.proof_of_funds:
        sheet.add('proof_of_funds', cfg['proof_of_funds'], 'Proof of funds provided')

    if record.mortgage_status == 'approved':
        sheet.add('mortgage_status', cfg['mortgage_approved'], 'Mortgage approved / AIP')
    elif record.mortgage_status == 'in_progress':
        sheet.add('mortgage_status', cfg['mortgage_in_progress'], 'Mortgage application in progress')
    elif record.mortgage_status == 'declined':
        sheet.add('mortgage_status', cfg['mortgage_declined'], 'Mortgage declined')

    if (budget and budget >= cfg['mismatch_min_budget']
            and record.bedrooms is not None and record.bedrooms <= cfg['mismatch_max_bedrooms']):
        sheet.add('budget_mismatch', cfg['budget_mismatch'],
                  f'£{budget:,} budget for a {record.bedrooms}-bed is implausible')

    sheet.cap_since(start, 'financial', cfg['floor'], cfg['cap'])


def _verification(record: LeadRecord, sheet: ScoreSheet, cfg: Dict):
    start = sheet.mark()
    if record.broker_status in CONFIRMED:
        sheet.add('broker', cfg['broker'], f'Broker {record.broker_status}')
    if record.solicitor_status in CONFIRMED:
        sheet.add('solicitor', cfg['solicitor'], f'Solicitor {record.solicitor_status}')
    if record.broker_status == 'no' and record.solicitor_status == 'no':
        sheet.add('verification_declined', cfg['both_declined'], 'No broker and no solicitor')
    sheet.cap_since(start, 'verification', cfg['floor'], cfg['cap'])


def matches_development(record: LeadRecord, development: Dict[str, Any]) -> bool:
    """True if the lead's stated bedroom/location preference fits this development."""
    if development.get('is_active') is False:
        return False
    if record.bedrooms is None and not record.preferred_location:
        return False

    if record.bedrooms is not None:
        options = development.get('bedrooms') or []
        if options and record.bedrooms not in options:
            return False

    if record.preferred_location:
        wanted = record.preferred_location.lower()
        haystack = ' '.join(
            str(development.get(k) or '') for k in ('location', 'name')
        ).lower()
        if wanted not in haystack and not any(w in haystack for w in wanted.split() if len(w) > 3):
            return False
    return True


def _inventory_fit(record: LeadRecord, developments: Optional[List[Dict]], sheet: ScoreSheet, cfg: Dict):
    if not developments:
        return
    matched = [d for d in developments if matches_development(record, d)]
    if matched:
        sheet.add('inventory_fit', cfg['match'], f"Matches {matched[0].get('name') or 'an active development'}")
    else:
        sheet.add('inventory_fit', 0, 'No active development matches stated preferences')


def calculate_quality(record: LeadRecord, developments: Optional[List[Dict]] = None,
                      config: Dict = None) -> ComponentScore:
    cfg = (config or load_scoring_config())['quality']
    sheet = ScoreSheet()

    _profile_completeness(record, sheet, cfg['profile'])
    _financial(record, sheet, cfg['financial'])
    _verification(record, sheet, cfg['verification'])
    _inventory_fit(record, developments, sheet, cfg['inventory'])

    return sheet.finish(0, 100)
