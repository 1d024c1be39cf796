"""
Field normalizer — any historical or external lead shape → LeadRecord.

Every alias lookup in the codebase lives here. Downstream calculators only
ever read LeadRecord attributes, so schema drift is absorbed in one place.

normalize_lead() is total: it never raises, unknown fields are ignored and
values that can't be coerced are treated as missing.
"""
import re
from collections.abc import Mapping
from datetime import datetime, date, timezone
from typing import Any, Optional, Tuple

from leadengine.config import LEAD_STATUSES
from leadengine.scoring.base import LeadRecord


# ── Alias table: current schema name first, then legacy / external names ───

FIELD_ALIASES = {
    'id': ('id', 'buyer_id', 'lead_id', 'external_id'),
    'company_id': ('company_id', 'companyId', 'tenant_id'),
    'first_name': ('first_name', 'firstName', 'firstname'),
    'last_name': ('last_name', 'lastName', 'lastname', 'surname'),
    'full_name': ('full_name', 'fullName', 'name', 'buyer_name'),
    'email': ('email', 'email_address', 'emailAddress'),
    'phone': ('phone', 'phone_number', 'phoneNumber', 'mobile', 'telephone'),
    'country': ('country', 'location_country', 'country_code'),
    'budget_min': ('budget_min', 'budgetMin', 'min_budget'),
    'budget_max': ('budget_max', 'budgetMax', 'max_budget'),
    'budget_range': ('budget_range', 'budget', 'budgetRange'),
    'bedrooms': ('bedrooms', 'preferred_bedrooms', 'beds', 'bedroom_count'),
    'preferred_location': ('preferred_location', 'preferredLocation', 'location', 'area'),
    'purchase_purpose': ('purchase_purpose', 'purpose', 'buyer_type'),
    'timeline': ('timeline', 'timeline_to_purchase', 'purchase_timeline', 'timeframe'),
    'ready_within_28_days': ('ready_within_28_days', 'buying_within_28_days', 'within_28_days'),
    'payment_method': ('payment_method', 'paymentMethod', 'finance_type', 'funding'),
    'mortgage_status': ('mortgage_status', 'mortgageStatus', 'finance_status'),
    'proof_of_funds': ('proof_of_funds', 'proofOfFunds', 'pof'),
    'broker_status': ('broker_status', 'uk_broker', 'connect_to_broker', 'has_broker'),
    'solicitor_status': ('solicitor_status', 'uk_solicitor', 'has_solicitor'),
    'replied': ('replied', 'has_replied', 'responded'),
    'last_contact_at': ('last_contact_at', 'last_contact', 'last_contacted_at', 'lastContact'),
    'viewing_booked': ('viewing_booked', 'viewingBooked', 'has_viewing'),
    'viewing_intent_confirmed': ('viewing_intent_confirmed', 'viewing_intent', 'wants_viewing'),
    'transcript': ('transcript', 'agent_transcript', 'call_summary', 'call_transcript', 'notes'),
    'stop_comms': ('stop_comms', 'stop_communications', 'do_not_contact', 'unsubscribed'),
    'source': ('source', 'source_platform', 'channel', 'lead_source'),
    'campaign_id': ('campaign_id', 'source_campaign', 'campaign'),
    'development_id': ('development_id', 'developmentId'),
    'development_name': ('development_name', 'developmentName', 'development'),
    'honeypot': ('honeypot', 'hp_field', 'bot_field'),
    'is_test': ('is_test', 'test_lead', 'is_test_data'),
    'status': ('status', 'lead_status', 'pipeline_status'),
    'created_at': ('created_at', 'createdAt', 'date_added'),
    'updated_at': ('updated_at', 'updatedAt'),
    'status_changed_at': ('status_changed_at', 'statusChangedAt'),
}

# Sub-objects of the external ScoreRequest / webhook payloads
NESTED_SECTIONS = ('lead', 'buyer', 'requirements', 'financial', 'context')

STATUS_ALIASES = {
    'new': 'Contact Pending',
    'pending': 'Contact Pending',
    'contact pending': 'Contact Pending',
    'contacted': 'Follow Up',
    'follow up': 'Follow Up',
    'follow-up': 'Follow Up',
    'in progress': 'Follow Up',
    'viewing': 'Viewing Booked',
    'viewing booked': 'Viewing Booked',
    'offer': 'Negotiating',
    'offer made': 'Negotiating',
    'negotiating': 'Negotiating',
    'reserved': 'Reserved',
    'exchanged': 'Exchanged',
    'complete': 'Completed',
    'completed': 'Completed',
    'won': 'Completed',
    'lost': 'Not Proceeding',
    'dead': 'Not Proceeding',
    'not proceeding': 'Not Proceeding',
    'duplicate': 'Duplicate',
}

PURPOSE_PATTERNS = [
    ('dependent_studying', re.compile(r'depend|student|studying|child', re.I)),
    ('investment', re.compile(r'invest|buy[\s-]*to[\s-]*let|btl|rental|yield', re.I)),
    ('holiday_home', re.compile(r'holiday|second home|vacation', re.I)),
    ('residence', re.compile(r'resid|live|home|owner|occup|family', re.I)),
]

PAYMENT_PATTERNS = [
    ('mortgage', re.compile(r'mortgage|finance|loan', re.I)),
    ('cash', re.compile(r'cash', re.I)),
]

MORTGAGE_PATTERNS = [
    ('declined', re.compile(r'declin|reject|refus', re.I)),
    ('not_started', re.compile(r'not\s|none|^no$', re.I)),
    ('approved', re.compile(r'approv|\baip\b|in principle|offer', re.I)),
    ('in_progress', re.compile(r'progress|applied|pending|processing|submitted', re.I)),
]

_TRUE_STRINGS = {'true', 'yes', 'y', '1', 'on'}
_FALSE_STRINGS = {'false', 'no', 'n', '0', 'off', ''}


# ── Coercion helpers (never raise) ───────────────────────────────────────────

def _clean_str(value) -> Optional[str]:
    if value is None or isinstance(value, (Mapping, list, tuple, set)):
        return None
    text = str(value).strip()
    return text or None


def _to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _parse_money(text) -> Optional[int]:
    """'£750k' → 750000, '1.2m' → 1200000, '500,000' → 500000."""
    if isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        try:
            return int(text) if text > 0 else None
        except (OverflowError, ValueError):
            return None
    if not isinstance(text, str):
        return None
    match = re.search(r'(\d[\d,]*(?:\.\d+)?)\s*([km]?)', text.lower())
    if not match:
        return None
    try:
        amount = float(match.group(1).replace(',', ''))
    except ValueError:
        return None
    multiplier = {'k': 1_000, 'm': 1_000_000}.get(match.group(2), 1)
    try:
        amount = int(amount * multiplier)
    except (OverflowError, ValueError):
        return None
    return amount if amount > 0 else None


def _parse_budget_range(text) -> Tuple[Optional[int], Optional[int]]:
    """Split a free-text budget into (min, max)."""
    if not isinstance(text, str):
        value = _parse_money(text)
        return value, value
    lowered = text.lower()
    parts = re.split(r'\s*(?:-|–|to)\s*', lowered)
    if len(parts) >= 2 and _parse_money(parts[0]) and _parse_money(parts[1]):
        return _parse_money(parts[0]), _parse_money(parts[1])
    value = _parse_money(lowered)
    if value is None:
        return None, None
    if re.search(r'under|below|up to|less than|max', lowered):
        return None, value
    if re.search(r'over|above|\+|more than|min', lowered):
        return value, None
    return value, value


def _to_bedrooms(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return int(value) if value >= 0 else None
        except (OverflowError, ValueError):
            return None
    if isinstance(value, str):
        lowered = value.strip().lower()
        if 'studio' in lowered:
            return 0
        match = re.search(r'\d+', lowered)
        if match:
            try:
                return int(match.group())
            except ValueError:
                return None
    return None


def _to_datetime(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _to_connection_status(value) -> str:
    """Broker / solicitor state → yes | no | introduced | unknown."""
    if isinstance(value, bool):
        return 'yes' if value else 'no'
    text = _clean_str(value)
    if text is None:
        return 'unknown'
    lowered = text.lower()
    if lowered.startswith('intro') or 'referred' in lowered:
        return 'introduced'
    if lowered in _TRUE_STRINGS or lowered in ('connected', 'has broker', 'has solicitor'):
        return 'yes'
    if lowered in _FALSE_STRINGS or lowered in ('none', 'not connected'):
        return 'no'
    return 'unknown'


def _match_token(value, patterns) -> Optional[str]:
    text = _clean_str(value)
    if text is None:
        return None
    for token, pattern in patterns:
        if pattern.search(text):
            return token
    return text.lower()


def _to_status(value) -> str:
    text = _clean_str(value)
    if text is None:
        return LEAD_STATUSES[0]
    if text in LEAD_STATUSES:
        return text
    return STATUS_ALIASES.get(text.lower(), LEAD_STATUSES[0])


# ── Lookup ───────────────────────────────────────────────────────────────────

def _sources(raw: Mapping):
    """Top-level map first, then each nested section present."""
    yield raw
    for section in NESTED_SECTIONS:
        nested = raw.get(section)
        if isinstance(nested, Mapping):
            yield nested


def _first(raw: Mapping, field_name: str):
    """First non-null, non-blank value across the field's aliases."""
    for alias in FIELD_ALIASES[field_name]:
        for source in _sources(raw):
            value = source.get(alias)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            return value
    return None


def normalize_lead(raw: Any) -> LeadRecord:
    """Map an arbitrary lead dict onto the canonical LeadRecord."""
    if not isinstance(raw, Mapping):
        return LeadRecord()

    def get(name):
        return _first(raw, name)

    first_name = _clean_str(get('first_name'))
    last_name = _clean_str(get('last_name'))
    full_name = _clean_str(get('full_name'))
    if full_name is None and (first_name or last_name):
        full_name = ' '.join(p for p in (first_name, last_name) if p)
    if full_name and not first_name:
        parts = full_name.split(None, 1)
        first_name = parts[0]
        last_name = last_name or (parts[1] if len(parts) > 1 else None)

    budget_range = get('budget_range')
    budget_min = _parse_money(get('budget_min'))
    budget_max = _parse_money(get('budget_max'))
    if budget_min is None and budget_max is None and budget_range is not None:
        budget_min, budget_max = _parse_budget_range(budget_range)

    email = _clean_str(get('email'))
    record_id = _clean_str(get('id'))

    return LeadRecord(
        id=record_id,
        company_id=_clean_str(get('company_id')),
        first_name=first_name,
        last_name=last_name,
        full_name=full_name,
        email=email.lower() if email else None,
        phone=_clean_str(get('phone')),
        country=_clean_str(get('country')),
        budget_min=budget_min,
        budget_max=budget_max,
        budget_range=_clean_str(budget_range),
        bedrooms=_to_bedrooms(get('bedrooms')),
        preferred_location=_clean_str(get('preferred_location')),
        purchase_purpose=_match_token(get('purchase_purpose'), PURPOSE_PATTERNS),
        timeline=_clean_str(get('timeline')),
        ready_within_28_days=_to_bool(get('ready_within_28_days')),
        payment_method=_match_token(get('payment_method'), PAYMENT_PATTERNS),
        mortgage_status=_match_token(get('mortgage_status'), MORTGAGE_PATTERNS),
        proof_of_funds=_to_bool(get('proof_of_funds')),
        broker_status=_to_connection_status(get('broker_status')),
        solicitor_status=_to_connection_status(get('solicitor_status')),
        replied=_to_bool(get('replied')),
        last_contact_at=_to_datetime(get('last_contact_at')),
        viewing_booked=_to_bool(get('viewing_booked')),
        viewing_intent_confirmed=_to_bool(get('viewing_intent_confirmed')),
        transcript=_clean_str(get('transcript')),
        stop_comms=_to_bool(get('stop_comms')),
        source=_clean_str(get('source')),
        campaign_id=_clean_str(get('campaign_id')),
        development_id=_clean_str(get('development_id')),
        development_name=_clean_str(get('development_name')),
        honeypot=_clean_str(get('honeypot')),
        is_test=_to_bool(get('is_test')),
        status=_to_status(get('status')),
        created_at=_to_datetime(get('created_at')),
        updated_at=_to_datetime(get('updated_at')),
        status_changed_at=_to_datetime(get('status_changed_at')),
    )
