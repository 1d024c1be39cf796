"""
Scoring contracts.

LeadRecord is the one canonical lead shape every calculator reads; only the
normalizer builds it. Calculators return a ComponentScore whose breakdown
always sums to its total; caps and clamps are written into the breakdown as
explicit adjustment entries rather than applied silently.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, List, Any, Optional


@dataclass(frozen=True)
class LeadRecord:
    """Canonical, read-only view of one buyer."""
    id: Optional[str] = None
    company_id: Optional[str] = None

    # Contact
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    country: Optional[str] = None

    # Requirements
    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    budget_range: Optional[str] = None
    bedrooms: Optional[int] = None
    preferred_location: Optional[str] = None
    purchase_purpose: Optional[str] = None
    timeline: Optional[str] = None
    ready_within_28_days: bool = False

    # Financial
    payment_method: Optional[str] = None
    mortgage_status: Optional[str] = None
    proof_of_funds: bool = False
    broker_status: str = 'unknown'
    solicitor_status: str = 'unknown'

    # Engagement
    replied: bool = False
    last_contact_at: Optional[datetime] = None
    viewing_booked: bool = False
    viewing_intent_confirmed: bool = False
    transcript: Optional[str] = None
    stop_comms: bool = False

    # Provenance
    source: Optional[str] = None
    campaign_id: Optional[str] = None
    development_id: Optional[str] = None
    development_name: Optional[str] = None

    # Spam markers
    honeypot: Optional[str] = None
    is_test: bool = False

    status: str = 'Contact Pending'
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    status_changed_at: Optional[datetime] = None

    @property
    def budget(self) -> Optional[int]:
        """Best single budget figure: the top of the range when known."""
        return self.budget_max or self.budget_min


@dataclass
class BreakdownEntry:
    factor: str
    points: float
    reason: str


@dataclass
class ComponentScore:
    """One score dimension: total + the ordered entries that produce it."""
    total: float
    breakdown: List[BreakdownEntry] = field(default_factory=list)

    def to_list(self) -> List[Dict[str, Any]]:
        return [asdict(e) for e in self.breakdown]


@dataclass
class FakeLeadCheck:
    is_fake: bool
    flags: List[str] = field(default_factory=list)


@dataclass
class ScoreResult:
    """Everything one scoring run produces for a lead."""
    quality: ComponentScore
    intent: ComponentScore
    confidence: ComponentScore
    classification: str
    priority: str
    response_time: str
    risk_flags: List[str]
    is_fake: bool
    fake_flags: List[str]
    is_28_day_buyer: bool
    next_action: str
    summary: str
    model_version: str
    scored_at: datetime

    @property
    def quality_score(self) -> int:
        return int(self.quality.total)

    @property
    def intent_score(self) -> int:
        return int(self.intent.total)

    @property
    def confidence_score(self) -> float:
        return self.confidence.total

    def to_dict(self) -> Dict[str, Any]:
        return {
            'quality_score': self.quality_score,
            'intent_score': self.intent_score,
            'confidence_score': self.confidence_score,
            'classification': self.classification,
            'priority': self.priority,
            'response_time': self.response_time,
            'is_fake_lead': self.is_fake,
            'fake_lead_flags': list(self.fake_flags),
            'is_28_day_buyer': self.is_28_day_buyer,
            'risk_flags': list(self.risk_flags),
            'next_action': self.next_action,
            'summary': self.summary,
            'model_version': self.model_version,
            'breakdown': {
                'quality': self.quality.to_list(),
                'intent': self.intent.to_list(),
                'confidence': self.confidence.to_list(),
            },
            'scored_at': self.scored_at.isoformat(),
        }


class ScoreSheet:
    """
    Accumulates breakdown entries for one calculator.

    Usage:
        sheet = ScoreSheet()
        start = sheet.mark()
        sheet.add('email', 4, 'Email provided')
        sheet.cap_since(start, 'profile_completeness', 0, 20)
        score = sheet.finish(0, 100)
    """

    def __init__(self, precision: Optional[int] = None):
        # None → integer points; an int → round to that many decimals
        self.precision = precision
        self.entries: List[BreakdownEntry] = []

    def _round(self, value):
        if self.precision is None:
            return int(round(value))
        return round(value, self.precision)

    def add(self, factor: str, points, reason: str):
        self.entries.append(BreakdownEntry(factor, self._round(points), reason))

    def mark(self) -> int:
        return len(self.entries)

    def subtotal(self, start: int = 0):
        return self._round(sum(e.points for e in self.entries[start:]))

    def cap_since(self, start: int, component: str, low, high):
        """Clamp the entries added since `start` into [low, high]."""
        value = self.subtotal(start)
        if value > high:
            self.add(f'{component}_cap', high - value, f'{component} capped at {high}')
        elif value < low:
            self.add(f'{component}_floor', low - value, f'{component} floored at {low}')

    def finish(self, low, high) -> ComponentScore:
        """Apply the final clamp once and return the score."""
        total = self.subtotal()
        if total > high:
            self.add('clamp', high - total, f'Total clamped to {high}')
        elif total < low:
            self.add('clamp', low - total, f'Total clamped to {low}')
        return ComponentScore(total=self.subtotal(), breakdown=list(self.entries))
