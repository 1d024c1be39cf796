"""Tests for leadengine.scoring.intent — timeline bands, modifiers, stop_comms ceiling."""
from datetime import datetime, timedelta, timezone

import pytest

from leadengine.scoring.base import LeadRecord
from leadengine.scoring.config import _default_config, _deep_merge
from leadengine.scoring.intent import calculate_intent, timeline_band

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def _intent_cfg(**overrides):
    return _deep_merge(_default_config()['intent'], overrides)


def _factors(score):
    return {e.factor: e.points for e in score.breakdown}


class TestTimelineBand:

    @pytest.mark.parametrize('text,band', [
        ('Within 28 days', 'within_28_days'),
        ('ASAP', 'within_28_days'),
        ('2 weeks', 'within_28_days'),
        ('0-3 months', '0_3_months'),
        ('next three months', '0_3_months'),
        ('3 to 6 months', '3_6_months'),
        ('6-9 months', '6_9_months'),
        ('9-12 months', '9_12_months'),
        ('Next year', '9_12_months'),
        ('just browsing', None),
    ])
    def test_bands(self, text, band):
        assert timeline_band(LeadRecord(timeline=text)) == band

    def test_ready_flag_overrides_text(self):
        assert timeline_band(LeadRecord(timeline='6-9 months', ready_within_28_days=True)) == 'within_28_days'

    def test_missing_timeline(self):
        assert timeline_band(LeadRecord()) is None


class TestIntentComponents:

    def test_unknown_timeline_gets_floor_points(self):
        score = calculate_intent(LeadRecord(), now=NOW)
        assert score.total == 4

    def test_cash_investor(self):
        score = calculate_intent(LeadRecord(timeline='0-3 months', payment_method='cash',
                                            purchase_purpose='investment'), now=NOW)
        assert score.total == 30 + 15 + 7

    def test_purpose_payment_capped(self):
        record = LeadRecord(payment_method='cash', purchase_purpose='residence')
        score = calculate_intent(record, now=NOW)
        assert 'purpose_payment_cap' not in _factors(score)  # 15 + 10 sits exactly on the cap
        assert score.total == 4 + 25

    def test_purpose_payment_over_cap(self):
        record = LeadRecord(payment_method='cash', purchase_purpose='residence')
        cfg = {'intent': _intent_cfg(purpose={'residence': 20})}
        factors = _factors(calculate_intent(record, now=NOW, config=cfg))
        assert factors['purpose_payment_cap'] == -10

    def test_recent_contact_counts(self):
        record = LeadRecord(last_contact_at=NOW - timedelta(days=3), replied=True)
        factors = _factors(calculate_intent(record, now=NOW))
        assert factors['recent_contact'] == 6
        assert factors['replied'] == 8

    def test_old_contact_ignored(self):
        record = LeadRecord(last_contact_at=NOW - timedelta(days=40))
        assert 'recent_contact' not in _factors(calculate_intent(record, now=NOW))

    def test_commitment(self):
        record = LeadRecord(viewing_booked=True, viewing_intent_confirmed=True)
        factors = _factors(calculate_intent(record, now=NOW))
        assert factors['viewing_booked'] == 20
        assert factors['commitment_cap'] == -3

    def test_not_proceeding_penalty(self):
        record = LeadRecord(timeline='Within 28 days', status='Not Proceeding')
        factors = _factors(calculate_intent(record, now=NOW))
        assert factors['not_proceeding'] == -30

    def test_naive_now_treated_as_utc(self):
        record = LeadRecord(last_contact_at=NOW - timedelta(days=1))
        score = calculate_intent(record, now=NOW.replace(tzinfo=None))
        assert 'recent_contact' in _factors(score)


class TestStopComms:

    def test_ceiling_applied_after_clamp(self):
        record = LeadRecord(timeline='ASAP', payment_method='cash', viewing_booked=True, stop_comms=True)
        score = calculate_intent(record, now=NOW)
        assert score.total == 10
        assert score.breakdown[-1].factor == 'stop_comms'
        assert sum(e.points for e in score.breakdown) == 10

    def test_low_intent_left_alone(self):
        score = calculate_intent(LeadRecord(stop_comms=True), now=NOW)
        assert score.total == 4
        assert 'stop_comms' not in _factors(score)


class TestIntentTotals:

    def test_everything_maxed_clamps_to_100(self):
        record = LeadRecord(timeline='ASAP', payment_method='cash', purchase_purpose='residence',
                            replied=True, last_contact_at=NOW, transcript='Long call',
                            viewing_booked=True, viewing_intent_confirmed=True)
        score = calculate_intent(record, now=NOW)
        # 40 + 25 + 20 + 25 = 110
        assert score.total == 100
        assert _factors(score)['clamp'] == -10

    def test_negative_total_clamps_to_zero(self):
        score = calculate_intent(LeadRecord(status='Not Proceeding'), now=NOW)
        assert score.total == 0
        assert sum(e.points for e in score.breakdown) == 0
