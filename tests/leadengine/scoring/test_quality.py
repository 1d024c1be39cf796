"""Tests for leadengine.scoring.quality — component points, caps and clamping."""
import pytest

from leadengine.scoring.base import LeadRecord
from leadengine.scoring.quality import calculate_quality, matches_development


def _factors(score):
    return {e.factor: e.points for e in score.breakdown}


class TestProfileCompleteness:

    def test_empty_record_scores_zero(self):
        score = calculate_quality(LeadRecord())
        assert score.total == 0
        assert score.breakdown == []

    def test_partial_profile(self):
        score = calculate_quality(LeadRecord(full_name='Sam Lee', email='sam@x.com', country='UK'))
        assert score.total == 10  # 4 + 4 + 2

    def test_profile_capped_at_20(self):
        record = LeadRecord(full_name='Sam Lee', email='sam@x.com', phone='07700900123',
                            budget_max=300000, preferred_location='Leeds', country='UK', bedrooms=2)
        score = calculate_quality(record)
        factors = _factors(score)
        assert factors['profile_completeness_cap'] == -4
        assert score.total == 20


class TestFinancial:

    def test_cash_with_proof_of_funds_hits_cap(self):
        score = calculate_quality(LeadRecord(payment_method='cash', proof_of_funds=True, budget_max=500000))
        factors = _factors(score)
        # 45 + 5 + 25 = 75 exactly, no cap entry needed
        assert 'financial_cap' not in factors
        assert score.total == 75 + 4  # + budget stated

    def test_mortgage_approved(self):
        score = calculate_quality(LeadRecord(payment_method='mortgage', mortgage_status='approved'))
        assert score.total == 40

    def test_declined_mortgage_floors_at_zero_total(self):
        score = calculate_quality(LeadRecord(mortgage_status='declined'))
        assert _factors(score)['mortgage_status'] == -20
        assert score.total == 0
        assert _factors(score)['clamp'] == 20

    def test_budget_mismatch_penalty(self):
        record = LeadRecord(budget_max=2500000, bedrooms=1, payment_method='cash')
        factors = _factors(calculate_quality(record))
        assert factors['budget_mismatch'] == -20

    def test_no_mismatch_for_family_home(self):
        record = LeadRecord(budget_max=2500000, bedrooms=4, payment_method='cash')
        assert 'budget_mismatch' not in _factors(calculate_quality(record))

    def test_budget_below_realistic_minimum_not_consistent(self):
        record = LeadRecord(budget_max=20000, payment_method='cash')
        assert 'budget_consistent' not in _factors(calculate_quality(record))


class TestVerification:

    def test_broker_and_solicitor(self):
        score = calculate_quality(LeadRecord(broker_status='yes', solicitor_status='introduced'))
        assert score.total == 20

    def test_both_declined(self):
        score = calculate_quality(LeadRecord(full_name='A B', email='a@b.com', phone='07700900123',
                                             broker_status='no', solicitor_status='no'))
        assert _factors(score)['verification_declined'] == -10
        assert score.total == 2


class TestInventoryFit:
    DEVS = [
        {'id': 'd1', 'name': 'Ancoats Yard', 'location': 'Manchester', 'bedrooms': [1, 2], 'is_active': True},
        {'id': 'd2', 'name': 'Dock View', 'location': 'Liverpool', 'bedrooms': [2, 3], 'is_active': True},
    ]

    def test_match_adds_points(self):
        record = LeadRecord(preferred_location='Manchester', bedrooms=2)
        score = calculate_quality(record, self.DEVS)
        assert _factors(score)['inventory_fit'] == 10

    def test_no_match_is_zero_entry(self):
        record = LeadRecord(preferred_location='Bristol', bedrooms=2)
        assert _factors(calculate_quality(record, self.DEVS))['inventory_fit'] == 0

    def test_no_developments_means_no_entry(self):
        record = LeadRecord(preferred_location='Manchester', bedrooms=2)
        assert 'inventory_fit' not in _factors(calculate_quality(record, None))

    def test_inactive_development_never_matches(self):
        dev = dict(self.DEVS[0], is_active=False)
        assert matches_development(LeadRecord(preferred_location='Manchester'), dev) is False

    def test_bedroom_mismatch(self):
        assert matches_development(LeadRecord(bedrooms=4), self.DEVS[0]) is False

    def test_no_preferences_never_matches(self):
        assert matches_development(LeadRecord(), self.DEVS[0]) is False


class TestTotals:

    @pytest.mark.parametrize('record', [
        LeadRecord(),
        LeadRecord(mortgage_status='declined', broker_status='no', solicitor_status='no'),
        LeadRecord(full_name='X Y', email='x@y.com', phone='07700900123', budget_max=900000,
                   preferred_location='Leeds', country='UK', bedrooms=3, payment_method='cash',
                   proof_of_funds=True, mortgage_status='approved', broker_status='yes',
                   solicitor_status='yes'),
    ])
    def test_breakdown_sums_to_total_within_bounds(self, record):
        score = calculate_quality(record, [{'name': 'Leeds Central', 'location': 'Leeds', 'bedrooms': [3]}])
        assert sum(e.points for e in score.breakdown) == score.total
        assert 0 <= score.total <= 100

    def test_everything_maxed_clamps_to_100(self):
        record = LeadRecord(full_name='X Y', email='x@y.com', phone='07700900123', budget_max=900000,
                            preferred_location='Leeds', country='UK', bedrooms=3, payment_method='cash',
                            proof_of_funds=True, mortgage_status='approved', broker_status='yes',
                            solicitor_status='yes')
        score = calculate_quality(record, [{'name': 'Leeds Central', 'location': 'Leeds', 'bedrooms': [3]}])
        assert score.total == 100
        assert _factors(score)['clamp'] == -25
