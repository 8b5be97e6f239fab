"""
Tests for stage entry criteria and priority scoring.

Tests covering:
- Empty criteria always pass
- Each predicate in isolation, including missing record fields
- Feature tag lookup (creative financing is owner financing OR lease to own)
- Determinism of evaluation
- Priority formula and clamping
"""

import pytest

from core.deal_flow import (
    Criteria,
    DealQuality,
    FeatureTag,
    PropertyRecord,
    evaluate,
    has_feature,
)
from core.scoring import PriorityScorer


@pytest.fixture
def bare_record():
    """Record with no optional attributes at all."""
    return PropertyRecord(id="bare-1", address="1 Unknown Rd")


class TestEmptyCriteria:
    def test_empty_criteria_pass_for_full_record(self, make_record):
        assert evaluate(make_record(score=10, price=900000), Criteria()) is True

    def test_empty_criteria_pass_for_bare_record(self, bare_record):
        assert evaluate(bare_record, Criteria()) is True

    def test_is_empty(self):
        assert Criteria().is_empty
        assert not Criteria(min_score=1).is_empty
        assert not Criteria(deal_quality=frozenset({DealQuality.GOOD})).is_empty


class TestScoreAndPrice:
    def test_min_score_boundary(self, make_record):
        criteria = Criteria(min_score=40)
        assert evaluate(make_record(score=40), criteria)
        assert not evaluate(make_record(score=39.9), criteria)

    def test_missing_score_reads_as_zero(self, bare_record):
        assert not evaluate(bare_record, Criteria(min_score=1))
        assert evaluate(bare_record, Criteria(min_score=0))

    def test_max_price_boundary(self, make_record):
        criteria = Criteria(max_price=500000)
        assert evaluate(make_record(price=500000), criteria)
        assert not evaluate(make_record(price=500001), criteria)

    def test_missing_price_passes_max_price(self, bare_record):
        assert evaluate(bare_record, Criteria(max_price=100))


class TestRequiredFeatures:
    @pytest.mark.parametrize(
        "flags",
        [{"owner_financing": True}, {"lease_to_own": True}],
    )
    def test_creative_financing_satisfied_by_either_flag(self, make_record, flags):
        record = make_record(**flags)
        assert has_feature(record, FeatureTag.CREATIVE_FINANCING)
        assert evaluate(
            record,
            Criteria(required_features=frozenset({FeatureTag.CREATIVE_FINANCING})),
        )

    def test_missing_flags_fail_requirement(self, bare_record):
        criteria = Criteria(required_features=frozenset({FeatureTag.VA_ELIGIBLE}))
        assert not evaluate(bare_record, criteria)

    def test_all_required_features_must_hold(self, make_record):
        criteria = Criteria(
            required_features=frozenset({FeatureTag.CREATIVE_FINANCING, FeatureTag.VA_ELIGIBLE})
        )
        assert not evaluate(make_record(owner_financing=True), criteria)
        assert evaluate(make_record(owner_financing=True, va_eligible=True), criteria)


class TestDealQuality:
    def test_quality_in_set_passes(self, make_record):
        criteria = Criteria(deal_quality=frozenset({DealQuality.GOOD, DealQuality.EXCELLENT}))
        assert evaluate(make_record(deal_quality=DealQuality.GOOD), criteria)
        assert not evaluate(make_record(deal_quality=DealQuality.FAIR), criteria)

    def test_missing_quality_fails(self, bare_record):
        criteria = Criteria(deal_quality=frozenset({DealQuality.EXCELLENT}))
        assert not evaluate(bare_record, criteria)


class TestConjunction:
    def test_one_failing_predicate_fails_all(self, make_record):
        criteria = Criteria(
            min_score=60,
            max_price=500000,
            required_features=frozenset({FeatureTag.CREATIVE_FINANCING}),
            deal_quality=frozenset({DealQuality.EXCELLENT}),
        )
        good = make_record(
            score=85, price=300000, owner_financing=True, deal_quality=DealQuality.EXCELLENT
        )
        assert evaluate(good, criteria)
        assert not evaluate(
            make_record(score=85, price=600000, owner_financing=True, deal_quality=DealQuality.EXCELLENT),
            criteria,
        )

    def test_evaluation_is_deterministic(self, make_record):
        record = make_record(score=61, lease_to_own=True, deal_quality=DealQuality.GOOD)
        criteria = Criteria(
            min_score=60,
            required_features=frozenset({FeatureTag.CREATIVE_FINANCING}),
            deal_quality=frozenset({DealQuality.GOOD}),
        )
        assert evaluate(record, criteria) == evaluate(record, criteria)


class TestPriorityScorer:
    def test_base_plus_score(self, make_record):
        assert PriorityScorer().score(make_record(score=45)) == 63.5

    def test_missing_score_gives_base(self, bare_record):
        assert PriorityScorer().score(bare_record) == 50.0

    def test_bonuses(self, make_record):
        scorer = PriorityScorer()
        assert scorer.score(make_record(score=0, owner_financing=True)) == 65.0
        assert scorer.score(make_record(score=0, lease_to_own=True)) == 60.0
        assert scorer.score(make_record(score=0, va_eligible=True)) == 60.0
        assert scorer.score(make_record(score=0, listing_type="Foreclosure")) == 55.0

    def test_clamped_to_100(self, make_record):
        record = make_record(
            score=100,
            owner_financing=True,
            lease_to_own=True,
            va_eligible=True,
            listing_type="foreclosure",
        )
        assert PriorityScorer().score(record) == 100.0
