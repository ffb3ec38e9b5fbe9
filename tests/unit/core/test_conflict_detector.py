"""Unit tests for rule-based conflict detection."""

import pytest

from decivue.core.models.conflict import ConflictType
from decivue.core.services.conflict_detector import ConflictDetector
from decivue.utils.config import ConflictSettings


@pytest.fixture
def detector():
    return ConflictDetector()


def budget(**kwargs):
    return {"category": "BUDGET", "budget_line": "marketing", "timeframe": "Q3-2025", **kwargs}


def timeline(**kwargs):
    return {"category": "TIMELINE", "milestone": "launch", **kwargs}


def resource(**kwargs):
    return {"category": "RESOURCE", "resource_type": "engineers", "timeframe": "Q3", **kwargs}


def market(direction, **kwargs):
    return {"category": "MARKET", "metric": "demand", "direction": direction, **kwargs}


class TestComparability:
    def test_missing_parameters(self, detector):
        assert detector.compare(None, budget(amount=10)) is None

    def test_different_categories(self, detector):
        assert detector.compare(budget(amount=10), market("increase")) is None

    def test_different_budget_lines(self, detector):
        a = budget(amount=10)
        b = budget(amount=20, budget_line="sales")
        assert detector.compare(a, b) is None

    def test_unparseable_parameters_are_skipped(self, detector):
        assert detector.compare({"category": "BUDGET", "bogus": 1}, budget(amount=1)) is None

    def test_generic_parameters_never_conflict(self, detector):
        other = {"category": "OTHER", "values": {"x": 1}}
        assert detector.compare(other, other) is None


class TestBudget:
    def test_max_below_min(self, detector):
        finding = detector.compare(budget(max_amount=50_000), budget(min_amount=80_000))
        assert finding.rule == "budget_min_max"
        assert finding.conflict_type == ConflictType.CONTRADICTORY
        assert finding.confidence == 0.99

    def test_fixed_amount_mismatch(self, detector):
        finding = detector.compare(budget(amount=100), budget(amount=120))
        assert finding.rule == "budget_fixed_mismatch"
        assert "100 vs 120" in finding.explanation

    def test_equal_amounts(self, detector):
        assert detector.compare(budget(amount=100), budget(amount=100)) is None

    def test_opposite_outcomes(self, detector):
        finding = detector.compare(budget(outcome="approved"), budget(outcome="rejected"))
        assert finding.rule == "budget_outcome"
        assert finding.confidence == 0.9


class TestTimeline:
    def test_min_duration_exceeds_deadline(self, detector):
        finding = detector.compare(timeline(min_duration=10), timeline(deadline=8))
        assert finding.rule == "timeline_min_exceeds_deadline"
        assert finding.confidence == 0.98

    def test_units_must_match(self, detector):
        assert detector.compare(timeline(min_duration=10), timeline(deadline=8, unit="months")) is None

    def test_max_below_min(self, detector):
        finding = detector.compare(timeline(max_duration=4), timeline(min_duration=6))
        assert finding.rule == "timeline_max_below_min"

    def test_met_and_missed(self, detector):
        finding = detector.compare(timeline(outcome="met"), timeline(outcome="missed"))
        assert finding.rule == "timeline_outcome"


class TestResource:
    def test_shortfall(self, detector):
        finding = detector.compare(resource(required=8), resource(available=5))
        assert finding.rule == "resource_shortfall"
        assert finding.conflict_type == ConflictType.INCOMPATIBLE
        assert "8 engineers (Q3) required but only 5 available" == finding.explanation

    def test_resource_type_is_case_insensitive(self, detector):
        finding = detector.compare(resource(required=8), resource(resource_type="Engineers", available=5))
        assert finding is not None

    def test_availability(self, detector):
        finding = detector.compare(
            resource(availability="available"), resource(availability="unavailable")
        )
        assert finding.rule == "resource_availability"

    def test_competition_only_between_decisions(self, detector):
        a = resource(required=4, available=6)
        b = resource(required=4)
        assert detector.compare(a, b, mode="assumption") is None

        finding = detector.compare(a, b, mode="decision")
        assert finding.rule == "resource_competition"
        assert finding.conflict_type == ConflictType.RESOURCE_COMPETITION
        assert finding.confidence == 0.85


class TestMarket:
    def test_opposite_directions(self, detector):
        finding = detector.compare(market("increase"), market("decrease"))
        assert finding.rule == "market_direction"
        assert finding.confidence == 0.94

    def test_stable_is_not_opposite(self, detector):
        assert detector.compare(market("increase"), market("stable")) is None

    def test_timeframes_must_match(self, detector):
        assert detector.compare(market("increase", timeframe="2025"), market("decrease")) is None


class TestThresholds:
    def test_assumption_threshold_is_strict(self):
        settings = ConflictSettings(confidences={"market_direction": 0.7})
        detector = ConflictDetector(settings)
        assert detector.compare(market("increase"), market("decrease")) is not None
        assert detector.detect(market("increase"), market("decrease")) is None

    def test_decision_threshold_is_inclusive(self):
        settings = ConflictSettings(confidences={"market_direction": 0.65})
        detector = ConflictDetector(settings)
        assert detector.detect(market("increase"), market("decrease"), mode="decision") is not None
        assert detector.detect(market("increase"), market("decrease"), mode="assumption") is None

    def test_unknown_rule_scores_zero(self):
        detector = ConflictDetector(ConflictSettings(confidences={}))
        assert detector.detect(budget(amount=1), budget(amount=2), mode="decision") is None
