"""Rule-based conflict detection over structured parameters.

Two entities are compared only when their parameters share a category and
a key dimension (budget line and timeframe, milestone, resource type and
timeframe, metric and timeframe). Confidence scores come from a
configuration table keyed by rule name.
"""

import logging
from dataclasses import dataclass
from typing import Literal

from pydantic import ValidationError

from decivue.core.models.conflict import ConflictType
from decivue.core.schemas.parameters import (
    BudgetParameters,
    MarketParameters,
    ResourceParameters,
    TimelineParameters,
    parse_parameters,
)
from decivue.utils.config import ConflictSettings

logger = logging.getLogger(__name__)

Mode = Literal["assumption", "decision"]

_OPPOSITE_OUTCOMES = {
    ("approved", "rejected"),
    ("rejected", "approved"),
    ("met", "missed"),
    ("missed", "met"),
    ("available", "unavailable"),
    ("unavailable", "available"),
    ("increase", "decrease"),
    ("decrease", "increase"),
}


@dataclass(frozen=True)
class ConflictFinding:
    conflict_type: ConflictType
    confidence: float
    explanation: str
    rule: str


def _opposite(a: str | None, b: str | None) -> bool:
    return (a, b) in _OPPOSITE_OUTCOMES


def _below(upper: float | None, lower: float | None) -> bool:
    return upper is not None and lower is not None and upper < lower


class ConflictDetector:
    """Compares two parameter sets and reports the first rule that fires."""

    def __init__(self, settings: ConflictSettings | None = None) -> None:
        self._settings = settings or ConflictSettings()

    def _finding(self, rule: str, conflict_type: ConflictType, explanation: str) -> ConflictFinding:
        return ConflictFinding(
            conflict_type=conflict_type,
            confidence=self._settings.confidences.get(rule, 0.0),
            explanation=explanation,
            rule=rule,
        )

    def min_confidence(self, mode: Mode) -> float:
        if mode == "decision":
            return self._settings.decision_min_confidence
        return self._settings.assumption_min_confidence

    def compare(
        self, a_params: dict | None, b_params: dict | None, mode: Mode = "assumption"
    ) -> ConflictFinding | None:
        """Return a finding when the two parameter sets contradict."""
        try:
            a = parse_parameters(a_params)
            b = parse_parameters(b_params)
        except ValidationError:
            logger.debug("Skipping comparison of unparseable parameters")
            return None
        if a is None or b is None or a.category != b.category:
            return None

        if isinstance(a, BudgetParameters):
            return self._compare_budget(a, b)
        if isinstance(a, TimelineParameters):
            return self._compare_timeline(a, b)
        if isinstance(a, ResourceParameters):
            return self._compare_resource(a, b, mode)
        if isinstance(a, MarketParameters):
            return self._compare_market(a, b)
        return None

    def detect(
        self, a_params: dict | None, b_params: dict | None, mode: Mode = "assumption"
    ) -> ConflictFinding | None:
        """Like ``compare`` but drops findings below the mode's threshold."""
        finding = self.compare(a_params, b_params, mode)
        if finding is None:
            return None
        if mode == "assumption" and finding.confidence <= self.min_confidence(mode):
            return None
        if mode == "decision" and finding.confidence < self.min_confidence(mode):
            return None
        return finding

    def _compare_budget(self, a: BudgetParameters, b: BudgetParameters) -> ConflictFinding | None:
        if (a.budget_line, a.timeframe, a.currency) != (b.budget_line, b.timeframe, b.currency):
            return None
        scope = a.budget_line or "budget"
        if a.timeframe:
            scope = f"{scope} ({a.timeframe})"

        if _below(a.max_amount, b.min_amount) or _below(b.max_amount, a.min_amount):
            return self._finding(
                "budget_min_max",
                ConflictType.CONTRADICTORY,
                f"Maximum {scope} is below the other side's minimum",
            )
        if a.amount is not None and b.amount is not None and a.amount != b.amount:
            return self._finding(
                "budget_fixed_mismatch",
                ConflictType.CONTRADICTORY,
                f"Fixed amounts differ for {scope}: {a.amount:g} vs {b.amount:g} {a.currency}",
            )
        if _opposite(a.outcome, b.outcome):
            return self._finding(
                "budget_outcome",
                ConflictType.CONTRADICTORY,
                f"{scope} is both {a.outcome} and {b.outcome}",
            )
        return None

    def _compare_timeline(self, a: TimelineParameters, b: TimelineParameters) -> ConflictFinding | None:
        if a.milestone != b.milestone or a.unit != b.unit:
            return None
        scope = a.milestone or "timeline"

        for first, second in ((a, b), (b, a)):
            if _below(first.deadline, second.min_duration):
                return self._finding(
                    "timeline_min_exceeds_deadline",
                    ConflictType.CONTRADICTORY,
                    f"Minimum duration {second.min_duration:g} {a.unit} for {scope} "
                    f"exceeds the deadline of {first.deadline:g} {a.unit}",
                )
        if _below(a.max_duration, b.min_duration) or _below(b.max_duration, a.min_duration):
            return self._finding(
                "timeline_max_below_min",
                ConflictType.CONTRADICTORY,
                f"Maximum duration for {scope} is below the other side's minimum",
            )
        if _opposite(a.outcome, b.outcome):
            return self._finding(
                "timeline_outcome",
                ConflictType.CONTRADICTORY,
                f"{scope} is both {a.outcome} and {b.outcome}",
            )
        return None

    def _compare_resource(
        self, a: ResourceParameters, b: ResourceParameters, mode: Mode
    ) -> ConflictFinding | None:
        if a.resource_type.lower() != b.resource_type.lower() or a.timeframe != b.timeframe:
            return None
        scope = a.resource_type
        if a.timeframe:
            scope = f"{scope} ({a.timeframe})"

        for first, second in ((a, b), (b, a)):
            if _below(second.available, first.required):
                return self._finding(
                    "resource_shortfall",
                    ConflictType.INCOMPATIBLE,
                    f"{first.required:g} {scope} required but only {second.available:g} available",
                )
        if _below(a.max_quantity, b.min_quantity) or _below(b.max_quantity, a.min_quantity):
            return self._finding(
                "resource_max_below_min",
                ConflictType.CONTRADICTORY,
                f"Maximum {scope} is below the other side's minimum",
            )
        if _opposite(a.availability, b.availability):
            return self._finding(
                "resource_availability",
                ConflictType.CONTRADICTORY,
                f"{scope} is both {a.availability} and {b.availability}",
            )
        if mode == "decision" and a.required is not None and b.required is not None:
            pool = [v for v in (a.available, b.available) if v is not None]
            if pool and a.required + b.required > min(pool):
                return self._finding(
                    "resource_competition",
                    ConflictType.RESOURCE_COMPETITION,
                    f"Combined demand {a.required + b.required:g} {scope} exceeds "
                    f"the {min(pool):g} available",
                )
        return None

    def _compare_market(self, a: MarketParameters, b: MarketParameters) -> ConflictFinding | None:
        if a.metric.lower() != b.metric.lower() or a.timeframe != b.timeframe:
            return None
        if _opposite(a.direction, b.direction):
            return self._finding(
                "market_direction",
                ConflictType.CONTRADICTORY,
                f"{a.metric} is expected to both {a.direction} and {b.direction}",
            )
        return None
