"""Database models."""

from decivue.core.models.assumption import (
    Assumption,
    AssumptionScope,
    AssumptionStatus,
    DecisionAssumption,
)
from decivue.core.models.conflict import (
    AssumptionConflict,
    AssumptionResolutionAction,
    ConflictType,
    DecisionConflict,
    DecisionResolutionAction,
)
from decivue.core.models.constraint import (
    Constraint,
    ConstraintType,
    ConstraintViolation,
    DecisionConstraint,
)
from decivue.core.models.decision import Decision, DecisionLifecycle, GovernanceTier
from decivue.core.models.dependency import DecisionDependency
from decivue.core.models.evaluation import EvaluationHistory
from decivue.core.models.version import DecisionVersion

__all__ = [
    "Assumption",
    "AssumptionConflict",
    "AssumptionResolutionAction",
    "AssumptionScope",
    "AssumptionStatus",
    "ConflictType",
    "Constraint",
    "ConstraintType",
    "ConstraintViolation",
    "Decision",
    "DecisionAssumption",
    "DecisionConflict",
    "DecisionConstraint",
    "DecisionDependency",
    "DecisionLifecycle",
    "DecisionResolutionAction",
    "DecisionVersion",
    "EvaluationHistory",
    "GovernanceTier",
]
