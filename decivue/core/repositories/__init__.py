"""Data access repositories."""

from decivue.core.repositories.assumption import AssumptionRepository
from decivue.core.repositories.base import BaseRepository
from decivue.core.repositories.conflict import (
    AssumptionConflictRepository,
    DecisionConflictRepository,
)
from decivue.core.repositories.constraint import (
    ConstraintRepository,
    ConstraintViolationRepository,
)
from decivue.core.repositories.decision import DecisionRepository
from decivue.core.repositories.dependency import DecisionDependencyRepository
from decivue.core.repositories.evaluation import (
    DecisionVersionRepository,
    EvaluationHistoryRepository,
)

__all__ = [
    "AssumptionConflictRepository",
    "AssumptionRepository",
    "BaseRepository",
    "ConstraintRepository",
    "ConstraintViolationRepository",
    "DecisionConflictRepository",
    "DecisionDependencyRepository",
    "DecisionRepository",
    "DecisionVersionRepository",
    "EvaluationHistoryRepository",
]
