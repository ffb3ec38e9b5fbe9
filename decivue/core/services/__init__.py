"""Business services."""

from decivue.core.services.assumptions import AssumptionService
from decivue.core.services.conflicts import ConflictService
from decivue.core.services.constraints import ConstraintService
from decivue.core.services.decisions import DecisionService
from decivue.core.services.dependencies import DependencyService
from decivue.core.services.evaluation import EvaluationService
from decivue.core.services.governance import GovernanceService
from decivue.core.services.review import ReviewService
from decivue.core.services.versioning import VersioningService

__all__ = [
    "AssumptionService",
    "ConflictService",
    "ConstraintService",
    "DecisionService",
    "DependencyService",
    "EvaluationService",
    "GovernanceService",
    "ReviewService",
    "VersioningService",
]
