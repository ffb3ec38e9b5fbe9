"""API dependency injection."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.database import get_db_session
from decivue.core.services import (
    AssumptionService,
    ConflictService,
    ConstraintService,
    DecisionService,
    DependencyService,
    EvaluationService,
    GovernanceService,
    ReviewService,
)


def get_decision_service(
    session: AsyncSession = Depends(get_db_session),
) -> DecisionService:
    """Get decision service."""
    return DecisionService.from_session(session)


def get_dependency_service(
    session: AsyncSession = Depends(get_db_session),
) -> DependencyService:
    """Get decision dependency service."""
    return DependencyService.from_session(session)


def get_assumption_service(
    session: AsyncSession = Depends(get_db_session),
) -> AssumptionService:
    """Get assumption service."""
    return AssumptionService.from_session(session)


def get_constraint_service(
    session: AsyncSession = Depends(get_db_session),
) -> ConstraintService:
    """Get constraint service."""
    return ConstraintService.from_session(session)


def get_evaluation_service(
    session: AsyncSession = Depends(get_db_session),
) -> EvaluationService:
    """Get evaluation service."""
    return EvaluationService.from_session(session)


def get_conflict_service(
    session: AsyncSession = Depends(get_db_session),
) -> ConflictService:
    """Get conflict service."""
    return ConflictService.from_session(session)


def get_review_service(
    session: AsyncSession = Depends(get_db_session),
) -> ReviewService:
    """Get review service."""
    return ReviewService.from_session(session)


def get_governance_service(
    session: AsyncSession = Depends(get_db_session),
) -> GovernanceService:
    """Get governance service."""
    return GovernanceService.from_session(session)
