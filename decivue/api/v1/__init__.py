"""API v1 package."""

from fastapi import APIRouter

from decivue.api.v1.endpoints import (
    assumption_conflicts,
    assumptions,
    constraints,
    decision_conflicts,
    decision_dependencies,
    decisions,
    events,
)

router = APIRouter(prefix="/api/v1")

router.include_router(decisions.router, prefix="/decisions", tags=["decisions"])
router.include_router(
    decision_dependencies.router, prefix="/decisions", tags=["dependencies"]
)
router.include_router(assumptions.router, prefix="/assumptions", tags=["assumptions"])
router.include_router(constraints.router, prefix="/constraints", tags=["constraints"])
router.include_router(
    assumption_conflicts.router, prefix="/assumption-conflicts", tags=["conflicts"]
)
router.include_router(decision_conflicts.router, prefix="/decision-conflicts", tags=["conflicts"])
router.include_router(events.router, prefix="/events", tags=["events"])
