"""Domain exceptions raised by the service layer."""

from uuid import UUID


class DecivueError(Exception):
    """Base class for all Decivue errors."""


class NotFoundError(DecivueError):
    """An entity does not exist."""

    entity = "Entity"

    def __init__(self, entity_id: UUID | str) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.entity} with id {entity_id} not found")


class DecisionNotFoundError(NotFoundError):
    entity = "Decision"


class AssumptionNotFoundError(NotFoundError):
    entity = "Assumption"


class ConstraintNotFoundError(NotFoundError):
    entity = "Constraint"


class ConflictNotFoundError(NotFoundError):
    entity = "Conflict"


class ViolationNotFoundError(NotFoundError):
    entity = "Constraint violation"


class DependencyNotFoundError(NotFoundError):
    entity = "Dependency"


class DuplicateError(DecivueError):
    """A unique field or pair already exists."""


class InvalidOperationError(DecivueError):
    """The operation is not allowed in the entity's current state."""


class DecisionLockedError(DecivueError):
    """The decision is locked by another user."""

    def __init__(self, decision_id: UUID, locked_by: str | None) -> None:
        self.decision_id = decision_id
        self.locked_by = locked_by
        super().__init__(f"Decision {decision_id} is locked by {locked_by}")


class GovernanceError(DecivueError):
    """A governance rule rejected the operation."""


class ImmutableConstraintError(DecivueError):
    """An immutable constraint's rule cannot be changed."""
