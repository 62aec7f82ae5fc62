from __future__ import annotations

from typing import Any


class PlanningError(Exception):
    """Base for every error the planning core raises.

    `kind` is stable and meant for programmatic checks, `message` is for humans.
    """

    kind: str = "planning_error"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, "field": self.field}


class PlanValidationError(PlanningError, ValueError):
    kind = "validation_error"


class PlanNotFoundError(PlanningError, LookupError):
    kind = "not_found"

    def __init__(self, plan_id: str) -> None:
        super().__init__(f"Financial plan not found: {plan_id}", field="id")
        self.plan_id = plan_id


class InvalidRangeError(PlanningError, ValueError):
    kind = "invalid_range"


class StorageUnavailableError(PlanningError, RuntimeError):
    kind = "storage_unavailable"


class InvariantViolation(ValueError):
    """Raised inside model validators so the offending field survives pydantic wrapping."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
