# Plan and validation schemas
from patchstream.schemas.plan import PlanCandidate, PlanStep
from patchstream.schemas.validation import PatchStats, ValidationResult

__all__ = [
    "PlanCandidate",
    "PlanStep",
    "PatchStats",
    "ValidationResult",
]
