from patchstream.services.plan_validator import validate_plan_strict, ALLOWED_CATEGORIES
from patchstream.services.patch_validator import validate_patch_strict

__all__ = [
    "validate_plan_strict",
    "validate_patch_strict",
    "ALLOWED_CATEGORIES",
]
