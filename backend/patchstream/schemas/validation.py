from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from patchstream.schemas.plan import PlanCandidate


@dataclass(frozen=True)
class PatchStats:
    events: int
    starts: int
    ends: int


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one strict validation call; ok is False iff issues exist"""
    ok: bool
    issues: Tuple[str, ...] = field(default_factory=tuple)
    normalized: Optional[PlanCandidate] = None
    stats: Optional[PatchStats] = None

    @classmethod
    def from_issues(cls, issues, **kwargs) -> "ValidationResult":
        issues = tuple(issues)
        return cls(ok=len(issues) == 0, issues=issues, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"ok": self.ok, "issues": list(self.issues)}
        if self.normalized is not None:
            data["normalized"] = self.normalized.to_dict()
        if self.stats is not None:
            data["stats"] = {
                "events": self.stats.events,
                "starts": self.stats.starts,
                "ends": self.stats.ends,
            }
        return data
