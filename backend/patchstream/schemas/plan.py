from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List


class PlanStep(BaseModel):
    id: str
    title: str
    category: str = "frontend"
    files: List[str] = Field(default_factory=list)
    description: str = ""

    model_config = ConfigDict(frozen=True)


class PlanCandidate(BaseModel):
    title: str = "Architecture Plan"
    description: str = ""
    stack: str = ""
    file_tree: List[str] = Field(default_factory=list, alias="fileTree")
    steps: List[PlanStep] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape (``fileTree``)"""
        return self.model_dump(by_alias=True)
