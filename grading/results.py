"""
Analysis result models.

Pydantic models for the scored breakdown an analysis provider returns.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

COMPETENCY_COUNT = 5
MAX_COMPETENCY_SCORE = 200
MAX_FINAL_SCORE = 1000


class CompetencyScore(BaseModel):
    """Score and feedback for one competency."""
    competency: int = Field(..., ge=1, le=COMPETENCY_COUNT)
    score: float = Field(..., ge=0, le=MAX_COMPETENCY_SCORE)
    feedback: str = ""


class AnalysisResult(BaseModel):
    """Scored breakdown of an essay."""
    final_score: float = Field(..., ge=0, le=MAX_FINAL_SCORE)
    competencies: List[CompetencyScore] = Field(default_factory=list)
    summary: Optional[str] = None

    @field_validator("competencies")
    @classmethod
    def unique_competencies(cls, v: List[CompetencyScore]) -> List[CompetencyScore]:
        seen = [c.competency for c in v]
        if len(seen) != len(set(seen)):
            raise ValueError("Each competency may appear only once")
        return sorted(v, key=lambda c: c.competency)
