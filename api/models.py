"""
API Request/Response Models.

Pydantic models for API request validation and response serialization.

Competency and score ranges are checked by the grade aggregator, not here,
so out-of-range values surface as ``ValidationError`` (400).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from grading.results import AnalysisResult


# ============================================================================
# Request Models
# ============================================================================

class EssayCreateRequest(BaseModel):
    """Essay submission."""

    title: str = Field(..., min_length=1, max_length=500, description="Essay title")
    text: Optional[str] = Field(
        default=None,
        description="Transcribed text, if already available"
    )
    image_url: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Location of the scanned essay"
    )
    student_id: Optional[str] = Field(
        default=None,
        description="Author (required when a teacher submits for a student)"
    )
    classroom_id: Optional[str] = Field(default=None, description="Classroom the essay belongs to")


class EssayUpdateRequest(BaseModel):
    """Essay edit. A changed text restarts analysis and resets scores."""

    title: Optional[str] = Field(default=None, max_length=500)
    text: Optional[str] = None

    @model_validator(mode="after")
    def require_one_field(self):
        if self.title is None and self.text is None:
            raise ValueError("Provide title or text")
        return self


class EssayTextRequest(BaseModel):
    """Text produced by the OCR/correction pipeline."""

    text: str = Field(..., min_length=1)


class ReanalyzeRequest(BaseModel):
    """Arbitrary text to analyze without storing anything."""

    text: str = Field(..., min_length=1, max_length=20000)


class EvaluationCreateRequest(BaseModel):
    """Human evaluation of one competency."""

    essay_id: str
    competency: int = Field(..., description="Competency number (1-5)")
    score: float = Field(..., description="Competency score (0-200)")
    comment: Optional[str] = Field(default=None, max_length=5000)


class EvaluationUpdateRequest(BaseModel):
    """Evaluation edit. Fields left out are kept."""

    competency: Optional[int] = None
    score: Optional[float] = None
    comment: Optional[str] = Field(default=None, max_length=5000)


class ClassroomCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class EnrollmentRequest(BaseModel):
    student_email: str = Field(..., description="Email of the student to enroll")

    @field_validator("student_email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


# ============================================================================
# Response Models
# ============================================================================

class EssayResponse(BaseModel):
    """Essay with its scores."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    image_url: Optional[str] = None
    text: Optional[str] = None
    auto_score: Optional[float] = None
    final_score: Optional[float] = None
    analysis: Optional[Dict[str, Any]] = None
    student_id: str
    submitted_by: str
    classroom_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EssayListResponse(BaseModel):
    essays: List[EssayResponse]
    page: int
    page_size: int


class EvaluationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    essay_id: str
    competency: int
    score: float
    comment: Optional[str] = None
    evaluator_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EvaluationWriteResponse(BaseModel):
    """Evaluation write result with the recomputed final score."""

    evaluation: EvaluationResponse
    final_score: Optional[float] = None


class AnalysisResponse(BaseModel):
    """Analysis state: ``completed`` with a result, or ``running``."""

    status: str
    result: Optional[AnalysisResult] = None


class ClassroomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    teacher_id: str
    created_at: Optional[datetime] = None


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: Optional[str] = None


class ClassroomDetailResponse(ClassroomResponse):
    """Classroom with its enrolled students."""

    students: List[StudentResponse] = Field(default_factory=list)


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    classroom_id: str
    created_at: Optional[datetime] = None


class ClassroomStatisticsResponse(BaseModel):
    classroom_id: str
    essay_count: int
    graded_count: int
    mean_final_score: Optional[float] = None
    competency_means: Dict[int, float] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: bool
    analysis: Dict[str, Any]
    metrics: Dict[str, Any]
    timestamp: datetime
