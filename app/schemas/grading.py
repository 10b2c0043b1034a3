# app/schemas/grading.py
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.exam import AttemptStatusEnum


class TheoryGradeRequest(BaseModel):
    awarded_score: float = Field(..., ge=0)
    feedback: Optional[str] = None


class BulkGradeEntry(BaseModel):
    """El puntaje se recorta a [0, max_marks] al aplicarse."""
    answer_id: int
    awarded_score: float
    feedback: Optional[str] = None


class BulkGradeRequest(BaseModel):
    grades: List[BulkGradeEntry] = Field(..., min_length=1)


class BulkGradeResponse(BaseModel):
    attempt_id: int
    objective_score: float
    theory_score: float
    total_score: float
    status: AttemptStatusEnum
    graded_answer_ids: List[int]
    skipped_answer_ids: List[int]


class ExpirySweepResponse(BaseModel):
    expired_attempt_ids: List[int]
    count: int
