# app/schemas/exam.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.exam import ExamTypeEnum, SelectionModeEnum, VisibilityEnum
from app.schemas.question_bank import QuestionBankItem


class ExamCreate(BaseModel):
    """
    Schema para crear un examen. En modo manual se pueden enviar los ids del
    banco en el orden deseado y, opcionalmente, un puntaje específico por id.
    """
    course_id: int
    academic_year: str = Field(..., min_length=1, max_length=20)
    semester: str = Field(..., min_length=1, max_length=20)
    title: str = Field(..., min_length=1, max_length=200)
    instructions: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    visibility: VisibilityEnum = VisibilityEnum.draft
    randomize: bool = True
    exam_type: ExamTypeEnum = ExamTypeEnum.mixed
    selection_mode: SelectionModeEnum = SelectionModeEnum.random
    objective_count: int = Field(0, ge=0)
    theory_count: int = Field(0, ge=0)
    max_attempts: Optional[int] = Field(None, ge=1)
    manual_question_ids: Optional[List[int]] = None
    marks_overrides: Optional[Dict[int, float]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "course_id": 12,
                "academic_year": "2024/2025",
                "semester": "1ST",
                "title": "Parcial 1",
                "duration_minutes": 45,
                "visibility": "published",
                "exam_type": "mixed",
                "selection_mode": "random",
                "objective_count": 10,
                "theory_count": 2
            }
        }


class ExamUpdate(BaseModel):
    """
    Actualización parcial: solo se modifican los campos enviados.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    instructions: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    visibility: Optional[VisibilityEnum] = None
    randomize: Optional[bool] = None
    exam_type: Optional[ExamTypeEnum] = None
    objective_count: Optional[int] = Field(None, ge=0)
    theory_count: Optional[int] = Field(None, ge=0)
    max_attempts: Optional[int] = Field(None, ge=1)


class ExamItemOut(BaseModel):
    id: int
    order: int
    question_bank_id: int
    marks_override: Optional[float] = None
    points: float
    question: QuestionBankItem

    class Config:
        from_attributes = True


class ExamOut(BaseModel):
    id: int
    course_id: int
    academic_year: str
    semester: str
    title: str
    instructions: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    duration_minutes: int
    visibility: VisibilityEnum
    randomize: bool
    exam_type: ExamTypeEnum
    selection_mode: SelectionModeEnum
    objective_count: int
    theory_count: int
    max_attempts: int
    created_by: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExamDetail(ExamOut):
    items: List[ExamItemOut] = []


class ExamListResponse(BaseModel):
    items: List[ExamOut]
    total: int
    page: int
    page_size: int


class ExamDeleteResponse(BaseModel):
    exam_id: int
    deleted: Dict[str, int]
    message: str = "Exam deleted successfully"


class ExamStatistics(BaseModel):
    exam_id: int
    total_attempts: int
    average_score: str = Field(..., description="Promedio con 2 decimales")
    highest_score: float
    lowest_score: float
