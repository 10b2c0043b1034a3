# app/schemas/question_bank.py
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from app.models.question_bank import DifficultyEnum, QuestionStatusEnum, QuestionTypeEnum


class OptionSchema(BaseModel):
    id: str = Field(..., min_length=1, max_length=10)
    text: str


# ── Creación ──

class QuestionBankBase(BaseModel):
    """
    Metadatos comunes a cualquier pregunta del banco.
    """
    course_id: int
    question_text: str = Field(..., min_length=1)
    difficulty: DifficultyEnum = DifficultyEnum.medium
    topic: Optional[str] = Field(None, max_length=200)
    tags: List[str] = []
    status: QuestionStatusEnum = QuestionStatusEnum.approved
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    source_type: Optional[str] = Field("manual", max_length=50)
    source_id: Optional[int] = None


class ObjectiveQuestionCreate(QuestionBankBase):
    options: List[OptionSchema]
    correct_option: str = Field(..., min_length=1, max_length=10)
    marks: float = Field(1.0, gt=0)

    class Config:
        json_schema_extra = {
            "example": {
                "course_id": 12,
                "question_text": "¿Cuánto es 2 + 2?",
                "options": [{"id": "A", "text": "3"}, {"id": "B", "text": "4"}],
                "correct_option": "B",
                "marks": 1,
                "difficulty": "easy",
                "topic": "Aritmética",
                "tags": ["suma"]
            }
        }


class TheoryQuestionCreate(QuestionBankBase):
    max_marks: float = Field(..., gt=0)
    rubric_json: Optional[Any] = None


# ── Actualización parcial ──

class QuestionBankUpdateBase(BaseModel):
    question_text: Optional[str] = Field(None, min_length=1)
    difficulty: Optional[DifficultyEnum] = None
    topic: Optional[str] = Field(None, max_length=200)
    tags: Optional[List[str]] = None
    status: Optional[QuestionStatusEnum] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None


class ObjectiveQuestionUpdate(QuestionBankUpdateBase):
    options: Optional[List[OptionSchema]] = None
    correct_option: Optional[str] = Field(None, min_length=1, max_length=10)
    marks: Optional[float] = Field(None, gt=0)


class TheoryQuestionUpdate(QuestionBankUpdateBase):
    max_marks: Optional[float] = Field(None, gt=0)
    rubric_json: Optional[Any] = None


# ── Respuestas ──

class ObjectivePayload(BaseModel):
    question_text: str
    options: List[OptionSchema]
    correct_option: str
    marks: float
    image_url: Optional[str] = None
    video_url: Optional[str] = None

    class Config:
        from_attributes = True


class TheoryPayload(BaseModel):
    question_text: str
    max_marks: float
    rubric_json: Optional[Any] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None

    class Config:
        from_attributes = True


class QuestionBankItem(BaseModel):
    id: int
    course_id: int
    created_by: int
    question_type: QuestionTypeEnum
    difficulty: Optional[DifficultyEnum] = None
    topic: Optional[str] = None
    tags: List[str] = []
    status: QuestionStatusEnum
    source_type: Optional[str] = None
    source_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    objective: Optional[ObjectivePayload] = None
    theory: Optional[TheoryPayload] = None

    class Config:
        from_attributes = True


class QuestionBankListResponse(BaseModel):
    items: List[QuestionBankItem]
    total: int
    page: int
    page_size: int
