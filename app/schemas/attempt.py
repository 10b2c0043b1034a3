# app/schemas/attempt.py
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from app.models.exam import AttemptStatusEnum, ExamTypeEnum
from app.models.question_bank import QuestionTypeEnum
from app.schemas.question_bank import OptionSchema


class QuestionView(BaseModel):
    """
    Pregunta tal como la ve el estudiante: nunca incluye la opción correcta.
    """
    exam_item_id: int
    question_bank_id: int
    order: int
    question_type: QuestionTypeEnum
    question_text: str
    options: Optional[List[OptionSchema]] = None
    max_marks: float
    image_url: Optional[str] = None
    video_url: Optional[str] = None


class AttemptItemView(QuestionView):
    """
    Pregunta dentro del detalle de un intento; la opción correcta y la rúbrica
    solo se llenan cuando corresponde revelarlas.
    """
    correct_option: Optional[str] = None
    rubric_json: Optional[Any] = None


class AttemptStartResponse(BaseModel):
    attempt_id: int
    exam_id: int
    attempt_no: int
    started_at: datetime
    deadline: datetime
    duration_minutes: int
    remaining_attempts: int
    is_new: bool
    questions: List[QuestionView]


class AnswerSubmit(BaseModel):
    exam_item_id: int
    selected_option: Optional[str] = Field(None, max_length=10)
    answer_text: Optional[str] = None
    file_url: Optional[str] = None


class AnswerResult(BaseModel):
    exam_item_id: int
    question_type: QuestionTypeEnum
    is_correct: Optional[bool] = None
    awarded_score: Optional[float] = None
    message: str


class AttemptSubmitResponse(BaseModel):
    attempt_id: int
    total_score: float
    max_score: float
    status: AttemptStatusEnum


class StudentDisplay(BaseModel):
    id: int
    fname: Optional[str] = None
    lname: Optional[str] = None
    matric_number: Optional[str] = None
    email: Optional[str] = None


class AnswerObjectiveOut(BaseModel):
    id: int
    exam_item_id: int
    selected_option: Optional[str] = None
    is_correct: Optional[bool] = None
    awarded_score: Optional[float] = None
    answered_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AnswerTheoryOut(BaseModel):
    id: int
    attempt_id: int
    exam_item_id: int
    answer_text: Optional[str] = None
    file_url: Optional[str] = None
    awarded_score: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[int] = None
    answered_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AttemptSummary(BaseModel):
    id: int
    exam_id: int
    student_id: int
    attempt_no: int
    status: AttemptStatusEnum
    started_at: datetime
    submitted_at: Optional[datetime] = None
    total_score: Optional[float] = None
    max_score: Optional[float] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[int] = None
    auto_submitted: bool = False

    class Config:
        from_attributes = True


class AttemptWithStudent(AttemptSummary):
    student: Optional[StudentDisplay] = None


class AttemptListResponse(BaseModel):
    items: List[AttemptWithStudent]
    total: int
    page: int
    page_size: int


class AttemptDetail(AttemptSummary):
    exam_title: str
    deadline: datetime
    items: List[AttemptItemView]
    objective_answers: List[AnswerObjectiveOut]
    theory_answers: List[AnswerTheoryOut]


class AttemptGradingView(AttemptDetail):
    student: Optional[StudentDisplay] = None


class StudentExamOut(BaseModel):
    id: int
    course_id: int
    academic_year: str
    semester: str
    title: str
    instructions: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    duration_minutes: int
    exam_type: ExamTypeEnum
    max_attempts: int

    class Config:
        from_attributes = True


class StudentExamListResponse(BaseModel):
    items: List[StudentExamOut]
    total: int
    page: int
    page_size: int
