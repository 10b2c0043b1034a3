# app/api/v1/endpoints/grading.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import Pagination, get_course_directory, get_pagination, get_staff_or_admin
from app.db.session import get_db
from app.models.exam import AttemptStatusEnum
from app.schemas.attempt import AnswerTheoryOut, AttemptGradingView, AttemptListResponse
from app.schemas.grading import BulkGradeRequest, BulkGradeResponse, TheoryGradeRequest
from app.schemas.token import Principal
from app.services.course_directory import CourseDirectory
from app.services.grading_service import GradingService

router = APIRouter()


@router.get("/exams/{exam_id}/attempts", response_model=AttemptListResponse)
def list_exam_attempts(
    exam_id: int,
    attempt_status: Optional[AttemptStatusEnum] = Query(None, alias="status"),
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    items, total = GradingService.list_attempts(
        db, principal, directory, exam_id, status=attempt_status,
        skip=pagination.skip, limit=pagination.page_size,
    )
    return {"items": items, "total": total, "page": pagination.page, "page_size": pagination.page_size}


@router.get("/attempts/{attempt_id}/grading", response_model=AttemptGradingView)
def read_attempt_for_grading(
    attempt_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    """
    Vista completa del intento para calificar: preguntas con respuesta
    correcta y rúbrica, respuestas del estudiante y sus datos.
    """
    return GradingService.get_attempt_for_grading(db, principal, directory, attempt_id)


@router.post("/answers/theory/{answer_id}/grade", response_model=AnswerTheoryOut)
def grade_theory_answer(
    answer_id: int,
    grade_in: TheoryGradeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    return GradingService.grade_theory_answer(db, principal, directory, answer_id, grade_in)


@router.post("/attempts/{attempt_id}/grade-bulk", response_model=BulkGradeResponse)
def bulk_grade_attempt(
    attempt_id: int,
    grades_in: BulkGradeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    """
    Califica varias respuestas teóricas del intento. Los puntajes se recortan
    a [0, máximo] y el intento queda calificado.
    """
    return GradingService.bulk_grade(db, principal, directory, attempt_id, grades_in)
