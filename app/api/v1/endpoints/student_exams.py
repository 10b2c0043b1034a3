# app/api/v1/endpoints/student_exams.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.deps import Pagination, get_course_directory, get_pagination, get_student
from app.db.session import get_db
from app.schemas.attempt import (
    AnswerResult, AnswerSubmit, AttemptDetail, AttemptStartResponse,
    AttemptSubmitResponse, StudentExamListResponse
)
from app.schemas.token import Principal
from app.services.answer_service import AnswerService
from app.services.attempt_service import AttemptService
from app.services.course_directory import CourseDirectory
from app.services.exam_service import ExamService

router = APIRouter()


@router.get("/student/exams", response_model=StudentExamListResponse)
def list_available_exams(
    academic_year: Optional[str] = Query(None),
    semester: Optional[str] = Query(None),
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_student),
    directory: CourseDirectory = Depends(get_course_directory),
):
    """
    Exámenes publicados de los cursos en los que el estudiante está inscrito.
    """
    items, total = ExamService.list_available_exams(
        db, principal, directory, academic_year=academic_year, semester=semester,
        skip=pagination.skip, limit=pagination.page_size,
    )
    return {"items": items, "total": total, "page": pagination.page, "page_size": pagination.page_size}


@router.post("/exams/{exam_id}/attempts/start", response_model=AttemptStartResponse)
def start_attempt(
    exam_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_student),
    directory: CourseDirectory = Depends(get_course_directory),
):
    """
    Inicia un intento o reanuda el que está en curso (is_new = False).
    """
    client_ip = request.client.host if request.client else None
    return AttemptService.start_attempt(db, principal, directory, exam_id, client_ip=client_ip)


@router.post("/attempts/{attempt_id}/answers", response_model=AnswerResult, response_model_exclude_none=True)
def submit_answer(
    attempt_id: int,
    answer_in: AnswerSubmit,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_student),
):
    return AnswerService.submit_answer(db, principal, attempt_id, answer_in)


@router.post("/attempts/{attempt_id}/submit", response_model=AttemptSubmitResponse)
def submit_attempt(
    attempt_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_student),
):
    attempt = AttemptService.submit_attempt(db, principal, attempt_id)
    return {
        "attempt_id": attempt.id,
        "total_score": attempt.total_score or 0,
        "max_score": attempt.max_score or 0,
        "status": attempt.status,
    }


@router.get("/attempts/{attempt_id}", response_model=AttemptDetail)
def read_attempt(
    attempt_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_student),
):
    return AttemptService.get_attempt_details(db, principal, attempt_id)
