# app/api/v1/endpoints/exams.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.deps import Pagination, get_course_directory, get_pagination, get_staff_or_admin
from app.db.session import get_db
from app.models.exam import VisibilityEnum
from app.schemas.exam import (
    ExamCreate, ExamDeleteResponse, ExamDetail, ExamListResponse, ExamStatistics, ExamUpdate
)
from app.schemas.token import Principal
from app.services.course_directory import CourseDirectory
from app.services.exam_service import ExamService
from app.services.statistics_service import get_exam_statistics

router = APIRouter()


@router.post("/exams", response_model=ExamDetail, status_code=status.HTTP_201_CREATED)
def create_exam(
    exam_in: ExamCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    """
    Crea un examen para un curso.
    En modo manual la plantilla de preguntas se crea en la misma transacción.
    """
    return ExamService.create_exam(db, principal, directory, exam_in)


@router.get("/exams", response_model=ExamListResponse)
def list_exams(
    course_id: Optional[int] = Query(None),
    academic_year: Optional[str] = Query(None),
    semester: Optional[str] = Query(None),
    visibility: Optional[VisibilityEnum] = Query(None),
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    """
    Lista los exámenes visibles para el usuario: todos para administradores,
    los de sus cursos para el staff.
    """
    items, total = ExamService.list_exams(
        db, principal, directory,
        course_id=course_id, academic_year=academic_year, semester=semester,
        visibility=visibility, skip=pagination.skip, limit=pagination.page_size,
    )
    return {"items": items, "total": total, "page": pagination.page, "page_size": pagination.page_size}


@router.get("/exams/{exam_id}", response_model=ExamDetail)
def read_exam(
    exam_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    return ExamService.get_exam(db, principal, directory, exam_id)


@router.put("/exams/{exam_id}", response_model=ExamDetail)
def update_exam(
    exam_id: int,
    exam_in: ExamUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    return ExamService.update_exam(db, principal, directory, exam_id, exam_in)


@router.delete("/exams/{exam_id}", response_model=ExamDeleteResponse)
def delete_exam(
    exam_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    """
    Elimina el examen con sus ítems, intentos y respuestas (todo o nada).
    """
    counts = ExamService.delete_exam(db, principal, directory, exam_id)
    return {"exam_id": exam_id, "deleted": counts}


@router.get("/exams/{exam_id}/statistics", response_model=ExamStatistics)
def read_exam_statistics(
    exam_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    return get_exam_statistics(db, principal, directory, exam_id)
