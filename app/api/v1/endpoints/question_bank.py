# app/api/v1/endpoints/question_bank.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.deps import Pagination, get_course_directory, get_pagination, get_staff_or_admin
from app.db.session import get_db
from app.models.question_bank import DifficultyEnum, QuestionStatusEnum, QuestionTypeEnum
from app.schemas.question_bank import (
    ObjectiveQuestionCreate, ObjectiveQuestionUpdate, QuestionBankItem,
    QuestionBankListResponse, TheoryQuestionCreate, TheoryQuestionUpdate
)
from app.schemas.token import Principal
from app.services.course_directory import CourseDirectory
from app.services.question_bank_service import QuestionBankService

router = APIRouter()


@router.post("/objective", response_model=QuestionBankItem, status_code=status.HTTP_201_CREATED)
def create_objective_question(
    question_in: ObjectiveQuestionCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    """
    Crea una pregunta objetiva (opción múltiple) en el banco del curso.
    """
    return QuestionBankService.create_objective(db, principal, directory, question_in)


@router.post("/theory", response_model=QuestionBankItem, status_code=status.HTTP_201_CREATED)
def create_theory_question(
    question_in: TheoryQuestionCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    """
    Crea una pregunta teórica (respuesta abierta) en el banco del curso.
    """
    return QuestionBankService.create_theory(db, principal, directory, question_in)


@router.get("", response_model=QuestionBankListResponse)
def list_questions(
    course_id: int = Query(...),
    question_type: Optional[QuestionTypeEnum] = Query(None),
    difficulty: Optional[DifficultyEnum] = Query(None),
    question_status: QuestionStatusEnum = Query(QuestionStatusEnum.approved, alias="status"),
    topic: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    items, total = QuestionBankService.list_questions(
        db, principal, directory, course_id,
        question_type=question_type, difficulty=difficulty, status=question_status,
        topic=topic, tag=tag, skip=pagination.skip, limit=pagination.page_size,
    )
    return {"items": items, "total": total, "page": pagination.page, "page_size": pagination.page_size}


@router.get("/{question_id}", response_model=QuestionBankItem)
def read_question(
    question_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    return QuestionBankService.get_question(db, principal, directory, question_id)


@router.put("/{question_id}/objective", response_model=QuestionBankItem)
def update_objective_question(
    question_id: int,
    question_in: ObjectiveQuestionUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    return QuestionBankService.update_objective(db, principal, directory, question_id, question_in)


@router.put("/{question_id}/theory", response_model=QuestionBankItem)
def update_theory_question(
    question_id: int,
    question_in: TheoryQuestionUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    return QuestionBankService.update_theory(db, principal, directory, question_id, question_in)


@router.delete("/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_question(
    question_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_staff_or_admin),
    directory: CourseDirectory = Depends(get_course_directory),
):
    """
    Elimina una pregunta del banco. Se rechaza si algún examen la usa.
    """
    QuestionBankService.delete_question(db, principal, directory, question_id)
