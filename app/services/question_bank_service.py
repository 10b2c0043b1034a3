# app/services/question_bank_service.py
"""
Servicio del banco de preguntas: alta, edición, consulta y baja
de preguntas objetivas y teóricas por curso.
"""
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.exceptions import (
    AuthorizationError, NotFoundError, QuestionInUseError, ValidationError
)
from app.core.logging_config import get_exam_logger
from app.crud import crud_question_bank
from app.models.question_bank import (
    DifficultyEnum, QuestionBank, QuestionStatusEnum, QuestionTypeEnum
)
from app.schemas.question_bank import (
    ObjectiveQuestionCreate, ObjectiveQuestionUpdate, OptionSchema,
    TheoryQuestionCreate, TheoryQuestionUpdate
)
from app.schemas.token import Principal
from app.services.access_control import can_access_course
from app.services.audit_service import log_admin_activity
from app.services.course_directory import CourseDirectory

logger = get_exam_logger("question_bank")


def _validate_options(options: List[OptionSchema], correct_option: str) -> None:
    if len(options) < 2:
        raise ValidationError("Objective questions need at least 2 options", field="options")
    ids = [opt.id for opt in options]
    if len(set(ids)) != len(ids):
        raise ValidationError("Option ids must be unique", field="options")
    if correct_option not in ids:
        raise ValidationError("correct_option must match one of the option ids", field="correct_option")


class QuestionBankService:

    @staticmethod
    def _ensure_course_access(principal: Principal, course_id: int, directory: CourseDirectory) -> None:
        if not can_access_course(principal, course_id, directory):
            raise AuthorizationError("You do not have access to this course")

    @staticmethod
    def _get_for_principal(
        db: Session, principal: Principal, question_id: int, directory: CourseDirectory
    ) -> QuestionBank:
        question = crud_question_bank.get_question(db, question_id)
        if question is None:
            raise NotFoundError("Question")
        QuestionBankService._ensure_course_access(principal, question.course_id, directory)
        return question

    @staticmethod
    def _audit_if_foreign(db: Session, principal: Principal, question: QuestionBank, action: str, details: dict):
        if principal.is_admin and question.created_by != principal.id:
            log_admin_activity(
                db, principal.id, action, "question", question.id,
                {"original_creator_id": question.created_by, **details},
            )

    @staticmethod
    def create_objective(
        db: Session, principal: Principal, directory: CourseDirectory, data: ObjectiveQuestionCreate
    ) -> QuestionBank:
        QuestionBankService._ensure_course_access(principal, data.course_id, directory)
        _validate_options(data.options, data.correct_option)

        question = crud_question_bank.create_objective_question(db, data, created_by=principal.id)
        logger.info(
            "Objective question created",
            extra={"question_id": question.id, "course_id": question.course_id, "user_id": principal.id},
        )
        if principal.is_admin:
            log_admin_activity(
                db, principal.id, "question_created", "question", question.id,
                {"course_id": question.course_id, "question_type": "objective"},
            )
        return question

    @staticmethod
    def create_theory(
        db: Session, principal: Principal, directory: CourseDirectory, data: TheoryQuestionCreate
    ) -> QuestionBank:
        QuestionBankService._ensure_course_access(principal, data.course_id, directory)

        question = crud_question_bank.create_theory_question(db, data, created_by=principal.id)
        logger.info(
            "Theory question created",
            extra={"question_id": question.id, "course_id": question.course_id, "user_id": principal.id},
        )
        if principal.is_admin:
            log_admin_activity(
                db, principal.id, "question_created", "question", question.id,
                {"course_id": question.course_id, "question_type": "theory"},
            )
        return question

    @staticmethod
    def get_question(
        db: Session, principal: Principal, directory: CourseDirectory, question_id: int
    ) -> QuestionBank:
        return QuestionBankService._get_for_principal(db, principal, question_id, directory)

    @staticmethod
    def list_questions(
        db: Session,
        principal: Principal,
        directory: CourseDirectory,
        course_id: int,
        question_type: Optional[QuestionTypeEnum] = None,
        difficulty: Optional[DifficultyEnum] = None,
        status: Optional[QuestionStatusEnum] = QuestionStatusEnum.approved,
        topic: Optional[str] = None,
        tag: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[QuestionBank], int]:
        QuestionBankService._ensure_course_access(principal, course_id, directory)
        return crud_question_bank.get_questions(
            db, course_id,
            question_type=question_type, difficulty=difficulty, status=status,
            topic=topic, tag=tag, skip=skip, limit=limit,
        )

    @staticmethod
    def update_objective(
        db: Session, principal: Principal, directory: CourseDirectory,
        question_id: int, data: ObjectiveQuestionUpdate,
    ) -> QuestionBank:
        question = QuestionBankService._get_for_principal(db, principal, question_id, directory)
        if question.question_type != QuestionTypeEnum.objective:
            raise NotFoundError("Objective question")

        # La opción correcta se valida contra el estado resultante
        fields = data.model_dump(exclude_unset=True)
        if "options" in fields or "correct_option" in fields:
            options = data.options if data.options is not None else [
                OptionSchema(**opt) for opt in question.objective.options
            ]
            correct = data.correct_option or question.objective.correct_option
            _validate_options(options, correct)

        question = crud_question_bank.update_question(db, question, data)
        logger.info("Objective question updated", extra={"question_id": question.id, "user_id": principal.id})
        QuestionBankService._audit_if_foreign(
            db, principal, question, "question_updated", {"fields": sorted(fields)}
        )
        return question

    @staticmethod
    def update_theory(
        db: Session, principal: Principal, directory: CourseDirectory,
        question_id: int, data: TheoryQuestionUpdate,
    ) -> QuestionBank:
        question = QuestionBankService._get_for_principal(db, principal, question_id, directory)
        if question.question_type != QuestionTypeEnum.theory:
            raise NotFoundError("Theory question")

        fields = data.model_dump(exclude_unset=True)
        question = crud_question_bank.update_question(db, question, data)
        logger.info("Theory question updated", extra={"question_id": question.id, "user_id": principal.id})
        QuestionBankService._audit_if_foreign(
            db, principal, question, "question_updated", {"fields": sorted(fields)}
        )
        return question

    @staticmethod
    def delete_question(
        db: Session, principal: Principal, directory: CourseDirectory, question_id: int
    ) -> None:
        question = QuestionBankService._get_for_principal(db, principal, question_id, directory)

        references = crud_question_bank.count_exam_references(db, question.id)
        if references:
            logger.warning(
                f"Refusing to delete question referenced by {references} exam items",
                extra={"question_id": question.id, "user_id": principal.id},
            )
            raise QuestionInUseError("Question is used by one or more exams")

        creator_id = question.created_by
        crud_question_bank.delete_question(db, question)
        logger.info("Question deleted", extra={"question_id": question_id, "user_id": principal.id})
        if principal.is_admin and creator_id != principal.id:
            log_admin_activity(
                db, principal.id, "question_deleted", "question", question_id,
                {"original_creator_id": creator_id},
            )
