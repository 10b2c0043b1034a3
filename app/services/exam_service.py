# app/services/exam_service.py
"""
Servicio de exámenes: definición, consulta, actualización y baja en cascada.
"""
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.core.logging_config import get_exam_logger
from app.crud import crud_exam, crud_question_bank
from app.models.exam import Exam, ExamTypeEnum, SelectionModeEnum, VisibilityEnum
from app.models.question_bank import QuestionStatusEnum, QuestionTypeEnum
from app.schemas.exam import ExamCreate, ExamUpdate
from app.schemas.token import Principal
from app.services.access_control import can_access_course, can_modify_exam
from app.services.audit_service import log_admin_activity
from app.services.course_directory import CourseDirectory
from app.utils.datetime_utils import ensure_utc

logger = get_exam_logger("exams")


def validate_exam_shape(
    exam_type: ExamTypeEnum,
    selection_mode: SelectionModeEnum,
    objective_count: int,
    theory_count: int,
    start_at=None,
    end_at=None,
) -> None:
    """
    Reglas de coherencia entre tipo de examen, cantidades y ventana.
    """
    if start_at is not None and end_at is not None and ensure_utc(start_at) >= ensure_utc(end_at):
        raise ValidationError("start_at must be before end_at", field="end_at")

    if selection_mode != SelectionModeEnum.random:
        return
    if exam_type == ExamTypeEnum.objective_only and theory_count:
        raise ValidationError("Objective-only exams cannot request theory questions", field="theory_count")
    if exam_type == ExamTypeEnum.theory_only and objective_count:
        raise ValidationError("Theory-only exams cannot request objective questions", field="objective_count")
    if objective_count + theory_count <= 0:
        raise ValidationError("Random exams must request at least one question", field="objective_count")


def _check_template_kinds(exam_type: ExamTypeEnum, questions, field: str) -> None:
    """Un examen de un solo tipo no puede llevar preguntas del otro en su plantilla."""
    for question in questions:
        if exam_type == ExamTypeEnum.objective_only and question.question_type != QuestionTypeEnum.objective:
            raise ValidationError(f"Question {question.id} is not objective", field=field)
        if exam_type == ExamTypeEnum.theory_only and question.question_type != QuestionTypeEnum.theory:
            raise ValidationError(f"Question {question.id} is not theory", field=field)


def _validate_manual_questions(db: Session, data: ExamCreate) -> list:
    ids = data.manual_question_ids or []
    if len(set(ids)) != len(ids):
        raise ValidationError("manual_question_ids contains duplicates", field="manual_question_ids")

    found = {q.id: q for q in crud_question_bank.get_questions_by_ids(db, ids)}
    missing = [qid for qid in ids if qid not in found]
    if missing:
        raise ValidationError(f"Questions not found: {missing}", field="manual_question_ids")

    questions = [found[qid] for qid in ids]
    for question in questions:
        if question.course_id != data.course_id:
            raise ValidationError(
                f"Question {question.id} belongs to another course", field="manual_question_ids"
            )
        if question.status == QuestionStatusEnum.archived:
            raise ValidationError(f"Question {question.id} is archived", field="manual_question_ids")
    _check_template_kinds(data.exam_type, questions, "manual_question_ids")

    for qid, marks in (data.marks_overrides or {}).items():
        if qid not in found:
            raise ValidationError(f"Marks override for unknown question {qid}", field="marks_overrides")
        if marks <= 0:
            raise ValidationError("Marks overrides must be positive", field="marks_overrides")
    return questions


class ExamService:

    @staticmethod
    def create_exam(
        db: Session, principal: Principal, directory: CourseDirectory, data: ExamCreate
    ) -> Exam:
        if not can_access_course(principal, data.course_id, directory):
            raise AuthorizationError("You do not have access to this course")

        validate_exam_shape(
            data.exam_type, data.selection_mode, data.objective_count, data.theory_count,
            data.start_at, data.end_at,
        )

        questions = []
        if data.selection_mode == SelectionModeEnum.manual:
            if not data.manual_question_ids:
                raise ValidationError(
                    "Manual exams need at least one question", field="manual_question_ids"
                )
            questions = _validate_manual_questions(db, data)
        elif data.manual_question_ids or data.marks_overrides:
            raise ValidationError(
                "manual_question_ids is only allowed in manual selection mode",
                field="manual_question_ids",
            )

        objective_count = data.objective_count
        theory_count = data.theory_count
        if questions:
            objective_count = sum(1 for q in questions if q.question_type == QuestionTypeEnum.objective)
            theory_count = len(questions) - objective_count

        exam = Exam(
            course_id=data.course_id,
            academic_year=data.academic_year,
            semester=data.semester,
            title=data.title,
            instructions=data.instructions,
            start_at=data.start_at,
            end_at=data.end_at,
            duration_minutes=data.duration_minutes or settings.EXAM_DEFAULT_DURATION_MINUTES,
            visibility=data.visibility,
            randomize=data.randomize,
            exam_type=data.exam_type,
            selection_mode=data.selection_mode,
            objective_count=objective_count,
            theory_count=theory_count,
            max_attempts=data.max_attempts or settings.EXAM_DEFAULT_MAX_ATTEMPTS,
            created_by=principal.id,
        )
        try:
            db.add(exam)
            db.flush()
            if questions:
                crud_exam.add_template_items(db, exam, questions, data.marks_overrides)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Error creating exam", extra={"course_id": data.course_id, "user_id": principal.id})
            raise
        db.refresh(exam)

        logger.info(
            f"Exam created ({exam.selection_mode.value}, {len(questions)} template items)",
            extra={"exam_id": exam.id, "course_id": exam.course_id, "user_id": principal.id},
        )
        if principal.is_admin:
            log_admin_activity(
                db, principal.id, "exam_created", "exam", exam.id, {"course_id": exam.course_id}
            )
        return exam

    @staticmethod
    def get_exam(db: Session, principal: Principal, directory: CourseDirectory, exam_id: int) -> Exam:
        exam = crud_exam.get_exam(db, exam_id)
        if exam is None:
            raise NotFoundError("Exam")
        if not can_access_course(principal, exam.course_id, directory):
            raise AuthorizationError("You do not have access to this exam")
        return exam

    @staticmethod
    def list_exams(
        db: Session,
        principal: Principal,
        directory: CourseDirectory,
        course_id: Optional[int] = None,
        academic_year: Optional[str] = None,
        semester: Optional[str] = None,
        visibility: Optional[VisibilityEnum] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Exam], int]:
        course_ids = None
        if not principal.is_admin:
            if course_id and not can_access_course(principal, course_id, directory):
                raise AuthorizationError("You do not have access to this course")
            course_ids = directory.owned_course_ids(principal.id)
        return crud_exam.get_exams(
            db, course_ids=course_ids, course_id=course_id,
            academic_year=academic_year, semester=semester, visibility=visibility,
            skip=skip, limit=limit,
        )

    @staticmethod
    def update_exam(
        db: Session, principal: Principal, directory: CourseDirectory, exam_id: int, data: ExamUpdate
    ) -> Exam:
        check = can_modify_exam(db, principal, exam_id, directory)
        if check.exam is None:
            raise NotFoundError("Exam")
        if not check.allowed:
            raise AuthorizationError("You cannot modify this exam")

        exam = check.exam
        update_data = data.model_dump(exclude_unset=True)
        merged = {
            "exam_type": update_data.get("exam_type") or exam.exam_type,
            "objective_count": update_data.get("objective_count", exam.objective_count),
            "theory_count": update_data.get("theory_count", exam.theory_count),
            "start_at": update_data.get("start_at", exam.start_at),
            "end_at": update_data.get("end_at", exam.end_at),
        }
        validate_exam_shape(
            merged["exam_type"], exam.selection_mode,
            merged["objective_count"] or 0, merged["theory_count"] or 0,
            merged["start_at"], merged["end_at"],
        )
        if exam.selection_mode == SelectionModeEnum.manual and merged["exam_type"] != exam.exam_type:
            template = crud_exam.get_template_items(db, exam.id)
            _check_template_kinds(merged["exam_type"], [item.question for item in template], "exam_type")

        for field, value in update_data.items():
            if value is None and field not in ("instructions", "start_at", "end_at"):
                continue
            setattr(exam, field, value)

        try:
            db.add(exam)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Error updating exam", extra={"exam_id": exam_id, "user_id": principal.id})
            raise
        db.refresh(exam)

        logger.info(
            f"Exam updated: {sorted(update_data)}",
            extra={"exam_id": exam.id, "user_id": principal.id},
        )
        if check.is_admin_modification:
            log_admin_activity(
                db, principal.id, "exam_updated", "exam", exam.id,
                {"original_creator_id": check.original_creator_id, "fields": sorted(update_data)},
            )
        return exam

    @staticmethod
    def delete_exam(
        db: Session, principal: Principal, directory: CourseDirectory, exam_id: int
    ) -> Dict[str, int]:
        check = can_modify_exam(db, principal, exam_id, directory)
        if check.exam is None:
            raise NotFoundError("Exam")
        if not check.allowed:
            raise AuthorizationError("You cannot delete this exam")

        try:
            counts = crud_exam.delete_exam_cascade(db, check.exam)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Error deleting exam, rolled back", extra={"exam_id": exam_id, "user_id": principal.id})
            raise

        logger.info(f"Exam deleted: {counts}", extra={"exam_id": exam_id, "user_id": principal.id})
        if check.is_admin_modification:
            log_admin_activity(
                db, principal.id, "exam_deleted", "exam", exam_id,
                {"original_creator_id": check.original_creator_id, "deleted": counts},
            )
        return counts

    @staticmethod
    def list_available_exams(
        db: Session,
        principal: Principal,
        directory: CourseDirectory,
        academic_year: Optional[str] = None,
        semester: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Exam], int]:
        """
        Exámenes publicados de los cursos en los que el estudiante está
        inscrito, para el mismo año académico y semestre del examen.
        """
        periods = directory.enrolled_periods(principal.id, academic_year, semester)
        return crud_exam.get_published_exams_for_periods(db, periods, skip=skip, limit=limit)
