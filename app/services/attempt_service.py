# app/services/attempt_service.py
"""
Ciclo de vida de los intentos: inicio (o reanudación), entrega y consulta
por parte del estudiante.
"""
import random
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    AttemptNotInProgressError, AttemptQuotaExceededError, AuthorizationError,
    ExamNotAvailableError, NotFoundError, StateConflictError
)
from app.core.logging_config import get_exam_logger
from app.core.metrics import exam_attempts_finalized_total, exam_attempts_started_total
from app.crud import crud_attempt, crud_exam
from app.models.exam import (
    AttemptStatusEnum, Exam, ExamAnswerObjective, ExamAnswerTheory, ExamAttempt, VisibilityEnum
)
from app.models.question_bank import QuestionTypeEnum
from app.schemas.token import Principal
from app.services import attempt_views
from app.services.course_directory import CourseDirectory
from app.services.question_selector import materialize_attempt_items
from app.utils.datetime_utils import ensure_utc, utcnow

logger = get_exam_logger("attempts")


def _start_response(db: Session, exam: Exam, attempt: ExamAttempt, is_new: bool, remaining: int) -> dict:
    items = crud_attempt.get_attempt_items(db, attempt.id)
    return {
        "attempt_id": attempt.id,
        "exam_id": exam.id,
        "attempt_no": attempt.attempt_no,
        "started_at": ensure_utc(attempt.started_at),
        "deadline": attempt_views.attempt_deadline(attempt, exam),
        "duration_minutes": exam.duration_minutes,
        "remaining_attempts": max(remaining, 0),
        "is_new": is_new,
        "questions": [attempt_views.question_view(item) for item in items],
    }


def _reject(reason: str, exc: Exception, exam_id: int, student_id: int):
    exam_attempts_started_total.labels(outcome="rejected").inc()
    logger.warning(
        f"Attempt start rejected: {exc}",
        extra={"exam_id": exam_id, "user_id": student_id, "error_code": reason},
    )
    raise exc


def finalize_attempt(db: Session, attempt: ExamAttempt, now: datetime, auto_submitted: bool = False) -> ExamAttempt:
    """
    Cierra un intento en curso. Todo ítem queda con una fila de respuesta:
    los objetivos sin contestar valen 0 y los teóricos quedan sin calificar.
    No hace commit.
    """
    items = crud_attempt.get_attempt_items(db, attempt.id)
    answered_objective = {a.exam_item_id for a in crud_attempt.get_objective_answers(db, attempt.id)}
    answered_theory = {a.exam_item_id for a in crud_attempt.get_theory_answers(db, attempt.id)}

    has_theory = False
    max_score = 0.0
    for item in items:
        max_score += item.points
        if item.question.question_type == QuestionTypeEnum.objective:
            if item.id not in answered_objective:
                db.add(ExamAnswerObjective(
                    attempt_id=attempt.id, exam_item_id=item.id,
                    selected_option=None, is_correct=False, awarded_score=0,
                ))
        else:
            has_theory = True
            if item.id not in answered_theory:
                db.add(ExamAnswerTheory(
                    attempt_id=attempt.id, exam_item_id=item.id,
                    answer_text=None, awarded_score=None,
                ))
    db.flush()

    objective_score = crud_attempt.sum_objective_scores(db, attempt.id)

    attempt.submitted_at = now
    attempt.total_score = objective_score
    attempt.max_score = max_score
    attempt.auto_submitted = auto_submitted
    if has_theory:
        attempt.status = AttemptStatusEnum.submitted
    else:
        attempt.status = AttemptStatusEnum.graded
        attempt.graded_at = now
    db.add(attempt)
    db.flush()

    exam_attempts_finalized_total.labels(status=attempt.status.value).inc()
    logger.info(
        f"Attempt finalized as {attempt.status.value}: {objective_score}/{max_score}",
        extra={"attempt_id": attempt.id, "exam_id": attempt.exam_id, "user_id": attempt.student_id},
    )
    return attempt


class AttemptService:

    @staticmethod
    def start_attempt(
        db: Session,
        principal: Principal,
        directory: CourseDirectory,
        exam_id: int,
        client_ip: Optional[str] = None,
        now: Optional[datetime] = None,
        rng: Optional[random.Random] = None,
    ) -> dict:
        """
        Inicia un intento nuevo o reanuda el que está en curso.

        Verificaciones, en orden: examen publicado, ventana de disponibilidad,
        inscripción del estudiante en el curso y periodo del examen, y cupo de
        intentos. Un intento en curso se devuelve sin cambios.
        """
        now = now or utcnow()
        student_id = principal.id

        exam = crud_exam.get_exam(db, exam_id)
        if exam is None:
            raise NotFoundError("Exam")
        if exam.visibility != VisibilityEnum.published:
            _reject("not_published", ExamNotAvailableError("Exam is not available"), exam_id, student_id)
        if exam.start_at is not None and now < ensure_utc(exam.start_at):
            _reject("not_started", ExamNotAvailableError("Exam has not started yet"), exam_id, student_id)
        if exam.end_at is not None and now > ensure_utc(exam.end_at):
            _reject("ended", ExamNotAvailableError("Exam has ended"), exam_id, student_id)
        if not directory.is_enrolled(student_id, exam.course_id, exam.academic_year, exam.semester):
            _reject("not_enrolled", AuthorizationError("You are not registered for this course"), exam_id, student_id)

        existing = crud_attempt.get_in_progress_attempt(db, exam.id, student_id)
        attempts_count = crud_attempt.count_attempts(db, exam.id, student_id)
        if existing is not None:
            exam_attempts_started_total.labels(outcome="resumed").inc()
            logger.info("Attempt resumed", extra={"exam_id": exam.id, "attempt_id": existing.id, "user_id": student_id})
            return _start_response(db, exam, existing, False, exam.max_attempts - attempts_count)

        if attempts_count >= exam.max_attempts:
            _reject("quota", AttemptQuotaExceededError("Maximum attempts reached"), exam_id, student_id)

        try:
            attempt = crud_attempt.create_attempt(
                db, exam.id, student_id,
                attempt_no=crud_attempt.get_next_attempt_no(db, exam.id, student_id),
                started_at=now, start_ip=client_ip,
            )
            materialize_attempt_items(db, exam, attempt, rng)
            db.commit()
        except IntegrityError:
            # Otro inicio concurrente ganó la carrera
            db.rollback()
            existing = crud_attempt.get_in_progress_attempt(db, exam.id, student_id)
            attempts_count = crud_attempt.count_attempts(db, exam.id, student_id)
            if existing is not None:
                exam_attempts_started_total.labels(outcome="resumed").inc()
                return _start_response(db, exam, existing, False, exam.max_attempts - attempts_count)
            if attempts_count >= exam.max_attempts:
                _reject("quota", AttemptQuotaExceededError("Maximum attempts reached"), exam_id, student_id)
            _reject("concurrent_start", StateConflictError("Concurrent attempt start, please retry"), exam_id, student_id)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Error creating attempt", extra={"exam_id": exam.id, "user_id": student_id})
            raise

        db.refresh(attempt)
        exam_attempts_started_total.labels(outcome="created").inc()
        logger.info(
            f"Attempt {attempt.attempt_no}/{exam.max_attempts} started",
            extra={"exam_id": exam.id, "attempt_id": attempt.id, "user_id": student_id},
        )
        return _start_response(db, exam, attempt, True, exam.max_attempts - attempts_count - 1)

    @staticmethod
    def _get_own_attempt(db: Session, principal: Principal, attempt_id: int, for_update: bool = False) -> ExamAttempt:
        attempt = crud_attempt.get_attempt(db, attempt_id, for_update=for_update)
        if attempt is None:
            raise NotFoundError("Attempt")
        if attempt.student_id != principal.id:
            raise AuthorizationError("Attempt not found or access denied")
        return attempt

    @staticmethod
    def submit_attempt(db: Session, principal: Principal, attempt_id: int) -> ExamAttempt:
        attempt = AttemptService._get_own_attempt(db, principal, attempt_id, for_update=True)
        if attempt.status != AttemptStatusEnum.in_progress:
            db.rollback()
            raise AttemptNotInProgressError("Exam already submitted")

        try:
            finalize_attempt(db, attempt, utcnow())
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Error submitting attempt", extra={"attempt_id": attempt_id, "user_id": principal.id})
            raise
        db.refresh(attempt)
        return attempt

    @staticmethod
    def get_attempt_details(db: Session, principal: Principal, attempt_id: int) -> dict:
        """
        Detalle del intento para su dueño. Las respuestas correctas se
        revelan solo cuando el intento ya no está en curso.
        """
        attempt = AttemptService._get_own_attempt(db, principal, attempt_id)
        exam = attempt.exam
        return attempt_views.attempt_detail(
            attempt,
            exam,
            crud_attempt.get_attempt_items(db, attempt.id),
            crud_attempt.get_objective_answers(db, attempt.id),
            crud_attempt.get_theory_answers(db, attempt.id),
            reveal_answers=attempt.status != AttemptStatusEnum.in_progress,
        )
