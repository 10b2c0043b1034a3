# app/services/grading_service.py
"""
Calificación de respuestas teóricas y vistas para el staff.

La calificación individual rechaza puntajes mayores al máximo del ítem;
la masiva los recorta a [0, máximo]. Ambas recalculan el total del intento
a partir de las filas guardadas, con la fila del intento bloqueada.
"""
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    AuthorizationError, NotFoundError, ScoreAboveMaximumError, StateConflictError
)
from app.core.logging_config import get_exam_logger
from app.core.metrics import exam_attempts_finalized_total, exam_grading_operations_total
from app.crud import crud_attempt, crud_exam
from app.models.exam import AttemptStatusEnum, ExamAttempt
from app.schemas.grading import BulkGradeRequest, TheoryGradeRequest
from app.schemas.token import Principal
from app.services import attempt_views
from app.services.access_control import can_access_course
from app.services.audit_service import log_admin_activity
from app.services.course_directory import CourseDirectory
from app.utils.datetime_utils import utcnow

logger = get_exam_logger("grading")


def recompute_attempt_total(db: Session, attempt: ExamAttempt, grader_id: int, now) -> dict:
    """
    Suma objetivas + teóricas desde la base y marca el intento como calificado.
    No hace commit.
    """
    objective_score = crud_attempt.sum_objective_scores(db, attempt.id)
    theory_score = crud_attempt.sum_theory_scores(db, attempt.id)

    was_graded = attempt.status == AttemptStatusEnum.graded
    attempt.total_score = objective_score + theory_score
    attempt.status = AttemptStatusEnum.graded
    attempt.graded_at = now
    attempt.graded_by = grader_id
    db.add(attempt)
    db.flush()

    if not was_graded:
        exam_attempts_finalized_total.labels(status=AttemptStatusEnum.graded.value).inc()
    return {
        "objective_score": objective_score,
        "theory_score": theory_score,
        "total_score": objective_score + theory_score,
    }


class GradingService:

    @staticmethod
    def _lock_gradable_attempt(
        db: Session, principal: Principal, directory: CourseDirectory, attempt_id: int
    ) -> ExamAttempt:
        attempt = crud_attempt.get_attempt(db, attempt_id, for_update=True)
        if attempt is None:
            raise NotFoundError("Attempt")
        if not can_access_course(principal, attempt.exam.course_id, directory):
            db.rollback()
            raise AuthorizationError("You do not have access to this exam")
        if attempt.status == AttemptStatusEnum.in_progress:
            db.rollback()
            raise StateConflictError("Attempt has not been submitted yet")
        return attempt

    @staticmethod
    def _audit(db: Session, principal: Principal, attempt: ExamAttempt, action: str, details: dict):
        exam = attempt.exam
        if principal.is_admin and exam.created_by != principal.id:
            log_admin_activity(
                db, principal.id, action, "attempt", attempt.id,
                {"exam_id": exam.id, "original_creator_id": exam.created_by, **details},
            )

    @staticmethod
    def grade_theory_answer(
        db: Session,
        principal: Principal,
        directory: CourseDirectory,
        answer_id: int,
        data: TheoryGradeRequest,
    ):
        answer = crud_attempt.get_theory_answer_by_id(db, answer_id)
        if answer is None:
            raise NotFoundError("Answer")

        attempt = GradingService._lock_gradable_attempt(db, principal, directory, answer.attempt_id)
        max_marks = answer.max_marks
        if data.awarded_score > max_marks:
            db.rollback()
            logger.warning(
                f"Score {data.awarded_score} above max {max_marks}",
                extra={"answer_id": answer_id, "user_id": principal.id, "error_code": "score_above_max"},
            )
            raise ScoreAboveMaximumError("Score cannot exceed max marks")

        now = utcnow()
        try:
            answer.awarded_score = data.awarded_score
            answer.feedback = data.feedback
            answer.graded_by = principal.id
            answer.graded_at = now
            db.add(answer)
            db.flush()

            if crud_attempt.count_ungraded_theory_answers(db, attempt.id) == 0:
                recompute_attempt_total(db, attempt, principal.id, now)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Error grading answer", extra={"answer_id": answer_id, "user_id": principal.id})
            raise

        db.refresh(answer)
        exam_grading_operations_total.labels(mode="single").inc()
        logger.info(
            f"Theory answer graded: {data.awarded_score}/{max_marks}",
            extra={"answer_id": answer.id, "attempt_id": attempt.id, "user_id": principal.id},
        )
        GradingService._audit(db, principal, attempt, "answer_graded", {"answer_id": answer.id})
        return answer

    @staticmethod
    def bulk_grade(
        db: Session,
        principal: Principal,
        directory: CourseDirectory,
        attempt_id: int,
        data: BulkGradeRequest,
    ) -> dict:
        attempt = GradingService._lock_gradable_attempt(db, principal, directory, attempt_id)
        answers = {a.id: a for a in crud_attempt.get_theory_answers(db, attempt.id)}

        now = utcnow()
        graded: List[int] = []
        skipped: List[int] = []
        try:
            for entry in data.grades:
                answer = answers.get(entry.answer_id)
                if answer is None:
                    skipped.append(entry.answer_id)
                    continue
                answer.awarded_score = min(max(entry.awarded_score, 0), answer.max_marks)
                answer.feedback = entry.feedback
                answer.graded_by = principal.id
                answer.graded_at = now
                db.add(answer)
                graded.append(answer.id)
            db.flush()

            totals = recompute_attempt_total(db, attempt, principal.id, now)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Error in bulk grading", extra={"attempt_id": attempt_id, "user_id": principal.id})
            raise

        exam_grading_operations_total.labels(mode="bulk").inc()
        if skipped:
            logger.warning(
                f"Bulk grading skipped answers not in attempt: {skipped}",
                extra={"attempt_id": attempt.id, "user_id": principal.id},
            )
        logger.info(
            f"Attempt bulk graded: total {totals['total_score']}",
            extra={"attempt_id": attempt.id, "user_id": principal.id},
        )
        GradingService._audit(db, principal, attempt, "attempt_bulk_graded", {"answer_ids": graded})

        return {
            "attempt_id": attempt.id,
            **totals,
            "status": AttemptStatusEnum.graded,
            "graded_answer_ids": graded,
            "skipped_answer_ids": skipped,
        }

    @staticmethod
    def list_attempts(
        db: Session,
        principal: Principal,
        directory: CourseDirectory,
        exam_id: int,
        status: Optional[AttemptStatusEnum] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[dict], int]:
        """
        Intentos del examen con los datos del estudiante.
        Si el estudiante no existe en el directorio, `student` es None.
        """
        exam = crud_exam.get_exam(db, exam_id)
        if exam is None:
            raise NotFoundError("Exam")
        if not can_access_course(principal, exam.course_id, directory):
            raise AuthorizationError("You do not have access to this exam")

        attempts, total = crud_attempt.get_attempts_for_exam(db, exam.id, status, skip, limit)
        students = directory.get_students(a.student_id for a in attempts)

        items = []
        for attempt in attempts:
            row = attempt_views.attempt_summary(attempt)
            row["student"] = students.get(attempt.student_id)
            items.append(row)
        return items, total

    @staticmethod
    def get_attempt_for_grading(
        db: Session, principal: Principal, directory: CourseDirectory, attempt_id: int
    ) -> dict:
        attempt = crud_attempt.get_attempt(db, attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt")
        exam = attempt.exam
        if not can_access_course(principal, exam.course_id, directory):
            raise AuthorizationError("You do not have access to this exam")

        student = directory.get_students([attempt.student_id]).get(attempt.student_id)
        return attempt_views.attempt_detail(
            attempt,
            exam,
            crud_attempt.get_attempt_items(db, attempt.id),
            crud_attempt.get_objective_answers(db, attempt.id),
            crud_attempt.get_theory_answers(db, attempt.id),
            reveal_answers=True,
            include_rubric=True,
            student=student,
        )
