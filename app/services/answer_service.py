# app/services/answer_service.py
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    AttemptNotInProgressError, AuthorizationError, NotFoundError, ValidationError
)
from app.core.logging_config import get_exam_logger
from app.core.metrics import exam_answers_saved_total
from app.crud import crud_attempt
from app.models.exam import AttemptStatusEnum, ExamAnswerObjective, ExamAnswerTheory, ExamItem
from app.models.question_bank import QuestionTypeEnum
from app.schemas.attempt import AnswerSubmit
from app.schemas.token import Principal
from app.utils.datetime_utils import utcnow

logger = get_exam_logger("answers")


def _save_objective(db: Session, attempt_id: int, item: ExamItem, selected_option) -> ExamAnswerObjective:
    payload = item.question.objective
    if selected_option is not None and selected_option not in payload.option_ids:
        raise ValidationError("selected_option is not one of the question options", field="selected_option")

    is_correct = selected_option is not None and selected_option == payload.correct_option
    awarded = item.points if is_correct else 0

    answer = crud_attempt.get_objective_answer(db, attempt_id, item.id)
    if answer is None:
        answer = ExamAnswerObjective(attempt_id=attempt_id, exam_item_id=item.id)
    answer.selected_option = selected_option
    answer.is_correct = is_correct
    answer.awarded_score = awarded
    answer.answered_at = utcnow()
    db.add(answer)
    db.flush()
    return answer


def _save_theory(db: Session, attempt_id: int, item: ExamItem, answer_text, file_url) -> ExamAnswerTheory:
    answer = crud_attempt.get_theory_answer(db, attempt_id, item.id)
    if answer is None:
        answer = ExamAnswerTheory(attempt_id=attempt_id, exam_item_id=item.id)
    answer.answer_text = answer_text
    answer.file_url = file_url
    answer.answered_at = utcnow()
    db.add(answer)
    db.flush()
    return answer


class AnswerService:

    @staticmethod
    def submit_answer(db: Session, principal: Principal, attempt_id: int, data: AnswerSubmit) -> dict:
        """
        Guarda (o reemplaza) la respuesta a un ítem del intento.
        Las objetivas se califican al momento; las teóricas quedan pendientes.
        """
        attempt = crud_attempt.get_attempt(db, attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt")
        if attempt.student_id != principal.id:
            raise AuthorizationError("Attempt not found or access denied")
        if attempt.status != AttemptStatusEnum.in_progress:
            raise AttemptNotInProgressError("Exam already submitted")

        item = crud_attempt.get_attempt_item(db, attempt.id, data.exam_item_id)
        if item is None:
            raise NotFoundError("Question", "Question not found in this exam")

        question_type = item.question.question_type
        for retry in (False, True):
            # Estado verificado con la fila bloqueada hasta el commit
            locked = crud_attempt.get_attempt(db, attempt.id, for_update=True)
            if locked.status != AttemptStatusEnum.in_progress:
                db.rollback()
                raise AttemptNotInProgressError("Exam already submitted")
            try:
                if question_type == QuestionTypeEnum.objective:
                    answer = _save_objective(db, attempt.id, item, data.selected_option)
                else:
                    answer = _save_theory(db, attempt.id, item, data.answer_text, data.file_url)
                db.commit()
                break
            except IntegrityError:
                # Dos guardados simultáneos del mismo ítem: el segundo actualiza
                db.rollback()
                if retry:
                    raise
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Error saving answer", extra={"attempt_id": attempt_id, "user_id": principal.id})
                raise

        exam_answers_saved_total.labels(question_type=question_type.value).inc()
        logger.debug(
            "Answer saved",
            extra={"attempt_id": attempt.id, "user_id": principal.id, "answer_id": answer.id},
        )

        if question_type == QuestionTypeEnum.objective:
            return {
                "exam_item_id": item.id,
                "question_type": question_type,
                "is_correct": bool(answer.is_correct),
                "awarded_score": float(answer.awarded_score or 0),
                "message": "Answer saved",
            }
        return {
            "exam_item_id": item.id,
            "question_type": question_type,
            "message": "Answer saved, pending grading",
        }
