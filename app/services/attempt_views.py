# app/services/attempt_views.py
from datetime import datetime, timedelta
from typing import List, Optional

from app.models.exam import Exam, ExamAttempt, ExamItem
from app.models.question_bank import QuestionTypeEnum
from app.utils.datetime_utils import ensure_utc


def attempt_deadline(attempt: ExamAttempt, exam: Exam) -> datetime:
    """Hora límite informativa: inicio del intento + duración del examen."""
    return ensure_utc(attempt.started_at) + timedelta(minutes=exam.duration_minutes)


def question_view(item: ExamItem, reveal_answer: bool = False, include_rubric: bool = False) -> dict:
    """
    Representación de un ítem para el cliente. La opción correcta
    solo se incluye si reveal_answer es True.
    """
    question = item.question
    payload = question.payload
    view = {
        "exam_item_id": item.id,
        "question_bank_id": question.id,
        "order": item.order,
        "question_type": question.question_type,
        "question_text": payload.question_text if payload else "",
        "options": None,
        "max_marks": item.points,
        "image_url": payload.image_url if payload else None,
        "video_url": payload.video_url if payload else None,
    }
    if question.question_type == QuestionTypeEnum.objective and payload is not None:
        view["options"] = payload.options
        if reveal_answer:
            view["correct_option"] = payload.correct_option
    elif include_rubric and payload is not None:
        view["rubric_json"] = payload.rubric_json
    return view


def attempt_summary(attempt: ExamAttempt) -> dict:
    return {
        "id": attempt.id,
        "exam_id": attempt.exam_id,
        "student_id": attempt.student_id,
        "attempt_no": attempt.attempt_no,
        "status": attempt.status,
        "started_at": attempt.started_at,
        "submitted_at": attempt.submitted_at,
        "total_score": attempt.total_score,
        "max_score": attempt.max_score,
        "graded_at": attempt.graded_at,
        "graded_by": attempt.graded_by,
        "auto_submitted": bool(attempt.auto_submitted),
    }


def attempt_detail(
    attempt: ExamAttempt,
    exam: Exam,
    items: List[ExamItem],
    objective_answers: list,
    theory_answers: list,
    reveal_answers: bool,
    include_rubric: bool = False,
    student: Optional[dict] = None,
) -> dict:
    detail = attempt_summary(attempt)
    detail.update({
        "exam_title": exam.title,
        "deadline": attempt_deadline(attempt, exam),
        "items": [question_view(i, reveal_answers, include_rubric) for i in items],
        "objective_answers": objective_answers,
        "theory_answers": theory_answers,
    })
    detail["student"] = student
    return detail
