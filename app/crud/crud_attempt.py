"""
Consultas de intentos, ítems materializados y respuestas.
Como en crud_exam, el commit lo hace la capa de servicios.
"""
from typing import List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.models.exam import (
    AttemptStatusEnum, Exam, ExamAnswerObjective, ExamAnswerTheory, ExamAttempt, ExamItem
)


def get_attempt(db: Session, attempt_id: int, for_update: bool = False) -> Optional[ExamAttempt]:
    """
    Obtiene un intento por ID. Con for_update=True bloquea la fila
    hasta el fin de la transacción (SELECT ... FOR UPDATE) y refresca
    la instancia ya cargada en la sesión.
    """
    query = db.query(ExamAttempt).filter(ExamAttempt.id == attempt_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.first()


def get_in_progress_attempt(db: Session, exam_id: int, student_id: int) -> Optional[ExamAttempt]:
    return db.query(ExamAttempt).filter(
        ExamAttempt.exam_id == exam_id,
        ExamAttempt.student_id == student_id,
        ExamAttempt.status == AttemptStatusEnum.in_progress,
    ).first()


def count_attempts(db: Session, exam_id: int, student_id: int) -> int:
    return db.query(func.count(ExamAttempt.id)).filter(
        ExamAttempt.exam_id == exam_id,
        ExamAttempt.student_id == student_id,
    ).scalar() or 0


def get_next_attempt_no(db: Session, exam_id: int, student_id: int) -> int:
    current = db.query(func.max(ExamAttempt.attempt_no)).filter(
        ExamAttempt.exam_id == exam_id,
        ExamAttempt.student_id == student_id,
    ).scalar()
    return (current or 0) + 1


def create_attempt(
    db: Session, exam_id: int, student_id: int, attempt_no: int,
    started_at, start_ip: Optional[str] = None,
) -> ExamAttempt:
    attempt = ExamAttempt(
        exam_id=exam_id,
        student_id=student_id,
        attempt_no=attempt_no,
        started_at=started_at,
        status=AttemptStatusEnum.in_progress,
        start_ip=start_ip,
        auto_submitted=False,
    )
    db.add(attempt)
    db.flush()
    return attempt


def get_attempt_items(db: Session, attempt_id: int) -> List[ExamItem]:
    return db.query(ExamItem).filter(
        ExamItem.attempt_id == attempt_id
    ).order_by(ExamItem.order).all()


def get_attempt_item(db: Session, attempt_id: int, exam_item_id: int) -> Optional[ExamItem]:
    return db.query(ExamItem).filter(
        ExamItem.id == exam_item_id,
        ExamItem.attempt_id == attempt_id,
    ).first()


def get_objective_answers(db: Session, attempt_id: int) -> List[ExamAnswerObjective]:
    return db.query(ExamAnswerObjective).filter(
        ExamAnswerObjective.attempt_id == attempt_id
    ).order_by(ExamAnswerObjective.exam_item_id).all()


def get_theory_answers(db: Session, attempt_id: int) -> List[ExamAnswerTheory]:
    return db.query(ExamAnswerTheory).filter(
        ExamAnswerTheory.attempt_id == attempt_id
    ).order_by(ExamAnswerTheory.exam_item_id).all()


def get_objective_answer(db: Session, attempt_id: int, exam_item_id: int) -> Optional[ExamAnswerObjective]:
    return db.query(ExamAnswerObjective).filter(
        ExamAnswerObjective.attempt_id == attempt_id,
        ExamAnswerObjective.exam_item_id == exam_item_id,
    ).first()


def get_theory_answer(db: Session, attempt_id: int, exam_item_id: int) -> Optional[ExamAnswerTheory]:
    return db.query(ExamAnswerTheory).filter(
        ExamAnswerTheory.attempt_id == attempt_id,
        ExamAnswerTheory.exam_item_id == exam_item_id,
    ).first()


def get_theory_answer_by_id(db: Session, answer_id: int) -> Optional[ExamAnswerTheory]:
    return db.query(ExamAnswerTheory).filter(ExamAnswerTheory.id == answer_id).first()


def sum_objective_scores(db: Session, attempt_id: int) -> float:
    total = db.query(func.coalesce(func.sum(ExamAnswerObjective.awarded_score), 0)).filter(
        ExamAnswerObjective.attempt_id == attempt_id
    ).scalar()
    return float(total or 0)


def sum_theory_scores(db: Session, attempt_id: int) -> float:
    total = db.query(func.coalesce(func.sum(ExamAnswerTheory.awarded_score), 0)).filter(
        ExamAnswerTheory.attempt_id == attempt_id
    ).scalar()
    return float(total or 0)


def count_ungraded_theory_answers(db: Session, attempt_id: int) -> int:
    return db.query(func.count(ExamAnswerTheory.id)).filter(
        ExamAnswerTheory.attempt_id == attempt_id,
        ExamAnswerTheory.awarded_score.is_(None),
    ).scalar() or 0


def get_attempts_for_exam(
    db: Session,
    exam_id: int,
    status: Optional[AttemptStatusEnum] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[ExamAttempt], int]:
    query = db.query(ExamAttempt).filter(ExamAttempt.exam_id == exam_id)
    if status:
        query = query.filter(ExamAttempt.status == status)
    total = query.count()
    items = query.order_by(desc(ExamAttempt.started_at), desc(ExamAttempt.id)).offset(skip).limit(limit).all()
    return items, total


def get_graded_scores(db: Session, exam_id: int) -> List[float]:
    rows = db.query(ExamAttempt.total_score).filter(
        ExamAttempt.exam_id == exam_id,
        ExamAttempt.status == AttemptStatusEnum.graded,
    ).all()
    return [float(r[0] or 0) for r in rows]


def get_in_progress_attempts_with_exam(db: Session) -> List[Tuple[ExamAttempt, Exam]]:
    return db.query(ExamAttempt, Exam).join(Exam, Exam.id == ExamAttempt.exam_id).filter(
        ExamAttempt.status == AttemptStatusEnum.in_progress
    ).order_by(ExamAttempt.started_at).all()
