"""
Consultas de exámenes y sus plantillas de preguntas.

Estas funciones no hacen commit: la capa de servicios agrupa varias
escrituras en una sola transacción.
"""
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, desc, or_
from sqlalchemy.orm import Session

from app.models.exam import (
    Exam, ExamAnswerObjective, ExamAnswerTheory, ExamAttempt, ExamItem, VisibilityEnum
)
from app.models.question_bank import QuestionBank


def get_exam(db: Session, exam_id: int) -> Optional[Exam]:
    return db.query(Exam).filter(Exam.id == exam_id).first()


def get_exams(
    db: Session,
    course_ids: Optional[Sequence[int]] = None,
    course_id: Optional[int] = None,
    academic_year: Optional[str] = None,
    semester: Optional[str] = None,
    visibility: Optional[VisibilityEnum] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Exam], int]:
    """
    Lista exámenes con filtros y paginación.
    `course_ids` restringe a los cursos visibles para el principal (None = todos).
    """
    query = db.query(Exam)

    if course_ids is not None:
        if not course_ids:
            return [], 0
        query = query.filter(Exam.course_id.in_(list(course_ids)))
    if course_id:
        query = query.filter(Exam.course_id == course_id)
    if academic_year:
        query = query.filter(Exam.academic_year == academic_year)
    if semester:
        query = query.filter(Exam.semester == semester)
    if visibility:
        query = query.filter(Exam.visibility == visibility)

    total = query.count()
    items = query.order_by(desc(Exam.created_at), desc(Exam.id)).offset(skip).limit(limit).all()
    return items, total


def get_published_exams_for_periods(
    db: Session,
    periods: Iterable[Tuple[int, str, str]],
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Exam], int]:
    """
    Exámenes publicados cuyo (curso, año académico, semestre) coincide con
    alguna de las inscripciones recibidas.
    """
    conditions = [
        and_(Exam.course_id == course_id, Exam.academic_year == year, Exam.semester == semester)
        for course_id, year, semester in periods
    ]
    if not conditions:
        return [], 0

    query = db.query(Exam).filter(
        Exam.visibility == VisibilityEnum.published,
        or_(*conditions),
    )
    total = query.count()
    items = query.order_by(desc(Exam.start_at), desc(Exam.id)).offset(skip).limit(limit).all()
    return items, total


def get_template_items(db: Session, exam_id: int) -> List[ExamItem]:
    return db.query(ExamItem).filter(
        ExamItem.exam_id == exam_id,
        ExamItem.attempt_id.is_(None),
    ).order_by(ExamItem.order).all()


def add_template_items(
    db: Session,
    exam: Exam,
    questions: Sequence[QuestionBank],
    marks_overrides: Optional[Dict[int, float]] = None,
) -> List[ExamItem]:
    """
    Crea la plantilla compartida del examen respetando el orden recibido.
    """
    overrides = marks_overrides or {}
    items = []
    for position, question in enumerate(questions, start=1):
        item = ExamItem(
            exam_id=exam.id,
            attempt_id=None,
            question_bank_id=question.id,
            order=position,
            marks_override=overrides.get(question.id),
        )
        db.add(item)
        items.append(item)
    db.flush()
    return items


def delete_exam_cascade(db: Session, exam: Exam) -> Dict[str, int]:
    """
    Elimina el examen y todo lo que depende de él.
    Orden: respuestas -> ítems -> intentos -> examen (exam_items.attempt_id
    referencia a exam_attempts). Devuelve el conteo por entidad.
    """
    attempt_ids = [r[0] for r in db.query(ExamAttempt.id).filter(ExamAttempt.exam_id == exam.id).all()]
    item_ids = [r[0] for r in db.query(ExamItem.id).filter(ExamItem.exam_id == exam.id).all()]

    counts = {
        "objective_answers": 0,
        "theory_answers": 0,
        "exam_items": 0,
        "attempts": 0,
        "exams": 0,
    }

    for model, key in ((ExamAnswerObjective, "objective_answers"), (ExamAnswerTheory, "theory_answers")):
        conditions = []
        if attempt_ids:
            conditions.append(model.attempt_id.in_(attempt_ids))
        if item_ids:
            conditions.append(model.exam_item_id.in_(item_ids))
        if conditions:
            counts[key] = db.query(model).filter(or_(*conditions)).delete(synchronize_session=False)

    counts["exam_items"] = db.query(ExamItem).filter(
        ExamItem.exam_id == exam.id
    ).delete(synchronize_session=False)
    counts["attempts"] = db.query(ExamAttempt).filter(
        ExamAttempt.exam_id == exam.id
    ).delete(synchronize_session=False)
    counts["exams"] = db.query(Exam).filter(Exam.id == exam.id).delete(synchronize_session=False)
    return counts
