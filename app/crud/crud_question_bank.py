from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.models.exam import ExamItem
from app.models.question_bank import (
    QuestionBank, QuestionObjective, QuestionStatusEnum, QuestionTheory, QuestionTypeEnum
)
from app.schemas.question_bank import (
    ObjectiveQuestionCreate, TheoryQuestionCreate, ObjectiveQuestionUpdate, TheoryQuestionUpdate
)

# Campos de metadatos que viven en question_bank; el resto va al payload
_BANK_FIELDS = ("difficulty", "topic", "tags", "status")


def get_question(db: Session, question_id: int) -> Optional[QuestionBank]:
    """
    Obtiene una pregunta del banco (con su payload) por su ID.
    """
    return db.query(QuestionBank).filter(QuestionBank.id == question_id).first()


def get_questions_by_ids(db: Session, question_ids: Sequence[int]) -> List[QuestionBank]:
    if not question_ids:
        return []
    return db.query(QuestionBank).filter(QuestionBank.id.in_(list(question_ids))).all()


def get_questions(
    db: Session,
    course_id: int,
    question_type: Optional[QuestionTypeEnum] = None,
    difficulty=None,
    status: Optional[QuestionStatusEnum] = QuestionStatusEnum.approved,
    topic: Optional[str] = None,
    tag: Optional[str] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[QuestionBank], int]:
    """
    Lista preguntas de un curso con filtros y paginación.
    Devuelve (items, total).
    """
    query = db.query(QuestionBank).filter(QuestionBank.course_id == course_id)

    if question_type:
        query = query.filter(QuestionBank.question_type == question_type)
    if difficulty:
        query = query.filter(QuestionBank.difficulty == difficulty)
    if status:
        query = query.filter(QuestionBank.status == status)
    if topic:
        query = query.filter(QuestionBank.topic.ilike(f"%{topic}%"))

    query = query.order_by(desc(QuestionBank.created_at), desc(QuestionBank.id))

    if tag:
        # Las etiquetas son una lista JSON: el filtro se aplica en memoria
        matching = [q for q in query.all() if tag in (q.tags or [])]
        return matching[skip:skip + limit], len(matching)

    total = query.count()
    return query.offset(skip).limit(limit).all(), total


def get_pool_ids(db: Session, course_id: int, question_type: QuestionTypeEnum) -> List[int]:
    """
    IDs de las preguntas aprobadas de un curso para un tipo dado.
    Es el universo del que se sortean las preguntas de un intento.
    """
    rows = db.query(QuestionBank.id).filter(
        QuestionBank.course_id == course_id,
        QuestionBank.question_type == question_type,
        QuestionBank.status == QuestionStatusEnum.approved,
    ).order_by(QuestionBank.id).all()
    return [r[0] for r in rows]


def create_objective_question(
    db: Session, question: ObjectiveQuestionCreate, created_by: int
) -> QuestionBank:
    db_question = QuestionBank(
        course_id=question.course_id,
        created_by=created_by,
        question_type=QuestionTypeEnum.objective,
        difficulty=question.difficulty,
        topic=question.topic,
        tags=list(question.tags),
        status=question.status,
        source_type=question.source_type,
        source_id=question.source_id,
    )
    db_question.objective = QuestionObjective(
        question_text=question.question_text,
        options=[opt.model_dump() for opt in question.options],
        correct_option=question.correct_option,
        marks=question.marks,
        image_url=question.image_url,
        video_url=question.video_url,
    )
    db.add(db_question)
    db.commit()
    db.refresh(db_question)
    return db_question


def create_theory_question(
    db: Session, question: TheoryQuestionCreate, created_by: int
) -> QuestionBank:
    db_question = QuestionBank(
        course_id=question.course_id,
        created_by=created_by,
        question_type=QuestionTypeEnum.theory,
        difficulty=question.difficulty,
        topic=question.topic,
        tags=list(question.tags),
        status=question.status,
        source_type=question.source_type,
        source_id=question.source_id,
    )
    db_question.theory = QuestionTheory(
        question_text=question.question_text,
        max_marks=question.max_marks,
        rubric_json=question.rubric_json,
        image_url=question.image_url,
        video_url=question.video_url,
    )
    db.add(db_question)
    db.commit()
    db.refresh(db_question)
    return db_question


def update_question(
    db: Session,
    db_question: QuestionBank,
    question_update: Union[ObjectiveQuestionUpdate, TheoryQuestionUpdate],
) -> QuestionBank:
    """
    Actualiza una pregunta existente (solo los campos enviados).
    Los metadatos van a question_bank y el resto al payload del tipo.
    """
    update_data = question_update.model_dump(exclude_unset=True)
    payload = db_question.payload

    for field, value in update_data.items():
        if field in _BANK_FIELDS:
            setattr(db_question, field, list(value) if field == "tags" and value is not None else value)
        else:
            setattr(payload, field, value)

    db.add(db_question)
    db.commit()
    db.refresh(db_question)
    return db_question


def count_exam_references(db: Session, question_id: int) -> int:
    return db.query(func.count(ExamItem.id)).filter(
        ExamItem.question_bank_id == question_id
    ).scalar() or 0


def delete_question(db: Session, db_question: QuestionBank) -> None:
    db.delete(db_question)
    db.commit()
