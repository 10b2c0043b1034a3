# app/services/question_selector.py
"""
Selección del conjunto de preguntas de un intento.

- Modo manual: se copian los ítems de la plantilla del examen, en su orden.
- Modo aleatorio: se sortean preguntas aprobadas del banco del curso por tipo
  y, si el examen lo indica, se baraja el conjunto combinado.
"""
import random
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.logging_config import get_exam_logger
from app.crud import crud_exam, crud_question_bank
from app.models.exam import Exam, ExamAttempt, ExamItem, ExamTypeEnum, SelectionModeEnum
from app.models.question_bank import QuestionTypeEnum

logger = get_exam_logger("selector")

_system_random = random.SystemRandom()


def requested_counts(exam: Exam) -> dict:
    """
    Cantidad de preguntas por tipo según el tipo de examen.
    """
    objective = exam.objective_count or 0
    theory = exam.theory_count or 0
    if exam.exam_type == ExamTypeEnum.objective_only:
        theory = 0
    elif exam.exam_type == ExamTypeEnum.theory_only:
        objective = 0
    return {QuestionTypeEnum.objective: objective, QuestionTypeEnum.theory: theory}


def draw_question_ids(
    db: Session, exam: Exam, rng: Optional[random.Random] = None
) -> List[int]:
    """
    Sortea sin reemplazo los IDs del banco para un intento nuevo.
    Si el banco no alcanza se devuelven menos preguntas.
    """
    rng = rng or _system_random
    selected = []

    for question_type, wanted in requested_counts(exam).items():
        if wanted <= 0:
            continue
        pool = crud_question_bank.get_pool_ids(db, exam.course_id, question_type)
        if len(pool) < wanted:
            logger.warning(
                f"Question pool smaller than requested: {len(pool)} < {wanted}",
                extra={"exam_id": exam.id, "course_id": exam.course_id,
                       "error_code": f"short_pool_{question_type.value}"},
            )
        selected.extend(rng.sample(pool, min(wanted, len(pool))))

    if exam.randomize:
        rng.shuffle(selected)
    return selected


def materialize_attempt_items(
    db: Session, exam: Exam, attempt: ExamAttempt, rng: Optional[random.Random] = None
) -> List[ExamItem]:
    """
    Crea los ítems propios del intento. Se llama una sola vez, al crear el
    intento; al reanudar se devuelven los ya existentes.
    """
    if exam.selection_mode == SelectionModeEnum.manual:
        sources = [
            (tpl.question_bank_id, tpl.marks_override)
            for tpl in crud_exam.get_template_items(db, exam.id)
        ]
    else:
        sources = [(qid, None) for qid in draw_question_ids(db, exam, rng)]

    items = []
    for position, (question_bank_id, marks_override) in enumerate(sources, start=1):
        item = ExamItem(
            exam_id=exam.id,
            attempt_id=attempt.id,
            question_bank_id=question_bank_id,
            order=position,
            marks_override=marks_override,
        )
        db.add(item)
        items.append(item)
    db.flush()

    logger.info(
        f"Materialized {len(items)} items for attempt",
        extra={"exam_id": exam.id, "attempt_id": attempt.id},
    )
    return items
