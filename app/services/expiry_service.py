# app/services/expiry_service.py
"""
Barrido opcional de intentos vencidos.

Un intento en curso cuya hora límite (inicio + duración) más el margen de
gracia ya pasó se entrega automáticamente, igual que una entrega normal.
Está desactivado por defecto (ATTEMPT_EXPIRY_SWEEP_ENABLED).
"""
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import StateConflictError
from app.core.logging_config import get_exam_logger
from app.crud import crud_attempt
from app.models.exam import AttemptStatusEnum
from app.services.attempt_service import finalize_attempt
from app.services.attempt_views import attempt_deadline
from app.utils.datetime_utils import utcnow

logger = get_exam_logger("expiry")


def expire_overdue_attempts(
    db: Session,
    now: Optional[datetime] = None,
    grace_minutes: Optional[int] = None,
    enabled: Optional[bool] = None,
) -> List[int]:
    """
    Entrega los intentos vencidos y devuelve sus IDs.
    Cada intento se procesa en su propia transacción.
    """
    if enabled is None:
        enabled = settings.ATTEMPT_EXPIRY_SWEEP_ENABLED
    if not enabled:
        raise StateConflictError("Attempt expiry sweep is disabled")

    now = now or utcnow()
    grace = timedelta(minutes=settings.ATTEMPT_EXPIRY_GRACE_MINUTES if grace_minutes is None else grace_minutes)

    overdue = [
        attempt.id
        for attempt, exam in crud_attempt.get_in_progress_attempts_with_exam(db)
        if attempt_deadline(attempt, exam) + grace < now
    ]

    expired = []
    for attempt_id in overdue:
        try:
            attempt = crud_attempt.get_attempt(db, attempt_id, for_update=True)
            # Pudo entregarse entre la lectura y el bloqueo
            if attempt is None or attempt.status != AttemptStatusEnum.in_progress:
                db.rollback()
                continue
            finalize_attempt(db, attempt, now, auto_submitted=True)
            db.commit()
            expired.append(attempt_id)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Error auto-submitting attempt", extra={"attempt_id": attempt_id})

    logger.info(f"Expiry sweep finished: {len(expired)} of {len(overdue)} attempts auto-submitted")
    return expired
