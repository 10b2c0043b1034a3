# app/scripts/expire_attempts.py
"""
Entrega automática de intentos vencidos.

Ejecutar con (p. ej. desde cron):
    python -m app.scripts.expire_attempts
"""
import logging
import sys

from sqlalchemy.orm import Session

from app.core.exceptions import StateConflictError
from app.core.logging_config import setup_logging
from app.db.session import SessionLocal
from app.services.expiry_service import expire_overdue_attempts

logger = logging.getLogger("app.exams.expiry")


def run_sweep(db: Session) -> int:
    """Devuelve el código de salida: 0 si el barrido corrió, 1 si está deshabilitado."""
    try:
        expired = expire_overdue_attempts(db)
    except StateConflictError as e:
        logger.error(f"{e.detail}. Set ATTEMPT_EXPIRY_SWEEP_ENABLED=true to run it.")
        return 1
    logger.info(f"Auto-submitted attempts: {expired}")
    return 0


def main() -> int:
    setup_logging()
    db = SessionLocal()
    try:
        return run_sweep(db)
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
