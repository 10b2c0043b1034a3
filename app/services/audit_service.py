# app/services/audit_service.py
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.audit import AdminActivityLog

logger = logging.getLogger("app.audit")


def log_admin_activity(
    db: Session,
    admin_id: int,
    action: str,
    target_type: str,
    target_id: Optional[int],
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Registra la acción de un administrador. Se llama después del commit de la
    operación principal: si falla, se registra el error y se continúa.
    """
    try:
        db.add(AdminActivityLog(
            admin_id=admin_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            details=details or {},
        ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            f"Error logging admin activity: {action}",
            extra={"user_id": admin_id, "error_code": "audit_write_failed"},
        )
