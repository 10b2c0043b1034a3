# app/api/v1/endpoints/admin.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_admin
from app.db.session import get_db
from app.schemas.grading import ExpirySweepResponse
from app.schemas.token import Principal
from app.services.audit_service import log_admin_activity
from app.services.expiry_service import expire_overdue_attempts

router = APIRouter()


@router.post("/admin/attempts/expire", response_model=ExpirySweepResponse)
def expire_attempts(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin),
):
    """
    Entrega automáticamente los intentos vencidos (si el barrido está habilitado).
    """
    expired = expire_overdue_attempts(db)
    log_admin_activity(db, principal.id, "attempts_expired", "attempt", None, {"attempt_ids": expired})
    return {"expired_attempt_ids": expired, "count": len(expired)}
