# app/models/audit.py
from sqlalchemy import Column, Integer, String, TIMESTAMP, func

from app.db.base import Base
from app.models.types import JSONType


class AdminActivityLog(Base):
    """
    Bitácora de acciones de administradores sobre contenido creado por otros.
    """
    __tablename__ = 'admin_activity_logs'

    id = Column(Integer, primary_key=True)
    admin_id = Column(Integer, nullable=False, index=True)
    action = Column(String(100), nullable=False)
    target_type = Column(String(50), nullable=False)
    target_id = Column(Integer, nullable=True)
    details = Column(JSONType, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
