# app/models/types.py
from sqlalchemy import JSON, Numeric
from sqlalchemy.dialects.postgresql import JSONB

# JSONB en PostgreSQL, JSON genérico en otros motores (SQLite en pruebas)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def Score(precision: int = 6):
    """Columna decimal con 2 decimales que se lee como float."""
    return Numeric(precision, 2, asdecimal=False)
