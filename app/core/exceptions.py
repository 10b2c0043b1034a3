# app/core/exceptions.py
"""
Taxonomía de errores del motor de exámenes.

Los servicios lanzan estas excepciones; los manejadores registrados en
app.main las convierten en respuestas JSON con el `kind` correspondiente.
"""
import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    validation = "validation"
    authentication = "authentication"
    authorization = "authorization"
    not_found = "not_found"
    state_conflict = "state_conflict"
    internal = "internal"


class ExamEngineError(Exception):
    kind: ErrorKind = ErrorKind.internal
    status_code: int = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"detail": self.detail, "kind": self.kind.value}


class ValidationError(ExamEngineError):
    kind = ErrorKind.validation
    status_code = 400

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(detail)
        self.field = field

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.field:
            body["field"] = self.field
        return body


class AuthenticationError(ExamEngineError):
    kind = ErrorKind.authentication
    status_code = 401


class AuthorizationError(ExamEngineError):
    kind = ErrorKind.authorization
    status_code = 403


class NotFoundError(ExamEngineError):
    kind = ErrorKind.not_found
    status_code = 404

    def __init__(self, entity: str, detail: Optional[str] = None):
        super().__init__(detail or f"{entity} not found")
        self.entity = entity


class StateConflictError(ExamEngineError):
    kind = ErrorKind.state_conflict
    status_code = 409


class ExamNotAvailableError(StateConflictError):
    """Examen no publicado o fuera de su ventana de disponibilidad."""
    status_code = 403


class AttemptQuotaExceededError(StateConflictError):
    status_code = 409


class AttemptNotInProgressError(StateConflictError):
    status_code = 400


class ScoreAboveMaximumError(StateConflictError):
    status_code = 400


class QuestionInUseError(StateConflictError):
    status_code = 409
