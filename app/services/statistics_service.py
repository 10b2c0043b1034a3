# app/services/statistics_service.py
from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError, NotFoundError
from app.crud import crud_attempt, crud_exam
from app.schemas.token import Principal
from app.services.access_control import can_access_course
from app.services.course_directory import CourseDirectory


def get_exam_statistics(db: Session, principal: Principal, directory: CourseDirectory, exam_id: int) -> dict:
    """
    Estadísticas sobre los intentos calificados del examen.
    Sin intentos calificados: promedio "0.00", máximo y mínimo 0.
    """
    exam = crud_exam.get_exam(db, exam_id)
    if exam is None:
        raise NotFoundError("Exam")
    if not can_access_course(principal, exam.course_id, directory):
        raise AuthorizationError("You do not have access to this exam")

    scores = crud_attempt.get_graded_scores(db, exam.id)
    if not scores:
        return {
            "exam_id": exam.id,
            "total_attempts": 0,
            "average_score": "0.00",
            "highest_score": 0,
            "lowest_score": 0,
        }

    return {
        "exam_id": exam.id,
        "total_attempts": len(scores),
        "average_score": f"{sum(scores) / len(scores):.2f}",
        "highest_score": max(scores),
        "lowest_score": min(scores),
    }
