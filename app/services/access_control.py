# app/services/access_control.py
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.models.exam import Exam
from app.schemas.token import Principal
from app.services.course_directory import CourseDirectory


@dataclass
class ExamModifyCheck:
    allowed: bool
    exam: Optional[Exam]
    original_creator_id: Optional[int]
    is_admin_modification: bool = False


def can_access_course(principal: Principal, course_id: int, directory: CourseDirectory) -> bool:
    """
    Los administradores acceden a todos los cursos; el staff solo a los propios.
    """
    if principal.is_admin:
        return True
    if principal.is_staff:
        return directory.is_course_owned_by(course_id, principal.id)
    return False


def can_modify_exam(
    db: Session, principal: Principal, exam_id: int, directory: CourseDirectory
) -> ExamModifyCheck:
    """
    Verifica si el principal puede modificar el examen e informa si el
    cambio lo hace un administrador sobre un examen creado por otra persona.
    """
    exam = db.get(Exam, exam_id)
    if exam is None:
        return ExamModifyCheck(allowed=False, exam=None, original_creator_id=None)

    if principal.is_admin:
        return ExamModifyCheck(
            allowed=True,
            exam=exam,
            original_creator_id=exam.created_by,
            is_admin_modification=exam.created_by != principal.id,
        )

    if principal.is_staff:
        has_access = can_access_course(principal, exam.course_id, directory)
        is_creator = exam.created_by == principal.id
        return ExamModifyCheck(
            allowed=has_access or is_creator,
            exam=exam,
            original_creator_id=exam.created_by,
        )

    return ExamModifyCheck(allowed=False, exam=exam, original_creator_id=exam.created_by)
