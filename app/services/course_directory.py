# app/services/course_directory.py
"""
Adaptador del directorio de cursos: propiedad de cursos, inscripciones
y datos de despliegue de estudiantes.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.models.course import Course, CourseRegistration, Student


class CourseDirectory:

    def __init__(self, db: Session):
        self.db = db

    def is_course_owned_by(self, course_id: int, staff_id: int) -> bool:
        return self.db.query(Course.id).filter(
            Course.id == course_id,
            Course.staff_id == staff_id,
        ).first() is not None

    def is_enrolled(self, student_id: int, course_id: int,
                    academic_year: str, semester: str) -> bool:
        return self.db.query(CourseRegistration.id).filter(
            CourseRegistration.student_id == student_id,
            CourseRegistration.course_id == course_id,
            CourseRegistration.academic_year == academic_year,
            CourseRegistration.semester == semester,
        ).first() is not None

    def owned_course_ids(self, staff_id: int) -> List[int]:
        rows = self.db.query(Course.id).filter(Course.staff_id == staff_id).all()
        return [r[0] for r in rows]

    def enrolled_periods(
        self,
        student_id: int,
        academic_year: Optional[str] = None,
        semester: Optional[str] = None,
    ) -> List[Tuple[int, str, str]]:
        """(curso, año académico, semestre) de cada inscripción del estudiante."""
        query = self.db.query(
            CourseRegistration.course_id,
            CourseRegistration.academic_year,
            CourseRegistration.semester,
        ).filter(CourseRegistration.student_id == student_id)
        if academic_year:
            query = query.filter(CourseRegistration.academic_year == academic_year)
        if semester:
            query = query.filter(CourseRegistration.semester == semester)
        return sorted({(r[0], r[1], r[2]) for r in query.all()})

    def get_students(self, student_ids: Iterable[int]) -> Dict[int, dict]:
        """
        Lectura en dos pasos: los intentos guardan solo el id del estudiante
        (sin llave foránea), los datos se consultan en lote aparte.
        Un id sin registro simplemente no aparece en el resultado.
        """
        ids = sorted(set(student_ids))
        if not ids:
            return {}
        students = self.db.query(Student).filter(Student.id.in_(ids)).all()
        return {
            s.id: {
                "id": s.id,
                "fname": s.fname,
                "lname": s.lname,
                "matric_number": s.matric_number,
                "email": s.email,
            }
            for s in students
        }
