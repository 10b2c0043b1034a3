# app/db/models_registry.py
# Este archivo importa todos los modelos para que Alembic pueda detectarlos
# Se importa en alembic/env.py y en la configuración de pruebas

from app.db.base import Base
from app.models.audit import AdminActivityLog
from app.models.course import Course, CourseRegistration, Student
from app.models.exam import (
    Exam, ExamItem, ExamAttempt, ExamAnswerObjective, ExamAnswerTheory,
)
from app.models.question_bank import QuestionBank, QuestionObjective, QuestionTheory

# Exportar Base para uso en Alembic
__all__ = [
    "Base",
    "AdminActivityLog",
    "Course", "CourseRegistration", "Student",
    "Exam", "ExamItem", "ExamAttempt", "ExamAnswerObjective", "ExamAnswerTheory",
    "QuestionBank", "QuestionObjective", "QuestionTheory",
]
