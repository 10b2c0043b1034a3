# app/models/exam.py
import enum
from sqlalchemy import (
    Boolean, Column, Integer, String, Text, ForeignKey, Index,
    TIMESTAMP, UniqueConstraint, Enum as SAEnum, func, text
)
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.types import Score


class VisibilityEnum(enum.Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class ExamTypeEnum(enum.Enum):
    mixed = "mixed"
    objective_only = "objective-only"
    theory_only = "theory-only"


class SelectionModeEnum(enum.Enum):
    random = "random"
    manual = "manual"


class AttemptStatusEnum(enum.Enum):
    in_progress = "in_progress"
    submitted = "submitted"
    graded = "graded"


def _enum_column(enum_cls, name: str):
    return SAEnum(
        enum_cls, name=name, native_enum=False, length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class Exam(Base):
    __tablename__ = 'exams'

    id = Column(Integer, primary_key=True)
    course_id = Column(Integer, nullable=False, index=True)  # referencia blanda a courses.id
    academic_year = Column(String(20), nullable=False)     # '2024/2025'
    semester = Column(String(20), nullable=False)          # '1ST', '2ND'
    title = Column(String(200), nullable=False)
    instructions = Column(Text, nullable=True)
    start_at = Column(TIMESTAMP(timezone=True), nullable=True)
    end_at = Column(TIMESTAMP(timezone=True), nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    visibility = Column(
        _enum_column(VisibilityEnum, 'exam_visibility_enum'),
        nullable=False, default=VisibilityEnum.draft
    )
    randomize = Column(Boolean, nullable=False, default=True)
    exam_type = Column(
        _enum_column(ExamTypeEnum, 'exam_type_enum'),
        nullable=False, default=ExamTypeEnum.mixed
    )
    selection_mode = Column(
        _enum_column(SelectionModeEnum, 'exam_selection_mode_enum'),
        nullable=False, default=SelectionModeEnum.random
    )
    objective_count = Column(Integer, nullable=False, default=0)
    theory_count = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=3)
    created_by = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now())

    items = relationship(
        "ExamItem",
        primaryjoin="and_(Exam.id == ExamItem.exam_id, ExamItem.attempt_id.is_(None))",
        order_by="ExamItem.order",
        viewonly=True,
    )

    def __repr__(self):
        return f"<Exam(id={self.id}, course_id={self.course_id}, title='{self.title}')>"


class ExamItem(Base):
    """
    Pregunta ligada a un examen.
    attempt_id nulo: plantilla compartida (modo manual).
    attempt_id definido: conjunto materializado para un intento.
    """
    __tablename__ = 'exam_items'

    id = Column(Integer, primary_key=True)
    exam_id = Column(Integer, ForeignKey('exams.id'), nullable=False)
    attempt_id = Column(Integer, ForeignKey('exam_attempts.id'), nullable=True)
    question_bank_id = Column(Integer, ForeignKey('question_bank.id'), nullable=False)
    order = Column("order", Integer, nullable=False)
    marks_override = Column(Score(5), nullable=True)

    question = relationship("QuestionBank", lazy="joined")

    __table_args__ = (
        UniqueConstraint('attempt_id', 'question_bank_id', name='uq_exam_item_attempt_question'),
        Index('ix_exam_items_exam_attempt', 'exam_id', 'attempt_id'),
    )

    @property
    def points(self) -> float:
        """Puntaje de la pregunta en este examen (override o valor del banco)."""
        if self.marks_override is not None:
            return float(self.marks_override)
        return self.question.points


class ExamAttempt(Base):
    __tablename__ = 'exam_attempts'

    id = Column(Integer, primary_key=True)
    exam_id = Column(Integer, ForeignKey('exams.id'), nullable=False, index=True)
    student_id = Column(Integer, nullable=False, index=True)  # referencia blanda a students.id
    attempt_no = Column(Integer, nullable=False, default=1)
    started_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    submitted_at = Column(TIMESTAMP(timezone=True), nullable=True)
    status = Column(
        _enum_column(AttemptStatusEnum, 'exam_attempt_status_enum'),
        nullable=False, default=AttemptStatusEnum.in_progress
    )
    total_score = Column(Score(6), nullable=True)
    max_score = Column(Score(6), nullable=True)
    graded_at = Column(TIMESTAMP(timezone=True), nullable=True)
    graded_by = Column(Integer, nullable=True)
    start_ip = Column(String(64), nullable=True)
    auto_submitted = Column(Boolean, nullable=False, default=False)

    exam = relationship("Exam")

    __table_args__ = (
        # Un solo intento en curso por (examen, estudiante)
        Index(
            'uq_exam_attempt_in_progress', 'exam_id', 'student_id',
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
        ),
        # El número de intento es único: dos inicios concurrentes no pueden
        # consumir el mismo cupo
        UniqueConstraint('exam_id', 'student_id', 'attempt_no', name='uq_exam_attempt_number'),
    )

    def __repr__(self):
        return f"<ExamAttempt(id={self.id}, exam_id={self.exam_id}, student_id={self.student_id}, status={self.status.value})>"


class ExamAnswerObjective(Base):
    __tablename__ = 'exam_answers_objective'

    id = Column(Integer, primary_key=True)
    attempt_id = Column(Integer, ForeignKey('exam_attempts.id'), nullable=False, index=True)
    exam_item_id = Column(Integer, ForeignKey('exam_items.id'), nullable=False)
    selected_option = Column(String(10), nullable=True)
    is_correct = Column(Boolean, nullable=True)
    awarded_score = Column(Score(5), nullable=True)
    answered_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    exam_item = relationship("ExamItem", lazy="joined")

    __table_args__ = (
        UniqueConstraint('attempt_id', 'exam_item_id', name='uq_answer_objective_attempt_item'),
    )


class ExamAnswerTheory(Base):
    __tablename__ = 'exam_answers_theory'

    id = Column(Integer, primary_key=True)
    attempt_id = Column(Integer, ForeignKey('exam_attempts.id'), nullable=False, index=True)
    exam_item_id = Column(Integer, ForeignKey('exam_items.id'), nullable=False)
    answer_text = Column(Text, nullable=True)
    file_url = Column(Text, nullable=True)
    awarded_score = Column(Score(5), nullable=True)
    graded_by = Column(Integer, nullable=True)
    graded_at = Column(TIMESTAMP(timezone=True), nullable=True)
    feedback = Column(Text, nullable=True)
    answered_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    exam_item = relationship("ExamItem", lazy="joined")

    __table_args__ = (
        UniqueConstraint('attempt_id', 'exam_item_id', name='uq_answer_theory_attempt_item'),
    )

    @property
    def max_marks(self) -> float:
        return self.exam_item.points
