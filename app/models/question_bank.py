# app/models/question_bank.py
import enum
from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey,
    TIMESTAMP, Enum as SAEnum, func
)
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.types import JSONType, Score


class QuestionTypeEnum(enum.Enum):
    objective = "objective"
    theory = "theory"


class DifficultyEnum(enum.Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class QuestionStatusEnum(enum.Enum):
    draft = "draft"
    approved = "approved"
    archived = "archived"


def _enum_column(enum_cls, name: str):
    return SAEnum(
        enum_cls, name=name, native_enum=False, length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class QuestionBank(Base):
    """
    Pregunta reutilizable del banco, asociada a un curso.
    Tiene exactamente un payload (objetivo o teórico) según su tipo.
    """
    __tablename__ = 'question_bank'

    id = Column(Integer, primary_key=True)
    course_id = Column(Integer, nullable=False, index=True)  # referencia blanda a courses.id
    created_by = Column(Integer, nullable=False)
    question_type = Column(_enum_column(QuestionTypeEnum, 'question_type_enum'), nullable=False, index=True)
    difficulty = Column(_enum_column(DifficultyEnum, 'question_difficulty_enum'), nullable=True)
    topic = Column(String(200), nullable=True)
    tags = Column(JSONType, nullable=False, default=list)
    status = Column(
        _enum_column(QuestionStatusEnum, 'question_status_enum'),
        nullable=False, default=QuestionStatusEnum.approved, index=True
    )
    source_type = Column(String(50), nullable=True)  # 'manual', 'quiz', 'import'
    source_id = Column(Integer, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now())

    objective = relationship(
        "QuestionObjective", back_populates="bank", uselist=False,
        cascade="all, delete-orphan", lazy="joined"
    )
    theory = relationship(
        "QuestionTheory", back_populates="bank", uselist=False,
        cascade="all, delete-orphan", lazy="joined"
    )

    @property
    def payload(self):
        if self.question_type == QuestionTypeEnum.objective:
            return self.objective
        return self.theory

    @property
    def points(self) -> float:
        """Puntaje máximo por defecto de la pregunta."""
        if self.question_type == QuestionTypeEnum.objective:
            if self.objective is None or self.objective.marks is None:
                return 1.0
            return float(self.objective.marks)
        if self.theory is None:
            return 0.0
        return float(self.theory.max_marks)

    def __repr__(self):
        return f"<QuestionBank(id={self.id}, course_id={self.course_id}, type={self.question_type.value})>"


class QuestionObjective(Base):
    __tablename__ = 'question_objective'

    id = Column(Integer, primary_key=True)
    question_bank_id = Column(
        Integer, ForeignKey('question_bank.id', ondelete='CASCADE'),
        nullable=False, unique=True
    )
    question_text = Column(Text, nullable=False)
    options = Column(JSONType, nullable=False)       # [{"id": "A", "text": "..."}]
    correct_option = Column(String(10), nullable=False)
    marks = Column(Score(5), nullable=False, default=1.0)
    image_url = Column(Text, nullable=True)
    video_url = Column(Text, nullable=True)

    bank = relationship("QuestionBank", back_populates="objective")

    @property
    def option_ids(self) -> list:
        return [str(opt.get("id")) for opt in (self.options or [])]


class QuestionTheory(Base):
    __tablename__ = 'question_theory'

    id = Column(Integer, primary_key=True)
    question_bank_id = Column(
        Integer, ForeignKey('question_bank.id', ondelete='CASCADE'),
        nullable=False, unique=True
    )
    question_text = Column(Text, nullable=False)
    max_marks = Column(Score(5), nullable=False)
    rubric_json = Column(JSONType, nullable=True)
    image_url = Column(Text, nullable=True)
    video_url = Column(Text, nullable=True)

    bank = relationship("QuestionBank", back_populates="theory")
