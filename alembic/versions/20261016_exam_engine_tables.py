"""create exam engine tables

Revision ID: b7e1c2d3a4f5
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'b7e1c2d3a4f5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    """Banco de preguntas, exámenes, intentos, respuestas y bitácora de administración."""
    op.create_table(
        'question_bank',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('course_id', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('question_type', sa.String(20), nullable=False),
        sa.Column('difficulty', sa.String(20), nullable=True),
        sa.Column('topic', sa.String(200), nullable=True),
        sa.Column('tags', JSON, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='approved'),
        sa.Column('source_type', sa.String(50), nullable=True),
        sa.Column('source_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_question_bank_course_id', 'question_bank', ['course_id'])
    op.create_index('ix_question_bank_question_type', 'question_bank', ['question_type'])
    op.create_index('ix_question_bank_status', 'question_bank', ['status'])

    op.create_table(
        'question_objective',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('question_bank_id', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('options', JSON, nullable=False),
        sa.Column('correct_option', sa.String(10), nullable=False),
        sa.Column('marks', sa.Numeric(5, 2), nullable=False, server_default='1'),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('video_url', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['question_bank_id'], ['question_bank.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('question_bank_id'),
    )

    op.create_table(
        'question_theory',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('question_bank_id', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('max_marks', sa.Numeric(5, 2), nullable=False),
        sa.Column('rubric_json', JSON, nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('video_url', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['question_bank_id'], ['question_bank.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('question_bank_id'),
    )

    op.create_table(
        'exams',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('course_id', sa.Integer(), nullable=False),
        sa.Column('academic_year', sa.String(20), nullable=False),
        sa.Column('semester', sa.String(20), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('start_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('end_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('visibility', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('randomize', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('exam_type', sa.String(20), nullable=False, server_default='mixed'),
        sa.Column('selection_mode', sa.String(20), nullable=False, server_default='random'),
        sa.Column('objective_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('theory_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_exams_course_id', 'exams', ['course_id'])

    op.create_table(
        'exam_attempts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('exam_id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('attempt_no', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('started_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('submitted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='in_progress'),
        sa.Column('total_score', sa.Numeric(6, 2), nullable=True),
        sa.Column('max_score', sa.Numeric(6, 2), nullable=True),
        sa.Column('graded_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('graded_by', sa.Integer(), nullable=True),
        sa.Column('start_ip', sa.String(64), nullable=True),
        sa.Column('auto_submitted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['exam_id'], ['exams.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('exam_id', 'student_id', 'attempt_no', name='uq_exam_attempt_number'),
    )
    op.create_index('ix_exam_attempts_exam_id', 'exam_attempts', ['exam_id'])
    op.create_index('ix_exam_attempts_student_id', 'exam_attempts', ['student_id'])
    op.create_index(
        'uq_exam_attempt_in_progress', 'exam_attempts', ['exam_id', 'student_id'],
        unique=True,
        postgresql_where=sa.text("status = 'in_progress'"),
        sqlite_where=sa.text("status = 'in_progress'"),
    )

    op.create_table(
        'exam_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('exam_id', sa.Integer(), nullable=False),
        sa.Column('attempt_id', sa.Integer(), nullable=True),
        sa.Column('question_bank_id', sa.Integer(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('marks_override', sa.Numeric(5, 2), nullable=True),
        sa.ForeignKeyConstraint(['exam_id'], ['exams.id']),
        sa.ForeignKeyConstraint(['attempt_id'], ['exam_attempts.id']),
        sa.ForeignKeyConstraint(['question_bank_id'], ['question_bank.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('attempt_id', 'question_bank_id', name='uq_exam_item_attempt_question'),
    )
    op.create_index('ix_exam_items_exam_attempt', 'exam_items', ['exam_id', 'attempt_id'])

    op.create_table(
        'exam_answers_objective',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('attempt_id', sa.Integer(), nullable=False),
        sa.Column('exam_item_id', sa.Integer(), nullable=False),
        sa.Column('selected_option', sa.String(10), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=True),
        sa.Column('awarded_score', sa.Numeric(5, 2), nullable=True),
        sa.Column('answered_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['attempt_id'], ['exam_attempts.id']),
        sa.ForeignKeyConstraint(['exam_item_id'], ['exam_items.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('attempt_id', 'exam_item_id', name='uq_answer_objective_attempt_item'),
    )
    op.create_index('ix_exam_answers_objective_attempt_id', 'exam_answers_objective', ['attempt_id'])

    op.create_table(
        'exam_answers_theory',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('attempt_id', sa.Integer(), nullable=False),
        sa.Column('exam_item_id', sa.Integer(), nullable=False),
        sa.Column('answer_text', sa.Text(), nullable=True),
        sa.Column('file_url', sa.Text(), nullable=True),
        sa.Column('awarded_score', sa.Numeric(5, 2), nullable=True),
        sa.Column('graded_by', sa.Integer(), nullable=True),
        sa.Column('graded_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('answered_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['attempt_id'], ['exam_attempts.id']),
        sa.ForeignKeyConstraint(['exam_item_id'], ['exam_items.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('attempt_id', 'exam_item_id', name='uq_answer_theory_attempt_item'),
    )
    op.create_index('ix_exam_answers_theory_attempt_id', 'exam_answers_theory', ['attempt_id'])

    op.create_table(
        'admin_activity_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('admin_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('target_type', sa.String(50), nullable=False),
        sa.Column('target_id', sa.Integer(), nullable=True),
        sa.Column('details', JSON, nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_admin_activity_logs_admin_id', 'admin_activity_logs', ['admin_id'])


def downgrade() -> None:
    """Elimina las tablas del motor de exámenes."""
    op.drop_index('ix_admin_activity_logs_admin_id', table_name='admin_activity_logs')
    op.drop_table('admin_activity_logs')
    op.drop_index('ix_exam_answers_theory_attempt_id', table_name='exam_answers_theory')
    op.drop_table('exam_answers_theory')
    op.drop_index('ix_exam_answers_objective_attempt_id', table_name='exam_answers_objective')
    op.drop_table('exam_answers_objective')
    op.drop_index('ix_exam_items_exam_attempt', table_name='exam_items')
    op.drop_table('exam_items')
    op.drop_index('uq_exam_attempt_in_progress', table_name='exam_attempts')
    op.drop_index('ix_exam_attempts_student_id', table_name='exam_attempts')
    op.drop_index('ix_exam_attempts_exam_id', table_name='exam_attempts')
    op.drop_table('exam_attempts')
    op.drop_index('ix_exams_course_id', table_name='exams')
    op.drop_table('exams')
    op.drop_table('question_theory')
    op.drop_table('question_objective')
    op.drop_index('ix_question_bank_status', table_name='question_bank')
    op.drop_index('ix_question_bank_question_type', table_name='question_bank')
    op.drop_index('ix_question_bank_course_id', table_name='question_bank')
    op.drop_table('question_bank')
