"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2025-02-10

Creates all database tables for the Institute Records Backend:
- courses: Course catalogue with seat counters
- students: Student records with unique studentId/email/nic
- enrollments: Ordered student-course enrollment entries
- grade_records: Exam results per student
- counters: Named sequences (seeded with student_id = 0)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Courses Table ─────────────────────────────────────────
    op.create_table(
        'courses',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('title', sa.Text(), nullable=False, unique=True),
        sa.Column('duration', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('instructor', sa.Text(), nullable=True),
        sa.Column('category', sa.Text(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('available_seats', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('enrolled_students', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint('price >= 0', name='ck_courses_price_non_negative'),
    )

    # ── Students Table ────────────────────────────────────────
    op.create_table(
        'students',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('student_id', sa.String(16), nullable=False, unique=True),
        sa.Column('first_name', sa.Text(), nullable=False),
        sa.Column('last_name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('phone', sa.Text(), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('date_of_birth', sa.DateTime(), nullable=False),
        sa.Column('nic', sa.Text(), nullable=False, unique=True),
        sa.Column('guardian_name', sa.Text(), nullable=True),
        sa.Column('guardian_phone', sa.Text(), nullable=True),
        sa.Column('previous_education', sa.Text(), nullable=True),
        sa.Column('previous_institution', sa.Text(), nullable=True),
        sa.Column('profile_picture', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='active'),
        sa.Column('enrollment_date', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('graduation_date', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('active', 'inactive', 'graduated', 'suspended')",
            name='ck_students_status'),
    )
    op.create_index('ix_students_status', 'students', ['status'])
    op.create_index('ix_students_created_at', 'students', ['created_at'])

    # ── Enrollments Table ─────────────────────────────────────
    op.create_table(
        'enrollments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('student_pk', sa.String(36),
                  sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', sa.String(36),
                  sa.ForeignKey('courses.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('enrollment_date', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('status', sa.Text(), nullable=False, server_default='active'),
        sa.Column('progress', sa.Float(), nullable=False, server_default='0'),
        sa.Column('completion_date', sa.DateTime(), nullable=True),
        sa.CheckConstraint('progress >= 0 AND progress <= 100',
                           name='ck_enrollments_progress_range'),
        sa.CheckConstraint(
            "status IN ('active', 'completed', 'suspended', 'dropped')",
            name='ck_enrollments_status'),
    )
    op.create_index('ix_enrollments_student_pk', 'enrollments', ['student_pk'])
    op.create_index('ix_enrollments_course_id', 'enrollments', ['course_id'])

    # ── Grade Records Table ───────────────────────────────────
    op.create_table(
        'grade_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('student_pk', sa.String(36),
                  sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', sa.String(36),
                  sa.ForeignKey('courses.id', ondelete='SET NULL'), nullable=True),
        sa.Column('grade', sa.Text(), nullable=True),
        sa.Column('marks', sa.Float(), nullable=True),
        sa.Column('exam_date', sa.DateTime(), nullable=True),
    )

    # ── Counters Table ────────────────────────────────────────
    counters = op.create_table(
        'counters',
        sa.Column('name', sa.String(64), primary_key=True),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
    )
    op.bulk_insert(counters, [{'name': 'student_id', 'value': 0}])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table('counters')
    op.drop_table('grade_records')
    op.drop_index('ix_enrollments_course_id', table_name='enrollments')
    op.drop_index('ix_enrollments_student_pk', table_name='enrollments')
    op.drop_table('enrollments')
    op.drop_index('ix_students_created_at', table_name='students')
    op.drop_index('ix_students_status', table_name='students')
    op.drop_table('students')
    op.drop_table('courses')
