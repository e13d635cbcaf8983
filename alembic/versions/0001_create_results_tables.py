"""create results, assessments, activities and reference tables

Revision ID: 0001_create_results_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_create_results_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "academic_sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_current", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="academic_sessions_pkey"),
        sa.UniqueConstraint("name", name="academic_sessions_name_key"),
    )
    op.create_table(
        "terms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_current", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="terms_pkey"),
        sa.ForeignKeyConstraint(
            ["session_id"], ["academic_sessions.id"], name="terms_session_id_fkey", ondelete="CASCADE"
        ),
        sa.UniqueConstraint("session_id", "name", name="terms_session_name_key"),
    )
    op.create_table(
        "classes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("level", sa.String(length=20), nullable=False),
        sa.Column("arm", sa.String(length=5), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="classes_pkey"),
        sa.UniqueConstraint("level", "arm", name="classes_level_arm_key"),
    )
    op.create_table(
        "subjects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="subjects_pkey"),
        sa.UniqueConstraint("code", name="subjects_code_key"),
    )
    op.create_table(
        "teachers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id", name="teachers_pkey"),
        sa.UniqueConstraint("user_id", name="teachers_user_id_key"),
    )
    op.create_table(
        "students",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("admission_no", sa.String(length=50), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("current_class_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.String(length=20), server_default="Active", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="students_pkey"),
        sa.ForeignKeyConstraint(
            ["current_class_id"], ["classes.id"], name="students_current_class_id_fkey", ondelete="SET NULL"
        ),
        sa.UniqueConstraint("admission_no", name="students_admission_no_key"),
    )
    op.create_index("idx_students_class", "students", ["current_class_id"])
    op.create_table(
        "assessments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("max_score", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="assessments_pkey"),
    )
    op.create_table(
        "results",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("subject_id", sa.Uuid(), nullable=False),
        sa.Column("class_id", sa.Uuid(), nullable=False),
        sa.Column("teacher_id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("term_id", sa.Uuid(), nullable=False),
        sa.Column("assessment_id", sa.Uuid(), nullable=False),
        sa.Column("score", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("is_approved", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_locked", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id", name="results_pkey"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], name="results_student_id_fkey", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"], name="results_subject_id_fkey", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["class_id"], ["classes.id"], name="results_class_id_fkey", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["teacher_id"], ["teachers.id"], name="results_teacher_id_fkey", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["session_id"], ["academic_sessions.id"], name="results_session_id_fkey", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(["term_id"], ["terms.id"], name="results_term_id_fkey", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["assessment_id"], ["assessments.id"], name="results_assessment_id_fkey", ondelete="RESTRICT"
        ),
        sa.UniqueConstraint("student_id", "subject_id", "assessment_id", "term_id", name="results_natural_key"),
    )
    op.create_index("idx_results_class_subject_term", "results", ["class_id", "subject_id", "term_id"])
    op.create_index("idx_results_student_term", "results", ["student_id", "term_id", "session_id"])
    op.create_table(
        "activities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("user_role", sa.String(length=50), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="activities_pkey"),
    )
    op.create_index("idx_activities_type_created", "activities", ["type", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_activities_type_created", table_name="activities")
    op.drop_table("activities")
    op.drop_index("idx_results_student_term", table_name="results")
    op.drop_index("idx_results_class_subject_term", table_name="results")
    op.drop_table("results")
    op.drop_table("assessments")
    op.drop_index("idx_students_class", table_name="students")
    op.drop_table("students")
    op.drop_table("teachers")
    op.drop_table("subjects")
    op.drop_table("classes")
    op.drop_table("terms")
    op.drop_table("academic_sessions")
