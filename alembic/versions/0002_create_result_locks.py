"""create result_locks

Revision ID: 0002_create_result_locks
Revises: 0001_create_results_tables
Create Date: 2026-10-19 14:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0002_create_result_locks"
down_revision: Union[str, None] = "0001_create_results_tables"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "result_locks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("class_id", sa.Uuid(), nullable=False),
        sa.Column("term_id", sa.Uuid(), nullable=False),
        sa.Column("subject_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id", name="result_locks_pkey"),
        sa.ForeignKeyConstraint(
            ["class_id"], ["classes.id"], name="result_locks_class_id_fkey", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["term_id"], ["terms.id"], name="result_locks_term_id_fkey", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["subject_id"], ["subjects.id"], name="result_locks_subject_id_fkey", ondelete="CASCADE"
        ),
    )
    op.create_index("idx_result_locks_class_term", "result_locks", ["class_id", "term_id"])


def downgrade() -> None:
    op.drop_index("idx_result_locks_class_term", table_name="result_locks")
    op.drop_table("result_locks")
