"""Create persons table

Revision ID: 001
Revises: None
Create Date: 2024-10-01 00:00:00.000000+00:00

What:  Creates the `persons` table backing /api/persons.
How:   Integer identity primary key, NUMERIC(12, 2) balance guarded by a
       CHECK constraint, nullable upload path columns.

Rollback: downgrade() drops the table (all person data is lost; uploaded
files on disk are not touched).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "persons",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("dob", sa.Date(), nullable=False),
        sa.Column("phone_number", sa.String(), nullable=False),
        sa.Column("bank_balance", sa.Numeric(12, 2), nullable=False),

        # "<upload_dir>/<timestamp>-<filename>"; NULL until a file is uploaded
        sa.Column("resume_path", sa.String(), nullable=True),
        sa.Column("media_path", sa.String(), nullable=True),

        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("bank_balance >= 0", name="ck_persons_bank_balance_non_negative"),
    )


def downgrade() -> None:
    op.drop_table("persons")
