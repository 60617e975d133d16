"""odontogram records

Revision ID: 0001_odontogram_records
Revises: 
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_odontogram_records"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "odontogram_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("patient_id", sa.String(length=64), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("key", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("patient_id", "kind", "key", name="uq_odontogram_records_slot"),
    )
    op.create_index("ix_odontogram_records_patient", "odontogram_records", ["patient_id"])


def downgrade() -> None:
    op.drop_index("ix_odontogram_records_patient", table_name="odontogram_records")
    op.drop_table("odontogram_records")
