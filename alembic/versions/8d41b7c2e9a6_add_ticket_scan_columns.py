"""Add ticket scan columns

Revision ID: 8d41b7c2e9a6
Revises: 5c2e8a41f0b3
Create Date: 2026-10-18 16:40:07.118402

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8d41b7c2e9a6'
down_revision: str | Sequence[str] | None = '5c2e8a41f0b3'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Door scans: when a ticket was used and who scanned it."""
    with op.batch_alter_table("tickets") as batch_op:
        batch_op.add_column(sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=True))
        batch_op.add_column(sa.Column("scanned_by", sa.Uuid, nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("tickets") as batch_op:
        batch_op.drop_column("scanned_by")
        batch_op.drop_column("scanned_at")
