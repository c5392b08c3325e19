"""Run counter state baseline

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    run_counter = op.create_table(
        "run_counter",
        sa.Column("run_counter_id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("total", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("success", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_run", sa.Text(), nullable=True),
        sa.Column("last_update", sa.Text(), nullable=True),
        sa.Column("callback_tokens", sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.CheckConstraint("run_counter_id = 1", name="ck_run_counter_single_row"),
        sa.CheckConstraint("total >= 0", name="ck_run_counter_total_non_negative"),
        sa.CheckConstraint("success >= 0", name="ck_run_counter_success_non_negative"),
    )
    op.bulk_insert(run_counter, [{"run_counter_id": 1, "total": 0, "success": 0, "callback_tokens": "[]"}])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_table("run_counter")
