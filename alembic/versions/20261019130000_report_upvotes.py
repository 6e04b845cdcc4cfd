"""report upvotes

Revision ID: 20261019130000
Revises: 20261019120000
Create Date: 2026-10-19T13:00:00Z
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019130000"
down_revision = "20261019120000"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("reports") as batch:
        batch.add_column(sa.Column("upvotes", sa.Integer(), nullable=False, server_default="0"))

    op.create_table(
        "report_upvotes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("report_id", sa.Integer(), sa.ForeignKey("reports.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("report_id", "user_id", name="uq_report_upvotes_report_user"),
    )
    op.create_index("ix_report_upvotes_report_id", "report_upvotes", ["report_id"])
    op.create_index("ix_report_upvotes_user_id", "report_upvotes", ["user_id"])


def downgrade() -> None:
    op.drop_table("report_upvotes")
    with op.batch_alter_table("reports") as batch:
        batch.drop_column("upvotes")
