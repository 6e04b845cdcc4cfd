"""baseline: users, reports, approval history, report audit log

Revision ID: 20261019120000
Revises:
Create Date: 2026-10-19T12:00:00Z
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019120000"
down_revision = None
branch_labels = None
depends_on = None


ROLES = ("CITIZEN", "CITY_MANAGER", "INFRA_MANAGER", "ISSUE_RESOLVER", "CONTRACTOR", "ADMIN")
STAGES = (
    "PENDING_CITY_MANAGER",
    "PENDING_INFRA_MANAGER",
    "PENDING_ISSUE_RESOLVER",
    "PENDING_CONTRACTOR",
    "WORK_IN_PROGRESS",
    "COMPLETED",
    "REJECTED",
)
STATUSES = ("SUBMITTED", "UNDER_REVIEW", "IN_PROGRESS", "RESOLVED", "CLOSED", "REJECTED")
PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(length=120), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.Enum(*ROLES, name="role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=80), nullable=False),
        sa.Column("priority", sa.Enum(*PRIORITIES, name="reportpriority"), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=False),
        sa.Column("area", sa.String(length=120), nullable=True),
        sa.Column("landmark", sa.String(length=200), nullable=True),
        sa.Column("images_json", sa.Text(), nullable=False),
        sa.Column("reported_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("current_stage", sa.Enum(*STAGES, name="reportstage"), nullable=False),
        sa.Column("status", sa.Enum(*STATUSES, name="reportstatus"), nullable=False),
        sa.Column("assigned_city_manager_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("assigned_infra_manager_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("assigned_issue_resolver_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("assigned_contractor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("work_completion_images_json", sa.Text(), nullable=False),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_reports_category", "reports", ["category"])
    op.create_index("ix_reports_area", "reports", ["area"])
    op.create_index("ix_reports_reported_by_id", "reports", ["reported_by_id"])
    op.create_index("ix_reports_current_stage", "reports", ["current_stage"])
    op.create_index("ix_reports_status", "reports", ["status"])
    op.create_index("ix_reports_created_at", "reports", ["created_at"])

    op.create_table(
        "approval_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("report_id", sa.Integer(), sa.ForeignKey("reports.id"), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("stage", sa.String(length=50), nullable=False),
        sa.Column("approved_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("approver_name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("approver_role", sa.String(length=50), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("report_id", "seq", name="uq_approval_entries_report_seq"),
    )
    op.create_index("ix_approval_entries_report_id", "approval_entries", ["report_id"])
    op.create_index("ix_approval_entries_approved_by", "approval_entries", ["approved_by"])
    op.create_index("ix_approval_entries_timestamp", "approval_entries", ["timestamp"])

    op.create_table(
        "report_audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("report_id", sa.Integer(), sa.ForeignKey("reports.id"), nullable=False),
        sa.Column("actor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("field", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("before_json", sa.Text(), nullable=False),
        sa.Column("after_json", sa.Text(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_report_audit_logs_report_id", "report_audit_logs", ["report_id"])
    op.create_index("ix_report_audit_logs_actor_id", "report_audit_logs", ["actor_id"])
    op.create_index("ix_report_audit_logs_created_at", "report_audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("report_audit_logs")
    op.drop_table("approval_entries")
    op.drop_table("reports")
    op.drop_table("users")
    sa.Enum(name="reportpriority").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="reportstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="reportstage").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="role").drop(op.get_bind(), checkfirst=True)
