# Import all models so SQLAlchemy metadata is fully populated on startup.
from civicfix.db.models.user import User
from civicfix.db.models.report import Report
from civicfix.db.models.approval_entry import ApprovalEntry
from civicfix.db.models.report_audit_log import ReportAuditLog
from civicfix.db.models.report_upvote import ReportUpvote


__all__ = [
    "User",
    "Report",
    "ApprovalEntry",
    "ReportAuditLog",
    "ReportUpvote",
]
