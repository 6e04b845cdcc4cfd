from datetime import datetime

from sqlalchemy import Integer, ForeignKey, String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from civicfix.db.base import Base
from civicfix.db.models.report import utcnow


class ReportAuditLog(Base):
    """Change log for report data outside the approval chain.

    Independent of ApprovalEntry: records creation, closure and other edits
    that do not move the workflow stage.
    """

    __tablename__ = "report_audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id"), index=True)
    actor_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    action: Mapped[str] = mapped_column(String(50))  # create/close/...
    field: Mapped[str] = mapped_column(String(80), default="")
    before_json: Mapped[str] = mapped_column(Text, default="")
    after_json: Mapped[str] = mapped_column(Text, default="")
    comment: Mapped[str] = mapped_column(Text, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
