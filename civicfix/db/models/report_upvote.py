from datetime import datetime

from sqlalchemy import Integer, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from civicfix.db.base import Base
from civicfix.db.models.report import utcnow


class ReportUpvote(Base):
    """One user's upvote on a report. ``Report.upvotes`` mirrors the row count."""

    __tablename__ = "report_upvotes"
    __table_args__ = (UniqueConstraint("report_id", "user_id", name="uq_report_upvotes_report_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
