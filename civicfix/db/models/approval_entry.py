from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Integer, ForeignKey, String, Text, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from civicfix.db.base import Base
from civicfix.db.models.report import utcnow


class ApprovalAction(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    FORWARDED = "forwarded"
    COMPLETED = "completed"


class ApprovalEntry(Base):
    """One transition of a report through the approval chain.

    ``stage`` is the stage the report was in when the action was taken, not
    the stage it moved to. Rows are append-only (see ``civicfix.db.immutability``).
    """

    __tablename__ = "approval_entries"
    __table_args__ = (UniqueConstraint("report_id", "seq", name="uq_approval_entries_report_seq"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id"), index=True)
    # 1-based position within the report's history
    seq: Mapped[int] = mapped_column(Integer)

    stage: Mapped[str] = mapped_column(String(50))
    approved_by: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    approver_name: Mapped[str] = mapped_column(String(120), default="")
    approver_role: Mapped[str] = mapped_column(String(50))
    action: Mapped[str] = mapped_column(String(50))
    note: Mapped[str] = mapped_column(Text, default="")
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    report = relationship("Report", back_populates="approval_history")
