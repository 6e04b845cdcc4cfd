from __future__ import annotations

import enum
import json
from datetime import datetime, timezone

from sqlalchemy import Integer, Enum, Float, ForeignKey, String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from civicfix.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportStage(str, enum.Enum):
    """Position of a report in the approval chain."""

    PENDING_CITY_MANAGER = "pending_city_manager"
    PENDING_INFRA_MANAGER = "pending_infra_manager"
    PENDING_ISSUE_RESOLVER = "pending_issue_resolver"
    PENDING_CONTRACTOR = "pending_contractor"
    WORK_IN_PROGRESS = "work_in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class ReportStatus(str, enum.Enum):
    """Citizen-visible lifecycle label, coarser than the stage."""

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REJECTED = "rejected"


class ReportPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


STAGE_LABELS = {
    ReportStage.PENDING_CITY_MANAGER: "Awaiting city manager",
    ReportStage.PENDING_INFRA_MANAGER: "Awaiting infrastructure manager",
    ReportStage.PENDING_ISSUE_RESOLVER: "Awaiting issue resolver",
    ReportStage.PENDING_CONTRACTOR: "Awaiting contractor",
    ReportStage.WORK_IN_PROGRESS: "Work in progress",
    ReportStage.COMPLETED: "Completed",
    ReportStage.REJECTED: "Rejected",
}

STATUS_LABELS = {
    ReportStatus.SUBMITTED: "Submitted",
    ReportStatus.UNDER_REVIEW: "Under review",
    ReportStatus.IN_PROGRESS: "In progress",
    ReportStatus.RESOLVED: "Resolved",
    ReportStatus.CLOSED: "Closed",
    ReportStatus.REJECTED: "Rejected",
}


def _load_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        obj = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(obj, list):
        return []
    return [str(x) for x in obj]


class Report(Base):
    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(80), index=True)
    priority: Mapped[ReportPriority] = mapped_column(Enum(ReportPriority), default=ReportPriority.MEDIUM)

    # GeoJSON order is [longitude, latitude]; stored as two columns.
    longitude: Mapped[float] = mapped_column(Float)
    latitude: Mapped[float] = mapped_column(Float)
    address: Mapped[str] = mapped_column(String(500))
    area: Mapped[str | None] = mapped_column(String(120), nullable=True, index=True)
    landmark: Mapped[str | None] = mapped_column(String(200), nullable=True)
    images_json: Mapped[str] = mapped_column(Text, default="[]")

    reported_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    current_stage: Mapped[ReportStage] = mapped_column(
        Enum(ReportStage), index=True, default=ReportStage.PENDING_CITY_MANAGER
    )
    status: Mapped[ReportStatus] = mapped_column(Enum(ReportStatus), index=True, default=ReportStatus.SUBMITTED)

    # One slot per stage-owning role; filled by whoever acted out of that role's stage.
    assigned_city_manager_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    assigned_infra_manager_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    assigned_issue_resolver_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    assigned_contractor_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    work_completion_images_json: Mapped[str] = mapped_column(Text, default="[]")

    view_count: Mapped[int] = mapped_column(Integer, default=0)
    upvotes: Mapped[int] = mapped_column(Integer, default=0)

    # Compare-and-swap counter: every ORM UPDATE is conditional on the value read.
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    approval_history = relationship(
        "ApprovalEntry",
        back_populates="report",
        order_by="ApprovalEntry.seq",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def images(self) -> list[str]:
        return _load_list(self.images_json)

    @property
    def work_completion_images(self) -> list[str]:
        return _load_list(self.work_completion_images_json)

    @property
    def stage_label(self) -> str:
        return STAGE_LABELS.get(self.current_stage, getattr(self.current_stage, "value", str(self.current_stage)))

    @property
    def status_label(self) -> str:
        return STATUS_LABELS.get(self.status, getattr(self.status, "value", str(self.status)))
