from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from civicfix.core.workflow import progress_percent
from civicfix.db.models.report import Report


class Location(BaseModel):
    type: str = "Point"
    coordinates: list[float] = Field(default_factory=list)  # [longitude, latitude]


class ReportCreate(BaseModel):
    """Incoming issue. Required fields are checked by the router so that
    missing values answer 400 like every other client error."""

    title: str = ""
    description: str = ""
    category: str = ""
    location: Location | None = None
    address: str = ""
    area: str | None = None
    landmark: str | None = None
    images: list[str] = Field(default_factory=list)
    priority: str = "medium"


class TransitionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: str = ""
    note: str = ""
    next_stage: str = Field("", alias="nextStage")
    completion_images: list[str] | None = Field(None, alias="completionImages")


class CloseRequest(BaseModel):
    note: str = ""


def _iso(v: datetime | None) -> str | None:
    return v.isoformat() if v is not None else None


def serialize_entry(e) -> dict:
    return {
        "seq": e.seq,
        "stage": e.stage,
        "approvedBy": e.approved_by,
        "approverName": e.approver_name,
        "approverRole": e.approver_role,
        "action": e.action,
        "note": e.note,
        "timestamp": _iso(e.timestamp),
    }


def serialize_report(r: Report) -> dict:
    return {
        "id": r.id,
        "title": r.title,
        "description": r.description,
        "category": r.category,
        "priority": r.priority.value,
        "location": {"type": "Point", "coordinates": [r.longitude, r.latitude]},
        "address": r.address,
        "area": r.area,
        "landmark": r.landmark,
        "images": r.images,
        "reportedBy": r.reported_by_id,
        "currentStage": r.current_stage.value,
        "stageLabel": r.stage_label,
        "status": r.status.value,
        "statusLabel": r.status_label,
        "progress": progress_percent(r.status),
        "approvalHistory": [serialize_entry(e) for e in r.approval_history],
        "assignedCityManager": r.assigned_city_manager_id,
        "assignedInfraManager": r.assigned_infra_manager_id,
        "assignedIssueResolver": r.assigned_issue_resolver_id,
        "assignedContractor": r.assigned_contractor_id,
        "resolvedAt": _iso(r.resolved_at),
        "closedAt": _iso(r.closed_at),
        "workCompletionImages": r.work_completion_images,
        "viewCount": r.view_count,
        "upvotes": r.upvotes,
        "version": r.version,
        "createdAt": _iso(r.created_at),
        "updatedAt": _iso(r.updated_at),
    }
