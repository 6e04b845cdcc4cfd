import json

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from civicfix.db.session import get_db
from civicfix.core.config import settings
from civicfix.auth.deps import get_current_user, get_current_actor
from civicfix.core.rbac import require, can_create_report
from civicfix.core.engine import submit_transition, close_report
from civicfix.core.workflow import (
    Actor,
    NON_TERMINAL_STAGES,
    allowed_actions,
    stages_owned_by,
)
from civicfix.db.models.report import Report, ReportPriority, ReportStage, ReportStatus
from civicfix.db.models.report_upvote import ReportUpvote
from civicfix.db.models.user import User
from civicfix.modules.reports.schemas import (
    CloseRequest,
    ReportCreate,
    TransitionRequest,
    serialize_report,
)
from civicfix.utils.geo import bounding_box, haversine_km
from civicfix.utils.report_audit import add_report_audit_log
from civicfix.utils.report_stats import get_report_stats, invalidate_report_stats

router = APIRouter(prefix="/reports", tags=["reports"])


def _validate_create(body: ReportCreate) -> tuple[float, float, ReportPriority]:
    title = body.title.strip()
    require(bool(title), "Title is required", 400)
    require(len(title) <= 200, "Title must be at most 200 characters", 400)
    require(bool(body.description.strip()), "Description is required", 400)
    require(len(body.description.strip()) <= 2000, "Description must be at most 2000 characters", 400)
    require(bool(body.category.strip()), "Category is required", 400)
    require(bool(body.address.strip()), "Address is required", 400)

    coords = body.location.coordinates if body.location else []
    require(len(coords) == 2, "Invalid location format [longitude, latitude]", 400)
    lng, lat = float(coords[0]), float(coords[1])
    require(-180 <= lng <= 180 and -90 <= lat <= 90, "Invalid coordinates", 400)

    require(
        len(body.images) <= settings.MAX_REPORT_IMAGES,
        f"Maximum {settings.MAX_REPORT_IMAGES} images allowed",
        400,
    )
    try:
        priority = ReportPriority((body.priority or "medium").strip().lower())
    except ValueError:
        require(False, "Invalid priority", 400)
    return lng, lat, priority


def _get_or_404(db: Session, report_id: int) -> Report:
    r = db.get(Report, report_id)
    require(r is not None, "Report not found", 404)
    return r


def _parse_stages(stage: str | None) -> list[ReportStage]:
    if not stage:
        return []
    out: list[ReportStage] = []
    for part in stage.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            out.append(ReportStage(part))
        except ValueError:
            require(False, f"Unknown stage: {part}", 400)
    return out


@router.post("", status_code=201)
def create(body: ReportCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    require(can_create_report(user))
    lng, lat, priority = _validate_create(body)

    r = Report(
        title=body.title.strip(),
        description=body.description.strip(),
        category=body.category.strip(),
        priority=priority,
        longitude=lng,
        latitude=lat,
        address=body.address.strip(),
        area=(body.area or "").strip() or None,
        landmark=(body.landmark or "").strip() or None,
        images_json=json.dumps([i for i in body.images if i], ensure_ascii=False),
        reported_by_id=user.id,
        current_stage=ReportStage.PENDING_CITY_MANAGER,
        status=ReportStatus.SUBMITTED,
    )
    db.add(r)
    db.flush()
    add_report_audit_log(db, report_id=r.id, actor_id=user.id, action="create", after={"title": r.title})
    db.commit()
    db.refresh(r)
    invalidate_report_stats()
    return serialize_report(r)


@router.get("")
def list_reports(
    status: str | None = Query(None),
    stage: str | None = Query(None),
    category: str | None = Query(None),
    area: str | None = Query(None),
    reported_by: int | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    q = db.query(Report)
    if status:
        try:
            q = q.filter(Report.status == ReportStatus(status.strip()))
        except ValueError:
            require(False, f"Unknown status: {status}", 400)
    stages = _parse_stages(stage)
    if stages:
        q = q.filter(Report.current_stage.in_(stages))
    if category:
        q = q.filter(Report.category.ilike(f"%{category.strip()}%"))
    if area:
        q = q.filter(Report.area.ilike(f"%{area.strip()}%"))
    if reported_by is not None:
        q = q.filter(Report.reported_by_id == reported_by)

    total = q.count()
    items = q.order_by(Report.created_at.desc(), Report.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return {"items": [serialize_report(r) for r in items], "total": total, "page": page, "limit": limit}


@router.get("/mine")
def my_reports(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    items = (
        db.query(Report)
        .filter(Report.reported_by_id == user.id)
        .order_by(Report.created_at.desc(), Report.id.desc())
        .all()
    )
    return [serialize_report(r) for r in items]


@router.get("/queue")
def queue(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    """Open reports waiting on the caller's role."""
    require(actor.is_staff, "Only municipal staff have a work queue")
    stages = stages_owned_by(actor.role) if settings.STRICT_STAGE_ROLES else NON_TERMINAL_STAGES
    if not stages:
        return []
    items = (
        db.query(Report)
        .filter(Report.current_stage.in_(stages), Report.status.notin_([ReportStatus.REJECTED, ReportStatus.CLOSED]))
        .order_by(Report.created_at.asc(), Report.id.asc())
        .all()
    )
    return [serialize_report(r) for r in items]


@router.get("/stats")
def stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return get_report_stats(db)


@router.get("/nearby")
def nearby(
    lng: float = Query(..., ge=-180, le=180),
    lat: float = Query(..., ge=-90, le=90),
    radius: float = Query(5.0, gt=0, le=100),  # km
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Reports within ``radius`` km of a point, nearest first."""
    min_lng, min_lat, max_lng, max_lat = bounding_box(lng, lat, radius)
    candidates = (
        db.query(Report)
        .filter(
            Report.latitude.between(min_lat, max_lat),
            Report.longitude.between(min_lng, max_lng),
        )
        .all()
    )
    hits = sorted(
        ((haversine_km(lng, lat, r.longitude, r.latitude), r) for r in candidates),
        key=lambda pair: pair[0],
    )
    hits = [(d, r) for d, r in hits if d <= radius][:limit]
    return {
        "items": [{**serialize_report(r), "distanceKm": round(d, 3)} for d, r in hits],
        "count": len(hits),
        "searchCenter": {"lng": lng, "lat": lat},
        "radiusKm": radius,
    }


@router.get("/{report_id}")
def view(report_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    _get_or_404(db, report_id)
    # Plain UPDATE so a page view never bumps the workflow version.
    db.query(Report).filter(Report.id == report_id).update(
        {Report.view_count: Report.view_count + 1}, synchronize_session=False
    )
    db.commit()
    r = db.get(Report, report_id, populate_existing=True)
    return serialize_report(r)


@router.get("/{report_id}/permissions")
def permissions(report_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    r = _get_or_404(db, report_id)
    actions = allowed_actions(actor, r, settings.STRICT_STAGE_ROLES)
    return {
        "reportId": r.id,
        "currentStage": r.current_stage.value,
        "status": r.status.value,
        "actions": [{"action": t.action, "nextStage": t.to_stage.value} for t in actions],
    }


@router.post("/{report_id}/approve")
def do_action(
    report_id: int,
    body: TransitionRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    r = submit_transition(
        db,
        report_id,
        actor,
        body.action,
        body.note,
        body.next_stage,
        body.completion_images,
    )
    return {"message": "Report updated successfully", "report": serialize_report(r)}


@router.post("/{report_id}/close")
def close(
    report_id: int,
    body: CloseRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    r = close_report(db, report_id, actor, body.note)
    return {"message": "Report closed", "report": serialize_report(r)}


@router.post("/{report_id}/upvote")
def toggle_upvote(report_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Add the caller's upvote, or take it back if already given."""
    _get_or_404(db, report_id)
    existing = (
        db.query(ReportUpvote)
        .filter(ReportUpvote.report_id == report_id, ReportUpvote.user_id == user.id)
        .first()
    )
    if existing:
        db.delete(existing)
        delta, upvoted = -1, False
    else:
        db.add(ReportUpvote(report_id=report_id, user_id=user.id))
        delta, upvoted = 1, True

    try:
        db.flush()
        # Counter moves with a plain UPDATE; upvotes are not workflow writes.
        db.query(Report).filter(Report.id == report_id).update(
            {Report.upvotes: Report.upvotes + delta}, synchronize_session=False
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        require(False, "Upvote already recorded", 409)

    r = db.get(Report, report_id, populate_existing=True)
    return {"reportId": r.id, "upvoted": upvoted, "upvotes": r.upvotes}
