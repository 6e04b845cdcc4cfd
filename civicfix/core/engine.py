"""Applies workflow rules to persisted reports.

All checks run before the first attribute is touched (validate, then
commit). The stage change, the role slot, the derived status and the new
approval entry are written in one transaction. The report row is read
``FOR UPDATE`` where the backend supports it, and the ORM UPDATE carries
the version that was read, so a second writer racing on the same stage
fails instead of appending a duplicate entry.
"""

from __future__ import annotations

import json
import logging
from typing import Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from civicfix.core.config import settings
from civicfix.core.errors import Forbidden, InvalidTransition, NotFound, ValidationError
from civicfix.core.workflow import (
    Action,
    Actor,
    Transition,
    TERMINAL_STAGES,
    TERMINAL_STATUSES,
    can_act_on_stage,
    get_transition,
    parse_action,
    parse_stage,
    stage_owner,
    successors,
)
from civicfix.db.models.approval_entry import ApprovalEntry
from civicfix.db.models.report import Report, ReportStage, ReportStatus, utcnow
from civicfix.utils.report_audit import add_report_audit_log
from civicfix.utils.report_stats import invalidate_report_stats

logger = logging.getLogger("civicfix.workflow")


def _require_staff(actor: Actor) -> None:
    if actor is None or not actor.is_staff:
        raise Forbidden("citizens cannot act on the approval workflow")


def _load_for_update(db: Session, report_id: int) -> Report:
    report = db.get(Report, report_id, with_for_update=True, populate_existing=True)
    if report is None:
        raise NotFound(f"report {report_id} not found")
    return report


def _clean_assets(assets: Sequence[str] | None) -> list[str]:
    if not assets:
        return []
    if isinstance(assets, str):
        assets = [assets]
    return [str(a).strip() for a in assets if a is not None and str(a).strip()]


def _resolve(
    report: Report,
    actor: Actor,
    action: Action,
    target: ReportStage,
    strict: bool,
) -> Transition:
    if report.status in TERMINAL_STATUSES or report.current_stage in TERMINAL_STAGES:
        raise InvalidTransition(
            f"report {report.id} is {report.status.value} at stage {report.current_stage.value}; no further transitions"
        )

    if target not in successors(report.current_stage):
        raise InvalidTransition(
            f"{target.value} is not reachable from {report.current_stage.value}"
        )

    try:
        t = get_transition(report.current_stage, action)
    except KeyError:
        raise InvalidTransition(
            f"action {action!r} is not available at stage {report.current_stage.value}"
        ) from None
    if t.to_stage != target:
        raise InvalidTransition(
            f"action {action!r} leads to {t.to_stage.value}, not {target.value}"
        )

    if not can_act_on_stage(actor, report.current_stage, strict):
        owner = stage_owner(report.current_stage)
        raise Forbidden(
            f"stage {report.current_stage.value} is handled by {owner.value if owner else 'nobody'}"
        )
    return t


def apply_transition(
    db: Session,
    report: Report,
    actor: Actor,
    action: str,
    note: str | None,
    target_stage: str | ReportStage,
    completion_assets: Sequence[str] | None = None,
    *,
    strict: bool | None = None,
) -> Report:
    """Validate and commit one transition on an already loaded report."""
    action = parse_action(action)
    target = parse_stage(target_stage)
    _require_staff(actor)
    if strict is None:
        strict = settings.STRICT_STAGE_ROLES

    t = _resolve(report, actor, action, target, strict)

    note = (note or "").strip()
    if not note:
        raise ValidationError("a note is required for every workflow action")

    assets = _clean_assets(completion_assets)
    if t.to_stage == ReportStage.COMPLETED:
        if not assets:
            raise ValidationError("completing work requires at least one completion image")
        if len(assets) > settings.MAX_COMPLETION_IMAGES:
            raise ValidationError(f"at most {settings.MAX_COMPLETION_IMAGES} completion images are allowed")

    # ---- commit phase ----
    now = utcnow()
    from_stage = report.current_stage
    report.approval_history.append(
        ApprovalEntry(
            seq=len(report.approval_history) + 1,
            stage=from_stage.value,
            approved_by=actor.id,
            approver_name=actor.display_name or "Unknown",
            approver_role=actor.role.value,
            action=t.record_as.value,
            note=note,
            timestamp=now,
        )
    )
    report.current_stage = t.to_stage
    if t.assign_slot:
        setattr(report, t.assign_slot, actor.id)
    if t.status is not None:
        report.status = t.status
    if t.to_stage == ReportStage.COMPLETED:
        report.resolved_at = now
        report.work_completion_images_json = json.dumps(assets, ensure_ascii=False)

    try:
        db.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.rollback()
        logger.warning(
            "Concurrent transition rejected: report=%s from=%s action=%s actor=%s",
            report.id, from_stage.value, action, actor.id,
        )
        raise InvalidTransition(
            f"report {report.id} was modified concurrently; reload and retry"
        ) from exc

    invalidate_report_stats()
    db.refresh(report)
    logger.info(
        "Report %s: %s -> %s by %s (%s)",
        report.id, from_stage.value, report.current_stage.value, actor.id, actor.role.value,
    )
    return report


def submit_transition(
    db: Session,
    report_id: int,
    actor: Actor,
    requested_action: str,
    note: str | None,
    target_stage: str | ReportStage,
    completion_assets: Sequence[str] | None = None,
    *,
    strict: bool | None = None,
) -> Report:
    """Move a report one step along the approval chain.

    Raises NotFound, Forbidden, ValidationError or InvalidTransition; the
    report is left untouched in every error case.
    """
    parse_action(requested_action)
    parse_stage(target_stage)
    _require_staff(actor)
    report = _load_for_update(db, report_id)
    return apply_transition(
        db,
        report,
        actor,
        requested_action,
        note,
        target_stage,
        completion_assets,
        strict=strict,
    )


def close_report(db: Session, report_id: int, actor: Actor, note: str | None = None) -> Report:
    """Mark a resolved report as closed. Status only; the stage stays ``completed``."""
    _require_staff(actor)
    report = _load_for_update(db, report_id)
    if report.current_stage != ReportStage.COMPLETED or report.status != ReportStatus.RESOLVED:
        raise InvalidTransition(
            f"only resolved reports can be closed (report {report.id} is {report.status.value})"
        )

    before = report.status.value
    report.status = ReportStatus.CLOSED
    report.closed_at = utcnow()
    add_report_audit_log(
        db,
        report_id=report.id,
        actor_id=actor.id,
        action="close",
        field="status",
        before=before,
        after=report.status.value,
        comment=note or "",
    )
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise InvalidTransition(
            f"report {report.id} was modified concurrently; reload and retry"
        ) from exc

    invalidate_report_stats()
    db.refresh(report)
    logger.info("Report %s closed by %s", report.id, actor.id)
    return report
