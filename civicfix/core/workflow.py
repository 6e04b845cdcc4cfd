"""Workflow / State Machine for issue reports.

This module centralizes *all* approval-chain rules in one place.

Goals:
1) No scattered if/else chains across routers
2) Rules are data-driven, testable, and easy to extend
3) One source of truth for:
   - the stage graph and which actions move along it
   - which role owns each stage
   - which role slot an action fills
   - how the citizen-visible status follows the stage

Nothing here touches the database; ``civicfix.core.engine`` applies the
rules to a persisted report.
"""

from __future__ import annotations

from dataclasses import dataclass

from civicfix.core.errors import ValidationError
from civicfix.db.models.approval_entry import ApprovalAction
from civicfix.db.models.report import Report, ReportStage, ReportStatus
from civicfix.db.models.user import Role, User


Action = str  # "approve" | "reject" | "start_work" | "complete"

ACTIONS: tuple[Action, ...] = ("approve", "reject", "start_work", "complete")


@dataclass(frozen=True, slots=True)
class Actor:
    """Identity of the caller as supplied by the session layer."""

    id: int
    display_name: str
    role: Role | None

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, display_name=user.display_name, role=user.role)

    @property
    def is_staff(self) -> bool:
        return self.role is not None and self.role != Role.CITIZEN


@dataclass(frozen=True, slots=True)
class Transition:
    """One transition edge in the state machine."""

    from_stage: ReportStage
    action: Action
    to_stage: ReportStage
    # What the approval history records for this edge.
    record_as: ApprovalAction
    # Report attribute that receives the acting user's id.
    assign_slot: str | None = None
    # New citizen-visible status; None leaves it untouched.
    status: ReportStatus | None = None


TERMINAL_STAGES: frozenset[ReportStage] = frozenset({ReportStage.COMPLETED, ReportStage.REJECTED})
TERMINAL_STATUSES: frozenset[ReportStatus] = frozenset(
    {ReportStatus.RESOLVED, ReportStatus.REJECTED, ReportStatus.CLOSED}
)
NON_TERMINAL_STAGES: tuple[ReportStage, ...] = tuple(s for s in ReportStage if s not in TERMINAL_STAGES)


# ---- State machine configuration ----


_FORWARD: tuple[Transition, ...] = (
    # approve path: city manager -> infra manager -> issue resolver -> contractor
    Transition(
        from_stage=ReportStage.PENDING_CITY_MANAGER,
        action="approve",
        to_stage=ReportStage.PENDING_INFRA_MANAGER,
        record_as=ApprovalAction.APPROVED,
        assign_slot="assigned_city_manager_id",
    ),
    Transition(
        from_stage=ReportStage.PENDING_INFRA_MANAGER,
        action="approve",
        to_stage=ReportStage.PENDING_ISSUE_RESOLVER,
        record_as=ApprovalAction.APPROVED,
        assign_slot="assigned_infra_manager_id",
    ),
    Transition(
        from_stage=ReportStage.PENDING_ISSUE_RESOLVER,
        action="approve",
        to_stage=ReportStage.PENDING_CONTRACTOR,
        record_as=ApprovalAction.APPROVED,
        assign_slot="assigned_issue_resolver_id",
    ),
    # contractor picks the job up, then finishes it
    Transition(
        from_stage=ReportStage.PENDING_CONTRACTOR,
        action="start_work",
        to_stage=ReportStage.WORK_IN_PROGRESS,
        record_as=ApprovalAction.FORWARDED,
        assign_slot="assigned_contractor_id",
        status=ReportStatus.IN_PROGRESS,
    ),
    Transition(
        from_stage=ReportStage.WORK_IN_PROGRESS,
        action="complete",
        to_stage=ReportStage.COMPLETED,
        record_as=ApprovalAction.COMPLETED,
        status=ReportStatus.RESOLVED,
    ),
)

# side exit from every open stage
_REJECT: tuple[Transition, ...] = tuple(
    Transition(
        from_stage=stage,
        action="reject",
        to_stage=ReportStage.REJECTED,
        record_as=ApprovalAction.REJECTED,
        status=ReportStatus.REJECTED,
    )
    for stage in NON_TERMINAL_STAGES
)

TRANSITIONS: tuple[Transition, ...] = _FORWARD + _REJECT

_BY_KEY: dict[tuple[ReportStage, Action], Transition] = {(t.from_stage, t.action): t for t in TRANSITIONS}


# Role gate: the role that must act on each open stage (strict mode).
STAGE_OWNERS: dict[ReportStage, Role] = {
    ReportStage.PENDING_CITY_MANAGER: Role.CITY_MANAGER,
    ReportStage.PENDING_INFRA_MANAGER: Role.INFRA_MANAGER,
    ReportStage.PENDING_ISSUE_RESOLVER: Role.ISSUE_RESOLVER,
    ReportStage.PENDING_CONTRACTOR: Role.CONTRACTOR,
    ReportStage.WORK_IN_PROGRESS: Role.CONTRACTOR,
}


# Citizen-facing progress bar.
PROGRESS_PERCENT: dict[ReportStatus, int] = {
    ReportStatus.SUBMITTED: 25,
    ReportStatus.UNDER_REVIEW: 50,
    ReportStatus.IN_PROGRESS: 75,
    ReportStatus.RESOLVED: 100,
    ReportStatus.CLOSED: 100,
    ReportStatus.REJECTED: 0,
}


# ---- Lookups ----


def parse_action(raw: str | None) -> Action:
    value = (raw or "").strip().lower()
    if value not in ACTIONS:
        raise ValidationError(f"unknown action: {raw!r}")
    return value


def parse_stage(raw: str | ReportStage | None) -> ReportStage:
    if isinstance(raw, ReportStage):
        return raw
    try:
        return ReportStage((raw or "").strip().lower())
    except ValueError:
        raise ValidationError(f"unknown stage: {raw!r}") from None


def get_transition(stage: ReportStage, action: Action) -> Transition:
    try:
        return _BY_KEY[(stage, action)]
    except KeyError:
        raise KeyError("unknown transition") from None


def transitions_from(stage: ReportStage) -> tuple[Transition, ...]:
    return tuple(t for t in TRANSITIONS if t.from_stage == stage)


def successors(stage: ReportStage) -> tuple[ReportStage, ...]:
    """Stages reachable in one step; ``rejected`` is included for open stages."""
    out: list[ReportStage] = []
    for t in transitions_from(stage):
        if t.to_stage not in out:
            out.append(t.to_stage)
    return tuple(out)


def is_terminal(report: Report) -> bool:
    return report.current_stage in TERMINAL_STAGES or report.status in TERMINAL_STATUSES


def stage_owner(stage: ReportStage) -> Role | None:
    return STAGE_OWNERS.get(stage)


def stages_owned_by(role: Role | None) -> tuple[ReportStage, ...]:
    return tuple(s for s, r in STAGE_OWNERS.items() if r == role)


def can_act_on_stage(actor: Actor, stage: ReportStage, strict: bool) -> bool:
    if not actor.is_staff:
        return False
    if stage in TERMINAL_STAGES:
        return False
    if not strict:
        return True
    return actor.role == STAGE_OWNERS.get(stage)


def allowed_actions(actor: Actor, report: Report, strict: bool) -> list[Transition]:
    """Transitions the actor may execute on the report right now."""
    if is_terminal(report):
        return []
    if not can_act_on_stage(actor, report.current_stage, strict):
        return []
    return list(transitions_from(report.current_stage))


def progress_percent(status: ReportStatus) -> int:
    return PROGRESS_PERCENT.get(status, 0)
