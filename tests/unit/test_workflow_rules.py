"""Unit tests for the workflow rule tables (civicfix.core.workflow).

Pure functions only: no database, reports are transient ORM instances.
"""

import pytest

from civicfix.core.errors import ValidationError
from civicfix.core.workflow import (
    ACTIONS,
    Actor,
    NON_TERMINAL_STAGES,
    STAGE_OWNERS,
    TERMINAL_STAGES,
    TRANSITIONS,
    allowed_actions,
    can_act_on_stage,
    get_transition,
    is_terminal,
    parse_action,
    parse_stage,
    progress_percent,
    stage_owner,
    stages_owned_by,
    successors,
)
from civicfix.db.models.approval_entry import ApprovalAction
from civicfix.db.models.report import Report, ReportStage, ReportStatus
from civicfix.db.models.user import Role, User


STAGE_ORDER = [
    ReportStage.PENDING_CITY_MANAGER,
    ReportStage.PENDING_INFRA_MANAGER,
    ReportStage.PENDING_ISSUE_RESOLVER,
    ReportStage.PENDING_CONTRACTOR,
    ReportStage.WORK_IN_PROGRESS,
    ReportStage.COMPLETED,
]


def _actor(role: Role | None) -> Actor:
    return Actor(id=1, display_name="Tester", role=role)


def _report(stage: ReportStage, status: ReportStatus = ReportStatus.SUBMITTED) -> Report:
    return Report(id=1, current_stage=stage, status=status)


class TestStageGraph:
    @pytest.mark.parametrize("index", range(len(STAGE_ORDER) - 1))
    def test_open_stage_has_next_stage_and_reject(self, index) -> None:
        stage = STAGE_ORDER[index]
        assert successors(stage) == (STAGE_ORDER[index + 1], ReportStage.REJECTED)

    @pytest.mark.parametrize("stage", sorted(TERMINAL_STAGES, key=lambda s: s.value))
    def test_terminal_stage_has_no_successors(self, stage) -> None:
        assert successors(stage) == ()

    def test_no_edge_goes_back(self) -> None:
        for t in TRANSITIONS:
            if t.to_stage == ReportStage.REJECTED:
                continue
            assert STAGE_ORDER.index(t.to_stage) == STAGE_ORDER.index(t.from_stage) + 1

    def test_every_open_stage_can_be_rejected(self) -> None:
        for stage in NON_TERMINAL_STAGES:
            t = get_transition(stage, "reject")
            assert t.to_stage == ReportStage.REJECTED
            assert t.status == ReportStatus.REJECTED
            assert t.record_as == ApprovalAction.REJECTED

    def test_unknown_transition_raises_key_error(self) -> None:
        with pytest.raises(KeyError):
            get_transition(ReportStage.PENDING_CITY_MANAGER, "complete")
        with pytest.raises(KeyError):
            get_transition(ReportStage.COMPLETED, "reject")


class TestTransitionEffects:
    def test_start_work_moves_status_to_in_progress(self) -> None:
        t = get_transition(ReportStage.PENDING_CONTRACTOR, "start_work")
        assert t.to_stage == ReportStage.WORK_IN_PROGRESS
        assert t.status == ReportStatus.IN_PROGRESS
        assert t.assign_slot == "assigned_contractor_id"
        assert t.record_as == ApprovalAction.FORWARDED

    def test_complete_resolves(self) -> None:
        t = get_transition(ReportStage.WORK_IN_PROGRESS, "complete")
        assert t.to_stage == ReportStage.COMPLETED
        assert t.status == ReportStatus.RESOLVED
        assert t.record_as == ApprovalAction.COMPLETED

    @pytest.mark.parametrize(
        "stage, slot",
        [
            (ReportStage.PENDING_CITY_MANAGER, "assigned_city_manager_id"),
            (ReportStage.PENDING_INFRA_MANAGER, "assigned_infra_manager_id"),
            (ReportStage.PENDING_ISSUE_RESOLVER, "assigned_issue_resolver_id"),
        ],
    )
    def test_approve_fills_the_acting_role_slot_and_keeps_status(self, stage, slot) -> None:
        t = get_transition(stage, "approve")
        assert t.assign_slot == slot
        assert t.status is None
        assert t.record_as == ApprovalAction.APPROVED


class TestParsing:
    def test_parse_action_normalizes_case(self) -> None:
        assert parse_action(" Approve ") == "approve"
        assert set(ACTIONS) == {"approve", "reject", "start_work", "complete"}

    @pytest.mark.parametrize("raw", [None, "", "forward", "send_back"])
    def test_parse_action_rejects_unknown(self, raw) -> None:
        with pytest.raises(ValidationError):
            parse_action(raw)

    def test_parse_stage(self) -> None:
        assert parse_stage("pending_contractor") == ReportStage.PENDING_CONTRACTOR
        assert parse_stage(ReportStage.COMPLETED) is ReportStage.COMPLETED

    @pytest.mark.parametrize("raw", [None, "", "closed", "in-progress"])
    def test_parse_stage_rejects_unknown(self, raw) -> None:
        with pytest.raises(ValidationError):
            parse_stage(raw)


class TestRoleGate:
    def test_stage_owners_cover_every_open_stage(self) -> None:
        assert set(STAGE_OWNERS) == set(NON_TERMINAL_STAGES)
        assert stage_owner(ReportStage.COMPLETED) is None

    def test_contractor_owns_two_stages(self) -> None:
        assert stages_owned_by(Role.CONTRACTOR) == (
            ReportStage.PENDING_CONTRACTOR,
            ReportStage.WORK_IN_PROGRESS,
        )
        assert stages_owned_by(Role.CITIZEN) == ()

    @pytest.mark.parametrize("strict", [True, False])
    @pytest.mark.parametrize("role", [Role.CITIZEN, None])
    def test_citizen_or_missing_role_never_acts(self, role, strict) -> None:
        for stage in ReportStage:
            assert can_act_on_stage(_actor(role), stage, strict) is False

    def test_strict_mode_requires_stage_owner(self) -> None:
        stage = ReportStage.PENDING_INFRA_MANAGER
        assert can_act_on_stage(_actor(Role.INFRA_MANAGER), stage, strict=True)
        assert not can_act_on_stage(_actor(Role.CITY_MANAGER), stage, strict=True)
        assert not can_act_on_stage(_actor(Role.ADMIN), stage, strict=True)

    def test_permissive_mode_allows_any_staff(self) -> None:
        stage = ReportStage.PENDING_INFRA_MANAGER
        for role in (Role.CITY_MANAGER, Role.CONTRACTOR, Role.ADMIN):
            assert can_act_on_stage(_actor(role), stage, strict=False)

    def test_terminal_stage_closed_to_everyone(self) -> None:
        assert not can_act_on_stage(_actor(Role.CONTRACTOR), ReportStage.COMPLETED, strict=False)


class TestAllowedActions:
    def test_owner_gets_approve_and_reject(self) -> None:
        actions = allowed_actions(_actor(Role.CITY_MANAGER), _report(ReportStage.PENDING_CITY_MANAGER), strict=True)
        assert [(t.action, t.to_stage) for t in actions] == [
            ("approve", ReportStage.PENDING_INFRA_MANAGER),
            ("reject", ReportStage.REJECTED),
        ]

    def test_non_owner_gets_nothing_in_strict_mode(self) -> None:
        assert allowed_actions(_actor(Role.CONTRACTOR), _report(ReportStage.PENDING_CITY_MANAGER), strict=True) == []

    def test_terminal_status_blocks_everything(self) -> None:
        report = _report(ReportStage.PENDING_CONTRACTOR, ReportStatus.CLOSED)
        assert is_terminal(report)
        assert allowed_actions(_actor(Role.CONTRACTOR), report, strict=False) == []


class TestActor:
    def test_from_user(self) -> None:
        u = User(id=7, full_name="Asha Rao", email="asha@example.org", role=Role.ISSUE_RESOLVER)
        actor = Actor.from_user(u)
        assert actor == Actor(id=7, display_name="Asha Rao", role=Role.ISSUE_RESOLVER)
        assert actor.is_staff

    def test_display_name_falls_back_to_email(self) -> None:
        u = User(id=8, full_name="", email="crew@example.org", role=Role.CONTRACTOR)
        assert Actor.from_user(u).display_name == "crew@example.org"


@pytest.mark.parametrize(
    "status, percent",
    [
        (ReportStatus.SUBMITTED, 25),
        (ReportStatus.UNDER_REVIEW, 50),
        (ReportStatus.IN_PROGRESS, 75),
        (ReportStatus.RESOLVED, 100),
        (ReportStatus.CLOSED, 100),
        (ReportStatus.REJECTED, 0),
    ],
)
def test_progress_percent(status, percent) -> None:
    assert progress_percent(status) == percent
