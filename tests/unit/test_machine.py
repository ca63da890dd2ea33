"""Unit tests for the phase state machine."""

import pytest
from doodba.reconcile import machine
from doodba.reconcile.actions import (
    DeleteJob,
    EnsureJob,
    JobObservation,
    JobState,
    PatchStatus,
    ReplicaMode,
    SyncChildren,
)
from doodba.reconcile.directive import Directive, DirectiveKind
from doodba.types.models import DoodbaPhase, DoodbaStatus, Hook
from doodba.types.schemas import DoodbaSpecSchema
from fakes import IMAGE, doodba_spec

WAIT = 5
NEW_IMAGE = f"{IMAGE}:17.0"
OLD_IMAGE = f"{IMAGE}:16.0"


def load_spec(**overrides):
    return DoodbaSpecSchema().load(doodba_spec(**overrides))


def status(phase: DoodbaPhase, **fields):
    return DoodbaStatus.initial().replace(
        phase=phase.value, observed_generation=1, **fields
    )


def job(hook: Hook, state: JobState, image: str = OLD_IMAGE):
    return JobObservation(f"odoo-{hook.value}", state, image)


def no_jobs():
    return {Hook.BEFORE_CREATE: None, Hook.BEFORE_UPDATE: None}


def run(spec, current, jobs=None, deployments=None, generation=1):
    return machine.plan(
        "odoo", spec, current, jobs or no_jobs(), deployments or {}, generation, WAIT
    )


class TestMissingStatus:
    def test_default_status_written_first(self):
        plan = run(load_spec(), None)
        assert isinstance(plan.actions[0], PatchStatus)
        assert plan.actions[0].status == DoodbaStatus.initial()

    def test_pending_evaluated_in_same_pass(self):
        plan = run(load_spec(), None)
        assert plan.actions[1] == EnsureJob(Hook.BEFORE_CREATE)
        assert plan.actions[2].status.phase == DoodbaPhase.CREATING.value
        assert plan.status.before_create_job == "odoo-before-create"
        assert plan.status.observed_generation == 1

    def test_without_hook_goes_running(self):
        plan = run(load_spec(beforeCreate=None), None)
        assert plan.status.phase == DoodbaPhase.RUNNING.value
        assert plan.status.ready is True
        assert plan.status.last_applied_image == OLD_IMAGE
        assert plan.child_actions == []


class TestSuspend:
    @pytest.mark.parametrize("phase", list(DoodbaPhase))
    def test_overrides_every_phase(self, phase):
        plan = run(load_spec(suspend=True), status(phase, ready=True))
        assert plan.status.phase == DoodbaPhase.SUSPENDED.value
        assert plan.status.ready is False
        assert plan.directive.kind == DirectiveKind.AWAIT_CHANGE
        assert plan.child_actions == []

    def test_overrides_unknown_phase(self):
        current = DoodbaStatus.initial().replace(phase="Hibernating")
        plan = run(load_spec(suspend=True), current)
        assert plan.status.phase == DoodbaPhase.SUSPENDED.value

    def test_already_suspended_is_noop(self):
        plan = run(load_spec(suspend=True), status(DoodbaPhase.SUSPENDED))
        assert plan.actions == []

    def test_resume_goes_through_pending(self):
        current = status(
            DoodbaPhase.SUSPENDED, before_create_job="odoo-before-create"
        )
        plan = run(load_spec(), current)
        assert plan.status.phase == DoodbaPhase.PENDING.value
        assert plan.status.before_create_job is None
        assert plan.directive == Directive.requeue(WAIT)


class TestUnknownPhase:
    def test_waits_without_patching(self):
        current = DoodbaStatus.initial().replace(phase="Hibernating")
        plan = run(load_spec(), current)
        assert plan.actions == []
        assert plan.directive.kind == DirectiveKind.AWAIT_CHANGE


class TestPending:
    def test_creates_before_create_job(self):
        plan = run(load_spec(), status(DoodbaPhase.PENDING))
        assert plan.child_actions == [EnsureJob(Hook.BEFORE_CREATE)]
        assert plan.status.phase == DoodbaPhase.CREATING.value
        assert plan.status.last_applied_image == OLD_IMAGE
        assert plan.directive.is_requeue

    def test_status_patch_follows_job_creation(self):
        plan = run(load_spec(), status(DoodbaPhase.PENDING))
        assert isinstance(plan.actions[0], EnsureJob)
        assert isinstance(plan.actions[1], PatchStatus)

    def test_completed_job_skips_creation(self):
        jobs = {Hook.BEFORE_CREATE: job(Hook.BEFORE_CREATE, JobState.COMPLETE)}
        plan = run(load_spec(), status(DoodbaPhase.PENDING), jobs)
        assert plan.status.phase == DoodbaPhase.RUNNING.value
        assert plan.child_actions == []

    def test_failed_leftover_job_is_deleted(self):
        jobs = {Hook.BEFORE_CREATE: job(Hook.BEFORE_CREATE, JobState.FAILED)}
        plan = run(load_spec(), status(DoodbaPhase.PENDING), jobs)
        assert plan.child_actions == [DeleteJob(Hook.BEFORE_CREATE)]
        assert plan.status.phase == DoodbaPhase.PENDING.value

    def test_terminating_job_is_waited_for(self):
        jobs = {Hook.BEFORE_CREATE: job(Hook.BEFORE_CREATE, JobState.TERMINATING)}
        plan = run(load_spec(), status(DoodbaPhase.PENDING), jobs)
        assert plan.actions == []
        assert plan.directive.is_requeue

    def test_keeps_last_applied_image_without_hook(self):
        current = status(DoodbaPhase.PENDING, last_applied_image=OLD_IMAGE)
        plan = run(load_spec(beforeCreate=None, tag="17.0"), current)
        assert plan.status.phase == DoodbaPhase.RUNNING.value
        assert plan.status.last_applied_image == OLD_IMAGE

    def test_keeps_last_applied_image_with_hook(self):
        current = status(DoodbaPhase.PENDING, last_applied_image=OLD_IMAGE)
        plan = run(load_spec(tag="17.0"), current)
        assert plan.status.phase == DoodbaPhase.CREATING.value
        assert plan.status.last_applied_image == OLD_IMAGE


class TestCreating:
    def current(self):
        return status(
            DoodbaPhase.CREATING,
            before_create_job="odoo-before-create",
            last_applied_image=OLD_IMAGE,
        )

    def test_running_job_requeues(self):
        jobs = {Hook.BEFORE_CREATE: job(Hook.BEFORE_CREATE, JobState.RUNNING)}
        plan = run(load_spec(), self.current(), jobs)
        assert plan.actions == []
        assert plan.directive == Directive.requeue(WAIT)

    def test_missing_job_is_recreated(self):
        plan = run(load_spec(), self.current())
        assert plan.child_actions == [EnsureJob(Hook.BEFORE_CREATE)]
        assert plan.status.phase == DoodbaPhase.CREATING.value

    def test_complete_job_goes_running(self):
        jobs = {Hook.BEFORE_CREATE: job(Hook.BEFORE_CREATE, JobState.COMPLETE)}
        plan = run(load_spec(), self.current(), jobs)
        assert plan.status.phase == DoodbaPhase.RUNNING.value
        assert plan.status.ready is True
        assert plan.status.before_create_job is None

    def test_failed_job_goes_failed(self):
        jobs = {Hook.BEFORE_CREATE: job(Hook.BEFORE_CREATE, JobState.FAILED)}
        plan = run(load_spec(), self.current(), jobs)
        assert plan.status.phase == DoodbaPhase.FAILED.value
        assert plan.status.ready is False
        assert plan.directive.kind == DirectiveKind.AWAIT_CHANGE


class TestRunning:
    def test_no_drift_syncs_children(self):
        current = status(DoodbaPhase.RUNNING, ready=True, last_applied_image=OLD_IMAGE)
        plan = run(load_spec(), current)
        assert plan.actions == [SyncChildren(ReplicaMode.STEADY)]
        assert plan.directive.kind == DirectiveKind.AWAIT_CHANGE

    def test_image_drift_starts_upgrade(self):
        current = status(DoodbaPhase.RUNNING, ready=True, last_applied_image=OLD_IMAGE)
        plan = run(load_spec(tag="17.0"), current)
        assert plan.status.phase == DoodbaPhase.UPGRADING.value
        assert plan.status.ready is False
        assert plan.child_actions == []
        assert plan.directive.is_requeue

    def test_adopts_image_when_unknown(self):
        current = status(DoodbaPhase.RUNNING, ready=True)
        plan = run(load_spec(tag="17.0"), current)
        assert plan.status.phase == DoodbaPhase.RUNNING.value
        assert plan.status.last_applied_image == NEW_IMAGE

    def test_stamps_observed_generation(self):
        current = status(DoodbaPhase.RUNNING, ready=True, last_applied_image=OLD_IMAGE)
        plan = run(load_spec(), current, generation=4)
        assert plan.status.observed_generation == 4
        assert isinstance(plan.actions[-1], PatchStatus)


class TestUpgrading:
    def current(self):
        return status(DoodbaPhase.UPGRADING, last_applied_image=OLD_IMAGE)

    def test_waits_for_scale_down(self):
        plan = run(load_spec(tag="17.0"), self.current(), deployments={"web": 2})
        assert plan.actions == [SyncChildren(ReplicaMode.UPGRADE)]
        assert plan.directive.is_requeue

    def test_creates_update_job_once_scaled_down(self):
        plan = run(
            load_spec(tag="17.0"), self.current(), deployments={"web": 1, "queue": 1}
        )
        assert plan.actions[:2] == [
            SyncChildren(ReplicaMode.UPGRADE),
            EnsureJob(Hook.BEFORE_UPDATE),
        ]
        assert plan.status.before_update_job == "odoo-before-update"

    def test_stale_job_is_deleted(self):
        jobs = {Hook.BEFORE_UPDATE: job(Hook.BEFORE_UPDATE, JobState.COMPLETE)}
        plan = run(load_spec(tag="17.0"), self.current(), jobs)
        assert DeleteJob(Hook.BEFORE_UPDATE) in plan.actions
        assert plan.status.phase == DoodbaPhase.UPGRADING.value

    def test_complete_job_goes_running(self):
        jobs = {
            Hook.BEFORE_UPDATE: job(Hook.BEFORE_UPDATE, JobState.COMPLETE, NEW_IMAGE)
        }
        plan = run(load_spec(tag="17.0"), self.current(), jobs)
        assert plan.status.phase == DoodbaPhase.RUNNING.value
        assert plan.status.last_applied_image == NEW_IMAGE

    def test_failed_job_goes_failed(self):
        jobs = {Hook.BEFORE_UPDATE: job(Hook.BEFORE_UPDATE, JobState.FAILED, NEW_IMAGE)}
        plan = run(load_spec(tag="17.0"), self.current(), jobs)
        assert plan.status.phase == DoodbaPhase.FAILED.value

    def test_without_hook_goes_running(self):
        plan = run(load_spec(tag="17.0", beforeUpdate=None), self.current())
        assert plan.status.phase == DoodbaPhase.RUNNING.value
        assert plan.status.last_applied_image == NEW_IMAGE


class TestFailed:
    def test_waits_for_spec_change(self):
        current = status(DoodbaPhase.FAILED, before_create_job="odoo-before-create")
        plan = run(load_spec(), current, generation=1)
        assert plan.actions == []
        assert plan.directive.kind == DirectiveKind.AWAIT_CHANGE

    def test_spec_change_retries_create(self):
        current = status(DoodbaPhase.FAILED, before_create_job="odoo-before-create")
        plan = run(load_spec(), current, generation=2)
        assert plan.child_actions == [DeleteJob(Hook.BEFORE_CREATE)]
        assert plan.status.phase == DoodbaPhase.PENDING.value
        assert plan.status.observed_generation == 2

    def test_spec_change_retries_upgrade(self):
        current = status(DoodbaPhase.FAILED, before_update_job="odoo-before-update")
        plan = run(load_spec(), current, generation=2)
        assert plan.child_actions == [DeleteJob(Hook.BEFORE_UPDATE)]
        assert plan.status.phase == DoodbaPhase.UPGRADING.value
        assert plan.status.before_update_job is None
