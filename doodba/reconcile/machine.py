"""Phase state machine.

`plan` maps (spec, status, observed hook Jobs, observed Deployments) to the next
status, the ordered actions that get there and a scheduling directive. It never
touches the cluster; the dispatcher executes what it returns.

Evaluation order per pass:

1. A missing status is replaced with the default (Pending) status, which is
   patched first and then evaluated in the same pass.
2. `spec.suspend` overrides every phase, unknown ones included.
3. The current phase decides the transition.
"""

from typing import Dict, List, Optional, Tuple
from doodba.reconcile.actions import (
    Action,
    DeleteJob,
    EnsureJob,
    JobObservation,
    JobState,
    PatchStatus,
    Plan,
    ReplicaMode,
    SyncChildren,
)
from doodba.reconcile.directive import Directive
from doodba.types.models import (
    DoodbaPhase,
    DoodbaResources,
    DoodbaSpec,
    DoodbaStatus,
    Hook,
)

Jobs = Dict[Hook, Optional[JobObservation]]
Deployments = Dict[str, Optional[int]]
Step = Tuple[DoodbaStatus, List[Action], Directive]


def plan(
    name: str,
    spec: DoodbaSpec,
    status: Optional[DoodbaStatus],
    jobs: Jobs,
    deployments: Deployments,
    generation: Optional[int],
    wait: float,
) -> Plan:
    actions: List[Action] = []
    if status is None:
        status = DoodbaStatus.initial()
        actions.append(PatchStatus(status))

    phase = DoodbaPhase.parse(status.phase)
    requeue = Directive.requeue(wait)

    if spec.suspend:
        step = _suspend(status)
    elif phase is None:
        # Written by a newer operator; leave it alone.
        step = (status, [], Directive.await_change())
    elif phase == DoodbaPhase.SUSPENDED:
        step = _resume(status, requeue)
    elif phase == DoodbaPhase.PENDING:
        step = _pending(name, spec, status, jobs, requeue)
    elif phase == DoodbaPhase.CREATING:
        step = _creating(name, spec, status, jobs, requeue)
    elif phase == DoodbaPhase.UPGRADING:
        step = _upgrading(name, spec, status, jobs, deployments, requeue)
    elif phase == DoodbaPhase.RUNNING:
        step = _running(spec, status, requeue)
    elif phase == DoodbaPhase.FAILED:
        step = _failed(status, generation, requeue)
    else:
        raise AssertionError(f"Unhandled phase {phase}")

    next_status, step_actions, directive = step
    actions.extend(step_actions)
    if phase is not None or spec.suspend:
        next_status = next_status.replace(observed_generation=generation)
    if next_status.fields() != status.fields():
        actions.append(PatchStatus(next_status))
    return Plan(next_status, actions, directive)


def _suspend(status: DoodbaStatus) -> Step:
    next_status = status.replace(phase=DoodbaPhase.SUSPENDED.value, ready=False)
    return next_status, [], Directive.await_change()


def _resume(status: DoodbaStatus, requeue: Directive) -> Step:
    """Always resume through Pending so hooks are re-derived."""
    next_status = status.replace(
        phase=DoodbaPhase.PENDING.value,
        ready=False,
        before_create_job=None,
        before_update_job=None,
    )
    return next_status, [], requeue


def _pending(
    name: str,
    spec: DoodbaSpec,
    status: DoodbaStatus,
    jobs: Jobs,
    requeue: Directive,
) -> Step:
    if not spec.before_create:
        return _to_running(status, _applied_image(spec, status)), [], requeue

    job = jobs.get(Hook.BEFORE_CREATE)
    if job is not None:
        if job.state == JobState.TERMINATING:
            return status, [], requeue
        if job.state == JobState.FAILED:
            # Leftover from an earlier attempt.
            return status, [DeleteJob(Hook.BEFORE_CREATE)], requeue
        if job.state == JobState.COMPLETE:
            return _to_running(status, _applied_image(spec, status)), [], requeue

    next_status = status.replace(
        phase=DoodbaPhase.CREATING.value,
        ready=False,
        before_create_job=DoodbaResources.before_create_job_name(name),
        last_applied_image=_applied_image(spec, status),
    )
    return next_status, [EnsureJob(Hook.BEFORE_CREATE)], requeue


def _creating(
    name: str,
    spec: DoodbaSpec,
    status: DoodbaStatus,
    jobs: Jobs,
    requeue: Directive,
) -> Step:
    job = jobs.get(Hook.BEFORE_CREATE)
    if job is None:
        if not spec.before_create:
            return _to_running(status, _applied_image(spec, status)), [], requeue
        next_status = status.replace(
            before_create_job=DoodbaResources.before_create_job_name(name)
        )
        return next_status, [EnsureJob(Hook.BEFORE_CREATE)], requeue
    if job.state == JobState.FAILED:
        return _to_failed(status), [], Directive.await_change()
    if job.state == JobState.COMPLETE:
        return _to_running(status, _applied_image(spec, status)), [], requeue
    return status, [], requeue


def _upgrading(
    name: str,
    spec: DoodbaSpec,
    status: DoodbaStatus,
    jobs: Jobs,
    deployments: Deployments,
    requeue: Directive,
) -> Step:
    actions: List[Action] = [SyncChildren(ReplicaMode.UPGRADE)]
    if not _scaled_down(spec, deployments):
        return status, actions, requeue

    if not spec.before_update:
        return _to_running(status, spec.image_ref), actions, requeue

    job = jobs.get(Hook.BEFORE_UPDATE)
    if job is None:
        next_status = status.replace(
            before_update_job=DoodbaResources.before_update_job_name(name)
        )
        actions.append(EnsureJob(Hook.BEFORE_UPDATE))
        return next_status, actions, requeue
    if job.state == JobState.TERMINATING:
        return status, actions, requeue
    if job.image != spec.image_ref:
        # Created for an earlier image; its pod template cannot be updated.
        actions.append(DeleteJob(Hook.BEFORE_UPDATE))
        return status, actions, requeue
    if job.state == JobState.COMPLETE:
        return _to_running(status, job.image), actions, requeue
    if job.state == JobState.FAILED:
        return _to_failed(status), actions, Directive.await_change()
    return status, actions, requeue


def _running(spec: DoodbaSpec, status: DoodbaStatus, requeue: Directive) -> Step:
    if status.last_applied_image is None:
        next_status = status.replace(ready=True, last_applied_image=spec.image_ref)
        return next_status, [SyncChildren(ReplicaMode.STEADY)], Directive.await_change()
    if spec.image_ref != status.last_applied_image:
        next_status = status.replace(phase=DoodbaPhase.UPGRADING.value, ready=False)
        return next_status, [], requeue
    next_status = status.replace(ready=True)
    return next_status, [SyncChildren(ReplicaMode.STEADY)], Directive.await_change()


def _failed(
    status: DoodbaStatus, generation: Optional[int], requeue: Directive
) -> Step:
    """Failed is left only when the spec is edited."""
    if (
        generation is None
        or status.observed_generation is None
        or generation <= status.observed_generation
    ):
        return status, [], Directive.await_change()

    if status.before_update_job:
        hook, phase = Hook.BEFORE_UPDATE, DoodbaPhase.UPGRADING
    else:
        hook, phase = Hook.BEFORE_CREATE, DoodbaPhase.PENDING
    next_status = status.replace(
        phase=phase.value,
        ready=False,
        before_create_job=None,
        before_update_job=None,
    )
    return next_status, [DeleteJob(hook)], requeue


def _to_running(status: DoodbaStatus, image: str) -> DoodbaStatus:
    return status.replace(
        phase=DoodbaPhase.RUNNING.value,
        ready=True,
        before_create_job=None,
        before_update_job=None,
        last_applied_image=image,
    )


def _to_failed(status: DoodbaStatus) -> DoodbaStatus:
    return status.replace(phase=DoodbaPhase.FAILED.value, ready=False)


def _scaled_down(spec: DoodbaSpec, deployments: Deployments) -> bool:
    """True once no instance runs more replicas than the upgrade allows."""
    for instance in spec.enabled_instances:
        observed = deployments.get(instance.name)
        if observed is not None and observed > instance.upgrade_replicas():
            return False
    return True


def _applied_image(spec: DoodbaSpec, status: DoodbaStatus) -> str:
    """The image already rolled out, seeded from the spec on first creation.

    Only Upgrading moves it forward, so an image edited while suspended or
    pending is still seen as drift once Running.
    """
    return status.last_applied_image or spec.image_ref
