"""Entry point of a reconcile pass.

`reconcile` fetches the Doodba, routes it through the finalizer manager and
converts the outcome into a `Directive`. Errors never escape: a missing CRD
(the Doodba kind itself unregistered) aborts the operator, everything
else requeues after the error backoff.
"""

from typing import Any, Dict
from doodba.reconcile import machine
from doodba.reconcile.actions import DeleteJob, EnsureJob, PatchStatus, SyncChildren
from doodba.reconcile.context import Context, ObjectRef
from doodba.reconcile.directive import Directive
from doodba.reconcile.finalizer import FinalizerManager
from doodba.reconcile.status import StatusPatcher, load_status
from doodba.resources.doodba import Doodba
from doodba.store import DOODBA
from doodba.types.models import DoodbaPhase
from doodba.utils.errors import DoodbaError, ResourceNotRegisteredError


async def reconcile(ref: ObjectRef, ctx: Context) -> Directive:
    logger = ctx.logger
    sensor_state = ctx.sensor.on_reconcile_start(
        ref.name, ref.namespace, None, ctx.trigger_source
    )
    success, error = True, None
    try:
        body = await ctx.store.get(DOODBA, ref.namespace, ref.name)
        if body is None:
            logger.debug(f"Doodba {ref} not found, nothing to do")
            return Directive.await_change()
        manager = FinalizerManager(ctx.store, ctx.finalizer)
        return await manager.run(
            body,
            apply=lambda body: apply(body, ctx),
            cleanup=lambda body: cleanup(body, ctx),
        )
    except ResourceNotRegisteredError as ex:
        success, error = False, ex
        if ex.kind != DOODBA.kind:
            logger.exception(f"Reconcile of {ref} failed, {ex.kind} API is missing: {ex}")
            return Directive.requeue(ctx.conf.requeue_error_seconds)
        logger.critical(f"Doodba resource kind is not registered: {ex}")
        return Directive.abort(str(ex))
    except DoodbaError as ex:
        success, error = False, ex
        logger.exception(f"Reconcile of {ref} failed: {ex}")
        return Directive.requeue(ctx.conf.requeue_error_seconds)
    finally:
        ctx.sensor.on_reconcile_complete(
            ref.name, ref.namespace, sensor_state, success, error
        )


async def apply(body: Dict[str, Any], ctx: Context) -> Directive:
    """Observe, plan and execute the planned actions in order."""
    metadata = body["metadata"]
    ref = ObjectRef(metadata["namespace"], metadata["name"])
    doodba = Doodba.from_body(
        body, ctx.store, conf=ctx.conf, sensor=ctx.sensor, logger=ctx.logger
    )
    status = load_status(body)
    phase = DoodbaPhase.parse(status.phase) if status else None

    jobs = await doodba.observe_jobs()
    deployments = {}
    if phase == DoodbaPhase.UPGRADING and not doodba.spec.suspend:
        deployments = await doodba.observe_deployments()

    plan = machine.plan(
        ref.name,
        doodba.spec,
        status,
        jobs,
        deployments,
        metadata.get("generation"),
        ctx.conf.requeue_wait_seconds,
    )

    patcher = StatusPatcher(ctx.store, ctx.sensor, ctx.logger)
    current_phase = status.phase if status else None
    for action in plan.actions:
        if isinstance(action, PatchStatus):
            await patcher.patch(ref, action.status, current_phase)
            current_phase = action.status.phase
        elif isinstance(action, EnsureJob):
            await doodba.ensure_job(action.hook)
        elif isinstance(action, DeleteJob):
            await doodba.delete_job(action.hook)
        elif isinstance(action, SyncChildren):
            await doodba.synchronize(action.mode)
        else:
            raise AssertionError(f"Unhandled action {action!r}")

    ctx.logger.debug(f"Doodba {ref} in {plan.status.phase}, {plan.directive}")
    return plan.directive


async def cleanup(body: Dict[str, Any], ctx: Context) -> None:
    doodba = Doodba.from_metadata(
        body, ctx.store, conf=ctx.conf, sensor=ctx.sensor, logger=ctx.logger
    )
    await doodba.cleanup()
