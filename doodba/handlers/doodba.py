import asyncio
import kopf
from logging import Logger
from collections import defaultdict
from typing import Dict
from doodba.reconcile.context import Context, ObjectRef
from doodba.reconcile.directive import Directive, DirectiveKind
from doodba.reconcile.dispatcher import reconcile
from doodba.types import crd
from doodba.types.settings import Settings

RESOURCE = (crd.GROUP, crd.VERSION, crd.PLURAL)

# One in-flight reconcile pass per object
reconciliation_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)


def build_context(memo: kopf.Memo, logger: Logger, trigger_source: str) -> Context:
    return memo.context.with_logger(logger, trigger_source)


def apply_directive(directive: Directive, memo: kopf.Memo, logger: Logger) -> None:
    """Translate a directive into kopf's retry semantics."""
    if directive.kind == DirectiveKind.REQUEUE:
        raise kopf.TemporaryError(f"Reconcile pending, {directive}", delay=directive.delay)
    if directive.kind == DirectiveKind.ABORT:
        logger.critical(f"Stopping operator: {directive.reason}")
        memo.shutdown.abort(directive.reason)
        raise kopf.PermanentError(directive.reason)


async def run_reconcile(
    name: str, namespace: str, memo: kopf.Memo, logger: Logger, trigger_source: str
) -> None:
    ref = ObjectRef(namespace, name)
    async with reconciliation_locks[str(ref)]:
        directive = await reconcile(ref, build_context(memo, logger, trigger_source))
    apply_directive(directive, memo, logger)


@kopf.on.resume(*RESOURCE)
async def on_resume(name, namespace, memo: kopf.Memo, logger: Logger, **kwargs):
    """Picks up existing Doodbas when the operator starts."""
    await run_reconcile(name, namespace, memo, logger, "resume")


@kopf.on.create(*RESOURCE)
async def on_create(name, namespace, memo: kopf.Memo, logger: Logger, **kwargs):
    await run_reconcile(name, namespace, memo, logger, "create")


@kopf.on.update(*RESOURCE, field="spec")
async def on_update(name, namespace, memo: kopf.Memo, logger: Logger, **kwargs):
    await run_reconcile(name, namespace, memo, logger, "update")


@kopf.on.delete(*RESOURCE)
async def on_delete(name, namespace, memo: kopf.Memo, logger: Logger, **kwargs):
    """Runs while kopf's finalizer blocks deletion.

    The pass removes the Doodba finalizer; kopf drops its own once this returns.
    """
    try:
        await run_reconcile(name, namespace, memo, logger, "delete")
    finally:
        reconciliation_locks.pop(str(ObjectRef(namespace, name)), None)


@kopf.timer(*RESOURCE, interval=Settings.resync_interval_seconds, initial_delay=5.0)
async def periodic_reconciliation(
    name, namespace, memo: kopf.Memo, logger: Logger, **kwargs
):
    """Detects drift of child resources and advances waiting phases."""
    await run_reconcile(name, namespace, memo, logger, "timer")
