import logging
from typing import Any, Awaitable, Callable, Dict, List
from doodba.reconcile.directive import Directive
from doodba.store import DOODBA, ObjectKind, ObjectStore
from doodba.utils.errors import DoodbaError, FinalizerError, NotFoundError

Body = Dict[str, Any]

logger = logging.getLogger(__name__)


class FinalizerManager:
    """Holds deletion of an object until its cleanup has run.

    Only this manager adds or removes `finalizer`. Both edits are JSON patches
    guarded by a `test` operation, so a concurrent change to the finalizer list
    fails the patch instead of overwriting it.
    """

    def __init__(
        self, store: ObjectStore, finalizer: str, kind: ObjectKind = DOODBA
    ) -> None:
        self.store = store
        self.finalizer = finalizer
        self.kind = kind

    def finalizers(self, body: Body) -> List[str]:
        return list(body.get("metadata", {}).get("finalizers") or [])

    def has_finalizer(self, body: Body) -> bool:
        return self.finalizer in self.finalizers(body)

    def is_deleting(self, body: Body) -> bool:
        return bool(body.get("metadata", {}).get("deletionTimestamp"))

    async def run(
        self,
        body: Body,
        apply: Callable[[Body], Awaitable[Directive]],
        cleanup: Callable[[Body], Awaitable[None]],
    ) -> Directive:
        if self.is_deleting(body):
            if not self.has_finalizer(body):
                # Released already; the object is about to disappear.
                return Directive.await_change()
            await cleanup(body)
            await self.remove(body)
            return Directive.await_change()

        if not self.has_finalizer(body):
            body = await self.add(body)
        return await apply(body)

    async def add(self, body: Body) -> Body:
        finalizers = self.finalizers(body)
        if finalizers:
            operations = [
                {"op": "test", "path": "/metadata/finalizers", "value": finalizers},
                {"op": "add", "path": "/metadata/finalizers/-", "value": self.finalizer},
            ]
        else:
            operations = [
                {"op": "test", "path": "/metadata/finalizers", "value": None},
                {"op": "add", "path": "/metadata/finalizers", "value": [self.finalizer]},
            ]
        return await self._patch(body, operations, "add")

    async def remove(self, body: Body) -> None:
        index = self.finalizers(body).index(self.finalizer)
        path = f"/metadata/finalizers/{index}"
        operations = [
            {"op": "test", "path": path, "value": self.finalizer},
            {"op": "remove", "path": path},
        ]
        try:
            await self._patch(body, operations, "remove")
        except FinalizerError as ex:
            if isinstance(ex.cause, NotFoundError):
                return
            raise

    async def _patch(self, body: Body, operations: List[Dict], verb: str) -> Body:
        metadata = body["metadata"]
        try:
            return await self.store.json_patch(
                self.kind, metadata["namespace"], metadata["name"], operations
            )
        except DoodbaError as ex:
            raise FinalizerError(
                f"Failed to {verb} finalizer {self.finalizer} on "
                f"{metadata['namespace']}/{metadata['name']}: {ex}",
                cause=ex,
            ) from ex
