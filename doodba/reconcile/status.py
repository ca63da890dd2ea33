import logging
from typing import Optional
from marshmallow import ValidationError
from doodba.reconcile.context import ObjectRef
from doodba.sensors import OperatorSensor
from doodba.store import DOODBA, ObjectKind, ObjectStore
from doodba.types.models import DoodbaPhase, DoodbaStatus
from doodba.types.schemas import DoodbaStatusSchema
from doodba.utils.errors import SerializationError


def load_status(body) -> Optional[DoodbaStatus]:
    """Status of a Doodba body, or None until the operator has written one.

    Other writers (kopf itself) may keep fields under status, so a status without
    a phase counts as absent.
    """
    status = dict(body.get("status") or {})
    if "phase" not in status:
        return None
    try:
        return DoodbaStatusSchema().load(status)
    except ValidationError as ex:
        raise SerializationError(f"Invalid Doodba status: {ex.messages}") from ex


class StatusPatcher:
    """Writes the full status document with a forced server-side apply.

    Every patch restates all status fields owned by the operator, so repeating
    it is a no-op and fields left out are released.
    """

    def __init__(
        self,
        store: ObjectStore,
        sensor: OperatorSensor,
        logger: logging.Logger,
        kind: ObjectKind = DOODBA,
    ) -> None:
        self.store = store
        self.sensor = sensor
        self.logger = logger
        self.kind = kind

    def prepare_status(self, status: DoodbaStatus) -> dict:
        try:
            return DoodbaStatusSchema().dump(status)
        except (ValidationError, TypeError, ValueError) as ex:
            raise SerializationError(f"Cannot serialize status {status}: {ex}") from ex

    async def patch(
        self,
        ref: ObjectRef,
        status: DoodbaStatus,
        previous_phase: Optional[str] = None,
    ) -> None:
        await self.store.apply_status_patch(
            self.kind, ref.namespace, ref.name, self.prepare_status(status)
        )
        if status.phase != previous_phase:
            log = (
                self.logger.warning
                if status.phase == DoodbaPhase.FAILED.value
                else self.logger.info
            )
            log(f"Doodba {ref} phase {previous_phase} -> {status.phase}")
            self.sensor.on_phase_transition(
                ref.name, ref.namespace, previous_phase, status.phase
            )
