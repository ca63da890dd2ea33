import logging
from typing import NamedTuple, Optional
from doodba.sensors import OperatorSensor
from doodba.store import ObjectStore
from doodba.types.settings import Settings


class ObjectRef(NamedTuple):
    """Identity of a Doodba."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class Context:
    """Everything a reconcile pass needs besides the object identity."""

    FINALIZER = "doodba.glo.systems"

    store: ObjectStore
    conf: Settings
    sensor: OperatorSensor
    logger: logging.Logger
    finalizer: str
    trigger_source: str

    def __init__(
        self,
        store: ObjectStore,
        conf: Optional[Settings] = None,
        sensor: Optional[OperatorSensor] = None,
        logger: Optional[logging.Logger] = None,
        finalizer: str = FINALIZER,
        trigger_source: str = "event",
    ) -> None:
        self.store = store
        self.conf = conf or Settings()
        self.sensor = sensor or OperatorSensor()
        self.logger = logger or logging.getLogger(__name__)
        self.finalizer = finalizer
        self.trigger_source = trigger_source

    def with_logger(self, logger: logging.Logger, trigger_source: str) -> "Context":
        """Copy sharing store and sensors, logging through `logger`."""
        return Context(
            self.store,
            conf=self.conf,
            sensor=self.sensor,
            logger=logger,
            finalizer=self.finalizer,
            trigger_source=trigger_source,
        )
