from enum import Enum
from typing import Optional
from doodba.types.base import BaseModel


class DoodbaPhase(str, Enum):
    """Coarse-grained lifecycle state of a Doodba."""

    PENDING = "Pending"  # initial state
    CREATING = "Creating"  # running before_create
    UPGRADING = "Upgrading"  # running before_update
    RUNNING = "Running"  # healthy
    FAILED = "Failed"  # a hook job failed
    SUSPENDED = "Suspended"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["DoodbaPhase"]:
        """Return the phase for `value`, or None if it is not a known phase."""
        try:
            return cls(value)
        except ValueError:
            return None


class DoodbaStatus(BaseModel):
    """Doodba status subresource.

    `phase` holds the raw string so that values written by a newer operator
    survive a round trip.
    """

    phase: str
    ready: bool
    before_create_job: Optional[str]
    before_update_job: Optional[str]
    last_applied_image: Optional[str]
    observed_generation: Optional[int]

    @classmethod
    def initial(cls) -> "DoodbaStatus":
        return cls(
            phase=DoodbaPhase.PENDING.value,
            ready=False,
            before_create_job=None,
            before_update_job=None,
            last_applied_image=None,
            observed_generation=None,
        )

    def fields(self) -> dict:
        """Status fields only, without unknown keys carried over from the body."""
        return {
            "phase": self.phase,
            "ready": self.ready,
            "before_create_job": self.before_create_job,
            "before_update_job": self.before_update_job,
            "last_applied_image": self.last_applied_image,
            "observed_generation": self.observed_generation,
        }
