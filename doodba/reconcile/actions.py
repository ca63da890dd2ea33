from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Union
from doodba.common.models.annotations import Annotations
from doodba.reconcile.directive import Directive
from doodba.types.models import DoodbaStatus, Hook
from doodba.utils.helpers import condition_is_true


class ReplicaMode(str, Enum):
    """Which replica count child Deployments are applied with."""

    STEADY = "steady"  # declared replicas
    UPGRADE = "upgrade"  # scaled down while the before-update hook runs


class JobState(str, Enum):
    RUNNING = "Running"
    COMPLETE = "Complete"
    FAILED = "Failed"
    TERMINATING = "Terminating"


class JobObservation(NamedTuple):
    """Observed state of one hook Job."""

    name: str
    state: JobState
    image: Optional[str]

    @classmethod
    def from_manifest(cls, job: Dict[str, Any]) -> "JobObservation":
        metadata = job.get("metadata") or {}
        conditions = (job.get("status") or {}).get("conditions")
        if metadata.get("deletionTimestamp"):
            state = JobState.TERMINATING
        elif condition_is_true(conditions, "Failed"):
            state = JobState.FAILED
        elif condition_is_true(conditions, "Complete"):
            state = JobState.COMPLETE
        else:
            state = JobState.RUNNING
        annotations = metadata.get("annotations") or {}
        return cls(
            name=metadata.get("name"),
            state=state,
            image=annotations.get(Annotations.IMAGE),
        )


class PatchStatus(NamedTuple):
    status: DoodbaStatus


class EnsureJob(NamedTuple):
    hook: Hook


class DeleteJob(NamedTuple):
    hook: Hook


class SyncChildren(NamedTuple):
    mode: ReplicaMode


Action = Union[PatchStatus, EnsureJob, DeleteJob, SyncChildren]


class Plan(NamedTuple):
    """Outcome of one state machine evaluation.

    Actions are executed in order and the first failure ends the pass.
    """

    status: DoodbaStatus
    actions: List[Action]
    directive: Directive

    @property
    def child_actions(self) -> List[Action]:
        return [a for a in self.actions if not isinstance(a, PatchStatus)]
