from enum import Enum
from typing import NamedTuple, Optional


class DirectiveKind(str, Enum):
    REQUEUE = "requeue"
    AWAIT_CHANGE = "await_change"
    ABORT = "abort"


class Directive(NamedTuple):
    """What the runtime should do once a reconcile pass returns."""

    kind: DirectiveKind
    delay: Optional[float] = None
    reason: Optional[str] = None

    @classmethod
    def requeue(cls, delay: float) -> "Directive":
        """Reconcile again after `delay` seconds."""
        return cls(DirectiveKind.REQUEUE, delay=delay)

    @classmethod
    def await_change(cls) -> "Directive":
        """Nothing pending; wait for the next event or periodic resync."""
        return cls(DirectiveKind.AWAIT_CHANGE)

    @classmethod
    def abort(cls, reason: str) -> "Directive":
        """Stop the whole operator process."""
        return cls(DirectiveKind.ABORT, reason=reason)

    @property
    def is_requeue(self) -> bool:
        return self.kind == DirectiveKind.REQUEUE

    @property
    def is_abort(self) -> bool:
        return self.kind == DirectiveKind.ABORT

    def __str__(self) -> str:
        if self.kind == DirectiveKind.REQUEUE:
            return f"requeue after {self.delay}s"
        if self.kind == DirectiveKind.ABORT:
            return f"abort ({self.reason})"
        return "await change"
