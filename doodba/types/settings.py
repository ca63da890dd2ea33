import os
from typing import Any, Optional

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


def _getint(name: str, default: Optional[int]) -> Optional[int]:
    value = _getenv(name, default)
    return int(value) if value is not None else None


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Seconds before re-examining an object that is waiting on a job or scale-down
REQUEUE_WAIT_SECONDS = float(_getenv("REQUEUE_WAIT_SECONDS", 5))

#: Seconds before retrying an object whose reconcile pass failed
REQUEUE_ERROR_SECONDS = float(_getenv("REQUEUE_ERROR_SECONDS", 300))

#: Seconds between periodic resyncs of objects in steady state
RESYNC_INTERVAL_SECONDS = float(_getenv("RESYNC_INTERVAL_SECONDS", 300))

#: Job backoffLimit for before-create and before-update hooks
JOB_BACKOFF_LIMIT = _getint("JOB_BACKOFF_LIMIT", 0)

#: Job ttlSecondsAfterFinished for hooks; unset keeps finished jobs around
JOB_TTL_SECONDS_AFTER_FINISHED = _getint("JOB_TTL_SECONDS_AFTER_FINISHED", None)

#: Maximum number of concurrently running handlers per object kind
WORKER_LIMIT = int(_getenv("WORKER_LIMIT", 4))

#: Expose prometheus metrics
METRICS_ENABLED = bool(_getenv("METRICS_ENABLED", True))

#: Port of the prometheus metrics http server
METRICS_PORT = int(_getenv("METRICS_PORT", 8000))


class Settings:
    """Operator settings"""

    requeue_wait_seconds: float = REQUEUE_WAIT_SECONDS
    requeue_error_seconds: float = REQUEUE_ERROR_SECONDS
    resync_interval_seconds: float = RESYNC_INTERVAL_SECONDS
    job_backoff_limit: int = JOB_BACKOFF_LIMIT
    job_ttl_seconds_after_finished: Optional[int] = JOB_TTL_SECONDS_AFTER_FINISHED
    worker_limit: int = WORKER_LIMIT
    metrics_enabled: bool = METRICS_ENABLED
    metrics_port: int = METRICS_PORT

    def __init__(
        self,
        *args,
        requeue_wait_seconds: float = None,
        requeue_error_seconds: float = None,
        resync_interval_seconds: float = None,
        job_backoff_limit: int = None,
        job_ttl_seconds_after_finished: int = None,
        worker_limit: int = None,
        metrics_enabled: bool = None,
        metrics_port: int = None,
        **kwargs,
    ):
        if requeue_wait_seconds is not None:
            self.requeue_wait_seconds = requeue_wait_seconds

        if requeue_error_seconds is not None:
            self.requeue_error_seconds = requeue_error_seconds

        if resync_interval_seconds is not None:
            self.resync_interval_seconds = resync_interval_seconds

        if job_backoff_limit is not None:
            self.job_backoff_limit = job_backoff_limit

        if job_ttl_seconds_after_finished is not None:
            self.job_ttl_seconds_after_finished = job_ttl_seconds_after_finished

        if worker_limit is not None:
            self.worker_limit = worker_limit

        if metrics_enabled is not None:
            self.metrics_enabled = metrics_enabled

        if metrics_port is not None:
            self.metrics_port = metrics_port
