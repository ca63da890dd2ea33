import kopf
import logging
import threading
from typing import Optional
import doodba.handlers.doodba as doodba
import doodba.handlers.probes as probes
from doodba.reconcile.context import Context
from doodba.sensors import init_metrics_server, SensorDelegate, PrometheusMonitor
from doodba.store import KubernetesObjectStore
from doodba.types.settings import Settings
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient

KOPF_PREFIX = "kopf.doodba.glo.systems"


class Shutdown:
    """Shared between the handlers and the command line.

    Handlers call `abort` when the operator cannot continue; the command line
    reads `aborted` after kopf returns to pick the exit code.
    """

    def __init__(self, stop_flag: Optional[threading.Event] = None) -> None:
        self.stop_flag = stop_flag
        self.reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.reason is not None

    def abort(self, reason: str) -> None:
        self.reason = reason
        if self.stop_flag is not None:
            self.stop_flag.set()


async def load_config(logger: logging.Logger) -> None:
    # In-cluster first (for production), then local kubeconfig (for dev)
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        logger.info("In-cluster config not found, trying local kubeconfig")
        try:
            await config.load_kube_config()
            logger.info("Loaded local Kubernetes configuration")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise


# Configure Kopf settings
@kopf.on.startup()
async def setup(
    settings: kopf.OperatorSettings, memo: kopf.Memo, logger: logging.Logger, **kwargs
):
    await load_config(logger)

    memo.conf = Settings()
    if "shutdown" not in memo:
        # Started through `kopf run` rather than our command line
        memo.shutdown = Shutdown()

    # One ApiClient for all resources to prevent connection leaks
    memo.api_client = ApiClient()
    memo.store = KubernetesObjectStore(memo.api_client)
    logger.info("Shared Kubernetes API client initialized")

    sensor_delegate = SensorDelegate()
    if memo.conf.metrics_enabled:
        sensor_delegate.add(PrometheusMonitor())
        init_metrics_server(memo.conf.metrics_port)
        logger.info("Sensor infrastructure initialized with PrometheusMonitor")
    else:
        logger.warning("Metrics are disabled as per configuration.")
    memo.sensor = sensor_delegate

    memo.context = Context(memo.store, conf=memo.conf, sensor=sensor_delegate)

    # Limit the number of concurrent workers to prevent flooding the API
    settings.batching.worker_limit = memo.conf.worker_limit

    # Disable posting events to the Kubernetes API for logging > Warning
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING

    # Keep kopf's bookkeeping in annotations so `status` belongs to the Doodba
    settings.persistence.finalizer = f"{KOPF_PREFIX}/kopf-finalizer"
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=KOPF_PREFIX
    )
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix=KOPF_PREFIX, key="last-handled-configuration"
    )


@kopf.on.cleanup()
async def cleanup(memo: kopf.Memo, logger: logging.Logger, **kwargs):
    """Cleanup handler for operator shutdown."""
    logger.info("Shutting down operator...")

    api_client = memo.get("api_client")
    if api_client is not None:
        await api_client.close()
        logger.info("Shared API client closed")

    logger.info("Operator shutdown complete")


__all__ = [
    "doodba",
    "probes",
    "Shutdown",
]
