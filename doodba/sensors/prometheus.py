"""Prometheus monitoring backend for the Doodba operator.

PrometheusMonitor collects operator lifecycle events and exposes them as
Prometheus metrics:

1. Reconcile loop health - pass duration, throughput, errors
2. Lifecycle - phase transitions, hook job creations and deletions, cleanups
3. Kubernetes resource sync - apply counts and latency per child resource

All metrics carry `name` and `namespace` labels of the owning Doodba.
"""

from typing import Dict, Optional, Any
import time
import logging

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

from doodba.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor for the Doodba operator.

    Metrics are registered on `registry`, the process wide default registry
    unless another one is given.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        super().__init__()

        # =============================================================================
        # Reconciliation Loop Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            'doodbaop_reconcile_duration_seconds',
            'Time spent in a reconcile pass',
            labelnames=['name', 'namespace', 'trigger_source', 'result'],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
            registry=registry,
        )

        self.reconcile_total = Counter(
            'doodbaop_reconcile_total',
            'Total number of reconcile passes',
            labelnames=['name', 'namespace', 'trigger_source', 'result'],
            registry=registry,
        )

        self.reconcile_errors = Counter(
            'doodbaop_reconcile_errors_total',
            'Total number of failed reconcile passes',
            labelnames=['name', 'namespace', 'error_type'],
            registry=registry,
        )

        # =============================================================================
        # Lifecycle Metrics
        # =============================================================================

        self.phase_transitions = Counter(
            'doodbaop_phase_transitions_total',
            'Total number of phase transitions',
            labelnames=['name', 'namespace', 'from_phase', 'to_phase'],
            registry=registry,
        )

        self.jobs_created = Counter(
            'doodbaop_jobs_created_total',
            'Total number of hook jobs created',
            labelnames=['name', 'namespace', 'hook'],
            registry=registry,
        )

        self.jobs_deleted = Counter(
            'doodbaop_jobs_deleted_total',
            'Total number of hook jobs deleted',
            labelnames=['name', 'namespace', 'hook'],
            registry=registry,
        )

        self.cleanups = Counter(
            'doodbaop_cleanups_total',
            'Total number of finalizer cleanups',
            labelnames=['name', 'namespace'],
            registry=registry,
        )

        # =============================================================================
        # Kubernetes Resource Sync Metrics
        # =============================================================================

        self.resource_sync_duration = Histogram(
            'doodbaop_resource_sync_duration_seconds',
            'Time spent applying child resources',
            labelnames=['name', 'namespace', 'resource_type', 'operation', 'result'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        self.resource_sync_total = Counter(
            'doodbaop_resource_sync_total',
            'Total number of child resource operations',
            labelnames=['name', 'namespace', 'resource_type', 'operation', 'result'],
            registry=registry,
        )

        self.resource_sync_errors = Counter(
            'doodbaop_resource_sync_errors_total',
            'Total number of child resource operation errors',
            labelnames=['name', 'namespace', 'resource_type', 'error_type'],
            registry=registry,
        )

        logger.info("PrometheusMonitor initialized with all metrics")

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        name: str,
        namespace: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        """Record reconcile start time."""
        return {
            'start_time': time.time(),
            'trigger_source': trigger_source,
        }

    def on_reconcile_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record reconcile duration and result."""
        if state:
            duration = time.time() - state['start_time']
            trigger_source = state['trigger_source']
            result = 'success' if success else 'failure'

            self.reconcile_duration.labels(
                name=name,
                namespace=namespace,
                trigger_source=trigger_source,
                result=result,
            ).observe(duration)

            self.reconcile_total.labels(
                name=name,
                namespace=namespace,
                trigger_source=trigger_source,
                result=result,
            ).inc()

        if error:
            self.reconcile_errors.labels(
                name=name,
                namespace=namespace,
                error_type=error.__class__.__name__,
            ).inc()

    def on_phase_transition(
        self,
        name: str,
        namespace: str,
        from_phase: Optional[str],
        to_phase: str,
    ) -> None:
        self.phase_transitions.labels(
            name=name,
            namespace=namespace,
            from_phase=from_phase or 'None',
            to_phase=to_phase,
        ).inc()

    def on_job_created(self, name: str, namespace: str, hook: str) -> None:
        self.jobs_created.labels(name=name, namespace=namespace, hook=hook).inc()

    def on_job_deleted(self, name: str, namespace: str, hook: str) -> None:
        self.jobs_deleted.labels(name=name, namespace=namespace, hook=hook).inc()

    def on_cleanup(self, name: str, namespace: str) -> None:
        self.cleanups.labels(name=name, namespace=namespace).inc()

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[str, Any]]:
        """Record resource sync start time."""
        return {
            'start_time': time.time(),
            'resource_type': resource_type,
            'resource_name': resource_name,
        }

    def on_resource_sync_complete(
        self,
        name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[str, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record resource sync duration and result."""
        result = 'success' if success else 'failure'
        if state:
            duration = time.time() - state['start_time']
            self.resource_sync_duration.labels(
                name=name,
                namespace=namespace,
                resource_type=resource_type,
                operation=operation,
                result=result,
            ).observe(duration)

        self.resource_sync_total.labels(
            name=name,
            namespace=namespace,
            resource_type=resource_type,
            operation=operation,
            result=result,
        ).inc()

        if error:
            self.resource_sync_errors.labels(
                name=name,
                namespace=namespace,
                resource_type=resource_type,
                error_type=error.__class__.__name__,
            ).inc()
