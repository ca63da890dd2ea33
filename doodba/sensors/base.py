"""Base sensor classes for operator monitoring.

This module defines the base OperatorSensor class that provides lifecycle hooks
for monitoring operator events. All hooks are no-ops by default, allowing
subclasses to override only the events they care about.

The hook pattern follows Faust's sensor design:
- Hooks come in pairs: on_X_start() and on_X_complete()
- Start hooks return an optional state dict for tracking multi-phase operations
- Complete hooks receive the state dict from their corresponding start hook
- All hooks are optional - sensors only implement what they need
"""

from typing import Dict, Optional, Any
import logging

logger = logging.getLogger(__name__)


class OperatorSensor:
    """Base sensor class for Doodba operator monitoring.

    Hooks fall into two groups: the reconcile lifecycle of a Doodba (passes,
    phase transitions, hook jobs, cleanup) and the child resources applied on
    its behalf.

    All methods are no-ops by default. Subclasses override only the hooks
    they need to monitor.

    Example:
        class LoggingSensor(OperatorSensor):
            def on_phase_transition(self, name, namespace, from_phase, to_phase):
                logger.info(f"{namespace}/{name}: {from_phase} -> {to_phase}")
    """

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
        """Called when a reconcile pass begins.

        Args:
            name: Doodba resource name
            namespace: Kubernetes namespace
            generation: Resource generation number
            trigger_source: What triggered the pass (create, update, resume, timer, delete)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Called when a reconcile pass completes.

        Args:
            name: Doodba resource name
            namespace: Kubernetes namespace
            state: State dict returned from on_reconcile_start
            success: Whether the pass succeeded
            error: Exception if the pass failed
        """
        pass

    def on_phase_transition(
        self,
        name: str,
        namespace: str,
        from_phase: Optional[str],
        to_phase: str,
    ) -> None:
        """Called when a status patch moves a Doodba to another phase."""
        pass

    def on_job_created(self, name: str, namespace: str, hook: str) -> None:
        """Called when a before-create or before-update Job is created."""
        pass

    def on_job_deleted(self, name: str, namespace: str, hook: str) -> None:
        """Called when a hook Job is deleted (failed or stale)."""
        pass

    def on_cleanup(self, name: str, namespace: str) -> None:
        """Called when a deleted Doodba has been cleaned up."""
        pass

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
        """Called when a child resource apply begins.

        Args:
            name: Owning Doodba resource name
            resource_name: Actual K8s resource name being applied
            namespace: Kubernetes namespace
            resource_type: Type of resource (Deployment, Service, ConfigMap, etc.)

        Returns:
            Optional state dict passed to on_resource_sync_complete
        """
        pass

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
        """Called when a child resource apply completes.

        Args:
            name: Owning Doodba resource name
            resource_name: Actual K8s resource name
            namespace: Kubernetes namespace
            resource_type: Type of resource
            state: State dict returned from on_resource_sync_start
            operation: Operation performed (apply, create, delete)
            success: Whether operation succeeded
            error: Exception if operation failed
        """
        pass

    def asdict(self) -> Dict[str, Any]:
        """Return sensor state as dictionary (for debugging/introspection)."""
        return {}
