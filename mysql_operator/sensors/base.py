"""Base sensor classes for operator monitoring.

This module defines the base OperatorSensor class that provides lifecycle hooks
for monitoring operator events. All hooks are no-ops by default, allowing
subclasses to override only the events they care about.

Hooks come in pairs: on_X_start() returns an optional state dict which is handed
back to the matching on_X_complete().
"""

from typing import Dict, Optional, Any
import logging

logger = logging.getLogger(__name__)


class OperatorSensor:
    """Base sensor class for MySQL operator monitoring.

    Hooks cover two categories:
    1. Reconciliation lifecycle (one full pass for a MySQL resource)
    2. Dependent resource operations (lookup and create of secret/pvc/deployment/service)

    Example:
        class LoggingSensor(OperatorSensor):
            def on_reconcile_start(self, name, namespace, trigger_source):
                return {'start_time': time.time()}

            def on_reconcile_complete(self, name, namespace, state, success, error=None):
                duration = time.time() - state['start_time']
                logger.info(f"Reconciled {name} in {duration}s")
    """

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        name: str,
        namespace: str,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        """Called when a reconciliation pass begins.

        Args:
            name: MySQL resource name
            namespace: Kubernetes namespace
            trigger_source: What triggered the pass (create, update, dependent, timer, ...)

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
        """Called when a reconciliation pass completes, successfully or not."""
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
        """Called before a dependent resource is looked up.

        Args:
            name: Owning MySQL resource name
            resource_name: Name of the dependent resource
            namespace: Kubernetes namespace
            resource_type: Kind of the dependent resource (Secret, Service, ...)
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
        """Called after a dependent resource was synchronized.

        Args:
            operation: `create` when the resource was created, `skip` when it already existed
        """
        pass

    # =============================================================================
    # Status Hooks
    # =============================================================================

    def on_status_update(
        self,
        name: str,
        namespace: str,
        phase: str,
        ready: bool,
    ) -> None:
        """Called after the status sub-resource was written."""
        pass
