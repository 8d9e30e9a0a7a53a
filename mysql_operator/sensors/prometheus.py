"""Prometheus monitoring backend for the MySQL operator.

PrometheusMonitor turns operator lifecycle events into Prometheus metrics:

1. Reconciliation loop health - duration, throughput, errors
2. Dependent resource sync - lookups, creates, latency, errors
3. Status - updates written and the last reported readiness

All metrics carry the MySQL resource name and namespace as labels.
"""

from typing import Dict, Optional, Any
import time
import logging

from prometheus_client import Counter, Histogram, Gauge, REGISTRY, CollectorRegistry

from mysql_operator.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor for the MySQL operator.

    Metrics are registered with `registry`, the process-wide default registry unless
    another one is given.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        super().__init__()

        # =============================================================================
        # Reconciliation Loop Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            'mysqlop_reconcile_duration_seconds',
            'Time spent in a reconciliation pass',
            labelnames=['name', 'namespace', 'trigger_source', 'result'],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=registry,
        )

        self.reconcile_total = Counter(
            'mysqlop_reconcile_total',
            'Total number of reconciliation passes',
            labelnames=['name', 'namespace', 'trigger_source', 'result'],
            registry=registry,
        )

        self.reconcile_errors = Counter(
            'mysqlop_reconcile_errors_total',
            'Total number of failed reconciliation passes',
            labelnames=['name', 'namespace', 'error_type'],
            registry=registry,
        )

        # =============================================================================
        # Kubernetes Resource Sync Metrics
        # =============================================================================

        self.resource_sync_duration = Histogram(
            'mysqlop_resource_sync_duration_seconds',
            'Time spent syncing dependent Kubernetes resources',
            labelnames=['name', 'namespace', 'resource_type', 'operation', 'result'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        self.resource_sync_total = Counter(
            'mysqlop_resource_sync_total',
            'Total number of dependent resource sync operations',
            labelnames=['name', 'namespace', 'resource_type', 'operation', 'result'],
            registry=registry,
        )

        self.resource_sync_errors = Counter(
            'mysqlop_resource_sync_errors_total',
            'Total number of dependent resource sync errors',
            labelnames=['name', 'namespace', 'resource_type', 'error_type'],
            registry=registry,
        )

        # =============================================================================
        # Status Metrics
        # =============================================================================

        self.status_updates = Counter(
            'mysqlop_status_updates_total',
            'Total number of status updates',
            labelnames=['name', 'namespace', 'phase'],
            registry=registry,
        )

        self.instance_ready = Gauge(
            'mysqlop_instance_ready',
            'Readiness last reported in the MySQL status (1 ready, 0 not ready)',
            labelnames=['name', 'namespace'],
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
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        """Record reconciliation start time."""
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
        """Record reconciliation duration and result."""
        if not state:
            return
        duration = time.time() - state['start_time']
        result = 'success' if success else 'failure'
        labels = dict(
            name=name,
            namespace=namespace,
            trigger_source=state['trigger_source'],
            result=result,
        )
        self.reconcile_duration.labels(**labels).observe(duration)
        self.reconcile_total.labels(**labels).inc()
        if error:
            self.reconcile_errors.labels(
                name=name,
                namespace=namespace,
                error_type=error.__class__.__name__,
            ).inc()

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
        if state:
            duration = time.time() - state['start_time']
            result = 'success' if success else 'failure'
            labels = dict(
                name=name,
                namespace=namespace,
                resource_type=resource_type,
                operation=operation,
                result=result,
            )
            self.resource_sync_duration.labels(**labels).observe(duration)
            self.resource_sync_total.labels(**labels).inc()

        if error:
            self.resource_sync_errors.labels(
                name=name,
                namespace=namespace,
                resource_type=resource_type,
                error_type=error.__class__.__name__,
            ).inc()

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
        """Record status update and the reported readiness."""
        self.status_updates.labels(name=name, namespace=namespace, phase=phase).inc()
        self.instance_ready.labels(name=name, namespace=namespace).set(1 if ready else 0)
