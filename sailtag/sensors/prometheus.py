"""Prometheus monitoring backend for the IstioRevisionTag operator.

PrometheusMonitor turns sensor events into prometheus_client metrics:

1. Reconciliation loop health - duration, throughput, errors, queue depth and wait
2. Release operations - helm install/uninstall counts and latency
3. Status - usage check results, status and label patches, mapped watch events
"""

from typing import Dict, Optional, Any
import time
import logging

from prometheus_client import Counter, Histogram, Gauge

from sailtag.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor.

    Metrics are registered on the default registry, so only one instance
    should exist per process.
    """

    def __init__(self):
        super().__init__()

        # =============================================================================
        # Reconciliation Loop Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            'sailtag_reconcile_duration_seconds',
            'Time spent in reconciliation loop',
            labelnames=['tag_name', 'trigger_source', 'result'],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
        )

        self.reconcile_total = Counter(
            'sailtag_reconcile_total',
            'Total number of reconciliation attempts',
            labelnames=['tag_name', 'trigger_source', 'result'],
        )

        self.reconcile_errors = Counter(
            'sailtag_reconcile_errors_total',
            'Total number of reconciliation errors',
            labelnames=['tag_name', 'error_type'],
        )

        self.reconcile_queue_depth = Gauge(
            'sailtag_reconcile_queue_depth',
            'Current reconciliation queue depth per tag',
            labelnames=['tag_name'],
        )

        self.reconcile_queue_wait_seconds = Histogram(
            'sailtag_reconcile_queue_wait_seconds',
            'Time spent waiting in reconciliation queue',
            labelnames=['tag_name'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
        )

        # =============================================================================
        # Release Operation Metrics
        # =============================================================================

        self.release_operation_duration = Histogram(
            'sailtag_release_operation_duration_seconds',
            'Time spent in helm release operations',
            labelnames=['tag_name', 'namespace', 'operation', 'result'],
            buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0],
        )

        self.release_operation_total = Counter(
            'sailtag_release_operation_total',
            'Total number of helm release operations',
            labelnames=['tag_name', 'namespace', 'operation', 'result'],
        )

        # =============================================================================
        # Status Metrics
        # =============================================================================

        self.usage_checks = Counter(
            'sailtag_usage_checks_total',
            'Total number of usage checks by InUse status',
            labelnames=['tag_name', 'result'],
        )

        self.status_updates = Counter(
            'sailtag_status_updates_total',
            'Total number of status recomputations',
            labelnames=['tag_name', 'patched'],
        )

        self.label_updates = Counter(
            'sailtag_label_updates_total',
            'Total number of back-reference label patches',
            labelnames=['tag_name'],
        )

        self.events_mapped = Counter(
            'sailtag_events_mapped_total',
            'Reconciliation requests produced by watched object events',
            labelnames=['watched_kind'],
        )

        logger.info("PrometheusMonitor initialized")

    def on_reconcile_start(self, tag_name, generation, trigger_source) -> Optional[Dict[str, Any]]:
        return {'start_time': time.time(), 'trigger_source': trigger_source}

    def on_reconcile_complete(self, tag_name, state, success, error=None) -> None:
        result = "success" if success else "failure"
        trigger_source = (state or {}).get('trigger_source', 'unknown')
        if state:
            duration = time.time() - state.get('start_time', time.time())
            self.reconcile_duration.labels(
                tag_name=tag_name,
                trigger_source=trigger_source,
                result=result,
            ).observe(duration)

        self.reconcile_total.labels(
            tag_name=tag_name,
            trigger_source=trigger_source,
            result=result,
        ).inc()

        if not success and error is not None:
            self.reconcile_errors.labels(
                tag_name=tag_name,
                error_type=error.__class__.__name__,
            ).inc()

    def on_reconcile_queued(self, tag_name, queue_depth) -> None:
        self.reconcile_queue_depth.labels(tag_name=tag_name).set(queue_depth)

    def on_reconcile_dequeued(self, tag_name, wait_time) -> None:
        self.reconcile_queue_wait_seconds.labels(tag_name=tag_name).observe(wait_time)
        self.reconcile_queue_depth.labels(tag_name=tag_name).set(0)

    def on_release_operation_start(self, tag_name, release_name, namespace, operation):
        return {'start_time': time.time()}

    def on_release_operation_complete(
        self, tag_name, release_name, namespace, operation, state, success
    ) -> None:
        result = "success" if success else "failure"
        if state:
            duration = time.time() - state.get('start_time', time.time())
            self.release_operation_duration.labels(
                tag_name=tag_name,
                namespace=namespace,
                operation=operation,
                result=result,
            ).observe(duration)
        self.release_operation_total.labels(
            tag_name=tag_name,
            namespace=namespace,
            operation=operation,
            result=result,
        ).inc()

    def on_usage_check(self, tag_name, result) -> None:
        self.usage_checks.labels(tag_name=tag_name, result=result or "Unknown").inc()

    def on_status_update(self, tag_name, changed) -> None:
        self.status_updates.labels(tag_name=tag_name, patched=str(bool(changed)).lower()).inc()

    def on_labels_update(self, tag_name) -> None:
        self.label_updates.labels(tag_name=tag_name).inc()

    def on_event_mapped(self, watched_kind, request_count) -> None:
        self.events_mapped.labels(watched_kind=watched_kind).inc(request_count)
