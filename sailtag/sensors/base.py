"""Base sensor classes for operator monitoring.

This module defines the base OperatorSensor class that provides lifecycle hooks
for monitoring operator events. All hooks are no-ops by default, allowing
subclasses to override only the events they care about.

The hook pattern follows Faust's sensor design:
- Hooks come in pairs: on_X_start() and on_X_complete()
- Start hooks return an optional state dict for tracking multi-phase operations
- Complete hooks receive the state dict from their corresponding start hook
"""

from typing import Dict, Optional, Any
import logging

logger = logging.getLogger(__name__)


class OperatorSensor:
    """Base sensor class for IstioRevisionTag operator monitoring.

    Hooks cover the reconciliation loop, helm release operations, usage
    checks, status and label patches, and watch event mapping.

    Example:
        class LoggingSensor(OperatorSensor):
            def on_reconcile_start(self, tag_name, generation, trigger_source):
                return {'start_time': time.time()}

            def on_reconcile_complete(self, tag_name, state, success, error=None):
                duration = time.time() - state['start_time']
                logger.info(f"Reconciled {tag_name} in {duration}s")
    """

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        tag_name: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        """Called when reconciliation of a tag begins.

        Args:
            tag_name: IstioRevisionTag name
            generation: Resource generation number
            trigger_source: What triggered reconciliation (queue, periodic, ...)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        tag_name: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[BaseException] = None,
    ) -> None:
        """Called when reconciliation of a tag completes."""
        pass

    def on_reconcile_queued(self, tag_name: str, queue_depth: int) -> None:
        """Called when a reconciliation request is enqueued."""
        pass

    def on_reconcile_dequeued(self, tag_name: str, wait_time: float) -> None:
        """Called when a reconciliation request is picked up.

        Args:
            tag_name: IstioRevisionTag name
            wait_time: Seconds the request spent in the queue
        """
        pass

    # =============================================================================
    # Release Operation Hooks
    # =============================================================================

    def on_release_operation_start(
        self,
        tag_name: str,
        release_name: str,
        namespace: str,
        operation: str,
    ) -> Optional[Dict[str, Any]]:
        """Called before a helm install/upgrade or uninstall."""
        pass

    def on_release_operation_complete(
        self,
        tag_name: str,
        release_name: str,
        namespace: str,
        operation: str,
        state: Optional[Dict[str, Any]],
        success: bool,
    ) -> None:
        pass

    # =============================================================================
    # Status Hooks
    # =============================================================================

    def on_usage_check(self, tag_name: str, result: str) -> None:
        """Called with the InUse condition status (True, False or Unknown)."""
        pass

    def on_status_update(self, tag_name: str, changed: bool) -> None:
        """Called after the status was recomputed, patched or not."""
        pass

    def on_labels_update(self, tag_name: str) -> None:
        pass

    # =============================================================================
    # Watch Hooks
    # =============================================================================

    def on_event_mapped(self, watched_kind: str, request_count: int) -> None:
        """Called when a watched object event was mapped to tag requests."""
        pass

    def asdict(self) -> Dict[str, Any]:
        """Return sensor state as dictionary (for debugging/introspection)."""
        return {"sensor_type": self.__class__.__name__}
