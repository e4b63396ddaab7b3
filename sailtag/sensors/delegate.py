"""Sensor delegation for fan-out pattern.

SensorDelegate routes sensor events to multiple monitoring backends. Each
backend receives the same events and keeps independent state. A failing
backend is logged and never interrupts reconciliation.
"""

from typing import Set, Dict, Optional, Any
import logging

from sailtag.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class SensorDelegate(OperatorSensor):
    """Delegate sensor that fans out events to multiple backends.

    Example:
        delegate = SensorDelegate()
        delegate.add(PrometheusMonitor())
        state = delegate.on_reconcile_start("default", 5, "queue")
        delegate.on_reconcile_complete("default", state, True)
    """

    def __init__(self) -> None:
        self._sensors: Set[OperatorSensor] = set()

    def add(self, sensor: OperatorSensor) -> None:
        logger.info(f"Adding sensor: {sensor.__class__.__name__}")
        self._sensors.add(sensor)

    def remove(self, sensor: OperatorSensor) -> None:
        logger.info(f"Removing sensor: {sensor.__class__.__name__}")
        self._sensors.discard(sensor)

    def clear(self) -> None:
        logger.info(f"Clearing {len(self._sensors)} sensors")
        self._sensors.clear()

    def _start(self, hook: str, *args) -> Optional[Dict[OperatorSensor, Any]]:
        """Call a start hook on all sensors, collecting per-sensor state."""
        if not self._sensors:
            return None
        states = {}
        for sensor in self._sensors:
            try:
                state = getattr(sensor, hook)(*args)
                if state is not None:
                    states[sensor] = state
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )
        return states if states else None

    def _notify(self, hook: str, *args) -> None:
        for sensor in self._sensors:
            try:
                getattr(sensor, hook)(*args)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(self, tag_name, generation, trigger_source):
        return self._start("on_reconcile_start", tag_name, generation, trigger_source)

    def on_reconcile_complete(self, tag_name, state, success, error=None):
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                sensor.on_reconcile_complete(tag_name, sensor_state, success, error)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.on_reconcile_complete: {e}",
                    exc_info=True,
                )

    def on_reconcile_queued(self, tag_name, queue_depth):
        self._notify("on_reconcile_queued", tag_name, queue_depth)

    def on_reconcile_dequeued(self, tag_name, wait_time):
        self._notify("on_reconcile_dequeued", tag_name, wait_time)

    # =============================================================================
    # Release Operation Hooks
    # =============================================================================

    def on_release_operation_start(self, tag_name, release_name, namespace, operation):
        return self._start(
            "on_release_operation_start", tag_name, release_name, namespace, operation
        )

    def on_release_operation_complete(
        self, tag_name, release_name, namespace, operation, state, success
    ):
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                sensor.on_release_operation_complete(
                    tag_name, release_name, namespace, operation, sensor_state, success
                )
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.on_release_operation_complete: {e}",
                    exc_info=True,
                )

    # =============================================================================
    # Status and Watch Hooks
    # =============================================================================

    def on_usage_check(self, tag_name, result):
        self._notify("on_usage_check", tag_name, result)

    def on_status_update(self, tag_name, changed):
        self._notify("on_status_update", tag_name, changed)

    def on_labels_update(self, tag_name):
        self._notify("on_labels_update", tag_name)

    def on_event_mapped(self, watched_kind, request_count):
        self._notify("on_event_mapped", watched_kind, request_count)

    def asdict(self) -> Dict[str, Any]:
        return {
            "sensor_type": self.__class__.__name__,
            "sensors": [sensor.asdict() for sensor in self._sensors],
        }
