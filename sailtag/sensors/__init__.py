"""Operator sensor framework.

Hook based instrumentation of the IstioRevisionTag operator, inspired by
Faust's sensor architecture.

Key components:
- OperatorSensor: Base class defining lifecycle hooks
- SensorDelegate: Fan-out of events to multiple sensor backends
- PrometheusMonitor: Prometheus metrics exporter

Usage:
    from sailtag.sensors import SensorDelegate, PrometheusMonitor

    delegate = SensorDelegate()
    delegate.add(PrometheusMonitor())
"""

from sailtag.sensors.base import OperatorSensor
from sailtag.sensors.delegate import SensorDelegate
from sailtag.sensors.prometheus import PrometheusMonitor
from sailtag.sensors.server import init_metrics_server

__all__ = [
    'OperatorSensor',
    'SensorDelegate',
    'PrometheusMonitor',
    'init_metrics_server',
]
