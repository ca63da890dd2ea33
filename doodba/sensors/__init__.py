"""Doodba Operator Sensor Framework.

Hook-based instrumentation of operator lifecycle events, inspired by Faust's
sensor architecture.

Key components:
- OperatorSensor: Base class defining lifecycle hooks for operator events
- SensorDelegate: Fan-out pattern for routing events to multiple sensor backends
- PrometheusMonitor: Prometheus metrics exporter
"""

from doodba.sensors.base import OperatorSensor
from doodba.sensors.delegate import SensorDelegate
from doodba.sensors.prometheus import PrometheusMonitor
from doodba.sensors.server import init_metrics_server

__all__ = [
    'OperatorSensor',
    'SensorDelegate',
    'PrometheusMonitor',
    'init_metrics_server',
]
