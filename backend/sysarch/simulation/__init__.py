"""
SysArch Simulator - Simulation Core
===================================

Discrete-time simulation of a three-tier web architecture and the
autoscaling controller that reacts to it.

Exports:
    - State models (SimulationState, MetricSample, Event, SystemEventType)
    - Architecture model (sample, propagate, LoadReport)
    - Autoscaling controller (evaluate, ScalingDecision)
    - Engine operations (initialize, step, advance, reset, ...)
"""

from .state import (
    SimulationState,
    MetricSample,
    Event,
    SystemEventType,
    MAX_SERVERS,
    MAX_DBS,
    SERVER_CAPACITY,
    DB_CAPACITY,
    QUEUE_PROCESS_RATE,
    HISTORY_LIMIT,
    DEFAULT_TRAFFIC_LEVEL,
)

from .architecture import (
    LoadReport,
    sample,
    propagate,
    compute_latency,
)

from .autoscaler import (
    ScalingDecision,
    evaluate,
)

from .engine import (
    DashboardSummary,
    initialize,
    advance,
    step,
    set_traffic_level,
    adjust_traffic,
    normalize_traffic,
    toggle_auto_scaling,
    add_event,
    reset,
    dashboard,
)

__all__ = [
    "SimulationState",
    "MetricSample",
    "Event",
    "SystemEventType",
    "MAX_SERVERS",
    "MAX_DBS",
    "SERVER_CAPACITY",
    "DB_CAPACITY",
    "QUEUE_PROCESS_RATE",
    "HISTORY_LIMIT",
    "DEFAULT_TRAFFIC_LEVEL",
    "LoadReport",
    "sample",
    "propagate",
    "compute_latency",
    "ScalingDecision",
    "evaluate",
    "DashboardSummary",
    "initialize",
    "advance",
    "step",
    "set_traffic_level",
    "adjust_traffic",
    "normalize_traffic",
    "toggle_auto_scaling",
    "add_event",
    "reset",
    "dashboard",
]
