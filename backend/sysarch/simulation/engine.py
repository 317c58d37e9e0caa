"""
Simulation engine

Pure state transitions for the architecture simulation. Every function takes
a SimulationState and returns a new one; the tick driver owns the current
value and threads it from call to call.
"""

import logging
import math
import random
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel

from .architecture import propagate, sample
from .autoscaler import evaluate
from .state import (
    Event,
    MetricSample,
    SimulationState,
    SystemEventType,
    append_metric,
    prepend_events,
    DEFAULT_TRAFFIC_LEVEL,
    SERVER_CAPACITY,
    DB_CAPACITY,
)

logger = logging.getLogger(__name__)

DASHBOARD_WINDOW = 30
QUEUE_ALERT_SIZE = 50.0


def initialize() -> SimulationState:
    """Fresh simulation with default topology"""
    return SimulationState()


def advance(
    state: SimulationState,
    actual_traffic: float,
    now: Optional[datetime] = None
) -> SimulationState:
    """
    Apply one tick for an already-sampled traffic value.

    Runs load propagation, then the autoscaling rules, then records the
    tick's MetricSample and any scaling events.
    """
    now = now or datetime.now(timezone.utc)
    actual_traffic = max(0.0, actual_traffic)

    report = propagate(state, actual_traffic)
    decision = evaluate(state, report, now=now)

    # A removed queue takes its backlog with it
    next_queue_size = report.next_queue_size if decision.has_queue else 0.0

    metric = MetricSample(
        timestamp=now,
        traffic=actual_traffic,
        latency=report.latency,
        server_load=report.server_load,
        db_load=report.throughput_to_db,
        server_count=decision.server_count,
        db_count=decision.db_count,
        queue_size=next_queue_size
    )

    logger.debug(
        f"[tick {state.tick}] traffic={actual_traffic:.1f} latency={report.latency:.1f}ms "
        f"servers={decision.server_count} dbs={decision.db_count} queue={next_queue_size:.1f}"
    )

    return state.model_copy(update={
        "actual_traffic": actual_traffic,
        "server_count": decision.server_count,
        "db_count": decision.db_count,
        "has_queue": decision.has_queue,
        "queue_size": next_queue_size,
        "metrics_history": append_metric(state.metrics_history, metric),
        "logs": prepend_events(state.logs, decision.events),
        "tick": state.tick + 1,
    })


def step(
    state: SimulationState,
    rng: random.Random,
    now: Optional[datetime] = None
) -> SimulationState:
    """Sample noisy traffic from the operator level and advance one tick"""
    return advance(state, sample(state.traffic_level, rng), now=now)


def set_traffic_level(state: SimulationState, level: float) -> SimulationState:
    """
    Operator override of the target traffic, effective next tick.

    Negative levels clamp to zero. NaN and infinite levels are ignored and
    the current target is kept.
    """
    if not math.isfinite(level):
        logger.warning(f"Ignoring non-finite traffic level {level}")
        return state
    return state.model_copy(update={"traffic_level": max(0.0, level)})


def adjust_traffic(state: SimulationState, delta: float) -> SimulationState:
    """Nudge the target traffic by delta, never below zero"""
    return set_traffic_level(state, state.traffic_level + delta)


def normalize_traffic(state: SimulationState) -> SimulationState:
    """Return the target traffic to its default; topology is untouched"""
    return set_traffic_level(state, DEFAULT_TRAFFIC_LEVEL)


def add_event(
    state: SimulationState,
    message: str,
    event_type: SystemEventType = SystemEventType.INFO
) -> SimulationState:
    event = Event(message=message, type=event_type)
    return state.model_copy(update={"logs": prepend_events(state.logs, [event])})


def toggle_auto_scaling(state: SimulationState) -> SimulationState:
    enabled = not state.is_auto_scaling
    message = "Auto-scaling Enabled" if enabled else "Auto-scaling Disabled"
    logger.info(message)
    toggled = state.model_copy(update={"is_auto_scaling": enabled})
    return add_event(toggled, message, SystemEventType.WARNING)


def reset(state: Optional[SimulationState] = None) -> SimulationState:
    """
    Restore the default topology and traffic level.

    Metric history, the auto-scaling flag, the last traffic sample and
    the tick counter survive; the event log is cleared. Without a state,
    this is the same as initialize().
    """
    if state is None:
        return initialize()
    return state.model_copy(update={
        "traffic_level": DEFAULT_TRAFFIC_LEVEL,
        "server_count": 1,
        "db_count": 1,
        "has_queue": False,
        "queue_size": 0.0,
        "logs": (),
    })


class DashboardSummary(BaseModel):
    """Headline numbers for the metric cards plus the chart window"""
    traffic: float
    server_load_percent: int
    db_load_percent: int
    queue_size: float
    queue_alert: bool
    overloaded: bool
    latency: Optional[float] = None
    server_count: int
    db_count: int
    has_queue: bool
    is_auto_scaling: bool
    recent_metrics: List[MetricSample] = []


def dashboard(state: SimulationState, window: int = DASHBOARD_WINDOW) -> DashboardSummary:
    server_capacity = state.server_count * SERVER_CAPACITY
    db_capacity = state.db_count * DB_CAPACITY
    latest = state.latest_metrics

    return DashboardSummary(
        traffic=state.actual_traffic,
        server_load_percent=round(state.actual_traffic / server_capacity * 100),
        db_load_percent=round(state.actual_traffic / db_capacity * 100),
        queue_size=state.queue_size,
        queue_alert=state.has_queue and state.queue_size > QUEUE_ALERT_SIZE,
        overloaded=state.actual_traffic > server_capacity,
        latency=latest.latency if latest else None,
        server_count=state.server_count,
        db_count=state.db_count,
        has_queue=state.has_queue,
        is_auto_scaling=state.is_auto_scaling,
        recent_metrics=list(state.metrics_history[-window:]) if window > 0 else []
    )
