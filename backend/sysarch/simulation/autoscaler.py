"""
Autoscaling Controller

Threshold rules that turn one tick's LoadReport into the next resource
configuration. Every rule reads the previous tick's counts, so at most one
unit of each resource changes per tick.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from .architecture import LoadReport
from .state import (
    Event,
    SimulationState,
    SystemEventType,
    MAX_SERVERS,
    MAX_DBS,
)

logger = logging.getLogger(__name__)


SERVER_SCALE_UP_THRESHOLD = 0.8
SERVER_SCALE_DOWN_THRESHOLD = 0.3
QUEUE_ADD_DB_UTILIZATION = 0.8
QUEUE_REMOVE_DB_UTILIZATION = 0.2
DB_SCALE_UP_QUEUE_SIZE = 200.0
DB_SCALE_DOWN_UTILIZATION = 0.3


@dataclass
class ScalingDecision:
    """Next-tick resource configuration and the events that explain it"""
    server_count: int
    db_count: int
    has_queue: bool
    events: List[Event] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.events)


def _clamp(value: int, upper: int) -> int:
    return max(1, min(upper, value))


def evaluate(
    state: SimulationState,
    report: LoadReport,
    now: Optional[datetime] = None
) -> ScalingDecision:
    """
    Apply the scaling rules in order: servers, queue add, queue remove, databases.

    Args:
        state: state at the start of the tick
        report: load propagation result for the tick
        now: timestamp for emitted events

    Returns:
        ScalingDecision with counts clamped to their bounds
    """
    decision = ScalingDecision(
        server_count=state.server_count,
        db_count=state.db_count,
        has_queue=state.has_queue
    )
    if not state.is_auto_scaling:
        return decision

    timestamp = now or datetime.now(timezone.utc)

    def emit(message: str, event_type: SystemEventType) -> None:
        logger.info(f"[tick {state.tick}] {message}")
        decision.events.append(Event(timestamp=timestamp, message=message, type=event_type))

    capacity = report.max_server_capacity

    # Servers
    if report.server_load > capacity * SERVER_SCALE_UP_THRESHOLD and state.server_count < MAX_SERVERS:
        decision.server_count = _clamp(state.server_count + 1, MAX_SERVERS)
        emit(f"Auto-scaled: Added App Server (Total: {decision.server_count})", SystemEventType.SUCCESS)
    elif report.server_load < capacity * SERVER_SCALE_DOWN_THRESHOLD and state.server_count > 1:
        decision.server_count = _clamp(state.server_count - 1, MAX_SERVERS)
        emit(f"Scaled down: Removed App Server (Total: {decision.server_count})", SystemEventType.INFO)

    # Topology
    if report.db_utilization > QUEUE_ADD_DB_UTILIZATION and not state.has_queue:
        decision.has_queue = True
        emit("Architecture Change: Added Message Queue to buffer DB spikes", SystemEventType.WARNING)
    elif (report.db_utilization < QUEUE_REMOVE_DB_UTILIZATION
          and state.has_queue and state.queue_size == 0):
        decision.has_queue = False
        emit("Architecture Change: Removed Message Queue", SystemEventType.INFO)

    # Databases
    if state.has_queue and state.queue_size > DB_SCALE_UP_QUEUE_SIZE and state.db_count < MAX_DBS:
        decision.db_count = _clamp(state.db_count + 1, MAX_DBS)
        emit(f"Auto-scaled: Added DB Read Replica (Total: {decision.db_count})", SystemEventType.SUCCESS)
    elif report.db_utilization < DB_SCALE_DOWN_UTILIZATION and state.db_count > 1:
        decision.db_count = _clamp(state.db_count - 1, MAX_DBS)
        emit(f"Scaled down: Removed DB Replica (Total: {decision.db_count})", SystemEventType.INFO)

    return decision
