"""
State models for the architecture simulation
Immutable snapshots threaded through the tick driver
"""

import uuid
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


MAX_SERVERS = 8
MAX_DBS = 4
SERVER_CAPACITY = 150.0  # Requests per second per server
DB_CAPACITY = 400.0  # Requests per second per DB
QUEUE_PROCESS_RATE = 300.0  # Items drained from the queue per tick

HISTORY_LIMIT = 50
DEFAULT_TRAFFIC_LEVEL = 100.0


class SystemEventType(str, Enum):
    """Severity of a logged system event"""
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    SUCCESS = "SUCCESS"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(BaseModel):
    """A scaling or operator event shown in the event log"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=_utcnow)
    message: str
    type: SystemEventType = SystemEventType.INFO


class MetricSample(BaseModel):
    """Outcome of a single tick"""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    traffic: float
    latency: float
    server_load: float
    db_load: float
    server_count: int
    db_count: int
    queue_size: float


class SimulationState(BaseModel):
    """
    Complete simulation snapshot.

    Instances are never mutated; every operation returns a new state
    via model_copy(update=...).
    """
    model_config = ConfigDict(frozen=True)

    traffic_level: float = Field(default=DEFAULT_TRAFFIC_LEVEL, ge=0.0, allow_inf_nan=False)
    actual_traffic: float = Field(default=DEFAULT_TRAFFIC_LEVEL, ge=0.0, allow_inf_nan=False)
    server_count: int = Field(default=1, ge=1, le=MAX_SERVERS)
    db_count: int = Field(default=1, ge=1, le=MAX_DBS)
    has_queue: bool = False
    queue_size: float = Field(default=0.0, ge=0.0)
    is_auto_scaling: bool = True
    metrics_history: Tuple[MetricSample, ...] = ()
    logs: Tuple[Event, ...] = ()
    tick: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_queue_topology(self) -> "SimulationState":
        if not self.has_queue and self.queue_size != 0:
            raise ValueError("queue_size must be 0 when the architecture has no queue")
        return self

    @property
    def latest_metrics(self) -> Optional[MetricSample]:
        return self.metrics_history[-1] if self.metrics_history else None


def append_metric(
    history: Iterable[MetricSample],
    sample: MetricSample,
    limit: int = HISTORY_LIMIT
) -> Tuple[MetricSample, ...]:
    """Append chronologically, evicting the oldest samples past the limit"""
    bounded = deque(history, maxlen=limit)
    bounded.append(sample)
    return tuple(bounded)


def prepend_events(
    logs: Iterable[Event],
    events: Iterable[Event],
    limit: int = HISTORY_LIMIT
) -> Tuple[Event, ...]:
    """Push events newest-first, keeping only the most recent entries"""
    bounded = deque(list(logs)[:limit], maxlen=limit)
    for event in events:
        # appendleft on a full deque drops from the right (oldest) end
        bounded.appendleft(event)
    return tuple(bounded)
