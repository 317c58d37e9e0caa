"""
Architecture Model

Load propagation through load balancer -> app servers -> (queue) -> databases
for a single tick, plus the latency model derived from it.
"""

import random
from dataclasses import dataclass

from .state import (
    SimulationState,
    SERVER_CAPACITY,
    DB_CAPACITY,
    QUEUE_PROCESS_RATE,
)


BASE_LATENCY_MS = 20.0
SERVER_LATENCY_MS = 100.0  # At full server utilization
DB_LATENCY_MS = 200.0  # At full DB utilization
QUEUE_LATENCY_PER_ITEM_MS = 0.5
TIMEOUT_PENALTY_MS = 5000.0

NOISE_FRACTION = 0.2  # Full width of the uniform noise band


@dataclass(frozen=True)
class LoadReport:
    """Physical outcome of one tick"""
    max_server_capacity: float
    server_load: float
    overloaded_traffic: float
    throughput_to_db: float
    next_queue_size: float
    max_db_capacity: float
    db_utilization: float
    latency: float

    @property
    def server_utilization(self) -> float:
        return self.server_load / self.max_server_capacity

    @property
    def is_overloaded(self) -> bool:
        return self.overloaded_traffic > 0


def sample(traffic_level: float, rng: random.Random) -> float:
    """Apply +/-10% uniform noise around the operator-set traffic level"""
    noise = (rng.random() - 0.5) * traffic_level * NOISE_FRACTION
    return max(0.0, traffic_level + noise)


def compute_latency(
    server_utilization: float,
    db_utilization: float,
    queued_items: float = 0.0,
    overloaded: bool = False
) -> float:
    """
    Additive latency model in milliseconds.

    Args:
        server_utilization: served load over server capacity (0..1)
        db_utilization: DB throughput over DB capacity (unbounded)
        queued_items: queue backlog carried in from the previous tick
        overloaded: whether any traffic exceeded server capacity

    Returns:
        Simulated request latency
    """
    latency = BASE_LATENCY_MS
    latency += server_utilization * SERVER_LATENCY_MS
    latency += db_utilization * DB_LATENCY_MS
    latency += queued_items * QUEUE_LATENCY_PER_ITEM_MS
    if overloaded:
        latency += TIMEOUT_PENALTY_MS
    return latency


def propagate(state: SimulationState, actual_traffic: float) -> LoadReport:
    """Push one tick of traffic through the current topology"""
    max_server_capacity = state.server_count * SERVER_CAPACITY
    server_load = min(actual_traffic, max_server_capacity)
    # Excess is dropped downstream but still shows up as timeouts
    overloaded_traffic = max(0.0, actual_traffic - max_server_capacity)

    if state.has_queue:
        queue_size = state.queue_size + server_load
        processed = min(queue_size, QUEUE_PROCESS_RATE)
        throughput_to_db = processed
        next_queue_size = max(0.0, queue_size - processed)
    else:
        throughput_to_db = server_load
        next_queue_size = 0.0

    max_db_capacity = state.db_count * DB_CAPACITY
    db_utilization = throughput_to_db / max_db_capacity

    latency = compute_latency(
        server_utilization=server_load / max_server_capacity,
        db_utilization=db_utilization,
        queued_items=state.queue_size if state.has_queue else 0.0,
        overloaded=overloaded_traffic > 0
    )

    return LoadReport(
        max_server_capacity=max_server_capacity,
        server_load=server_load,
        overloaded_traffic=overloaded_traffic,
        throughput_to_db=throughput_to_db,
        next_queue_size=next_queue_size,
        max_db_capacity=max_db_capacity,
        db_utilization=db_utilization,
        latency=latency
    )
