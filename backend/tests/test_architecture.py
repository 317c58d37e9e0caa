"""
Unit Tests: Architecture Model
==============================

Tests for traffic sampling and load propagation:
1. Noise bounds
2. Server capacity and overload
3. Queue buffering and draining
4. Latency model
"""

import random
import pytest

from sysarch.simulation.architecture import (
    sample,
    propagate,
    compute_latency,
    TIMEOUT_PENALTY_MS,
    BASE_LATENCY_MS,
)
from sysarch.simulation.state import SimulationState

from conftest import FixedRandom


class TestSample:
    """Tests for noisy traffic sampling"""

    def test_noise_bounds(self):
        """10,000 samples around 100 stay within the noise band"""
        rng = random.Random(1234)
        samples = [sample(100.0, rng) for _ in range(10_000)]

        assert all(0.0 <= value <= 120.0 for value in samples)
        assert all(90.0 <= value <= 110.0 for value in samples)

    def test_noise_extremes(self):
        """Noise spans +/-10% of the traffic level"""
        assert sample(100.0, FixedRandom(0.0)) == pytest.approx(90.0)
        assert sample(100.0, FixedRandom(0.5)) == pytest.approx(100.0)
        assert sample(100.0, FixedRandom(1.0)) == pytest.approx(110.0)

    def test_zero_traffic_stays_zero(self):
        assert sample(0.0, random.Random(7)) == 0.0

    def test_same_seed_same_samples(self):
        first = [sample(500.0, random.Random(9)) for _ in range(5)]
        second = [sample(500.0, random.Random(9)) for _ in range(5)]
        assert first == second


class TestPropagate:
    """Tests for load propagation through the tiers"""

    def test_default_topology(self):
        """Traffic under capacity flows straight to the database"""
        report = propagate(SimulationState(), 100.0)

        assert report.max_server_capacity == 150.0
        assert report.server_load == 100.0
        assert report.overloaded_traffic == 0.0
        assert report.throughput_to_db == 100.0
        assert report.next_queue_size == 0.0
        assert report.db_utilization == pytest.approx(0.25)
        assert report.latency == pytest.approx(20 + 100 * (100 / 150) + 200 * 0.25)
        assert report.is_overloaded is False

    def test_overload_penalty(self):
        """Traffic beyond server capacity triggers the timeout penalty"""
        report = propagate(SimulationState(server_count=1), 1000.0)

        assert report.server_load == 150.0
        assert report.overloaded_traffic == 850.0
        assert report.throughput_to_db == 150.0
        assert report.latency >= TIMEOUT_PENALTY_MS + BASE_LATENCY_MS
        assert report.is_overloaded is True

    def test_queue_buffers_and_drains(self):
        """Queue absorbs server output and drains at the process rate"""
        state = SimulationState(server_count=4, has_queue=True, queue_size=100.0)
        report = propagate(state, 500.0)

        assert report.server_load == 500.0
        assert report.throughput_to_db == 300.0
        assert report.next_queue_size == 300.0
        assert report.db_utilization == pytest.approx(0.75)
        # previous backlog of 100 adds 0.5ms per item
        expected = 20 + 100 * (500 / 600) + 200 * 0.75 + 0.5 * 100
        assert report.latency == pytest.approx(expected)

    def test_queue_fully_drained_under_rate(self):
        state = SimulationState(has_queue=True, queue_size=50.0)
        report = propagate(state, 100.0)

        assert report.throughput_to_db == 150.0
        assert report.next_queue_size == 0.0

    def test_more_databases_lower_utilization(self):
        one = propagate(SimulationState(server_count=3, db_count=1), 400.0)
        two = propagate(SimulationState(server_count=3, db_count=2), 400.0)

        assert one.db_utilization == pytest.approx(1.0)
        assert two.db_utilization == pytest.approx(0.5)
        assert two.latency < one.latency

    def test_zero_traffic(self):
        report = propagate(SimulationState(), 0.0)
        assert report.server_load == 0.0
        assert report.latency == pytest.approx(BASE_LATENCY_MS)


class TestLatency:
    """Tests for the additive latency model"""

    def test_monotonic_in_server_utilization(self):
        """Holding DB load and queue fixed, more server load never lowers latency"""
        utilizations = [i / 20 for i in range(21)]
        latencies = [compute_latency(u, db_utilization=0.4, queued_items=30.0) for u in utilizations]

        assert latencies == sorted(latencies)

    def test_components(self):
        assert compute_latency(0.0, 0.0) == pytest.approx(20.0)
        assert compute_latency(1.0, 0.0) == pytest.approx(120.0)
        assert compute_latency(0.0, 1.0) == pytest.approx(220.0)
        assert compute_latency(0.0, 0.0, queued_items=200.0) == pytest.approx(120.0)
        assert compute_latency(0.0, 0.0, overloaded=True) == pytest.approx(5020.0)
