"""
Unit Tests: Simulation Service
==============================

Tests for the tick driver covering:
1. Manual ticks and snapshots
2. Background loop with play/pause gating
3. Operator commands and validation
4. Advisor hand-off
"""

import asyncio
import math
import random
import pytest

from sysarch.core.exceptions import SimulationException, ValidationException
from sysarch.services.advisor_service import AdvisorService, NOT_CONFIGURED_MESSAGE
from sysarch.services.simulation_service import SimulationService
from sysarch.simulation.state import SimulationState, SystemEventType


class TestSimulationService:
    """Test suite for SimulationService"""

    @pytest.fixture
    def service(self):
        return SimulationService(tick_interval=0.01, rng=random.Random(3))

    def test_invalid_interval_rejected(self):
        with pytest.raises(SimulationException) as exc_info:
            SimulationService(tick_interval=0)
        assert exc_info.value.details.code == "SIMULATION_ERROR"

    def test_tick_replaces_state(self, service):
        before = service.state
        after = service.tick()

        assert after is service.state
        assert after is not before
        assert before.tick == 0
        assert after.tick == 1
        assert len(after.metrics_history) == 1

    def test_starts_from_given_state(self):
        start = SimulationState(server_count=4)
        service = SimulationService(state=start)
        assert service.state.server_count == 4

    def test_status(self, service):
        status = service.get_status()

        assert status["is_playing"] is True
        assert status["is_running"] is False
        assert status["tick"] == 0
        assert status["tick_interval"] == 0.01
        assert status["advisor_busy"] is False

    def test_metrics_and_logs_limits(self, service):
        service.set_traffic_level(2000.0)
        for _ in range(10):
            service.tick()

        assert len(service.get_metrics()) == 10
        assert len(service.get_metrics(3)) == 3
        assert service.get_metrics(3)[-1] == service.state.metrics_history[-1]
        assert service.get_logs(2) == list(service.state.logs[:2])

    def test_traffic_commands(self, service):
        assert service.set_traffic_level(300.0).traffic_level == 300.0
        assert service.adjust_traffic(500.0).traffic_level == 800.0
        assert service.adjust_traffic(-50.0).traffic_level == 750.0
        assert service.normalize_traffic().traffic_level == 100.0

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_traffic_rejected(self, service, value):
        with pytest.raises(ValidationException):
            service.set_traffic_level(value)
        with pytest.raises(ValidationException):
            service.adjust_traffic(value)
        assert service.state.traffic_level == 100.0

    def test_toggle_and_reset(self, service):
        state = service.toggle_auto_scaling()
        assert state.is_auto_scaling is False
        assert state.logs[0].type == SystemEventType.WARNING

        service.set_traffic_level(900.0)
        service.tick()
        state = service.reset()

        assert state.traffic_level == 100.0
        assert state.logs == ()
        assert state.is_auto_scaling is False
        assert len(state.metrics_history) == 1

    def test_dashboard(self, service):
        service.tick()
        summary = service.get_dashboard()
        assert summary.traffic == service.state.actual_traffic

    @pytest.mark.asyncio
    async def test_background_loop_ticks(self, service):
        """Running loop advances the state on its interval"""
        await service.start()
        assert service.is_running is True

        await asyncio.sleep(0.1)
        await service.stop()

        assert service.is_running is False
        assert service.state.tick > 0

    @pytest.mark.asyncio
    async def test_paused_loop_does_not_tick(self, service):
        service.pause()
        await service.start()
        await asyncio.sleep(0.05)

        assert service.state.tick == 0

        service.play()
        await asyncio.sleep(0.05)
        await service.stop()

        assert service.state.tick > 0

    @pytest.mark.asyncio
    async def test_start_twice_keeps_single_loop(self, service):
        await service.start()
        first_task = service._task
        await service.start()

        assert service._task is first_task
        await service.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, service):
        await service.stop()
        assert service.is_running is False

    @pytest.mark.asyncio
    async def test_request_analysis_requires_advisor(self, service):
        with pytest.raises(SimulationException):
            await service.request_analysis()

    @pytest.mark.asyncio
    async def test_request_analysis_uses_snapshot(self, advisor, mock_llm):
        service = SimulationService(
            rng=random.Random(1),
            advisor=advisor,
            state=SimulationState(server_count=3, db_count=2)
        )
        service.tick()

        report = await service.request_analysis()

        assert report.report == "DB tier is the bottleneck."
        assert report.snapshot.server_count == service.state.server_count
        assert report.snapshot.traffic == service.state.actual_traffic
        mock_llm.ainvoke.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unconfigured_advisor_does_not_block_ticks(self):
        service = SimulationService(tick_interval=0.01, advisor=AdvisorService(None))
        await service.start()

        report = await service.request_analysis()
        await asyncio.sleep(0.05)
        await service.stop()

        assert report.report == NOT_CONFIGURED_MESSAGE
        assert report.fallback is True
        assert service.state.tick > 0
