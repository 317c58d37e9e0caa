"""
Simulation Service Module

Tick driver for the architecture simulation. Owns the current
SimulationState, advances it on a fixed interval from an asyncio background
task, and applies operator commands between ticks.
"""

import asyncio
import logging
import math
import random
from typing import Optional, Dict, Any, List

from sysarch.core.exceptions import SimulationException, ValidationException
from sysarch.simulation import engine
from sysarch.simulation.engine import DashboardSummary
from sysarch.simulation.state import SimulationState, MetricSample, Event
from sysarch.services.advisor_service import AdvisorService, AdvisorSnapshot, AdvisorReport

logger = logging.getLogger(__name__)


class SimulationService:
    """
    Single owner of the simulation state.

    All state changes happen synchronously on the event loop, so a tick and
    an operator command can never interleave. Readers receive the immutable
    snapshot that was current when they asked.
    """

    def __init__(
        self,
        tick_interval: float = 1.0,
        rng: Optional[random.Random] = None,
        advisor: Optional[AdvisorService] = None,
        state: Optional[SimulationState] = None
    ):
        """
        Initialize SimulationService.

        Args:
            tick_interval: wall-clock seconds between ticks
            rng: noise source for traffic sampling
            advisor: advisory capability for status reports
            state: starting state, defaults to engine.initialize()
        """
        if tick_interval <= 0:
            raise SimulationException(
                f"Tick interval must be positive, got {tick_interval}", operation="init"
            )
        self.tick_interval = tick_interval
        self.rng = rng or random.Random()
        self.advisor = advisor
        self._state = state or engine.initialize()
        self._playing = True
        self._task: Optional[asyncio.Task] = None

    # ==================== Snapshots ====================

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_playing": self._playing,
            "is_running": self.is_running,
            "tick": self._state.tick,
            "tick_interval": self.tick_interval,
            "is_auto_scaling": self._state.is_auto_scaling,
            "advisor_busy": self.advisor.is_busy if self.advisor else False
        }

    def get_metrics(self, limit: Optional[int] = None) -> List[MetricSample]:
        history = list(self._state.metrics_history)
        return history[-limit:] if limit else history

    def get_logs(self, limit: Optional[int] = None) -> List[Event]:
        logs = list(self._state.logs)
        return logs[:limit] if limit else logs

    def get_dashboard(self) -> DashboardSummary:
        return engine.dashboard(self._state)

    # ==================== Tick driver ====================

    def tick(self) -> SimulationState:
        """Advance the simulation by exactly one tick"""
        self._state = engine.step(self._state, self.rng)
        return self._state

    async def start(self) -> None:
        """Start the background tick loop"""
        if self.is_running:
            logger.debug("Tick loop already running")
            return
        self._task = asyncio.create_task(self._run(), name="simulation-tick-loop")
        logger.info(f"Simulation tick loop started (interval={self.tick_interval}s)")

    async def stop(self) -> None:
        """Cancel the background tick loop and wait for it to exit"""
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"Simulation tick loop stopped at tick {self._state.tick}")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            if not self._playing:
                continue
            try:
                self.tick()
            except Exception as e:
                # a failed tick leaves the state unchanged
                logger.exception(f"Simulation tick failed: {e}")

    def play(self) -> None:
        if not self._playing:
            logger.info("Simulation resumed")
        self._playing = True

    def pause(self) -> None:
        if self._playing:
            logger.info("Simulation paused")
        self._playing = False

    # ==================== Operator commands ====================

    @staticmethod
    def _require_finite(value: float, field: str) -> float:
        if value is None or not math.isfinite(value):
            raise ValidationException(f"{field} must be a finite number", field=field, value=value)
        return value

    def set_traffic_level(self, level: float) -> SimulationState:
        self._require_finite(level, "level")
        self._state = engine.set_traffic_level(self._state, level)
        logger.info(f"Traffic level set to {self._state.traffic_level:.0f} RPS")
        return self._state

    def adjust_traffic(self, delta: float) -> SimulationState:
        self._require_finite(delta, "delta")
        self._state = engine.adjust_traffic(self._state, delta)
        logger.info(f"Traffic level adjusted by {delta:+.0f} to {self._state.traffic_level:.0f} RPS")
        return self._state

    def normalize_traffic(self) -> SimulationState:
        self._state = engine.normalize_traffic(self._state)
        logger.info("Traffic level normalized")
        return self._state

    def toggle_auto_scaling(self) -> SimulationState:
        self._state = engine.toggle_auto_scaling(self._state)
        return self._state

    def reset(self) -> SimulationState:
        self._state = engine.reset(self._state)
        logger.info("Simulation reset to default topology")
        return self._state

    # ==================== Advisor ====================

    async def request_analysis(self) -> AdvisorReport:
        """
        Ask the advisor about the latest snapshot.

        The advisor runs in its own task against a frozen snapshot, so the
        tick loop keeps advancing while the report is generated.
        """
        if self.advisor is None:
            raise SimulationException("No advisor attached to the simulation", operation="request_analysis")
        snapshot = AdvisorSnapshot.from_state(self._state)
        return await self.advisor.request_report(snapshot)
