"""
Dependency injection for the SysArch Simulator backend
Manages the simulation service lifecycle and the advisor it uses
"""

from typing import Optional
import logging
import random

from sysarch.core.config import Settings, settings as default_settings
from sysarch.core.llm_providers import create_advisor_llm_manager
from sysarch.services.advisor_service import AdvisorService
from sysarch.services.simulation_service import SimulationService

logger = logging.getLogger(__name__)


class SimulationRegistry:
    """Holds the process's simulation service and advisor"""

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings
        self.simulation: Optional[SimulationService] = None
        self.advisor: Optional[AdvisorService] = None

    def build(self) -> SimulationService:
        """Create the advisor and simulation service from settings"""
        llm_manager = create_advisor_llm_manager(self.settings)
        if llm_manager is None:
            logger.warning("LLM_API_KEY not set - advisor will report that it is not configured")

        self.advisor = AdvisorService(llm_manager, timeout=self.settings.LLM_TIMEOUT)
        self.simulation = SimulationService(
            tick_interval=self.settings.TICK_INTERVAL_SECONDS,
            rng=random.Random(self.settings.SIMULATION_SEED),
            advisor=self.advisor
        )
        if not self.settings.SIMULATION_AUTOSTART:
            self.simulation.pause()
        return self.simulation

    async def initialize(self) -> None:
        """Build the service if needed and start its tick loop"""
        logger.info("Initializing simulation registry...")
        if self.simulation is None:
            self.build()
        await self.simulation.start()

    async def cleanup(self) -> None:
        if self.simulation is not None:
            await self.simulation.stop()
        logger.info("Simulation registry cleaned up")


registry = SimulationRegistry()


async def initialize_simulation() -> None:
    await registry.initialize()


async def cleanup_simulation() -> None:
    await registry.cleanup()


def get_simulation_service() -> SimulationService:
    """FastAPI dependency returning the shared simulation service"""
    if registry.simulation is None:
        registry.build()
    return registry.simulation
