"""
SysArch Simulator - Test Configuration & Fixtures
=================================================

Shared fixtures
- deterministic noise sources and clocks
- simulation states
- advisor / LLM mocks
"""

import random
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

from langchain_core.messages import AIMessage

from sysarch.simulation import engine
from sysarch.simulation.state import SimulationState
from sysarch.services.advisor_service import AdvisorService, AdvisorSnapshot


class FixedRandom(random.Random):
    """random.Random whose random() always returns the same value"""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


# ==================== Simulation ====================

@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def rng() -> random.Random:
    """Seeded noise source"""
    return random.Random(42)


@pytest.fixture
def midpoint_rng() -> FixedRandom:
    """Noise source that yields zero noise"""
    return FixedRandom(0.5)


@pytest.fixture
def initial_state() -> SimulationState:
    return engine.initialize()


# ==================== Advisor ====================

@pytest.fixture
def snapshot() -> AdvisorSnapshot:
    return AdvisorSnapshot(
        traffic=640.0,
        server_count=5,
        db_count=2,
        has_queue=True,
        queue_size=120.0,
        is_auto_scaling=True
    )


@pytest.fixture
def mock_llm():
    """Chat model mock returning a canned report"""
    llm = Mock()
    llm.ainvoke = AsyncMock(return_value=AIMessage(content="  DB tier is the bottleneck.  "))
    return llm


@pytest.fixture
def mock_llm_manager(mock_llm):
    manager = Mock()
    manager.get_llm_instance = AsyncMock(return_value=mock_llm)
    manager.get_provider_info = Mock(return_value={"provider": "openai", "model": "test-model"})
    return manager


@pytest.fixture
def advisor(mock_llm_manager) -> AdvisorService:
    return AdvisorService(mock_llm_manager, timeout=1.0)
