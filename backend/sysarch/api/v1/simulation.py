"""
Simulation API endpoints
Snapshots, operator controls and advisor reports for the running simulation
"""

from fastapi import APIRouter, Depends, Query
from typing import List
import logging

from sysarch.core.dependencies import get_simulation_service
from sysarch.schemas.simulation import (
    TrafficLevelRequest, TrafficAdjustRequest,
    SimulationStatusResponse, AdvisorStatusResponse
)
from sysarch.services.advisor_service import AdvisorReport
from sysarch.services.simulation_service import SimulationService
from sysarch.simulation.engine import DashboardSummary
from sysarch.simulation.state import SimulationState, MetricSample, Event, HISTORY_LIMIT

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/state", response_model=SimulationState)
async def get_state(service: SimulationService = Depends(get_simulation_service)):
    """Current simulation snapshot"""
    return service.state


@router.get("/status", response_model=SimulationStatusResponse)
async def get_status(service: SimulationService = Depends(get_simulation_service)):
    """Tick driver status"""
    return service.get_status()


@router.get("/dashboard", response_model=DashboardSummary)
async def get_dashboard(service: SimulationService = Depends(get_simulation_service)):
    """Metric card values and the recent chart window"""
    return service.get_dashboard()


@router.get("/metrics", response_model=List[MetricSample])
async def get_metrics(
    limit: int = Query(default=HISTORY_LIMIT, ge=1, le=HISTORY_LIMIT),
    service: SimulationService = Depends(get_simulation_service)
):
    """Trailing metric samples, oldest first"""
    return service.get_metrics(limit)


@router.get("/logs", response_model=List[Event])
async def get_logs(
    limit: int = Query(default=HISTORY_LIMIT, ge=1, le=HISTORY_LIMIT),
    service: SimulationService = Depends(get_simulation_service)
):
    """System events, newest first"""
    return service.get_logs(limit)


@router.post("/step", response_model=SimulationState)
async def step(service: SimulationService = Depends(get_simulation_service)):
    """Apply one tick immediately"""
    return service.tick()


@router.post("/play", response_model=SimulationStatusResponse)
async def play(service: SimulationService = Depends(get_simulation_service)):
    service.play()
    return service.get_status()


@router.post("/pause", response_model=SimulationStatusResponse)
async def pause(service: SimulationService = Depends(get_simulation_service)):
    service.pause()
    return service.get_status()


@router.put("/traffic", response_model=SimulationState)
async def set_traffic(
    request: TrafficLevelRequest,
    service: SimulationService = Depends(get_simulation_service)
):
    """Set the operator traffic level"""
    return service.set_traffic_level(request.level)


@router.post("/traffic/adjust", response_model=SimulationState)
async def adjust_traffic(
    request: TrafficAdjustRequest,
    service: SimulationService = Depends(get_simulation_service)
):
    """Nudge the operator traffic level"""
    return service.adjust_traffic(request.delta)


@router.post("/traffic/normalize", response_model=SimulationState)
async def normalize_traffic(service: SimulationService = Depends(get_simulation_service)):
    return service.normalize_traffic()


@router.post("/autoscaling/toggle", response_model=SimulationState)
async def toggle_auto_scaling(service: SimulationService = Depends(get_simulation_service)):
    return service.toggle_auto_scaling()


@router.post("/reset", response_model=SimulationState)
async def reset(service: SimulationService = Depends(get_simulation_service)):
    """Restore the default topology and traffic level"""
    return service.reset()


@router.get("/advisor", response_model=AdvisorStatusResponse)
async def get_advisor_status(service: SimulationService = Depends(get_simulation_service)):
    if service.advisor is None:
        return AdvisorStatusResponse(configured=False, busy=False)
    return service.advisor.get_status()


@router.post("/advisor", response_model=AdvisorReport)
async def request_analysis(service: SimulationService = Depends(get_simulation_service)):
    """Advisory report for the latest snapshot"""
    report = await service.request_analysis()
    logger.info(f"Advisor report generated (fallback={report.fallback})")
    return report
