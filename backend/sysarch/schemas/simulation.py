"""
Pydantic schemas for simulation API operations
Request/Response models for the tick driver and advisor endpoints
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class TrafficLevelRequest(BaseModel):
    """Schema for setting the target traffic"""
    level: float = Field(..., ge=0.0, description="Target traffic in requests per second")


class TrafficAdjustRequest(BaseModel):
    """Schema for nudging the target traffic (e.g. +50, -50, spike +500)"""
    delta: float = Field(..., description="Change in requests per second")


class SimulationStatusResponse(BaseModel):
    """Tick driver status"""
    is_playing: bool
    is_running: bool
    tick: int
    tick_interval: float
    is_auto_scaling: bool
    advisor_busy: bool = False


class AdvisorStatusResponse(BaseModel):
    """Advisor configuration and activity"""
    configured: bool
    busy: bool
    provider: Optional[Dict[str, Any]] = None
    last_report_at: Optional[str] = None
