"""
Advisor Service Module

Produces a short SRE-style status report for a simulation snapshot using the
configured LLM provider. The service fails open: configuration gaps and
provider errors come back as fixed strings, never as exceptions.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict

from sysarch.core.exceptions import ConfigurationException, LLMServiceException
from sysarch.core.llm_providers import AdvisorLLMManager
from sysarch.simulation.state import SimulationState

logger = logging.getLogger(__name__)


NOT_CONFIGURED_MESSAGE = "Advisor LLM API key not configured."
UNAVAILABLE_MESSAGE = "System analysis temporarily unavailable."
EMPTY_RESPONSE_MESSAGE = "No analysis available."

SYSTEM_INSTRUCTION = "You are an expert backend engineer monitoring a high-traffic web application."

PROMPT_TEMPLATE = """You are a Senior Site Reliability Engineer (SRE). Analyze the following system simulation state and provide a brief, professional status report.

Current Metrics:
- Traffic: {traffic:.0f} RPS
- Servers: {server_count}
- Databases: {db_count}
- Architecture includes Queue: {has_queue}
- Queue Size: {queue_size:.0f}
- Auto-scaling Enabled: {is_auto_scaling}

Identify bottlenecks, comment on the efficiency of the current scaling strategy, and suggest if manual intervention is needed.
Keep it under 3 sentences. Be concise and technical."""


class AdvisorSnapshot(BaseModel):
    """Read-only view of the numbers the advisor reasons about"""
    model_config = ConfigDict(frozen=True)

    traffic: float
    server_count: int
    db_count: int
    has_queue: bool
    queue_size: float
    is_auto_scaling: bool

    @classmethod
    def from_state(cls, state: SimulationState) -> "AdvisorSnapshot":
        return cls(
            traffic=state.actual_traffic,
            server_count=state.server_count,
            db_count=state.db_count,
            has_queue=state.has_queue,
            queue_size=state.queue_size,
            is_auto_scaling=state.is_auto_scaling
        )


class AdvisorReport(BaseModel):
    """Outcome of one advisory request"""
    report: str
    generated_at: datetime
    snapshot: AdvisorSnapshot
    fallback: bool = False


def build_prompt(snapshot: AdvisorSnapshot) -> str:
    return PROMPT_TEMPLATE.format(
        traffic=snapshot.traffic,
        server_count=snapshot.server_count,
        db_count=snapshot.db_count,
        has_queue="Yes" if snapshot.has_queue else "No",
        queue_size=snapshot.queue_size,
        is_auto_scaling="Yes" if snapshot.is_auto_scaling else "No"
    )


class AdvisorService:
    """
    Advisory capability with a single operation, summarize(snapshot).

    Concurrent callers share the request already in flight, so at most one
    LLM call is outstanding at a time.
    """

    def __init__(self, llm_manager: Optional[AdvisorLLMManager], timeout: float = 30.0):
        """
        Initialize AdvisorService.

        Args:
            llm_manager: LLM access, or None when no provider is configured
            timeout: seconds allowed for a single LLM call
        """
        self.llm_manager = llm_manager
        self.timeout = timeout
        self._inflight: Optional[asyncio.Task] = None
        self.last_report: Optional[AdvisorReport] = None

    @property
    def is_configured(self) -> bool:
        return self.llm_manager is not None

    @property
    def is_busy(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def summarize(self, snapshot: AdvisorSnapshot) -> str:
        """Text report for the snapshot; never raises"""
        report = await self.request_report(snapshot)
        return report.report

    async def request_report(self, snapshot: AdvisorSnapshot) -> AdvisorReport:
        """
        Run or join the in-flight advisory request.

        A caller that joins a running request gets that request's report,
        so report.snapshot can be older than the snapshot passed in.

        Args:
            snapshot: read-only copy of the latest simulation numbers

        Returns:
            AdvisorReport; fallback=True when the text is a fixed string
        """
        if self.is_busy:
            logger.debug("Advisor request already in flight, joining it")
        else:
            self._inflight = asyncio.create_task(self._run(snapshot))

        # shield so one cancelled caller does not cancel the shared request
        return await asyncio.shield(self._inflight)

    async def _run(self, snapshot: AdvisorSnapshot) -> AdvisorReport:
        fallback = True
        try:
            text = await self._generate(snapshot)
            fallback = text == EMPTY_RESPONSE_MESSAGE
        except ConfigurationException as e:
            logger.info(f"Advisor unavailable: {e.details.message}")
            text = NOT_CONFIGURED_MESSAGE
        except LLMServiceException as e:
            logger.error(f"Advisor analysis failed: {e.details.message}", extra=e.to_log_dict())
            text = UNAVAILABLE_MESSAGE
        except Exception as e:
            logger.error(f"Unexpected advisor failure: {e}")
            text = UNAVAILABLE_MESSAGE

        report = AdvisorReport(
            report=text,
            generated_at=datetime.now(timezone.utc),
            snapshot=snapshot,
            fallback=fallback
        )
        self.last_report = report
        return report

    async def _generate(self, snapshot: AdvisorSnapshot) -> str:
        if self.llm_manager is None:
            raise ConfigurationException("No LLM provider configured", config_key="LLM_API_KEY")

        llm = await self.llm_manager.get_llm_instance()
        if llm is None:
            raise ConfigurationException("LLM provider failed to initialize", config_key="LLM_API_KEY")

        model = str(self.llm_manager.get_provider_info().get("model"))
        messages = [
            SystemMessage(content=SYSTEM_INSTRUCTION),
            HumanMessage(content=build_prompt(snapshot))
        ]

        try:
            async with asyncio.timeout(self.timeout):
                response = await llm.ainvoke(messages)
        except asyncio.TimeoutError:
            raise LLMServiceException(
                f"Advisor request timed out after {self.timeout}s", model=model, operation="ainvoke"
            )
        except Exception as e:
            raise LLMServiceException(str(e), model=model, operation="ainvoke") from e

        content = getattr(response, "content", response)
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        text = str(content or "").strip()
        return text or EMPTY_RESPONSE_MESSAGE

    def get_status(self) -> Dict[str, Any]:
        info = self.llm_manager.get_provider_info() if self.llm_manager else None
        return {
            "configured": self.is_configured,
            "busy": self.is_busy,
            "provider": info,
            "last_report_at": self.last_report.generated_at.isoformat() if self.last_report else None
        }
