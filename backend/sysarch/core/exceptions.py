"""
Structured exceptions for the SysArch Simulator backend
Each error carries ErrorDetails and maps to one HTTP status and JSON body shape
"""

import logging
from typing import Dict, Any, Optional, List
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    SIMULATION = "simulation"
    CONFIGURATION = "configuration"
    LLM_SERVICE = "llm_service"
    SYSTEM = "system"


class ErrorDetails(BaseModel):
    """Error payload shared by API responses and structured logs"""
    code: str
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    context: Dict[str, Any] = {}
    suggestions: List[str] = []
    recoverable: bool = True
    retry_after_seconds: Optional[int] = None


class SysArchException(Exception):
    """
    Base exception for simulator errors.

    Subclasses set the class-level code, category, severity and HTTP status;
    instances add the message and context.
    """

    code = "SYSTEM_ERROR"
    category = ErrorCategory.SYSTEM
    severity = ErrorSeverity.MEDIUM
    status_code = 500
    suggestions: List[str] = []
    recoverable = True
    retry_after_seconds: Optional[int] = None

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
        category: Optional[ErrorCategory] = None,
        severity: Optional[ErrorSeverity] = None
    ):
        super().__init__(message)
        self.details = ErrorDetails(
            code=code or self.code,
            message=message,
            category=category or self.category,
            severity=severity or self.severity,
            context=context or {},
            suggestions=list(self.suggestions),
            recoverable=self.recoverable,
            retry_after_seconds=self.retry_after_seconds
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON body for API responses"""
        return {"error": self.details.model_dump(mode="json")}

    def to_log_dict(self) -> Dict[str, Any]:
        """Fields for the logging `extra` mapping"""
        return {
            "error_code": self.details.code,
            "error_category": self.details.category.value,
            "error_severity": self.details.severity.value,
            "error_context": self.details.context
        }


class ValidationException(SysArchException):
    """Operator input that cannot be applied"""
    code = "VALIDATION_ERROR"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.LOW
    status_code = 400
    suggestions = ["Send a finite, non-negative number of requests per second"]

    def __init__(self, message: str, field: str, value: Any):
        super().__init__(message, context={"field": field, "value": str(value)})


class SimulationException(SysArchException):
    """Tick driver misuse, e.g. a non-positive interval or no advisor attached"""
    code = "SIMULATION_ERROR"
    category = ErrorCategory.SIMULATION
    status_code = 409
    suggestions = ["Check the simulation status before retrying"]

    def __init__(self, message: str, operation: str):
        super().__init__(message, context={"operation": operation})


class LLMServiceException(SysArchException):
    """Advisor call to the LLM provider failed or timed out"""
    code = "LLM_SERVICE_ERROR"
    category = ErrorCategory.LLM_SERVICE
    severity = ErrorSeverity.HIGH
    status_code = 502
    suggestions = ["Check API key validity", "Verify model availability"]
    retry_after_seconds = 60

    def __init__(self, message: str, model: str, operation: str):
        super().__init__(message, context={"model": model, "operation": operation})


class ConfigurationException(SysArchException):
    """Advisor or application settings are missing or unusable"""
    code = "CONFIGURATION_ERROR"
    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.CRITICAL
    suggestions = ["Check environment variables", "Verify .env file"]
    recoverable = False

    def __init__(self, message: str, config_key: str):
        super().__init__(message, context={"config_key": config_key})


def _error_response(status_code: int, exc: SysArchException) -> JSONResponse:
    headers = {
        "X-Error-Code": exc.details.code,
        "X-Error-Category": exc.details.category.value
    }
    if exc.details.retry_after_seconds:
        headers["Retry-After"] = str(exc.details.retry_after_seconds)
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


# FastAPI handlers

async def sysarch_exception_handler(request: Request, exc: SysArchException) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(level, f"{exc.details.code} on {request.url.path}: {exc.details.message}",
               extra=exc.to_log_dict())
    return _error_response(exc.status_code, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query errors, reported in the same shape with status 422"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    sys_exc = ValidationException(
        message=first.get("msg", "Invalid request"),
        field=".".join(str(part) for part in first.get("loc", ("request",))),
        value=first.get("input")
    )
    logger.warning(f"Validation error on {request.url.path}: {sys_exc.details.message}",
                   extra=sys_exc.to_log_dict())
    return _error_response(422, sys_exc)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code == 404:
        category = ErrorCategory.NOT_FOUND
    elif exc.status_code < 500:
        category = ErrorCategory.VALIDATION
    else:
        category = ErrorCategory.SYSTEM
    sys_exc = SysArchException(
        str(exc.detail),
        context={"status_code": exc.status_code, "path": request.url.path},
        code="HTTP_ERROR",
        category=category,
        severity=ErrorSeverity.HIGH if exc.status_code >= 500 else ErrorSeverity.MEDIUM
    )
    return _error_response(exc.status_code, sys_exc)
