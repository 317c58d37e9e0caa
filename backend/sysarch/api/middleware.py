"""
Request logging middleware for the SysArch Simulator API
Tags every request with a short id and reports its processing time
"""

import logging
import time
import uuid
from typing import Callable, Dict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from sysarch.core.exceptions import SysArchException

logger = logging.getLogger(__name__)


def _trace_headers(request_id: str, started: float) -> Dict[str, str]:
    return {
        "X-Request-ID": request_id,
        "X-Process-Time": f"{time.perf_counter() - started:.3f}"
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request and adds X-Request-ID / X-Process-Time headers"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        started = time.perf_counter()

        # dashboards poll the snapshot endpoints every tick
        log = logger.debug if request.method == "GET" else logger.info
        client = request.client.host if request.client else "unknown"
        log(f"[{request_id}] {request.method} {request.url.path} from {client}")

        try:
            response = await call_next(request)
        except Exception as e:
            headers = _trace_headers(request_id, started)
            logger.exception(f"[{request_id}] Unhandled error after {headers['X-Process-Time']}s")
            body = SysArchException(
                "Internal server error",
                context={"request_id": request_id, "reason": str(e)}
            ).to_dict()
            return JSONResponse(status_code=500, content=body, headers=headers)

        response.headers.update(_trace_headers(request_id, started))
        log(f"[{request_id}] {response.status_code} in {response.headers['X-Process-Time']}s")
        return response
