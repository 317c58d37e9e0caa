# sysarch/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import asyncio
import logging
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from dotenv import load_dotenv

load_dotenv()

from .core.config import settings
from .core.exceptions import (
    SysArchException,
    sysarch_exception_handler,
    validation_exception_handler,
    http_exception_handler
)
from .api.middleware import LoggingMiddleware
from .core.dependencies import initialize_simulation, cleanup_simulation, get_simulation_service
from .utils.logging_filter import setup_secure_logging

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
# Redact LLM keys before any handler emits a record
setup_secure_logging()

logger = logging.getLogger(__name__)

STARTUP_TIMEOUT_SECONDS = 10
SHUTDOWN_TIMEOUT_SECONDS = 5


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the tick loop with the app and stop it on shutdown"""
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} starting")

    try:
        async with asyncio.timeout(STARTUP_TIMEOUT_SECONDS):
            await initialize_simulation()
    except asyncio.TimeoutError:
        logger.warning("Tick loop did not start in time; POST /step still advances the simulation")
    except Exception as e:
        logger.warning(f"Tick loop failed to start: {e}; POST /step still advances the simulation")

    yield

    try:
        async with asyncio.timeout(SHUTDOWN_TIMEOUT_SECONDS):
            await cleanup_simulation()
    except asyncio.TimeoutError:
        logger.warning("Tick loop did not stop in time")
    except Exception as e:
        logger.warning(f"Error while stopping tick loop: {e}")

    logger.info(f"{settings.APP_NAME} stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    description="Three-tier architecture simulation with an autoscaling control loop",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time", "X-Error-Code", "X-Error-Category"]
)
app.add_middleware(LoggingMiddleware)

app.add_exception_handler(SysArchException, sysarch_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)


@app.get("/")
async def root():
    """Service name, version and where the API lives"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "api_base": settings.API_PREFIX,
        "simulation": f"{settings.API_PREFIX}/simulation",
        "docs": "/docs" if settings.DEBUG else None
    }


@app.get("/health")
async def health_check():
    """Healthy while the background tick loop is running"""
    service = get_simulation_service()
    status = service.get_status()
    running = status["is_running"]

    return {
        "status": "healthy" if running else "degraded",
        "tick_loop": "running" if running else "stopped",
        "tick": status["tick"],
        "advisor_configured": service.advisor.is_configured if service.advisor else False,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


from .api.v1 import simulation

app.include_router(simulation.router, prefix=f"{settings.API_PREFIX}/simulation", tags=["simulation"])


def run() -> None:
    """Console entry point: serve the API with uvicorn"""
    import uvicorn

    uvicorn.run(
        "sysarch.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower()
    )
