from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request

from jobly.api.router import api_router
from jobly.core.config import get_settings
from jobly.core.telemetry import (
    TelemetryRuntime,
    configure_api_logging,
    setup_api_telemetry,
    shutdown_api_telemetry,
)
from jobly.services.applications import get_application_repository
from jobly.services.companies import get_company_repository
from jobly.services.jobs import get_job_repository
from jobly.services.repository import get_database
from jobly.services.users import get_user_repository

REPOSITORY_FACTORIES = (
    get_company_repository,
    get_job_repository,
    get_user_repository,
    get_application_repository,
)

settings = get_settings()
_telemetry_runtime: TelemetryRuntime | None = None
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info("jobly api starting environment=%s", settings.environment)
    try:
        yield
    finally:
        if _telemetry_runtime is not None:
            shutdown_api_telemetry(app, _telemetry_runtime)
        await get_database().close()
        # Repositories hold the closed database; the next startup builds fresh ones.
        get_database.cache_clear()
        for factory in REPOSITORY_FACTORIES:
            factory.cache_clear()


configure_api_logging()
app = FastAPI(title=settings.app_name, lifespan=lifespan)
_telemetry_runtime = setup_api_telemetry(app, settings)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    level = logging.WARNING if response.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "http request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


app.include_router(api_router)
