from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI
from starlette.requests import Request

from jobly.api.router import api_router
from jobly.core.config import get_settings
from jobly.core.telemetry import TelemetryRuntime, configure_api_logging, setup_api_telemetry, shutdown_api_telemetry
from jobly.services.repository import get_repository

REQUEST_ID_HEADER = "X-Request-ID"

settings = get_settings()
_telemetry_runtime: TelemetryRuntime | None = None
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info(
        "jobly api starting environment=%s database_configured=%s token_ttl_minutes=%s",
        settings.environment,
        settings.database_url is not None,
        settings.token_ttl_minutes,
    )
    try:
        yield
    finally:
        if _telemetry_runtime is not None:
            shutdown_api_telemetry(app, _telemetry_runtime)
        await get_repository().close()
        get_repository.cache_clear()


configure_api_logging(settings)
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    docs_url=None if settings.environment == "prod" else "/docs",
    redoc_url=None,
)
_telemetry_runtime = setup_api_telemetry(app, settings)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    started_at = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "http request request_id=%s method=%s path=%s status=%s duration_ms=%.2f",
        request_id,
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


app.include_router(api_router)
