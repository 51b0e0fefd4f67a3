from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import DisconnectionError, OperationalError

from salesboard.api.response import exception_envelope
from salesboard.api.v1.router import build_api_router
from salesboard.core.config import get_settings
from salesboard.core.logging_config import configure_logging
from salesboard.core.metrics import render_metrics
from salesboard.core.middleware import MetricsMiddleware, RequestLoggingMiddleware, WriteRateLimitMiddleware
from salesboard.db.session import Database
from salesboard.live.channel import LiveChannel

settings = get_settings()
configure_logging(log_level=settings.log_level, app_env=settings.app_env)
logger = logging.getLogger("salesboard.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    database = Database.from_url(settings.database_url, app_env=settings.app_env)
    app.state.database = database
    app.state.live_channel = LiveChannel(send_timeout_seconds=settings.live_send_timeout_seconds)
    logger.info("salesboard.startup")
    try:
        yield
    finally:
        await app.state.live_channel.close()
        database.dispose()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    WriteRateLimitMiddleware,
    enabled=settings.rate_limit_enabled,
    writes_per_minute=settings.rate_limit_writes_per_minute,
    redis_url=settings.redis_url,
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(build_api_router(), prefix=settings.api_v1_prefix)

if settings.metrics_enabled:
    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        payload, content_type = render_metrics()
        return Response(content=payload, media_type=content_type)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        message = str(exc.detail.get("message") or "Request failed")
        details: dict[str, object] = exc.detail
    else:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        details = {}
    payload = exception_envelope(
        request=request,
        status_code=exc.status_code,
        message=message,
        code=f"http_{exc.status_code}",
        details=details,
    )
    return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
    payload = exception_envelope(
        request=request,
        status_code=422,
        message="Validation failed",
        code="validation_error",
        details={"errors": errors},
    )
    return JSONResponse(status_code=422, content=payload)


@app.exception_handler(OperationalError)
@app.exception_handler(DisconnectionError)
async def database_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("database_unavailable", exc_info=exc)
    payload = exception_envelope(
        request=request,
        status_code=503,
        message="Database temporarily unavailable",
        code="database_unavailable",
        details={"retryable": True},
    )
    return JSONResponse(status_code=503, content=payload)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", exc_info=exc)
    payload = exception_envelope(
        request=request,
        status_code=500,
        message="Internal server error",
        code="internal_server_error",
    )
    return JSONResponse(status_code=500, content=payload)
