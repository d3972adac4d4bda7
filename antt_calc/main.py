from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from antt_calc.api import antt
from antt_calc.core.config import settings
from antt_calc.core.errors import CalculationError, InvalidInput
from antt_calc.core.redis import init_redis, close_redis, get_redis
from antt_calc.core.metrics import request_count, request_duration, redis_connected, rate_table_entries, get_metrics_text
from antt_calc.services.rate_table import get_rate_catalog, get_rate_table
import time
import logging

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception:
            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=500
            ).inc()
            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(time.time() - start_time)
            raise

        request_count.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        request_duration.labels(
            method=request.method,
            endpoint=request.url.path
        ).observe(time.time() - start_time)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting...")

    # A broken rate table must stop the process, not surface per request.
    catalog = get_rate_catalog()
    rate_table_entries.set(sum(len(table) for table in catalog.tables.values()))
    logger.info(
        f"{len(catalog)} ANTT rate tables ready, default {catalog.default.resolution} "
        f"{catalog.default.transport_category.table}"
    )

    logger.info("Initializing Redis connection...")
    try:
        await init_redis()
        redis_connected.set(1)
        logger.info("Redis connected")
    except Exception as e:
        logger.error(f"Redis connection failed, caching and rate limiting disabled: {e}")
        redis_connected.set(0)

    yield

    logger.info("Application shutting down...")
    await close_redis()
    redis_connected.set(0)
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan
)

app.add_middleware(MetricsMiddleware)

app.include_router(antt.router)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(CalculationError)
async def calculation_error_handler(request: Request, exc: CalculationError):
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = InvalidInput.default_message
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query"))
        message = f"{message}: {field} - {first.get('msg')}" if field else f"{message}: {first.get('msg')}"
    return _error(InvalidInput.status_code, message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.get("/metrics", tags=["monitoring"])
async def metrics():
    return Response(
        content=get_metrics_text(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@app.get("/health", tags=["monitoring"])
async def health_check():
    redis_healthy = get_redis() is not None

    return {
        "status": "healthy",
        "service": settings.API_TITLE,
        "version": settings.API_VERSION,
        "dependencies": {
            "redis": "connected" if redis_healthy else "disconnected",
            "rate_table": get_rate_table().resolution
        }
    }


@app.get("/readiness", tags=["monitoring"])
async def readiness_check():
    try:
        catalog = get_rate_catalog()
    except Exception as e:
        logger.error(f"Rate table unavailable: {e}")
        return JSONResponse(
            status_code=503,
            content={"ready": False, "reason": "Rate table not available"}
        )

    return {
        "ready": True,
        "service": settings.API_TITLE,
        "rate_table": {
            "resolution": catalog.default.resolution,
            "transport_category": str(catalog.default.transport_category),
            "entries": len(catalog.default),
        },
        "tables": len(catalog),
    }


@app.get("/", tags=["root"])
async def root():
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics"
    }
