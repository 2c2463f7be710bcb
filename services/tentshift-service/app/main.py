import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import LOG_LEVEL, SERVICE_NAME
from .errors import TentShiftError
from .middleware import RequestLoggingMiddleware
from .rabbitmq import publisher
from .redis_client import redis_client
from .routes import router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "System", "description": "Operational endpoints."},
    {"name": "Profile", "description": "The caller's profile."},
    {"name": "Tents", "description": "Create, join and edit tents."},
    {"name": "Availability", "description": "Paint and read availability ranges."},
    {"name": "Shifts", "description": "Shift schedule, assignments and coverage."},
]

app = FastAPI(title="TentShift Service", openapi_tags=OPENAPI_TAGS)
app.add_middleware(RequestLoggingMiddleware)
app.include_router(router)


@app.exception_handler(TentShiftError)
async def tentshift_error_handler(request: Request, exc: TentShiftError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.get("/health", tags=["System"])
async def health():
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "events_enabled": publisher.enabled,
        "cache_enabled": redis_client is not None,
    }


@app.on_event("startup")
async def startup():
    # never crash the service if RabbitMQ is temporarily unavailable
    try:
        await publisher.connect()
    except Exception as e:
        logger.warning("RabbitMQ connect failed at startup; continuing without events: %s", e)


@app.on_event("shutdown")
async def shutdown():
    try:
        await publisher.close()
    except Exception as e:
        logger.warning("RabbitMQ close failed: %s", e)
    if redis_client is not None:
        await redis_client.aclose()
