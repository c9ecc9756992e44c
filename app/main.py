from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from starlette.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from app.api import auth, bookings, contact, quotes
from app.core.config import settings
from app.core.errors import BookingError
from app.core.redis import close_redis, get_redis, ping_redis
from app.core.metrics import request_count, request_duration, redis_connected, get_metrics_text
from app.services.payments import build_payment_client
from app.services.registry import BookingRegistry
from app.services.routing import CachedRoutingClient, MapboxRoutingClient
from app.services.webhook import send_webhook
from app.services.workflow import BookingWorkflow
from app.storage.factory import build_storage
from app.utils.booking_ids import build_id_generator
import time
import logging

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        try:
            response = await call_next(request)
            duration = time.time() - start_time

            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code
            ).inc()

            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)

            return response
        except Exception:
            duration = time.time() - start_time
            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=500
            ).inc()
            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)
            raise


def build_workflow(storage, routing=None, payments=None, notifier=send_webhook) -> BookingWorkflow:
    if routing is None:
        routing = CachedRoutingClient(MapboxRoutingClient(), storage.cache)
    if payments is None:
        payments = build_payment_client()
    registry = BookingRegistry(storage.bookings, build_id_generator(storage.cache))
    return BookingWorkflow(storage.sessions, registry, routing, payments, notifier=notifier)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting...")

    storage = await build_storage()
    redis_connected.set(1 if get_redis() is not None else 0)
    logger.info(f"Storage backend: {storage.backend}")

    if not settings.MAPBOX_TOKEN:
        logger.warning("MAPBOX_TOKEN not set - quotes cannot resolve distances")

    mapbox = MapboxRoutingClient()
    payments = build_payment_client()
    app.state.storage = storage
    app.state.workflow = build_workflow(
        storage,
        routing=CachedRoutingClient(mapbox, storage.cache),
        payments=payments,
    )

    yield

    logger.info("Application shutting down...")
    await mapbox.aclose()
    await payments.aclose()
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

app.include_router(auth.router)
app.include_router(quotes.router)
app.include_router(bookings.router)
app.include_router(contact.router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/metrics", tags=["monitoring"])
async def metrics():
    return Response(
        content=get_metrics_text(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@app.get("/health", tags=["monitoring"])
async def health_check(request: Request):
    storage = getattr(request.app.state, "storage", None)
    redis = get_redis()

    return {
        "status": "healthy",
        "service": settings.API_TITLE,
        "version": settings.API_VERSION,
        "dependencies": {
            "storage": storage.backend if storage else "not initialized",
            "redis": "connected" if redis is not None else "disconnected",
            "routing": "configured" if settings.MAPBOX_TOKEN else "not configured",
            "payments": settings.PAYMENT_PROVIDER,
        }
    }


@app.get("/readiness", tags=["monitoring"])
async def readiness_check(request: Request):
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        return JSONResponse(status_code=503, content={"ready": False, "reason": "Storage not initialized"})

    if storage.backend == "redis" and not await ping_redis():
        return JSONResponse(status_code=503, content={"ready": False, "reason": "Redis not available"})

    return {
        "ready": True,
        "service": settings.API_TITLE
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
