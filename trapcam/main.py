# trapcam/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from trapcam.routers import animals, cameras, devices, health, inbound
from trapcam.database import create_tables
from trapcam.config import settings
from trapcam.services.blob_store import get_blob_store
from trapcam.services.notification_service import get_dispatcher
from trapcam.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="TrapCam API",
    description="Trail camera email ingestion, species detection and push notifications.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (frontend runs on its own origin) ───────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to the frontend origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
OPEN_PATHS = {
    "/api/v1/inbound/addemail",
    "/api/v1/inbound/addemail/form",
    "/api/v1/health",
    "/docs",
    "/redoc",
    "/openapi.json",
}


class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth for non-inbound endpoints.
    Inbound email endpoints are excluded — mail relays don't send keys.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        if request.url.path in OPEN_PATHS or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(inbound.router, prefix="/api/v1", tags=["📧 Inbound Email"])
app.include_router(cameras.router, prefix="/api/v1", tags=["📷 Cameras"])
app.include_router(devices.router, prefix="/api/v1", tags=["🔔 Notifications"])
app.include_router(animals.router, prefix="/api/v1", tags=["🦊 Animals"])
app.include_router(health.router,  prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 TrapCam Backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")

    # Buckets may live on a store that is not up yet; uploads will report it later
    try:
        get_blob_store().ensure_buckets()
        logger.info("✅ Blob store buckets ready")
    except Exception as e:
        logger.warning(f"⚠️  Blob store provisioning failed: {e}")

    logger.info(f"🦊 Animal detection: {'enabled' if settings.detection_enabled else 'disabled'}")
    logger.info(f"🔔 Push notifications: {'enabled' if settings.push_enabled else 'disabled'}")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_HOST}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 TrapCam Backend shutting down...")
    await get_dispatcher().drain()
