"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Wires the session store, outbound services and conversation engine
- Registers API routes (webhook)
- Manages application lifecycle (startup/shutdown)
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager, suppress
import asyncio
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.flow.engine import build_engine
from app.services.facturapi_service import FacturapiService
from app.services.session_service import InMemorySessionStore, run_session_sweeper
from app.services.whatsapp_service import WhatsAppService
from app.api import webhook

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("🚀 Starting FacturaBot application...")

    try:
        logger.info("Validating configuration...")
        validate_settings()
        logger.info("✅ Configuration validated")

        store = InMemorySessionStore()
        notifier = WhatsAppService(settings)
        billing = FacturapiService(settings)

        if not notifier.is_configured():
            logger.warning("⚠️ WhatsApp credentials missing, replies will fail to send")

        app.state.session_store = store
        app.state.engine = build_engine(settings, store, notifier, billing)
        app.state.sweeper = asyncio.create_task(
            run_session_sweeper(
                store,
                settings.SESSION_TIMEOUT_MINUTES,
                settings.SESSION_SWEEP_INTERVAL_SECONDS,
            )
        )

        logger.info("🎉 FacturaBot application started successfully!")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Debug Mode: {settings.DEBUG}")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    # Shutdown
    logger.info("🛑 Shutting down FacturaBot application...")

    app.state.sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await app.state.sweeper
    logger.info("✅ Session sweeper stopped")

    dropped = app.state.session_store.count()
    if dropped:
        logger.warning(f"Dropping {dropped} unfinished session(s) on shutdown")

    logger.info("👋 FacturaBot application shut down successfully")


# Create FastAPI app with lifespan
app = FastAPI(
    title="FacturaBot - CFDI por WhatsApp",
    description="WhatsApp-based conversational invoice issuing",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,  # Disable docs in production
    redoc_url="/redoc" if settings.is_development else None,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Meta expects a webhook answer within a few seconds
    if process_time > 5.0:
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path}",
            extra={"process_time": process_time}
        )

    return response


app.include_router(webhook.router, prefix=settings.API_PREFIX, tags=["Webhook"])


# Root endpoint
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "FacturaBot API",
        "version": APP_VERSION,
        "description": "WhatsApp-based CFDI invoice assistant",
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Reports whether the engine is wired and how many conversations are open.
    """
    store = getattr(request.app.state, "session_store", None)
    engine_ready = getattr(request.app.state, "engine", None) is not None

    health_status = {
        "status": "healthy" if engine_ready else "unhealthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": APP_VERSION,
        "checks": {
            "engine": "ready" if engine_ready else "not_ready",
            "active_sessions": store.count() if store is not None else 0,
        }
    }

    status_code = 200 if engine_ready else 503
    return JSONResponse(content=health_status, status_code=status_code)


# Liveness probe (for Kubernetes/orchestration)
@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
