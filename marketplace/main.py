"""
Main FastAPI Application
Marketplace with timed auctions, settlement and winner notification
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.core.config import get_settings
from marketplace.core.logging_config import setup_logging
from marketplace.domain.errors import MarketplaceError
from marketplace.infrastructure.database import check_db_connection, init_db
from marketplace.infrastructure.notifier import NotificationFailed
from marketplace.services import start_settlement_worker, stop_settlement_worker

# Import routers
from marketplace.api import admin, bids, products

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    setup_logging()
    logger.info(f"🚀 Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # An unreachable database is fatal
    try:
        check_db_connection()
        logger.info("✅ Database connection successful")
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        raise

    init_db()

    if settings.SETTLEMENT_WORKER_ENABLED:
        logger.info("⏰ Starting settlement worker...")
        await start_settlement_worker()

    yield

    logger.info("🛑 Shutting down...")
    await stop_settlement_worker()
    logger.info("✅ Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# ERROR HANDLERS
# ============================================================================
@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    """Render domain errors as structured reasons"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(NotificationFailed)
async def notification_failed_handler(request: Request, exc: NotificationFailed):
    logger.warning(f"⚠️  Notification channel unavailable for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={
            "error": "notification_unavailable",
            "message": "Notification channel unavailable, try again later",
            "retryable": True,
        },
    )


# ============================================================================
# INCLUDE ROUTERS
# ============================================================================
app.include_router(products.router)
app.include_router(bids.router)
app.include_router(admin.router)


# ============================================================================
# ROOT ENDPOINT
# ============================================================================
@app.get("/", tags=["root"])
async def root():
    """Server status"""
    return {
        "message": f"{settings.APP_NAME} v{settings.APP_VERSION}",
        "status": "running",
        "docs": "/docs",
        "features": [
            "Timed auctions with minimum increments",
            "Optimistic concurrency on every write",
            "Settlement sweep for expired auctions",
            "Winner notification via Redis pub/sub",
        ],
    }
