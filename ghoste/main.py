"""
Ghoste Ads Backend - FastAPI Application
Main entry point with all routes configured.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from ghoste.config import settings
from ghoste.database import init_db
from ghoste.core.exceptions import GhosteException, ResolutionError

# Import all API routers
from ghoste.api import ads, autopilot, agent

# Import models to ensure they are registered with SQLModel
from ghoste.models import (
    User, MetaCredential,
    SmartLink, OneClickLink, PublicTrackLink, AdCreative,
    AdCampaign, PublishQueueItem, AdsOperationLog,
    ApprovalRequest, ManagerNotification, ManagerDecisionLog, AutopilotKillswitch,
    AgentJob, ManagerSettings, Wallet, WalletTransaction
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    await init_db()
    logger.info("Ghoste API started")
    yield
    # Shutdown


app = FastAPI(
    title="Ghoste Ads API",
    description="Run-ads submission and campaign autopilot for music artists",
    version=VERSION,
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GhosteException)
async def ghoste_exception_handler(request: Request, exc: GhosteException):
    """Domain errors become {ok: false, error, code} with the matching status."""
    content = {"ok": False, "error": exc.message, "code": exc.code}
    if isinstance(exc, ResolutionError) and exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


# Include all routers
app.include_router(ads.router)
app.include_router(autopilot.router)
app.include_router(autopilot.webhook_router)  # Inbound SMS replies
app.include_router(agent.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "message": "Ghoste Ads API is running",
        "version": VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "version": VERSION
    }
