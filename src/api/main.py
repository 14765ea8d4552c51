"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os
from datetime import datetime
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

import src.api.endpoints.form_webhook as form_webhook_module
from src.api.dependencies import api_key_protection
from src.api.endpoints.form_webhook import router as form_webhook_router
from src.tasks.runtime import build_runtime
from src.utils.relay_config_loader import load_relay_config

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Form Submission Relay API",
    description="Receives form submissions and relays them to the Loan API in the background",
    version="1.0.0",
    dependencies=[Depends(api_key_protection)],  # protect everything by default
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================

# Cache uses Redis when REDIS_URL is set, else an in-memory stub; relay tasks
# go through the Celery broker (CELERY_BROKER_URL or REDIS_URL) or run eagerly;
# INTEGRATIONS_MODE=mock swaps the Loan API for the in-memory mock.
_config_path = os.getenv("RELAY_CONFIG_PATH")
relay_config = load_relay_config(Path(_config_path) if _config_path else None)
runtime = build_runtime(relay_config)

form_webhook_module.intake_hook = runtime.intake


def get_redis():
    """Dependency for Redis cache"""
    return runtime.cache


def get_pending():
    """Dependency for the pending-submission gate"""
    return runtime.pending


def get_intake_hook():
    """Dependency for the intake hook"""
    return runtime.intake


# ============================================================================
# ROUTERS
# ============================================================================
app.include_router(form_webhook_router, prefix="/api/v1")


# ============================================================================
# ENDPOINTS
# ============================================================================
@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {"service": "Form Submission Relay API", "status": "healthy", "version": "1.0.0", "timestamp": datetime.now().isoformat()}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check (Redis cache, Celery queue mode)."""
    return {
        "status": "healthy",
        "storage": {"cache": runtime.cache.ping()},
        "queue": {"mode": "broker" if runtime.uses_broker else "eager"},
        "timestamp": datetime.now().isoformat(),
    }


# ============================================================================
# STARTUP/SHUTDOWN EVENTS
# ============================================================================
@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    logger.info("Starting Form Submission Relay API...")

    if not runtime.intake.targets:
        logger.warning("No target form identifiers configured; submissions will not be relayed")

    if runtime.cache.ping():
        logger.info("Redis connection successful")
    else:
        logger.warning("Redis connection failed")

    if not runtime.uses_broker:
        logger.warning("No Celery broker configured; relay tasks run inside API requests")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down Form Submission Relay API...")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
