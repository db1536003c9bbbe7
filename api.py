"""
Train FastAPI Application

Main entry point for the Train relationship API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Common library imports
from common.database import MongoDB
from common.utils import success_response

# App-specific imports
from train.config import settings
from train.models import DOCUMENT_MODELS
from train.routers import groups_router, users_router
from train.dependencies import init_services

logging.basicConfig(level=settings.get_log_level(), format=settings.LOG_FORMAT)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# =============================================================================
# Database Instance
# =============================================================================
main_db = MongoDB()


# =============================================================================
# Application Lifespan
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown tasks like database connections
    and service initialization.
    """
    logger.info("Starting Train API...")

    await main_db.connect(
        uri=settings.MONGODB_URI,
        database_name=settings.MONGODB_DATABASE,
        document_models=DOCUMENT_MODELS,
    )

    init_services(db=main_db.db, settings=settings)
    logger.info("All services initialized")

    yield

    logger.info("Shutting down Train API...")
    await main_db.disconnect()


# =============================================================================
# FastAPI Application
# =============================================================================
app = FastAPI(
    title="Train API",
    description="Group membership and follow relationships",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development() else None,
    redoc_url="/redoc" if settings.is_development() else None,
)

# =============================================================================
# CORS Middleware
# =============================================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# Include Routers (all under /api/v1 prefix)
# =============================================================================
API_PREFIX = "/api/v1"

app.include_router(groups_router, prefix=API_PREFIX, tags=["Groups"])
app.include_router(users_router, prefix=API_PREFIX, tags=["Users"])


# =============================================================================
# Health Check Endpoint
# =============================================================================
@app.get("/health", tags=["Health"])
async def health():
    """
    Health check endpoint.

    Returns the status of the API and database connection.
    """
    return success_response({
        "status": "ok",
        "version": API_VERSION,
        "database": main_db.is_connected,
    })


# =============================================================================
# Run with Uvicorn
# =============================================================================
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development(),
    )
