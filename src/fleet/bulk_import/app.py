"""FastAPI application for bulk device import.

This is the main entry point for the bulk import API server.
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.dependencies import close_db_pool, get_config, init_db_pool
from .api.router import router

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Validate configuration, initialize database pool
    - Shutdown: Close database pool
    """
    logger.info("Starting Bulk Device Import API...")

    config = get_config()
    logger.info(
        f"Import workers={config.max_workers}, "
        f"profile upgrade policy={config.profile_upgrade_policy.value}"
    )

    try:
        await init_db_pool()
        logger.info("Database pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise

    yield

    logger.info("Shutting down Bulk Device Import API...")
    await close_db_pool()


app = FastAPI(
    title="Fleet Bulk Device Import API",
    description="""
    API for provisioning devices in bulk from CSV or Excel files.

    ## Workflow

    1. Describe the file's columns in a JSON mapping
    2. Upload the file with the mapping to `/api/devices/bulk-import`
    3. Review created/updated counts and per-line errors
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-API-Key", "X-Tenant-ID"],
)

app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Fleet Bulk Device Import API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/devices/bulk-import/health",
    }


@app.get("/health")
async def health():
    """Global health check."""
    return {"status": "healthy"}


# Entry point for running with uvicorn
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.fleet.bulk_import.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
