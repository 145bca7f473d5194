"""
JAKE API

FastAPI app for local-business competitive analysis:
1. Accepts a business name and location (plus optional website and industry)
2. Returns a pending analysis immediately
3. Runs the analysis pipeline in the background
4. Serves results, competitors and generated content for polling clients
"""

import logging
import sys
from datetime import datetime

from fastapi import Depends, FastAPI

from jake.database import AnalysisRepository, check_db_connection, init_db
from jake.pipeline import AnalysisPipeline
from jake.utils import get_settings

from .analyses import router as analyses_router
from .dependencies import close_pipeline, get_pipeline, get_repository

# Configure logging to stdout (platforms often treat stderr as errors)
logging.basicConfig(
    level=getattr(logging, get_settings().LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

VERSION = "1.0.0"

app = FastAPI(
    title="JAKE Competitive Analysis",
    description="Local-business competitive analysis powered by Google Maps and Claude",
    version=VERSION,
)


# ============================================================================
# STARTUP / SHUTDOWN
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    logger.info("Initializing database...")
    try:
        init_db()
        if check_db_connection():
            logger.info("Database connection verified")
        else:
            logger.warning("Database connection check failed - continuing anyway")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    """Release outbound HTTP connections."""
    await close_pipeline()


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    return {"status": "ok", "service": "JAKE Competitive Analysis"}


@app.get("/api/health")
async def health(
    repository: AnalysisRepository = Depends(get_repository),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    """Health check including database status and collaborator modes."""
    db_connected = repository.check_connection()

    return {
        "status": "healthy" if db_connected else "degraded",
        "timestamp": datetime.now().isoformat(),
        "version": VERSION,
        "database": "connected" if db_connected else "disconnected",
        "maps_mode": pipeline.maps.mode,
        "ai_enabled": pipeline.llm is not None,
    }


app.include_router(analyses_router)


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.analyze:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
