"""
Placement Tracker - Main Application

FastAPI backend with:
- PostgreSQL for candidates, offers, placement safety and the timeline
- MongoDB for raw / parsed resume documents
- An OpenAI-compatible model for resume parsing
- JWT bearer tokens for actor attribution
- A background sweep that closes out finished guarantee periods

Run: uvicorn app.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.exceptions import PlacementEngineError
from app.core.logging_config import configure_logging
from app.db.mongodb import init_mongo_indexes
from app.db.postgres import get_engine
from app.db.schema import init_schema
from app.schemas.schemas import ErrorResponse
from app.services.sweep import GuaranteeSweeper

settings = get_settings()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Placement Tracker",
    description="""
    Candidate lifecycle and placement-safety engine for a recruitment agency.

    ## Features
    - **Pipeline**: sourced → screening → interviews → offer → joined
    - **Revenue**: fee % of fixed CTC, attributed on joining
    - **Guarantee period**: at-risk dashboard, follow-ups, automatic expiry
    - **Renege**: atomic reversal of revenue and placement
    - **Timeline**: append-only audit log per candidate

    ## Databases
    - PostgreSQL: Structured data (users, clients, jobs, candidates, offers, tracker, timeline)
    - MongoDB: Documents (raw and parsed resumes)
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")

sweeper = GuaranteeSweeper(settings.guarantee_sweep_interval_seconds)


@app.exception_handler(PlacementEngineError)
async def placement_error_handler(request: Request, exc: PlacementEngineError):
    """Map engine errors to status codes (each error class carries its own)."""
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            detail=exc.message,
            error=type(exc).__name__,
            candidate_id=exc.candidate_id,
        ).model_dump(),
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    """Configure logging, create tables and indexes, start the sweep."""
    configure_logging()
    try:
        init_schema(get_engine())
        logger.info("Database schema ready")
    except SQLAlchemyError as e:
        logger.error("Schema initialization failed: %s", e)
    try:
        init_mongo_indexes()
    except PyMongoError as e:
        logger.warning("MongoDB index initialization failed: %s", e)
    if settings.guarantee_sweep_enabled:
        sweeper.start()


@app.on_event("shutdown")
async def shutdown_event():
    await sweeper.stop()


@app.get("/health", tags=["Health"])
def health_check():
    """Detailed health check."""
    from app.db.postgres import test_postgres_connection
    from app.db.mongodb import test_mongo_connection

    last_sweep = sweeper.last_result
    return {
        "status": "healthy",
        "postgres": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected",
        "guarantee_sweep": {
            "running": sweeper.running,
            "last_run": last_sweep.run_at if last_sweep else None,
        },
    }
