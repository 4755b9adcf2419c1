"""
FastAPI application for Compliance Queue.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Dict

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import get_settings
from .core.pipeline import reconcile_stale_claims
from .db.base import get_db, get_session_local, init_database
from .errors import ArtifactNotFound, StoreUnavailable
from .logging_config import configure_logging
from .routes import router

logger = structlog.get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    configure_logging(settings)
    logger.info("Starting Compliance Queue", environment=settings.environment)

    try:
        init_database()
        if settings.reconcile_on_startup:
            with get_session_local()() as db:
                released = reconcile_stale_claims(db, settings)
            logger.info("startup_reconcile_complete", released=len(released))
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    logger.info("Shutdown complete")


app = FastAPI(
    title="Compliance Queue",
    description="Review queue and webscrap pipeline for compliance artifacts",
    version=importlib.metadata.version("compliance-queue"),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ArtifactNotFound)
async def artifact_not_found_handler(request: Request, exc: ArtifactNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": exc.to_dict()})


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error("store_unavailable", operation=exc.operation, error=str(exc.cause))
    return JSONResponse(status_code=503, content={"detail": exc.to_dict()})


@app.get("/api/health", tags=["system"])
def health(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Liveness check including database connectivity."""
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning("health_db_check_failed", error=str(e))
        db_ok = False
    return {"ok": db_ok, "db": db_ok, "message": "Server is running"}


@app.get("/version", tags=["system"])
def version() -> Dict[str, str]:
    """Return the version of the application."""
    return {"version": importlib.metadata.version("compliance-queue")}


app.include_router(router)
